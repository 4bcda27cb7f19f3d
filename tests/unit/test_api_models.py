"""Tests for dreamjob.api.models — Pydantic request/response models.

Tests cover:
- camelCase serialisation of results and job records.
- GenerationJob status/outcome invariants.
- GenerationRequest field validation.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from dreamjob.api.models import (
    GenerationJob,
    GenerationRequest,
    GenerationResult,
    JobStatus,
)


class TestGenerationResult:
    """Test GenerationResult Pydantic model."""

    def test_serialises_with_camel_case_keys(self):
        result = GenerationResult(image_data="abc", job_text="baker", prompt="p")

        assert result.model_dump(by_alias=True) == {
            "success": True,
            "message": "The image was generated successfully!",
            "imageData": "abc",
            "jobText": "baker",
            "prompt": "p",
        }

    def test_accepts_camel_case_input(self):
        result = GenerationResult.model_validate({"imageData": "abc", "jobText": "baker", "prompt": "p"})
        assert result.image_data == "abc"


class TestGenerationRequest:
    """Test GenerationRequest Pydantic model."""

    def test_valid_request(self):
        req = GenerationRequest(image=b"x", content_type="image/png", job_text="baker")
        assert req.file_name == "upload"

    def test_empty_job_text_rejected(self):
        with pytest.raises(ValidationError):
            GenerationRequest(image=b"x", content_type="image/png", job_text="")


class TestGenerationJob:
    """Test GenerationJob Pydantic model."""

    def _fields(self, **overrides) -> dict:
        fields = {"job_text": "baker", "image_file": "data:image/png;base64,YWJj"}
        fields.update(overrides)
        return fields

    def test_defaults(self):
        job = GenerationJob(**self._fields())

        assert job.status is JobStatus.PENDING
        assert job.result is None
        assert job.error is None
        assert job.id
        assert job.timestamp > 0
        assert job.is_finished is False

    def test_record_keys(self):
        record = GenerationJob(**self._fields(file_name="me.png")).model_dump(by_alias=True, mode="json")

        assert set(record) == {
            "id",
            "jobText",
            "imageFile",
            "fileName",
            "timestamp",
            "status",
            "result",
            "error",
        }
        assert record["status"] == "pending"
        assert record["fileName"] == "me.png"

    def test_completed_requires_result(self):
        with pytest.raises(ValidationError):
            GenerationJob(**self._fields(status=JobStatus.COMPLETED))

    def test_result_requires_completed(self):
        result = GenerationResult(image_data="abc", job_text="baker", prompt="p")
        with pytest.raises(ValidationError):
            GenerationJob(**self._fields(result=result))

    def test_failed_requires_error(self):
        with pytest.raises(ValidationError):
            GenerationJob(**self._fields(status=JobStatus.FAILED))

    def test_completed_job_is_finished(self):
        result = GenerationResult(image_data="abc", job_text="baker", prompt="p")
        job = GenerationJob(**self._fields(status=JobStatus.COMPLETED, result=result))
        assert job.is_finished is True

    def test_blank_job_text_rejected(self):
        with pytest.raises(ValidationError):
            GenerationJob(**self._fields(job_text=""))
