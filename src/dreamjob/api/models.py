"""Pydantic models for the Dreamjob API.

FastAPI uses these for response serialisation and OpenAPI documentation.
Field names follow the camelCase keys the browser views read, declared as
aliases so Python code keeps snake_case attribute names.

Models
------
GenerationRequest
    Validated input to the generation pipeline (transient).
GenerationResult
    Success body of ``POST /api/generate``.
ErrorResponse
    Body of every failed request.
GenerationJob
    One job record in the handoff store.
"""

from __future__ import annotations

import time
import uuid
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GenerationRequest(_CamelModel):
    """Validated input to the generation pipeline.

    Attributes:
        image: Raw bytes of the uploaded photo.
        content_type: Declared MIME type of the upload (starts with ``image/``).
        file_name: Original file name of the upload.
        job_text: Occupation text, already trimmed and non-empty.
    """

    image: bytes
    content_type: str
    file_name: str = "upload"
    job_text: str = Field(..., min_length=1, alias="jobText")


class GenerationResult(_CamelModel):
    """Success body of the generation endpoint.

    Attributes:
        success: Always ``True`` for this model.
        message: Human-readable confirmation.
        image_data: Base64 payload of the generated PNG.
        job_text: Occupation text echoed back.
        prompt: Prompt sent to the provider.
    """

    success: bool = True
    message: str = "The image was generated successfully!"
    image_data: str = Field(..., alias="imageData")
    job_text: str = Field(..., alias="jobText")
    prompt: str


class ErrorResponse(BaseModel):
    """Body returned for every failed request."""

    error: str
    kind: str


class JobStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


def new_job_id() -> str:
    return uuid.uuid4().hex


class GenerationJob(_CamelModel):
    """A generation attempt carried from the submission page to the result page.

    The photo is stored inline as a ``data:`` URI so the record is
    self-contained.

    Invariants:
        - ``result`` is present iff ``status`` is ``completed``.
        - ``error`` is present iff ``status`` is ``failed``.

    Attributes:
        id: Opaque unique identifier.
        job_text: Occupation text.
        image_file: Uploaded photo as a base64 ``data:`` URI.
        file_name: Original file name.
        timestamp: Creation time in seconds since the epoch.
        status: Lifecycle state.
        result: Generation outcome once completed.
        error: Failure message once failed.
    """

    id: str = Field(default_factory=new_job_id)
    job_text: str = Field(..., min_length=1, alias="jobText")
    image_file: str = Field(..., alias="imageFile")
    file_name: str = Field(default="upload", alias="fileName")
    timestamp: float = Field(default_factory=time.time)
    status: JobStatus = JobStatus.PENDING
    result: GenerationResult | None = None
    error: str | None = None

    @model_validator(mode="after")
    def _check_outcome_matches_status(self) -> GenerationJob:
        if (self.result is not None) != (self.status is JobStatus.COMPLETED):
            raise ValueError("result must be present exactly when status is 'completed'")
        if (self.error is not None) != (self.status is JobStatus.FAILED):
            raise ValueError("error must be present exactly when status is 'failed'")
        return self

    @property
    def is_finished(self) -> bool:
        return self.status is not JobStatus.PENDING
