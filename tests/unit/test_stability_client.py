"""Tests for dreamjob.core.stability_client — provider request and classification.

All tests use a mocked ``requests.Session`` so no network access occurs.
"""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests

from dreamjob.core.errors import (
    EmptyResult,
    InsufficientCredits,
    InvalidCredentials,
    ProviderError,
    ProviderTimeout,
)
from dreamjob.core.stability_client import StabilityClient


def _response(status: int, body) -> requests.Response:
    """Build a real ``requests.Response`` with a fixed body."""
    response = requests.Response()
    response.status_code = status
    response.encoding = "utf-8"
    if isinstance(body, (dict, list)):
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = body.encode("utf-8")
        response.headers["Content-Type"] = "text/plain"
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(session: MagicMock) -> StabilityClient:
    return StabilityClient(
        "sk-test",
        api_host="https://example.test/",
        engine_id="engine-x",
        timeout=7.5,
        session=session,
    )


class TestRequestConstruction:
    """Verify the multipart request sent to the provider."""

    def test_posts_to_image_to_image_endpoint(self, client, session):
        session.post.return_value = _response(200, {"artifacts": [{"base64": "abc"}]})

        client.generate(b"jpeg-bytes", "a prompt")

        args, kwargs = session.post.call_args
        assert args[0] == "https://example.test/v1/generation/engine-x/image-to-image"
        assert kwargs["timeout"] == 7.5

    def test_sends_bearer_token_and_json_accept(self, client, session):
        session.post.return_value = _response(200, {"artifacts": [{"base64": "abc"}]})

        client.generate(b"jpeg-bytes", "a prompt")

        headers = session.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["Accept"] == "application/json"

    def test_sends_fixed_tuning_fields(self, client, session):
        session.post.return_value = _response(200, {"artifacts": [{"base64": "abc"}]})

        client.generate(b"jpeg-bytes", "a prompt")

        data = session.post.call_args.kwargs["data"]
        assert data == {
            "init_image_mode": "IMAGE_STRENGTH",
            "image_strength": "0.6",
            "text_prompts[0][text]": "a prompt",
            "text_prompts[0][weight]": "1",
            "cfg_scale": "7",
            "samples": "1",
            "steps": "30",
        }
        assert "width" not in data and "height" not in data

    def test_sends_init_image_as_jpeg(self, client, session):
        session.post.return_value = _response(200, {"artifacts": [{"base64": "abc"}]})

        client.generate(b"jpeg-bytes", "a prompt", file_name="me.jpg")

        files = session.post.call_args.kwargs["files"]
        assert files["init_image"] == ("me.jpg", b"jpeg-bytes", "image/jpeg")

    def test_exactly_one_call(self, client, session):
        session.post.return_value = _response(500, {"message": "boom"})

        with pytest.raises(ProviderError):
            client.generate(b"x", "p")

        assert session.post.call_count == 1


class TestResponseClassification:
    """Verify mapping from provider outcomes to the error taxonomy."""

    def test_success_returns_first_artifact(self, client, session):
        session.post.return_value = _response(
            200, {"artifacts": [{"base64": "first", "finishReason": "SUCCESS"}, {"base64": "second"}]}
        )

        assert client.generate(b"x", "p") == "first"

    def test_401_is_invalid_credentials(self, client, session):
        session.post.return_value = _response(401, {"message": "bad key"})

        with pytest.raises(InvalidCredentials) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.status_code == 401

    def test_402_is_insufficient_credits(self, client, session):
        session.post.return_value = _response(402, {"message": "no credits"})

        with pytest.raises(InsufficientCredits) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.status_code == 402

    def test_other_error_uses_provider_message(self, client, session):
        session.post.return_value = _response(400, {"name": "bad_request", "message": "init_image too large"})

        with pytest.raises(ProviderError) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.message == "init_image too large"
        assert exc_info.value.kind == "ProviderError"
        assert exc_info.value.status_code == 500

    def test_other_error_without_json_uses_generic_message(self, client, session):
        session.post.return_value = _response(503, "<html>Service Unavailable</html>")

        with pytest.raises(ProviderError) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.message == ProviderError.default_message

    def test_empty_artifacts_is_empty_result(self, client, session):
        session.post.return_value = _response(200, {"artifacts": []})

        with pytest.raises(EmptyResult) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.kind == "EmptyResult"
        assert exc_info.value.status_code == 500

    def test_missing_artifacts_is_empty_result(self, client, session):
        session.post.return_value = _response(200, {})

        with pytest.raises(EmptyResult):
            client.generate(b"x", "p")

    def test_non_json_success_is_provider_error(self, client, session):
        session.post.return_value = _response(200, "not json")

        with pytest.raises(ProviderError):
            client.generate(b"x", "p")

    def test_timeout_is_provider_timeout(self, client, session):
        session.post.side_effect = requests.Timeout("slow")

        with pytest.raises(ProviderTimeout) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.status_code == 504

    def test_connection_error_is_provider_error(self, client, session):
        session.post.side_effect = requests.ConnectionError("refused")

        with pytest.raises(ProviderError) as exc_info:
            client.generate(b"x", "p")
        assert exc_info.value.kind == "ProviderError"


class TestFromConfig:
    def test_uses_config_values(self, test_config):
        client = StabilityClient.from_config(test_config)
        try:
            assert client.api_key == "sk-test-key"
            assert client.timeout == 5
            assert client.endpoint.endswith(
                "/v1/generation/stable-diffusion-xl-1024-v1-0/image-to-image"
            )
        finally:
            client.close()
