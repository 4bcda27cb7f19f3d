"""Error taxonomy for the Dreamjob generation pipeline.

Every failure the generation pipeline can produce is represented by a
subclass of :class:`DreamjobError`.  Each subclass carries the HTTP status
code and the short ``kind`` string that the API layer renders into the JSON
error body::

    {"error": "<human readable message>", "kind": "<kind>"}

The API layer registers a single exception handler for
:class:`DreamjobError`, so route handlers and the service layer simply raise
and never build error responses by hand.
"""

from __future__ import annotations


class DreamjobError(Exception):
    """Base class for all user-facing pipeline failures.

    Attributes:
        kind: Stable identifier of the failure class (e.g. ``"MissingImage"``).
        status_code: HTTP status code returned to the client.
        message: Human-readable message shown to the user.
    """

    kind: str = "UnknownServerError"
    status_code: int = 500
    default_message: str = "An unexpected server error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Return the JSON error body for this failure."""
        return {"error": self.message, "kind": self.kind}


# ---------------------------------------------------------------------------
# Request validation failures.
# ---------------------------------------------------------------------------


class ConfigurationError(DreamjobError):
    kind = "ConfigurationError"
    status_code = 500
    default_message = "Stability AI API key is not configured."


class MissingImage(DreamjobError):
    kind = "MissingImage"
    status_code = 400
    default_message = "An image file is required."


class MissingOccupation(DreamjobError):
    kind = "MissingOccupation"
    status_code = 400
    default_message = "Occupation text is required."


class InvalidImageType(DreamjobError):
    kind = "InvalidImageType"
    status_code = 400
    default_message = "Please upload a valid image file."


class InvalidRequest(DreamjobError):
    kind = "InvalidRequest"
    status_code = 400
    default_message = "The request could not be understood."


# ---------------------------------------------------------------------------
# Processing and provider failures.
# ---------------------------------------------------------------------------


class ProcessingError(DreamjobError):
    kind = "ProcessingError"
    status_code = 500
    default_message = "An error occurred while processing the image."


class InvalidCredentials(DreamjobError):
    kind = "InvalidCredentials"
    status_code = 401
    default_message = "The Stability AI API key is invalid."


class InsufficientCredits(DreamjobError):
    kind = "InsufficientCredits"
    status_code = 402
    default_message = "Not enough Stability AI credits."


class ProviderError(DreamjobError):
    kind = "ProviderError"
    status_code = 500
    default_message = "An error occurred while generating the AI image."


class EmptyResult(ProviderError):
    kind = "EmptyResult"
    default_message = "Image generation failed."


class ProviderTimeout(ProviderError):
    kind = "ProviderTimeout"
    status_code = 504
    default_message = "The image generation service did not respond in time."


class UnknownServerError(DreamjobError):
    pass


# ---------------------------------------------------------------------------
# Job handoff failures.
# ---------------------------------------------------------------------------


class JobNotFound(DreamjobError):
    kind = "JobNotFound"
    status_code = 404
    default_message = "The generation request could not be found."


class JobAlreadyFinished(DreamjobError):
    kind = "JobAlreadyFinished"
    status_code = 409
    default_message = "This generation request has already finished."


class JobInProgress(DreamjobError):
    kind = "JobInProgress"
    status_code = 409
    default_message = "This generation request is already running."


class JobStateError(RuntimeError):
    """Raised when a job status transition would break the job lifecycle."""
