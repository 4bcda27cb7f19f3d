"""Dreamjob Portrait Generator — FastAPI Application.

This module defines the application factory, every route, and the ``main()``
CLI function that launches the uvicorn server.

Architecture
------------
- **Configuration** is a :class:`~dreamjob.core.config.DreamjobConfig`
  passed into :func:`create_app` and validated once at startup.
- **Generation** is delegated to
  :class:`~dreamjob.api.service.GenerationService`, which validates the
  upload, normalises the photo and calls Stability AI once.
- **Job handoff** between the submission page and the result page uses a
  :class:`~dreamjob.api.job_store.JobStore`.  Records live in memory only and
  expire after ``job_ttl_seconds``.
- **Errors** are raised as :class:`~dreamjob.core.errors.DreamjobError`
  subclasses and rendered by a single exception handler as
  ``{"error": ..., "kind": ...}``.
- **The HTML pages** are served as raw ``HTMLResponse``; all dynamic data is
  fetched by the page JavaScript.

Endpoints
---------
========  ==============================  ==================================
Method    Path                            Purpose
========  ==============================  ==================================
GET       ``/``                           Submission page
GET       ``/result/{id}``                Result page
GET       ``/api/generate``               Status probe
POST      ``/api/generate``               Generate a portrait (stateless)
POST      ``/api/jobs``                   Create a pending job
GET       ``/api/jobs/{id}``              Read a job record
POST      ``/api/jobs/{id}/generate``     Run generation for a pending job
DELETE    ``/api/jobs/{id}``              Discard a job
========  ==============================  ==================================

Usage
-----
CLI (installed entry point)::

    dreamjob

Direct invocation::

    python -m dreamjob.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.staticfiles import StaticFiles

from dreamjob import __version__
from dreamjob.api.job_store import (
    JobStore,
    MemoryJobStore,
    complete_job,
    decode_data_uri,
    encode_data_uri,
    fail_job,
)
from dreamjob.api.models import ErrorResponse, GenerationJob, GenerationResult
from dreamjob.api.service import GenerationService, ImageGenerator
from dreamjob.core.config import DreamjobConfig, config
from dreamjob.core.errors import (
    DreamjobError,
    InvalidRequest,
    JobAlreadyFinished,
    JobInProgress,
    JobNotFound,
    JobStateError,
    MissingImage,
    MissingOccupation,
    ProcessingError,
    UnknownServerError,
)
from dreamjob.core.stability_client import StabilityClient

logger = logging.getLogger(__name__)

# Documented failure bodies; every error is rendered as ``ErrorResponse``.
ERROR_RESPONSES: dict[int | str, dict] = {
    code: {"model": ErrorResponse} for code in (400, 401, 402, 404, 409, 500, 504)
}


# ---------------------------------------------------------------------------
# Application factory.
# ---------------------------------------------------------------------------


def create_app(
    cfg: DreamjobConfig = config,
    *,
    client: ImageGenerator | None = None,
    store: JobStore | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        cfg: Application configuration.
        client: Provider client.  Defaults to a :class:`StabilityClient`
            built from ``cfg``.
        store: Job handoff store.  Defaults to a :class:`MemoryJobStore`
            with ``cfg.job_ttl_seconds`` expiry.

    Returns:
        The configured application.
    """
    if client is None:
        client = StabilityClient.from_config(cfg)
    if store is None:
        store = MemoryJobStore(ttl_seconds=cfg.job_ttl_seconds)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if not cfg.is_api_key_configured:
            logger.warning("Stability AI API key is not configured; generation requests will fail.")
        logger.info(f"Dreamjob {__version__} ready (target {cfg.target_width}x{cfg.target_height}).")

        yield  # Application runs here.

        close = getattr(app.state.service.client, "close", None)
        if callable(close):
            close()
        logger.info("Provider client closed on shutdown.")

    app = FastAPI(
        title="Dreamjob Portrait Generator",
        description="Upload a photo, name an occupation, get an AI portrait.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = cfg
    app.state.service = GenerationService(cfg, client)
    app.state.job_store = store
    app.state.running_jobs = set()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount("/static", StaticFiles(directory=str(cfg.static_dir)), name="static")

    app.add_exception_handler(DreamjobError, _handle_dreamjob_error)
    app.add_exception_handler(JobStateError, _handle_job_state_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)

    _register_page_routes(app, cfg.templates_dir)
    _register_generate_routes(app)
    _register_job_routes(app)
    return app


async def _handle_dreamjob_error(request: Request, exc: DreamjobError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _handle_job_state_error(request: Request, exc: JobStateError) -> JSONResponse:
    return JSONResponse(
        status_code=JobAlreadyFinished.status_code,
        content=JobAlreadyFinished(str(exc)).to_dict(),
    )


async def _handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = {str(err["loc"][-1]) for err in exc.errors() if err.get("loc")}
    if "image" in fields:
        error: DreamjobError = MissingImage()
    elif "jobText" in fields:
        error = MissingOccupation()
    else:
        error = InvalidRequest()
    logger.warning(f"Rejected malformed request on {request.url.path}: {sorted(fields)}")
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def _handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=exc)
    error = UnknownServerError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


def _service(request: Request) -> GenerationService:
    return request.app.state.service


def _store(request: Request) -> JobStore:
    return request.app.state.job_store


async def _read_upload(image: UploadFile | None) -> tuple[bytes | None, str | None, str | None]:
    if image is None:
        return None, None, None
    data = await image.read()
    return data, image.content_type, image.filename


# ---------------------------------------------------------------------------
# Pages.
# ---------------------------------------------------------------------------


def _register_page_routes(app: FastAPI, templates_dir: Path) -> None:
    def _page(name: str) -> HTMLResponse:
        path = templates_dir / name
        if not path.exists():
            raise HTTPException(status_code=404, detail=f"{name} not found")
        return HTMLResponse(content=path.read_text(encoding="utf-8"))

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        """Serve the submission page."""
        return _page("index.html")

    @app.get("/result/{job_id}", response_class=HTMLResponse)
    async def result_page(job_id: str) -> HTMLResponse:
        """Serve the result page.  The job itself is fetched by JavaScript."""
        return _page("result.html")


# ---------------------------------------------------------------------------
# Stateless generation.
# ---------------------------------------------------------------------------


def _register_generate_routes(app: FastAPI) -> None:
    @app.get("/api/generate")
    async def generate_status() -> dict:
        """Report liveness and the supported operations."""
        return {
            "message": "Dreamjob Portrait Generator API",
            "status": "active",
            "endpoints": {
                "POST /api/generate": "Generate an occupation portrait",
                "POST /api/jobs": "Create a pending generation job",
                "GET /api/jobs/{id}": "Read a generation job",
                "POST /api/jobs/{id}/generate": "Run generation for a pending job",
                "DELETE /api/jobs/{id}": "Discard a generation job",
            },
        }

    @app.post("/api/generate", response_model=GenerationResult, responses=ERROR_RESPONSES)
    async def generate(
        request: Request,
        image: UploadFile | None = File(None),
        job_text: str | None = Form(None, alias="jobText"),
    ) -> GenerationResult:
        """Generate a portrait from an uploaded photo and occupation text.

        Returns:
            :class:`GenerationResult` with the base64 image, the echoed
            occupation text and the prompt.

        Raises:
            DreamjobError: Rendered as ``{"error", "kind"}`` with the
                matching status code (400/401/402/500/504).
        """
        data, content_type, file_name = await _read_upload(image)
        return await _service(request).run(data, content_type, file_name, job_text)


# ---------------------------------------------------------------------------
# Job handoff.
# ---------------------------------------------------------------------------


def _register_job_routes(app: FastAPI) -> None:
    def _load(request: Request, job_id: str) -> GenerationJob:
        job = _store(request).get(job_id)
        if job is None:
            raise JobNotFound()
        return job

    async def _run(request: Request, job: GenerationJob) -> GenerationResult:
        store = _store(request)
        try:
            try:
                data, content_type = decode_data_uri(job.image_file)
            except ValueError as e:
                raise ProcessingError("The stored image could not be read.") from e
            result = await _service(request).run(data, content_type, job.file_name, job.job_text)
        except DreamjobError as e:
            current = store.get(job.id)
            if current is not None:
                fail_job(store, current, e.message)
            logger.warning(f"Job {job.id} failed: {e.kind}: {e.message}")
            raise

        # The user may have discarded the job while generation was running.
        current = store.get(job.id)
        if current is not None:
            complete_job(store, current, result)
        return result

    @app.post("/api/jobs", status_code=201, response_model=GenerationJob, responses=ERROR_RESPONSES)
    async def create_job(
        request: Request,
        image: UploadFile | None = File(None),
        job_text: str | None = Form(None, alias="jobText"),
    ) -> GenerationJob:
        """Validate an upload and store it as a pending job."""
        data, content_type, file_name = await _read_upload(image)
        validated = _service(request).validate(data, content_type, file_name, job_text)

        job = GenerationJob(
            job_text=validated.job_text,
            image_file=encode_data_uri(validated.image, validated.content_type),
            file_name=validated.file_name,
        )
        _store(request).put(job)
        logger.info(f"Created job {job.id} for occupation {job.job_text!r}")
        return job

    @app.get("/api/jobs/{job_id}", response_model=GenerationJob, responses=ERROR_RESPONSES)
    async def get_job(request: Request, job_id: str) -> GenerationJob:
        """Return a job record."""
        return _load(request, job_id)

    @app.post("/api/jobs/{job_id}/generate", response_model=GenerationResult, responses=ERROR_RESPONSES)
    async def generate_job(request: Request, job_id: str) -> GenerationResult:
        """Run the generation pipeline for a pending job and record the outcome.

        Raises:
            JobNotFound: No job with this id (or it expired).
            JobAlreadyFinished: The job is already completed or failed.
            JobInProgress: Another request is already generating this job.
            DreamjobError: Any pipeline failure; the job is marked failed.
        """
        running: set[str] = request.app.state.running_jobs
        job = _load(request, job_id)
        if job.is_finished:
            raise JobAlreadyFinished()
        # Claimed before the first await so a second caller cannot start a run.
        if job_id in running:
            raise JobInProgress()
        running.add(job_id)
        try:
            return await _run(request, job)
        finally:
            running.discard(job_id)

    @app.delete("/api/jobs/{job_id}", responses=ERROR_RESPONSES)
    async def delete_job(request: Request, job_id: str) -> dict:
        """Discard a job.  Called by "try again" and "home"."""
        if not _store(request).remove(job_id):
            raise JobNotFound()
        return {"success": True, "deleted": job_id}


# ---------------------------------------------------------------------------
# Module-level application and CLI entry point.
# ---------------------------------------------------------------------------

app = create_app(config)


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from :data:`~dreamjob.core.config.config`
    (``DREAMJOB_SERVER_HOST``, ``DREAMJOB_SERVER_PORT``,
    ``DREAMJOB_LOG_LEVEL``).  Defaults to ``0.0.0.0:3000``.

    Registered as the ``dreamjob`` console script in ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "dreamjob.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
