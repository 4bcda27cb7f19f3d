"""Dreamjob Portrait Generator — FastAPI REST API layer.

Modules
-------
main
    Application factory, route handlers and the ``main()`` CLI entry point.
models
    Pydantic models for requests, results and job records.
service
    Validation and the normalise-then-generate pipeline.
job_store
    Expiring key/value store that carries a job between the two pages.
"""
