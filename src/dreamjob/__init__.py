"""Dreamjob Portrait Generator - AI portraits of you in your next occupation."""

__version__ = "0.1.0"

from dreamjob.core.config import DreamjobConfig, config

__all__ = [
    "DreamjobConfig",
    "config",
]
