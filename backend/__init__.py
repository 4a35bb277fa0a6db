"""
backend package.

Loads the Celery app when Django starts so that `shared_task` picks up the
project configuration.
"""

from __future__ import annotations

from .celery import app as celery_app

__all__ = ("celery_app",)
