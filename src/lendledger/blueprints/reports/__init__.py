"""Portfolio reports blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("reports", __name__, url_prefix="/api")

from . import routes  # noqa: E402,F401

__all__ = ["bp"]
