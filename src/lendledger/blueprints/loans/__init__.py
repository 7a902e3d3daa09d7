"""Loans blueprint package."""

from __future__ import annotations

from flask import Blueprint

bp = Blueprint("loans", __name__, url_prefix="/api/loans")

from . import routes  # noqa: E402,F401

__all__ = ["bp"]
