"""Routes for the main blueprint."""

from __future__ import annotations

from typing import Any

from flask import jsonify

from loglynx.constants import API_PREFIX
from loglynx.utils import utcnow

from . import bp


@bp.route("/health")
def health_check() -> Any:
    """Perform a simple health check."""
    return jsonify({"status": "OK", "timestamp": utcnow().isoformat()})


@bp.route("/")
def index() -> Any:
    """Describe the API entry points."""
    return jsonify(
        {
            "name": "LogLynx API",
            "status": "OK",
            "routes": {"health": "/health", "apiBase": API_PREFIX},
            "timestamp": utcnow().isoformat(),
        }
    )
