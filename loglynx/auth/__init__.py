"""The auth blueprint."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("auth", __name__, url_prefix=f"{API_PREFIX}/auth")

from . import routes  # noqa: E402

__all__ = ["routes"]
