"""The user blueprint."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("user", __name__, url_prefix=f"{API_PREFIX}/users")

from . import routes  # noqa: E402

__all__ = ["routes"]
