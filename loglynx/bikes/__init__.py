"""Blueprint for the bikes feature."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("bikes", __name__, url_prefix=f"{API_PREFIX}/bikes")

from . import routes  # noqa: E402, F401
