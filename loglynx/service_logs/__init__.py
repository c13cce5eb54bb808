"""Blueprint for the service-logs feature."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("service_logs", __name__, url_prefix=f"{API_PREFIX}/service-logs")

from . import routes  # noqa: E402, F401
