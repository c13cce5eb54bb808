"""Blueprint for push-notification device tokens."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint(
    "notifications", __name__, url_prefix=f"{API_PREFIX}/notifications"
)

from . import routes  # noqa: E402, F401
