"""Blueprint for badges and achievements."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("badges", __name__, url_prefix=API_PREFIX)

from . import routes  # noqa: E402, F401
