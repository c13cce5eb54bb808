"""Blueprint for the components feature."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("components", __name__, url_prefix=f"{API_PREFIX}/components")

from . import routes  # noqa: E402, F401
