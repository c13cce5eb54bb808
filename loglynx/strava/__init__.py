"""Blueprint for the Strava integration."""

from flask import Blueprint

from loglynx.constants import API_PREFIX

bp = Blueprint("strava", __name__, url_prefix=f"{API_PREFIX}/strava")

from . import routes  # noqa: E402, F401
