"""Utility functions for bikes."""

from __future__ import annotations

import secrets
import string

from loglynx.constants import BIKE_IDENTIFIER_PREFIX

IDENTIFIER_ALPHABET = string.ascii_uppercase + string.digits


def generate_unique_identifier() -> str:
    """Generate a printable bike identifier such as ``LYNX-4K2Q-ZP0A-7HJD``."""
    groups = [
        "".join(secrets.choice(IDENTIFIER_ALPHABET) for _ in range(4))
        for _ in range(3)
    ]
    return "-".join([BIKE_IDENTIFIER_PREFIX, *groups])
