"""Core module for the LogLynx API."""

from .types import FirestoreDocument

__all__ = ["FirestoreDocument"]
