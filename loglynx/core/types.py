"""Core data types for the LogLynx API."""

from typing import Any, TypedDict


class _FirestoreDocumentBase(TypedDict):
    id: str
    createdAt: Any


class FirestoreDocument(_FirestoreDocumentBase, total=False):
    """Generic Firestore document structure."""

    updatedAt: Any
