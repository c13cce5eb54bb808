"""Shared test helpers: mockfirestore patches and an authenticated API case."""

from __future__ import annotations

import unittest
from typing import Any, Optional
from unittest.mock import patch

from google.api_core.exceptions import AlreadyExists
from mockfirestore import CollectionReference, MockFirestore, Query
from mockfirestore.document import DocumentReference

from loglynx import create_app

MOCK_USER_ID = "user1"
MOCK_USER_PAYLOAD = {"uid": MOCK_USER_ID, "email": "user1@example.com", "name": "Rider"}


def patch_mockfirestore() -> None:
    """Teach mockfirestore about FieldFilter, collection groups and create()."""

    def collection_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(CollectionReference, "_where"):
        CollectionReference._where = CollectionReference.where
        CollectionReference.where = collection_where

    def query_where(
        self: Any,
        field_path: Optional[str] = None,
        op_string: Optional[str] = None,
        value: Any = None,
        filter: Any = None,
    ) -> Any:
        if filter:
            return self._where(filter.field_path, filter.op_string, filter.value)
        return self._where(field_path, op_string, value)

    if not hasattr(Query, "_where"):
        Query._where = Query.where
        Query.where = query_where

    # Service logs live in a top-level collection, so a group query over
    # top-level documents is enough for the mock.
    if not hasattr(MockFirestore, "collection_group"):
        MockFirestore.collection_group = lambda self, collection_id: self.collection(
            collection_id
        )

    if not hasattr(DocumentReference, "create"):

        def create(self: Any, data: dict[str, Any]) -> None:
            if self.get().exists:
                raise AlreadyExists(f"Document already exists: {self.id}")
            self.set(data)

        DocumentReference.create = create


class MockBatch:
    """Stand-in for a Firestore WriteBatch that applies writes on commit."""

    def __init__(self, db: Any) -> None:
        self.db = db
        self.writes: list[tuple[Any, Any]] = []
        self.committed = False

    def set(self, ref: Any, data: Any, merge: bool = False) -> None:
        self.writes.append((ref, data))

    def delete(self, ref: Any) -> None:
        self.writes.append((ref, "DELETE"))

    def commit(self) -> None:
        for ref, data in self.writes:
            if data == "DELETE":
                ref.delete()
            else:
                ref.set(data)
        self.committed = True


patch_mockfirestore()


class ApiTestCase(unittest.TestCase):
    """Flask test client backed by MockFirestore with Firebase Auth mocked."""

    def setUp(self) -> None:
        self.db = MockFirestore()
        self.batches: list[MockBatch] = []

        def new_batch() -> MockBatch:
            batch = MockBatch(self.db)
            self.batches.append(batch)
            return batch

        self.db.batch = new_batch

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore_client": patch(
                "firebase_admin.firestore.client", return_value=self.db
            ),
            "verify_id_token": patch(
                "firebase_admin.auth.verify_id_token", return_value=MOCK_USER_PAYLOAD
            ),
        }
        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app({"TESTING": True, "BADGE_STATS_TIMEOUT": 5})
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()

    def tearDown(self) -> None:
        self.app_context.pop()
        self.db.reset()

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": "Bearer mock-token"}

    def add_bike(self, bike_id: str, owner: str = MOCK_USER_ID, **fields: Any) -> None:
        data = {
            "ownerUid": owner,
            "name": "Road Bike",
            "brand": "Canyon",
            "type": "road",
            "year": 2022,
            "status": "Good",
            "totalMileage": 0,
            "tags": [],
            "uniqueIdentifier": f"LYNX-{bike_id.upper()}",
        }
        data.update(fields)
        self.db.collection("bikes").document(bike_id).set(data)
