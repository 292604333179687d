"""Pytest configuration and fixtures."""
import asyncio
import copy
from datetime import datetime, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest
from bson import Decimal128, ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from freelance_tracker.clock import DeterministicClock


def _matches_condition(value, condition) -> bool:
    if isinstance(condition, dict) and any(key.startswith("$") for key in condition):
        for operator, operand in condition.items():
            if operator == "$ne" and value == operand:
                return False
            if operator == "$gte" and (value is None or value < operand):
                return False
            if operator == "$lte" and (value is None or value > operand):
                return False
            if operator == "$lt" and (value is None or value >= operand):
                return False
            if operator == "$in" and value not in operand:
                return False
        return True
    return value == condition


def _matches(doc: dict, query: dict) -> bool:
    return all(_matches_condition(doc.get(key), condition) for key, condition in query.items())


class FakeCursor:
    """Minimal stand-in for a Motor cursor."""

    def __init__(self, docs: list[dict]):
        self._docs = docs

    def sort(self, key: str, direction: int = 1):
        self._docs.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    async def to_list(self, length=None):
        return [copy.deepcopy(doc) for doc in self._docs]


class FakeCollection:
    """
    In-memory async collection for single-process tests.

    ``time_entries`` enforces the same partial unique index as MongoDB: one
    document with ``is_open: True`` per (user_id, project_id). Every call
    yields to the event loop first so concurrent tasks interleave the way
    separate requests would.
    """

    def __init__(self, name: str):
        self.name = name
        self.docs: list[dict] = []

    def _check_open_index(self, doc: dict) -> None:
        if self.name != "time_entries" or not doc.get("is_open"):
            return
        for other in self.docs:
            if (
                other["_id"] != doc["_id"]
                and other.get("is_open")
                and other["user_id"] == doc["user_id"]
                and other["project_id"] == doc["project_id"]
            ):
                raise DuplicateKeyError("E11000 duplicate key error", 11000)

    async def find_one(self, query: dict):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query: dict):
        return FakeCursor([doc for doc in self.docs if _matches(doc, query)])

    async def count_documents(self, query: dict) -> int:
        await asyncio.sleep(0)
        return sum(1 for doc in self.docs if _matches(doc, query))

    async def insert_one(self, doc: dict):
        await asyncio.sleep(0)
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        self._check_open_index(stored)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored["_id"])

    async def find_one_and_update(self, query: dict, update: dict, return_document=ReturnDocument.BEFORE):
        await asyncio.sleep(0)
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                updated = {**doc, **update.get("$set", {})}
                self._check_open_index(updated)
                self.docs[index] = updated
                result = updated if return_document == ReturnDocument.AFTER else doc
                return copy.deepcopy(result)
        return None

    async def delete_one(self, query: dict):
        await asyncio.sleep(0)
        for index, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)


class FakeDatabase:
    """Dictionary of FakeCollections, created on first access."""

    name = "freelance_tracker_test"

    def __init__(self):
        self._collections: dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self._collections:
            self._collections[name] = FakeCollection(name)
        return self._collections[name]


@pytest.fixture
def fake_db():
    """Empty in-memory database."""
    return FakeDatabase()


@pytest.fixture
def clock():
    """Clock pinned to 2025-03-10 09:00 UTC."""
    return DeterministicClock(datetime(2025, 3, 10, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def make_project(fake_db):
    """Insert a project document and return its id."""

    def _make_project(
        user_id: str = "user123",
        name: str = "Website Redesign",
        billing_mode: str = "HOURLY",
        **fields,
    ) -> str:
        doc = {
            "_id": ObjectId(),
            "user_id": user_id,
            "name": name,
            "billing_mode": billing_mode,
            "currency": "EUR",
            "status": "ACTIVE",
            **fields,
        }
        fake_db["projects"].docs.append(doc)
        return str(doc["_id"])

    return _make_project


@pytest.fixture
def make_payment(fake_db):
    """Insert a payment document linked to a project."""

    def _make_payment(
        project_id,
        amount: str,
        payment_date: datetime,
        user_id: str = "user123",
    ) -> str:
        doc = {
            "_id": ObjectId(),
            "invoice_id": str(ObjectId()),
            "user_id": user_id,
            "project_id": project_id,
            "amount": Decimal128(Decimal(amount)),
            "currency": "EUR",
            "payment_date": payment_date,
        }
        fake_db["payments"].docs.append(doc)
        return str(doc["_id"])

    return _make_payment
