# conftest.py
# See: https://docs.pytest.org/en/7.1.x/reference/fixtures.html#conftest-py-sharing-fixtures-across-multiple-files
"""
The conftest.py file serves as a means of providing fixtures for an
entire directory. Fixtures defined in a conftest.py can be used by any
test in that package without needing to import them (pytest will
automatically discover them).
"""

import logging
import os
import re
from typing import Any, AsyncGenerator, Dict, List

from pymongo import MongoClient  # type: ignore[import]
from pymongo.errors import ServerSelectionTimeoutError  # type: ignore[import]
import pytest
import pytest_asyncio

from qatch.mongo import Mongo, PROFILE_COLLECTION

logger = logging.getLogger(__name__)

TEST_DATABASE_NAME = "qatch_test"


# --------------------------------------------------------------------------------------
# In-memory data store
# --------------------------------------------------------------------------------------

def _matches_one(expected: Any, value: Any) -> bool:
    if isinstance(expected, re.Pattern):
        return isinstance(value, str) and expected.search(value) is not None
    return bool(expected == value)


def _matches(condition: Any, value: Any) -> bool:
    """Evaluate the subset of MongoDB query operators the profiler uses."""
    if not isinstance(condition, dict):
        return _matches_one(condition, value)
    for operator, operand in condition.items():
        if operator == "$in":
            if not any(_matches_one(e, value) for e in operand):
                return False
        elif operator == "$nin":
            if any(_matches_one(e, value) for e in operand):
                return False
        else:
            raise NotImplementedError(operator)
    return True


class FakeStore:
    """A DataStore that keeps its profiling log in a list."""

    def __init__(self, profile: List[Dict[str, Any]]) -> None:
        self.profile = profile
        self.collections = {PROFILE_COLLECTION} if profile else set()
        self.profiling_level = 0
        self.calls: List[str] = []
        self.closed = False

    async def set_profiling_level(self, level: int) -> None:
        self.calls.append(f"set_profiling_level({level})")
        self.profiling_level = level

    async def query_profiling_log(self, query: Dict[str, Any]) -> List[Dict[str, Any]]:
        self.calls.append("query_profiling_log")
        return [
            doc for doc in self.profile
            if all(_matches(cond, doc.get(key)) for key, cond in query.items())
        ]

    async def collection_exists(self, name: str) -> bool:
        self.calls.append(f"collection_exists({name})")
        return name in self.collections

    async def drop_collection(self, name: str) -> None:
        self.calls.append(f"drop_collection({name})")
        self.collections.discard(name)
        if name == PROFILE_COLLECTION:
            self.profile = []

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def profile_docs() -> List[Dict[str, Any]]:
    """Get a profiling log with two slow writes and one indexed read."""
    return [
        {
            "op": "update",
            "ns": "test.users",
            "command": {"q": {"name": "ann"}, "u": {"$set": {"age": 3}}, "multi": True, "upsert": False},
            "planSummary": "COLLSCAN",
        },
        {
            "op": "query",
            "ns": "test.users",
            "command": {"find": "users", "filter": {"_id": 1}},
            "planSummary": "IXSCAN { _id: 1 }",
        },
        {
            "op": "query",
            "ns": "test.users",
            "command": {"find": "users", "filter": {"email": "a@b.c"}},
            "planSummary": "IXSCAN",
        },
        {
            "op": "remove",
            "ns": "test.sessions",
            "command": {"q": {"expired": True}, "limit": 0},
            "planSummary": "COLLSCAN",
        },
        {
            "op": "command",
            "ns": "test.$cmd",
            "command": {"ping": 1},
        },
        {
            "op": "query",
            "ns": "test.system.profile",
            "command": {"find": "system.profile", "filter": {}},
            "planSummary": "COLLSCAN",
        },
    ]


@pytest.fixture
def fake_store(profile_docs: List[Dict[str, Any]]) -> FakeStore:
    """Provide an in-memory data store with a populated profiling log."""
    return FakeStore(profile_docs)


# --------------------------------------------------------------------------------------
# MongoDB
# --------------------------------------------------------------------------------------

@pytest_asyncio.fixture
async def mongo() -> AsyncGenerator[Mongo, None]:
    """Provide a qatch client for a freshly emptied test database."""
    # setup_function
    if "TEST_DATABASE_HOST" not in os.environ:
        pytest.skip("no MongoDB; set TEST_DATABASE_{HOST,PORT} to run")
    mongo_host = os.environ["TEST_DATABASE_HOST"]
    mongo_port = int(os.environ.get("TEST_DATABASE_PORT", 27017))
    mongo_uri = f"mongodb://{mongo_host}:{mongo_port}/{TEST_DATABASE_NAME}"

    # dump any existing collections to refresh the database
    client: MongoClient[Any] = MongoClient(mongo_uri, connect=True, serverSelectionTimeoutMS=100)
    db = client[TEST_DATABASE_NAME]
    try:
        db.command("profile", 0)
        for collection in db.list_collection_names():
            db.drop_collection(collection)
    except ServerSelectionTimeoutError:
        raise Exception("Unable to connect to MongoDB; do you have a MongoDB at TEST_DATABASE_{HOST,PORT}?")
    client.close()

    qatch_mongo = Mongo(mongo_uri, serverSelectionTimeoutMS=1000)

    # provide the client as the fixture
    yield qatch_mongo

    # -------------------------------------------------------------------------
    # NOTE: *Your Unit Test Function Runs Here*
    # -------------------------------------------------------------------------

    # teardown_function
    await qatch_mongo.set_profiling_level(0)
    qatch_mongo.close()
