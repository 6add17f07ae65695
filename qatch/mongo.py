# mongo.py
"""MongoDB profiling interface."""

import logging
from typing import Any, Dict, List, Optional, Protocol, cast

from motor.motor_tornado import MotorClient  # type: ignore[import]
from wipac_telemetry import tracing_tools as wtt

from .commands import ProfileDoc
from .config import redact_uri

logger = logging.getLogger(__name__)


PROFILE_COLLECTION = "system.profile"
DEFAULT_DATABASE = "test"

# profiling levels, see: https://www.mongodb.com/docs/manual/reference/command/profile/
OFF = 0
ALL = 2


class DataStore(Protocol):
    """What the profiling controller needs from a database."""

    async def set_profiling_level(self, level: int) -> None:
        ...

    async def query_profiling_log(self, query: Dict[str, Any]) -> List[ProfileDoc]:
        ...

    async def collection_exists(self, name: str) -> bool:
        ...

    async def drop_collection(self, name: str) -> None:
        ...

    def close(self) -> None:
        ...


class Mongo:
    """A motor-based client for one database's profiler."""

    def __init__(
        self,
        uri: str,
        authSource: Optional[str] = None,
        serverSelectionTimeoutMS: Optional[int] = None,
    ) -> None:
        """Connect to the database named in `uri` ("test" if none)."""
        kwargs: Dict[str, Any] = {}
        if authSource:
            kwargs["authSource"] = authSource
        if serverSelectionTimeoutMS is not None:
            kwargs["serverSelectionTimeoutMS"] = serverSelectionTimeoutMS

        logger.info(f"MongoClient args: uri={redact_uri(uri)}, {kwargs}")
        self.close_me = MotorClient(uri, **kwargs)
        self.client = self.close_me.get_default_database(DEFAULT_DATABASE)
        logger.info(f"done setting up Mongo (database: {self.client.name})")

    @wtt.spanned(all_args=True)
    async def set_profiling_level(self, level: int) -> None:
        """Set the database profiling level (OFF or ALL)."""
        # pymongo 4 removed Database.set_profiling_level(), so use the command
        ret = await self.client.command("profile", level)
        logger.debug(f"profiling level: {ret.get('was')} -> {level}")

    @wtt.spanned(all_args=True)
    async def query_profiling_log(self, query: Dict[str, Any]) -> List[ProfileDoc]:
        """Find the profiler entries matching `query`, in natural order."""
        cursor = self.client[PROFILE_COLLECTION].find(query)
        results = await cursor.to_list(None)
        logger.debug(f"{len(results)} profiler entries matched {query}")
        return cast(List[ProfileDoc], results)

    @wtt.spanned(all_args=True)
    async def collection_exists(self, name: str) -> bool:
        """Check if the collection `name` exists."""
        names = await self.client.list_collection_names(filter={"name": name})
        return name in names

    @wtt.spanned(all_args=True)
    async def drop_collection(self, name: str) -> None:
        """Drop the collection `name`, and all its documents."""
        await self.client.drop_collection(name)
        logger.info(f"dropped {self.client.name}.{name}")

    def close(self) -> None:
        """Close the underlying client."""
        self.close_me.close()
