"""Turn on profiling, and report on the slow queries it caught."""

import logging
import re
from typing import Any, Callable, Dict, List, NamedTuple

from . import report as report_builder
from .commands import REPORTED_OPS, ProfiledOperation, operation_from_profile
from .mongo import ALL, OFF, PROFILE_COLLECTION, DataStore

logger = logging.getLogger(__name__)

# plans that already go through an index
INDEXED_PLANS = ["IDHACK", "IXSCAN"]


class InvalidInvocationError(Exception):
    """Raised when neither `begin` nor `report` was requested."""


class Options(NamedTuple):
    """What to do, and where."""

    begin: bool
    report: bool
    clean: bool
    mongo_uri: str


def slow_query_filter() -> Dict[str, Any]:
    """Get the `system.profile` query for un-indexed reads & writes.

    A plan summary names the index after the stage, e.g. "IXSCAN { a: 1 }",
    so plans are matched by prefix. Entries without a `planSummary` still
    match.
    """
    return {
        "op": {"$in": list(REPORTED_OPS)},
        "ns": {"$nin": [re.compile(re.escape(PROFILE_COLLECTION))]},
        "planSummary": {"$nin": [re.compile(rf"^(EXPRESS_)?{plan}\b") for plan in INDEXED_PLANS]},
    }


async def reset_and_drop(store: DataStore) -> None:
    """Turn profiling off, then drop the profiling log if there is one."""
    await store.set_profiling_level(OFF)

    if not await store.collection_exists(PROFILE_COLLECTION):
        logger.debug(f"no {PROFILE_COLLECTION} collection to drop")
        return

    await store.drop_collection(PROFILE_COLLECTION)


async def setup_profiling(store: DataStore, clean: bool) -> None:
    """Profile all operations, optionally clearing the profiling log first."""
    if clean:
        await reset_and_drop(store)
    await store.set_profiling_level(ALL)
    logger.info("MongoDB profiling enabled")


async def get_slow_queries(store: DataStore) -> List[ProfiledOperation]:
    """Get the profiled operations that didn't use an index."""
    docs = await store.query_profiling_log(slow_query_filter())
    return [operation_from_profile(doc) for doc in docs]


async def report_profiling(
    store: DataStore,
    clean: bool,
    write: Callable[[str], Any] = print,
) -> bool:
    """Report the slow queries, optionally clearing the profiling log after.

    Return True if any slow queries were found.
    """
    operations = await get_slow_queries(store)
    found = report_builder.report(operations, write)

    if clean:
        await reset_and_drop(store)

    return found


async def handle_options(
    options: Options,
    store_factory: Callable[[str], DataStore],
    write: Callable[[str], Any] = print,
) -> bool:
    """Run the action requested in `options`.

    `store_factory` is given `options.mongo_uri`, and is only called once
    the options are known to be valid.

    Return True if the run should be treated as a failure (slow queries).
    """
    if not options.begin and not options.report:
        raise InvalidInvocationError("must provide either --begin or --report")

    store = store_factory(options.mongo_uri)
    try:
        if options.begin:
            await setup_profiling(store, options.clean)
            return False
        else:
            return await report_profiling(store, options.clean, write)
    finally:
        store.close()
