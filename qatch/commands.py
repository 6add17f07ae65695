"""Typed views of the documents MongoDB writes to `system.profile`."""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

ProfileDoc = Dict[str, Any]

OP_QUERY = "query"
OP_UPDATE = "update"
OP_REMOVE = "remove"
REPORTED_OPS = [OP_QUERY, OP_UPDATE, OP_REMOVE]


class UnrecognizedCommandError(ValueError):
    """Raised when a profiled operation doesn't have a known command shape."""


@dataclass(frozen=True)
class FindCommand:
    """A `find`, as recorded for `op: "query"`."""

    filter: Dict[str, Any]
    projection: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class UpdateCommand:
    """A single update statement, as recorded for `op: "update"`."""

    filter: Dict[str, Any]
    update: Any  # a modifier document, a replacement, or an aggregation pipeline
    multi: bool = False
    upsert: bool = False


@dataclass(frozen=True)
class RemoveCommand:
    """A single delete statement, as recorded for `op: "remove"`."""

    filter: Dict[str, Any]


Command = Union[FindCommand, UpdateCommand, RemoveCommand]


@dataclass(frozen=True)
class ProfiledOperation:
    """One slow-query candidate pulled from the profiling log."""

    op: str
    ns: str
    command: Command
    plan_summary: Optional[str] = None


def _get_document(doc: ProfileDoc, key: str, required: bool = True) -> Optional[Dict[str, Any]]:
    if key not in doc or doc[key] is None:
        if required:
            raise UnrecognizedCommandError(f"command is missing `{key}`: {doc}")
        return None
    if not isinstance(doc[key], dict):
        raise UnrecognizedCommandError(f"command field `{key}` is not a document: {doc}")
    return doc[key]


def _get_flag(doc: ProfileDoc, key: str) -> bool:
    # mongo leaves these out when the client didn't set them
    val = doc.get(key, False)
    if not isinstance(val, bool):
        raise UnrecognizedCommandError(f"command field `{key}` is not a boolean: {doc}")
    return val


def command_from_profile(op: str, command: ProfileDoc) -> Command:
    """Build the typed command for a profiled `op`.

    Raises:
        UnrecognizedCommandError - if `op` isn't reported, or `command`
                                   is missing the fields for its `op`
    """
    if not isinstance(command, dict):
        raise UnrecognizedCommandError(f"command is not a document: {command!r}")

    if op == OP_QUERY:
        # no filter at all is the plainest collection scan there is
        return FindCommand(
            filter=_get_document(command, "filter", required=False) or {},
            projection=_get_document(command, "projection", required=False),
        )
    if op == OP_UPDATE:
        if "u" not in command:
            raise UnrecognizedCommandError(f"command is missing `u`: {command}")
        return UpdateCommand(
            filter=_get_document(command, "q"),  # type: ignore[arg-type]
            update=command["u"],
            multi=_get_flag(command, "multi"),
            upsert=_get_flag(command, "upsert"),
        )
    if op == OP_REMOVE:
        return RemoveCommand(filter=_get_document(command, "q"))  # type: ignore[arg-type]

    raise UnrecognizedCommandError(f"unrecognized op: '{op}'")


def operation_from_profile(doc: ProfileDoc) -> ProfiledOperation:
    """Validate a raw `system.profile` document into a `ProfiledOperation`."""
    for key in ("op", "ns", "command"):
        if key not in doc:
            raise UnrecognizedCommandError(f"profile entry is missing `{key}`: {doc}")
    if not isinstance(doc["ns"], str):
        raise UnrecognizedCommandError(f"profile entry `ns` is not a string: {doc}")

    return ProfiledOperation(
        op=doc["op"],
        ns=doc["ns"],
        command=command_from_profile(doc["op"], doc["command"]),
        plan_summary=doc.get("planSummary"),
    )
