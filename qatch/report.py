"""Render profiled operations into the slow query report."""

import logging
from typing import Any, Callable, List, Mapping, Sequence

from bson import json_util

from .commands import Command, FindCommand, ProfiledOperation, RemoveCommand, UpdateCommand
from .namespace import parse_namespace

logger = logging.getLogger(__name__)

NO_SLOW_QUERIES = "No slow queries identified"
SEPARATOR_LINE = "=" * 20


def _line(label: str, value: str) -> str:
    return f"{label + ':':<12}{value}"


def _integral_floats_as_ints(value: Any) -> Any:
    # JavaScript has one number type, so 1.0 prints as 1
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Mapping):
        return {k: _integral_floats_as_ints(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_integral_floats_as_ints(v) for v in value]
    return value


def to_json(value: Any) -> str:
    """Serialize compactly, like JavaScript's `JSON.stringify()`.

    BSON-specific values (ObjectId, datetime, regex, ...) come out as
    MongoDB Extended JSON.
    """
    return json_util.dumps(_integral_floats_as_ints(value), separators=(",", ":"), ensure_ascii=False)


def to_bool(value: bool) -> str:
    """Render a boolean the way JSON does."""
    return "true" if value else "false"


# --------------------------------------------------------------------------------------
# Operation Reporters
# --------------------------------------------------------------------------------------

def find_report(command: FindCommand) -> str:
    """Render the FILTER line, and the PROJECTION line if there is one."""
    lines = [_line("FILTER", to_json(command.filter))]
    if command.projection is not None:
        lines.append(_line("PROJECTION", to_json(command.projection)))
    return "\n".join(lines)


def update_report(command: UpdateCommand) -> str:
    """Render the FILTER, UPDATE, MULTI, and UPSERT lines."""
    return "\n".join([
        _line("FILTER", to_json(command.filter)),
        _line("UPDATE", to_json(command.update)),
        _line("MULTI", to_bool(command.multi)),
        _line("UPSERT", to_bool(command.upsert)),
    ])


def remove_report(command: RemoveCommand) -> str:
    """Render the FILTER line."""
    return _line("FILTER", to_json(command.filter))


def command_report(command: Command) -> str:
    """Dispatch `command` to the reporter for its kind."""
    if isinstance(command, FindCommand):
        return find_report(command)
    elif isinstance(command, UpdateCommand):
        return update_report(command)
    elif isinstance(command, RemoveCommand):
        return remove_report(command)
    else:
        raise TypeError(f"no reporter for command type {type(command).__name__}")


# --------------------------------------------------------------------------------------
# Report Builder
# --------------------------------------------------------------------------------------

def operation_report(operation: ProfiledOperation) -> str:
    """Render the block for a single profiled operation."""
    ns = parse_namespace(operation.ns)
    return "\n".join([
        SEPARATOR_LINE,
        _line("OP", operation.op),
        _line("DB", ns.db),
        _line("COLLECTION", ns.collection),
        command_report(operation.command),
    ])


def count_line(count: int) -> str:
    """Get the "Identified N slow quer{y,ies}" line."""
    return f"Identified {count} slow quer{'ies' if count > 1 else 'y'}"


def generate_report(operations: Sequence[ProfiledOperation]) -> List[str]:
    """Get the report, one output chunk per entry, without writing it."""
    if not operations:
        return [NO_SLOW_QUERIES]
    return [count_line(len(operations))] + [operation_report(op) for op in operations]


def report(
    operations: Sequence[ProfiledOperation],
    write: Callable[[str], Any] = print,
) -> bool:
    """Write the slow query report for `operations`.

    Return True if there was anything to report.
    """
    # render everything first, so a bad entry doesn't leave a partial report
    chunks = generate_report(operations)
    for chunk in chunks:
        write(chunk)

    logger.debug(f"reported {len(operations)} slow queries")
    return bool(operations)
