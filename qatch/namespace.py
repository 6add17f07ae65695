"""Utilities for MongoDB namespaces ("<db>.<collection>")."""

from typing import NamedTuple

SEPARATOR = "."


class NamespaceError(ValueError):
    """Raised when a namespace has no database prefix."""


class ParsedNamespace(NamedTuple):
    """A namespace split into its database and collection names."""

    db: str
    collection: str


def parse_namespace(ns: str) -> ParsedNamespace:
    """Split `ns` on the first separator only.

    The collection name keeps any remaining separators, so
    "test.system.profile" gives db="test", collection="system.profile".

    Raises:
        NamespaceError - if `ns` has no separator
    """
    db, sep, collection = ns.partition(SEPARATOR)
    if not sep:
        raise NamespaceError(f"namespace has no database prefix: '{ns}'")
    return ParsedNamespace(db, collection)
