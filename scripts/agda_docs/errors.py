#!/usr/bin/env python3
"""
Error taxonomy for the indexing and link resolution engine.
Errors raised inside worker processes must survive pickling.

Unresolved links are not errors: they are collected as diagnostics
(see ``links.UnresolvedLink``) and never raised.
"""


class AgdaDocsError(RuntimeError):
    """Base class for all engine failures."""


class ParseFailure(AgdaDocsError):
    """A document could not be read or parsed."""

    def __init__(self, document: str, reason: str):
        super().__init__(f"Could not parse {document}: {reason}")
        self.document = document
        self.reason = reason

    def __reduce__(self):
        return (self.__class__, (self.document, self.reason))


class SerializationOverflow(AgdaDocsError):
    """A search index payload is too large for one artifact."""

    def __init__(self, size: int, limit: int):
        super().__init__(f"Serialized index is {size} chars (limit {limit})")
        self.size = size
        self.limit = limit

    def __reduce__(self):
        return (self.__class__, (self.size, self.limit))


class UnitFailure(AgdaDocsError):
    """An execution unit raised or exited abnormally."""

    def __init__(self, unit: int, reason: str):
        super().__init__(f"Execution unit {unit} failed: {reason}")
        self.unit = unit
        self.reason = reason

    def __reduce__(self):
        return (self.__class__, (self.unit, self.reason))


class IOFailure(AgdaDocsError):
    """A filesystem read or write failed."""
