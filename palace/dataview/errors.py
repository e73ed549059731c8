"""Query language errors: lexical/syntactic (positioned) and semantic."""

from __future__ import annotations


class DQLError(ValueError):
    """Base class for every error raised while parsing or translating a query."""


class DQLParseError(DQLError):
    """Malformed query text. Carries the offending offset and the query."""

    def __init__(self, message: str, position: int, query: str):
        self.reason = message
        self.position = position
        self.query = query
        snippet = query[max(0, position - 10) : position + 20]
        super().__init__(f'{message} at position {position}: "{snippet}"')


class DQLSemanticError(DQLError):
    """Well-formed query that cannot be translated (e.g. ordering on tags)."""


class UnknownFieldError(DQLSemanticError):
    def __init__(self, field: str, supported: tuple[str, ...]):
        self.field = field
        self.supported = supported
        super().__init__(f"Unknown field: {field}. Supported fields: {', '.join(supported)}")
