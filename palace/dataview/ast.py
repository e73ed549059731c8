"""Query AST. WhereClause is a closed union of three immutable node types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


class QueryType(str, Enum):
    TABLE = "TABLE"
    LIST = "LIST"
    TASK = "TASK"


class ComparisonOperator(str, Enum):
    EQ = "="
    NE = "!="
    GT = ">"
    LT = "<"
    GE = ">="
    LE = "<="


class LogicalOperator(str, Enum):
    AND = "AND"
    OR = "OR"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


Value = Union[str, int, float, bool]


@dataclass(frozen=True)
class Comparison:
    field: str
    operator: ComparisonOperator
    value: Value


@dataclass(frozen=True)
class Contains:
    field: str
    value: str


@dataclass(frozen=True)
class Logical:
    operator: LogicalOperator
    left: WhereClause
    right: WhereClause


WhereClause = Union[Comparison, Contains, Logical]


@dataclass(frozen=True)
class SortClause:
    field: str
    order: SortOrder = SortOrder.ASC


@dataclass(frozen=True)
class ParsedQuery:
    query_type: QueryType
    fields: tuple[str, ...] = field(default_factory=tuple)  # TABLE only; empty means defaults
    from_path: str | None = None
    where: WhereClause | None = None
    sort: SortClause | None = None
    limit: int | None = None
