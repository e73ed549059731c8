"""Recursive-descent parser for the Dataview query language subset.

Grammar, lowest precedence first inside WHERE:

    query   := (TABLE [fields] | LIST | TASK) clause*
    clause  := FROM (string | ident) | WHERE or | SORT ident [ASC|DESC] | LIMIT number
    or      := and (OR and)*
    and     := primary (AND primary)*
    primary := "(" or ")" | CONTAINS "(" ident "," value ")" | ident op value
    value   := string | number | boolean | ident

Every production takes the index of its first token and returns the node
together with the index of the first token it did not consume.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from palace.dataview.ast import (
    Comparison,
    ComparisonOperator,
    Contains,
    Logical,
    LogicalOperator,
    ParsedQuery,
    QueryType,
    SortClause,
    SortOrder,
    Value,
    WhereClause,
)
from palace.dataview.errors import DQLParseError
from palace.dataview.tokenizer import Token, TokenType, tokenize

logger = logging.getLogger("palace")

CLAUSE_KEYWORDS = ("FROM", "WHERE", "SORT", "LIMIT")
_CLAUSE_FIELDS = {"FROM": "from_path", "WHERE": "where", "SORT": "sort", "LIMIT": "limit"}
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1


@dataclass(frozen=True)
class _Tokens:
    items: list[Token]
    query: str

    def at(self, pos: int) -> Token:
        if pos < len(self.items):
            return self.items[pos]
        return Token(TokenType.EOF, "", len(self.query))

    def isAt(self, pos: int, type: TokenType, value: str | None = None) -> bool:
        token = self.at(pos)
        return token.type == type and (value is None or token.value == value)

    def expect(self, pos: int, type: TokenType, value: str | None = None) -> tuple[Token, int]:
        token = self.at(pos)
        if not self.isAt(pos, type, value):
            wanted = f'{type.value} "{value}"' if value else type.value
            raise self.error(f'Expected {wanted}, got {token.type.value} "{token.value}"', token)
        return token, pos + 1

    def error(self, message: str, token: Token) -> DQLParseError:
        return DQLParseError(message, token.position, self.query)


def parseDQL(query: str) -> ParsedQuery:
    """Parse a query string. Raises DQLParseError on malformed input."""
    text = query.strip()
    logger.debug("Parsing DQL query: %s", text)
    return parseTokens(tokenize(text), text)


def parseTokens(tokens: list[Token], query: str) -> ParsedQuery:
    ts = _Tokens(tokens, query)
    result, pos = _parseQueryType(ts, 0)
    seen: set[str] = set()

    while not ts.isAt(pos, TokenType.EOF):
        token = ts.at(pos)
        if token.type != TokenType.KEYWORD or token.value not in CLAUSE_KEYWORDS:
            raise ts.error(f"Unexpected token: {token.value}", token)
        if token.value in seen:
            raise ts.error(f"Duplicate {token.value} clause", token)
        seen.add(token.value)

        pos += 1
        if token.value == "FROM":
            value, pos = _parseFrom(ts, pos)
        elif token.value == "WHERE":
            value, pos = _parseOr(ts, pos)
        elif token.value == "SORT":
            value, pos = _parseSort(ts, pos)
        else:
            value, pos = _parseLimit(ts, pos)
        result = replace(result, **{_CLAUSE_FIELDS[token.value]: value})

    return result


def _parseQueryType(ts: _Tokens, pos: int) -> tuple[ParsedQuery, int]:
    token, pos = ts.expect(pos, TokenType.KEYWORD)
    if token.value == "TABLE":
        fields, pos = _parseFieldList(ts, pos)
        return ParsedQuery(QueryType.TABLE, fields=fields), pos
    if token.value == "LIST":
        return ParsedQuery(QueryType.LIST), pos
    if token.value == "TASK":
        return ParsedQuery(QueryType.TASK), pos
    raise ts.error(f"Expected TABLE, LIST, or TASK, got {token.value}", token)


def _parseFieldList(ts: _Tokens, pos: int) -> tuple[tuple[str, ...], int]:
    token = ts.at(pos)
    if token.type == TokenType.EOF or (
        token.type == TokenType.KEYWORD and token.value in CLAUSE_KEYWORDS
    ):
        return (), pos

    first, pos = ts.expect(pos, TokenType.IDENTIFIER)
    fields = [first.value]
    while ts.isAt(pos, TokenType.COMMA):
        field, pos = ts.expect(pos + 1, TokenType.IDENTIFIER)
        fields.append(field.value)
    return tuple(fields), pos


def _parseFrom(ts: _Tokens, pos: int) -> tuple[str, int]:
    token = ts.at(pos)
    if token.type in (TokenType.STRING, TokenType.IDENTIFIER):
        return token.value, pos + 1
    raise ts.error(f"Expected path after FROM, got {token.type.value}", token)


def _parseOr(ts: _Tokens, pos: int) -> tuple[WhereClause, int]:
    left, pos = _parseAnd(ts, pos)
    while ts.isAt(pos, TokenType.KEYWORD, "OR"):
        right, pos = _parseAnd(ts, pos + 1)
        left = Logical(LogicalOperator.OR, left, right)
    return left, pos


def _parseAnd(ts: _Tokens, pos: int) -> tuple[WhereClause, int]:
    left, pos = _parsePrimary(ts, pos)
    while ts.isAt(pos, TokenType.KEYWORD, "AND"):
        right, pos = _parsePrimary(ts, pos + 1)
        left = Logical(LogicalOperator.AND, left, right)
    return left, pos


def _parsePrimary(ts: _Tokens, pos: int) -> tuple[WhereClause, int]:
    if ts.isAt(pos, TokenType.LPAREN):
        expr, pos = _parseOr(ts, pos + 1)
        _, pos = ts.expect(pos, TokenType.RPAREN)
        return expr, pos

    if ts.isAt(pos, TokenType.KEYWORD, "CONTAINS"):
        _, pos = ts.expect(pos + 1, TokenType.LPAREN)
        field, pos = ts.expect(pos, TokenType.IDENTIFIER)
        _, pos = ts.expect(pos, TokenType.COMMA)
        value, pos = _parseValue(ts, pos)
        _, pos = ts.expect(pos, TokenType.RPAREN)
        return Contains(field.value, _valueText(value)), pos

    field, pos = ts.expect(pos, TokenType.IDENTIFIER)
    op, pos = ts.expect(pos, TokenType.OPERATOR)
    value, pos = _parseValue(ts, pos)
    return Comparison(field.value, ComparisonOperator(op.value), value), pos


def _parseValue(ts: _Tokens, pos: int) -> tuple[Value, int]:
    token = ts.at(pos)
    if token.type == TokenType.STRING:
        return token.value, pos + 1
    if token.type == TokenType.NUMBER:
        return _number(ts, token), pos + 1
    if token.type == TokenType.BOOLEAN:
        return token.value == "true", pos + 1
    if token.type == TokenType.IDENTIFIER:
        # Bare identifiers are string literals: `type = research`
        return token.value, pos + 1
    raise ts.error(f"Expected value, got {token.type.value}", token)


def _parseSort(ts: _Tokens, pos: int) -> tuple[SortClause, int]:
    field, pos = ts.expect(pos, TokenType.IDENTIFIER)
    for order in SortOrder:
        if ts.isAt(pos, TokenType.KEYWORD, order.value):
            return SortClause(field.value, order), pos + 1
    return SortClause(field.value), pos


def _parseLimit(ts: _Tokens, pos: int) -> tuple[int, int]:
    token, pos = ts.expect(pos, TokenType.NUMBER)
    if "." in token.value:
        raise ts.error(f"Expected integer after LIMIT, got {token.value}", token)
    return _number(ts, token), pos


def _number(ts: _Tokens, token: Token) -> int | float:
    if "." in token.value:
        return float(token.value)
    value = int(token.value)
    # SQLite binds integers as signed 64-bit
    if not SQLITE_INT_MIN <= value <= SQLITE_INT_MAX:
        raise ts.error("Integer out of range", token)
    return value


def _valueText(value: Value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
