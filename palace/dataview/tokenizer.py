"""Tokenizer for the Dataview query language subset."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from palace.dataview.errors import DQLParseError


class TokenType(str, Enum):
    KEYWORD = "KEYWORD"  # TABLE, LIST, TASK, FROM, WHERE, SORT, LIMIT, AND, OR, ASC, DESC, CONTAINS
    IDENTIFIER = "IDENTIFIER"  # field names, dotted paths allowed
    STRING = "STRING"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"
    OPERATOR = "OPERATOR"
    LPAREN = "LPAREN"
    RPAREN = "RPAREN"
    COMMA = "COMMA"
    EOF = "EOF"


@dataclass(frozen=True)
class Token:
    type: TokenType
    value: str
    position: int


KEYWORDS = frozenset(
    {"TABLE", "LIST", "TASK", "FROM", "WHERE", "SORT", "LIMIT", "AND", "OR", "ASC", "DESC", "CONTAINS"}
)

# Two-character operators must be tried before their one-character prefixes
_OPERATORS = ("!=", ">=", "<=", "=", ">", "<")
_PUNCTUATION = {"(": TokenType.LPAREN, ")": TokenType.RPAREN, ",": TokenType.COMMA}


def _isIdentStart(ch: str) -> bool:
    return ch == "_" or ("a" <= ch <= "z") or ("A" <= ch <= "Z")


def _isIdentPart(ch: str) -> bool:
    return _isIdentStart(ch) or _isDigit(ch) or ch == "."


def _isDigit(ch: str) -> bool:
    return "0" <= ch <= "9"


def tokenize(query: str) -> list[Token]:
    """Split a query into tokens. The last token is always EOF at len(query)."""
    tokens: list[Token] = []
    pos = 0
    n = len(query)

    while pos < n:
        ch = query[pos]
        if ch.isspace():
            pos += 1
            continue

        op = next((o for o in _OPERATORS if query.startswith(o, pos)), None)
        if op is not None:
            tokens.append(Token(TokenType.OPERATOR, op, pos))
            pos += len(op)
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, pos))
            pos += 1
            continue

        if ch == '"':
            start = pos
            pos += 1
            chars: list[str] = []
            while pos < n and query[pos] != '"':
                if query[pos] == "\\" and pos + 1 < n:
                    pos += 1
                chars.append(query[pos])
                pos += 1
            if pos >= n:
                raise DQLParseError("Unterminated string", start, query)
            pos += 1
            tokens.append(Token(TokenType.STRING, "".join(chars), start))
            continue

        if _isDigit(ch) or (ch == "." and pos + 1 < n and _isDigit(query[pos + 1])):
            start = pos
            seen_dot = False
            while pos < n and (_isDigit(query[pos]) or (query[pos] == "." and not seen_dot)):
                seen_dot = seen_dot or query[pos] == "."
                pos += 1
            tokens.append(Token(TokenType.NUMBER, query[start:pos], start))
            continue

        if _isIdentStart(ch):
            start = pos
            while pos < n and _isIdentPart(query[pos]):
                pos += 1
            word = query[start:pos]
            upper = word.upper()
            if upper in ("TRUE", "FALSE"):
                tokens.append(Token(TokenType.BOOLEAN, word.lower(), start))
            elif upper in KEYWORDS:
                tokens.append(Token(TokenType.KEYWORD, upper, start))
            else:
                tokens.append(Token(TokenType.IDENTIFIER, word, start))
            continue

        raise DQLParseError(f"Unexpected character: {ch}", pos, query)

    tokens.append(Token(TokenType.EOF, "", n))
    return tokens
