"""Dataview query language: tokenizer, parser, executor, formatter."""

from palace.dataview.errors import DQLError, DQLParseError, DQLSemanticError, UnknownFieldError
from palace.dataview.executor import SUPPORTED_FIELDS, executeParsed, executeQuery
from palace.dataview.formatter import OutputFormat, formatResult
from palace.dataview.parser import parseDQL
from palace.dataview.tokenizer import tokenize

__all__ = [
    "DQLError",
    "DQLParseError",
    "DQLSemanticError",
    "OutputFormat",
    "SUPPORTED_FIELDS",
    "UnknownFieldError",
    "executeParsed",
    "executeQuery",
    "formatResult",
    "parseDQL",
    "tokenize",
]
