"""
Exception hierarchy shared by the index, boolean and vector search engines.
"""
from typing import Optional


class RetrievalError(Exception):
    """Base class for every error raised by LexiRetriever."""


class EmptyCorpus(RetrievalError):
    """Raised when no document yields a single term to index."""

    def __init__(self, message: str = "No document contains any indexable term"):
        super().__init__(message)


class MissingCorpus(RetrievalError):
    """Raised when there are no documents (or no usable vectors) to weight or rank."""

    def __init__(self, message: str = "No documents available"):
        super().__init__(message)


class SourceNotFound(RetrievalError, FileNotFoundError):
    """Raised when a directory or file supplied by a term source does not exist."""

    def __init__(self, path):
        self.path = str(path)
        super().__init__(f"Source not found: '{self.path}'")


class ParseError(RetrievalError, ValueError):
    """
    Malformed boolean query.

    Attributes:
        kind: One of UNEXPECTED_TOKEN, UNEXPECTED_OPERATOR, MISSING_RPAREN, UNEXPECTED_END
        token: Offending token text, None when input ended early
        position: Index of the offending token in the query token stream
    """

    UNEXPECTED_TOKEN = "unexpected_token"
    UNEXPECTED_OPERATOR = "unexpected_operator"
    MISSING_RPAREN = "missing_rparen"
    UNEXPECTED_END = "unexpected_end"

    _MESSAGES = {
        UNEXPECTED_TOKEN: "Unexpected token {token!r} at position {position}",
        UNEXPECTED_OPERATOR: "Unexpected operator {token!r} at position {position}",
        MISSING_RPAREN: "Expected closing parenthesis at position {position}",
        UNEXPECTED_END: "Unexpected end of query at position {position}, expected a term",
    }

    def __init__(self, kind: str, position: int, token: Optional[str] = None):
        self.kind = kind
        self.position = position
        self.token = token
        template = self._MESSAGES.get(kind, "{kind} at position {position}")
        super().__init__(template.format(kind=kind, token=token, position=position))
