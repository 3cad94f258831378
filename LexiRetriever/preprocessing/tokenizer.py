import re
from abc import ABC, abstractmethod
from enum import Enum


class TokenType(Enum):
    WORD = "word"
    NUMBER = "number"
    PUNCT = "punct"


class Token:
    def __init__(self, token_type: TokenType, processed_form: str, position: int, length: int):
        self.token_type = token_type
        self.processed_form = processed_form
        self.position = position
        self.length = length

    def __repr__(self):
        return f"Token({self.token_type.name}, {self.processed_form!r}, {self.position})"


class Tokenizer(ABC):
    @abstractmethod
    def tokenize(self, document: str) -> list[Token]:
        raise NotImplementedError()


class RegexMatchTokenizer(Tokenizer):
    """
    Splits text into alphabetic words, digit runs and single punctuation marks.
    Whitespace is dropped. Only WORD tokens end up as index terms.
    """

    token_spec = [
        ("WORD", r"[A-Za-z]+"),
        ("NUMBER", r"\d+"),
        ("PUNCT", r"[^\sA-Za-z\d]"),
    ]

    def __init__(self):
        self.pattern = re.compile("|".join(f"(?P<{name}>{regex})" for name, regex in self.token_spec))

    def tokenize(self, document: str) -> list[Token]:
        tokens = []
        for mo in self.pattern.finditer(document):
            tokens.append(Token(TokenType[mo.lastgroup], mo.group(), mo.start(), len(mo.group())))
        return tokens
