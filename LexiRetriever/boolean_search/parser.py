import re
from typing import List, Optional, Tuple

from ..errors import ParseError

KEYWORDS = ("AND", "OR", "NOT")

TOKEN_SPEC = [
    ('LPAREN', r'\('),
    ('RPAREN', r'\)'),
    ('AND', r'\bAND\b'),
    ('OR', r'\bOR\b'),
    ('NOT', r'\bNOT\b'),
    ('TERM', r'[a-z]+'),
]
TOKEN_REGEX = re.compile('|'.join(f'(?P<{name}>{pattern})' for name, pattern in TOKEN_SPEC), re.IGNORECASE)


def tokenize_query(text: str) -> List[Tuple[str, str]]:
    """
    Split a boolean query into (kind, value) tokens.

    Keywords are matched case-insensitively and normalized to upper case,
    terms are alphabetic runs normalized to lower case. Anything else
    (whitespace, digits, punctuation) separates tokens and is dropped.
    """
    tokens = []
    for mo in TOKEN_REGEX.finditer(text or ""):
        kind = mo.lastgroup
        value = mo.group()
        if kind in KEYWORDS:
            value = value.upper()
        elif kind == 'TERM':
            value = value.lower()
        tokens.append((kind, value))
    return tokens


# AST Node definitions
class Node:
    def __eq__(self, other):
        # Compared with an explicit stack: long AND/OR chains are as deep as they are wide
        pending = [(self, other)]
        while pending:
            a, b = pending.pop()
            if type(a) is not type(b):
                return False
            if isinstance(a, BinaryNode):
                pending.append((a.right, b.right))
                pending.append((a.left, b.left))
            elif isinstance(a, NotNode):
                pending.append((a.child, b.child))
            elif a.__dict__ != b.__dict__:
                return False
        return True

    def __hash__(self):
        return hash(repr(self))


class TermNode(Node):
    def __init__(self, value):
        self.value = value.lower()

    def __repr__(self):
        return f"Term({self.value})"


class NotNode(Node):
    def __init__(self, child):
        self.child = child

    def __repr__(self):
        return f"Not({self.child})"


class BinaryNode(Node):
    label = "Binary"

    def __init__(self, left, right):
        self.left = left
        self.right = right

    def __repr__(self):
        return f"{self.label}({', '.join(repr(operand) for operand in chain_operands(self))})"


class AndNode(BinaryNode):
    label = "And"


class OrNode(BinaryNode):
    label = "Or"


def chain_operands(node) -> List[Node]:
    """
    Operands of a run of same-kind binary nodes, left to right.

    "a OR b OR c" parses to Or(Or(a, b), c); this returns [a, b, c] without
    recursing along the chain. A node that is not binary is its own operand.
    """
    kind = type(node)
    if not isinstance(node, BinaryNode):
        return [node]

    operands = []
    pending = [node]
    while pending:
        current = pending.pop()
        if type(current) is kind:
            pending.append(current.right)
            pending.append(current.left)
        else:
            operands.append(current)
    return operands


def fold_chain(node_type, operands: List[Node]) -> Node:
    """Inverse of chain_operands: rebuild a left-leaning chain of node_type."""
    node = operands[0]
    for operand in operands[1:]:
        node = node_type(node, operand)
    return node


class BooleanParser:
    """
    Syntax analyzer for boolean queries with the following grammar:
    expr: term (OR term)*
    term: factor (AND factor)*
    factor: NOT base | base
    base: LPAREN expr RPAREN | TERM

    NOT binds tightest, then AND, then OR. A single NOT applies to one base,
    so double negation has to be written as NOT (NOT x).
    """
    def __init__(self, text: str = "", tokens: Optional[List[Tuple[str, str]]] = None):
        self.tokens = tokens if tokens is not None else tokenize_query(text)
        self.pos = 0

    def current_token(self):
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return (None, None)

    def consume(self):
        token = self.current_token()
        self.pos += 1
        return token

    def parse(self) -> Optional[Node]:
        """
        Parse the whole token stream.

        Returns:
            Root node of the query AST, or None for an empty query

        Raises:
            ParseError: the token stream is not a valid query
        """
        if not self.tokens:
            return None

        result = self.parse_expr()
        kind, value = self.current_token()
        if kind is not None:
            raise ParseError(ParseError.UNEXPECTED_TOKEN, self.pos, value)
        return result

    def parse_expr(self):
        node = self.parse_term()
        while self.current_token()[0] == 'OR':
            self.consume()
            right = self.parse_term()
            node = OrNode(node, right)
        return node

    def parse_term(self):
        node = self.parse_factor()
        while self.current_token()[0] == 'AND':
            self.consume()
            right = self.parse_factor()
            node = AndNode(node, right)
        return node

    def parse_factor(self):
        if self.current_token()[0] == 'NOT':
            self.consume()
            return NotNode(self.parse_base())
        return self.parse_base()

    def parse_base(self):
        kind, value = self.current_token()

        if kind is None:
            raise ParseError(ParseError.UNEXPECTED_END, self.pos)

        if kind == 'LPAREN':
            self.consume()
            node = self.parse_expr()
            kind, value = self.current_token()
            if kind != 'RPAREN':
                raise ParseError(ParseError.MISSING_RPAREN, self.pos, value)
            self.consume()
            return node

        if kind == 'TERM':
            self.consume()
            return TermNode(value)

        raise ParseError(ParseError.UNEXPECTED_OPERATOR, self.pos, value)


def parse_query(text: str) -> Optional[Node]:
    return BooleanParser(text).parse()
