"""
Document identity and the term sources consumed by the index and weighting builders.
"""
import os
from collections import Counter
from typing import Iterable, List, NamedTuple, Tuple


class Document(NamedTuple):
    """A document known to the index: a sequential integer id and its name."""

    id: int
    name: str


class TermSource:
    """
    Terms of one document as supplied by an external tokenizer.

    Args:
        name: Document name (e.g. "10.txt")
        terms: Normalized terms in document order; duplicates are meaningful for TF
    """

    def __init__(self, name: str, terms: Iterable[str]):
        self.name = name
        self.terms: List[str] = [t.strip().lower() for t in terms if t and t.strip()]

    def term_set(self) -> set:
        return set(self.terms)

    def term_counts(self) -> Counter:
        return Counter(self.terms)

    def __len__(self):
        return len(self.terms)

    def __repr__(self):
        return f"TermSource({self.name!r}, {len(self.terms)} terms)"


def document_sort_key(name: str) -> Tuple[str, str]:
    """Case-insensitive ordering used to assign document ids, exact name breaks ties."""
    return name.lower(), name


def document_name_from_file(file_name: str, suffix: str) -> str:
    """
    Recover a document name from a per-document artifact file name.
    "4_tokens.txt" with suffix "_tokens" gives "4.txt".
    """
    base = os.path.splitext(os.path.basename(file_name))[0]
    if base.lower().endswith(suffix.lower()):
        base = base[:-len(suffix)]
    return base + ".txt"


def artifact_file_name(document_name: str, suffix: str) -> str:
    """Inverse of document_name_from_file: "4.txt" with suffix "_terms" gives "4_terms.txt"."""
    base = os.path.splitext(os.path.basename(document_name))[0]
    return f"{base}{suffix}.txt"


def as_term_sources(documents) -> List[TermSource]:
    """
    Normalize the accepted corpus shapes into TermSource objects.

    Accepts TermSource objects, (name, terms) pairs or a {name: terms} mapping.
    """
    if isinstance(documents, dict):
        documents = documents.items()

    sources = []
    for item in documents:
        if isinstance(item, TermSource):
            sources.append(item)
        else:
            name, terms = item
            sources.append(TermSource(name, terms))
    return sources
