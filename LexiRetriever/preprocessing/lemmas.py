"""
Term -> lemma mappings.

The stemmer itself is an external collaborator: anything callable as
``stem(token) -> str`` can be passed to group_tokens_by_stem.
"""
import logging
import os
from typing import Callable, Dict, Iterable, List, Optional

from ..errors import SourceNotFound

logger = logging.getLogger(__name__)


def group_tokens_by_stem(tokens: Iterable[str], stem: Callable[[str], str],
                         stop_words: Optional[set] = None) -> Dict[str, List[str]]:
    """
    Group tokens by their stem.

    Args:
        tokens: Unique tokens to group
        stem: Stemmer callable
        stop_words: Stems in this set are dropped

    Returns:
        Dictionary lemma -> sorted list of tokens mapping to it
    """
    stop_words = stop_words or set()
    groups: Dict[str, set] = {}

    for token in tokens:
        lemma = (stem(token) or "").strip().lower()
        if not lemma or lemma in stop_words:
            continue
        groups.setdefault(lemma, set()).add(token.lower())

    return {lemma: sorted(members) for lemma, members in groups.items()}


def invert_groups(groups: Dict[str, Iterable[str]]) -> Dict[str, str]:
    """Turn lemma -> tokens groups into a term -> lemma map. The first lemma seen for a term wins."""
    term_to_lemma = {}
    for lemma, terms in groups.items():
        for term in terms:
            term_to_lemma.setdefault(term.lower(), lemma.lower())
    return term_to_lemma


def load_lemma_map(path: str) -> Dict[str, str]:
    """
    Load a term -> lemma map from a lemmas file.
    Format: one line per lemma, ``<lemma> <token1> <token2> ... <tokenN>``.
    Lines with fewer than two fields are skipped.
    """
    if not os.path.exists(path):
        raise SourceNotFound(path)

    groups = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            parts = line.split()
            if len(parts) < 2:
                continue
            groups.setdefault(parts[0].lower(), []).extend(parts[1:])

    term_to_lemma = invert_groups(groups)
    logger.info("Loaded %d term -> lemma mappings from %s", len(term_to_lemma), path)
    return term_to_lemma


def save_lemma_map(path: str, groups: Dict[str, Iterable[str]]) -> None:
    """Write lemma groups as sorted ``<lemma> <token1> ...`` lines."""
    lines = sorted(f"{lemma} {' '.join(sorted(tokens))}" for lemma, tokens in groups.items() if tokens)
    with open(path, "w", encoding="utf-8") as f:
        for line in lines:
            f.write(line + "\n")
    logger.info("Lemma groups saved to %s (%d lemmas)", path, len(lines))
