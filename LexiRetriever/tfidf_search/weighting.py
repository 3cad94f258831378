"""
TF-IDF weighting of documents.

Weights are computed in two passes: the document frequency of every term is
accumulated over the whole corpus first, and only then are per-document
TF-IDF values derived from it.
"""
import glob
import logging
import math
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional

from ..errors import MissingCorpus, SourceNotFound
from ..preprocessing.document import (
    TermSource, artifact_file_name, as_term_sources, document_name_from_file, document_sort_key
)

logger = logging.getLogger(__name__)

TERMS_KIND = "terms"
LEMMAS_KIND = "lemmas"


class TermWeight(NamedTuple):
    tf: float
    idf: float
    tfidf: float


class DocumentFrequencyTable:
    """Number of documents containing each term, plus the corpus size."""

    def __init__(self, counts: Mapping[str, int], total_documents: int):
        self.counts = dict(counts)
        self.total_documents = total_documents

    @classmethod
    def from_term_sets(cls, term_sets: List[Iterable[str]], workers: int = 1) -> "DocumentFrequencyTable":
        """
        Accumulate document frequencies from each document's terms.

        With workers > 1 the documents are split into partitions counted in
        parallel, and the partial counts are merged before the table is returned.
        """
        term_sets = [set(terms) for terms in term_sets]

        if workers <= 1 or len(term_sets) < 2:
            return cls(_count_partition(term_sets), len(term_sets))

        size = math.ceil(len(term_sets) / workers)
        partitions = [term_sets[i:i + size] for i in range(0, len(term_sets), size)]
        counts = Counter()
        with ThreadPoolExecutor(max_workers=workers) as executor:
            for partial in executor.map(_count_partition, partitions):
                counts.update(partial)
        return cls(counts, len(term_sets))

    def document_frequency(self, term: str) -> int:
        return self.counts.get(term, 0)

    def inverse_document_frequency(self, term: str) -> float:
        """
        IDF(t) = ln(N / (1 + DF(t)))

        0 for terms missing from the table. The value turns negative when a
        term occurs in (nearly) every document; it is not clipped.
        """
        if term not in self.counts:
            return 0.0
        return math.log(self.total_documents / (1.0 + self.counts[term]))

    def __len__(self):
        return len(self.counts)


def _count_partition(term_sets: List[set]) -> Counter:
    counts = Counter()
    for terms in term_sets:
        counts.update(terms)
    return counts


def compute_tf(word_freq: Mapping[str, int], total_terms: Optional[int] = None) -> Dict[str, float]:
    """
    Compute term frequency (TF) for each word.
    TF(t,d) = count(t,d) / total terms in d

    Args:
        word_freq: Dictionary mapping words to their counts
        total_terms: Denominator, defaults to the sum of the counts

    Returns:
        Dictionary mapping words to their TF scores
    """
    total = total_terms if total_terms is not None else sum(word_freq.values())
    if total <= 0:
        return {}
    return {word: count / total for word, count in word_freq.items() if count > 0}


def compute_lemma_counts(word_freq: Mapping[str, int], term_to_lemma: Mapping[str, str]) -> Counter:
    """Sum the counts of all terms mapping to the same lemma. Terms without a lemma are dropped."""
    lemma_freq = Counter()
    for term, count in word_freq.items():
        lemma = term_to_lemma.get(term)
        if lemma:
            lemma_freq[lemma] += count
    return lemma_freq


def compute_tf_idf_weights(word_freq: Mapping[str, int], df_table: DocumentFrequencyTable,
                           total_terms: Optional[int] = None) -> Dict[str, TermWeight]:
    """TF, IDF and TF-IDF of every term of one document."""
    weights = {}
    for word, tf in compute_tf(word_freq, total_terms).items():
        idf = df_table.inverse_document_frequency(word)
        weights[word] = TermWeight(tf, idf, tf * idf)
    return weights


class WeightedCorpus:
    """
    Result of the weighting pass.

    Attributes:
        term_weights: document name -> term -> TermWeight
        lemma_weights: document name -> lemma -> TermWeight (empty without a lemma map)
        total_documents: number of documents the IDF was computed over
    """

    def __init__(self, term_weights, lemma_weights, total_documents):
        self.term_weights: Dict[str, Dict[str, TermWeight]] = term_weights
        self.lemma_weights: Dict[str, Dict[str, TermWeight]] = lemma_weights
        self.total_documents = total_documents

    @staticmethod
    def _vectors(weights) -> Dict[str, Dict[str, float]]:
        return {name: {term: w.tfidf for term, w in terms.items()} for name, terms in weights.items()}

    def term_vectors(self) -> Dict[str, Dict[str, float]]:
        return self._vectors(self.term_weights)

    def lemma_vectors(self) -> Dict[str, Dict[str, float]]:
        return self._vectors(self.lemma_weights)


def compute_tf_idf_vectors(documents, term_to_lemma: Optional[Mapping[str, str]] = None,
                           workers: int = 1) -> WeightedCorpus:
    """
    Compute TF-IDF weights for every document (and every lemma when a map is given).

    Args:
        documents: TermSource objects, (name, terms) pairs or a {name: terms} mapping
        term_to_lemma: Optional term -> lemma map for lemma-level vectors
        workers: Threads used for the document frequency pass

    Returns:
        WeightedCorpus. Documents without terms count towards N but get no vector.

    Raises:
        MissingCorpus: there are no documents
    """
    sources: List[TermSource] = sorted(as_term_sources(documents), key=lambda s: document_sort_key(s.name))
    if not sources:
        raise MissingCorpus()

    if term_to_lemma:
        term_to_lemma = {term.lower(): lemma.lower() for term, lemma in term_to_lemma.items()}

    term_counts = [source.term_counts() for source in sources]
    lemma_counts = [compute_lemma_counts(counts, term_to_lemma) for counts in term_counts] if term_to_lemma else []

    # Pass 1: document frequencies over the whole corpus
    term_df = DocumentFrequencyTable.from_term_sets([counts.keys() for counts in term_counts], workers)
    lemma_df = None
    if term_to_lemma:
        lemma_df = DocumentFrequencyTable.from_term_sets([counts.keys() for counts in lemma_counts], workers)
    logger.info("Document frequencies collected: %d documents, %d terms, %d lemmas",
                len(sources), len(term_df), len(lemma_df) if lemma_df else 0)

    # Pass 2: per-document weights
    term_weights = {}
    lemma_weights = {}
    for i, source in enumerate(sources):
        total_terms = len(source)
        if total_terms == 0:
            continue
        term_weights[source.name] = compute_tf_idf_weights(term_counts[i], term_df, total_terms)
        if lemma_df is not None and lemma_counts[i]:
            lemma_weights[source.name] = compute_tf_idf_weights(lemma_counts[i], lemma_df, total_terms)

    return WeightedCorpus(term_weights, lemma_weights, len(sources))


def format_weight_line(term: str, weight: TermWeight) -> str:
    # f-string float formatting ignores the locale, so '.' is always the separator
    return f"{term} {weight.idf:.6f} {weight.tfidf:.6f}"


def parse_weight_line(line: str):
    """
    Parse ``<term> <idf> <tfidf>``.

    Returns:
        (term, TermWeight with tf=0) or None when the line is malformed or not finite
    """
    parts = line.split()
    if len(parts) < 3:
        return None
    try:
        idf = float(parts[1])
        tfidf = float(parts[2])
    except ValueError:
        return None
    if not (math.isfinite(idf) and math.isfinite(tfidf)):
        return None
    return parts[0].lower(), TermWeight(0.0, idf, tfidf)


def save_weights(directory: str, weights: Mapping[str, Mapping[str, TermWeight]], kind: str = TERMS_KIND) -> None:
    """
    Write one ``<stem>_<kind>.txt`` file per document with lines
    ``<term> <idf> <tfidf>`` sorted by term.
    """
    os.makedirs(directory, exist_ok=True)
    for name, terms in weights.items():
        path = os.path.join(directory, artifact_file_name(name, f"_{kind}"))
        with open(path, "w", encoding="utf-8") as f:
            for term in sorted(terms):
                f.write(format_weight_line(term, terms[term]) + "\n")

    logger.info("Saved %d %s weight files to %s", len(weights), kind, directory)


def load_vectors(directory: str, kind: str = TERMS_KIND) -> Dict[str, Dict[str, float]]:
    """
    Load TF-IDF vectors from ``*_<kind>.txt`` files.

    Malformed lines are skipped one by one. A document whose file holds no
    valid line is left out of the result.

    Raises:
        SourceNotFound: the directory does not exist
    """
    if not os.path.isdir(directory):
        raise SourceNotFound(directory)

    suffix = f"_{kind}"
    files = sorted(glob.glob(os.path.join(directory, f"*{suffix}.txt")), key=document_sort_key)
    vectors = {}

    for path in files:
        vector = {}
        skipped = 0
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                parsed = parse_weight_line(line)
                if parsed is None:
                    skipped += 1
                    continue
                term, weight = parsed
                vector[term] = weight.tfidf

        if skipped:
            logger.warning("Skipped %d malformed lines in %s", skipped, path)
        if vector:
            vectors[document_name_from_file(path, suffix)] = vector
        else:
            logger.warning("No valid weights in %s, document not loaded", path)

    logger.info("Loaded %d document vectors from %s", len(vectors), directory)
    return vectors
