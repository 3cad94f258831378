"""
TF-IDF search module: ranks documents against free-text queries by cosine
similarity between a query term-frequency vector and document TF-IDF vectors.
"""
import logging
import math
from collections import Counter
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NamedTuple, Optional

from ..config import load_config
from ..errors import MissingCorpus
from ..preprocessing.preprocess import create_preprocessing_pipeline, tokenize_text
from .weighting import TERMS_KIND, WeightedCorpus, load_vectors

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 10


class SearchResult(NamedTuple):
    document_name: str
    score: float

    def render(self) -> str:
        return f"{self.document_name}  (score = {self.score:.4f})"


def vector_norm(vec: Mapping[str, float]) -> float:
    return math.sqrt(sum(score ** 2 for score in vec.values()))


def compute_cosine_similarity(vec1: Mapping[str, float], vec2: Mapping[str, float]) -> float:
    """
    Compute cosine similarity between two vectors.

    Args:
        vec1: First vector as a dictionary {word: weight}
        vec2: Second vector as a dictionary {word: weight}

    Returns:
        Cosine similarity score, 0 when either vector has zero norm
    """
    if len(vec1) > len(vec2):
        vec1, vec2 = vec2, vec1

    dot_product = sum(weight * vec2[word] for word, weight in vec1.items() if word in vec2)

    magnitude1 = vector_norm(vec1)
    magnitude2 = vector_norm(vec2)

    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return dot_product / (magnitude1 * magnitude2)


def build_query_vector(terms: List[str]) -> Dict[str, float]:
    """
    Query weights are plain term frequencies: count(t) / number of query terms.
    Document vectors already carry the IDF factor.
    """
    if not terms:
        return {}
    total = len(terms)
    return {term: count / total for term, count in Counter(terms).items()}


class VectorSearchEngine:
    """Vector space search engine over pre-built TF-IDF document vectors."""

    def __init__(self, vectors: Mapping[str, Mapping[str, float]], config=None,
                 query_tokenizer: Optional[Callable[[str], List[str]]] = None,
                 query_term_map: Optional[Mapping[str, str]] = None):
        """
        Args:
            vectors: document name -> {term: tf-idf weight}
            config: Configuration dictionary (defaults to LexiRetriever.config)
            query_tokenizer: Replaces the configured tokenizer for queries
            query_term_map: Maps query terms before weighting (e.g. term -> lemma
                when searching lemma vectors); unmapped terms are dropped

        Raises:
            MissingCorpus: no document has a non-empty vector
        """
        self.config = config or load_config()
        search_config = self.config.get("vector_search", {})
        self.top_n = search_config.get("top_n", DEFAULT_TOP_N)

        if query_tokenizer is None:
            pipeline = create_preprocessing_pipeline(
                self.config, min_word_length=search_config.get("min_word_length", 3), name="QueryPipeline")
            query_tokenizer = lambda text: tokenize_text(text, pipeline)
        self.query_tokenizer = query_tokenizer
        self.query_term_map = query_term_map

        documents = {}
        for name, vector in vectors.items():
            normalized = {term.lower(): float(weight) for term, weight in vector.items()}
            if normalized:
                documents[name] = MappingProxyType(normalized)

        if not documents:
            raise MissingCorpus("No document vectors to search")

        self.documents: Mapping[str, Mapping[str, float]] = MappingProxyType(documents)
        logger.info("Vector search engine ready with %d documents", len(self.documents))

    @classmethod
    def from_directory(cls, directory: str, kind: str = TERMS_KIND, config=None, **kwargs):
        """Load ``*_<kind>.txt`` vector files written by weighting.save_weights."""
        return cls(load_vectors(directory, kind), config=config, **kwargs)

    @classmethod
    def from_weights(cls, corpus: WeightedCorpus, lemmas: bool = False, config=None, **kwargs):
        vectors = corpus.lemma_vectors() if lemmas else corpus.term_vectors()
        return cls(vectors, config=config, **kwargs)

    def query_vector(self, query: str) -> Dict[str, float]:
        terms = self.query_tokenizer(query)
        if self.query_term_map is not None:
            terms = [self.query_term_map[t] for t in terms if t in self.query_term_map]
        return build_query_vector(terms)

    def search(self, query: str, top_n: Optional[int] = None) -> List[SearchResult]:
        """
        Search for documents matching the query.

        Args:
            query: Free-text query string
            top_n: Maximum number of results (configured default when None)

        Returns:
            SearchResult list, best first. Only positive scores are reported;
            equal scores are ordered by document name.
        """
        top_n = self.top_n if top_n is None else top_n
        query_vector = self.query_vector(query)
        if not query_vector or top_n <= 0:
            return []

        return self._rank_documents(query_vector, top_n)

    def _rank_documents(self, query_vector, top_n):
        results = []

        for name, doc_vector in self.documents.items():
            score = compute_cosine_similarity(query_vector, doc_vector)
            if score > 0:
                results.append(SearchResult(name, score))

        results.sort(key=lambda r: (-r.score, r.document_name))
        return results[:top_n]
