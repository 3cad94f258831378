import logging
import time
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..build_inverted_index import InvertedIndex
from ..config import load_config
from ..errors import ParseError
from .parser import BooleanParser, TermNode, AndNode, OrNode, NotNode, chain_operands, tokenize_query
from .query_optimizer import optimize_query

logger = logging.getLogger(__name__)


def evaluate(node, index: InvertedIndex) -> Set[int]:
    """
    Evaluate a query AST against an index, returning a set of document IDs.

    NOT is the complement against index.universe, the ids found in any
    posting list. A None node (empty query) matches nothing.
    """
    if node is None:
        return set()

    if isinstance(node, TermNode):
        return set(index.lookup(node.value))

    if isinstance(node, NotNode):
        return set(index.universe) - evaluate(node.child, index)

    if isinstance(node, AndNode):
        operands = chain_operands(node)
        result = evaluate(operands[0], index)
        for operand in operands[1:]:
            if not result:
                break  # Short circuit once the intersection is empty
            result &= evaluate(operand, index)
        return result

    if isinstance(node, OrNode):
        result = set()
        for operand in chain_operands(node):
            result |= evaluate(operand, index)
        return result

    raise TypeError(f"Unknown query node: {node!r}")


class BooleanSearchEngine:
    def __init__(self, index: InvertedIndex, config=None):
        """
        Initialize the search engine with a built inverted index.

        Args:
            index: InvertedIndex to search
            config: Optional configuration dictionary (see LexiRetriever.config)
        """
        self.index = index
        self.config = config or load_config()
        search_config = self.config.get("boolean_search", {})
        self.optimize = search_config.get("optimize", True)
        self.cache_queries = search_config.get("cache_queries", True)
        self.query_cache: Dict[Tuple, frozenset] = {}

    @classmethod
    def from_file(cls, index_file: str, documents_file: Optional[str] = None, config=None):
        """Load an inverted index written by InvertedIndex.save and wrap it in an engine."""
        documents = InvertedIndex.load_documents(documents_file) if documents_file else None
        return cls(InvertedIndex.load(index_file, documents), config=config)

    def parse(self, query_string: str):
        """Parse a query into its AST (None for an empty query)."""
        return BooleanParser(query_string).parse()

    def evaluate(self, query_ast) -> Set[int]:
        if self.optimize:
            query_ast = optimize_query(query_ast, self.index)
        return evaluate(query_ast, self.index)

    def search(self, query_string: str) -> Tuple[Set[int], float]:
        """
        Execute a boolean search query

        Args:
            query_string: Boolean query string (AND, OR, NOT, parentheses)

        Returns:
            tuple: (result_set, execution_time)

        Raises:
            ParseError: the query is malformed
        """
        start_time = time.perf_counter()
        tokens = tokenize_query(query_string)
        cache_key = tuple(tokens)

        if self.cache_queries and cache_key in self.query_cache:
            logger.debug("Cache hit for query: '%s'", query_string)
            return set(self.query_cache[cache_key]), time.perf_counter() - start_time

        query_ast = BooleanParser(tokens=tokens).parse()
        logger.debug("Query AST: %s", query_ast)

        results = self.evaluate(query_ast)

        if self.cache_queries:
            self.query_cache[cache_key] = frozenset(results)
        return results, time.perf_counter() - start_time

    def search_documents(self, query_string: str) -> List[Tuple[int, str]]:
        """Matching (id, name) pairs sorted by id."""
        results, _ = self.search(query_string)
        return [(doc_id, self.index.document_name(doc_id)) for doc_id in sorted(results)]

    def batch_search(self, queries: Iterable[str]) -> List[Tuple[str, Set[int], Optional[ParseError], float]]:
        """
        Process multiple queries. Malformed queries are reported in the result
        tuple instead of aborting the batch.

        Returns:
            List of (query, result_set, error, execution_time)
        """
        results = []
        for query in queries:
            query = query.strip()
            if not query or query.startswith('//'):
                continue
            try:
                result_set, execution_time = self.search(query)
                results.append((query, result_set, None, execution_time))
            except ParseError as e:
                logger.warning("Error processing query '%s': %s", query, e)
                results.append((query, set(), e, 0.0))

        logger.info("Processed %d queries, %d with errors", len(results),
                    sum(1 for _, _, error, _ in results if error))
        return results

    def explain_term(self, term: str) -> Dict:
        """Information about a term's normalized form and presence in the index"""
        normalized = term.strip().lower()
        doc_count = len(self.index.lookup(normalized))

        similar = []
        if doc_count == 0 and len(normalized) >= 3:
            similar = [t for t in self.index.terms() if t.startswith(normalized[:3])][:5]

        return {
            "original": term,
            "normalized": normalized,
            "in_index": normalized in self.index,
            "documents": doc_count,
            "similar": similar,
        }
