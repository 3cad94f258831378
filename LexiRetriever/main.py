import argparse
import logging
import sys
import threading
from typing import List, Mapping, NamedTuple, Optional, Tuple

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from LexiRetriever.boolean_search.boolean_search import BooleanSearchEngine
from LexiRetriever.build_inverted_index import InvertedIndex, InvertedIndexBuilder
from LexiRetriever.config import load_config
from LexiRetriever.errors import ParseError, RetrievalError
from LexiRetriever.preprocessing.corpus import load_token_directory
from LexiRetriever.preprocessing.lemmas import load_lemma_map
from LexiRetriever.tfidf_search.tfidf_search import SearchResult, VectorSearchEngine
from LexiRetriever.tfidf_search.weighting import (
    LEMMAS_KIND, TERMS_KIND, WeightedCorpus, compute_tf_idf_vectors, save_weights
)

logger = logging.getLogger(__name__)

console = Console()


class SearchSnapshot(NamedTuple):
    """Everything one corpus load produces. Never modified after construction."""
    index: Optional[InvertedIndex]
    boolean_engine: Optional[BooleanSearchEngine]
    vector_engine: Optional[VectorSearchEngine]
    weights: Optional[WeightedCorpus]


EMPTY_SNAPSHOT = SearchSnapshot(None, None, None, None)


class LexiRetriever:
    """
    Unified interface for the boolean and vector search engines.

    Queries read the current snapshot without locking. A reload builds a
    complete new snapshot first and only then replaces the reference, so a
    failed build leaves the previous snapshot in service.
    """
    def __init__(self, config=None):
        self.config = config or load_config()
        self._snapshot = EMPTY_SNAPSHOT
        self._swap_lock = threading.Lock()

    @property
    def snapshot(self) -> SearchSnapshot:
        return self._snapshot

    def _swap(self, snapshot: SearchSnapshot) -> SearchSnapshot:
        with self._swap_lock:
            self._snapshot = snapshot
        logger.info("Search snapshot replaced (%d documents indexed, %d vectors)",
                    len(snapshot.index.documents) if snapshot.index is not None else 0,
                    len(snapshot.vector_engine.documents) if snapshot.vector_engine is not None else 0)
        return snapshot

    def build_snapshot(self, documents, term_to_lemma=None) -> SearchSnapshot:
        """
        Build index, weights and both engines for a corpus.

        Args:
            documents: TermSource objects, (name, terms) pairs or a {name: terms} mapping
            term_to_lemma: Optional term -> lemma map for lemma weights
        """
        documents = list(documents.items()) if isinstance(documents, dict) else list(documents)
        workers = self.config.get("weighting", {}).get("workers", 1)

        index = InvertedIndexBuilder().build(documents)
        weights = compute_tf_idf_vectors(documents, term_to_lemma, workers=workers)

        return SearchSnapshot(
            index=index,
            boolean_engine=BooleanSearchEngine(index, config=self.config),
            vector_engine=VectorSearchEngine.from_weights(weights, config=self.config),
            weights=weights,
        )

    def reload(self, documents, term_to_lemma=None) -> SearchSnapshot:
        return self._swap(self.build_snapshot(documents, term_to_lemma))

    def reload_from_directory(self, tokens_dir: str, lemmas_file: Optional[str] = None) -> SearchSnapshot:
        """Load ``<name>_tokens.txt`` files (and an optional lemmas file) and swap in the result."""
        term_to_lemma = load_lemma_map(lemmas_file) if lemmas_file else None
        return self.reload(load_token_directory(tokens_dir), term_to_lemma)

    def load_vectors(self, directory: str, kind: str = TERMS_KIND,
                     term_to_lemma: Optional[Mapping[str, str]] = None) -> SearchSnapshot:
        """
        Replace the vector engine with persisted vectors, keeping the current index.

        Args:
            directory: Directory with ``<name>_<kind>.txt`` files
            kind: TERMS_KIND or LEMMAS_KIND
            term_to_lemma: Maps query terms to lemmas when searching lemma vectors
        """
        engine = VectorSearchEngine.from_directory(directory, kind, config=self.config,
                                                   query_term_map=term_to_lemma)
        current = self._snapshot
        return self._swap(current._replace(vector_engine=engine, weights=None))

    def save(self, index_file: Optional[str] = None, vectors_dir: Optional[str] = None,
             documents_file: Optional[str] = None) -> None:
        snapshot = self._snapshot
        if index_file and snapshot.index is not None:
            snapshot.index.save(index_file)
        if documents_file and snapshot.index is not None:
            snapshot.index.save_documents(documents_file)
        if vectors_dir and snapshot.weights is not None:
            save_weights(vectors_dir, snapshot.weights.term_weights, TERMS_KIND)
            if snapshot.weights.lemma_weights:
                save_weights(vectors_dir, snapshot.weights.lemma_weights, LEMMAS_KIND)

    def search_boolean(self, query: str) -> Tuple[List[Tuple[int, str]], float]:
        """
        Perform a Boolean search.

        Returns:
            ([(document id, document name)], execution_time)

        Raises:
            RetrievalError: no index is loaded
            ParseError: the query is malformed
        """
        engine = self._snapshot.boolean_engine
        if engine is None:
            raise RetrievalError("Boolean engine not initialized")
        result_set, execution_time = engine.search(query)
        return [(doc_id, engine.index.document_name(doc_id)) for doc_id in sorted(result_set)], execution_time

    def search_vector(self, query: str, top_n: Optional[int] = None) -> List[SearchResult]:
        engine = self._snapshot.vector_engine
        if engine is None:
            raise RetrievalError("Vector engine not initialized")
        return engine.search(query, top_n)


def configure_logging(config) -> None:
    level = config.get("logging", {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


def display_boolean_results(query: str, results, execution_time: float) -> None:
    if not results:
        console.print(f"[yellow]No documents match '{query}'.[/yellow]")
        return

    table = Table(title=f"Boolean: {query}", box=box.ROUNDED)
    table.add_column("ID", style="dim", justify="right")
    table.add_column("Document", style="cyan")
    for doc_id, name in results:
        table.add_row(str(doc_id), name or "")
    console.print(table)
    console.print(f"[green]Found {len(results)} documents in {execution_time:.6f} seconds[/green]")


def display_vector_results(query: str, results: List[SearchResult]) -> None:
    if not results:
        console.print(f"[yellow]No documents found for '{query}'.[/yellow]")
        return

    table = Table(title=f"Vector: {query}", box=box.ROUNDED)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Document", style="cyan")
    table.add_column("Score", style="yellow", justify="right")
    for i, result in enumerate(results, 1):
        table.add_row(str(i), result.document_name, f"{result.score:.4f}")
    console.print(table)


def run_boolean_query(retriever: LexiRetriever, query: str) -> None:
    try:
        results, execution_time = retriever.search_boolean(query)
    except ParseError as e:
        console.print(f"[bold red]Query error:[/bold red] {e}")
        return
    display_boolean_results(query, results, execution_time)


def run_vector_query(retriever: LexiRetriever, query: str, top_n: int) -> None:
    display_vector_results(query, retriever.search_vector(query, top_n))


def interactive_mode(retriever: LexiRetriever, top_n: int) -> None:
    console.print(Panel("[bold blue]LexiRetriever[/bold blue] [yellow]Search Engine[/yellow]",
                        subtitle="Boolean and vector space search", border_style="blue", width=80))
    snapshot = retriever.snapshot

    while True:
        console.print("\n1. Boolean search   2. Vector search   3. Quit")
        choice = console.input("[bold]Enter choice (1-3): [/bold]").strip()

        if choice in ("3", "quit", "exit"):
            break
        if choice not in ("1", "2"):
            console.print("[yellow]Invalid choice. Please enter a number between 1 and 3.[/yellow]")
            continue
        if choice == "1" and snapshot.boolean_engine is None:
            console.print("[bold red]Boolean engine not initialized.[/bold red]")
            continue

        query = console.input("[bold]Query > [/bold]").strip()
        if not query:
            continue

        if choice == "1":
            console.print("[dim]Operators: AND, OR, NOT, parentheses. Example: (html AND markup) OR css[/dim]")
            run_boolean_query(retriever, query)
        else:
            run_vector_query(retriever, query, top_n)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='LexiRetriever - Boolean and TF-IDF vector search over tokenized documents'
    )
    parser.add_argument('--config', help='Path to a config.json file')
    parser.add_argument('--tokens', help='Directory with <name>_tokens.txt files to index')
    parser.add_argument('--lemmas', help='Lemmas file (<lemma> <token1> <token2> ...)')
    parser.add_argument('--vectors', help='Directory with persisted <name>_terms.txt vectors')
    parser.add_argument('--vector-kind', choices=[TERMS_KIND, LEMMAS_KIND], default=TERMS_KIND,
                        help='Which persisted vectors to load')
    parser.add_argument('--index-out', help='Write the inverted index to this file')
    parser.add_argument('--vectors-out', help='Write TF-IDF weights to this directory')
    parser.add_argument('--boolean-query', help='Boolean query to execute')
    parser.add_argument('--query', help='Free text query for vector search')
    parser.add_argument('--top', type=int, help='Number of vector search results')
    parser.add_argument('--interactive', action='store_true', help='Run in interactive mode')
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(config)
    top_n = args.top if args.top is not None else config.get("vector_search", {}).get("top_n", 10)

    if not args.tokens and not args.vectors:
        parser.error("provide --tokens and/or --vectors")

    retriever = LexiRetriever(config)
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TimeElapsedColumn(),
            console=console
        ) as progress:
            if args.tokens:
                task = progress.add_task("Building index and TF-IDF weights...", total=None)
                retriever.reload_from_directory(args.tokens, args.lemmas)
                retriever.save(args.index_out, args.vectors_out)
                progress.update(task, completed=True)
            if args.vectors:
                task = progress.add_task("Loading document vectors...", total=None)
                term_to_lemma = None
                if args.lemmas and args.vector_kind == LEMMAS_KIND:
                    term_to_lemma = load_lemma_map(args.lemmas)
                retriever.load_vectors(args.vectors, args.vector_kind, term_to_lemma)
                progress.update(task, completed=True)
    except RetrievalError as e:
        console.print(f"[bold red]Failed to load corpus:[/bold red] {e}")
        return 1

    if args.boolean_query:
        if retriever.snapshot.boolean_engine is None:
            console.print("[bold red]Boolean search needs --tokens.[/bold red]")
        else:
            run_boolean_query(retriever, args.boolean_query)

    if args.query:
        run_vector_query(retriever, args.query, top_n)

    if args.interactive:
        interactive_mode(retriever, top_n)

    return 0


if __name__ == "__main__":
    sys.exit(main())
