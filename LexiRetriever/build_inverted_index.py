import argparse
import logging
import os
import time
from collections import defaultdict
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from LexiRetriever.errors import EmptyCorpus, SourceNotFound
from LexiRetriever.preprocessing.corpus import load_token_directory
from LexiRetriever.preprocessing.document import Document, as_term_sources, document_sort_key

logger = logging.getLogger(__name__)

EMPTY_POSTINGS: FrozenSet[int] = frozenset()


class InvertedIndex:
    """
    Read-only term -> document id index.

    Holds the posting lists, the id <-> name table and the universe used by
    NOT (every id appearing in at least one posting list). Documents without
    any term are known by id and name but are not part of the universe.
    """

    def __init__(self, postings: Mapping[str, Iterable[int]], documents: Optional[Mapping[int, str]] = None):
        """
        Args:
            postings: term -> document ids
            documents: document id -> name (defaults to ids rendered as names)
        """
        merged = defaultdict(set)
        for term, doc_ids in postings.items():
            merged[term.lower()].update(doc_ids)

        self._postings: Dict[str, FrozenSet[int]] = {term: frozenset(ids) for term, ids in merged.items() if ids}
        self.universe: FrozenSet[int] = frozenset().union(*self._postings.values())

        if documents is None:
            documents = {doc_id: str(doc_id) for doc_id in self.universe}
        else:
            unknown = self.universe.difference(documents)
            if unknown:
                raise ValueError(f"Posting lists reference unknown document ids: {sorted(unknown)[:10]}")
        self.documents: Mapping[int, str] = MappingProxyType(dict(documents))

    def lookup(self, term: str) -> FrozenSet[int]:
        """Posting set for a term (case-insensitive); empty for unknown terms."""
        return self._postings.get(term.lower(), EMPTY_POSTINGS)

    def __contains__(self, term) -> bool:
        return isinstance(term, str) and term.lower() in self._postings

    def __len__(self) -> int:
        return len(self._postings)

    def terms(self) -> List[str]:
        return sorted(self._postings)

    def items(self):
        return self._postings.items()

    def document_name(self, doc_id: int) -> Optional[str]:
        return self.documents.get(doc_id)

    def document_list(self) -> List[Document]:
        return [Document(doc_id, name) for doc_id, name in sorted(self.documents.items())]

    def sample(self, sample_size: int = 10) -> List[Tuple[str, int]]:
        """First terms in alphabetical order with their document counts."""
        return [(term, len(self._postings[term])) for term in self.terms()[:sample_size]]

    def save(self, output_file: str) -> None:
        """
        Save the index as text, one line per term in sorted order:
        ``<term>: <id1>, <id2>, ...`` with ids ascending.
        """
        with open(output_file, 'w', encoding='utf-8') as f:
            for term in self.terms():
                ids = ", ".join(str(doc_id) for doc_id in sorted(self._postings[term]))
                f.write(f"{term}: {ids}\n")

        logger.info("Inverted index saved to %s (%d terms)", output_file, len(self))

    def save_documents(self, output_file: str) -> None:
        """Save the id -> name table, one ``<id> <name>`` line per document."""
        with open(output_file, 'w', encoding='utf-8') as f:
            for doc_id, name in sorted(self.documents.items()):
                f.write(f"{doc_id} {name}\n")

    @staticmethod
    def load_documents(input_file: str) -> Dict[int, str]:
        if not os.path.exists(input_file):
            raise SourceNotFound(input_file)

        documents = {}
        with open(input_file, 'r', encoding='utf-8') as f:
            for line in f:
                parts = line.strip().split(" ", 1)
                if len(parts) != 2 or not parts[0].isdigit():
                    continue
                documents[int(parts[0])] = parts[1]
        return documents

    @classmethod
    def load(cls, input_file: str, documents: Optional[Mapping[int, str]] = None) -> "InvertedIndex":
        """
        Load an index written by save(). Malformed lines are skipped.

        Raises:
            SourceNotFound: the file does not exist
            EmptyCorpus: no valid posting line was found
        """
        if not os.path.exists(input_file):
            raise SourceNotFound(input_file)

        postings = {}
        skipped = 0
        with open(input_file, 'r', encoding='utf-8') as f:
            for line_number, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                term, sep, ids = line.partition(":")
                try:
                    doc_ids = {int(part) for part in ids.split(",") if part.strip()}
                except ValueError:
                    doc_ids = None
                if not sep or not term.strip() or not doc_ids:
                    skipped += 1
                    logger.debug("%s:%d: malformed posting line skipped", input_file, line_number)
                    continue
                postings[term.strip()] = doc_ids

        if skipped:
            logger.warning("Skipped %d malformed lines in %s", skipped, input_file)
        if not postings:
            raise EmptyCorpus(f"No posting lists found in {input_file}")

        index = cls(postings, documents)
        logger.info("Loaded index with %d terms and %d documents", len(index), len(index.universe))
        return index


class InvertedIndexBuilder:
    """
    Builds an InvertedIndex from per-document terms.

    Document ids are assigned sequentially from 0 in case-insensitive name order,
    so the same corpus always gets the same ids.
    """

    def build(self, documents) -> InvertedIndex:
        """
        Build the index.

        Args:
            documents: TermSource objects, (name, terms) pairs or a {name: terms} mapping

        Returns:
            InvertedIndex

        Raises:
            EmptyCorpus: no document contains a single term
        """
        start_time = time.time()
        sources = sorted(as_term_sources(documents), key=lambda s: document_sort_key(s.name))

        index = defaultdict(set)
        names = {}
        for doc_id, source in enumerate(sources):
            names[doc_id] = source.name
            for term in source.term_set():
                index[term].add(doc_id)

        if not index:
            raise EmptyCorpus()

        inverted_index = InvertedIndex(index, names)
        logger.info("Indexed %d documents (%d terms) in %.2f seconds",
                    len(names), len(inverted_index), time.time() - start_time)
        return inverted_index

    def from_token_directory(self, directory: str) -> InvertedIndex:
        """Build from a directory of ``<name>_tokens.txt`` files."""
        return self.build(load_token_directory(directory))


def main():
    parser = argparse.ArgumentParser(description='Build inverted index from per-document token files')
    parser.add_argument('tokens', help='Directory with <name>_tokens.txt files')
    parser.add_argument('--output', default='inverted_index.txt',
                        help='Path to output inverted index file')
    parser.add_argument('--documents-output', help='Optional path for the id -> name table')
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(message)s")

    index = InvertedIndexBuilder().from_token_directory(args.tokens)
    for term, count in index.sample():
        logger.info("'%s' -> %d documents", term, count)

    index.save(args.output)
    if args.documents_output:
        index.save_documents(args.documents_output)


if __name__ == "__main__":
    main()
