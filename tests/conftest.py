import copy

import pytest

from LexiRetriever.boolean_search.boolean_search import BooleanSearchEngine
from LexiRetriever.build_inverted_index import InvertedIndex
from LexiRetriever.config import DEFAULT_CONFIG

DOCUMENTS = {doc_id: f"{doc_id}.txt" for doc_id in range(1, 6)}


@pytest.fixture
def config():
    return copy.deepcopy(DEFAULT_CONFIG)


@pytest.fixture
def pet_index():
    """cat -> {1,3,5}, dog -> {2,3}; document 4 has no terms."""
    return InvertedIndex({"cat": {1, 3, 5}, "dog": {2, 3}}, DOCUMENTS)


@pytest.fixture
def engine(pet_index, config):
    return BooleanSearchEngine(pet_index, config=config)


@pytest.fixture
def token_dir(tmp_path):
    corpus = {
        "1_tokens.txt": ["cat", "cat", "dog"],
        "2_tokens.txt": ["dog", "fish"],
        "10_tokens.txt": ["fish", "bird", "bird"],
        "3_tokens.txt": [],
    }
    for file_name, terms in corpus.items():
        (tmp_path / file_name).write_text("".join(t + "\n" for t in terms), encoding="utf-8")
    return tmp_path
