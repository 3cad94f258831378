import math

import pytest

from LexiRetriever.errors import MissingCorpus
from LexiRetriever.tfidf_search.tfidf_search import (
    SearchResult, VectorSearchEngine, build_query_vector, compute_cosine_similarity
)
from LexiRetriever.tfidf_search.weighting import compute_tf_idf_vectors

VECTORS = {
    "doc1": {"cat": 0.5, "dog": 0.1},
    "doc2": {"cat": 0.0, "fish": 0.9},
}


@pytest.fixture
def vector_engine(config):
    return VectorSearchEngine(VECTORS, config=config)


def test_query_vector_is_plain_term_frequency(vector_engine):
    query = vector_engine.query_vector("cat cat dog")
    assert query == pytest.approx({"cat": 0.667, "dog": 0.333}, abs=1e-3)


def test_cosine_against_hand_computed_value(vector_engine):
    q_cat, q_dog = 2 / 3, 1 / 3
    expected = (q_cat * 0.5 + q_dog * 0.1) / (math.hypot(q_cat, q_dog) * math.hypot(0.5, 0.1))

    results = vector_engine.search("cat cat dog")
    assert [r.document_name for r in results] == ["doc1"]
    assert results[0].score == pytest.approx(expected, abs=1e-4)


def test_zero_scores_are_not_reported(vector_engine):
    assert vector_engine.search("cat") == [SearchResult("doc1", pytest.approx(1.0 / math.hypot(1, 0.2)))]
    assert vector_engine.search("unicorn") == []


def test_cosine_is_symmetric():
    a = {"cat": 0.3, "dog": 0.2, "fish": 0.7}
    b = {"cat": 0.1, "fish": 0.4}
    assert compute_cosine_similarity(a, b) == pytest.approx(compute_cosine_similarity(b, a))


def test_cosine_is_bounded():
    a = {"cat": 0.3, "dog": 0.2}
    assert compute_cosine_similarity(a, a) == pytest.approx(1.0)
    assert compute_cosine_similarity(a, {"fish": 1.0}) == 0.0


def test_cosine_with_zero_vector():
    assert compute_cosine_similarity({"cat": 0.0}, {"cat": 0.5}) == 0.0
    assert compute_cosine_similarity({}, {"cat": 0.5}) == 0.0


def test_build_query_vector():
    assert build_query_vector([]) == {}
    assert build_query_vector(["cat", "dog", "cat", "cat"]) == {"cat": 0.75, "dog": 0.25}


@pytest.mark.parametrize("query", ["", "   ", "the and of", "ox at", "42 !!"])
def test_queries_without_terms_return_nothing(vector_engine, query):
    assert vector_engine.search(query) == []


def test_short_query_words_are_ignored(vector_engine):
    assert vector_engine.query_vector("ox cat") == {"cat": 1.0}


def test_query_is_case_insensitive(config):
    engine = VectorSearchEngine({"1.txt": {"Cat": 0.4}}, config=config)
    assert engine.search("CAT") == engine.search("cat") == [SearchResult("1.txt", pytest.approx(1.0))]


def test_top_n(config):
    vectors = {f"{i}.txt": {"cat": 0.1, "dog": 0.01 * i} for i in range(1, 13)}
    engine = VectorSearchEngine(vectors, config=config)

    assert len(engine.search("cat")) == 10
    assert len(engine.search("cat", top_n=3)) == 3
    assert engine.search("cat", top_n=0) == []
    assert engine.search("cat", top_n=50)[-1].document_name == "12.txt"


def test_configured_top_n(config):
    config["vector_search"]["top_n"] = 2
    vectors = {f"{i}.txt": {"cat": 0.1} for i in range(5)}
    assert len(VectorSearchEngine(vectors, config=config).search("cat")) == 2


def test_results_sorted_by_score_then_name(config):
    vectors = {
        "b.txt": {"cat": 0.2},
        "a.txt": {"cat": 0.2},
        "c.txt": {"cat": 0.1, "dog": 0.5},
    }
    results = VectorSearchEngine(vectors, config=config).search("cat")
    assert [r.document_name for r in results] == ["a.txt", "b.txt", "c.txt"]
    assert all(results[i].score >= results[i + 1].score for i in range(len(results) - 1))


@pytest.mark.parametrize("vectors", [{}, {"1.txt": {}}])
def test_no_usable_vectors(config, vectors):
    with pytest.raises(MissingCorpus):
        VectorSearchEngine(vectors, config=config)


def test_from_directory_drops_unreadable_documents(config, tmp_path):
    (tmp_path / "1_terms.txt").write_text("cat 0,5 0,25\ndog 1,1 0,3\n", encoding="utf-8")
    (tmp_path / "2_terms.txt").write_text("cat 0.500000 0.250000\n", encoding="utf-8")

    engine = VectorSearchEngine.from_directory(str(tmp_path), config=config)
    assert list(engine.documents) == ["2.txt"]
    assert [r.document_name for r in engine.search("cat")] == ["2.txt"]


def test_from_directory_with_only_malformed_files(config, tmp_path):
    (tmp_path / "1_terms.txt").write_text("cat 0,5 0,25\n", encoding="utf-8")
    with pytest.raises(MissingCorpus):
        VectorSearchEngine.from_directory(str(tmp_path), config=config)


def test_from_weights(config):
    corpus = compute_tf_idf_vectors({
        "1.txt": ["cat", "cat", "dog"],
        "2.txt": ["dog", "fish"],
        "3.txt": ["fish", "bird", "bird", "bird"],
    })
    engine = VectorSearchEngine.from_weights(corpus, config=config)
    assert [r.document_name for r in engine.search("bird")] == ["3.txt"]
    assert [r.document_name for r in engine.search("cat dog")] == ["1.txt"]


def test_lemma_search_maps_query_terms(config):
    corpus = compute_tf_idf_vectors(
        {"1.txt": ["cats", "cat"], "2.txt": ["dogs"], "3.txt": ["fish"]},
        {"cats": "cat", "cat": "cat", "dogs": "dog"},
    )
    engine = VectorSearchEngine.from_weights(
        corpus, lemmas=True, config=config, query_term_map={"cats": "cat", "cat": "cat", "dogs": "dog"})
    assert [r.document_name for r in engine.search("cats")] == ["1.txt"]
    assert engine.search("fish") == []


def test_custom_query_tokenizer():
    engine = VectorSearchEngine({"1.txt": {"ox": 0.3}}, query_tokenizer=str.split)
    assert [r.document_name for r in engine.search("ox")] == ["1.txt"]


def test_render():
    assert SearchResult("1.txt", 0.123456).render() == "1.txt  (score = 0.1235)"
