import threading

import pytest

from LexiRetriever.errors import EmptyCorpus, RetrievalError
from LexiRetriever.main import LexiRetriever, main
from LexiRetriever.preprocessing.lemmas import load_lemma_map
from LexiRetriever.tfidf_search.weighting import LEMMAS_KIND

CORPUS = {
    "1.txt": ["cat", "cat", "dog"],
    "2.txt": ["dog", "fish"],
    "3.txt": ["fish", "bird", "bird", "bird"],
}


@pytest.fixture
def retriever(config):
    retriever = LexiRetriever(config)
    retriever.reload(CORPUS)
    return retriever


def test_boolean_and_vector_search(retriever):
    results, elapsed = retriever.search_boolean("cat AND dog")
    assert results == [(0, "1.txt")]
    assert elapsed >= 0

    assert [r.document_name for r in retriever.search_vector("bird")] == ["3.txt"]


def test_search_before_loading(config):
    retriever = LexiRetriever(config)
    with pytest.raises(RetrievalError):
        retriever.search_boolean("cat")
    with pytest.raises(RetrievalError):
        retriever.search_vector("cat")


def test_failed_reload_keeps_previous_snapshot(retriever):
    before = retriever.snapshot
    with pytest.raises(EmptyCorpus):
        retriever.reload({"1.txt": []})
    assert retriever.snapshot is before
    assert retriever.search_boolean("fish")[0] == [(1, "2.txt"), (2, "3.txt")]


def test_reload_swaps_whole_snapshot(retriever):
    retriever.reload({"a.txt": ["unicorn"]})
    assert retriever.search_boolean("cat")[0] == []
    assert retriever.search_boolean("unicorn")[0] == [(0, "a.txt")]
    assert retriever.snapshot.boolean_engine.index is retriever.snapshot.index


def test_queries_during_reload_see_a_complete_snapshot(retriever):
    errors = []

    def query():
        for _ in range(200):
            names = [name for _, name in retriever.search_boolean("cat OR unicorn")[0]]
            if names not in (["1.txt"], ["a.txt"]):
                errors.append(names)

    thread = threading.Thread(target=query)
    thread.start()
    for _ in range(20):
        retriever.reload({"a.txt": ["unicorn"]})
        retriever.reload(CORPUS)
    thread.join()
    assert errors == []


def test_reload_from_directory_with_lemmas(config, token_dir, tmp_path):
    lemmas = tmp_path / "lemmas.txt"
    lemmas.write_text("animal cat dog bird\n", encoding="utf-8")

    retriever = LexiRetriever(config)
    snapshot = retriever.reload_from_directory(str(token_dir), str(lemmas))
    assert snapshot.weights.total_documents == 4
    assert set(snapshot.weights.lemma_weights) == {"1.txt", "10.txt", "2.txt"}
    assert retriever.search_boolean("fish")[0] == [(1, "10.txt"), (2, "2.txt")]


def test_save_and_load_vectors(retriever, config, tmp_path):
    index_file = tmp_path / "index.txt"
    vectors_dir = tmp_path / "vectors"
    retriever.save(str(index_file), str(vectors_dir))

    assert index_file.read_text(encoding="utf-8").splitlines()[0] == "bird: 2"
    assert sorted(p.name for p in vectors_dir.iterdir()) == ["1_terms.txt", "2_terms.txt", "3_terms.txt"]

    fresh = LexiRetriever(config)
    fresh.load_vectors(str(vectors_dir))
    assert fresh.snapshot.boolean_engine is None
    assert [r.document_name for r in fresh.search_vector("bird")] == ["3.txt"]


def test_cli_runs_queries(token_dir, tmp_path, capsys):
    index_file = tmp_path / "index.txt"
    exit_code = main(["--tokens", str(token_dir), "--index-out", str(index_file),
                      "--boolean-query", "cat AND dog", "--query", "bird"])
    assert exit_code == 0
    assert index_file.exists()

    out = capsys.readouterr().out
    assert "1.txt" in out
    assert "10.txt" in out


def test_cli_reports_parse_errors(token_dir, capsys):
    assert main(["--tokens", str(token_dir), "--boolean-query", "cat AND"]) == 0
    assert "Query error" in capsys.readouterr().out


def test_cli_missing_source(tmp_path, capsys):
    assert main(["--tokens", str(tmp_path / "missing")]) == 1
    assert "Failed to load corpus" in capsys.readouterr().out


def test_cli_needs_a_source():
    with pytest.raises(SystemExit):
        main([])


@pytest.fixture
def lemma_vectors(config, tmp_path):
    """Lemma vector files plus the lemmas file they were built from."""
    lemmas = tmp_path / "lemmas.txt"
    lemmas.write_text("cat cat cats\ndog dog dogs\n", encoding="utf-8")
    vectors_dir = tmp_path / "vectors"

    retriever = LexiRetriever(config)
    retriever.reload({"1.txt": ["cats", "cat"], "2.txt": ["dogs"], "3.txt": ["fish"]}, load_lemma_map(str(lemmas)))
    retriever.save(vectors_dir=str(vectors_dir))
    return vectors_dir, lemmas


def test_lemma_vectors_map_query_terms(config, lemma_vectors):
    vectors_dir, lemmas = lemma_vectors

    retriever = LexiRetriever(config)
    retriever.load_vectors(str(vectors_dir), LEMMAS_KIND)
    assert retriever.search_vector("cats") == []

    retriever.load_vectors(str(vectors_dir), LEMMAS_KIND, load_lemma_map(str(lemmas)))
    assert [r.document_name for r in retriever.search_vector("cats")] == ["1.txt"]
    assert [r.document_name for r in retriever.search_vector("dogs")] == ["2.txt"]


def test_cli_lemma_query(lemma_vectors, capsys):
    vectors_dir, lemmas = lemma_vectors
    assert main(["--vectors", str(vectors_dir), "--vector-kind", "lemmas", "--lemmas", str(lemmas),
                 "--query", "cats"]) == 0
    out = capsys.readouterr().out
    assert "1.txt" in out
    assert "No documents found" not in out


def test_cli_top_zero_returns_nothing(token_dir, capsys):
    assert main(["--tokens", str(token_dir), "--query", "bird", "--top", "0"]) == 0
    assert "No documents found for 'bird'" in capsys.readouterr().out
