from pathlib import Path

from domain_docs_mcp.paths import DocumentRepository
from domain_docs_mcp.search import (
    SearchHit,
    SectionSearchHit,
    clamp_top_k,
    count_occurrences,
    make_snippet,
    rank_hits,
    score,
    search_documents,
    search_sections,
    tokenize,
)


def _write_doc(path: Path, body: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(body, encoding="utf-8")


def test_tokenize_lowercases_and_deduplicates():
    assert tokenize("  Order  status\tORDER\nrefund ") == ["order", "status", "refund"]
    assert tokenize("") == []
    assert tokenize(" \t\n ") == []


def test_count_occurrences_non_overlapping():
    assert count_occurrences("aaaa", "aa") == 2
    assert count_occurrences("abcabc", "abc") == 2
    assert count_occurrences("abc", "") == 0
    assert count_occurrences("abc", "z") == 0


def test_score_sums_terms_case_insensitively():
    text = "Hello world. This is a test. Hello again."
    assert score(text, ["hello"]) == 2
    assert score(text, ["hello", "test"]) == 3
    assert score(text, []) == 0


def test_snippet_at_start_has_no_leading_ellipsis():
    text = "Hello world. This is a test. Hello again."
    snippet = make_snippet(text, "hello")
    assert snippet.startswith("Hello world")
    assert not snippet.endswith("…")


def test_snippet_windows_long_text():
    text = "x" * 300 + "\nNEEDLE here\n" + "y" * 400
    snippet = make_snippet(text, "needle")
    assert snippet.startswith("… ")
    assert snippet.endswith(" …")
    assert "NEEDLE here" in snippet
    assert "\n" not in snippet
    # 240 characters of window plus both ellipsis markers
    assert len(snippet) <= 240 + 4


def test_snippet_without_match_anchors_at_start():
    text = "a" * 250
    snippet = make_snippet(text, "missing")
    assert snippet == "a" * 240 + " …"


def test_clamp_top_k():
    assert clamp_top_k(None) == 5
    assert clamp_top_k(0) == 5
    assert clamp_top_k(-3) == 5
    assert clamp_top_k(7) == 7
    assert clamp_top_k(500) == 50


def test_rank_hits_orders_and_truncates():
    hits = [
        SearchHit("b/doc.md", 3, ""),
        SearchHit("a/doc.md", 3, ""),
        SearchHit("c/doc.md", 9, ""),
        SearchHit("d/doc.md", 1, ""),
    ]
    ranked = rank_hits(hits, top_k=3)
    assert [hit.path for hit in ranked] == ["c/doc.md", "a/doc.md", "b/doc.md"]
    assert hits[0].path == "b/doc.md"


def test_rank_hits_breaks_section_ties_on_title():
    hits = [
        SectionSearchHit("a/doc.md", "Zeta", 2, 4, ""),
        SectionSearchHit("a/doc.md", "Alpha", 2, 4, ""),
    ]
    assert [hit.section_title for hit in rank_hits(hits)] == ["Alpha", "Zeta"]


def test_search_documents_ranks_by_term_frequency(tmp_path):
    root = tmp_path / "specs"
    _write_doc(root / "orders.md", "Order lifecycle. An order can be refunded. order!")
    _write_doc(root / "refunds.md", "Refund flow for an order.")
    _write_doc(root / "other.txt", "Nothing relevant.")
    repository = DocumentRepository.from_roots([root])

    hits = search_documents(repository, "order refund")

    assert [(hit.path, hit.score) for hit in hits] == [
        ("specs/orders.md", 4),
        ("specs/refunds.md", 2),
    ]
    assert hits[0].snippet.startswith("Order lifecycle")


def test_search_documents_empty_query_matches_nothing(tmp_path):
    root = tmp_path / "specs"
    _write_doc(root / "doc.md", "anything at all")
    repository = DocumentRepository.from_roots([root])

    assert search_documents(repository, "") == []
    assert search_documents(repository, "   ") == []


def test_search_documents_unknown_term(tmp_path):
    root = tmp_path / "specs"
    _write_doc(root / "doc.md", "some content")
    repository = DocumentRepository.from_roots([root])

    assert search_documents(repository, "nonexistentterm12345", top_k=5) == []


def test_search_documents_is_deterministic(tmp_path):
    root = tmp_path / "specs"
    for index in range(8):
        _write_doc(root / f"doc{index}.md", "token " * (index % 3 + 1))
    repository = DocumentRepository.from_roots([root])

    first = search_documents(repository, "token", top_k=6)
    second = search_documents(repository, "token", top_k=6)
    assert first == second
    assert len(first) == 6
    assert [hit.score for hit in first] == sorted((hit.score for hit in first), reverse=True)


def test_search_documents_skips_unreadable_files(tmp_path):
    root = tmp_path / "specs"
    _write_doc(root / "good.md", "needle")
    (root / "bad.md").write_bytes(b"\xffneedle\xfe")
    repository = DocumentRepository.from_roots([root])

    hits = search_documents(repository, "needle")
    assert [hit.path for hit in hits] == ["specs/good.md"]


def test_search_sections_scores_each_section(tmp_path):
    root = tmp_path / "specs"
    _write_doc(
        root / "guide.md",
        "# Intro\nretry once\n## Retry policy\nretry retry\n# Usage\nnothing here\n",
    )
    repository = DocumentRepository.from_roots([root])

    hits = search_sections(repository, "retry")

    assert [(hit.section_title, hit.level, hit.score) for hit in hits] == [
        ("Intro", 1, 4),
        ("Retry policy", 2, 3),
    ]
    assert all(hit.path == "specs/guide.md" for hit in hits)
    assert hits[1].snippet.startswith("## Retry policy")


def test_search_sections_empty_query(tmp_path):
    root = tmp_path / "specs"
    _write_doc(root / "guide.md", "# Intro\ntext\n")
    repository = DocumentRepository.from_roots([root])

    assert search_sections(repository, "") == []
