"""Tests for the TF-IDF document store."""

import math

import pytest

from restaurant_graphs.retrieval import (
    Document, DocumentStore, DocumentType, extract_title, tokenize,
)
from restaurant_graphs.utils import InvalidInputError


class TestTokenizeAndTitles:

    def test_tokenize_drops_punctuation_and_short_tokens(self):
        assert tokenize("스테이크, 가격은? A 35,000원") == ["스테이크", "가격은", "35", "000원"]

    def test_tokenize_empty(self):
        assert tokenize(None) == []
        assert tokenize("   ") == []

    def test_extract_title_strips_numbering(self):
        assert extract_title("3. 퀴노아 샐러드\n가격: 18,000원") == "퀴노아 샐러드"

    def test_extract_title_caps_length(self):
        title = extract_title("가" * 60)
        assert title == "가" * 50 + "..."

    def test_extract_title_blank(self):
        assert extract_title("  \n ") == "Untitled"


class TestLoading:

    def test_bundled_files_are_loaded(self, store):
        assert store.count() == 12
        counts = store.count_by_type()
        assert counts[DocumentType.MENU] == 7
        assert counts[DocumentType.WINE] == 5

    def test_documents_keep_file_order_ids(self, store):
        doc = store.get_document("menu_1")
        assert doc.title == "시그니처 스테이크"
        assert doc.source == "restaurant_menu.txt"
        assert store.get_document("wine_5").title == "모엣 샹동 브뤼"

    def test_index_status_mentions_counts(self, store):
        assert store.index_status().startswith("documents: 12")


class TestSearch:

    def test_indexed_token_is_found(self):
        """A token taken verbatim from a document finds that document."""
        store = DocumentStore()
        store.add_document(Document(id="a", title="브런치", content="주말 브런치 세트", source="t"))
        store.add_document(Document(id="b", title="디너", content="저녁 코스 요리", source="t"))

        assert [d.id for d in store.search("브런치")] == ["a"]

    def test_unknown_token_returns_empty(self, store):
        assert store.search("존재하지않는단어") == []

    def test_empty_query_returns_empty(self, store):
        assert store.search("") == []
        assert store.search("   ") == []

    def test_scores_follow_tf_idf(self):
        store = DocumentStore()
        store.add_document(Document(id="a", title="x", content="와인 와인", source="t"))
        store.add_document(Document(id="b", title="y", content="와인 치즈", source="t"))
        store.add_document(Document(id="c", title="z", content="치즈 빵", source="t"))

        results = store.search("와인")
        idf = math.log(3 / 2)
        assert [d.id for d in results] == ["a", "b"]
        assert results[0].relevance_score == pytest.approx(2 * idf)
        assert results[1].relevance_score == pytest.approx(idf)

    def test_equal_scores_keep_insertion_order(self):
        store = DocumentStore()
        for doc_id in ("first", "second", "third"):
            store.add_document(Document(id=doc_id, title="t", content="파스타", source="t"))
        store.add_document(Document(id="other", title="t", content="샐러드", source="t"))

        assert [d.id for d in store.search("파스타")] == ["first", "second", "third"]

    def test_results_are_independent_copies(self, store):
        first = store.search("트러플")[0]
        first.relevance_score = -1.0
        first.metadata["touched"] = True

        again = store.search("트러플")[0]
        assert again.relevance_score > 0
        assert "touched" not in again.metadata
        assert store.get_document(first.id).relevance_score is None

    def test_max_results_caps_output(self, store):
        assert len(store.search("와인 페어링 스테이크", 1)) == 1

    def test_replacing_a_document_reindexes_it(self):
        store = DocumentStore()
        store.add_document(Document(id="a", title="t", content="연어", source="t"))
        store.add_document(Document(id="b", title="t", content="치즈", source="t"))
        store.add_document(Document(id="a", title="t", content="랍스터", source="t"))

        assert store.search("연어") == []
        assert [d.id for d in store.search("랍스터")] == ["a"]


class TestFilteredSearch:

    def test_search_by_type_filters(self, store):
        results = store.search_by_type("스테이크", "wine")
        assert results
        assert all(d.type == DocumentType.WINE for d in results)

    @pytest.mark.parametrize("max_results", [0, -1, -5])
    def test_search_by_type_non_positive_limit_is_empty(self, store, max_results):
        assert store.search_by_type("와인", "WINE", max_results) == []

    def test_search_by_unknown_type_lists_valid_values(self, store):
        with pytest.raises(InvalidInputError) as exc_info:
            store.search_by_type("스테이크", "dessert")
        assert "MENU" in exc_info.value.valid_values
        assert "WINE" in exc_info.value.valid_values

    def test_find_similar_excludes_target(self, store):
        for doc_id in ("menu_1", "menu_5", "wine_3"):
            similar = store.find_similar(doc_id, 5)
            assert doc_id not in [d.id for d in similar]

    def test_find_similar_unknown_document(self, store):
        assert store.find_similar("missing") == []

    def test_quick_search_puts_title_hits_first(self, store):
        results = store.quick_search("트러플")
        assert results[0].id == "menu_5"
        assert "wine_3" in [d.id for d in results]
        assert all(d.relevance_score == 0.0 for d in results)


class TestDocument:

    def test_summary_and_helpers(self):
        doc = Document(id="x", title="제목", content="가" * 120, source="s")
        assert doc.summary().endswith("...")
        assert len(doc.summary()) == 103
        assert not doc.is_empty()
        assert doc.contains_keyword("제목")
        assert "(출처: s)" in doc.format()

    def test_parse_type_is_case_insensitive(self):
        assert DocumentType.parse("menu") is DocumentType.MENU
