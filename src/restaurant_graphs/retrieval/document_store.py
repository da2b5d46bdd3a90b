"""
In-memory document store with TF-IDF keyword search.

Documents are kept in insertion order; searches hand out scored copies so
callers never share an instance with the store or with each other.
"""

import math
import re
import threading
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

from ..utils import (
    config, get_retrieval_logger, log_retrieval_operation, Timer,
)
from .document import Document, DocumentType

logger = get_retrieval_logger()

DEFAULT_DATA_DIR = Path(__file__).parent.parent / "data"

_NON_WORD = re.compile(r"[^가-힣a-z0-9\s]")
_NUMBERED_LINE = re.compile(r"^\d+\.\s*")
_BLOCK_SPLIT = re.compile(r"\n\s*\n")

# file name -> (id prefix, document type)
DATA_FILES = {
    "restaurant_menu.txt": ("menu", DocumentType.MENU),
    "restaurant_wine.txt": ("wine", DocumentType.WINE),
}


def tokenize(text: Optional[str]) -> List[str]:
    """Case-fold, keep Hangul/latin/digits, drop tokens shorter than 2."""
    if not text:
        return []
    cleaned = _NON_WORD.sub(" ", text.lower())
    return [word for word in cleaned.split() if len(word) >= 2]


def extract_title(content: str) -> str:
    """First line of a block, list numbering removed, capped at 50 chars."""
    if not content or not content.strip():
        return "Untitled"
    first_line = content.strip().split("\n")[0].strip()
    first_line = _NUMBERED_LINE.sub("", first_line)
    return first_line[:50] + "..." if len(first_line) > 50 else first_line


class DocumentStore:
    """
    Keyword retriever over restaurant documents.

    Scoring sums ``tf * ln(N / df)`` over the distinct query terms. Terms
    absent from the index are skipped, so a query with no known terms
    returns no documents.
    """

    def __init__(self):
        self._documents: Dict[str, Document] = {}
        self._order: Dict[str, int] = {}
        self._term_counts: Dict[str, Counter] = {}
        self._inverted_index: Dict[str, Set[str]] = {}
        self._sequence = 0
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def add_document(self, document: Document) -> None:
        """Add or replace a document and update the inverted index."""
        if document is None or not document.id:
            raise ValueError("Document must have an id")

        counts = Counter(tokenize(f"{document.content} {document.title}"))

        with self._lock:
            if document.id in self._documents:
                self._unindex(document.id)
            else:
                self._order[document.id] = self._sequence
                self._sequence += 1

            self._documents[document.id] = document
            self._term_counts[document.id] = counts
            for term in counts:
                self._inverted_index.setdefault(term, set()).add(document.id)

        logger.debug(f"Indexed document {document.id} ({document.title})")

    def _unindex(self, document_id: str) -> None:
        for term in self._term_counts.pop(document_id, {}):
            postings = self._inverted_index.get(term)
            if postings is not None:
                postings.discard(document_id)
                if not postings:
                    del self._inverted_index[term]

    def load_text(
        self,
        text: str,
        source: str,
        id_prefix: str,
        doc_type: DocumentType
    ) -> int:
        """
        Split a text blob on blank lines and index each block.

        Returns:
            Number of documents added.
        """
        added = 0
        for i, block in enumerate(_BLOCK_SPLIT.split(text)):
            item = block.strip()
            if not item:
                continue
            self.add_document(Document(
                id=f"{id_prefix}_{i + 1}",
                title=extract_title(item),
                content=item,
                source=source,
                type=doc_type,
                metadata={"category": id_prefix, "index": i},
            ))
            added += 1
        return added

    def load_directory(self, data_dir: Optional[Union[str, Path]] = None) -> int:
        """Load the menu and wine files found in ``data_dir``."""
        data_dir = Path(data_dir or config.retrieval.data_dir or DEFAULT_DATA_DIR)
        total = 0
        for file_name, (prefix, doc_type) in DATA_FILES.items():
            path = data_dir / file_name
            if not path.exists():
                logger.warning(f"Data file not found: {path}")
                continue
            total += self.load_text(
                path.read_text(encoding="utf-8"), file_name, prefix, doc_type
            )
        logger.info(f"Loaded {total} documents from {data_dir}")
        return total

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, query: str, max_results: Optional[int] = None) -> List[Document]:
        """
        Rank documents against ``query``.

        Args:
            query: Free-text query.
            max_results: Result cap. Defaults to the configured value.

        Returns:
            Scored document copies, highest score first; equal scores keep
            insertion order.
        """
        if max_results is None:
            max_results = config.retrieval.default_max_results
        if not query or not query.strip() or max_results <= 0:
            return []

        query_terms = set(tokenize(query))
        if not query_terms:
            return []

        with Timer() as timer:
            with self._lock:
                scores = self._score(query_terms)
                ranked = sorted(scores.items(), key=lambda item: (-item[1], self._order[item[0]]))
                results = [
                    self._documents[doc_id].with_score(score)
                    for doc_id, score in ranked[:max_results]
                ]

        log_retrieval_operation(
            logger, query, "tfidf", len(results),
            [d.relevance_score for d in results], timer.elapsed_ms()
        )
        return results

    def _score(self, query_terms: Set[str]) -> Dict[str, float]:
        total_documents = len(self._documents)
        scores: Dict[str, float] = {}
        for term in query_terms:
            postings = self._inverted_index.get(term)
            if not postings:
                continue
            idf = math.log(total_documents / len(postings))
            for doc_id in postings:
                tf = self._term_counts[doc_id][term]
                scores[doc_id] = scores.get(doc_id, 0.0) + tf * idf
        return scores

    def search_by_type(
        self,
        query: str,
        doc_type: Union[str, DocumentType],
        max_results: Optional[int] = None
    ) -> List[Document]:
        """Same ranking as ``search`` restricted to one document type."""
        doc_type = DocumentType.parse(doc_type)
        if max_results is None:
            max_results = config.retrieval.default_max_results
        if max_results <= 0:
            return []
        with self._lock:
            pool = len(self._documents)
        return [d for d in self.search(query, pool) if d.type == doc_type][:max_results]

    def find_similar(self, document_id: str, max_results: int = 5) -> List[Document]:
        """Documents ranked against the target's content, target excluded."""
        target = self.get_document(document_id)
        if target is None:
            return []
        candidates = self.search(target.content, max_results + 1)
        return [d for d in candidates if d.id != document_id][:max_results]

    def quick_search(self, keyword: str) -> List[Document]:
        """Substring match on title or content; title hits come first."""
        if not keyword or not keyword.strip():
            return []
        needle = keyword.lower()
        with self._lock:
            matches = [d for d in self._documents.values() if d.contains_keyword(keyword)]
        # sorted() is stable, so insertion order holds within each group
        matches = sorted(matches, key=lambda d: needle not in d.title.lower())
        return [d.with_score(0.0) for d in matches]

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def get_document(self, document_id: str) -> Optional[Document]:
        with self._lock:
            document = self._documents.get(document_id)
        return document.with_score(None) if document else None

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def count_by_type(self) -> Dict[DocumentType, int]:
        with self._lock:
            return dict(Counter(d.type for d in self._documents.values()))

    def index_status(self) -> str:
        with self._lock:
            postings = [len(ids) for ids in self._inverted_index.values()]
            average = sum(postings) / len(postings) if postings else 0.0
            return (
                f"documents: {len(self._documents)}, indexed terms: {len(self._inverted_index)}, "
                f"avg documents per term: {average:.1f}"
            )


def create_document_store(data_dir: Optional[Union[str, Path]] = None) -> DocumentStore:
    """Create a store preloaded with the restaurant data files."""
    store = DocumentStore()
    store.load_directory(data_dir)
    return store
