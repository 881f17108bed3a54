"""
BM25 service for keyword relevance using the rank-bm25 library.
Ranks listings for the in-process store; also owns the tokenizer used for
text matching so that matching and ranking agree on what a term is.
"""

import logging
import re
from typing import Any

from rank_bm25 import BM25Okapi

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def tokenize(text: str) -> list[str]:
    """
    Lowercase, replace punctuation with spaces, split on whitespace.

    Args:
        text: Input text

    Returns:
        List of tokens
    """
    text = _NON_ALNUM.sub(" ", text.lower())
    return [token for token in text.split() if token]


class BM25Service:
    """
    BM25 (Best Matching 25) scorer over a fixed set of documents.

    BM25 weighs term frequency against how rare a term is across the corpus,
    with document length normalization. The index is rebuilt whenever the
    document set changes.
    """

    def __init__(self):
        self.bm25 = None
        self.doc_ids: list[Any] = []
        self.tokenized_corpus: list[list[str]] = []
        self.is_initialized = False

    def build_index(self, documents: list[dict[str, Any]]) -> None:
        """
        Build BM25 index from documents.

        Args:
            documents: List of dicts with 'id' and 'text' keys
        """
        if not documents:
            logger.warning("⚠️ No documents provided for BM25 indexing")
            self.bm25 = None
            self.doc_ids = []
            self.tokenized_corpus = []
            self.is_initialized = False
            return

        self.doc_ids = [doc["id"] for doc in documents]
        self.tokenized_corpus = [tokenize(doc["text"]) for doc in documents]
        self.bm25 = BM25Okapi(self.tokenized_corpus)
        self.is_initialized = True

        logger.info(f"✅ BM25 index built with {len(self.doc_ids)} documents")

    def score(self, query: str) -> dict[Any, float]:
        """
        Score every indexed document against a query.

        Args:
            query: Search query

        Returns:
            Mapping of doc_id -> BM25 score
        """
        if not self.is_initialized:
            logger.warning("⚠️ BM25 index not initialized. Call build_index() first.")
            return {}

        scores = self.bm25.get_scores(tokenize(query))
        return {doc_id: float(scores[i]) for i, doc_id in enumerate(self.doc_ids)}
