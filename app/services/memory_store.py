"""In-process product store.

Evaluates fetch directives directly against listings held in memory. Used
when ``PRODUCT_STORE=memory`` (optionally seeded from ``SEED_PRODUCTS_PATH``)
and as the collaborator in integration tests.
"""

import json
import logging
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from app.core.errors import NotFoundError
from app.schemas.product import ProductStats, ProductSummary
from app.schemas.query import SortDirection, SortField
from app.schemas.search import FetchDirectives, FetchResult, Predicate, PredicateOp
from app.services.bm25_service import BM25Service, tokenize
from app.services.product_store import PRODUCT_CATEGORIES, ProductStore

logger = logging.getLogger(__name__)


def searchable_text(product: ProductSummary) -> str:
    parts = [product.title, product.description, product.game_title or "", product.platform or ""]
    parts.extend(product.tags)
    return " ".join(parts)


def matches(product: ProductSummary, predicate: Predicate) -> bool:
    if predicate.op == PredicateOp.TEXT_MATCH:
        # Every query term must occur in the listing; no terms matches nothing
        terms = set(tokenize(predicate.value))
        return bool(terms) and terms <= set(tokenize(searchable_text(product)))

    value = getattr(product, predicate.field, None)
    if predicate.op == PredicateOp.IN:
        return value in predicate.value
    if predicate.op == PredicateOp.OVERLAPS:
        return bool(set(value or ()) & set(predicate.value))
    if predicate.op == PredicateOp.GTE:
        return value is not None and value >= predicate.value
    if predicate.op == PredicateOp.LTE:
        return value is not None and value <= predicate.value
    if predicate.op == PredicateOp.ILIKE:
        return value is not None and predicate.value.lower() in value.lower()
    if predicate.op == PredicateOp.EQ:
        return value == predicate.value
    raise ValueError(f"Unsupported predicate operator: {predicate.op}")


class InMemoryProductStore(ProductStore):
    def __init__(self, products: Iterable[ProductSummary | dict[str, Any]] = ()):
        self._products: dict[str, ProductSummary] = {}
        self.bm25_service = BM25Service()
        for product in products:
            self._put(product)
        self._reindex()

    @classmethod
    def from_json_file(cls, path: str | Path) -> "InMemoryProductStore":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        logger.info(f"Seeding memory store with {len(data)} products from {path}")
        return cls(data)

    def add(self, product: ProductSummary | dict[str, Any]) -> ProductSummary:
        stored = self._put(product)
        self._reindex()
        return stored

    def _put(self, product: ProductSummary | dict[str, Any]) -> ProductSummary:
        if isinstance(product, dict):
            product = ProductSummary.model_validate(product)
        self._products[product.id] = product
        return product

    def _reindex(self) -> None:
        self.bm25_service.build_index(
            [{"id": p.id, "text": searchable_text(p)} for p in self._active()]
        )

    def _active(self) -> list[ProductSummary]:
        return [p for p in self._products.values() if p.status == "active"]

    def _sorted(self, products: list[ProductSummary], directives: FetchDirectives) -> list[ProductSummary]:
        # Stable sorts: id is the final tie-breaker, then the requested order on top
        products = sorted(products, key=lambda p: p.id)
        descending = directives.sort.direction == SortDirection.DESC

        if directives.sort.field == SortField.RELEVANCE:
            scores = self.bm25_service.score(directives.text() or "")
            products.sort(key=lambda p: p.created_at, reverse=True)
            products.sort(key=lambda p: scores.get(p.id, 0.0), reverse=descending)
        else:
            field = directives.sort.field.value
            products.sort(key=lambda p: getattr(p, field), reverse=descending)
        return products

    async def execute(self, directives: FetchDirectives) -> FetchResult:
        hits = [
            p for p in self._active()
            if all(matches(p, predicate) for predicate in directives.predicates)
        ]
        ordered = self._sorted(hits, directives)
        window = ordered[directives.offset : directives.offset + directives.limit]
        return FetchResult(items=[p.model_copy() for p in window], total_count=len(hits))

    async def get_by_id(self, product_id: str) -> ProductSummary:
        product = self._products.get(product_id)
        if product is None or product.status != "active":
            raise NotFoundError(f"Product {product_id} not found", detail={"id": product_id})
        return product.model_copy()

    async def get_by_slug(self, slug: str) -> ProductSummary:
        for product in self._active():
            if product.slug == slug:
                return product.model_copy()
        raise NotFoundError(f"Product with slug {slug} not found", detail={"slug": slug})

    def _newest(self, products: Iterable[ProductSummary], limit: int) -> list[ProductSummary]:
        ordered = sorted(products, key=lambda p: p.created_at, reverse=True)
        return [p.model_copy() for p in ordered[:limit]]

    async def featured(self, limit: int = 10) -> list[ProductSummary]:
        return self._newest((p for p in self._active() if p.is_featured), limit)

    async def recent(self, limit: int = 10) -> list[ProductSummary]:
        return self._newest(self._active(), limit)

    async def by_category(self, category: str, limit: int = 10) -> list[ProductSummary]:
        return self._newest((p for p in self._active() if p.category == category), limit)

    async def stats(self) -> ProductStats:
        products = list(self._products.values())
        prices = [p.price for p in products if p.price]
        categories_count = {category: 0 for category in PRODUCT_CATEGORIES}
        for product in products:
            if product.category in categories_count:
                categories_count[product.category] += 1

        return ProductStats(
            total_products=len(products),
            active_products=sum(1 for p in products if p.status == "active"),
            sold_products=sum(1 for p in products if p.status == "sold"),
            average_price=sum(prices) / len(prices) if prices else 0.0,
            categories_count=categories_count,
        )

    async def increment_view_count(self, product_id: str) -> None:
        product = self._products.get(product_id)
        if product is None or product.status != "active":
            raise NotFoundError(f"Product {product_id} not found", detail={"id": product_id})
        product.view_count += 1
