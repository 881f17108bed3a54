"""Predicate translator: Query -> backend fetch directives.

Pure and deterministic. Facets are ANDed with each other; values inside one
set-valued facet are ORed by the ``in``/``overlaps`` predicates.
"""

import logging

from app.core.config import settings
from app.core.errors import QueryValidationError, TranslationError
from app.schemas.query import DEFAULT_SORT, Query, SortDirection, SortField, SortSpec
from app.schemas.search import FetchDirectives, Predicate, PredicateOp

logger = logging.getLogger(__name__)

# Facet name -> predicate operator for set-valued facets
SET_FACET_OPS: dict[str, PredicateOp] = {
    "category": PredicateOp.IN,
    "condition": PredicateOp.IN,
    "platform": PredicateOp.IN,
    "tags": PredicateOp.OVERLAPS,
}
SUBSTRING_FACETS = ("location", "game_title")
BOOLEAN_FACETS = ("shipping_available", "is_negotiable", "is_instant_delivery")


def resolve_sort(query: Query) -> SortSpec:
    """
    Resolve the sort a backend should apply.

    Relevance needs search text to rank against; without it we fall back to
    newest first. Relevance is always best-first, so an ascending relevance
    sort cannot be expressed.
    """
    if query.sort.field == SortField.RELEVANCE:
        if not query.text:
            return DEFAULT_SORT
        if query.sort.direction == SortDirection.ASC:
            raise TranslationError(
                "Relevance sort only supports descending order",
                detail={"sort_field": query.sort.field.value, "sort_direction": query.sort.direction.value},
            )
    return query.sort


def build_predicates(query: Query) -> tuple[Predicate, ...]:
    facets = query.facets
    predicates: list[Predicate] = []

    if query.text:
        predicates.append(Predicate(field="search_text", op=PredicateOp.TEXT_MATCH, value=query.text))

    for name, op in SET_FACET_OPS.items():
        values = getattr(facets, name)
        if values:
            predicates.append(Predicate(field=name, op=op, value=tuple(sorted(values))))

    if facets.price_min is not None:
        predicates.append(Predicate(field="price", op=PredicateOp.GTE, value=facets.price_min))
    if facets.price_max is not None:
        predicates.append(Predicate(field="price", op=PredicateOp.LTE, value=facets.price_max))

    for name in SUBSTRING_FACETS:
        value = getattr(facets, name)
        if value:
            predicates.append(Predicate(field=name, op=PredicateOp.ILIKE, value=value))

    # Absent booleans mean "no constraint", never "false"
    for name in BOOLEAN_FACETS:
        value = getattr(facets, name)
        if value is not None:
            predicates.append(Predicate(field=name, op=PredicateOp.EQ, value=value))

    return tuple(predicates)


def translate(query: Query) -> FetchDirectives:
    """
    Translate a Query into fetch directives.

    Args:
        query: Canonical query

    Returns:
        FetchDirectives with predicates, resolved sort and the row window

    Raises:
        QueryValidationError: the query is malformed (e.g. inverted price range)
        TranslationError: the query cannot be expressed (e.g. ascending relevance,
            window past MAX_RESULT_WINDOW)
    """
    problems = query.facets.price_violations()
    if problems:
        raise QueryValidationError("; ".join(problems), detail={"query": query.model_dump(exclude_none=True)})

    sort = resolve_sort(query)

    offset = (query.page - 1) * query.limit
    if offset + query.limit > settings.MAX_RESULT_WINDOW:
        raise TranslationError(
            f"Result window too large: offset {offset} + limit {query.limit} exceeds {settings.MAX_RESULT_WINDOW}",
            detail={"page": query.page, "limit": query.limit, "max_result_window": settings.MAX_RESULT_WINDOW},
        )

    directives = FetchDirectives(
        predicates=build_predicates(query),
        sort=sort,
        offset=offset,
        limit=query.limit,
    )
    logger.debug(f"Translated query to {len(directives.predicates)} predicates, sort={sort.field.value} {sort.direction.value}")
    return directives
