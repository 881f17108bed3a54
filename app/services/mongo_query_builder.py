"""Render fetch directives as a MongoDB aggregation pipeline.

Requires a text index over the searchable fields, e.g.::

    db.products.create_index([("title", "text"), ("description", "text"),
                              ("game_title", "text"), ("platform", "text"), ("tags", "text")])
"""

import re
from typing import Any

from app.schemas.query import SortDirection, SortField
from app.schemas.search import FetchDirectives, PredicateOp
from app.services.bm25_service import tokenize

# Fields never returned to callers
PROJECTION = {"_id": 0, "search_vector": 0}


def text_search_string(text: str) -> str:
    """Quote every term so MongoDB requires all of them (AND) instead of any."""
    return " ".join(f'"{term}"' for term in tokenize(text))


def build_match(directives: FetchDirectives) -> dict[str, Any]:
    """
    Convert predicates to a ``$match`` document.

    Conditions on different fields are ANDed by being keys of one document;
    the two price bounds merge into one range condition.
    """
    match: dict[str, Any] = {"status": "active"}

    for predicate in directives.predicates:
        if predicate.op == PredicateOp.TEXT_MATCH:
            match["$text"] = {"$search": text_search_string(predicate.value)}
        elif predicate.op in (PredicateOp.IN, PredicateOp.OVERLAPS):
            # $in against an array field matches on any shared element
            match[predicate.field] = {"$in": list(predicate.value)}
        elif predicate.op in (PredicateOp.GTE, PredicateOp.LTE):
            condition = match.setdefault(predicate.field, {})
            condition[f"${predicate.op.value}"] = predicate.value
        elif predicate.op == PredicateOp.ILIKE:
            match[predicate.field] = {"$regex": re.escape(predicate.value), "$options": "i"}
        elif predicate.op == PredicateOp.EQ:
            match[predicate.field] = predicate.value
        else:
            raise ValueError(f"Unsupported predicate operator: {predicate.op}")

    return match


def build_sort(directives: FetchDirectives) -> dict[str, Any]:
    """Sort document with ``id`` appended so pages never overlap."""
    if directives.sort.field == SortField.RELEVANCE:
        return {"score": -1, "created_at": -1, "id": 1}

    direction = 1 if directives.sort.direction == SortDirection.ASC else -1
    return {directives.sort.field.value: direction, "id": 1}


def build_pipeline(directives: FetchDirectives) -> list[dict[str, Any]]:
    """
    Build one pipeline returning the requested window and the exact count
    over the same ``$match``.

    Returns:
        Pipeline whose single output document is ``{"items": [...], "total": [{"count": n}]}``
    """
    items_stages = [
        {"$sort": build_sort(directives)},
        {"$skip": directives.offset},
        {"$limit": directives.limit},
        {"$project": {**PROJECTION, "score": 0}},
    ]

    facet = {"items": items_stages, "total": [{"$count": "count"}]}

    pipeline: list[dict[str, Any]] = [{"$match": build_match(directives)}]
    if directives.sort.field == SortField.RELEVANCE:
        # Text score is only available right after the $text match
        pipeline.append({"$addFields": {"score": {"$meta": "textScore"}}})
    pipeline.append({"$facet": facet})
    return pipeline
