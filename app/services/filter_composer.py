"""Filter composer: the only place a Query changes.

``apply`` is a pure function. It takes the current query and a partial update
and returns the next query, resetting the page whenever the result space
changes.
"""

import logging

from app.core.errors import QueryValidationError
from app.schemas.query import (
    QUICK_PRICE_RANGES,
    SCALAR_FACETS,
    SET_FACETS,
    SORT_OPTIONS,
    Facets,
    PartialQuery,
    Query,
)

logger = logging.getLogger(__name__)


def toggle_value(values: frozenset[str] | None, candidate: str) -> frozenset[str] | None:
    """
    Add ``candidate`` to a facet set, or remove it if already present.

    Returns ``None`` instead of an empty set so "nothing selected" and
    "no filter" are the same value.
    """
    candidate = candidate.strip()
    if not candidate:
        return values
    current = values or frozenset()
    toggled = current - {candidate} if candidate in current else current | {candidate}
    return toggled or None


def apply(current: Query, patch: PartialQuery) -> Query:
    """
    Produce the next Query from ``current`` and a partial update.

    Rules:
    - ``clear`` returns the default query (keeping the grid's limit).
    - Scalar facets set on the patch replace the current value; ``None`` clears.
    - Set-valued facets toggle the single candidate value.
    - ``price_bracket`` sets both price bounds in this one call.
    - ``sort_option`` picks one of the named sorts in ``SORT_OPTIONS``.
    - Any change to text, facets or sort resets ``page`` to 1; a patch that
      names fields without changing their values is treated as page-only.
      A page-only patch changes nothing but the page.

    Args:
        current: The query currently shown
        patch: Fields to change

    Returns:
        The new query (``current`` itself when nothing changes)

    Raises:
        QueryValidationError: unknown price bracket or sort option, or
            inconsistent price bounds
    """
    if patch.clear:
        return Query.default(limit=current.limit)

    touched = patch.model_fields_set

    facet_updates: dict = {}
    for name in SCALAR_FACETS:
        if name in touched:
            facet_updates[name] = getattr(patch, name)

    if patch.price_bracket is not None:
        bracket = QUICK_PRICE_RANGES.get(patch.price_bracket)
        if bracket is None:
            raise QueryValidationError(
                f"Unknown price bracket: {patch.price_bracket}",
                detail={"price_bracket": patch.price_bracket, "allowed": sorted(QUICK_PRICE_RANGES)},
            )
        facet_updates["price_min"] = bracket.price_min
        facet_updates["price_max"] = bracket.price_max

    for name in SET_FACETS:
        candidate = getattr(patch, name)
        if name in touched and candidate is not None:
            facet_updates[name] = toggle_value(getattr(current.facets, name), candidate)

    updates: dict = {}
    if "text" in touched:
        updates["text"] = patch.text
    if facet_updates:
        updates["facets"] = Facets.model_validate({**current.facets.model_dump(), **facet_updates})
    if patch.sort_option is not None:
        sort = SORT_OPTIONS.get(patch.sort_option)
        if sort is None:
            raise QueryValidationError(
                f"Unknown sort option: {patch.sort_option}",
                detail={"sort_option": patch.sort_option, "allowed": list(SORT_OPTIONS)},
            )
        updates["sort"] = sort
    elif patch.sort is not None:
        updates["sort"] = patch.sort

    candidate = Query.model_validate({**current.model_dump(), **updates})
    changed = (candidate.text, candidate.facets, candidate.sort) != (current.text, current.facets, current.sort)

    if changed:
        query = candidate.model_copy(update={"page": 1})
    elif patch.page is not None and patch.page != current.page:
        query = current.model_copy(update={"page": patch.page})
    else:
        return current

    problems = query.facets.price_violations()
    if problems:
        raise QueryValidationError("; ".join(problems), detail={"facets": query.facets.model_dump(exclude_none=True)})

    logger.debug(f"Composed query: {query.model_dump(exclude_none=True)}")
    return query
