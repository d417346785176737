"""
Relevance scorer.

A fixed-weight heuristic, not a statistical ranking model. Weights and the
scorable fields per entity are part of the output contract.

    exact match:      name 1.0, identifier 0.9
    substring match:  name 0.8, identifier 0.8, description 0.5, email 0.7

Weights add up across distinct fields and the total is clamped to 1.0.
"""

from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from merchant_search.search.schemas import EntityKind

NAME = "name"
IDENTIFIER = "identifier"
DESCRIPTION = "description"
EMAIL = "email"

EXACT_WEIGHTS: Dict[str, float] = {
    NAME: 1.0,
    IDENTIFIER: 0.9,
}

CONTAINS_WEIGHTS: Dict[str, float] = {
    NAME: 0.8,
    IDENTIFIER: 0.8,
    DESCRIPTION: 0.5,
    EMAIL: 0.7,
}

MAX_SCORE = 1.0

# (record field, field class), in evaluation order
SCORABLE_FIELDS: Dict[EntityKind, Sequence[Tuple[str, str]]] = {
    EntityKind.PRODUCT: (
        ("name", NAME),
        ("id", IDENTIFIER),
        ("description", DESCRIPTION),
        ("sku", IDENTIFIER),
    ),
    EntityKind.ORDER: (
        ("id", IDENTIFIER),
        ("customerName", NAME),
        ("customerEmail", EMAIL),
        ("orderCode", IDENTIFIER),
    ),
    EntityKind.CUSTOMER: (
        ("name", NAME),
        ("id", IDENTIFIER),
        ("email", EMAIL),
    ),
}


def field_weight(value: Any, query_lower: str, field_class: str) -> float:
    """Weight contributed by one field value, 0.0 when it does not match."""
    if value is None:
        return 0.0
    text = str(value).lower()
    if not text:
        return 0.0
    if text == query_lower and field_class in EXACT_WEIGHTS:
        return EXACT_WEIGHTS[field_class]
    if query_lower in text:
        return CONTAINS_WEIGHTS[field_class]
    return 0.0


def score_fields(
    record: Mapping[str, Any],
    query: str,
    fields: Sequence[Tuple[str, str]],
) -> Tuple[float, List[str]]:
    """
    Score a record against a query over the given (field, class) pairs.

    Returns:
        (score clamped to [0, 1], deduplicated list of matched field names)
    """
    query_lower = query.lower()
    if not query_lower:
        return 0.0, []

    score = 0.0
    matched: List[str] = []
    for field_name, field_class in fields:
        weight = field_weight(record.get(field_name), query_lower, field_class)
        if weight > 0:
            score += weight
            if field_name not in matched:
                matched.append(field_name)

    return min(score, MAX_SCORE), matched


def score(
    record: Mapping[str, Any],
    query: str,
    kind: EntityKind,
    fields: Optional[Sequence[Tuple[str, str]]] = None,
) -> Tuple[float, List[str]]:
    """Score a record of the given entity kind. Pure; no I/O."""
    return score_fields(record, query, fields if fields is not None else SCORABLE_FIELDS.get(kind, ()))
