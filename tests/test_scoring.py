"""
Unit tests for the relevance scorer.

Pure functions; no database.
"""

from merchant_search.search.schemas import EntityKind
from merchant_search.search.scoring import (
    CONTAINS_WEIGHTS, DESCRIPTION, NAME, field_weight, score, score_fields,
)


GIFT_CARD = {
    "id": "p1",
    "name": "Gift Card 50 SAR",
    "description": "Digital gift card",
    "sku": "GC-50",
}


def test_gift_card_matches_name_with_high_score():
    value, matched = score(GIFT_CARD, "gift card", EntityKind.PRODUCT)
    assert value >= 0.8
    assert "name" in matched


def test_weights_accumulate_and_clamp_to_one():
    value, matched = score(GIFT_CARD, "gift card", EntityKind.PRODUCT)
    # name 0.8 + description 0.5
    assert value == 1.0
    assert matched == ["name", "description"]


def test_exact_name_match_scores_one():
    value, matched = score({"id": "u1", "name": "Alice", "email": "alice@example.com"}, "alice", EntityKind.CUSTOMER)
    assert value == 1.0
    assert matched == ["name", "email"]


def test_exact_identifier_match():
    record = {"id": "o1", "customerName": "Bob", "customerEmail": "bob@example.com", "orderCode": "ORD-1001"}
    value, matched = score(record, "ORD-1001", EntityKind.ORDER)
    assert value == 0.9
    assert matched == ["orderCode"]


def test_email_substring_weight():
    value, matched = score({"id": "u2", "name": "Bob", "email": "bob@example.com"}, "example", EntityKind.CUSTOMER)
    assert value == 0.7
    assert matched == ["email"]


def test_description_has_no_exact_bonus():
    assert field_weight("gift", "gift", DESCRIPTION) == CONTAINS_WEIGHTS[DESCRIPTION]


def test_case_insensitive():
    assert field_weight("Gift Card", "gift card", NAME) == 1.0


def test_no_match_scores_zero():
    value, matched = score(GIFT_CARD, "laptop", EntityKind.PRODUCT)
    assert value == 0.0
    assert matched == []


def test_missing_fields_are_skipped():
    value, matched = score({"id": "p9", "name": None, "description": ""}, "p9", EntityKind.PRODUCT)
    assert value == 0.9
    assert matched == ["id"]


def test_matched_fields_deduplicated():
    fields = [("name", NAME), ("name", NAME)]
    value, matched = score_fields({"name": "Gift"}, "gift", fields)
    assert matched == ["name"]
    assert value == 1.0


def test_task_kind_has_no_scorable_fields():
    assert score({"name": "anything"}, "anything", EntityKind.TASK) == (0.0, [])


def test_scoring_is_deterministic():
    assert score(GIFT_CARD, "gift", EntityKind.PRODUCT) == score(GIFT_CARD, "gift", EntityKind.PRODUCT)
