"""Documentation completeness scoring.

Pure functions over anything shaped like an Item: ``photos``, ``receipts``,
``purchase_price``, ``serial_number``, ``room_id`` and ``category_id``.
Nothing here touches the database, so scores are always recomputed from the
item's current relationships.

The weighted score and ``is_documented`` are separate signals and neither is
derived from the other.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List


@dataclass(frozen=True)
class DocumentationScore:
    value: float
    missing: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Rollup:
    item_count: int
    total_value: Decimal
    average_score: float


def has_photo(item) -> bool:
    return bool(item.photos)


def has_value(item) -> bool:
    return item.purchase_price is not None


def has_location(item) -> bool:
    return item.room_id is not None


def has_category(item) -> bool:
    return item.category_id is not None


def has_receipt(item) -> bool:
    return bool(item.receipts)


def has_serial(item) -> bool:
    return bool(item.serial_number)


# (label, weight, predicate) in weight-descending order; ties keep this order.
# Weights are Decimals so the sum is exact (0.30 + 0.25 + 0.15 + 0.10 == 0.80).
SCORE_WEIGHTS = (
    ("Photo", Decimal("0.30"), has_photo),
    ("Value", Decimal("0.25"), has_value),
    ("Room", Decimal("0.15"), has_location),
    ("Category", Decimal("0.10"), has_category),
    ("Receipt", Decimal("0.10"), has_receipt),
    ("Serial Number", Decimal("0.10"), has_serial),
)


def score(item) -> DocumentationScore:
    total = Decimal("0")
    missing = []
    for label, weight, present in SCORE_WEIGHTS:
        if present(item):
            total += weight
        else:
            missing.append(label)
    return DocumentationScore(value=float(total), missing=missing)


def is_documented(item) -> bool:
    """Photo, value, category and room; receipt and serial do not matter."""
    return has_photo(item) and has_value(item) and has_category(item) and has_location(item)


def rollup(items: Iterable) -> Rollup:
    """Totals for a room, container or property. Empty input gives zeros."""
    items = list(items)
    if not items:
        return Rollup(item_count=0, total_value=Decimal("0"), average_score=0.0)
    total_value = sum((item.purchase_price or Decimal("0") for item in items), Decimal("0"))
    total_score = sum(score(item).value for item in items)
    return Rollup(
        item_count=len(items),
        total_value=total_value,
        average_score=total_score / len(items),
    )
