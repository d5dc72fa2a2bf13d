"""Turn the model's free-form reply into clean fruit counts and prices.

The model is asked for JSON like

    {"counts": {"사과_바구니": 1}, "prices": {"사과_바구니": 5000}}

but it may wrap the object in prose or code fences, answer with the older
`baskets` field name, or report the same fruit both per basket and per
piece. Nothing here raises: the worst case is an empty result.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

BASKET_SUFFIX = "_바구니"

# Marks the model sometimes leaves in numbers: "5,000원", "₩3900"
_NUMBER_NOISE = (",", "원", "₩", " ")


@dataclass(frozen=True)
class FruitEntry:
    """One reported fruit, either per piece or per basket."""

    name: str
    basket: bool
    quantity: Optional[int] = None
    price: Optional[int] = None

    @classmethod
    def from_key(
        cls, key: str, quantity: Optional[int] = None, price: Optional[int] = None
    ) -> "FruitEntry":
        if key.endswith(BASKET_SUFFIX):
            return cls(key[: -len(BASKET_SUFFIX)], True, quantity, price)
        return cls(key, False, quantity, price)

    @property
    def key(self) -> str:
        return f"{self.name}{BASKET_SUFFIX}" if self.basket else self.name


@dataclass
class ReconciledResult:
    counts: Dict[str, int] = field(default_factory=dict)
    prices: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"counts": dict(self.counts), "prices": dict(self.prices)}


# -----------------------------------
# Parsing
# -----------------------------------


def reply_text(raw: Any) -> str:
    """Normalize whatever the model client returned into a plain string."""
    if raw is None:
        return "{}"
    if isinstance(raw, (list, tuple)):
        if not raw:
            return "{}"
        first = raw[0]
        if isinstance(first, dict):
            first = first.get("text")
        return reply_text(first)
    if isinstance(raw, dict):
        return json.dumps(raw, ensure_ascii=False)
    if not isinstance(raw, str):
        raw = str(raw)
    return raw or "{}"


def _loads_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        parsed = json.loads(text)
    except (ValueError, TypeError):
        return None
    return parsed if isinstance(parsed, dict) else None


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Best-effort JSON object extraction:
    1) strict parse of the whole text
    2) outermost {...} block (first "{" to last "}")
    3) empty dict
    """
    parsed = _loads_object(text.strip())
    if parsed is not None:
        return parsed

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        parsed = _loads_object(text[start : end + 1])
        if parsed is not None:
            return parsed

    logger.warning("No valid JSON object in model reply (length=%s)", len(text))
    return {}


# -----------------------------------
# Value coercion
# -----------------------------------


def to_count(value: Any) -> Optional[int]:
    """Non-negative int or None when the value is unusable."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        # 2.0 is a count, 2.5 is not
        if not math.isfinite(value) or not value.is_integer():
            return None
        number = int(value)
    elif isinstance(value, str):
        cleaned = value.strip()
        for mark in _NUMBER_NOISE:
            cleaned = cleaned.replace(mark, "")
        if not cleaned.isdecimal():
            return None
        number = int(cleaned)
    else:
        return None
    return number if number >= 0 else None


def _int_mapping(value: Any) -> Dict[str, int]:
    if not isinstance(value, dict):
        return {}
    result: Dict[str, int] = {}
    for key, raw_value in value.items():
        number = to_count(raw_value)
        if number is None:
            logger.debug("Dropping %r=%r (not a non-negative integer)", key, raw_value)
            continue
        result[str(key)] = number
    return result


# -----------------------------------
# Basket / individual disambiguation
# -----------------------------------


def reconcile_entries(entries: List[FruitEntry]) -> List[FruitEntry]:
    """
    Drop per-piece entries of fruits that also have a basket entry with a
    positive quantity. Basket entries are always kept.
    """
    covered = {
        entry.name
        for entry in entries
        if entry.basket and entry.quantity is not None and entry.quantity > 0
    }
    return [entry for entry in entries if entry.basket or entry.name not in covered]


def _merge_entries(counts: Dict[str, int], prices: Dict[str, int]) -> List[FruitEntry]:
    """One entry per key seen in either mapping; counts order first."""
    keys = list(counts) + [key for key in prices if key not in counts]
    return [FruitEntry.from_key(key, counts.get(key), prices.get(key)) for key in keys]


def reconcile_parsed(parsed: Dict[str, Any]) -> ReconciledResult:
    counts_raw = parsed.get("counts")
    if counts_raw is None:
        counts_raw = parsed.get("baskets")
    counts = _int_mapping(counts_raw)
    prices = _int_mapping(parsed.get("prices"))

    # A basket price may arrive without a basket count ("baskets" replies
    # count under the plain name and price under the suffixed one).
    entries = _merge_entries(counts, prices)
    kept = reconcile_entries(entries)

    dropped = len(entries) - len(kept)
    if dropped:
        logger.info("Dropped %s per-piece entries covered by basket entries", dropped)

    return ReconciledResult(
        counts={entry.key: entry.quantity for entry in kept if entry.quantity is not None},
        prices={entry.key: entry.price for entry in kept if entry.price is not None},
    )


def reconcile_reply(raw: Any) -> ReconciledResult:
    """Model reply (string, content parts, dict or None) → ReconciledResult."""
    text = reply_text(raw)
    parsed = extract_json_object(text)
    result = reconcile_parsed(parsed)
    logger.info("Reconciled reply: counts=%s prices=%s", result.counts, result.prices)
    return result
