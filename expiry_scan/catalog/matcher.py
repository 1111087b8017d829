"""Resolve a scanned identifier against a ``CatalogIndex``.

Strategies run from most to least specific and the first hit wins:

1. exact lookup of the raw GTIN-14 then GTIN-13 digits
2. exact lookup of the GTIN-14 digits left-padded to 14
3. exact lookup with leading zeros removed
4. last-8 digit bucket (``LAST8``, or ``AMBIGUOUS`` when shared)
5. zero-padding sweep for 5-11 digit internal codes

Only digit-string equality is used; there is no similarity scoring.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from expiry_scan.catalog.index import CatalogIndex, digits_only


class MatchType(str, enum.Enum):
    EXACT = "EXACT"
    LAST8 = "LAST8"
    AMBIGUOUS = "AMBIGUOUS"
    API = "API"        # resolved by an external lookup after NONE
    NONE = "NONE"


@dataclass(frozen=True)
class MatchResult:
    product_name: str = ""
    match_type: MatchType = MatchType.NONE

    @property
    def found(self) -> bool:
        return self.match_type is not MatchType.NONE

    @property
    def is_ambiguous(self) -> bool:
        return self.match_type is MatchType.AMBIGUOUS

    def to_dict(self) -> dict[str, str]:
        return {"product_name": self.product_name, "match_type": self.match_type.value}


NO_MATCH = MatchResult()


def _exact(index: CatalogIndex, key: str) -> Optional[MatchResult]:
    if key and key in index.exact:
        return MatchResult(index.exact[key], MatchType.EXACT)
    return None


def match(index: CatalogIndex, gtin14: str | None, gtin13: str | None) -> MatchResult:
    digits14 = digits_only(gtin14)
    digits13 = digits_only(gtin13)

    candidates = [digits14, digits13]
    if digits14:
        candidates += [digits14.zfill(14), digits14.lstrip("0")]

    for key in candidates:
        hit = _exact(index, key)
        if hit:
            return hit

    if len(digits14) >= 8:
        bucket = index.last8.get(digits14[-8:], ())
        if len(bucket) == 1:
            return MatchResult(bucket[0].name, MatchType.LAST8)
        if len(bucket) > 1:
            # Tie-break: the first entry in catalog insertion order.
            return MatchResult(bucket[0].name, MatchType.AMBIGUOUS)

    if 5 <= len(digits14) <= 11:
        for width in range(len(digits14), 15):
            hit = _exact(index, digits14.zfill(width))
            if hit:
                return hit

    return NO_MATCH
