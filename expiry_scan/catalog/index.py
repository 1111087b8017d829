from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

logger = logging.getLogger(__name__)

_NON_DIGIT_RE = re.compile(r"\D")

# Lengths that carry a GS1 check digit (EAN-8, UPC-A, EAN-13, GTIN-14).
GTIN_LENGTHS = frozenset({8, 12, 13, 14})


def digits_only(value: str | None) -> str:
    return _NON_DIGIT_RE.sub("", str(value or ""))


def strip_one_zero(value: str) -> str:
    return value[1:] if value.startswith("0") else value


def gtin_variants(digits: str) -> tuple[str, str, str]:
    """Return ``(gtin14, gtin13, gtin12)`` for a GTIN-length digit string."""
    g14 = digits.zfill(14)
    g13 = strip_one_zero(g14)
    g12 = strip_one_zero(g13)
    return g14, g13, g12


@dataclass(frozen=True)
class CatalogHit:
    identifier: str
    name: str


@dataclass(frozen=True)
class CatalogIndex:
    """Read-only lookup tables derived from one catalog snapshot.

    ``exact`` maps every equivalent digit representation of an identifier to
    its product name. ``last8`` maps the trailing 8 digits to every catalog
    entry sharing them, in catalog insertion order.
    """

    exact: Mapping[str, str] = field(default_factory=dict)
    last8: Mapping[str, tuple[CatalogHit, ...]] = field(default_factory=dict)
    size: int = 0

    def __len__(self) -> int:
        return self.size


def rebuild_index(catalog: Mapping[str, str]) -> CatalogIndex:
    """Build a fresh ``CatalogIndex`` from ``identifier -> name``.

    Entries are visited in mapping order; later entries overwrite earlier ones
    on any shared exact key while last-8 buckets accumulate.
    """
    exact: dict[str, str] = {}
    last8: dict[str, list[CatalogHit]] = {}

    for identifier, name in catalog.items():
        digits = digits_only(identifier)
        if not digits:
            continue

        exact[digits] = name
        exact[str(identifier)] = name

        if len(digits) in GTIN_LENGTHS:
            g14, g13, g12 = gtin_variants(digits)
            exact[g14] = name
            exact[g13] = name
            exact[g12] = name
            last8.setdefault(g14[-8:], []).append(CatalogHit(digits, name))
        elif len(digits) >= 8:
            last8.setdefault(digits[-8:], []).append(CatalogHit(digits, name))

        stripped = digits.lstrip("0")
        if stripped and stripped != digits:
            exact[stripped] = name

    logger.info("Catalog index built: %d exact entries, %d last-8 entries", len(exact), len(last8))

    return CatalogIndex(
        exact=MappingProxyType(exact),
        last8=MappingProxyType({key: tuple(hits) for key, hits in last8.items()}),
        size=len(catalog),
    )
