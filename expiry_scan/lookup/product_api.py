"""Online product lookup for identifiers the local catalog does not know.

Sources are tried in order: OpenFDA (package NDC), DailyMed (NDC labels),
then Open Food Facts (OTC / supplements by GTIN-13). All are free and need no
API key. A failing source is logged and the next one is tried.
"""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from expiry_scan.catalog.index import gtin_variants

logger = logging.getLogger(__name__)

DEFAULT_OPEN_FDA_URL = "https://api.fda.gov/drug/ndc.json"
DEFAULT_DAILYMED_URL = "https://dailymed.nlm.nih.gov/dailymed/services/v2/spls.json"
DEFAULT_OPEN_FOOD_FACTS_URL = "https://world.openfoodfacts.org/api/v0/product/"
DEFAULT_TIMEOUT_SECONDS = 8

_USER_AGENT = "PharmaExpiryScan/1.0"
_MAX_NAME_LENGTH = 100
_HEALTH_CATEGORY_WORDS = ("health", "medicine", "pharmaceutical", "supplement", "vitamin", "drug", "otc")


@dataclass(frozen=True)
class ProductLookup:
    name: str
    brand: str = ""
    source: str = ""
    ndc: Optional[str] = None
    is_health_product: Optional[bool] = None

    @property
    def display_name(self) -> str:
        return f"{self.brand} {self.name}" if self.brand else self.name


def extract_ndc_from_gtin(gtin14: str | None) -> Optional[str]:
    # GTIN-14 = indicator + UPC-A; the UPC-A of a US drug is 3 + NDC-10 + check,
    # taken here as the 11 characters after the first two.
    if not gtin14 or len(gtin14) < 14:
        return None
    return gtin14[2:13]


def format_ndc(ndc: str | None) -> Optional[str]:
    """Dash an NDC: 11 digits as 5-4-2, 10 digits as 5-3-2."""
    if not ndc or len(ndc) < 10:
        return ndc
    if len(ndc) == 11:
        return f"{ndc[0:5]}-{ndc[5:9]}-{ndc[9:11]}"
    if len(ndc) == 10:
        return f"{ndc[0:5]}-{ndc[5:8]}-{ndc[8:10]}"
    return ndc


def _get_json(url: str, timeout: float, headers: dict[str, str] | None = None) -> tuple[int, Any]:
    req = urllib.request.Request(url, method="GET")
    req.add_header("Accept", "application/json")
    req.add_header("User-Agent", _USER_AGENT)
    if headers:
        for k, v in headers.items():
            req.add_header(k, v)

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            return status, json.loads(resp.read().decode("utf-8"))
    except urllib.error.HTTPError as e:
        return int(getattr(e, "code", 500)), None


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _first(items: Any) -> Any:
    return items[0] if isinstance(items, list) and items else None


def lookup_open_fda(ndc11: Optional[str], base_url: str = DEFAULT_OPEN_FDA_URL,
                    timeout: float = DEFAULT_TIMEOUT_SECONDS) -> Optional[ProductLookup]:
    search = f'packaging.package_ndc:"{format_ndc(ndc11)}"' if ndc11 else ""
    url = f"{base_url}?search={urllib.parse.quote(search)}&limit=1"

    status, data = _get_json(url, timeout)
    if not 200 <= status < 300 or not isinstance(data, dict):
        return None

    drug = _first(data.get("results"))
    if not isinstance(drug, dict):
        return None

    name = _text(drug.get("brand_name")) or _text(drug.get("generic_name"))
    if not name:
        openfda = drug.get("openfda")
        if isinstance(openfda, dict):
            brand_names = openfda.get("brand_name")
            name = _text(_first(brand_names)) if isinstance(brand_names, list) else _text(brand_names)

    ingredient = _first(drug.get("active_ingredients"))
    if isinstance(ingredient, dict):
        strength = _text(ingredient.get("strength"))
        if strength and strength not in name:
            name = f"{name} {strength}"

    dosage_form = _text(drug.get("dosage_form"))
    if dosage_form and dosage_form.lower() not in name.lower():
        name = f"{name} {dosage_form}"

    name = name.strip()
    if not name:
        return None
    return ProductLookup(
        name=name,
        brand=_text(drug.get("labeler_name")),
        source="OpenFDA",
        ndc=_text(drug.get("product_ndc")) or ndc11,
    )


def lookup_daily_med(ndc: Optional[str], base_url: str = DEFAULT_DAILYMED_URL,
                     timeout: float = DEFAULT_TIMEOUT_SECONDS) -> Optional[ProductLookup]:
    if not ndc:
        return None

    status, data = _get_json(f"{base_url}?ndc={format_ndc(ndc)}", timeout)
    if not 200 <= status < 300 or not isinstance(data, dict):
        return None

    spl = _first(data.get("data"))
    if not isinstance(spl, dict):
        return None

    # DailyMed titles can be very long
    name = (_text(spl.get("title")) or _text(spl.get("name")))[:_MAX_NAME_LENGTH].strip()
    if not name:
        return None
    return ProductLookup(name=name, brand=_text(spl.get("labeler")), source="DailyMed", ndc=ndc)


def lookup_open_food_facts(barcode: str, base_url: str = DEFAULT_OPEN_FOOD_FACTS_URL,
                           timeout: float = DEFAULT_TIMEOUT_SECONDS) -> Optional[ProductLookup]:
    status, data = _get_json(f"{base_url}{barcode}.json", timeout)
    if not 200 <= status < 300 or not isinstance(data, dict):
        return None
    product = data.get("product")
    if data.get("status") != 1 or not isinstance(product, dict):
        return None

    categories = _text(product.get("categories")).lower()
    name = (
        _text(product.get("product_name"))
        or _text(product.get("product_name_en"))
        or _text(product.get("generic_name"))
    )
    if not name:
        return None
    return ProductLookup(
        name=name,
        brand=_text(product.get("brands")),
        source="OpenFoodFacts",
        is_health_product=any(word in categories for word in _HEALTH_CATEGORY_WORDS),
    )


def lookup_product(gtin: str, config: Mapping[str, Any] | None = None) -> Optional[ProductLookup]:
    """Try every online source for ``gtin``. Returns ``None`` when nothing is found.

    Whether to look up at all is the caller's decision; ``config`` only
    supplies URLs and the timeout.
    """
    config = config or {}
    if not gtin:
        return None

    timeout = float(config.get("LOOKUP_TIMEOUT_SECONDS") or DEFAULT_TIMEOUT_SECONDS)
    gtin14, gtin13, _ = gtin_variants(gtin)
    ndc11 = extract_ndc_from_gtin(gtin14)

    logger.info("API lookup: GTIN=%s, NDC=%s", gtin, ndc11)

    attempts = (
        ("OpenFDA", lambda: lookup_open_fda(
            ndc11, config.get("OPEN_FDA_URL") or DEFAULT_OPEN_FDA_URL, timeout)),
        ("DailyMed", lambda: lookup_daily_med(
            ndc11, config.get("DAILYMED_URL") or DEFAULT_DAILYMED_URL, timeout)),
        ("OpenFoodFacts", lambda: lookup_open_food_facts(
            gtin13, config.get("OPEN_FOOD_FACTS_URL") or DEFAULT_OPEN_FOOD_FACTS_URL, timeout)),
    )

    for source, attempt in attempts:
        try:
            result = attempt()
        except (urllib.error.URLError, OSError, ValueError, TypeError, AttributeError) as e:
            logger.warning("%s lookup failed for %s: %s", source, gtin, e)
            continue
        if result:
            logger.info("Found in %s: %s", source, result.name)
            return result

    logger.info("No API match found for %s", gtin)
    return None
