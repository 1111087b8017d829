from __future__ import annotations

import logging
import threading
from typing import Iterable, Mapping

from sqlalchemy import select

from expiry_scan import db
from expiry_scan.catalog.index import CatalogIndex, rebuild_index
from expiry_scan.catalog.master_file import CatalogEntry
from expiry_scan.models import CatalogProduct

logger = logging.getLogger(__name__)


class CatalogIndexHolder:
    """Owns the published ``CatalogIndex`` snapshot.

    Readers grab ``current`` once and use that snapshot for the whole match.
    Rebuilds are serialised by a lock and published by a single reference
    swap, so a reader sees either the old or the new index, never a mix.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._index = rebuild_index({})
        self._version = 0

    @property
    def current(self) -> CatalogIndex:
        return self._index

    @property
    def version(self) -> int:
        return self._version

    def rebuild(self, catalog: Mapping[str, str]) -> CatalogIndex:
        with self._lock:
            index = rebuild_index(catalog)
            self._index = index
            self._version += 1
        return index


catalog_index = CatalogIndexHolder()


def load_catalog() -> dict[str, str]:
    """Return the persisted catalog in insertion order."""
    rows = db.session.execute(select(CatalogProduct).order_by(CatalogProduct.id)).scalars()
    return {row.gtin: row.name for row in rows}


def refresh_catalog_index() -> CatalogIndex:
    return catalog_index.rebuild(load_catalog())


def catalog_size() -> int:
    return db.session.query(CatalogProduct).count()


def upsert_product(gtin: str, name: str) -> bool:
    """Insert or rename one catalog entry. Does not commit."""
    gtin = (gtin or "").strip()
    name = (name or "").strip()
    if not gtin or not name:
        return False
    product = db.session.execute(
        select(CatalogProduct).where(CatalogProduct.gtin == gtin)
    ).scalar_one_or_none()
    if product is None:
        db.session.add(CatalogProduct(gtin=gtin, name=name))
    else:
        # Renaming keeps the original insertion position.
        product.name = name
    db.session.flush()
    return True


def replace_catalog(products: Iterable[CatalogEntry], append: bool = False, commit: bool = True) -> int:
    """Persist imported products and rebuild the index. Returns rows written.

    With ``commit=False`` the caller owns the transaction and must refresh the
    index after committing.
    """
    if not append:
        db.session.query(CatalogProduct).delete()
        db.session.flush()

    count = 0
    for product in products:
        if upsert_product(product.gtin, product.name):
            count += 1

    if commit:
        db.session.commit()
        refresh_catalog_index()
    logger.info("Catalog import stored %d products (append=%s)", count, append)
    return count
