"""Reference catalog of host-brand product names, loaded once per process."""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, List, Optional, Tuple

from .errors import CatalogUnavailableError
from .utils import normalize_product_name

logger = logging.getLogger(__name__)

NAME_KEYS = ("nom_complet", "nom", "name")


def entry_name(entry: Any) -> Optional[str]:
    """Read a product name from a catalog entry, whatever key it is stored under."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        for key in NAME_KEYS:
            value = entry.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def _entries_from_payload(payload: Any) -> List[Any]:
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        for key in ("produits", "products"):
            if isinstance(payload.get(key), list):
                return payload[key]
    raise ValueError("catalog payload has no product list")


class ProductCatalog:
    """Read-only product name list with a primary and a fallback source.

    ``load()`` is idempotent and safe to call from several threads: the first
    successful load is kept and later calls return immediately.
    """

    def __init__(self, primary: Optional[Path] = None, fallback: Optional[Path] = None) -> None:
        self.primary = Path(primary) if primary else None
        self.fallback = Path(fallback) if fallback else None
        self.source: Optional[Path] = None
        self._entries: List[Tuple[str, str]] = []
        self._loaded = False
        self._lock = threading.Lock()

    @classmethod
    def from_names(cls, names: Iterable[Any]) -> "ProductCatalog":
        catalog = cls()
        catalog._set_entries(list(names))
        catalog._loaded = True
        return catalog

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def entries(self) -> List[Tuple[str, str]]:
        """(original name, normalized name) pairs; loads the catalog if needed."""
        self.load()
        return self._entries

    def __len__(self) -> int:
        return len(self.entries)

    def load(self) -> None:
        if self._loaded:
            return
        with self._lock:
            if self._loaded:
                return
            errors: dict[str, str] = {}
            for path in (self.primary, self.fallback):
                if path is None:
                    continue
                try:
                    entries = _entries_from_payload(json.loads(path.read_text(encoding="utf-8")))
                except (OSError, ValueError) as exc:
                    logger.warning("Product catalog %s could not be loaded: %s", path, exc)
                    errors[str(path)] = str(exc)
                    continue
                self._set_entries(entries)
                self.source = path
                self._loaded = True
                if path != self.primary:
                    logger.warning("Using unfiltered fallback catalog %s (%d products)", path, len(self._entries))
                else:
                    logger.info("Product catalog %s loaded (%d products)", path, len(self._entries))
                return
            raise CatalogUnavailableError("Unable to load the product catalog", context={"errors": errors})

    async def aload(self) -> None:
        await asyncio.to_thread(self.load)

    def _set_entries(self, entries: List[Any]) -> None:
        names = (entry_name(e) for e in entries)
        self._entries = [(name, normalize_product_name(name)) for name in names if name]
