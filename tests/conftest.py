import json

import pytest

from invoice_reconquest.catalog import ProductCatalog
from invoice_reconquest.matcher import CatalogMatcher

CATALOG_ENTRIES = [
    "SOPRALENE FLAM 180-25",
    "ELASTOPHENE FLAM 25 AR",
    "ALSAN 500 RESINE",
    {"nom_complet": "EFIGREEN ACIER"},
    {"nom": "MAMMOUTH NEODYL"},
]


@pytest.fixture
def catalog():
    return ProductCatalog.from_names(CATALOG_ENTRIES)


@pytest.fixture
def matcher(catalog):
    return CatalogMatcher(catalog)


@pytest.fixture
def catalog_file(tmp_path):
    path = tmp_path / "catalog.json"
    path.write_text(json.dumps({"total_produits": len(CATALOG_ENTRIES), "produits": CATALOG_ENTRIES}), encoding="utf-8")
    return path
