"""Curated keyword tables used by the line classifier and the catalog matcher.

Patterns are matched against text folded by ``utils.fold_text`` (lowercase,
no accents, single spaces), so they are written in that form.
"""
from __future__ import annotations

import re
from typing import Dict, List, Pattern, Tuple

# Phrases that look like charges but name genuine products.
PRODUCT_EXCEPTIONS: Tuple[str, ...] = (
    "transport de chaleur",
    "frais bitume",
    "eco membrane",
    "palette de",
    "forfait etancheite",
    "garantie decennale",
)

# Host-brand product lines; a line naming one of them is always a product.
HOST_PRODUCT_TOKENS: Tuple[str, ...] = (
    "soprema",
    "sopralene",
    "elastophene",
    "soprafix",
    "soprasolar",
    "mammouth",
    "alsan",
    "efisarking",
    "efisol",
    "texself",
    "verasol",
)

# Keywords flagging brand membership in normalized (uppercase) product names.
HOST_BRAND_KEYWORDS: Tuple[str, ...] = (
    "SOPRA",
    "SOPREMA",
    "ELASTOPHENE",
    "SOPRALENE",
    "SOPRAFIX",
    "SOPRFIX",
    "MAMMOUTH",
    "ALSAN",
    "CURAL",
    "EFISARKING",
    "SOPRASOLAR",
    "EFISOL",
    "FLASHING",
    "VAPOR",
    "PRIMER",
    "DEPCO",
    "FLAG",
    "VERASOL",
    "TEXSELF",
)

_RAW_NON_PRODUCT_PATTERNS: Dict[str, List[str]] = {
    "transport": [
        r"^transport",
        r"frais de transport",
        r"port et emballage",
        r"livraison",
        r"expedition",
        r"franco de port",
        r"participation aux frais de port",
        r"supplement transport",
        r"cout de transport",
        r"frais de port",
    ],
    "taxes": [
        r"^taxe",
        r"^tva",
        r"eco[-\s]?taxe",
        r"eco[-\s]?participation",
        r"eco[-\s]?contribution",
        r"contribution environnementale",
        r"taxe environnementale",
        r"deee",
        r"tgap",
    ],
    "services": [
        r"main d\s?'?\s?oeuvre",
        r"installation",
        r"pose",
        r"montage",
        r"mise en service",
        r"formation",
        r"assistance technique",
        r"assistance pose",
        r"location",
        r"prestation",
        r"intervention",
        r"deplacement",
        r"visite technique",
    ],
    "discounts": [
        r"remise",
        r"rabais",
        r"ristourne",
        r"avoir",
        r"reduction",
        r"escompte",
        r"promotion",
        r"offre commerciale",
    ],
    "fees": [
        r"frais de dossier",
        r"frais administratifs?",
        r"frais de gestion",
        r"frais bancaires?",
        r"frais financiers?",
        r"interets de retard",
        r"penalite",
        r"majoration",
        r"frais de traitement",
        r"frais supplementaires?",
        r"participation aux frais",
        r"contribution aux frais",
        r"consigne",
        r"caution",
        r"depot de garantie",
        r"assurance",
        r"garantie",
        r"reprise",
        r"retour",
        r"^palette",
        r"supplement",
        r"forfait",
        r"abonnement",
        r"cotisation",
    ],
}

# Evaluation order matters: first matching category wins.
NON_PRODUCT_PATTERNS: Tuple[Tuple[str, Tuple[Pattern[str], ...]], ...] = tuple(
    (category, tuple(re.compile(p) for p in patterns))
    for category, patterns in _RAW_NON_PRODUCT_PATTERNS.items()
)
