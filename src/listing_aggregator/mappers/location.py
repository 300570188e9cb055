"""Location heuristics for free-text addresses."""
from __future__ import annotations

import re
import unicodedata

NEIGHBORHOOD_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:barrio|sector|zona)\s+([^,\n]+)", re.I),
    re.compile(r"([^,\n]+),\s*bogot[aá]", re.I),
    re.compile(r"([^,\n]+),\s*[^,]*$"),
)

# folded name -> display name
KNOWN_CITIES: dict[str, str] = {
    "bogota": "Bogotá",
    "medellin": "Medellín",
    "cali": "Cali",
    "barranquilla": "Barranquilla",
    "cartagena": "Cartagena",
    "bucaramanga": "Bucaramanga",
    "pereira": "Pereira",
    "ibague": "Ibagué",
    "manizales": "Manizales",
    "villavicencio": "Villavicencio",
    "pasto": "Pasto",
    "monteria": "Montería",
    "valledupar": "Valledupar",
    "neiva": "Neiva",
    "soledad": "Soledad",
    "armenia": "Armenia",
    "soacha": "Soacha",
    "popayan": "Popayán",
    "chia": "Chía",
}


def fold(text: str) -> str:
    """Lowercase and strip accents so "Bogotá" matches "bogota"."""
    decomposed = unicodedata.normalize("NFKD", text or "")
    return "".join(c for c in decomposed if not unicodedata.combining(c)).lower().strip()


def extract_neighborhood(address: str) -> str:
    if not address:
        return ""
    for pattern in NEIGHBORHOOD_PATTERNS:
        match = pattern.search(address)
        if match and match.group(1).strip():
            return match.group(1).strip()
    return ""


def extract_city(address: str) -> str:
    folded = fold(address)
    if not folded:
        return ""
    for key, display in KNOWN_CITIES.items():
        if re.search(rf"\b{key}\b", folded):
            return display
    return ""
