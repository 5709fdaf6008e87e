"""
Canonical room element set + normalization.

Users say "couch", the designer model says "sofa", the analysis says
"Herringbone oak flooring". Everything is normalized into the same canonical
element names so isolation and restoration reasoning stays stable.
"""

import re
from typing import Iterable, Optional, Tuple


# General image composition. Always preservable, whatever the analysis found.
COMPOSITION_ELEMENTS = ("walls", "floor", "ceiling", "furniture", "windows")

# What a request that names no element ("make it cozier") is allowed to touch.
STYLING_ELEMENTS = ("furniture", "decor", "lighting", "textiles")

# Individual pieces that fall under the general "furniture" element.
FURNITURE_PIECES = frozenset({
    "sofa", "chairs", "table", "desk", "bed", "nightstand", "shelving", "cabinets",
})

# General elements that stand for a group of more specific ones
ELEMENT_GROUPS = {
    "furniture": FURNITURE_PIECES,
    "textiles": frozenset({"rug", "curtains", "cushions"}),
    "decor": frozenset({"artwork", "plants", "mirror"}),
}

# Common synonyms -> canonical elements
ELEMENT_ALIASES = {
    # walls
    "wall": "walls", "walls": "walls", "drywall": "walls", "plaster": "walls",
    "wallpaper": "walls", "paneling": "walls", "panelling": "walls",
    "brickwork": "walls", "accent wall": "walls",
    # floor
    "floor": "floor", "floors": "floor", "flooring": "floor",
    "floorboards": "floor", "parquet": "floor", "hardwood": "floor",
    "laminate": "floor",
    # ceiling
    "ceiling": "ceiling", "ceilings": "ceiling", "beams": "ceiling",
    "ceiling beams": "ceiling",
    # windows
    "window": "windows", "windows": "windows", "glazing": "windows",
    "skylight": "windows", "skylights": "windows",
    # furniture
    "furniture": "furniture", "furnishings": "furniture",
    # movable pieces
    "rug": "rug", "rugs": "rug", "carpet": "rug", "carpets": "rug", "carpeting": "rug",
    "sofa": "sofa", "sofas": "sofa", "couch": "sofa", "couches": "sofa",
    "sectional": "sofa", "loveseat": "sofa",
    "chair": "chairs", "chairs": "chairs", "armchair": "chairs",
    "armchairs": "chairs", "stool": "chairs", "stools": "chairs", "seating": "chairs",
    "table": "table", "tables": "table", "coffee table": "table",
    "dining table": "table", "side table": "table",
    "desk": "desk", "desks": "desk",
    "bed": "bed", "beds": "bed", "headboard": "bed", "bedding": "bed", "bed frame": "bed",
    "nightstand": "nightstand", "nightstands": "nightstand",
    "night stand": "nightstand", "bedside table": "nightstand",
    "shelf": "shelving", "shelves": "shelving", "shelving": "shelving",
    "bookshelf": "shelving", "bookshelves": "shelving",
    "bookcase": "shelving", "bookcases": "shelving",
    "cabinet": "cabinets", "cabinets": "cabinets", "cabinetry": "cabinets",
    "cupboards": "cabinets",
    "countertop": "countertops", "countertops": "countertops", "counters": "countertops",
    "worktop": "countertops", "worktops": "countertops",
    "backsplash": "backsplash",
    "fireplace": "fireplace", "mantel": "fireplace", "mantelpiece": "fireplace",
    "door": "doors", "doors": "doors",
    "mirror": "mirror", "mirrors": "mirror",
    # lighting
    "lighting": "lighting", "lights": "lighting", "lamp": "lighting",
    "lamps": "lighting", "chandelier": "lighting", "chandeliers": "lighting",
    "pendant": "lighting", "pendants": "lighting", "sconce": "lighting",
    "sconces": "lighting", "floor lamp": "lighting", "light fixture": "lighting",
    "light fixtures": "lighting",
    # soft furnishings and decor
    "curtain": "curtains", "curtains": "curtains", "drapes": "curtains",
    "drapery": "curtains", "blinds": "curtains", "shades": "curtains",
    "cushion": "cushions", "cushions": "cushions", "pillows": "cushions",
    "throw pillows": "cushions",
    "textiles": "textiles", "throws": "textiles",
    "art": "artwork", "artwork": "artwork", "artworks": "artwork",
    "painting": "artwork", "paintings": "artwork", "prints": "artwork",
    "poster": "artwork", "posters": "artwork", "wall art": "artwork",
    "plant": "plants", "plants": "plants", "greenery": "plants", "foliage": "plants",
    "decor": "decor", "accessories": "decor", "ornaments": "decor",
}

# Hyphenated compounds ("floor-to-ceiling") stay one token and match nothing.
_TOKEN_RE = re.compile(r"[a-z]+(?:[-'][a-z]+)*")


def tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall((text or "").lower())


def normalize_element(label: str) -> Optional[str]:
    """Map a single word or two-word phrase to its canonical element, if any."""
    key = (label or "").strip().lower()
    key = key.replace("_", " ")
    key = " ".join(key.split())
    if key in ELEMENT_ALIASES.values():
        return key
    return ELEMENT_ALIASES.get(key)


def elements_in(text: str) -> Tuple[str, ...]:
    """
    Canonical elements mentioned in free text, in order of first mention.

    Two-word phrases win over their parts, so "wall art" is artwork and
    "floor lamp" is lighting.
    """
    tokens = tokenize(text)
    found: list[str] = []
    i = 0
    while i < len(tokens):
        element = None
        if i + 1 < len(tokens):
            element = ELEMENT_ALIASES.get(f"{tokens[i]} {tokens[i + 1]}")
            if element:
                i += 2
        if element is None:
            element = ELEMENT_ALIASES.get(tokens[i])
            i += 1
        if element and element not in found:
            found.append(element)
    return tuple(found)


def features_for_element(element: str, features: Iterable[str]) -> Tuple[str, ...]:
    """Architectural features (literal strings) that describe the given element."""
    return tuple(f for f in features if element in elements_in(f))


def element_within(element: str, scope: Iterable[str]) -> bool:
    """True when the element is in scope itself or belongs to a group in scope."""
    return any(element == s or element in ELEMENT_GROUPS.get(s, ()) for s in scope)
