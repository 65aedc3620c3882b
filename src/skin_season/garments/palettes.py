"""
Read-only season reference data, built once at import.

Each season palette is grouped into neutrals, accents, brights and softs. Lab
values are precomputed so scoring never converts palette colors per request.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

from ..color_math import hex_to_lab
from ..types import LabColor

CATEGORIES: Tuple[str, ...] = ("neutrals", "accents", "brights", "softs")


@dataclass(frozen=True, slots=True)
class PaletteColor:
    name: str
    hex: str
    category: str
    season: str
    lab: LabColor

    def as_dict(self) -> Dict[str, str]:
        return {"name": self.name, "hex": self.hex, "category": self.category, "season": self.season}


@dataclass(frozen=True, slots=True)
class SeasonProfile:
    season: str
    undertone: str
    depth: str
    clarity: str
    description: str
    best_colors: Tuple[str, ...]
    avoid_colors: Tuple[str, ...]
    swatches: Tuple[str, ...]

    def as_dict(self) -> Dict[str, object]:
        return {
            "season": self.season,
            "undertone": self.undertone,
            "depth": self.depth,
            "clarity": self.clarity,
            "description": self.description,
            "best_colors": list(self.best_colors),
            "avoid_colors": list(self.avoid_colors),
            "swatches": list(self.swatches),
        }


_PALETTE_SOURCE: Dict[str, Dict[str, Tuple[Tuple[str, str], ...]]] = {
    "spring": {
        "neutrals": (
            ("Warm ivory", "#F6EAD7"),
            ("Cream", "#FFF1D6"),
            ("Light camel", "#D8B58A"),
            ("Soft beige", "#E6D2B5"),
            ("Golden sand", "#D9B77C"),
        ),
        "accents": (
            ("Coral", "#FF6F61"),
            ("Peach", "#FFB38A"),
            ("Warm rose", "#E8907A"),
            ("Apricot", "#FF9F6B"),
            ("Melon", "#FF8C69"),
        ),
        "brights": (
            ("Cantaloupe", "#FFA64D"),
            ("Warm yellow", "#FFD84D"),
            ("Bright aqua", "#2ECED0"),
            ("Light turquoise", "#5ED6C1"),
            ("Sunny gold", "#FFC83D"),
        ),
        "softs": (
            ("Mint", "#BFE6C7"),
            ("Soft peach", "#FFD1B3"),
            ("Light warm pink", "#F8C0A8"),
            ("Soft teal", "#7FCFC3"),
            ("Buttercream", "#FFF0B3"),
        ),
    },
    "summer": {
        "neutrals": (
            ("Cool ivory", "#F2F0EB"),
            ("Soft gray", "#C8C8D0"),
            ("Rose beige", "#E3D5D2"),
            ("Misty taupe", "#CDC4C1"),
            ("Silver frost", "#DDE1E8"),
        ),
        "accents": (
            ("Dusty rose", "#D8A7A7"),
            ("Mauve", "#C8A2C8"),
            ("Soft berry", "#B58CA5"),
            ("Lavender", "#C7B8E0"),
            ("Ballet pink", "#F4C5C9"),
        ),
        "brights": (
            ("Periwinkle", "#8FA4E8"),
            ("Cool aqua", "#8FD6D5"),
            ("Powder blue", "#AFC8E7"),
            ("Soft fuchsia", "#D66DA3"),
            ("Strawberry ice", "#E87BAA"),
        ),
        "softs": (
            ("Blue gray", "#B7C4CF"),
            ("Misty blue", "#C6D7E2"),
            ("Heather", "#D8CBE2"),
            ("Soft lilac", "#E7D6F5"),
            ("Cloud pink", "#F7DDE3"),
        ),
    },
    "autumn": {
        "neutrals": (
            ("Warm beige", "#E6D5B8"),
            ("Camel", "#C1A16B"),
            ("Olive taupe", "#B6A892"),
            ("Caramel", "#B78B57"),
            ("Soft olive", "#A89F80"),
        ),
        "accents": (
            ("Terracotta", "#C96541"),
            ("Rust", "#B4441C"),
            ("Burnt sienna", "#A85F3D"),
            ("Mustard", "#D3A63C"),
            ("Warm olive", "#8E8C53"),
        ),
        "brights": (
            ("Pumpkin", "#F18F01"),
            ("Marigold", "#FFC145"),
            ("Moss green", "#8FAE3E"),
            ("Teal", "#1B998B"),
            ("Brick red", "#A5452B"),
        ),
        "softs": (
            ("Sage", "#C4C8A8"),
            ("Dusty olive", "#A3A380"),
            ("Clay", "#C9A28C"),
            ("Soft terracotta", "#D1A38A"),
            ("Muted gold", "#D6BA6A"),
        ),
    },
    "winter": {
        "neutrals": (
            ("Snow white", "#FFFFFF"),
            ("Cool black", "#0A0A0A"),
            ("Charcoal", "#333333"),
            ("Midnight navy", "#1E3461"),
            ("Silver gray", "#BFC3C9"),
            ("Blue-gray", "#8A97A8"),
        ),
        "accents": (
            ("Fuchsia", "#E3007E"),
            ("Berry", "#B8004E"),
            ("Royal purple", "#5A2D82"),
            ("Crimson", "#D1002C"),
            ("Electric magenta", "#FF1B8D"),
        ),
        "brights": (
            ("Blue red", "#E0004D"),
            ("Sapphire blue", "#0F52BA"),
            ("Deep teal", "#00687A"),
            ("Ice blue", "#A7D8F0"),
            ("Electric violet", "#8F00FF"),
        ),
        "softs": (
            ("Icy lavender", "#D6D4F7"),
            ("Ice pink", "#F6D3E6"),
            ("Frost blue", "#D8EAFE"),
            ("Soft wine", "#C79CA6"),
            ("Cool plum", "#836283"),
        ),
    },
}


def _build_palettes() -> Mapping[str, Tuple[PaletteColor, ...]]:
    palettes: Dict[str, Tuple[PaletteColor, ...]] = {}
    for season, groups in _PALETTE_SOURCE.items():
        palettes[season] = tuple(
            PaletteColor(name=name, hex=hex_value, category=category, season=season, lab=hex_to_lab(hex_value))
            for category in CATEGORIES
            for name, hex_value in groups[category]
        )
    return palettes


SEASON_PALETTES: Mapping[str, Tuple[PaletteColor, ...]] = _build_palettes()

SEASON_PROFILES: Mapping[str, SeasonProfile] = {
    "spring": SeasonProfile(
        season="spring",
        undertone="warm",
        depth="light",
        clarity="clear",
        description="Warm & Light (Spring)",
        best_colors=("coral", "peach", "warm ivory", "golden yellow", "turquoise", "light warm green", "warm pink", "cream"),
        avoid_colors=("black", "pure white", "cool grey", "burgundy", "dark navy"),
        swatches=("#FF7F50", "#FFDAB9", "#FFFFF0", "#FFD700", "#40E0D0", "#90EE90", "#FFB6C1", "#FFFDD0"),
    ),
    "summer": SeasonProfile(
        season="summer",
        undertone="cool",
        depth="light",
        clarity="muted",
        description="Cool & Soft (Summer)",
        best_colors=("lavender", "soft pink", "powder blue", "rose", "mauve", "soft grey", "periwinkle", "dusty blue"),
        avoid_colors=("orange", "gold", "warm brown", "bright yellow", "rust"),
        swatches=("#E6E6FA", "#FFB6C1", "#B0E0E6", "#FF007F", "#E0B0FF", "#C0C0C0", "#CCCCFF", "#6699CC"),
    ),
    "autumn": SeasonProfile(
        season="autumn",
        undertone="warm",
        depth="deep",
        clarity="muted",
        description="Warm & Deep (Autumn)",
        best_colors=("camel", "rust", "olive", "burnt orange", "warm brown", "teal", "mustard", "terracotta"),
        avoid_colors=("pastel pink", "icy blue", "silver grey", "bright white", "fuchsia"),
        swatches=("#C19A6B", "#B7410E", "#808000", "#CC5500", "#964B00", "#008080", "#FFDB58", "#E2725B"),
    ),
    "winter": SeasonProfile(
        season="winter",
        undertone="cool",
        depth="deep",
        clarity="vivid",
        description="Cool & Deep (Winter)",
        best_colors=("black", "pure white", "blue red", "deep teal", "royal blue", "fuchsia", "icy grey", "burgundy"),
        avoid_colors=("orange", "gold", "warm beige", "rust", "mustard"),
        swatches=("#000000", "#FFFFFF", "#E0004D", "#00687A", "#4169E1", "#FF00FF", "#D3D3D3", "#800020"),
    ),
}

# Neighbouring micro-seasons across the season boundary share one trait.
CROSSOVER_SEASONS: Mapping[str, str] = {
    "light_spring": "summer",
    "light_summer": "spring",
    "clear_spring": "winter",
    "clear_winter": "spring",
    "warm_spring": "autumn",
    "warm_autumn": "spring",
    "soft_summer": "autumn",
    "soft_autumn": "summer",
    "cool_summer": "winter",
    "cool_winter": "summer",
    "deep_autumn": "winter",
    "deep_winter": "autumn",
}


def palette_for(season: str) -> Tuple[PaletteColor, ...]:
    try:
        return SEASON_PALETTES[season]
    except KeyError as exc:
        raise ValueError(f"Unknown season: {season}") from exc


def all_palette_colors() -> Tuple[PaletteColor, ...]:
    return tuple(color for season in SEASON_PALETTES for color in SEASON_PALETTES[season])
