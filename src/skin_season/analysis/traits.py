from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..types import AttributeProfile


@dataclass(frozen=True, slots=True)
class TraitExplanation:
    """Plain-language card for one skin attribute."""

    trait: str
    value: str
    definition: str
    bullets: Tuple[str, str, str]

    def as_dict(self) -> Dict[str, object]:
        return {
            "trait": self.trait,
            "value": self.value,
            "definition": self.definition,
            "bullets": list(self.bullets),
        }


_DEPTH_TEXT: Dict[str, Tuple[str, Tuple[str, str, str]]] = {
    "light": (
        "Your depth is light. Very dark colors can overpower you, while lighter shades keep you open and fresh.",
        (
            "Right depth makes you look brighter; too-dark can create under-eye shadows.",
            "Black or very dark shades can make you look tired.",
            "Choose light-to-mid tones: soft beige, warm ivory, light teal.",
        ),
    ),
    "medium": (
        "Your depth is medium. You handle mid-tones best, and extremes need careful balance.",
        (
            "Balanced depth makes you look clear; extremes can make you look washed out or heavy.",
            "Neon brights or stark white and black can feel harsh.",
            "Choose mid tones: camel, olive, dusty blue, cocoa.",
        ),
    ),
    "deep": (
        "Your depth is deep. Richer, darker colors support your contrast and keep you looking defined.",
        (
            "Deeper colors sharpen your features; too-light can look faded.",
            "Very pale colors can drain you.",
            "Choose rich tones: espresso, deep teal, aubergine, navy.",
        ),
    ),
}

_CLARITY_TEXT: Dict[str, Tuple[str, Tuple[str, str, str]]] = {
    "muted": (
        "Your clarity is soft. Slightly muted colors blend with you and make your skin look smoother.",
        (
            "Soft colors make you look calm and naturally radiant.",
            "Neon or very pure colors can look loud and overpower you.",
            "Choose muted tones: dusty rose, sage, soft teal, warm taupe.",
        ),
    ),
    "clear": (
        "Your clarity is clear. Cleaner, brighter colors make your face look sharper and more energized.",
        (
            "Clear colors make you look bright and defined.",
            "Dusty or greyed colors can make you look flat.",
            "Choose clean tones: coral, true teal, bright navy, clear red.",
        ),
    ),
}


def _undertone_text(undertone: str, lean: Optional[str]) -> Tuple[str, Tuple[str, str, str]]:
    if undertone == "warm":
        return (
            "Your undertone is warm: your skin has a golden or peach base. Colors with warmth make you look more alive.",
            (
                "Warm colors make your skin look brighter and healthier.",
                "Icy or cool tones can make you look a bit grey or tired.",
                "Choose creamy whites, warm browns, peachy pinks, olive greens.",
            ),
        )
    if undertone == "cool":
        return (
            "Your undertone is cool: your skin has a pink or rosy base. Cooler shades look more natural and balanced.",
            (
                "Cool colors make your skin look clearer and more even.",
                "Very warm or yellow tones can make you look sallow or emphasize redness.",
                "Choose crisp whites, charcoal or navy, berry pinks, blue-greens.",
            ),
        )
    if lean:
        definition = (
            f"Your undertone is neutral and leans {lean}. You can wear both, "
            f"but colors that lean slightly {lean} suit you best."
        )
        first = f"Slightly {lean}-leaning colors make you look most balanced."
    else:
        definition = "Your undertone is neutral. Warm and cool shades both work when they stay balanced."
        first = "Balanced colors that are neither very warm nor icy make you look most even."
    return (
        definition,
        (
            first,
            "Extreme warm or extreme icy shades can overpower you.",
            "Choose balanced shades: soft white, cocoa or stone, muted rose, teal.",
        ),
    )


def describe_traits(profile: AttributeProfile) -> Tuple[TraitExplanation, ...]:
    """Explanation cards for undertone, depth and clarity, in that order."""
    undertone_definition, undertone_bullets = _undertone_text(profile.undertone, profile.undertone_lean)
    depth_definition, depth_bullets = _DEPTH_TEXT[profile.depth]
    # Vivid skin reads the same as clear for wardrobe advice.
    clarity_key = "muted" if profile.clarity == "muted" else "clear"
    clarity_definition, clarity_bullets = _CLARITY_TEXT[clarity_key]
    return (
        TraitExplanation("undertone", profile.undertone, undertone_definition, undertone_bullets),
        TraitExplanation("depth", profile.depth, depth_definition, depth_bullets),
        TraitExplanation("clarity", profile.clarity, clarity_definition, clarity_bullets),
    )
