"""
Template explanations for garment ratings.

Every explanation is a one-line summary plus three bullets: what the color does
near the face, what can go wrong, and how to wear it. Templates are picked from
the final rating and the clarity context the scorer recorded.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True, slots=True)
class Explanation:
    summary: str
    bullets: Tuple[str, str, str]

    def as_dict(self) -> Dict[str, object]:
        return {"summary": self.summary, "bullets": list(self.bullets)}


@dataclass(frozen=True, slots=True)
class ExplanationContext:
    """Signals from the scorer that change which template is used."""

    user_undertone: str
    chroma_level: str
    too_vivid: bool = False
    too_soft: bool = False
    clarity_capped: bool = False
    true_conflict: bool = False
    clarity_opposed: bool = False


INSUFFICIENT_DATA = Explanation(
    summary="Need color information to analyze",
    bullets=(
        "Please provide both garment color hex and user season.",
        "A season can come from a skin analysis or be picked by hand.",
        "Ratings are only given when both sides of the comparison are known.",
    ),
)

_INTENSITY = {"neon": "very intense", "very_vivid": "quite saturated"}


def _great() -> Explanation:
    return Explanation(
        summary="This color matches your undertone and clarity very well.",
        bullets=(
            "It brightens your features and blends naturally with your own coloring.",
            "Its warmth and softness line up with your coloring, so it won't create shadows or wash you out.",
            "Especially flattering near your face: tops, scarves or accessories.",
        ),
    )


def _good(context: ExplanationContext) -> Explanation:
    if context.too_vivid:
        return Explanation(
            summary="This color works for you, but it's bold.",
            bullets=(
                "The saturation is higher than your natural coloring prefers.",
                "Works well as a statement piece or in small doses.",
                "Balance it with softer colors from your palette near the face, or use it as an accent.",
            ),
        )
    if context.too_soft:
        return Explanation(
            summary="This color is close to your palette but softer than ideal.",
            bullets=(
                "It may look slightly muted against your vibrant coloring.",
                "You'll still look good wearing it.",
                "Add brighter accessories or makeup to keep your natural vibrancy.",
            ),
        )
    return Explanation(
        summary="This color is close to your palette.",
        bullets=(
            "It works well overall, but is slightly off in clarity or depth.",
            "You'll still look good wearing it near the face.",
            "Works best as a top with an open neckline or layered with a color from your season.",
        ),
    )


def _ok(context: ExplanationContext) -> Explanation:
    if context.clarity_capped and context.too_vivid:
        intensity = _INTENSITY.get(context.chroma_level, "bold")
        return Explanation(
            summary=f"This color is {intensity} for your muted coloring.",
            bullets=(
                "High saturation can overpower your natural softness.",
                "It may compete with your features near the face.",
                "Best worn away from the face (pants, skirt, bag) or as a small accent.",
            ),
        )
    if context.too_soft:
        return Explanation(
            summary="This color may look washed out on you.",
            bullets=(
                "The muted tone doesn't match your natural vibrancy.",
                "It can make you look less energetic.",
                "Best for layering under brighter pieces or worn away from the face.",
            ),
        )
    return Explanation(
        summary="Not a perfect match, but wearable.",
        bullets=(
            "It may create mild shadowing or reduce brightness.",
            "Styling helps: open neckline, layers, makeup, accessories.",
            "Best worn away from the face or layered with a color from your palette.",
        ),
    )


def _risky(context: ExplanationContext) -> Explanation:
    if context.true_conflict:
        return Explanation(
            summary=f"This color conflicts strongly with your {context.user_undertone} undertone.",
            bullets=(
                "The undertone clashes with your skin's natural coloring.",
                "The mismatch can make skin look tired, grey or sallow.",
                "Best avoided near the face. If you wear it, keep it low (pants, skirt, shoes).",
            ),
        )
    if context.too_vivid and context.chroma_level == "neon":
        return Explanation(
            summary="This color is too intense for your muted coloring.",
            bullets=(
                "This intensity level can overpower your natural softness.",
                "Very saturated colors can wash you out or compete with your features.",
                "Best as a small accent only. Avoid it as a top or near your face.",
            ),
        )
    issue = "conflicts with your clarity" if context.clarity_opposed else "is far from your palette"
    return Explanation(
        summary=f"This color {issue}.",
        bullets=(
            "It may create dullness, greyness or heavy contrast near the face.",
            "The mismatch can emphasize shadows and reduce brightness.",
            "If you still want it, wear it away from the face or add a layer in your season's colors.",
        ),
    )


def build_explanation(rating: str, context: Optional[ExplanationContext]) -> Explanation:
    if rating == "insufficient_data" or context is None:
        return INSUFFICIENT_DATA
    if rating == "great":
        return _great()
    if rating == "good":
        return _good(context)
    if rating == "ok":
        return _ok(context)
    return _risky(context)
