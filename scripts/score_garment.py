from __future__ import annotations

import argparse
import json
from pathlib import Path

from pydantic import ValidationError
from rich.console import Console

from skin_season.config import load_config
from skin_season.console import configure_logging
from skin_season.garments.scoring import score_garment_color
from skin_season.schemas import GarmentScoreRequest

_RATING_STYLE = {"great": "green", "good": "cyan", "ok": "yellow", "risky": "red", "insufficient_data": "dim"}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Rate how well a garment color suits a season.")
    parser.add_argument("color", type=str, help="Garment color as #RRGGBB.")
    parser.add_argument("season", choices=("spring", "summer", "autumn", "winter"))
    parser.add_argument("--undertone", choices=("warm", "cool", "neutral"), default=None)
    parser.add_argument("--depth", choices=("light", "medium", "deep"), default=None)
    parser.add_argument("--clarity", choices=("muted", "clear", "vivid"), default=None)
    parser.add_argument(
        "--away-from-face",
        action="store_true",
        help="Score for pieces worn away from the face (pants, shoes, bags).",
    )
    parser.add_argument("--crossover", action="store_true", help="Include the crossover season palette.")
    parser.add_argument("--json", action="store_true", help="Print the full score as JSON.")
    parser.add_argument("--dotenv", type=Path, default=None, help="Optional path to a .env file.")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    console = Console()
    config = load_config(args.dotenv)
    configure_logging(config.log_level)

    try:
        request = GarmentScoreRequest(
            hex=args.color,
            season=args.season,
            undertone=args.undertone,
            depth=args.depth,
            clarity=args.clarity,
            near_face=not args.away_from_face,
            include_crossover=args.crossover or None,
        )
    except ValidationError as exc:
        console.print(f"[red]Invalid request:[/red] {exc.errors()[0]['msg']}")
        raise SystemExit(1) from exc

    include_crossover = (
        request.include_crossover if request.include_crossover is not None else config.include_crossover
    )
    score = score_garment_color(
        request.garment_color(),
        request.season,
        undertone=request.undertone,
        depth=request.depth,
        clarity=request.clarity,
        near_face=request.near_face,
        micro_season=request.micro_season,
        include_crossover=include_crossover,
        calibration=config.calibration,
    )

    if args.json:
        console.print_json(json.dumps(score.as_dict()))
        return

    style = _RATING_STYLE.get(score.rating, "white")
    console.print(f"[bold {style}]{score.rating.upper()}[/bold {style}]  {score.explanation.summary}")
    for bullet in score.explanation.bullets:
        console.print(f"  • {bullet}")
    if score.closest_color is not None and score.delta_e is not None:
        console.print(
            f"[dim]Closest: {score.closest_color.name} {score.closest_color.hex} "
            f"({score.closest_color.season}), ΔE {score.delta_e:.1f}; caps: {', '.join(score.caps_applied) or 'none'}[/dim]"
        )


if __name__ == "__main__":
    main()
