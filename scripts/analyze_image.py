from __future__ import annotations

import argparse
import json
from contextlib import ExitStack
from pathlib import Path

from rich.console import Console
from rich.table import Table

from skin_season.analysis.pipeline import SkinToneAnalyzer
from skin_season.clients.image_fetch import ImageFetcher
from skin_season.config import load_config
from skin_season.console import configure_logging
from skin_season.errors import SkinSeasonError
from skin_season.schemas import AnalyzeRequest, ImageSource, PixelBox


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify the skin tone season of one photo.")
    parser.add_argument("image", type=str, help="Path to a local image or an http(s) URL.")
    parser.add_argument(
        "--crop",
        type=int,
        nargs=4,
        metavar=("X", "Y", "WIDTH", "HEIGHT"),
        default=None,
        help="Optional face crop in pixels; skips the heuristic face scan.",
    )
    parser.add_argument("--json", action="store_true", help="Print the full result as JSON.")
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file with fetch and calibration settings.",
    )
    return parser.parse_args()


def _source(image: str, console: Console) -> ImageSource:
    if image.lower().startswith(("http://", "https://")):
        return ImageSource(image_url=image)
    path = Path(image)
    if not path.exists():
        console.print(f"[red]Image not found:[/red] {path}")
        raise SystemExit(1)
    return ImageSource(image_bytes=path.read_bytes())


def main() -> None:
    args = parse_args()
    console = Console()
    config = load_config(args.dotenv)
    configure_logging(config.log_level)

    crop_box = None
    if args.crop:
        x, y, width, height = args.crop
        crop_box = PixelBox(x=x, y=y, width=width, height=height)
    request = AnalyzeRequest(image=_source(args.image, console), crop_box=crop_box)

    with ExitStack() as stack:
        fetcher = stack.enter_context(ImageFetcher(config.fetch)) if request.image.image_url else None
        analyzer = SkinToneAnalyzer(config, fetcher=fetcher)
        try:
            result = analyzer.analyze(request)
        except SkinSeasonError as exc:
            console.print(f"[red]{exc.code}[/red] {exc.message}")
            raise SystemExit(1) from exc

    if args.json:
        console.print_json(json.dumps(result.as_dict()))
        return

    payload = result.as_dict()
    table = Table(title=f"Skin analysis: {args.image}")
    table.add_column("Field")
    table.add_column("Value")
    table.add_row("Season", f"{payload['season']} ({payload['micro_season']})")
    table.add_row("Alternate", str(payload["alternate_season"]))
    table.add_row("Confidence", f"{payload['confidence']:.2f}")
    table.add_row("Needs confirmation", "yes" if payload["needs_confirmation"] else "no")
    lean = f" (leans {payload['undertone_lean']})" if payload["undertone_lean"] else ""
    table.add_row("Undertone", f"{payload['undertone']}{lean}")
    table.add_row("Depth", str(payload["depth"]))
    table.add_row("Clarity", str(payload["clarity"]))
    table.add_row("Skin color", f"[on {payload['hex']}]      [/] {payload['hex']}")
    console.print(table)

    for message in payload["quality"]["messages"]:
        console.print(f"[yellow]Tip:[/yellow] {message}")


if __name__ == "__main__":
    main()
