from __future__ import annotations

import argparse
import json
from pathlib import Path

from rich.console import Console

from skin_season.config import load_config
from skin_season.console import configure_logging
from skin_season.tasks.evaluation import EvaluationRunner, load_label_set


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate season classification against a labelled photo set.")
    parser.add_argument(
        "labels_file",
        type=Path,
        help="Path to the JSON labels file (list of {image, season, crop_box?, face_box?}).",
    )
    parser.add_argument(
        "--report",
        type=Path,
        default=None,
        help="Optional path to write the full report as JSON.",
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file with fetch and calibration settings.",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    console = Console()

    labels_path = args.labels_file
    if not labels_path.exists():
        console.print(f"[red]Labels file not found:[/red] {labels_path}")
        raise SystemExit(1)

    config = load_config(args.dotenv)
    configure_logging(config.log_level)
    try:
        labels = load_label_set(labels_path)
    except RuntimeError as exc:
        console.print(f"[red]{exc}[/red]")
        raise SystemExit(1) from exc

    runner = EvaluationRunner(config=config, labels=labels, console=console)
    report = runner.run()
    runner.render(report)

    if args.report:
        args.report.write_text(json.dumps(report.as_dict(), indent=2), encoding="utf-8")
        console.print(f"[green]Report saved to[/green] {args.report}")


if __name__ == "__main__":
    main()
