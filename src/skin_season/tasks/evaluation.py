from __future__ import annotations

import json
import logging
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field, RootModel, ValidationError
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from ..analysis.pipeline import SkinToneAnalyzer
from ..clients.image_fetch import ImageFetcher
from ..config import AppConfig, SeasonName
from ..errors import SkinSeasonError
from ..schemas import AnalyzeRequest, FaceBox, ImageSource, PixelBox
from ..types import SEASONS

logger = logging.getLogger(__name__)


class LabelEntry(BaseModel):
    """One labelled photo: a local path or an http(s) URL plus its expected season."""

    image: str = Field(..., description="Image path (relative to the labels file) or URL")
    season: SeasonName
    name: Optional[str] = Field(default=None, description="Display name; defaults to the image value")
    crop_box: Optional[PixelBox] = None
    face_box: Optional[FaceBox] = None

    @property
    def is_remote(self) -> bool:
        return self.image.lower().startswith(("http://", "https://"))

    @property
    def label(self) -> str:
        return self.name or self.image


class LabelSet(RootModel[List[LabelEntry]]):
    """Collection of labelled photos loaded from a JSON document."""

    def __iter__(self) -> Iterable[LabelEntry]:  # type: ignore[override]
        return iter(self.root)

    def __len__(self) -> int:
        return len(self.root)


def load_label_set(path: str | Path) -> LabelSet:
    """Load and validate a labels file, resolving local image paths against its folder."""
    label_path = Path(path)
    with label_path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if not isinstance(data, list):
        raise RuntimeError(f"Unsupported labels structure at {label_path}; expected a list of entries.")
    try:
        labels = LabelSet.model_validate(data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid labels file at {label_path}") from exc

    resolved: List[LabelEntry] = []
    for entry in labels:
        if entry.is_remote:
            resolved.append(entry)
            continue
        image_path = Path(entry.image)
        if not image_path.is_absolute():
            image_path = label_path.parent / image_path
        if not image_path.exists():
            raise RuntimeError(f"Labelled image not found: {image_path}")
        resolved.append(entry.model_copy(update={"image": str(image_path)}))
    return LabelSet(root=resolved)


@dataclass
class EvaluationOutcome:
    name: str
    expected: str
    predicted: Optional[str] = None
    alternate: Optional[str] = None
    confidence: Optional[float] = None
    needs_confirmation: bool = False
    error_code: Optional[str] = None

    @property
    def top1(self) -> bool:
        return self.predicted == self.expected

    @property
    def top2(self) -> bool:
        return self.expected in (self.predicted, self.alternate)


@dataclass
class EvaluationReport:
    outcomes: List[EvaluationOutcome] = field(default_factory=list)

    @property
    def classified(self) -> List[EvaluationOutcome]:
        return [outcome for outcome in self.outcomes if outcome.error_code is None]

    def _rate(self, hits: int) -> float:
        total = len(self.classified)
        return hits / total if total else 0.0

    @property
    def top1_accuracy(self) -> float:
        return self._rate(sum(outcome.top1 for outcome in self.classified))

    @property
    def top2_accuracy(self) -> float:
        return self._rate(sum(outcome.top2 for outcome in self.classified))

    @property
    def confirmation_rate(self) -> float:
        return self._rate(sum(outcome.needs_confirmation for outcome in self.classified))

    def confusion_matrix(self) -> Dict[str, Dict[str, int]]:
        """Rows are expected seasons, columns predicted seasons."""
        matrix = {expected: {predicted: 0 for predicted in SEASONS} for expected in SEASONS}
        for outcome in self.classified:
            matrix[outcome.expected][outcome.predicted or ""] += 1
        return matrix

    def failures_by_code(self) -> Dict[str, int]:
        failures: Dict[str, int] = {}
        for outcome in self.outcomes:
            if outcome.error_code is not None:
                failures[outcome.error_code] = failures.get(outcome.error_code, 0) + 1
        return failures

    def as_dict(self) -> Dict[str, object]:
        return {
            "total": len(self.outcomes),
            "classified": len(self.classified),
            "top1_accuracy": round(self.top1_accuracy, 3),
            "top2_accuracy": round(self.top2_accuracy, 3),
            "confirmation_rate": round(self.confirmation_rate, 3),
            "confusion_matrix": self.confusion_matrix(),
            "failures": self.failures_by_code(),
            "outcomes": [
                {
                    "name": outcome.name,
                    "expected": outcome.expected,
                    "predicted": outcome.predicted,
                    "alternate": outcome.alternate,
                    "confidence": round(outcome.confidence, 2) if outcome.confidence is not None else None,
                    "needs_confirmation": outcome.needs_confirmation,
                    "error_code": outcome.error_code,
                }
                for outcome in self.outcomes
            ],
        }


class EvaluationRunner:
    """Classify every labelled photo and summarise how often the season is right."""

    def __init__(
        self,
        config: AppConfig,
        labels: LabelSet | Sequence[LabelEntry],
        console: Console | None = None,
        analyzer: SkinToneAnalyzer | None = None,
    ) -> None:
        self._config = config
        self._labels = list(labels)
        self._console = console or Console()
        self._analyzer = analyzer

    @staticmethod
    def _request_for(entry: LabelEntry) -> AnalyzeRequest:
        if entry.is_remote:
            source = ImageSource(image_url=entry.image)
        else:
            source = ImageSource(image_bytes=Path(entry.image).read_bytes())
        return AnalyzeRequest(image=source, crop_box=entry.crop_box, face_box=entry.face_box)

    def _evaluate_one(self, analyzer: SkinToneAnalyzer, entry: LabelEntry) -> EvaluationOutcome:
        outcome = EvaluationOutcome(name=entry.label, expected=entry.season)
        try:
            result = analyzer.analyze(self._request_for(entry))
        except SkinSeasonError as exc:
            logger.info("%s failed with %s: %s", entry.label, exc.code, exc.message)
            outcome.error_code = exc.code
            return outcome
        outcome.predicted = result.season
        outcome.alternate = result.decision.alternate.season
        outcome.confidence = result.confidence
        outcome.needs_confirmation = result.needs_confirmation
        return outcome

    def run(self) -> EvaluationReport:
        """Execute the evaluation and return the report."""
        report = EvaluationReport()
        with ExitStack() as stack:
            analyzer = self._analyzer
            if analyzer is None:
                fetcher = None
                if any(entry.is_remote for entry in self._labels):
                    fetcher = stack.enter_context(ImageFetcher(self._config.fetch))
                analyzer = SkinToneAnalyzer(self._config, fetcher=fetcher)

            with Progress(
                SpinnerColumn(),
                TextColumn("[bold]Evaluating[/bold]"),
                TextColumn("{task.description}"),
                BarColumn(),
                TimeElapsedColumn(),
                console=self._console,
                transient=True,
            ) as progress:
                task_id = progress.add_task("queued", total=len(self._labels))
                for entry in self._labels:
                    progress.update(task_id, description=entry.label, advance=0)
                    report.outcomes.append(self._evaluate_one(analyzer, entry))
                    progress.advance(task_id)
        return report

    def render(self, report: EvaluationReport) -> None:
        summary = Table(title="Season evaluation")
        summary.add_column("Metric")
        summary.add_column("Value", justify="right")
        summary.add_row("Photos", str(len(report.outcomes)))
        summary.add_row("Classified", str(len(report.classified)))
        summary.add_row("Top-1 accuracy", f"{report.top1_accuracy:.1%}")
        summary.add_row("Top-2 accuracy", f"{report.top2_accuracy:.1%}")
        summary.add_row("Needs confirmation", f"{report.confirmation_rate:.1%}")
        self._console.print(summary)

        confusion = Table(title="Confusion matrix (rows: expected)")
        confusion.add_column("")
        for season in SEASONS:
            confusion.add_column(season, justify="right")
        for expected, row in report.confusion_matrix().items():
            confusion.add_row(expected, *(str(row[season]) for season in SEASONS))
        self._console.print(confusion)

        failures = report.failures_by_code()
        if failures:
            for code, count in sorted(failures.items()):
                self._console.print(f"[red]{code}[/red]: {count}")
