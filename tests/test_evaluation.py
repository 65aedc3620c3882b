"""
Unit tests for the labelled-set evaluation task.

Tests cover:
- Loading and validating labels files
- Accuracy, confusion matrix and failure counts
- Error codes recorded per photo
- Rendering the report
"""
import io
import json
from unittest.mock import Mock

import pytest
from rich.console import Console

from skin_season.config import AppConfig
from skin_season.errors import FaceNotDetectedError
from skin_season.tasks.evaluation import (
    EvaluationOutcome,
    EvaluationReport,
    EvaluationRunner,
    LabelEntry,
    load_label_set,
)

from .conftest import COOL_DEEP_SKIN, NON_SKIN_BLUE, WARM_LIGHT_SKIN, make_png

FULL_CROP = {"x": 0, "y": 0, "width": 300, "height": 300}


@pytest.fixture
def labelled_dir(tmp_path):
    """Folder with three swatch photos and a labels file next to them."""
    (tmp_path / "warm.png").write_bytes(make_png(WARM_LIGHT_SKIN))
    (tmp_path / "cool.png").write_bytes(make_png(COOL_DEEP_SKIN))
    (tmp_path / "blue.png").write_bytes(make_png(NON_SKIN_BLUE))
    labels = [
        {"image": "warm.png", "season": "spring", "crop_box": FULL_CROP},
        {"image": "cool.png", "season": "summer", "crop_box": FULL_CROP, "name": "cool swatch"},
        {"image": "blue.png", "season": "autumn", "crop_box": FULL_CROP},
    ]
    (tmp_path / "labels.json").write_text(json.dumps(labels), encoding="utf-8")
    return tmp_path


def quiet_console():
    return Console(file=io.StringIO(), width=120)


class TestLoadLabelSet:
    """Test labels file loading."""

    def test_resolves_relative_paths(self, labelled_dir):
        """Test local images are resolved against the labels file folder."""
        labels = load_label_set(labelled_dir / "labels.json")
        entries = list(labels)
        assert len(labels) == 3
        assert entries[0].image == str(labelled_dir / "warm.png")
        assert entries[1].label == "cool swatch"
        assert entries[0].crop_box.width == 300

    def test_missing_image(self, tmp_path):
        """Test a labelled image that does not exist."""
        path = tmp_path / "labels.json"
        path.write_text(json.dumps([{"image": "nope.png", "season": "spring"}]), encoding="utf-8")
        with pytest.raises(RuntimeError, match="Labelled image not found"):
            load_label_set(path)

    def test_invalid_season(self, tmp_path):
        """Test unknown season labels are rejected."""
        path = tmp_path / "labels.json"
        path.write_text(json.dumps([{"image": "a.png", "season": "monsoon"}]), encoding="utf-8")
        with pytest.raises(RuntimeError, match="Invalid labels file"):
            load_label_set(path)

    def test_not_a_list(self, tmp_path):
        """Test the document must be a list."""
        path = tmp_path / "labels.json"
        path.write_text(json.dumps({"image": "a.png"}), encoding="utf-8")
        with pytest.raises(RuntimeError, match="expected a list"):
            load_label_set(path)

    def test_remote_entries_are_kept(self, tmp_path):
        """Test URL entries are not resolved on disk."""
        path = tmp_path / "labels.json"
        path.write_text(
            json.dumps([{"image": "https://example.com/a.jpg", "season": "winter"}]), encoding="utf-8"
        )
        (entry,) = list(load_label_set(path))
        assert entry.is_remote is True
        assert entry.image == "https://example.com/a.jpg"


class TestEvaluationReport:
    """Test report aggregation."""

    def test_metrics(self):
        """Test accuracy and confirmation rates ignore failed photos."""
        report = EvaluationReport(
            outcomes=[
                EvaluationOutcome("a", "spring", "spring", "autumn", 0.9, False),
                EvaluationOutcome("b", "summer", "winter", "summer", 0.8, True),
                EvaluationOutcome("c", "autumn", error_code="FACE_NOT_DETECTED"),
            ]
        )
        assert report.top1_accuracy == pytest.approx(0.5)
        assert report.top2_accuracy == pytest.approx(1.0)
        assert report.confirmation_rate == pytest.approx(0.5)
        assert report.confusion_matrix()["summer"]["winter"] == 1
        assert report.failures_by_code() == {"FACE_NOT_DETECTED": 1}

    def test_empty_report(self):
        """Test rates are zero when nothing was classified."""
        report = EvaluationReport()
        assert report.top1_accuracy == 0.0
        assert report.as_dict()["total"] == 0


class TestEvaluationRunner:
    """Test running an evaluation end to end."""

    def test_run_over_swatches(self, labelled_dir):
        """Test predictions, top-2 hits and failure codes over real swatches."""
        labels = load_label_set(labelled_dir / "labels.json")
        runner = EvaluationRunner(config=AppConfig(), labels=labels, console=quiet_console())

        report = runner.run()

        assert len(report.outcomes) == 3
        assert report.outcomes[0].predicted == "spring"
        assert report.outcomes[1].predicted == "winter"
        assert report.outcomes[1].alternate == "summer"
        assert report.outcomes[2].error_code == "LOW_QUALITY_SAMPLES"
        assert report.top1_accuracy == pytest.approx(0.5)
        assert report.top2_accuracy == pytest.approx(1.0)
        assert report.confusion_matrix()["spring"]["spring"] == 1
        assert report.failures_by_code() == {"LOW_QUALITY_SAMPLES": 1}

    def test_analyzer_errors_are_recorded(self, tmp_path):
        """Test a skin-season error becomes the outcome's error code."""
        image = tmp_path / "face.png"
        image.write_bytes(make_png(WARM_LIGHT_SKIN))
        analyzer = Mock()
        analyzer.analyze.side_effect = FaceNotDetectedError("no face")
        runner = EvaluationRunner(
            config=AppConfig(),
            labels=[LabelEntry(image=str(image), season="spring")],
            console=quiet_console(),
            analyzer=analyzer,
        )

        report = runner.run()

        analyzer.analyze.assert_called_once()
        assert report.outcomes[0].error_code == "FACE_NOT_DETECTED"
        assert report.classified == []

    def test_render_prints_tables(self):
        """Test the summary and confusion tables are rendered."""
        console = quiet_console()
        runner = EvaluationRunner(config=AppConfig(), labels=[], console=console)
        report = EvaluationReport(
            outcomes=[
                EvaluationOutcome("a", "spring", "spring", "autumn", 0.9, False),
                EvaluationOutcome("b", "winter", error_code="MALFORMED_IMAGE"),
            ]
        )

        runner.render(report)

        output = console.file.getvalue()
        assert "Top-1 accuracy" in output
        assert "Confusion matrix" in output
        assert "MALFORMED_IMAGE" in output
