"""Extraction benchmark over a labeled corpus of recognized texts.

Each sample holds OCR text, a document type and the expected fields. The
field extraction stage is run on every sample and compared against the
labels, producing per-field precision, recall, accuracy, coverage and
mean confidence.
"""

import json
import time
from dataclasses import dataclass, field
from pathlib import Path

from invoice_ocr.analysis.documents import DocumentType, ExtractionResult
from invoice_ocr.extraction.fields import FieldExtractor
from invoice_ocr.utils.logger import get_logger

logger = get_logger(__name__)

FIELDS = ("companyName", "date", "amount", "fileName")


@dataclass
class Sample:
    """One labeled benchmark document."""

    name: str
    text: str
    document_type: DocumentType
    expected: dict[str, str | float]


@dataclass
class FieldMetrics:
    """Precision, recall, accuracy and confidence for a single field.

    Args:
        field_name: Name of the extracted field being measured.
    """

    field_name: str
    true_positives: int = 0
    false_positives: int = 0
    false_negatives: int = 0
    exact_matches: int = 0
    predicted: int = 0
    total: int = 0
    confidence_sum: int = 0

    @property
    def precision(self) -> float:
        """Fraction of predicted values that are correct."""
        denom = self.true_positives + self.false_positives
        if denom == 0:
            return 0.0
        return self.true_positives / denom

    @property
    def recall(self) -> float:
        """Fraction of expected values that were correctly predicted."""
        denom = self.true_positives + self.false_negatives
        if denom == 0:
            return 0.0
        return self.true_positives / denom

    @property
    def accuracy(self) -> float:
        """Fraction of correct values over all labeled samples."""
        if self.total == 0:
            return 0.0
        return self.true_positives / self.total

    @property
    def coverage(self) -> float:
        """Fraction of labeled samples for which a value was produced."""
        if self.total == 0:
            return 0.0
        return self.predicted / self.total

    @property
    def mean_confidence(self) -> float:
        if self.predicted == 0:
            return 0.0
        return self.confidence_sum / self.predicted


@dataclass
class BenchmarkResult:
    """Aggregated benchmark results across all samples and fields.

    Args:
        total_samples: Number of labeled samples.
        overall_accuracy: Mean field-level accuracy.
        field_metrics: Per-field metric details.
        avg_processing_time_ms: Average extraction time in milliseconds.
        failures: Per-sample mismatch descriptions.
    """

    total_samples: int
    overall_accuracy: float
    field_metrics: dict[str, FieldMetrics]
    avg_processing_time_ms: float = 0.0
    failures: list[str] = field(default_factory=list)


def _confidence_of(result: ExtractionResult, field_name: str) -> int:
    return {
        "companyName": result.confidence.company_name,
        "date": result.confidence.date,
        "amount": result.confidence.amount,
        "fileName": 100,
    }[field_name]


class Evaluator:
    """Evaluates field extraction against labeled samples.

    Company names are compared case-insensitively, amounts with a small
    numeric tolerance, everything else as exact strings.

    Args:
        amount_tolerance: Largest accepted difference between amounts.
    """

    def __init__(self, amount_tolerance: float = 0.01) -> None:
        self.amount_tolerance = amount_tolerance

    def evaluate(
        self, samples: list[Sample], extractor: FieldExtractor
    ) -> BenchmarkResult:
        """Run ``extractor`` on every sample and compute metrics.

        Args:
            samples: Labeled samples.
            extractor: The field extraction stage under test.

        Returns:
            Aggregated benchmark results with per-field metrics.
        """
        field_metrics = {name: FieldMetrics(name) for name in FIELDS}
        failures: list[str] = []
        elapsed_total = 0.0

        for sample in samples:
            start = time.perf_counter()
            result = extractor.extract(sample.text, sample.document_type)
            elapsed_total += time.perf_counter() - start
            predicted = result.to_dict()

            for field_name, expected_value in sample.expected.items():
                if field_name not in field_metrics:
                    logger.warning("Ignoring unknown field %r in %s", field_name, sample.name)
                    continue
                metrics = field_metrics[field_name]
                metrics.total += 1

                if field_name not in predicted:
                    metrics.false_negatives += 1
                    failures.append(f"{sample.name}: {field_name} missing")
                    continue

                metrics.predicted += 1
                metrics.confidence_sum += _confidence_of(result, field_name)
                value = predicted[field_name]
                if str(value).strip().lower() == str(expected_value).strip().lower():
                    metrics.exact_matches += 1
                    metrics.true_positives += 1
                elif self._matches(field_name, value, expected_value):
                    metrics.true_positives += 1
                else:
                    metrics.false_positives += 1
                    failures.append(
                        f"{sample.name}: {field_name} = {value!r}, expected {expected_value!r}"
                    )

        measured = [m for m in field_metrics.values() if m.total > 0]
        accuracies = [m.accuracy for m in measured]
        result = BenchmarkResult(
            total_samples=len(samples),
            overall_accuracy=sum(accuracies) / len(accuracies) if accuracies else 0.0,
            field_metrics={m.field_name: m for m in measured},
            avg_processing_time_ms=(elapsed_total / len(samples) * 1000) if samples else 0.0,
            failures=failures,
        )
        logger.info(
            "Benchmarked %d samples: overall accuracy %.2f%%",
            result.total_samples,
            result.overall_accuracy * 100,
        )
        return result

    def _matches(self, field_name: str, predicted, expected) -> bool:
        if field_name == "amount":
            try:
                return abs(float(predicted) - float(expected)) < self.amount_tolerance
            except (TypeError, ValueError):
                return False
        if field_name == "companyName":
            return _normalize_name(str(predicted)) == _normalize_name(str(expected))
        return False

    def generate_report(
        self, result: BenchmarkResult, output_path: Path | None = None
    ) -> str:
        """Generate a human-readable benchmark report.

        Args:
            result: Benchmark results to format.
            output_path: Optional path to write the report file.

        Returns:
            Formatted report string.
        """
        lines = [
            "=" * 72,
            "EXTRACTION BENCHMARK REPORT",
            "=" * 72,
            f"Samples:              {result.total_samples}",
            f"Overall Accuracy:     {result.overall_accuracy:.2%}",
            f"Avg Extraction Time:  {result.avg_processing_time_ms:.1f}ms",
            "",
            "Field-Level Metrics:",
            "-" * 72,
            f"{'Field':<14} {'Precision':>10} {'Recall':>10} {'Accuracy':>10} "
            f"{'Coverage':>10} {'Confidence':>11}",
            "-" * 72,
        ]

        for name, metrics in sorted(result.field_metrics.items()):
            lines.append(
                f"{name:<14} {metrics.precision:>10.2%} {metrics.recall:>10.2%} "
                f"{metrics.accuracy:>10.2%} {metrics.coverage:>10.2%} "
                f"{metrics.mean_confidence:>11.1f}"
            )
        lines.append("=" * 72)

        if result.failures:
            lines.append("")
            lines.append("Mismatches:")
            for failure in result.failures:
                lines.append(f"  - {failure}")

        report = "\n".join(lines)

        if output_path:
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, "w") as f:
                f.write(report)
            logger.info("Report written to %s", output_path)

        return report


def _normalize_name(name: str) -> str:
    return "".join(ch for ch in name.lower() if ch.isalnum())


def load_samples(path: Path) -> list[Sample]:
    """Load labeled samples from a JSON file.

    Format: ``{"name": {"text": ..., "type": "purchase", "expected": {...}}}``.

    Args:
        path: Path to the samples file.

    Returns:
        Samples in file order.

    Raises:
        ValueError: If the file is not JSON or a sample is malformed.
    """
    path = Path(path)
    if path.suffix != ".json":
        raise ValueError(f"Unsupported samples format: {path.suffix}")

    with open(path, encoding="utf-8") as f:
        raw = json.load(f)

    samples = []
    for name, entry in raw.items():
        try:
            samples.append(
                Sample(
                    name=name,
                    text=entry["text"],
                    document_type=DocumentType(entry.get("type", DocumentType.PURCHASE)),
                    expected=dict(entry.get("expected", {})),
                )
            )
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Malformed sample {name!r}: {exc}") from exc
    return samples
