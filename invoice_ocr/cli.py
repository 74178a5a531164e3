"""Command-line interface for invoice analysis.

Provides subcommands to analyze a single document, process a folder of
documents into a CSV file, diagnose the OCR pipeline on one document and
benchmark field extraction against a labeled corpus.
"""

import argparse
import asyncio
import csv
import json
import sys
import time
from pathlib import Path

from invoice_ocr.analysis.analyzer import DocumentAnalyzer
from invoice_ocr.analysis.diagnostic import OCRDiagnostic, StepStatus
from invoice_ocr.analysis.documents import DocumentType, SourceDocument
from invoice_ocr.analysis.errors import PreflightRejection
from invoice_ocr.benchmark.evaluator import Evaluator, load_samples
from invoice_ocr.extraction.fields import FieldExtractor
from invoice_ocr.utils.config import AppConfig, load_config
from invoice_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.pdf")
_COLUMNS = [
    "filename",
    "status",
    "companyName",
    "date",
    "amount",
    "fileName",
    "companyNameConfidence",
    "dateConfidence",
    "amountConfidence",
    "processing_time_s",
    "error",
]
_DOCUMENT_TYPES = [t.value for t in DocumentType]


def _find_documents(input_dir: Path) -> list[Path]:
    """Find all supported document files in a directory.

    Args:
        input_dir: Directory to scan for documents.

    Returns:
        Sorted list of document file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _flatten(result: dict[str, object]) -> dict[str, object]:
    row = {k: v for k, v in result.items() if k != "confidence"}
    confidence = result.get("confidence", {})
    for field_name, score in confidence.items():
        row[f"{field_name}Confidence"] = score
    return row


def process_folder(
    input_dir: Path,
    output_csv: Path,
    document_type: DocumentType = DocumentType.PURCHASE,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Analyze every document in a folder and export the results to CSV.

    Documents that are rejected before analysis are counted as failed;
    degraded results still count as processed.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        document_type: Purchase or sale, applied to every document.
        verbose: Whether to print per-file progress.
        config: Application configuration; loaded from disk when omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to process", len(files))
    results = asyncio.run(
        _analyze_files(files, DocumentType(document_type), verbose, config or load_config())
    )

    successful = sum(1 for r in results if r["status"] != "failed")
    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": len(files) - successful}
    _print_summary(summary, output_csv)
    return summary


async def _analyze_files(
    files: list[Path],
    document_type: DocumentType,
    verbose: bool,
    config: AppConfig,
) -> list[dict[str, object]]:
    analyzer = DocumentAnalyzer(config)
    results: list[dict[str, object]] = []
    try:
        for i, file_path in enumerate(files, 1):
            if verbose:
                print(f"Processing [{i}/{len(files)}]: {file_path.name}")

            start_time = time.time()
            try:
                document = SourceDocument.from_path(file_path)
                result = await analyzer.analyze(document, document_type)
            except (PreflightRejection, ValueError, OSError) as exc:
                logger.error("Failed to process %s: %s", file_path.name, exc)
                results.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
                continue

            row = _flatten(result.to_dict())
            row.update(
                {
                    "filename": file_path.name,
                    "status": "degraded" if result.confidence.all_zero() else "success",
                    "processing_time_s": round(time.time() - start_time, 2),
                    "error": None,
                }
            )
            results.append(row)
    finally:
        analyzer.cleanup()
    return results


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write analysis results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def analyze_single(
    file_path: Path,
    document_type: DocumentType = DocumentType.PURCHASE,
    config: AppConfig | None = None,
) -> dict[str, object]:
    """Analyze a single document and return the result shape.

    Raises:
        PreflightRejection: If the document is refused before analysis.
    """

    async def run() -> dict[str, object]:
        analyzer = DocumentAnalyzer(config or load_config())
        try:
            result = await analyzer.analyze(
                SourceDocument.from_path(file_path), DocumentType(document_type)
            )
        finally:
            analyzer.cleanup()
        return result.to_dict()

    return asyncio.run(run())


def run_diagnostic(
    file_path: Path,
    document_type: DocumentType = DocumentType.PURCHASE,
    config: AppConfig | None = None,
) -> list[dict[str, object]]:
    """Run the OCR diagnostic on a document and print each step."""

    async def run():
        analyzer = DocumentAnalyzer(config or load_config())
        try:
            return await OCRDiagnostic(analyzer).run(
                SourceDocument.from_path(file_path), DocumentType(document_type)
            )
        finally:
            analyzer.cleanup()

    steps = asyncio.run(run())
    markers = {StepStatus.SUCCESS: "OK", StepStatus.WARNING: "WARN", StepStatus.ERROR: "FAIL"}
    for step in steps:
        print(f"[{markers[step.status]:<4}] {step.step}: {step.message}")
    return [
        {"step": s.step, "status": str(s.status), "message": s.message, "data": s.data}
        for s in steps
    ]


def run_benchmark(
    samples_path: Path,
    output: Path | None = None,
    config: AppConfig | None = None,
) -> str:
    """Benchmark field extraction on a labeled corpus and print the report."""
    config = config or load_config()
    samples = load_samples(samples_path)
    evaluator = Evaluator()
    result = evaluator.evaluate(samples, FieldExtractor(config.extraction))
    report = evaluator.generate_report(result, output)
    print(report)
    return report


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Invoice OCR Analyzer",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="YAML configuration file")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    def add_type_argument(sub: argparse.ArgumentParser) -> None:
        sub.add_argument(
            "-t",
            "--type",
            choices=_DOCUMENT_TYPES,
            default=DocumentType.PURCHASE.value,
            dest="doc_type",
            help="Document type (default: purchase)",
        )

    single_parser = subparsers.add_parser("analyze", help="Analyze a single document")
    single_parser.add_argument("file", type=Path, help="Document file to analyze")
    add_type_argument(single_parser)
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    batch_parser = subparsers.add_parser("batch", help="Analyze a folder of documents")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with documents")
    add_type_argument(batch_parser)
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    diagnose_parser = subparsers.add_parser("diagnose", help="Diagnose OCR on a document")
    diagnose_parser.add_argument("file", type=Path, help="Document file to diagnose")
    add_type_argument(diagnose_parser)

    bench_parser = subparsers.add_parser("benchmark", help="Benchmark field extraction")
    bench_parser.add_argument("samples", type=Path, help="Labeled samples JSON file")
    bench_parser.add_argument("-o", "--output", type=Path, help="Output report file")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command in ("analyze", "diagnose") and not args.file.exists():
        print(f"Error: {args.file} does not exist", file=sys.stderr)
        sys.exit(1)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.doc_type, args.verbose, config)
    elif args.command == "analyze":
        try:
            result = analyze_single(args.file, args.doc_type, config)
        except (PreflightRejection, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)
    elif args.command == "diagnose":
        try:
            steps = run_diagnostic(args.file, args.doc_type, config)
        except ValueError as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)
        if any(step["status"] == StepStatus.ERROR for step in steps):
            sys.exit(1)
    elif args.command == "benchmark":
        if not args.samples.exists():
            print(f"Error: {args.samples} does not exist", file=sys.stderr)
            sys.exit(1)
        run_benchmark(args.samples, args.output, config)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
