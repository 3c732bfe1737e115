"""Command-line interface for invoice extraction and CSV export.

Provides subcommands for extracting a single invoice image or URL,
processing a folder of images into a CSV file, and serving the API.
"""

import argparse
import asyncio
import csv
import json
import sys
import time
from pathlib import Path

from invoice_ocr.main import main as serve_api
from invoice_ocr.models import FIELD_WIRE_NAMES, ExtractionOutcome, ImageRef
from invoice_ocr.orchestrator import AUTO, FallbackOrchestrator, build_orchestrator
from invoice_ocr.utils.config import AppConfig, load_config
from invoice_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp", "*.webp")
_PROVIDER_CHOICES = [AUTO, "zhipu", "qiniu", "tesseract"]
_META_COLUMNS = [
    "filename",
    "status",
    "provider",
    "confidence",
    "item_count",
    "processing_time_s",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _image_ref(source: str) -> ImageRef:
    if source.startswith(("http://", "https://")):
        return ImageRef(url=source)
    return ImageRef(data=Path(source).read_bytes())


def outcome_to_dict(outcome: ExtractionOutcome, source: str) -> dict[str, object]:
    """Serialize an outcome for JSON output."""
    return {
        "source": source,
        "success": outcome.success,
        "provider": outcome.provider,
        "confidence": outcome.confidence,
        "recognition_confidence": outcome.recognition_confidence,
        "error": outcome.error,
        "data": outcome.data.to_dict() if outcome.data is not None else None,
        "raw_text": outcome.raw_text,
    }


def _outcome_row(file_path: Path, outcome: ExtractionOutcome) -> dict[str, object]:
    row: dict[str, object] = {
        "filename": file_path.name,
        "status": "success" if outcome.success else "failed",
        "provider": outcome.provider,
        "confidence": outcome.confidence,
        "item_count": len(outcome.data.items) if outcome.data is not None else 0,
        "error": outcome.error,
    }
    if outcome.data is not None:
        for attr, wire in FIELD_WIRE_NAMES.items():
            row[wire] = getattr(outcome.data, attr)
    return row


async def _process_files(
    files: list[Path],
    orchestrator: FallbackOrchestrator,
    provider: str,
    verbose: bool,
) -> list[dict[str, object]]:
    results: list[dict[str, object]] = []
    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            image_ref = ImageRef(data=file_path.read_bytes())
        except OSError as exc:
            logger.error("Failed to read %s: %s", file_path.name, exc)
            results.append({"filename": file_path.name, "status": "failed", "error": str(exc)})
            continue

        outcome = await orchestrator.extract_invoice(image_ref, provider)
        row = _outcome_row(file_path, outcome)
        row["processing_time_s"] = round(time.time() - start_time, 2)
        results.append(row)
    return results


async def _run_batch(
    files: list[Path], config: AppConfig, provider: str, verbose: bool
) -> list[dict[str, object]]:
    orchestrator = build_orchestrator(config)
    try:
        return await _process_files(files, orchestrator, provider, verbose)
    finally:
        await orchestrator.aclose()


def process_folder(
    input_dir: Path,
    output_csv: Path,
    provider: str = AUTO,
    verbose: bool = False,
    config: AppConfig | None = None,
) -> dict[str, int]:
    """Extract every invoice image in a folder and export results to CSV.

    Args:
        input_dir: Directory containing invoice images.
        output_csv: Path for the output CSV file.
        provider: ``auto`` or a provider name.
        verbose: Whether to print per-file progress.
        config: Application configuration; loaded when omitted.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d images to process", len(files))
    results = asyncio.run(_run_batch(files, config or load_config(), provider, verbose))

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    successful = sum(1 for r in results if r.get("status") == "success")
    summary = {"total": len(files), "successful": successful, "failed": len(files) - successful}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write extraction results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = [w for w in FIELD_WIRE_NAMES.values() if w in all_keys]
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Extraction Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


async def _extract_once(source: str, config: AppConfig, provider: str) -> ExtractionOutcome:
    orchestrator = build_orchestrator(config)
    try:
        return await orchestrator.extract_invoice(_image_ref(source), provider)
    finally:
        await orchestrator.aclose()


def extract_single(
    source: str, provider: str = AUTO, config: AppConfig | None = None
) -> dict[str, object]:
    """Extract one invoice from a local file or URL.

    Args:
        source: Image path or http(s) URL.
        provider: ``auto`` or a provider name.
        config: Application configuration; loaded when omitted.

    Returns:
        Serialized outcome with canonical camelCase invoice fields.
    """
    outcome = asyncio.run(_extract_once(source, config or load_config(), provider))
    return outcome_to_dict(outcome, source)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        prog="invoice-ocr",
        description="Invoice OCR extraction",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help="Path to config YAML")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of invoice images")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory with images")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-p",
        "--provider",
        choices=_PROVIDER_CHOICES,
        default=AUTO,
        help="OCR provider (default: auto)",
    )
    batch_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    single_parser = subparsers.add_parser("extract", help="Extract a single invoice")
    single_parser.add_argument("source", help="Image file or http(s) URL")
    single_parser.add_argument(
        "-p",
        "--provider",
        choices=_PROVIDER_CHOICES,
        default=AUTO,
        help="OCR provider (default: auto)",
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP API")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, args.provider, args.verbose, config)
    elif args.command == "extract":
        is_url = args.source.startswith(("http://", "https://"))
        if not is_url and not Path(args.source).exists():
            print(f"Error: {args.source} does not exist", file=sys.stderr)
            sys.exit(1)
        result = extract_single(args.source, args.provider, config)
        output_str = json.dumps(result, indent=2, ensure_ascii=False)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str, encoding="utf-8")
            print(f"Output written to {args.output}")
        else:
            print(output_str)
        if not result["success"]:
            sys.exit(2)
    elif args.command == "serve":
        serve_api(host=args.host, port=args.port)
    else:
        parser.print_help()
        sys.exit(0)


if __name__ == "__main__":
    main()
