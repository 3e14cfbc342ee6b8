"""Command-line interface for identity and property document scans.

Provides subcommands for scanning a single identity or property
document to JSON and for scanning a folder of documents to CSV.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from kyc_ocr.exceptions import ScanError, ServiceUnavailableError
from kyc_ocr.ocr.document_loader import DocumentLoader
from kyc_ocr.pipeline.scanner import DocumentScanner
from kyc_ocr.pipeline.session import ScanSession
from kyc_ocr.records import DocumentType
from kyc_ocr.utils.config import AppConfig, load_config
from kyc_ocr.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.pdf", "*.txt")
_META_COLUMNS = [
    "filename",
    "status",
    "document_type",
    "processing_time_s",
    "fingerprint",
    "validation_passed",
    "error",
]
_IDENTITY_TYPES = [t.value for t in DocumentType if t != DocumentType.PROPERTY_DEED]


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


def scan_file(
    file_path: Path,
    kind: str = "identity",
    document_type: str = "auto",
    config: AppConfig | None = None,
    scanner: DocumentScanner | None = None,
) -> ScanSession:
    """Scan one document from disk.

    Args:
        file_path: Path to the document file.
        kind: ``identity`` or ``property``.
        document_type: Identity document type hint, or ``auto``.
        config: Application configuration; loaded from disk if omitted.
        scanner: Scanner to reuse across files.

    Returns:
        The finished scan session.

    Raises:
        ScanError: If the scan fails.
    """
    config = config or load_config()
    scanner = scanner or DocumentScanner(config)
    document = DocumentLoader(config.ocr.pdf_dpi).load_path(file_path)
    session = ScanSession(document=document, document_type=DocumentType(document_type))

    if kind == "property":
        return scanner.scan_property(session)
    return scanner.scan_identity(session)


def _session_to_output(session: ScanSession, include_text: bool = False) -> dict[str, object]:
    output = session.result()
    if include_text:
        output["raw_text"] = session.raw_text
    return output


def process_folder(
    input_dir: Path,
    output_csv: Path,
    kind: str = "identity",
    document_type: str = "auto",
    verbose: bool = False,
) -> dict[str, int]:
    """Scan all documents in a folder and export records to CSV.

    Args:
        input_dir: Directory containing document files.
        output_csv: Path for the output CSV file.
        kind: ``identity`` or ``property``.
        document_type: Identity document type hint, or ``auto``.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.

    Raises:
        ServiceUnavailableError: If OCR is unavailable; the batch stops.
    """
    config = load_config()
    scanner = DocumentScanner(config)

    files = _find_documents(input_dir)
    if not files:
        logger.warning("No documents found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d documents to scan", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Scanning [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            session = scan_file(file_path, kind, document_type, config, scanner)
        except ServiceUnavailableError:
            raise
        except Exception as exc:
            logger.error("Failed to scan %s: %s", file_path.name, exc)
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error": str(exc),
                }
            )
            failed += 1
            continue

        row: dict[str, object] = {
            "filename": file_path.name,
            "status": "success",
            "document_type": str(session.document_type),
            "processing_time_s": round(time.time() - start_time, 2),
            "fingerprint": session.fingerprint,
            "validation_passed": session.validation.all_valid if session.validation else None,
            "error": None,
        }
        row.update(session.record.to_dict() if session.record else {})
        row.pop("sources", None)
        results.append(row)
        successful += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write scan results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    all_keys: set[str] = set()
    for r in results:
        all_keys.update(r.keys())

    field_columns = sorted(all_keys - set(_META_COLUMNS))
    columns = [c for c in _META_COLUMNS if c in all_keys] + field_columns

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    print(f"\n{'=' * 50}")
    print("Batch Scan Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def _write_json(output: dict[str, object], output_path: Path | None) -> None:
    output_str = json.dumps(output, indent=2, default=str)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(output_str)
        print(f"Output written to {output_path}")
    else:
        print(output_str)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Identity and property document scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    identity_parser = subparsers.add_parser("identity", help="Scan an identity document")
    identity_parser.add_argument("file", type=Path, help="Document file to scan")
    identity_parser.add_argument(
        "-t",
        "--type",
        choices=_IDENTITY_TYPES,
        default="auto",
        dest="doc_type",
        help="Document type (default: auto)",
    )
    identity_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    identity_parser.add_argument(
        "--include-text", action="store_true", help="Include raw OCR text"
    )

    property_parser = subparsers.add_parser("property", help="Scan a property document")
    property_parser.add_argument("file", type=Path, help="Document file to scan")
    property_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    property_parser.add_argument(
        "--include-text", action="store_true", help="Include raw OCR text"
    )

    batch_parser = subparsers.add_parser("batch", help="Scan a folder of documents")
    batch_parser.add_argument(
        "input_dir", type=Path, help="Input directory with documents"
    )
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "-k",
        "--kind",
        choices=["identity", "property"],
        default="identity",
        help="Record kind to extract (default: identity)",
    )
    batch_parser.add_argument(
        "-t",
        "--type",
        choices=_IDENTITY_TYPES,
        default="auto",
        dest="doc_type",
        help="Identity document type (default: auto)",
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    args = parser.parse_args(argv)

    setup_logging()

    try:
        if args.command == "batch":
            if not args.input_dir.is_dir():
                print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
                sys.exit(1)
            process_folder(
                args.input_dir,
                args.output,
                args.kind,
                args.doc_type,
                args.verbose,
            )
        elif args.command in ("identity", "property"):
            if not args.file.exists():
                print(f"Error: {args.file} does not exist", file=sys.stderr)
                sys.exit(1)
            doc_type = args.doc_type if args.command == "identity" else "auto"
            session = scan_file(args.file, args.command, doc_type)
            _write_json(_session_to_output(session, args.include_text), args.output)
        else:
            parser.print_help()
            sys.exit(0)
    except ScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
