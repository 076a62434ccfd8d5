"""Main CLI entry point for the message-dump command-line tool.

Extracts message records from dump files and writes them as JSON, JSON lines,
CSV or plain text. Per-file outcomes are reported on stderr.
"""

import argparse
import contextlib
import json
import logging
import sys
from pathlib import Path
from typing import Iterator, List, Optional, TextIO, Tuple

from message_dump_parser import __version__
from message_dump_parser.api import (
    ExtractionResult,
    JSONLinesSink,
    MessageDumpParser,
    records_to_dataframe,
)
from message_dump_parser.extraction import MessageRecord, shorten_snapshot
from message_dump_parser.shared import (
    ConfigError,
    DiagnosticEntry,
    ExtractorConfig,
    TokenSourceBackend,
    get_logger,
)

FileResult = Tuple[Path, ExtractionResult]

DUMP_SUFFIXES = {".xml"}


def create_argument_parser() -> argparse.ArgumentParser:
    """Create the main argument parser."""
    parser = argparse.ArgumentParser(
        prog="message-dump",
        description="Extract message records from XML message dump files"
    )

    parser.add_argument("--version", action="version", version=__version__)

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parse_parser = subparsers.add_parser("parse", help="Extract records from dump files")
    parse_parser.add_argument(
        "paths",
        nargs="+",
        type=Path,
        help="Dump files or directories containing .xml dumps"
    )
    parse_parser.add_argument(
        "--recursive", "-r",
        action="store_true",
        help="Recursively search directories"
    )
    parse_parser.add_argument(
        "--format", "-f",
        choices=["json", "jsonl", "csv", "text"],
        default="json",
        help="Output format (default: json)"
    )
    parse_parser.add_argument(
        "--output", "-o",
        type=Path,
        help="Output file (default: stdout)"
    )
    parse_parser.add_argument(
        "--backend",
        choices=[backend.value for backend in TokenSourceBackend],
        help="Token source backend (default: builtin)"
    )
    parse_parser.add_argument(
        "--diagnostics",
        action="store_true",
        help="Report every state transition on stderr"
    )
    parse_parser.add_argument(
        "--config", "-c",
        type=Path,
        help="JSON configuration file"
    )

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Quiet output"
    )

    return parser


def load_config(args: argparse.Namespace) -> ExtractorConfig:
    """Build the extractor configuration from file, environment and flags.

    Command-line flags take precedence over ``MESSAGE_DUMP_*`` variables,
    which take precedence over the configuration file.
    """
    config = ExtractorConfig.from_file(args.config) if args.config else ExtractorConfig()
    config = ExtractorConfig.from_env(base=config)
    if args.backend:
        config = config.override(source__backend=TokenSourceBackend(args.backend))
    if args.diagnostics:
        config = config.override(diagnostics=True)
    return config


def find_dump_files(paths: List[Path], recursive: bool = False) -> Iterator[Path]:
    """Expand directories to the dump files they contain.

    Paths that are not directories are yielded as given, so a missing file is
    reported by the parser like any other unreadable input.
    """
    for path in paths:
        if path.is_dir():
            pattern = "**/*" if recursive else "*"
            for candidate in sorted(path.glob(pattern)):
                if candidate.is_file() and candidate.suffix.lower() in DUMP_SUFFIXES:
                    yield candidate
        else:
            yield path


def format_record_text(record: MessageRecord) -> str:
    """Render one record as ``Name: value`` lines followed by a blank line."""
    lines = [f"{name}: {value}" for name, value in record.items()]
    return "\n".join(lines) + "\n\n"


def format_json(results: List[FileResult]) -> str:
    """Render per-file results as a JSON array."""
    payload = []
    for path, result in results:
        summary = result.summary()
        payload.append({
            "file": str(path),
            "status": summary["status"],
            "record_count": summary["record_count"],
            "error": summary["error"],
            "error_reason": summary["error_reason"],
            "records": [record.to_dict() for record in result.records],
        })
    return json.dumps(payload, indent=2, ensure_ascii=False) + "\n"


def format_csv(results: List[FileResult]) -> str:
    """Render the records of all files as CSV with a leading ``file`` column."""
    import pandas as pd

    frames = []
    for path, result in results:
        df = records_to_dataframe(result.records)
        df.insert(0, "file", str(path))
        frames.append(df)
    combined = pd.concat(frames, ignore_index=True) if frames else records_to_dataframe([])
    return combined.to_csv(index=False)


def format_diagnostic(entry: DiagnosticEntry) -> str:
    """Render one state transition with its phase change and accumulator."""
    details = entry.details or {}
    if "from_phase" not in details:
        return f"[{entry.severity.name}] {entry.message}"
    return (
        f"[{entry.severity.name}] {entry.message} | "
        f"{details['from_phase']} -> {details['to_phase']} "
        f"depth={details.get('depth')} boundary={details.get('boundary')} "
        f"text={shorten_snapshot(details.get('accumulator', ''))!r}"
    )


def print_diagnostic(entry: DiagnosticEntry) -> None:
    """Diagnostic sink writing one line per state transition to stderr."""
    print(format_diagnostic(entry), file=sys.stderr)


def report_result(path: Path, result: ExtractionResult, quiet: bool) -> None:
    """Report the outcome of one file on stderr."""
    if result.success:
        if not quiet:
            print(f"{path}: Finished ({result.record_count} records)", file=sys.stderr)
        return
    reason = getattr(result.error, "reason", "")
    detail = f" ({reason})" if reason and reason != str(result.error) else ""
    print(f"{path}: {result.error or result.status.name}{detail}", file=sys.stderr)


@contextlib.contextmanager
def open_output(path: Optional[Path]) -> Iterator[TextIO]:
    """Open the output file, or use stdout when no path is given."""
    if path is None:
        yield sys.stdout
        return
    with path.open("w", encoding="utf-8", newline="") as stream:
        yield stream


def cmd_parse(args: argparse.Namespace) -> int:
    """Handle parse command."""
    logger = get_logger(__name__, None, "cli")
    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    files = list(find_dump_files(args.paths, args.recursive))
    if not files:
        print("No dump files found", file=sys.stderr)
        return 1

    parser = MessageDumpParser(
        config=config,
        diagnostic_sink=print_diagnostic if config.diagnostics else None
    )
    results: List[FileResult] = []

    try:
        with open_output(args.output) as stream:
            for path in files:
                logger.debug("Processing dump file", extra={"file": str(path)})
                if args.format == "jsonl":
                    result = parser.parse(path, on_record=JSONLinesSink(stream), collect=False)
                elif args.format == "text":
                    result = parser.parse(
                        path, on_record=lambda record: stream.write(format_record_text(record))
                    )
                else:
                    result = parser.parse(path)
                report_result(path, result, args.quiet)
                results.append((path, result))

            if args.format == "json":
                stream.write(format_json(results))
            elif args.format == "csv":
                stream.write(format_csv(results))
    except OSError as e:
        print(f"Error writing output: {e}", file=sys.stderr)
        return 1

    if args.output and not args.quiet:
        print(f"Results written to {args.output}", file=sys.stderr)

    successful = sum(1 for _, result in results if result.success)
    return 0 if successful == len(results) else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_argument_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    # Set up logging verbosity
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG)
    elif args.quiet:
        logging.basicConfig(level=logging.ERROR)

    try:
        if args.command == "parse":
            return cmd_parse(args)
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nOperation interrupted by user", file=sys.stderr)
        return 130  # Standard exit code for SIGINT


if __name__ == "__main__":
    sys.exit(main())
