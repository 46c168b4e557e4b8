"""Command line interface for i18n-ast."""

from __future__ import annotations

import argparse
import pathlib
import sys
from typing import Any, Dict, Iterable, Optional, Sequence

from .configuration import load_config
from .errors import ConfigurationError, I18nAstError
from .locales import SUPPORTED_LOCALES
from .pipeline import ExtractionRunner, ExtractionSummary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18n-ast",
        description=(
            "Replace human-readable strings in JS/TS sources with i18next.t() "
            "calls and write the extracted key map."
        ),
    )
    parser.add_argument(
        "-c",
        "--config",
        help="Path to a YAML configuration file (default: discovered in the working directory).",
    )
    parser.add_argument(
        "-e",
        "--entry",
        action="append",
        help="File or directory to rewrite. Repeat to pass several entries.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Directory receiving the <locale> resource module.",
    )
    parser.add_argument(
        "-l",
        "--locale",
        choices=SUPPORTED_LOCALES,
        help="Script of the strings to extract (default: zh).",
    )
    parser.add_argument(
        "-i",
        "--import-path",
        help="Module specifier the translator is imported from.",
    )
    parser.add_argument(
        "--formatter",
        choices=("prettier", "none"),
        help="Formatter applied to rewritten files (default: prettier).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show detailed progress information.",
    )
    return parser


def collect_overrides(
    *,
    entry: Optional[Sequence[str]] = None,
    output: Optional[str] = None,
    locale: Optional[str] = None,
    import_path: Optional[str] = None,
    formatter: Optional[str] = None,
) -> Dict[str, Any]:
    """Map command line options onto configuration field names."""

    overrides: Dict[str, Any] = {
        "entry": list(entry) if entry else None,
        "output": output,
        "locales": locale,
        "i18n_config_file_path": import_path,
        "formatter": formatter,
    }
    return {key: value for key, value in overrides.items() if value is not None}


def execute_extraction(
    *,
    config_file: str | None,
    overrides: Dict[str, Any],
    verbose: bool,
) -> tuple[int, ExtractionSummary | None, str | None]:
    """Execute a run and return the exit code, summary, and message."""

    try:
        config = load_config(config_file, overrides=overrides)
    except ConfigurationError as exc:
        return 1, None, str(exc)

    runner = ExtractionRunner(config=config, verbose=verbose)

    try:
        summary = runner.run()
    except I18nAstError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Run interrupted by user."

    return 0, summary, None


def print_summary(summary: ExtractionSummary) -> None:
    """Output a friendly report once processing completes."""

    print("\nExtraction complete.")
    print(f"  Entries:         {', '.join(str(path) for path in summary.entry_paths)}")
    print(f"  Resource file:   {summary.output_path}")
    print(f"  Locale:          {summary.locale}")
    print(
        "  Files:           "
        f"{summary.files_processed} rewritten ({summary.files_skipped} skipped, "
        f"{summary.imports_added} imports added)"
    )
    print(
        "  Strings:         "
        f"{summary.translated_nodes} extracted ({summary.skipped_nodes} left untouched)"
    )
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.notes:
        print("  Notes:")
        for record in summary.notes:
            print(f"    - {record.message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    config_file = (
        str(pathlib.Path(args.config).expanduser()) if args.config else None
    )
    overrides = collect_overrides(
        entry=args.entry,
        output=args.output,
        locale=args.locale,
        import_path=args.import_path,
        formatter=args.formatter,
    )

    exit_code, summary, message = execute_extraction(
        config_file=config_file,
        overrides=overrides,
        verbose=args.verbose,
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
