"""Concord CLI: compare platform reports and gate on consensus."""

import argparse
import logging
import sys
from importlib.metadata import version as get_version, PackageNotFoundError
from pathlib import Path
from typing import Optional

EXIT_OK = 0
EXIT_NO_CONSENSUS = 1
EXIT_CONFIG_ERROR = 2
EXIT_EMPTY_RUN = 3


def _configure_logging(quiet: bool, verbose: bool) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    if verbose:
        root.setLevel(logging.DEBUG)
    elif quiet:
        root.setLevel(logging.WARNING)
    else:
        root.setLevel(logging.INFO)


def _int_arg(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {value!r}")
    return number


def _build_parser(concord_version: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="concord",
        description="Concord: cross-platform consensus for reproducible build checksums"
    )
    parser.add_argument("--version", action="version", version=f"concord {concord_version}")
    # Common arguments
    parent_parser = argparse.ArgumentParser(add_help=False)
    parent_parser.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress all non-error output."
    )
    parent_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging."
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # compare command
    compare_parser = subparsers.add_parser(
        "compare",
        help="Compare platform reports and determine consensus",
        parents=[parent_parser]
    )
    compare_parser.add_argument(
        "--results-dir",
        type=Path,
        default=Path("consensus-results"),
        help="Directory containing platform reports (default: consensus-results)"
    )
    compare_parser.add_argument(
        "--output",
        type=Path,
        default=Path("consensus-report.json"),
        help="Output file for the consensus report (default: consensus-report.json)"
    )
    compare_parser.add_argument(
        "--threshold",
        type=_int_arg,
        default=None,
        help="Platforms that must agree on one checksum (default: 2)"
    )
    compare_parser.add_argument(
        "--require-match",
        action="store_true",
        default=None,
        help="Strict consensus: every reporting platform must match"
    )
    compare_parser.add_argument(
        "--min-platforms",
        type=_int_arg,
        default=None,
        help="Minimum platforms that must report a combination (default: 2)"
    )
    compare_parser.add_argument(
        "--allow-partial",
        action="store_true",
        default=None,
        help="Threshold mode: pass when at least one combination reached consensus"
    )
    compare_parser.add_argument(
        "--expected-platforms",
        type=_int_arg,
        default=None,
        help="Number of platforms expected to report (rejects unreachable thresholds)"
    )
    compare_parser.add_argument(
        "--policy",
        type=Path,
        default=None,
        help="JSON policy file; explicit flags override its values"
    )
    compare_parser.add_argument(
        "--serial",
        default=None,
        help="Expected build serial; documents for other serials are skipped"
    )
    compare_parser.add_argument(
        "--generate-evidence",
        action="store_true",
        help="Write witness evidence for each disagreement"
    )
    compare_parser.add_argument(
        "--evidence-dir",
        type=Path,
        default=None,
        help="Directory for evidence files (default: <output dir>/evidence)"
    )

    # normalize command
    normalize_parser = subparsers.add_parser(
        "normalize",
        help="Print canonical records parsed from platform reports",
        parents=[parent_parser]
    )
    normalize_parser.add_argument(
        "--results-dir",
        type=Path,
        default=Path("consensus-results"),
        help="Directory containing platform reports"
    )
    normalize_parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write records to this file instead of stdout"
    )
    return parser


def _print_summary(run, output: Path, evidence_written: bool, evidence_dir: Optional[Path]) -> None:
    report = run.report
    print("")
    print("===============================================")
    print("Consensus Report Summary")
    print("===============================================")
    print(f"Platforms compared: {len(report.platforms)}")
    print(f"Total combinations: {report.summary.total_combinations}")
    print(f"Consensus achieved: {report.summary.consensus_achieved}")
    print(f"Disagreements: {report.summary.disagreements}")
    if report.skipped_sources:
        print(f"Skipped sources: {len(report.skipped_sources)}")
    print("")
    if report.consensus.achieved:
        print("[OK] Overall consensus: ACHIEVED")
    else:
        print("[FAILED] Overall consensus: FAILED")
        print("")
        print(f"See {output} for details")
        if evidence_written:
            print(f"Witness evidence: {evidence_dir or output.parent / 'evidence'}")


def _run_compare(args) -> int:
    from .api import load_policy, run_consensus, write_outputs
    from .errors import EmptyRunError, InvalidPolicy

    try:
        policy = load_policy(
            args.policy,
            threshold=args.threshold,
            require_all_match=args.require_match,
            min_platforms=args.min_platforms,
            allow_partial=args.allow_partial,
            expected_platforms=args.expected_platforms,
        )
    except InvalidPolicy as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        run = run_consensus(args.results_dir, policy, expected_serial=args.serial)
    except FileNotFoundError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    except EmptyRunError as e:
        print(f"Empty run: {e}", file=sys.stderr)
        return EXIT_EMPTY_RUN

    try:
        written = write_outputs(
            run,
            args.output,
            generate_evidence=args.generate_evidence,
            evidence_dir=args.evidence_dir,
        )
    except (OSError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR
    if not args.quiet:
        _print_summary(run, written.report_path, bool(written.evidence_paths), args.evidence_dir)
    return EXIT_OK if run.achieved else EXIT_NO_CONSENSUS


def _run_normalize(args) -> int:
    from .api import normalize_documents
    from ._internal.canonical_json import canonical_dumps
    from ._internal.io.results_dir import read_sources
    from ._internal.io.writer import write_json_atomic

    try:
        reports, issues = read_sources(args.results_dir)
    except (FileNotFoundError, ValueError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    result = normalize_documents(reports)
    payload = {
        "platforms": list(result.platforms),
        "records": [r.model_dump(mode="json", exclude_none=True) for r in result.records],
        "skipped_sources": [i.model_dump(mode="json") for i in list(issues) + list(result.issues)],
    }
    if args.output is not None:
        try:
            write_json_atomic(args.output, payload)
        except OSError as e:
            print(f"Configuration error: {e}", file=sys.stderr)
            return EXIT_CONFIG_ERROR
        if not args.quiet:
            print("[OK] Normalization complete")
            print(f"  Records: {len(result.records)}")
            print(f"  Output: {args.output}")
    else:
        print(canonical_dumps(payload, indent=2))
    return EXIT_OK


def main(argv=None):
    """Main CLI entry point for concord commands."""
    # Get version for --version argument (handle PackageNotFoundError)
    try:
        concord_version = get_version("concord")
    except PackageNotFoundError:
        concord_version = "dev"

    parser = _build_parser(concord_version)
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_CONFIG_ERROR)

    _configure_logging(args.quiet, args.verbose)

    if args.command == "compare":
        exit_code = _run_compare(args)
    elif args.command == "normalize":
        exit_code = _run_normalize(args)
    else:
        parser.print_help()
        exit_code = EXIT_CONFIG_ERROR
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
