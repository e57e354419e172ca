# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Command-line entry point.

    dnscan scan [DIR] [-o OUT] [-v] [--no-graph] [--no-git]
    dnscan clean DIR [-c] [-m] [-g] [-p] [-v]
    dnscan dump-config

Exit code 1 when the directory does not exist or output cannot be written,
0 otherwise (including when individual files fail to parse or delete).
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dnscan import __version__
from dnscan.cleaner import CleanOptions, run_clean
from dnscan.config import Config
from dnscan.errors import CycleError, OutputWriteError, RootDirectoryNotFoundError
from dnscan.git_info import GitReader
from dnscan.graph import build_analysis_graph
from dnscan.logging_setup import setup_logging
from dnscan.models import AnalysisResult
from dnscan.output import write_csv_files, write_graph
from dnscan.reconciliation import Analyzer
from dnscan.transitive_reduction import transitive_reduction

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="dnscan",
        description="Scans trees of .NET solutions and projects, and cleans build artifacts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for the JSON log file. Default: ./.dnscan_logs",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan = subparsers.add_parser("scan", help="Analyze solutions and projects")
    scan.add_argument(
        "directory",
        nargs="?",
        default=None,
        help="Directory to scan. Default: input_directory from the config, else the cwd",
    )
    scan.add_argument("-o", "--output-dir", default=None, help="Where to write CSV and DOT files")
    scan.add_argument("-v", "--verbose", action="store_true", help="Log progress to the console")
    scan.add_argument("--no-graph", action="store_true", help="Do not write analysis.dot")
    scan.add_argument("--no-git", action="store_true", help="Do not read git metadata")

    clean = subparsers.add_parser("clean", help="Delete build output and caches")
    clean.add_argument("directory", help="Directory to clean")
    clean.add_argument(
        "-c",
        dest="clean",
        action="store_true",
        help="Remove bin, obj, packages and TestResults folders, and stale files like SolutionInfo.cs",
    )
    clean.add_argument(
        "-m",
        dest="ide_clean",
        action="store_true",
        help="Empty the Visual Studio MEF cache, web cache and JetBrains solution caches",
    )
    clean.add_argument(
        "-g",
        dest="git_delete",
        action="store_true",
        help="Remove the .git folders themselves. Use at your peril, this removes source control!",
    )
    clean.add_argument(
        "-p",
        dest="prompt",
        action="store_true",
        help="Prompt for confirmation before deleting anything",
    )
    clean.add_argument("-v", "--verbose", action="store_true", help="Report each deletion")

    subparsers.add_parser("dump-config", help="Print the default configuration as YAML")

    return parser.parse_args(argv)


def _setup_logging(args: argparse.Namespace) -> None:
    verbose = getattr(args, "verbose", False)
    setup_logging(
        log_dir=args.log_dir,
        log_level=logging.DEBUG if verbose else logging.INFO,
        console_level=logging.DEBUG if verbose else logging.WARNING,
    )


def summary_line(result: AnalysisResult) -> str:
    return (
        f"Found {result.num_solutions()} solutions, "
        f"{result.num_linked_projects()} linked projects and "
        f"{result.num_orphaned_projects()} orphaned projects"
    )


def run_scan(args: argparse.Namespace) -> int:
    config = Config(scan_directory=args.directory or Path.cwd())
    directory = args.directory or config.input_directory or str(Path.cwd())
    output_dir = args.output_dir or config.output_directory

    analyzer = Analyzer(config, git_reader=None if args.no_git else GitReader())
    try:
        result = analyzer.analyze(directory)
    except RootDirectoryNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    try:
        write_csv_files(result, output_dir)
        if not args.no_graph:
            graph = build_analysis_graph(result)
            try:
                removed = transitive_reduction(graph)
            except CycleError as e:
                logger.warning(f"{e}; writing the graph without reduction")
                removed = set()
            write_graph(graph, removed, config, output_dir)
    except OutputWriteError as e:
        print(str(e), file=sys.stderr)
        return 1

    print(summary_line(result))
    return 0


def run_clean_command(args: argparse.Namespace) -> int:
    config = Config(scan_directory=args.directory)
    options = CleanOptions(
        directory=args.directory,
        clean=args.clean,
        ide_clean=args.ide_clean,
        git_delete=args.git_delete,
        verbose=args.verbose,
        prompt_for_confirmation=args.prompt,
        max_workers=config.max_workers,
    )
    try:
        failures = run_clean(options)
    except RootDirectoryNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1

    for path, error in failures:
        print(f"Could not delete {path}: {error}", file=sys.stderr)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    if args.command == "dump-config":
        sys.stdout.write(Config.dump_defaults())
        return 0

    _setup_logging(args)

    if args.command == "scan":
        return run_scan(args)
    return run_clean_command(args)


if __name__ == "__main__":
    sys.exit(main())
