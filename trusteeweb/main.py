#!/usr/bin/env python3
"""
trusteeweb - Mailbox Trustee Web Builder
========================================

Command-line interface for building a mailbox trustee web.

Usage:
    # Web around one mailbox from permission exports
    python -m trusteeweb.main -i FullAccess.csv -i SendAs.csv -s ceo@contoso.com

    # Several seeds, shallow web
    python -m trusteeweb.main -i perms.csv -s ceo@contoso.com -s cfo@contoso.com --max-depth 2

    # Import exports into SQLite once, then query the database
    python -m trusteeweb.main --sql-database perms.db --import-csv -i perms.csv -s ceo@contoso.com
    python -m trusteeweb.main --sql-database perms.db --seed-file batch1.txt

Options:
    --input, -i                     Permission export CSV (repeatable)
    --sql-database                  SQLite database holding the relationship table
    --sql-table                     Relationship table name (default: MailboxTrustee)
    --import-csv                    Import the --input files into the database first
    --seed, -s                      Seed identity (repeatable, comma-separated allowed)
    --seed-file                     File with one seed identity per line
    --max-depth                     Maximum depth (default: 100)
    --permissive-mailbox-threshold  Drop mailboxes with more trustees (default: 500)
    --power-trustee-threshold       Drop trustees with more mailboxes (default: 500)
    --ignore-mailbox                Mailbox identity to ignore (repeatable)
    --ignore-trustee                Trustee identity to ignore (repeatable)
    --ignore-permission-type        Permission type to ignore (repeatable)
    --deadline                      Abort the build after N seconds
    --config                        JSON configuration file
    --output, -o                    Output directory (default: ./output)
    --no-visuals                    Skip HTML/PNG rendering
    --verbose, -v                   Verbose output

Environment Variables:
    TRUSTEEWEB_SQL_DATABASE   Default SQLite database
    TRUSTEEWEB_OUTPUT_DIR     Default output directory
"""

import argparse
import sys
from pathlib import Path

from . import __version__
from .config import WebConfig
from .errors import ConfigError, TrusteeWebError
from .gui_integration.bridge import run_web
from .ingestion.sql_loader import import_csv_files
from .reporting.report_builder import generate_text_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="trusteeweb",
        description="trusteeweb - Mailbox Trustee Web Builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Web around one mailbox
  %(prog)s -i FullAccess.csv -i SendAs.csv -s ceo@contoso.com

  # Tighter thresholds for a noisy tenant
  %(prog)s -i perms.csv -s ceo@contoso.com --permissive-mailbox-threshold 50 --power-trustee-threshold 50

  # SQLite-backed table
  %(prog)s --sql-database perms.db --import-csv -i perms.csv -s ceo@contoso.com
        """
    )

    # Input options
    input_group = parser.add_argument_group("Input")
    input_group.add_argument(
        "-i", "--input",
        action="append",
        default=[],
        metavar="CSV",
        help="Permission export CSV file (repeatable)"
    )
    input_group.add_argument(
        "--sql-database",
        help="SQLite database holding the relationship table"
    )
    input_group.add_argument(
        "--sql-table",
        default=None,
        help="Relationship table name inside the database (default: MailboxTrustee)"
    )
    input_group.add_argument(
        "--import-csv",
        action="store_true",
        help="Import the --input files into the SQL database before building"
    )

    # Seed options
    seed_group = parser.add_argument_group("Seeds")
    seed_group.add_argument(
        "-s", "--seed",
        action="append",
        default=[],
        help="Seed identity (repeatable; comma-separated lists allowed)"
    )
    seed_group.add_argument(
        "--seed-file",
        help="File with one seed identity per line (# starts a comment)"
    )

    # Web options
    web_group = parser.add_argument_group("Web Options")
    web_group.add_argument(
        "--max-depth",
        type=int,
        default=None,
        help="Maximum depth from any seed (default: 100)"
    )
    web_group.add_argument(
        "--permissive-mailbox-threshold",
        type=int,
        default=None,
        help="Drop mailboxes with more trustees than this (default: 500)"
    )
    web_group.add_argument(
        "--power-trustee-threshold",
        type=int,
        default=None,
        help="Drop trustees with access to more mailboxes than this (default: 500)"
    )
    web_group.add_argument(
        "--ignore-mailbox",
        action="append",
        default=[],
        help="Mailbox identity whose rows are ignored (repeatable)"
    )
    web_group.add_argument(
        "--ignore-trustee",
        action="append",
        default=[],
        help="Trustee identity whose rows are ignored (repeatable)"
    )
    web_group.add_argument(
        "--ignore-permission-type",
        action="append",
        default=[],
        help="Permission type to ignore, e.g. Calendar (repeatable)"
    )
    web_group.add_argument(
        "--deadline",
        type=float,
        default=None,
        help="Abort the build after this many seconds"
    )

    # Output options
    output_group = parser.add_argument_group("Output")
    output_group.add_argument(
        "-o", "--output",
        default=None,
        help="Output directory for results (default: ./output)"
    )
    output_group.add_argument(
        "--no-visuals",
        action="store_true",
        help="Skip the HTML/PNG web renderings"
    )

    # General options
    parser.add_argument(
        "--config",
        help="JSON configuration file; command-line flags override it"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"trusteeweb {__version__}"
    )
    return parser


def read_seed_file(path: str) -> list[str]:
    """Read seeds from a file, one per line; blank lines and # comments are skipped."""
    seed_path = Path(path)
    if not seed_path.exists():
        raise ConfigError(f"Seed file not found: {path}")
    seeds = []
    with open(seed_path, 'r', encoding='utf-8-sig') as f:
        for line in f:
            line = line.split('#', 1)[0].strip()
            if line:
                seeds.append(line)
    return seeds


def build_config(args: argparse.Namespace) -> WebConfig:
    """Merge the optional JSON config file with command-line flags."""
    config = WebConfig.from_json_file(args.config) if args.config else WebConfig()

    if args.max_depth is not None:
        config.traversal.maximum_depth = args.max_depth
    if args.deadline is not None:
        config.traversal.deadline_seconds = args.deadline
    if args.permissive_mailbox_threshold is not None:
        config.thresholds.permissive_mailbox_threshold = args.permissive_mailbox_threshold
    if args.power_trustee_threshold is not None:
        config.thresholds.power_trustee_threshold = args.power_trustee_threshold

    config.ignore.mailbox_identities.extend(args.ignore_mailbox)
    config.ignore.trustee_identities.extend(args.ignore_trustee)
    config.ignore.permission_types.extend(args.ignore_permission_type)

    if args.sql_database:
        config.sql.database = args.sql_database
    if args.sql_table:
        config.sql.table_name = args.sql_table
    if args.output:
        config.output.output_dir = args.output

    config.verbose = args.verbose
    return config.validate()


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.import_csv and not (args.sql_database and args.input):
        parser.error("--import-csv needs --sql-database and at least one -i/--input file")
    if not args.seed and not args.seed_file:
        parser.error("Must provide at least one seed: -s/--seed or --seed-file")

    print_banner()

    try:
        config = build_config(args)

        seeds = list(args.seed)
        if args.seed_file:
            seeds.extend(read_seed_file(args.seed_file))

        input_files = args.input
        if args.import_csv:
            imported = import_csv_files(
                config.sql.database,
                input_files,
                table_name=config.sql.table_name,
                log_func=print,
            )
            print(f"[+] Imported {imported} rows into {config.sql.database}")
            input_files = []

        if not input_files and not config.sql.database:
            parser.error("Must provide -i/--input CSV files or --sql-database")

        print(f"\n{'='*60}")
        print("Building Web")
        print(f"{'='*60}\n")

        result = run_web(
            seeds=seeds,
            input_files=input_files or None,
            sql_database=config.sql.database,
            config=config,
            generate_visualizations=not args.no_visuals,
            quiet=not args.verbose,
        )

        summary = result.summary
        print(f"\n{'='*60}")
        print("Web Complete")
        print(f"{'='*60}\n")

        print(f"Seeds: {summary.seed_count}")
        print(f"Nodes: {summary.node_count}")
        print(f"Depth reached: {summary.depth_reached} (limit {summary.maximum_depth})")
        if result.exclusions:
            print(f"Permissive mailboxes excluded: {len(result.exclusions.permissive_mailboxes)}")
            print(f"Power trustees excluded: {len(result.exclusions.power_trustees)}")

        print("\nResults saved to:")
        for name, path in result.report_paths.items():
            print(f"  - {name}: {path}")

        if args.verbose:
            print(f"\n{'='*60}")
            print(generate_text_report(result))

        return 0

    except TrusteeWebError as e:
        print(f"\n[!] Error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


def print_banner():
    """Print the trusteeweb banner."""
    banner = r"""
  _                 _                            _
 | |_ _ __ _   _ __| |_ ___  ___  __      _____| |__
 | __| '__| | | / __| __/ _ \/ _ \ \ \ /\ / / _ \ '_ \
 | |_| |  | |_| \__ \ ||  __/  __/  \ V  V /  __/ |_) |
  \__|_|   \__,_|___/\__\___|\___|   \_/\_/ \___|_.__/

  Mailbox Trustee Web Builder
    """
    print(banner)


if __name__ == "__main__":
    sys.exit(main())
