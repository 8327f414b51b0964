"""
GUI Bridge Module
=================

High-level interface shared by the CLI and the Streamlit GUI.

This module orchestrates the entire pipeline:
1. Relationship table loading (CSV exports or a SQLite table)
2. Ignore-list filtering and deduplication
3. Threshold filtering
4. Web building
5. Report generation
6. Visualization creation

Design Decisions:
-----------------
1. Single entry point (run_web) for simplicity
2. Returns WebResult which contains everything the GUI needs
3. Errors propagate unchanged; reports are only written after the web is
   complete, so a failed run leaves no partial node list behind
4. Progress updates via callback for real-time GUI updates
"""

import shutil
import threading
from pathlib import Path
from typing import Callable, Iterable, Optional, Union

from ..analysis.thresholds import apply_thresholds
from ..analysis.web_builder import WebBuilder
from ..config import WebConfig
from ..errors import TrusteeWebError
from ..ingestion.csv_loader import RelationshipCsvLoader
from ..ingestion.sql_loader import SqlRelationshipTable
from ..model.identity import parse_seed_identities
from ..model.relationship_table import RelationshipTable
from ..model.schemas import WebResult
from ..reporting.report_builder import ReportBuilder


def _build_config(config: Optional[Union[dict, WebConfig]], output_dir: Optional[str]) -> WebConfig:
    """Build a validated WebConfig from a dict, an existing config or defaults."""
    if isinstance(config, WebConfig):
        web_config = config
    else:
        web_config = WebConfig.from_dict(config or {})
    if output_dir:
        web_config.output.output_dir = output_dir
    return web_config.validate()


def load_table(
    config: WebConfig,
    input_files: Optional[list[str]] = None,
    sql_database: Optional[str] = None,
    log: Callable[[str], None] = print,
) -> RelationshipTable:
    """Load the relationship table from CSV files or a SQLite database.

    CSV input wins when both are given.

    Raises:
        ValueError: If neither source is provided
        SchemaError: If a source is missing mandatory columns
    """
    sql_database = sql_database or config.sql.database

    if input_files:
        log(f"[*] Loading permission data from {len(input_files)} file(s)...")
        loader = RelationshipCsvLoader(ignore=config.ignore, verbose=True, log_func=log)
        return loader.load_files(input_files)

    if sql_database:
        log(f"[*] Opening {config.sql.table_name} in {sql_database}...")
        table = SqlRelationshipTable(sql_database, config.sql.table_name, ignore=config.ignore)
        if table.skipped_rows:
            log(f"[*] Skipped {table.skipped_rows} rows with a blank or non-address identity")
        return table

    raise ValueError("Must provide either input CSV files or a SQL database")


def run_web(
    seeds: Iterable[str],
    input_files: Optional[list[str]] = None,
    sql_database: Optional[str] = None,
    output_dir: Optional[str] = None,
    config: Optional[Union[dict, WebConfig]] = None,
    progress_callback: Optional[Callable[[str], None]] = None,
    generate_visualizations: bool = True,
    clean_output: bool = False,
    cancel_event: Optional[threading.Event] = None,
    quiet: bool = False,
) -> WebResult:
    """Main entry point for building a trustee web.

    Args:
        seeds: Seed identities (addresses)
        input_files: Permission export CSV files
        sql_database: SQLite database holding the relationship table
        output_dir: Directory for output files (overrides config)
        config: Optional configuration dictionary or WebConfig
        progress_callback: Optional callback for progress updates
        generate_visualizations: Whether to render HTML/PNG graphs
        clean_output: Remove existing files in output_dir first
        cancel_event: Optional event that aborts the build when set
        quiet: Do not echo progress to stdout

    Returns:
        WebResult with nodes, summary, exclusions and report paths

    Raises:
        ValueError: If no data source is provided
        TrusteeWebError: Any schema, config, validation, lookup or
            cancellation failure (no reports are written)

    Example:
        result = run_web(
            seeds=["ceo@contoso.com"],
            input_files=["FullAccess.csv", "SendAs.csv"],
            config={"traversal": {"maximum_depth": 3}},
        )
    """

    def log(message: str):
        """Log message to callback if provided."""
        if progress_callback:
            progress_callback(message)
        if not quiet:
            print(message)

    web_config = _build_config(config, output_dir)
    seeds = parse_seed_identities(seeds)

    table = load_table(web_config, input_files, sql_database, log)
    try:
        log(f"[+] Relationship table ready: {table.edge_count} relationships")

        log("[*] Applying fan-out thresholds...")
        filtered, exclusions = apply_thresholds(
            table,
            web_config.thresholds.permissive_mailbox_threshold,
            web_config.thresholds.power_trustee_threshold,
        )
        log(f"[+] Excluded {len(exclusions.permissive_mailboxes)} permissive mailbox(es) and "
            f"{len(exclusions.power_trustees)} power trustee(s); "
            f"{exclusions.edges_after} relationships remain")

        builder = WebBuilder(filtered, web_config, progress_callback=log, cancel_event=cancel_event)
        result = builder.build(seeds, exclusions)

        output_path = Path(web_config.output.output_dir)
        if clean_output and output_path.exists():
            log("[*] Cleaning previous output...")
            for item in output_path.iterdir():
                if item.is_file():
                    item.unlink()
                elif item.is_dir():
                    shutil.rmtree(item)

        log("[*] Generating reports...")
        result.metadata['source'] = 'csv' if input_files else 'sql'
        report_builder = ReportBuilder(result, filtered, str(output_path), web_config.output)
        result = report_builder.build_report(
            generate_visualizations=generate_visualizations,
            input_files=[Path(f).name for f in input_files or []],
        )
    finally:
        if isinstance(table, SqlRelationshipTable):
            table.close()

    for name, path in result.report_paths.items():
        log(f"[+] {name}: {path}")
    log("[+] Done!")

    return result


def run_web_worker(
    output_queue,
    web_params: dict,
    cancel_event: Optional[threading.Event] = None,
    upload_dir: Optional[str] = None,
) -> None:
    """Run run_web on a GUI worker thread, reporting through a queue.

    Messages are ("log", str), ("result", WebResult), ("error", str) and a
    final ("complete", None). Any exception is reported on the queue, and
    upload_dir (temporary copies of uploaded files) is always removed.
    """
    try:
        result = run_web(
            progress_callback=lambda message: output_queue.put(("log", message)),
            cancel_event=cancel_event,
            quiet=True,
            **web_params
        )
        output_queue.put(("result", result))
    except (TrusteeWebError, ValueError) as e:
        output_queue.put(("log", f"[!] Error: {e}"))
        output_queue.put(("error", str(e)))
    except Exception as e:
        import traceback
        output_queue.put(("log", f"[!] Error: {e}"))
        output_queue.put(("log", f"[!] {traceback.format_exc()}"))
        output_queue.put(("error", str(e)))
    finally:
        if upload_dir:
            shutil.rmtree(upload_dir, ignore_errors=True)
        output_queue.put(("complete", None))
