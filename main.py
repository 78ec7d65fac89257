#!/usr/bin/env python3
"""
Open Purchase-Order Tracker — CLI entry point.

Usage examples:
  python main.py check                                   # Verify LLM backend and database
  python main.py summary export.xlsx                     # Per-supplier risk summary
  python main.py summary export.xlsx -t 15 --save        # Custom threshold, store snapshot
  python main.py compare last_week.xlsx this_week.xlsx   # Diff two exports
  python main.py compare this_week.xlsx --against-latest # Diff against stored snapshot
  python main.py draft export.xlsx "ACME MAKINA"         # Draft a follow-up email
  python main.py refine draft.txt "make it shorter"      # Revise a saved draft
  python main.py apply-updates export.xlsx "450001/10 moved to 15.05.2025" --save
  python main.py export export.xlsx orders.csv           # Flat CSV of all lines
  python main.py snapshots --delete 3                    # Remove a stored snapshot
"""
import base64
import json
import logging
import sys
from pathlib import Path

import click

from config import Config
from models.result import ComparisonReport
from pipeline.classifier import count_by_risk
from pipeline.export import export_order_lines, export_report
from pipeline.llm_drafter import DraftingError, fill_order_table
from pipeline.processor import OrderProcessor

RISK_ICONS = {"critical": "✗", "warning": "⚠", "ok": "✓"}
RETRY_MESSAGE = "The drafting service did not respond. Check LLM_BASE_URL / LLM_API_KEY and try again."


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )
    # Quieten noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def _make_config(threshold: int | None = None, model: str | None = None) -> Config:
    config = Config()
    if threshold is not None:
        config.warning_threshold = threshold
    if model:
        config.llm_model = model
    return config


def _print_report(report: ComparisonReport) -> None:
    click.echo(
        f"\n  Added: {report.total_added}   Removed: {report.total_removed}   "
        f"Updated: {report.total_updated}\n"
    )
    if report.is_empty:
        click.echo("  ✓ No changes between the two snapshots\n")
        return
    for vendor in report.vendors:
        click.echo(
            f"  {vendor.vendor_name} ({vendor.vendor_id})  "
            f"+{vendor.added_count}  -{vendor.removed_count}  ~{vendor.updated_count}"
        )
        for diff in vendor.items:
            line = diff.item
            ref = f"{line.po_number}/{line.item_number or line.material}"
            if diff.kind == "updated":
                click.echo(f"      ~ {ref:<24} {diff.old_date or '-'} → {diff.new_date or '-'}")
            else:
                sign = "+" if diff.kind == "added" else "-"
                click.echo(f"      {sign} {ref:<24} {line.description[:40]}")
    click.echo()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Open Purchase-Order Tracker — classify, compare and follow up on open orders."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# check command
# --------------------------------------------------------------------

@cli.command()
@click.option("--model", default=None, help="LLM model name to check")
def check(model: str | None) -> None:
    """Verify that the LLM backend and the snapshot database are ready."""
    config = _make_config(model=model)
    status = OrderProcessor(config).check_setup()

    click.echo("\n=== Tracker Setup Check ===\n")
    llm = status["llm"]
    click.echo(f"  LLM endpoint:  {config.llm_base_url}")
    if llm["ok"]:
        model_status = "✓ available" if llm.get("model_available") else "✗ NOT found"
        click.echo(f"  Model '{config.llm_model}':  {model_status}")
    else:
        click.echo(f"  LLM backend:   ✗ NOT reachable ({llm.get('error')})")
        click.echo("  → Check LLM_BASE_URL, LLM_API_KEY in your .env")

    db = status["database"]
    tick = "✓" if db["exists"] else "–"
    click.echo(f"  Database:      {tick}  {db['path']}")
    click.echo(f"  Warning threshold: {status['threshold']} days\n")


# --------------------------------------------------------------------
# summary command
# --------------------------------------------------------------------

@cli.command()
@click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
@click.option("--threshold", "-t", default=None, type=int, help="Warning threshold in days")
@click.option("--save", is_flag=True, help="Store the snapshot in the database")
@click.option("--json", "as_json", is_flag=True, help="Print summaries as JSON")
def summary(workbook: str, threshold: int | None, save: bool, as_json: bool) -> None:
    """Show per-supplier risk counts for an open-order export."""
    config = _make_config(threshold=threshold)
    processor = OrderProcessor(config)
    snapshot = processor.load(workbook)
    if snapshot.is_empty:
        click.echo(f"Error: no order lines found in '{workbook}'.", err=True)
        sys.exit(1)

    book = processor.order_book(snapshot)
    vendors = book.vendor_summaries()

    if as_json:
        click.echo(json.dumps(
            [v.model_dump(exclude={"items"}) for v in vendors], ensure_ascii=False, indent=2,
        ))
    else:
        counts = count_by_risk(book.lines)
        click.echo(
            f"\n  {len(book)} open lines, {len(vendors)} suppliers  "
            f"({RISK_ICONS['critical']} {counts['critical']} overdue, "
            f"{RISK_ICONS['warning']} {counts['warning']} due within {config.warning_threshold} days, "
            f"{RISK_ICONS['ok']} {counts['ok']} on track)\n"
        )
        for v in vendors:
            click.echo(
                f"  {v.vendor_name[:40]:<40} {v.vendor_id:<12} "
                f"{v.item_count:>4} lines  {RISK_ICONS['critical']} {v.critical_count:>3}  "
                f"{RISK_ICONS['warning']} {v.warning_count:>3}"
            )
        click.echo()

    if save:
        snapshot_id = processor.save(snapshot)
        click.echo(f"  Snapshot saved (id {snapshot_id}) to {config.db_path}")


# --------------------------------------------------------------------
# compare command
# --------------------------------------------------------------------

@cli.command()
@click.argument("workbooks", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.option("--against-latest", is_flag=True, help="Compare one export with the newest stored snapshot")
@click.option("--csv", "csv_path", default=None, type=click.Path(), help="Write the report as CSV")
@click.option("--json", "as_json", is_flag=True, help="Print the report as JSON")
def compare(workbooks: tuple[str, ...], against_latest: bool, csv_path: str | None, as_json: bool) -> None:
    """
    Compare two snapshots of the order book (OLD NEW), or one export with the
    newest stored snapshot (--against-latest NEW).
    """
    processor = OrderProcessor(_make_config())

    if against_latest:
        if len(workbooks) != 1:
            raise click.UsageError("--against-latest takes exactly one workbook")
        report = processor.compare_with_latest(processor.load(workbooks[0]))
        if report is None:
            click.echo("No stored snapshot yet — run 'summary --save' first.", err=True)
            sys.exit(1)
    else:
        if len(workbooks) != 2:
            raise click.UsageError("compare needs OLD and NEW workbooks")
        report = processor.compare(workbooks[0], workbooks[1])

    if as_json:
        click.echo(report.model_dump_json(indent=2))
    else:
        _print_report(report)

    if csv_path:
        rows = export_report(Path(csv_path), report)
        click.echo(f"  Report written to {csv_path} ({rows} rows)")


# --------------------------------------------------------------------
# draft / refine commands
# --------------------------------------------------------------------

@cli.command()
@click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
@click.argument("supplier")
@click.option("--instructions", "-i", default="", help="Extra instructions for the email")
@click.option("--model", "-m", default=None, help="LLM model name")
@click.option("--output", "-o", default=None, type=click.Path(), help="Write the draft to a file")
def draft(workbook: str, supplier: str, instructions: str, model: str | None, output: str | None) -> None:
    """Draft a follow-up email for SUPPLIER (display name or code)."""
    processor = OrderProcessor(_make_config(model=model))
    book = processor.order_book(processor.load(workbook))
    vendor = book.find_vendor(supplier)
    if vendor is None:
        click.echo(f"Error: supplier '{supplier}' not found in '{workbook}'.", err=True)
        sys.exit(1)

    lines = book.lines_for_supplier(vendor.vendor_name)
    try:
        text = processor.drafter().draft_email(vendor.vendor_name, lines, instructions)
    except DraftingError as e:
        logging.getLogger(__name__).debug("Draft failed: %s", e)
        click.echo(RETRY_MESSAGE, err=True)
        sys.exit(1)

    text = fill_order_table(text, lines)
    contact = book.contact_for(vendor.vendor_id)
    if contact and contact.has_email:
        click.echo(f"To: {contact.rep_name} <{contact.rep_email}>\n")

    if output:
        Path(output).write_text(text, encoding="utf-8")
        click.echo(f"Draft written to {output}")
    else:
        click.echo(text)


@cli.command()
@click.argument("draft_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("instruction")
@click.option("--model", "-m", default=None, help="LLM model name")
@click.option("--output", "-o", default=None, type=click.Path(), help="Write the revision to a file")
def refine(draft_file: str, instruction: str, model: str | None, output: str | None) -> None:
    """Revise a saved draft according to INSTRUCTION."""
    processor = OrderProcessor(_make_config(model=model))
    current = Path(draft_file).read_text(encoding="utf-8")
    try:
        revised = processor.drafter().refine_email(current, instruction)
    except DraftingError:
        click.echo(RETRY_MESSAGE, err=True)
        sys.exit(1)

    if output:
        Path(output).write_text(revised, encoding="utf-8")
        click.echo(f"Revised draft written to {output}")
    else:
        click.echo(revised)


# --------------------------------------------------------------------
# apply-updates command
# --------------------------------------------------------------------

@cli.command("apply-updates")
@click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
@click.argument("instruction")
@click.option("--image", default=None, type=click.Path(exists=True, dir_okay=False),
              help="Screenshot (PNG) of a supplier reply with new dates")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking for confirmation")
@click.option("--save", is_flag=True, help="Store the updated snapshot in the database")
@click.option("--export", "export_path", default=None, type=click.Path(), help="Write updated lines to CSV")
@click.option("--model", "-m", default=None, help="LLM model name")
def apply_updates(
    workbook: str,
    instruction: str,
    image: str | None,
    yes: bool,
    save: bool,
    export_path: str | None,
    model: str | None,
) -> None:
    """Extract delivery-date changes from INSTRUCTION (and an image) and apply them."""
    processor = OrderProcessor(_make_config(model=model))
    snapshot = processor.load(workbook)
    book = processor.order_book(snapshot)

    image_b64 = base64.b64encode(Path(image).read_bytes()).decode("ascii") if image else None
    result = processor.drafter().extract_updates(book.lines, instruction, image_b64)

    click.echo(f"\n  {result.message}\n")
    if not result.updates:
        click.echo("  No date changes proposed.")
        return
    for u in result.updates:
        click.echo(f"    {u.po_number}/{u.item_number or '*'}  →  {u.new_date}")

    if not yes and not click.confirm("\n  Apply these changes?", default=True):
        click.echo("  Nothing applied.")
        return

    changed = book.apply_updates(result.updates)
    click.echo(f"  {changed} order lines updated.")

    if save:
        snapshot_id = processor.save(snapshot, list(book.lines))
        click.echo(f"  Snapshot saved (id {snapshot_id})")
    if export_path:
        export_order_lines(Path(export_path), book.lines)
        click.echo(f"  Updated lines written to {export_path}")


# --------------------------------------------------------------------
# export / snapshots commands
# --------------------------------------------------------------------

@cli.command()
@click.argument("workbook", type=click.Path(exists=True, dir_okay=False))
@click.argument("destination", required=False, type=click.Path())
@click.option("--threshold", "-t", default=None, type=int, help="Warning threshold in days")
def export(workbook: str, destination: str | None, threshold: int | None) -> None:
    """
    Write every order line of WORKBOOK as a flat CSV file
    (default: EXPORT_DIR/<workbook name>.csv).
    """
    config = _make_config(threshold=threshold)
    if destination is None:
        config.ensure_output_dir()
        destination = str(config.export_dir / f"{Path(workbook).stem}.csv")
    processor = OrderProcessor(config)
    snapshot = processor.load(workbook)
    rows = export_order_lines(Path(destination), snapshot.lines)
    click.echo(f"{rows} order lines written to {destination}")


@cli.command()
@click.option("--limit", default=20, show_default=True, help="Number of snapshots to list")
@click.option("--delete", "delete_id", default=None, type=int, help="Delete the snapshot with this id")
def snapshots(limit: int, delete_id: int | None) -> None:
    """List stored snapshots, newest first (or delete one with --delete ID)."""
    processor = OrderProcessor(_make_config())
    if delete_id is not None:
        if not processor.store.delete_snapshot(delete_id):
            click.echo(f"Error: no snapshot with id {delete_id}.", err=True)
            sys.exit(1)
        click.echo(f"  Snapshot #{delete_id} deleted.")
        return
    rows = processor.store.list_snapshots(limit)
    if not rows:
        click.echo("No snapshots stored yet.")
        return
    for row in rows:
        click.echo(
            f"  #{row['id']:<4} {row['loaded_at'][:19]}  {row['line_count']:>5} lines  "
            f"t={row['threshold']:<3} {Path(row['source_file']).name}"
        )


if __name__ == "__main__":
    cli()
