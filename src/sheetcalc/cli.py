"""Command-line interface for sheetcalc."""

from __future__ import annotations

import json
from pathlib import Path

import click

from sheetcalc import __version__


def _echo_event(evt: dict) -> None:
    ts = evt.get("ts", "")
    lvl = evt.get("level", "").upper()
    etype = evt.get("event_type", "")
    msg = evt.get("message", "")
    err = evt.get("error_code")
    line = f"[{ts}] {lvl:7s} {etype}: {msg}"
    if err:
        line += f"  ({err})"
    click.echo(line)


def _load_store(sheet_file: str) -> dict:
    from sheetcalc.sheetfile import load_sheet

    try:
        return load_sheet(Path(sheet_file))
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc


@click.group()
@click.version_option(version=__version__, prog_name="sheetcalc")
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(exists=True),
    help="Config file or directory holding sheetcalc.yaml (default: current directory).",
)
@click.pass_context
def main(ctx: click.Context, config_path: str | None) -> None:
    """sheetcalc -- evaluate spreadsheet formulas and sheets."""
    from sheetcalc.config import configure_logging, load_config

    path = Path(config_path) if config_path else Path.cwd()
    try:
        config = load_config(path)
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    base_dir = path if path.is_dir() else path.parent
    configure_logging(config, base_dir)
    ctx.obj = {"config": config, "base_dir": base_dir}


# ---------------------------------------------------------------------------
# Formulas
# ---------------------------------------------------------------------------


@main.command("eval")
@click.argument("formula")
@click.option("--sheet", "sheet_file", default=None, type=click.Path(exists=True), help="Sheet file to resolve references against.")
def eval_cmd(formula: str, sheet_file: str | None) -> None:
    """Evaluate FORMULA and print its display string."""
    from sheetcalc.formulas.values import to_text
    from sheetcalc.sheet import evaluate_formula

    store = _load_store(sheet_file) if sheet_file else {}
    click.echo(to_text(evaluate_formula(formula, store)))


@main.command()
@click.argument("formula")
@click.option("--expand", is_flag=True, default=False, help="Include every cell of each range.")
def refs(formula: str, expand: bool) -> None:
    """List the cells FORMULA references."""
    from sheetcalc.formulas.parser import extract_cell_references, referenced_cells

    keys = referenced_cells(formula) if expand else extract_cell_references(formula)
    for key in keys:
        click.echo(key)


@main.command()
@click.argument("formula")
@click.pass_context
def check(ctx: click.Context, formula: str) -> None:
    """Report whether FORMULA is complete enough to commit (exit 1 if not)."""
    from sheetcalc.sheet import is_formula_complete

    if is_formula_complete(formula):
        click.echo("complete")
    else:
        click.echo("incomplete")
        ctx.exit(1)


# ---------------------------------------------------------------------------
# Sheets
# ---------------------------------------------------------------------------


@main.command()
@click.argument("sheet_file", type=click.Path(exists=True))
@click.argument("cell")
def show(sheet_file: str, cell: str) -> None:
    """Print the display value of CELL in SHEET_FILE."""
    from sheetcalc.refs import parse_cell_ref
    from sheetcalc.sheet import get_display_value

    if parse_cell_ref(cell) is None:
        raise click.ClickException(f"Not a cell reference: {cell!r}")
    click.echo(get_display_value(_load_store(sheet_file), cell))


@main.command()
@click.argument("sheet_file", type=click.Path(exists=True))
@click.option("--max-iterations", type=int, default=None, help="Cap on recalculation passes.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print JSON instead of a table.")
@click.pass_context
def recalc(ctx: click.Context, sheet_file: str, max_iterations: int | None, as_json: bool) -> None:
    """Recalculate every formula in SHEET_FILE and print all cells."""
    from sheetcalc.formulas.values import to_text
    from sheetcalc.sheet import recalculate

    config = ctx.obj["config"]
    cap = max_iterations if max_iterations is not None else config["max_iterations"]
    if cap < 1:
        raise click.ClickException("--max-iterations must be positive.")

    result = recalculate(_load_store(sheet_file), max_iterations=cap)

    if as_json or config["output"] == "json":
        click.echo(json.dumps(result.model_dump(), indent=2, default=str))
        return

    for key, value in result.values.items():
        click.echo(f"{key}\t{to_text(value)}")
    status = "converged" if result.converged else "not converged"
    click.echo(f"\n{len(result.values)} cell(s), {result.iterations} pass(es), {status}")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@main.command("events")
@click.option("--level", default=None, type=click.Choice(["info", "warning", "error"]), help="Filter by level.")
@click.option("--type", "event_type", default=None, help="Filter by event type.")
@click.option("--limit", default=100, type=int, help="Maximum events to show.")
def events_cmd(level: str | None, event_type: str | None, limit: int) -> None:
    """Show the structured event log."""
    from sheetcalc.logging.events import get_sink

    sink = get_sink()
    if sink is None:
        raise click.ClickException("Event logging is disabled; set log_dir in sheetcalc.yaml.")

    events = sink.read(level=level, event_type=event_type, limit=limit)
    if not events:
        click.echo("No events found.")
        return

    for evt in events:
        _echo_event(evt)


if __name__ == "__main__":
    main()
