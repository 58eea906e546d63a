"""CLI entry point: conquest-odds precompute / odds / simulate / inspect."""
from __future__ import annotations

import time
from pathlib import Path

import click

from .config import EngineConfig, HEADER_SIZE

EXIT_INVALID_BOUNDS = 2
EXIT_RESOURCE_EXHAUSTED = 3
EXIT_WRITE_FAILED = 4
EXIT_BAD_TABLE = 5


@click.group()
@click.option("--base-path", default=".", help="Base path (repo root).")
@click.pass_context
def cli(ctx: click.Context, base_path: str):
    """Combat odds for territory-conquest games."""
    ctx.obj = EngineConfig.from_env(base_path)


@cli.command()
@click.argument("max_attacker", type=int, required=False)
@click.argument("max_defender", type=int, required=False)
@click.option("--output", type=click.Path(dir_okay=False), default=None,
              help="Where to write the table (default: configured table path).")
@click.option("--workers", type=int, default=None, help="Worker threads per diagonal.")
@click.option("--progress/--no-progress", default=True)
@click.pass_obj
def precompute(config: EngineConfig, max_attacker: int | None, max_defender: int | None,
               output: str | None, workers: int | None, progress: bool):
    """Build the conquest table up to MAX_ATTACKER x MAX_DEFENDER and save it.

    Bounds default to CONQUEST_MAX_ATTACKER / CONQUEST_MAX_DEFENDER (100 x 100).
    """
    from .builder import build
    from .errors import InvalidTableBounds, ResourceExhausted
    from .tables import save_table

    t0 = time.time()
    out = Path(output) if output else config.table_path
    if max_attacker is None:
        max_attacker = config.max_attacker_armies
    if max_defender is None:
        max_defender = config.max_defender_armies
    try:
        table = build(
            max_attacker,
            max_defender,
            workers=config.workers if workers is None else workers,
            progress=progress,
            max_cells=config.max_table_cells,
        )
    except InvalidTableBounds as exc:
        click.echo(f"Invalid bounds: {exc}", err=True)
        raise SystemExit(EXIT_INVALID_BOUNDS)
    except ResourceExhausted as exc:
        click.echo(f"Resource exhausted: {exc}", err=True)
        raise SystemExit(EXIT_RESOURCE_EXHAUSTED)

    try:
        save_table(table, out)
    except OSError as exc:
        click.echo(f"Failed to write {out}: {exc}", err=True)
        raise SystemExit(EXIT_WRITE_FAILED)

    click.echo(f"Saved {table.max_attacker_armies}x{table.max_defender_armies} table to {out}")
    click.echo(f"Done in {time.time() - t0:.1f}s.")


@cli.command()
@click.argument("attacker", type=int)
@click.argument("defender", type=int)
@click.option("--table", "table_path", type=click.Path(dir_okay=False), default=None,
              help="Table file (default: configured table path).")
@click.pass_obj
def odds(config: EngineConfig, attacker: int, defender: int, table_path: str | None):
    """Probability that ATTACKER attacking armies conquer DEFENDER armies."""
    from .errors import ConquestError
    from .service import ProbabilityService, as_percent
    from .tables import load_table

    path = Path(table_path) if table_path else config.table_path
    table = None
    if path.exists():
        try:
            table = load_table(path)
        except ConquestError as exc:
            click.echo(f"Cannot read {path}: {exc}", err=True)
            raise SystemExit(EXIT_BAD_TABLE)
    else:
        click.echo(f"{path} not found, evaluating without a table.", err=True)

    service = ProbabilityService.from_table(table)
    try:
        p = service.probability_of_conquest(attacker, defender)
    except ConquestError as exc:
        raise click.BadParameter(str(exc))
    click.echo(f"{attacker} vs {defender}: {p:.6f} ({as_percent(p):.2f}%)")


@cli.command()
@click.argument("attacker", type=int)
@click.argument("defender", type=int)
@click.option("--trials", default=10_000, type=int)
@click.option("--seed", default=None, type=int, help="Seed for a reproducible run.")
def simulate(attacker: int, defender: int, trials: int, seed: int | None):
    """Fight ATTACKER vs DEFENDER with real dice and compare to the exact odds."""
    import numpy as np

    from .combat import estimate_conquest
    from .errors import ConquestError
    from .service import ProbabilityService

    rng = np.random.default_rng(seed)
    try:
        empirical = estimate_conquest(attacker, defender, rng, trials)
    except ConquestError as exc:
        raise click.BadParameter(str(exc))
    exact = ProbabilityService.from_table(None).probability_of_conquest(attacker, defender)
    click.echo(f"{attacker} vs {defender} over {trials:,d} trials")
    click.echo(f"  simulated: {empirical:.4f}")
    click.echo(f"  exact:     {exact:.4f}")


@cli.command()
@click.option("--table", "table_path", type=click.Path(dir_okay=False), default=None)
@click.pass_obj
def inspect(config: EngineConfig, table_path: str | None):
    """Show the header of a stored table."""
    from .errors import ConquestError
    from .tables import read_header

    path = Path(table_path) if table_path else config.table_path
    if not path.exists():
        click.echo(f"{path} not found. Run 'conquest-odds precompute' first.")
        raise SystemExit(1)
    with open(path, "rb") as f:
        header = f.read(HEADER_SIZE)
    try:
        magic, version, max_attacker, max_defender = read_header(header)
    except ConquestError as exc:
        click.echo(f"Cannot read {path}: {exc}", err=True)
        raise SystemExit(EXIT_BAD_TABLE)
    click.echo(f"magic:    0x{magic:08x}")
    click.echo(f"version:  {version}")
    click.echo(f"bounds:   {max_attacker} x {max_defender}")
    click.echo(f"size:     {path.stat().st_size:,d} bytes")


if __name__ == "__main__":
    cli()
