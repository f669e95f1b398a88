"""CLI entry point for the groupbuy engine.

- serve: run the REST API with uvicorn
- quote: price a lesson at a given head-count
- deadline: show the recruiting deadline for a start date
"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

import click

from groupbuy import get_version
from groupbuy.config import ConfigError, Settings, load_settings
from groupbuy.deadlines import DEFAULT_LEAD_DAYS, compute_deadline
from groupbuy.logging import get_logger, setup_logging
from groupbuy.pricing import compute_price, price_schedule

logger = get_logger("cli")


@click.group()
@click.version_option(version=get_version(), prog_name="groupbuy")
def main() -> None:
    """groupbuy - group-buying engine for lessons."""
    pass


@main.command()
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to groupbuy.yaml (GROUPBUY_* environment variables otherwise)",
)
@click.option("--host", default="127.0.0.1", show_default=True, help="Bind address")
@click.option("--port", default=8000, show_default=True, type=int, help="Bind port")
@click.option("--db", "db_path", default=None, help="SQLite database path (overrides config)")
def serve(config_path: Path | None, host: str, port: int, db_path: str | None) -> None:
    """Run the REST API server."""
    import uvicorn  # noqa: PLC0415

    from groupbuy.api.app import create_app  # noqa: PLC0415

    try:
        settings = load_settings(config_path) if config_path else Settings.from_env()
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    setup_logging(log_dir=settings.log_dir, level=settings.log_level)
    app = create_app(db_path=db_path, settings=settings)
    logger.info("Serving groupbuy API on %s:%d", host, port)
    uvicorn.run(app, host=host, port=port)


@main.command()
@click.argument("amount", type=click.IntRange(min=0))
@click.argument("min_student", type=click.IntRange(min=1))
@click.argument("current_student", type=click.IntRange(min=0))
@click.option(
    "--schedule-to",
    "max_student",
    type=click.IntRange(min=1),
    default=None,
    help="Also print the price at every head-count up to this capacity",
)
def quote(amount: int, min_student: int, current_student: int, max_student: int | None) -> None:
    """Price a lesson of AMOUNT for CURRENT_STUDENT students."""
    result = compute_price(amount, min_student, current_student)
    click.echo(f"Per student: {result.per_student}")
    click.echo(f"Discount: {result.discount_rate_percent}%")

    if max_student is not None:
        if max_student < min_student:
            click.echo("Error: --schedule-to must be at least MIN_STUDENT", err=True)
            sys.exit(1)
        click.echo("\nHead-count  Per student  Discount")
        for entry in price_schedule(amount, min_student, max_student):
            click.echo(
                f"{entry.current_student:>10}  {entry.per_student:>11}  "
                f"{entry.discount_rate_percent:>7}%"
            )


@main.command()
@click.argument("start_date", type=click.DateTime(formats=["%Y-%m-%d"]))
@click.option(
    "--lead-days",
    type=int,
    default=DEFAULT_LEAD_DAYS,
    show_default=True,
    help="Days between the deadline and the start date",
)
def deadline(start_date: datetime, lead_days: int) -> None:
    """Show the recruiting deadline for a lesson starting on START_DATE."""
    start = start_date.date()
    try:
        result = compute_deadline(start, lead_days)
    except ValueError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(result.isoformat())


if __name__ == "__main__":
    main()
