"""
Custom Flask CLI commands.

These commands are registered with the app by ``register_commands()``
in the application factory.  Run them with ``flask <command_name>``.

Usage::

    flask db-check                                   # Connectivity + tables
    flask init-db                                    # Create all tables
    flask generate-insights --org 1                  # Unused-license insights
    flask calculate-scores --org 1 --period-type quarterly
    flask calculate-impact --org 1 --period 2024-03
"""

import click
from flask import current_app
from flask.cli import with_appcontext
from sqlalchemy import inspect

from app.exceptions import LicenseLensError
from app.extensions import db


@click.command("db-check")
@with_appcontext
def db_check_command():
    """
    Verify database connectivity and list the application tables.

    Useful for confirming the DATABASE_URL in your .env file and that
    migrations (or ``flask init-db``) have been run.
    """
    click.echo("=" * 60)
    click.echo("  LicenseLens — Database Connectivity Check")
    click.echo("=" * 60)

    # Hide the password part of the URL.
    db_url = db.engine.url.render_as_string(hide_password=True)
    click.echo(f"\n  Connection string: {db_url}\n")

    # -- Step 1: Basic connectivity ----------------------------------------
    click.echo("[1/2] Testing connection...")
    try:
        row = db.session.execute(db.text("SELECT 1 AS connected")).fetchone()
        if row and row[0] == 1:
            click.secho(
                f"      ✓ Connected ({db.engine.dialect.name}).", fg="green"
            )
        else:
            click.secho("      ✗ Unexpected result from test query.", fg="red")
            return
    except Exception as exc:  # pylint: disable=broad-exception-caught
        click.secho(f"      ✗ Connection failed: {exc}", fg="red")
        click.echo("\n  Troubleshooting tips:")
        click.echo("    - Does your .env DATABASE_URL point at a running server?")
        click.echo("    - Is the database driver for that URL installed?")
        return

    # -- Step 2: Expected tables -------------------------------------------
    click.echo("[2/2] Checking tables...\n")
    expected = set(db.metadata.tables)
    found = set(inspect(db.session.connection()).get_table_names())
    for table in sorted(expected):
        mark = "✓" if table in found else "✗"
        click.secho(
            f"      {mark} {table}", fg="green" if table in found else "red"
        )

    missing = expected - found
    click.echo("\n" + "=" * 60)
    if missing:
        click.secho(
            f"  {len(missing)} table(s) missing. Run: flask db upgrade",
            fg="yellow",
            bold=True,
        )
    else:
        click.secho("  All checks passed. Database is ready.", fg="green", bold=True)
    click.echo("=" * 60)


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create all tables directly (local development without migrations)."""
    db.create_all()
    click.secho(
        f"Created tables on {current_app.config['SQLALCHEMY_DATABASE_URI']}",
        fg="green",
    )


# =========================================================================
# Generators
# =========================================================================


def _print_failures(failures: list[dict]) -> None:
    for failure in failures:
        click.secho(f"  ✗ {failure}", fg="red")


@click.command("generate-insights")
@click.option("--org", "organization_id", type=int, required=True, help="Organization ID.")
@with_appcontext
def generate_insights_command(organization_id):
    """Run the unused-license insight generator for one organization."""
    from app.services import insight_service  # pylint: disable=import-outside-toplevel

    try:
        result = insight_service.generate_unused_license_insights(organization_id)
    except LicenseLensError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(
        f"Run {result.run_id}: created {result.created}, "
        f"skipped {result.skipped}, errors {len(result.failures)}"
    )
    _print_failures(result.failures)


@click.command("calculate-scores")
@click.option("--org", "organization_id", type=int, required=True, help="Organization ID.")
@click.option("--period", default=None, help="Period key, e.g. 2024-03, 2024-Q1, 2024.")
@click.option(
    "--period-type",
    type=click.Choice(["monthly", "quarterly", "yearly"]),
    default="monthly",
    show_default=True,
)
@with_appcontext
def calculate_scores_command(organization_id, period, period_type):
    """Score, rank and badge every department of one organization."""
    from app.services import gamification_service  # pylint: disable=import-outside-toplevel

    try:
        result = gamification_service.calculate_gamification_scores(
            organization_id, period=period, period_type=period_type
        )
    except LicenseLensError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(
        f"Run {result.run_id} ({period_type} {result.period}): "
        f"scored {result.scored}, errors {len(result.failures)}"
    )
    _print_failures(result.failures)


@click.command("calculate-impact")
@click.option("--org", "organization_id", type=int, required=True, help="Organization ID.")
@click.option("--period", default=None, help="Month key, e.g. 2024-03.")
@with_appcontext
def calculate_impact_command(organization_id, period):
    """Estimate the month's environmental impact for one organization."""
    from app.services import environmental_service  # pylint: disable=import-outside-toplevel

    try:
        result = environmental_service.calculate_environmental_impact(
            organization_id, period=period
        )
    except LicenseLensError as exc:
        raise click.ClickException(exc.message) from exc

    click.echo(
        f"Run {result.run_id} ({result.period}): "
        f"{result.total_unused_licenses} unused seats, "
        f"{result.co2_saved_kg:.2f} kg CO2, "
        f"{result.departments_processed} department(s), "
        f"errors {len(result.failures)}"
    )
    _print_failures(result.failures)


def register_commands(app):
    """Register all custom CLI commands with the Flask application."""
    app.cli.add_command(db_check_command)
    app.cli.add_command(init_db_command)
    app.cli.add_command(generate_insights_command)
    app.cli.add_command(calculate_scores_command)
    app.cli.add_command(calculate_impact_command)
