"""Flask CLI commands for LendLedger."""

from __future__ import annotations

import json

import click


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("lendledger-init-db")
    def lendledger_init_db() -> None:
        """Create the database schema if it does not exist."""

        from .extensions import get_engine
        from .infra.database import init_database

        init_database(get_engine(app))
        click.echo(f"Database ready: {app.config['LENDLEDGER_CONFIG'].DATABASE_URL}")

    @app.cli.command("lendledger-sweep-overdue")
    def lendledger_sweep_overdue() -> None:
        """Persist today's derived status on every open loan."""

        from .extensions import get_ledger_service

        result = get_ledger_service(app).sweep_overdue()
        click.echo(
            f"Examined {result.examined} open loan(s); {len(result.changed)} status change(s)."
        )
        for change in result.changed:
            click.echo(
                f"  loan {change['loan_id']}: {change['from_status']} -> {change['to_status']}"
            )

    @app.cli.command("lendledger-preview")
    @click.argument("principal")
    @click.argument("rate")
    @click.argument("term", type=int)
    @click.option(
        "--frequency",
        type=click.Choice(["WEEKLY", "BIWEEKLY", "MONTHLY"], case_sensitive=False),
        default="WEEKLY",
        show_default=True,
    )
    @click.option("--start", "start", default=None, help="Start date (YYYY-MM-DD); today by default.")
    def lendledger_preview(
        principal: str, rate: str, term: int, frequency: str, start: str | None
    ) -> None:
        """Print a loan preview (totals and due dates) as JSON."""

        from .exceptions import ValidationError
        from .extensions import get_ledger_service
        from .services.money import parse_iso_date

        try:
            start_date = parse_iso_date(start, field="start") if start else None
            preview = get_ledger_service(app).preview(principal, rate, term, frequency, start_date)
        except ValidationError as exc:
            raise click.BadParameter(str(exc), param_hint=exc.field) from exc
        click.echo(json.dumps(preview.to_dict(), indent=2))
