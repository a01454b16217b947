import click
from flask.cli import AppGroup

from staybook.services import ReservationService

reservations_cli = AppGroup("reservations", help="Reservation maintenance commands.")


@reservations_cli.command("complete-stays")
@click.option(
    "--as-of",
    "as_of",
    type=click.DateTime(formats=["%Y-%m-%d"]),
    default=None,
    help="Treat this date as today (YYYY-MM-DD).",
)
def complete_stays(as_of):
    """Mark confirmed reservations as completed once check-out has passed."""
    completed = ReservationService.complete_finished_stays(as_of.date() if as_of else None)
    if not completed:
        click.echo("No reservations to auto-complete.")
        return
    click.echo(f"Auto-completed {len(completed)} reservation(s).")
