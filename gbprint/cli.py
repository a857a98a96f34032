"""Command-line interface for the GBPrint agent."""

import logging
import sys

import click
import pydantic

from gbprint import __version__
from gbprint.config import Settings, get_settings
from gbprint.exceptions import FatalStartupError, PollError
from gbprint.printing import get_transport
from gbprint.remote import WorkSource
from gbprint.service import get_service


def setup_logging(level: str) -> None:
    """Set up logging configuration.

    Args:
        level: Log level string.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def load_settings() -> Settings:
    """Load settings, exiting with a readable message if they are invalid."""
    try:
        return get_settings()
    except pydantic.ValidationError as e:
        click.echo(f"Error: invalid configuration:\n{e}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
def main():
    """GBPrint - unattended label printing agent.

    GBPrint polls the label endpoint and prints QR code labels
    whenever labels are requested.
    """
    pass


@main.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def start(verbose: bool):
    """Start the agent.

    Polls the endpoint and prints labels until stopped with Ctrl+C
    or SIGTERM.
    """
    settings = load_settings()

    level = "DEBUG" if verbose else settings.log_level
    setup_logging(level)

    try:
        service = get_service(settings)
    except FatalStartupError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    click.echo("Starting GBPrint agent... (Ctrl+C to stop)")
    service.run()


@main.command()
def status():
    """Show current configuration and printer status."""
    settings = load_settings()

    click.echo("\n=== GBPrint Status ===\n")
    click.echo(f"API Endpoint: {settings.api_endpoint}")
    click.echo(f"Poll Interval: {settings.poll_interval}ms")
    click.echo(f"Retry Delay: {settings.retry_delay}ms")
    click.echo(f"Max Retries: {settings.max_retries}")
    click.echo(f"Printer: {settings.printer_name or '(default)'}")
    click.echo(f"Media: {settings.label_media or '(auto-detect)'}")
    click.echo(f"Image Directory: {settings.image_dir}")

    transport = get_transport(settings.printer_name, settings.label_media)
    printer_status = transport.check_status()

    click.echo("\n=== Printer Status ===\n")
    state = "ready" if printer_status.ready else "not ready"
    click.echo(f"Printer is {state}: {printer_status.message}")


@main.command()
@click.option(
    "--fetch",
    is_flag=True,
    help="Also read the label count from the endpoint (resets it on the server)",
)
def check(fetch: bool):
    """Test the printer and, optionally, the endpoint.

    Reading the count makes the server reset it, so labels pending at that
    moment will not be printed. The endpoint is only queried with --fetch.
    """
    settings = load_settings()
    setup_logging("WARNING")

    click.echo("\n=== Testing GBPrint Connection ===\n")

    ok = True
    if fetch:
        source = WorkSource(settings.api_endpoint, timeout=settings.request_timeout)
        try:
            work = source.fetch()
            click.echo(f"+ Endpoint: reachable ({work.count} labels pending)")
            if work.count:
                click.echo(f"! {work.count} pending labels were consumed and not printed")
        except PollError as e:
            click.echo(f"x Endpoint: {e}")
            ok = False

    transport = get_transport(settings.printer_name, settings.label_media)
    printer_status = transport.check_status()
    printer_icon = "+" if printer_status.ready else "x"
    click.echo(f"{printer_icon} Printer: {printer_status.message}")
    ok = ok and printer_status.ready

    click.echo("")

    if ok:
        click.echo("All checks passed! You can now run 'gbprint start'.")
    else:
        click.echo("Some checks failed. Please check the configuration.")
        sys.exit(1)


if __name__ == "__main__":
    main()
