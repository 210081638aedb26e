#!/usr/bin/env python3
"""hostdeploy CLI - Main entry point"""

import functools
import os
import sys

from rich.console import Console

# Rich-Click: CLI help with colors
import rich_click as click

from hostdeploy import __version__
from hostdeploy.commands import deploy, doctor, validate
from hostdeploy.constants import EXIT_GENERAL_FAILURE, EXIT_INTERRUPTED

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True
click.rich_click.MAX_WIDTH = 100

click.rich_click.STYLE_COMMAND = "bold cyan"
click.rich_click.STYLE_OPTION = "bold magenta"
click.rich_click.STYLE_SWITCH = "bold green"
click.rich_click.STYLE_HEADER_TEXT = "bold cyan"
click.rich_click.STYLE_USAGE = "bold yellow"
click.rich_click.STYLE_OPTION_DEFAULT = "dim cyan"
click.rich_click.STYLE_OPTIONS_PANEL_BORDER = "cyan"
click.rich_click.STYLE_COMMANDS_PANEL_BORDER = "cyan"

console = Console()

BANNER = """
[bold cyan]╔═══════════════════════════════════════════════════════╗[/bold cyan]
[bold cyan]║[/bold cyan]  [bold white]hostdeploy[/bold white] - deploy & validate on a single host      [bold cyan]║[/bold cyan]
[bold cyan]╚═══════════════════════════════════════════════════════╝[/bold cyan]
"""


def handle_cli_errors(func):
    """Decorator to handle CLI errors gracefully."""
    from click.exceptions import ClickException

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ClickException as e:
            e.show()
            sys.exit(e.exit_code)
        except KeyboardInterrupt:
            console.print("\n\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            sys.exit(EXIT_INTERRUPTED)
        except Exception as e:
            console.print(f"\n[bold red]✗ Unexpected error:[/bold red] {e}\n")
            if os.environ.get("DEBUG") or os.environ.get("VERBOSE"):
                import traceback

                console.print("[dim]Traceback:[/dim]")
                traceback.print_exc()
            sys.exit(EXIT_GENERAL_FAILURE)

    return wrapper


@click.group(invoke_without_command=True)
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context) -> None:
    """
    hostdeploy - Deploy a containerized app to one host and verify it.

    \b
    Quick Start:
      hostdeploy doctor                       # Check local tools
      hostdeploy deploy                       # Prompted deploy + validation
      hostdeploy deploy --config deploy.yml   # Parameters from a file
      hostdeploy validate                     # Re-check using deployment.env

    \b
    Exit codes:
      0   success
      1   source / general failure
      2   SSH connectivity failure
      3   file transfer failure
      4   nginx configuration failure
      5   container rollout failure
      6   host provisioning failure
      10  validation failed (services)
      11  validation failed (network)
      13  validation failed (other checks)
      130 interrupted
    """
    if ctx.invoked_subcommand is None:
        console.print(BANNER)
        console.print("[yellow]Run 'hostdeploy --help' for usage[/yellow]\n")


# Register commands
cli.add_command(deploy.deploy)
cli.add_command(validate.validate)
cli.add_command(doctor.doctor)


@handle_cli_errors
def main():
    """Main entry point with error handling."""
    cli()


if __name__ == "__main__":
    main()
