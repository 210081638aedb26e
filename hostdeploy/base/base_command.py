"""
Base Command Class

Abstract base for all hostdeploy CLI commands.
Provides common functionality and structure.
"""

from abc import ABC, abstractmethod
from typing import Optional
from rich.console import Console

from hostdeploy.constants import EXIT_GENERAL_FAILURE, EXIT_INTERRUPTED
from hostdeploy.exceptions import HostDeployError
from hostdeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Header display
    - Error handling and exit codes
    - Consistent structure
    """

    def __init__(self, verbose: bool = False):
        self.verbose = verbose
        self.console = Console()

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in verbose mode)."""
        if not self.verbose:
            show_header(
                title=title,
                subtitle=subtitle,
                details=details,
                console=self.console,
            )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓ {message}[/green]")

    def print_error(self, message: str) -> None:
        self.console.print(f"[red]✗ {message}[/red]")

    def print_dim(self, message: str) -> None:
        self.console.print(f"[dim]{message}[/dim]")

    @abstractmethod
    def execute(self, **kwargs) -> int:
        """
        Execute command logic and return the process exit code.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling. Always ends in SystemExit.

        Args:
            **kwargs: Command arguments
        """
        try:
            exit_code = self.execute(**kwargs)
        except KeyboardInterrupt:
            # no cleanup of partially provisioned remote state
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            raise SystemExit(EXIT_INTERRUPTED)
        except SystemExit:
            raise
        except HostDeployError as e:
            self.console.print(f"\n[bold red]✗ {e.message}[/bold red]")
            if e.context:
                self.print_dim(f"Context: {e.context}")
            self.console.print()
            raise SystemExit(getattr(e, "exit_code", EXIT_GENERAL_FAILURE))
        except PermissionError as e:
            self.console.print(f"\n[bold red]✗ Permission denied:[/bold red] {e}\n")
            self.print_dim("Try running with appropriate permissions\n")
            raise SystemExit(EXIT_GENERAL_FAILURE)
        except Exception as e:
            error_type = type(e).__name__
            self.console.print(f"\n[bold red]✗ {error_type}:[/bold red] {e}\n")
            raise SystemExit(EXIT_GENERAL_FAILURE)
        raise SystemExit(exit_code or 0)
