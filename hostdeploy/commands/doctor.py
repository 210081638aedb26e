"""hostdeploy - Doctor command"""

import shutil

import click
from rich.table import Table

from hostdeploy.base import BaseCommand
from hostdeploy.constants import EXIT_GENERAL_FAILURE, EXIT_SUCCESS, REQUIRED_TOOLS


class DoctorCommand(BaseCommand):
    """Checks the local tools a deployment needs."""

    def __init__(self, verbose: bool = False):
        super().__init__(verbose=verbose)
        self.table = Table(
            title="Local Tooling Report", title_justify="left", padding=(0, 1)
        )
        self.table.add_column("Check", style="cyan", no_wrap=True)
        self.table.add_column("Status")
        self.table.add_column("Details", style="dim")

    def check_tool(self, tool_name: str) -> bool:
        """Check if a tool is on PATH."""
        return shutil.which(tool_name) is not None

    def execute(self) -> int:
        self.show_header(
            title="Diagnostics",
            subtitle="Checking local tools used for deployment",
        )

        missing = []
        for tool in REQUIRED_TOOLS:
            if self.check_tool(tool):
                self.table.add_row(f"✅ {tool}", "[green]Installed[/green]", shutil.which(tool))
            else:
                missing.append(tool)
                self.table.add_row(f"❌ {tool}", "[red]Missing[/red]", f"Install {tool}")

        self.console.print(self.table)
        self.console.print()

        if missing:
            self.print_error(f"Missing tools: {', '.join(missing)}")
            return EXIT_GENERAL_FAILURE

        self.print_success("All required tools installed")
        return EXIT_SUCCESS


@click.command()
def doctor():
    """
    Local tooling check

    Checks that git, ssh and rsync are installed.
    """
    cmd = DoctorCommand(verbose=False)
    cmd.run()
