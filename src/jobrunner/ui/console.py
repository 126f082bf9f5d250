"""Console output formatting utilities for jobrunner."""

from __future__ import annotations

import sys
from typing import Iterable, Mapping, Optional


class Console:
    """Centralized console output formatting."""

    def __init__(self, debug: bool = False):
        """
        Initialize console formatter.

        Args:
            debug: If True, show detailed output including stack traces
        """
        self.debug = debug

    def print_job_started(
        self,
        job_name: str,
        job_id: str,
        builder: str,
        source_count: int,
    ) -> None:
        """Print job start information."""
        print("\nJOB STARTED")
        print(f"Job: {job_name}")
        print(f"Job ID: {job_id}")
        print(f"Builder: {builder}")
        print(f"Sources: {source_count}")
        print()

    def print_log_line(self, line: str) -> None:
        """Echo one line of the job log."""
        print(line)

    def print_stage_results(self, outcomes: Iterable) -> None:
        """Print a summary of the stages that ran."""
        print("\n" + "=" * 40)
        print("STAGES")
        print("=" * 40)
        ran = False
        for outcome in outcomes:
            ran = True
            status = "SUCCESS" if outcome.success else f"FAILED (rc={outcome.exit_code})"
            print(f"  {outcome.name} v{outcome.version}: {status}")
        if not ran:
            print("  (no stages run)")

    def print_job_result(self, status: str, duration: Optional[float] = None) -> None:
        """Print the final job status."""
        print(f"\nJOB {status}")
        if duration is not None:
            print(f"Duration: {duration:.1f}s")

    def print_plugins(self, plugins: Mapping[str, list[str]]) -> None:
        """Print registered plugins grouped by capability kind."""
        for kind, names in plugins.items():
            print(f"{kind}:")
            if names:
                for name in names:
                    print(f"  {name}")
            else:
                print("  (none)")

    def print_error(
        self,
        title: str,
        message: str,
        details: Optional[list[str]] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        """
        Print structured error message.

        Args:
            title: Error title
            message: Main error message
            details: Optional list of detail lines
            suggestion: Optional suggestion for user
        """
        print(f"\nERROR: {title}", file=sys.stderr)
        print(f"{message}", file=sys.stderr)
        if details:
            for detail in details:
                print(f"  {detail}", file=sys.stderr)
        if suggestion:
            print(f"\n{suggestion}", file=sys.stderr)

    def print_exception(self, exc: Exception) -> None:
        """Print exception, with full traceback only in debug mode."""
        if self.debug:
            import traceback
            traceback.print_exception(type(exc), exc, exc.__traceback__)
        else:
            print(f"Error: {exc}", file=sys.stderr)

    def print_info(self, message: str) -> None:
        """Print informational message."""
        print(message)

    def print_debug(self, message: str) -> None:
        """Print debug message (only if debug mode enabled)."""
        if self.debug:
            print(f"[DEBUG] {message}", file=sys.stderr)


# Global console instance (will be initialized by CLI)
_console: Optional[Console] = None


def get_console() -> Console:
    """Get the global console instance."""
    global _console
    if _console is None:
        _console = Console()
    return _console


def set_console(console: Console) -> None:
    """Set the global console instance."""
    global _console
    _console = console
