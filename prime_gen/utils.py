"""Shared utility functions for prime-gen.

Provides Rich-based console reporting, atomic text writes, and the exclusive
lock file that serialises read-modify-write access to the route registry.
"""

from __future__ import annotations

import os
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

from prime_gen.errors import RegistryLockedError

console = Console()

# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def write_text_atomic(path: str | Path, content: str) -> Path:
    """Write *content* to *path* via a sibling temp file and ``os.replace``.

    Readers never observe a half-written file.  Parent directories are created
    automatically.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, target)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return target


@contextmanager
def file_lock(
    path: str | Path,
    timeout: float = 10.0,
    interval: float = 0.05,
) -> Iterator[Path]:
    """Hold an exclusive ``<path>.lock`` file for the duration of the block.

    The lock file is created with ``O_CREAT | O_EXCL`` so only one process can
    own it.  Waiting callers poll until *timeout* seconds have elapsed.

    Raises:
        RegistryLockedError: If the lock cannot be acquired in time.
    """
    lock_path = Path(f"{path}.lock")
    deadline = time.monotonic() + timeout

    while True:
        try:
            fd = os.open(str(lock_path), os.O_CREAT | os.O_EXCL | os.O_WRONLY)
        except FileExistsError:
            if time.monotonic() >= deadline:
                raise RegistryLockedError(
                    f"Timed out after {timeout}s waiting for lock {lock_path}",
                    resource=str(lock_path),
                ) from None
            time.sleep(interval)
            continue
        break

    try:
        os.write(fd, str(os.getpid()).encode("ascii"))
        os.close(fd)
        yield lock_path
    finally:
        lock_path.unlink(missing_ok=True)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(0.42)  -> "0.42s"
        format_duration(3.7)   -> "3.70s"
        format_duration(65.2)  -> "1m 5s"
    """
    if seconds < 0:
        return "0.00s"
    minutes = int(seconds // 60)
    if minutes:
        return f"{minutes}m {int(seconds % 60)}s"
    return f"{seconds:.2f}s"


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


STEP_NAMES: dict[int, str] = {
    1: "NAMES",
    2: "EXTRACT",
    3: "GENERATE",
    4: "PERSIST",
}

STEP_COLORS: dict[int, str] = {
    1: "bright_cyan",
    2: "bright_green",
    3: "bright_yellow",
    4: "bright_magenta",
}


def print_step_header(step: int, name: str) -> None:
    """Print a full-width rule announcing a pipeline step."""
    color = STEP_COLORS.get(step, "white")
    console.print()
    console.print(
        Rule(
            f"[bold {color}] Step {step}: {name.upper()} [/bold {color}]",
            style=color,
        )
    )


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
