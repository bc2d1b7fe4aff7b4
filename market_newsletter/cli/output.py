"""Console output helpers for the newsletter CLI.

Console output is immediate feedback for the operator; structured logging
(``logger.info`` and friends) is for troubleshooting and goes to the log file.
"""

from __future__ import annotations

import typer


def success(message: str, *, prefix: bool = True) -> None:
    """Display a success message in green with checkmark emoji.

    Example:
        success("Newsletter written to newsletters/Anza-Newsletter-March-2024.pdf")
    """
    formatted = f"✅ {message}" if prefix else message
    typer.secho(formatted, fg=typer.colors.GREEN)


def error(message: str, *, prefix: bool = True, err: bool = True) -> None:
    """Display an error message in red with cross emoji, on stderr by default."""
    formatted = f"❌ {message}" if prefix else message
    typer.secho(formatted, fg=typer.colors.RED, err=err)


def info(message: str, *, prefix: bool = True) -> None:
    formatted = f"ℹ️  {message}" if prefix else message
    typer.secho(formatted, fg=typer.colors.CYAN)


def warning(message: str, *, prefix: bool = True) -> None:
    formatted = f"⚠️  {message}" if prefix else message
    typer.secho(formatted, fg=typer.colors.YELLOW)


def chart(message: str, *, prefix: bool = True) -> None:
    """Display a chart listing line in cyan with chart emoji.

    Example:
        chart("price_per_area (line): Price per Square Foot")
    """
    formatted = f"📊 {message}" if prefix else message
    typer.secho(formatted, fg=typer.colors.CYAN)


def plain(message: str) -> None:
    typer.echo(message)
