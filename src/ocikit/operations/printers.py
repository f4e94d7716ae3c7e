"""
Human-readable output formatting.

Centralizes all CLI output formatting so commands stay thin. Uses rich
when a terminal supports it; plain typer.echo otherwise.
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.table import Table

from ..models import ImageIndex, Platform

_console = Console()


def _rich() -> bool:
    return _console.is_terminal


def print_error(exc: BaseException) -> None:
    """Print a failed command's error to stderr."""
    typer.echo(f"✗ {type(exc).__name__}: {exc}", err=True)


def print_push_summary(ref: str, digest: str, file_count: int,
                       artifact_type: Optional[str] = None) -> None:
    """
    Print push summary.

    Args:
        ref: Pushed reference
        digest: Manifest digest
        file_count: Number of layers pushed
        artifact_type: Artifact type, if any
    """
    if _rich():
        _console.print(f"[green]✓ Pushed[/] [bold]{ref}[/]")
        _console.print(f"  [dim]Digest:[/] {digest}")
        _console.print(f"  [dim]Artifact Type:[/] {artifact_type or 'N/A'}")
        _console.print(f"  [dim]Files:[/] {file_count}")
        return

    typer.echo(f"Pushed {ref}")
    typer.echo(f"  Digest: {digest}")
    typer.echo(f"  Artifact Type: {artifact_type or 'N/A'}")
    typer.echo(f"  Files: {file_count}")


def print_pull_summary(ref: str, output_dir: str, files: List[Path]) -> None:
    typer.echo(f"Pulled {ref}")
    typer.echo(f"  Downloaded {len(files)} file(s) to {output_dir}:")
    for path in files:
        typer.echo(f"    - {path.name}")


def print_digest(action: str, ref: str, digest: str) -> None:
    """Print a one-line ``<action> <ref>`` confirmation followed by the digest."""
    typer.echo(f"{action} {ref}")
    typer.echo(f"  Digest: {digest}")


def print_platforms(platforms: List[Platform]) -> None:
    """Print the platforms of an index."""
    if not platforms:
        typer.echo("No platforms found (single-platform artifact or index without platform metadata)")
        return

    if _rich():
        table = Table(title="Platforms")
        table.add_column("OS", style="cyan")
        table.add_column("Architecture", style="yellow")
        table.add_column("Variant")
        for p in platforms:
            table.add_row(p.os, p.architecture, p.variant or "")
        _console.print(table)
        return

    typer.echo("Platforms available:")
    for p in platforms:
        typer.echo(f"  - {p}")


def print_tags(tags: List[str]) -> None:
    for tag in tags:
        typer.echo(tag)


def print_referrers(subject: str, index: ImageIndex) -> None:
    """Print the artifacts referring to ``subject``."""
    if not index.manifests:
        typer.echo(f"No referrers found for {subject}")
        return

    if _rich():
        table = Table(title=f"Referrers of {subject}")
        table.add_column("Digest", style="dim")
        table.add_column("Artifact Type", style="cyan")
        table.add_column("Size", justify="right")
        for entry in index.manifests:
            table.add_row(entry.digest, entry.artifact_type or "", _format_bytes(entry.size))
        _console.print(table)
        return

    typer.echo(f"Referrers of {subject}:")
    for entry in index.manifests:
        typer.echo(f"  {entry.digest}  {entry.artifact_type or '-'}  {_format_bytes(entry.size)}")


def _format_bytes(size_bytes: int) -> str:
    """
    Format byte count as human-readable string.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted string (e.g., "1.5 MB", "42 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / (1024 * 1024):.1f} MB"
    else:
        return f"{size_bytes / (1024 * 1024 * 1024):.1f} GB"
