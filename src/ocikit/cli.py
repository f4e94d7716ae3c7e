"""
ocikit CLI

Thin typer front end over the Operations facade:
- push / pull / manifest / copy / attach
- blob push|fetch
- manifest-index create|list
- pull-platform / push-multiplatform
- tags / discover
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer

from .cli_context import CLIContext
from .operations import Operations, run_and_exit
from .operations.facade import parse_annotations
from .operations.printers import (
    print_digest,
    print_platforms,
    print_pull_summary,
    print_push_summary,
    print_referrers,
    print_tags,
)

app = typer.Typer(name="ocikit", help="Push, pull and inspect OCI artifacts", no_args_is_help=True)
blob_app = typer.Typer(help="Blob operations", no_args_is_help=True)
index_app = typer.Typer(help="Multi-platform manifest index operations", no_args_is_help=True)
app.add_typer(blob_app, name="blob")
app.add_typer(index_app, name="manifest-index")

INSECURE = typer.Option(False, "--insecure", help="Allow insecure connections (HTTP)")
USERNAME = typer.Option(None, "-u", "--username", envvar="ORAS_USERNAME", help="Registry username")
PASSWORD = typer.Option(None, "-p", "--password", envvar="ORAS_PASSWORD", help="Registry password")
ANNOTATION = typer.Option(None, "--annotation", "-a", help="Annotation key=value (repeatable)")


def _ops(insecure: bool, username: Optional[str], password: Optional[str]) -> Operations:
    return CLIContext.from_env(insecure=insecure, username=username, password=password).operations()


@app.callback()
def _root(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@app.command()
def push(
    ref: str = typer.Argument(..., help="Artifact reference (e.g., localhost:5000/artifact:v1)"),
    files: List[str] = typer.Argument(..., help="Files to push"),
    artifact_type: Optional[str] = typer.Option(None, "--artifact-type", help="Artifact type"),
    annotation: Optional[List[str]] = ANNOTATION,
    annotation_file: Optional[Path] = typer.Option(None, "--annotation-file", help="YAML/JSON annotations ($manifest and per-file keys)"),
    config_media_type: Optional[str] = typer.Option(None, "--config-media-type", help="Config media type"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Push files to a registry as an artifact."""

    def _push() -> None:
        ops = _ops(insecure, username, password)
        digest = ops.push(
            ref,
            files,
            artifact_type=artifact_type,
            annotations=parse_annotations(annotation),
            annotation_file=annotation_file,
            config_media_type=config_media_type,
        )
        print_push_summary(ref, digest, len(files), artifact_type)

    run_and_exit(_push)


@app.command()
def pull(
    ref: str = typer.Argument(..., help="Artifact reference"),
    output: str = typer.Option(".", "-o", "--output", help="Output directory"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Pull an artifact from a registry."""

    def _pull() -> None:
        files = _ops(insecure, username, password).pull(ref, output)
        print_pull_summary(ref, output, files)

    run_and_exit(_pull)


@app.command()
def manifest(
    ref: str = typer.Argument(..., help="Artifact reference"),
    pretty: bool = typer.Option(True, "--pretty/--no-pretty", help="Pretty print JSON"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Fetch and display the manifest."""

    def _manifest() -> None:
        typer.echo(_ops(insecure, username, password).manifest(ref, pretty=pretty))

    run_and_exit(_manifest)


@app.command()
def copy(
    source: str = typer.Argument(..., help="Source artifact reference"),
    target: str = typer.Argument(..., help="Target artifact reference"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Copy an artifact from one location to another."""

    def _copy() -> None:
        digest = _ops(insecure, username, password).copy(source, target)
        print_digest("Copied to", target, digest)

    run_and_exit(_copy)


@app.command()
def attach(
    subject: str = typer.Argument(..., help="Subject artifact reference"),
    files: List[str] = typer.Argument(..., help="Files to attach"),
    artifact_ref: str = typer.Option(..., "--artifact-ref", help="Reference for the attached artifact"),
    artifact_type: str = typer.Option(..., "--artifact-type", help="Artifact type"),
    annotation: Optional[List[str]] = ANNOTATION,
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Attach an artifact to a subject."""

    def _attach() -> None:
        ops = _ops(insecure, username, password)
        digest = ops.attach(subject, artifact_ref, files, artifact_type, parse_annotations(annotation))
        print_digest(f"Attached to {subject}:", artifact_ref, digest)

    run_and_exit(_attach)


@blob_app.command("push")
def blob_push(
    ref: str = typer.Argument(..., help="Artifact reference"),
    file: str = typer.Argument(..., help="File to push"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Push a blob."""

    def _blob_push() -> None:
        digest = _ops(insecure, username, password).blob_push(ref, file)
        print_digest("Pushed blob to", ref, digest)

    run_and_exit(_blob_push)


@blob_app.command("fetch")
def blob_fetch(
    ref: str = typer.Argument(..., help="Artifact reference"),
    digest: str = typer.Argument(..., help="Blob digest (sha256:...)"),
    output: Optional[Path] = typer.Option(None, "-o", "--output", help="Output file (default: stdout)"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Fetch a blob by digest."""

    def _blob_fetch() -> None:
        data = _ops(insecure, username, password).blob_fetch(ref, digest)
        if output is None:
            typer.echo(data, nl=False)
            return
        output.write_bytes(data)
        typer.echo(f"Blob saved to {output}")

    run_and_exit(_blob_fetch)


@index_app.command("create")
def index_create(
    ref: str = typer.Argument(..., help="Manifest index reference"),
    manifest: Optional[List[str]] = typer.Option(None, "--manifest", help="digest,os,arch[,variant] (repeatable)"),
    annotation: Optional[List[str]] = ANNOTATION,
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Create a multi-platform manifest index."""

    def _create() -> None:
        members = manifest or []
        digest = _ops(insecure, username, password).index_create(ref, members, parse_annotations(annotation))
        print_digest("Created manifest index", ref, digest)
        typer.echo(f"  Platforms: {len(members)}")

    run_and_exit(_create)


@index_app.command("list")
def index_list(
    ref: str = typer.Argument(..., help="Manifest index reference"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """List platforms in a manifest index."""

    def _list() -> None:
        print_platforms(_ops(insecure, username, password).index_list(ref))

    run_and_exit(_list)


@app.command("pull-platform")
def pull_platform(
    ref: str = typer.Argument(..., help="Artifact reference"),
    platform: str = typer.Option("linux/amd64", "--platform", help="Platform os/arch[/variant]"),
    output: str = typer.Option(".", "-o", "--output", help="Output directory"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Pull an artifact for a specific platform."""

    def _pull_platform() -> None:
        files = _ops(insecure, username, password).pull_platform(ref, platform, output)
        print_pull_summary(f"{ref} ({platform})", output, files)

    run_and_exit(_pull_platform)


@app.command("push-multiplatform")
def push_multiplatform(
    ref: str = typer.Argument(..., help="Artifact reference (used for the index)"),
    platform: Optional[List[str]] = typer.Option(None, "--platform", help="os/arch[/variant]:file1,file2 (repeatable)"),
    artifact_type: Optional[str] = typer.Option(None, "--artifact-type", help="Artifact type"),
    annotation: Optional[List[str]] = ANNOTATION,
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """Push artifacts for multiple platforms and create an index."""

    def _push_multiplatform() -> None:
        digest = _ops(insecure, username, password).push_multiplatform(
            ref,
            platform or [],
            artifact_type=artifact_type,
            annotations=parse_annotations(annotation),
        )
        print_digest("Pushed multi-platform index", ref, digest)

    run_and_exit(_push_multiplatform)


@app.command()
def tags(
    ref: str = typer.Argument(..., help="Repository reference"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """List tags of a repository."""

    def _tags() -> None:
        print_tags(_ops(insecure, username, password).tags(ref))

    run_and_exit(_tags)


@app.command()
def discover(
    ref: str = typer.Argument(..., help="Subject artifact reference"),
    artifact_type: Optional[str] = typer.Option(None, "--artifact-type", help="Only list referrers of this type"),
    insecure: bool = INSECURE,
    username: Optional[str] = USERNAME,
    password: Optional[str] = PASSWORD,
) -> None:
    """List artifacts attached to a subject."""

    def _discover() -> None:
        print_referrers(ref, _ops(insecure, username, password).discover(ref, artifact_type))

    run_and_exit(_discover)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
