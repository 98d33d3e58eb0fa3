from __future__ import annotations

import argparse
import asyncio
import logging
import subprocess
import sys
from pathlib import Path
from typing import Optional

from rich.console import Console

from .core.config import get_settings
from .core.db import create_engine, create_schema
from .core.errors import ProbeError
from .core.logging import configure_logging
from .ingest.classify import classify
from .ingest.probe import probe_geometry

console = Console()


def main(argv: Optional[list[str]] = None) -> None:
    """The main entry point for the CLI.

    Args:
        argv: The command-line arguments.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_cli_logging()

    if getattr(args, "check", False):
        _run_environment_check(args.ffprobe)
        return

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    args.func(args)


def _configure_cli_logging() -> None:
    # stdout carries command output such as `probe` JSON
    settings = get_settings()
    configure_logging(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        json_output=settings.log_format == "json",
        stream=sys.stderr,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Tubely developer CLI")
    parser.add_argument("--check", action="store_true", help="Validate presence of the ffprobe dependency")
    parser.add_argument("--ffprobe", default=None, help="ffprobe executable (defaults to TUBELY_FFPROBE_BINARY)")

    subparsers = parser.add_subparsers(dest="command")

    probe_parser = subparsers.add_parser("probe", help="Print the geometry and aspect classification of a video")
    probe_parser.add_argument("--file", required=True, help="Path to the source media file")
    probe_parser.set_defaults(func=_cmd_probe)

    init_parser = subparsers.add_parser("init-db", help="Create the database schema")
    init_parser.set_defaults(func=_cmd_init_db)
    return parser


def _ffprobe_binary(override: Optional[str]) -> str:
    return override or get_settings().ffprobe_binary


def _cmd_probe(args: argparse.Namespace) -> None:
    """Run ffprobe on a file and print width, height, ratio and classification.

    Args:
        args: The command-line arguments.
    """
    media_path = Path(args.file).expanduser().resolve()
    if not media_path.exists():
        console.print(f"[red]File not found: {media_path}[/]")
        sys.exit(2)

    try:
        geometry = asyncio.run(probe_geometry(media_path, binary=_ffprobe_binary(args.ffprobe)))
    except ProbeError as exc:
        console.print(f"[red]ffprobe failed:[/] {exc.detail or exc.code}")
        sys.exit(3)

    console.print_json(
        data={
            "file": str(media_path),
            "width": geometry.width,
            "height": geometry.height,
            "ratio": round(geometry.ratio, 3),
            "classification": classify(geometry.ratio).value,
        }
    )


def _cmd_init_db(args: argparse.Namespace) -> None:
    settings = get_settings()
    engine = create_engine(settings)

    async def _runner() -> None:
        try:
            await create_schema(engine)
        finally:
            await engine.dispose()

    asyncio.run(_runner())
    console.print(f"[green]Schema ready at {settings.database_url}[/]")


def _run_environment_check(override: Optional[str]) -> None:
    """Check for the presence of the ffprobe executable."""
    binary = _ffprobe_binary(override)
    try:
        subprocess.run([binary, "-version"], stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL, check=True)
        ok = True
    except (OSError, subprocess.CalledProcessError):
        ok = False

    console.rule("[bold]Environment Check")
    console.print(f"[bold]ffprobe[/] ({binary}): {'✅' if ok else '❌'}")

    if not ok:
        console.print("[red]ffprobe is required to classify uploads. Install ffmpeg.[/]")
        sys.exit(1)
    console.print("[green]Environment looks good![/]")


if __name__ == "__main__":
    main()
