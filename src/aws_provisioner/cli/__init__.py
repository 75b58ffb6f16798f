"""``aws-provisioner`` command line."""

from __future__ import annotations

import logging
import os
import sys

import typer

from aws_provisioner import __version__

app = typer.Typer(name="aws-provisioner", no_args_is_help=True, add_completion=False)

_LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"
_VALID_LEVELS = ("CRITICAL", "DEBUG", "ERROR", "INFO", "WARNING")
_VERBOSITY = {1: logging.INFO, 2: logging.DEBUG}


def _level_from_env(raw: str) -> int:
    name = raw.upper()
    if name in _VALID_LEVELS:
        return logging.getLevelName(name)
    print(
        f"WARNING: invalid AWSP_LOG level '{name}', expected one of "
        f"{', '.join(_VALID_LEVELS)}; defaulting to INFO",
        file=sys.stderr,
    )
    return logging.INFO


def _configure_logging(verbose: int) -> None:
    """``AWSP_LOG`` wins over ``-v``/``-vv``; with neither, logging stays untouched.

    Only the package logger gets the chosen level. The root logger stays at
    WARNING so botocore's debug chatter does not leak into ``-vv``.
    """
    if env := os.environ.get("AWSP_LOG", ""):
        level = _level_from_env(env)
    elif verbose:
        level = _VERBOSITY[min(verbose, 2)]
    else:
        return
    logging.basicConfig(level=logging.WARNING, format=_LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("aws_provisioner").setLevel(level)


def _print_version(value: bool) -> None:
    if value:
        typer.echo(f"aws-provisioner {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_print_version,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)."
    ),
) -> None:
    """Plan and apply CloudFront VPC origins and CodeDeploy resources."""
    _ = version
    _configure_logging(verbose)


# Commands register themselves on ``app``.
from aws_provisioner.cli import commands as _commands  # noqa: E402, F401
