"""sm2pspp - convert PrusaSlicer G-code for the Snapmaker 2.0 terminal.

Usage:
    sm2pspp <file> [--remove-thumbnail] [--strict] [--abort-on NAME] [--json]
    sm2pspp --init-config

The file is converted in place.  Missing metadata is reported as warnings
on stderr; ``--strict`` or ``--abort-on`` turn warnings into aborts that
leave the file untouched.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable

import click

from sm2pspp import PROJECT_URL, __version__
from sm2pspp.config import abort_messages, init_config, load_config, validate_config
from sm2pspp.converter import convert_file, policy_callback
from sm2pspp.exit_codes import SUCCESS, exit_code_for, exit_code_for_result
from sm2pspp.log_config import configure_logging
from sm2pspp.messages import Message
from sm2pspp.output import format_diagnostic, format_response, format_summary

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _emit(output: str, exit_code: int = SUCCESS) -> None:
    """Print output and exit with the given code."""
    click.echo(output)
    sys.exit(exit_code)


def _emit_error(code: str, message: str, json_mode: bool) -> None:
    """Emit a structured error and exit."""
    output = format_response(
        "error",
        error={"code": code, "message": message},
        json_mode=json_mode,
    )
    _emit(output, exit_code_for(code))


def _reporter(json_mode: bool) -> Callable[[Message, str, int], None]:
    """Return a report function that writes diagnostics to stderr."""

    def _report(msg: Message, file: str, line: int) -> None:
        click.echo(format_diagnostic(msg, file, line, json_mode=json_mode), err=True)

    return _report


# ------------------------------------------------------------------
# Command
# ------------------------------------------------------------------


@click.command(epilog=PROJECT_URL)
@click.argument("file_path", type=click.Path(), required=False)
@click.option(
    "--remove-thumbnail/--keep-thumbnail",
    default=None,
    help="Drop the original thumbnail comment block from the body.",
)
@click.option("--strict/--no-strict", default=None, help="Abort on any missing metadata.")
@click.option(
    "--abort-on",
    multiple=True,
    metavar="NAME",
    help="Abort if this warning occurs (e.g. no_thumbnail). Repeatable.",
)
@click.option("--config", "config_path", default=None, help="Path to a YAML config file.")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ...).")
@click.option("--summary", is_flag=True, default=False, help="Print a conversion summary.")
@click.option("--json", "json_mode", is_flag=True, default=False, help="Output as JSON.")
@click.option("--init-config", "do_init", is_flag=True, default=False, help="Write a default config file and exit.")
@click.version_option(version=__version__, prog_name="sm2pspp")
def cli(
    file_path: str | None,
    remove_thumbnail: bool | None,
    strict: bool | None,
    abort_on: tuple[str, ...],
    config_path: str | None,
    log_level: str | None,
    summary: bool,
    json_mode: bool,
    do_init: bool,
) -> None:
    """Convert a PrusaSlicer G-code FILE_PATH for the Snapmaker 2.0 in place."""
    if do_init:
        path = init_config(config_path)
        _emit(format_response("success", data={"config_path": str(path)}, json_mode=json_mode))

    if file_path is None:
        raise click.UsageError("Missing argument 'FILE_PATH'.")

    config = load_config(
        remove_thumbnail=remove_thumbnail,
        strict=strict,
        abort_on=abort_on,
        log_level=log_level,
        config_path=config_path,
    )
    valid, err = validate_config(config)
    if not valid:
        _emit_error("VALIDATION_ERROR", f"Configuration error: {err}", json_mode)

    configure_logging(config["log_dir"], level=str(config["log_level"]))  # type: ignore[arg-type]
    logger.debug("Resolved configuration: %s", config)

    callback = policy_callback(abort_messages(config), report=_reporter(json_mode))
    result = convert_file(
        file_path,
        callback,
        remove_thumbnail=bool(config["remove_thumbnail"]),
    )

    exit_code = exit_code_for_result(result)
    if json_mode or summary:
        _emit(format_summary(result, json_mode=json_mode), exit_code)
    sys.exit(exit_code)


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
