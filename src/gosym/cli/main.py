"""gosym CLI - a drop-in replacement for godef's definition lookup.

Output contract, shared with godef:

- success: one ``path:line:column`` line on stdout, exit 0
- failure: ``godef: no identifier found`` on stderr, exit 2
"""

from __future__ import annotations

import os
import re
import sys
import tempfile
from pathlib import Path

import click
import structlog

from gosym.config.constants import FAILURE_EXIT_CODE, FAILURE_MESSAGE, LOG_FILE_PREFIX
from gosym.config.loader import load_config
from gosym.config.models import GosymConfig, LoggingConfig, LogOutputConfig
from gosym.core.errors import ConfigError, GosymError
from gosym.core.logging import clear_query_id, configure_logging, set_query_id
from gosym.resolve.cache import ResolutionCache
from gosym.resolve.context import QueryContext
from gosym.resolve.engine import resolve
from gosym.resolve.legacy import LegacyResolver
from gosym.resolve.loader import load_query

log = structlog.get_logger(__name__)

_SHORT_ASSIGN_RE = re.compile(r"^(-[A-Za-z])=(.*)$", re.DOTALL)


class GoFlagCommand(click.Command):
    """Accepts Go flag syntax: ``-o=12`` as well as ``-o 12``.

    Click already splits ``-name=value`` for multi-letter options; a
    single-letter option would otherwise take ``=12`` as its value.
    """

    def parse_args(self, ctx: click.Context, args: list[str]) -> list[str]:
        split: list[str] = []
        for index, arg in enumerate(args):
            if arg == "--":
                split.extend(args[index:])
                break
            match = _SHORT_ASSIGN_RE.match(arg)
            split.extend(match.groups() if match else (arg,))
        return super().parse_args(ctx, split)


def _logging_config(config: GosymConfig, debug: bool, log_to_file: bool) -> LoggingConfig:
    """-debug and -log take precedence over configured outputs."""
    outputs: list[LogOutputConfig] = []
    if debug:
        outputs.append(LogOutputConfig(format="console", destination="stderr"))
    if log_to_file:
        fd, name = tempfile.mkstemp(prefix=LOG_FILE_PREFIX)
        os.close(fd)
        outputs.append(LogOutputConfig(format="json", destination=name))
    if not outputs:
        return config.logging
    return LoggingConfig(level="DEBUG", outputs=outputs)


def _fail(ctx: click.Context) -> None:
    click.echo(FAILURE_MESSAGE, err=True)
    ctx.exit(FAILURE_EXIT_CODE)


@click.command(cls=GoFlagCommand, context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version="0.1.0", prog_name="gosym")
@click.option("-f", "filename", default="", help="Go source file")
@click.option("-o", "offset", type=int, default=0, help="Byte offset in the file, 1 based")
@click.option("-i", "from_stdin", is_flag=True, help="Read the file body from stdin")
@click.option("-godef", "legacy", default=None, help="Legacy resolver run when no position is found")
@click.option("-cache", "cache_path", default=None, help="Resolution cache table; empty disables it")
@click.option("-debug", "debug", is_flag=True, help="Log to stderr")
@click.option("-log", "log_to_file", is_flag=True, help="Log to a temp file")
@click.option("-A", "godef_all", is_flag=True, hidden=True)
@click.option("-a", "godef_members", is_flag=True, hidden=True)
@click.option("-acme", "godef_acme", is_flag=True, hidden=True)
@click.option("-t", "godef_type", is_flag=True, hidden=True)
@click.pass_context
def cli(
    ctx: click.Context,
    filename: str,
    offset: int,
    from_stdin: bool,
    legacy: str | None,
    cache_path: str | None,
    debug: bool,
    log_to_file: bool,
    **_godef_flags: bool,
) -> None:
    """Print where the Go identifier at OFFSET in FILE is declared."""
    overrides: dict[str, dict[str, str]] = {}
    if legacy is not None:
        overrides["resolver"] = {"legacy_resolver": legacy}
    if cache_path is not None:
        overrides["cache"] = {"path": cache_path}
    try:
        config = load_config(**overrides)
    except ConfigError as e:
        # Editors only understand the godef failure contract
        configure_logging(config=_logging_config(GosymConfig(), debug, log_to_file))
        log.warning("config_invalid", **e.to_dict())
        _fail(ctx)
        return

    configure_logging(config=_logging_config(config, debug, log_to_file))
    set_query_id()
    try:
        _run(ctx, config, filename, offset, from_stdin)
    finally:
        clear_query_id()


def _run(ctx: click.Context, config: GosymConfig, filename: str, offset: int, from_stdin: bool) -> None:
    log.debug("args", argv=sys.argv[1:])
    if not filename:
        _fail(ctx)

    body = click.get_binary_stream("stdin").read() if from_stdin else None
    query_ctx = QueryContext.create(config, Path(filename).absolute())
    try:
        query = load_query(query_ctx, filename, offset, body)
    except GosymError as e:
        log.debug("no_target", **e.to_dict())
        _fail(ctx)
        return

    cache_file = config.cache.resolved_path()
    cache = (
        ResolutionCache.load(cache_file, retention_hours=config.cache.retention_hours)
        if cache_file is not None
        else None
    )
    resolution = resolve(query_ctx, query, cache)
    location = resolution.binding.location if resolution is not None else None
    if location is not None:
        click.echo(str(location))
        return

    # Nothing with a position: hand the original request to godef
    legacy = LegacyResolver(config.resolver.legacy_resolver)
    output = legacy.resolve(sys.argv[1:], body)
    if output is None:
        _fail(ctx)
        return
    stdout = click.get_binary_stream("stdout")
    stdout.write(output)
    stdout.flush()


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
