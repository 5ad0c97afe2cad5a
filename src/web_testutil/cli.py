"""CLI entry point: click-based commands."""

from __future__ import annotations

import pathlib
import sys

import click

from web_testutil import __version__
from web_testutil.constants import DEFAULT_LOG_TAIL

EXIT_LOCATION_ERROR = 2
EXIT_CONFIG_ERROR = 3


@click.group()
@click.version_option(__version__, prog_name="web-testutil")
@click.option(
    "--config",
    "config_path",
    default=None,
    metavar="FILE",
    help="Path to web-testutil.yaml (default: project root).",
)
@click.pass_context
def main(ctx, config_path):
    """Browser test utilities: script location and condition waits."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


def _load_config(ctx):
    from web_testutil.config import ConfigStore
    from web_testutil.core.errors import ConfigError

    store = ConfigStore(ctx.obj.get("config_path"))
    try:
        return store, store.load()
    except ConfigError as exc:
        click.echo(str(exc), err=True)
        sys.exit(EXIT_CONFIG_ERROR)


# ── locate ────────────────────────────────────────────────────────

@main.command()
@click.argument("trace_file", type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path))
@click.option(
    "--dialect",
    type=click.Choice(["browser", "python"]),
    default=None,
    help="Trace flavour (default: from config).",
)
@click.option("--base-segment", default=None, help="URL path segment that maps to the project root.")
@click.option("--root", default=None, help="Project root for python traces.")
@click.pass_context
def locate(ctx, trace_file, dialect, base_segment, root):
    """Print the script that captured the stack trace in TRACE_FILE.

    The first script in the trace is taken to be the locating helper itself;
    the first other script is reported.
    """
    from web_testutil.core.errors import LocationError
    from web_testutil.locate.stack import dialect_from_config, locate as do_locate, trace_source

    _, cfg = _load_config(ctx)
    locator = cfg.locator
    if dialect is not None:
        locator = locator.model_copy(update={"dialect": dialect})
    if base_segment is not None:
        locator = locator.model_copy(update={"base_segment": base_segment})

    text = trace_file.read_text(encoding="utf-8")
    try:
        location = do_locate(trace_source(text), dialect_from_config(locator, root))
    except LocationError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_LOCATION_ERROR)

    click.echo(f"url:       {location.url}")
    click.echo(f"path:      {location.path}")
    click.echo(f"directory: {location.directory}")


# ── config ────────────────────────────────────────────────────────

@main.group()
def config():
    """Inspect or create the configuration file."""
    pass


@config.command("show")
@click.pass_context
def config_show(ctx):
    """Print the effective configuration as YAML."""
    import yaml

    store, cfg = _load_config(ctx)
    source = store.path if store.path.exists() else "defaults"
    click.echo(f"# source: {source}")
    click.echo(yaml.safe_dump(cfg.model_dump(), sort_keys=False).rstrip())


@config.command("init")
@click.pass_context
def config_init(ctx):
    """Write a default web-testutil.yaml."""
    from web_testutil.config import ConfigStore

    store = ConfigStore(ctx.obj.get("config_path"))
    if store.ensure_default():
        click.echo(f"Created {store.path}")
    else:
        click.echo(f"{store.path} already exists", err=True)


# ── log ───────────────────────────────────────────────────────────

@main.command("log")
@click.option("-n", "count", default=DEFAULT_LOG_TAIL, type=int, help="Number of records.")
@click.pass_context
def log_tail(ctx, count):
    """Show the last wait records from the configured log file."""
    from web_testutil.runner.logging import WaitLogger

    _, cfg = _load_config(ctx)
    if not cfg.log.path:
        click.echo("No log path configured (log.path)", err=True)
        sys.exit(EXIT_CONFIG_ERROR)
    for entry in WaitLogger(cfg.log.path).read_last_n(count):
        error = f"  {entry['error']}" if entry.get("error") else ""
        click.echo(
            f"{entry['outcome']:<9} {entry['elapsed_ms']:>8.1f}ms "
            f"ticks={entry['ticks']:<4} {entry['check']}{error}"
        )
