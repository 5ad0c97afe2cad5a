"""Locate the calling script from a generated stack trace.

There is no direct way for a helper to ask which file called it, but a stack
trace can always be produced. The trace is split into frame lines, innermost
first; the first script reference belongs to the locator itself, so every
occurrence of it is dropped and the next reference is the caller.

The trace comes from a frame source: any zero-argument callable returning
the raw frame lines. ``python_frames`` inspects the running interpreter;
``trace_source`` wraps trace text captured elsewhere, e.g. an ``Error().stack``
string returned by a browser.
"""

from __future__ import annotations

import pathlib
import re
import traceback
from dataclasses import dataclass
from typing import Callable

from pydantic import BaseModel

from web_testutil.config import LocatorConfig
from web_testutil.constants import DEFAULT_BASE_SEGMENT, PROJECT_ROOT
from web_testutil.core.errors import LocationError

FrameSource = Callable[[], list[str]]


@dataclass(frozen=True)
class TraceDialect:
    """How script references look in one flavour of stack trace."""

    name: str
    frame_filter: re.Pattern[str]
    script_pattern: re.Pattern[str]
    prefix_pattern: re.Pattern[str]


def browser_dialect(base_segment: str = DEFAULT_BASE_SEGMENT) -> TraceDialect:
    """Browser ``Error().stack`` traces of scripts served over http(s).

    Only ``.js`` references are recognised and query strings are not kept.
    """
    segment = base_segment.strip("/")
    prefix = rf"^https?://[^/]*/{re.escape(segment)}/" if segment else r"^https?://[^/]*/"
    return TraceDialect(
        name="browser",
        frame_filter=re.compile(r"https?://"),
        script_pattern=re.compile(r"https?://.*?\.js"),
        prefix_pattern=re.compile(prefix),
    )


def python_dialect(root: str | pathlib.Path | None = None) -> TraceDialect:
    """Traces rendered by ``python_frames``; paths are made relative to *root*."""
    root_posix = pathlib.Path(root or PROJECT_ROOT).resolve().as_posix().rstrip("/")
    return TraceDialect(
        name="python",
        # '<frozen ...>', '<string>' and friends are not script frames
        frame_filter=re.compile(r'File "[^<"]'),
        script_pattern=re.compile(r'(?<=File ")[^"]*?\.py(?=")'),
        prefix_pattern=re.compile("^" + re.escape(root_posix + "/")),
    )


def dialect_from_config(
    config: LocatorConfig, root: str | pathlib.Path | None = None
) -> TraceDialect:
    if config.dialect == "browser":
        return browser_dialect(config.base_segment)
    return python_dialect(root)


class ScriptLocation(BaseModel):
    """Where a script lives: its full reference and project-relative path."""

    url: str
    path: str
    directory: str


class _TraceProbe(Exception):
    pass


def python_frames() -> list[str]:
    """Frame lines of the current call stack, innermost first."""
    # Raise for real so the traceback is populated from the raise site.
    try:
        raise _TraceProbe()
    except _TraceProbe as exc:
        frame = exc.__traceback__.tb_frame

    lines = []
    for f, lineno in traceback.walk_stack(frame):
        filename = f.f_code.co_filename
        if not filename.startswith("<"):
            filename = pathlib.Path(filename).resolve().as_posix()
        lines.append(f'File "{filename}", line {lineno}, in {f.f_code.co_name}')
    return lines


def frames_from_trace(text: str) -> list[str]:
    return text.splitlines()


def trace_source(text: str) -> FrameSource:
    """Frame source serving a fixed, already captured trace."""
    return lambda: frames_from_trace(text)


def script_references(frames: list[str], dialect: TraceDialect) -> list[str]:
    """Script reference of every scripted frame, in trace order.

    A frame that passes the filter but has no recognisable script keeps its
    raw line.
    """
    refs = []
    for line in frames:
        if not dialect.frame_filter.search(line):
            continue
        match = dialect.script_pattern.search(line)
        refs.append(match.group(0) if match else line)
    return refs


def caller_reference(frames: list[str], dialect: TraceDialect) -> str:
    """The first script reference that is not the locator's own script."""
    refs = script_references(frames, dialect)
    if len(refs) < 2:
        raise LocationError(
            f"Could not find script path: {len(refs)} usable frame(s) in the trace"
        )
    own = refs[0]
    callers = [r for r in refs[1:] if r != own]
    if not callers:
        raise LocationError(
            f"Could not find script path: every frame belongs to {own}"
        )
    return callers[0]


def strip_prefix(reference: str, dialect: TraceDialect) -> str:
    return dialect.prefix_pattern.sub("", reference, count=1)


def directory_of(path: str) -> str:
    parts = path.split("/")
    return "/".join(parts[:-1])


def locate(
    source: FrameSource | None = None, dialect: TraceDialect | None = None
) -> ScriptLocation:
    """Locate the script that called this function (or its wrappers here)."""
    frames = (source or python_frames)()
    dialect = dialect or python_dialect()
    url = caller_reference(frames, dialect)
    path = strip_prefix(url, dialect)
    return ScriptLocation(url=url, path=path, directory=directory_of(path))


def script_url(source: FrameSource | None = None, dialect: TraceDialect | None = None) -> str:
    return locate(source, dialect).url


def script_path(source: FrameSource | None = None, dialect: TraceDialect | None = None) -> str:
    """Path of the calling script relative to the project root."""
    return locate(source, dialect).path


def script_dir(source: FrameSource | None = None, dialect: TraceDialect | None = None) -> str:
    """Directory of the calling script relative to the project root."""
    return locate(source, dialect).directory
