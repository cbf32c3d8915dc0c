"""Terminal output: severity banner, message, suggestions, excerpts and frames."""

from __future__ import annotations

import io
import os
from typing import Callable, Mapping

from rich.console import Console
from rich.text import Text

from ..config import Config
from ..highlight import TokenCategory
from ..i18n import translate
from ..models import Explanation, FaultKind, StateSnapshot
from ..utils.file_io import read_source
from .base import send_error_headers
from .context import OutputTarget
from .excerpt import DEFAULT_RADIUS, Excerpt, build_excerpt
from .paths import project_root_or_cwd, relativize

__all__ = [
    "TextRenderer",
    "TEXT_CONTENT_TYPE",
    "TOKEN_STYLES",
    "ERROR_MARKER",
    "should_use_color",
    "severity_background",
]

TEXT_CONTENT_TYPE = "text/plain; charset=utf-8"
ERROR_MARKER = "➜"
FRAME_RADIUS = 2
MAX_FRAMES = 5
_FORCE_COLOR_ENVS = ("FORCE_COLOR", "ERROR_EXPLAINER_FORCE_COLOR")
_CONSOLE_WIDTH = 160

TOKEN_STYLES: Mapping[TokenCategory, str] = {
    TokenCategory.DEFAULT: "",
    TokenCategory.COMMENT: "bright_black",
    TokenCategory.STRING: "yellow",
    TokenCategory.KEYWORD: "bold magenta",
    TokenCategory.HTML: "bold cyan",
    TokenCategory.VARIABLE: "cyan",
    TokenCategory.FUNCTION: "bold blue",
    TokenCategory.METHOD: "underline green",
}


def severity_background(label: str) -> str:
    lowered = label.lower()
    if any(word in lowered for word in ("exception", "error", "fatal", "critical")):
        return "red"
    if "warning" in lowered:
        return "yellow"
    return "blue"


def should_use_color(target: OutputTarget, environ: Mapping[str, str] | None = None) -> bool:
    """Color only for terminal-like targets, never with ``NO_COLOR``, else forced or a TTY."""

    env = os.environ if environ is None else environ
    if not target.cli_like:
        return False
    if "NO_COLOR" in env:
        return False
    if any(env.get(name, "").strip() not in {"", "0"} for name in _FORCE_COLOR_ENVS):
        return True
    isatty = getattr(target, "isatty", None)
    return bool(isatty()) if callable(isatty) else False


class TextRenderer:
    content_type = TEXT_CONTENT_TYPE

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        reader: Callable[[str], str | None] = read_source,
        max_frames: int = MAX_FRAMES,
    ) -> None:
        self._environ = environ
        self._reader = reader
        self._max_frames = max_frames

    def render(
        self,
        explanation: Explanation,
        config: Config,
        target: OutputTarget,
        *,
        kind: FaultKind = FaultKind.ERROR,
        is_shutdown: bool = False,
    ) -> None:
        color = should_use_color(target, self._environ)
        buffer = io.StringIO()
        console = Console(
            file=buffer,
            force_terminal=color,
            no_color=not color,
            color_system="standard" if color else None,
            highlight=False,
            markup=False,
            emoji=False,
            soft_wrap=True,
            width=_CONSOLE_WIDTH,
        )
        self._write(console, explanation, config)
        send_error_headers(target, self.content_type)
        target.write(buffer.getvalue())

    def _write(self, console: Console, explanation: Explanation, config: Config) -> None:
        locale = config.language
        root = project_root_or_cwd(config.project_root)
        label = explanation.severity_label
        console.print(Text(f" {label} ", style=f"bold white on {severity_background(label)}"))
        console.print()

        message = explanation.message.strip() or explanation.title
        console.print(Text(message, style="bold"))
        console.print()

        if explanation.suggestions:
            console.print(Text(translate(locale, "labels.suggestions"), style="green"))
            for suggestion in explanation.suggestions:
                console.print(Text(f"  - {suggestion}", style="green"))
            console.print()

        original = explanation.original
        if original.file and original.line:
            where = f"{relativize(original.file, root)}:{original.line}"
            console.print(Text.assemble(f"{translate(locale, 'labels.in')} ", (where, "bold cyan")))
            excerpt = build_excerpt(original.file, original.line, DEFAULT_RADIUS, reader=self._reader)
            if excerpt is not None:
                console.print(_excerpt_text(excerpt))
            console.print()

        for index, frame in enumerate(explanation.trace[: self._max_frames], start=1):
            location = relativize(frame.file, root)
            if frame.line:
                location = f"{location}:{frame.line}"
            console.print(Text(f"{index} {location} {frame.signature()}", style="dim"))
            excerpt = build_excerpt(frame.file, frame.line, FRAME_RADIUS, reader=self._reader)
            if excerpt is not None:
                console.print(_excerpt_text(excerpt))
        hidden = len(explanation.trace) - self._max_frames
        if hidden > 0:
            console.print(Text(f"  … +{hidden}", style="dim"))

        if config.verbose and explanation.state:
            console.print()
            _write_state(console, explanation.state, locale)

        if config.verbose:
            info = f"lang={locale}"
            if config.model:
                info += f" model={config.model}"
            console.print()
            console.print(Text(info, style="dim"))


def _write_state(console: Console, state: StateSnapshot, locale: str) -> None:
    console.print(Text(translate(locale, "labels.state"), style="magenta"))
    blocks: list[tuple[str, str, dict[str, tuple[str, ...]]]] = []
    if state.current_object is not None:
        owner = state.current_object
        blocks.append(("object", owner.class_name, {"attributes": owner.attributes, "methods": owner.methods}))
    if state.request is not None:
        request = state.request
        sections = {
            "query": request.query,
            "content": request.content,
            "form": request.form,
            "cookies": request.cookies,
        }
        blocks.append(("request", f"{request.method} {request.path}".strip(), sections))
    for heading, subject, groups in blocks:
        console.print(Text(f"  {translate(locale, 'html.labels.' + heading)}: {subject}", style="bold"))
        for key, entries in groups.items():
            if not entries:
                continue
            console.print(Text(f"    {translate(locale, 'html.labels.' + key)}:", style="dim"))
            for entry in entries:
                console.print(Text(f"      {entry}"))


def _excerpt_text(excerpt: Excerpt) -> Text:
    width = excerpt.gutter_width
    text = Text()
    for position, line in enumerate(excerpt.lines):
        if position:
            text.append("\n")
        if line.is_error:
            text.append(ERROR_MARKER, style="yellow")
            text.append(f" {str(line.number).rjust(width)}", style="bold yellow")
        else:
            text.append(" ")
            text.append(f" {str(line.number).rjust(width)}", style="bright_black")
        text.append(" | ", style="bright_black")
        for token in line.tokens:
            text.append(token.text, style=TOKEN_STYLES.get(token.category, ""))
    return text
