"""HTML error page rendered through a Jinja template."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import Config
from ..errors import TemplateNotFoundError
from ..i18n import translate
from ..models import Explanation, FaultKind, StackFrame
from ..utils.file_io import read_source
from .base import send_error_headers
from .context import OutputTarget
from .excerpt import DEFAULT_RADIUS, build_excerpt
from .paths import editor_href, project_root_or_cwd, relativize

__all__ = [
    "HtmlRenderer",
    "HTML_CONTENT_TYPE",
    "DEFAULT_TEMPLATE",
    "TEMPLATE_ENV",
    "resolve_template_path",
    "build_view_data",
]

HTML_CONTENT_TYPE = "text/html; charset=utf-8"
DEFAULT_TEMPLATE = Path(__file__).resolve().parent.parent / "resources" / "templates" / "error.html.j2"
TEMPLATE_ENV = "ERROR_EXPLAINER_TEMPLATE"
ORIGIN_SIGNATURE = "(origin)"

_LABEL_KEYS: Mapping[str, str] = {
    "severity": "html.badge.severity",
    "details": "html.headings.details",
    "suggestions": "html.headings.suggestions",
    "stack": "html.headings.stack",
    "info": "html.headings.info",
    "state": "html.headings.state",
    "arguments": "html.labels.arguments",
    "locals": "html.labels.locals",
    "object": "html.labels.object",
    "attributes": "html.labels.attributes",
    "methods": "html.labels.methods",
    "request": "html.labels.request",
    "query": "html.labels.query",
    "content": "html.labels.content",
    "form": "html.labels.form",
    "cookies": "html.labels.cookies",
    "code": "html.labels.code",
    "language": "html.labels.language",
    "verbose": "html.labels.verbose",
    "ai_model": "html.labels.ai_model",
    "editor_url": "html.labels.editor_url",
    "exception_class": "html.labels.exception_class",
    "project_root": "html.labels.project_root",
    "no_excerpt": "html.messages.no_excerpt",
    "open_in_editor": "html.toolbar.open_in_editor",
    "copy_title": "html.toolbar.copy_title",
    "copy_stack": "html.toolbar.copy_stack",
    "copied": "html.js.copied",
    "rendered_by": "html.footer.rendered_by",
}


def resolve_template_path(config: Config, environ: Mapping[str, str] | None = None) -> Path:
    """Explicit config path, else the environment override, else the bundled page.

    Raises :class:`TemplateNotFoundError` when the chosen path is not a file.
    """

    env = os.environ if environ is None else environ
    override = config.template or (env.get(TEMPLATE_ENV) or "").strip() or None
    path = Path(override).expanduser() if override and override != "0" else DEFAULT_TEMPLATE
    if not path.is_file():
        raise TemplateNotFoundError(str(path))
    return path


def build_view_data(
    explanation: Explanation,
    config: Config,
    *,
    reader: Callable[[str], str | None] = read_source,
) -> Dict[str, Any]:
    """Assemble everything the template needs; no markup is produced here."""

    locale = config.language
    root = project_root_or_cwd(config.project_root)
    original = explanation.original
    if original.file:
        where = relativize(original.file, root)
        if original.line:
            where = f"{where}:{original.line}"
    else:
        where = translate(locale, "details.unknown")

    frames: List[Dict[str, Any]] = []
    if original.file:
        origin = StackFrame(function=ORIGIN_SIGNATURE, file=original.file, line=original.line)
        frames.append(_frame_view(0, origin, config, root, reader, signature=ORIGIN_SIGNATURE))
    for index, frame in enumerate(explanation.trace, start=len(frames)):
        frames.append(_frame_view(index, frame, config, root, reader))

    return {
        "doc_lang": locale,
        "title": original.message or explanation.title,
        "subtitle": explanation.title,
        "severity": explanation.severity_label,
        "where": where,
        "verbose": config.verbose,
        "details": explanation.details,
        "suggestions": list(explanation.suggestions),
        "frames": frames,
        "labels": {name: translate(locale, key) for name, key in _LABEL_KEYS.items()},
        "project_root": root,
        "editor_url": config.editor_url or "",
        "ai_model": config.model or "",
        "exception_class": explanation.exception_class or "",
        "state": explanation.state if explanation.state else None,
    }


class HtmlRenderer:
    content_type = HTML_CONTENT_TYPE

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        reader: Callable[[str], str | None] = read_source,
    ) -> None:
        self._environ = environ
        self._reader = reader

    def render_page(self, explanation: Explanation, config: Config) -> str:
        path = resolve_template_path(config, self._environ)
        environment = Environment(
            loader=FileSystemLoader(str(path.parent)),
            autoescape=select_autoescape(enabled_extensions=("html", "htm", "xml", "j2"), default=True),
            keep_trailing_newline=True,
        )
        template = environment.get_template(path.name)
        return template.render(**build_view_data(explanation, config, reader=self._reader))

    def render(
        self,
        explanation: Explanation,
        config: Config,
        target: OutputTarget,
        *,
        kind: FaultKind = FaultKind.ERROR,
        is_shutdown: bool = False,
    ) -> None:
        # Template errors surface before any header or body is sent.
        page = self.render_page(explanation, config)
        send_error_headers(target, self.content_type)
        target.write(page)


def _frame_view(
    index: int,
    frame: StackFrame,
    config: Config,
    root: str,
    reader: Callable[[str], str | None],
    *,
    signature: str | None = None,
) -> Dict[str, Any]:
    return {
        "idx": index,
        "sig": signature or frame.signature(),
        "loc": frame.location(),
        "file": frame.file or "",
        "line": frame.line or 0,
        "args": list(frame.args),
        "locals": list(frame.locals),
        "rel": relativize(frame.file, root),
        "editor_href": editor_href(
            config.editor_url, frame.file, frame.line, config.project_root, config.host_project_root
        ),
        "excerpt": build_excerpt(frame.file, frame.line, DEFAULT_RADIUS, reader=reader),
    }
