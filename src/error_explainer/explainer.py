"""Turns captured fault data into an :class:`Explanation`, optionally AI-enriched."""

from __future__ import annotations

import logging
import re
from typing import Any, Iterable, Mapping, Sequence

from .ai.base import AIClient
from .ai.factory import make_client
from .config import Config
from .errors import ConfigurationError
from .i18n import translate
from .models import Explanation, FaultKind, OriginalFault, StackFrame, StateSnapshot
from .sanitizer import sanitize
from .severity import severity_label

__all__ = ["Explainer", "AI_MARKER", "extract_bullets", "normalize_trace", "label_for"]

LOGGER = logging.getLogger(__name__)

AI_MARKER = "[AI] "
_BULLET = re.compile(r"^[-*•]\s+(.+)")
_NUMBERED = re.compile(r"^\d+\.?\s+(.+)")


def label_for(kind: FaultKind | str, severity: int | None) -> str:
    if severity is not None:
        return severity_label(severity)
    return "Exception" if FaultKind(kind) is FaultKind.EXCEPTION else "Error"


def normalize_trace(trace: Iterable[Any] | None) -> tuple[StackFrame, ...]:
    """Coerce raw frames (mappings or :class:`StackFrame`) into frames, dropping junk."""

    frames: list[StackFrame] = []
    for entry in trace or ():
        if isinstance(entry, StackFrame):
            frames.append(entry)
        elif isinstance(entry, Mapping):
            frames.append(StackFrame.from_mapping(entry))
    return tuple(frames)


def extract_bullets(text: str) -> list[str]:
    """Pull dash/bullet and numbered list items out of free text, in order."""

    bullets: list[str] = []
    for raw_line in text.strip().splitlines():
        line = raw_line.strip()
        if not line:
            continue
        match = _BULLET.match(line) or _NUMBERED.match(line)
        if match:
            bullets.append(match.group(1).strip())
    return bullets


class Explainer:
    """Builds explanations; AI enrichment is best-effort and never raises."""

    def __init__(self, ai_client: AIClient | None = None) -> None:
        self._ai_client = ai_client

    def explain(
        self,
        kind: FaultKind | str,
        message: str,
        file: str | None,
        line: int | None,
        trace: Sequence[Any] | None,
        severity: int | None,
        config: Config,
        *,
        exception_class: str | None = None,
        state: StateSnapshot | None = None,
    ) -> Explanation:
        kind = FaultKind(kind)
        label = label_for(kind, severity)
        frames = normalize_trace(trace)
        locale = config.language
        where = _where(file, line) or translate(locale, "details.unknown")

        title = translate(locale, "title.basic")
        suggestions: list[str] = []
        ai_details = ""

        if config.ai_enabled:
            ai_text = self._ask_ai(label, message, where, config)
            if ai_text:
                title = translate(locale, "title.ai")
                for bullet in extract_bullets(ai_text):
                    if bullet not in suggestions:
                        suggestions.append(bullet)
                ai_details = AI_MARKER + ai_text
            elif config.verbose:
                suggestions.append(translate(locale, "suggestion.ai_unavailable"))

        details = _build_details(locale, message, where, frames, config.verbose)
        if ai_details:
            details = f"{details}\n\n{ai_details}"

        return Explanation(
            title=title,
            details=details,
            severity_label=label,
            original=OriginalFault(message=message, file=file, line=line),
            suggestions=tuple(suggestions),
            trace=frames,
            exception_class=exception_class,
            state=state,
        )

    def build_prompt(self, label: str, message: str, where: str, config: Config) -> str:
        return translate(
            config.language,
            "ai.prompt",
            {"lang": config.language, "severity": label, "message": message, "where": where},
        )

    def _ask_ai(self, label: str, message: str, where: str, config: Config) -> str | None:
        client = self._ai_client or self._client_for(config)
        if client is None:
            return None
        prompt = self.build_prompt(label, message, where, config)
        if config.sanitize.enabled:
            prompt = sanitize(prompt, config.sanitizer_config())
        try:
            text = client.generate_explanation(prompt, config)
        except Exception:  # pragma: no cover - injected clients may not honour the no-raise contract
            LOGGER.debug("AI client raised; continuing without enrichment", exc_info=True)
            return None
        if text is None or not text.strip():
            return None
        return text.strip()

    @staticmethod
    def _client_for(config: Config) -> AIClient | None:
        try:
            return make_client(config.backend)
        except ConfigurationError as exc:
            LOGGER.debug("AI enrichment skipped: %s", exc)
            return None


def _where(file: str | None, line: int | None) -> str:
    if not file:
        return ""
    return f"{file}:{line}" if line is not None else file


def _build_details(
    locale: str,
    message: str,
    where: str,
    frames: Sequence[StackFrame],
    verbose: bool,
) -> str:
    lines = [
        f"{translate(locale, 'details.message')} {message}",
        f"{translate(locale, 'details.position')} {where}",
    ]
    if verbose and frames:
        lines.append(translate(locale, "details.trace"))
        for index, frame in enumerate(frames):
            owner = f"{frame.class_name}{frame.call_type or ''}" if frame.class_name else ""
            lines.append(
                f"#{index} {owner}{frame.function or 'unknown'}({frame.file or ''}:{frame.line or ''})"
            )
    return "\n".join(lines)
