"""Machine-readable JSON output."""

from __future__ import annotations

import json

from ..config import Config
from ..models import Explanation, FaultKind
from .base import send_error_headers
from .context import OutputTarget

__all__ = ["JsonRenderer", "JSON_CONTENT_TYPE"]

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


class JsonRenderer:
    content_type = JSON_CONTENT_TYPE

    def __init__(self, *, indent: int = 4) -> None:
        self._indent = indent

    def dumps(self, explanation: Explanation) -> str:
        return json.dumps(explanation.to_dict(), indent=self._indent, ensure_ascii=False, default=str)

    def render(
        self,
        explanation: Explanation,
        config: Config,
        target: OutputTarget,
        *,
        kind: FaultKind = FaultKind.ERROR,
        is_shutdown: bool = False,
    ) -> None:
        send_error_headers(target, self.content_type)
        target.write(self.dumps(explanation) + "\n")
