"""Path shortening and editor deep links shared by the text and HTML renderers."""

from __future__ import annotations

import os
import re

__all__ = [
    "VENDOR_SEGMENTS",
    "normalize_slashes",
    "project_root_or_cwd",
    "relativize",
    "map_to_host",
    "editor_href",
]

# Third-party code is shortened to start at one of these directory names.
VENDOR_SEGMENTS: tuple[str, ...] = ("vendor", "site-packages")
_MULTI_SLASH = re.compile(r"/{2,}")


def normalize_slashes(path: str) -> str:
    """Use forward slashes and collapse repeated separators."""

    return _MULTI_SLASH.sub("/", path.replace("\\", "/"))


def project_root_or_cwd(project_root: str | None) -> str:
    return project_root or os.getcwd()


def relativize(path: str | None, project_root: str | None) -> str:
    """Return ``path`` relative to ``project_root`` when it lives underneath it.

    Files elsewhere are shortened from their vendor/site-packages segment
    when they have one; otherwise only the leading separator is dropped.
    """

    if not path:
        return ""
    file = normalize_slashes(path)
    if project_root:
        root = normalize_slashes(project_root).rstrip("/")
        if root and file.startswith(root + "/"):
            return file[len(root) + 1 :]
    segments = file.split("/")
    for index, segment in enumerate(segments):
        if segment in VENDOR_SEGMENTS:
            return "/".join(segments[index:])
    return file.lstrip("/")


def map_to_host(path: str, project_root: str | None, host_project_root: str | None) -> str:
    """Swap the container project root prefix for the host one, when both are set.

    Paths outside the container root come back exactly as given.
    """

    if not project_root or not host_project_root:
        return path
    file = normalize_slashes(path)
    root = normalize_slashes(project_root).rstrip("/")
    host = normalize_slashes(host_project_root).rstrip("/")
    if root and file.startswith(root + "/"):
        return host + file[len(root) :]
    return path


def editor_href(
    template: str | None,
    file: str | None,
    line: int | None,
    project_root: str | None = None,
    host_project_root: str | None = None,
) -> str:
    """Fill ``%file`` and ``%line`` in ``template``; empty when any input is missing."""

    if not template or not file or not line:
        return ""
    mapped = map_to_host(file, project_root, host_project_root)
    return template.replace("%file", mapped).replace("%line", str(line))
