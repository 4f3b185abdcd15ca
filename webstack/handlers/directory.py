"""Directory listing stage."""

import html
import json
import os
import urllib.parse
from dataclasses import dataclass
from pathlib import Path

from webstack.bootstrap.options import DirectoryOptions
from webstack.domain.http_types import HttpRequest, HttpResponse
from webstack.domain.request_context import get_logger
from webstack.domain.response_builders import body_response, forbidden_response
from webstack.domain.sandbox import ForbiddenPath, resolve_sandbox_path

DIRECTORY_LOGGER = get_logger("handlers.directory")

SERVED_METHODS = ("GET", "HEAD")

# &#128193; open folder, &#128196; page
FOLDER_ICON = "&#128193;"
FILE_ICON = "&#128196;"

LISTING_STYLE = """
body { font-family: sans-serif; margin: 2em; }
h1 { font-size: 1.3em; border-bottom: 1px solid #ddd; padding-bottom: .4em; }
ul { list-style: none; padding: 0; }
li { padding: .2em 0; }
a { text-decoration: none; color: #0366d6; }
a:hover { text-decoration: underline; }
.icon { display: inline-block; width: 1.6em; }
"""


@dataclass(frozen=True)
class Entry:
    name: str
    is_dir: bool

    @property
    def label(self) -> str:
        return self.name + "/" if self.is_dir else self.name


def list_entries(directory: Path, show_hidden: bool = False) -> list[Entry]:
    """Return the immediate children of ``directory`` sorted by name."""
    entries = []
    with os.scandir(directory) as iterator:
        for item in iterator:
            if not show_hidden and item.name.startswith("."):
                continue
            entries.append(Entry(item.name, item.is_dir()))
    entries.sort(key=lambda entry: entry.name)
    return entries


def _preferred_type(accept: str) -> str:
    for media_range in accept.split(","):
        media_type = media_range.split(";", 1)[0].strip().lower()
        if media_type in ("text/html", "*/*", "text/*"):
            return "text/html"
        if media_type == "application/json":
            return "application/json"
        if media_type == "text/plain":
            return "text/plain"
    return "text/html"


def render_html(url_path: str, entries: list[Entry], icons: bool) -> str:
    """Render an HTML index with one link per entry."""
    base = url_path if url_path.endswith("/") else url_path + "/"
    title = html.escape(f"listing directory {base}")
    items = []
    if base != "/":
        parent = base.rstrip("/").rsplit("/", 1)[0] + "/"
        items.append(f'<li><a href="{html.escape(parent)}">..</a></li>')
    for entry in entries:
        href = urllib.parse.quote(base + entry.name) + ("/" if entry.is_dir else "")
        icon = ""
        if icons:
            glyph = FOLDER_ICON if entry.is_dir else FILE_ICON
            icon = f'<span class="icon">{glyph}</span>'
        link = f'<a href="{html.escape(href)}" title="{html.escape(entry.name)}">'
        items.append(f"<li>{icon}{link}{html.escape(entry.label)}</a></li>")
    listing = "\n    ".join(items)
    return (
        "<!DOCTYPE html>\n"
        "<html>\n<head>\n"
        '  <meta charset="utf-8">\n'
        f"  <title>{title}</title>\n"
        f"  <style>{LISTING_STYLE}</style>\n"
        "</head>\n<body>\n"
        f"  <h1>{title}</h1>\n"
        f"  <ul>\n    {listing}\n  </ul>\n"
        "</body>\n</html>\n"
    )


class DirectoryStage:
    """Render listings for directories under a root.

    The response format follows ``Accept``: HTML (the default), JSON (an
    array of names) or plain text (one name per line).
    """

    name = "directory"

    def __init__(self, options: DirectoryOptions) -> None:
        self.root = options.path
        self.icons = options.icons
        self.hidden = options.hidden

    def __call__(self, request: HttpRequest, call_next) -> HttpResponse:
        if request.method not in SERVED_METHODS:
            return call_next(request)
        try:
            target = resolve_sandbox_path(self.root, request.path)
        except ForbiddenPath:
            DIRECTORY_LOGGER.warning(
                "Forbidden path access blocked",
                extra={"event": "forbidden_path", "route": request.path},
            )
            return forbidden_response(request)
        try:
            is_directory = target.is_dir()
        except OSError:
            is_directory = False
        if not is_directory:
            return call_next(request)

        entries = list_entries(target, self.hidden)
        media_type = _preferred_type(request.headers.get("accept", "*/*"))
        DIRECTORY_LOGGER.debug(
            "Rendering directory listing",
            extra={"event": "directory_listed", "route": request.path},
        )
        if media_type == "application/json":
            body = json.dumps([entry.label for entry in entries]).encode()
            return body_response(request, 200, body, "application/json; charset=utf-8")
        if media_type == "text/plain":
            body = "".join(f"{entry.label}\n" for entry in entries).encode()
            return body_response(request, 200, body, "text/plain; charset=utf-8")
        body = render_html(request.path, entries, self.icons).encode()
        return body_response(request, 200, body, "text/html; charset=utf-8")
