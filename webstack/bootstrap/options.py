"""Option records describing each server a program starts.

Programs declare their servers as plain mappings, in the same shape for one
server or many::

    {
        "name": "secure https server",
        "listen": {"port": 10102},
        "tls": {"key_path": "...", "cert_path": "..."},
        "logger": {"path": "access.log", "mode": 0o666},
        "static": {"path": "static", "max_age_ms": 3_600_000},
        "favicon": {},
        "directory": {"path": "static", "icons": True},
    }

:func:`load_option_set` turns those mappings into frozen records. A section
that is missing or ``None`` disables its middleware; an empty mapping is
present and takes the defaults. Nothing else is validated here: bad paths
surface when the file system or socket is first touched.
"""

from collections import Counter
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Union

from webstack.bootstrap.config import DEFAULT_HOST
from webstack.domain.request_context import get_logger

OPTIONS_LOGGER = get_logger("bootstrap.options")

DEFAULT_FILE_MODE = 0o644
ONE_DAY_MS = 86_400_000

RawOptions = Mapping[str, Any]


@dataclass(frozen=True)
class ListenOptions:
    port: int
    host: str = DEFAULT_HOST


@dataclass(frozen=True)
class TlsOptions:
    key_path: Optional[str] = None
    cert_path: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return bool(self.key_path and self.cert_path)


@dataclass(frozen=True)
class StaticOptions:
    path: Optional[str] = None
    max_age_ms: int = 0
    hidden: bool = False
    redirect: bool = True
    index: str = "index.html"


@dataclass(frozen=True)
class LoggerOptions:
    path: Optional[str] = None
    mode: int = DEFAULT_FILE_MODE
    format: str = "default"
    immediate: bool = False


@dataclass(frozen=True)
class FaviconOptions:
    path: Optional[str] = None
    max_age_ms: int = ONE_DAY_MS


@dataclass(frozen=True)
class DirectoryOptions:
    path: Optional[str] = None
    icons: bool = False
    hidden: bool = False


@dataclass(frozen=True)
class ServerOptions:
    """Everything needed to build and bind one server."""

    name: str = "server"
    listen: Optional[ListenOptions] = None
    tls: Optional[TlsOptions] = None
    static: Optional[StaticOptions] = None
    logger: Optional[LoggerOptions] = None
    favicon: Optional[FaviconOptions] = None
    directory: Optional[DirectoryOptions] = None

    @property
    def uses_tls(self) -> bool:
        return self.tls is not None and self.tls.enabled

    @property
    def address(self) -> Optional[tuple[str, int]]:
        if self.listen is None or not self.listen.port:
            return None
        return (self.listen.host, self.listen.port)


def _listen(raw: RawOptions) -> Optional[ListenOptions]:
    section = raw.get("listen")
    if section is None:
        return None
    host = section.get("host") or DEFAULT_HOST
    return ListenOptions(port=int(section.get("port") or 0), host=host)


def _tls(raw: RawOptions) -> Optional[TlsOptions]:
    section = raw.get("tls")
    if section is not None:
        return TlsOptions(section.get("key_path"), section.get("cert_path"))
    # the HTTPS example keeps its key material next to the name
    if raw.get("key_path") or raw.get("cert_path"):
        return TlsOptions(raw.get("key_path"), raw.get("cert_path"))
    return None


def _static(raw: RawOptions) -> Optional[StaticOptions]:
    section = raw.get("static")
    if section is None:
        return None
    nested = section.get("options") or {}
    max_age = section.get("max_age_ms", nested.get("max_age_ms", 0))
    return StaticOptions(
        path=section.get("path"),
        max_age_ms=int(max_age or 0),
        hidden=bool(section.get("hidden", False)),
        redirect=bool(section.get("redirect", True)),
        index=section.get("index") or "index.html",
    )


def _logger(raw: RawOptions) -> Optional[LoggerOptions]:
    section = raw.get("logger")
    if section is None:
        return None
    return LoggerOptions(
        path=section.get("path"),
        mode=int(section.get("mode") or DEFAULT_FILE_MODE),
        format=section.get("format") or "default",
        immediate=bool(section.get("immediate", False)),
    )


def _favicon(raw: RawOptions) -> Optional[FaviconOptions]:
    section = raw.get("favicon")
    if section is None:
        return None
    return FaviconOptions(
        path=section.get("path"),
        max_age_ms=int(section.get("max_age_ms", ONE_DAY_MS)),
    )


def _directory(raw: RawOptions) -> Optional[DirectoryOptions]:
    section = raw.get("directory")
    if section is None:
        return None
    return DirectoryOptions(
        path=section.get("path"),
        icons=bool(section.get("icons", False)),
        hidden=bool(section.get("hidden", False)),
    )


def server_options_from_mapping(raw: RawOptions) -> ServerOptions:
    """Convert one option mapping into a :class:`ServerOptions` record."""
    return ServerOptions(
        name=raw.get("name") or "server",
        listen=_listen(raw),
        tls=_tls(raw),
        static=_static(raw),
        logger=_logger(raw),
        favicon=_favicon(raw),
        directory=_directory(raw),
    )


def load_option_set(
    raw: Union[RawOptions, Sequence[RawOptions]],
) -> tuple[ServerOptions, ...]:
    """Return the ordered option records for a single mapping or a list."""
    entries = [raw] if isinstance(raw, Mapping) else list(raw)
    option_set = tuple(server_options_from_mapping(entry) for entry in entries)

    bound = Counter(opts.address for opts in option_set if opts.address)
    for address, count in bound.items():
        if count > 1:
            OPTIONS_LOGGER.warning(
                "Several servers share one listen address",
                extra={
                    "event": "duplicate_listen_address",
                    "host": address[0],
                    "port": address[1],
                    "servers": count,
                },
            )
    return option_set
