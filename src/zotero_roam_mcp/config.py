from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path

from .roam.refs import UriFormat
from .transport.tcp_connection import DEFAULT_HOST, DEFAULT_PORT


def _getenv_str(name: str, default: str) -> str:
    value = os.getenv(name)
    return default if value is None or value == "" else value


def _getenv_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return int(value)


def _getenv_path(name: str, default: str) -> Path:
    return Path(_getenv_str(name, default)).expanduser()


@dataclass(frozen=True)
class Settings:
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    uri_format: UriFormat = UriFormat.ORIGINAL
    username: str = ""
    roam_directory: Path = Path("~/org-roam").expanduser()
    roam_db: Path = Path("~/.emacs.d/org-roam.db").expanduser()
    filename_template: str = "{timestamp}-{slug}.org"
    timestamp_format: str = "%Y%m%d%H%M%S"
    editor_command: str = "emacsclient -n"
    template_version: int = 1
    log_level: str = "INFO"

    def to_dict(self) -> dict:
        data = asdict(self)
        data["uri_format"] = self.uri_format.value
        data["roam_directory"] = str(self.roam_directory)
        data["roam_db"] = str(self.roam_db)
        return data


def load_settings() -> Settings:
    """Read settings from ``ZOTERO_ROAM_*`` environment variables.

    Raises:
        ValueError: On an unknown URI format, or the username format
            without a username.
    """
    raw_format = _getenv_str("ZOTERO_ROAM_URI_FORMAT", UriFormat.ORIGINAL.value)
    try:
        uri_format = UriFormat(raw_format.strip().lower())
    except ValueError:
        valid = [f.value for f in UriFormat]
        raise ValueError(f"Unknown URI format {raw_format!r}. Valid: {valid}") from None

    username = _getenv_str("ZOTERO_ROAM_USERNAME", "")
    if uri_format == UriFormat.USERNAME and not username:
        raise ValueError("ZOTERO_ROAM_URI_FORMAT=username needs ZOTERO_ROAM_USERNAME")

    return Settings(
        host=_getenv_str("ZOTERO_ROAM_HOST", DEFAULT_HOST),
        port=_getenv_int("ZOTERO_ROAM_PORT", DEFAULT_PORT),
        uri_format=uri_format,
        username=username,
        roam_directory=_getenv_path("ZOTERO_ROAM_DIRECTORY", "~/org-roam"),
        roam_db=_getenv_path("ZOTERO_ROAM_DB", "~/.emacs.d/org-roam.db"),
        filename_template=_getenv_str("ZOTERO_ROAM_FILENAME_TEMPLATE", "{timestamp}-{slug}.org"),
        timestamp_format=_getenv_str("ZOTERO_ROAM_TIMESTAMP_FORMAT", "%Y%m%d%H%M%S"),
        editor_command=_getenv_str("ZOTERO_ROAM_EDITOR", "emacsclient -n"),
        template_version=_getenv_int("ZOTERO_ROAM_TEMPLATE_VERSION", 1),
        log_level=_getenv_str("ZOTERO_ROAM_LOG_LEVEL", "INFO").upper(),
    )
