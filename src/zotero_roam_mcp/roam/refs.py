"""Canonical refs joining a reference-manager item to a knowledge-graph node.

Accepted item URI shapes::

    http://zotero.org/users/42/items/ABC123        user-scoped web link
    http://zotero.org/groups/7/items/ABC123        group web link
    https://www.zotero.org/someone/items/ABC123    username-rooted web link
    zotero://select/library/items/ABC123           app link
    zotero://select/groups/7/items/ABC123          group app link
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

SCHEME_SEPARATOR = "://"

USER_LINK = re.compile(
    r"^https?://(?:www\.)?zotero\.org/"
    r"(?P<library>users/(?:local/)?\w+|groups/\d+)/items/(?P<item>\w+)/?$"
)
WEB_LINK = re.compile(
    r"^https?://(?:www\.)?zotero\.org/(?P<owner>[^/]+)/items/(?P<item>\w+)/?$"
)
APP_LINK = re.compile(
    r"^zotero://select/(?P<library>library|groups/\d+)/items/(?:\d+_)?(?P<item>\w+)$"
)


class UriFormat(str, Enum):
    """How a ref is rendered when a note is created."""

    ORIGINAL = "original"
    APP = "app"
    USERNAME = "username"


@dataclass(frozen=True)
class Ref:
    """A canonical item ref.

    ``library`` is ``users/<id>``, ``groups/<id>``, or ``None`` when the
    URI does not say which library the item lives in.
    """

    item_id: str
    uri: str
    library: str | None = None

    @property
    def key(self) -> str:
        """Lookup key: the URI without its scheme."""
        return strip_scheme(self.uri)

    @property
    def is_group(self) -> bool:
        return bool(self.library and self.library.startswith("groups/"))

    def __str__(self) -> str:
        return self.uri


def strip_scheme(uri: str) -> str:
    """Drop everything up to and including ``://``."""
    _, sep, rest = uri.partition(SCHEME_SEPARATOR)
    return rest if sep else uri


def _parse(uri: str) -> tuple[str, str | None]:
    match = USER_LINK.match(uri)
    if match:
        return match.group("item"), match.group("library")
    match = WEB_LINK.match(uri)
    if match:
        return match.group("item"), None
    match = APP_LINK.match(uri)
    if match:
        library = match.group("library")
        return match.group("item"), None if library == "library" else library
    raise ValueError(f"Not a reference-manager item URI: {uri!r}")


def app_link(item_id: str, library: str | None = None) -> str:
    if library and library.startswith("groups/"):
        return f"zotero://select/{library}/items/{item_id}"
    return f"zotero://select/library/items/{item_id}"


def canonicalize(
    uri: str,
    uri_format: UriFormat = UriFormat.ORIGINAL,
    username: str = "",
) -> Ref:
    """Parse an item URI and render it in the configured format.

    Raises:
        ValueError: If ``uri`` has none of the accepted shapes, or the
            username format is requested without a username.
    """
    uri = uri.strip()
    item_id, library = _parse(uri)

    if uri_format == UriFormat.APP:
        rendered = app_link(item_id, library)
    elif uri_format == UriFormat.USERNAME:
        if not username:
            raise ValueError("Username URI format requires a username")
        owner = library if library and library.startswith("groups/") else username
        rendered = f"https://www.zotero.org/{owner}/items/{item_id}"
    else:
        rendered = uri

    return Ref(item_id=item_id, uri=rendered, library=library)


def ref_to_select_link(stored: str) -> str:
    """Turn a stored ref (scheme optional) back into an app link."""
    stored = stored.strip().strip('"')
    candidates = [stored]
    if SCHEME_SEPARATOR not in stored:
        bare = stored.lstrip("/")
        candidates += [f"https://{bare}", f"zotero://{bare}"]
    for candidate in candidates:
        try:
            item_id, library = _parse(candidate)
        except ValueError:
            continue
        return app_link(item_id, library)
    raise ValueError(f"Not a reference-manager ref: {stored!r}")
