"""Extract links from user input: bare links, URIs and portal URLs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from skydb.errors import FormatError
from skydb.links.codec import URI_SKYNET_PREFIX, decode_link, trim_uri_prefix

_LINK_MATCHER = "([a-zA-Z0-9_-]{46})"
_LINK_SUBDOMAIN_MATCHER = "([a-z0-9_-]{55})"

_DIRECT_RE = re.compile(rf"^{_LINK_MATCHER}$")
_PATHNAME_RE = re.compile(rf"^/?{_LINK_MATCHER}((/.*)?)$")
_SUBDOMAIN_RE = re.compile(rf"^{_LINK_SUBDOMAIN_MATCHER}(\..*)?$")


@dataclass(frozen=True)
class ParsedLink:
    """A link found in some input, plus the path that followed it."""

    link: str
    path: str = ""

    @property
    def full(self) -> str:
        return self.link + self.path


def parse_link(
    value: str,
    *,
    only_path: bool = False,
    include_path: bool = False,
    from_subdomain: bool = False,
) -> ParsedLink | str | None:
    """Find the link in ``value``.

    Returns a :class:`ParsedLink` by default, the link followed by its path
    when ``include_path`` is set, or only the path when ``only_path`` is set.
    Returns ``None`` when ``value`` does not contain a link. Raises
    :class:`FormatError` when ``value`` looks like a link but fails to decode.

    Query strings and fragments are dropped from the path.
    """
    if only_path and include_path:
        raise ValueError("only_path and include_path are mutually exclusive")

    body = trim_uri_prefix(value)
    has_prefix = body != value

    if from_subdomain:
        parsed = _parse_subdomain(body)
    else:
        parsed = _parse_direct(body) or _parse_pathname(body)

    if parsed is None:
        if has_prefix:
            raise FormatError(f"{value!r} has a {URI_SKYNET_PREFIX} prefix but no valid link")
        return None

    decode_link(parsed.link)

    if include_path:
        return parsed.full
    if only_path:
        return parsed.path
    return parsed


def _parse_direct(body: str) -> ParsedLink | None:
    match = _DIRECT_RE.match(body)
    if not match:
        return None
    return ParsedLink(link=match.group(1))


def _parse_pathname(body: str) -> ParsedLink | None:
    pathname = urlsplit(body).path.rstrip("/")
    match = _PATHNAME_RE.match(pathname)
    if not match:
        return None
    return ParsedLink(link=match.group(1), path=match.group(2))


def _parse_subdomain(body: str) -> ParsedLink | None:
    if "://" not in body:
        body = "https://" + body
    parts = urlsplit(body)
    match = _SUBDOMAIN_RE.match(parts.hostname or "")
    if not match:
        return None
    return ParsedLink(link=match.group(1), path=parts.path.rstrip("/"))
