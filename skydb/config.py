"""Client and per-operation configuration.

Each structure is validated once, when it is built. Defaults are explicit
field defaults; there is no merging of option layers.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import urlsplit

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from skydb.errors import FormatError
from skydb.links import Link, format_uri, parse_link

DEFAULT_PORTAL_URL = "https://siasky.net"


class ClientConfig(BaseModel):
    """Settings for a :class:`~skydb.client.SkynetClient` and its transport."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    portal_url: str = DEFAULT_PORTAL_URL
    api_key: str | None = None
    user_agent: str | None = None
    request_timeout: float = Field(default=30.0, gt=0)
    # Seconds the portal may spend looking up a registry entry.
    registry_timeout: int = Field(default=5, ge=1, le=300)

    @field_validator("portal_url")
    @classmethod
    def _check_portal_url(cls, value: str) -> str:
        parts = urlsplit(value)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"portal_url must be an http(s) URL, got {value!r}")
        return value.rstrip("/")


class GetJSONOptions(BaseModel):
    """Options for :meth:`~skydb.db.skydb.SkyDB.get_json`."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Skip the download when the entry still points at this link.
    cached_data_link: str | None = None

    @field_validator("cached_data_link")
    @classmethod
    def _check_cached_data_link(cls, value: str | None) -> str | None:
        if value is None:
            return None
        try:
            parsed = parse_link(value)
        except FormatError as e:
            raise ValueError(str(e)) from e
        if parsed is None:
            raise ValueError(f"cached_data_link {value!r} is not a link")
        if Link.from_string(parsed.link).is_entry_link:
            raise ValueError("cached_data_link must be a content link")
        return format_uri(parsed.link)


def load_config(path: str | Path) -> ClientConfig:
    """Load a client configuration from a YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping of settings")

    return ClientConfig(**data)
