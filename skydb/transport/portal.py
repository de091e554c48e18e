"""HTTP transport for a Skynet portal, built on httpx."""

from __future__ import annotations

import httpx

from skydb.config import ClientConfig
from skydb.errors import ConflictError, TransportError
from skydb.links import Link, trim_uri_prefix
from skydb.logging import get_logger
from skydb.registry.models import RemoteEntry

logger = get_logger(__name__)

REGISTRY_PATH = "/skynet/registry"
UPLOAD_PATH = "/skynet/skyfile"


class PortalTransport:
    """Registry and blob-store access through a portal's HTTP API.

    Parameters
    ----------
    config : ClientConfig
        Portal URL, credentials and timeouts.
    client : httpx.AsyncClient | None
        Client to send requests with. One is created (and owned, so closed
        by :meth:`aclose`) when *None*.
    """

    def __init__(self, config: ClientConfig, client: httpx.AsyncClient | None = None) -> None:
        self.config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.request_timeout)

        self._headers: dict[str, str] = {}
        if config.api_key:
            self._headers["Skynet-Api-Key"] = config.api_key
        if config.user_agent:
            self._headers["User-Agent"] = config.user_agent

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # -- registry ------------------------------------------------------------

    async def get_entry(self, public_key: str, data_key_digest: str) -> RemoteEntry | None:
        resp = await self._request(
            "GET",
            REGISTRY_PATH,
            params={
                "publickey": f"ed25519:{public_key}",
                "datakey": data_key_digest,
                "timeout": self.config.registry_timeout,
            },
        )
        return _parse_entry_response(resp)

    async def get_entry_by_id(self, entry_id: str) -> RemoteEntry | None:
        resp = await self._request(
            "GET",
            REGISTRY_PATH,
            params={"entryid": entry_id, "timeout": self.config.registry_timeout},
        )
        return _parse_entry_response(resp)

    async def set_entry(
        self,
        public_key: str,
        data_key_digest: str,
        data: bytes,
        revision: int,
        signature: bytes,
    ) -> None:
        body = {
            "publickey": {"algorithm": "ed25519", "key": list(bytes.fromhex(public_key))},
            "datakey": data_key_digest,
            "revision": revision,
            "data": list(data),
            "signature": list(signature),
        }
        resp = await self._request("POST", REGISTRY_PATH, json=body)

        if resp.status_code == 400:
            message = _error_message(resp)
            if "revision" in message.lower():
                raise ConflictError(
                    f"registry rejected revision {revision}: {message}",
                    public_key=public_key,
                    revision=revision,
                )
        _raise_for_status(resp)

    # -- blobs ---------------------------------------------------------------

    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        resp = await self._request(
            "POST",
            UPLOAD_PATH,
            files={"file": (filename, data, content_type)},
        )
        _raise_for_status(resp)
        try:
            link = resp.json()["skylink"]
        except (ValueError, KeyError, TypeError) as e:
            raise TransportError(
                "portal upload response has no skylink", status_code=resp.status_code
            ) from e
        return str(Link.from_string(link))

    async def download(self, link: str) -> bytes:
        resp = await self._request("GET", "/" + trim_uri_prefix(link), follow_redirects=True)
        _raise_for_status(resp)
        return resp.content

    # -- helpers -------------------------------------------------------------

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        url = f"{self.config.portal_url}{path}"
        try:
            resp = await self._client.request(method, url, headers=self._headers, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(f"Failed to reach portal {self.config.portal_url}: {exc}") from exc
        logger.debug("Portal request", method=method, path=path, status=resp.status_code)
        return resp


def _parse_entry_response(resp: httpx.Response) -> RemoteEntry | None:
    if resp.status_code == 404:
        return None
    _raise_for_status(resp)

    try:
        body = resp.json()
        public_key = body.get("publickey", "")
        if public_key.startswith("ed25519:"):
            public_key = public_key[len("ed25519:"):]
        return RemoteEntry(
            data=bytes.fromhex(body["data"]),
            revision=int(body["revision"]),
            signature=bytes.fromhex(body["signature"]),
            public_key=public_key,
            data_key_digest=bytes.fromhex(body.get("datakey", "")),
        )
    except (ValueError, KeyError, TypeError, AttributeError) as e:
        raise TransportError(
            "portal returned a malformed registry entry", status_code=resp.status_code
        ) from e


def _raise_for_status(resp: httpx.Response) -> None:
    if resp.is_error:
        raise TransportError(
            f"Portal error {resp.status_code}: {_error_message(resp)}",
            status_code=resp.status_code,
        )


def _error_message(resp: httpx.Response) -> str:
    try:
        return str(resp.json().get("message", resp.text))
    except (ValueError, AttributeError):
        return resp.text
