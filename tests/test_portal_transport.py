"""Tests for the HTTP portal transport, against httpx.MockTransport."""

import json

import httpx
import pytest

from skydb.config import ClientConfig
from skydb.crypto import derive_keypair, entry_digest, sign
from skydb.errors import ConflictError, TransportError, TrustError
from skydb.registry.client import RegistryClient
from skydb.registry.models import RegistryEntry
from skydb.transport import PortalTransport

KEYS = derive_keypair("portal test seed")
SKYLINK = "XABvi7JtJbQSMAcDwnUnmp2FKDPjg8_tTTFP4BwMSxVdEg"
DIGEST = RegistryEntry(data_key="app", data=b"", revision=0).data_key_digest.hex()


def _transport(handler, **config):
    config.setdefault("portal_url", "https://portal.test")
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PortalTransport(ClientConfig(**config), client=client)


def _signed_body(data: bytes, revision: int) -> dict:
    entry = RegistryEntry(data_key="app", data=data, revision=revision)
    return {
        "data": data.hex(),
        "revision": revision,
        "signature": sign(KEYS.private_key, entry_digest(entry)).hex(),
    }


@pytest.mark.asyncio
async def test_get_entry_request():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(404, json={"message": "not found"})

    transport = _transport(handler, api_key="secret", user_agent="skydb-tests")
    assert await transport.get_entry(KEYS.public_key, DIGEST) is None

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/skynet/registry"
    assert request.url.params["publickey"] == "ed25519:" + KEYS.public_key
    assert request.url.params["datakey"] == DIGEST
    assert request.url.params["timeout"] == "5"
    assert request.headers["Skynet-Api-Key"] == "secret"
    assert request.headers["User-Agent"] == "skydb-tests"


@pytest.mark.asyncio
async def test_get_entry_parses_body():
    body = _signed_body(b"hello", 4)
    transport = _transport(lambda request: httpx.Response(200, json=body))

    remote = await transport.get_entry(KEYS.public_key, DIGEST)
    assert remote.data == b"hello"
    assert remote.revision == 4
    assert remote.signature.hex() == body["signature"]


@pytest.mark.asyncio
async def test_registry_client_verifies_portal_entries():
    body = _signed_body(b"hello", 4)
    registry = RegistryClient(_transport(lambda request: httpx.Response(200, json=body)))

    signed = await registry.get_entry(KEYS.public_key, "app")
    assert signed.entry.data == b"hello"

    body["data"] = b"jello".hex()
    with pytest.raises(TrustError):
        await registry.get_entry(KEYS.public_key, "app")


@pytest.mark.asyncio
async def test_get_entry_by_id_request():
    seen = []
    body = _signed_body(b"x", 0)
    body["publickey"] = "ed25519:" + KEYS.public_key
    body["datakey"] = DIGEST

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json=body)

    remote = await _transport(handler).get_entry_by_id("ab" * 32)
    assert seen[0].url.params["entryid"] == "ab" * 32
    assert remote.public_key == KEYS.public_key
    assert remote.data_key_digest.hex() == DIGEST


@pytest.mark.asyncio
async def test_malformed_entry_body():
    transport = _transport(lambda request: httpx.Response(200, json={"data": "zz"}))
    with pytest.raises(TransportError):
        await transport.get_entry(KEYS.public_key, DIGEST)


@pytest.mark.asyncio
async def test_server_error():
    transport = _transport(lambda request: httpx.Response(502, text="bad gateway"))
    with pytest.raises(TransportError) as exc_info:
        await transport.get_entry(KEYS.public_key, DIGEST)
    assert exc_info.value.status_code == 502


@pytest.mark.asyncio
async def test_unreachable_portal():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as exc_info:
        await _transport(handler).get_entry(KEYS.public_key, DIGEST)
    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_set_entry_body():
    seen = []

    def handler(request):
        seen.append(json.loads(request.content))
        return httpx.Response(204)

    await _transport(handler).set_entry(KEYS.public_key, DIGEST, b"\x01\x02", 3, bytes(64))

    body = seen[0]
    assert body["publickey"] == {
        "algorithm": "ed25519",
        "key": list(bytes.fromhex(KEYS.public_key)),
    }
    assert body["datakey"] == DIGEST
    assert body["revision"] == 3
    assert body["data"] == [1, 2]
    assert body["signature"] == [0] * 64


@pytest.mark.asyncio
async def test_set_entry_revision_rejection_is_conflict():
    def handler(request):
        return httpx.Response(
            400, json={"message": "unable to update the registry: provided revision number is invalid"}
        )

    with pytest.raises(ConflictError) as exc_info:
        await _transport(handler).set_entry(KEYS.public_key, DIGEST, b"", 3, bytes(64))
    assert exc_info.value.revision == 3


@pytest.mark.asyncio
async def test_set_entry_other_rejection_is_transport_error():
    def handler(request):
        return httpx.Response(400, json={"message": "invalid signature"})

    with pytest.raises(TransportError) as exc_info:
        await _transport(handler).set_entry(KEYS.public_key, DIGEST, b"", 3, bytes(64))
    assert not isinstance(exc_info.value, ConflictError)
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_upload():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"skylink": SKYLINK})

    link = await _transport(handler).upload(b"{}", "doc.json", "application/json")
    assert link == SKYLINK
    assert seen[0].url.path == "/skynet/skyfile"
    assert b"doc.json" in seen[0].content


@pytest.mark.asyncio
async def test_upload_without_skylink():
    transport = _transport(lambda request: httpx.Response(200, json={"ok": True}))
    with pytest.raises(TransportError):
        await transport.upload(b"{}", "doc.json", "application/json")


@pytest.mark.asyncio
async def test_download():
    seen = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, content=b"payload")

    assert await _transport(handler).download("sia://" + SKYLINK) == b"payload"
    assert seen[0].url.path == "/" + SKYLINK


@pytest.mark.asyncio
async def test_download_missing():
    transport = _transport(lambda request: httpx.Response(404, json={"message": "not found"}))
    with pytest.raises(TransportError) as exc_info:
        await transport.download(SKYLINK)
    assert exc_info.value.status_code == 404


@pytest.mark.asyncio
async def test_aclose_leaves_borrowed_client_open():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
    transport = PortalTransport(ClientConfig(portal_url="https://portal.test"), client=client)
    await transport.aclose()
    assert not client.is_closed
    await client.aclose()
