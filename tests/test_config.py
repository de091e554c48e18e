"""Tests for client configuration."""

import tempfile
from pathlib import Path

import pytest
from pydantic import ValidationError

from skydb.config import DEFAULT_PORTAL_URL, ClientConfig, GetJSONOptions, load_config
from skydb.registry.client import entry_link

SKYLINK = "XABvi7JtJbQSMAcDwnUnmp2FKDPjg8_tTTFP4BwMSxVdEg"


def test_defaults():
    config = ClientConfig()
    assert config.portal_url == DEFAULT_PORTAL_URL
    assert config.api_key is None
    assert config.request_timeout == 30.0
    assert config.registry_timeout == 5


def test_portal_url_trailing_slash_is_stripped():
    assert ClientConfig(portal_url="https://portal.test/").portal_url == "https://portal.test"


@pytest.mark.parametrize("url", ["portal.test", "ftp://portal.test", "https://"])
def test_invalid_portal_url(url):
    with pytest.raises(ValidationError):
        ClientConfig(portal_url=url)


def test_unknown_field_is_rejected():
    with pytest.raises(ValidationError):
        ClientConfig(portal="https://portal.test")


def test_timeouts_are_bounded():
    with pytest.raises(ValidationError):
        ClientConfig(request_timeout=0)
    with pytest.raises(ValidationError):
        ClientConfig(registry_timeout=0)
    with pytest.raises(ValidationError):
        ClientConfig(registry_timeout=301)


def test_config_is_frozen():
    config = ClientConfig()
    with pytest.raises(ValidationError):
        config.portal_url = "https://other.test"


def test_load_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "skydb.yaml"
        path.write_text(
            "portal_url: https://portal.test/\n"
            "api_key: secret\n"
            "registry_timeout: 10\n"
        )

        config = load_config(path)
        assert config.portal_url == "https://portal.test"
        assert config.api_key == "secret"
        assert config.registry_timeout == 10


def test_load_empty_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "skydb.yaml"
        path.write_text("")
        assert load_config(path) == ClientConfig()


def test_load_config_requires_mapping():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "skydb.yaml"
        path.write_text("- portal_url\n")
        with pytest.raises(ValueError):
            load_config(path)


def test_cached_data_link_is_normalized():
    assert GetJSONOptions(cached_data_link=SKYLINK).cached_data_link == "sia://" + SKYLINK
    assert GetJSONOptions().cached_data_link is None


@pytest.mark.parametrize("value", ["not a link", "sia://broken"])
def test_cached_data_link_must_be_a_link(value):
    with pytest.raises(ValidationError):
        GetJSONOptions(cached_data_link=value)


def test_cached_data_link_must_be_content_link():
    link = entry_link("ab" * 32, "app")
    with pytest.raises(ValidationError):
        GetJSONOptions(cached_data_link=link)
