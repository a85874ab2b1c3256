"""
Pytest configuration and fixtures for vkclient tests.
"""

import gzip
import json

import msgpack
import pytest
import responses as responses_lib
import zstandard

from vkclient.core.capabilities import Capabilities
from vkclient.core.client import VkApi
from vkclient.core.config import Compression, Format, VkApiConfig
from vkclient.core.logging.config import LoggingConfig

CONTENT_TYPES = {
    "json": "application/json; charset=utf-8",
    "msgpack": "application/x-msgpack",
}


def _encode(payload, fmt="json", compression="none"):
    """Serialize and compress a payload the way a VK server would."""
    if fmt == "msgpack":
        body = msgpack.packb(payload, use_bin_type=True)
    else:
        body = json.dumps(payload).encode("utf-8")

    headers = {"Content-Type": CONTENT_TYPES[fmt]}
    if compression == "gzip":
        body = gzip.compress(body)
        headers["Content-Encoding"] = "gzip"
    elif compression == "zstd":
        body = zstandard.ZstdCompressor().compress(body)
        headers["Content-Encoding"] = "zstd"
    return body, headers


@pytest.fixture
def encode_body():
    """
    Encoder for mocked response bodies.

    Example:
        def test_gzip(encode_body):
            body, headers = encode_body({"response": 1}, "json", "gzip")
    """
    return _encode


def _add_payload(method, url, payload, fmt="json", compression="none", status=200, target=responses_lib):
    """Register an encoded payload with responses (module-level or a RequestsMock)."""
    body, headers = _encode(payload, fmt, compression)
    # responses merges content_type with headers, so Content-Type goes separately
    content_type = headers.pop("Content-Type")
    target.add(method, url, body=body, status=status, headers=headers, content_type=content_type)


@pytest.fixture
def add_payload():
    """
    Register a VK-style response body for the responses mock.

    Example:
        @responses.activate
        def test_call(api, add_payload):
            add_payload(responses.POST, url, {"response": 1}, "json", "gzip")
    """
    return _add_payload


@pytest.fixture
def all_capabilities():
    """Every codec available."""
    return Capabilities(
        compressions=frozenset({Compression.GZIP, Compression.ZSTD}),
        formats=frozenset({Format.JSON, Format.MSGPACK}),
    )


@pytest.fixture
def base_url():
    """Method endpoint prefix for the default domain."""
    return "https://api.vk.com/method"


@pytest.fixture
def longpoll_url():
    """Long poll server URL as VK returns it (without a scheme)."""
    return "lp.vk.com/wh123456"


@pytest.fixture
def mock_responses():
    """Mock HTTP responses using responses library."""
    with responses_lib.RequestsMock() as rsps:
        yield rsps


@pytest.fixture
def json_config():
    """Config that asks for gzip + json."""
    return VkApiConfig.create("test-token", compression="gzip", format="json")


@pytest.fixture
def api(json_config):
    """VkApi instance for testing (gzip + json)."""
    client = VkApi(config=json_config)
    yield client
    client.close()


@pytest.fixture
def logging_config():
    """LoggingConfig without output handlers."""
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=False
    )


@pytest.fixture
def logging_config_with_file(tmp_path):
    """LoggingConfig writing JSON lines to a temporary file."""
    log_file = tmp_path / "vkclient.log"
    return LoggingConfig.create(
        level="DEBUG",
        format="json",
        enable_console=False,
        enable_file=True,
        file_path=str(log_file)
    )
