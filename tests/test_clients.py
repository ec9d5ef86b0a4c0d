"""Tests for the explorer and Discord clients."""

import json

import httpx
import pytest

from chain_status.discord import DiscordGateway, build_embed
from chain_status.explorer import BlockSourceError, ExplorerClient

BASE_URL = "https://explorer.test/v2/network/testnet/evm/3636"


def block_items(count: int) -> list[dict]:
    return [
        {"number": 100 - i, "timestamp": f"2026-01-01T12:00:{59 - i:02d}Z", "txCount": i % 3}
        for i in range(count)
    ]


class TestExplorerClient:
    """Tests for the block explorer client."""

    def test_fetch_recent_truncates_to_limit(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"items": block_items(25)})

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        blocks = client.fetch_recent(11)

        assert len(blocks) == 11
        assert blocks[0].number == 100
        assert seen[0].url.path == "/v2/network/testnet/evm/3636/blocks"
        assert seen[0].url.params["sort"] == "desc"
        assert seen[0].url.params["count"] == "false"

    def test_short_response_returned_as_is(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": block_items(4)})

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        assert len(client.fetch_recent(11)) == 4

    def test_http_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503)

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(BlockSourceError):
            client.fetch_recent(11)

    def test_network_error_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(BlockSourceError):
            client.fetch_recent(11)

    def test_missing_items_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "nope"})

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(BlockSourceError):
            client.fetch_recent(11)

    def test_gas_balance(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path.endswith("/address/0xabc/gas-balance")
            return httpx.Response(200, json={"items": [{"balance": "250000000000000"}]})

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        assert client.fetch_gas_balance("0xabc") == 250_000_000_000_000

    def test_gas_balance_missing(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"items": []})

        client = ExplorerClient(BASE_URL, transport=httpx.MockTransport(handler))
        with pytest.raises(BlockSourceError):
            client.fetch_gas_balance("0xabc")


class TestDiscordGateway:
    """Tests for the Discord REST client."""

    def test_get_label(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.headers["Authorization"] == "Bot secret"
            return httpx.Response(200, json={"id": "42", "name": "status-green"})

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.get_label("42") == "status-green"

    def test_get_label_unknown_channel(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404, json={"message": "Unknown Channel"})

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.get_label("42") is None

    def test_set_label(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "42", "name": "status-red"})

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.set_label("42", "status-red") is True
        assert seen[0].method == "PATCH"
        assert seen[0].url.path == "/api/v10/channels/42"
        assert json.loads(seen[0].content) == {"name": "status-red"}

    def test_set_label_rate_limited(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"retry_after": 600})

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.set_label("42", "status-red") is False

    def test_send_alert(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "1"})

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        embed = build_embed(title="down", color=0xFF0000, footer_text="Labs")

        assert gateway.send_alert("7", embed) is True
        assert seen[0].method == "POST"
        assert seen[0].url.path == "/api/v10/channels/7/messages"
        assert json.loads(seen[0].content) == {"embeds": [embed]}

    def test_send_alert_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.send_alert("7", {"title": "x"}) is False

    def test_non_json_reply_is_a_failure(self):
        """A proxy error page with status 200 is reported, not raised."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>edge error</html>")

        gateway = DiscordGateway("secret", transport=httpx.MockTransport(handler))
        assert gateway.get_label("42") is None
        assert gateway.set_label("42", "status-red") is False
        assert gateway.send_alert("7", {"title": "x"}) is False


class TestBuildEmbed:
    def test_optional_parts_omitted(self):
        embed = build_embed(title="t", color=1, footer_text="f")
        assert embed == {"title": "t", "color": 1, "footer": {"text": "f"}}

    def test_all_parts(self):
        from datetime import datetime, timezone

        when = datetime(2026, 1, 1, tzinfo=timezone.utc)
        embed = build_embed(
            title="t",
            color=1,
            footer_text="f",
            footer_icon="https://icon",
            description="d",
            fields=[{"name": "a", "value": "b", "inline": True}],
            timestamp=when,
        )
        assert embed["footer"] == {"text": "f", "icon_url": "https://icon"}
        assert embed["description"] == "d"
        assert embed["timestamp"] == "2026-01-01T00:00:00+00:00"
