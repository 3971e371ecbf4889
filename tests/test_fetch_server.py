"""Tests for the @kelivo/fetch server."""

from __future__ import annotations

import asyncio
import json
from typing import Any

import httpx
import pytest

from conftest import rpc_request, tool_call
from kelivo.errors import FetchError, ValidationError
from kelivo.mcp.fetch_server import (
    FetchJsonTool,
    FetchRequestPayload,
    Fetcher,
    create_fetch_server,
    html_to_text,
)
from kelivo.settings import Settings

PAGE_URL = "https://example.com/page"
JSON_URL = "https://example.com/data.json"

PAGE_HTML = """<html>
<head><title>Example</title><style>p { color: red; }</style><script>track()</script></head>
<body>
<h1>Title</h1>
<p>Hello   <b>world</b></p>
<script>evil()</script>
<p>Bye</p>
</body>
</html>"""


def call(engine, name: str, arguments: Any) -> dict[str, Any]:
    return asyncio.run(engine.handle_message(tool_call(name, arguments)))


@pytest.fixture
def fetch_engine(test_settings: Settings, mock_transport: httpx.MockTransport):
    return create_fetch_server(test_settings, transport=mock_transport)


class TestFetchRequestPayload:
    """Argument validation shared by every fetch tool."""

    def test_accepts_http_and_https(self) -> None:
        assert FetchRequestPayload.parse({"url": "http://example.com/a"}).url == "http://example.com/a"
        assert FetchRequestPayload.parse({"url": "https://example.com/a"}).url == "https://example.com/a"

    def test_trims_url(self) -> None:
        payload = FetchRequestPayload.parse({"url": "  https://example.com/a \n"})
        assert payload.url == "https://example.com/a"

    @pytest.mark.parametrize(
        "url",
        ["not-a-url", "ftp://example.com/file", "https://", "", "mailto:a@b.c", "http://[::1"],
    )
    def test_rejects_invalid_urls(self, url: str) -> None:
        with pytest.raises(ValidationError, match="Invalid url"):
            FetchRequestPayload.parse({"url": url})

    def test_missing_url_is_invalid(self) -> None:
        with pytest.raises(ValidationError, match="Invalid url"):
            FetchRequestPayload.parse({})

    def test_rejects_non_mapping_arguments(self) -> None:
        with pytest.raises(ValidationError, match="expected object with url"):
            FetchRequestPayload.parse(["https://example.com/a"])

    def test_headers_are_stringified_and_nulls_skipped(self) -> None:
        payload = FetchRequestPayload.parse(
            {
                "url": "https://example.com/a",
                "headers": {"Accept": "text/html", "X-Count": 3, "X-Skip": None},
            }
        )
        assert payload.headers == {"Accept": "text/html", "X-Count": "3"}

    def test_non_mapping_headers_are_ignored(self) -> None:
        payload = FetchRequestPayload.parse({"url": "https://example.com/a", "headers": "x"})
        assert payload.headers == {}


class TestFetcher:
    """The single GET behind the tools."""

    def test_default_user_agent_is_sent(
        self,
        mock_transport: httpx.MockTransport,
        http_routes: dict[str, Any],
        seen_requests: list[httpx.Request],
    ) -> None:
        http_routes[PAGE_URL] = httpx.Response(200, text="ok")
        fetcher = Fetcher(user_agent="KelivoTest/1.0", transport=mock_transport)

        body = asyncio.run(fetcher.get_text(FetchRequestPayload(url=PAGE_URL)))

        assert body == "ok"
        assert seen_requests[0].method == "GET"
        assert seen_requests[0].headers["User-Agent"] == "KelivoTest/1.0"

    def test_caller_headers_win(
        self,
        mock_transport: httpx.MockTransport,
        http_routes: dict[str, Any],
        seen_requests: list[httpx.Request],
    ) -> None:
        http_routes[PAGE_URL] = httpx.Response(200, text="ok")
        fetcher = Fetcher(user_agent="KelivoTest/1.0", transport=mock_transport)
        payload = FetchRequestPayload(
            url=PAGE_URL,
            headers={"user-agent": "Custom/2.0", "Accept": "text/plain"},
        )

        asyncio.run(fetcher.get_text(payload))

        assert seen_requests[0].headers["User-Agent"] == "Custom/2.0"
        assert seen_requests[0].headers["Accept"] == "text/plain"
        assert fetcher.merged_headers(payload) == {
            "user-agent": "Custom/2.0",
            "Accept": "text/plain",
        }

    def test_non_2xx_raises_fetch_error(
        self,
        mock_transport: httpx.MockTransport,
        http_routes: dict[str, Any],
    ) -> None:
        http_routes[PAGE_URL] = httpx.Response(503, text="down")
        fetcher = Fetcher(transport=mock_transport)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.get_text(FetchRequestPayload(url=PAGE_URL)))

        assert exc_info.value.message == f"Failed to fetch {PAGE_URL}: HTTP 503"
        assert exc_info.value.status_code == 503
        assert exc_info.value.recoverable is True

    def test_network_error_raises_fetch_error(
        self,
        mock_transport: httpx.MockTransport,
        http_routes: dict[str, Any],
    ) -> None:
        http_routes[PAGE_URL] = httpx.ConnectError("connection refused")
        fetcher = Fetcher(transport=mock_transport)

        with pytest.raises(FetchError, match="connection refused"):
            asyncio.run(fetcher.get_text(FetchRequestPayload(url=PAGE_URL)))

    def test_timeout_raises_fetch_error(
        self,
        mock_transport: httpx.MockTransport,
        http_routes: dict[str, Any],
    ) -> None:
        http_routes[PAGE_URL] = httpx.ReadTimeout("slow")
        fetcher = Fetcher(transport=mock_transport)

        with pytest.raises(FetchError, match="timed out"):
            asyncio.run(fetcher.get_text(FetchRequestPayload(url=PAGE_URL)))


class TestFetchTools:
    """End-to-end through the engine."""

    def test_tools_list(self, fetch_engine) -> None:
        resp = asyncio.run(fetch_engine.handle_message(rpc_request("tools/list")))

        tools = resp["result"]["tools"]
        assert [t["name"] for t in tools] == ["fetch_html", "fetch_markdown", "fetch_txt", "fetch_json"]
        for tool in tools:
            assert tool["inputSchema"]["required"] == ["url"]
            assert set(tool["inputSchema"]["properties"]) == {"url", "headers"}

    def test_initialize_names_the_server(self, fetch_engine) -> None:
        resp = asyncio.run(fetch_engine.handle_message(rpc_request("initialize")))

        assert resp["result"]["serverInfo"] == {"name": "@kelivo/fetch", "version": "0.1.0"}

    def test_fetch_html_returns_raw_body(self, fetch_engine, http_routes: dict[str, Any]) -> None:
        http_routes[PAGE_URL] = httpx.Response(200, text=PAGE_HTML)

        resp = call(fetch_engine, "fetch_html", {"url": PAGE_URL})

        assert resp["result"]["isError"] is False
        assert resp["result"]["isStreaming"] is False
        assert resp["result"]["content"] == [{"type": "text", "text": PAGE_HTML}]

    def test_fetch_markdown_converts_html(self, fetch_engine, http_routes: dict[str, Any]) -> None:
        http_routes[PAGE_URL] = httpx.Response(200, text="<h1>Title</h1><p>Hello <b>world</b></p>")

        resp = call(fetch_engine, "fetch_markdown", {"url": PAGE_URL})

        text = resp["result"]["content"][0]["text"]
        assert resp["result"]["isError"] is False
        assert text.startswith("# Title")
        assert text == text.strip()
        assert "# Title" in text
        assert "**world**" in text
        assert "<h1>" not in text

    def test_fetch_txt_strips_scripts_and_collapses_whitespace(
        self, fetch_engine, http_routes: dict[str, Any]
    ) -> None:
        http_routes[PAGE_URL] = httpx.Response(200, text=PAGE_HTML)

        resp = call(fetch_engine, "fetch_txt", {"url": PAGE_URL})

        assert resp["result"]["content"][0]["text"] == "Title Hello world Bye"

    def test_fetch_json_pretty_prints(self, fetch_engine, http_routes: dict[str, Any]) -> None:
        http_routes[JSON_URL] = httpx.Response(200, text='{"a":1,"b":[true,null],"c":"é"}')

        resp = call(fetch_engine, "fetch_json", {"url": JSON_URL})

        text = resp["result"]["content"][0]["text"]
        assert text == json.dumps({"a": 1, "b": [True, None], "c": "é"}, indent=2, ensure_ascii=False)
        assert '\n  "a": 1' in text

    def test_fetch_json_invalid_body_is_error_result(
        self, fetch_engine, http_routes: dict[str, Any]
    ) -> None:
        http_routes[JSON_URL] = httpx.Response(200, text="<html>nope</html>")

        resp = call(fetch_engine, "fetch_json", {"url": JSON_URL})

        assert "error" not in resp
        assert resp["result"]["isError"] is True
        assert "Invalid JSON" in resp["result"]["content"][0]["text"]

    def test_invalid_url_is_error_result_not_rpc_error(self, fetch_engine) -> None:
        resp = call(fetch_engine, "fetch_html", {"url": "not-a-url"})

        assert "error" not in resp
        assert resp["result"]["isError"] is True
        assert "Invalid url" in resp["result"]["content"][0]["text"]

    def test_http_error_is_error_result(self, fetch_engine) -> None:
        resp = call(fetch_engine, "fetch_txt", {"url": "https://example.com/missing"})

        assert resp["result"]["isError"] is True
        assert resp["result"]["content"][0]["text"] == (
            "Failed to fetch https://example.com/missing: HTTP 404"
        )

    def test_unknown_tool_checked_before_arguments(self, fetch_engine) -> None:
        resp = call(fetch_engine, "nonexistent_tool", {})

        assert resp["error"] == {"code": -32101, "message": "Tool not found: nonexistent_tool"}


def test_html_to_text_without_body() -> None:
    assert html_to_text("just <i>some</i>\n\n text") == "just some text"


def test_fetch_json_transform_keeps_unicode() -> None:
    tool = FetchJsonTool(Fetcher())
    assert tool.transform('["ü"]') == '[\n  "ü"\n]'
