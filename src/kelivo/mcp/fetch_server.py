"""@kelivo/fetch: in-process MCP server for fetching web content.

Provides four tools:
- fetch_html     -> raw HTML text
- fetch_markdown -> HTML converted to Markdown
- fetch_txt      -> plain text (script/style removed, whitespace collapsed)
- fetch_json     -> JSON re-serialized with 2-space indentation

Security Notes:
- Only absolute http/https URLs are accepted
- All requests have timeouts
- Every failure becomes an ``isError`` tool result; nothing propagates
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

import httpx
from bs4 import BeautifulSoup
from markdownify import markdownify

from ..errors import FetchError, ValidationError
from ..settings import Settings, settings as default_settings
from .engine import McpServerEngine
from .tools import Tool, ToolCallResult, ToolRegistry

logger = logging.getLogger(__name__)

SERVER_NAME = "@kelivo/fetch"
SERVER_VERSION = "0.1.0"

_WHITESPACE_RE = re.compile(r"\s+")


def _fetch_input_schema() -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {
            "url": {"type": "string", "description": "URL of the website to fetch"},
            "headers": {
                "type": "object",
                "description": "Optional headers to include in the request",
            },
        },
        "required": ["url"],
    }


# =============================================================================
# Request payload
# =============================================================================


@dataclass(frozen=True)
class FetchRequestPayload:
    """Validated arguments shared by every fetch tool."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)

    @classmethod
    def parse(cls, arguments: Any) -> "FetchRequestPayload":
        """Validate ``{url[, headers]}``.

        Raises:
            ValidationError: If arguments are not an object or the url is not
                an absolute http(s) URL.
        """
        if not isinstance(arguments, Mapping):
            raise ValidationError(
                "Invalid arguments: expected object with url[, headers]",
                field="arguments",
            )

        raw_url = arguments.get("url")
        url = ("" if raw_url is None else str(raw_url)).strip()
        if not _is_http_url(url):
            raise ValidationError(f"Invalid url: {url}", field="url", value=url)

        headers: dict[str, str] = {}
        raw_headers = arguments.get("headers")
        if isinstance(raw_headers, Mapping):
            for key, value in raw_headers.items():
                if key is None or value is None:
                    continue
                headers[str(key)] = str(value)

        return cls(url=url, headers=headers)


def _is_http_url(url: str) -> bool:
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


# =============================================================================
# Fetcher
# =============================================================================


class Fetcher:
    """Issues the single GET behind every fetch tool."""

    def __init__(
        self,
        *,
        timeout: float = 30.0,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._user_agent = user_agent or default_settings.user_agent
        self._transport = transport

    def merged_headers(self, payload: FetchRequestPayload) -> dict[str, str]:
        """Default headers overlaid with the caller's (caller wins)."""
        merged = {"User-Agent": self._user_agent}
        for key, value in payload.headers.items():
            # Header names are case-insensitive; drop the default it replaces.
            for existing in [k for k in merged if k.lower() == key.lower()]:
                del merged[existing]
            merged[key] = value
        return merged

    async def get_text(self, payload: FetchRequestPayload) -> str:
        """Fetch ``payload.url`` and return the decoded body.

        Raises:
            FetchError: On network errors, timeouts and non-2xx statuses.
        """
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.get(payload.url, headers=self.merged_headers(payload))
            if not 200 <= response.status_code < 300:
                raise FetchError(
                    f"HTTP {response.status_code}",
                    url=payload.url,
                    status_code=response.status_code,
                )
            return response.text
        except FetchError as e:
            raise FetchError(
                f"Failed to fetch {payload.url}: {e.message}",
                url=payload.url,
                status_code=e.status_code,
            ) from e
        except httpx.TimeoutException as e:
            raise FetchError(
                f"Failed to fetch {payload.url}: request timed out",
                url=payload.url,
            ) from e
        except httpx.HTTPError as e:
            raise FetchError(
                f"Failed to fetch {payload.url}: {e}",
                url=payload.url,
            ) from e


# =============================================================================
# Tools
# =============================================================================


class FetchTool(Tool):
    """Fetch a URL and transform the body."""

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher
        self.input_schema = _fetch_input_schema()

    def parse_arguments(self, arguments: Any) -> FetchRequestPayload:
        return FetchRequestPayload.parse(arguments)

    def transform(self, body: str) -> str:
        return body

    async def invoke(self, arguments: FetchRequestPayload) -> ToolCallResult:
        try:
            body = await self._fetcher.get_text(arguments)
            return ToolCallResult.ok(self.transform(body))
        except FetchError as e:
            logger.warning("%s failed: %s", self.name, e.message)
            return ToolCallResult.error(e.message)
        except Exception as e:
            logger.warning("%s failed to process %s: %s", self.name, arguments.url, e)
            return ToolCallResult.error(str(e))


class FetchHtmlTool(FetchTool):
    name = "fetch_html"
    description = "Fetch a website and return the content as HTML"


class FetchMarkdownTool(FetchTool):
    name = "fetch_markdown"
    description = "Fetch a website and return the content as Markdown"

    def transform(self, body: str) -> str:
        # markdownify pads block elements with blank lines; drop them at the ends.
        return markdownify(body, heading_style="ATX").strip()


class FetchTxtTool(FetchTool):
    name = "fetch_txt"
    description = "Fetch a website, return the content as plain text (no HTML)"

    def transform(self, body: str) -> str:
        return html_to_text(body)


class FetchJsonTool(FetchTool):
    name = "fetch_json"
    description = "Fetch a JSON file from a URL"

    def transform(self, body: str) -> str:
        try:
            data = json.loads(body)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {e}") from e
        return json.dumps(data, indent=2, ensure_ascii=False)


def html_to_text(html_content: str) -> str:
    """Visible text of an HTML document, whitespace collapsed."""
    soup = BeautifulSoup(html_content, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    root = soup.body or soup
    return _WHITESPACE_RE.sub(" ", root.get_text()).strip()


# =============================================================================
# Server factory
# =============================================================================


def create_fetch_server(
    config: Settings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> McpServerEngine:
    """Build the @kelivo/fetch engine.

    ``transport`` replaces httpx's network transport (tests use
    ``httpx.MockTransport``).
    """
    cfg = config or default_settings
    fetcher = Fetcher(timeout=cfg.fetch_timeout, user_agent=cfg.user_agent, transport=transport)
    registry = ToolRegistry(
        [
            FetchHtmlTool(fetcher),
            FetchMarkdownTool(fetcher),
            FetchTxtTool(fetcher),
            FetchJsonTool(fetcher),
        ]
    )
    return McpServerEngine(
        registry,
        server_name=SERVER_NAME,
        server_version=SERVER_VERSION,
        protocol_version=cfg.protocol_version,
    )
