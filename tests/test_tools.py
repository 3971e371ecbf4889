from __future__ import annotations

import pytest

from conftest import EchoTool
from kelivo.errors import ValidationError
from kelivo.mcp.tools import TextContent, ToolCallResult


def test_ok_result_shape() -> None:
    assert ToolCallResult.ok("done").to_dict() == {
        "content": [{"type": "text", "text": "done"}],
        "isStreaming": False,
        "isError": False,
    }


def test_error_result_flags_error() -> None:
    result = ToolCallResult.error("nope")

    assert result.is_error is True
    assert result.text == "nope"


def test_text_joins_parts() -> None:
    result = ToolCallResult(content=(TextContent("a"), TextContent("b")))

    assert result.text == "a\nb"


def test_describe_uses_input_schema_key() -> None:
    assert EchoTool().describe() == {
        "name": "echo",
        "description": "Echo the text argument",
        "inputSchema": {
            "type": "object",
            "properties": {"text": {"type": "string"}},
            "required": ["text"],
        },
    }


def test_default_parse_arguments_copies_mapping() -> None:
    raw = {"text": "x"}
    parsed = EchoTool().parse_arguments(raw)

    assert parsed == raw
    assert parsed is not raw


@pytest.mark.parametrize("bad", [None, "x", [1]])
def test_default_parse_arguments_rejects_non_mapping(bad) -> None:
    with pytest.raises(ValidationError, match="expected object"):
        EchoTool().parse_arguments(bad)
