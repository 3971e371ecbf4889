"""Tool-message repair for chat histories sent to model APIs.

Model APIs reject a ``tool`` message that does not answer an open call from
the assistant message governing it. Histories lose that pairing through
edits, replays, and persisted assistant messages whose ``tool_calls`` were
stripped while tools were disabled. ``sanitize_tool_messages`` keeps every
tool message that still pairs, turns unpaired ones with text into assistant
messages, and drops unpaired ones with no text.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .messages import AssistantMessage, Role, ToolMessage, parse_message

logger = logging.getLogger(__name__)

# Open tool calls: id -> function name, in call order.
Pending = dict[str, str]

_ROLES = [role.value for role in Role]

_DROP = object()


def sanitize_tool_messages(
    messages: Iterable[Any],
    *,
    match_names: bool = False,
) -> list[Any]:
    """Return a copy of ``messages`` in which every tool message is paired.

    Args:
        messages: Chat messages in order (OpenAI chat format).
        match_names: When a tool message has a ``name`` but no
            ``tool_call_id``, require the name to match an open call (and
            consume that call) instead of accepting it while any call is open.

    Returns:
        New list; kept messages are shallow copies of the input mappings.
        Elements that are not chat messages (non-mappings, unknown roles)
        are passed through as they are and close any open calls.
    """
    output: list[Any] = []
    pending: Pending = {}
    for raw in messages:
        pending, emitted = _step(pending, raw, match_names=match_names)
        if emitted is not _DROP:
            output.append(emitted)
    return output


def _step(
    pending: Pending,
    raw: Any,
    *,
    match_names: bool,
) -> tuple[Pending, Any]:
    """Advance over one message: (new pending calls, message to emit or _DROP)."""
    if not _is_chat_message(raw):
        logger.debug("Passing through unrecognised message: %r", raw)
        return {}, dict(raw) if isinstance(raw, Mapping) else raw

    message = parse_message(raw)

    if isinstance(message, AssistantMessage):
        return {call.id: call.name for call in message.tool_calls if call.id}, dict(raw)

    if not isinstance(message, ToolMessage):
        # A new user/system turn abandons unanswered calls.
        return {}, dict(raw)

    claimed = _claim(pending, message, match_names=match_names)
    if claimed is not None:
        return claimed, dict(raw)

    text = message.content.strip()
    if not text:
        logger.debug(
            "Dropping orphaned tool message (tool_call_id=%s, name=%s)",
            message.tool_call_id,
            message.name,
        )
        return pending, _DROP

    logger.debug(
        "Converting orphaned tool message to assistant text (tool_call_id=%s, name=%s)",
        message.tool_call_id,
        message.name,
    )
    # The converted message is a plain assistant turn, which closes any open calls.
    return {}, AssistantMessage(content=text).to_dict()


def _claim(pending: Pending, message: ToolMessage, *, match_names: bool) -> Pending | None:
    """Pending calls after ``message`` answers one, or None if it answers none."""
    if not pending:
        return None

    if message.tool_call_id is not None:
        if message.tool_call_id not in pending:
            return None
        return {k: v for k, v in pending.items() if k != message.tool_call_id}

    if message.name is None:
        return None

    if not match_names:
        # Accepted on name presence alone; no call is consumed.
        return pending

    for call_id, name in pending.items():
        if name == message.name:
            return {k: v for k, v in pending.items() if k != call_id}
    return None


def _is_chat_message(raw: Any) -> bool:
    return isinstance(raw, Mapping) and raw.get("role") in _ROLES
