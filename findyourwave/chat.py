"""
Relay between the wave-finder chat and the chatbot webhook.

The chatbot itself is an external workflow reached over one HTTP POST.  The
contract pinned here:

    request:  {"message": <text>, "sessionId": <user or session id>}
    response: {"reply": <text>}

The session id doubles as the key of the bot's conversation memory.  Each user
action is a single best-effort round trip: no retries.
"""

from __future__ import annotations

import logging
from typing import Optional

import requests

logger = logging.getLogger(__name__)

FALLBACK_MESSAGE = "Sorry, the wave finder is not available right now. Please try again in a moment."
REPLY_FIELD = "reply"


class ChatRelayError(Exception):
    """The webhook could not produce a usable reply."""


def relay_message(
    message: str,
    session_id: str,
    webhook_url: str,
    timeout: float = 10.0,
    session: Optional[requests.Session] = None,
) -> str:
    """Forward ``message`` verbatim to the chatbot webhook and return its reply.

    Args:
        message: Free text typed by the user.
        session_id: Identifier of the user or browser session.
        webhook_url: Chatbot webhook endpoint.
        timeout: Seconds before the call is abandoned.
        session: Optional ``requests.Session`` to send through.

    Raises:
        ChatRelayError: on timeout, connection failure, non-2xx status, a
            non-JSON body or a body without a text ``reply``.
    """
    http = session or requests
    try:
        resp = http.post(
            webhook_url,
            json={"message": message, "sessionId": session_id},
            timeout=timeout,
        )
        resp.raise_for_status()
    except requests.Timeout as e:
        raise ChatRelayError("Chatbot webhook timed out") from e
    except requests.HTTPError as e:
        status = getattr(e.response, "status_code", None)
        raise ChatRelayError(f"Chatbot webhook HTTP error {status}") from e
    except requests.RequestException as e:
        raise ChatRelayError(f"Chatbot webhook unreachable: {e}") from e

    try:
        data = resp.json()
    except ValueError as e:
        raise ChatRelayError("Chatbot webhook returned invalid JSON") from e
    reply = data.get(REPLY_FIELD) if isinstance(data, dict) else None
    if not isinstance(reply, str):
        raise ChatRelayError(f"Chatbot webhook response has no '{REPLY_FIELD}' text")
    logger.info("Chat reply relayed for session %s (%d chars)", session_id, len(reply))
    return reply
