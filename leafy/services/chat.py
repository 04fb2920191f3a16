"""
Chat transcript with the Leafy botanist.

Messages are stored in order as {"role", "content", "sources"?} dicts. A
failed assistant call still records a reply so the conversation reads
naturally; the failure detail only goes to the log.
"""

from __future__ import annotations
from typing import Optional, Dict, Any, List, Callable, Tuple
import logging
from flask import current_app, has_app_context
from leafy.constants import STORE_KEY_CHAT
from leafy.services.store import BaseStore
from leafy.utils.validation import sanitize_message

logger = logging.getLogger(__name__)

CHAT_FAILURE_REPLY = (
    "I'm having trouble reaching my botanical sources right now. "
    "Could you try your question again in a moment?"
)


def _safe_log_error(message: str) -> None:
    """Safely log an error, handling cases where no app context exists."""
    if has_app_context():
        current_app.logger.error(message)
    else:
        logger.error(message)


class ChatTranscript:
    """Persisted conversation plus the call out to the assistant."""

    def __init__(self, store: BaseStore, ask: Optional[Callable] = None, key: str = STORE_KEY_CHAT):
        self.store = store
        self.key = key
        self.ask = ask

    def messages(self) -> List[Dict[str, Any]]:
        messages = self.store.load(self.key, [])
        if not isinstance(messages, list):
            return []
        return [m for m in messages if isinstance(m, dict) and m.get("role") in ("user", "assistant")]

    def send_message(self, text: str) -> Tuple[Optional[Dict[str, Any]], Optional[str]]:
        """
        Append a user message, ask the assistant and append its reply.

        Returns:
            (assistant_message, error_message). The error is the raw failure
            reason for logging; the reply is recorded either way.
        """
        text = sanitize_message(text)
        if not text:
            return None, "Message is required."

        history = self.messages() + [{"role": "user", "content": text}]
        ask = self.ask
        if ask is None:
            from leafy.services import ai
            ask = ai.chat_with_assistant
        result, error = ask([{"role": m["role"], "content": m["content"]} for m in history])

        if error or not result:
            _safe_log_error(f"Chat request failed: {error}")
            reply = {"role": "assistant", "content": CHAT_FAILURE_REPLY}
        else:
            reply = {"role": "assistant", "content": result["text"]}
            if result.get("sources"):
                reply["sources"] = result["sources"]

        self.store.save(self.key, history + [reply])
        return reply, error

    def clear_transcript(self) -> None:
        self.store.save(self.key, [])


def get_chat() -> ChatTranscript:
    """Return the chat transcript registered on the current app."""
    return current_app.extensions["leafy_chat"]


def init_chat(app, store: BaseStore) -> ChatTranscript:
    chat = ChatTranscript(store)
    app.extensions["leafy_chat"] = chat
    return chat
