"""Namespaced, versioned Redis key builders.

Bump `KEY_VERSION` to roll out a schema change without flushing the store.
"""

from __future__ import annotations

import hashlib

KEY_NAMESPACE = "chatbot"
KEY_VERSION = "v1"

_CONTEXT_SEPARATOR = "\x1f"


def _key(kind: str, operand: str) -> str:
    return f"{KEY_NAMESPACE}:{KEY_VERSION}:{kind}:{operand}"


def chat_history_key(session_id: str) -> str:
    return _key("chat", session_id)


def embedding_cache_key(text: str) -> str:
    return _key("embedding", text)


def generation_cache_key(context: str, query: str) -> str:
    """Key a generation on the exact (context, query) pair."""
    digest = hashlib.sha256(f"{context}{_CONTEXT_SEPARATOR}{query}".encode("utf-8")).hexdigest()
    return _key("gemini", digest)


def response_cache_key(query: str) -> str:
    return _key("response", query)
