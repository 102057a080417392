"""Client helpers for talking to a running relay."""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

import requests

from .persisted import PersistedJSON, PersistedText, Storage

DEFAULT_RELAY_URL = "http://127.0.0.1:8000/api/chat"
DEFAULT_MODEL = "gpt-4o-mini"


class RelayClientError(RuntimeError):
    """Raised when the relay answers with a non-success status."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class RelayClient:
    """Posts completion payloads to the relay with the caller's API key."""

    def __init__(
        self,
        relay_url: str,
        api_key: str,
        *,
        timeout: Optional[float] = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.relay_url = relay_url
        self.api_key = api_key
        self.timeout = timeout
        self._session = session or requests.Session()

    def complete(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        response = self._session.post(
            self.relay_url,
            json=dict(payload),
            headers={"Authorization": _bearer(self.api_key)},
            timeout=self.timeout,
        )
        try:
            body = response.json()
        except ValueError as exc:
            raise RelayClientError(
                response.status_code, f"non-JSON response: {response.text[:200]}"
            ) from exc
        if response.status_code >= 400:
            raise RelayClientError(response.status_code, error_message(body))
        return body


def _bearer(api_key: str) -> str:
    key = api_key.strip()
    return key if key.lower().startswith("bearer ") else f"Bearer {key}"


def error_message(body: Any) -> str:
    """Pull a readable message out of a relay or upstream error payload."""

    if isinstance(body, Mapping):
        error = body.get("error")
        if isinstance(error, str):
            return error
        if isinstance(error, Mapping) and isinstance(error.get("message"), str):
            return error["message"]
    return json.dumps(body, ensure_ascii=False)


def extract_reply(body: Mapping[str, Any]) -> str:
    """Return the first choice's message content as plain text."""

    choices = body.get("choices") or []
    if not choices:
        return ""
    message = choices[0].get("message") or {}
    return normalise_content(message.get("content"))


def normalise_content(content: Any) -> str:
    """Flatten the string, part-list and object forms of message content."""

    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, Mapping):
        text = content.get("text")
        if text is not None:
            return normalise_content(text)
        return json.dumps(content, ensure_ascii=False)
    if isinstance(content, Iterable):
        parts: List[str] = []
        for chunk in content:
            if isinstance(chunk, Mapping):
                text = chunk.get("text")
                if text:
                    parts.append(str(text))
            else:
                parts.append(str(chunk))
        return "\n".join(filter(None, parts))
    return str(content)


class ChatPreferences:
    """Settings and history the CLI remembers between runs."""

    def __init__(self, storage: Storage, *, default_model: str = DEFAULT_MODEL) -> None:
        self.api_key = PersistedText(storage, "apiKey", "")
        self.model = PersistedText(storage, "model", default_model)
        self.history = PersistedJSON(storage, "history", [])

    def messages_for(self, prompt: str, *, include_history: bool = True) -> List[Dict[str, Any]]:
        history = self.history.value if include_history and isinstance(self.history.value, list) else []
        return [*history, {"role": "user", "content": prompt}]

    def record_exchange(self, prompt: str, reply: str) -> None:
        self.history.set(
            lambda previous: [
                *(previous if isinstance(previous, list) else []),
                {"role": "user", "content": prompt},
                {"role": "assistant", "content": reply},
            ]
        )

    def clear_history(self) -> None:
        self.history.set([])


__all__ = [
    "ChatPreferences",
    "DEFAULT_MODEL",
    "DEFAULT_RELAY_URL",
    "RelayClient",
    "RelayClientError",
    "error_message",
    "extract_reply",
    "normalise_content",
]
