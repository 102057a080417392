from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

import pytest
import requests


class StubResponse:
    """Minimal stand-in for ``requests.Response``."""

    def __init__(self, status_code: int = 200, payload: Any = None, *, text: Optional[str] = None) -> None:
        self.status_code = status_code
        self.text = text if text is not None else json.dumps(payload)
        self.content = self.text.encode("utf-8")

    def json(self) -> Any:
        return json.loads(self.text)


class StubSession:
    """Records posts and replays a queued response or exception."""

    def __init__(self) -> None:
        self.calls: List[Dict[str, Any]] = []
        self.response: StubResponse = StubResponse(200, {"choices": []})
        self.error: Optional[Exception] = None

    def post(self, url: str, **kwargs: Any) -> StubResponse:
        self.calls.append({"url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def stub_session() -> StubSession:
    return StubSession()


@pytest.fixture
def stub_response_cls():
    return StubResponse


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("connection refused")
