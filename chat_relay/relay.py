"""Forward chat completion requests to the upstream API."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional

import requests
from diagnostics import trace_segment

from .config import Settings
from .errors import (
    MalformedBody,
    MethodNotAllowed,
    PayloadRejected,
    PayloadTooLarge,
    ProxyError,
    RelayError,
    Unauthenticated,
)

logger = logging.getLogger(__name__)

Validator = Callable[[Any], None]


@dataclass(frozen=True)
class RelayResponse:
    """Status and JSON body to hand back to the original caller."""

    status: int
    body: Any


def find_header(headers: Mapping[str, str], name: str) -> Optional[str]:
    """Case-insensitive header lookup over a plain mapping."""

    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


class Relay:
    """Relay one inbound chat request to the upstream completions endpoint.

    The relay never inspects the credential or the upstream's answer: the
    upstream status and JSON body are returned as-is, including upstream
    error payloads. Only transport and decoding failures become a
    ``ProxyError``.
    """

    def __init__(
        self,
        upstream_url: str,
        *,
        timeout: Optional[float] = 60.0,
        max_body_bytes: Optional[int] = None,
        validator: Optional[Validator] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.upstream_url = upstream_url
        self.timeout = timeout
        self.max_body_bytes = max_body_bytes
        self.validator = validator
        self._session = session or requests.Session()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        validator: Optional[Validator] = None,
        session: Optional[requests.Session] = None,
    ) -> "Relay":
        return cls(
            settings.upstream_url,
            timeout=settings.upstream_timeout,
            max_body_bytes=settings.max_body_bytes,
            validator=validator,
            session=session,
        )

    # Public API -----------------------------------------------------------------

    def handle(
        self,
        method: str,
        headers: Mapping[str, str],
        body: Any,
        *,
        upstream_url: Optional[str] = None,
    ) -> RelayResponse:
        """Relay an already-decoded JSON body."""

        def load() -> Any:
            if self.max_body_bytes is not None:
                try:
                    size = len(_encode(body).encode("utf-8"))
                except (TypeError, ValueError) as exc:
                    raise ProxyError(str(exc)) from exc
                if size > self.max_body_bytes:
                    raise PayloadTooLarge()
            return body

        return self._dispatch(method, headers, load, upstream_url)

    def handle_raw(
        self,
        method: str,
        headers: Mapping[str, str],
        payload: bytes,
        *,
        upstream_url: Optional[str] = None,
    ) -> RelayResponse:
        """Relay a raw request body, decoding it only once the request is accepted."""

        def decode() -> Any:
            if self.max_body_bytes is not None and len(payload) > self.max_body_bytes:
                raise PayloadTooLarge()
            if not payload.strip():
                return None
            try:
                return json.loads(payload)
            except ValueError as exc:
                raise MalformedBody() from exc

        return self._dispatch(method, headers, decode, upstream_url)

    # Internal helpers -----------------------------------------------------------

    def _dispatch(
        self,
        method: str,
        headers: Mapping[str, str],
        load_body: Callable[[], Any],
        upstream_url: Optional[str],
    ) -> RelayResponse:
        try:
            with trace_segment("relay.validate") as details:
                credential = self._authorize(method, headers)
                body = load_body()
                self._check_body(body)
                details["method"] = method.upper()
            return self._forward(body, credential, upstream_url or self.upstream_url)
        except RelayError as exc:
            if isinstance(exc, ProxyError):
                logger.warning("Upstream call failed: %s", exc.reason)
            else:
                logger.info("Rejected %s request: %s", method.upper(), exc.message)
            return RelayResponse(status=exc.status_code, body=exc.to_body())

    @staticmethod
    def _authorize(method: str, headers: Mapping[str, str]) -> str:
        if method.upper() != "POST":
            raise MethodNotAllowed()
        credential = find_header(headers, "authorization")
        if not credential:
            raise Unauthenticated()
        return credential

    def _check_body(self, body: Any) -> None:
        if self.validator is None:
            return
        try:
            self.validator(body)
        except RelayError:
            raise
        except Exception as exc:
            raise PayloadRejected(str(exc)) from exc

    def _forward(self, body: Any, credential: str, url: str) -> RelayResponse:
        request_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Authorization": credential,
        }
        try:
            data = _encode(body)
        except (TypeError, ValueError) as exc:
            raise ProxyError(str(exc)) from exc

        with trace_segment("relay.upstream", metadata={"request_bytes": len(data)}) as details:
            try:
                response = self._session.post(
                    url,
                    data=data.encode("utf-8"),
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as exc:
                raise ProxyError(str(exc)) from exc
            details["status"] = response.status_code

        with trace_segment("relay.decode") as details:
            try:
                payload = response.json()
            except ValueError as exc:
                raise ProxyError(str(exc)) from exc
            details["response_bytes"] = len(response.content or b"")

        logger.debug("Upstream answered %s for %s", response.status_code, url)
        return RelayResponse(status=response.status_code, body=payload)


def _encode(body: Any) -> str:
    return json.dumps(body, ensure_ascii=False)


__all__ = ["Relay", "RelayResponse", "Validator", "find_header"]
