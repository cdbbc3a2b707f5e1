# zhenghe/services/transport.py
from __future__ import annotations

import logging
import time
from typing import Dict, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from zhenghe.core.exceptions import TransportError
from zhenghe.core.logging import clip

log = logging.getLogger("zhenghe.transport")

CONNECT_TIMEOUT = 60.0
READ_TIMEOUT = 90.0
WRITE_TIMEOUT = 60.0
# httpx retries connect errors only, never on an HTTP status
CONNECT_RETRIES = 3

T = TypeVar("T", bound=BaseModel)


class DeepSeekTransport:
    """
    Authenticated JSON-over-HTTP calls against a base URL:
      - get() / post() return the body decoded into a pydantic model
      - any non-2xx status, empty body or undecodable body raises TransportError
      - connection failures are retried by the pool, then raise TransportError
    Timeouts and retries are fixed for every call.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._api_key = api_key
        self.base_url = base_url
        self._client = httpx.Client(
            transport=transport or httpx.HTTPTransport(retries=CONNECT_RETRIES),
            timeout=httpx.Timeout(CONNECT_TIMEOUT, read=READ_TIMEOUT, write=WRITE_TIMEOUT),
        )

    # ---- lifecycle ---------------------------------------------------------
    def close(self) -> None:
        self._client.close()
        log.debug("HTTP client closed | base_url=%s", self.base_url)

    def __enter__(self) -> "DeepSeekTransport":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def timeout(self) -> httpx.Timeout:
        return self._client.timeout

    # ---- requests ----------------------------------------------------------
    def get(self, endpoint: str, response_model: Type[T]) -> T:
        url = self.base_url + endpoint
        log.debug("GET prepare | endpoint=%s", endpoint)
        log.info("GET | url=%s", url)

        response = self._send("GET", url, headers=self._headers())
        if not response.is_success or not response.content:
            log.error("GET FAILED | code=%d | reason=%s", response.status_code, response.reason_phrase)
            raise TransportError(
                f"GET request failed. Code: {response.status_code} - {response.reason_phrase}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                body=response.text,
            )
        return self._decode(response, response_model)

    def post(self, endpoint: str, body: BaseModel, response_model: Type[T]) -> T:
        payload = body.model_dump_json()
        url = self.base_url + endpoint
        log.debug("POST prepare | endpoint=%s", endpoint)
        log.info("POST | url=%s", url)
        log.debug("POST payload | %s", payload)

        headers = self._headers()
        headers["Content-Type"] = "application/json"
        response = self._send("POST", url, headers=headers, content=payload)
        text = response.text
        log.debug("POST raw body | %r", clip(text))

        if not response.is_success or not text:
            log.error("POST FAILED | code=%d | reason=%s", response.status_code, response.reason_phrase)
            log.debug("POST error body | %s", text)
            raise TransportError(
                f"POST request failed. Code: {response.status_code} - {response.reason_phrase}"
                f"\nResponse body: {text}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                body=text,
            )
        log.info("POST ok | url=%s", url)
        return self._decode(response, response_model)

    # ---- internals ---------------------------------------------------------
    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
        }

    def _send(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str],
        content: Optional[str] = None,
    ) -> httpx.Response:
        t0 = time.perf_counter()
        try:
            response = self._client.request(method, url, headers=headers, content=content)
        except httpx.HTTPError as e:
            log.error(
                "%s connection FAILED | url=%s | ms=%.1f | err=%s",
                method, url, (time.perf_counter() - t0) * 1000.0, e,
            )
            raise TransportError(f"{method} request failed. {type(e).__name__}: {e}") from e
        log.debug(
            "%s response | code=%d | ms=%.1f",
            method, response.status_code, (time.perf_counter() - t0) * 1000.0,
        )
        return response

    @staticmethod
    def _decode(response: httpx.Response, response_model: Type[T]) -> T:
        try:
            return response_model.model_validate_json(response.content)
        except ValidationError as e:
            log.error("decode FAILED | model=%s | err=%s", response_model.__name__, e)
            raise TransportError(
                f"Failed to decode {response_model.__name__} from response: {e}",
                status_code=response.status_code,
                reason=response.reason_phrase,
                body=response.text,
            ) from e
