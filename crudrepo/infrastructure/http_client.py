from __future__ import annotations

import logging
import random
import time
from datetime import datetime
from typing import Any, Mapping, Optional, Protocol, cast

import requests

from crudrepo.config.settings import settings
from crudrepo.domain.envelope import looks_like_envelope
from crudrepo.domain.errors import RemoteError, TransportUnavailable


class _HasHeaders(Protocol):
    headers: Mapping[str, str]


logger = logging.getLogger(__name__)

_JSON_HEADERS = {
    "Connection": "Keep-Alive",
    "Accept": "application/json",
    "Content-Type": "application/json",
}


class HttpClient:
    """JSON-over-HTTP client for ``{status, message, data}`` endpoints.

    Features:
    - Bearer token applied to every request once set via :attr:`token`.
    - Bounded timeout so an unreachable endpoint fails in finite time.
    - Optional retries with exponential backoff and jitter on 429/5xx and
      connection errors (off by default).
    - Optional stdout logging of every response (debug sessions).

    Connection-level failures raise :class:`TransportUnavailable`. A non-2xx
    response whose body is an envelope is returned as-is so callers see its
    ``status`` and ``message``; any other non-2xx raises :class:`RemoteError`.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff_factor: float = 0.5,
        *,
        token: Optional[str] = None,
        log_responses: bool | None = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = (base_url or settings.base_url).rstrip("/")
        self.timeout = float(timeout if timeout is not None else settings.timeout)
        self.max_retries = int(max_retries if max_retries is not None else settings.max_retries)
        self.backoff_factor = float(backoff_factor)
        self._log_responses = (
            settings.log_responses if log_responses is None else bool(log_responses)
        )

        self._session = session or requests.Session()
        if headers:
            self._session.headers.update(headers)
        self._token = ""
        self.token = token if token is not None else (settings.token or "")

    @property
    def token(self) -> str:
        return self._token

    @token.setter
    def token(self, value: str) -> None:
        self._token = value or ""
        if self._token:
            self._session.headers["Authorization"] = f"Bearer {self._token}"
        else:
            self._session.headers.pop("Authorization", None)

    def _full_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def get(self, url: str) -> Any:
        """GET ``url`` and return the decoded JSON body."""
        return self._decode(self._send("GET", url))

    def post(self, url: str, body: Mapping[str, Any]) -> Any:
        return self._decode(self._send("POST", url, json=dict(body), headers=_JSON_HEADERS))

    def put(self, url: str, body: Mapping[str, Any]) -> Any:
        return self._decode(self._send("PUT", url, json=dict(body), headers=_JSON_HEADERS))

    def delete(self, url: str) -> Any:
        return self._decode(self._send("DELETE", url))

    def get_bytes(self, url: str) -> bytes:
        """GET ``url`` and return the raw body without following redirects."""
        resp = self._send("GET", url, allow_redirects=False)
        if not 200 <= resp.status_code < 300:
            raise RemoteError(
                f"HTTP {resp.status_code} fetching {url}", status_code=resp.status_code
            )
        return bytes(resp.content)

    def post_multipart(
        self,
        url: str,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """POST a multipart/form-data body (file uploads) and decode the reply."""
        return self._decode(
            self._send(
                "POST",
                url,
                data=dict(data or {}),
                files=dict(files or {}),
                headers={"Accept": "application/json"},
            )
        )

    def _send(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Issue a request, retrying on 429/5xx and connection errors.

        The final response is returned whatever its status; only transport
        failures after the last attempt raise.
        """
        url = self._full_url(path)
        attempt = 0

        while True:
            try:
                resp = self._session.request(
                    method=method, url=url, timeout=self.timeout, **kwargs
                )
            except (requests.Timeout, requests.ConnectionError) as exc:
                if attempt >= self.max_retries:
                    raise TransportUnavailable(
                        f"{method} {url} unreachable: {type(exc).__name__}"
                    ) from exc
                retry_after = self._compute_sleep_seconds(attempt)
                logger.warning(
                    "HttpClient %s %s exception: %s. Retrying in %.2fs (attempt %d/%d)",
                    method,
                    url,
                    type(exc).__name__,
                    retry_after,
                    attempt + 1,
                    self.max_retries,
                )
                attempt += 1
                time.sleep(retry_after)
                continue
            except requests.RequestException as exc:
                raise TransportUnavailable(f"{method} {url} failed: {exc}") from exc

            self._log_http_response(method, url, resp)
            retriable = resp.status_code == 429 or 500 <= resp.status_code < 600
            if not retriable or attempt >= self.max_retries:
                return resp

            retry_after = self._compute_sleep_seconds(attempt, resp)
            logger.warning(
                "HttpClient %s %s failed with %s. Retrying in %.2fs (attempt %d/%d)",
                method,
                url,
                resp.status_code,
                retry_after,
                attempt + 1,
                self.max_retries,
            )
            attempt += 1
            time.sleep(retry_after)

    def _decode(self, resp: requests.Response) -> Any:
        payload: Any = None
        if "json" in resp.headers.get("Content-Type", ""):
            try:
                payload = resp.json()
            except ValueError:
                payload = None

        if 200 <= resp.status_code < 300:
            if payload is None:
                raise RemoteError(
                    f"Expected a JSON body, got: {resp.text[:200]}",
                    status_code=resp.status_code,
                )
            return payload

        if looks_like_envelope(payload):
            return payload
        raise RemoteError(
            f"HTTP error {resp.status_code}: {resp.text[:200]}",
            status_code=resp.status_code,
        )

    def _compute_sleep_seconds(self, attempt: int, response: Optional[_HasHeaders] = None) -> float:
        """Compute sleep duration for retries.

        - Respect Retry-After header if provided and valid.
        - Otherwise exponential backoff: backoff_factor * (2**attempt) + jitter.
        """
        if response is not None:
            headers = cast(Mapping[str, str], response.headers)
            ra = headers.get("Retry-After")
            if ra:
                try:
                    return max(0.0, float(int(ra)))
                except (TypeError, ValueError):
                    pass

        base: float = float(self.backoff_factor) * float(2**attempt)
        jitter: float = float(random.uniform(0.0, 0.1))
        return float(base + jitter)

    def _log_http_response(self, method: str, url: str, resp: requests.Response) -> None:
        if not self._log_responses:
            return
        ts = datetime.now().isoformat(timespec="seconds")
        print(f"[HTTP RESPONSE] {ts} {method} {url} status={resp.status_code}", flush=True)
        try:
            print(resp.text, flush=True)
        except Exception as exc:
            print(f"<unable to read body: {exc}>", flush=True)
