"""Bounded-time HTTP fetching for extraction strategies.

The fetcher issues exactly one GET per call and returns raw markup. It
never parses. The wall-clock budget covers connection, headers and body.
The request runs on a worker thread while the calling thread waits on the
deadline and the cancellation token; when either fires the caller gets
``NetworkTimeout`` or ``ExtractionCancelled`` at once and the connection's
socket is shut down so the worker's blocked read returns too.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from dataclasses import dataclass

import requests
from urllib3.exceptions import ReadTimeoutError

from freereader import config

from . import (
    ExtractionCancelled,
    FetchError,
    HttpError,
    NetworkTimeout,
    TooShortResponse,
)
from .utils import CancellationToken, mask_url_credentials

logger = logging.getLogger(__name__)

# Floor for the per-socket timeout handed to requests
_MIN_SOCKET_TIMEOUT = 0.01


@dataclass(frozen=True)
class FetchResponse:
    """Raw result of a successful fetch."""

    html: str
    status_code: int
    elapsed_ms: float
    final_url: str


def _is_timeout(error: Exception) -> bool:
    if isinstance(error, requests.Timeout):
        return True
    # iter_content re-raises urllib3 read timeouts as ConnectionError
    return isinstance(error, requests.ConnectionError) and any(
        isinstance(arg, ReadTimeoutError) for arg in error.args
    )


def _shutdown_connection(response: requests.Response) -> None:
    """Shut down the socket under ``response`` and close it.

    ``close()`` alone does not wake a ``recv`` blocked in another thread;
    ``shutdown`` does.
    """
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket already closed: {e}")
    try:
        response.close()
    except Exception as e:
        logger.debug(f"Closing aborted response failed: {e}")


class _FetchCall:
    """One GET and its body read, run on a worker thread.

    The worker never raises: the response, body or error are left on the
    instance for the calling thread, and ``on_done`` is invoked last.
    """

    def __init__(self, session, url, headers, deadline, chunk_size, on_done):
        self.session = session
        self.url = url
        self.headers = headers
        self.deadline = deadline
        self.chunk_size = chunk_size
        self.response: requests.Response | None = None
        self.body: bytes | None = None
        self.error: Exception | None = None
        self.done = threading.Event()
        self._on_done = on_done
        self._aborted = False
        self._lock = threading.Lock()

    def run(self) -> None:
        response = None
        try:
            budget = max(self.deadline - time.monotonic(), _MIN_SOCKET_TIMEOUT)
            response = self.session.get(
                self.url,
                headers=self.headers,
                timeout=(budget, budget),
                stream=True,
                allow_redirects=True,
            )
            with self._lock:
                self.response = response
                aborted = self._aborted
            if aborted or not 200 <= response.status_code < 300:
                return

            chunks = []
            for chunk in response.iter_content(chunk_size=self.chunk_size):
                if self._aborted:
                    return
                if chunk:
                    chunks.append(chunk)
            self.body = b"".join(chunks)
        except Exception as e:
            self.error = e
        finally:
            if response is not None:
                response.close()
            self.done.set()
            self._on_done()

    def abort(self) -> None:
        with self._lock:
            self._aborted = True
            response = self.response
        # Before headers arrive there is no response yet; the worker checks
        # the flag as soon as session.get returns
        if response is not None:
            _shutdown_connection(response)


class Fetcher:
    """Issue bounded-time GET requests with a browser-like header profile."""

    def __init__(
        self,
        session: requests.Session | None = None,
        min_response_chars: int | None = None,
        chunk_size: int = 16 * 1024,
    ):
        self.session = session or requests.Session()
        self.min_response_chars = (
            config.MIN_RESPONSE_CHARS
            if min_response_chars is None
            else min_response_chars
        )
        self.chunk_size = chunk_size

    def fetch(
        self,
        url: str,
        timeout: float,
        headers: dict[str, str] | None = None,
        cancel_token: CancellationToken | None = None,
    ) -> FetchResponse:
        """Fetch ``url`` within ``timeout`` seconds.

        Raises:
            NetworkTimeout: budget exceeded (connect, headers or body)
            HttpError: non-2xx status
            TooShortResponse: body shorter than ``min_response_chars``
            FetchError: any other transport failure
            ExtractionCancelled: ``cancel_token`` was cancelled mid-flight
        """
        if cancel_token is not None and cancel_token.cancelled:
            raise ExtractionCancelled("Cancelled before fetch")

        started = time.monotonic()
        deadline = started + timeout
        safe_url = mask_url_credentials(url)

        wake = threading.Event()
        call = _FetchCall(self.session, url, headers, deadline, self.chunk_size, wake.set)
        unregister = (
            cancel_token.register(wake.set)
            if cancel_token is not None
            else (lambda: None)
        )
        worker = threading.Thread(target=call.run, name="freereader-fetch", daemon=True)
        worker.start()
        try:
            self._wait(call, wake, deadline, timeout, cancel_token)
        except (NetworkTimeout, ExtractionCancelled) as e:
            call.abort()
            logger.debug(f"Aborted fetch of {safe_url}: {e}")
            raise
        finally:
            unregister()

        if call.error is not None:
            if _is_timeout(call.error):
                raise NetworkTimeout(f"Timed out after {timeout:g}s") from call.error
            if isinstance(call.error, requests.RequestException):
                raise FetchError(
                    f"Request failed: {call.error.__class__.__name__}"
                ) from call.error
            raise call.error

        response = call.response
        if not 200 <= response.status_code < 300:
            raise HttpError(response.status_code, getattr(response, "reason", ""))

        html = self._decode(response, call.body or b"")
        elapsed_ms = (time.monotonic() - started) * 1000

        if len(html) < self.min_response_chars:
            raise TooShortResponse(
                f"Response too short ({len(html)} chars), likely empty or error page"
            )

        logger.debug(f"Fetched {len(html)} chars from {safe_url} in {elapsed_ms:.0f}ms")

        return FetchResponse(
            html=html,
            status_code=response.status_code,
            elapsed_ms=elapsed_ms,
            final_url=getattr(response, "url", None) or url,
        )

    @staticmethod
    def _wait(
        call: _FetchCall,
        wake: threading.Event,
        deadline: float,
        timeout: float,
        cancel_token: CancellationToken | None,
    ) -> None:
        """Block until the worker finishes, the deadline passes or a cancel."""
        while not call.done.is_set():
            if cancel_token is not None and cancel_token.cancelled:
                raise ExtractionCancelled("Cancelled during fetch")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise NetworkTimeout(f"Timed out after {timeout:g}s")
            wake.wait(remaining)
            wake.clear()

        if cancel_token is not None and cancel_token.cancelled:
            raise ExtractionCancelled("Cancelled during fetch")

    @staticmethod
    def _decode(response: requests.Response, body: bytes) -> str:
        content_type = (response.headers or {}).get("Content-Type", "")
        encoding = "utf-8"
        if "charset" in content_type.lower() and response.encoding:
            encoding = response.encoding
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")

    def close(self) -> None:
        self.session.close()
