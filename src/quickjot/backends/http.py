"""JSON-over-HTTP classifier and save backend."""

import http.client
import json
import logging
import os
import socket
import time
import urllib.error
import urllib.request
from typing import Any

from quickjot import __version__
from quickjot.backends.base import RemoteClassifier, RemoteClassifierError, SaveBackend, SaveError
from quickjot.config import ENV_API_KEY, RemoteConfig

logger = logging.getLogger(__name__)

USER_AGENT = f"QuickJot/{__version__}"


def _build_request(url: str, body: Any, api_key: str | None) -> urllib.request.Request:
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    data = json.dumps(body, ensure_ascii=False).encode("utf-8")
    return urllib.request.Request(url, data=data, headers=headers, method="POST")


def _post_json(
    url: str,
    body: Any,
    timeout: float,
    max_retries: int,
    retry_delay: float,
    api_key: str | None,
) -> bytes:
    """POST a JSON body and return the raw response bytes.

    Connection errors and timeouts are retried with exponential backoff.
    HTTP error statuses are not retried.

    Raises:
        urllib.error.HTTPError: Non-2xx response
        OSError: Connection failed on every attempt
        http.client.HTTPException: Response was not valid HTTP
    """
    last_error: OSError | None = None
    for attempt in range(max_retries):
        request = _build_request(url, body, api_key)
        try:
            with urllib.request.urlopen(request, timeout=timeout) as response:
                return response.read()
        except urllib.error.HTTPError:
            raise
        except (urllib.error.URLError, socket.timeout, ConnectionError) as e:
            last_error = e
            if attempt < max_retries - 1:
                wait_time = retry_delay * (2 ** attempt)
                logger.warning("Connection error (%s), retrying in %.1fs...", e, wait_time)
                time.sleep(wait_time)

    raise last_error or OSError(f"Failed after {max_retries} attempts")


class HttpClassifier(RemoteClassifier):
    """Remote classifier reached over HTTP.

    Request body: ``{"input": text, "options": {"timezone", "userId", "maxItems"}}``.
    The response is returned decoded but unvalidated; schema checks belong to
    the fallback orchestrator.
    """

    def __init__(self, url: str | None, config: RemoteConfig | None = None, api_key: str | None = None):
        self.url = url
        self.config = config or RemoteConfig()
        self.api_key = api_key if api_key is not None else os.environ.get(ENV_API_KEY)

    @property
    def name(self) -> str:
        return "http"

    def is_available(self) -> bool:
        return bool(self.url)

    def classify(self, text: str, timezone: str, user_id: str, max_items: int) -> Any:
        if not self.url:
            raise RemoteClassifierError("No classifier URL configured")

        body = {
            "input": text,
            "options": {"timezone": timezone, "userId": user_id, "maxItems": max_items},
        }
        try:
            raw = _post_json(
                self.url,
                body,
                timeout=self.config.timeout_seconds,
                max_retries=self.config.max_retries,
                retry_delay=self.config.retry_delay_seconds,
                api_key=self.api_key,
            )
        except urllib.error.HTTPError as e:
            raise RemoteClassifierError(f"HTTP {e.code} from classifier") from e
        except OSError as e:
            raise RemoteClassifierError(f"Classifier unreachable: {e}") from e
        except http.client.HTTPException as e:
            raise RemoteClassifierError(f"Malformed classifier response: {e!r}") from e

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise RemoteClassifierError(f"Undecodable classifier response: {e}") from e


class HttpSaveBackend(SaveBackend):
    """Save backend that POSTs item batches as JSON.

    Called once per queued job; retries across flushes are the queue's job,
    so a single request is made per call.
    """

    def __init__(self, url: str | None, config: RemoteConfig | None = None, api_key: str | None = None):
        self.url = url
        self.config = config or RemoteConfig()
        self.api_key = api_key if api_key is not None else os.environ.get(ENV_API_KEY)

    @property
    def name(self) -> str:
        return "http"

    def save(self, payload: list[dict]) -> None:
        if not self.url:
            raise SaveError("No save URL configured")
        try:
            _post_json(
                self.url,
                {"items": payload},
                timeout=self.config.timeout_seconds,
                max_retries=1,
                retry_delay=0,
                api_key=self.api_key,
            )
        except urllib.error.HTTPError as e:
            raise SaveError(f"HTTP {e.code} from save backend") from e
        except OSError as e:
            raise SaveError(f"Save backend unreachable: {e}") from e
        except http.client.HTTPException as e:
            raise SaveError(f"Malformed save backend response: {e!r}") from e

    # Queue flushes take a plain callable
    __call__ = save
