import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 5_000

# (http-status, domain-object-or-error)
NormalizedResult = Tuple[int, Dict[str, Any]]


# ---------- Outcomes ----------
@dataclass(frozen=True)
class Success:
    payload: Any


@dataclass(frozen=True)
class UpstreamError:
    http_status: Optional[int]  # None when no response was received
    message: str


@dataclass(frozen=True)
class Timeout:
    message: str


Outcome = Union[Success, UpstreamError, Timeout]


@dataclass(frozen=True)
class CallResult:
    outcome: Outcome
    status_code: Optional[int] = None
    body: Any = None

    @property
    def ok(self) -> bool:
        return isinstance(self.outcome, Success)


# ---------- Endpoint configuration ----------
@dataclass(frozen=True)
class Endpoint:
    """
    Everything that differs between two upstream integrations:
      - `make_url` builds the request URL (credentials included),
      - `is_empty` tells whether the payload holds no result,
      - `extract` reshapes the chosen record into a domain dict.
    """
    label: str
    make_url: Callable[..., str]
    is_empty: Callable[[Any], bool]
    extract: Callable[[Any], Dict[str, Any]]
    not_found_message: str


# ---------- Adapter ----------
async def _send(cx: httpx.AsyncClient, url: str) -> Tuple[int, Any]:
    r = await cx.get(url)
    # Status and headers are in; the body may still be garbage.
    try:
        body = r.json()
    except ValueError:
        body = None
    return r.status_code, body


async def _fetch(url: str, client: Optional[httpx.AsyncClient]) -> Tuple[int, Any]:
    if client is not None:
        return await _send(client, url)
    # The only deadline is the one enforced by `timed_get`.
    async with httpx.AsyncClient(timeout=None) as cx:
        return await _send(cx, url)


async def timed_get(url: str, timeout_ms: int = DEFAULT_TIMEOUT_MS,
                    client: Optional[httpx.AsyncClient] = None) -> CallResult:
    """
    GET `url` and never block the caller past `timeout_ms`.

    The request runs under `asyncio.wait_for`: if the deadline passes first the
    request task is cancelled and the call is a `Timeout`; a response arriving
    afterwards is dropped with the cancelled task. The URL is never logged
    or echoed here since it carries credentials.
    """
    if isinstance(timeout_ms, bool) or not isinstance(timeout_ms, int) or timeout_ms <= 0:
        raise ValueError(f"timeout_ms must be a positive integer, got {timeout_ms!r}")

    try:
        status_code, body = await asyncio.wait_for(_fetch(url, client), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError:
        return CallResult(Timeout(f"timeout {timeout_ms} (ms)"))
    except httpx.TimeoutException as exc:
        # Raised by an injected client configured with its own timeouts.
        return CallResult(Timeout(f"{type(exc).__name__} before {timeout_ms} (ms)"))
    except httpx.HTTPError as exc:
        return CallResult(UpstreamError(None, type(exc).__name__))

    if not 200 <= status_code < 300:
        return CallResult(UpstreamError(status_code, f"upstream returned HTTP {status_code}"),
                          status_code=status_code, body=body)
    return CallResult(Success(body), status_code=status_code, body=body)


# ---------- Normalization ----------
def check_and_extract(endpoint: Endpoint, body: Any) -> NormalizedResult:
    """Shared by the live and the canned paths."""
    if endpoint.is_empty(body):
        return 404, {"message": endpoint.not_found_message}
    return 200, endpoint.extract(body)


def _normalize(endpoint: Endpoint, body: Any, error_message: str) -> NormalizedResult:
    try:
        return check_and_extract(endpoint, body)
    except (KeyError, IndexError, TypeError, AttributeError):
        logger.exception("malformed payload from the %s", endpoint.label)
        return 500, {"message": error_message}


async def call_upstream(endpoint: Endpoint, url: str, error_message: str,
                        timeout_ms: int = DEFAULT_TIMEOUT_MS,
                        client: Optional[httpx.AsyncClient] = None) -> NormalizedResult:
    """
    One bounded call to `endpoint`, mapped to (http-status, body):
      503 timeout, 500 any other failure, 404 no result, 200 domain dict.
    The upstream's own status is deliberately not passed through.
    """
    result = await timed_get(url, timeout_ms, client=client)
    outcome = result.outcome
    logger.info("got response from the %s: status=%s outcome=%s",
                endpoint.label, result.status_code, type(outcome).__name__)

    if isinstance(outcome, Timeout):
        logger.error("call to the %s timed out: %s", endpoint.label, outcome.message)
        # It might be worth re-trying.
        return 503, {"message": error_message}
    if isinstance(outcome, UpstreamError) or result.body is None:
        logger.error("call to the %s failed: %s", endpoint.label,
                     getattr(outcome, "message", "response body is not JSON"))
        return 500, {"message": error_message}

    return _normalize(endpoint, result.body, error_message)


# ---------- Canned data ----------
def load_canned(path: Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def canned_call(endpoint: Endpoint, path: Path, error_message: str) -> NormalizedResult:
    """Same as `call_upstream`, but the payload comes from a fixture file."""
    try:
        body = load_canned(path)
    except (OSError, ValueError):
        logger.exception("could not read canned data for the %s", endpoint.label)
        return 500, {"message": error_message}
    return _normalize(endpoint, body, error_message)
