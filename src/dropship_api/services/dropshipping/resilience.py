"""Timeout, retry and circuit-breaker handling for vendor HTTP calls."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping

import httpx
from loguru import logger

from dropship_api.core.settings import Settings
from dropship_api.domain.dropshipping.errors import ProviderUnavailableError, VendorRequestError
from dropship_api.observability.dropshipping import DropshipObservabilityStore, get_dropship_store
from dropship_api.observability.tracing import get_tracer

_IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True, slots=True)
class ResiliencePolicy:
    timeout_seconds: float = 10.0
    read_retry_attempts: int = 2
    backoff_seconds: float = 0.5
    max_backoff_seconds: float = 8.0
    breaker_failure_threshold: int = 5
    breaker_reset_seconds: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "ResiliencePolicy":
        return cls(
            timeout_seconds=settings.dropship_request_timeout_seconds,
            read_retry_attempts=max(settings.dropship_read_retry_attempts, 0),
            backoff_seconds=max(settings.dropship_retry_backoff_seconds, 0.0),
            breaker_failure_threshold=max(settings.dropship_breaker_failure_threshold, 1),
            breaker_reset_seconds=max(settings.dropship_breaker_reset_seconds, 0.0),
        )

    def backoff_for(self, attempt: int) -> float:
        return min(self.backoff_seconds * (2 ** (attempt - 1)), self.max_backoff_seconds)


class CircuitBreaker:
    """Consecutive-failure breaker scoped to one provider.

    Open for ``reset_seconds`` after ``failure_threshold`` consecutive failures,
    then half-open: a single trial call decides whether it closes again.
    """

    def __init__(
        self,
        provider: str,
        *,
        failure_threshold: int = 5,
        reset_seconds: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
        store: DropshipObservabilityStore | None = None,
    ) -> None:
        self._provider = provider
        self._failure_threshold = failure_threshold
        self._reset_seconds = reset_seconds
        self._clock = clock
        self._store = store or get_dropship_store()
        self._consecutive_failures = 0
        self._opened_at: float | None = None
        self._trial_in_flight = False

    @property
    def state(self) -> CircuitState:
        if self._opened_at is None:
            return CircuitState.CLOSED
        if self._clock() - self._opened_at >= self._reset_seconds:
            return CircuitState.HALF_OPEN
        return CircuitState.OPEN

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def before_call(self) -> None:
        state = self.state
        if state is CircuitState.CLOSED:
            return
        if state is CircuitState.HALF_OPEN and not self._trial_in_flight:
            self._trial_in_flight = True
            return
        self._store.record_rejected(self._provider)
        raise ProviderUnavailableError(self._provider, self._retry_after())

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("Dropship provider circuit closed", provider=self._provider)
        self._consecutive_failures = 0
        self._opened_at = None
        self._trial_in_flight = False

    def release_trial(self) -> None:
        """Free the half-open slot when a trial ended without a verdict."""

        self._trial_in_flight = False

    def record_failure(self) -> None:
        self._consecutive_failures += 1
        was_trial = self._trial_in_flight
        self._trial_in_flight = False
        if was_trial or self._consecutive_failures >= self._failure_threshold:
            self._opened_at = self._clock()
            self._store.record_circuit_open(self._provider)
            logger.warning(
                "Dropship provider circuit opened",
                provider=self._provider,
                consecutive_failures=self._consecutive_failures,
                reset_seconds=self._reset_seconds,
            )

    def _retry_after(self) -> float:
        if self._opened_at is None:
            return 0.0
        return max(self._reset_seconds - (self._clock() - self._opened_at), 0.0)


def _parse_response_body(response: httpx.Response) -> Mapping[str, Any]:
    content_type = response.headers.get("content-type", "")
    if content_type.startswith("application/json"):
        try:
            parsed = response.json()
            if isinstance(parsed, Mapping):
                return parsed
            return {"data": parsed}
        except ValueError:
            return {"text": response.text}
    return {"text": response.text}


@dataclass(frozen=True, slots=True)
class VendorResponse:
    status_code: int
    payload: Mapping[str, Any]
    url: str

    @property
    def ok(self) -> bool:
        return self.status_code < 400


class VendorHttpClient:
    """HTTP access to one vendor API behind the provider's circuit breaker.

    Responses with 4xx statuses (other than 429) are returned to the caller so
    the provider can map them to rejections or not-found results. Transport
    errors, 429 and 5xx raise ``VendorRequestError`` and count against the
    breaker. Only idempotent methods are retried.
    """

    def __init__(
        self,
        provider: str,
        *,
        base_url: str,
        headers: Mapping[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
        policy: ResiliencePolicy | None = None,
        breaker: CircuitBreaker | None = None,
        store: DropshipObservabilityStore | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._provider = provider
        self._base_url = base_url.rstrip("/")
        self._headers = dict(headers or {})
        self._http_client = http_client
        self._policy = policy or ResiliencePolicy()
        self._store = store or get_dropship_store()
        self._breaker = breaker or CircuitBreaker(
            provider,
            failure_threshold=self._policy.breaker_failure_threshold,
            reset_seconds=self._policy.breaker_reset_seconds,
            store=self._store,
        )
        self._sleep = sleep

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    def url_for(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{self._base_url}{path}"

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
    ) -> VendorResponse:
        method = method.upper()
        attempts = 1 + (self._policy.read_retry_attempts if method in _IDEMPOTENT_METHODS else 0)
        url = self.url_for(path)

        with logger.contextualize(provider=self._provider):
            return await self._request_with_retries(method, url, attempts, params=params, json=json)

    async def _request_with_retries(
        self,
        method: str,
        url: str,
        attempts: int,
        *,
        params: Mapping[str, Any] | None,
        json: Any,
    ) -> VendorResponse:
        for attempt in range(1, attempts + 1):
            self._breaker.before_call()
            self._store.record_call(self._provider)
            try:
                response = await self._send(method, url, params=params, json=json)
            except VendorRequestError as exc:
                self._breaker.record_failure()
                self._store.record_failure(self._provider, exc.message)
                if attempt < attempts and exc.retryable:
                    delay = self._policy.backoff_for(attempt)
                    self._store.record_retry(self._provider)
                    logger.warning(
                        "Retrying dropship vendor request",
                        method=method,
                        url=url,
                        attempt=attempt,
                        delay_seconds=delay,
                        error=exc.message,
                    )
                    await self._sleep(delay)
                    continue
                raise
            except BaseException:
                self._breaker.release_trial()
                raise
            self._breaker.record_success()
            self._store.record_success(self._provider)
            return response

        raise AssertionError("unreachable")  # pragma: no cover

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: Mapping[str, Any] | None,
        json: Any,
    ) -> VendorResponse:
        client = self._http_client or httpx.AsyncClient(timeout=self._policy.timeout_seconds)
        owns_client = self._http_client is None

        request_kwargs: Dict[str, Any] = {
            "method": method,
            "url": url,
            "headers": self._headers,
            "timeout": self._policy.timeout_seconds,
        }
        if params:
            request_kwargs["params"] = {key: value for key, value in params.items() if value is not None}
        if json is not None:
            request_kwargs["json"] = json

        tracer = get_tracer()
        with tracer.start_as_current_span(
            "dropship.vendor_request",
            attributes={"dropship.provider": self._provider, "http.method": method, "http.url": url},
        ) as span:
            try:
                response = await client.request(**request_kwargs)
            except httpx.TimeoutException as exc:
                raise VendorRequestError(
                    f"{self._provider} request timed out", provider=self._provider, url=url
                ) from exc
            except httpx.HTTPError as exc:
                raise VendorRequestError(
                    f"{self._provider} request failed: {exc}", provider=self._provider, url=url
                ) from exc
            finally:
                if owns_client:
                    await client.aclose()

            span.set_attribute("http.status_code", response.status_code)
            if response.status_code == 429 or response.status_code >= 500:
                raise VendorRequestError(
                    f"{self._provider} responded with HTTP {response.status_code}",
                    provider=self._provider,
                    status_code=response.status_code,
                    url=url,
                )
            return VendorResponse(
                status_code=response.status_code,
                payload=_parse_response_body(response),
                url=url,
            )


__all__ = [
    "CircuitBreaker",
    "CircuitState",
    "ResiliencePolicy",
    "VendorHttpClient",
    "VendorResponse",
]
