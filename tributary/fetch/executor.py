"""Client-side glue for batched, retried HTTP fetches.

The executor owns a queue of :class:`FetchTask` items and a fixed number of
worker coroutines. Each response is handed to an async callback together with
the originating task, and the callback may enqueue follow-up tasks (the next
page of a cursor chain, say). :meth:`FetchExecutor.drain` returns once the
queue is empty, including tasks enqueued transitively by callbacks.
"""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import typing as typ

import httpx
import msgspec
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from tributary.common.env import env_positive_float, env_positive_int

from .errors import FetchError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


@dc.dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Retries allowed per task and the fixed delay between attempts."""

    retries: int = 2
    delay_s: float = 1.0

    @property
    def attempts(self) -> int:
        """Total attempts including the first request."""
        return self.retries + 1


NO_RETRY = RetryPolicy(retries=0, delay_s=0.0)


@dc.dataclass(frozen=True, slots=True)
class FetchExecutorConfig:
    """Concurrency, timeout, and default retry settings."""

    batch_size: int = 30
    timeout_s: float = 30.0
    retry: RetryPolicy = RetryPolicy()
    user_agent: str = "tributary/0.1"

    @classmethod
    def from_env(cls) -> FetchExecutorConfig:
        """Create configuration from ``TRIBUTARY_FETCH_*`` variables."""
        return cls(
            batch_size=env_positive_int("TRIBUTARY_FETCH_BATCH_SIZE", 30),
            timeout_s=env_positive_float("TRIBUTARY_FETCH_TIMEOUT_S", 30.0),
        )


@dc.dataclass(frozen=True, slots=True, eq=False)
class FetchTask:
    """A request plus opaque caller context returned to the callback."""

    method: str
    url: str
    params: cabc.Mapping[str, str | int] | None = None
    user_data: typ.Any = None


@dc.dataclass(frozen=True, slots=True)
class FetchResponse:
    """Status and body of a completed task."""

    status: int
    body: str
    task: FetchTask

    @property
    def ok(self) -> bool:
        """Return ``True`` for 2xx responses."""
        return 200 <= self.status < 300  # noqa: PLR2004

    def json(self) -> typ.Any:  # noqa: ANN401
        """Decode the body as JSON."""
        try:
            return msgspec.json.decode(self.body)
        except msgspec.DecodeError as exc:
            raise FetchError.undecodable(self.task.url) from exc


ResponseCallback = typ.Callable[[FetchResponse], typ.Awaitable[None]]


@dc.dataclass(slots=True)
class FetchStats:
    """Counters for one :meth:`FetchExecutor.drain` call."""

    completed: int = 0
    failed: int = 0
    callback_errors: int = 0


class FetchExecutor:
    """Bounded-concurrency request queue with per-drain retry policy."""

    def __init__(
        self,
        config: FetchExecutorConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Create an executor, owning an HTTP client unless one is supplied."""
        self._config = config or FetchExecutorConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=self._config.timeout_s,
            headers={
                "User-Agent": self._config.user_agent,
                "Accept": "application/json",
            },
        )
        self._queue: asyncio.Queue[FetchTask] = asyncio.Queue()

    async def __aenter__(self) -> FetchExecutor:
        """Return the executor for ``async with`` usage."""
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        """Close owned resources on exit."""
        await self.aclose()

    async def aclose(self) -> None:
        """Close any owned HTTP resources."""
        if self._owns_client:
            await self._client.aclose()

    @property
    def pending(self) -> int:
        """Number of tasks waiting in the queue."""
        return self._queue.qsize()

    def enqueue(self, task: FetchTask) -> None:
        """Append a task to the queue."""
        self._queue.put_nowait(task)

    async def drain(
        self,
        on_response: ResponseCallback,
        *,
        retry: RetryPolicy | None = None,
    ) -> FetchStats:
        """Run queued tasks until the queue is empty and return counters."""
        policy = retry or self._config.retry
        stats = FetchStats()
        if self._queue.empty():
            return stats
        workers = [
            asyncio.create_task(self._worker(on_response, policy, stats))
            for _ in range(self._config.batch_size)
        ]
        try:
            await self._queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return stats

    async def _worker(
        self,
        on_response: ResponseCallback,
        policy: RetryPolicy,
        stats: FetchStats,
    ) -> None:
        while True:
            task = await self._queue.get()
            try:
                await self._run_task(task, on_response, policy, stats)
            finally:
                self._queue.task_done()

    async def _run_task(
        self,
        task: FetchTask,
        on_response: ResponseCallback,
        policy: RetryPolicy,
        stats: FetchStats,
    ) -> None:
        try:
            response = await self._fetch(task, policy)
        except (httpx.HTTPError, FetchError) as exc:
            stats.failed += 1
            logger.error(  # noqa: TRY400
                "Fetch failed after %d attempt(s): %s %s: %s",
                policy.attempts,
                task.method,
                task.url,
                exc,
            )
            return

        stats.completed += 1
        try:
            await on_response(response)
        except Exception:
            stats.callback_errors += 1
            logger.exception(
                "Response callback failed for %s %s (user_data=%r)",
                task.method,
                task.url,
                task.user_data,
            )

    async def _fetch(self, task: FetchTask, policy: RetryPolicy) -> FetchResponse:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(policy.attempts),
            wait=wait_fixed(policy.delay_s),
            retry=retry_if_exception_type((httpx.TransportError, FetchError)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self._client.request(
                    task.method, task.url, params=task.params
                )
                if response.status_code in _RETRYABLE_STATUS:
                    raise FetchError.retryable_status(response.status_code, task.url)
                return FetchResponse(
                    status=response.status_code, body=response.text, task=task
                )
        # AsyncRetrying with reraise=True either returns above or raises.
        raise AssertionError  # pragma: no cover
