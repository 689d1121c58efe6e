"""Dual-mode read results: awaitable once, subscribable on demand."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Generator
from typing import Any, Generic, TypeVar

from firetype.errors import SubscriptionUnsupportedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ResultCallback = Callable[[T], None]
ErrorCallback = Callable[[Exception], None]
SubscribeFn = Callable[[ResultCallback[T], ErrorCallback | None], "Subscription"]


class Subscription:
    """Cancellable handle for a live listener."""

    def __init__(self, *, unsubscribe: Callable[[], None]) -> None:
        self._unsubscribe = unsubscribe
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._unsubscribe()

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.unsubscribe()


class SubscriptionResult(Generic[T]):
    """Result of a read that can be awaited and, when supported, subscribed to.

    Awaiting runs ``fetch`` once; later awaits share the same outcome.
    ``subscribe`` registers an independent listener, so neither path starts,
    re-runs or cancels the other::

        users = await db.users.all()

        subscription = db.users.all().subscribe(print, on_error=log_error)
        ...
        subscription.unsubscribe()
    """

    def __init__(
        self,
        fetch: Callable[[], Awaitable[T]],
        subscribe: SubscribeFn[T] | None = None,
    ) -> None:
        self._fetch = fetch
        self._subscribe = subscribe
        self._future: asyncio.Future[T] | None = None

    def __await__(self) -> Generator[Any, None, T]:
        if self._future is None:
            self._future = asyncio.ensure_future(self._fetch())
        return self._future.__await__()

    async def fetch(self) -> T:
        return await self

    @property
    def subscribable(self) -> bool:
        return self._subscribe is not None

    def subscribe(
        self,
        on_result: ResultCallback[T],
        on_error: ErrorCallback | None = None,
    ) -> Subscription:
        """Register a live listener and return its cancellable handle.

        The listener stays registered until ``unsubscribe`` is called.

        Raises:
            SubscriptionUnsupportedError: If this read has no live mode.
        """
        if self._subscribe is None:
            raise SubscriptionUnsupportedError("This read does not support subscriptions")
        return self._subscribe(on_result, on_error)

    async def updates(self) -> AsyncIterator[T]:
        """Iterate over live results until the consumer stops.

        Listener errors are raised from the iterator; the listener is
        unsubscribed when iteration ends for any reason.
        """
        queue: asyncio.Queue[tuple[bool, Any]] = asyncio.Queue()
        subscription = self.subscribe(
            lambda result: queue.put_nowait((True, result)),
            lambda exc: queue.put_nowait((False, exc)),
        )
        try:
            while True:
                ok, item = await queue.get()
                if not ok:
                    raise item
                yield item
        finally:
            subscription.unsubscribe()
            logger.debug("Live update iterator closed")
