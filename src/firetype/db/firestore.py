"""Firestore resource: the explicit connection handed to collections."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, ClassVar

from firetype.config.models import FirestoreSettings
from firetype.errors import ListenerStoppedError
from firetype.health import HealthStatus
from firetype.observability._observable import ObservableMixin
from firetype.observability.metrics import MetricsRecorder
from firetype.result import ErrorCallback, Subscription

logger = logging.getLogger(__name__)

SnapshotCallback = Callable[[list[Any]], None]
QueryBuilder = Callable[..., Any]

_PING_PATH = "_firetype/ping"
_EMULATOR_VARIABLE = "FIRESTORE_EMULATOR_HOST"


def _import_firestore() -> Any:
    from google.cloud import firestore

    return firestore


def _client_kwargs(settings: FirestoreSettings) -> dict[str, Any]:
    kwargs: dict[str, Any] = {"project": settings.project, "database": settings.database}
    if settings.emulator_host is None and settings.credentials_file is not None:
        from google.oauth2 import service_account

        kwargs["credentials"] = service_account.Credentials.from_service_account_file(
            str(settings.credentials_file)
        )
    return kwargs


@contextmanager
def _emulator_environment(host: str | None) -> Iterator[None]:
    """Expose ``host`` as ``FIRESTORE_EMULATOR_HOST`` while a client is built.

    Clients read the variable once, in their constructor; the previous value
    is restored afterwards.
    """
    if host is None:
        yield
        return
    previous = os.environ.get(_EMULATOR_VARIABLE)
    os.environ[_EMULATOR_VARIABLE] = host
    try:
        yield
    finally:
        if previous is None:
            os.environ.pop(_EMULATOR_VARIABLE, None)
        else:
            os.environ[_EMULATOR_VARIABLE] = previous


@dataclass(slots=True)
class FirestoreResource(ObservableMixin):
    """Managed Firestore connection with the primitives collections build on.

    Reads and writes go through the async client. Live listeners need the
    sync client, which the Google library drives from its own thread; it is
    created on first use and snapshots are handed back to the subscribing
    event loop.
    """

    _resource_name: ClassVar[str] = "firestore"

    _client: Any
    database: str = "(default)"
    ping_timeout_seconds: float = 5.0
    listener_check_seconds: float = 5.0
    _listen_factory: Callable[[], Any] | None = None
    _listen_client: Any = None
    _metrics: MetricsRecorder | None = None
    _closed: bool = False
    _stopping: set[asyncio.Future[None]] = field(default_factory=set)

    @classmethod
    async def create(cls, settings: FirestoreSettings) -> FirestoreResource:
        """Create a resource from settings and verify it can read."""
        firestore = _import_firestore()
        kwargs = _client_kwargs(settings)

        def build(client_cls: Callable[..., Any]) -> Any:
            with _emulator_environment(settings.emulator_host):
                return client_cls(**kwargs)

        resource = cls(
            _client=build(firestore.AsyncClient),
            database=settings.database,
            ping_timeout_seconds=settings.ping_timeout_seconds,
            _listen_factory=lambda: build(firestore.Client),
        )
        await resource.ping()
        logger.info(
            "Firestore resource ready",
            extra={"project": resource.project, "database": settings.database},
        )
        return resource

    @property
    def client(self) -> Any:
        """Expose the underlying async client for advanced usage."""
        return self._client

    @property
    def listen_client(self) -> Any:
        """Sync client used for snapshot listeners, created on first access."""
        if self._listen_client is None:
            if self._listen_factory is None:
                raise RuntimeError("Firestore resource has no client for live listeners")
            self._listen_client = self._listen_factory()
        return self._listen_client

    @property
    def project(self) -> str | None:
        return getattr(self._client, "project", None)

    @property
    def is_connected(self) -> bool:
        """Whether resource can still serve requests."""
        return not self._closed

    def collection(self, path: str) -> Any:
        return self._client.collection(path)

    def document(self, path: str) -> Any:
        return self._client.document(path)

    def new_id(self, collection: str) -> str:
        """Generate a document id locally, without a round trip."""
        return str(self._client.collection(collection).document().id)

    async def ping(self) -> bool:
        """Read a single document to check connectivity and permissions."""
        with self._observed("ping"):
            await asyncio.wait_for(
                self._client.document(_PING_PATH).get(),
                timeout=self.ping_timeout_seconds,
            )
        return True

    async def add_document(self, collection: str, data: dict[str, Any]) -> str:
        """Create a document with a store-generated id and return the id."""
        with self._observed("add"):
            _, document = await self._client.collection(collection).add(data)
        return str(document.id)

    async def set_document(self, path: str, data: dict[str, Any], *, merge: bool = False) -> None:
        with self._observed("upset" if merge else "set"):
            await self._client.document(path).set(data, merge=merge)

    async def update_document(self, path: str, data: dict[str, Any]) -> None:
        with self._observed("update"):
            await self._client.document(path).update(data)

    async def delete_document(self, path: str) -> None:
        with self._observed("delete"):
            await self._client.document(path).delete()

    async def get_document(self, path: str) -> Any | None:
        """Return the snapshot at ``path`` or ``None`` when it does not exist."""
        with self._observed("get"):
            snapshot = await self._client.document(path).get()
        return snapshot if snapshot.exists else None

    async def get_documents(self, paths: list[str]) -> list[Any]:
        """Batch read ``paths`` in one round trip, keeping the input order.

        Missing documents come back as snapshots with ``exists`` false. An
        empty list returns immediately since the batch API rejects it.
        """
        if not paths:
            return []

        references = [self._client.document(path) for path in paths]
        with self._observed("get_all"):
            snapshots = {
                snapshot.reference.path: snapshot
                async for snapshot in self._client.get_all(references)
            }
        return [snapshots[path] for path in paths]

    async def list_documents(self, collection: str) -> list[Any]:
        with self._observed("list"):
            return list(await self._client.collection(collection).get())

    async def run_query(self, query: Any) -> list[Any]:
        with self._observed("query"):
            return list(await query.get())

    def listen(
        self,
        collection: str,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback | None = None,
        *,
        build: QueryBuilder | None = None,
    ) -> Subscription:
        """Listen to a collection, or to the query ``build`` makes of it.

        Must be called from a running event loop: ``on_snapshot`` runs on that
        loop with the list of document snapshots. Exceptions raised while
        handling a snapshot are passed to ``on_error``, or logged when there is
        none. The listener persists until the subscription is cancelled.

        The Google library reports a failed listen stream only on its own
        thread, so the watch is polled every ``listener_check_seconds``; once
        it has stopped the subscription is cancelled and ``on_error`` receives
        ``ListenerStoppedError``.
        """
        loop = asyncio.get_running_loop()
        client = self.listen_client
        target = client.collection(collection)
        if build is not None:
            target = build(target, client=client)

        def deliver(snapshots: list[Any]) -> None:
            if not subscription.active:
                return
            try:
                on_snapshot(snapshots)
            except Exception as exc:
                if on_error is None:
                    logger.exception(
                        "Unhandled error in snapshot listener",
                        extra={"collection": collection},
                    )
                else:
                    on_error(exc)

        def callback(snapshots: Any, changes: Any, read_time: Any) -> None:
            del changes, read_time
            loop.call_soon_threadsafe(deliver, list(snapshots))

        with self._observed("listen"):
            watch = target.on_snapshot(callback)
        self.metrics.observe_listeners(
            resource=self._resource_name, collection=collection, delta=1
        )
        logger.debug("Snapshot listener registered", extra={"collection": collection})

        check: asyncio.TimerHandle | None = None

        def unsubscribe() -> None:
            if check is not None:
                check.cancel()
            self.metrics.observe_listeners(
                resource=self._resource_name, collection=collection, delta=-1
            )
            self._stop_watch(watch, loop)
            logger.debug("Snapshot listener cancelled", extra={"collection": collection})

        subscription = Subscription(unsubscribe=unsubscribe)

        def check_alive() -> None:
            nonlocal check
            if watch.is_active:
                check = loop.call_later(self.listener_check_seconds, check_alive)
                return
            check = None
            subscription.unsubscribe()
            if on_error is None:
                logger.error(
                    "Snapshot listener stopped by the store",
                    extra={"collection": collection},
                )
            else:
                on_error(ListenerStoppedError(collection))

        check = loop.call_later(self.listener_check_seconds, check_alive)
        return subscription

    def _stop_watch(self, watch: Any, loop: asyncio.AbstractEventLoop) -> None:
        # Stopping a watch joins the library's consumer thread.
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is not loop:
            watch.unsubscribe()
            return
        stopping = loop.run_in_executor(None, watch.unsubscribe)
        self._stopping.add(stopping)
        stopping.add_done_callback(self._watch_stopped)

    def _watch_stopped(self, stopping: asyncio.Future[None]) -> None:
        self._stopping.discard(stopping)
        if not stopping.cancelled() and stopping.exception() is not None:
            logger.warning(
                "Snapshot listener did not stop cleanly", exc_info=stopping.exception()
            )

    async def drain_listeners(self) -> None:
        """Wait until every cancelled listener has released its stream."""
        if self._stopping:
            await asyncio.gather(*list(self._stopping), return_exceptions=True)

    async def health_check(self) -> HealthStatus:
        """Verify Firestore liveness with a single document read."""
        started = perf_counter()
        try:
            await self.ping()
        except Exception as exc:
            return HealthStatus.failed(exc, _elapsed_ms(started), database=self.database)
        return HealthStatus.ok(_elapsed_ms(started), database=self.database)

    async def close(self) -> None:
        """Close the async client and the listener client when one was created."""
        try:
            with self._observed("close"):
                await self.drain_listeners()
                for client in (self._client, self._listen_client):
                    close = getattr(client, "close", None)
                    if close is None:
                        continue
                    maybe_awaitable = close()
                    if hasattr(maybe_awaitable, "__await__"):
                        await maybe_awaitable
        finally:
            self._closed = True


def _elapsed_ms(started: float) -> float:
    return (perf_counter() - started) * 1000


async def create_firestore_resource(settings: FirestoreSettings) -> FirestoreResource:
    """Factory mirroring ``FirestoreResource.create``."""
    return await FirestoreResource.create(settings)
