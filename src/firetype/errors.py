"""Custom exceptions for firetype."""


class FiretypeError(Exception):
    """Base exception for this package."""


class MissingDependencyError(FiretypeError):
    """Raised when an optional dependency is required but not installed."""


class MalformedPathError(FiretypeError):
    """Raised when a document path is not exactly ``<collection>/<id>``."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Can't parse path {path!r}: expected '<collection>/<id>'")


class MissingDocumentError(FiretypeError):
    """Raised by batch reads when a requested document does not exist."""

    def __init__(self, collection: str, id: str) -> None:
        self.collection = collection
        self.id = id
        super().__init__(f"Missing document with id {id!r} in '{collection}'")


class InvalidQueryError(FiretypeError):
    """Raised when a query directive is built with invalid arguments."""


class SubscriptionUnsupportedError(FiretypeError):
    """Raised when subscribing to a result that only supports one-shot reads."""


class UnboundReferenceError(FiretypeError):
    """Raised when a reference has no collection handle to operate through."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Reference {path!r} is not bound to a collection")


class ListenerStoppedError(FiretypeError):
    """Passed to a subscription's error callback when the store ends its listener."""

    def __init__(self, collection: str) -> None:
        self.collection = collection
        super().__init__(f"Snapshot listener on '{collection}' was stopped by the store")
