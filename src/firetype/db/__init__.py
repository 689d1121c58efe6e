"""Store connection."""

from firetype.db.firestore import FirestoreResource, create_firestore_resource

__all__ = [
    "FirestoreResource",
    "create_firestore_resource",
]
