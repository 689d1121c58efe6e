"""Fixtures for tests against a running Firestore emulator."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator
from uuid import uuid4

import pytest

from firetype.config import FirestoreSettings
from firetype.db import FirestoreResource, create_firestore_resource


@pytest.fixture
def firestore_settings() -> FirestoreSettings:
    emulator_host = os.getenv("FIRESTORE_EMULATOR_HOST")
    if not emulator_host:
        pytest.skip("FIRESTORE_EMULATOR_HOST is not set")
    return FirestoreSettings(
        project=os.getenv("FIRETYPE_FIRESTORE_PROJECT", "firetype-integration"),
        emulator_host=emulator_host,
    )


@pytest.fixture
async def firestore_resource(
    firestore_settings: FirestoreSettings,
) -> AsyncIterator[FirestoreResource]:
    resource = await create_firestore_resource(firestore_settings)
    try:
        yield resource
    finally:
        await resource.close()


@pytest.fixture
def collection_name() -> str:
    return f"it_{uuid4().hex[:12]}"
