"""Shared test fixtures"""

import os
import random

import pytest
from faker import Faker

from drive_organizer.cancellation import CancellationToken
from drive_organizer.classifier.cache import ClassificationCache
from drive_organizer.drive.folders import FolderResolver
from drive_organizer.drive.lister import TreeWalker
from drive_organizer.drive.mover import Mover
from drive_organizer.drive.retry import RetryExecutor, RetryPolicy
from drive_organizer.factories import FakeDriveStore

FAST_RETRY = RetryPolicy(initial_interval=0.001, multiplier=1.5, max_interval=0.01, max_elapsed=5.0)


@pytest.fixture(scope="session", autouse=True)
def setup_factory_seed():
    """Configure factory_boy/Faker to use a deterministic seed for reproducibility.

    The seed can be set via FACTORY_SEED environment variable, or will be
    randomly generated. The seed is printed to stdout for reproducibility.
    """
    seed = os.environ.get("FACTORY_SEED")
    if seed:
        seed = int(seed)
    else:
        seed = random.randint(0, 2**32 - 1)

    print(f"\n{'=' * 70}")
    print(f"Factory seed: {seed}")
    print(f"To reproduce this test run, set: FACTORY_SEED={seed}")
    print(f"{'=' * 70}\n")

    Faker.seed(seed)
    random.seed(seed)

    return seed


@pytest.fixture
def store():
    return FakeDriveStore()


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def executor(token):
    return RetryExecutor(token, FAST_RETRY)


@pytest.fixture
def walker(store, executor):
    return TreeWalker(store, executor, page_delay=0, folder_delay=0)


@pytest.fixture
def folders(store, executor):
    return FolderResolver(store, executor)


@pytest.fixture
def mover(store, executor):
    return Mover(store, executor)


@pytest.fixture
def cache():
    return ClassificationCache()


@pytest.fixture
def echoed():
    """Collects everything a component echoes."""
    return []
