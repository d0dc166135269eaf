"""Shared fixtures for filerouter tests."""

import asyncio
from typing import Optional

import pytest

from filerouter.errors import ClassifierUnavailableError
from filerouter.router.arbiter import FileRouter
from filerouter.router.classifier import ClassifierAdapter, ContentClassifier
from filerouter.router.learned import LearnedPatternStore
from filerouter.router.models import FileDescriptor, FolderTemplate, RoutingCandidate, RoutingMethod
from filerouter.router.records import RoutingRecordLog
from filerouter.storage.memory import MemoryKeyValueStore


class StubClassifier(ContentClassifier):
    """Classifier returning a canned answer and counting calls."""

    def __init__(self, path=None, confidence: float = 0.7, error: Optional[Exception] = None, delay: float = 0.0):
        self.path = path
        self.confidence = confidence
        self.error = error
        self.delay = delay
        self.calls = 0

    async def classify(self, file: FileDescriptor, template: FolderTemplate) -> RoutingCandidate:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return RoutingCandidate(
            leaf_path=self.path,
            confidence=self.confidence,
            method=RoutingMethod.AI,
            reasoning="stub",
        )


@pytest.fixture
def patterns():
    return LearnedPatternStore(MemoryKeyValueStore())


@pytest.fixture
def records(patterns):
    return RoutingRecordLog(MemoryKeyValueStore(), patterns)


@pytest.fixture
def router(patterns, records):
    """Router with default rules and no classifier."""
    return FileRouter(patterns=patterns, records=records)


@pytest.fixture
def unavailable_classifier():
    return StubClassifier(error=ClassifierUnavailableError("service down"))


def make_router(patterns, records, classifier=None, **kwargs) -> FileRouter:
    timeout_ms = kwargs.pop("timeout_ms", 1000)
    adapter = ClassifierAdapter(classifier, timeout_ms=timeout_ms) if classifier else None
    return FileRouter(patterns=patterns, records=records, classifier=adapter, **kwargs)
