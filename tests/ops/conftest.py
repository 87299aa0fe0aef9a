"""Fixtures for operation tests."""

import pytest

from connwatch.ops import OperationContext


@pytest.fixture
def ctx(store, planner):
    return OperationContext(store=store, planner=planner)


@pytest.fixture
def dry_ctx(store, planner):
    return OperationContext(store=store, planner=planner, dry_run=True)
