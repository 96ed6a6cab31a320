"""Pytest configuration and fixtures."""

import pytest

from lpflow.chain.mocks import (
    MockAllowanceReader,
    MockPoolDataSource,
    MockTransactionBuilder,
    MockWalletSigner,
)
from lpflow.config import PipelineConfig
from lpflow.executor.context import ExecutionContext
from lpflow.executor.store import InMemoryFlowStore
from lpflow.models.pool import PoolSnapshot
from tests.helpers import NOW, FakeClock, make_config, make_snapshot


@pytest.fixture
def snapshot() -> PoolSnapshot:
    """DAI/USDC pool at tick 0 with tick spacing 10."""
    return make_snapshot()


@pytest.fixture
def config() -> PipelineConfig:
    """Config with real-looking position manager and zap router addresses."""
    return make_config()


@pytest.fixture
def clock() -> FakeClock:
    """Unix clock pinned to NOW."""
    return FakeClock(NOW)


@pytest.fixture
def signer() -> MockWalletSigner:
    return MockWalletSigner()


@pytest.fixture
def builder() -> MockTransactionBuilder:
    return MockTransactionBuilder()


@pytest.fixture
def reader() -> MockAllowanceReader:
    """Allowance reader with no allowances at all."""
    return MockAllowanceReader()


@pytest.fixture
def pool_source(snapshot: PoolSnapshot) -> MockPoolDataSource:
    return MockPoolDataSource({snapshot.pool_id: snapshot})


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext()


@pytest.fixture
def store() -> InMemoryFlowStore:
    return InMemoryFlowStore()
