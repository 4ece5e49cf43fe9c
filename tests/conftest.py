import pytest

from allocator.engine import TokenAllocationEngine
from tests.helpers import make_provider


@pytest.fixture
def engine():
    return TokenAllocationEngine()


@pytest.fixture
def two_slot_engine(engine):
    """One doctor working 09:00-11:00 (slots 09:00 and 10:00)."""
    engine.register_provider(make_provider())
    return engine


@pytest.fixture
def one_slot_engine(engine):
    """One doctor working 09:00-10:00 (a single slot)."""
    engine.register_provider(make_provider(end=10))
    return engine
