import pytest

from fibber.tests.helpers import make_manager
from fibber.tests.mocks import FixedLieGenerator, ScriptedRandom


@pytest.fixture
def lie_generator():
    return FixedLieGenerator()


@pytest.fixture
def rng():
    """Scripted randomness: first candidate acts, truth rounds, first unused statement."""
    return ScriptedRandom()


@pytest.fixture
def manager(rng, lie_generator):
    return make_manager(rng=rng, lie_generator=lie_generator)
