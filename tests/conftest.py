import pytest

from tests.stubs import FakeClock, StubRemoteSource


@pytest.fixture
def remote():
    return StubRemoteSource()


@pytest.fixture
def clock():
    return FakeClock()
