import pytest

from fakes import FakeAuth, FakeClock, FakeGA4Api, FakeGTMApi
from session_state import GA4Session, GTMSession


@pytest.fixture
def clock():
    """Fake monotonic clock; its sleep() just moves time forward."""
    return FakeClock()


@pytest.fixture
def auth():
    return FakeAuth()


@pytest.fixture
def messages():
    """Collects progress messages instead of printing them."""
    return []


@pytest.fixture
def gtm_api():
    return FakeGTMApi()


@pytest.fixture
def ga4_api():
    return FakeGA4Api()


@pytest.fixture
def gtm_session():
    return GTMSession('111', '222', 'G-ABCDEF1234')


@pytest.fixture
def ga4_session():
    return GA4Session(['p1'])
