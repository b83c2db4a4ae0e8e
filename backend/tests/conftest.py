import pytest

from backend.tests.fakes import FakeGateway, build_request


@pytest.fixture
def request_for():
    return build_request(FakeGateway())
