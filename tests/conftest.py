import pytest

from helpers import make_session


@pytest.fixture
def sessions():
    return [make_session(f"s{i}", n_rounds=4) for i in range(3)]
