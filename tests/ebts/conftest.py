import pytest

from sample_transactions import make_sample_ebts


@pytest.fixture
def sample_ebts():
    return make_sample_ebts()
