"""
Pytest fixtures for the Bonsol SDK tests.
"""
import time

import pytest

from bonsol_sdk import (
    ExecutionRequestBuilder, ImageLocator, InlineInput, RequestOptions, RequestSubmitter, VirtualClock
)
from bonsol_sdk._rate_limited_log import reset_rate_limits

from tests.test_helpers import (
    HELLO_IMAGE_ID, TEST_PROGRAM_ID, create_test_ledger, create_test_session, make_keypair
)


# Make time.sleep instantaneous so transport retries don't slow the suite down
@pytest.fixture(autouse=True)
def _fast_sleep(request, monkeypatch):
    if request.node.get_closest_marker("real_time"):
        return
    monkeypatch.setattr(time, "sleep", lambda *_a, **_kw: None)


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_rate_limits()
    yield
    reset_rate_limits()


@pytest.fixture
def payer():
    """Funding identity"""
    return make_keypair(1)


@pytest.fixture
def request_account():
    """Fresh request account identity"""
    return make_keypair(2)


@pytest.fixture
def image():
    return ImageLocator(TEST_PROGRAM_ID).locate(HELLO_IMAGE_ID)


@pytest.fixture
def ledger(payer):
    """In-memory ledger with a funded payer and the hello image registered"""
    return create_test_ledger(payer)


@pytest.fixture
def clock():
    return VirtualClock()


@pytest.fixture
def options():
    return RequestOptions(expiry_offset=2000, callback_program=TEST_PROGRAM_ID, tip=12000)


@pytest.fixture
def hello_input():
    return InlineInput.from_text("Hello, World!")


@pytest.fixture
def session(ledger, payer, clock):
    return create_test_session(ledger, payer, clock=clock)


@pytest.fixture
def hello_request(ledger, image, hello_input, options):
    """The hello request built against the ledger's current slot"""
    return ExecutionRequestBuilder().build(image, hello_input, options, ledger.get_current_slot())


@pytest.fixture
def confirmation(ledger, payer, request_account, hello_request):
    """The hello request submitted to the ledger"""
    return RequestSubmitter(ledger, TEST_PROGRAM_ID).submit(hello_request, payer, request_account).unwrap()
