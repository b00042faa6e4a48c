"""
Property-based tests for the Bonsol SDK.

These tests verify that properties hold true across many random inputs.
"""
import pytest
from hypothesis import given, settings, strategies as st

from bonsol_sdk import (
    ExecutionRequestBuilder, ImageLocator, InlineInput, InputTooLarge, InvalidRequestOptions,
    RequestOptions
)
from bonsol_sdk.codec import decode_request_account, encode_request, encoded_size

from tests.test_helpers import TEST_PROGRAM_ID, make_keypair

image_id_strategy = st.binary(min_size=32, max_size=32)
slot_strategy = st.integers(min_value=0, max_value=2 ** 40)

LOCATOR = ImageLocator(TEST_PROGRAM_ID)
IMAGE = LOCATOR.locate(bytes(32))
BUILDER = ExecutionRequestBuilder(capacity_budget=1024, claim_state_reserve=128)


@settings(max_examples=50)
@given(image_id=image_id_strategy)
def test_locate_is_deterministic(image_id):
    first = LOCATOR.locate(image_id)
    assert LOCATOR.locate(image_id) == first
    assert LOCATOR.locate(image_id.hex()) == first
    assert first.image_id == image_id


@settings(max_examples=50)
@given(offset=st.integers(max_value=0), slot=slot_strategy)
def test_build_rejects_non_positive_expiry(offset, slot):
    options = RequestOptions(expiry_offset=offset, callback_program=TEST_PROGRAM_ID)
    with pytest.raises(InvalidRequestOptions):
        BUILDER.build(IMAGE, InlineInput(data=b"x"), options, slot)


@settings(max_examples=50)
@given(offset=st.integers(min_value=1, max_value=2 ** 32), slot=slot_strategy)
def test_expiry_is_slot_plus_offset(offset, slot):
    options = RequestOptions(expiry_offset=offset, callback_program=TEST_PROGRAM_ID)
    assert BUILDER.build(IMAGE, InlineInput(data=b"x"), options, slot).expiry_slot == slot + offset


@settings(max_examples=50)
@given(data=st.binary(max_size=2048))
def test_inline_input_fits_budget_or_is_rejected(data):
    options = RequestOptions(expiry_offset=10, callback_program=TEST_PROGRAM_ID)
    payload = InlineInput(data=data)
    if len(data) > BUILDER.max_inline_input:
        with pytest.raises(InputTooLarge):
            BUILDER.build(IMAGE, payload, options, 0)
    else:
        request = BUILDER.build(IMAGE, payload, options, 0)
        assert encoded_size(request) + BUILDER.claim_state_reserve <= BUILDER.capacity_budget


@settings(max_examples=50)
@given(data=st.binary(max_size=512), tip=st.integers(min_value=0, max_value=2 ** 64 - 1),
       trailing=st.binary(max_size=64))
def test_decoded_account_ignores_claim_region(data, tip, trailing):
    options = RequestOptions(expiry_offset=10, callback_program=TEST_PROGRAM_ID, tip=tip)
    request = BUILDER.build(IMAGE, InlineInput(data=data), options, 5)
    payer = make_keypair(1).pubkey()

    decoded = decode_request_account(encode_request(request, payer) + trailing)
    assert decoded.request == request
    assert decoded.claim_region == trailing
