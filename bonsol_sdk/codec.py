"""
Persisted layout of a request account.

All integers are little-endian. The encoded request is followed by a claim
region whose contents belong to the target program.
"""
import struct
from typing import NamedTuple

from solders.pubkey import Pubkey

from .models import ExecutionRequest, InlineInput, InputReference

PUBKEY_LEN = 32
INPUT_TAG_INLINE = 0
INPUT_TAG_REFERENCE = 1

# image_ref + input tag + input length + tip + expiry + callback + payer
FIXED_SIZE = PUBKEY_LEN + 1 + 4 + 8 + 8 + PUBKEY_LEN + PUBKEY_LEN


class DecodedRequestAccount(NamedTuple):
    request: ExecutionRequest
    payer: Pubkey
    claim_region: bytes


def _input_bytes(request: ExecutionRequest) -> bytes:
    payload = request.input_payload
    if isinstance(payload, InlineInput):
        return payload.data
    return payload.url.encode("utf-8")


def encoded_size(request: ExecutionRequest) -> int:
    """Number of bytes the request occupies, excluding the claim region."""
    return FIXED_SIZE + len(_input_bytes(request))


def inline_overhead() -> int:
    """Bytes an encoded request needs besides its input payload."""
    return FIXED_SIZE


def encode_request(request: ExecutionRequest, payer: Pubkey) -> bytes:
    """
    Serialize a request as it is stored in the request account.

    Args:
        request: The execution request
        payer: Identity funding the request account

    Returns:
        Encoded bytes without the claim region
    """
    payload = request.input_payload
    tag = INPUT_TAG_INLINE if isinstance(payload, InlineInput) else INPUT_TAG_REFERENCE
    input_bytes = _input_bytes(request)
    return b"".join([
        bytes(request.image_ref),
        struct.pack("<BI", tag, len(input_bytes)),
        input_bytes,
        struct.pack("<QQ", request.tip, request.expiry_slot),
        bytes(request.callback_program),
        bytes(payer),
    ])


def decode_request_account(data: bytes) -> DecodedRequestAccount:
    """
    Decode the raw contents of a request account.

    Args:
        data: Account data as read from the ledger

    Returns:
        The request, its payer and the untouched trailing claim region

    Raises:
        ValueError: If the data is truncated or carries an unknown input tag
    """
    if len(data) < FIXED_SIZE:
        raise ValueError(f"Request account data too short: {len(data)} < {FIXED_SIZE}")

    offset = 0
    image_ref = Pubkey.from_bytes(data[offset:offset + PUBKEY_LEN])
    offset += PUBKEY_LEN
    tag, input_len = struct.unpack_from("<BI", data, offset)
    offset += 5
    if offset + input_len + 16 + 2 * PUBKEY_LEN > len(data):
        raise ValueError(f"Input length {input_len} overruns account data of {len(data)} bytes")
    input_bytes = data[offset:offset + input_len]
    offset += input_len

    if tag == INPUT_TAG_INLINE:
        payload = InlineInput(data=input_bytes)
    elif tag == INPUT_TAG_REFERENCE:
        payload = InputReference(url=input_bytes.decode("utf-8"))
    else:
        raise ValueError(f"Unknown input tag: {tag}")

    tip, expiry_slot = struct.unpack_from("<QQ", data, offset)
    offset += 16
    callback_program = Pubkey.from_bytes(data[offset:offset + PUBKEY_LEN])
    offset += PUBKEY_LEN
    payer = Pubkey.from_bytes(data[offset:offset + PUBKEY_LEN])
    offset += PUBKEY_LEN

    request = ExecutionRequest(
        image_ref=image_ref,
        input_payload=payload,
        tip=tip,
        expiry_slot=expiry_slot,
        callback_program=callback_program
    )
    return DecodedRequestAccount(request=request, payer=payer, claim_region=bytes(data[offset:]))
