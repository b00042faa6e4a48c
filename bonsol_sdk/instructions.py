"""
Instruction builders for request submission.
"""
import hashlib
from typing import List

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import CreateAccountParams, create_account

from .codec import encode_request
from .models import ExecutionRequest

BONSOL_PROGRAM_ID = Pubkey.from_string("BoNsHRcyLLNdtnoDf8hiCNZpyehMC4FDMxs6NTxFi3ew")
DEFAULT_INSTRUCTION_NAME = "request_execution"
DISCRIMINATOR_LEN = 8


def instruction_discriminator(name: str) -> bytes:
    """Anchor-style discriminator: first 8 bytes of sha256("global:<name>")."""
    return hashlib.sha256(f"global:{name}".encode("utf-8")).digest()[:DISCRIMINATOR_LEN]


def create_request_account_instruction(
    payer: Pubkey,
    request_account: Pubkey,
    capacity: int,
    lamports: int,
    program_id: Pubkey
) -> Instruction:
    """Allocate a request account of ``capacity`` bytes owned by ``program_id``."""
    return create_account(CreateAccountParams(
        from_pubkey=payer,
        to_pubkey=request_account,
        lamports=lamports,
        space=capacity,
        owner=program_id
    ))


def request_submission_instruction(
    request: ExecutionRequest,
    payer: Pubkey,
    request_account: Pubkey,
    program_id: Pubkey,
    bonsol_program_id: Pubkey = BONSOL_PROGRAM_ID,
    instruction_name: str = DEFAULT_INSTRUCTION_NAME
) -> Instruction:
    """
    Write the request fields into a freshly created request account.

    Args:
        request: The execution request to submit
        payer: Identity paying for the request
        request_account: Address of the account created in the same transaction
        program_id: Target program owning the request account
        bonsol_program_id: Bonsol program the target program forwards to
        instruction_name: Name of the target program's instruction

    Returns:
        The instruction
    """
    data = instruction_discriminator(instruction_name) + encode_request(request, payer)
    accounts: List[AccountMeta] = [
        AccountMeta(pubkey=payer, is_signer=True, is_writable=True),
        AccountMeta(pubkey=request.image_ref, is_signer=False, is_writable=False),
        AccountMeta(pubkey=request_account, is_signer=True, is_writable=True),
        AccountMeta(pubkey=bonsol_program_id, is_signer=False, is_writable=False),
        AccountMeta(pubkey=SYSTEM_PROGRAM_ID, is_signer=False, is_writable=False),
    ]
    return Instruction(program_id, data, accounts)
