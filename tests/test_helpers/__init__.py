"""
Shared constants and constructors for the Bonsol SDK tests.
"""
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from bonsol_sdk import ImageLocator, RequestSession, SessionConfig, VirtualClock
from bonsol_sdk.ledger import StubLedgerTransport

# Test constants used throughout tests
HELLO_IMAGE_ID = "7f8ebdabe3ed69b8d47b2cbc86e8668d171e1a0ced01610fd1ecc224db69767b"
HELLO_INPUT = "Hello, World!"
HELLO_TIP = 12000
HELLO_EXPIRY_OFFSET = 2000
TEST_PROGRAM_ID = Pubkey.from_string("B1AJLQqKJPdaFM45ZojBQYGfGQ8v6ysCBVtAUsgwVvkb")
TEST_RPC_URL = "https://rpc.example.com"
LAMPORTS_PER_SOL = 1_000_000_000
START_SLOT = 1000


def make_keypair(seed: int) -> Keypair:
    """Deterministic keypair from a one-byte seed"""
    return Keypair.from_seed(bytes([seed]) * 32)


def create_test_ledger(
    payer: Optional[Keypair] = None,
    lamports: int = 10 * LAMPORTS_PER_SOL,
    register_image: bool = True,
    program_id: Pubkey = TEST_PROGRAM_ID
) -> StubLedgerTransport:
    """
    Create an in-memory ledger with a funded payer and the hello image registered.
    """
    ledger = StubLedgerTransport(start_slot=START_SLOT)
    if payer is not None:
        ledger.airdrop(payer.pubkey(), lamports)
    if register_image:
        image = ImageLocator(program_id).locate(HELLO_IMAGE_ID)
        ledger.register_image(image.address, owner=program_id)
    return ledger


def create_test_session(
    ledger: StubLedgerTransport,
    payer: Keypair,
    clock: Optional[VirtualClock] = None,
    config: Optional[SessionConfig] = None,
    **kwargs
) -> RequestSession:
    """
    Create a session over the stub ledger with a virtual clock.
    """
    return RequestSession(
        ledger,
        payer,
        TEST_PROGRAM_ID,
        config=config or SessionConfig(),
        clock=clock or VirtualClock(),
        **kwargs
    )
