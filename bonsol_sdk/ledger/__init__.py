"""
Ledger module for the Bonsol SDK.

The request protocol talks to the ledger only through ``LedgerTransport``.
``SolanaRpcTransport`` reaches a real cluster over JSON-RPC;
``StubLedgerTransport`` keeps everything in memory.
"""
from .exceptions import (
    LedgerConnectionError, LedgerError, LedgerErrorCode, LedgerResponseError, LedgerTimeoutError
)
from .rpc_transport import SolanaRpcTransport
from .stub_transport import StubLedgerTransport
from .transport import LedgerTransport, derive_program_address

__all__ = [
    'LedgerTransport',
    'derive_program_address',
    'SolanaRpcTransport',
    'StubLedgerTransport',
    'LedgerError',
    'LedgerConnectionError',
    'LedgerResponseError',
    'LedgerTimeoutError',
    'LedgerErrorCode',
]
