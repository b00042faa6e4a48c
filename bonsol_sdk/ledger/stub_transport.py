"""
In-memory ledger transport.

This module provides a deterministic stand-in for a real ledger, used for
development and tests. Transactions apply atomically: every instruction runs
against a working copy of the account table, which replaces the live table
only if all of them succeed.
"""
import hashlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.system_program import decode_create_account

from ..instructions import DISCRIMINATOR_LEN
from ..models import AccountInfo, ConfirmationStatus
from .exceptions import LedgerConnectionError, LedgerError, LedgerErrorCode, LedgerResponseError
from .transport import LedgerTransport

logger = logging.getLogger(__name__)

LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2
ACCOUNT_STORAGE_OVERHEAD = 128
SIGNATURE_FEE = 5000


@dataclass
class StubAccount:
    owner: Pubkey
    lamports: int = 0
    data: bytearray = field(default_factory=bytearray)
    written: int = 0

    def copy(self) -> "StubAccount":
        return StubAccount(self.owner, self.lamports, bytearray(self.data), self.written)


class StubLedgerTransport(LedgerTransport):
    """
    A simple in-memory ledger.

    Supports the account creation and request submission instructions used by
    the request protocol, plus helpers to fund identities, register images,
    inject faults and simulate prover claims.
    """

    def __init__(self, start_slot: int = 1000, require_registered_images: bool = True):
        """
        Initialize the stub ledger.

        Args:
            start_slot: Initial slot
            require_registered_images: Reject request instructions whose image account does not exist
        """
        self.slot = start_slot
        self.require_registered_images = require_registered_images
        self.accounts: Dict[Pubkey, StubAccount] = {}
        self.transactions: Dict[str, ConfirmationStatus] = {}
        self.failures: Dict[str, LedgerResponseError] = {}
        self.sent: List[List[Instruction]] = []
        self.read_count = 0
        self._lock = threading.RLock()
        self._fault_at: Optional[int] = None
        self._read_failures = 0
        self._next_confirmation: Optional[ConfirmationStatus] = None
        self._reject_next: Optional[LedgerError] = None
        self._counter = 0

    # Test and development helpers

    def airdrop(self, address: Pubkey, lamports: int) -> None:
        with self._lock:
            account = self.accounts.setdefault(address, StubAccount(owner=SYSTEM_PROGRAM_ID))
            account.lamports += lamports

    def register_image(self, address: Pubkey, owner: Pubkey, data: bytes = b"") -> None:
        with self._lock:
            self.accounts[address] = StubAccount(owner=owner, lamports=1, data=bytearray(data), written=len(data))

    def advance_slot(self, slots: int = 1) -> None:
        with self._lock:
            self.slot += slots

    def inject_fault(self, before_instruction: int) -> None:
        """Make the next transaction fail just before the given instruction index."""
        self._fault_at = before_instruction

    def fail_reads(self, count: int) -> None:
        """Make the next ``count`` account reads raise LedgerConnectionError."""
        self._read_failures = count

    def reject_next(self, error: LedgerError) -> None:
        """Make the next send_transaction raise ``error`` without touching state."""
        self._reject_next = error

    def force_confirmation(self, status: ConfirmationStatus) -> None:
        """
        Fix the confirmation result of the next transaction.

        A FAILED transaction is not applied; a TIMEOUT transaction is applied
        but reported as unconfirmed.
        """
        self._next_confirmation = status

    def claim(self, address: Pubkey, state: bytes) -> None:
        """Simulate a prover writing claim state into the reserved region."""
        with self._lock:
            account = self._require(address)
            end = account.written + len(state)
            if end > len(account.data):
                raise ValueError(f"Claim state of {len(state)} bytes overflows account {address}")
            account.data[account.written:end] = state

    def append(self, address: Pubkey, data: bytes) -> None:
        """Simulate a program growing the account."""
        with self._lock:
            self._require(address).data.extend(data)

    def close_account(self, address: Pubkey) -> None:
        with self._lock:
            self.accounts.pop(address, None)

    def _require(self, address: Pubkey) -> StubAccount:
        account = self.accounts.get(address)
        if account is None:
            raise KeyError(f"No account at {address}")
        return account

    # LedgerTransport

    def get_account(self, address: Pubkey) -> AccountInfo:
        with self._lock:
            self.read_count += 1
            if self._read_failures > 0:
                self._read_failures -= 1
                raise LedgerConnectionError("Simulated read failure")
            account = self.accounts.get(address)
            if account is None:
                return AccountInfo.missing()
            return AccountInfo(
                exists=True,
                owner=account.owner,
                lamports=account.lamports,
                data_length=len(account.data),
                data=bytes(account.data)
            )

    def get_current_slot(self) -> int:
        with self._lock:
            return self.slot

    def minimum_rent_exempt_balance(self, capacity: int) -> int:
        return (ACCOUNT_STORAGE_OVERHEAD + capacity) * LAMPORTS_PER_BYTE_YEAR * EXEMPTION_THRESHOLD_YEARS

    def send_transaction(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        if not signers:
            raise ValueError("At least one signer (the fee payer) is required")

        with self._lock:
            if self._reject_next is not None:
                error, self._reject_next = self._reject_next, None
                raise error

            fault_at, self._fault_at = self._fault_at, None
            confirmation, self._next_confirmation = self._next_confirmation, None

            signer_keys = {kp.pubkey() for kp in signers}
            working = {key: account.copy() for key, account in self.accounts.items()}

            payer = working.get(signers[0].pubkey())
            fee = SIGNATURE_FEE * len(signers)
            if payer is None or payer.lamports < fee:
                raise LedgerResponseError("Fee payer cannot pay the transaction fee",
                                          error_code=LedgerErrorCode.INSUFFICIENT_FUNDS,
                                          data={"err": "InsufficientFundsForFee"})
            payer.lamports -= fee

            for index, ix in enumerate(instructions):
                if fault_at == index:
                    raise LedgerResponseError(f"Injected fault before instruction {index}",
                                              error_code=LedgerErrorCode.PROGRAM_ERROR,
                                              data={"err": {"InstructionError": [index, "ProgramFailedToComplete"]}})
                if ix.program_id == SYSTEM_PROGRAM_ID:
                    self._apply_create_account(working, ix, index, signer_keys)
                else:
                    self._apply_request(working, ix, index, signer_keys)

            self._counter += 1
            digest = hashlib.sha256(b"".join(bytes(ix.data) for ix in instructions)
                                    + self._counter.to_bytes(8, "little")).digest()
            signature = str(signers[0].sign_message(digest))
            self.sent.append(list(instructions))

            if confirmation == ConfirmationStatus.FAILED:
                self.transactions[signature] = ConfirmationStatus.FAILED
                self.failures[signature] = LedgerResponseError(
                    f"Transaction {signature} failed (forced)",
                    error_code=LedgerErrorCode.PROGRAM_ERROR,
                    data={"err": {"InstructionError": [len(instructions) - 1, "ProgramFailedToComplete"]}}
                )
                logger.debug(f"Stub transaction {signature[:16]}... dropped (forced failure)")
                return signature

            self.accounts = working
            self.slot += 1
            self.transactions[signature] = confirmation or ConfirmationStatus.CONFIRMED
            logger.debug(f"Stub transaction {signature[:16]}... applied {len(instructions)} instruction(s)")
            return signature

    def confirm_transaction(self, signature: str, timeout: float = 60.0) -> ConfirmationStatus:
        with self._lock:
            return self.transactions.get(signature, ConfirmationStatus.TIMEOUT)

    def transaction_error(self, signature: str) -> Optional[LedgerResponseError]:
        with self._lock:
            return self.failures.get(signature)

    def _apply_create_account(self, working: Dict[Pubkey, StubAccount], ix: Instruction,
                              index: int, signer_keys: set) -> None:
        try:
            params = decode_create_account(ix)
        except Exception as e:
            raise LedgerResponseError(f"Unsupported system instruction at {index}: {e}",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR) from e

        source, target = params["from_pubkey"], params["to_pubkey"]
        if source not in signer_keys or target not in signer_keys:
            raise LedgerResponseError(f"create_account at {index} is missing a required signature",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR,
                                      data={"err": {"InstructionError": [index, "MissingRequiredSignature"]}})

        existing = working.get(target)
        if existing is not None and (existing.lamports > 0 or existing.data):
            raise LedgerResponseError(f"Account {target} already in use",
                                      error_code=LedgerErrorCode.ACCOUNT_IN_USE,
                                      data={"err": {"InstructionError": [index, {"Custom": 0}]}})

        funder = working.get(source)
        if funder is None or funder.lamports < params["lamports"]:
            raise LedgerResponseError(f"Insufficient lamports in {source}",
                                      error_code=LedgerErrorCode.INSUFFICIENT_FUNDS,
                                      data={"err": {"InstructionError": [index, {"Custom": 1}]}})

        funder.lamports -= params["lamports"]
        working[target] = StubAccount(owner=params["owner"], lamports=params["lamports"],
                                      data=bytearray(params["space"]))

    def _apply_request(self, working: Dict[Pubkey, StubAccount], ix: Instruction,
                       index: int, signer_keys: set) -> None:
        accounts = ix.accounts
        if len(accounts) < 3 or len(ix.data) < DISCRIMINATOR_LEN:
            raise LedgerResponseError(f"Malformed request instruction at {index}",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR)

        image, request_account = accounts[1].pubkey, accounts[2].pubkey
        if self.require_registered_images and image not in working:
            raise LedgerResponseError(f"Image account {image} is not registered",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR,
                                      data={"err": {"InstructionError": [index, {"Custom": 3012}]}})

        target = working.get(request_account)
        if target is None or target.owner != ix.program_id:
            raise LedgerResponseError(f"Request account {request_account} is not owned by {ix.program_id}",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR,
                                      data={"err": {"InstructionError": [index, "IncorrectProgramId"]}})
        if target.written:
            raise LedgerResponseError(f"Request account {request_account} is already initialized",
                                      error_code=LedgerErrorCode.ACCOUNT_IN_USE,
                                      data={"err": {"InstructionError": [index, "AccountAlreadyInitialized"]}})

        body = bytes(ix.data[DISCRIMINATOR_LEN:])
        if len(body) > len(target.data):
            raise LedgerResponseError(f"Request of {len(body)} bytes does not fit {len(target.data)} byte account",
                                      error_code=LedgerErrorCode.PROGRAM_ERROR,
                                      data={"err": {"InstructionError": [index, "AccountDataTooSmall"]}})
        target.data[:len(body)] = body
        target.written = len(body)
