"""
RequestSubmitter - creates the request account and submits the request
in one atomic transaction.
"""
import hashlib
from typing import Optional

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .builder import DEFAULT_CLAIM_STATE_RESERVE
from .codec import encode_request, encoded_size
from .exceptions import (
    AccountCapacityError, AccountCollision, ConfirmationTimeout, InsufficientFunds, LedgerRejected
)
from .instructions import (
    BONSOL_PROGRAM_ID, DEFAULT_INSTRUCTION_NAME,
    create_request_account_instruction, request_submission_instruction
)
from .ledger.exceptions import LedgerError, LedgerErrorCode, LedgerResponseError
from .ledger.transport import LedgerTransport
from .models import Confirmation, ConfirmationStatus, ExecutionRequest
from .outcome import Outcome

MAX_ACCOUNT_CAPACITY = 10 * 1024 * 1024


class RequestSubmitter:
    """
    Sends account-creation and request-submission as a single transaction.

    The request account address is always a caller-supplied fresh keypair;
    an address that is already in use fails with AccountCollision.
    """

    def __init__(
        self,
        ledger: LedgerTransport,
        program_id: Pubkey,
        bonsol_program_id: Pubkey = BONSOL_PROGRAM_ID,
        claim_state_reserve: int = DEFAULT_CLAIM_STATE_RESERVE,
        capacity: Optional[int] = None,
        instruction_name: str = DEFAULT_INSTRUCTION_NAME,
        confirm_timeout: float = 60.0
    ):
        """
        Args:
            ledger: Ledger transport
            program_id: Target program that owns request accounts
            bonsol_program_id: Bonsol program passed to the target program
            claim_state_reserve: Bytes reserved for state appended on claim
            capacity: Fixed account capacity; computed from the request when None
            instruction_name: Target program instruction that records the request
            confirm_timeout: Seconds to wait for confirmation
        """
        self.ledger = ledger
        self.program_id = program_id
        self.bonsol_program_id = bonsol_program_id
        self.claim_state_reserve = claim_state_reserve
        self.capacity = capacity
        self.instruction_name = instruction_name
        self.confirm_timeout = confirm_timeout

    def required_capacity(self, request: ExecutionRequest) -> int:
        return encoded_size(request) + self.claim_state_reserve

    @staticmethod
    def empty_digest(request: ExecutionRequest, payer: Pubkey, capacity: int) -> str:
        """Digest of the request account once submitted: the encoded request zero-padded to capacity."""
        data = encode_request(request, payer)
        return hashlib.sha256(data + bytes(capacity - len(data))).hexdigest()

    def _capacity_for(self, request: ExecutionRequest) -> int:
        required = self.required_capacity(request)
        capacity = self.capacity if self.capacity is not None else required
        if capacity < required:
            raise AccountCapacityError(
                f"Request account capacity {capacity} is below the {required} bytes "
                f"the request and its claim state need"
            )
        if capacity > MAX_ACCOUNT_CAPACITY:
            raise AccountCapacityError(
                f"Request account capacity {capacity} exceeds the ledger maximum of {MAX_ACCOUNT_CAPACITY}"
            )
        return capacity

    def submit(self, request: ExecutionRequest, payer: Keypair, request_account: Keypair) -> Outcome[Confirmation]:
        """
        Create the request account and write the request into it.

        Args:
            request: Request from the builder
            payer: Funding identity; pays rent and fees
            request_account: Freshly generated keypair for the request account

        Returns:
            Outcome holding the Confirmation, or one of AccountCapacityError,
            InsufficientFunds, AccountCollision, LedgerRejected, ConfirmationTimeout
        """
        try:
            return Outcome.success(self._submit(request, payer, request_account))
        except (AccountCapacityError, AccountCollision, InsufficientFunds,
                LedgerRejected, ConfirmationTimeout) as e:
            return Outcome.failure(e)

    def _submit(self, request: ExecutionRequest, payer: Keypair, request_account: Keypair) -> Confirmation:
        # 1. Capacity
        capacity = self._capacity_for(request)
        account_key = request_account.pubkey()
        payer_key = payer.pubkey()

        try:
            # 2. Rent exemption
            rent = self.ledger.minimum_rent_exempt_balance(capacity)

            # Never overwrite an existing account
            existing = self.ledger.get_account(account_key)
            if existing.exists:
                raise AccountCollision(f"Request account {account_key} is already in use")

            funding = self.ledger.get_account(payer_key)
        except LedgerError as e:
            raise LedgerRejected(f"Ledger read failed before submission: {e}", reason=str(e), cause=e)

        if funding.lamports < rent:
            raise InsufficientFunds(
                f"Payer {payer_key} holds {funding.lamports} lamports, {rent} needed for the request account"
            )

        # 3. Both instructions, one transaction
        instructions = [
            create_request_account_instruction(payer_key, account_key, capacity, rent, self.program_id),
            request_submission_instruction(
                request, payer_key, account_key, self.program_id,
                bonsol_program_id=self.bonsol_program_id,
                instruction_name=self.instruction_name
            ),
        ]

        # 4 + 5. Sign with payer and the new account, send, confirm
        try:
            signature = self.ledger.send_transaction(instructions, [payer, request_account])
        except LedgerResponseError as e:
            raise self._map_rejection(e, account_key)
        except LedgerError as e:
            raise LedgerRejected(f"Transaction could not be sent: {e}", reason=str(e), cause=e)

        try:
            status = self.ledger.confirm_transaction(signature, timeout=self.confirm_timeout)
        except LedgerError as e:
            raise ConfirmationTimeout(
                f"Confirmation of {signature} could not be checked: {e}", signature=signature, cause=e
            )

        if status == ConfirmationStatus.TIMEOUT:
            raise ConfirmationTimeout(
                f"Transaction {signature} not confirmed within {self.confirm_timeout}s", signature=signature
            )
        if status == ConfirmationStatus.FAILED:
            raise LedgerRejected(f"Transaction {signature} failed on the ledger", reason="failed",
                                 cause=self.ledger.transaction_error(signature))

        return Confirmation(
            signature=signature,
            request_account=account_key,
            image_address=request.image_ref,
            capacity=capacity,
            rent_lamports=rent,
            expiry_slot=request.expiry_slot,
            empty_digest=self.empty_digest(request, payer_key, capacity)
        )

    @staticmethod
    def _map_rejection(error: LedgerResponseError, account_key: Pubkey):
        if error.error_code == LedgerErrorCode.ACCOUNT_IN_USE:
            return AccountCollision(f"Request account {account_key} is already in use", cause=error)
        if error.error_code == LedgerErrorCode.INSUFFICIENT_FUNDS:
            return InsufficientFunds(f"Payer cannot fund the request: {error}", cause=error)
        return LedgerRejected(f"Ledger rejected the transaction: {error}",
                              reason=error.error_code.value, cause=error)
