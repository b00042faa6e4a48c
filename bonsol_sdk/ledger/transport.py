"""
Transport layer for the ledger.

This module defines the operations the request protocol consumes from the
ledger, independent of how they reach it (JSON-RPC, in-memory stub, ...).
"""
from abc import ABC, abstractmethod
from typing import Optional, Sequence, Tuple

from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from ..models import AccountInfo, ConfirmationStatus
from .exceptions import LedgerResponseError


def derive_program_address(seeds: Sequence[bytes], program_id: Pubkey) -> Tuple[Pubkey, int]:
    """
    Derive a program address and its bump seed. Pure; never touches the network.

    Args:
        seeds: Ordered seeds, each at most 32 bytes
        program_id: Program the address belongs to

    Returns:
        (address, bump)
    """
    return Pubkey.find_program_address(list(seeds), program_id)


class LedgerTransport(ABC):
    """
    Abstract base class for ledger transport implementations.

    Implementations must be safe for concurrent independent reads and writes.
    """

    def derive_address(self, seeds: Sequence[bytes], program_id: Pubkey) -> Pubkey:
        """Derive a program address from seeds (see ``derive_program_address``)."""
        address, _bump = derive_program_address(seeds, program_id)
        return address

    @abstractmethod
    def get_account(self, address: Pubkey) -> AccountInfo:
        """
        Read an account.

        Args:
            address: Account address

        Returns:
            Account snapshot; ``exists`` is False if there is no account

        Raises:
            LedgerError: If the read fails
        """
        pass

    @abstractmethod
    def get_current_slot(self) -> int:
        """
        Read the current ledger slot.

        Raises:
            LedgerError: If the read fails
        """
        pass

    @abstractmethod
    def minimum_rent_exempt_balance(self, capacity: int) -> int:
        """
        Minimum balance for an account of ``capacity`` bytes to be rent exempt.

        Raises:
            LedgerError: If the read fails
        """
        pass

    @abstractmethod
    def send_transaction(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        """
        Submit instructions as one atomic transaction.

        The first signer pays the fees.

        Args:
            instructions: Ordered instructions
            signers: Keypairs that must sign

        Returns:
            Transaction signature (base58)

        Raises:
            LedgerResponseError: If the ledger rejects the transaction
            LedgerConnectionError: If the ledger cannot be reached
        """
        pass

    @abstractmethod
    def confirm_transaction(self, signature: str, timeout: float = 60.0) -> ConfirmationStatus:
        """
        Wait, for at most ``timeout`` seconds, for a transaction to be confirmed.

        Returns:
            CONFIRMED, FAILED or TIMEOUT
        """
        pass

    def transaction_error(self, signature: str) -> Optional[LedgerResponseError]:
        """
        Ledger error of a transaction that confirmed as FAILED.

        Returns:
            The error carrying the ledger's ``err`` value, or None if unknown
        """
        return None

    def close(self) -> None:
        """Release transport resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
