"""
JSON-RPC transport for a Solana-compatible ledger.

Requests go through a ``requests.Session`` with automatic retries for server
errors and dropped connections; transactions are assembled and signed locally
with solders.
"""
import base64
import itertools
import logging
import time
import urllib.parse
from typing import Any, Dict, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.system_program import ID as SYSTEM_PROGRAM_ID
from solders.transaction import Transaction
from urllib3.util.retry import Retry

from ..models import AccountInfo, ConfirmationStatus
from ..version import USER_AGENT
from .exceptions import (
    LedgerConnectionError, LedgerErrorCode, LedgerResponseError, LedgerTimeoutError
)
from .transport import LedgerTransport

logger = logging.getLogger(__name__)

# System program error codes surfaced as InstructionError Custom(n)
_SYSTEM_ACCOUNT_ALREADY_IN_USE = 0
_SYSTEM_RESULT_WITH_NEGATIVE_LAMPORTS = 1

_INSUFFICIENT_FUNDS_ERRORS = ("InsufficientFundsForFee", "InsufficientFundsForRent")


def _validate_rpc_url(rpc_url: str) -> None:
    parsed = urllib.parse.urlparse(rpc_url)
    host = parsed.netloc.split(':')[0]
    is_local = host in ('localhost', '127.0.0.1')
    if parsed.scheme != 'https' and not is_local:
        raise ValueError(f"rpc_url must use https:// for security (got: {parsed.scheme}://)")


def classify_transaction_error(err: Any, instructions: Sequence[Instruction] = ()) -> LedgerErrorCode:
    """
    Map a Solana ``TransactionError`` JSON value to a LedgerErrorCode.

    Args:
        err: The ``err`` value from a simulation or signature status
        instructions: Instructions of the failed transaction, used to tell
            system program errors from program errors

    Returns:
        Normalized error code
    """
    if isinstance(err, str):
        if err in _INSUFFICIENT_FUNDS_ERRORS:
            return LedgerErrorCode.INSUFFICIENT_FUNDS
        if err == "BlockhashNotFound":
            return LedgerErrorCode.BLOCKHASH_NOT_FOUND
        return LedgerErrorCode.UNKNOWN

    if not isinstance(err, dict):
        return LedgerErrorCode.UNKNOWN

    if any(key in err for key in _INSUFFICIENT_FUNDS_ERRORS):
        return LedgerErrorCode.INSUFFICIENT_FUNDS

    instruction_error = err.get("InstructionError")
    if not instruction_error or len(instruction_error) != 2:
        return LedgerErrorCode.UNKNOWN

    index, detail = instruction_error
    is_system = index < len(instructions) and instructions[index].program_id == SYSTEM_PROGRAM_ID
    if isinstance(detail, dict) and "Custom" in detail:
        if is_system or not instructions:
            if detail["Custom"] == _SYSTEM_ACCOUNT_ALREADY_IN_USE:
                return LedgerErrorCode.ACCOUNT_IN_USE
            if detail["Custom"] == _SYSTEM_RESULT_WITH_NEGATIVE_LAMPORTS:
                return LedgerErrorCode.INSUFFICIENT_FUNDS
        return LedgerErrorCode.PROGRAM_ERROR
    if detail == "InsufficientFunds":
        return LedgerErrorCode.INSUFFICIENT_FUNDS
    return LedgerErrorCode.PROGRAM_ERROR


class SolanaRpcTransport(LedgerTransport):
    """
    Ledger transport speaking Solana JSON-RPC over HTTP.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = "confirmed",
        retry_count: int = 3,
        timeout: int = 30,
        poll_latency: float = 0.5,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the transport

        Args:
            rpc_url: JSON-RPC endpoint (e.g., "https://api.devnet.solana.com")
            commitment: Commitment level for reads and confirmation
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            poll_latency: Delay between signature status polls in seconds
            session: Optional pre-configured HTTP session

        Raises:
            ValueError: If the URL doesn't use https (unless it's localhost/127.0.0.1)
        """
        _validate_rpc_url(rpc_url)
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.timeout = timeout
        self.poll_latency = poll_latency
        self._ids = itertools.count(1)
        self._failures: Dict[str, LedgerResponseError] = {}

        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = USER_AGENT
            retries = Retry(
                total=retry_count,
                backoff_factor=0.5,
                status_forcelist=[429, 500, 502, 503, 504],
                allowed_methods=["POST"],
                raise_on_status=False,
                connect=retry_count,
                read=retry_count,
                other=retry_count
            )
            session.mount("http://", HTTPAdapter(max_retries=retries))
            session.mount("https://", HTTPAdapter(max_retries=retries))
        self.session = session

    def _rpc(self, method: str, params: Optional[List[Any]] = None,
             instructions: Sequence[Instruction] = ()) -> Any:
        """
        Perform one JSON-RPC call and return its ``result``.

        Raises:
            LedgerTimeoutError: If the HTTP request times out
            LedgerConnectionError: If the endpoint is unreachable or answers with a bad status
            LedgerResponseError: If the JSON-RPC response carries an error
        """
        body = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params or []}
        logger.debug(f"RPC {method} -> {self.rpc_url}")
        try:
            response = self.session.post(self.rpc_url, json=body, timeout=self.timeout)
        except requests.Timeout as e:
            raise LedgerTimeoutError(f"RPC {method} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise LedgerConnectionError(f"RPC {method} failed: {e}") from e

        if response.status_code >= 400:
            raise LedgerConnectionError(f"RPC {method} returned HTTP {response.status_code}: {response.text[:200]}")

        try:
            payload = response.json()
        except ValueError as e:
            raise LedgerConnectionError(f"Invalid JSON from RPC {method}: {e}") from e

        error = payload.get("error")
        if error:
            data = error.get("data") if isinstance(error, dict) else None
            err = data.get("err") if isinstance(data, dict) else None
            code = classify_transaction_error(err, instructions) if err is not None else LedgerErrorCode.UNKNOWN
            message = error.get("message", str(error)) if isinstance(error, dict) else str(error)
            raise LedgerResponseError(f"RPC {method} error: {message}", error_code=code, data=data)

        if "result" not in payload:
            raise LedgerConnectionError(f"RPC {method} response has no result: {payload}")
        return payload["result"]

    def get_account(self, address: Pubkey) -> AccountInfo:
        result = self._rpc("getAccountInfo", [
            str(address),
            {"encoding": "base64", "commitment": self.commitment}
        ])
        value = result.get("value") if isinstance(result, dict) else None
        if value is None:
            return AccountInfo.missing()

        raw = value.get("data") or ["", "base64"]
        data = base64.b64decode(raw[0]) if isinstance(raw, list) else base64.b64decode(raw)
        return AccountInfo(
            exists=True,
            owner=Pubkey.from_string(value["owner"]),
            lamports=int(value.get("lamports", 0)),
            data_length=len(data),
            data=data
        )

    def get_current_slot(self) -> int:
        return int(self._rpc("getSlot", [{"commitment": self.commitment}]))

    def minimum_rent_exempt_balance(self, capacity: int) -> int:
        return int(self._rpc("getMinimumBalanceForRentExemption", [capacity]))

    def _latest_blockhash(self) -> Hash:
        result = self._rpc("getLatestBlockhash", [{"commitment": self.commitment}])
        return Hash.from_string(result["value"]["blockhash"])

    def send_transaction(self, instructions: Sequence[Instruction], signers: Sequence[Keypair]) -> str:
        if not signers:
            raise ValueError("At least one signer (the fee payer) is required")

        blockhash = self._latest_blockhash()
        message = Message.new_with_blockhash(list(instructions), signers[0].pubkey(), blockhash)
        tx = Transaction(list(signers), message, blockhash)
        encoded = base64.b64encode(bytes(tx)).decode("ascii")

        signature = self._rpc("sendTransaction", [
            encoded,
            {"encoding": "base64", "preflightCommitment": self.commitment}
        ], instructions=instructions)
        logger.info(f"Transaction sent: {signature[:16]}...")
        return signature

    def confirm_transaction(self, signature: str, timeout: float = 60.0) -> ConfirmationStatus:
        deadline = time.monotonic() + timeout
        wanted = ("confirmed", "finalized") if self.commitment != "finalized" else ("finalized",)

        while True:
            result = self._rpc("getSignatureStatuses", [[signature], {"searchTransactionHistory": False}])
            statuses = result.get("value") or [None]
            status = statuses[0]
            if status is not None:
                if status.get("err") is not None:
                    err = status["err"]
                    logger.warning(f"Transaction {signature[:16]}... failed: {err}")
                    self._failures[signature] = LedgerResponseError(
                        f"Transaction {signature} failed: {err}",
                        error_code=classify_transaction_error(err),
                        data={"err": err}
                    )
                    return ConfirmationStatus.FAILED
                if status.get("confirmationStatus") in wanted:
                    logger.info(f"Transaction {signature[:16]}... confirmed")
                    return ConfirmationStatus.CONFIRMED

            if time.monotonic() >= deadline:
                logger.warning(f"Transaction {signature[:16]}... not confirmed after {timeout}s")
                return ConfirmationStatus.TIMEOUT
            time.sleep(self.poll_latency)

    def transaction_error(self, signature: str) -> Optional[LedgerResponseError]:
        return self._failures.get(signature)

    def close(self) -> None:
        try:
            self.session.close()
        except Exception as e:
            logger.warning(f"Error closing RPC session: {e}", exc_info=True)
