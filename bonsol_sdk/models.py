"""
Data models for the Bonsol SDK.
"""
import hashlib
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from solders.pubkey import Pubkey


class ClaimState(str, Enum):
    """State of a request account as seen by one poll"""
    UNCLAIMED = "Unclaimed"
    CLAIMED_OR_FULFILLED = "Claimed-or-Fulfilled"
    MISSING = "Missing"


class ConfirmationStatus(str, Enum):
    """Result of waiting for a transaction to be confirmed"""
    CONFIRMED = "confirmed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class InlineInput(BaseModel):
    """Input bytes carried inside the request account"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["inline"] = "inline"
    data: bytes

    @classmethod
    def from_text(cls, text: str) -> "InlineInput":
        return cls(data=text.encode("utf-8"))


class InputReference(BaseModel):
    """Input fetched by the prover from an external location"""
    model_config = ConfigDict(frozen=True)

    kind: Literal["reference"] = "reference"
    url: str = Field(..., min_length=1)


InputPayload = Annotated[Union[InlineInput, InputReference], Field(discriminator="kind")]


class ImageAddress(BaseModel):
    """Program-derived address of a registered computation image"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    image_id: bytes
    program_id: Pubkey
    address: Pubkey
    bump: int

    @property
    def image_id_hex(self) -> str:
        return self.image_id.hex()


class RequestOptions(BaseModel):
    """
    Caller-supplied settings for one execution request.

    expiry_offset and callback_program have no defaults: a request without an
    expiry would stay claimable forever.
    """
    model_config = ConfigDict(arbitrary_types_allowed=True)

    expiry_offset: int
    callback_program: Pubkey
    tip: int = 0


class ExecutionRequest(BaseModel):
    """Immutable fields of one execution request"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    image_ref: Pubkey
    input_payload: InputPayload
    tip: int
    expiry_slot: int
    callback_program: Pubkey


class AccountInfo(BaseModel):
    """Snapshot of a ledger account"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    exists: bool
    owner: Optional[Pubkey] = None
    lamports: int = 0
    data_length: int = 0
    data: Optional[bytes] = None

    @classmethod
    def missing(cls) -> "AccountInfo":
        return cls(exists=False)

    @property
    def digest(self) -> Optional[str]:
        if self.data is None:
            return None
        return hashlib.sha256(self.data).hexdigest()


class StateSignature(BaseModel):
    """
    Length and content hash of a request account before any prover touched it.

    The digest may be unknown until the account has been read once.
    """
    model_config = ConfigDict(frozen=True)

    data_length: int
    digest: Optional[str] = None

    @classmethod
    def of(cls, info: AccountInfo) -> "StateSignature":
        return cls(data_length=info.data_length, digest=info.digest)

    def matches(self, info: AccountInfo) -> bool:
        if info.data_length != self.data_length:
            return False
        if self.digest is None or info.digest is None:
            return True
        return info.digest == self.digest


class ClaimObservation(BaseModel):
    """Client-side view of a request account produced by one poll"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    account: Pubkey
    account_exists: bool
    data_length: int
    observed_at: float
    state: ClaimState
    data: Optional[bytes] = None
    polls: int = 0

    @property
    def claimed(self) -> bool:
        return self.state == ClaimState.CLAIMED_OR_FULFILLED

    @property
    def state_signature(self) -> StateSignature:
        """Account signature as seen by this poll, usable as the baseline of a later watch."""
        digest = hashlib.sha256(self.data).hexdigest() if self.data is not None else None
        return StateSignature(data_length=self.data_length, digest=digest)


class Confirmation(BaseModel):
    """A request that the ledger has durably accepted"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    signature: str
    request_account: Pubkey
    image_address: Pubkey
    capacity: int
    rent_lamports: int
    expiry_slot: int
    # SHA-256 of the account data right after submission, before any prover touched it
    empty_digest: Optional[str] = None

    @property
    def expected_state(self) -> StateSignature:
        return StateSignature(data_length=self.capacity, digest=self.empty_digest)


class SessionResult(BaseModel):
    """Everything a completed session produced"""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    image: ImageAddress
    request: ExecutionRequest
    confirmation: Confirmation
    observation: ClaimObservation
