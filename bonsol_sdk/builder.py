"""
ExecutionRequestBuilder - validates and assembles execution requests.
"""
from typing import Optional, Union

from solders.pubkey import Pubkey

from .codec import inline_overhead
from .exceptions import InputTooLarge, InvalidRequestOptions, MissingClockReference
from .models import ExecutionRequest, ImageAddress, InlineInput, InputReference, RequestOptions

DEFAULT_CAPACITY_BUDGET = 10_240
DEFAULT_CLAIM_STATE_RESERVE = 512
MAX_U64 = 2 ** 64 - 1


class ExecutionRequestBuilder:
    """
    Builds ExecutionRequest records without contacting the ledger.

    The caller reads the current slot and passes it in; expiry is computed as
    ``current_slot + expiry_offset``.
    """

    def __init__(
        self,
        capacity_budget: int = DEFAULT_CAPACITY_BUDGET,
        claim_state_reserve: int = DEFAULT_CLAIM_STATE_RESERVE
    ):
        """
        Args:
            capacity_budget: Largest request account the caller is willing to allocate
            claim_state_reserve: Bytes kept free for state the program appends on claim
        """
        if claim_state_reserve < 0 or capacity_budget <= 0:
            raise ValueError("capacity_budget must be positive and claim_state_reserve non-negative")
        self.capacity_budget = capacity_budget
        self.claim_state_reserve = claim_state_reserve

    @property
    def max_inline_input(self) -> int:
        """Largest inline payload that still fits the capacity budget."""
        return max(self.capacity_budget - self.claim_state_reserve - inline_overhead(), 0)

    def build(
        self,
        image: Union[ImageAddress, Pubkey],
        input_payload: Union[InlineInput, InputReference],
        options: RequestOptions,
        current_slot: Optional[int]
    ) -> ExecutionRequest:
        """
        Assemble an execution request.

        Args:
            image: Image address from the locator (or its raw Pubkey)
            input_payload: Inline bytes or a reference to the input
            options: Tip, expiry offset and callback program
            current_slot: Current ledger slot

        Returns:
            The request

        Raises:
            MissingClockReference: If current_slot is None
            InvalidRequestOptions: If tip or expiry offset are out of range
            InputTooLarge: If an inline payload exceeds the capacity budget
        """
        if current_slot is None:
            raise MissingClockReference("A current ledger slot is required to compute the request expiry")
        if current_slot < 0:
            raise MissingClockReference(f"Current slot must be non-negative, got {current_slot}")

        if options.expiry_offset <= 0:
            raise InvalidRequestOptions(
                f"expiry_offset must be a positive number of slots, got {options.expiry_offset}",
                field="expiry_offset"
            )
        if options.tip < 0 or options.tip > MAX_U64:
            raise InvalidRequestOptions(f"tip must be between 0 and {MAX_U64}, got {options.tip}", field="tip")

        expiry_slot = current_slot + options.expiry_offset
        if expiry_slot > MAX_U64:
            raise InvalidRequestOptions(f"expiry slot {expiry_slot} does not fit in u64", field="expiry_offset")

        if isinstance(input_payload, InlineInput) and len(input_payload.data) > self.max_inline_input:
            raise InputTooLarge(
                f"Inline input of {len(input_payload.data)} bytes exceeds the "
                f"{self.max_inline_input} byte limit of a {self.capacity_budget} byte account",
                size=len(input_payload.data),
                budget=self.max_inline_input
            )
        if isinstance(input_payload, InputReference) and len(input_payload.url.encode("utf-8")) > self.max_inline_input:
            raise InputTooLarge(
                f"Input reference of {len(input_payload.url)} characters exceeds the "
                f"{self.max_inline_input} byte limit",
                size=len(input_payload.url.encode("utf-8")),
                budget=self.max_inline_input
            )

        image_ref = image.address if isinstance(image, ImageAddress) else image
        return ExecutionRequest(
            image_ref=image_ref,
            input_payload=input_payload,
            tip=options.tip,
            expiry_slot=expiry_slot,
            callback_program=options.callback_program
        )
