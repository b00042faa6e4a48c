"""
ImageLocator - derives and verifies the address of a registered image.
"""
from typing import Optional, Union

from solders.pubkey import Pubkey

from .exceptions import ImageLookupFailed, ImageNotRegistered, ImageOwnerMismatch, InvalidImageId
from .ledger.exceptions import LedgerError
from .ledger.transport import LedgerTransport, derive_program_address
from .models import ImageAddress

IMAGE_ID_LEN = 32


def parse_image_id(image_id: Union[bytes, str]) -> bytes:
    """
    Normalize an image id to its 32 raw bytes.

    Args:
        image_id: Raw bytes or a hex string (with or without 0x prefix)

    Returns:
        The image id bytes

    Raises:
        InvalidImageId: If the value is not valid hex or not 32 bytes long
    """
    if isinstance(image_id, str):
        value = image_id[2:] if image_id.startswith("0x") else image_id
        try:
            image_id = bytes.fromhex(value)
        except ValueError as e:
            raise InvalidImageId(f"Image id is not valid hex: {image_id!r}", cause=e)
    if not isinstance(image_id, (bytes, bytearray)):
        raise InvalidImageId(f"Image id must be bytes or hex, got {type(image_id).__name__}")
    if len(image_id) != IMAGE_ID_LEN:
        raise InvalidImageId(f"Image id must be {IMAGE_ID_LEN} bytes, got {len(image_id)}")
    return bytes(image_id)


class ImageLocator:
    """Maps image ids to their program-derived addresses."""

    def __init__(self, program_id: Pubkey, ledger: Optional[LedgerTransport] = None):
        """
        Args:
            program_id: Program the image addresses are derived under
            ledger: Transport used by ``verify``; not needed for ``locate``
        """
        self.program_id = program_id
        self.ledger = ledger

    def locate(self, image_id: Union[bytes, str]) -> ImageAddress:
        """
        Derive the image address. Pure and deterministic.

        Raises:
            InvalidImageId: If the image id is not a 32-byte hash
        """
        raw = parse_image_id(image_id)
        address, bump = derive_program_address([raw], self.program_id)
        return ImageAddress(image_id=raw, program_id=self.program_id, address=address, bump=bump)

    def verify(self, image: ImageAddress, expected_owner: Optional[Pubkey] = None) -> ImageAddress:
        """
        Check that the image account exists and is owned by the expected program.

        Args:
            image: Address returned by ``locate``
            expected_owner: Owning program to check for (defaults to the locator's program)

        Returns:
            The same image address

        Raises:
            ImageNotRegistered: If no account exists at the address
            ImageOwnerMismatch: If the account belongs to another program
            ImageLookupFailed: If the account could not be read
        """
        if self.ledger is None:
            raise ValueError("A ledger transport is required to verify images")

        try:
            info = self.ledger.get_account(image.address)
        except LedgerError as e:
            raise ImageLookupFailed(f"Could not read image account {image.address}: {e}", cause=e)

        if not info.exists:
            raise ImageNotRegistered(f"Image {image.image_id_hex} is not registered at {image.address}")

        owner = expected_owner or self.program_id
        if info.owner != owner:
            raise ImageOwnerMismatch(
                f"Image account {image.address} is owned by {info.owner}, expected {owner}"
            )
        return image

    def locate_verified(self, image_id: Union[bytes, str], expected_owner: Optional[Pubkey] = None) -> ImageAddress:
        return self.verify(self.locate(image_id), expected_owner)
