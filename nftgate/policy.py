# nftgate/policy.py
from nftgate.errors import InvalidAddress, InvalidSubjectId, MintingDisabled
from nftgate.signing import is_zero_address, to_checksum_address

def check_mint(minting_enabled: bool, subject_id: int, to: str) -> str:
    """
    Checks that run before any signature is looked at, in this order:
    minting enabled, subject id positive, destination not the zero address.
    Returns the checksummed destination.
    """
    if not minting_enabled:
        raise MintingDisabled()
    check_subject(subject_id)
    return check_destination(to)

def check_subject(subject_id: int) -> None:
    if subject_id is None or subject_id <= 0:
        raise InvalidSubjectId()

def check_destination(to: str) -> str:
    to = to_checksum_address(to)
    if is_zero_address(to):
        raise InvalidAddress()
    return to
