# nftgate/signing.py
"""
secp256k1 signatures in the Ethereum personal-message style.

Authorities sign a request digest the way a wallet's `signMessage` does:
the 32-byte digest is prefixed with "\\x19Ethereum Signed Message:\\n32",
hashed with keccak256 and signed with a recoverable ECDSA signature. The
verifier never needs the authority's public key, it recovers the signer's
address from (digest, signature) and compares addresses.
"""
import re
from dataclasses import dataclass
from typing import Union

from coincurve import PrivateKey, PublicKey
from eth_hash.auto import keccak

from nftgate.codec import encode_mint
from nftgate.errors import InvalidAddress, InvalidSignature

SECP256K1_N = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
ZERO_ADDRESS = "0x" + "00" * 20

_ADDRESS_RE = re.compile(r"^(0x)?[0-9a-fA-F]{40}$")


def to_checksum_address(value: str) -> str:
    """EIP-55 mixed-case checksum encoding."""
    if not isinstance(value, str) or not _ADDRESS_RE.match(value):
        raise InvalidAddress(f"malformed address: {value!r}")
    lower = value.lower().replace("0x", "", 1)
    hashed = keccak(lower.encode("ascii")).hex()
    return "0x" + "".join(
        ch.upper() if int(hashed[i], 16) >= 8 else ch for i, ch in enumerate(lower)
    )


def is_zero_address(value: str) -> bool:
    return to_checksum_address(value) == ZERO_ADDRESS


def same_address(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return a.lower() == b.lower()


def public_key_to_address(public_key: PublicKey) -> str:
    raw = public_key.format(compressed=False)[1:]
    return to_checksum_address(keccak(raw)[-20:].hex())


def eth_signed_message_hash(digest: bytes) -> bytes:
    return keccak(b"\x19Ethereum Signed Message:\n" + str(len(digest)).encode() + digest)


def _as_bytes32(value: Union[str, bytes], name: str) -> bytes:
    if isinstance(value, str):
        text = value[2:] if value.startswith("0x") else value
        try:
            value = bytes.fromhex(text)
        except ValueError as exc:
            raise InvalidSignature(f"{name} is not hex") from exc
    if len(value) != 32:
        raise InvalidSignature(f"{name} must be 32 bytes")
    return bytes(value)


@dataclass(frozen=True)
class Signature:
    v: int
    r: bytes
    s: bytes

    @classmethod
    def from_parts(cls, v: int, r: Union[str, bytes], s: Union[str, bytes]) -> "Signature":
        if v in (0, 1):
            v += 27
        if v not in (27, 28):
            raise InvalidSignature(f"invalid v value: {v}")
        return cls(v=v, r=_as_bytes32(r, "r"), s=_as_bytes32(s, "s"))

    @classmethod
    def from_bytes(cls, raw: bytes) -> "Signature":
        """Parse the 65-byte r || s || v form."""
        if len(raw) != 65:
            raise InvalidSignature("signature must be 65 bytes")
        return cls.from_parts(raw[64], raw[:32], raw[32:64])

    @property
    def recovery_id(self) -> int:
        return self.v - 27

    def to_bytes(self) -> bytes:
        return self.r + self.s + bytes([self.v])

    def to_dict(self) -> dict:
        return {"v": self.v, "r": "0x" + self.r.hex(), "s": "0x" + self.s.hex()}


def recover(digest: bytes, signature: Signature) -> str:
    """Return the checksummed address that signed `digest`.

    Raises InvalidSignature for malformed input or when no key can be
    recovered. High-s signatures are rejected so each (digest, signer) pair
    has exactly one valid encoding.
    """
    if len(digest) != 32:
        raise InvalidSignature("digest must be 32 bytes")
    return recover_hash(eth_signed_message_hash(digest), signature)


def recover_hash(message_hash: bytes, signature: Signature) -> str:
    """Recover the signer of an already prefixed and hashed message."""
    r = int.from_bytes(signature.r, "big")
    s = int.from_bytes(signature.s, "big")
    if not 0 < r < SECP256K1_N or not 0 < s <= SECP256K1_N // 2:
        raise InvalidSignature("signature r/s out of range")
    if signature.recovery_id not in (0, 1):
        raise InvalidSignature(f"invalid v value: {signature.v}")
    compact = signature.r + signature.s + bytes([signature.recovery_id])
    try:
        public_key = PublicKey.from_signature_and_message(compact, message_hash, hasher=None)
    except ValueError as exc:
        raise InvalidSignature("signature recovery failed") from exc
    return public_key_to_address(public_key)


class LocalSigner:
    """Off-chain authority holding a secp256k1 private key."""

    def __init__(self, private_key: bytes = None):
        self._key = PrivateKey(private_key) if private_key is not None else PrivateKey()
        self.address = public_key_to_address(self._key.public_key)

    @classmethod
    def from_hex(cls, private_key_hex: str) -> "LocalSigner":
        text = private_key_hex[2:] if private_key_hex.startswith("0x") else private_key_hex
        return cls(bytes.fromhex(text))

    def sign_hash(self, message_hash: bytes) -> Signature:
        raw = self._key.sign_recoverable(message_hash, hasher=None)
        return Signature(v=raw[64] + 27, r=raw[:32], s=raw[32:64])

    def sign_digest(self, digest: bytes) -> Signature:
        return self.sign_hash(eth_signed_message_hash(digest))

    def sign_mint(self, subject_id: int, *handles: str) -> Signature:
        return self.sign_digest(encode_mint(subject_id, *handles))

    def __repr__(self):
        return f"LocalSigner({self.address})"
