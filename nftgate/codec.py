# nftgate/codec.py
"""
Canonical digests for mint/update requests.

The digest is keccak256 over Solidity's tight packing (`abi.encodePacked`):
uint256 as 32 big-endian bytes, strings as raw UTF-8 with no length prefix.
Signers and verifiers must agree on this bit-for-bit, so field order and
types here mirror what the authority signs off-chain.
"""
from dataclasses import dataclass
from typing import Sequence, Tuple

from eth_hash.auto import keccak

UINT256_MAX = 2 ** 256 - 1
MAX_HANDLES = 4


def _encode_one(typ: str, value) -> bytes:
    if typ == "uint256":
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"uint256 expects int, got {type(value).__name__}")
        if value < 0 or value > UINT256_MAX:
            raise ValueError(f"uint256 out of range: {value}")
        return value.to_bytes(32, "big")
    if typ == "string":
        return value.encode("utf-8")
    raise ValueError(f"unsupported type: {typ}")


def encode_packed(types: Sequence[str], values: Sequence) -> bytes:
    if len(types) != len(values):
        raise ValueError("types and values differ in length")
    return b"".join(_encode_one(t, v) for t, v in zip(types, values))


def solidity_keccak(types: Sequence[str], values: Sequence) -> bytes:
    return keccak(encode_packed(types, values))


def encode_mint(subject_id: int, *handles: str) -> bytes:
    """Digest of (subject_id, handle1..handleN), N <= 4."""
    if len(handles) > MAX_HANDLES:
        raise ValueError(f"at most {MAX_HANDLES} handles, got {len(handles)}")
    return solidity_keccak(["uint256"] + ["string"] * len(handles), [subject_id, *handles])


def encode_update(subject_id: int, *handles: str) -> bytes:
    # The version being set is not part of the signed payload; authorities
    # sign profile updates with the same shape as mints.
    return encode_mint(subject_id, *handles)


def encode_handle(subject_id: int, handle: str, handle_type: str) -> bytes:
    return encode_mint(subject_id, handle, handle_type)


@dataclass(frozen=True)
class MintRequest:
    subject_id: int
    handles: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "handles", tuple(self.handles))
        if len(self.handles) > MAX_HANDLES:
            raise ValueError(f"at most {MAX_HANDLES} handles, got {len(self.handles)}")

    def digest(self) -> bytes:
        return encode_mint(self.subject_id, *self.handles)


@dataclass(frozen=True)
class UpdateRequest(MintRequest):
    version: int = 0

    def digest(self) -> bytes:
        return encode_update(self.subject_id, *self.handles)
