# nftgate/authorizer.py
"""
Signature authorization for privileged token operations.

A SignatureAuthorizer is constructed with an explicit registry holding, per
token family, the administrator, the single active authority address, the
minting flag and the last accepted version per subject. Verification always
re-reads the registry, so rotating the authority invalidates every signature
issued by the previous one immediately.
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Protocol

from nftgate.errors import InvalidAddress, InvalidSignature, NotFound, StaleVersion, Unauthorized
from nftgate.signing import Signature, is_zero_address, recover, same_address, to_checksum_address

logger = logging.getLogger(__name__)

Recoverer = Callable[[bytes, Signature], str]


class AuthorityRegistry(Protocol):
    def admin_of(self, family_id: str) -> str: ...
    def authority_of(self, family_id: str) -> Optional[str]: ...
    def set_authority(self, family_id: str, address: str) -> None: ...
    def minting_enabled(self, family_id: str) -> bool: ...
    def set_minting_enabled(self, family_id: str, enabled: bool) -> None: ...
    def stored_version(self, family_id: str, subject_id: int) -> int: ...
    def set_version(self, family_id: str, subject_id: int, version: int) -> None: ...


@dataclass
class _FamilyState:
    admin: str
    authority: Optional[str] = None
    minting_enabled: bool = False
    versions: Dict[int, int] = field(default_factory=dict)


class MemoryRegistry:
    """In-process registry; families must be added before use."""

    def __init__(self):
        self._families: Dict[str, _FamilyState] = {}

    def add_family(self, family_id: str, admin: str, authority: str = None):
        self._families[family_id] = _FamilyState(
            admin=to_checksum_address(admin),
            authority=to_checksum_address(authority) if authority else None,
        )

    def _get(self, family_id: str) -> _FamilyState:
        try:
            return self._families[family_id]
        except KeyError:
            raise NotFound(f"family {family_id} not found") from None

    def admin_of(self, family_id):
        return self._get(family_id).admin

    def authority_of(self, family_id):
        return self._get(family_id).authority

    def set_authority(self, family_id, address):
        self._get(family_id).authority = address

    def minting_enabled(self, family_id):
        return self._get(family_id).minting_enabled

    def set_minting_enabled(self, family_id, enabled):
        self._get(family_id).minting_enabled = enabled

    def stored_version(self, family_id, subject_id):
        return self._get(family_id).versions.get(subject_id, 0)

    def set_version(self, family_id, subject_id, version):
        self._get(family_id).versions[subject_id] = version


class SignatureAuthorizer:
    def __init__(self, registry: AuthorityRegistry, recover: Recoverer = recover, lock=None):
        self.registry = registry
        self._recover = recover
        self._lock = lock if lock is not None else threading.RLock()

    def require_admin(self, family_id: str, caller: str):
        if not same_address(self.registry.admin_of(family_id), caller):
            raise Unauthorized("Ownable: caller is not the owner")

    def register_authority(self, family_id: str, caller: str, address: str) -> str:
        self.require_admin(family_id, caller)
        address = to_checksum_address(address)
        if is_zero_address(address):
            raise InvalidAddress("authority cannot be the zero address")
        with self._lock:
            previous = self.registry.authority_of(family_id)
            self.registry.set_authority(family_id, address)
        logger.info("family %s authority %s -> %s", family_id, previous, address)
        return address

    def enable_minting(self, family_id: str, caller: str) -> None:
        self.require_admin(family_id, caller)
        with self._lock:
            self.registry.set_minting_enabled(family_id, True)
        logger.info("family %s minting enabled", family_id)

    def authorize(self, family_id: str, digest: bytes, signature: Signature) -> str:
        """Return the authority's address if it signed `digest`."""
        authority = self.registry.authority_of(family_id)
        if authority is None:
            raise InvalidSignature("no authority registered")
        signer = self._recover(digest, signature)
        if not same_address(signer, authority):
            logger.warning("family %s: signature from %s, authority is %s", family_id, signer, authority)
            raise InvalidSignature()
        return authority

    def authorize_and_consume(self, family_id: str, subject_id: int, digest: bytes,
                              signature: Signature, requested_version: int) -> str:
        """Authorize, then advance the subject's version to `requested_version`.

        The version check and the store happen under one lock so two callers
        racing on the same stale version cannot both succeed.
        """
        with self._lock:
            signer = self.authorize(family_id, digest, signature)
            stored = self.registry.stored_version(family_id, subject_id)
            if requested_version <= stored:
                raise StaleVersion(f"version {requested_version} <= stored version {stored}")
            self.registry.set_version(family_id, subject_id, requested_version)
        return signer
