# nftgate/service.py
"""
Token family operations: administration, signature-gated minting, profile
updates, transfers and burns.

Every state-changing call runs inside `_transaction`: one process-wide lock
(the ledger is linearizable, one call completes before the next starts) and
one database transaction that is rolled back on any failure, so a rejected
request never leaves partial state behind. State is read only after the lock
is held: the session is expired and the family row reloaded, so a request
sees every commit made by other sessions before it.
"""
import logging
import threading
from contextlib import contextmanager
from typing import List, Sequence

from sqlalchemy.orm import Session

from nftgate import models, policy
from nftgate.authorizer import Recoverer, SignatureAuthorizer
from nftgate.codec import MintRequest, UpdateRequest, encode_handle
from nftgate.errors import (AlreadyMinted, InvalidQuantity, InvalidTokenIds, MintingDisabled, NftGateError,
                            NotFound, SignatureReplayed, SupplyExhausted, TransferDisabled, Unauthorized)
from nftgate.ledger import SqlLedger
from nftgate.registry import SqlRegistry
from nftgate.signing import Signature, recover, same_address, to_checksum_address

logger = logging.getLogger(__name__)

LEDGER_LOCK = threading.RLock()

FAMILY_PRESETS = {
    "generic": {"uri_suffix": ".json", "transferable": True, "max_supply": None},
    "profile": {"uri_suffix": ".json", "transferable": True, "max_supply": 10000},
    "single_auth": {"uri_suffix": "", "transferable": False, "max_supply": None},
}

PROFILE_HANDLES = ("twitter", "github", "telegram", "discord")

NOT_OWNER = "ERC721Burnable: caller is not owner nor approved"


class TokenService:
    def __init__(self, db: Session, recover: Recoverer = recover):
        self.db = db
        self.registry = SqlRegistry(db)
        self.authorizer = SignatureAuthorizer(self.registry, recover=recover, lock=LEDGER_LOCK)

    @contextmanager
    def _transaction(self, action: str, actor: str, target: str = None):
        audit = models.Audit(actor=actor, action=action, target=target, meta={})
        with LEDGER_LOCK:
            self.db.expire_all()
            try:
                yield audit
                self.db.add(audit)
                self.db.commit()
            except NftGateError as exc:
                self.db.rollback()
                logger.warning("%s by %s rejected: %s (%s)", action, actor, exc.kind, exc.detail)
                raise
            except Exception:
                self.db.rollback()
                raise
        logger.info("%s by %s committed target=%s", action, actor, audit.target)

    def _family(self, family_id: str, kind: str = None, for_update: bool = False) -> models.Family:
        family = self.registry.family(family_id, for_update=for_update)
        if kind is not None and family.kind != kind:
            raise NotFound(f"family {family_id} is not a {kind} family")
        return family

    def _ledger(self, family_id: str, kind: str = None, for_update: bool = False) -> SqlLedger:
        return SqlLedger(self.db, self._family(family_id, kind, for_update))

    def _check_supply(self, family: models.Family, quantity: int = 1):
        if family.max_supply is not None and family.next_token_id + quantity > family.max_supply:
            raise SupplyExhausted()

    # --- administration

    def create_family(self, caller: str, kind: str, name: str, symbol: str, base_uri: str = "",
                      authority: str = None, max_supply: int = None) -> models.Family:
        if kind not in FAMILY_PRESETS:
            raise ValueError(f"unknown family kind: {kind}")
        preset = FAMILY_PRESETS[kind]
        caller = to_checksum_address(caller)
        with self._transaction("create_family", caller) as audit:
            family = models.Family(
                kind=kind, name=name, symbol=symbol, base_uri=base_uri,
                uri_suffix=preset["uri_suffix"], transferable=preset["transferable"],
                max_supply=max_supply if max_supply is not None else preset["max_supply"],
                owner=caller, authority=policy.check_destination(authority) if authority else None,
                minting_enabled=False, next_token_id=0, total_burned=0,
            )
            self.db.add(family)
            self.db.flush()
            audit.target = family.family_id
        return family

    def enable_minting(self, family_id: str, caller: str) -> None:
        with self._transaction("enable_minting", caller, family_id):
            self.authorizer.enable_minting(family_id, caller)

    def setup_signer(self, family_id: str, caller: str, address: str) -> str:
        with self._transaction("setup_signer", caller, family_id) as audit:
            authority = self.authorizer.register_authority(family_id, caller, address)
            audit.meta = {"authority": authority}
        return authority

    # --- minting

    def safe_mint(self, family_id: str, caller: str, to: str, quantity: int) -> List[int]:
        """Administrator mints `quantity` consecutive tokens to `to`."""
        with self._transaction("safe_mint", caller) as audit:
            ledger = self._ledger(family_id, "generic", for_update=True)
            self.authorizer.require_admin(family_id, caller)
            if not ledger.family.minting_enabled:
                raise MintingDisabled()
            if quantity is None or quantity <= 0:
                raise InvalidQuantity()
            to = policy.check_destination(to)
            self._check_supply(ledger.family, quantity)
            start = ledger.next_token_id()
            token_ids = [ledger.mint(to, start + i).token_id for i in range(quantity)]
            audit.target = f"{family_id}:{start}..{token_ids[-1]}"
        return token_ids

    def mint_profile(self, family_id: str, caller: str, subject_id: int, handles: Sequence[str],
                     signature: Signature) -> models.Profile:
        """Mint the profile token for `subject_id` to the caller.

        A subject whose profile token was burned can be minted again.
        """
        with self._transaction("mint_profile", caller) as audit:
            ledger = self._ledger(family_id, "profile", for_update=True)
            to = policy.check_mint(ledger.family.minting_enabled, subject_id, caller)
            request = MintRequest(subject_id, tuple(handles))
            existing = (self.db.query(models.Profile)
                        .filter(models.Profile.family_id == family_id,
                                models.Profile.subject_id == str(subject_id))
                        .first())
            if existing is not None and ledger.exists(existing.token_id):
                raise AlreadyMinted()
            self._check_supply(ledger.family)
            self.authorizer.authorize(family_id, request.digest(), signature)
            token = ledger.mint(to, ledger.next_token_id())
            if existing is None:
                profile = models.Profile(family_id=family_id, subject_id=str(subject_id),
                                         token_id=token.token_id, handles=list(request.handles), version=0)
                self.db.add(profile)
            else:
                # re-mint after a burn keeps the stored version
                profile = existing
                profile.token_id = token.token_id
                profile.handles = list(request.handles)
            audit.target = f"{family_id}:{token.token_id}"
            audit.meta = {"subject_id": str(subject_id)}
        return profile

    def update_profile(self, family_id: str, caller: str, subject_id: int, handles: Sequence[str],
                       version: int, signature: Signature) -> models.Profile:
        with self._transaction("update_profile", caller) as audit:
            ledger = self._ledger(family_id, "profile", for_update=True)
            policy.check_subject(subject_id)
            profile = self.registry.profile(family_id, subject_id, for_update=True)
            if not same_address(ledger.owner_of(profile.token_id), caller):
                raise Unauthorized("caller does not own this profile")
            request = UpdateRequest(subject_id, tuple(handles), version)
            self.authorizer.authorize_and_consume(family_id, subject_id, request.digest(), signature, version)
            profile.handles = list(request.handles)
            audit.target = f"{family_id}:{profile.token_id}"
            audit.meta = {"subject_id": str(subject_id), "version": version}
        return profile

    def mint_handle(self, family_id: str, caller: str, to: str, handle: str, handle_type: str,
                    subject_id: int, signature: Signature) -> models.Token:
        """Mint a handle attestation token; one live token per signed attestation."""
        with self._transaction("mint_handle", caller) as audit:
            ledger = self._ledger(family_id, "single_auth", for_update=True)
            to = policy.check_mint(ledger.family.minting_enabled, subject_id, to)
            self.authorizer.authorize(family_id, encode_handle(subject_id, handle, handle_type), signature)
            live = (self.db.query(models.Token)
                    .filter(models.Token.family_id == family_id,
                            models.Token.subject_id == str(subject_id),
                            models.Token.handle == handle,
                            models.Token.handle_type == handle_type,
                            models.Token.burned.is_(False))
                    .first())
            if live is not None:
                raise SignatureReplayed()
            token = ledger.mint(to, ledger.next_token_id(), subject_id=str(subject_id),
                                handle=handle, handle_type=handle_type)
            audit.target = f"{family_id}:{token.token_id}"
        return token

    # --- transfers and burns

    def transfer(self, family_id: str, caller: str, from_address: str, to: str, token_id: int) -> None:
        with self._transaction("transfer", caller, f"{family_id}:{token_id}") as audit:
            ledger = self._ledger(family_id, for_update=True)
            if not ledger.family.transferable:
                raise TransferDisabled()
            to = policy.check_destination(to)
            owner = ledger.owner_of(token_id)
            if not same_address(owner, caller) or not same_address(owner, from_address):
                raise Unauthorized("ERC721: transfer caller is not owner nor approved")
            ledger.transfer(owner, to, token_id)
            audit.meta = {"from": owner, "to": to}

    def burn(self, family_id: str, caller: str, token_id: int) -> None:
        with self._transaction("burn", caller, f"{family_id}:{token_id}"):
            ledger = self._ledger(family_id, for_update=True)
            if not same_address(ledger.owner_of(token_id), caller):
                raise Unauthorized(NOT_OWNER)
            ledger.burn(token_id)

    def burn_batch(self, family_id: str, caller: str, token_ids: Sequence[int]) -> None:
        """Burn every listed token or none of them."""
        with self._transaction("burn_batch", caller, family_id) as audit:
            ledger = self._ledger(family_id, for_update=True)
            if not token_ids or len(set(token_ids)) != len(token_ids):
                raise InvalidTokenIds()
            for token_id in token_ids:
                if not same_address(ledger.owner_of(token_id), caller):
                    raise Unauthorized(NOT_OWNER)
            for token_id in token_ids:
                ledger.burn(token_id)
            audit.meta = {"token_ids": list(token_ids)}

    # --- queries

    def family(self, family_id: str) -> models.Family:
        return self._family(family_id)

    def ledger(self, family_id: str) -> SqlLedger:
        return self._ledger(family_id)

    def get_profile(self, family_id: str, subject_id: int):
        """Return (profile, current owner). A burned profile token is NotFound."""
        ledger = self._ledger(family_id, "profile")
        policy.check_subject(subject_id)
        profile = self.registry.profile(family_id, subject_id)
        return profile, ledger.owner_of(profile.token_id)
