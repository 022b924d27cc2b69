# nftgate/ledger.py
"""
Ownership/balance store for one token family. Token ids are sequential per
family starting at 0; burned tokens keep their row with `burned` set so
ownership history stays queryable.
"""
from typing import NamedTuple
from datetime import datetime
from sqlalchemy import func
from sqlalchemy.orm import Session

from nftgate import models
from nftgate.errors import NotFound, InvalidAddress
from nftgate.signing import is_zero_address, same_address, to_checksum_address


class TokenOwnership(NamedTuple):
    owner: str
    start_timestamp: datetime
    burned: bool


class SqlLedger:
    def __init__(self, db: Session, family: models.Family):
        self.db = db
        self.family = family

    def _row(self, token_id: int) -> models.Token:
        return (self.db.query(models.Token)
                .filter(models.Token.family_id == self.family.family_id,
                        models.Token.token_id == token_id)
                .first())

    def _live(self, token_id: int) -> models.Token:
        row = self._row(token_id)
        if row is None or row.burned:
            raise NotFound("Nonexistent token")
        return row

    def token(self, token_id: int) -> models.Token:
        return self._live(token_id)

    def next_token_id(self) -> int:
        return self.family.next_token_id

    def mint(self, owner: str, token_id: int, **attestation) -> models.Token:
        owner = to_checksum_address(owner)
        if is_zero_address(owner):
            raise InvalidAddress()
        if token_id != self.family.next_token_id:
            raise ValueError(f"token ids are sequential, expected {self.family.next_token_id}")
        row = models.Token(family_id=self.family.family_id, token_id=token_id, owner=owner, **attestation)
        self.db.add(row)
        self.family.next_token_id = token_id + 1
        self.db.flush()
        return row

    def burn(self, token_id: int) -> None:
        row = self._live(token_id)
        row.burned = True
        row.burned_at = models.utcnow()
        self.family.total_burned = self.family.total_burned + 1

    def transfer(self, from_address: str, to: str, token_id: int) -> None:
        row = self._live(token_id)
        if not same_address(row.owner, from_address):
            raise ValueError("transfer from incorrect owner")
        row.owner = to_checksum_address(to)

    def balance_of(self, owner: str) -> int:
        owner = to_checksum_address(owner)
        return (self.db.query(func.count(models.Token.id))
                .filter(models.Token.family_id == self.family.family_id,
                        models.Token.owner == owner,
                        models.Token.burned.is_(False))
                .scalar())

    def owner_of(self, token_id: int) -> str:
        return self._live(token_id).owner

    def exists(self, token_id: int) -> bool:
        row = self._row(token_id)
        return row is not None and not row.burned

    def token_uri(self, token_id: int) -> str:
        self._live(token_id)
        base = self.family.base_uri or ""
        sep = "" if not base or base.endswith("/") else "/"
        return f"{base}{sep}{token_id}{self.family.uri_suffix or ''}"

    def ownership_of(self, token_id: int) -> TokenOwnership:
        row = self._live(token_id)
        return TokenOwnership(row.owner, row.minted_at, False)

    def ownership_at(self, token_id: int) -> TokenOwnership:
        """Raw ownership record, including burned tokens."""
        row = self._row(token_id)
        if row is None:
            raise NotFound("Nonexistent token")
        return TokenOwnership(row.owner, row.minted_at, bool(row.burned))

    def total_minted(self) -> int:
        return self.family.next_token_id

    def total_burned(self) -> int:
        return self.family.total_burned
