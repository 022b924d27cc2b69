# nftgate/registry.py
from typing import Optional
from sqlalchemy.orm import Session

from nftgate import models
from nftgate.errors import NotFound


class SqlRegistry:
    """Authority registry backed by the families/profiles tables.

    Writes go to the caller's session and are committed by the caller, so a
    failure later in the same request rolls them back too.
    """

    def __init__(self, db: Session):
        self.db = db

    def family(self, family_id: str, for_update: bool = False) -> models.Family:
        if for_update:
            # another session may have committed since this one last read the row
            family = (self.db.query(models.Family)
                      .filter(models.Family.family_id == family_id)
                      .populate_existing()
                      .with_for_update()
                      .first())
        else:
            family = self.db.get(models.Family, family_id)
        if family is None:
            raise NotFound(f"family {family_id} not found")
        return family

    def profile(self, family_id: str, subject_id: int, for_update: bool = False) -> models.Profile:
        query = self.db.query(models.Profile).filter(
            models.Profile.family_id == family_id,
            models.Profile.subject_id == str(subject_id),
        )
        if for_update:
            query = query.populate_existing().with_for_update()
        profile = query.first()
        if profile is None:
            raise NotFound(f"profile {subject_id} not found")
        return profile

    def admin_of(self, family_id: str) -> str:
        return self.family(family_id).owner

    def authority_of(self, family_id: str) -> Optional[str]:
        return self.family(family_id).authority

    def set_authority(self, family_id: str, address: str) -> None:
        self.family(family_id).authority = address

    def minting_enabled(self, family_id: str) -> bool:
        return bool(self.family(family_id).minting_enabled)

    def set_minting_enabled(self, family_id: str, enabled: bool) -> None:
        self.family(family_id).minting_enabled = enabled

    def stored_version(self, family_id: str, subject_id: int) -> int:
        return int(self.profile(family_id, subject_id).version)

    def set_version(self, family_id: str, subject_id: int, version: int) -> None:
        self.profile(family_id, subject_id).version = version
