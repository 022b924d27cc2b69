# nftgate/schemas.py
from pydantic import BaseModel, Field
from typing import List, Literal, Optional

from nftgate.codec import UINT256_MAX
from nftgate.signing import Signature

class SignatureIn(BaseModel):
    v: int
    r: str
    s: str

    def to_signature(self) -> Signature:
        return Signature.from_parts(self.v, self.r, self.s)

class FamilyIn(BaseModel):
    kind: Literal["generic", "profile", "single_auth"]
    name: str
    symbol: str
    base_uri: str = ""
    authority: Optional[str] = None
    max_supply: Optional[int] = Field(default=None, ge=1)

class FamilyOut(BaseModel):
    family_id: str
    kind: str
    name: str
    symbol: str
    base_uri: str
    owner: str
    authority: Optional[str] = None
    minting_enabled: bool
    transferable: bool
    max_supply: Optional[int] = None
    total_minted: int
    total_burned: int

class AuthorityIn(BaseModel):
    address: str

class SafeMintIn(BaseModel):
    to: str
    quantity: int = Field(ge=0)

class SafeMintOut(BaseModel):
    token_ids: List[int]

# subject ids are uint256; zero and negatives pass validation so the
# service can reject them with InvalidSubjectId
class ProfileMintIn(BaseModel):
    subject_id: int = Field(le=UINT256_MAX)
    handles: List[str] = Field(min_length=4, max_length=4)
    signature: SignatureIn

class ProfileUpdateIn(BaseModel):
    handles: List[str] = Field(min_length=4, max_length=4)
    version: int = Field(ge=0, le=2 ** 63 - 1)
    signature: SignatureIn

class ProfileOut(BaseModel):
    subject_id: str
    token_id: int
    owner: str
    twitter: str
    github: str
    telegram: str
    discord: str
    version: int

class HandleMintIn(BaseModel):
    to: str
    handle: str
    handle_type: str
    subject_id: int = Field(le=UINT256_MAX)
    signature: SignatureIn

class TokenOut(BaseModel):
    token_id: int
    owner: str
    uri: str
    subject_id: Optional[str] = None
    handle: Optional[str] = None
    handle_type: Optional[str] = None

class OwnershipOut(BaseModel):
    owner: str
    start_timestamp: str
    burned: bool

class TransferIn(BaseModel):
    from_address: str
    to: str

class BurnBatchIn(BaseModel):
    token_ids: List[int]

class BalanceOut(BaseModel):
    owner: str
    balance: int
