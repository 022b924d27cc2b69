# nftgate/main.py
from fastapi import FastAPI, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional
from sqlalchemy.orm import Session
import logging
import os

from nftgate.db import SessionLocal, init_db
from nftgate import schemas, utils
from nftgate.errors import NftGateError, Unauthorized
from nftgate.service import PROFILE_HANDLES, TokenService

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(title="NFT Gate - signature-gated minting")

# Initialize DB
init_db()

_bearer = HTTPBearer(auto_error=False)

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_service(db: Session = Depends(get_db)) -> TokenService:
    return TokenService(db)

def get_caller(credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)) -> str:
    if credentials is None:
        raise Unauthorized("missing bearer token")
    return utils.verify_caller_token(credentials.credentials)

@app.exception_handler(NftGateError)
async def nftgate_error_handler(request: Request, exc: NftGateError):
    return JSONResponse(status_code=exc.status_code, content={"kind": exc.kind, "detail": exc.detail})

def family_out(service: TokenService, family_id: str) -> dict:
    family = service.family(family_id)
    return {
        "family_id": family.family_id,
        "kind": family.kind,
        "name": family.name,
        "symbol": family.symbol,
        "base_uri": family.base_uri,
        "owner": family.owner,
        "authority": family.authority,
        "minting_enabled": family.minting_enabled,
        "transferable": family.transferable,
        "max_supply": family.max_supply,
        "total_minted": family.next_token_id,
        "total_burned": family.total_burned,
    }

# --- Families: creation and administration
@app.post("/families", response_model=schemas.FamilyOut)
def create_family(payload: schemas.FamilyIn, caller: str = Depends(get_caller),
                  service: TokenService = Depends(get_service)):
    family = service.create_family(caller, payload.kind, payload.name, payload.symbol,
                                   base_uri=payload.base_uri, authority=payload.authority,
                                   max_supply=payload.max_supply)
    return family_out(service, family.family_id)

@app.get("/families/{family_id}", response_model=schemas.FamilyOut)
def get_family(family_id: str, service: TokenService = Depends(get_service)):
    return family_out(service, family_id)

@app.post("/families/{family_id}/minting", response_model=schemas.FamilyOut)
def enable_minting(family_id: str, caller: str = Depends(get_caller),
                   service: TokenService = Depends(get_service)):
    service.enable_minting(family_id, caller)
    return family_out(service, family_id)

@app.put("/families/{family_id}/authority", response_model=schemas.FamilyOut)
def setup_signer(family_id: str, payload: schemas.AuthorityIn, caller: str = Depends(get_caller),
                 service: TokenService = Depends(get_service)):
    service.setup_signer(family_id, caller, payload.address)
    return family_out(service, family_id)

# --- Minting
@app.post("/families/{family_id}/mint", response_model=schemas.SafeMintOut)
def safe_mint(family_id: str, payload: schemas.SafeMintIn, caller: str = Depends(get_caller),
              service: TokenService = Depends(get_service)):
    token_ids = service.safe_mint(family_id, caller, payload.to, payload.quantity)
    return {"token_ids": token_ids}

def profile_out(service: TokenService, family_id: str, subject_id: int) -> dict:
    profile, owner = service.get_profile(family_id, subject_id)
    out = {"subject_id": profile.subject_id, "token_id": profile.token_id,
           "owner": owner, "version": profile.version}
    out.update(zip(PROFILE_HANDLES, profile.handles))
    return out

@app.post("/families/{family_id}/profiles", response_model=schemas.ProfileOut)
def mint_profile(family_id: str, payload: schemas.ProfileMintIn, caller: str = Depends(get_caller),
                 service: TokenService = Depends(get_service)):
    service.mint_profile(family_id, caller, payload.subject_id, payload.handles,
                         payload.signature.to_signature())
    return profile_out(service, family_id, payload.subject_id)

@app.put("/families/{family_id}/profiles/{subject_id}", response_model=schemas.ProfileOut)
def update_profile(family_id: str, subject_id: int, payload: schemas.ProfileUpdateIn,
                   caller: str = Depends(get_caller), service: TokenService = Depends(get_service)):
    service.update_profile(family_id, caller, subject_id, payload.handles, payload.version,
                           payload.signature.to_signature())
    return profile_out(service, family_id, subject_id)

@app.get("/families/{family_id}/profiles/{subject_id}", response_model=schemas.ProfileOut)
def get_profile(family_id: str, subject_id: int, service: TokenService = Depends(get_service)):
    return profile_out(service, family_id, subject_id)

@app.post("/families/{family_id}/handles", response_model=schemas.TokenOut)
def mint_handle(family_id: str, payload: schemas.HandleMintIn, caller: str = Depends(get_caller),
                service: TokenService = Depends(get_service)):
    token = service.mint_handle(family_id, caller, payload.to, payload.handle, payload.handle_type,
                                payload.subject_id, payload.signature.to_signature())
    return token_out(service, family_id, token.token_id)

# --- Tokens
def token_out(service: TokenService, family_id: str, token_id: int) -> dict:
    ledger = service.ledger(family_id)
    row = ledger.token(token_id)
    return {"token_id": row.token_id, "owner": row.owner, "uri": ledger.token_uri(token_id),
            "subject_id": row.subject_id, "handle": row.handle, "handle_type": row.handle_type}

@app.get("/families/{family_id}/tokens/{token_id}", response_model=schemas.TokenOut)
def get_token(family_id: str, token_id: int, service: TokenService = Depends(get_service)):
    return token_out(service, family_id, token_id)

@app.get("/families/{family_id}/tokens/{token_id}/ownership", response_model=schemas.OwnershipOut)
def get_ownership(family_id: str, token_id: int, service: TokenService = Depends(get_service)):
    ownership = service.ledger(family_id).ownership_at(token_id)
    return {"owner": ownership.owner, "start_timestamp": ownership.start_timestamp.isoformat(),
            "burned": ownership.burned}

@app.post("/families/{family_id}/tokens/{token_id}/transfer", response_model=schemas.TokenOut)
def transfer(family_id: str, token_id: int, payload: schemas.TransferIn, caller: str = Depends(get_caller),
             service: TokenService = Depends(get_service)):
    service.transfer(family_id, caller, payload.from_address, payload.to, token_id)
    return token_out(service, family_id, token_id)

@app.delete("/families/{family_id}/tokens/{token_id}")
def burn(family_id: str, token_id: int, caller: str = Depends(get_caller),
         service: TokenService = Depends(get_service)):
    service.burn(family_id, caller, token_id)
    return JSONResponse({"ok": True})

@app.post("/families/{family_id}/burn-batch")
def burn_batch(family_id: str, payload: schemas.BurnBatchIn, caller: str = Depends(get_caller),
               service: TokenService = Depends(get_service)):
    service.burn_batch(family_id, caller, payload.token_ids)
    return JSONResponse({"ok": True, "burned": payload.token_ids})

@app.get("/families/{family_id}/balances/{owner}", response_model=schemas.BalanceOut)
def balance_of(family_id: str, owner: str, service: TokenService = Depends(get_service)):
    ledger = service.ledger(family_id)
    return {"owner": owner, "balance": ledger.balance_of(owner)}
