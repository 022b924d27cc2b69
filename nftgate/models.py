# nftgate/models.py
from sqlalchemy import (Column, String, DateTime, Boolean, JSON, ForeignKey, Integer,
                        BigInteger, UniqueConstraint)
from sqlalchemy.orm import relationship
import datetime
import uuid
from nftgate.db import Base

def gen_uuid():
    return str(uuid.uuid4())

def utcnow():
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)

class Family(Base):
    __tablename__ = "families"
    family_id = Column(String, primary_key=True, default=gen_uuid)
    kind = Column(String, nullable=False)  # generic | profile | single_auth
    name = Column(String, nullable=False)
    symbol = Column(String, nullable=False)
    base_uri = Column(String, nullable=False, default="")
    uri_suffix = Column(String, nullable=False, default="")
    owner = Column(String, nullable=False)  # administrator address
    authority = Column(String, nullable=True)
    minting_enabled = Column(Boolean, nullable=False, default=False)
    transferable = Column(Boolean, nullable=False, default=True)
    max_supply = Column(BigInteger, nullable=True)
    next_token_id = Column(BigInteger, nullable=False, default=0)
    total_burned = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)

    tokens = relationship("Token", back_populates="family")
    profiles = relationship("Profile", back_populates="family")

class Token(Base):
    __tablename__ = "tokens"
    __table_args__ = (UniqueConstraint("family_id", "token_id"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(String, ForeignKey("families.family_id"), nullable=False, index=True)
    token_id = Column(BigInteger, nullable=False)
    owner = Column(String, nullable=False, index=True)
    minted_at = Column(DateTime, default=utcnow)
    burned = Column(Boolean, nullable=False, default=False)
    burned_at = Column(DateTime, nullable=True)
    # single_auth attestation fields
    subject_id = Column(String, nullable=True)
    handle = Column(String, nullable=True)
    handle_type = Column(String, nullable=True)

    family = relationship("Family", back_populates="tokens")

class Profile(Base):
    __tablename__ = "profiles"
    __table_args__ = (UniqueConstraint("family_id", "subject_id"),)
    id = Column(Integer, primary_key=True, autoincrement=True)
    family_id = Column(String, ForeignKey("families.family_id"), nullable=False, index=True)
    subject_id = Column(String, nullable=False)  # decimal uint256
    token_id = Column(BigInteger, nullable=False)
    handles = Column(JSON, default=list)
    version = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    family = relationship("Family", back_populates="profiles")

class Audit(Base):
    __tablename__ = "audit"
    event_id = Column(String, primary_key=True, default=gen_uuid)
    actor = Column(String)
    action = Column(String)
    target = Column(String)
    ts = Column(DateTime, default=utcnow)
    meta = Column(JSON, default=dict)
