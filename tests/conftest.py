"""
Shared fixtures. The API module binds its engine at import time, so the
database URL and JWT secret are pinned here before anything from nftgate is
imported.
"""
import os
import tempfile

_TMP = tempfile.mkdtemp(prefix="nftgate-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_TMP, "api.db")
os.environ["NFTGATE_JWT_SECRET"] = "test_secret_for_nftgate_tests_that_is_long_enough"

import pytest
from sqlalchemy.orm import sessionmaker

from nftgate.db import init_db, make_engine
from nftgate.service import TokenService
from nftgate.signing import LocalSigner


def _key(n: int) -> bytes:
    return n.to_bytes(32, "big")


class Accounts:
    """Four fixed keys playing the roles used throughout the suite."""

    def __init__(self):
        self.deployer = LocalSigner(_key(1))
        self.alice = LocalSigner(_key(2))
        self.bob = LocalSigner(_key(3))
        self.signer = LocalSigner(_key(4))


class RecoverSpy:
    """Wraps `recover` and counts calls."""

    def __init__(self):
        from nftgate.signing import recover
        self._recover = recover
        self.calls = 0

    def __call__(self, digest, signature):
        self.calls += 1
        return self._recover(digest, signature)


@pytest.fixture
def accounts():
    return Accounts()


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def recover_spy():
    return RecoverSpy()


@pytest.fixture
def service(db, recover_spy):
    return TokenService(db, recover=recover_spy)
