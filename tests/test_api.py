"""
HTTP surface: bearer-token callers, error kinds and status codes, and the
profile mint/update flow end to end.
"""
from fastapi.testclient import TestClient

from nftgate.main import app
from nftgate.signing import ZERO_ADDRESS
from nftgate.utils import issue_caller_token

client = TestClient(app)

HANDLES = ["twitter handle", "github handle", "telegram handle", "discord handle"]


def _auth(signer):
    return {"Authorization": f"Bearer {issue_caller_token(signer.address)}"}


def _create_family(accounts, kind="profile", **extra):
    body = {"kind": kind, "name": "Lens Profile Extend", "symbol": "LPE", "base_uri": "https://lens.finance/"}
    body.update(extra)
    res = client.post("/families", json=body, headers=_auth(accounts.deployer))
    assert res.status_code == 200, res.text
    return res.json()


def test_mutations_require_bearer_token(accounts):
    res = client.post("/families", json={"kind": "generic", "name": "x", "symbol": "X"})
    assert res.status_code == 403
    assert res.json() == {"kind": "Unauthorized", "detail": "missing bearer token"}


def test_garbage_bearer_token_rejected(accounts):
    res = client.post("/families", json={"kind": "generic", "name": "x", "symbol": "X"},
                      headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 403
    assert res.json()["kind"] == "Unauthorized"


def test_family_created_disabled(accounts):
    family = _create_family(accounts)
    assert family["owner"] == accounts.deployer.address
    assert family["minting_enabled"] is False
    assert family["max_supply"] == 10000
    assert family["total_minted"] == 0

    res = client.get(f"/families/{family['family_id']}")
    assert res.status_code == 200
    assert res.json()["symbol"] == "LPE"


def test_unknown_family_is_404():
    res = client.get("/families/does-not-exist")
    assert res.status_code == 404
    assert res.json()["kind"] == "NotFound"


def test_profile_flow(accounts):
    family_id = _create_family(accounts)["family_id"]
    base = f"/families/{family_id}"

    res = client.post(f"{base}/minting", headers=_auth(accounts.alice))
    assert res.status_code == 403
    assert res.json()["detail"] == "Ownable: caller is not the owner"

    res = client.put(f"{base}/authority", json={"address": accounts.signer.address},
                     headers=_auth(accounts.deployer))
    assert res.json()["authority"] == accounts.signer.address

    mint = {"subject_id": 2, "handles": ["twitter handle", "", "", ""],
            "signature": accounts.signer.sign_mint(2, "twitter handle", "", "", "").to_dict()}
    res = client.post(f"{base}/profiles", json=mint, headers=_auth(accounts.bob))
    assert res.status_code == 403
    assert res.json()["kind"] == "MintingDisabled"

    assert client.post(f"{base}/minting", headers=_auth(accounts.deployer)).json()["minting_enabled"] is True

    res = client.post(f"{base}/profiles", json=mint, headers=_auth(accounts.bob))
    assert res.status_code == 200, res.text
    profile = res.json()
    assert profile["owner"] == accounts.bob.address
    assert profile["token_id"] == 0
    assert profile["github"] == ""

    update = {"handles": ["twitter handle", "github handle", "", ""], "version": 1,
              "signature": accounts.signer.sign_mint(2, "twitter handle", "github handle", "", "").to_dict()}
    res = client.put(f"{base}/profiles/2", json=update, headers=_auth(accounts.bob))
    assert res.status_code == 200, res.text
    assert res.json()["github"] == "github handle"
    assert res.json()["version"] == 1

    res = client.put(f"{base}/profiles/2", json=update, headers=_auth(accounts.bob))
    assert res.status_code == 409
    assert res.json()["kind"] == "StaleVersion"

    res = client.get(f"{base}/tokens/0")
    assert res.json()["uri"] == "https://lens.finance/0.json"
    assert client.get(f"{base}/balances/{accounts.bob.address}").json()["balance"] == 1


def test_profile_mint_errors(accounts):
    family_id = _create_family(accounts, authority=accounts.signer.address)["family_id"]
    base = f"/families/{family_id}"
    client.post(f"{base}/minting", headers=_auth(accounts.deployer))
    sig = accounts.signer.sign_mint(1, *HANDLES).to_dict()

    res = client.post(f"{base}/profiles", json={"subject_id": 0, "handles": HANDLES, "signature": sig},
                      headers=_auth(accounts.alice))
    assert res.status_code == 400
    assert res.json()["kind"] == "InvalidSubjectId"

    bad = accounts.alice.sign_mint(1, *HANDLES).to_dict()
    res = client.post(f"{base}/profiles", json={"subject_id": 1, "handles": HANDLES, "signature": bad},
                      headers=_auth(accounts.alice))
    assert res.status_code == 401
    assert res.json()["detail"] == "Invalid signature"

    malformed = dict(sig, r="0x1234")
    res = client.post(f"{base}/profiles", json={"subject_id": 1, "handles": HANDLES, "signature": malformed},
                      headers=_auth(accounts.alice))
    assert res.json()["kind"] == "InvalidSignature"

    res = client.post(f"{base}/profiles", json={"subject_id": 1, "handles": HANDLES[:3], "signature": sig},
                      headers=_auth(accounts.alice))
    assert res.status_code == 422

    res = client.get(f"{base}/tokens/0")
    assert res.status_code == 404


def test_single_auth_handles_and_batch_burn(accounts):
    family = _create_family(accounts, kind="single_auth", name="Single Auth NFT", symbol="SANFT",
                            base_uri="https://www.lens-profile.xyz/", authority=accounts.deployer.address)
    base = f"/families/{family['family_id']}"
    assert family["transferable"] is False
    client.post(f"{base}/minting", headers=_auth(accounts.deployer))

    def mint(to, handle, handle_type, subject_id):
        body = {"to": to, "handle": handle, "handle_type": handle_type, "subject_id": subject_id,
                "signature": accounts.deployer.sign_mint(subject_id, handle, handle_type).to_dict()}
        return client.post(f"{base}/handles", json=body, headers=_auth(accounts.bob))

    res = mint(ZERO_ADDRESS, "@zhexiang.eth", "twitter", 2)
    assert res.status_code == 400
    assert res.json()["detail"] == "Invalid address"

    assert mint(accounts.bob.address, "@zhexiang.eth", "twitter", 2).json()["uri"] == "https://www.lens-profile.xyz/0"
    assert mint(accounts.bob.address, "zhexiang", "github", 2).json()["token_id"] == 1
    assert mint(accounts.bob.address, "zhexiang", "github", 2).json()["kind"] == "SignatureReplayed"

    res = client.post(f"{base}/tokens/0/transfer",
                      json={"from_address": accounts.bob.address, "to": accounts.alice.address},
                      headers=_auth(accounts.bob))
    assert res.status_code == 403
    assert res.json()["kind"] == "TransferDisabled"

    res = client.post(f"{base}/burn-batch", json={"token_ids": []}, headers=_auth(accounts.bob))
    assert res.json()["detail"] == "Invalid tokenIds"

    res = client.post(f"{base}/burn-batch", json={"token_ids": [0, 1]}, headers=_auth(accounts.alice))
    assert res.json()["kind"] == "Unauthorized"

    res = client.post(f"{base}/burn-batch", json={"token_ids": [0, 1]}, headers=_auth(accounts.bob))
    assert res.status_code == 200
    assert client.get(f"{base}/balances/{accounts.bob.address}").json()["balance"] == 0

    res = client.get(f"{base}/tokens/1/ownership")
    assert res.json()["burned"] is True
    assert client.get(f"/families/{family['family_id']}").json()["total_burned"] == 2


def test_generic_mint_and_burn(accounts):
    family = _create_family(accounts, kind="generic", name="ERC721a", symbol="NFTa", base_uri="https://ipfs.io/ipfs")
    base = f"/families/{family['family_id']}"
    client.post(f"{base}/minting", headers=_auth(accounts.deployer))

    res = client.post(f"{base}/mint", json={"to": accounts.alice.address, "quantity": 1},
                      headers=_auth(accounts.alice))
    assert res.status_code == 403

    res = client.post(f"{base}/mint", json={"to": accounts.alice.address, "quantity": 5},
                      headers=_auth(accounts.deployer))
    assert res.json()["token_ids"] == [0, 1, 2, 3, 4]
    assert client.get(f"{base}/tokens/1").json()["uri"] == "https://ipfs.io/ipfs/1.json"
    assert client.get(f"{base}/tokens/19").status_code == 404

    res = client.delete(f"{base}/tokens/4", headers=_auth(accounts.alice))
    assert res.status_code == 200
    assert client.get(f"{base}/balances/{accounts.alice.address}").json()["balance"] == 4
