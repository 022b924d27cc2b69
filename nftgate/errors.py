# nftgate/errors.py
"""
Rejected-request outcomes. Every failure a caller can cause is one of these;
the HTTP layer maps `status_code` and `kind` straight into the response.
"""


class NftGateError(Exception):
    kind = "NftGateError"
    status_code = 400
    default_detail = "request rejected"

    def __init__(self, detail: str = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidAddress(NftGateError):
    kind = "InvalidAddress"
    default_detail = "Invalid address"

class InvalidSubjectId(NftGateError):
    kind = "InvalidSubjectId"
    default_detail = "Profile ID must be greater than 0"

class InvalidQuantity(NftGateError):
    kind = "InvalidQuantity"
    default_detail = "Quantity must be greater than 0"

class InvalidTokenIds(NftGateError):
    kind = "InvalidTokenIds"
    default_detail = "Invalid tokenIds"

class MintingDisabled(NftGateError):
    kind = "MintingDisabled"
    status_code = 403
    default_detail = "Minting is not enabled"

class InvalidSignature(NftGateError):
    kind = "InvalidSignature"
    status_code = 401
    default_detail = "Invalid signature"

class Unauthorized(NftGateError):
    kind = "Unauthorized"
    status_code = 403
    default_detail = "caller is not authorized"

class TransferDisabled(NftGateError):
    kind = "TransferDisabled"
    status_code = 403
    default_detail = "Transfer not enabled"

class NotFound(NftGateError):
    kind = "NotFound"
    status_code = 404
    default_detail = "not found"

class StaleVersion(NftGateError):
    kind = "StaleVersion"
    status_code = 409
    default_detail = "version must be greater than the stored version"

class AlreadyMinted(NftGateError):
    kind = "AlreadyMinted"
    status_code = 409
    default_detail = "Profile already minted"

class SignatureReplayed(NftGateError):
    kind = "SignatureReplayed"
    status_code = 409
    default_detail = "Signature already used"

class SupplyExhausted(NftGateError):
    kind = "SupplyExhausted"
    status_code = 409
    default_detail = "Max supply reached"
