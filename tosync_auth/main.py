from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .backup import CipherPool
from .config import load_settings
from .crypto_utils import EncryptedPayload
from .errors import BackupFormatError, DecryptionFailed, InvalidCharacter, InvalidSecret, RandomnessUnavailable
from .log_handler import log
from .totp_utils import current_code, provision, verify

settings = load_settings()
cipher_pool = CipherPool(settings.cipher)

app = FastAPI(title="TOSync 2FA and Backup Service")


# ---------- Request Models ----------

class EnrollRequest(BaseModel):
    account: str
    issuer: Optional[str] = None


class Verify2FARequest(BaseModel):
    secret: str
    code: Optional[str] = None


class CurrentCodeRequest(BaseModel):
    secret: str


class EncryptRequest(BaseModel):
    password: str
    data: str


class DecryptRequest(BaseModel):
    password: str
    payload: EncryptedPayload


class ImportRequest(BaseModel):
    content: str
    password: Optional[str] = None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/health")
def health():
    return {"status": "ok"}


# ---------- Two-factor ----------

@app.post("/2fa/secret")
def create_secret(body: EnrollRequest):
    """
    Generate a new secret and the otpauth:// URI to show as a QR code.
    """
    try:
        enrollment = provision(body.account, body.issuer, settings.totp)
    except RandomnessUnavailable:
        log.error("Enrollment aborted: secure random source unavailable")
        return _error(503, "Secure random source unavailable")

    return {"secret": enrollment.secret, "uri": enrollment.uri}


@app.post("/2fa/verify")
def verify_2fa(body: Verify2FARequest):
    """
    Verify a 6-digit code with ±1 step tolerance.

    Malformed codes and bad secrets both come back as valid=false.
    """
    if body.code is None or body.code.strip() == "":
        return _error(400, "Missing code")

    return {"valid": verify(body.secret, body.code, settings=settings.totp)}


@app.post("/2fa/code")
def generate_2fa(body: CurrentCodeRequest):
    """
    Current code for a secret and the seconds it stays valid.
    """
    try:
        code, valid_for = current_code(body.secret, settings=settings.totp)
    except (InvalidCharacter, InvalidSecret):
        return _error(400, "Invalid secret")

    return {"code": code, "valid_for": valid_for}


# ---------- Backup ----------

@app.post("/backup/encrypt")
async def encrypt_backup(body: EncryptRequest):
    try:
        payload = await cipher_pool.encrypt(body.password, body.data)
    except RandomnessUnavailable:
        log.error("Encryption aborted: secure random source unavailable")
        return _error(503, "Secure random source unavailable")

    return payload.model_dump()


@app.post("/backup/decrypt")
async def decrypt_backup(body: DecryptRequest):
    try:
        data = await cipher_pool.decrypt(body.password, body.payload)
    except DecryptionFailed as exc:
        return _error(400, str(exc))

    return {"data": data}


@app.post("/backup/import")
async def import_backup(body: ImportRequest):
    """
    Accept either backup shape; encrypted files need the password.
    """
    try:
        data: Dict[str, Any] = await cipher_pool.import_backup(body.content, body.password)
    except (BackupFormatError, DecryptionFailed) as exc:
        return _error(400, str(exc))

    return {"data": data}
