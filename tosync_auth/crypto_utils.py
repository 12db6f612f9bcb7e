import base64
import binascii
from typing import Mapping, Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import BaseModel, ValidationError

from .config import DEFAULT_CIPHER, CipherSettings
from .errors import DecryptionFailed
from .log_handler import log
from .randomness import random_bytes


class EncryptedPayload(BaseModel):
    """
    Encrypted backup as stored on disk: three Base64 strings.

    ``data`` is the AES-GCM ciphertext with the 16-byte tag appended.
    """

    salt: str
    iv: str
    data: str


def _b64encode(raw: bytes) -> str:
    return base64.b64encode(raw).decode("ascii")


def _b64decode(text: str) -> bytes:
    return base64.b64decode(text.encode("ascii"), validate=True)


def derive_key(password: str, salt: bytes, settings: Optional[CipherSettings] = None) -> bytes:
    """
    Derive the AES-256 key from a password with PBKDF2-HMAC-SHA256.

    Encrypt and decrypt must use the same iteration count or decryption
    fails with DecryptionFailed.
    """
    settings = settings or DEFAULT_CIPHER
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=settings.key_bytes,
        salt=salt,
        iterations=settings.iterations,
        backend=default_backend(),
    )
    return kdf.derive(password.encode("utf-8"))


def encrypt(password: str, plaintext: str, settings: Optional[CipherSettings] = None) -> EncryptedPayload:
    """
    Encrypt a string under a password using AES-256-GCM.

    A fresh salt and IV are drawn for every call, so encrypting the same
    input twice never gives the same payload.

    Args:
        password: user-supplied password
        plaintext: serialized data (normally the JSON backup)

    Returns:
        EncryptedPayload with Base64 salt, iv and data

    Raises:
        RandomnessUnavailable if salt/IV cannot be generated.
    """
    settings = settings or DEFAULT_CIPHER

    salt = random_bytes(settings.salt_bytes)
    iv = random_bytes(settings.iv_bytes)
    key = derive_key(password, salt, settings)

    ciphertext = AESGCM(key).encrypt(iv, plaintext.encode("utf-8"), None)

    return EncryptedPayload(
        salt=_b64encode(salt),
        iv=_b64encode(iv),
        data=_b64encode(ciphertext),
    )


def decrypt(
    password: str,
    payload: Union[EncryptedPayload, Mapping],
    settings: Optional[CipherSettings] = None,
) -> str:
    """
    Decrypt a payload produced by encrypt().

    Returns:
        The original plaintext string

    Raises:
        DecryptionFailed on any failure. A wrong password and a corrupted
        or tampered payload are indistinguishable to the caller.
    """
    settings = settings or DEFAULT_CIPHER

    # 1. Validate shape and Base64-decode the three fields
    try:
        if not isinstance(payload, EncryptedPayload):
            payload = EncryptedPayload.model_validate(payload)
        salt = _b64decode(payload.salt)
        iv = _b64decode(payload.iv)
        ciphertext = _b64decode(payload.data)
    except (ValidationError, binascii.Error, UnicodeEncodeError) as exc:
        log.info("Rejected malformed encrypted payload: %s", type(exc).__name__)
        raise DecryptionFailed() from None

    # 2. Re-derive the key from the embedded salt and open the ciphertext
    try:
        key = derive_key(password, salt, settings)
        plaintext = AESGCM(key).decrypt(iv, ciphertext, None)
        return plaintext.decode("utf-8")
    except (InvalidTag, ValueError) as exc:
        # ValueError covers bad IV length and non-UTF-8 plaintext
        log.info("Backup decryption failed: %s", type(exc).__name__)
        raise DecryptionFailed() from None
