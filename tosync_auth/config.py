"""
Named constants and settings for the TOTP engine and the backup cipher.

Every engine function accepts an optional settings object; leaving it out
means the production defaults below. Tests pass their own settings (for
example a reduced PBKDF2 iteration count) instead of patching constants.
"""

import os

from pydantic import BaseModel, ConfigDict, Field

# --- TOTP (RFC 6238) ---
TOTP_PERIOD = 30  # seconds
TOTP_DIGITS = 6
TOTP_WINDOW = 1  # steps accepted either side of the current one
SECRET_BYTES = 20  # 160-bit secrets
DEFAULT_ISSUER = "TOSync"

# --- Backup cipher ---
# Changing PBKDF2_ITERATIONS makes existing backups undecryptable with the
# new value; decrypt them with the old CipherSettings.
PBKDF2_ITERATIONS = 100_000
SALT_BYTES = 16
IV_BYTES = 12
KEY_BYTES = 32  # AES-256
CIPHER_WORKERS = 4


class TotpSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    step: int = Field(default=TOTP_PERIOD, gt=0)
    digits: int = Field(default=TOTP_DIGITS, ge=6, le=10)
    window: int = Field(default=TOTP_WINDOW, ge=0)
    secret_bytes: int = Field(default=SECRET_BYTES, ge=20)
    issuer: str = DEFAULT_ISSUER


class CipherSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    iterations: int = Field(default=PBKDF2_ITERATIONS, gt=0)
    salt_bytes: int = Field(default=SALT_BYTES, ge=16)
    iv_bytes: int = Field(default=IV_BYTES, ge=12)
    key_bytes: int = KEY_BYTES
    workers: int = Field(default=CIPHER_WORKERS, gt=0)


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    totp: TotpSettings = TotpSettings()
    cipher: CipherSettings = CipherSettings()


def load_settings() -> Settings:
    """
    Build settings from TOSYNC_* environment variables.

    Unset variables fall back to the module constants.
    """
    totp = TotpSettings(
        issuer=os.getenv("TOSYNC_ISSUER", DEFAULT_ISSUER),
        window=int(os.getenv("TOSYNC_TOTP_WINDOW", TOTP_WINDOW)),
    )
    cipher = CipherSettings(
        iterations=int(os.getenv("TOSYNC_PBKDF2_ITERATIONS", PBKDF2_ITERATIONS)),
        workers=int(os.getenv("TOSYNC_CIPHER_WORKERS", CIPHER_WORKERS)),
    )
    return Settings(totp=totp, cipher=cipher)


DEFAULT_TOTP = TotpSettings()
DEFAULT_CIPHER = CipherSettings()
