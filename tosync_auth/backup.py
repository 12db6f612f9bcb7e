"""
Backup file handling: telling encrypted and plaintext backups apart,
encrypting exports and decrypting imports.

Cipher work is CPU-bound (100k PBKDF2 iterations per call), so async
callers go through CipherPool, which runs it on a bounded set of worker
threads.
"""

import copy
import datetime
import functools
import json
from typing import Any, Dict, Optional, Union

import anyio
import anyio.to_thread

from .config import DEFAULT_CIPHER, CipherSettings
from .crypto_utils import EncryptedPayload, decrypt, encrypt
from .errors import BackupFormatError
from .log_handler import log

ENCRYPTED_KEYS = ("salt", "iv", "data")
PLAINTEXT_KEYS = ("projects", "tasks", "users")

DEFAULT_INTEGRATIONS = {
    "teams": {
        "webhookUrl": "",
        "notifications": {
            "taskCreated": True,
            "taskInProgress": True,
            "taskCompleted": True,
        },
    },
    "timezone": "Asia/Kolkata",
}


def is_encrypted_backup(obj: Any) -> bool:
    return isinstance(obj, dict) and all(key in obj for key in ENCRYPTED_KEYS)


def is_plaintext_backup(obj: Any) -> bool:
    return isinstance(obj, dict) and all(key in obj for key in PLAINTEXT_KEYS)


def parse_backup(text: str) -> Union[EncryptedPayload, Dict[str, Any]]:
    """
    Parse a backup file and decide which shape it has.

    The encrypted shape is checked first; a file carrying both sets of
    keys is treated as encrypted.

    Raises:
        BackupFormatError if the text is not JSON or matches neither shape.
    """
    try:
        parsed = json.loads(text)
    except (TypeError, ValueError) as exc:
        raise BackupFormatError("Invalid backup file format.") from exc

    if is_encrypted_backup(parsed):
        try:
            return EncryptedPayload.model_validate(parsed)
        except ValueError as exc:
            raise BackupFormatError("Invalid backup file format.") from exc
    if is_plaintext_backup(parsed):
        return parsed
    raise BackupFormatError("Invalid backup file format.")


def with_defaults(data: Dict[str, Any]) -> Dict[str, Any]:
    """Fill the optional sections older backups may lack."""
    completed = dict(data)
    if not completed.get("auditLogs"):
        completed["auditLogs"] = []
    if not completed.get("integrations"):
        completed["integrations"] = copy.deepcopy(DEFAULT_INTEGRATIONS)
    return completed


def export_backup(data: Dict[str, Any], password: str, settings: Optional[CipherSettings] = None) -> str:
    """
    Serialize application data and encrypt it.

    Returns:
        JSON text of the EncryptedPayload, ready to write to disk
    """
    payload = encrypt(password, json.dumps(data), settings)
    log.info("Exported encrypted backup")
    return payload.model_dump_json()


def import_backup(
    text: str,
    password: Optional[str] = None,
    settings: Optional[CipherSettings] = None,
) -> Dict[str, Any]:
    """
    Read a backup file, decrypting it when it is encrypted.

    Raises:
        BackupFormatError for unrecognised files, or an encrypted file
        without a password.
        DecryptionFailed if the password is wrong or the file is corrupted.
    """
    parsed = parse_backup(text)

    if isinstance(parsed, EncryptedPayload):
        if password is None:
            raise BackupFormatError("Password required for encrypted backup.")
        decrypted = decrypt(password, parsed, settings)
        try:
            parsed = json.loads(decrypted)
        except ValueError as exc:
            raise BackupFormatError("Invalid backup file format.") from exc
        if not is_plaintext_backup(parsed):
            raise BackupFormatError("Invalid backup file format.")

    log.info("Imported backup")
    return with_defaults(parsed)


def backup_filename(day: Optional[datetime.date] = None) -> str:
    day = day or datetime.date.today()
    return f"tosync_backup_{day.isoformat()}.json.encrypted"


class CipherPool:
    """
    Runs encrypt/decrypt on worker threads, at most ``workers`` at a time.

    Each call completes fully or raises; nothing partial is returned.
    """

    def __init__(self, settings: Optional[CipherSettings] = None):
        self.settings = settings or DEFAULT_CIPHER
        self._limiter = None

    @property
    def limiter(self) -> anyio.CapacityLimiter:
        # created lazily: CapacityLimiter needs a running event loop on some backends
        if self._limiter is None:
            self._limiter = anyio.CapacityLimiter(self.settings.workers)
        return self._limiter

    async def _run(self, func, *args):
        return await anyio.to_thread.run_sync(
            functools.partial(func, *args, settings=self.settings),
            limiter=self.limiter,
        )

    async def encrypt(self, password: str, plaintext: str) -> EncryptedPayload:
        return await self._run(encrypt, password, plaintext)

    async def decrypt(self, password: str, payload) -> str:
        return await self._run(decrypt, password, payload)

    async def export_backup(self, data: Dict[str, Any], password: str) -> str:
        return await self._run(export_backup, data, password)

    async def import_backup(self, text: str, password: Optional[str] = None) -> Dict[str, Any]:
        return await self._run(import_backup, text, password)
