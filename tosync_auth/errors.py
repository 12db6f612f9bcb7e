class TOSyncAuthError(Exception):
    """Base class for errors raised by this package."""


class InvalidCharacter(TOSyncAuthError, ValueError):
    """A Base32 string contains a character outside the RFC 4648 alphabet."""

    def __init__(self, char: str, position: int):
        self.char = char
        self.position = position
        super().__init__(f"Invalid Base32 character {char!r} at position {position}")


class InvalidSecret(TOSyncAuthError, ValueError):
    """A stored TOTP secret decodes to no key material."""


class MalformedToken(TOSyncAuthError, ValueError):
    """A submitted one-time code is not exactly six digits."""


class DecryptionFailed(TOSyncAuthError, ValueError):
    """Backup decryption failed. Deliberately carries no detail about why."""

    MESSAGE = "Incorrect password or corrupted file"

    def __init__(self):
        super().__init__(self.MESSAGE)


class RandomnessUnavailable(TOSyncAuthError, RuntimeError):
    """The operating system CSPRNG could not be read."""


class BackupFormatError(TOSyncAuthError, ValueError):
    """A backup file is neither an encrypted payload nor a plaintext backup."""
