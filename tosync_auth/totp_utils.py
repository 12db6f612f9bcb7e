import datetime
import re
import time
from typing import NamedTuple, Optional, Tuple

import pyotp

from . import base32
from .config import DEFAULT_TOTP, TotpSettings
from .errors import InvalidCharacter, InvalidSecret, MalformedToken, RandomnessUnavailable
from .log_handler import log

_MAX_COUNTER = 2**64


class Enrollment(NamedTuple):
    secret: str
    uri: str


def _normalize_secret(secret: str) -> str:
    """
    Validate a stored Base32 secret and return it in canonical form.

    Raises:
        InvalidCharacter if the secret is not valid Base32.
        InvalidSecret if it decodes to an empty key.
    """
    key = base32.decode(secret)
    if not key:
        raise InvalidSecret("TOTP secret is empty")
    return base32.encode(key)


def _get_totp(secret: str, settings: TotpSettings) -> pyotp.TOTP:
    return pyotp.TOTP(_normalize_secret(secret), digits=settings.digits, interval=settings.step)


def _as_datetime(unix_seconds: float) -> datetime.datetime:
    # timezone-aware, so pyotp derives the counter from UTC, not local time
    return datetime.datetime.fromtimestamp(unix_seconds, tz=datetime.timezone.utc)


def generate_secret(settings: Optional[TotpSettings] = None) -> str:
    """
    Generate a new random TOTP secret.

    Returns:
        Unpadded Base32 string carrying 20 CSPRNG bytes (32 characters)

    Raises:
        RandomnessUnavailable if the OS random source cannot be read.
    """
    settings = settings or DEFAULT_TOTP
    try:
        return pyotp.random_base32(length=settings.secret_bytes * 8 // 5)
    except (NotImplementedError, OSError) as exc:
        raise RandomnessUnavailable("Secure random source unavailable") from exc


def hotp(secret_bytes: bytes, counter: int, digits: int = 6) -> str:
    """
    Compute an RFC 4226 HOTP value.

    Args:
        secret_bytes: raw shared secret (HMAC key)
        counter: moving factor, 0 <= counter < 2**64
        digits: length of the returned code

    Returns:
        Zero-padded decimal code, e.g. '012345'
    """
    if not 0 <= counter < _MAX_COUNTER:
        raise ValueError("counter must fit in an unsigned 64-bit integer")

    return pyotp.HOTP(base32.encode(secret_bytes), digits=digits).at(counter)


def timecode(unix_seconds: float, settings: Optional[TotpSettings] = None) -> int:
    settings = settings or DEFAULT_TOTP
    return int(unix_seconds // settings.step)


def totp(secret: str, unix_seconds: float, settings: Optional[TotpSettings] = None) -> str:
    """
    Compute the RFC 6238 TOTP code for a Base32 secret at a given time.

    Raises:
        InvalidCharacter if the secret is not valid Base32.
        InvalidSecret if the secret is empty.
    """
    settings = settings or DEFAULT_TOTP
    return _get_totp(secret, settings).at(_as_datetime(unix_seconds))


def check_token_shape(token, settings: Optional[TotpSettings] = None) -> str:
    settings = settings or DEFAULT_TOTP
    if not isinstance(token, str) or not re.fullmatch(r"\d{%d}" % settings.digits, token, re.ASCII):
        raise MalformedToken("Code must be a %d-digit number" % settings.digits)
    return token


def verify(
    secret: str,
    token: str,
    now: Optional[float] = None,
    settings: Optional[TotpSettings] = None,
) -> bool:
    """
    Verify a submitted TOTP code with clock drift tolerance.

    Args:
        secret: stored Base32 secret
        token: code typed by the user
        now: unix time to verify against (default: current time)
        settings: TOTP parameters; window=1 accepts the previous,
                  current and next 30s step

    Returns:
        True if the code matches any step in the window, False otherwise.
        Never raises for a bad code or a bad stored secret.
    """
    settings = settings or DEFAULT_TOTP

    try:
        check_token_shape(token, settings)
    except MalformedToken:
        # no HMAC work for codes of the wrong shape
        return False

    try:
        otp = _get_totp(secret, settings)
    except (InvalidCharacter, InvalidSecret) as exc:
        log.warning("TOTP verification against malformed secret: %s", exc)
        return False

    if now is None:
        now = time.time()

    if timecode(now, settings) >= settings.window:
        return otp.verify(token, for_time=_as_datetime(now), valid_window=settings.window)

    # Near the epoch the earliest steps of the window would be negative
    # counters, which pyotp rejects; check the remaining steps one by one.
    for drift in range(-settings.window, settings.window + 1):
        step_time = now + drift * settings.step
        if step_time < 0:
            continue
        if otp.verify(token, for_time=_as_datetime(step_time)):
            return True
    return False


def current_code(
    secret: str,
    now: Optional[float] = None,
    settings: Optional[TotpSettings] = None,
) -> Tuple[str, int]:
    """
    Returns (code, valid_for_seconds) for the current time step.
    """
    settings = settings or DEFAULT_TOTP
    if now is None:
        now = time.time()
    code = totp(secret, now, settings)
    valid_for = settings.step - (int(now) % settings.step)
    return code, valid_for


def build_uri(secret: str, account: str, issuer: Optional[str] = None) -> str:
    """
    Build the otpauth:// enrollment URI shown to the user as a QR code.

    Issuer and account are percent-encoded; the secret is passed through
    unchanged and must already be unpadded Base32.
    """
    issuer = issuer if issuer is not None else DEFAULT_TOTP.issuer
    return pyotp.TOTP(secret).provisioning_uri(name=account, issuer_name=issuer)


def provision(
    account: str,
    issuer: Optional[str] = None,
    settings: Optional[TotpSettings] = None,
) -> Enrollment:
    """
    Start two-factor enrollment for an account.

    The caller shows ``uri`` as a QR code and stores ``secret`` only after
    the user has confirmed a first code with verify().
    """
    settings = settings or DEFAULT_TOTP
    secret = generate_secret(settings)
    log.info("Generated TOTP enrollment secret")
    return Enrollment(secret, build_uri(secret, account, issuer or settings.issuer))
