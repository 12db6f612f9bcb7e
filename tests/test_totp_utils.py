import pyotp
import pytest

from tosync_auth import base32, totp_utils
from tosync_auth.config import TotpSettings
from tosync_auth.errors import InvalidCharacter, InvalidSecret, MalformedToken, RandomnessUnavailable
from tosync_auth.totp_utils import build_uri, current_code, generate_secret, hotp, provision, timecode, totp, verify

from .vectors import HOTP_VECTORS, RFC_SECRET, RFC_SECRET_B32, TOTP_VECTORS


# ---------- HOTP ----------

@pytest.mark.parametrize("counter,expected", list(enumerate(HOTP_VECTORS)))
def test_hotp_matches_rfc4226_vectors(counter, expected):
    assert hotp(RFC_SECRET, counter) == expected


def test_hotp_zero_pads():
    codes = [hotp(RFC_SECRET, counter) for counter in range(200)]
    assert all(len(code) == 6 and code.isdigit() for code in codes)


@pytest.mark.parametrize("counter", [-1, 2**64])
def test_hotp_rejects_counter_outside_uint64(counter):
    with pytest.raises(ValueError):
        hotp(RFC_SECRET, counter)


# ---------- TOTP ----------

@pytest.mark.parametrize("unix_time,expected", TOTP_VECTORS)
def test_totp_matches_rfc6238_vectors(unix_time, expected):
    assert totp(RFC_SECRET_B32, unix_time) == expected[-6:]
    assert totp(RFC_SECRET_B32, unix_time, TotpSettings(digits=8)) == expected


def test_timecode_uses_30_second_steps():
    assert timecode(0) == 0
    assert timecode(29.999) == 0
    assert timecode(30) == 1
    assert timecode(59) == 1
    assert timecode(1111111109) == 37037036


def test_totp_rejects_bad_secret():
    with pytest.raises(InvalidCharacter):
        totp("NOT-BASE32!", 0)


def test_current_code_reports_remaining_seconds():
    assert current_code(RFC_SECRET_B32, now=1111111109) == ("081804", 1)
    assert current_code(RFC_SECRET_B32, now=1111111080) == ("081804", 30)


# ---------- verify ----------

COUNTER = 37037036
TOKEN = "081804"


@pytest.mark.parametrize("offset", range(30))
def test_verify_accepts_anywhere_in_current_step(offset):
    assert verify(RFC_SECRET_B32, TOKEN, now=COUNTER * 30 + offset)


@pytest.mark.parametrize("now", [(COUNTER - 1) * 30, (COUNTER - 1) * 30 + 29, (COUNTER + 1) * 30, (COUNTER + 1) * 30 + 29])
def test_verify_tolerates_one_step_of_drift(now):
    assert verify(RFC_SECRET_B32, TOKEN, now=now)


@pytest.mark.parametrize("now", [(COUNTER - 2) * 30 + 29, (COUNTER + 2) * 30])
def test_verify_rejects_two_steps_of_drift(now):
    assert not verify(RFC_SECRET_B32, TOKEN, now=now)


def test_verify_zero_window():
    settings = TotpSettings(window=0)
    assert verify(RFC_SECRET_B32, TOKEN, now=COUNTER * 30, settings=settings)
    assert not verify(RFC_SECRET_B32, TOKEN, now=(COUNTER + 1) * 30, settings=settings)


def test_verify_at_epoch_skips_negative_counter():
    assert verify(RFC_SECRET_B32, HOTP_VECTORS[0], now=0)
    assert verify(RFC_SECRET_B32, HOTP_VECTORS[1], now=0)


def test_verify_defaults_to_current_time():
    secret = generate_secret()
    assert verify(secret, pyotp.TOTP(secret).now())


@pytest.mark.parametrize("token", ["", "12345", "1234567", "abcdef", "12 456", "0818O4", " 081804", "١٢٣٤٥٦", None, 81804])
def test_verify_rejects_malformed_tokens_without_hmac(monkeypatch, token):
    def fail(*args, **kwargs):
        raise AssertionError("HMAC computed for malformed token")

    monkeypatch.setattr(pyotp.OTP, "generate_otp", fail)
    assert verify(RFC_SECRET_B32, token, now=COUNTER * 30) is False


def test_check_token_shape():
    assert totp_utils.check_token_shape("000000") == "000000"
    with pytest.raises(MalformedToken):
        totp_utils.check_token_shape("00000a")


@pytest.mark.parametrize("secret", ["NOT-BASE32!", "1111", "", "===="])
def test_verify_treats_bad_secret_as_failure(secret):
    assert verify(secret, "123456", now=0) is False


# ---------- provisioning ----------

def test_generate_secret_is_20_random_bytes_unpadded():
    secret = generate_secret()
    assert len(secret) == 32
    assert "=" not in secret
    assert set(secret) <= set(base32.ALPHABET)
    assert len(base32.decode(secret)) == 20
    assert generate_secret() != secret


def test_generate_secret_without_randomness_aborts(no_randomness):
    with pytest.raises(RandomnessUnavailable):
        generate_secret()


def test_build_uri_percent_encodes_issuer_and_account():
    uri = build_uri("JBSWY3DPEHPK3PXP", "Jane Doe", "Acme Co")
    assert uri == "otpauth://totp/Acme%20Co:Jane%20Doe?secret=JBSWY3DPEHPK3PXP&issuer=Acme%20Co"


def test_build_uri_default_issuer():
    uri = build_uri("JBSWY3DPEHPK3PXP", "ops@example.com")
    assert uri == "otpauth://totp/TOSync:ops%40example.com?secret=JBSWY3DPEHPK3PXP&issuer=TOSync"


def test_provision_uri_is_readable_by_authenticators():
    enrollment = provision("Jane Doe")
    parsed = pyotp.parse_uri(enrollment.uri)
    assert isinstance(parsed, pyotp.TOTP)
    assert parsed.secret == enrollment.secret
    assert parsed.name == "Jane Doe"
    assert parsed.issuer == "TOSync"
    assert verify(enrollment.secret, parsed.now())


@pytest.mark.parametrize("secret", ["", "====", "A"])
def test_empty_secret_yields_no_code(secret):
    with pytest.raises(InvalidSecret):
        totp(secret, 0)
    with pytest.raises(InvalidSecret):
        current_code(secret, now=0)


def test_verify_with_wider_window_near_epoch():
    settings = TotpSettings(window=2)
    assert verify(RFC_SECRET_B32, HOTP_VECTORS[2], now=15, settings=settings)
    assert not verify(RFC_SECRET_B32, HOTP_VECTORS[3], now=15, settings=settings)


def test_secret_is_accepted_lowercase_and_padded():
    assert totp(RFC_SECRET_B32.lower() + "====", 59) == "287082"
