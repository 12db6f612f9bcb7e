import os

# The service reads its settings at import time; keep PBKDF2 cheap for tests.
os.environ.setdefault("TOSYNC_PBKDF2_ITERATIONS", "1000")
os.environ.setdefault("TOSYNC_LOG_LEVEL", "WARNING")

import pytest

from tosync_auth.config import CipherSettings


@pytest.fixture
def fast_cipher():
    return CipherSettings(iterations=1000)


@pytest.fixture
def no_randomness(monkeypatch):
    def unavailable(*args):
        raise NotImplementedError("no random source")

    monkeypatch.setattr("tosync_auth.randomness.secrets.token_bytes", unavailable)
    monkeypatch.setattr("random.SystemRandom.getrandbits", unavailable)
