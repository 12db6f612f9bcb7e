import secrets

from .errors import RandomnessUnavailable


def random_bytes(n: int) -> bytes:
    """
    Read n bytes from the OS CSPRNG.

    Raises:
        RandomnessUnavailable when the platform has no usable source.
        There is no fallback to a weaker generator.
    """
    try:
        return secrets.token_bytes(n)
    except (NotImplementedError, OSError) as exc:
        raise RandomnessUnavailable("Secure random source unavailable") from exc
