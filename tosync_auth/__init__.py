"""TOSync two-factor secrets and encrypted backup service."""

__version__ = "1.0.0"
