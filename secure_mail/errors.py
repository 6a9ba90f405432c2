# secure_mail/errors.py
"""
Error types raised by the credential store.

Crypto and persistence errors propagate unchanged up to the CLI, which turns
them into a message and a non-zero exit. Nothing here is retried.
"""

from __future__ import annotations

from pathlib import Path


class SecureMailError(Exception):
    """Base class for every error the CLI knows how to report."""


# ---------- Config / persistence ----------

class ConfigError(SecureMailError):
    pass


class ConfigNotFound(ConfigError):
    def __init__(self, searched: list[Path] | None = None):
        self.searched = list(searched or [])
        where = ", ".join(str(p) for p in self.searched) or "any known location"
        super().__init__(
            f"no configuration found in {where}; run with --configure to create one"
        )


class MalformedConfig(ConfigError):
    def __init__(self, path: Path | None, cause: object):
        self.path = path
        self.cause = cause
        super().__init__(f"malformed config file {path}: {cause}")


class UnsupportedPlatform(ConfigError):
    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"no global config location is defined for platform '{platform}'")


class IoFailure(ConfigError):
    def __init__(self, path: Path, cause: BaseException):
        self.path = path
        self.cause = cause
        super().__init__(f"I/O error on {path}: {cause}")


class ConfigStateError(ConfigError):
    """Operation called in the wrong lifecycle state (e.g. credentials before load)."""


# ---------- Crypto ----------

class AuthenticationFailure(SecureMailError):
    """AES-GCM tag verification failed: corruption, tampering or a different key."""

    def __init__(self, message: str = "failed to decrypt password: authentication tag mismatch"):
        super().__init__(message)


class KeyMaterialError(SecureMailError):
    pass


# ---------- Input ----------

class InputError(SecureMailError):
    pass


class InvalidInput(InputError):
    pass


class PortOutOfRange(InputError):
    def __init__(self, port: object):
        self.port = port
        super().__init__(f"port {port} is outside the range 1-65535")


# ---------- Mail ----------

class MailSendError(SecureMailError):
    pass
