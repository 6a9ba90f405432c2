# secure_mail/models.py

from __future__ import annotations

import base64
import binascii
import enum
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Optional

from .app_config import GCM_NONCE_BYTES
from .errors import MalformedConfig, PortOutOfRange

MIN_PORT = 1
MAX_PORT = 65535


class SaveLocation(enum.Enum):
    LOCAL = "Local"
    GLOBAL = "Global"


class AuthMechanism(str, enum.Enum):
    """SMTP AUTH mechanisms we can drive through smtplib, strongest first."""
    CRAM_MD5 = "CRAM-MD5"
    LOGIN = "LOGIN"
    PLAIN = "PLAIN"


# Used when a custom relay is configured with no mechanism selected
DEFAULT_MECHANISM = AuthMechanism.PLAIN


def validate_port(port) -> int:
    if isinstance(port, bool):
        raise PortOutOfRange(port)
    try:
        value = int(port)
    except (TypeError, ValueError):
        raise PortOutOfRange(port) from None
    if not MIN_PORT <= value <= MAX_PORT:
        raise PortOutOfRange(port)
    return value


def parse_mechanisms(names: Iterable[str | AuthMechanism]) -> tuple[AuthMechanism, ...]:
    """Keep order, drop duplicates; unknown names raise ValueError."""
    out: list[AuthMechanism] = []
    for name in names:
        mech = name if isinstance(name, AuthMechanism) else AuthMechanism(str(name).upper())
        if mech not in out:
            out.append(mech)
    return tuple(out)


@dataclass(frozen=True)
class RelaySettings:
    addr: str
    port: int
    tls: bool
    authentication: tuple[AuthMechanism, ...]

    def __post_init__(self):
        object.__setattr__(self, "port", validate_port(self.port))
        mechs = parse_mechanisms(self.authentication)
        if not mechs:
            raise ValueError("relay needs at least one authentication mechanism")
        object.__setattr__(self, "authentication", mechs)
        if not self.addr:
            raise ValueError("relay address is empty")


@dataclass(frozen=True)
class Credential:
    username: str
    password: bytes = field(repr=False)  # AES-GCM ciphertext + tag
    nonce: bytes = field(repr=False)


@dataclass(frozen=True)
class Credentials:
    """Decrypted login, only ever built in memory."""
    username: str
    password: str = field(repr=False)


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


@dataclass(frozen=True)
class Config:
    login: Credential
    relay: RelaySettings

    # ---- serialization ----

    def to_document(self) -> dict:
        return {
            "login": {
                "username": self.login.username,
                "password": _b64(self.login.password),
                "nonce": _b64(self.login.nonce),
            },
            "relay": {
                "addr": self.relay.addr,
                "port": self.relay.port,
                "tls": self.relay.tls,
                "authentication": [m.value for m in self.relay.authentication],
            },
        }

    def dumps(self) -> bytes:
        return (json.dumps(self.to_document(), indent=2, sort_keys=True) + "\n").encode("utf-8")

    @classmethod
    def from_document(cls, doc, path: Optional[Path] = None) -> "Config":
        try:
            login = doc["login"]
            relay = doc["relay"]
            username = _expect(login["username"], str, "login.username")
            password = _unb64(_expect(login["password"], str, "login.password"), "login.password")
            nonce = _unb64(_expect(login["nonce"], str, "login.nonce"), "login.nonce")
            if len(nonce) != GCM_NONCE_BYTES:
                raise ValueError(f"login.nonce must be {GCM_NONCE_BYTES} bytes, got {len(nonce)}")
            port = relay["port"]
            if isinstance(port, bool) or not isinstance(port, int):
                raise TypeError("relay.port must be an integer")
            settings = RelaySettings(
                addr=_expect(relay["addr"], str, "relay.addr"),
                port=port,
                tls=_expect(relay["tls"], bool, "relay.tls"),
                authentication=tuple(_expect(relay["authentication"], list, "relay.authentication")),
            )
        except KeyError as e:
            raise MalformedConfig(path, f"missing field {e}") from e
        except (TypeError, ValueError, PortOutOfRange) as e:
            raise MalformedConfig(path, e) from e
        return cls(Credential(username, password, nonce), settings)

    @classmethod
    def loads(cls, raw: bytes, path: Optional[Path] = None) -> "Config":
        try:
            doc = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, ValueError, RecursionError) as e:
            raise MalformedConfig(path, e) from e
        if not isinstance(doc, dict):
            raise MalformedConfig(path, "top level is not an object")
        return cls.from_document(doc, path)


def _expect(value, typ, name: str):
    if not isinstance(value, typ):
        raise TypeError(f"{name} must be {typ.__name__}")
    return value


def _unb64(value: str, name: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"{name} is not valid base64") from e
