# secure_mail/services/config_manager.py
from __future__ import annotations

import enum
from pathlib import Path
from typing import Iterable, Optional

from .. import log
from ..crypto.aead import Cipher
from ..crypto.keys import KeySource, resolve_key
from ..errors import ConfigStateError, InvalidInput
from ..models import AuthMechanism, Config, Credential, Credentials, RelaySettings, SaveLocation
from ..storage.config_store import ConfigStore, SaveReport, never_overwrite
from . import relay as relays
from .prompts import PromptProvider, validate_email


class State(enum.Enum):
    UNLOADED = "unloaded"
    LOADED = "loaded"
    CONFIGURED = "configured"
    PERSISTED = "persisted"


def default_cipher() -> Cipher:
    material = resolve_key()
    if material.source is KeySource.BUILTIN:
        log.warning(
            "using the built-in encryption key; set SECURE_MAIL_PASSPHRASE "
            "or SECURE_MAIL_KEY to protect the stored password"
        )
    return Cipher(material.key)


class ConfigManager:
    """
    Ties the cipher and the config store together.

    A manager is either loaded from disk (`from_file`) or built from user
    answers (`ask`). It only ever holds the encrypted password; `credentials()`
    decrypts it on demand for the caller.
    """

    def __init__(self, store: Optional[ConfigStore] = None, cipher: Optional[Cipher] = None):
        self.store = store or ConfigStore()
        self.cipher = cipher or default_cipher()
        self.state = State.UNLOADED
        self.config: Optional[Config] = None
        self.path: Optional[Path] = None
        self.locations: set[SaveLocation] = set()

    # ---------- constructors ----------

    @classmethod
    def from_file(cls, store: Optional[ConfigStore] = None, cipher: Optional[Cipher] = None) -> "ConfigManager":
        mgr = cls(store, cipher)
        path, config = mgr.store.read()
        # Fail here, not at send time, when the file was tampered with or the key changed.
        mgr.cipher.decrypt(config.login.password, config.login.nonce)
        mgr.config = config
        mgr.path = path
        mgr.state = State.LOADED
        return mgr

    @classmethod
    def ask(
        cls,
        prompts: PromptProvider,
        store: Optional[ConfigStore] = None,
        cipher: Optional[Cipher] = None,
    ) -> "ConfigManager":
        mgr = cls(store, cipher)
        if mgr.store.confirm is never_overwrite:
            mgr.store.confirm = lambda path: prompts.confirm(
                f"{path} already exists. Overwrite it?", default=False
            )

        username = prompts.text("email address:", validator=validate_email).strip()
        problem = validate_email(username)
        if problem:
            raise InvalidInput(problem)
        password = prompts.secret("password:")
        settings = ask_relay(prompts)
        picked = prompts.multi_select(
            "save login to:",
            [loc.value for loc in SaveLocation],
            defaults=[SaveLocation.GLOBAL.value],
        )

        ct, nonce = mgr.cipher.encrypt(password)
        del password

        mgr.config = Config(Credential(username, ct, nonce), settings)
        mgr.locations = {SaveLocation(p) for p in picked}
        mgr.state = State.CONFIGURED
        return mgr

    # ---------- operations ----------

    def save(self, locations: Optional[Iterable[SaveLocation]] = None) -> SaveReport:
        config = self._require_config()
        targets = set(self.locations if locations is None else locations)
        report = self.store.save(config, targets)
        if report.written:
            self.state = State.PERSISTED
        return report

    def credentials(self) -> Credentials:
        config = self._require_config()
        password = self.cipher.decrypt_text(config.login.password, config.login.nonce)
        return Credentials(config.login.username, password)

    def relay_settings(self) -> RelaySettings:
        return self._require_config().relay

    @property
    def username(self) -> str:
        return self._require_config().login.username

    def _require_config(self) -> Config:
        if self.config is None or self.state is State.UNLOADED:
            raise ConfigStateError("no configuration loaded; load it from file or run the configuration flow first")
        return self.config


def ask_relay(prompts: PromptProvider) -> RelaySettings:
    choice = prompts.select("relay:", relays.relay_names())
    if choice != relays.CUSTOM:
        return relays.preset(choice)

    addr = prompts.text("relay address:", validator=lambda v: None if v.strip() else "address must not be empty")
    port = prompts.text("port:", validator=_port_problem, default="587")
    tls = prompts.confirm("require TLS?", default=True)
    mechanisms = prompts.multi_select(
        "authentication mechanisms:",
        [m.value for m in AuthMechanism],
    )
    return relays.custom_relay(addr, port, tls, mechanisms)


def _port_problem(value: str) -> Optional[str]:
    value = value.strip()
    if not value.isdecimal():
        return f"'{value}' is not a number"
    try:
        port = int(value)
    except ValueError:
        return f"'{value}' is not a number"
    if not 1 <= port <= 65535:
        return f"port {value} is outside the range 1-65535"
    return None

