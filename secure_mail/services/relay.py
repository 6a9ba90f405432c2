# secure_mail/services/relay.py
from __future__ import annotations

from typing import Iterable

from .. import log
from ..errors import InvalidInput
from ..models import DEFAULT_MECHANISM, AuthMechanism, RelaySettings, validate_port

CUSTOM = "Custom"

PRESETS: dict[str, RelaySettings] = {
    "Outlook": RelaySettings(
        addr="smtp.office365.com",
        port=587,
        tls=True,
        authentication=(AuthMechanism.LOGIN, AuthMechanism.PLAIN),
    ),
    "GMail": RelaySettings(
        addr="smtp.gmail.com",
        port=587,
        tls=True,
        authentication=(AuthMechanism.PLAIN, AuthMechanism.LOGIN),
    ),
    "Yahoo": RelaySettings(
        addr="smtp.mail.yahoo.com",
        port=587,
        tls=True,
        authentication=(AuthMechanism.PLAIN, AuthMechanism.LOGIN),
    ),
}


def relay_names() -> list[str]:
    """Choices offered to the user, presets first."""
    return [*PRESETS, CUSTOM]


def preset(name: str) -> RelaySettings:
    for key, settings in PRESETS.items():
        if key.lower() == name.strip().lower():
            return settings
    raise InvalidInput(f"unknown relay '{name}' (choose one of: {', '.join(PRESETS)})")


def custom_relay(addr: str, port, tls: bool, mechanisms: Iterable[str | AuthMechanism]) -> RelaySettings:
    """
    Build relay settings from user-supplied fields.

    The port is checked before anything else so an invalid relay never
    reaches the config file. Selecting no mechanism at all is allowed and
    falls back to PLAIN, with a warning.
    """
    port = validate_port(port)
    addr = addr.strip()
    if not addr:
        raise InvalidInput("relay address must not be empty")

    try:
        mechs = [m if isinstance(m, AuthMechanism) else AuthMechanism(str(m).upper()) for m in mechanisms]
    except ValueError as e:
        raise InvalidInput(str(e)) from e
    if not mechs:
        log.warning(f"no authentication mechanism selected, falling back to {DEFAULT_MECHANISM.value}")
        mechs = [DEFAULT_MECHANISM]

    return RelaySettings(addr=addr, port=port, tls=tls, authentication=tuple(mechs))
