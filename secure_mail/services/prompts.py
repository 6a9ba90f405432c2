# secure_mail/services/prompts.py
"""
Interactive input as a pluggable capability.

The config code only talks to a `PromptProvider`; the terminal version is
built on rich.prompt, tests pass in a provider with canned answers.
"""

from __future__ import annotations

import re
from email.utils import parseaddr
from typing import Callable, Optional, Protocol, Sequence

from rich.markup import escape
from rich.prompt import Confirm, Prompt

from .. import log
from ..log import console

Validator = Callable[[str], Optional[str]]

_ADDR_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_email(address: str) -> Optional[str]:
    """Return an error message, or None when `address` looks like a mailbox."""
    _, addr = parseaddr(address)
    if not addr or addr != address.strip() or not _ADDR_RE.match(addr):
        return f"'{address}' is not a valid email address"
    return None


class PromptProvider(Protocol):
    def text(self, message: str, validator: Optional[Validator] = None, default: Optional[str] = None) -> str: ...

    def secret(self, message: str) -> str: ...

    def select(self, message: str, options: Sequence[str]) -> str: ...

    def multi_select(self, message: str, options: Sequence[str], defaults: Sequence[str] = ()) -> list[str]: ...

    def confirm(self, message: str, default: bool = False) -> bool: ...


class RichPromptProvider:
    """Terminal prompts. Invalid answers are re-asked, not raised."""

    def __init__(self, console=console):
        self.console = console

    def text(self, message: str, validator: Optional[Validator] = None, default: Optional[str] = None) -> str:
        while True:
            if default is None:
                answer = Prompt.ask(message, console=self.console)
            else:
                answer = Prompt.ask(message, console=self.console, default=default)
            problem = validator(answer) if validator else None
            if problem is None:
                return answer
            log.warning(escape(problem))

    def secret(self, message: str) -> str:
        while True:
            answer = Prompt.ask(message, console=self.console, password=True)
            if answer:
                return answer
            log.warning("value must not be empty")

    def select(self, message: str, options: Sequence[str]) -> str:
        return Prompt.ask(message, console=self.console, choices=list(options), default=options[0])

    def multi_select(self, message: str, options: Sequence[str], defaults: Sequence[str] = ()) -> list[str]:
        listing = ", ".join(f"{i}) {opt}" for i, opt in enumerate(options, start=1))
        while True:
            answer = Prompt.ask(
                f"{message} [dim]({listing}; comma separated, empty for none)[/dim]",
                console=self.console,
                default=",".join(defaults),
                show_default=bool(defaults),
            )
            try:
                return parse_multi_choice(answer, options)
            except ValueError as e:
                log.warning(escape(str(e)))

    def confirm(self, message: str, default: bool = False) -> bool:
        return Confirm.ask(message, console=self.console, default=default)


def parse_multi_choice(answer: str, options: Sequence[str]) -> list[str]:
    """'1, GMail' -> ['Outlook', 'GMail'] for options ['Outlook', 'GMail']; order kept, duplicates dropped."""
    by_name = {opt.lower(): opt for opt in options}
    picked: list[str] = []
    for token in (t.strip() for t in answer.split(",")):
        if not token:
            continue
        if token.isdigit() and 1 <= int(token) <= len(options):
            choice = options[int(token) - 1]
        elif token.lower() in by_name:
            choice = by_name[token.lower()]
        else:
            raise ValueError(f"unknown choice '{token}'")
        if choice not in picked:
            picked.append(choice)
    return picked
