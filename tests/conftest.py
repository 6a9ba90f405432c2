"""
Shared fixtures: an isolated working/global directory pair, a fixed test key
and a prompt provider that replays canned answers.
"""
import base64
from collections import deque
from types import SimpleNamespace

import pytest

from secure_mail.crypto.aead import Cipher
from secure_mail.models import Config, Credential
from secure_mail.services.relay import preset
from secure_mail.storage.config_store import ConfigStore

TEST_KEY = bytes(range(32))


class ScriptedPrompts:
    """Returns answers in order, whatever the prompt; records what was asked."""

    def __init__(self, *answers):
        self.answers = deque(answers)
        self.asked = []

    def _next(self, kind, message):
        self.asked.append((kind, message))
        if not self.answers:
            raise AssertionError(f"unexpected {kind} prompt: {message}")
        return self.answers.popleft()

    def text(self, message, validator=None, default=None):
        return self._next("text", message)

    def secret(self, message):
        return self._next("secret", message)

    def select(self, message, options):
        answer = self._next("select", message)
        assert answer in options
        return answer

    def multi_select(self, message, options, defaults=()):
        answer = self._next("multi_select", message)
        assert all(a in options for a in answer)
        return list(answer)

    def confirm(self, message, default=False):
        return self._next("confirm", message)


@pytest.fixture
def key():
    return TEST_KEY


@pytest.fixture
def cipher(key):
    return Cipher(key)


@pytest.fixture
def workspace(tmp_path, monkeypatch, key):
    work = tmp_path / "work"
    glob = tmp_path / "global"
    work.mkdir()
    monkeypatch.chdir(work)
    monkeypatch.setenv("SECURE_MAIL_GLOBAL_DIR", str(glob))
    monkeypatch.setenv("SECURE_MAIL_KEY", base64.b64encode(key).decode())
    monkeypatch.delenv("SECURE_MAIL_PASSPHRASE", raising=False)
    return SimpleNamespace(
        cwd=work,
        global_dir=glob,
        local_file=work / "secure-mail.json",
        global_file=glob / "config.json",
    )


@pytest.fixture
def store(workspace):
    return ConfigStore(cwd=workspace.cwd, global_dir=workspace.global_dir)


@pytest.fixture
def make_config(cipher):
    def _make(username="alice@example.com", password="hunter2", relay="Outlook"):
        ct, nonce = cipher.encrypt(password)
        return Config(Credential(username, ct, nonce), preset(relay))
    return _make
