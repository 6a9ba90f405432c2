"""
Tests for the configure (ask + save) and load flows.
"""
import base64
import json

import pytest

from secure_mail.crypto.aead import Cipher
from secure_mail.errors import (
    AuthenticationFailure,
    ConfigNotFound,
    ConfigStateError,
    InvalidInput,
    MalformedConfig,
    PortOutOfRange,
)
from secure_mail.models import AuthMechanism, SaveLocation
from secure_mail.services.config_manager import ConfigManager, State
from secure_mail.storage.config_store import ConfigStore, SaveOutcome, never_overwrite

from conftest import ScriptedPrompts


def outlook_answers(locations=("Local",), username="alice@example.com", password="hunter2"):
    return ScriptedPrompts(username, password, "Outlook", list(locations))


class TestAsk:

    def test_ask_encrypts_immediately(self, store, cipher):
        mgr = ConfigManager.ask(outlook_answers(), store, cipher)

        assert mgr.state is State.CONFIGURED
        assert mgr.username == "alice@example.com"
        assert b"hunter2" not in mgr.config.login.password
        assert mgr.locations == {SaveLocation.LOCAL}
        assert mgr.credentials().password == "hunter2"

    def test_preset_relay(self, store, cipher):
        relay = ConfigManager.ask(outlook_answers(), store, cipher).relay_settings()
        assert (relay.addr, relay.port, relay.tls) == ("smtp.office365.com", 587, True)

    def test_custom_relay(self, store, cipher):
        prompts = ScriptedPrompts(
            "bob@example.org", "pw", "Custom",
            "mail.example.org", "2525", False, ["LOGIN"],
            ["Global"],
        )
        relay = ConfigManager.ask(prompts, store, cipher).relay_settings()
        assert relay.addr == "mail.example.org"
        assert relay.port == 2525
        assert relay.tls is False
        assert relay.authentication == (AuthMechanism.LOGIN,)

    def test_custom_relay_without_mechanism_uses_plain(self, store, cipher):
        prompts = ScriptedPrompts("bob@example.org", "pw", "Custom", "mail.example.org", "587", True, [], ["Local"])
        assert ConfigManager.ask(prompts, store, cipher).relay_settings().authentication == (AuthMechanism.PLAIN,)

    def test_custom_port_out_of_range_never_persists(self, store, cipher, workspace):
        prompts = ScriptedPrompts("bob@example.org", "pw", "Custom", "mail.example.org", "70000", True, ["PLAIN"])
        with pytest.raises(PortOutOfRange):
            ConfigManager.ask(prompts, store, cipher)
        assert not workspace.local_file.exists()
        assert not workspace.global_file.exists()

    def test_invalid_username(self, store, cipher):
        with pytest.raises(InvalidInput):
            ConfigManager.ask(ScriptedPrompts("not-an-address"), store, cipher)


class TestSaveAndLoad:

    def test_save_then_load(self, store, cipher, workspace):
        mgr = ConfigManager.ask(outlook_answers(("Local", "Global")), store, cipher)
        report = mgr.save()

        assert report.ok
        assert mgr.state is State.PERSISTED

        loaded = ConfigManager.from_file(store, cipher)
        assert loaded.state is State.LOADED
        assert loaded.path == workspace.local_file
        creds = loaded.credentials()
        assert (creds.username, creds.password) == ("alice@example.com", "hunter2")

    def test_file_never_contains_plaintext(self, store, cipher, workspace):
        ConfigManager.ask(outlook_answers(password="s3cr3t-p4ss"), store, cipher).save()
        raw = workspace.local_file.read_text()
        assert "s3cr3t-p4ss" not in raw
        doc = json.loads(raw)
        assert doc["login"]["username"] == "alice@example.com"

    def test_explicit_locations_override_asked_ones(self, store, cipher, workspace):
        mgr = ConfigManager.ask(outlook_answers(("Local",)), store, cipher)
        mgr.save({SaveLocation.GLOBAL})
        assert workspace.global_file.exists()
        assert not workspace.local_file.exists()

    def test_declined_overwrite_is_asked_through_prompts(self, store, cipher, workspace):
        ConfigManager.ask(outlook_answers(username="old@example.com"), store, cipher).save()
        before = workspace.local_file.read_bytes()

        prompts = ScriptedPrompts("new@example.com", "pw", "GMail", ["Local"], False)
        report = ConfigManager.ask(prompts, store, cipher).save()

        assert report.outcome(SaveLocation.LOCAL) is SaveOutcome.DECLINED
        assert prompts.asked[-1][0] == "confirm"
        assert workspace.local_file.read_bytes() == before

    def test_local_takes_precedence(self, store, cipher):
        ConfigManager.ask(outlook_answers(("Global",), username="global@example.com"), store, cipher).save()
        ConfigManager.ask(outlook_answers(("Local",), username="local@example.com"), store, cipher).save()
        assert ConfigManager.from_file(store, cipher).username == "local@example.com"

    def test_missing_config(self, store, cipher):
        with pytest.raises(ConfigNotFound):
            ConfigManager.from_file(store, cipher)

    def test_malformed_config(self, store, cipher, workspace):
        workspace.local_file.write_text('{"login": {}}')
        with pytest.raises(MalformedConfig):
            ConfigManager.from_file(store, cipher)

    def test_tampered_password_fails_on_load(self, store, cipher, workspace, make_config):
        store.save(make_config(), {SaveLocation.LOCAL})
        doc = json.loads(workspace.local_file.read_text())
        nonce = bytearray(base64.b64decode(doc["login"]["nonce"]))
        nonce[0] ^= 0x01
        doc["login"]["nonce"] = base64.b64encode(bytes(nonce)).decode()
        workspace.local_file.write_text(json.dumps(doc))

        with pytest.raises(AuthenticationFailure):
            ConfigManager.from_file(store, cipher)

    def test_other_key_fails_on_load(self, store, make_config):
        store.save(make_config(), {SaveLocation.LOCAL})
        with pytest.raises(AuthenticationFailure):
            ConfigManager.from_file(store, Cipher(b"\x07" * 32))

    def test_default_cipher_reads_key_from_environment(self, workspace, make_config):
        # workspace sets SECURE_MAIL_KEY to the test key used by make_config
        ConfigStore().save(make_config(), {SaveLocation.GLOBAL})
        assert ConfigManager.from_file().credentials().password == "hunter2"


class TestUnloaded:

    def test_credentials_require_config(self, store, cipher):
        with pytest.raises(ConfigStateError):
            ConfigManager(store, cipher).credentials()

    def test_save_requires_config(self, store, cipher):
        with pytest.raises(ConfigStateError):
            ConfigManager(store, cipher).save({SaveLocation.LOCAL})


class TestOverwritePolicy:

    def test_caller_policy_is_kept(self, workspace, cipher):
        def policy(path):
            return True

        store = ConfigStore(workspace.cwd, workspace.global_dir, confirm=policy)
        ConfigManager.ask(outlook_answers(), store, cipher)
        assert store.confirm is policy

    def test_caller_policy_decides_overwrite(self, workspace, cipher):
        store = ConfigStore(workspace.cwd, workspace.global_dir, confirm=lambda path: True)
        ConfigManager.ask(outlook_answers(username="old@example.com"), store, cipher).save()

        # no confirm answer scripted: the store's own policy must be used
        report = ConfigManager.ask(outlook_answers(username="new@example.com"), store, cipher).save()

        assert report.outcome(SaveLocation.LOCAL) is SaveOutcome.WRITTEN
        assert ConfigManager.from_file(store, cipher).username == "new@example.com"

    def test_default_store_asks_through_prompts(self, store, cipher):
        ConfigManager.ask(outlook_answers(), store, cipher)
        assert store.confirm is not never_overwrite
