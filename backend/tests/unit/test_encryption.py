"""Unit tests for AES-GCM credential encryption"""

import json

import pytest

from docuflow.encryption import ConfigEncryption, EncryptedConfig, decrypt_token, encrypt_token


class TestConfigEncryption:

    def test_round_trip_with_context(self):
        encryptor = ConfigEncryption(pepper="pepper-one")
        envelope = encryptor.encrypt({"access_token": "ya29.abc", "refresh_token": "1//xyz"}, context="storage_config")
        stored = envelope.to_json()

        assert "ya29.abc" not in stored
        assert json.loads(stored)["ctx"] == "storage_config"
        assert encryptor.decrypt_from_json(stored) == {"access_token": "ya29.abc", "refresh_token": "1//xyz"}

    def test_nonce_is_random(self):
        encryptor = ConfigEncryption(pepper="pepper-one")
        first = encryptor.encrypt({"k": "v"})
        second = encryptor.encrypt({"k": "v"})
        assert first.nonce != second.nonce
        assert first.ciphertext != second.ciphertext

    def test_wrong_key(self):
        stored = ConfigEncryption(pepper="pepper-one").encrypt({"k": "v"}).to_json()
        with pytest.raises(ValueError, match="Decryption failed"):
            ConfigEncryption(pepper="pepper-two").decrypt_from_json(stored)

    def test_context_is_authenticated(self):
        encryptor = ConfigEncryption(pepper="pepper-one")
        envelope = encryptor.encrypt({"k": "v"}, context="storage_config")
        envelope.context = "email_account"
        with pytest.raises(ValueError, match="Decryption failed"):
            encryptor.decrypt(envelope)

    def test_tampered_ciphertext(self):
        encryptor = ConfigEncryption(pepper="pepper-one")
        envelope = encryptor.encrypt({"k": "v"})
        envelope.ciphertext = envelope.ciphertext[:-4] + ("AAAA" if envelope.ciphertext[-4:] != "AAAA" else "BBBB")
        with pytest.raises(ValueError):
            encryptor.decrypt(envelope)

    def test_unsupported_version(self):
        encryptor = ConfigEncryption(pepper="pepper-one")
        envelope = encryptor.encrypt({"k": "v"})
        envelope.version = 2
        with pytest.raises(ValueError, match="Unsupported encryption version"):
            encryptor.decrypt(envelope)

    def test_malformed_payload(self):
        with pytest.raises(ValueError, match="Malformed"):
            EncryptedConfig.from_json('{"v": 1}')

    def test_token_helpers(self):
        assert decrypt_token(encrypt_token("refresh-123")) == "refresh-123"
