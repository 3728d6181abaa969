"""Unit tests for Argon2id password hashing with pepper"""

import pytest

from docuflow.auth.password import generate_initial_password, hash_password, verify_password
from docuflow.auth.roles import ProfileRole, has_permission


class TestPasswordHashing:

    def test_hash_is_argon2id(self):
        hashed = hash_password("S3cure!pass")
        assert hashed.startswith("$argon2id$")
        assert "S3cure!pass" not in hashed

    def test_same_password_hashes_differently(self):
        assert hash_password("S3cure!pass") != hash_password("S3cure!pass")

    def test_verify(self):
        hashed = hash_password("S3cure!pass")
        assert verify_password("S3cure!pass", hashed)
        assert not verify_password("wrong", hashed)

    def test_missing_hash_never_matches(self):
        assert not verify_password("anything", None)
        assert not verify_password("anything", "")
        assert not verify_password("anything", "not-a-hash")

    def test_empty_password_rejected(self):
        with pytest.raises(ValueError, match="empty"):
            hash_password("")

    def test_pepper_is_applied(self, monkeypatch):
        hashed = hash_password("S3cure!pass")
        monkeypatch.setenv("PASSWORD_PEPPER", "a-different-pepper-value")
        assert not verify_password("S3cure!pass", hashed)

    def test_missing_pepper(self, monkeypatch):
        monkeypatch.delenv("PASSWORD_PEPPER", raising=False)
        with pytest.raises(ValueError, match="PASSWORD_PEPPER"):
            hash_password("S3cure!pass")

    def test_initial_passwords_are_random(self):
        first, second = generate_initial_password(), generate_initial_password()
        assert first != second
        assert len(first) >= 20


class TestRoleHierarchy:

    @pytest.mark.parametrize("user_role,required,allowed", [
        (ProfileRole.OWNER, ProfileRole.ADMIN, True),
        (ProfileRole.OWNER, ProfileRole.OWNER, True),
        (ProfileRole.ADMIN, ProfileRole.ADMIN, True),
        (ProfileRole.ADMIN, ProfileRole.OWNER, False),
        (ProfileRole.MEMBER, ProfileRole.MEMBER, True),
        (ProfileRole.MEMBER, ProfileRole.ADMIN, False),
    ])
    def test_has_permission(self, user_role, required, allowed):
        assert has_permission(user_role, required) is allowed
