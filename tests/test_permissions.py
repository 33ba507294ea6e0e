"""
Permission and credential tests
"""
import logging

import pytest

from permissions import (
    AdminPermissions,
    Capability,
    Permissions,
    Sha256PinVerifier,
    UserPermissions,
    default_user_permission_map,
    login,
)

PIN_DIGEST = Sha256PinVerifier.digest_of("4321")


class TestPermissions:
    """AdminPermissions and UserPermissions"""

    def test_admin_has_everything(self):
        admin = AdminPermissions()
        assert all(admin.allows(c) for c in Capability)

    def test_default_user(self):
        user = UserPermissions()
        assert user.allows(Capability.ADD_TRANSACTION)
        assert not user.allows(Capability.DELETE_TRANSACTION)
        assert user.to_map() == default_user_permission_map()

    def test_from_map_ignores_non_bool(self):
        user = UserPermissions.from_map({"canDeleteTransaction": True, "canAddTransaction": "no"})
        assert user.allows(Capability.DELETE_TRANSACTION)
        assert not user.allows(Capability.ADD_TRANSACTION)
        assert user.allows(Capability.EXPORT)


class TestLogin:
    """Sha256PinVerifier and login()"""

    def test_correct_pin(self):
        perms = login(Sha256PinVerifier(PIN_DIGEST), "4321", {})
        assert isinstance(perms, AdminPermissions)
        assert perms.role == "admin"

    def test_wrong_pin_gives_user(self):
        flags = {c.value: False for c in Capability}
        perms = login(Sha256PinVerifier(PIN_DIGEST.upper()), "0000", flags)
        assert perms.role == "user"
        assert perms.capabilities() == frozenset()

    def test_digest_is_case_insensitive(self):
        assert Sha256PinVerifier(PIN_DIGEST.upper()).verify("4321")

    def test_no_pin_configured(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert not Sha256PinVerifier(None).verify("")
        assert "No admin PIN configured" in caplog.text

    def test_no_secret_skips_verifier(self):
        class Boom:
            def verify(self, secret):
                raise AssertionError("should not be called")

        assert login(Boom(), None, {}).role == "user"


def test_permissions_base_is_abstract():
    with pytest.raises(TypeError):
        Permissions()
