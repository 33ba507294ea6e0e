"""
Permissions and credential checks for ScoutLedger.

An administrator holds every capability; an ordinary user holds a configurable
subset. Both are Permissions, so callers only ever ask `allows(capability)`.
"""
from __future__ import annotations
import hashlib
import hmac
import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional, Protocol

logger = logging.getLogger(__name__)


class Capability(str, Enum):
    """Stored names of the user permission switches"""
    ADD_TRANSACTION = "canAddTransaction"
    EDIT_TRANSACTION = "canEditTransaction"
    DELETE_TRANSACTION = "canDeleteTransaction"
    MANAGE_FUND_TRANSFERS = "canManageFundTransfers"
    MANAGE_INTERNAL_TRANSFERS = "canManageInternalTransfers"
    EXPORT = "canExport"
    VIEW_QUOTE = "canViewQuote"
    EDIT_MEMBERS = "canEditMembers"
    EDIT_INSTALLMENTS = "canEditInstallments"
    VIEW_ACCOUNTS = "canViewConti"
    VIEW_ADVANCES = "canViewAnticipi"
    VIEW_SELF_FINANCING = "canViewAutofinanziamenti"
    MANAGE_SELF_FINANCING = "canManageAutofinanziamenti"


DEFAULT_USER_CAPABILITIES: FrozenSet[Capability] = frozenset({
    Capability.ADD_TRANSACTION,
    Capability.EXPORT,
    Capability.VIEW_QUOTE,
    Capability.VIEW_ACCOUNTS,
    Capability.VIEW_ADVANCES,
    Capability.VIEW_SELF_FINANCING,
})


def default_user_permission_map() -> Dict[str, bool]:
    return {c.value: c in DEFAULT_USER_CAPABILITIES for c in Capability}


class Permissions(ABC):
    role = ""

    @abstractmethod
    def capabilities(self) -> FrozenSet[Capability]:
        ...

    def allows(self, capability: Capability) -> bool:
        return capability in self.capabilities()


class AdminPermissions(Permissions):
    role = "admin"

    def capabilities(self) -> FrozenSet[Capability]:
        return frozenset(Capability)


class UserPermissions(Permissions):
    role = "user"

    def __init__(self, capabilities: Iterable[Capability] = DEFAULT_USER_CAPABILITIES):
        self._capabilities = frozenset(capabilities)

    def capabilities(self) -> FrozenSet[Capability]:
        return self._capabilities

    @classmethod
    def from_map(cls, flags: Dict[str, bool]) -> "UserPermissions":
        """Build from the stored {"canAddTransaction": true, ...} map"""
        caps = []
        for c in Capability:
            if flags.get(c.value, c in DEFAULT_USER_CAPABILITIES) is True:
                caps.append(c)
        return cls(caps)

    def to_map(self) -> Dict[str, bool]:
        return {c.value: c in self._capabilities for c in Capability}


class CredentialVerifier(Protocol):
    def verify(self, secret: str) -> bool:
        ...


class Sha256PinVerifier:
    """Checks a shared PIN against a configured SHA-256 hex digest"""

    def __init__(self, digest: Optional[str]):
        self._digest = (digest or "").strip().lower()

    @staticmethod
    def digest_of(secret: str) -> str:
        return hashlib.sha256(secret.encode("utf-8")).hexdigest()

    def verify(self, secret: str) -> bool:
        if not self._digest:
            logger.warning("No admin PIN configured; admin access is disabled")
            return False
        return hmac.compare_digest(self.digest_of(secret), self._digest)


def login(verifier: CredentialVerifier, secret: Optional[str], user_flags: Dict[str, bool]) -> Permissions:
    """Admin permissions when the secret verifies, the stored user subset otherwise"""
    if secret is not None and verifier.verify(secret):
        logger.info("Admin access granted")
        return AdminPermissions()
    if secret is not None:
        logger.info("Admin access denied")
    return UserPermissions.from_map(user_flags)
