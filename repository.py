"""
Ledger file storage and backups for ScoutLedger
"""
from __future__ import annotations
import json
import logging
import os
from datetime import date
from typing import Optional

from config import dict_to_ledger, get_default_ledger, ledger_to_dict
from errors import BackupError, StorageError
from models import Ledger

logger = logging.getLogger(__name__)

BACKUP_ARRAY_KEYS = (
    "transactions",
    "categories",
    "groups",
    "members",
    "units",
    "fundTransfers",
    "internalTransfers",
    "selfFinancingProjects",
)


class JsonFileRepository:
    """Keeps the whole ledger in one JSON file"""

    def __init__(self, path: str):
        self.path = path

    def migrate(self, raw) -> Ledger:
        return dict_to_ledger(raw)

    def load(self) -> Ledger:
        """Read the ledger; a missing or unreadable file gives the default ledger"""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            logger.info("No ledger at %s, starting a new one", self.path)
            return get_default_ledger()
        except (OSError, json.JSONDecodeError) as ex:
            logger.error("Could not read %s: %s", self.path, ex)
            return get_default_ledger()
        return self.migrate(raw)

    def save(self, ledger: Ledger) -> None:
        """Write the ledger, replacing the file only once the new content is complete"""
        tmp = f"{self.path}.tmp"
        try:
            folder = os.path.dirname(os.path.abspath(self.path))
            os.makedirs(folder, exist_ok=True)
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(ledger_to_dict(ledger), f, ensure_ascii=False, indent=2)
            os.replace(tmp, self.path)
        except OSError as ex:
            raise StorageError(f"Could not save {self.path}: {ex}") from ex
        logger.debug("Saved ledger to %s", self.path)


class MemoryRepository:
    """Repository without a file, mostly for tests and dry runs"""

    def __init__(self, raw: Optional[dict] = None):
        self.raw = raw
        self.saves = 0

    def migrate(self, raw) -> Ledger:
        return dict_to_ledger(raw)

    def load(self) -> Ledger:
        return get_default_ledger() if self.raw is None else self.migrate(self.raw)

    def save(self, ledger: Ledger) -> None:
        self.raw = ledger_to_dict(ledger)
        self.saves += 1


# ---------- backups ----------

def build_backup(ledger: Ledger) -> dict:
    return ledger_to_dict(ledger)


def validate_backup(data) -> None:
    """Raise BackupError naming the first problem found"""
    if not isinstance(data, dict):
        raise BackupError("Invalid backup: the content is not a JSON object.")
    for key in BACKUP_ARRAY_KEYS:
        if not isinstance(data.get(key), list):
            raise BackupError(f"Invalid backup: section '{key}' is missing or is not a list.")
    if not isinstance(data.get("confirmOnDelete"), bool):
        raise BackupError("Invalid backup: setting 'confirmOnDelete' is missing or is not true/false.")


def backup_summary(data: dict) -> str:
    validate_backup(data)
    return (
        "Valid backup. It contains:\n"
        f"- {len(data['transactions'])} transactions\n"
        f"- {len(data['groups'])} groups\n"
        f"- {len(data['members'])} members\n"
        f"- {len(data['categories'])} categories\n"
        f"- {len(data['units'])} units"
    )


def read_backup_file(path: str) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as ex:
        raise BackupError(f"Invalid backup: not valid JSON ({ex}).") from ex
    except OSError as ex:
        raise BackupError(f"Could not read {path}: {ex}") from ex
    validate_backup(data)
    return data


def write_backup_file(ledger: Ledger, folder: str, day: Optional[date] = None) -> str:
    day = day or date.today()
    path = os.path.join(folder, f"backup_scout_ledger_{day.isoformat()}.json")
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(build_backup(ledger), f, ensure_ascii=False, indent=2)
    except OSError as ex:
        raise StorageError(f"Could not write backup {path}: {ex}") from ex
    logger.info("Backup written to %s", path)
    return path


def restore_backup(data, repository) -> Ledger:
    """Validate, migrate and persist a backup; returns the restored ledger"""
    validate_backup(data)
    ledger = repository.migrate(data)
    repository.save(ledger)
    logger.info("Restored backup: %d transactions, %d members", len(ledger.transactions), len(ledger.members))
    return ledger
