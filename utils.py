"""
Utility functions for ScoutLedger
"""
from __future__ import annotations
import os
import uuid
from datetime import date, datetime


def today_str() -> str:
    """Get today's date as ISO string"""
    return date.today().isoformat()


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string"""
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def is_iso_date(s) -> bool:
    """True if s is a YYYY-MM-DD string"""
    if not isinstance(s, str):
        return False
    try:
        parse_date(s)
    except ValueError:
        return False
    return True


def round2(x: float) -> float:
    """Round a money amount to cents"""
    return round(float(x), 2)


def new_id(prefix: str) -> str:
    """Generate a unique record id"""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def app_dir() -> str:
    """
    Get application data directory: $SCOUT_LEDGER_HOME or ~/.local/share/ScoutLedger
    Creates directory if it doesn't exist.
    """
    path = os.environ.get("SCOUT_LEDGER_HOME")
    if not path:
        path = os.path.join(os.path.expanduser("~/.local/share"), "ScoutLedger")
    os.makedirs(path, exist_ok=True)
    return path
