"""Shared test fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from guestmatch import GuestRecord
from guestmatch.store import InMemoryGuestStore


FIXED_NOW = datetime(2025, 8, 26, 18, 30, tzinfo=timezone.utc)


def _guest(name, phone=None, id=None, **kwargs) -> GuestRecord:
    """Create a GuestRecord with an id derived from the name."""
    return GuestRecord(id=id or name.lower().replace(' ', '-'), name=name, phone=phone, **kwargs)


@pytest.fixture
def guest_list() -> list[GuestRecord]:
    """A small guest list with accents, shared surnames and phones."""
    return [
        _guest('María José González', phone='55 1234 5678', relation='familia'),
        _guest('Juan Carlos Pérez', phone='5551234567', relation='amigos'),
        _guest('Roberto Carlos', relation='trabajo'),
        _guest('Ana Sofía Martínez', phone='+52 1 55 8765 4321', relation='familia'),
    ]


@pytest.fixture
def store(guest_list) -> InMemoryGuestStore:
    return InMemoryGuestStore(guest_list)


@pytest.fixture
def now():
    return lambda: FIXED_NOW


@pytest.fixture
def write_file(tmp_path):
    """Write text to a file under tmp_path and return its path."""
    def _write(name: str, text: str, encoding: str = 'utf-8') -> Path:
        path = tmp_path / name
        path.write_text(text, encoding=encoding)
        return path
    return _write
