"""Guest persistence boundary used by the confirmation workflow."""

import logging
import uuid
from typing import Iterable, Protocol

from guestmatch import GuestRecord

log = logging.getLogger(__name__)


class GuestStoreError(RuntimeError):
    """The guest store could not complete an operation."""


class GuestNotFoundError(GuestStoreError):
    """No guest with the given id exists."""

    def __init__(self, guest_id: str):
        super().__init__(f"Guest not found: {guest_id}")
        self.guest_id = guest_id


class GuestStore(Protocol):
    """What the confirmation workflow needs from a guest database."""

    def all(self) -> list[GuestRecord]: ...

    def get(self, guest_id: str) -> GuestRecord: ...

    def add(self, guest: GuestRecord) -> GuestRecord: ...

    def save(self, guest: GuestRecord) -> GuestRecord: ...


class InMemoryGuestStore:
    """Guest store backed by a dict, keeping insertion order."""

    def __init__(self, guests: Iterable[GuestRecord] = ()):
        self._guests: dict[str, GuestRecord] = {}
        for guest in guests:
            self.add(guest)

    def __len__(self) -> int:
        return len(self._guests)

    def all(self) -> list[GuestRecord]:
        return list(self._guests.values())

    def get(self, guest_id: str) -> GuestRecord:
        try:
            return self._guests[guest_id]
        except KeyError:
            raise GuestNotFoundError(guest_id) from None

    def add(self, guest: GuestRecord) -> GuestRecord:
        """Insert a guest, assigning a fresh id when it has none.

        Raises:
            GuestStoreError: If the id is already taken.
        """
        if not guest.id:
            guest = guest.model_copy(update={'id': uuid.uuid4().hex})
        if guest.id in self._guests:
            raise GuestStoreError(f"Duplicate guest id: {guest.id}")
        self._guests[guest.id] = guest
        return guest

    def save(self, guest: GuestRecord) -> GuestRecord:
        """Replace an existing guest.

        Raises:
            GuestNotFoundError: If no guest has this id.
        """
        if guest.id not in self._guests:
            raise GuestNotFoundError(guest.id)
        self._guests[guest.id] = guest
        log.debug("Guest %s saved", guest.id)
        return guest
