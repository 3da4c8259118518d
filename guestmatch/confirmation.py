"""Attendance confirmation: find the guest behind an RSVP, update or create it."""

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Optional, Sequence

from pydantic import (
    ConfigDict,
    Field,
    StrictBool,
    StrictInt,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from guestmatch import (
    Attendance,
    CamelModel,
    GuestRecord,
    MatchMethod,
    MatchResult,
    MatchType,
)
from guestmatch.config import DEFAULT_CONFIG, FuzzyConfig
from guestmatch.matching import GuestMatcher
from guestmatch.store import GuestStore, GuestStoreError

log = logging.getLogger(__name__)

MAX_GUESTS = 50
MAX_COMMENT_LENGTH = 500
MIN_PHONE_LENGTH = 10
DEFAULT_COMMENT = 'Confirmed via website'
AUTO_CREATED_RELATION = 'other'
NEW_GUEST_LABEL = 'New guest'

# Messages for validation errors, keyed by (payload key, pydantic error type)
_ERROR_MESSAGES = {
    ('name', 'missing'): 'name is required and must be a string',
    ('name', 'string_type'): 'name is required and must be a string',
    ('numberOfGuests', 'missing'): 'numberOfGuests is required',
    ('numberOfGuests', 'int_type'): 'numberOfGuests must be an integer',
    ('numberOfGuests', 'greater_than_equal'): f'numberOfGuests must be between 0 and {MAX_GUESTS}',
    ('numberOfGuests', 'less_than_equal'): f'numberOfGuests must be between 0 and {MAX_GUESTS}',
    ('willAttend', 'missing'): 'willAttend must be true or false',
    ('willAttend', 'bool_type'): 'willAttend must be true or false',
    ('comments', 'string_type'): 'comments must be a string',
    ('comments', 'string_too_long'): f'comments cannot have more than {MAX_COMMENT_LENGTH} characters',
    ('phone', 'string_type'): 'phone must be a string',
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Action(str, Enum):
    UPDATED = 'updated'
    CREATED = 'created'
    ERROR = 'error'


class InvalidConfirmation(ValueError):
    """The confirmation payload failed validation."""

    def __init__(self, errors: Sequence[str]):
        super().__init__('; '.join(errors))
        self.errors = list(errors)


def _error_message(error: dict[str, Any]) -> str:
    """Turn one pydantic error into the message reported to the client."""
    if not error['loc']:
        return 'Invalid input data'
    key = str(error['loc'][0])
    kind = error['type']
    if kind == 'value_error':
        return str(error['ctx']['error'])
    if error.get('input') is None:
        kind = 'missing'
    return _ERROR_MESSAGES.get((key, kind), f"{key}: {error['msg']}")


class ConfirmationRequest(CamelModel):
    """A validated RSVP submission.

    Read from the JSON body keys ``name``, ``numberOfGuests``,
    ``willAttend`` and the optional ``comments`` and ``phone``. Strings are
    trimmed; blank optional strings become None.
    """

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str
    number_of_guests: StrictInt = Field(ge=0, le=MAX_GUESTS)
    will_attend: StrictBool
    comments: Optional[str] = Field(default=None, max_length=MAX_COMMENT_LENGTH)
    phone: Optional[str] = None

    @field_validator('name')
    @classmethod
    def _name_length(cls, name: str, info: ValidationInfo) -> str:
        config = (info.context or {}).get('config', DEFAULT_CONFIG)
        if len(name) < config.min_name_length:
            raise ValueError(f'name must have at least {config.min_name_length} characters')
        if len(name) > config.max_name_length:
            raise ValueError(f'name cannot have more than {config.max_name_length} characters')
        return name

    @field_validator('number_of_guests', mode='before')
    @classmethod
    def _integral_float(cls, value: Any) -> Any:
        # JSON clients may send 3.0 for 3
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value

    @field_validator('comments', 'phone')
    @classmethod
    def _blank_as_none(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator('phone')
    @classmethod
    def _phone_length(cls, phone: Optional[str]) -> Optional[str]:
        if phone and len(phone) < MIN_PHONE_LENGTH:
            raise ValueError(f'phone must have at least {MIN_PHONE_LENGTH} digits')
        return phone

    @classmethod
    def from_payload(
        cls, data: Any, config: FuzzyConfig = DEFAULT_CONFIG,
    ) -> 'ConfirmationRequest':
        """Validate a JSON-shaped payload and build a request from it.

        Args:
            data: Decoded JSON body.
            config: Provides the name length limits.

        Returns:
            The validated request.

        Raises:
            InvalidConfirmation: With every problem found, not just the first.
        """
        try:
            return cls.model_validate(data, context={'config': config})
        except ValidationError as exc:
            raise InvalidConfirmation([_error_message(e) for e in exc.errors()]) from None


class MatchInfo(CamelModel):
    """How the submitted name was resolved, reported back to the caller."""

    similarity: float
    was_exact_match: bool
    match_type: MatchType
    search_name: str
    found_name: str
    multiple_matches: bool = False
    matches_count: int = 0
    match_method: Optional[MatchMethod] = None
    phone_match: bool = False
    has_conflict: bool = False
    search_phone: Optional[str] = None



@dataclass
class ConfirmationOutcome:
    """Result of processing one confirmation."""

    action: Action
    status_code: int
    message: str
    timestamp: datetime
    guest: Optional[GuestRecord] = None
    match_info: Optional[MatchInfo] = None
    request: Optional[ConfirmationRequest] = None
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.action is not Action.ERROR

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON response body."""
        body = {
            'success': self.success,
            'action': self.action.value,
            'guest': self.guest.to_dict() if self.guest else None,
            'matchInfo': self.match_info.to_dict() if self.match_info else None,
            'message': self.message,
            'timestamp': self.timestamp.isoformat(),
        }
        if self.errors:
            body['errors'] = list(self.errors)
        return body


class ConfirmationService:
    """Resolve RSVP submissions against a guest store.

    A submission whose best match clears the threshold updates that guest.
    Anything else creates a new, auto-created guest so no answer is lost,
    including the case where several guests clear the threshold and
    picking one would risk overwriting the wrong person
    (``create_on_ambiguity``). Exact name and phone matches are never
    treated as ambiguous.
    """

    def __init__(
        self,
        store: GuestStore,
        matcher: Optional[GuestMatcher] = None,
        now: Optional[Callable[[], datetime]] = None,
        create_on_ambiguity: bool = True,
    ):
        self.store = store
        self.matcher = matcher or GuestMatcher()
        self.create_on_ambiguity = create_on_ambiguity
        self._now = now or _utcnow

    @property
    def config(self) -> FuzzyConfig:
        return self.matcher.config

    def process(self, payload: Any) -> ConfirmationOutcome:
        """Validate and confirm a raw payload, never raising.

        Returns:
            An outcome with status 200 (updated), 201 (created),
            400 (invalid payload) or 500 (store failure).
        """
        start = time.perf_counter()
        try:
            request = ConfirmationRequest.from_payload(payload, self.config)
        except InvalidConfirmation as exc:
            log.error("Invalid confirmation data: %s", exc.errors)
            return ConfirmationOutcome(
                action=Action.ERROR,
                status_code=400,
                message='Invalid confirmation data',
                timestamp=self._now(),
                errors=exc.errors,
            )

        try:
            outcome = self.confirm(request)
        except GuestStoreError as exc:
            log.exception("Confirmation for %r failed", request.name)
            return ConfirmationOutcome(
                action=Action.ERROR,
                status_code=500,
                message=str(exc),
                timestamp=self._now(),
                request=request,
            )

        log.info(
            "Confirmation processed: action=%s guest=%r similarity=%s attending=%s in %.1f ms",
            outcome.action.value,
            outcome.guest.name if outcome.guest else None,
            outcome.match_info.similarity if outcome.match_info else None,
            request.will_attend,
            (time.perf_counter() - start) * 1000,
        )
        return outcome

    def confirm(self, request: ConfirmationRequest) -> ConfirmationOutcome:
        """Apply a validated confirmation to the store.

        Raises:
            GuestStoreError: If the store fails to load or save a guest.
        """
        guests = self.store.all()
        log.info("Looking up %r among %d guests", request.name, len(guests))

        best = self.matcher.find_best_match(request.name, guests, request.phone)
        if best is not None and best.similarity >= self.config.similarity_threshold:
            matches = self.matcher.find_multiple_matches(request.name, guests, 3)
            if len(matches) > 1 and not best.is_exact_match:
                if self.create_on_ambiguity:
                    log.warning(
                        "Ambiguous name %r: %s",
                        request.name, _describe(matches),
                    )
                    return self._create(request, matches)
                log.info(
                    "Multiple matches for %r (%d), using the best",
                    request.name, len(matches),
                )
            if best.has_conflict:
                log.warning(
                    "Phone conflict for %r: updating %r anyway (%.1f%%)",
                    request.name, best.guest.name, best.similarity,
                )
            return self._update(request, best, matches)

        matches = self.matcher.find_multiple_matches(request.name, guests, 5)
        if matches:
            log.warning("Ambiguous name %r: %s", request.name, _describe(matches))
        else:
            log.info("No match for %r", request.name)
        return self._create(request, matches)

    def _attendance(self, request: ConfirmationRequest) -> Attendance:
        return Attendance(
            confirmed=request.will_attend,
            confirmed_at=self._now(),
            number_of_guests_confirmed=request.number_of_guests,
            comments=request.comments or DEFAULT_COMMENT,
        )

    def _update(
        self,
        request: ConfirmationRequest,
        best: MatchResult,
        matches: list[MatchResult],
    ) -> ConfirmationOutcome:
        guest = self.store.get(best.guest.id)
        saved = self.store.save(guest.model_copy(update={
            'status': 'confirmed' if request.will_attend else 'declined',
            'attendance': self._attendance(request),
            # A phone on file is never overwritten
            'phone': guest.phone or request.phone,
        }))
        match_info = MatchInfo(
            similarity=round(best.similarity, 2),
            was_exact_match=best.is_exact_match,
            match_type=best.match_type,
            search_name=request.name,
            found_name=best.guest.name,
            multiple_matches=len(matches) > 1,
            matches_count=len(matches),
            match_method=best.match_method or MatchMethod.NAME,
            phone_match=best.phone_match,
            has_conflict=best.has_conflict,
            search_phone=request.phone,
        )
        return ConfirmationOutcome(
            action=Action.UPDATED,
            status_code=200,
            message=f'Confirmation updated for existing guest: {saved.name}',
            timestamp=self._now(),
            guest=saved,
            match_info=match_info,
            request=request,
        )

    def _create(
        self,
        request: ConfirmationRequest,
        matches: list[MatchResult],
    ) -> ConfirmationOutcome:
        ambiguous = bool(matches)
        notes = 'Created automatically from an attendance confirmation'
        if ambiguous:
            notes += f'. Ambiguous search: "{request.name}" had {len(matches)} similar matches'
        else:
            notes += f'. Search: "{request.name}" - no sufficient match found'

        guest = self.store.add(GuestRecord(
            id='',
            name=request.name,
            phone=request.phone,
            relation=AUTO_CREATED_RELATION,
            status='confirmed' if request.will_attend else 'declined',
            attendance=self._attendance(request),
            auto_created=True,
            notes=notes,
            searched_name=request.name,
        ))

        match_info = None
        message = f'New guest created: {request.name}'
        if ambiguous:
            match_info = MatchInfo(
                similarity=0.0,
                was_exact_match=False,
                match_type=MatchType.PARTIAL,
                search_name=request.name,
                found_name=NEW_GUEST_LABEL,
                multiple_matches=True,
                matches_count=len(matches),
            )
            message = f'New guest created (ambiguous search with {len(matches)} partial matches)'

        return ConfirmationOutcome(
            action=Action.CREATED,
            status_code=201,
            message=message,
            timestamp=self._now(),
            guest=guest,
            match_info=match_info,
            request=request,
        )


def _describe(matches: list[MatchResult]) -> str:
    return ', '.join(f'{m.guest.name!r} ({m.similarity:.1f}%)' for m in matches)


def confirmation_stats(
    guests: Sequence[GuestRecord],
    config: FuzzyConfig = DEFAULT_CONFIG,
) -> dict[str, Any]:
    """Summarize confirmation progress over a guest list.

    Args:
        guests: All guests.
        config: Reported alongside the numbers.

    Returns:
        Counts, rates formatted as percentages and the matching config.
    """
    total = len(guests)
    auto_created = sum(1 for g in guests if g.auto_created)
    confirmed = [g for g in guests if g.attendance and g.attendance.confirmed]
    declined = sum(1 for g in guests if g.attendance and not g.attendance.confirmed)
    pending = sum(1 for g in guests if g.status == 'pending')

    def rate(count: int) -> str:
        return f'{count / total * 100:.1f}%' if total else '0%'

    return {
        'totalGuests': total,
        'autoCreatedGuests': auto_created,
        'confirmedGuests': len(confirmed),
        'declinedGuests': declined,
        'pendingGuests': pending,
        'totalConfirmedAttendees': sum(
            g.attendance.number_of_guests_confirmed for g in confirmed
        ),
        'autoCreationRate': rate(auto_created),
        'confirmationRate': rate(len(confirmed)),
        'fuzzyMatchingConfig': config.to_dict(),
        'timestamp': _utcnow().isoformat(),
    }
