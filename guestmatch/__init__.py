"""Fuzzy guest matching for RSVP attendance confirmations."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel


class MatchType(str, Enum):
    """How a guest name was matched."""

    EXACT = 'exact'
    FUZZY = 'fuzzy'
    PARTIAL = 'partial'


class MatchMethod(str, Enum):
    """Which field decided a phone-aware match."""

    PHONE = 'phone'
    NAME = 'name'
    NAME_WITH_PHONE_CONFLICT = 'name_with_phone_conflict'


class CamelModel(BaseModel):
    """Base for documents exchanged as camelCase JSON.

    Fields are populated by their Python name or their camelCase alias, and
    ``to_dict`` returns the camelCase form.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator('*', mode='before')
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Stored documents carry null for fields that were never set
        field = cls.model_fields[info.field_name]
        if value is None and not field.is_required():
            return field.get_default(call_default_factory=True)
        return value

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode='json', by_alias=True)


class Attendance(CamelModel):
    """Attendance sub-record of a guest."""

    confirmed: bool = False
    confirmed_at: Optional[datetime] = None
    number_of_guests_confirmed: int = 0
    comments: Optional[str] = None


class GuestRecord(CamelModel):
    """A pre-registered (or auto-created) guest.

    Only ``name`` and ``phone`` are read by the matching engine; the
    remaining fields belong to the confirmation workflow. Database
    documents may use ``_id`` and ``phoneNumber``.
    """

    id: str = Field(default='', validation_alias=AliasChoices('_id', 'id'))
    name: str
    phone: Optional[str] = Field(
        default=None, validation_alias=AliasChoices('phone', 'phoneNumber'),
    )
    relation: str = ''
    status: str = 'pending'    # pending, confirmed, declined
    attendance: Optional[Attendance] = None
    auto_created: bool = False
    notes: str = ''
    searched_name: Optional[str] = None

    @field_validator('id', mode='before')
    @classmethod
    def _id_as_string(cls, value: Any) -> Any:
        return str(value) if isinstance(value, int) else value


@dataclass
class MatchResult:
    """Result of matching a searched name against the guest list."""

    guest: GuestRecord
    similarity: float     # 0.0 – 100.0
    is_exact_match: bool
    match_type: MatchType
    normalized_search_name: str
    normalized_guest_name: str
    match_method: Optional[MatchMethod] = None   # only set for phone-aware searches
    phone_match: bool = False
    name_similarity: Optional[float] = None
    has_conflict: bool = False
