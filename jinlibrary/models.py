"""Wire models for the library backend.

Every payload the backend sends or accepts is a frozen pydantic model. JSON
keys are camelCase, attributes are snake_case. Dates travel as
``"yyyy-MM-dd HH:mm:ss"`` strings in the library's own time zone and decode
to timezone-aware ``datetime`` values.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from functools import lru_cache
from typing import Annotated, List, Optional
from zoneinfo import ZoneInfo

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PlainSerializer, model_validator
from pydantic.alias_generators import to_camel

from jinlibrary.config import settings

WIRE_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


@lru_cache(maxsize=8)
def library_zone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or settings.library_timezone)


def parse_library_datetime(value):
    """Parse a wire date. Only the fixed numeric format is accepted."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=library_zone())
        return value
    if not isinstance(value, str):
        raise ValueError(f"expected a date string, got {type(value).__name__}")
    # strptime with purely numeric directives does not consult the locale
    parsed = datetime.strptime(value.strip(), WIRE_DATE_FORMAT)
    return parsed.replace(tzinfo=library_zone())


def format_library_datetime(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=library_zone())
    return value.astimezone(library_zone()).strftime(WIRE_DATE_FORMAT)


LibraryDateTime = Annotated[
    datetime,
    BeforeValidator(parse_library_datetime),
    PlainSerializer(format_library_datetime, return_type=str),
]


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


# --------------------------------------------------------------------------- #
# Catalog
# --------------------------------------------------------------------------- #

class Category(WireModel):
    """A filter key for the catalog. Two categories are the same if their ids are."""

    id: int
    title: str = Field(alias="categoryTitle")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Category):
            return self.id == other.id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("category", self.id))


class CopyStatus(str, Enum):
    AVAILABLE = "AVAILABLE"
    LOANED = "LOANED"
    OTHER = "OTHER"


_AVAILABLE_LABELS = {"可借閱", "available", "in library", "on shelf"}
_LOANED_LABELS = {"已借出", "loaned", "borrowed", "checked out", "on loan"}


def classify_copy_status(description: str) -> CopyStatus:
    label = (description or "").strip().lower()
    if label in _AVAILABLE_LABELS:
        return CopyStatus.AVAILABLE
    if label in _LOANED_LABELS:
        return CopyStatus.LOANED
    return CopyStatus.OTHER


class BookCopy(WireModel):
    id: int
    unique_code: str
    status_description: str
    image_url: Optional[str] = None

    @property
    def status(self) -> CopyStatus:
        return classify_copy_status(self.status_description)

    @property
    def is_borrowable(self) -> bool:
        return self.status is CopyStatus.AVAILABLE


class Book(WireModel):
    """A catalog row."""

    id: int
    title: str
    author: str
    category: str
    publish_year: int
    publisher: str
    available_copies: int
    total_copies: int
    image_url: Optional[str] = None

    @model_validator(mode="after")
    def _check_copy_counts(self):
        if self.available_copies < 0 or self.available_copies > self.total_copies:
            raise ValueError(
                f"availableCopies={self.available_copies} must be within 0..totalCopies={self.total_copies}"
            )
        return self

    @property
    def has_available_copies(self) -> bool:
        return self.available_copies > 0


class BookDetail(Book):
    isbn: Optional[str] = None
    description: Optional[str] = None
    book_copies: List[BookCopy]

    @property
    def borrowable_copies(self) -> List[BookCopy]:
        return [copy for copy in self.book_copies if copy.is_borrowable]


# --------------------------------------------------------------------------- #
# Users and authentication
# --------------------------------------------------------------------------- #

class UserProfile(WireModel):
    id: int
    name: str
    card_id: str
    account: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None


class LoginRequest(WireModel):
    account: str
    password: str = Field(repr=False)


class LoginResponse(WireModel):
    jwt: str = Field(repr=False)
    user_id: int
    role: str


class RegistrationRequest(WireModel):
    account: str
    password: str = Field(repr=False)
    name: str
    email: str
    phone: Optional[str] = None
    address: Optional[str] = None


class RegistrationResponse(WireModel):
    success: bool
    message: Optional[str] = None


# --------------------------------------------------------------------------- #
# Loans
# --------------------------------------------------------------------------- #

class Loan(WireModel):
    loan_id: int
    title: str
    unique_code: str
    loan_date: LibraryDateTime
    return_date: Optional[LibraryDateTime] = None

    @property
    def id(self) -> int:
        return self.loan_id

    @property
    def is_returned(self) -> bool:
        return self.return_date is not None


class BorrowRequest(WireModel):
    book_id: int
    user_id: int


class BorrowResponse(WireModel):
    success: bool
    message: Optional[str] = None
    borrowed_book_unique_code: Optional[str] = None
    loan_id: Optional[int] = None


class ReturnRequest(WireModel):
    loan_id: int
    user_id: int


class ReturnResponse(WireModel):
    success: bool
    message: Optional[str] = None
    returned_book_unique_code: Optional[str] = None
