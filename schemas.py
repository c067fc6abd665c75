"""
Pydantic models for request bodies and query strings.

Every JSON body is parsed into one of these before it reaches the storage
service. Unknown fields are rejected and keys use the camelCase names the
frontend sends.
"""

from __future__ import annotations

import datetime
import re
from typing import Annotated, Any, Mapping, Optional, Type, TypeVar
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pydantic
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StringConstraints,
    TypeAdapter,
    field_validator,
    model_validator,
)

from errors import ValidationError
from scoring import POINTS_ON_TIME, VALID_POINTS

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})(?:-(\d{2}))?$")
_DATE = TypeAdapter(datetime.date)

Name = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]

M = TypeVar("M", bound=BaseModel)


class _Request(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class RegisterRequest(_Request):
    name: Name
    age: int = Field(ge=1, le=150)
    email: EmailStr
    password: str = Field(min_length=6)
    country: Optional[str] = Field(default=None, max_length=100)
    timezone: Optional[str] = Field(default=None, max_length=100)
    gender: Optional[str] = Field(default=None, max_length=20)

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.lower()

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError("must be an IANA time zone such as Asia/Riyadh") from None
        return value


class LoginRequest(_Request):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _lower(cls, value: str) -> str:
        return value.strip().lower()


class LogPrayerRequest(_Request):
    prayer_id: int = Field(alias="prayerId", gt=0)
    prayer_date: datetime.date = Field(alias="prayerDate")
    prayed_at: Optional[datetime.datetime] = Field(default=None, alias="prayedAt")
    is_on_time: Optional[bool] = Field(default=None, alias="isOnTime")
    points_awarded: Optional[int] = Field(default=None, alias="pointsAwarded")

    @field_validator("points_awarded")
    @classmethod
    def _points(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value not in VALID_POINTS:
            raise ValueError("must be one of 0, 1 or 5")
        return value

    @model_validator(mode="after")
    def _consistent(self) -> "LogPrayerRequest":
        if (self.is_on_time is None) != (self.points_awarded is None):
            raise ValueError("isOnTime and pointsAwarded must be given together")
        if self.points_awarded == POINTS_ON_TIME and not self.is_on_time:
            raise ValueError("5 points are only awarded for an on-time prayer")
        if self.is_on_time and self.points_awarded != POINTS_ON_TIME:
            raise ValueError("an on-time prayer is worth 5 points")
        return self


class LeaderboardQuery(_Request):
    year: int = Field(ge=1970, le=9999)
    month: int = Field(ge=1, le=12)
    limit: int = Field(ge=1)
    offset: int = Field(default=0, ge=0)
    search: Optional[str] = Field(default=None, max_length=100)


class MonthQuery(_Request):
    year: int = Field(ge=1970, le=9999)
    month: int = Field(ge=1, le=12)


class RewardSuggestionRequest(_Request):
    month: datetime.date
    suggestion: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2000)
    ]

    @field_validator("month", mode="before")
    @classmethod
    def _first_of_month(cls, value: Any) -> Any:
        if isinstance(value, str):
            match = _MONTH_RE.match(value.strip())
            if not match:
                raise ValueError("must look like YYYY-MM or YYYY-MM-DD")
            year, month = int(match.group(1)), int(match.group(2))
            if not 1 <= month <= 12:
                raise ValueError("month must be between 01 and 12")
            return datetime.date(year, month, 1)
        if isinstance(value, datetime.date):
            return value.replace(day=1)
        return value


class ProfileUpdateRequest(_Request):
    name: Optional[Name] = None
    age: Optional[int] = Field(default=None, ge=1, le=150)
    gender: Optional[str] = Field(default=None, max_length=20)


class PasswordChangeRequest(_Request):
    current_password: str = Field(alias="currentPassword", min_length=1)
    new_password: str = Field(alias="newPassword", min_length=6)


def parse(model: Type[M], data: Optional[Mapping[str, Any]]) -> M:
    """Validate ``data`` against ``model``, raising our ``ValidationError`` on failure."""
    if not isinstance(data, Mapping):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(dict(data))
    except pydantic.ValidationError as exc:
        errors = [
            {"field": ".".join(str(part) for part in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        raise ValidationError("Invalid input data", errors=errors) from exc


def parse_date(raw: str, field: str = "date") -> datetime.date:
    """Parse a date from a URL segment with the same rules as request bodies."""
    try:
        return _DATE.validate_python(raw)
    except pydantic.ValidationError:
        raise ValidationError(
            "Invalid date",
            errors=[{"field": field, "message": "must be YYYY-MM-DD"}],
        ) from None
