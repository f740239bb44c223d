"""
Named validator, normalizer, and diff-suppression strategies.

Every strategy is a small frozen value with a pure ``__call__`` and a
``describe()`` used when a schema version is rendered for plan output.
Validators return ``None`` on success and a human-readable failure message
otherwise; they never raise for a value of the wrong type.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final

from cachegroup_schema.domain.models import NullableBool

_WEEKDAY: Final[str] = "(?:mon|tue|wed|thu|fri|sat|sun)"
_HOUR_MINUTE: Final[str] = "(?:[0-1][0-9]|2[0-3]):[0-5][0-9]"
_ONCE_A_WEEK_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^(?:{_WEEKDAY}:{_HOUR_MINUTE}-{_WEEKDAY}:{_HOUR_MINUTE}|)$", re.IGNORECASE
)
_ONCE_A_DAY_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^(?:{_HOUR_MINUTE}-{_HOUR_MINUTE}|)$"
)
_REDIS_VERSION_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:[1-5](?:\.[0-9]+){2}|[6-9]\.x|[6-9]\.[0-9]+)$"
)
_ARN_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^arn:aws[a-z-]*:[a-z0-9-]+:[a-z0-9-]*:(?:[0-9]{12})?:.+$"
)
_REPLICATION_GROUP_ID_PATTERN: Final[re.Pattern[str]] = re.compile(r"^[0-9a-zA-Z-]+$")
_AUTH_TOKEN_FORBIDDEN: Final[frozenset[str]] = frozenset({"/", '"', "@"})


def _type_name(value: object) -> str:
    return type(value).__name__


@dataclass(frozen=True, slots=True)
class StringNotEmpty:
    def __call__(self, value: object) -> str | None:
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        if not value:
            return "must not be empty"
        return None

    def describe(self) -> str:
        return "string_not_empty"


@dataclass(frozen=True, slots=True)
class StringInSet:
    values: tuple[str, ...]
    ignore_case: bool = False

    def __call__(self, value: object) -> str | None:
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        if self.ignore_case:
            allowed = {item.lower() for item in self.values}
            if value.lower() in allowed:
                return None
        elif value in self.values:
            return None
        expected = ", ".join(self.values)
        return f"invalid value {value!r}; expected one of: {expected}"

    def describe(self) -> str:
        suffix = " (case-insensitive)" if self.ignore_case else ""
        return f"one_of[{', '.join(self.values)}]{suffix}"


@dataclass(frozen=True, slots=True)
class IntAtMost:
    maximum: int

    def __call__(self, value: object) -> str | None:
        if isinstance(value, bool) or not isinstance(value, int):
            return f"expected integer, got {_type_name(value)}"
        if value > self.maximum:
            return f"must be <= {self.maximum}, got {value}"
        return None

    def describe(self) -> str:
        return f"int_at_most[{self.maximum}]"


@dataclass(frozen=True, slots=True)
class IntBetween:
    minimum: int
    maximum: int

    def __call__(self, value: object) -> str | None:
        if isinstance(value, bool) or not isinstance(value, int):
            return f"expected integer, got {_type_name(value)}"
        if value < self.minimum or value > self.maximum:
            return f"must be between {self.minimum} and {self.maximum}, got {value}"
        return None

    def describe(self) -> str:
        return f"int_between[{self.minimum}, {self.maximum}]"


@dataclass(frozen=True, slots=True)
class MatchesPattern:
    pattern: re.Pattern[str]
    message: str
    label: str = "pattern"

    def __call__(self, value: object) -> str | None:
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        if self.pattern.fullmatch(value) is None:
            return f"{self.message}, got {value!r}"
        return None

    def describe(self) -> str:
        return self.label


@dataclass(frozen=True, slots=True)
class StringDoesNotContainAny:
    characters: str

    def __call__(self, value: object) -> str | None:
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        found = sorted({char for char in value if char in self.characters})
        if found:
            return f"must not contain any of {found}"
        return None

    def describe(self) -> str:
        return f"does_not_contain_any[{self.characters}]"


VALID_ARN: Final[MatchesPattern] = MatchesPattern(
    _ARN_PATTERN, "must be a valid ARN", label="valid_arn"
)

ONCE_A_WEEK_WINDOW: Final[MatchesPattern] = MatchesPattern(
    _ONCE_A_WEEK_PATTERN,
    "must be a weekly window in the format ddd:hh24:mi-ddd:hh24:mi",
    label="once_a_week_window",
)

ONCE_A_DAY_WINDOW: Final[MatchesPattern] = MatchesPattern(
    _ONCE_A_DAY_PATTERN,
    "must be a daily window in the format hh24:mi-hh24:mi",
    label="once_a_day_window",
)

REDIS_VERSION: Final[MatchesPattern] = MatchesPattern(
    _REDIS_VERSION_PATTERN,
    "must be a Redis version like 5.0.6, 6.x, or 7.1",
    label="redis_version",
)


@dataclass(frozen=True, slots=True)
class ReplicationGroupIdFormat:
    max_length: int = 40

    def __call__(self, value: object) -> str | None:
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        if not value or len(value) > self.max_length:
            return f"must contain from 1 to {self.max_length} characters"
        if _REPLICATION_GROUP_ID_PATTERN.fullmatch(value) is None:
            return "only alphanumeric characters and hyphens allowed"
        if not value[0].isalpha():
            return "first character must be a letter"
        if "--" in value:
            return "cannot contain two consecutive hyphens"
        if value.endswith("-"):
            return "cannot end with a hyphen"
        return None

    def describe(self) -> str:
        return "replication_group_id"


@dataclass(frozen=True, slots=True)
class AuthTokenFormat:
    min_length: int = 16
    max_length: int = 128

    def __call__(self, value: object) -> str | None:
        # Messages never echo the token itself.
        if not isinstance(value, str):
            return f"expected string, got {_type_name(value)}"
        size = len(value.encode("utf-8"))
        if size < self.min_length or size > self.max_length:
            return f"must contain from {self.min_length} to {self.max_length} bytes"
        if any(char in _AUTH_TOKEN_FORBIDDEN for char in value):
            return "only alphanumeric characters or symbols (excluding '@', '\"' and '/') allowed"
        return None

    def describe(self) -> str:
        return "auth_token"


@dataclass(frozen=True, slots=True)
class NullableBoolString:
    def __call__(self, value: object) -> str | None:
        try:
            NullableBool.parse(value)
        except ValueError as exc:
            return str(exc)
        return None

    def describe(self) -> str:
        return "nullable_bool"


@dataclass(frozen=True, slots=True)
class LowerCase:
    """Case-fold strings; the backend always returns these values lower-cased."""

    def __call__(self, value: object) -> object:
        if isinstance(value, str):
            return value.lower()
        return value

    def describe(self) -> str:
        return "lower_case"


@dataclass(frozen=True, slots=True)
class CanonicalNullableBool:
    def __call__(self, value: object) -> object:
        try:
            return NullableBool.parse(value)
        except ValueError:
            return value

    def describe(self) -> str:
        return "canonical_nullable_bool"


@dataclass(frozen=True, slots=True)
class DefaultPortSuppressor:
    """Hide the port change reported when an optional port is omitted on an existing resource.

    Values compare by their string form since plan engines report both sides as text.
    """

    default_port: int
    unset_values: frozenset[str] = field(default=frozenset({"", "0"}))

    def __call__(self, old: object, new: object, *, is_new_resource: bool) -> bool:
        if is_new_resource:
            return False
        new_text = "" if new is None else str(new)
        old_text = "" if old is None else str(old)
        return new_text in self.unset_values and old_text == str(self.default_port)

    def describe(self) -> str:
        return f"suppress_unset_default_port[{self.default_port}]"


@dataclass(frozen=True, slots=True)
class PrefixSuppressor:
    """Ignore changes while the stored value is owned by a managed parent group."""

    prefix: str

    def __call__(self, old: object, new: object, *, is_new_resource: bool) -> bool:
        return isinstance(old, str) and old.startswith(self.prefix)

    def describe(self) -> str:
        return f"suppress_managed_prefix[{self.prefix}]"


__all__ = [
    "AuthTokenFormat",
    "CanonicalNullableBool",
    "DefaultPortSuppressor",
    "IntAtMost",
    "IntBetween",
    "LowerCase",
    "MatchesPattern",
    "NullableBoolString",
    "ONCE_A_DAY_WINDOW",
    "ONCE_A_WEEK_WINDOW",
    "PrefixSuppressor",
    "REDIS_VERSION",
    "ReplicationGroupIdFormat",
    "StringDoesNotContainAny",
    "StringInSet",
    "StringNotEmpty",
    "VALID_ARN",
]
