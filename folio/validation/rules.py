"""
Folio Validation Rules
======================

Rules applied to captured path parameters.

Type rules (``Integer``, ``Float``, ``Boolean``, ``String``, ``Date``,
``Email``, ``Url``) both check and convert: once a parameter passes its
type rule, the remaining rules see the converted value. Path parameters
arrive as strings, so every type rule accepts the string form.
"""

from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, Optional, Pattern, Sequence, Union


class Rule(ABC):
    """
    Abstract validation rule.

    Example:
        class Even(Rule):
            message = "The {field} must be even"

            def validate(self, value, field, data):
                return isinstance(value, int) and value % 2 == 0
    """

    message: str = "The {field} is invalid"

    @abstractmethod
    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        """
        Validate the value.

        Args:
            value: Value to validate (already converted by a type rule)
            field: Parameter name
            data: All captured parameters
        """

    def get_message(self, field: str) -> str:
        return self.message.format(field=field)

    def __call__(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return self.validate(value, field, data)


class TypeRule(Rule):
    """A rule that also converts the raw string into a typed value."""

    def convert(self, value: Any) -> Any:
        return value


@dataclass
class Required(Rule):
    """Parameter must be present and non-empty."""

    message: str = "The {field} parameter is required"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return value is not None and str(value).strip() != ""


@dataclass
class Integer(TypeRule):
    message: str = "The {field} must be an integer"

    _pattern: Pattern = field(default=re.compile(r"^[+-]?\d+$"), repr=False)

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        if isinstance(value, int):
            return True
        return isinstance(value, str) and bool(self._pattern.match(value.strip()))

    def convert(self, value: Any) -> int:
        return int(value)


@dataclass
class Float(TypeRule):
    message: str = "The {field} must be a number"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return False
        try:
            return math.isfinite(float(value))
        except (TypeError, ValueError):
            return False

    def convert(self, value: Any) -> float:
        return float(value)


@dataclass
class Boolean(TypeRule):
    message: str = "The {field} must be true or false"

    TRUE = ("1", "true", "on", "yes")
    FALSE = ("0", "false", "off", "no")

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, bool):
            return True
        return str(value).strip().lower() in self.TRUE + self.FALSE

    def convert(self, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        return str(value).strip().lower() in self.TRUE


@dataclass
class String(TypeRule):
    message: str = "The {field} must be a string"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str)


@dataclass
class Date(TypeRule):
    """Strict date in ``format``; ``2024-2-5`` does not pass ``%Y-%m-%d``."""

    format: str = "%Y-%m-%d"
    message: str = "The {field} is not a valid date"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, date):
            return True
        if not isinstance(value, str):
            return False
        try:
            parsed = datetime.strptime(value, self.format)
        except ValueError:
            return False
        return parsed.strftime(self.format) == value

    def convert(self, value: Any) -> date:
        if isinstance(value, datetime):
            return value.date()
        if isinstance(value, date):
            return value
        return datetime.strptime(value, self.format).date()


@dataclass
class Email(TypeRule):
    message: str = "The {field} must be a valid email address"

    _pattern: Pattern = field(
        default=re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$"),
        repr=False,
    )

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and bool(self._pattern.match(value))


@dataclass
class Url(TypeRule):
    message: str = "The {field} must be a valid URL"

    _pattern: Pattern = field(
        default=re.compile(
            r"^https?://"
            r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,63}\.?|"
            r"localhost|"
            r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"
            r"(?::\d+)?"
            r"(?:/?|[/?]\S+)$",
            re.IGNORECASE,
        ),
        repr=False,
    )

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return isinstance(value, str) and bool(self._pattern.match(value))


@dataclass
class Min(Rule):
    """Lower bound for numbers; minimum length for anything else."""

    min_value: Union[int, float]
    message: str = "The {field} must be at least {min}"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value >= self.min_value
        if isinstance(value, (str, list, dict)):
            return len(value) >= self.min_value
        return False

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, min=self.min_value)


@dataclass
class Max(Rule):
    """Upper bound for numbers; maximum length for anything else."""

    max_value: Union[int, float]
    message: str = "The {field} must not exceed {max}"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return value <= self.max_value
        if isinstance(value, (str, list, dict)):
            return len(value) <= self.max_value
        return False

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, max=self.max_value)


@dataclass
class MinLength(Rule):
    length: int
    message: str = "The {field} must be at least {length} characters"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return len(str(value)) >= self.length

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, length=self.length)


@dataclass
class MaxLength(Rule):
    length: int
    message: str = "The {field} must not exceed {length} characters"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return len(str(value)) <= self.length

    def get_message(self, field: str) -> str:
        return self.message.format(field=field, length=self.length)


@dataclass
class Regex(Rule):
    """The value's string form must contain a match for ``pattern``."""

    pattern: Union[str, Pattern]
    message: str = "The {field} format is invalid"

    def __post_init__(self) -> None:
        if isinstance(self.pattern, str):
            try:
                self.pattern = re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"Invalid pattern {self.pattern!r}: {exc}") from exc
        elif not isinstance(self.pattern, re.Pattern):
            raise ValueError(f"Pattern must be a string, got {type(self.pattern).__name__}")

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        return bool(self.pattern.search(str(value)))


@dataclass
class In(Rule):
    """Value must be one of ``allowed`` (compared as given or as strings)."""

    allowed: Sequence[Any]
    message: str = "The selected {field} is invalid"

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        if value in self.allowed:
            return True
        return str(value) in {str(item) for item in self.allowed}


class Callback(Rule):
    """Custom predicate ``func(value) -> bool``."""

    message = "The {field} is invalid"

    def __init__(self, func: Callable[[Any], Any], message: Optional[str] = None) -> None:
        self.func = func
        if message:
            self.message = message

    def validate(self, value: Any, field: str, data: Dict[str, Any]) -> bool:
        try:
            return bool(self.func(value))
        except (TypeError, ValueError):
            return False

    def __repr__(self) -> str:
        return f"Callback({getattr(self.func, '__name__', self.func)!r})"


TYPE_RULES: Dict[str, Callable[..., TypeRule]] = {
    "integer": Integer,
    "int": Integer,
    "float": Float,
    "numeric": Float,
    "boolean": Boolean,
    "bool": Boolean,
    "string": String,
    "str": String,
    "date": Date,
    "email": Email,
    "url": Url,
}


def type_rule(name: str, **options: Any) -> TypeRule:
    """
    Create a type rule by name.

    Raises:
        ValueError: For unknown type names
    """
    factory = TYPE_RULES.get(name.lower())
    if factory is None:
        raise ValueError(f"Unknown parameter type '{name}'")
    return factory(**options)


__all__ = [
    "Rule",
    "TypeRule",
    "Required",
    "Integer",
    "Float",
    "Boolean",
    "String",
    "Date",
    "Email",
    "Url",
    "Min",
    "Max",
    "MinLength",
    "MaxLength",
    "Regex",
    "In",
    "Callback",
    "TYPE_RULES",
    "type_rule",
]
