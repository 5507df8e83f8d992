"""
Folio Parameter Validator
=========================

Validates and converts captured path parameters against a route schema.

A schema maps parameter names to a rule specification in one of three
forms:

    {"id": {"type": "integer", "min": 1}}          # option dict
    {"id": "required|integer|min:1"}               # pipe string
    {"id": [Required(), Integer(), Min(1)]}        # rule objects

Option dict keys:
    type        integer, string, boolean, date, float, email, url
    required    bool
    default     value used when the parameter is absent
    min / max   numeric bounds (length bounds for strings)
    min_length / max_length
    pattern     regular expression the value must contain
    enum        list of accepted values
    format      date format (with type "date")
    callback    predicate called with the converted value
    message     replaces every error message for the parameter

Parameters that pass are converted by their type rule; parameters not
named in the schema pass through untouched.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from folio.core.exceptions import InvalidParameter
from folio.validation.rules import (
    Callback,
    In,
    Max,
    MaxLength,
    Min,
    MinLength,
    Regex,
    Required,
    Rule,
    TypeRule,
    type_rule,
    TYPE_RULES,
)

_MISSING = object()

RuleSpec = Union[str, Rule, List[Union[str, Rule]], Mapping[str, Any], Callable[[Any], Any]]


@dataclass
class ValidationResult:
    """
    Result of validation.

    ``data`` holds the converted parameters when ``valid`` is true.
    """

    valid: bool
    data: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, List[str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.valid

    def first_error(self, name: Optional[str] = None) -> Optional[str]:
        if name:
            messages = self.errors.get(name, [])
            return messages[0] if messages else None
        for messages in self.errors.values():
            if messages:
                return messages[0]
        return None

    def raise_if_invalid(self) -> None:
        """Raise InvalidParameter if invalid."""
        if not self.valid:
            raise InvalidParameter(errors=self.errors)


@dataclass
class FieldRules:
    """Parsed rules for one parameter."""

    rules: List[Rule]
    required: bool = False
    default: Any = _MISSING
    message: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not _MISSING


class ParameterValidator:
    """
    Validates parameter dictionaries against a schema.

    Example:
        validator = ParameterValidator({
            "year": {"type": "integer", "min": 1990},
            "slug": "string|pattern:^[a-z0-9-]+$",
        })

        result = validator.validate({"year": "2024", "slug": "hello"})
        result.data  # {"year": 2024, "slug": "hello"}

    Raises:
        ValueError: At construction, for unknown types or rule names
    """

    def __init__(self, schema: Optional[Mapping[str, RuleSpec]] = None) -> None:
        self.schema = dict(schema or {})
        self.fields: Dict[str, FieldRules] = {
            name: self._parse(spec) for name, spec in self.schema.items()
        }

    def __bool__(self) -> bool:
        return bool(self.fields)

    def _parse(self, spec: RuleSpec) -> FieldRules:
        if isinstance(spec, Mapping):
            return self._parse_options(spec)

        rules = self._parse_rules(spec)
        return FieldRules(
            rules=self._ordered(rules),
            required=any(isinstance(r, Required) for r in rules),
        )

    def _parse_rules(self, spec: Any) -> List[Rule]:
        if isinstance(spec, Rule):
            return [spec]
        if isinstance(spec, str):
            return self._parse_string(spec)
        if isinstance(spec, (list, tuple)):
            rules: List[Rule] = []
            for item in spec:
                rules.extend(self._parse_rules(item))
            return rules
        if callable(spec):
            return [Callback(spec)]
        raise ValueError(f"Unsupported rule specification: {spec!r}")

    def _parse_string(self, rule_string: str) -> List[Rule]:
        """
        Parse a pipe-separated rule string.

        Example: "required|integer|min:1|in:1,2,3"
        """
        rules: List[Rule] = []
        for part in rule_string.split("|"):
            part = part.strip()
            if not part:
                continue
            name, _, argument = part.partition(":")
            rules.append(self._create_rule(name.strip().lower(), argument))
        return rules

    def _create_rule(self, name: str, argument: str) -> Rule:
        if name == "required":
            return Required()
        if name in TYPE_RULES:
            if name == "date" and argument:
                return type_rule(name, format=argument)
            return type_rule(name)

        factories: Dict[str, Callable[[str], Rule]] = {
            "min": lambda a: Min(min_value=_number(a)),
            "max": lambda a: Max(max_value=_number(a)),
            "min_length": lambda a: MinLength(length=int(a)),
            "max_length": lambda a: MaxLength(length=int(a)),
            "pattern": lambda a: Regex(pattern=a),
            "regex": lambda a: Regex(pattern=a),
            "in": lambda a: In(allowed=[item.strip() for item in a.split(",")]),
            "enum": lambda a: In(allowed=[item.strip() for item in a.split(",")]),
        }
        factory = factories.get(name)
        if factory is None:
            raise ValueError(f"Unknown validation rule '{name}'")
        if not argument:
            raise ValueError(f"Validation rule '{name}' needs an argument")
        return factory(argument)

    def _parse_options(self, options: Mapping[str, Any]) -> FieldRules:
        rules: List[Rule] = []

        type_name = options.get("type")
        if type_name:
            extra = {"format": options["format"]} if "format" in options and type_name == "date" else {}
            rules.append(type_rule(str(type_name), **extra))

        if "min" in options:
            rules.append(Min(min_value=_number(options["min"])))
        if "max" in options:
            rules.append(Max(max_value=_number(options["max"])))
        if "min_length" in options:
            rules.append(MinLength(length=int(options["min_length"])))
        if "max_length" in options:
            rules.append(MaxLength(length=int(options["max_length"])))
        if "pattern" in options:
            rules.append(Regex(pattern=options["pattern"]))
        if "enum" in options:
            rules.append(In(allowed=list(options["enum"])))
        if "callback" in options:
            if not callable(options["callback"]):
                raise ValueError("Schema 'callback' must be callable")
            rules.append(Callback(options["callback"]))

        known = {
            "type", "required", "default", "min", "max", "min_length",
            "max_length", "pattern", "enum", "callback", "format", "message",
        }
        unknown = set(options) - known
        if unknown:
            raise ValueError(f"Unknown schema options: {', '.join(sorted(unknown))}")

        return FieldRules(
            rules=self._ordered(rules),
            required=bool(options.get("required", False)),
            default=options.get("default", _MISSING),
            message=options.get("message"),
        )

    @staticmethod
    def _ordered(rules: List[Rule]) -> List[Rule]:
        """Type rules first so later rules see converted values."""
        typed = [r for r in rules if isinstance(r, TypeRule)]
        others = [r for r in rules if not isinstance(r, (TypeRule, Required))]
        return typed + others

    def validate(self, params: Mapping[str, Any]) -> ValidationResult:
        """
        Validate ``params``.

        Returns:
            ValidationResult with converted data or errors
        """
        data: Dict[str, Any] = dict(params)
        errors: Dict[str, List[str]] = {}

        for name, spec in self.fields.items():
            value = params.get(name)

            if value is None or (isinstance(value, str) and not value.strip()):
                if spec.required:
                    errors[name] = [spec.message or Required().get_message(name)]
                elif spec.has_default:
                    data[name] = spec.default
                continue

            field_errors: List[str] = []
            for rule in spec.rules:
                if not rule.validate(value, name, data):
                    field_errors.append(spec.message or rule.get_message(name))
                    if isinstance(rule, TypeRule):
                        break
                    continue
                if isinstance(rule, TypeRule):
                    value = rule.convert(value)

            if field_errors:
                errors[name] = field_errors
            else:
                data[name] = value

        if errors:
            return ValidationResult(valid=False, data={}, errors=errors)
        return ValidationResult(valid=True, data=data)

    def validate_or_raise(self, params: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Validate and return converted data.

        Raises:
            InvalidParameter: With every failing message
        """
        result = self.validate(params)
        result.raise_if_invalid()
        return result.data


def _number(value: Any) -> Union[int, float]:
    """Parse a rule bound; ``"1"`` and ``1.0`` both become ``1``."""
    if isinstance(value, bool):
        raise ValueError(f"Rule bound must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Rule bound must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ValueError(f"Rule bound must be finite, got {value!r}")
    return int(number) if number.is_integer() else number


__all__ = [
    "RuleSpec",
    "ValidationResult",
    "FieldRules",
    "ParameterValidator",
]
