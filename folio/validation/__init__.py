"""
Folio Validation System
=======================

Schema validation and type conversion for captured route parameters.

Features:
- Typed parameters (integer, float, boolean, date, string, email, url)
- Numeric and length bounds, patterns, enumerations, callbacks
- Defaults for absent parameters
- Option dict, pipe string, or rule list schemas
"""

from folio.validation.validator import (
    ParameterValidator,
    ValidationResult,
)
from folio.validation.rules import (
    Rule,
    TypeRule,
    Required,
    Integer,
    Float,
    Boolean,
    String,
    Date,
    Email,
    Url,
    Min,
    Max,
    MinLength,
    MaxLength,
    Regex,
    In,
    Callback,
)

__all__ = [
    "ParameterValidator",
    "ValidationResult",
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
]
