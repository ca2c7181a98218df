import logging
import math
import re
from inspect import isawaitable
from typing import Any, Callable, Optional

from smartform.form.schema import Field, ValidationPolicy, ValidationRules

logger = logging.getLogger(__name__)

# Leading numeric prefix, the way parseFloat reads "25px" as 25.
_FLOAT_PREFIX = re.compile(r"^[+-]?(?:Infinity|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def parse_float(value: Any) -> float:
    """Reads a number the way a browser's parseFloat does; NaN when nothing parses."""
    if isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    match = _FLOAT_PREFIX.match(str(value).lstrip())
    if not match:
        return math.nan
    return float(match.group(0).replace("Infinity", "inf"))


def _number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _has_length(value: Any) -> bool:
    return isinstance(value, (str, list, tuple, set, dict, bytes))


class Validator:
    """
    Provides the built-in declarative checks. Each returns an error message or None.
    """

    @staticmethod
    def min_length(value: Any, length: Optional[int]) -> Optional[str]:
        if length and _has_length(value) and len(value) < length:
            return f"Field must be at least {length} characters long."
        return None

    @staticmethod
    def required(value: Any, required: bool) -> Optional[str]:
        if required and not value:
            return "Field is required."
        return None

    @staticmethod
    def regex(value: Any, pattern: Optional[re.Pattern], error_message: str = None) -> Optional[str]:
        if pattern is not None and not pattern.search(str(value)):
            return error_message or "Invalid value."
        return None

    @staticmethod
    def email(value: Any, enabled: bool) -> Optional[str]:
        if enabled and "@" not in str(value if value is not None else ""):
            return "Field must be a valid email address."
        return None

    @staticmethod
    def max_length(value: Any, length: Optional[int]) -> Optional[str]:
        if length and _has_length(value) and len(value) > length:
            return f"Field must not exceed {length} characters."
        return None

    @staticmethod
    def min_value(value: Any, min_val: Optional[float]) -> Optional[str]:
        # NaN compares false, so non-numeric input never trips the bound.
        if min_val is not None and parse_float(value) < min_val:
            return f"Value must be greater than or equal to {_number(min_val)}."
        return None

    @staticmethod
    def max_value(value: Any, max_val: Optional[float]) -> Optional[str]:
        if max_val is not None and parse_float(value) > max_val:
            return f"Value must be less than or equal to {_number(max_val)}."
        return None

    @staticmethod
    def check_rules(rules: ValidationRules, value: Any) -> Optional[str]:
        """
        Runs every declarative rule in a fixed order. When several fail, the
        one evaluated last is reported.
        """
        checks = (
            Validator.min_length(value, rules.min_length),
            Validator.required(value, rules.required),
            Validator.regex(value, rules.regex, rules.regex_error),
            Validator.email(value, rules.email),
            Validator.max_length(value, rules.max_length),
            Validator.min_value(value, rules.min),
            Validator.max_value(value, rules.max),
            Validator.regex(value, rules.pattern, rules.pattern_error),
        )
        error = None
        for message in checks:
            if message:
                error = message
        return error

    @staticmethod
    async def custom(validation_func: Callable[[Any], Any], value: Any) -> Optional[str]:
        """
        Calls a custom validator. Plain return values and awaitables are both
        accepted; a raised exception's message becomes the error.
        """
        try:
            result = validation_func(value)
            if isawaitable(result):
                result = await result
        except Exception as e:
            logger.debug("Custom validator raised %s: %s", type(e).__name__, e)
            return str(e) or type(e).__name__
        return str(result) if result else None


async def validate(field: Field, value: Any, disable_validation: bool = False) -> Optional[str]:
    """
    Computes the error message for a candidate value, or None when it passes.
    """
    if disable_validation:
        return None

    if field.rules is not None:
        error = Validator.check_rules(field.rules, value)
        if error or field.policy is ValidationPolicy.RULES_XOR_CUSTOM:
            return error

    if field.custom_validator is not None:
        return await Validator.custom(field.custom_validator, value)

    return None
