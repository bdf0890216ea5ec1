"""Per-type validation for conversational form answers.

Every validator turns a raw agent-supplied answer into a canonical value or a
precise, user-facing error. The required check always runs before any
type-specific check.
"""

import logging
import math
import re
from typing import Any, assert_never
from urllib.parse import urlparse

from flowform.core.errors import (
    ChoiceError,
    ConfigurationError,
    FormEngineError,
    FormatError,
    MissingFileMetadataError,
    RangeError,
    RequiredFieldError,
    TypeMismatchError,
)
from flowform.core.structured_logging import build_log_context
from flowform.schemas.forms import (
    ChoiceField,
    DateField,
    EmailField,
    FileField,
    Form,
    FormField,
    LongTextField,
    NumberField,
    ScaleField,
    TextField,
    UrlField,
    ValidationOutcome,
)
from flowform.utils import datetime_parsing

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PHONE_RE = re.compile(r"^\+?[\d\s()-]{10,}$")
TEXT_PATTERNS = ("email", "url", "phone")

REQUIRED_MESSAGE = "This field is required"
UPLOAD_REQUIRED_MESSAGE = "Please upload a file"


def is_empty_answer(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


def format_number(value: float) -> str:
    """Render 5.0 as "5" and 2.5 as "2.5" for user-facing messages."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def validate_field(field: FormField, raw_value: Any, label: str | None = None) -> ValidationOutcome:
    """Validate one answer against its field definition.

    ``label`` overrides ``field.label`` for label-driven rules (the date
    time-of-day requirement).
    """
    try:
        canonical_value = _validate_field_value(field, raw_value, label or field.label)
    except ConfigurationError as exc:
        logger.warning(
            "field_configuration_invalid",
            extra=build_log_context(field_name=field.name, error_code=exc.code),
        )
        return ValidationOutcome.from_error(exc)
    except FormEngineError as exc:
        return ValidationOutcome.from_error(exc)
    return ValidationOutcome(valid=True, canonical_value=canonical_value)


def _validate_field_value(field: FormField, raw_value: Any, label: str) -> Any:
    if is_empty_answer(raw_value):
        if field.required:
            raise RequiredFieldError(REQUIRED_MESSAGE)
        return None

    if isinstance(field, (TextField, LongTextField)):
        return _validate_text(field, raw_value)
    if isinstance(field, EmailField):
        return _validate_email(raw_value)
    if isinstance(field, UrlField):
        return _validate_url(raw_value)
    if isinstance(field, NumberField):
        return _validate_number(field, raw_value)
    if isinstance(field, DateField):
        return _validate_date(raw_value, label)
    if isinstance(field, ChoiceField):
        if field.is_multi_select:
            return _validate_multi_choice(field, raw_value)
        return _validate_single_choice(field, raw_value)
    if isinstance(field, ScaleField):
        return _validate_scale(field, raw_value)
    if isinstance(field, FileField):
        # File answers carry upload metadata and go through file_validation_service.
        raise MissingFileMetadataError(UPLOAD_REQUIRED_MESSAGE)
    assert_never(field)


def _require_scalar(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    if isinstance(value, (list, tuple)):
        raise TypeMismatchError("Please provide a single value, not a list")
    raise TypeMismatchError("Please provide a text value")


def _require_known_pattern(field: TextField | LongTextField) -> str | None:
    pattern = field.validation.pattern if field.validation else None
    if pattern and pattern not in TEXT_PATTERNS:
        raise ConfigurationError(f"Invalid field configuration: unknown pattern '{pattern}'")
    return pattern or None


def _validate_text(field: TextField | LongTextField, raw_value: Any) -> str:
    value = _require_scalar(raw_value)
    pattern = _require_known_pattern(field)
    if not pattern:
        return value
    if pattern == "email":
        return _validate_email(value)
    if pattern == "url":
        return _validate_url(value)
    phone = value.strip()
    if not PHONE_RE.fullmatch(phone):
        raise FormatError("Please provide a valid phone number (e.g., +1 555 123 4567)")
    return phone


def _validate_email(raw_value: Any) -> str:
    value = _require_scalar(raw_value)
    if not EMAIL_RE.fullmatch(value):
        raise FormatError("Please provide a valid email address (e.g., name@example.com)")
    return value


def _validate_url(raw_value: Any) -> str:
    value = _require_scalar(raw_value)
    candidate = value.strip()
    parsed = urlparse(candidate)
    if not parsed.scheme or not parsed.netloc or any(ch.isspace() for ch in candidate):
        raise FormatError("Please provide a valid URL (e.g., https://example.com)")
    return value


def _validate_number(field: NumberField, raw_value: Any) -> str:
    value = _require_scalar(raw_value)
    try:
        # float() accepts "1_000"; answers must be plain digits
        number = math.nan if "_" in value else float(value.strip())
    except ValueError:
        number = math.nan
    if not math.isfinite(number):
        raise FormatError("Please provide a valid number")

    validation = field.validation
    if validation:
        if validation.min is not None and number < validation.min:
            raise RangeError(f"Number must be at least {format_number(validation.min)}")
        if validation.max is not None and number > validation.max:
            raise RangeError(f"Number must be at most {format_number(validation.max)}")
    return value


def _validate_date(raw_value: Any, label: str) -> str:
    value = _require_scalar(raw_value)
    parsed = datetime_parsing.parse_natural_datetime(value)
    if parsed.value is None:
        raise FormatError(
            "I couldn't understand that date. Please try an explicit format like "
            '"January 15, 2026" or "tomorrow at 3pm"'
        )
    if datetime_parsing.label_requires_time(label) and not parsed.has_explicit_time:
        raise FormatError(
            'Please include a specific time as well as the date (e.g., "tomorrow at 3pm" '
            'or "January 15 at 10:30am")'
        )
    return datetime_parsing.to_iso_utc(parsed.value)


def _require_choices(field: ChoiceField) -> list[str]:
    choices = field.options.choices if field.options else None
    if not choices:
        raise ConfigurationError("Invalid field configuration: choice field has no choices")
    seen: set[str] = set()
    for choice in choices:
        key = choice.strip().lower()
        if key in seen:
            # An answer must match exactly one choice.
            raise ConfigurationError(
                f"Invalid field configuration: duplicate choice '{choice.strip()}'"
            )
        seen.add(key)
    return choices


def _match_choice(value: str, choices: list[str]) -> str | None:
    normalized = value.strip().lower()
    for choice in choices:
        if choice.strip().lower() == normalized:
            return choice
    return None


def _validate_single_choice(field: ChoiceField, raw_value: Any) -> str:
    choices = _require_choices(field)
    if isinstance(raw_value, (list, tuple)):
        raise TypeMismatchError("Please choose a single option")
    value = _require_scalar(raw_value)
    matched = _match_choice(value, choices)
    if matched is None:
        raise ChoiceError(f"Please choose one of: {', '.join(choices)}")
    return matched


def _validate_multi_choice(field: ChoiceField, raw_value: Any) -> list[str]:
    choices = _require_choices(field)
    if isinstance(raw_value, str):
        # Submissions carry answers as strings; "Red, Blue" is a two-item selection.
        items = [item.strip() for item in raw_value.split(",") if item.strip()]
    elif isinstance(raw_value, (list, tuple)):
        items = list(raw_value)
    else:
        raise TypeMismatchError("Please choose one or more options")
    if not items:
        raise TypeMismatchError("Please choose at least one option")

    selected: list[str] = []
    invalid: list[str] = []
    for item in items:
        if not isinstance(item, str):
            raise TypeMismatchError("Please choose one or more options")
        matched = _match_choice(item, choices)
        if matched is None:
            invalid.append(item)
        else:
            selected.append(matched)
    if invalid:
        raise ChoiceError(
            f"Invalid choice(s): {', '.join(invalid)}. Please choose from: {', '.join(choices)}"
        )
    return selected


def _require_scale_bounds(field: ScaleField) -> tuple[float, float]:
    options = field.options
    if options is None or options.min is None or options.max is None:
        raise ConfigurationError("Invalid field configuration: scale field needs min and max")
    if options.min >= options.max:
        raise ConfigurationError("Invalid field configuration: scale min must be less than max")
    return options.min, options.max


def _validate_scale(field: ScaleField, raw_value: Any) -> str:
    low, high = _require_scale_bounds(field)

    value = _require_scalar(raw_value)
    if "_" in value:
        raise FormatError("Please provide a whole number")
    try:
        number = int(value.strip())
    except ValueError as exc:
        raise FormatError("Please provide a whole number") from exc
    if number < low or number > high:
        raise RangeError(
            f"Please choose a number between {format_number(low)} and {format_number(high)}"
        )
    return str(number)


def form_schema_problems(form: Form) -> list[str]:
    """List every configuration problem in a form, as "{label}: {message}".

    Validation reports these lazily, one field at a time; this lets a caller
    lint a whole schema before a conversation starts.
    """
    problems: list[str] = []
    for field in form.fields:
        try:
            if isinstance(field, ChoiceField):
                _require_choices(field)
            elif isinstance(field, ScaleField):
                _require_scale_bounds(field)
            elif isinstance(field, (TextField, LongTextField)):
                _require_known_pattern(field)
        except ConfigurationError as exc:
            problems.append(f"{field.label}: {exc.message}")
    return problems
