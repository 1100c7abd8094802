"""Validation for contact and enrollment submissions.

Three passes, all collected into one field -> messages map:
1. required fields are present and non-empty
2. schema validation (types, formats, lengths) via the Pydantic payloads
3. date rules that depend on "today" (age eligibility, start date)

Expected failures never raise; they come back as a ValidationOutcome.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Union

from pydantic import ValidationError
from pydantic.alias_generators import to_camel

from helpers.time_utils import calculate_age
from models.schemas import ContactPayload, EnrollmentPayload, Program
from repositories.db_models import SubmissionKind

REQUIRED_MESSAGE = "This field is required"

REQUIRED_FIELDS: dict[SubmissionKind, tuple[str, ...]] = {
    SubmissionKind.CONTACT: ("name", "email", "subject", "message", "consent"),
    SubmissionKind.ENROLLMENT: (
        "parentName",
        "email",
        "phone",
        "address",
        "city",
        "state",
        "zipCode",
        "childName",
        "childBirthDate",
        "program",
        "desiredStartDate",
        "emergencyContact",
        "emergencyPhone",
        "emergencyRelationship",
    ),
}

# Inclusive age range in months and its human label, per program
PROGRAM_AGE_RANGES: dict[Program, tuple[float, float, str]] = {
    Program.INFANT: (1.5, 15, "6 weeks - 15 months"),
    Program.TODDLER: (15, 36, "15 months - 3 years"),
    Program.PRESCHOOL: (36, 60, "3 - 5 years"),
    Program.PREK: (48, 72, "4 - 6 years"),
    Program.SCHOOLAGE: (60, 144, "5 - 12 years"),
}

FIELD_LABELS = {
    "name": "Name",
    "parentName": "Parent name",
    "childName": "Child name",
    "message": "Message",
}

DATE_ERROR_MESSAGES = {
    "childBirthDate": "Invalid birth date",
    "desiredStartDate": "Invalid start date",
}

PAYLOAD_MODELS: dict[SubmissionKind, type[Union[ContactPayload, EnrollmentPayload]]] = {
    SubmissionKind.CONTACT: ContactPayload,
    SubmissionKind.ENROLLMENT: EnrollmentPayload,
}


@dataclass
class ValidationOutcome:
    """Either a normalized payload or the field errors that prevented one."""

    payload: Union[ContactPayload, EnrollmentPayload, None] = None
    errors: dict[str, list[str]] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return self.payload is not None and not self.errors


def to_public_key(key: str) -> str:
    """Map snake_case input keys to the camelCase names used in responses."""
    return to_camel(key) if "_" in key else key


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _add_error(errors: dict[str, list[str]], key: str, message: str) -> None:
    messages = errors.setdefault(key, [])
    if message not in messages:
        messages.append(message)


def _message_for(key: str, error: Mapping[str, Any]) -> str:
    """Turn a Pydantic error into a message fit for a form."""
    error_type = error.get("type", "")
    ctx = error.get("ctx") or {}

    if error_type == "missing":
        return REQUIRED_MESSAGE
    if error_type == "value_error" and "error" in ctx:
        return str(ctx["error"])
    if error_type.startswith("date_") or error_type.startswith("datetime_"):
        return DATE_ERROR_MESSAGES.get(key, "Invalid date")
    if error_type == "string_too_short":
        label = FIELD_LABELS.get(key, "This field")
        return f"{label} must be at least {ctx.get('min_length')} characters"
    if error_type == "string_too_long":
        label = FIELD_LABELS.get(key, "This field")
        return f"{label} must be at most {ctx.get('max_length')} characters"
    if error_type in ("enum", "literal_error"):
        return "Please choose a valid option"
    if error_type == "string_pattern_mismatch" and key == "idempotencyKey":
        return "Invalid idempotency key"
    return str(error.get("msg", "Invalid value"))


class ValidationService:
    """Validate sanitized form data into a tagged payload."""

    def __init__(self, today: Callable[[], date] = date.today):
        self._today = today

    def validate(
        self, kind: SubmissionKind, data: Mapping[str, Any]
    ) -> ValidationOutcome:
        """
        Validate a submission.

        Args:
            kind: Which form the data came from.
            data: Sanitized form data (camelCase or snake_case keys).

        Returns:
            ValidationOutcome with a payload, or errors keyed by camelCase
            field name.
        """
        normalized = {to_public_key(key): value for key, value in data.items()}
        errors: dict[str, list[str]] = {}

        for key in REQUIRED_FIELDS[kind]:
            if _is_blank(normalized.get(key)):
                _add_error(errors, key, REQUIRED_MESSAGE)

        model = PAYLOAD_MODELS[kind]
        payload = None
        try:
            payload = model.model_validate({**normalized, "kind": kind.value})
        except ValidationError as exc:
            for error in exc.errors():
                loc = error.get("loc") or ("form",)
                field_name = str(loc[0])
                field_info = model.model_fields.get(field_name)
                key = field_info.alias if field_info and field_info.alias else field_name
                if errors.get(key) == [REQUIRED_MESSAGE]:
                    continue
                _add_error(errors, key, _message_for(key, error))

        if errors:
            return ValidationOutcome(errors=errors)

        if isinstance(payload, EnrollmentPayload):
            self._check_enrollment_dates(payload, errors)
            if errors:
                return ValidationOutcome(errors=errors)

        return ValidationOutcome(payload=payload)

    def _check_enrollment_dates(
        self, payload: EnrollmentPayload, errors: dict[str, list[str]]
    ) -> None:
        today = self._today()
        birth_date = payload.child_birth_date

        if birth_date > today:
            _add_error(errors, "childBirthDate", "Birth date cannot be in the future")
        else:
            years, months = calculate_age(birth_date, today)
            if years > 12 or (years == 0 and months < 1):
                _add_error(
                    errors,
                    "childBirthDate",
                    "Child must be between 6 weeks and 12 years old",
                )
            else:
                eligibility_error = check_program_eligibility(
                    payload.program, years, months
                )
                if eligibility_error:
                    _add_error(errors, "program", eligibility_error)

        if payload.desired_start_date < today:
            _add_error(errors, "desiredStartDate", "Start date cannot be in the past")


def check_program_eligibility(program: Program, years: int, months: int) -> str | None:
    """
    Check a child's age against a program's inclusive month range.

    Returns:
        An error message naming the mismatch, or None when eligible.
    """
    min_months, max_months, label = PROGRAM_AGE_RANGES[program]
    total_months = years * 12 + months
    if min_months <= total_months <= max_months:
        return None
    return (
        f"Child's age ({years} years, {months} months) is not eligible for "
        f"{program.value} program ({label})"
    )
