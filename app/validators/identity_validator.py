"""
app/validators/identity_validator.py

Required-field gate and trust scoring for identity candidates.
"""

from __future__ import annotations

import re

from app.domain.identity import CandidateUser, FieldError, ValidationOutcome

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{1,14}$")
MIN_NAME_LENGTH = 2

EMAIL_DEDUCTION = 0.3
PHONE_DEDUCTION = 0.3
NAME_DEDUCTION = 0.2


def is_valid_email(email: str | None) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def is_valid_phone(phone: str | None) -> bool:
    return bool(phone) and PHONE_PATTERN.fullmatch(phone) is not None


def is_valid_full_name(full_name: str | None) -> bool:
    return bool(full_name) and len(full_name.strip()) >= MIN_NAME_LENGTH


def calculate_trust_score(candidate: CandidateUser) -> float:
    """
    Start at 1.0, apply weighted deductions per invalid field, clamp to [0, 1].
    """

    deductions: list[float] = []
    if not is_valid_email(candidate.email):
        deductions.append(EMAIL_DEDUCTION)
    if not is_valid_phone(candidate.phone):
        deductions.append(PHONE_DEDUCTION)
    if not is_valid_full_name(candidate.full_name):
        deductions.append(NAME_DEDUCTION)

    score = 1.0 - sum(deductions)
    return max(0.0, min(1.0, score))


class IdentityValidator:
    """
    Validates candidates and scores the ones that pass.
    """

    def validate(self, candidate: CandidateUser) -> ValidationOutcome:
        """
        Apply the required-field gate; score accepted candidates.
        """

        errors: list[FieldError] = []

        if not candidate.email:
            errors.append(FieldError(field="email", reason="Email is required."))
        elif not is_valid_email(candidate.email):
            errors.append(FieldError(field="email", reason="Invalid email format."))

        if not candidate.phone:
            errors.append(FieldError(field="phone", reason="Phone number is required."))
        elif not is_valid_phone(candidate.phone):
            errors.append(
                FieldError(
                    field="phone",
                    reason="Phone number must be a valid international format.",
                )
            )

        if not is_valid_full_name(candidate.full_name):
            errors.append(
                FieldError(
                    field="full_name",
                    reason=f"Full name is required and must be at least {MIN_NAME_LENGTH} characters.",
                )
            )

        if errors:
            return ValidationOutcome(errors=tuple(errors))
        return ValidationOutcome(trust_score=calculate_trust_score(candidate))
