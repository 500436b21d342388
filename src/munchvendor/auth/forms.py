# Auth form schemas: login and signup inputs with inline error messages.
# Created: 2026-10-16

from __future__ import annotations

import re

from pydantic import BaseModel, ValidationError, field_validator, model_validator

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?\d+$")

STRENGTH_LABELS = ("Too Weak", "Weak", "Fair", "Good", "Strong")


def password_checks(password: str) -> dict[str, bool]:
    return {
        "length": len(password) >= 8,
        "uppercase": re.search(r"[A-Z]", password) is not None,
        "number": re.search(r"[0-9]", password) is not None,
        "special": re.search(r"[^a-zA-Z0-9]", password) is not None,
    }


def password_strength(password: str) -> tuple[int, str]:
    """Score 0-4 (one point per satisfied rule) and its label."""
    score = sum(password_checks(password).values())
    return score, STRENGTH_LABELS[score]


def _check_email(value: str) -> str:
    value = value.strip()
    if not _EMAIL_RE.match(value):
        raise ValueError("Please enter a valid email address.")
    return value


class LoginForm(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters.")
        return v


class SignupForm(BaseModel):
    first_name: str
    last_name: str
    email: str
    phone: str
    password: str
    confirm_password: str

    @field_validator("first_name")
    @classmethod
    def _first_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("First name is required.")
        return v.strip()

    @field_validator("last_name")
    @classmethod
    def _last_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Last name is required.")
        return v.strip()

    @field_validator("email")
    @classmethod
    def _email(cls, v: str) -> str:
        return _check_email(v)

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: str) -> str:
        if len(v) < 10:
            raise ValueError("Phone number must be at least 10 characters.")
        if not _PHONE_RE.match(v):
            raise ValueError("Invalid phone number format.")
        return v

    @field_validator("password")
    @classmethod
    def _password(cls, v: str) -> str:
        checks = password_checks(v)
        if not checks["length"]:
            raise ValueError("Password must be at least 8 characters.")
        if not checks["uppercase"]:
            raise ValueError("Must contain at least one uppercase letter (A-Z).")
        if not checks["number"]:
            raise ValueError("Must contain at least one number (0-9).")
        if not checks["special"]:
            raise ValueError(
                "Must contain at least one special character (not a letter or number)."
            )
        return v

    @model_validator(mode="after")
    def _passwords_match(self) -> SignupForm:
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match.")
        return self

    def to_payload(self) -> dict[str, str]:
        """Body for ``POST /auth/signup`` (no confirmation field)."""
        return {
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "phone": self.phone,
            "password": self.password,
        }


def field_errors(exc: ValidationError) -> dict[str, str]:
    """Flatten a ValidationError into ``{field: first message}``.

    Model-level errors (password confirmation) land on ``confirm_password``.
    """
    errors: dict[str, str] = {}
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "confirm_password"
        ctx_error = (err.get("ctx") or {}).get("error")
        message = str(ctx_error) if ctx_error is not None else err["msg"]
        errors.setdefault(field, message)
    return errors
