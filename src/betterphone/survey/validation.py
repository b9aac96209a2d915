"""Email validation shared by the save endpoint and the email step."""

import re

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

EMAIL_REQUIRED_MESSAGE = "Work email is required"
EMAIL_INVALID_MESSAGE = "Please enter a valid email address"


def is_valid_email(value: object) -> bool:
    return isinstance(value, str) and EMAIL_PATTERN.match(value) is not None


def validate_email_step(email: object, *, required: bool) -> str | None:
    """Return an inline error message for the email step, or None when valid.

    A blank email is accepted when the step is optional (the respondent
    opts out of updates).
    """
    text = email.strip() if isinstance(email, str) else ""
    if not text:
        return EMAIL_REQUIRED_MESSAGE if required else None
    if not is_valid_email(text):
        return EMAIL_INVALID_MESSAGE
    return None
