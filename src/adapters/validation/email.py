"""
Email validator adapter - Implements EmailValidator protocol.

Wraps the email-validator library (the same one pydantic's EmailStr uses)
for a purely syntactic check. Deliverability (DNS) checks are off unless
explicitly enabled.
"""

import logging

from email_validator import EmailNotValidError, validate_email

logger = logging.getLogger(__name__)


class EmailAddressValidator:
    """Implements EmailValidator protocol via email-validator."""

    def __init__(self, check_deliverability: bool = False) -> None:
        self._check_deliverability = check_deliverability

    def is_valid(self, email: str) -> bool:
        try:
            validate_email(email, check_deliverability=self._check_deliverability)
        except EmailNotValidError as e:
            logger.debug("Rejected email %r: %s", email, e)
            return False
        return True
