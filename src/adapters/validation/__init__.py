"""Validation adapters."""

from .email import EmailAddressValidator

__all__ = ["EmailAddressValidator"]
