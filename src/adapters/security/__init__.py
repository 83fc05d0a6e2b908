"""Credential adapters - One-way password encoding."""

from .bcrypt_store import BcryptCredentialStore

__all__ = ["BcryptCredentialStore"]
