"""Credential storage module for streamchat.

Persists the bearer credential issued by the backend between runs.
"""

from .base import CredentialStore
from .factory import create_credential_store
from .models import Credential

__all__ = [
    "Credential",
    "CredentialStore",
    "create_credential_store",
]
