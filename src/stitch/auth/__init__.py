"""
Authentication package.

Token retrieval and session state only; tokens are issued elsewhere.
"""

from stitch.auth.credentials import (
    CredentialResolver,
    CredentialStorage,
    FileCredentialStorage,
    MemoryCredentialStorage,
)
from stitch.auth.session import Session

__all__ = [
    "CredentialResolver",
    "CredentialStorage",
    "FileCredentialStorage",
    "MemoryCredentialStorage",
    "Session",
]
