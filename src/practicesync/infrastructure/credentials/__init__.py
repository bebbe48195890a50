"""Credential storage."""

from practicesync.infrastructure.credentials.database_credentials import (
    DatabaseCredentialProvider,
)

__all__ = ["DatabaseCredentialProvider"]
