"""API key storage backed by the cache database.

Hey future me - DB-first with an environment fallback:

1. A key saved via save_api_key() (stored in the credentials table) wins.
2. Otherwise PRACTICESYNC_NOTION__API_KEY from settings.
3. Otherwise None → the coordinator flips to "needs API key".

Unlike the cache, storage failures here are NOT swallowed: a user who just
typed their key must learn that it was not stored.
"""

import logging

from pydantic import SecretStr
from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError

from practicesync.domain.exceptions import StorageUnavailableError
from practicesync.domain.ports import ICredentialProvider
from practicesync.infrastructure.persistence.database import Database
from practicesync.infrastructure.persistence.models import CredentialModel, utc_now

logger = logging.getLogger(__name__)

API_KEY_NAME = "notion_api_key"


class DatabaseCredentialProvider(ICredentialProvider):
    """Credential provider storing the API key in the local database."""

    def __init__(self, database: Database, fallback_api_key: SecretStr | None = None) -> None:
        self._db = database
        self._fallback = fallback_api_key

    async def get_api_key(self) -> str | None:
        try:
            async with self._db.session_scope() as session:
                stored = await session.get(CredentialModel, API_KEY_NAME)
                if stored is not None and stored.value:
                    return stored.value
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Could not read API key: {e}") from e

        if self._fallback is not None and self._fallback.get_secret_value():
            logger.debug("Using API key from environment settings")
            return self._fallback.get_secret_value()
        return None

    async def save_api_key(self, api_key: str) -> None:
        try:
            async with self._db.session_scope() as session:
                stored = await session.get(CredentialModel, API_KEY_NAME)
                if stored is None:
                    session.add(CredentialModel(key=API_KEY_NAME, value=api_key))
                else:
                    stored.value = api_key
                    stored.updated_at = utc_now()
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Could not store API key: {e}") from e
        logger.info("API key saved")

    async def delete_api_key(self) -> None:
        # The env fallback is dropped too, otherwise "clear" would silently come back
        # on the next get_api_key(). A restart picks the env key up again.
        self._fallback = None
        try:
            async with self._db.session_scope() as session:
                await session.execute(
                    delete(CredentialModel).where(CredentialModel.key == API_KEY_NAME)
                )
        except SQLAlchemyError as e:
            raise StorageUnavailableError(f"Could not delete API key: {e}") from e
        logger.info("API key deleted")
