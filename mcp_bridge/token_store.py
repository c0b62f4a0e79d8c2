"""
Per-user credential store.

Tokens are keyed by (user_id, service), where service is the server's
service key (its tool prefix). The bridge only reads them; issuing and
refreshing tokens happens elsewhere (OAuth flows write through
set_token()).
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from pathlib import Path

from sqlalchemy import (
    Column,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    delete,
    select,
)
from sqlalchemy.dialects.sqlite import insert

logger = logging.getLogger(__name__)

# Seconds before the actual expiry at which a token already counts as expired
EXPIRY_BUFFER_SECONDS = 60

metadata = MetaData()

tokens = Table(
    "tokens",
    metadata,
    Column("user_id", String, primary_key=True),
    Column("service", String, primary_key=True),
    Column("access_token", String, nullable=False),
    Column("refresh_token", String, nullable=True),
    Column("expires_at", Integer, nullable=True),
    Column("created_at", Integer, nullable=False),
)


@dataclass(frozen=True)
class CredentialRecord:
    user_id: str
    service: str
    access_token: str
    refresh_token: str | None = None
    expires_at: int | None = None  # epoch seconds
    created_at: int = 0


class TokenStore:
    """SQLite-backed token store."""

    def __init__(self, db_path: str | Path):
        db_path = Path(db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = create_engine(f"sqlite:///{db_path}")
        metadata.create_all(self.engine)
        logger.debug(f"Token store ready at {db_path}")

    def get_token(self, user_id: str, service: str) -> CredentialRecord | None:
        query = select(tokens).where(
            tokens.c.user_id == user_id,
            tokens.c.service == service,
        )
        with self.engine.connect() as conn:
            row = conn.execute(query).mappings().first()
        return CredentialRecord(**row) if row else None

    def set_token(
        self,
        user_id: str,
        service: str,
        access_token: str,
        refresh_token: str | None = None,
        expires_at: int | None = None,
    ) -> None:
        """Insert or replace the token for (user_id, service)."""
        stmt = insert(tokens).values(
            user_id=user_id,
            service=service,
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=expires_at,
            created_at=int(time.time()),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[tokens.c.user_id, tokens.c.service],
            set_={
                "access_token": stmt.excluded.access_token,
                "refresh_token": stmt.excluded.refresh_token,
                "expires_at": stmt.excluded.expires_at,
            },
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def delete_token(self, user_id: str, service: str) -> None:
        stmt = delete(tokens).where(
            tokens.c.user_id == user_id,
            tokens.c.service == service,
        )
        with self.engine.begin() as conn:
            conn.execute(stmt)

    def is_expired(self, record: CredentialRecord) -> bool:
        if record.expires_at is None:
            # No expiry recorded: never expired
            return False
        return record.expires_at <= int(time.time()) + EXPIRY_BUFFER_SECONDS

    def close(self) -> None:
        self.engine.dispose()
