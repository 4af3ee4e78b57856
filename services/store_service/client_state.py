"""Per-shopper key/value state persisted in store_client_state.

`local` entries never expire (cart lines, delivery mode). `session` entries
(the staged checkout payload) expire after CHECKOUT_PAYLOAD_TTL_MINUTES.
"""

from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import as_utc, minutes_from_now, utc_now
from libs.common.logging import get_logger
from services.store_service.cart_store import CartStore, MemoryStorage
from services.store_service.models import ClientStateEntry, StorageScope
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class ClientState:
    def __init__(
        self,
        session_id: str,
        local: Optional[MemoryStorage] = None,
        session: Optional[MemoryStorage] = None,
    ):
        self.session_id = session_id
        self.local = local or MemoryStorage()
        self.session = session or MemoryStorage()

    @classmethod
    async def load(cls, db: AsyncSession, session_id: str) -> "ClientState":
        result = await db.execute(
            select(ClientStateEntry).where(ClientStateEntry.session_id == session_id)
        )
        now = utc_now()
        local: dict[str, str] = {}
        session: dict[str, str] = {}
        for entry in result.scalars().all():
            if entry.scope == StorageScope.LOCAL:
                local[entry.key] = entry.value
            elif entry.expires_at is None or as_utc(entry.expires_at) > now:
                session[entry.key] = entry.value
        return cls(session_id, MemoryStorage(local), MemoryStorage(session))

    def cart(self) -> CartStore:
        return CartStore.create(self.local)

    async def flush(self, db: AsyncSession, commit: bool = True) -> None:
        """Write changed keys back; removed keys delete their row."""
        settings = get_settings()
        for scope, storage in (
            (StorageScope.LOCAL, self.local),
            (StorageScope.SESSION, self.session),
        ):
            for key in sorted(storage.dirty):
                result = await db.execute(
                    select(ClientStateEntry).where(
                        ClientStateEntry.session_id == self.session_id,
                        ClientStateEntry.scope == scope,
                        ClientStateEntry.key == key,
                    )
                )
                entry = result.scalar_one_or_none()
                value = storage.get_item(key)
                expires_at = (
                    minutes_from_now(settings.CHECKOUT_PAYLOAD_TTL_MINUTES)
                    if scope == StorageScope.SESSION
                    else None
                )

                if value is None:
                    if entry is not None:
                        await db.delete(entry)
                elif entry is None:
                    db.add(
                        ClientStateEntry(
                            session_id=self.session_id,
                            scope=scope,
                            key=key,
                            value=value,
                            expires_at=expires_at,
                        )
                    )
                else:
                    entry.value = value
                    entry.expires_at = expires_at
            storage.mark_clean()

        if commit:
            await db.commit()
