"""Anonymous device identity persisted in the local database"""
import uuid
from datetime import datetime, timezone

from shelfprice.offline.local_db import AppIdentity

DEVICE_IDENTITY_KEY = "anonymous_device_id"


async def get_or_create_device_id(session_factory) -> str:
    """Return this install's device id, generating it on first use."""
    async with session_factory() as db:
        existing = await db.get(AppIdentity, DEVICE_IDENTITY_KEY)
        if existing is not None and existing.value:
            return existing.value

        now = datetime.now(timezone.utc)
        device_id = str(uuid.uuid4())
        db.add(AppIdentity(key=DEVICE_IDENTITY_KEY, value=device_id, created_at=now, updated_at=now))
        await db.commit()
        return device_id
