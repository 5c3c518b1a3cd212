"""Policy store — loads the PolicyConfig snapshot and caches it.

The snapshot lives as JSON in ``app_settings['leave_policy']``. Callers get
an immutable :class:`PolicyConfig`; writes go through :meth:`update_policy`,
which also invalidates the cache.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.common.audit import create_audit_entry
from leave_ledger.common.constants import POLICY_SETTING_KEY
from leave_ledger.common.models import AppSetting
from leave_ledger.policy.schemas import PolicyConfig, PolicyConfigUpdate

logger = logging.getLogger(__name__)

# Audit rows need a UUID entity id; the policy row is keyed by name.
POLICY_ENTITY_ID = uuid.uuid5(uuid.NAMESPACE_URL, "leave-ledger/policy")


class PolicyService:
    """Async access to the policy snapshot with an explicit cache."""

    _cached: Optional[PolicyConfig] = None

    @classmethod
    def invalidate(cls) -> None:
        cls._cached = None

    @classmethod
    async def get_policy(cls, db: AsyncSession) -> PolicyConfig:
        """Return the current snapshot, loading it once per invalidation."""
        if cls._cached is not None:
            return cls._cached

        result = await db.execute(
            select(AppSetting).where(AppSetting.key == POLICY_SETTING_KEY)
        )
        row = result.scalars().first()
        if row is None:
            logger.info("No stored leave policy; using defaults")
            policy = PolicyConfig()
        else:
            policy = PolicyConfig.model_validate(row.value)

        cls._cached = policy
        return policy

    @classmethod
    async def update_policy(
        cls,
        db: AsyncSession,
        data: PolicyConfigUpdate,
        *,
        actor_id: Optional[uuid.UUID] = None,
    ) -> PolicyConfig:
        """Merge ``data`` into the stored policy and persist it."""
        current = await cls.get_policy(db)
        changes = data.model_dump(exclude_none=True)
        updated = current.model_copy(
            update={
                key: getattr(data, key)
                for key in changes
            }
        )

        result = await db.execute(
            select(AppSetting).where(AppSetting.key == POLICY_SETTING_KEY)
        )
        row = result.scalars().first()
        payload = updated.model_dump(mode="json")
        old_payload = current.model_dump(mode="json")
        if row is None:
            row = AppSetting(
                key=POLICY_SETTING_KEY,
                value=payload,
                description="Leave quotas, accrual rates and system settings",
                updated_by=actor_id,
            )
            db.add(row)
        else:
            row.value = payload
            row.updated_by = actor_id
            row.updated_at = datetime.now(timezone.utc)
        await db.flush()

        await create_audit_entry(
            db,
            action="update",
            entity_type="leave_policy",
            entity_id=POLICY_ENTITY_ID,
            actor_id=actor_id,
            old_values={k: old_payload[k] for k in changes},
            new_values={k: payload[k] for k in changes},
        )

        cls.invalidate()
        logger.info("Leave policy updated (sections: %s)", ", ".join(sorted(changes)))
        return updated
