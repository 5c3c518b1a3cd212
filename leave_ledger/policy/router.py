"""Policy router — read and update the leave policy snapshot."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.database import get_db
from leave_ledger.policy.schemas import PolicyConfig, PolicyConfigUpdate
from leave_ledger.policy.service import PolicyService

router = APIRouter(prefix="", tags=["policy"])


@router.get("", response_model=PolicyConfig)
async def get_policy(db: AsyncSession = Depends(get_db)):
    return await PolicyService.get_policy(db)


@router.put("", response_model=PolicyConfig)
async def update_policy(
    body: PolicyConfigUpdate,
    actor_id: Optional[uuid.UUID] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Replace the given sections; omitted sections are kept."""
    return await PolicyService.update_policy(db, body, actor_id=actor_id)
