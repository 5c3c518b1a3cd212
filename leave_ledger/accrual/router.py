"""Accrual router — run the monthly batch, inspect the run log."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leave_ledger.accrual.schemas import AccrualInfoOut, AccrualRunOut, AccrualRunRequest
from leave_ledger.accrual.service import AccrualEngine
from leave_ledger.database import get_db

router = APIRouter(prefix="", tags=["accrual"])


# ── POST /run ───────────────────────────────────────────────────────

@router.post("/run", response_model=AccrualRunOut, status_code=201)
async def run_accrual(
    body: AccrualRunRequest,
    db: AsyncSession = Depends(get_db),
):
    """Run accrual for the month of ``as_of`` (default: today). Once per month."""
    return await AccrualEngine.run_accrual(db, body.as_of, actor_id=body.actor_id)


# ── GET /info ───────────────────────────────────────────────────────

@router.get("/info", response_model=AccrualInfoOut)
async def accrual_info(db: AsyncSession = Depends(get_db)):
    return await AccrualEngine.get_accrual_info(db)
