"""
DCA Execution Agent REST API routes.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config import settings
from shared.database import get_db
from shared.auth import verify_api_key
from agents.dca.models.db import DCAPlan, Token
from agents.dca.models.schemas import (
    TokenResponse, PlanResponse, ExecutionResponse, RunResponse, PortfolioResponse, HealthResponse,
)
from agents.dca.services.portfolio import compute_portfolio

router = APIRouter(prefix="/api/v1/dca", tags=["dca"])


def _engine(request: Request):
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Execution engine not running")
    return engine


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    resp = HealthResponse()
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        resp.status = "ok (no engine)"
        return resp
    try:
        resp.active_plans, resp.total_executions = await engine.store.count_plans_and_executions()
    except Exception:
        resp.status = "ok (no db)"
    return resp


@router.get("/plans", response_model=list[PlanResponse])
async def list_plans(
    active_only: bool = True,
    wallet: str | None = None,
    db: AsyncSession = Depends(get_db),
    _key: bool = Depends(verify_api_key),
):
    q = select(DCAPlan)
    if active_only:
        q = q.where(DCAPlan.active == True)
    if wallet:
        q = q.where(DCAPlan.user_wallet == wallet)
    result = await db.execute(q.order_by(DCAPlan.id))
    return list(result.scalars().all())


@router.get("/plans/{row_id}", response_model=PlanResponse)
async def get_plan(
    row_id: int,
    db: AsyncSession = Depends(get_db),
    _key: bool = Depends(verify_api_key),
):
    result = await db.execute(select(DCAPlan).where(DCAPlan.id == row_id))
    plan = result.scalar_one_or_none()
    if plan is None:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


@router.get("/executions", response_model=list[ExecutionResponse])
async def list_executions(
    request: Request,
    plan_id: int | None = None,
    limit: int = 50,
    _key: bool = Depends(verify_api_key),
):
    return await _engine(request).store.list_executions(plan_row_id=plan_id, limit=min(limit, 500))


@router.get("/tokens", response_model=list[TokenResponse])
async def list_tokens(db: AsyncSession = Depends(get_db)):
    result = await db.execute(select(Token).order_by(Token.symbol))
    return list(result.scalars().all())


@router.get("/portfolio/{wallet}", response_model=PortfolioResponse)
async def get_portfolio(
    wallet: str,
    request: Request,
    _key: bool = Depends(verify_api_key),
):
    plans = await _engine(request).store.list_user_plans_with_executions(wallet)
    fields = compute_portfolio(plans, {settings.FUNDING_TOKEN_ADDRESS})
    return PortfolioResponse(
        wallet=wallet,
        date=datetime.now(timezone.utc).date().isoformat(),
        **fields,
    )


@router.post("/run", response_model=RunResponse)
async def trigger_run(request: Request, _key: bool = Depends(verify_api_key)):
    """Run one execution pass now. Returns busy=true if a pass is already running."""
    result = await _engine(request).orchestrator.run()
    return result.to_dict()
