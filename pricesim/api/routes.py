from __future__ import annotations

import logging
import secrets
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from pricesim.engine import Engine
from pricesim.models.admin import RandomModeStatus, RandomModeUpdate

router = APIRouter(prefix="/api")
log = logging.getLogger("api")

_bearer = HTTPBearer(auto_error=False)


def get_engine(request: Request) -> Engine:
    return request.app.state.engine


def require_admin(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer),
) -> str:
    """
    Admin gate: `Authorization: Bearer <ADMIN_TOKEN>`.
    With no token configured the admin routes stay closed.
    """
    expected = getattr(request.app.state, "admin_token", None)
    if credentials is None:
        raise HTTPException(status_code=401, detail="No token provided")
    if not expected or not secrets.compare_digest(credentials.credentials, expected):
        log.warning("Rejected admin token from %s", request.client.host if request.client else "?")
        raise HTTPException(status_code=401, detail="Invalid token")
    return "admin"


@router.get("/quote/{symbol}")
async def quote(symbol: str, engine: Engine = Depends(get_engine)):
    """
    Quote v1:
    - resolves the current price (live or random mode)
    - records it
    - returns the last 20 recorded points for the graph
    """
    return await engine.record_and_quote(symbol)


@router.get("/chart/{symbol}")
async def chart(
    symbol: str,
    points: int = Query(60, ge=1, description="Recorded points to return (real mode)"),
    days: int = Query(20, ge=1, description="Days of closes to generate (random mode)"),
    engine: Engine = Depends(get_engine),
):
    return await engine.get_chart_series(symbol, points=points, days=days)


@router.get("/candles/{symbol}")
async def candles(
    symbol: str,
    days: int = Query(20, ge=1, description="How many daily candles to return"),
    engine: Engine = Depends(get_engine),
):
    """
    Daily OHLC from recorded history, completed sessions only.
    Sparse days are synthesized from the previous close.
    """
    return await engine.get_candles(symbol, days=days)


@router.get("/simulate/{symbol}/{day}")
async def simulate(
    symbol: str,
    day: date = Path(..., description="Last day of the series, YYYY-MM-DD"),
    days: int = Query(20, ge=1, description="How many daily candles to return"),
    engine: Engine = Depends(get_engine),
):
    return await engine.get_simulated_series(symbol, day, days=days)


@router.get("/intraday/{symbol}/{day}")
async def intraday(
    symbol: str,
    day: date = Path(..., description="Session day, YYYY-MM-DD"),
    points: int = Query(60, ge=1, le=1000, description="Points across the session"),
    engine: Engine = Depends(get_engine),
):
    """Simulated 09:30-15:30 path between the recorded t-1 and t+1 closes."""
    return await engine.get_intraday_series(symbol, day, points=points)


@router.get("/closes/{symbol}")
async def closes(symbol: str, engine: Engine = Depends(get_engine)):
    return await engine.get_closes(symbol)


@router.get("/admin/random-prices", response_model=RandomModeStatus)
def get_random_prices(
    _: str = Depends(require_admin),
    engine: Engine = Depends(get_engine),
):
    return RandomModeStatus(useRandomPrices=engine.get_random_mode())


@router.post("/admin/random-prices", response_model=RandomModeStatus)
def set_random_prices(
    body: RandomModeUpdate,
    actor: str = Depends(require_admin),
    engine: Engine = Depends(get_engine),
):
    return RandomModeStatus(useRandomPrices=engine.set_random_mode(body.enabled, actor=actor))
