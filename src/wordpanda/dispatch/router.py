"""HTTP trigger for the scheduled dispatches."""

from __future__ import annotations

import hmac

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from wordpanda.config import get_settings
from wordpanda.database import get_session
from wordpanda.dispatch.service import DISPATCHES, DispatchDeps

router = APIRouter(prefix="/api/v1/dispatch", tags=["Dispatch"])


def get_dispatch_deps() -> DispatchDeps:
    return DispatchDeps.from_settings(get_settings())


def require_trigger_token(x_dispatch_token: str | None = Header(default=None)) -> None:
    expected = get_settings().dispatch_trigger_token
    if expected and not hmac.compare_digest(x_dispatch_token or "", expected):
        raise HTTPException(status_code=401, detail="Invalid dispatch token")


@router.post("/{kind}", dependencies=[Depends(require_trigger_token)])
async def trigger_dispatch(
    kind: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    deps: DispatchDeps = Depends(get_dispatch_deps),  # noqa: B008
):
    """Run one dispatch now and return its summary."""
    run = DISPATCHES.get(kind)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown dispatch: {kind}")
    summary = await run(db, deps)
    return summary.to_json()
