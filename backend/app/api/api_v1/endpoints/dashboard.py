"""仪表盘API"""

from typing import Any
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import get_db
from app.schemas.dashboard import DashboardStats
from app.services.reporting import AggregationReporter

router = APIRouter()


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    *,
    db: AsyncSession = Depends(get_db)) -> Any:
    """仪表盘统计"""
    return await AggregationReporter(db).get_dashboard_stats()
