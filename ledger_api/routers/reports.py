"""
Reports router — the public summary report.

Endpoints (no authentication):
  GET /reports/summary — Per-account summary and failure-reason histogram
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.database import get_db
from ledger_api.schemas.report import SummaryReportResponse
from ledger_api.services import report_service

router = APIRouter()


@router.get(
    "/summary",
    response_model=SummaryReportResponse,
    summary="Summary report",
)
async def get_summary_report(db: AsyncSession = Depends(get_db)):
    """
    Every account with its balance and largest completed transaction, plus
    a count of failed transactions per failure reason.
    """
    return await report_service.get_summary_report(db)
