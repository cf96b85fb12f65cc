"""
Slot Query API Endpoints

- GET /api/v1/coaching/programs/{program_id}/slots
- GET /api/v1/coaching/programs/{program_id}/slots/month
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from coaching_engine.api.dependencies import CoachingServices, get_services
from coaching_engine.api.schemas import DataResponse, SlotOut

router = APIRouter(prefix="/api/v1/coaching", tags=["slots"])


@router.get("/programs/{program_id}/slots", response_model=DataResponse)
async def get_available_slots(
    program_id: str,
    day: date = Query(..., alias="date", description="Local date in the program's timezone"),
    week: Optional[int] = Query(None, ge=1, description="Curriculum week, for duration overrides"),
    services: CoachingServices = Depends(get_services),
):
    """
    Bookable slots for one date.

    A past date, a day without availability or a blacked-out day returns
    an empty list.
    """
    slots = await services.slots.get_available_slots(program_id, day, week_number=week)
    return DataResponse(
        data=[SlotOut(starts_at=s.start, ends_at=s.end) for s in slots],
        metadata={"date": day.isoformat(), "count": len(slots)},
    )


@router.get("/programs/{program_id}/slots/month", response_model=DataResponse)
async def get_available_month(
    program_id: str,
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., description="1-12"),
    services: CoachingServices = Depends(get_services),
):
    """Dates of a month that may have open slots"""
    dates = await services.slots.get_available_month(program_id, year, month)
    return DataResponse(data=dates, metadata={"year": year, "month": month})
