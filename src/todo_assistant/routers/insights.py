from __future__ import annotations

from datetime import datetime
from typing import Callable

from fastapi import APIRouter, Depends

from .. import analysis
from ..dependencies import get_clock, get_repository
from ..repositories import Repository
from ..schemas import ScheduleOut, TaskAnalysisOut, UserProfileOut

router = APIRouter(prefix="/api")


# PUBLIC_INTERFACE
@router.get(
    "/ai/analyze",
    response_model=TaskAnalysisOut,
    tags=["analysis"],
    summary="Analyze Tasks",
    description=(
        "Bucket tasks into urgent (urgent/high due within 2 days), overdue, "
        "stale (not updated for 30+ days) and due-today lists."
    ),
)
def analyze(
    repo: Repository = Depends(get_repository),
    clock: Callable[[], datetime] = Depends(get_clock),
) -> TaskAnalysisOut:
    return TaskAnalysisOut(**analysis.analyze_tasks(repo.list_todos(), clock()))


# PUBLIC_INTERFACE
@router.get(
    "/ai/optimize",
    response_model=ScheduleOut,
    tags=["analysis"],
    summary="Optimize Schedule",
    description="Up to 10 open urgent/high tasks in display order, with fixed scheduling advice.",
)
def optimize(repo: Repository = Depends(get_repository)) -> ScheduleOut:
    return ScheduleOut(**analysis.optimize_schedule(repo.list_todos()))


# PUBLIC_INTERFACE
@router.get(
    "/profile",
    response_model=UserProfileOut,
    tags=["profile"],
    summary="Get User Profile",
    responses={404: {"description": "No profile has been imported"}},
)
def get_profile(repo: Repository = Depends(get_repository)) -> UserProfileOut:
    return UserProfileOut.model_validate(repo.get_user_profile())
