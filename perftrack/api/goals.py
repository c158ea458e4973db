"""Goals API endpoints.

GET    /api/v1/goals                  - List the user's goals (optional ?status=)
POST   /api/v1/goals                  - Create a SMART goal
GET    /api/v1/goals/summary          - Dashboard totals
GET    /api/v1/goals/{id}             - Goal detail
POST   /api/v1/goals/{id}/progress    - Apply a progress event
GET    /api/v1/goals/{id}/events      - Progress event history
POST   /api/v1/goals/{id}/pause       - active -> paused
POST   /api/v1/goals/{id}/resume      - paused -> active
POST   /api/v1/goals/{id}/abandon     - any -> abandoned
POST   /api/v1/goals/{id}/reopen      - completed -> active

All endpoints are scoped to the authenticated user; another user's goal is
reported as 404.
"""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from perftrack.api.deps import get_goal_service, get_goal_store, get_progress_engine
from perftrack.auth.dependencies import AuthenticatedUser, get_current_user
from perftrack.engine.errors import (
    EngineError,
    GoalNotFoundError,
    GoalValidationError,
    VersionConflictError,
)
from perftrack.engine.types import (
    EventSource,
    GoalCategory,
    GoalPriority,
    GoalStatus,
    HabitFrequency,
)
from perftrack.services.goal_service import GoalService, NewGoal
from perftrack.services.progress_engine import ProgressEngine
from perftrack.stores.base import GoalStore

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/goals", tags=["goals"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class CreateGoalRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=4096)
    specific: str = Field(..., min_length=1, max_length=4096)
    measurable: str = Field(..., min_length=1, max_length=4096)
    achievable: str = Field(..., min_length=1, max_length=4096)
    relevant: str = Field(..., min_length=1, max_length=4096)
    time_bound: date | None = Field(default=None, description="Deadline")
    motivation_note: str = Field(default="", max_length=4096)
    category: GoalCategory = GoalCategory.PERFORMANCE
    priority: GoalPriority = GoalPriority.MEDIUM
    target_value: float = Field(..., ge=0)
    target_unit: str = Field(default="", max_length=50)
    is_habit: bool = False
    habit_frequency: HabitFrequency | None = None
    timezone: str | None = Field(
        default=None,
        max_length=64,
        description="IANA timezone for habit cadence; defaults to the token's tz claim",
    )


class ProgressRequest(BaseModel):
    value: float = Field(..., ge=0, description="Newly observed current value")
    event_id: str = Field(
        ...,
        min_length=1,
        max_length=128,
        description="Idempotency key; replays with the same id are no-ops",
    )
    timestamp: datetime | None = Field(default=None, description="Defaults to now")
    source: EventSource = EventSource.MANUAL
    note: str | None = Field(default=None, max_length=1000)
    expected_version: int | None = Field(default=None, ge=1)


class LifecycleRequest(BaseModel):
    expected_version: int | None = Field(default=None, ge=1)


class GoalResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    title: str
    description: str
    specific: str
    measurable: str
    achievable: str
    relevant: str
    time_bound: date | None
    motivation_note: str
    category: GoalCategory
    priority: GoalPriority
    target_value: float
    target_unit: str
    current_value: float
    progress_percentage: int
    status: GoalStatus
    is_habit: bool
    habit_frequency: HabitFrequency | None
    current_streak: int
    best_streak: int
    timezone: str | None
    completion_date: datetime | None
    version: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class UserAchievementResponse(BaseModel):
    definition_id: uuid.UUID
    progress: float
    earned: bool
    earned_date: datetime | None

    model_config = {"from_attributes": True}


class ProgressResponse(BaseModel):
    goal: GoalResponse
    applied: bool
    newly_completed: bool
    achievements: list[UserAchievementResponse]


class ProgressEventResponse(BaseModel):
    event_id: str
    value: float
    timestamp: datetime
    source: EventSource
    note: str | None
    recorded_at: datetime

    model_config = {"from_attributes": True}


class GoalSummaryResponse(BaseModel):
    total: int
    completed_count: int
    active_count: int
    best_streak_across_goals: int
    total_achievement_points: int
    achievements_earned: int
    achievements_in_progress: int

    model_config = {"from_attributes": True}


def _to_http(exc: EngineError) -> HTTPException:
    if isinstance(exc, GoalNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, VersionConflictError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, GoalValidationError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "field": exc.field},
        )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=list[GoalResponse])
async def list_goals(
    status_filter: GoalStatus | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> list[GoalResponse]:
    """List the user's goals, newest first. ``?status_filter=`` narrows by status."""
    goals = await service.list_goals(current_user.id, status=status_filter)
    return [GoalResponse.model_validate(g) for g in goals]


@router.post("", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(
    request: CreateGoalRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    fields = request.model_dump()
    fields["timezone"] = request.timezone or current_user.timezone
    try:
        goal = await service.create_goal(current_user.id, NewGoal(**fields))
    except EngineError as exc:
        raise _to_http(exc) from exc

    log.info("goals.created", user_id=str(current_user.id), goal_id=str(goal.id))
    return GoalResponse.model_validate(goal)


@router.get("/summary", response_model=GoalSummaryResponse)
async def goal_summary(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalSummaryResponse:
    summary = await service.get_goal_summary(current_user.id)
    return GoalSummaryResponse.model_validate(summary)


@router.get("/{goal_id}", response_model=GoalResponse)
async def get_goal(
    goal_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    try:
        goal = await service.get_goal(goal_id, current_user.id)
    except EngineError as exc:
        raise _to_http(exc) from exc
    return GoalResponse.model_validate(goal)


@router.post("/{goal_id}/progress", response_model=ProgressResponse)
async def record_progress(
    goal_id: uuid.UUID,
    request: ProgressRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    engine: ProgressEngine = Depends(get_progress_engine),
) -> ProgressResponse:
    """Apply a progress event.

    Replaying an ``event_id`` returns the current goal with ``applied: false``.
    A stale ``expected_version`` yields 409; re-read the goal and retry.
    """
    try:
        result = await engine.apply_progress_event(
            goal_id,
            request.value,
            request.timestamp or datetime.now(UTC),
            request.source,
            request.event_id,
            note=request.note,
            expected_version=request.expected_version,
            user_id=current_user.id,
        )
    except EngineError as exc:
        log.info(
            "goals.progress_rejected",
            goal_id=str(goal_id),
            event_id=request.event_id,
            error=type(exc).__name__,
        )
        raise _to_http(exc) from exc

    return ProgressResponse(
        goal=GoalResponse.model_validate(result.goal),
        applied=result.applied,
        newly_completed=result.newly_completed,
        achievements=[UserAchievementResponse.model_validate(a) for a in result.achievements],
    )


@router.get("/{goal_id}/events", response_model=list[ProgressEventResponse])
async def list_progress_events(
    goal_id: uuid.UUID,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
    store: GoalStore = Depends(get_goal_store),
) -> list[ProgressEventResponse]:
    try:
        await service.get_goal(goal_id, current_user.id)
    except EngineError as exc:
        raise _to_http(exc) from exc
    events = await store.list_progress_events(goal_id)
    return [ProgressEventResponse.model_validate(e) for e in events]


async def _lifecycle(
    action: str,
    goal_id: uuid.UUID,
    request: LifecycleRequest | None,
    current_user: AuthenticatedUser,
    service: GoalService,
) -> GoalResponse:
    expected_version = request.expected_version if request else None
    try:
        goal = await getattr(service, action)(goal_id, current_user.id, expected_version)
    except EngineError as exc:
        raise _to_http(exc) from exc
    log.info(f"goals.{action}", user_id=str(current_user.id), goal_id=str(goal_id))
    return GoalResponse.model_validate(goal)


@router.post("/{goal_id}/pause", response_model=GoalResponse)
async def pause_goal(
    goal_id: uuid.UUID,
    request: LifecycleRequest | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return await _lifecycle("pause", goal_id, request, current_user, service)


@router.post("/{goal_id}/resume", response_model=GoalResponse)
async def resume_goal(
    goal_id: uuid.UUID,
    request: LifecycleRequest | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return await _lifecycle("resume", goal_id, request, current_user, service)


@router.post("/{goal_id}/abandon", response_model=GoalResponse)
async def abandon_goal(
    goal_id: uuid.UUID,
    request: LifecycleRequest | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    return await _lifecycle("abandon", goal_id, request, current_user, service)


@router.post("/{goal_id}/reopen", response_model=GoalResponse)
async def reopen_goal(
    goal_id: uuid.UUID,
    request: LifecycleRequest | None = None,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: GoalService = Depends(get_goal_service),
) -> GoalResponse:
    """Reopen a completed goal. Its original completion_date is kept."""
    return await _lifecycle("reopen", goal_id, request, current_user, service)
