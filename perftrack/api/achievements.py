"""Achievements API endpoints.

GET  /api/v1/achievements          - Catalog joined with the user's progress
POST /api/v1/achievements/events   - Feed a qualifying event (training, sleep, ...)
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from perftrack.api.deps import get_achievement_service
from perftrack.auth.dependencies import AuthenticatedUser, get_current_user
from perftrack.engine.types import AchievementCategory, AchievementEvent
from perftrack.services.achievement_service import AchievementService, AchievementStatus

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/achievements", tags=["achievements"])


class AchievementResponse(BaseModel):
    id: uuid.UUID
    code: str
    title: str
    description: str
    icon: str
    category: AchievementCategory
    points: int
    max_progress: float
    progress: float
    earned: bool
    earned_date: datetime | None

    @classmethod
    def from_status(cls, item: AchievementStatus) -> AchievementResponse:
        d = item.definition
        return cls(
            id=d.id,
            code=d.code,
            title=d.title,
            description=d.description,
            icon=d.icon,
            category=d.category,
            points=d.points,
            max_progress=d.max_progress,
            progress=item.progress,
            earned=item.earned,
            earned_date=item.earned_date,
        )


class AchievementEventRequest(BaseModel):
    category: AchievementCategory
    metrics: dict[str, float] = Field(
        ...,
        description="Observed metric values, e.g. {\"sessions_logged\": 3}",
    )
    timestamp: datetime | None = None


class AchievementEventResponse(BaseModel):
    changed: int
    newly_earned: list[uuid.UUID]


@router.get("", response_model=list[AchievementResponse])
async def list_achievements(
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: AchievementService = Depends(get_achievement_service),
) -> list[AchievementResponse]:
    statuses = await service.list_achievements(current_user.id)
    return [AchievementResponse.from_status(s) for s in statuses]


@router.post("/events", response_model=AchievementEventResponse)
async def submit_event(
    request: AchievementEventRequest,
    current_user: AuthenticatedUser = Depends(get_current_user),
    service: AchievementService = Depends(get_achievement_service),
) -> AchievementEventResponse:
    event = AchievementEvent(
        category=request.category,
        metrics=request.metrics,
        timestamp=request.timestamp or datetime.now(UTC),
    )
    result = await service.evaluate_event(current_user.id, event)
    changed = result.changed
    newly_earned = [a.definition_id for a in result.newly_earned]

    log.info(
        "achievements.event_submitted",
        category=str(request.category),
        changed=len(changed),
        newly_earned=len(newly_earned),
    )
    return AchievementEventResponse(changed=len(changed), newly_earned=newly_earned)
