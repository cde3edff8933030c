"""
KennelMate Backend - Reminders Endpoints

Purpose: List a user's reminders and record what they do with them

API Endpoints:
    GET /api/v1/reminders - Sorted reminders for today (or ?today=YYYY-MM-DD)
    POST /api/v1/reminders - Create custom reminder
    PUT /api/v1/reminders/{reminder_id}/status - Mark complete / reopen
    DELETE /api/v1/reminders/{reminder_id} - Delete (custom: hard, system: soft)
    POST /api/v1/reminders/migration - Run legacy migration for this session
    GET /api/v1/reminders/migration - Migration flag and failed attempts

Testing:
    curl http://localhost:8080/api/v1/reminders \\
      -H "X-User-Id: user_123" -H "X-Session-Id: sess_1"

    curl -X POST http://localhost:8080/api/v1/reminders \\
      -H "Content-Type: application/json" -H "X-User-Id: user_123" \\
      -d '{
        "title": "Order puppy food",
        "due_date": "2024-02-15",
        "priority": "high"
      }'

AWS Deployment Notes:
    - Reminders are regenerated on every GET; there is no scheduler
    - X-User-Id is set by the API gateway authorizer, never by the browser
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query
from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import date, datetime, time, timezone
import logging

from kennelmate.config import settings
from kennelmate.dependencies import (
    get_migration_context,
    get_reminder_service,
    get_user_stores,
    require_reminders_enabled,
)
from kennelmate.models.migration import MigrationResult, MigrationState
from kennelmate.models.reminder import CustomReminder, FinalReminder, ReminderPriority, ReminderType
from kennelmate.services.migration import MigrationContext
from kennelmate.services.pipeline import ReminderService
from kennelmate.services.stores import UserStores

logger = logging.getLogger(__name__)
router = APIRouter(dependencies=[Depends(require_reminders_enabled)])


# =============================================================================
# REQUEST/RESPONSE MODELS
# =============================================================================

class CreateReminderRequest(BaseModel):
    """Create custom reminder request"""
    title: str = Field(..., min_length=1, max_length=200, description="Reminder title")
    description: str = Field(default="", max_length=1000, description="Optional description")
    due_date: date = Field(..., description="Day the reminder is due")
    priority: ReminderPriority = ReminderPriority.MEDIUM
    type: ReminderType = Field(default=ReminderType.CUSTOM, description="custom, or a system type to attach a note")
    related_id: Optional[str] = Field(None, description="Dog, litter, breeding or pregnancy id")


class UpdateStatusRequest(BaseModel):
    """Update reminder status request"""
    is_completed: bool


class ListRemindersResponse(BaseModel):
    """List reminders response"""
    reminders: List[FinalReminder]
    total: int
    is_stale: bool
    generated_at: datetime
    migration_warning: Optional[str] = None


class ReminderStatusResponse(BaseModel):
    """Reminder status response"""
    reminder_id: str
    is_completed: bool
    is_deleted: bool


class MigrationStatusResponse(BaseModel):
    """Migration status response"""
    migrated: bool
    failed_attempts: int
    session_state: MigrationState


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("/reminders", response_model=ListRemindersResponse)
async def list_reminders(
    today: Optional[date] = Query(None, description="Evaluate as of this day (default: today, UTC)"),
    service: ReminderService = Depends(get_reminder_service),
    migration: MigrationContext = Depends(get_migration_context),
) -> ListRemindersResponse:
    """
    List the caller's reminders

    Runs the session's legacy migration first (once), then regenerates system
    reminders, merges custom ones and applies completed/deleted statuses.
    Store read failures degrade to a partial list flagged is_stale.
    """
    logger.info(f"Listing reminders for {service.stores.user_id}")

    now = datetime.combine(today, time.min, tzinfo=timezone.utc) if today else None

    result = await service.load_reminders(now=now, migration=migration)

    return ListRemindersResponse(
        reminders=result.reminders,
        total=len(result.reminders),
        is_stale=result.is_stale,
        generated_at=result.generated_at,
        migration_warning=result.migration_warning,
    )


@router.post("/reminders", response_model=CustomReminder, status_code=status.HTTP_201_CREATED)
async def create_reminder(
    request: CreateReminderRequest,
    service: ReminderService = Depends(get_reminder_service),
) -> CustomReminder:
    """
    Create a custom reminder

    Args:
        request: Reminder details

    Returns:
        The stored reminder with its assigned id
    """
    logger.info(f"Creating custom reminder for {service.stores.user_id}")

    try:
        reminder = CustomReminder(
            title=request.title,
            description=request.description,
            due_date=request.due_date,
            priority=request.priority,
            type=request.type,
            related_id=request.related_id,
        )

        return await service.add_custom_reminder(reminder)

    except Exception as e:
        logger.error(f"Failed to create reminder: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create reminder: {str(e)}"
        )


@router.put("/reminders/{reminder_id}/status", response_model=ReminderStatusResponse)
async def update_reminder_status(
    reminder_id: str,
    request: UpdateStatusRequest,
    service: ReminderService = Depends(get_reminder_service),
) -> ReminderStatusResponse:
    """Mark a reminder complete or reopen it"""
    logger.info(f"Setting reminder {reminder_id} completed={request.is_completed}")

    try:
        reminder_status = await service.set_completed(reminder_id, request.is_completed)

        return ReminderStatusResponse(
            reminder_id=reminder_status.reminder_id,
            is_completed=reminder_status.is_completed,
            is_deleted=reminder_status.is_deleted,
        )

    except Exception as e:
        logger.error(f"Failed to update reminder status: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to update reminder status: {str(e)}"
        )


@router.delete("/reminders/{reminder_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reminder(
    reminder_id: str,
    service: ReminderService = Depends(get_reminder_service),
):
    """Delete reminder"""
    logger.info(f"Deleting reminder: {reminder_id}")

    try:
        await service.delete_reminder(reminder_id)

    except Exception as e:
        logger.error(f"Failed to delete reminder: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete reminder: {str(e)}"
        )


@router.post("/reminders/migration", response_model=MigrationResult)
async def run_migration(
    service: ReminderService = Depends(get_reminder_service),
    migration: MigrationContext = Depends(get_migration_context),
) -> MigrationResult:
    """
    Run the legacy migration for this session

    A failed attempt earlier in the same session may be retried here.
    Failures are reported in the result, never as an HTTP error.
    """
    logger.info(f"Migration requested for {migration.user_id}")

    if not settings.ENABLE_MIGRATION:
        return MigrationResult(state=migration.state)

    return await service.runner.run(migration, retry=True)


@router.get("/reminders/migration", response_model=MigrationStatusResponse)
async def get_migration_status(
    stores: UserStores = Depends(get_user_stores),
    migration: MigrationContext = Depends(get_migration_context),
) -> MigrationStatusResponse:
    """Get the persisted migration flag and failed attempt count"""
    try:
        return MigrationStatusResponse(
            migrated=await stores.migration_flags.is_migrated(),
            failed_attempts=await stores.migration_flags.get_failed_attempts(),
            session_state=migration.state,
        )

    except Exception as e:
        logger.error(f"Failed to get migration status: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to get migration status: {str(e)}"
        )
