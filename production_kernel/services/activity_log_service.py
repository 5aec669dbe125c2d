"""
ActivityLogService -- append-only trail of user actions.

Responsibility:
    Records who did what to which job (plan created, step detail created,
    step status changed, job completed).

Architecture position:
    Kernel > Services.  Called by the planning and step-detail services
    inside their transaction, and by CompletionCoordinator in a separate
    transaction after the completion commit.

Failure modes:
    - Database errors propagate to the caller.  CompletionCoordinator is
      the one caller that treats them as non-fatal.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.logging_config import get_logger
from production_kernel.models.activity_log import ActionType, ActivityLog
from production_kernel.services.base import BaseService

logger = get_logger("services.activity_log")


class ActivityLogService(BaseService[ActivityLog]):
    """Appends ActivityLog rows.  Never updates or deletes."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(
        self,
        user_id: str,
        action: ActionType | str,
        details: str | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        nrc_job_no: str | None = None,
    ) -> UUID:
        """
        Append one action to the trail.

        Returns:
            Id of the new ActivityLog row.
        """
        action_value = action.value if isinstance(action, ActionType) else action
        entry = ActivityLog(
            user_id=user_id,
            action=action_value,
            details=details,
            resource_type=resource_type,
            resource_id=resource_id,
            nrc_job_no=nrc_job_no,
            occurred_at=self._clock.now(),
        )
        self.session.add(entry)
        self.session.flush()

        logger.debug(
            "activity_recorded",
            extra={
                "action": action_value,
                "resource_type": resource_type,
                "resource_id": resource_id,
            },
        )
        return entry.id
