"""
CompletionCoordinator -- transaction owner for job completion.

Responsibility:
    Runs JobCompletionService.complete_job() inside one SERIALIZABLE
    transaction on a fresh session, commits it, and then records the
    ``Job Completed`` activity entry in a second, independent transaction.

Architecture position:
    Kernel > Services -- the one place in the completion path that calls
    ``commit()`` / ``rollback()``.  Route handlers call this, not the
    service directly.

Invariants enforced:
    - Archive insert, live-record deletes and job update commit together
      or not at all.
    - The audit entry is written only after the completion commit.  A
      failing audit write is logged and swallowed; it never undoes the
      completion.

Failure modes:
    - Kernel errors (JobPlanNotFoundError, JobNotReadyForCompletionError,
      JobNotFoundError): rolled back and re-raised unchanged.
    - Any SQLAlchemy error inside the transaction (serialization failure,
      deadlock, lost connection): rolled back and raised as
      CompletionTransactionError.  Safe to retry; live records are
      untouched.

Concurrency:
    Two coordinators completing the same job serialize on the plan row
    lock.  The loser either raises JobPlanNotFoundError (plan already
    gone) or CompletionTransactionError (serialization failure).
"""

import time
from collections.abc import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from production_kernel.domain.clock import Clock, SystemClock
from production_kernel.domain.completion import CompletionPolicy, CompletionReadiness
from production_kernel.exceptions import (
    CompletionTransactionError,
    ProductionKernelError,
)
from production_kernel.logging_config import LogContext, get_logger
from production_kernel.models.activity_log import ActionType
from production_kernel.selectors.completed_job_selector import CompletedJobInfo
from production_kernel.services.activity_log_service import ActivityLogService
from production_kernel.services.job_completion_service import JobCompletionService

logger = get_logger("services.completion_coordinator")

COMPLETION_ISOLATION_LEVEL = "SERIALIZABLE"


class CompletionCoordinator:
    """
    Owns the completion transaction and the post-commit audit write.

    Contract:
        ``session_factory`` returns a new Session per call.  The
        coordinator opens, commits and closes its own sessions.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
        policy: CompletionPolicy | None = None,
        audit_sink_factory: Callable[[Session], ActivityLogService] | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()
        self._policy = policy
        self._audit_sink_factory = audit_sink_factory or (
            lambda session: ActivityLogService(session, self._clock)
        )

    def check_completion_readiness(self, nrc_job_no: str) -> CompletionReadiness:
        """Read-only readiness check on a short-lived session."""
        session = self._session_factory()
        try:
            service = JobCompletionService(session, self._clock, self._policy)
            return service.check_completion_readiness(nrc_job_no)
        finally:
            session.close()

    def complete_job(
        self,
        nrc_job_no: str,
        remarks: str | None = None,
        actor_id: str | None = None,
    ) -> CompletedJobInfo:
        """
        Complete and archive a job.

        Raises:
            JobPlanNotFoundError: No live plan (never planned or already
                completed).
            JobNotReadyForCompletionError: Readiness not met.
            JobNotFoundError: Job master missing.
            CompletionTransactionError: Storage failure; rolled back.
        """
        with LogContext.bind(nrc_job_no=nrc_job_no, actor_id=actor_id):
            t0 = time.monotonic()
            info = self._run_completion(nrc_job_no, remarks, actor_id)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            logger.info(
                "completion_committed",
                extra={
                    "completed_job_id": str(info.id),
                    "total_duration": info.total_duration,
                    "duration_ms": duration_ms,
                },
            )

            if actor_id is not None:
                self._record_audit(info, actor_id)
            return info

    def _run_completion(
        self,
        nrc_job_no: str,
        remarks: str | None,
        actor_id: str | None,
    ) -> CompletedJobInfo:
        session = self._session_factory()
        try:
            session.connection(
                execution_options={"isolation_level": COMPLETION_ISOLATION_LEVEL}
            )
            service = JobCompletionService(session, self._clock, self._policy)
            info = service.complete_job(nrc_job_no, remarks=remarks, actor_id=actor_id)
            session.commit()
            return info
        except ProductionKernelError as exc:
            session.rollback()
            logger.info(
                "completion_rejected",
                extra={"error_code": exc.code},
            )
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error(
                "completion_transaction_failed",
                extra={"error_type": type(exc).__name__},
                exc_info=True,
            )
            raise CompletionTransactionError(nrc_job_no, str(exc)) from exc
        finally:
            session.close()

    def _record_audit(self, info: CompletedJobInfo, actor_id: str) -> None:
        duration = info.total_duration if info.total_duration is not None else "unknown"
        session = self._session_factory()
        try:
            sink = self._audit_sink_factory(session)
            sink.record(
                user_id=actor_id,
                action=ActionType.JOB_COMPLETED,
                details=(
                    f"Completed job: {info.nrc_job_no} "
                    f"with total duration: {duration} days"
                ),
                resource_type="CompletedJob",
                resource_id=str(info.id),
                nrc_job_no=info.nrc_job_no,
            )
            session.commit()
        except Exception:
            session.rollback()
            logger.warning(
                "completion_audit_failed",
                extra={"completed_job_id": str(info.id)},
                exc_info=True,
            )
        finally:
            session.close()
