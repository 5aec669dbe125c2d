"""
Tests for StepDetailService -- gated creation, conflicts and status updates.
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from production_kernel.domain.step_types import DetailStatus, StepType
from production_kernel.domain.workflow_rules import WorkflowValidationResult
from production_kernel.exceptions import (
    JobStepNotFoundError,
    StepDetailAlreadyExistsError,
    StepDetailNotFoundError,
    StepTypeMismatchError,
)
from production_kernel.models.activity_log import ActivityLog
from production_kernel.models.step_detail import Corrugation, StepDetail
from production_kernel.selectors.completed_job_selector import ActivityLogSelector
from production_kernel.services.step_detail_service import (
    StepDetailCreateStatus,
    StepDetailService,
)

ACTOR_ID = "planner-01"


@pytest.fixture
def service(session, deterministic_clock):
    return StepDetailService(session, deterministic_clock)


def _detail_count(session, job_step_id):
    return session.execute(
        select(func.count()).select_from(StepDetail).where(StepDetail.job_step_id == job_step_id)
    ).scalar_one()


class TestCreate:

    def test_first_step_created(self, service, session, plan_job):
        graph = plan_job(["PaperStore", "Corrugation"])
        step = graph.by_step_no(1)

        result = service.create_step_detail(
            step.id,
            "PaperStore",
            actor_id=ACTOR_ID,
            process_data={"gsm": 180, "paper_type": "kraft"},
        )
        session.commit()

        assert result.is_success
        assert result.status == StepDetailCreateStatus.CREATED
        assert result.detail.step_type == StepType.PAPER_STORE
        assert result.detail.status == "pending"
        assert result.detail.nrc_job_no == graph.nrc_job_no
        assert result.detail.process_data == {"gsm": 180, "paper_type": "kraft"}
        assert _detail_count(session, step.id) == 1

    def test_creation_recorded_in_activity_log(self, service, session, plan_job):
        graph = plan_job(["PaperStore"])
        result = service.create_step_detail(graph.steps[0].id, "PaperStore", actor_id=ACTOR_ID)
        session.commit()

        entries = ActivityLogSelector(session).list_for_job(graph.nrc_job_no)
        created = [e for e in entries if e.action == "JobStep Created"]
        assert len(created) == 1
        assert created[0].user_id == ACTOR_ID
        assert created[0].resource_type == "PaperStore"
        assert created[0].resource_id == str(result.detail.id)

    def test_no_activity_without_actor(self, service, session, plan_job):
        graph = plan_job(["PaperStore"])
        service.create_step_detail(graph.steps[0].id, "PaperStore")
        session.commit()

        actions = {e.action for e in ActivityLogSelector(session).list_for_job(graph.nrc_job_no)}
        assert "JobStep Created" not in actions

    def test_blocked_writes_nothing(self, service, session, plan_job):
        graph = plan_job(["PaperStore", "Corrugation"])
        step = graph.by_step_no(2)

        result = service.create_step_detail(step.id, "Corrugation", actor_id=ACTOR_ID)

        assert not result.is_success
        assert result.status == StepDetailCreateStatus.BLOCKED
        assert result.detail is None
        assert result.validation.required_steps == ("PaperStore",)
        assert _detail_count(session, step.id) == 0

    def test_unlocks_after_prerequisite_created(self, service, session, plan_job):
        graph = plan_job(["PaperStore", "Corrugation"])
        service.create_step_detail(graph.by_step_no(1).id, "PaperStore")

        result = service.create_step_detail(graph.by_step_no(2).id, "Corrugation")
        assert result.is_success

    def test_type_mismatch(self, service, plan_job):
        graph = plan_job(["PaperStore", "Corrugation"])
        with pytest.raises(StepTypeMismatchError) as exc_info:
            service.create_step_detail(graph.by_step_no(2).id, "PrintingDetails")
        assert exc_info.value.step_name == "Corrugation"
        assert exc_info.value.requested_type == "PrintingDetails"

    def test_unknown_step(self, service, db_engine):
        with pytest.raises(JobStepNotFoundError):
            service.create_step_detail(uuid4(), "PaperStore")

    def test_string_step_ids(self, service, session, plan_job):
        graph = plan_job(["PaperStore", "Corrugation"])
        paper_id = graph.by_step_no(1).id

        result = service.create_step_detail(str(paper_id), "PaperStore")
        assert result.is_success
        assert result.detail.job_step_id == paper_id

        service.update_detail_status(str(paper_id), "accept")
        assert service.create_step_detail(str(graph.by_step_no(2).id), "Corrugation").is_success
        assert _detail_count(session, paper_id) == 1


class TestConflicts:

    def test_existing_detail_rejected(self, service, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1, DetailStatus.PENDING)

        with pytest.raises(StepDetailAlreadyExistsError) as exc_info:
            service.create_step_detail(graph.steps[0].id, "PaperStore")
        assert exc_info.value.code == "STEP_DETAIL_ALREADY_EXISTS"
        assert _detail_count(session, graph.steps[0].id) == 1

    def test_unique_constraint_reported_as_conflict(
        self, service, session, session_factory, plan_job, attach_detail, monkeypatch
    ):
        """A detail inserted between the pre-check and the INSERT loses to the constraint."""
        graph = plan_job(["PaperStore", "Corrugation"])
        attach_detail(graph, 1, DetailStatus.ACCEPT)
        step = graph.by_step_no(2)

        def racing_validation(job_step_id, step_type):
            other = session_factory()
            try:
                other.add(
                    Corrugation(
                        job_step_id=job_step_id,
                        nrc_job_no=graph.nrc_job_no,
                        status="pending",
                        process_data={},
                    )
                )
                other.commit()
            finally:
                other.close()
            return WorkflowValidationResult.approve()

        monkeypatch.setattr(service._validator, "validate_step_creation", racing_validation)

        with pytest.raises(StepDetailAlreadyExistsError):
            service.create_step_detail(step.id, "Corrugation")
        session.rollback()

        assert _detail_count(session, step.id) == 1


class TestUpdateStatus:

    def test_accept(self, service, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1, DetailStatus.PENDING)

        snapshot = service.update_detail_status(
            graph.steps[0].id, DetailStatus.ACCEPT, actor_id=ACTOR_ID
        )
        session.commit()

        assert snapshot.status == "accept"
        assert snapshot.is_accepted()
        updates = [
            e for e in ActivityLogSelector(session).list_for_job(graph.nrc_job_no)
            if e.action == "JobStep Updated"
        ]
        assert len(updates) == 1
        assert updates[0].details == "PaperStore status changed from pending to accept"

    def test_accept_unlocks_next_step(self, service, plan_job, attach_detail):
        graph = plan_job(["PaperStore", "Corrugation", "FluteLaminateBoardConversion"])
        attach_detail(graph, 1, DetailStatus.ACCEPT)
        attach_detail(graph, 2, DetailStatus.PENDING)
        flute = graph.by_step_no(3)

        assert not service.create_step_detail(flute.id, "FluteLaminateBoardConversion").is_success
        service.update_detail_status(graph.by_step_no(2).id, "accept")
        assert service.create_step_detail(flute.id, "FluteLaminateBoardConversion").is_success

    def test_step_without_detail(self, service, plan_job):
        graph = plan_job(["PaperStore"])
        with pytest.raises(StepDetailNotFoundError):
            service.update_detail_status(graph.steps[0].id, "accept")

    def test_invalid_status_value(self, service, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1, DetailStatus.PENDING)
        with pytest.raises(ValueError):
            service.update_detail_status(graph.steps[0].id, "approved")

    def test_activity_rows_are_appended(self, service, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1, DetailStatus.PENDING)
        before = session.execute(select(func.count()).select_from(ActivityLog)).scalar_one()

        service.update_detail_status(graph.steps[0].id, "hold", actor_id=ACTOR_ID)
        service.update_detail_status(graph.steps[0].id, "accept", actor_id=ACTOR_ID)

        after = session.execute(select(func.count()).select_from(ActivityLog)).scalar_one()
        assert after == before + 2
