"""
Tests for StepRepository and ActivityLogSelector.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest

from production_kernel.domain.step_types import DetailStatus, StepType
from production_kernel.exceptions import JobStepNotFoundError
from production_kernel.models.step_detail import QualityDept
from production_kernel.selectors.completed_job_selector import ActivityLogSelector
from production_kernel.selectors.step_repository import StepRepository
from production_kernel.services.activity_log_service import ActivityLogService


@pytest.fixture
def repository(session):
    return StepRepository(session)


class TestStepLookups:

    def test_step_with_siblings(self, repository, plan_job):
        graph = plan_job([(30, "Corrugation"), (10, "PaperStore"), (20, "PrintingDetails")])

        node, loaded = repository.get_step_with_plan_and_siblings(graph.by_step_no(20).id)

        assert node.step_name == StepType.PRINTING_DETAILS
        assert [n.step_no for n in loaded.steps] == [10, 20, 30]
        assert loaded.job_plan_id == graph.job_plan_id

    def test_unknown_step(self, repository, db_engine):
        with pytest.raises(JobStepNotFoundError):
            repository.get_step_with_plan_and_siblings(uuid4())

    def test_graph_sees_detail_attached_later(self, repository, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        assert repository.get_plan_with_all_steps(graph.nrc_job_no).steps[0].detail is None

        attach_detail(graph, 1, DetailStatus.HOLD)

        reloaded = repository.get_plan_with_all_steps(graph.nrc_job_no)
        assert reloaded.steps[0].detail.status == "hold"

    def test_no_plan(self, repository, db_engine):
        assert repository.get_plan_with_all_steps("NRC-NONE") is None


class TestDetailLookups:

    def test_by_step_id_is_type_specific(self, repository, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1)
        step_id = graph.steps[0].id

        assert repository.get_detail_by_step_id(StepType.PAPER_STORE, step_id) is not None
        assert repository.get_detail_by_step_id(StepType.CORRUGATION, step_id) is None
        assert repository.get_any_detail_for_step(step_id).step_type == StepType.PAPER_STORE

    def test_bare_step(self, repository, plan_job):
        graph = plan_job(["PaperStore"])
        assert repository.get_any_detail_for_step(graph.steps[0].id) is None

    def test_by_job_number_returns_oldest(self, repository, session, plan_job):
        graph = plan_job([(1, "PaperStore"), (2, "QualityDept"), (3, "QualityDept")])
        base = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
        for step_no, offset, status in ((3, 0, "accept"), (2, 1, "reject")):
            session.add(
                QualityDept(
                    job_step_id=graph.by_step_no(step_no).id,
                    nrc_job_no=graph.nrc_job_no,
                    status=status,
                    process_data={},
                    created_at=base + timedelta(hours=offset),
                )
            )
        session.commit()

        detail = repository.get_detail_by_job_number(StepType.QUALITY_DEPT, graph.nrc_job_no)
        assert detail.job_step_id == graph.by_step_no(3).id
        assert detail.status == "accept"

    def test_by_job_number_absent(self, repository, plan_job):
        graph = plan_job(["PaperStore"])
        assert repository.get_detail_by_job_number(StepType.PAPER_STORE, graph.nrc_job_no) is None


class TestActivityLogSelector:

    def test_list_for_user_newest_first(self, session, deterministic_clock):
        service = ActivityLogService(session, deterministic_clock)
        service.record("operator-5", "Production Step Started", nrc_job_no="NRC-1")
        deterministic_clock.advance(seconds=90)
        service.record("operator-5", "Production Step Completed", nrc_job_no="NRC-1")
        service.record("operator-9", "Job Updated", nrc_job_no="NRC-1")
        session.commit()

        entries = ActivityLogSelector(session).list_for_user("operator-5")
        assert [e.action for e in entries] == [
            "Production Step Completed",
            "Production Step Started",
        ]
        assert all(e.user_id == "operator-5" for e in entries)

    def test_list_for_job_oldest_first(self, session, deterministic_clock):
        service = ActivityLogService(session, deterministic_clock)
        service.record("operator-5", "Job Created", nrc_job_no="NRC-2")
        deterministic_clock.advance(seconds=5)
        service.record("operator-5", "Job Updated", nrc_job_no="NRC-2")
        service.record("operator-5", "Job Updated", nrc_job_no="NRC-3")
        session.commit()

        entries = ActivityLogSelector(session).list_for_job("NRC-2")
        assert [e.action for e in entries] == ["Job Created", "Job Updated"]
