"""
Tests for table constraints and the transactional session scope.
"""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from production_kernel.db.engine import session_scope
from production_kernel.domain.step_types import StepType
from production_kernel.models.job import Job
from production_kernel.models.job_plan import JobPlan, JobStep
from production_kernel.models.step_detail import (
    DETAIL_MODELS,
    Corrugation,
    PaperStore,
    StepDetail,
)


class TestConstraints:

    def test_one_plan_per_job(self, session, plan_job):
        graph = plan_job(["PaperStore"])
        session.add(JobPlan(nrc_job_no=graph.nrc_job_no, job_demand="low"))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_step_numbers_unique_within_plan(self, session, plan_job):
        graph = plan_job(["PaperStore"])
        session.add(
            JobStep(job_plan_id=graph.job_plan_id, step_no=1, step_name="Corrugation")
        )
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_one_detail_per_step_across_types(self, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1)
        session.add(
            Corrugation(
                job_step_id=graph.steps[0].id,
                nrc_job_no=graph.nrc_job_no,
                process_data={},
            )
        )
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()

    def test_duplicate_job_number(self, session, create_job):
        create_job("NRC-DUP")
        session.add(Job(nrc_job_no="NRC-DUP"))
        with pytest.raises(IntegrityError):
            session.flush()
        session.rollback()


class TestStepDetailMapping:

    def test_every_step_type_has_a_model(self):
        assert set(DETAIL_MODELS) == set(StepType)

    def test_polymorphic_load(self, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore"])
        attach_detail(graph, 1)
        session.expire_all()

        detail = session.execute(select(StepDetail)).scalar_one()
        assert isinstance(detail, PaperStore)
        assert detail.step_type == "PaperStore"
        assert detail.status == "accept"


class TestPlanCascade:

    def test_deleting_plan_removes_steps_and_details(self, session, plan_job, attach_detail):
        graph = plan_job(["PaperStore", "Corrugation"])
        attach_detail(graph, 1)
        attach_detail(graph, 2)

        session.expire_all()
        session.delete(session.get(JobPlan, graph.job_plan_id))
        session.commit()

        assert session.execute(select(func.count()).select_from(JobStep)).scalar_one() == 0
        assert session.execute(select(func.count()).select_from(StepDetail)).scalar_one() == 0
        assert session.execute(select(func.count()).select_from(Job)).scalar_one() == 1


class TestSessionScope:

    def test_commits_on_success(self, db_engine, session):
        with session_scope() as scoped:
            scoped.add(Job(nrc_job_no="NRC-SCOPE"))

        count = session.execute(
            select(func.count()).select_from(Job).where(Job.nrc_job_no == "NRC-SCOPE")
        ).scalar_one()
        assert count == 1

    def test_rolls_back_and_reraises(self, db_engine, session, captured_logs):
        with pytest.raises(RuntimeError, match="boom"):
            with session_scope() as scoped:
                scoped.add(Job(nrc_job_no="NRC-ROLLBACK"))
                scoped.flush()
                raise RuntimeError("boom")

        count = session.execute(
            select(func.count()).select_from(Job).where(Job.nrc_job_no == "NRC-ROLLBACK")
        ).scalar_one()
        assert count == 0
        assert any(r["message"] == "transaction_rolled_back" for r in captured_logs())
