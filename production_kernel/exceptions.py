"""
Typed Exception Hierarchy for the Production Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (route handlers, CLIs, batch jobs) must translate kernel failures
into user-facing responses without parsing message text:
  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

A workflow gate that is not yet satisfied is NOT an exception.  The
validator returns a ``WorkflowValidationResult`` with ``can_proceed=False``
so the caller can render every missing prerequisite at once.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    ProductionKernelError (base)
    |
    +-- NotFoundError                      (404-class, never retried)
    |   +-- JobNotFoundError
    |   +-- JobPlanNotFoundError
    |   +-- JobStepNotFoundError
    |   +-- StepDetailNotFoundError
    |   +-- CompletedJobNotFoundError
    |
    +-- WorkflowError                      (400-class)
    |   +-- UnknownStepTypeError
    |   +-- StepTypeMismatchError
    |   +-- InvalidStepStatusError
    |   +-- InvalidStepTransitionError
    |   +-- DuplicateStepNumberError
    |   +-- EmptyJobPlanError
    |   +-- JobNotReadyForCompletionError
    |
    +-- ConflictError                      (409-class, caller re-fetches)
    |   +-- StepDetailAlreadyExistsError
    |   +-- JobPlanAlreadyExistsError
    |
    +-- CompletionTransactionError         (rolled back, safe to retry)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                          | When Raised
-----------|-------------------------------|----------------------------------
Not found  | JOB_NOT_FOUND                 | No job master for nrcJobNo
           | JOB_PLAN_NOT_FOUND            | No live plan (or already archived)
           | JOB_STEP_NOT_FOUND            | Step id unknown
           | STEP_DETAIL_NOT_FOUND         | Step has no detail attached
           | COMPLETED_JOB_NOT_FOUND       | Archive id unknown
-----------|-------------------------------|----------------------------------
Workflow   | UNKNOWN_STEP_TYPE             | Tag is not one of the 8 step types
           | STEP_TYPE_MISMATCH            | Detail type != step's stepName
           | INVALID_STEP_STATUS           | Status value not recognised
           | INVALID_STEP_TRANSITION       | Lifecycle moved backwards/skipped
           | DUPLICATE_STEP_NUMBER         | stepNo repeated within a plan
           | EMPTY_JOB_PLAN                | Plan submitted with no steps
           | JOB_NOT_READY_FOR_COMPLETION  | No stopped step with accepted dispatch
-----------|-------------------------------|----------------------------------
Conflict   | STEP_DETAIL_ALREADY_EXISTS    | Detail already attached (or race lost)
           | JOB_PLAN_ALREADY_EXISTS       | Job already has a live plan
-----------|-------------------------------|----------------------------------
Completion | COMPLETION_TRANSACTION_FAILED | Storage failure during completion
"""


class ProductionKernelError(Exception):
    """
    Base exception for all production kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PRODUCTION_KERNEL_ERROR"


# Lookup failures


class NotFoundError(ProductionKernelError):
    """Base exception for missing records."""

    code: str = "NOT_FOUND"


class JobNotFoundError(NotFoundError):
    """Job master record does not exist."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, nrc_job_no: str):
        self.nrc_job_no = nrc_job_no
        super().__init__(f"Job not found: {nrc_job_no}")


class JobPlanNotFoundError(NotFoundError):
    """No live job plan exists for the job number."""

    code: str = "JOB_PLAN_NOT_FOUND"

    def __init__(self, nrc_job_no: str):
        self.nrc_job_no = nrc_job_no
        super().__init__(f"Job planning not found: {nrc_job_no}")


class JobStepNotFoundError(NotFoundError):
    """Job step does not belong to any known plan."""

    code: str = "JOB_STEP_NOT_FOUND"

    def __init__(self, job_step_id: str, nrc_job_no: str | None = None):
        self.job_step_id = job_step_id
        self.nrc_job_no = nrc_job_no
        if nrc_job_no is None:
            super().__init__(f"JobStep not found: {job_step_id}")
        else:
            super().__init__(
                f"JobStep not found: {job_step_id} for job {nrc_job_no}"
            )


class StepDetailNotFoundError(NotFoundError):
    """Step has no detail record attached."""

    code: str = "STEP_DETAIL_NOT_FOUND"

    def __init__(self, job_step_id: str):
        self.job_step_id = job_step_id
        super().__init__(f"No step detail attached to step {job_step_id}")


class CompletedJobNotFoundError(NotFoundError):
    """Archived completed job does not exist."""

    code: str = "COMPLETED_JOB_NOT_FOUND"

    def __init__(self, completed_job_id: str):
        self.completed_job_id = completed_job_id
        super().__init__(f"Completed job not found: {completed_job_id}")


# Workflow rule violations


class WorkflowError(ProductionKernelError):
    """Base exception for workflow rule violations."""

    code: str = "WORKFLOW_ERROR"


class UnknownStepTypeError(WorkflowError):
    """Step type tag is not one of the known production steps."""

    code: str = "UNKNOWN_STEP_TYPE"

    def __init__(self, step_type: str):
        self.step_type = step_type
        super().__init__(f"Unknown step type: {step_type}")


class StepTypeMismatchError(WorkflowError):
    """Detail type does not match the owning step's stepName."""

    code: str = "STEP_TYPE_MISMATCH"

    def __init__(self, job_step_id: str, step_name: str, requested_type: str):
        self.job_step_id = job_step_id
        self.step_name = step_name
        self.requested_type = requested_type
        super().__init__(
            f"Step {job_step_id} is a {step_name} step; "
            f"cannot attach a {requested_type} detail"
        )


class InvalidStepStatusError(WorkflowError):
    """Lifecycle status value is not recognised."""

    code: str = "INVALID_STEP_STATUS"

    def __init__(self, status: str):
        self.status = status
        super().__init__(
            f"Invalid status value '{status}'. Must be one of: planned, start, stop"
        )


class InvalidStepTransitionError(WorkflowError):
    """Lifecycle transition is not allowed (planned -> start -> stop only)."""

    code: str = "INVALID_STEP_TRANSITION"

    def __init__(self, job_step_id: str, from_status: str, to_status: str):
        self.job_step_id = job_step_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Step {job_step_id} cannot move from '{from_status}' to '{to_status}'"
        )


class DuplicateStepNumberError(WorkflowError):
    """Two steps in the same plan share a stepNo."""

    code: str = "DUPLICATE_STEP_NUMBER"

    def __init__(self, nrc_job_no: str, step_no: int):
        self.nrc_job_no = nrc_job_no
        self.step_no = step_no
        super().__init__(f"Duplicate stepNo {step_no} in plan for job {nrc_job_no}")


class EmptyJobPlanError(WorkflowError):
    """Plan submitted without any steps."""

    code: str = "EMPTY_JOB_PLAN"

    def __init__(self, nrc_job_no: str):
        self.nrc_job_no = nrc_job_no
        super().__init__(f"Job plan for {nrc_job_no} must contain at least one step")


class JobNotReadyForCompletionError(WorkflowError):
    """No step is stopped with an accepted dispatch process."""

    code: str = "JOB_NOT_READY_FOR_COMPLETION"

    def __init__(self, nrc_job_no: str, reason: str):
        self.nrc_job_no = nrc_job_no
        self.reason = reason
        super().__init__(reason)


# Storage conflicts


class ConflictError(ProductionKernelError):
    """Base exception for uniqueness conflicts."""

    code: str = "CONFLICT"


class StepDetailAlreadyExistsError(ConflictError):
    """
    A detail is already attached to the step.

    Raised both when the detail is found up front and when the store's
    UNIQUE(job_step_id) constraint rejects a racing insert.
    """

    code: str = "STEP_DETAIL_ALREADY_EXISTS"

    def __init__(self, job_step_id: str, step_type: str):
        self.job_step_id = job_step_id
        self.step_type = step_type
        super().__init__(
            f"{step_type} detail already exists for step {job_step_id}"
        )


class JobPlanAlreadyExistsError(ConflictError):
    """Job already has a live plan."""

    code: str = "JOB_PLAN_ALREADY_EXISTS"

    def __init__(self, nrc_job_no: str):
        self.nrc_job_no = nrc_job_no
        super().__init__(f"Job planning already exists for job {nrc_job_no}")


# Completion


class CompletionTransactionError(ProductionKernelError):
    """
    The completion transaction failed and was rolled back.

    Live plan, steps and job master are untouched; the caller may retry.
    """

    code: str = "COMPLETION_TRANSACTION_FAILED"

    def __init__(self, nrc_job_no: str, reason: str):
        self.nrc_job_no = nrc_job_no
        self.reason = reason
        super().__init__(f"Completion of job {nrc_job_no} did not occur: {reason}")
