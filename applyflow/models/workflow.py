"""
Workflow State Models

State owned by the workflow coordinator: lifecycle status, the three job
collections and the user notifications produced by failed or rejected actions.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from applyflow.models.application import ApplicationPackage, AppliedJob, DraftJob
from applyflow.models.job import Job
from applyflow.models.profile import Profile
from applyflow.utils.errors import WorkflowStateError


class WorkflowStatus(str, Enum):
    """Lifecycle states of the application workflow."""

    IDLE = "IDLE"
    LOADING_PROFILE = "LOADING_PROFILE"
    SEARCHING_JOBS = "SEARCHING_JOBS"
    APPLYING = "APPLYING"
    SUBMITTING_TO_PLATFORM = "SUBMITTING_TO_PLATFORM"
    SAVING_DRAFT = "SAVING_DRAFT"
    READY = "READY"

    @property
    def is_resting(self) -> bool:
        return self in (WorkflowStatus.IDLE, WorkflowStatus.READY)


class NotificationLevel(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class NotificationAction(str, Enum):
    """Follow-up the user surface can offer next to a notification."""

    RETRY = "retry"
    RECONNECT_CREDENTIALS = "reconnect_credentials"
    CHOOSE_ANOTHER_FILE = "choose_another_file"


class Notification(BaseModel):
    """Dismissible message shown to the user."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex[:8])
    level: NotificationLevel = NotificationLevel.ERROR
    message: str
    action: Optional[NotificationAction] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class JobCollections(BaseModel):
    """Active, drafted and applied jobs.

    Every method keeps a job id in at most one collection; moves between
    collections happen inside a single method call.
    """

    active: list[Job] = Field(default_factory=list)
    drafts: list[DraftJob] = Field(default_factory=list)
    applied: list[AppliedJob] = Field(default_factory=list)

    def locate(self, job_id: str) -> Optional[str]:
        """Name of the collection holding job_id ("active", "drafts", "applied")."""
        if self.find_active(job_id):
            return "active"
        if self.find_draft(job_id):
            return "drafts"
        if self.find_applied(job_id):
            return "applied"
        return None

    def find_active(self, job_id: str) -> Optional[Job]:
        return next((j for j in self.active if j.id == job_id), None)

    def find_draft(self, job_id: str) -> Optional[DraftJob]:
        return next((d for d in self.drafts if d.job.id == job_id), None)

    def find_applied(self, job_id: str) -> Optional[AppliedJob]:
        return next((a for a in self.applied if a.job.id == job_id), None)

    def clear_active(self) -> None:
        self.active = []

    def replace_active(self, jobs: list[Job]) -> list[Job]:
        """
        Replace the active set with a new batch.

        Jobs already drafted or applied, and repeated ids within the batch,
        are left out.

        Args:
            jobs: Newly discovered jobs

        Returns:
            The jobs that became active
        """
        taken = {d.job.id for d in self.drafts} | {a.job.id for a in self.applied}
        accepted: list[Job] = []
        for job in jobs:
            if job.id in taken:
                continue
            taken.add(job.id)
            accepted.append(job)
        self.active = accepted
        return accepted

    def save_draft(self, draft: DraftJob) -> None:
        """Move a job into drafts, replacing any earlier draft for the same id."""
        job_id = draft.job.id
        if self.find_applied(job_id):
            raise WorkflowStateError(f"Job {job_id} has already been submitted")
        self.active = [j for j in self.active if j.id != job_id]
        self.drafts = [d for d in self.drafts if d.job.id != job_id] + [draft]

    def submit(self, applied: AppliedJob) -> None:
        """Move a job into the applied set, out of active and drafts."""
        job_id = applied.job.id
        if self.find_applied(job_id):
            raise WorkflowStateError(f"Job {job_id} has already been submitted")
        self.active = [j for j in self.active if j.id != job_id]
        self.drafts = [d for d in self.drafts if d.job.id != job_id]
        self.applied = self.applied + [applied]

    def cancel_draft(self, job_id: str) -> Optional[DraftJob]:
        """Remove a draft and return its job to the active set."""
        draft = self.find_draft(job_id)
        if draft is None:
            return None
        self.drafts = [d for d in self.drafts if d.job.id != job_id]
        self.active = self.active + [draft.job]
        return draft

    def is_disjoint(self) -> bool:
        """True when no job id appears twice across (or within) the collections."""
        ids = (
            [j.id for j in self.active]
            + [d.job.id for d in self.drafts]
            + [a.job.id for a in self.applied]
        )
        return len(ids) == len(set(ids))


class WorkflowState(BaseModel):
    """Everything the user surface renders."""

    status: WorkflowStatus = WorkflowStatus.IDLE
    progress_label: str = ""
    profile: Optional[Profile] = None
    collections: JobCollections = Field(default_factory=JobCollections)
    selected_job: Optional[Job] = None
    current_application: Optional[ApplicationPackage] = None
    current_answers: dict[str, str] = Field(default_factory=dict)
    notifications: list[Notification] = Field(default_factory=list)

    @property
    def resting_status(self) -> WorkflowStatus:
        return WorkflowStatus.READY if self.profile else WorkflowStatus.IDLE
