"""
Application Models

Drafted application packages, saved drafts and finalized submissions.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from applyflow.models.job import Job


class SyncStatus(str, Enum):
    """Platform-side status of a submitted application."""

    SYNCED = "Synced"
    PENDING = "Pending"
    RECRUITER_VIEWED = "Recruiter Viewed"
    ACTION_REQUIRED = "Action Required"


def generate_reference_id() -> str:
    """Opaque platform reference for a submitted application (e.g. APP-3F9A0C21)."""
    return f"APP-{uuid.uuid4().hex[:8].upper()}"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ApplicationPackage(BaseModel):
    """Tailored materials for one job."""

    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(default="", alias="jobId")
    cover_letter: str = Field(..., alias="coverLetter")
    resume_tailoring_tips: list[str] = Field(..., alias="resumeTailoringTips")
    suggested_answers: dict[str, str] = Field(
        default_factory=dict, alias="suggestedAnswers"
    )
    required_additional_info: list[str] = Field(..., alias="requiredAdditionalInfo")

    def missing_answers(self, answers: dict[str, str]) -> list[str]:
        """Required questions without a non-blank answer, in declared order."""
        return [
            question
            for question in self.required_additional_info
            if not (answers.get(question) or "").strip()
        ]


class DraftJob(BaseModel):
    """In-progress application saved before submission."""

    job: Job
    application: ApplicationPackage
    saved_at: datetime = Field(default_factory=_utcnow)
    partial_answers: dict[str, str] = Field(default_factory=dict)


class AppliedJob(BaseModel):
    """Finalized application. Never reopened for editing."""

    model_config = ConfigDict(frozen=True)

    job: Job
    application: ApplicationPackage
    applied_at: datetime = Field(default_factory=_utcnow)
    user_answers: dict[str, str] = Field(default_factory=dict)
    sync_status: SyncStatus = SyncStatus.SYNCED
    platform_ref_id: str = Field(default_factory=generate_reference_id, min_length=1)
