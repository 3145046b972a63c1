"""
Job Listing Model

Pydantic model for job listings produced by the discovery pipeline.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


def generate_job_id() -> str:
    """Short random identifier for a job the service returned without one.

    Returns:
        9-character lowercase alphanumeric token (unique within a session)
    """
    return uuid.uuid4().hex[:9]


def normalize_match_score(score: float) -> float:
    """Normalize a match score to the 0-100 range.

    The service returns either a 0-1 fraction or a 0-100 value. Fractions are
    scaled and rounded; values above 1 are kept as they are. The result is
    clamped to [0, 100].

    Args:
        score: Raw match score from the service

    Returns:
        Score in [0, 100]

    Example:
        >>> normalize_match_score(0.92)
        92.0
        >>> normalize_match_score(60)
        60.0
    """
    value = float(score) if score > 1 else float(round(score * 100))
    return min(100.0, max(0.0, value))


class Job(BaseModel):
    """Job listing with match metadata.

    Field aliases match the keys the service emits (camelCase).
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=generate_job_id)
    title: str
    company: str
    location: str = ""
    platform: str = Field(..., description="Source platform tag, e.g. LinkedIn")
    description: str = ""
    full_description: Optional[str] = Field(default=None, alias="fullJD")
    url: str
    match_score: float = Field(..., alias="matchScore")
    match_reason: str = Field(default="", alias="matchReason")
    responsibilities: list[str] = Field(default_factory=list)
    requirements: list[str] = Field(default_factory=list)
    skills_required: list[str] = Field(default_factory=list, alias="skillsRequired")
    experience_required: str = Field(default="", alias="experienceRequired")
    salary: str
    posted_date: Optional[str] = Field(default=None, alias="postedDate")
