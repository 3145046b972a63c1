"""
User Profile Data Models
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Experience(BaseModel):
    """One role held by the candidate."""

    model_config = ConfigDict(frozen=True)

    company: str
    role: str
    duration: str = ""
    description: str = ""


class Profile(BaseModel):
    """Candidate profile extracted from a resume.

    Immutable: re-onboarding replaces the whole object.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    headline: str
    summary: str
    skills: List[str]
    experience: List[Experience]
    total_years_of_experience: Optional[int] = Field(
        default=None, alias="totalYearsOfExperience"
    )
    preferred_location: Optional[str] = Field(default=None, alias="preferredCity")
    email: Optional[str] = None
    source_file: str = ""

    @field_validator("total_years_of_experience", mode="before")
    @classmethod
    def round_years(cls, v: object) -> object:
        """The service reports years as a number; keep the nearest integer."""
        if isinstance(v, float):
            return int(round(v))
        return v
