"""
Profile Extractor Agent

First pipeline stage: turns a loaded resume into a Profile. PDFs are sent to
the service as binary content; Word and text resumes are inlined as text.
"""

from typing import Optional

from applyflow.agents.structured_extraction import StructuredExtractionClient
from applyflow.models.profile import Profile
from applyflow.utils.document_loader import ResumeDocument
from applyflow.utils.logger import get_logger
from applyflow.utils.prompt_loader import render_prompt

PROFILE_SCHEMA = "profile.json"


async def analyze_resume(
    client: StructuredExtractionClient,
    document: ResumeDocument,
    preferred_location: Optional[str] = None,
    correlation_id: Optional[str] = None,
) -> Profile:
    """
    Extract a candidate profile from a resume.

    Args:
        client: Structured extraction client
        document: Loaded resume
        preferred_location: City chosen by the user; overrides whatever the
            resume states
        correlation_id: Optional correlation ID for logging

    Returns:
        Immutable Profile tagged with the source file name

    Raises:
        ServiceError: Service failed
        SchemaValidationError: Response was incomplete or malformed
    """
    logger = get_logger(
        correlation_id=correlation_id,
        phase="onboarding",
        component="profile_extractor",
    )
    logger.info(
        "Analyzing resume",
        file_name=document.file_name,
        media_type=document.media_type,
    )

    instruction = render_prompt(
        "profile/extract_resume.j2",
        correlation_id=correlation_id,
        file_name=document.file_name,
        resume_text=document.text,
    )

    extracted = await client.extract_model(
        Profile,
        instruction,
        PROFILE_SCHEMA,
        content=document.data,
        media_type=document.media_type if document.is_binary else None,
        correlation_id=correlation_id,
    )

    updates: dict = {"source_file": document.file_name}
    if preferred_location:
        updates["preferred_location"] = preferred_location
    profile = extracted.model_copy(update=updates)

    logger.info(
        "Profile extracted",
        headline=profile.headline,
        skills_count=len(profile.skills),
        experience_count=len(profile.experience),
        years=profile.total_years_of_experience,
    )
    return profile
