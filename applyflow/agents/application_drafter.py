"""
Application Drafter Agent

Drafts tailored application materials for one job: cover letter, resume
tailoring tips, suggested answers and the screening questions the candidate
must answer before submitting.
"""

from typing import Optional

from applyflow.agents.structured_extraction import StructuredExtractionClient
from applyflow.models.application import ApplicationPackage
from applyflow.models.job import Job
from applyflow.models.profile import Profile
from applyflow.utils.logger import get_logger
from applyflow.utils.prompt_loader import render_prompt

APPLICATION_SCHEMA = "application_package.json"
DEFAULT_QUESTION_COUNT = 3


async def draft_application(
    client: StructuredExtractionClient,
    profile: Profile,
    job: Job,
    question_count: int = DEFAULT_QUESTION_COUNT,
    correlation_id: Optional[str] = None,
) -> ApplicationPackage:
    """
    Draft an application package.

    Args:
        client: Structured extraction client
        profile: Candidate profile
        job: Target job
        question_count: Number of screening questions to request
        correlation_id: Optional correlation ID for logging

    Returns:
        ApplicationPackage bound to job.id

    Raises:
        ServiceError: Service failed
        SchemaValidationError: Response was incomplete or malformed
    """
    logger = get_logger(
        correlation_id=correlation_id,
        phase="application",
        component="application_drafter",
    )
    logger.info("Drafting application", job_id=job.id, company=job.company)

    prompt = render_prompt(
        "application/draft.j2",
        correlation_id=correlation_id,
        job=job,
        profile=profile,
        question_count=question_count,
    )
    package = await client.extract_model(
        ApplicationPackage,
        prompt,
        APPLICATION_SCHEMA,
        correlation_id=correlation_id,
    )

    # Whatever id the service echoed, the package belongs to the requested job
    package = package.model_copy(update={"job_id": job.id})

    logger.info(
        "Application drafted",
        job_id=job.id,
        tips_count=len(package.resume_tailoring_tips),
        required_questions=len(package.required_additional_info),
    )
    return package
