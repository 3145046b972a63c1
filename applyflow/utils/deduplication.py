"""Job batch deduplication.

Only repeated ids are dropped: the job collections key every move on id, so
two listings with the same id cannot both be tracked. Listings that merely
share a title, company or board URL (the same role posted for two cities, or
several results pointing at a generic search page) are distinct and kept.
"""

from applyflow.models.job import Job
from applyflow.utils.logger import get_logger


def deduplicate_jobs(jobs: list[Job], correlation_id: str | None = None) -> list[Job]:
    """Drop listings whose id was already seen in the batch.

    Args:
        jobs: Jobs in service order
        correlation_id: Optional correlation ID for logging

    Returns:
        Jobs with repeated ids removed, first occurrence kept, order preserved
    """
    logger = get_logger(
        correlation_id=correlation_id,
        phase="job_discovery",
        component="deduplication",
    )

    unique_jobs: list[Job] = []
    seen_ids: set[str] = set()

    for job in jobs:
        if job.id in seen_ids:
            logger.debug(
                "Repeated job id dropped",
                job_id=job.id,
                title=job.title,
                company=job.company,
            )
            continue
        seen_ids.add(job.id)
        unique_jobs.append(job)

    if len(unique_jobs) != len(jobs):
        logger.info(
            "Deduplication complete",
            original_count=len(jobs),
            unique_count=len(unique_jobs),
            duplicates_removed=len(jobs) - len(unique_jobs),
        )

    return unique_jobs
