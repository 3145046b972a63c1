"""
Two-Phase Job Discovery Pipeline

Phase 1 (discovery): a search-grounded free-text request returns a narrative
    of live listings plus the URLs the service actually visited.
Phase 2 (structuring): the narrative and the grounding sources are fed back
    through the structured extraction client to produce a JSON array of jobs.

Post-processing fills in missing ids, normalizes match scores to 0-100 and
drops duplicate listings. A failure in either phase aborts the whole run; no
partial list is ever returned.

Example Usage:
    pipeline = JobDiscoveryPipeline(service, extraction_client, params.search, params.retry)
    jobs = await pipeline.discover(profile)
"""

import asyncio
import json
from enum import Enum
from typing import Any, Callable, Optional

from applyflow.agents.structured_extraction import StructuredExtractionClient, to_model
from applyflow.models.config import RetryPolicy, SearchConfig
from applyflow.models.job import Job, generate_job_id, normalize_match_score
from applyflow.models.profile import Profile
from applyflow.models.service import ContentPart, GenerationRequest, GroundingSource
from applyflow.utils.deduplication import deduplicate_jobs
from applyflow.utils.llm_helpers import call_service_with_retry
from applyflow.utils.logger import get_logger
from applyflow.utils.prompt_loader import get_default_loader, render_prompt
from applyflow.utils.retry import Sleep
from applyflow.utils.service_client import GenerativeService

JOB_LIST_SCHEMA = "job_list.json"


class DiscoveryStage(str, Enum):
    """Progress of a single discovery run."""

    PENDING = "PENDING"
    DISCOVERING = "DISCOVERING"
    STRUCTURING = "STRUCTURING"
    DONE = "DONE"
    FAILED = "FAILED"


class JobDiscoveryPipeline:
    """Search-then-structure job discovery for a profile."""

    def __init__(
        self,
        service: GenerativeService,
        extraction_client: StructuredExtractionClient,
        search_config: Optional[SearchConfig] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Sleep = asyncio.sleep,
        on_stage: Optional[Callable[[DiscoveryStage], None]] = None,
    ):
        """
        Initialize the pipeline.

        Args:
            service: Generative service used for the search-grounded phase
            extraction_client: Client used for the structuring phase
            search_config: Platforms, fallback location, currency, result count
            retry_policy: Retry policy for the discovery call
            sleep: Awaitable sleep used between retries
            on_stage: Called on every stage change (e.g. to update progress labels)
        """
        self.service = service
        self.extraction_client = extraction_client
        self.search_config = search_config or SearchConfig()
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.on_stage = on_stage
        self.stage = DiscoveryStage.PENDING
        self.grounding_sources: list[GroundingSource] = []

    def _set_stage(self, stage: DiscoveryStage) -> None:
        self.stage = stage
        if self.on_stage is not None:
            self.on_stage(stage)

    async def discover(
        self,
        profile: Profile,
        location: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> list[Job]:
        """
        Run both phases for a profile.

        Args:
            profile: Candidate profile (headline, skills, years of experience)
            location: Location override (defaults to the profile's preferred
                location, then the configured default)
            correlation_id: Optional correlation ID for logging

        Returns:
            Deduplicated jobs with ids and normalized scores

        Raises:
            ServiceError: Either phase's service call failed
            SchemaValidationError: Structuring output was malformed
        """
        logger = get_logger(
            correlation_id=correlation_id,
            phase="job_discovery",
            component="job_discovery_pipeline",
        )
        self.grounding_sources = []
        self._set_stage(DiscoveryStage.PENDING)

        target_location = (
            location or profile.preferred_location or self.search_config.default_location
        )
        years = profile.total_years_of_experience or 0

        try:
            self._set_stage(DiscoveryStage.DISCOVERING)
            raw_text, sources = await self._discover_raw(
                profile, target_location, years, correlation_id
            )
            self.grounding_sources = sources
            logger.info(
                "Discovery phase complete",
                location=target_location,
                narrative_length=len(raw_text),
                grounding_sources=len(sources),
            )

            self._set_stage(DiscoveryStage.STRUCTURING)
            items = await self._structure(profile, years, raw_text, sources, correlation_id)
            jobs = deduplicate_jobs(
                [self._to_job(item) for item in items], correlation_id=correlation_id
            )
        except Exception as e:
            failed_stage = self.stage
            self._set_stage(DiscoveryStage.FAILED)
            logger.error(
                "Job discovery failed",
                stage=failed_stage.value,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise

        self._set_stage(DiscoveryStage.DONE)
        logger.info("Job discovery complete", jobs_found=len(jobs))
        return jobs

    async def _discover_raw(
        self,
        profile: Profile,
        location: str,
        years: int,
        correlation_id: Optional[str],
    ) -> tuple[str, list[GroundingSource]]:
        platforms = self.search_config.platforms
        prompt = render_prompt(
            "jobs/discovery.j2",
            correlation_id=correlation_id,
            max_results=self.search_config.max_results,
            headline=profile.headline,
            location=location,
            years=years,
            platforms=platforms,
            skills=profile.skills[:8],
        )
        request = GenerationRequest(
            parts=[ContentPart.from_text(prompt)],
            use_search=True,
            system_prompt=get_default_loader().get_system_prompt(
                "search_assistant", correlation_id=correlation_id, platforms=platforms
            ),
        )
        response = await call_service_with_retry(
            self.service,
            request,
            policy=self.retry_policy,
            sleep=self.sleep,
            operation="job_discovery",
            correlation_id=correlation_id,
        )
        return response.text, response.grounding_sources

    async def _structure(
        self,
        profile: Profile,
        years: int,
        raw_text: str,
        sources: list[GroundingSource],
        correlation_id: Optional[str],
    ) -> list[dict[str, Any]]:
        grounding_json = json.dumps(
            [source.model_dump() for source in sources], ensure_ascii=False, indent=2
        )
        instruction = render_prompt(
            "jobs/structuring.j2",
            correlation_id=correlation_id,
            platforms=self.search_config.platforms,
            currency=self.search_config.salary_currency,
            headline=profile.headline,
            years=years,
            raw_text=raw_text,
            grounding_json=grounding_json,
        )
        return await self.extraction_client.extract(
            instruction, JOB_LIST_SCHEMA, correlation_id=correlation_id
        )

    @staticmethod
    def _to_job(item: dict[str, Any]) -> Job:
        """Fill in a missing id, normalize the score and validate."""
        data = dict(item)
        if not data.get("id"):
            data["id"] = generate_job_id()
        data["matchScore"] = normalize_match_score(data["matchScore"])
        return to_model(Job, data)
