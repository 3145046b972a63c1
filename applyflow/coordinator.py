"""
Workflow Coordinator Module

Owns the application workflow state and exposes it as named actions:
onboard -> search -> start_application -> save_draft / finalize.

One operation runs at a time. An action triggered while another is in flight
is rejected with a notification rather than queued. Every service or
extraction failure is caught here and turned into a dismissible notification;
the workflow always settles back in a resting state (READY with a profile,
IDLE without one).
"""

import asyncio
import uuid
from pathlib import Path
from typing import Callable, Optional, Union

from applyflow.agents.application_drafter import draft_application
from applyflow.agents.job_discovery import DiscoveryStage, JobDiscoveryPipeline
from applyflow.agents.profile_extractor import analyze_resume
from applyflow.agents.structured_extraction import StructuredExtractionClient
from applyflow.models.application import (
    ApplicationPackage,
    AppliedJob,
    DraftJob,
    SyncStatus,
)
from applyflow.models.config import SystemParams
from applyflow.models.job import Job
from applyflow.models.profile import Profile
from applyflow.models.workflow import (
    Notification,
    NotificationAction,
    NotificationLevel,
    WorkflowState,
    WorkflowStatus,
)
from applyflow.utils.document_loader import ResumeDocument, load_resume
from applyflow.utils.errors import (
    ExtractionError,
    ResourceNotFoundError,
    ServiceAuthenticationError,
    ServiceError,
    ServiceTimeoutError,
    TransientServiceError,
    UnsupportedInputError,
    WorkflowStateError,
)
from applyflow.utils.logger import get_logger
from applyflow.utils.rate_limiter import ServiceRateLimiter
from applyflow.utils.retry import Sleep
from applyflow.utils.service_client import ClaudeServiceClient, GenerativeService

StatusListener = Callable[[WorkflowState], None]

STAGE_LABELS = {
    DiscoveryStage.DISCOVERING: "Scanning live listings...",
    DiscoveryStage.STRUCTURING: "Structuring job details...",
}


def build_service(system_params: SystemParams) -> ClaudeServiceClient:
    """Create the production service client from configuration."""
    return ClaudeServiceClient(
        model=system_params.service.model,
        timeout=float(system_params.timeouts.service_call),
        rate_limiter=ServiceRateLimiter(
            requests_per_minute=system_params.rate_limiting.requests_per_minute
        ),
        lenient_not_found=system_params.service.lenient_not_found,
    )


class WorkflowCoordinator:
    """
    Single owner of the workflow state.

    Collections are only changed through JobCollections methods, called here
    while the operation lock is held.
    """

    def __init__(
        self,
        service: Optional[GenerativeService] = None,
        system_params: Optional[SystemParams] = None,
        correlation_id: Optional[str] = None,
        sleep: Sleep = asyncio.sleep,
    ):
        """
        Initialize Workflow Coordinator.

        Args:
            service: Generative service (defaults to ClaudeServiceClient built
                from system_params)
            system_params: Validated configuration (defaults to built-in defaults)
            correlation_id: Correlation ID for logging (auto-generated if None)
            sleep: Awaitable sleep used between retries
        """
        self.system_params = system_params or SystemParams()
        if service is None:
            service = build_service(self.system_params)
        self.service = service
        self.sleep = sleep

        if correlation_id is None:
            correlation_id = str(uuid.uuid4())
        self.correlation_id = correlation_id
        self.logger = get_logger(
            correlation_id=correlation_id,
            phase="workflow",
            component="workflow_coordinator",
        )

        self.extraction_client = StructuredExtractionClient(
            self.service, retry_policy=self.system_params.retry, sleep=sleep
        )
        self.discovery = JobDiscoveryPipeline(
            self.service,
            self.extraction_client,
            search_config=self.system_params.search,
            retry_policy=self.system_params.retry,
            sleep=sleep,
            on_stage=self._on_discovery_stage,
        )

        self.state = WorkflowState()
        self._lock = asyncio.Lock()
        self._listeners: list[StatusListener] = []
        self._draft_ticket = 0
        self._live_ticket: Optional[int] = None

        self.logger.info(
            "Workflow Coordinator initialized",
            service=type(self.service).__name__,
            retry=self.system_params.retry.model_dump(),
        )

    @classmethod
    def from_config(
        cls, config_path: Union[str, Path] = "config/system_params.json", **kwargs
    ) -> "WorkflowCoordinator":
        """Build a coordinator from a system_params JSON file."""
        return cls(system_params=SystemParams.load(config_path), **kwargs)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def status(self) -> WorkflowStatus:
        return self.state.status

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def subscribe(self, listener: StatusListener) -> None:
        """Call listener with the state after every status or label change."""
        self._listeners.append(listener)

    def set_progress_label(self, label: str) -> bool:
        """
        Replace the progress label shown for the running operation.

        Ignored while resting, so a late rotation tick cannot leave a stale label.
        """
        if self.state.status.is_resting:
            return False
        self.state.progress_label = label
        self._emit()
        return True

    def dismiss_notification(self, notification_id: str) -> bool:
        before = len(self.state.notifications)
        self.state.notifications = [
            n for n in self.state.notifications if n.id != notification_id
        ]
        return len(self.state.notifications) != before

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    async def onboard_file(
        self, path: Union[str, Path], preferred_location: Optional[str] = None
    ) -> Optional[Profile]:
        """Load a resume from disk and onboard it.

        Unsupported files produce a notification without touching state.
        """
        try:
            document = load_resume(path, correlation_id=self.correlation_id)
        except UnsupportedInputError as e:
            self.logger.warning("Resume rejected", path=str(path), error=str(e))
            self._notify(
                str(e),
                level=NotificationLevel.ERROR,
                action=NotificationAction.CHOOSE_ANOTHER_FILE,
            )
            return None
        return await self.onboard(document, preferred_location=preferred_location)

    async def onboard(
        self, document: ResumeDocument, preferred_location: Optional[str] = None
    ) -> Optional[Profile]:
        """
        Extract a profile from a loaded resume.

        On failure any earlier profile is kept.

        Returns:
            The new profile, or None on failure/rejection
        """
        if not self._try_begin("onboard"):
            return None

        async with self._lock:
            self._set_status(WorkflowStatus.LOADING_PROFILE, "Analyzing resume...")
            try:
                profile = await analyze_resume(
                    self.extraction_client,
                    document,
                    preferred_location=preferred_location,
                    correlation_id=self.correlation_id,
                )
                self.state.profile = profile
                # Matches computed for a previous profile no longer apply
                self.state.collections.clear_active()
                self._close_application()
            except (ServiceError, ExtractionError) as e:
                self._fail("onboard", e)
                return None
            finally:
                self._settle()

        self.logger.info(
            "Onboarding complete", file_name=document.file_name, headline=profile.headline
        )
        return profile

    async def search(self) -> Optional[list[Job]]:
        """
        Discover jobs for the current profile.

        The active set is cleared before the pipeline runs and stays empty if
        it fails.

        Returns:
            Jobs that became active, or None on failure/rejection
        """
        if not self._try_begin("search"):
            return None

        async with self._lock:
            profile = self.state.profile
            if profile is None:
                self._reject("search", "Upload a resume before searching for jobs")
                return None

            self.state.collections.clear_active()
            self._set_status(WorkflowStatus.SEARCHING_JOBS, "Searching job boards...")
            try:
                jobs = await self.discovery.discover(
                    profile, correlation_id=self.correlation_id
                )
                accepted = self.state.collections.replace_active(jobs)
            except (ServiceError, ExtractionError) as e:
                self._fail("search", e)
                return None
            finally:
                self._settle()

        self.logger.info(
            "Search complete",
            jobs_found=len(jobs),
            jobs_active=len(accepted),
            skipped_known=len(jobs) - len(accepted),
        )
        return accepted

    async def start_application(self, job_id: str) -> Optional[ApplicationPackage]:
        """
        Open an application for a job and draft its materials.

        A drafted job is resumed from its saved package instead of being
        regenerated. Submitted jobs cannot be reopened.

        Returns:
            The package for the job, or None on failure/rejection/dismissal
        """
        if not self._try_begin("start_application"):
            return None

        collections = self.state.collections
        if collections.find_applied(job_id):
            self._reject("start_application", "This job has already been submitted")
            return None
        if collections.find_draft(job_id):
            if self.resume_draft(job_id) is None:
                return None
            return self.state.current_application

        async with self._lock:
            profile = self.state.profile
            job = collections.find_active(job_id)
            if profile is None:
                self._reject("start_application", "Upload a resume before applying")
                return None
            if job is None:
                self._reject("start_application", f"Job {job_id} is not in the current results")
                return None

            self._close_application()
            self.state.selected_job = job
            self._draft_ticket += 1
            ticket = self._draft_ticket
            self._live_ticket = ticket
            self._set_status(WorkflowStatus.APPLYING, "Tailoring your application...")

            try:
                package = await draft_application(
                    self.extraction_client,
                    profile,
                    job,
                    correlation_id=self.correlation_id,
                )
                if self._live_ticket != ticket:
                    self.logger.warning(
                        "Discarding application drafted after dismissal", job_id=job_id
                    )
                    return None
                self.state.current_application = package
                self.state.current_answers = {}
            except (ServiceError, ExtractionError) as e:
                if self._live_ticket != ticket:
                    self.logger.warning(
                        "Ignoring drafting failure after dismissal",
                        job_id=job_id,
                        error=str(e),
                    )
                    return None
                self._close_application()
                self._fail("start_application", e)
                return None
            finally:
                if self._live_ticket == ticket:
                    self._live_ticket = None
                self._settle()

        self.logger.info(
            "Application ready",
            job_id=job_id,
            required_questions=len(package.required_additional_info),
        )
        return package

    async def save_draft(
        self, answers: Optional[dict[str, str]] = None
    ) -> Optional[DraftJob]:
        """
        Save the open application as a draft and close it.

        Args:
            answers: Partial answers (defaults to the answers already held)

        Returns:
            The saved draft, or None on rejection
        """
        if not self._try_begin("save_draft"):
            return None

        async with self._lock:
            job = self.state.selected_job
            package = self.state.current_application
            if job is None or package is None:
                self._reject("save_draft", "No application is open")
                return None

            partial = dict(self.state.current_answers if answers is None else answers)
            self._set_status(WorkflowStatus.SAVING_DRAFT, "Saving draft...")
            try:
                draft = DraftJob(job=job, application=package, partial_answers=partial)
                self.state.collections.save_draft(draft)
                self._close_application()
            except WorkflowStateError as e:
                self._reject("save_draft", str(e))
                return None
            finally:
                self._settle()

        self.logger.info("Draft saved", job_id=job.id, answered=len(partial))
        return draft

    async def finalize(self, answers: dict[str, str]) -> Optional[AppliedJob]:
        """
        Submit the open application.

        Blocked, with no state change, while any required question lacks a
        non-blank answer.

        Returns:
            The submitted application, or None when blocked/rejected
        """
        if not self._try_begin("finalize"):
            return None

        async with self._lock:
            job = self.state.selected_job
            package = self.state.current_application
            if job is None or package is None:
                self._reject("finalize", "No application is open")
                return None

            missing = package.missing_answers(answers)
            if missing:
                self.logger.info(
                    "Submission blocked", job_id=job.id, missing_count=len(missing)
                )
                self._notify(
                    "Answer the required questions before submitting: "
                    + "; ".join(missing),
                    level=NotificationLevel.WARNING,
                )
                return None

            self._set_status(
                WorkflowStatus.SUBMITTING_TO_PLATFORM, f"Submitting to {job.platform}..."
            )
            try:
                applied = AppliedJob(
                    job=job,
                    application=package,
                    user_answers=dict(answers),
                    sync_status=SyncStatus.SYNCED,
                )
                self.state.collections.submit(applied)
                self._close_application()
            except WorkflowStateError as e:
                self._reject("finalize", str(e))
                return None
            finally:
                self._settle()

        self.logger.info(
            "Application submitted",
            job_id=job.id,
            platform=job.platform,
            platform_ref_id=applied.platform_ref_id,
        )
        return applied

    def resume_draft(self, job_id: str) -> Optional[dict[str, str]]:
        """
        Reopen a saved draft.

        Returns:
            A copy of the draft's partial answers, or None when there is no
            such draft or another operation is running
        """
        if not self._try_begin("resume_draft"):
            return None

        draft = self.state.collections.find_draft(job_id)
        if draft is None:
            self._reject("resume_draft", f"No draft saved for job {job_id}")
            return None

        self.state.selected_job = draft.job
        self.state.current_application = draft.application
        self.state.current_answers = dict(draft.partial_answers)
        self._emit()

        self.logger.info("Draft reopened", job_id=job_id)
        return dict(draft.partial_answers)

    def cancel_draft(self, job_id: str) -> bool:
        """Delete a draft; its job returns to the active set."""
        if not self._try_begin("cancel_draft"):
            return False

        draft = self.state.collections.cancel_draft(job_id)
        if draft is None:
            self._reject("cancel_draft", f"No draft saved for job {job_id}")
            return False

        if self.state.selected_job and self.state.selected_job.id == job_id:
            self._close_application()
        self._emit()

        self.logger.info("Draft cancelled", job_id=job_id)
        return True

    def close_application(
        self, answers: Optional[dict[str, str]] = None
    ) -> Optional[DraftJob]:
        """
        Dismiss the open application.

        With a drafted package the application is kept as a draft (latest
        answers win). While drafting is still in flight, the eventual result
        is discarded instead; the request itself is not cancelled.

        Returns:
            The saved draft, if one was saved
        """
        if self.state.status == WorkflowStatus.APPLYING:
            self.logger.info(
                "Application dismissed while drafting",
                job_id=self.state.selected_job.id if self.state.selected_job else None,
            )
            self._live_ticket = None
            self._close_application()
            self._emit()
            return None

        if not self._try_begin("close_application"):
            return None

        job = self.state.selected_job
        package = self.state.current_application
        draft = None
        if job is not None and package is not None:
            partial = dict(self.state.current_answers if answers is None else answers)
            draft = DraftJob(job=job, application=package, partial_answers=partial)
            try:
                self.state.collections.save_draft(draft)
            except WorkflowStateError as e:
                self._reject("close_application", str(e))
                draft = None
            else:
                self.logger.info("Draft saved on close", job_id=job.id)

        self._close_application()
        self._emit()
        return draft

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _try_begin(self, action: str) -> bool:
        """Reject an action while another operation holds the lock."""
        if self._lock.locked():
            self._reject(
                action,
                f"Please wait: {self.state.status.value.lower().replace('_', ' ')} "
                "is still in progress",
            )
            return False
        return True

    def _set_status(self, status: WorkflowStatus, label: str = "") -> None:
        self.logger.debug(
            "Status change", previous=self.state.status.value, status=status.value
        )
        self.state.status = status
        self.state.progress_label = label
        self._emit()

    def _settle(self) -> None:
        """Return to the resting state for the current profile."""
        if self.state.status != self.state.resting_status:
            self._set_status(self.state.resting_status)

    def _close_application(self) -> None:
        self.state.selected_job = None
        self.state.current_application = None
        self.state.current_answers = {}

    def _on_discovery_stage(self, stage: DiscoveryStage) -> None:
        label = STAGE_LABELS.get(stage)
        if label and self.state.status == WorkflowStatus.SEARCHING_JOBS:
            self.set_progress_label(label)

    def _emit(self) -> None:
        for listener in self._listeners:
            listener(self.state)

    def _notify(
        self,
        message: str,
        level: NotificationLevel = NotificationLevel.ERROR,
        action: Optional[NotificationAction] = None,
    ) -> Notification:
        notification = Notification(level=level, message=message, action=action)
        self.state.notifications.append(notification)
        self._emit()
        return notification

    def _reject(self, action: str, reason: str) -> None:
        self.logger.warning("Action rejected", action=action, reason=reason)
        self._notify(reason, level=NotificationLevel.WARNING)

    def _fail(self, action: str, error: Exception) -> None:
        """Log the raw failure and surface a short notification for it."""
        self.logger.error(
            "Action failed",
            action=action,
            error=str(error),
            error_type=type(error).__name__,
        )
        message, follow_up = describe_failure(action, error)
        self._notify(message, level=NotificationLevel.ERROR, action=follow_up)


ACTION_FAILURES = {
    "onboard": "Resume analysis failed",
    "search": "Job search failed",
    "start_application": "Could not draft the application",
}


def describe_failure(
    action: str, error: Exception
) -> tuple[str, Optional[NotificationAction]]:
    """User-facing message and follow-up for a failed action.

    Raw error text is deliberately left out; it is logged instead.
    """
    prefix = ACTION_FAILURES.get(action, "Something went wrong")

    if isinstance(error, ServiceAuthenticationError):
        return (
            f"{prefix}: the AI service rejected the API key. Reconnect your credentials.",
            NotificationAction.RECONNECT_CREDENTIALS,
        )
    if isinstance(error, TransientServiceError):
        return (
            f"{prefix}: the AI service is busy. Please try again in a minute.",
            NotificationAction.RETRY,
        )
    if isinstance(error, ServiceTimeoutError):
        return (
            f"{prefix}: the AI service took too long to respond.",
            NotificationAction.RETRY,
        )
    if isinstance(error, ResourceNotFoundError):
        return (
            f"{prefix}: the configured model is not available.",
            NotificationAction.RETRY,
        )
    if isinstance(error, ExtractionError):
        if action == "onboard":
            return (
                f"{prefix}. Please try a different file format.",
                NotificationAction.CHOOSE_ANOTHER_FILE,
            )
        return (
            f"{prefix}: the AI service returned an incomplete response.",
            NotificationAction.RETRY,
        )
    return (f"{prefix}. Please try again.", NotificationAction.RETRY)
