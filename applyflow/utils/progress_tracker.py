"""
Progress Tracker Module

Wraps the rich library to show a spinner with the coordinator's progress
label while a workflow operation is in flight. Label rotation during long
phases lives here, outside the coordinator, which only stores the label.

Example Usage:
    from applyflow.utils.progress_tracker import ProgressTracker

    tracker = ProgressTracker()
    coordinator.subscribe(tracker.on_state)

    async with tracker.rotating(coordinator, tracker.search_labels(["LinkedIn"], "INR")):
        await coordinator.search()
"""

import asyncio
from contextlib import asynccontextmanager, suppress
from typing import AsyncIterator, Optional

from rich.console import Console
from rich.progress import (
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from applyflow.models.workflow import WorkflowState

ONBOARDING_LABELS = [
    "Reading your resume...",
    "Extracting skills...",
    "Summarizing experience...",
]

DRAFTING_LABELS = [
    "Reading the job description...",
    "Writing your cover letter...",
    "Preparing screening questions...",
]


class ProgressTracker:
    """Spinner display for in-flight workflow operations."""

    def __init__(
        self, console: Optional[Console] = None, rotation_interval: float = 3.5
    ) -> None:
        """
        Initialize ProgressTracker.

        Args:
            console: rich Console to render on (a new one by default)
            rotation_interval: Seconds between label rotations
        """
        self.console = console or Console()
        self.rotation_interval = rotation_interval
        self.progress: Optional[Progress] = None
        self.task_id: Optional[TaskID] = None
        self.phase_name: str = ""

    @staticmethod
    def search_labels(platforms: list[str], currency: str) -> list[str]:
        """Rotating labels for job search, naming the configured platforms."""
        labels = [f"Scanning {platform}..." for platform in platforms]
        labels += [
            "Identifying relevant leads...",
            f"Converting salary ranges to {currency}...",
            "Matching skills with job descriptions...",
            "Ranking by match percentage...",
            "Finalizing your job feed...",
        ]
        return labels

    def start_phase(self, phase_name: str) -> None:
        """
        Show a spinner for a new phase.

        Args:
            phase_name: Initial description (e.g., "Searching job boards...")
        """
        if self.is_active():
            self.set_description(phase_name)
            return

        self.phase_name = phase_name
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[bold blue]{task.description}"),
            TimeElapsedColumn(),
            console=self.console,
            transient=True,
        )
        self.progress.start()
        self.task_id = self.progress.add_task(description=phase_name, total=None)

    def set_description(self, description: str) -> None:
        """
        Update the spinner description.

        Args:
            description: New description text
        """
        if self.progress is None or self.task_id is None:
            return

        self.progress.update(self.task_id, description=description)

    def complete_phase(self, summary: Optional[str] = None) -> None:
        """Stop the spinner and optionally print a summary line."""
        if self.progress is None or self.task_id is None:
            return

        self.progress.stop()
        if summary:
            self.console.print(f"[bold green]✓[/bold green] {summary}")

        self.progress = None
        self.task_id = None
        self.phase_name = ""

    def is_active(self) -> bool:
        """
        Check if progress tracker is currently active.

        Returns:
            True if a spinner is showing, False otherwise
        """
        return self.progress is not None and self.task_id is not None

    def on_state(self, state: WorkflowState) -> None:
        """Coordinator listener: mirror status and label on the spinner."""
        if state.status.is_resting:
            self.complete_phase()
            return
        self.start_phase(state.progress_label or state.status.value)
        self.set_description(state.progress_label or state.status.value)

    @asynccontextmanager
    async def rotating(self, coordinator, labels: list[str]) -> AsyncIterator[None]:
        """
        Rotate the coordinator's progress label while the body runs.

        Args:
            coordinator: WorkflowCoordinator whose label is rotated
            labels: Labels cycled every rotation_interval seconds
        """
        task = asyncio.create_task(self._rotate(coordinator, labels))
        try:
            yield
        finally:
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task

    async def _rotate(self, coordinator, labels: list[str]) -> None:
        if not labels:
            return
        index = 0
        while True:
            await asyncio.sleep(self.rotation_interval)
            coordinator.set_progress_label(labels[index % len(labels)])
            index += 1
