"""
applyflow command line.

Usage:
    applyflow run resume.pdf
    applyflow run resume.docx --location Pune --config config/system_params.json
    applyflow credentials
"""

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from applyflow.coordinator import WorkflowCoordinator
from applyflow.models.config import SystemParams
from applyflow.models.job import Job
from applyflow.models.workflow import NotificationLevel
from applyflow.utils.credential_manager import CredentialManager
from applyflow.utils.logger import configure_logging
from applyflow.utils.progress_tracker import (
    DRAFTING_LABELS,
    ONBOARDING_LABELS,
    ProgressTracker,
)

app = typer.Typer(help="Resume-driven job search and application drafting.")
console = Console()

LEVEL_STYLES = {
    NotificationLevel.ERROR: "red",
    NotificationLevel.WARNING: "yellow",
    NotificationLevel.INFO: "cyan",
}


def _load_params(config: Path) -> SystemParams:
    if config.exists():
        return SystemParams.load(config)
    console.print(f"[dim][i] {config} not found, using default settings[/dim]")
    return SystemParams()


def _flush_notifications(coordinator: WorkflowCoordinator) -> None:
    for notification in list(coordinator.state.notifications):
        style = LEVEL_STYLES[notification.level]
        hint = f" [dim]({notification.action.value})[/dim]" if notification.action else ""
        console.print(f"[{style}]{notification.message}[/{style}]{hint}")
        coordinator.dismiss_notification(notification.id)


def _jobs_table(jobs: list[Job]) -> Table:
    table = Table(title="Matching jobs")
    table.add_column("#", justify="right")
    table.add_column("Match", justify="right")
    table.add_column("Title")
    table.add_column("Company")
    table.add_column("Location")
    table.add_column("Salary")
    table.add_column("Platform")
    for index, job in enumerate(jobs, start=1):
        table.add_row(
            str(index),
            f"{job.match_score:.0f}%",
            job.title,
            job.company,
            job.location,
            job.salary,
            job.platform,
        )
    return table


async def _apply_to(
    coordinator: WorkflowCoordinator, tracker: ProgressTracker, job: Job
) -> None:
    async with tracker.rotating(coordinator, DRAFTING_LABELS):
        package = await coordinator.start_application(job.id)
    _flush_notifications(coordinator)
    if package is None:
        return

    console.print(Panel(package.cover_letter, title=f"Cover letter: {job.company}"))
    for tip in package.resume_tailoring_tips:
        console.print(f"  • {tip}")
    for key, answer in package.suggested_answers.items():
        console.print(f"[bold]{key.replace('_', ' ')}:[/bold] {answer}")

    answers = dict(coordinator.state.current_answers)
    for question in package.required_additional_info:
        answers[question] = Prompt.ask(question, default=answers.get(question, ""))

    if Confirm.ask("Submit this application now?", default=True):
        applied = await coordinator.finalize(answers)
        _flush_notifications(coordinator)
        if applied is not None:
            console.print(
                f"[green][+] Submitted to {job.platform}[/green] "
                f"(reference {applied.platform_ref_id})"
            )
            return

    draft = coordinator.close_application(answers)
    _flush_notifications(coordinator)
    if draft is not None:
        console.print(f"[yellow][*] Saved draft for {job.title} at {job.company}[/yellow]")


async def _run_session(
    resume: Path, location: Optional[str], params: SystemParams
) -> int:
    coordinator = WorkflowCoordinator(system_params=params)
    tracker = ProgressTracker()
    coordinator.subscribe(tracker.on_state)

    async with tracker.rotating(coordinator, ONBOARDING_LABELS):
        profile = await coordinator.onboard_file(resume, preferred_location=location)
    _flush_notifications(coordinator)
    if profile is None:
        return 1

    console.print(
        Panel(
            f"{profile.summary}\n\n[bold]Skills:[/bold] {', '.join(profile.skills[:12])}",
            title=f"{profile.name}: {profile.headline}",
        )
    )

    search_labels = tracker.search_labels(
        params.search.platforms, params.search.salary_currency
    )
    async with tracker.rotating(coordinator, search_labels):
        jobs = await coordinator.search()
    _flush_notifications(coordinator)
    if not jobs:
        console.print("[yellow]No jobs found. Try again later.[/yellow]")
        return 1 if jobs is None else 0

    while True:
        active = coordinator.state.collections.active
        if not active:
            break
        console.print(_jobs_table(active))
        choice = IntPrompt.ask("Apply to which job? (0 to quit)", default=0)
        if choice <= 0:
            break
        if choice > len(active):
            console.print("[red]No job with that number[/red]")
            continue
        await _apply_to(coordinator, tracker, active[choice - 1])

    collections = coordinator.state.collections
    console.print(
        f"\nApplied: {len(collections.applied)}  Drafts: {len(collections.drafts)}"
    )
    return 0


@app.command()
def run(
    resume: Path = typer.Argument(..., help="Resume file (.pdf, .docx, .txt or .md)"),
    location: Optional[str] = typer.Option(
        None, "--location", "-l", help="Preferred city for the job search"
    ),
    config: Path = typer.Option(
        Path("config/system_params.json"), "--config", "-c", help="System parameters file"
    ),
):
    """Onboard a resume, search for jobs and draft applications."""
    try:
        CredentialManager().check_required_credentials()
    except ValueError as e:
        typer.secho(f"ERROR: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    params = _load_params(config)
    configure_logging(params.log_level, log_file=params.log_file)
    exit_code = asyncio.run(_run_session(resume, location, params))
    raise typer.Exit(exit_code)


@app.command()
def credentials():
    """Update the stored service API key."""
    CredentialManager().update_credentials()


def main() -> None:
    app()


if __name__ == "__main__":
    main()
