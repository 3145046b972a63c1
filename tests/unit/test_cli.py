"""
Unit tests for the command line.

The coordinator is built around the scripted fake service and rich prompts
are patched, so whole sessions run without a terminal or network.
"""

import json

import pytest
from typer.testing import CliRunner

from applyflow.cli import app
from applyflow.coordinator import WorkflowCoordinator
from applyflow.models.service import GenerationResponse

runner = CliRunner()


@pytest.fixture(autouse=True)
def logging_setup(mocker):
    return mocker.patch("applyflow.cli.configure_logging")


@pytest.fixture
def credentials(mocker):
    manager = mocker.patch("applyflow.cli.CredentialManager")
    manager.return_value.check_required_credentials.return_value = {
        "ANTHROPIC_API_KEY": "sk-ant-test"
    }
    return manager


@pytest.fixture
def session(mocker, fake_service, sleep_recorder, credentials):
    """Route the CLI's coordinator to the fake service."""
    mocker.patch(
        "applyflow.cli.WorkflowCoordinator",
        side_effect=lambda system_params: WorkflowCoordinator(
            service=fake_service, system_params=system_params, sleep=sleep_recorder
        ),
    )
    return fake_service


@pytest.fixture
def resume(tmp_path):
    path = tmp_path / "asha.txt"
    path.write_text("Asha Rao, Go engineer, 6 years", encoding="utf-8")
    return path


def invoke(resume, tmp_path):
    return runner.invoke(
        app, ["run", str(resume), "--config", str(tmp_path / "missing.json")]
    )


def test_apply_and_submit(
    mocker, session, resume, tmp_path, profile_payload, jobs_payload, package_payload
):
    session.queue(profile_payload, GenerationResponse(text="listings"), jobs_payload, package_payload)
    mocker.patch("applyflow.cli.IntPrompt.ask", side_effect=[1, 0])
    mocker.patch("applyflow.cli.Prompt.ask", return_value="Yes")
    mocker.patch("applyflow.cli.Confirm.ask", return_value=True)

    result = invoke(resume, tmp_path)

    assert result.exit_code == 0, result.output
    assert "Matching jobs" in result.output
    assert "Submitted to LinkedIn" in result.output
    assert "Applied: 1  Drafts: 0" in result.output


def test_declining_submission_keeps_a_draft(
    mocker, session, resume, tmp_path, profile_payload, jobs_payload, package_payload
):
    session.queue(profile_payload, GenerationResponse(text="listings"), jobs_payload, package_payload)
    mocker.patch("applyflow.cli.IntPrompt.ask", side_effect=[2, 0])
    mocker.patch("applyflow.cli.Prompt.ask", return_value="")
    mocker.patch("applyflow.cli.Confirm.ask", return_value=False)

    result = invoke(resume, tmp_path)

    assert result.exit_code == 0, result.output
    assert "Saved draft" in result.output
    assert "Applied: 0  Drafts: 1" in result.output


def test_blank_answer_blocks_submission(
    mocker, session, resume, tmp_path, profile_payload, jobs_payload, package_payload
):
    session.queue(profile_payload, GenerationResponse(text="listings"), jobs_payload, package_payload)
    mocker.patch("applyflow.cli.IntPrompt.ask", side_effect=[1, 0])
    mocker.patch("applyflow.cli.Prompt.ask", return_value="  ")
    mocker.patch("applyflow.cli.Confirm.ask", return_value=True)

    result = invoke(resume, tmp_path)

    assert result.exit_code == 0, result.output
    assert "Answer the required questions" in result.output
    assert "Applied: 0  Drafts: 1" in result.output


def test_unsupported_resume(session, tmp_path):
    image = tmp_path / "resume.png"
    image.write_bytes(b"\x89PNG")

    result = invoke(image, tmp_path)

    assert result.exit_code == 1
    assert "Unsupported file type" in result.output
    assert session.call_count == 0


def test_no_jobs_found(mocker, session, resume, tmp_path, profile_payload):
    session.queue(profile_payload, GenerationResponse(text="nothing"), [])
    prompt = mocker.patch("applyflow.cli.IntPrompt.ask")

    result = invoke(resume, tmp_path)

    assert result.exit_code == 0
    assert "No jobs found" in result.output
    prompt.assert_not_called()


def test_missing_api_key(credentials, resume, tmp_path):
    credentials.return_value.check_required_credentials.side_effect = ValueError(
        "Required credential not provided: ANTHROPIC_API_KEY"
    )

    result = invoke(resume, tmp_path)

    assert result.exit_code == 1


def test_credentials_command(credentials):
    result = runner.invoke(app, ["credentials"])

    assert result.exit_code == 0
    credentials.return_value.update_credentials.assert_called_once()


def test_logging_follows_config_file(
    mocker, session, resume, tmp_path, logging_setup, profile_payload
):
    config = tmp_path / "system_params.json"
    config.write_text(
        json.dumps({"log_level": "debug", "log_file": str(tmp_path / "run.log")}),
        encoding="utf-8",
    )
    session.queue(profile_payload, GenerationResponse(text="nothing"), [])

    result = runner.invoke(app, ["run", str(resume), "--config", str(config)])

    assert result.exit_code == 0, result.output
    logging_setup.assert_called_once_with("DEBUG", log_file=str(tmp_path / "run.log"))


def test_logging_untouched_without_credentials(credentials, logging_setup, resume, tmp_path):
    credentials.return_value.check_required_credentials.side_effect = ValueError("no key")

    invoke(resume, tmp_path)

    # Credentials are checked before any settings are applied
    logging_setup.assert_not_called()
