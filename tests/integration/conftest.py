"""
Integration Test Configuration

Tests marked integration call the live generative service. They run only
when APPLYFLOW_LIVE_TESTS=1 is set (and the Claude Code CLI is signed in or
ANTHROPIC_API_KEY is available). When running in CI (CI=true), slow tests are
skipped as well.
"""

import os

import pytest


@pytest.fixture
def is_ci_environment() -> bool:
    """
    Detect if tests are running in CI environment.

    Returns:
        True if CI environment variable is set to 'true'
    """
    return os.getenv("CI", "").lower() == "true"


@pytest.fixture
def live_tests_enabled() -> bool:
    return os.getenv("APPLYFLOW_LIVE_TESTS", "") == "1"


@pytest.fixture(autouse=True)
def skip_unavailable_tests(request, is_ci_environment, live_tests_enabled):
    """
    Skip live-service tests unless enabled, and slow tests in CI.

    Args:
        request: pytest request fixture
        is_ci_environment: Fixture indicating CI environment
        live_tests_enabled: Fixture indicating APPLYFLOW_LIVE_TESTS=1
    """
    if request.node.get_closest_marker("integration") and not live_tests_enabled:
        pytest.skip("Set APPLYFLOW_LIVE_TESTS=1 to call the live service")
    if is_ci_environment and request.node.get_closest_marker("slow"):
        pytest.skip("Skipping slow test in CI environment")
