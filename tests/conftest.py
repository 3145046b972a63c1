"""
Shared test fixtures.

FakeService is a scripted GenerativeService: every generate() call consumes
the next queued outcome (a payload, response text, GenerationResponse or an
exception to raise) and records the request it was given.
"""

import json
from typing import Any

import pytest

from applyflow.models.config import RetryPolicy, SystemParams
from applyflow.models.service import GenerationRequest, GenerationResponse


class FakeService:
    """Scripted stand-in for the generative service."""

    def __init__(self, *outcomes: Any):
        self.outcomes: list[Any] = list(outcomes)
        self.requests: list[GenerationRequest] = []

    def queue(self, *outcomes: Any) -> None:
        self.outcomes.extend(outcomes)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    async def generate(self, request: GenerationRequest) -> GenerationResponse:
        self.requests.append(request)
        if not self.outcomes:
            raise AssertionError("Unexpected service call: no outcome queued")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if isinstance(outcome, GenerationResponse):
            return outcome
        if isinstance(outcome, str):
            return GenerationResponse(text=outcome)
        return GenerationResponse(text=json.dumps(outcome))


class SleepRecorder:
    """Awaitable sleep that records requested delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


@pytest.fixture
def fake_service() -> FakeService:
    return FakeService()


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def retry_policy() -> RetryPolicy:
    return RetryPolicy(max_retries=3, base_delay=2.0, multiplier=2.0, max_jitter=0.5)


@pytest.fixture
def system_params(retry_policy: RetryPolicy) -> SystemParams:
    return SystemParams(retry=retry_policy)


@pytest.fixture
def profile_payload() -> dict[str, Any]:
    return {
        "name": "Asha Rao",
        "headline": "Senior Backend Engineer",
        "summary": "Backend engineer building distributed systems in Go.",
        "skills": ["Go", "Distributed Systems"],
        "experience": [
            {
                "company": "Flipkart",
                "role": "SDE-2",
                "duration": "2019-2024",
                "description": "Built order routing services.",
            }
        ],
        "totalYearsOfExperience": 6,
        "preferredCity": "Bengaluru",
        "email": "asha@example.com",
    }


@pytest.fixture
def jobs_payload() -> list[dict[str, Any]]:
    return [
        {
            "id": "job-go-1",
            "title": "Staff Go Engineer",
            "company": "Razorpay",
            "location": "Bengaluru",
            "platform": "LinkedIn",
            "description": "Payments infrastructure in Go.",
            "url": "https://www.linkedin.com/jobs/view/111",
            "matchScore": 0.92,
            "matchReason": "Strong Go and distributed systems overlap",
            "requirements": ["6+ years Go"],
            "salary": "INR 45-60 LPA",
        },
        {
            "id": "job-dist-2",
            "title": "Backend Engineer, Distributed Systems",
            "company": "Swiggy",
            "location": "Bengaluru",
            "platform": "Naukri",
            "description": "Dispatch platform.",
            "url": "https://www.naukri.com/job-listings-222",
            "matchScore": 60,
            "salary": "INR 30-40 LPA",
        },
    ]


@pytest.fixture
def package_payload() -> dict[str, Any]:
    return {
        "jobId": "job-go-1",
        "coverLetter": "Dear Hiring Team, ... Asha Rao",
        "resumeTailoringTips": ["Lead with payments latency work"],
        "suggestedAnswers": {
            "why_us": "Razorpay's scale",
            "relevant_experience": "Order routing at Flipkart",
        },
        "requiredAdditionalInfo": ["Willing to relocate?"],
    }
