"""
Unit tests for the structured extraction client.
"""

import pytest

from applyflow.agents.structured_extraction import StructuredExtractionClient
from applyflow.models.config import RetryPolicy
from applyflow.models.profile import Profile
from applyflow.utils.errors import (
    ExtractionError,
    SchemaValidationError,
    ServiceAuthenticationError,
    TransientServiceError,
)


@pytest.fixture
def client(fake_service, sleep_recorder):
    return StructuredExtractionClient(
        fake_service,
        retry_policy=RetryPolicy(max_retries=2, max_jitter=0.0),
        sleep=sleep_recorder,
    )


class TestParse:
    def test_strips_code_fences(self, client):
        text = '```json\n[{"title": "SRE", "company": "Zoho", "url": "u", "salary": "s", "platform": "Naukri", "matchScore": 0.7}]\n```'

        result = client.parse(text, "job_list.json")

        assert result[0]["company"] == "Zoho"

    def test_empty_text_becomes_empty_array(self, client):
        assert client.parse("", "job_list.json") == []
        assert client.parse("   ", "job_list.json") == []

    def test_empty_text_for_object_schema_fails_on_required_fields(self, client):
        with pytest.raises(SchemaValidationError) as exc_info:
            client.parse("", "profile.json")

        assert any("name" in message for message in exc_info.value.errors)

    def test_invalid_json_raises_schema_validation_error(self, client):
        with pytest.raises(SchemaValidationError, match="not valid JSON"):
            client.parse("Here are your jobs: none found", "job_list.json")

    def test_missing_match_score_is_a_violation(self, client):
        text = '[{"title": "SRE", "company": "Zoho", "url": "u", "salary": "s", "platform": "Naukri"}]'

        with pytest.raises(SchemaValidationError, match="matchScore"):
            client.parse(text, "job_list.json")

    def test_no_response_raises_extraction_error(self, client):
        with pytest.raises(ExtractionError):
            client.parse(None, "job_list.json")


class TestExtract:
    @pytest.mark.asyncio
    async def test_text_content_and_schema_are_sent(self, client, fake_service, profile_payload):
        fake_service.queue(profile_payload)

        result = await client.extract(
            "Extract the profile", "profile.json", content="Asha Rao, Go developer"
        )

        assert result["name"] == "Asha Rao"
        request = fake_service.requests[0]
        assert [p.text for p in request.parts] == [
            "Extract the profile",
            "Asha Rao, Go developer",
        ]
        assert request.response_schema["title"] == "Profile"
        assert request.use_search is False

    @pytest.mark.asyncio
    async def test_binary_content_is_sent_with_media_type(
        self, client, fake_service, profile_payload
    ):
        fake_service.queue(profile_payload)

        await client.extract(
            "Extract", "profile.json", content=b"%PDF-1.7", media_type="application/pdf"
        )

        binary = fake_service.requests[0].parts[1]
        assert binary.kind == "binary"
        assert binary.media_type == "application/pdf"
        assert binary.data == b"%PDF-1.7"

    @pytest.mark.asyncio
    async def test_binary_content_requires_media_type(self, client):
        with pytest.raises(ValueError):
            await client.extract("Extract", "profile.json", content=b"%PDF")

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(
        self, client, fake_service, sleep_recorder, profile_payload
    ):
        fake_service.queue(
            TransientServiceError("429 rate limit"),
            TransientServiceError("429 rate limit"),
            profile_payload,
        )

        result = await client.extract("Extract", "profile.json", content="resume")

        assert result["headline"] == "Senior Backend Engineer"
        assert fake_service.call_count == 3
        assert sleep_recorder.delays == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_schema_violations_are_not_retried(self, client, fake_service):
        fake_service.queue({"name": "Only a name"})

        with pytest.raises(SchemaValidationError):
            await client.extract("Extract", "profile.json", content="resume")

        assert fake_service.call_count == 1

    @pytest.mark.asyncio
    async def test_non_transient_service_errors_propagate(self, client, fake_service):
        fake_service.queue(ServiceAuthenticationError("401 invalid x-api-key"))

        with pytest.raises(ServiceAuthenticationError):
            await client.extract("Extract", "profile.json", content="resume")

        assert fake_service.call_count == 1

    @pytest.mark.asyncio
    async def test_extract_model(self, client, fake_service, profile_payload):
        fake_service.queue(profile_payload)

        profile = await client.extract_model(
            Profile, "Extract", "profile.json", content="resume"
        )

        assert isinstance(profile, Profile)
        assert profile.preferred_location == "Bengaluru"
        assert profile.total_years_of_experience == 6
