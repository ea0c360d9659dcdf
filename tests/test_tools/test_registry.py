"""Tests for the tool registry and its dispatch pipeline."""

import json
import logging

import pytest
from pydantic import SecretStr

from fathom_mcp.credentials import (
    ExplicitCredentialResolver,
    RequestScopedCredentialResolver,
    SessionCredentialResolver,
    StaticCredentialResolver,
)
from fathom_mcp.models.auth import Session, SessionProps, ToolCallContext
from fathom_mcp.tools.registry import FathomToolRegistry, format_schema_errors

API_KEY = "registry-test-key"


def result_text(result) -> str:
    assert len(result.content) == 1
    return result.content[0].text


@pytest.fixture
def static_registry(fathom_client) -> FathomToolRegistry:
    return FathomToolRegistry(fathom_client, StaticCredentialResolver(API_KEY))


@pytest.fixture
def explicit_registry(fathom_client) -> FathomToolRegistry:
    return FathomToolRegistry(fathom_client, ExplicitCredentialResolver())


@pytest.mark.unit
class TestToolDeclarations:
    """Tests for list_tools."""

    def test_three_tools(self, static_registry) -> None:
        names = [tool.name for tool in static_registry.list_tools()]
        assert names == ["list_meetings", "get_transcript", "get_meeting_details"]

    def test_schema_without_api_key(self, static_registry) -> None:
        tools = {tool.name: tool for tool in static_registry.list_tools()}

        schema = tools["get_transcript"].inputSchema
        assert schema["required"] == ["meeting_id"]
        assert "api_key" not in schema["properties"]

    def test_explicit_mode_requires_api_key(self, explicit_registry) -> None:
        for tool in explicit_registry.list_tools():
            assert "api_key" in tool.inputSchema["properties"]
            assert "api_key" in tool.inputSchema["required"]

    def test_list_meetings_schema(self, static_registry) -> None:
        tools = {tool.name: tool for tool in static_registry.list_tools()}
        properties = tools["list_meetings"].inputSchema["properties"]

        assert set(properties) == {
            "created_after",
            "created_before",
            "include_transcript",
            "limit",
        }
        assert properties["limit"]["default"] == 20


@pytest.mark.unit
class TestEndToEnd:
    """Full tool calls against the fake upstream."""

    async def test_list_meetings_limit(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings", [{"id": f"m{i}", "title": f"Meeting {i}"} for i in range(5)])

        result = await static_registry.call("list_meetings", {"limit": 2})

        assert not result.isError
        payload = json.loads(result_text(result))
        assert payload["count"] == 2
        assert [m["id"] for m in payload["meetings"]] == ["m0", "m1"]
        assert all(m["title"] for m in payload["meetings"])

    async def test_list_meetings_untitled_records(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings", {"items": [{"id": "m1"}]})

        payload = json.loads(result_text(await static_registry.call("list_meetings", {})))

        assert payload["meetings"][0]["title"] == "Untitled meeting"

    async def test_list_meetings_forwards_filters(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings", [])

        await static_registry.call(
            "list_meetings",
            {"created_after": "2026-02-20T00:00:00Z", "include_transcript": False},
        )

        params = fake_api.requests[0].url.params
        assert params["created_after"] == "2026-02-20T00:00:00Z"
        assert "created_before" not in params
        assert "include_transcript" not in params

    async def test_list_meetings_include_transcript(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings", [{"id": "m1", "transcript": "hello"}])

        result = await static_registry.call("list_meetings", {"include_transcript": True})

        assert fake_api.requests[0].url.params["include_transcript"] == "true"
        assert json.loads(result_text(result))["meetings"][0]["transcript"] == "hello"
        assert len(fake_api.requests) == 1

    async def test_get_transcript_fallback(self, fake_api, static_registry) -> None:
        fake_api.route("/recordings/m1/transcript", (404, "not found"))
        fake_api.route("/meetings/m1", {"transcript": [{"speaker": "A", "text": "hi"}]})

        result = await static_registry.call("get_transcript", {"meeting_id": "m1"})

        assert not result.isError
        assert result_text(result) == "[A]: hi"

    async def test_get_meeting_details_without_credential(self, fake_api, fathom_client) -> None:
        registry = FathomToolRegistry(fathom_client, SessionCredentialResolver())

        result = await registry.call("get_meeting_details", {"meeting_id": "m1"})

        assert result.isError
        assert "Authentication required" in result_text(result)
        assert fake_api.requests == []

    async def test_get_meeting_details_passthrough(self, fake_api, static_registry) -> None:
        record = {"id": "m1", "summary": "Notes", "action_items": [{"text": "Ship it"}]}
        fake_api.route("/meetings/m1", record)

        result = await static_registry.call("get_meeting_details", {"meeting_id": "m1"})

        assert json.loads(result_text(result)) == record


@pytest.mark.unit
class TestCallPipeline:
    """Tests for validation, credential and error handling order."""

    async def test_unknown_tool(self, fake_api, static_registry) -> None:
        result = await static_registry.call("delete_everything", {})

        assert result.isError
        assert result_text(result) == "Unknown tool: delete_everything"

    async def test_schema_violation_before_upstream(self, fake_api, static_registry) -> None:
        result = await static_registry.call("get_transcript", {})

        assert result.isError
        assert "meeting_id" in result_text(result)
        assert fake_api.requests == []

    async def test_invalid_date_rejected(self, fake_api, static_registry) -> None:
        result = await static_registry.call("list_meetings", {"created_after": "last tuesday"})

        assert result.isError
        assert "ISO-8601" in result_text(result)
        assert fake_api.requests == []

    async def test_limit_must_be_positive(self, fake_api, static_registry) -> None:
        result = await static_registry.call("list_meetings", {"limit": 0})

        assert result.isError
        assert fake_api.requests == []

    async def test_schema_checked_before_credential(self, fake_api, explicit_registry) -> None:
        result = await explicit_registry.call("get_meeting_details", {"api_key": "k"})

        assert result.isError
        assert "Invalid arguments" in result_text(result)

    async def test_explicit_blank_key(self, fake_api, explicit_registry) -> None:
        result = await explicit_registry.call(
            "get_meeting_details", {"meeting_id": "m1", "api_key": "  "}
        )

        assert result.isError
        assert result_text(result) == (
            "Authentication required: No Fathom API key provided. "
            "Please pass your api_key parameter."
        )
        assert fake_api.requests == []

    async def test_explicit_key_used_upstream(self, fake_api, explicit_registry) -> None:
        fake_api.route("/meetings/m1", {"id": "m1"})

        result = await explicit_registry.call(
            "get_meeting_details", {"meeting_id": "m1", "api_key": "caller-key"}
        )

        assert not result.isError
        assert fake_api.requests[0].headers["X-Api-Key"] == "caller-key"

    async def test_session_credential_used_upstream(self, fake_api, fathom_client) -> None:
        fake_api.route("/meetings/m1", {"id": "m1"})
        registry = FathomToolRegistry(fathom_client, SessionCredentialResolver())
        session = Session(
            token="tok",
            client_id="client",
            user_id="user",
            props=SessionProps(api_key=SecretStr("session-key")),
        )
        context = ToolCallContext(arguments={"meeting_id": "m1"}, session=session)

        result = await registry.call("get_meeting_details", {"meeting_id": "m1"}, context)

        assert not result.isError
        assert fake_api.requests[0].headers["X-Api-Key"] == "session-key"

    async def test_request_scoped_credential(self, fake_api, fathom_client) -> None:
        fake_api.route("/meetings/m1", {"id": "m1"})
        registry = FathomToolRegistry(fathom_client, RequestScopedCredentialResolver())
        context = ToolCallContext(
            arguments={"meeting_id": "m1"}, request_credential=SecretStr("request-key")
        )

        await registry.call("get_meeting_details", {"meeting_id": "m1"}, context)

        assert fake_api.requests[0].headers["X-Api-Key"] == "request-key"

    async def test_upstream_error_prefixed(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings/m1", (500, "internal"))

        result = await static_registry.call("get_meeting_details", {"meeting_id": "m1"})

        assert result.isError
        assert result_text(result) == "Error fetching meeting details: Fathom API 500: internal"

    async def test_list_error_prefix(self, fake_api, static_registry) -> None:
        fake_api.route("/meetings", (401, "bad key"))

        result = await static_registry.call("list_meetings", {})

        assert result_text(result) == "Error listing meetings: Fathom API 401: bad key"

    async def test_transcript_error_prefix(self, fake_api, static_registry) -> None:
        result = await static_registry.call("get_transcript", {"meeting_id": "gone"})

        assert result.isError
        assert result_text(result).startswith("Error fetching transcript: Fathom API 404")
        assert len(fake_api.requests) == 2

    async def test_unexpected_exception_converted(self, static_registry, monkeypatch) -> None:
        async def explode(*args, **kwargs):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(static_registry.client, "get_meeting", explode)

        result = await static_registry.call("get_meeting_details", {"meeting_id": "m1"})

        assert result.isError
        assert result_text(result) == "Error fetching meeting details: kaboom"

    async def test_api_key_not_logged(
        self, fake_api, explicit_registry, caplog, monkeypatch
    ) -> None:
        fake_api.route("/meetings/m1", {"id": "m1"})
        monkeypatch.setattr(logging.getLogger("fathom_mcp"), "propagate", True)
        caplog.set_level("DEBUG", logger="fathom_mcp")

        await explicit_registry.call(
            "get_meeting_details", {"meeting_id": "m1", "api_key": "do-not-log-me"}
        )

        assert caplog.records
        for record in caplog.records:
            assert "do-not-log-me" not in record.getMessage()
            assert "do-not-log-me" not in str(getattr(record, "extra_fields", ""))


@pytest.mark.unit
def test_format_schema_errors() -> None:
    from pydantic import ValidationError

    from fathom_mcp.models.tools import GetTranscriptInput

    with pytest.raises(ValidationError) as exc_info:
        GetTranscriptInput.model_validate({})

    assert format_schema_errors(exc_info.value) == ["meeting_id: Field required"]
