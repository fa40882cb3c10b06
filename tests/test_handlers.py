"""Tests for the built-in task handlers."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import httpx
import pytest

from litestar_taskflow.exceptions import TaskExecutionError
from litestar_taskflow.handlers import (
    BaseTaskHandler,
    DataTransformationHandler,
    DocumentProcessingHandler,
    ExternalApiHandler,
    FunctionHandler,
    HttpxApiCaller,
    NotificationHandler,
)
from litestar_taskflow.handlers.base import project

DATA: dict[str, Any] = {
    "document": {"id": "doc_1", "owner": "ada@example.com", "title": "Q3 invoice"},
    "reviewers": ["grace@example.com", "linus@example.com"],
    "api": {"token": "secret", "base": "https://scoring.example.com"},
}


class RecordingSender:
    def __init__(self) -> None:
        self.sent: list[tuple[str | None, list[Any], dict[str, Any]]] = []

    async def send(self, template_id: str | None, recipients: list[Any], data: Any) -> None:
        self.sent.append((template_id, recipients, dict(data)))


class RecordingProcessor:
    def __init__(self) -> None:
        self.processed: list[tuple[Any, dict[str, Any]]] = []

    async def process(self, document: Any, options: Any) -> dict[str, Any]:
        self.processed.append((document, dict(options)))
        return {"pages": 3}


def mock_client(handler: Any) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.unit
def test_project() -> None:
    """Test payload projection drops unresolved expressions."""
    assert project({"owner": "$document.owner", "missing": "$nope", "fixed": 1}, DATA) == {
        "owner": "ada@example.com",
        "fixed": 1,
    }
    assert project(None, {"a": 1}) == {"a": 1}


@pytest.mark.unit
@pytest.mark.asyncio
class TestBaseHandlers:
    """Tests for the handler base classes."""

    async def test_parse_config_ignores_unknown_keys(self) -> None:
        @dataclass
        class Config:
            name: str

        class Greeter(BaseTaskHandler[Config]):
            task_type = "greet"
            config_class = Config

            async def execute(self, config: Config, data: Any) -> str:
                return f"hello {config.name}"

        assert await Greeter().handle({"name": "Ada", "extra": True}, {}) == "hello Ada"

    async def test_missing_required_config(self) -> None:
        """Test a config missing required fields is a task error."""
        with pytest.raises(TaskExecutionError, match="Invalid external_api task config"):
            await ExternalApiHandler(caller=HttpxApiCaller()).handle({"method": "POST"}, DATA)

    async def test_function_handler_sync_and_async(self) -> None:
        async def shout(config: Any, data: Any) -> str:
            return data["word"].upper()

        assert await FunctionHandler("shout", shout).handle({}, {"word": "hi"}) == "HI"
        assert await FunctionHandler("count", lambda c, d: len(d)).handle({}, {"word": "hi"}) == 1
        assert "shout" in repr(FunctionHandler("shout", shout))


@pytest.mark.unit
@pytest.mark.asyncio
class TestDocumentProcessingHandler:
    """Tests for DocumentProcessingHandler."""

    async def test_without_processor(self) -> None:
        result = await DocumentProcessingHandler().handle({"document": "$document"}, DATA)
        assert result == {"processed": True, "status": "success", "document": DATA["document"]}

    async def test_with_processor(self) -> None:
        processor = RecordingProcessor()

        result = await DocumentProcessingHandler(processor).handle(
            {"document": "$document.id", "options": {"ocr": True}}, DATA
        )

        assert result == {"pages": 3}
        assert processor.processed == [("doc_1", {"ocr": True})]

    async def test_unresolved_document(self) -> None:
        with pytest.raises(TaskExecutionError, match="does not resolve"):
            await DocumentProcessingHandler().handle({"document": "$attachment"}, DATA)


@pytest.mark.unit
@pytest.mark.asyncio
class TestNotificationHandler:
    """Tests for NotificationHandler."""

    async def test_resolves_recipients_and_payload(self) -> None:
        """Test reference recipients are resolved and the data mapping projected."""
        sender = RecordingSender()

        result = await NotificationHandler(sender).handle(
            {
                "template_id": "review_done",
                "recipients": ["$document.owner", "$reviewers", "audit@example.com"],
                "data_mapping": {"title": "$document.title"},
            },
            DATA,
        )

        assert result == {"sent": True, "recipients": 3}
        assert sender.sent == [
            (
                "review_done",
                ["ada@example.com", ["grace@example.com", "linus@example.com"], "audit@example.com"],
                {"title": "Q3 invoice"},
            )
        ]

    async def test_whole_data_without_mapping(self) -> None:
        sender = RecordingSender()
        await NotificationHandler(sender).handle({"template_id": "t", "recipients": []}, DATA)
        assert sender.sent[0][2] == DATA

    async def test_default_sender_logs(self) -> None:
        result = await NotificationHandler().handle({"recipients": ["$document.owner"]}, DATA)
        assert result == {"sent": True, "recipients": 1}


@pytest.mark.unit
@pytest.mark.asyncio
class TestExternalApiHandler:
    """Tests for ExternalApiHandler and HttpxApiCaller."""

    async def test_request_built_from_data(self) -> None:
        """Test endpoint templates, header references and the body mapping."""
        seen: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"score": 91})

        async with mock_client(respond) as client:
            result = await ExternalApiHandler(HttpxApiCaller(client)).handle(
                {
                    "endpoint": "${api.base}/documents/${document.id}/score",
                    "method": "post",
                    "headers": {"Authorization": "Bearer ${api.token}", "X-Owner": "$document.owner"},
                    "body_mapping": {"title": "$document.title", "missing": "$nope"},
                },
                DATA,
            )

        assert result["status_code"] == 200
        assert result["body"] == {"score": 91}
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://scoring.example.com/documents/doc_1/score"
        assert request.headers["authorization"] == "Bearer secret"
        assert request.headers["x-owner"] == "ada@example.com"
        assert json.loads(request.content) == {"title": "Q3 invoice"}

    async def test_reference_body(self) -> None:
        bodies: list[Any] = []

        def respond(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(201, text="created")

        async with mock_client(respond) as client:
            result = await ExternalApiHandler(HttpxApiCaller(client)).handle(
                {"endpoint": "https://api.example.com/docs", "method": "PUT", "body": "$document"}, DATA
            )

        assert bodies == [DATA["document"]]
        assert result["body"] == "created"

    async def test_error_status_raises(self) -> None:
        """Test HTTP error statuses become task execution errors."""

        def respond(request: httpx.Request) -> httpx.Response:
            return httpx.Response(503, json={"detail": "down"})

        async with mock_client(respond) as client:
            with pytest.raises(TaskExecutionError, match="GET https://api.example.com/health returned 503") as exc_info:
                await ExternalApiHandler(HttpxApiCaller(client)).handle(
                    {"endpoint": "https://api.example.com/health"}, DATA
                )

        assert isinstance(exc_info.value.cause, httpx.HTTPStatusError)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_data_transformation_handler() -> None:
    result = await DataTransformationHandler().handle(
        {
            "transformations": [
                {"type": "format", "source": "$document.title", "target": "label", "format": "string"},
                {"type": "map", "source": "$reviewers", "target": "emails", "mapping": {"email": "$"}},
            ]
        },
        DATA,
    )

    assert result == {
        "label": "Q3 invoice",
        "emails": [{"email": "grace@example.com"}, {"email": "linus@example.com"}],
    }
