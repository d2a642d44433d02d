"""FastAPI app exposing sessions, prompts and the log tail.

Prompts are RecordingPrompt instances held in a PromptRegistry; UI events posted
here are published into the QueueEventSource the engine subscribes to.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from draftdesk.adapters.render import PromptRegistry
from draftdesk.adapters.transport import QueueEventSource
from draftdesk.core import __version__
from draftdesk.core.engine import SessionEngine
from draftdesk.core.errors import DraftDeskError, UnknownTopicError
from draftdesk.core.log_bus import get_log_bus
from draftdesk.core.logging import get_logger
from draftdesk.core.ui_event import UIEvent

_logger = get_logger(__name__)


def _engine(request: Request) -> SessionEngine:
    return request.app.state.engine


def _prompts(request: Request) -> PromptRegistry:
    return request.app.state.prompts


async def _json_object(request: Request) -> dict[str, Any]:
    try:
        body = await request.json()
    except Exception as e:
        raise HTTPException(status_code=400, detail="invalid json") from e
    if not isinstance(body, dict):
        raise HTTPException(status_code=400, detail="expected a json object")
    return body


def mount_health(app: FastAPI) -> None:
    @app.get("/api/health")
    async def health(request: Request) -> dict[str, Any]:
        return {
            "status": "ok",
            "version": __version__,
            "uptime_seconds": round(time.monotonic() - request.app.state.started, 3),
            "active_sessions": len(_engine(request).active_sessions()),
            "topics": _engine(request).topics(),
        }


def mount_sessions(app: FastAPI) -> None:
    @app.get("/api/sessions")
    async def list_sessions(request: Request) -> dict[str, Any]:
        return {"items": _engine(request).active_sessions()}

    @app.post("/api/sessions")
    async def start_session(request: Request) -> dict[str, Any]:
        body = await _json_object(request)
        topic = body.get("topic")
        record_id = body.get("record_id")
        actor_id = body.get("actor_id")
        if not all(isinstance(v, str) and v for v in (topic, record_id, actor_id)):
            raise HTTPException(status_code=400, detail="topic, record_id, actor_id required")

        engine = _engine(request)
        try:
            spec = engine.topic(topic)
        except UnknownTopicError as e:
            raise HTTPException(status_code=404, detail=e.message) from e

        record = await engine.store.get(record_id)
        if record is None:
            raise HTTPException(status_code=404, detail="record not found")

        prompt = _prompts(request).new(title=spec.title)
        task = asyncio.create_task(
            engine.start_session(topic, record, actor_id, prompt, record_id=record_id)
        )
        tasks: set[asyncio.Task[Any]] = request.app.state.tasks
        tasks.add(task)
        task.add_done_callback(_session_done(tasks, _prompts(request), prompt.prompt_id))
        return {"prompt_id": prompt.prompt_id, "topic": topic}


def _session_done(tasks: set[asyncio.Task[Any]], prompts: PromptRegistry, prompt_id: str):
    def _done(task: asyncio.Task[Any]) -> None:
        tasks.discard(task)
        prompts.unregister(prompt_id)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _logger.error(f"Session on {prompt_id} crashed: {type(exc).__name__}: {exc}")

    return _done


def mount_prompts(app: FastAPI) -> None:
    @app.get("/api/prompts/{prompt_id}")
    async def get_prompt(prompt_id: str, request: Request) -> dict[str, Any]:
        prompt = _prompts(request).get(prompt_id)
        if prompt is None:
            raise HTTPException(status_code=404, detail="unknown prompt")
        return prompt.to_dict()

    @app.post("/api/prompts/{prompt_id}/events")
    async def post_event(prompt_id: str, request: Request) -> dict[str, Any]:
        if _prompts(request).get(prompt_id) is None:
            raise HTTPException(status_code=404, detail="unknown prompt")
        body = await _json_object(request)
        try:
            event = UIEvent.from_dict(body)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e)) from e

        events: QueueEventSource = request.app.state.events
        delivered = events.publish(prompt_id, event)
        return {"delivered": delivered, "timestamp": event.timestamp}


def mount_logs(app: FastAPI) -> None:
    @app.get("/api/logs")
    async def tail_logs(limit: int = 50, level: str | None = None) -> dict[str, Any]:
        records = get_log_bus().tail(limit=limit, level_name=level)
        return {"items": [r.to_dict() for r in records]}


def create_app(
    engine: SessionEngine,
    events: QueueEventSource,
    prompts: PromptRegistry | None = None,
) -> FastAPI:
    app = FastAPI(
        title="DraftDesk API",
        description="Draft/commit editing sessions over HTTP",
        version=__version__,
    )
    app.state.engine = engine
    app.state.events = events
    app.state.prompts = prompts or PromptRegistry()
    app.state.tasks = set()
    app.state.started = time.monotonic()

    mount_health(app)
    mount_sessions(app)
    mount_prompts(app)
    mount_logs(app)

    @app.exception_handler(DraftDeskError)
    async def _draftdesk_error(request: Request, exc: DraftDeskError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"error": exc.message, "suggestion": exc.suggestion},
        )

    return app
