"""
FastAPI binding for the gateway.

Endpoints:
  POST /          - submit a report (form fields: from, key, subject, via, report)
  POST /report    - same as POST /
  GET  /health    - liveness probe
"""

from __future__ import annotations

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from .config import VERSION
from .gateway import HTTPGateway


def create_app(gateway: Optional[HTTPGateway] = None) -> FastAPI:
    app = FastAPI(
        title="Report Gateway",
        description="Relay test reports received over HTTP to the report collector by mail",
        version=VERSION,
    )
    app.state.gateway = gateway if gateway is not None else HTTPGateway()

    @app.post("/", response_class=PlainTextResponse)
    @app.post("/report", response_class=PlainTextResponse)
    async def submit_report(request: Request) -> PlainTextResponse:
        form = await request.form()
        fields = {name: form.getlist(name) for name in form.keys()}
        response = await run_in_threadpool(app.state.gateway.handle, fields)
        return PlainTextResponse(
            content=response.body,
            status_code=response.status,
            media_type=response.content_type,
        )

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app
