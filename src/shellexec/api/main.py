"""
FastAPI application for the shell execution service.

This module builds the FastAPI application around a :class:`ShellService`.
The service is created when the application starts, so a configuration
error stops the server from starting, and it is shut down with the
application, which cancels requests still waiting on a shell.

Interactive requests share one shell, so they are serialized here before
they reach the executor.
"""

from __future__ import annotations

import logging
import threading
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Request

from ..config import Config
from ..errors import RequestCancelled, SessionClosed, SpawnError
from ..logs import setup_logging
from ..models import ExecRequest, ExecResponse, HealthResponse
from ..process import status_to_string
from ..service import ShellService


logger = setup_logging(logging.INFO)


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application.  ``config`` defaults to the environment."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        service_config = config if config is not None else Config.from_env()
        logger.info(
            "Loaded config: file_path=%s, directory=%s, user=%s, login=%s, interactive=%s",
            service_config.file_path,
            service_config.directory,
            service_config.user,
            service_config.login,
            service_config.interactive is not False,
        )
        app.state.service = ShellService(service_config)
        app.state.interactive_lock = threading.Lock()
        try:
            yield
        finally:
            app.state.service.shutdown()
            logger.info("Shell service stopped")

    app = FastAPI(title="Shell Execution Service", version="0.1.0", lifespan=lifespan)

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request) -> HealthResponse:
        """Return a simple health check response."""
        service: ShellService = request.app.state.service
        session_alive = None
        if service.interactive is not None:
            session_alive = service.interactive.alive
        return HealthResponse(mode=service.mode, session_alive=session_alive)

    @app.post("/exec", response_model=ExecResponse)
    def exec_command(req: ExecRequest, request: Request) -> ExecResponse:
        """Run shell input and reply according to the execution mode."""
        service: ShellService = request.app.state.service
        logger.info("[/exec] Received %s request (timeout=%s)", service.mode, req.timeout)
        try:
            if service.interactive is not None:
                with request.app.state.interactive_lock:
                    output = service.handle_request(req.command, req.timeout, req.info)
                return ExecResponse(
                    mode=service.mode,
                    response=output.decode("utf-8", errors="replace"),
                )
            result = service.run_isolated(req.command, req.timeout, req.info)
        except SpawnError as exc:
            logger.error("[/exec] %s", exc)
            raise HTTPException(status_code=502, detail=str(exc))
        except RequestCancelled as exc:
            logger.warning("[/exec] Request cancelled: %s", exc.reason)
            raise HTTPException(status_code=503, detail="Service is shutting down")
        except SessionClosed as exc:
            raise HTTPException(status_code=410, detail=str(exc))

        logger.info(
            "[/exec] Execution finished: status=%s, duration_ms=%s",
            result.status,
            result.duration_ms,
        )
        return ExecResponse(
            mode=service.mode,
            response=str(result.status),
            status=result.status,
            status_name=status_to_string(result.status),
            output=result.output.decode("utf-8", errors="replace"),
            duration_ms=result.duration_ms,
            timed_out=result.timed_out,
        )

    return app


app = create_app()
