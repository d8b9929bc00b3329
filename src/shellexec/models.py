"""Pydantic models for request and response bodies.

These models express the structure of the HTTP API.  The same request
body serves both execution modes; the response fields that only make
sense for isolated shells are left unset in interactive mode.
"""

from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, Field


class ExecRequest(BaseModel):
    """Request body for running shell input."""

    command: str = Field(..., description="Shell input. A command line in isolated mode.")
    timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Timeout in seconds. Uses the service default if omitted.",
    )
    info: Dict[str, str] = Field(
        default_factory=dict,
        description="Request metadata, logged as '# key: value' lines.",
    )


class ExecResponse(BaseModel):
    """Response body for shell execution."""

    mode: str = Field(..., description="'isolated' or 'interactive'.")
    response: str = Field(
        ...,
        description="Exit status as a decimal string (isolated) or shell output (interactive).",
    )
    status: Optional[int] = None
    status_name: Optional[str] = None
    output: Optional[str] = None
    duration_ms: Optional[int] = None
    timed_out: Optional[bool] = None


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    mode: str
    session_alive: Optional[bool] = None
