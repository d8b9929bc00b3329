"""Serve the API with Uvicorn on ``PORT``."""

from __future__ import annotations

import os

import uvicorn


def main() -> None:
    port = int(os.getenv("PORT", "8080"))
    uvicorn.run("shellexec.api.main:app", host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
