"""
Expose the FastAPI application instance.

Importing this module will create a FastAPI application and register
all routes.  The shell service itself is only started by the
application's lifespan, so importing never spawns a shell.  Run it with
Uvicorn using the ``-m`` invocation:

```sh
python -m shellexec.api
```
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
