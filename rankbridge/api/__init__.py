"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from rankbridge.api import app

    uvicorn rankbridge.api:app
"""

from rankbridge.api.app import app, create_app

__all__ = ["app", "create_app"]
