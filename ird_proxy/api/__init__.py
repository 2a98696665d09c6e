"""FastAPI HTTP layer package.

Public re-export so callers can write::

    from ird_proxy.api import app

    uvicorn ird_proxy.api:app --reload
"""

from ird_proxy.api.app import app

__all__ = ["app"]
