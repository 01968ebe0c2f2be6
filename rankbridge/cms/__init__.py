"""Content store package.

Public re-exports so callers can write::

    from rankbridge.cms import get_connection, init_db, SqliteCms
"""

from rankbridge.cms.store import get_connection, init_db
from rankbridge.cms.site import SiteUrls, SqliteCms

__all__ = ["get_connection", "init_db", "SiteUrls", "SqliteCms"]
