"""
FastAPI dependencies
"""
from finledger.infrastructure.db.session import get_db as _get_db


# Re-export get_db so routers and test overrides share one key
get_db = _get_db
