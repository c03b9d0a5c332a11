from .config import settings
from .database import build_engine, get_db, init_db

__all__ = ["settings", "build_engine", "get_db", "init_db"]
