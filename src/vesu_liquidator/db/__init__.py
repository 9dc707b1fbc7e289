from .storage import Storage
from .position_db import SqlitePositionStorage

__all__ = ["Storage", "SqlitePositionStorage"]
