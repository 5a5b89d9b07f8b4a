from .history import HISTORY_ACTIONS, History
from .room import Room
from .user import User

__all__ = ["HISTORY_ACTIONS", "History", "Room", "User"]
