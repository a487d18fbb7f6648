from models.user import User
from models.progress import Progress

__all__ = [
    "User",
    "Progress",
]
