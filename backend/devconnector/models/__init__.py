# SQLAlchemy models - import in main.py so Base.metadata has all tables
from devconnector.models.user import User
from devconnector.models.profile import Profile

__all__ = [
    "User",
    "Profile",
]
