"""Local accounts."""

from .manager import AuthenticationManager
from .models import User, UserCredentials

__all__ = ["AuthenticationManager", "User", "UserCredentials"]
