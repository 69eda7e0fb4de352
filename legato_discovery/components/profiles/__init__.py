"""User profile inference."""

from .user_profile_builder import UserProfileBuilder, find_user

__all__ = ["UserProfileBuilder", "find_user"]
