"""Grant resolution over the workflow folder hierarchy."""

from .resolver import GrantResolver

__all__ = ["GrantResolver"]
