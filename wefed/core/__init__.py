"""Core module for the wefed application."""

from .collections import IdSet, MemberRoster
from .types import FirestoreDocument

__all__ = ["FirestoreDocument", "IdSet", "MemberRoster"]
