"""Set-like wrappers around array fields stored in Firestore documents."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import datetime
from typing import Any

from wefed.constants import ROLE_MEMBER


class IdSet:
    """Insertion-ordered set of document ids backed by an array field.

    Firestore stores followers, likes, bookmarks and similar relations as
    plain arrays. Wrapping them keeps membership checks O(1) and makes a
    duplicate entry impossible.
    """

    def __init__(self, ids: Iterable[Any] | None = None) -> None:
        self._ids: dict[str, None] = dict.fromkeys(
            str(i) for i in (ids or []) if i is not None
        )

    def __contains__(self, item: object) -> bool:
        return item is not None and str(item) in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __repr__(self) -> str:
        return f"IdSet({list(self._ids)!r})"

    def add(self, item: Any) -> bool:
        """Add an id. Return False if it was already present."""
        if item in self:
            return False
        self._ids[str(item)] = None
        return True

    def discard(self, item: Any) -> bool:
        """Remove an id. Return False if it was not present."""
        if item not in self:
            return False
        del self._ids[str(item)]
        return True

    def toggle(self, item: Any) -> bool:
        """Flip membership of an id and return whether it is now present."""
        if self.discard(item):
            return False
        self.add(item)
        return True

    def to_list(self) -> list[str]:
        """Return the ids in insertion order, ready to be written back."""
        return list(self._ids)


class MemberRoster:
    """Group members keyed by user id, each with a role and a join date."""

    def __init__(self, members: Iterable[dict[str, Any]] | None = None) -> None:
        self._members: dict[str, dict[str, Any]] = {}
        for member in members or []:
            user_id = member.get("userId")
            if user_id and user_id not in self._members:
                self._members[user_id] = dict(member)

    def __contains__(self, user_id: object) -> bool:
        return user_id is not None and str(user_id) in self._members

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self._members.values())

    def get(self, user_id: str | None) -> dict[str, Any] | None:
        """Return a copy of the stored entry for a member, or None."""
        member = self._members.get(str(user_id)) if user_id else None
        return dict(member) if member else None

    def role_of(self, user_id: str | None) -> str | None:
        """Return the stored role of a member, or None."""
        member = self._members.get(str(user_id)) if user_id else None
        return member.get("role") if member else None

    def add(
        self,
        user_id: str,
        role: str = ROLE_MEMBER,
        joined_at: datetime | None = None,
    ) -> bool:
        """Add a member. Return False if the user was already a member."""
        if user_id in self:
            return False
        self._members[str(user_id)] = {
            "userId": str(user_id),
            "role": role,
            "joinedAt": joined_at,
        }
        return True

    def remove(self, user_id: str) -> bool:
        """Remove a member. Return False if the user was not a member."""
        return self._members.pop(str(user_id), None) is not None

    def set_role(self, user_id: str, role: str) -> None:
        """Change the role of an existing member."""
        self._members[str(user_id)]["role"] = role

    def ids(self) -> list[str]:
        """Return member ids in join order."""
        return list(self._members)

    def to_list(self) -> list[dict[str, Any]]:
        """Return member entries ready to be written back."""
        return [dict(member) for member in self._members.values()]
