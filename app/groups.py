"""Mapping of genre group names to catalog category identifiers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping

from .dimensions import GENRE_GROUPS, NAMED_GENRE_GROUPS, OTHER_GROUP

logger = logging.getLogger(__name__)


def parse_category_ids(value: object) -> frozenset[str]:
    """Parse colon separated identifiers such as ``"id1:id2:id3"``."""

    if value is None:
        return frozenset()
    if isinstance(value, str):
        parts = value.split(":")
    elif isinstance(value, Iterable):
        parts = [str(part) for part in value]
    else:
        raise TypeError("Category ids must be a string or iterable of strings")
    return frozenset(part.strip() for part in parts if part and part.strip())


@dataclass(frozen=True)
class ResolvedGroups:
    """Concrete category identifiers for every genre group."""

    groups: Mapping[str, frozenset[str]]
    other_derived: bool = False

    def ids_for(self, group: str) -> frozenset[str]:
        try:
            return self.groups[group]
        except KeyError as exc:
            raise KeyError(f"Unknown genre group {group}") from exc


@dataclass(frozen=True)
class GroupMapping:
    """Explicitly configured group memberships.

    ``OTHER`` is only taken from configuration when it is non-empty; otherwise
    it is derived as the complement of the named groups when resolved.
    """

    pop: frozenset[str] = field(default_factory=frozenset)
    rap: frozenset[str] = field(default_factory=frozenset)
    rock: frozenset[str] = field(default_factory=frozenset)
    other: frozenset[str] = field(default_factory=frozenset)

    def explicit(self, group: str) -> frozenset[str]:
        return getattr(self, group.lower())

    def named_ids(self) -> frozenset[str]:
        ids: set[str] = set()
        for group in NAMED_GENRE_GROUPS:
            ids.update(self.explicit(group))
        return frozenset(ids)

    def resolve(self, all_category_ids: Iterable[str]) -> ResolvedGroups:
        """Return the group mapping with ``OTHER`` filled in."""

        groups = {group: self.explicit(group) for group in NAMED_GENRE_GROUPS}
        derived = not self.other
        if derived:
            groups[OTHER_GROUP] = frozenset(all_category_ids) - self.named_ids()
        else:
            groups[OTHER_GROUP] = self.other

        for group in GENRE_GROUPS:
            if not groups[group]:
                logger.warning("Genre group %s resolves to no categories", group)

        ordered = {group: groups[group] for group in GENRE_GROUPS}
        return ResolvedGroups(groups=MappingProxyType(ordered), other_derived=derived)
