"""In-process character lookup for callers without an external person store."""

from __future__ import annotations

from collections.abc import Iterable

from story_planner.domain.models import CharacterProfile


class StaticCharacterDirectory:
    """Resolve character ids against a fixed set of profiles."""

    def __init__(self, profiles: Iterable[CharacterProfile] = ()) -> None:
        self._profiles = {profile.character_id: profile for profile in profiles}

    def lookup(self, character_id: str) -> CharacterProfile | None:
        return self._profiles.get(character_id)
