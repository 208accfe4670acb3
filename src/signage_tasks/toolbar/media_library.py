# src/signage_tasks/toolbar/media_library.py

from __future__ import annotations

from typing import Any

from ..core.ports import MediaFilter, MediaPage
from ..storage.entities import Entity, EntityFactory


def _tags_of(entity: Entity) -> list[str]:
    raw = entity.get("tags") or []
    if isinstance(raw, str):
        raw = raw.split(",")
    return [str(t).strip().lower() for t in raw if str(t).strip()]


class MediaLibrary:
    """Paged media search over the media entity factory (what the toolbar search tabs show)."""

    def __init__(self, media_factory: EntityFactory) -> None:
        self._media = media_factory

    @staticmethod
    def _matches(entity: Entity, f: MediaFilter) -> bool:
        if bool(entity.get("retired", False)) != f.retired:
            return False
        if f.assignable and not bool(entity.get("assignable", True)):
            return False
        if f.name and f.name.lower() not in str(entity.get("name", "")).lower():
            return False
        if f.type and str(entity.get("type", "")) != f.type:
            return False
        if f.tags:
            wanted = [t.strip().lower() for t in f.tags.split(",") if t.strip()]
            have = _tags_of(entity)
            if not all(t in have for t in wanted):
                return False
        return True

    def search(self, media_filter: MediaFilter, start: int, length: int) -> MediaPage:
        matched = self._media.query(where=lambda e: self._matches(e, media_filter))
        start = max(0, int(start))
        page = matched[start:start + max(0, int(length))]
        items: list[dict[str, Any]] = [{"media_id": e.id, **e.data} for e in page]
        return MediaPage(items=items, total=len(matched))
