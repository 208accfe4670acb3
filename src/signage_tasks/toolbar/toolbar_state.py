# src/signage_tasks/toolbar/toolbar_state.py

"""
Headless state of the layout designer's bottom toolbar.

Tracks the ordered list of panels (two fixed ones: tools and widgets, then ad-hoc
search tabs), which one is open, pagination over a fixed card footprint, and persists
the user-visible part of that state under the "toolbar" preference as JSON.

Rendering and drag-and-drop stay in the browser; this module is what a UI calls into.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any

from ..core.ports import MediaFilter, MediaSearch, PreferenceRepo

logger = logging.getLogger(__name__)

PREFERENCE_KEY = "toolbar"

TOOLS_LIST: list[dict[str, str]] = [
    {
        "name": "Region",
        "type": "region",
        "description": "Add a region to the layout",
        "imageUri": "designer/region.png",
        "dropTo": "layout",
    },
    {
        "name": "Audio",
        "type": "audio",
        "description": "Attach audio to a widget",
        "imageUri": "designer/audio.png",
        "dropTo": "widget",
    },
    {
        "name": "Expiry Dates",
        "type": "expiry",
        "description": "Set expiry dates to a widget",
        "imageUri": "designer/expiry.png",
        "dropTo": "widget",
    },
    {
        "name": "Transition In",
        "type": "transitionIn",
        "description": "Add a in transition to a widget",
        "imageUri": "designer/transitionIn.png",
        "dropTo": "widget",
    },
    {
        "name": "Transition Out",
        "type": "transitionOut",
        "description": "Add a out transition to a widget",
        "imageUri": "designer/transitionOut.png",
        "dropTo": "widget",
    },
]


@dataclass(slots=True, frozen=True)
class CardDimensions:
    width: int = 100  # px
    height: int = 80  # px
    margin: int = 2  # px


@dataclass(slots=True, frozen=True)
class Pagination:
    start: int
    length: int


@dataclass(slots=True)
class SearchFilters:
    name: str = ""
    tag: str = ""
    type: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": {"name": "Name", "value": self.name},
            "tag": {"name": "Tag", "value": self.tag},
            "type": {"name": "Type", "value": self.type},
        }

    @classmethod
    def from_dict(cls, raw: Any) -> SearchFilters:
        if not isinstance(raw, dict):
            return cls()

        def value(key: str) -> str:
            item = raw.get(key)
            if isinstance(item, dict):
                return str(item.get("value") or "")
            return str(item or "")

        return cls(name=value("name"), tag=value("tag"), type=value("type"))


@dataclass(slots=True)
class MenuItem:
    name: str
    title: str
    page: int = 0
    content: list[dict[str, Any]] = field(default_factory=list)
    state: str = ""
    tool: bool = False
    search: bool = False
    filters: SearchFilters | None = None
    pag_btn_left_disabled: bool = True
    pag_btn_right_disabled: bool = True
    # "Tab N" label of an unnamed search tab; 0 until one is assigned.
    number: int = 0

    @property
    def active(self) -> bool:
        return self.state == "active"

    def to_pref(self) -> dict[str, Any]:
        """Saved form: content dropped, page reset."""
        out: dict[str, Any] = {
            "name": self.name,
            "title": self.title,
            "search": self.search,
            "page": 0,
            "content": [],
            "state": self.state,
        }
        if self.filters is not None:
            out["filters"] = self.filters.to_dict()
        if self.number:
            out["tabNumber"] = self.number
        return out

    @classmethod
    def from_pref(cls, raw: dict[str, Any]) -> MenuItem:
        search = bool(raw.get("search", False))
        try:
            number = max(0, int(raw.get("tabNumber") or 0))
        except (TypeError, ValueError):
            number = 0
        return cls(
            number=number,
            name=str(raw.get("name") or "search"),
            title=str(raw.get("title") or ""),
            state=str(raw.get("state") or ""),
            search=search,
            filters=SearchFilters.from_dict(raw.get("filters")) if search else None,
        )


def _default_menu_items() -> list[MenuItem]:
    return [
        MenuItem(name="tools", title="Tools", tool=True),
        MenuItem(name="widgets", title="Widgets"),
    ]


class ToolbarState:
    """Panel bookkeeping for one user's toolbar."""

    def __init__(
        self,
        preferences: PreferenceRepo,
        media_search: MediaSearch,
        *,
        modules: list[dict[str, Any]] | None = None,
        container_width: float = 1000.0,
        content_width_pct: float = 90.0,
        card: CardDimensions | None = None,
    ) -> None:
        self._prefs = preferences
        self._media = media_search
        self.modules: list[dict[str, Any]] = list(modules or [])

        self.menu_items: list[MenuItem] = _default_menu_items()
        self.fixed_tabs = len(self.menu_items)
        self.menu_index = 0
        self.opened_menu = -1
        self.previous_opened_menu = -1

        self.container_width = float(container_width)
        self.content_width_pct = float(content_width_pct)
        self.card = card or CardDimensions()

    # ---- preferences ----

    def load_prefs(self) -> bool:
        """Restore saved tabs. On any failure keep the defaults and return False."""
        try:
            raw = self._prefs.get(PREFERENCE_KEY)
        except Exception:
            logger.exception("Toolbar preferences load failed")
            return False
        if not raw:
            return False

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Toolbar preferences are not valid JSON; using defaults.")
            return False
        if not isinstance(data, dict):
            return False

        saved = data.get("menuItems") or []
        items = _default_menu_items()
        if isinstance(saved, list):
            items.extend(MenuItem.from_pref(i) for i in saved if isinstance(i, dict))
        self.menu_items = items
        self.menu_index = max([len(items), *(i.number for i in items)])

        self.opened_menu = self._valid_index(data.get("openedMenu"))
        self.previous_opened_menu = self._valid_index(data.get("previousOpenedMenu"))

        for index, item in enumerate(self.menu_items):
            item.state = "active" if index == self.opened_menu else ""

        if self.opened_menu != -1:
            self.load_content(self.opened_menu)
        return True

    def _valid_index(self, raw: Any) -> int:
        try:
            idx = int(raw)
        except (TypeError, ValueError):
            return -1
        return idx if 0 <= idx < len(self.menu_items) else -1

    def save_prefs(self, clear: bool = False) -> None:
        if clear:
            payload: dict[str, Any] = {"menuItems": [], "openedMenu": -1, "previousOpenedMenu": -1}
        else:
            payload = {
                "menuItems": [item.to_pref() for item in self.menu_items[self.fixed_tabs:]],
                "openedMenu": self.opened_menu,
                "previousOpenedMenu": self.previous_opened_menu,
            }
        try:
            self._prefs.set(PREFERENCE_KEY, json.dumps(payload, ensure_ascii=False))
        except Exception:
            logger.exception("Toolbar preferences save failed")

    # ---- pagination ----

    def elements_per_page(self) -> int:
        width = self.container_width * (self.content_width_pct / 100.0)
        footprint = self.card.width + self.card.margin * 2
        return max(1, math.floor(width / footprint))

    def calculate_pagination(self, menu: int) -> Pagination:
        per_page = self.elements_per_page()
        return Pagination(start=self.menu_items[menu].page * per_page, length=per_page)

    # ---- content ----

    def _fixed_content(self, menu: int) -> list[dict[str, Any]]:
        if menu == 0:
            return [dict(t) for t in TOOLS_LIST]
        if menu == 1:
            return [dict(m) for m in self.modules]
        return []

    def type_options(self) -> list[dict[str, Any]]:
        """Module types offered by the search tab's type filter."""
        return [
            m for m in self.modules
            if int(m.get("assignable", 0)) == 1 and int(m.get("regionSpecific", 0)) == 0
        ]

    def load_content(self, menu: int) -> None:
        item = self.menu_items[menu]
        pagination = self.calculate_pagination(menu)
        item.pag_btn_left_disabled = pagination.start == 0

        if menu < self.fixed_tabs:
            content = self._fixed_content(menu)
            for index, element in enumerate(content):
                element["hideElement"] = not (
                    pagination.start <= index < pagination.start + pagination.length
                )
            item.content = content
            item.pag_btn_right_disabled = pagination.start + pagination.length >= len(content)
            item.state = "active"
            self.save_prefs()
            return

        filters = item.filters or SearchFilters()
        item.filters = filters

        if filters.name:
            item.title = f'"{filters.name}"'
        else:
            if not item.number:
                item.number = self._next_tab_number()
            item.title = f"Tab {item.number}"
        if filters.tag:
            item.title += f" {{{filters.tag}}}"
        if filters.type:
            item.title += f" [{filters.type}]"

        media_filter = MediaFilter(
            name=filters.name,
            tags=filters.tag,
            type=filters.type,
            retired=False,
            assignable=True,
        )
        try:
            page = self._media.search(media_filter, pagination.start, pagination.length)
        except Exception:
            logger.exception("Library load failed for toolbar tab %s", menu)
            item.content = []
            return

        if not page.items:
            logger.info("No results for the filter on toolbar tab %s", menu)
        item.content = list(page.items)
        item.pag_btn_right_disabled = pagination.start + pagination.length >= page.total
        self.save_prefs()

    def search(self, menu: int, *, name: str = "", tag: str = "", type: str = "") -> None:
        """Apply new filters to a search tab and load its first page."""
        item = self.menu_items[menu]
        if not item.search:
            raise ValueError(f"Toolbar tab {menu} is not a search tab")
        item.filters = SearchFilters(name=name, tag=tag, type=type)
        item.page = 0
        # A new unnamed search gets a fresh number; paging keeps it.
        item.number = 0 if name else self._next_tab_number()
        self.load_content(menu)

    def next_page(self, menu: int) -> None:
        self.menu_items[menu].page += 1
        self.load_content(menu)

    def previous_page(self, menu: int) -> None:
        item = self.menu_items[menu]
        item.page = max(0, item.page - 1)
        self.load_content(menu)

    # ---- tabs ----

    def open_tab(self, menu: int = -1) -> None:
        """
        menu == -1 toggles: close the open tab (remembering it) or reopen the last one.
        Otherwise open the given tab and close the rest. Fixed tabs load content on open.
        """
        if menu == -1:
            if self.opened_menu != -1:
                self.previous_opened_menu = self.opened_menu
                self.menu_items[self.opened_menu].state = ""
                self.opened_menu = -1
            elif self.previous_opened_menu != -1:
                self.menu_items[self.previous_opened_menu].state = "active"
                self.opened_menu = self.previous_opened_menu
                self.previous_opened_menu = -1
                if self.opened_menu < self.fixed_tabs:
                    self.load_content(self.opened_menu)
                    return
        else:
            for item in self.menu_items:
                item.state = ""
            self.menu_items[menu].state = "active"
            self.opened_menu = menu
            self.previous_opened_menu = -1
            if menu < self.fixed_tabs:
                self.load_content(menu)
                return

        self.save_prefs()

    def _next_tab_number(self) -> int:
        self.menu_index += 1
        return self.menu_index

    def create_new_tab(self) -> int:
        number = self._next_tab_number()
        self.menu_items.append(
            MenuItem(
                name="search",
                title=f"Tab {number}",
                search=True,
                filters=SearchFilters(),
                number=number,
            )
        )
        index = len(self.menu_items) - 1
        self.open_tab(index)
        return index

    @staticmethod
    def _index_after_delete(index: int, deleted: int) -> int:
        if index == deleted:
            return -1
        return index - 1 if index > deleted else index

    def delete_tab(self, menu: int) -> None:
        """Remove a search tab; open/previous indexes keep pointing at the same tabs."""
        if menu < self.fixed_tabs:
            raise ValueError("Fixed toolbar tabs cannot be removed")
        del self.menu_items[menu]
        self.opened_menu = self._index_after_delete(self.opened_menu, menu)
        self.previous_opened_menu = self._index_after_delete(self.previous_opened_menu, menu)
        self.save_prefs()

    def delete_all_tabs(self) -> None:
        del self.menu_items[self.fixed_tabs:]
        if self.opened_menu >= self.fixed_tabs:
            self.opened_menu = -1
        if self.previous_opened_menu >= self.fixed_tabs:
            self.previous_opened_menu = -1
        self.save_prefs()
