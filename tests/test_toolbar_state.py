# tests/test_toolbar_state.py

from __future__ import annotations

import json

import pytest

from signage_tasks.core.ports import MediaFilter
from signage_tasks.toolbar.toolbar_state import PREFERENCE_KEY, TOOLS_LIST, CardDimensions, ToolbarState

from .fakes import FakeMediaSearch, InMemoryPreferences

MODULES = [
    {"type": "text", "name": "Text", "assignable": 1, "regionSpecific": 1},
    {"type": "image", "name": "Image", "assignable": 1, "regionSpecific": 0},
    {"type": "video", "name": "Video", "assignable": 1, "regionSpecific": 0},
    {"type": "hidden", "name": "Hidden", "assignable": 0, "regionSpecific": 0},
]


def _toolbar(prefs=None, media=None, **kwargs) -> ToolbarState:
    return ToolbarState(
        prefs if prefs is not None else InMemoryPreferences(),
        media if media is not None else FakeMediaSearch(),
        modules=MODULES,
        **kwargs,
    )


def _saved(prefs: InMemoryPreferences) -> dict:
    return json.loads(prefs.values[PREFERENCE_KEY])


def test_pagination_uses_card_footprint() -> None:
    tb = _toolbar()
    # 1000px * 90% = 900px; a card takes 100 + 2*2 = 104px.
    assert tb.elements_per_page() == 8

    tb.menu_items[0].page = 2
    p = tb.calculate_pagination(0)
    assert (p.start, p.length) == (16, 8)


def test_pagination_never_below_one_element() -> None:
    tb = _toolbar(container_width=50, card=CardDimensions(width=200))
    assert tb.elements_per_page() == 1


def test_open_fixed_tab_loads_tools() -> None:
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs, container_width=300)  # 270px -> 2 per page

    tb.open_tab(0)

    tools = tb.menu_items[0]
    assert tools.active
    assert [e["name"] for e in tools.content] == [t["name"] for t in TOOLS_LIST]
    assert [e["hideElement"] for e in tools.content] == [False, False, True, True, True]
    assert tools.pag_btn_left_disabled is True
    assert tools.pag_btn_right_disabled is False
    assert _saved(prefs)["openedMenu"] == 0

    tb.next_page(0)
    tb.next_page(0)
    assert [e["hideElement"] for e in tools.content] == [True, True, True, True, False]
    assert tools.pag_btn_left_disabled is False
    assert tools.pag_btn_right_disabled is True

    tb.previous_page(0)
    tb.previous_page(0)
    tb.previous_page(0)
    assert tools.page == 0


def test_widgets_tab_and_type_options() -> None:
    tb = _toolbar()
    tb.open_tab(1)

    assert [m["type"] for m in tb.menu_items[1].content] == ["text", "image", "video", "hidden"]
    assert [m["type"] for m in tb.type_options()] == ["image", "video"]


def test_create_new_tab_opens_search_tab_and_saves() -> None:
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs)

    index = tb.create_new_tab()

    assert index == 2
    assert tb.opened_menu == 2
    assert tb.menu_items[2].title == "Tab 1"
    assert tb.menu_items[2].search is True
    saved = _saved(prefs)
    assert saved["openedMenu"] == 2
    assert len(saved["menuItems"]) == 1
    assert saved["menuItems"][0]["filters"]["name"] == {"name": "Name", "value": ""}


def test_search_tab_queries_media_and_builds_title() -> None:
    media = FakeMediaSearch(items=[{"media_id": i, "name": f"clip {i}"} for i in range(10)])
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs, media)
    index = tb.create_new_tab()

    tb.search(index, name="clip", tag="promo", type="video")

    item = tb.menu_items[index]
    assert item.title == '"clip" {promo} [video]'
    assert [c["media_id"] for c in item.content] == list(range(8))
    assert item.pag_btn_left_disabled is True
    assert item.pag_btn_right_disabled is False
    media_filter, start, length = media.calls[-1]
    assert media_filter == MediaFilter(name="clip", tags="promo", type="video", retired=False, assignable=True)
    assert (start, length) == (0, 8)

    tb.next_page(index)
    assert [c["media_id"] for c in item.content] == [8, 9]
    assert item.pag_btn_right_disabled is True
    assert media.calls[-1][1:] == (8, 8)

    saved_item = _saved(prefs)["menuItems"][0]
    assert saved_item["content"] == []
    assert saved_item["page"] == 0
    assert saved_item["filters"]["tag"]["value"] == "promo"


def test_search_without_name_numbers_the_tab() -> None:
    tb = _toolbar()
    index = tb.create_new_tab()

    tb.search(index, tag="promo")

    assert tb.menu_items[index].title == "Tab 2 {promo}"


def test_search_on_fixed_tab_is_rejected() -> None:
    with pytest.raises(ValueError):
        _toolbar().search(0, name="x")


def test_media_failure_leaves_empty_content() -> None:
    tb = _toolbar(media=FakeMediaSearch(fail=True))
    index = tb.create_new_tab()

    tb.search(index, name="x")

    assert tb.menu_items[index].content == []


def test_open_tab_toggle_closes_and_reopens() -> None:
    tb = _toolbar()
    tb.open_tab(1)

    tb.open_tab()
    assert tb.opened_menu == -1
    assert tb.previous_opened_menu == 1
    assert not tb.menu_items[1].active

    tb.open_tab()
    assert tb.opened_menu == 1
    assert tb.previous_opened_menu == -1
    assert tb.menu_items[1].active


def test_open_tab_closes_the_others() -> None:
    tb = _toolbar()
    tb.open_tab(0)
    tb.open_tab(1)
    assert [i.active for i in tb.menu_items] == [False, True]


def test_delete_tabs() -> None:
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs)
    tb.create_new_tab()
    tb.create_new_tab()

    with pytest.raises(ValueError):
        tb.delete_tab(1)

    tb.delete_tab(3)
    assert len(tb.menu_items) == 3
    assert tb.opened_menu == -1
    assert len(_saved(prefs)["menuItems"]) == 1

    tb.open_tab(0)
    tb.create_new_tab()
    tb.open_tab(0)
    tb.delete_all_tabs()
    assert len(tb.menu_items) == 2
    assert tb.opened_menu == 0
    assert _saved(prefs)["menuItems"] == []


def test_load_prefs_restores_tabs() -> None:
    prefs = InMemoryPreferences()
    first = _toolbar(prefs)
    index = first.create_new_tab()
    first.search(index, name="clip")
    first.open_tab(1)

    media = FakeMediaSearch()
    second = _toolbar(prefs, media)
    assert second.load_prefs() is True

    assert len(second.menu_items) == 3
    assert second.menu_items[2].title == '"clip"'
    assert second.menu_items[2].filters.name == "clip"
    assert second.opened_menu == 1
    assert second.menu_items[1].active
    assert second.menu_index == 3


def test_load_prefs_opened_search_tab_reloads_content() -> None:
    prefs = InMemoryPreferences()
    first = _toolbar(prefs)
    first.search(first.create_new_tab(), name="clip")

    media = FakeMediaSearch(items=[{"media_id": 1}])
    second = _toolbar(prefs, media)
    second.load_prefs()

    assert second.opened_menu == 2
    assert second.menu_items[2].content == [{"media_id": 1}]
    assert media.calls[0][0].name == "clip"


def test_load_prefs_out_of_range_indexes_reset() -> None:
    prefs = InMemoryPreferences(
        {PREFERENCE_KEY: json.dumps({"menuItems": [], "openedMenu": 7, "previousOpenedMenu": "x"})}
    )
    tb = _toolbar(prefs)

    assert tb.load_prefs() is True
    assert tb.opened_menu == -1
    assert tb.previous_opened_menu == -1


@pytest.mark.parametrize("raw", [None, "", "{broken", "[1, 2]"])
def test_load_prefs_bad_data_keeps_defaults(raw) -> None:
    prefs = InMemoryPreferences({} if raw is None else {PREFERENCE_KEY: raw})
    tb = _toolbar(prefs)

    assert tb.load_prefs() is False
    assert [i.name for i in tb.menu_items] == ["tools", "widgets"]
    assert tb.opened_menu == -1


def test_save_prefs_clear() -> None:
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs)
    tb.create_new_tab()

    tb.save_prefs(clear=True)

    assert _saved(prefs) == {"menuItems": [], "openedMenu": -1, "previousOpenedMenu": -1}


def test_toolbar_with_sqlite_preferences_and_media_library(state) -> None:
    media = state.env.factories.media
    media.create({"name": "Promo clip", "type": "video", "tags": ["promo", "summer"]})
    media.create({"name": "Promo still", "type": "image", "tags": "promo"})
    media.create({"name": "Old promo", "type": "video", "tags": ["promo"], "retired": True})
    media.create({"name": "Locked promo", "type": "video", "tags": ["promo"], "assignable": False})

    prefs = state.preferences.for_user("7")
    tb = ToolbarState(prefs, state.media_library, modules=MODULES)
    index = tb.create_new_tab()
    tb.search(index, name="PROMO", tag="promo")

    assert [c["name"] for c in tb.menu_items[index].content] == ["Promo clip", "Promo still"]

    tb.search(index, name="promo", tag="promo, summer", type="video")
    assert [c["name"] for c in tb.menu_items[index].content] == ["Promo clip"]

    assert state.preferences.get("7", PREFERENCE_KEY) is not None
    assert state.preferences.get("8", PREFERENCE_KEY) is None


def test_delete_closed_tab_then_toggle_does_not_reopen_it() -> None:
    tb = _toolbar()
    index = tb.create_new_tab()
    tb.open_tab()
    assert tb.previous_opened_menu == index

    tb.delete_tab(index)
    assert tb.previous_opened_menu == -1

    tb.open_tab()
    assert tb.opened_menu == -1
    assert not any(i.active for i in tb.menu_items)


def test_delete_lower_tab_keeps_indexes_on_the_same_tabs() -> None:
    tb = _toolbar()
    first = tb.create_new_tab()
    second = tb.create_new_tab()
    tb.open_tab()
    assert tb.previous_opened_menu == second

    tb.delete_tab(first)

    assert tb.previous_opened_menu == second - 1
    tb.open_tab()
    assert tb.opened_menu == second - 1
    assert tb.menu_items[tb.opened_menu].title == "Tab 2"

    tb.open_tab(tb.create_new_tab())
    tb.delete_tab(first)
    assert tb.opened_menu == 2
    assert tb.menu_items[2].title == "Tab 3"


def test_delete_all_tabs_forgets_closed_search_tab() -> None:
    tb = _toolbar()
    tb.create_new_tab()
    tb.open_tab()

    tb.delete_all_tabs()

    tb.open_tab()
    assert tb.opened_menu == -1


def test_paging_keeps_unnamed_tab_number() -> None:
    media = FakeMediaSearch(items=[{"media_id": i} for i in range(20)])
    prefs = InMemoryPreferences()
    tb = _toolbar(prefs, media)
    index = tb.create_new_tab()
    tb.search(index, type="video")
    title = tb.menu_items[index].title

    tb.next_page(index)
    tb.next_page(index)
    tb.previous_page(index)

    assert title == "Tab 2 [video]"
    assert tb.menu_items[index].title == title

    restored = _toolbar(prefs, media)
    restored.load_prefs()
    assert restored.menu_items[index].title == title
    assert restored.create_new_tab() == index + 1
    assert restored.menu_items[-1].title == "Tab 4"


def test_app_state_builds_toolbar_with_saved_tabs(state) -> None:
    toolbar = state.toolbar_for("7", modules=MODULES)
    toolbar.search(toolbar.create_new_tab(), name="clip")

    again = state.toolbar_for("7")

    assert [i.title for i in again.menu_items] == ["Tools", "Widgets", '"clip"']
    assert again.opened_menu == 2
    assert [i.title for i in state.toolbar_for("8").menu_items] == ["Tools", "Widgets"]
