from __future__ import annotations

from catalog import default_catalog
from checkoff import CheckoffMatcher
from models import ShoppingItem
from shopping_list import ListHistory, ShoppingList


def _list(*names: str) -> ShoppingList:
    return ShoppingList(ShoppingItem(name=name) for name in names)


def test_merge_skips_names_already_present() -> None:
    shopping = _list("Apples")

    added = shopping.merge([ShoppingItem(name="apples"), ShoppingItem(name="Milk")])

    assert [item.name for item in added] == ["Milk"]
    assert shopping.names() == ["Apples", "Milk"]


def test_toggle_reports_completion_of_whole_list() -> None:
    shopping = _list("Apples", "Milk")
    apples, milk = shopping.items

    assert shopping.toggle(apples.id) == (apples, False)
    item, completed_all = shopping.toggle(milk.id)

    assert item is milk
    assert completed_all
    assert shopping.all_complete()


def test_toggle_back_to_open_never_completes() -> None:
    shopping = _list("Apples")
    (apples,) = shopping.items
    shopping.toggle(apples.id)

    item, completed_all = shopping.toggle(apples.id)

    assert not item.completed
    assert not completed_all


def test_toggle_unknown_id() -> None:
    assert _list("Apples").toggle("missing") == (None, False)


def test_check_off_uses_matcher() -> None:
    shopping = _list("Apples", "Bread")

    result = shopping.check_off(CheckoffMatcher(), "bread please")

    assert [item.name for item in result.completed] == ["Bread"]
    assert not shopping.all_complete()


def test_remove_and_clear() -> None:
    shopping = _list("Apples", "Milk")
    apples = shopping.items[0]

    assert shopping.remove(apples.id) is apples
    assert shopping.remove(apples.id) is None
    assert shopping.names() == ["Milk"]

    shopping.clear()
    assert shopping.is_empty()
    assert not shopping.all_complete()


def test_snapshot_is_detached() -> None:
    shopping = _list("Apples")

    snapshot = shopping.snapshot()
    snapshot[0].completed = True

    assert not shopping.items[0].completed


def test_by_category_groups_under_display_names() -> None:
    shopping = _list("Apples", "Milk", "Bananas", "Widgets")

    groups = shopping.by_category(default_catalog())

    assert {name: [i.name for i in items] for name, items in groups.items()} == {
        "Fruits": ["Apples", "Bananas"],
        "Dairy & Alternatives": ["Milk"],
        "Other": ["Widgets"],
    }


def test_history_keeps_newest_first_and_caps_size() -> None:
    history = ListHistory(limit=3)
    for n in range(5):
        history.save([ShoppingItem(name=f"Item {n}")])

    assert len(history) == 3
    assert [history.get(i)[0].name for i in range(3)] == ["Item 4", "Item 3", "Item 2"]
    assert history.get(3) is None


def test_history_ignores_empty_snapshot() -> None:
    history = ListHistory()

    assert history.save([]) is False
    assert len(history) == 0


def test_replace_loads_copies() -> None:
    saved = [ShoppingItem(name="Rice")]
    shopping = _list("Apples")

    shopping.replace(saved)
    shopping.items[0].completed = True

    assert shopping.names() == ["Rice"]
    assert not saved[0].completed
