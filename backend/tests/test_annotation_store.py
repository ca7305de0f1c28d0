#!/usr/bin/env python3
"""Tests for the in-memory annotation store"""

import sys
sys.path.append('.')

from signdesk.models.annotation import DEFAULT_POSITION, FontRef
from signdesk.services.annotation_store import AnnotationStore
from signdesk.services.coordinate_transformer import OverlayGeometry
from signdesk.utils.colors import parse_color, to_hex, to_native_color
from signdesk.utils.exceptions import PageOutOfRangeError, ValidationError

BLUE = "#1e40af"


def _store_with_one(page_count=3):
    store = AnnotationStore(page_count)
    annotation_id = store.add("Jane Doe", "great_vibes", 24, BLUE, 1)
    return store, annotation_id


def test_add_uses_default_position():
    store, annotation_id = _store_with_one()
    annotation = store.get(annotation_id)

    assert annotation is not None
    assert (annotation.x, annotation.y) == DEFAULT_POSITION
    assert annotation.font_ref == FontRef.GREAT_VIBES
    assert annotation.color == (30, 64, 175)
    assert annotation.page == 1
    print("[PASS] Add with default position test passed")


def test_add_blank_text_is_noop():
    store = AnnotationStore(1)

    assert store.add("", "pacifico", 24, BLUE, 1) is None
    assert store.add("   ", "pacifico", 24, BLUE, 1) is None
    assert len(store) == 0
    print("[PASS] Blank text no-op test passed")


def test_add_then_remove_restores_state():
    store, first_id = _store_with_one()
    before = [a.to_dict() for a in store.all()]

    second_id = store.add("J.D.", "satisfy", 30, [0, 0, 0], 2)
    assert second_id != first_id
    assert store.remove(second_id) is True

    assert [a.to_dict() for a in store.all()] == before
    assert store.remove(second_id) is False
    print("[PASS] Add then remove test passed")


def test_add_validation():
    store = AnnotationStore(3)

    for kwargs, field in [
        ({"text": "x" * 33}, "text"),
        ({"font_size": 11}, "font_size"),
        ({"font_size": 73}, "font_size"),
        ({"font_ref": "comic_sans"}, "font_ref"),
        ({"color": "#12345"}, "color"),
        ({"color": [0, 0, 256]}, "color"),
    ]:
        args = {"text": "Jane", "font_ref": "arial", "font_size": 24, "color": BLUE, "page": 1}
        args.update(kwargs)
        try:
            store.add(**args)
            assert False, f"Should have rejected {kwargs}"
        except ValidationError as e:
            assert e.field == field, (e.field, field)

    assert store.add("x" * 32, "arial", 72, BLUE, 1) is not None
    print("[PASS] Add validation test passed")


def test_add_page_out_of_range():
    store = AnnotationStore(3)
    try:
        store.add("Jane", "arial", 24, BLUE, 5)
        assert False, "Should have raised PageOutOfRangeError"
    except PageOutOfRangeError as e:
        assert e.details["page"] == 5
    assert len(store) == 0
    print("[PASS] Add page out of range test passed")


def test_update_merges_fields():
    store, annotation_id = _store_with_one()

    updated = store.update(annotation_id, text="J. Doe", font_size=36, color="red", page=3)

    assert updated.id == annotation_id
    assert updated.text == "J. Doe"
    assert updated.font_size == 36
    assert updated.color == (220, 38, 38)
    assert updated.page == 3
    assert store.get(annotation_id) == updated
    print("[PASS] Update merge test passed")


def test_update_unknown_id_is_noop():
    store, _ = _store_with_one()
    before = [a.to_dict() for a in store.all()]

    assert store.update("missing", text="Other") is None
    assert [a.to_dict() for a in store.all()] == before
    print("[PASS] Update unknown id test passed")


def test_update_cannot_change_id():
    store, annotation_id = _store_with_one()

    updated = store.update(annotation_id, id="hijacked", text="Jane")
    assert updated.id == annotation_id
    assert store.get("hijacked") is None
    print("[PASS] Update id immutability test passed")


def test_update_rejects_bad_fields():
    store, annotation_id = _store_with_one()

    for changes in [{"text": "  "}, {"rotation": 90}, {"x": -1}]:
        try:
            store.update(annotation_id, **changes)
            assert False, f"Should have rejected {changes}"
        except ValidationError:
            pass
    print("[PASS] Update rejection test passed")


def test_move_clamps_to_overlay():
    store, annotation_id = _store_with_one()
    overlay = OverlayGeometry(500, 600)

    moved = store.move(annotation_id, 999, -40, overlay)
    assert (moved.x, moved.y) == (476.0, 0.0)

    moved = store.move(annotation_id, 250, 300, overlay)
    assert (moved.x, moved.y) == (250.0, 300.0)

    assert store.move("missing", 1, 1, overlay) is None
    print("[PASS] Move clamp test passed")


def test_selection_cleared_on_remove():
    store, annotation_id = _store_with_one()
    other_id = store.add("Second", "arial", 18, BLUE, 1)

    store.select(annotation_id)
    assert store.selected_id == annotation_id

    store.select("missing")
    assert store.selected_id == annotation_id

    store.remove(other_id)
    assert store.selected_id == annotation_id

    store.remove(annotation_id)
    assert store.selected_id is None
    print("[PASS] Selection test passed")


def test_list_by_page_keeps_insertion_order():
    store = AnnotationStore(2)
    ids = [
        store.add("one", "arial", 12, BLUE, 1),
        store.add("two", "arial", 12, BLUE, 2),
        store.add("three", "arial", 12, BLUE, 1),
    ]

    assert [a.id for a in store.list_by_page(1)] == [ids[0], ids[2]]
    assert [a.id for a in store.list_by_page(2)] == [ids[1]]
    assert [a.id for a in store.all()] == ids

    store.clear()
    assert store.all() == []
    assert store.selected_id is None
    print("[PASS] List by page test passed")


def test_color_helpers():
    assert parse_color("#000000") == (0, 0, 0)
    assert parse_color("purple") == (124, 58, 237)
    assert parse_color([12.0, 34, 56]) == (12, 34, 56)
    assert to_hex((30, 64, 175)) == BLUE
    assert to_native_color((255, 0, 51)) == (1.0, 0.0, 0.2)

    for bad in ["1e40af", "#gggggg", [1, 2], [1, 2, "3"], None]:
        try:
            parse_color(bad)
            assert False, f"Should have rejected {bad!r}"
        except ValueError:
            pass
    print("[PASS] Color helper test passed")


if __name__ == "__main__":
    test_add_uses_default_position()
    test_add_blank_text_is_noop()
    test_add_then_remove_restores_state()
    test_add_validation()
    test_add_page_out_of_range()
    test_update_merges_fields()
    test_update_unknown_id_is_noop()
    test_update_cannot_change_id()
    test_update_rejects_bad_fields()
    test_move_clamps_to_overlay()
    test_selection_cleared_on_remove()
    test_list_by_page_keeps_insertion_order()
    test_color_helpers()
    print("\n[SUCCESS] All annotation store tests passed!")
