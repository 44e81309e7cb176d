# tests/test_store.py
import pytest

from comicsmith.errors import NotFoundError, ValidationError
from comicsmith.lib.store import ComicStore
from comicsmith.schemas import Character, Panel


def _panel(pid, **kw):
    return Panel(panel_id=pid, page_number=1, panel_number_on_page=1, description=f"{pid} desc",
                 camera_angle="medium-shot", **kw)


def test_create_and_reload(store):
    comic_id = store.create_comic({"storyContext": "A fox", "genre": "fable", "pageCount": 4})
    comic = store.get_comic(comic_id)
    assert comic.story_context == "A fox"
    assert comic.page_count == 4
    assert comic.status == "draft"
    # a second store on the same folder sees the same document
    assert ComicStore(root=store.root).get_comic(comic_id).genre == "fable"


def test_missing_comic(store):
    with pytest.raises(NotFoundError):
        store.get_comic("nope")
    assert store.latest_comic_id() is None


def test_replace_panels_keeps_incoming_order_and_drops_the_rest(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2"), _panel("panel3")])
    store.replace_panels(comic_id, [_panel("panel2", title=None), _panel("panel1")])
    assert [p.panel_id for p in store.get_comic(comic_id).panels] == ["panel2", "panel1"]


def test_replace_panels_keeps_the_last_copy_of_a_repeated_id(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2"), _panel("panel1").model_copy(update={"description": "redrawn"})])
    panels = store.get_comic(comic_id).panels
    assert [p.panel_id for p in panels] == ["panel1", "panel2"]
    assert panels[0].description == "redrawn"


def test_update_panel_field_accepts_camel_or_snake(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2")])
    store.update_panel_field(comic_id, "panel2", "soundEffects", ["BOOM"])
    store.update_panel_field(comic_id, "panel2", "narration", "Later...")
    panel = store.get_panel(comic_id, "panel2")
    assert panel.sound_effects == ["BOOM"]
    assert panel.narration == "Later..."


def test_update_unknown_field_lists_allowed(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1")])
    with pytest.raises(ValidationError) as e:
        store.update_panel_field(comic_id, "panel1", "pageNumber", 3)
    assert "description" in e.value.details["allowedFields"]


def test_update_unknown_panel_lists_available(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2")])
    with pytest.raises(NotFoundError) as e:
        store.update_panel_field(comic_id, "panel9", "description", "x")
    assert e.value.details["availablePanels"] == ["panel1", "panel2"]


def test_cover_rejects_dialogue(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2")])
    with pytest.raises(ValidationError):
        store.update_panel_field(comic_id, "panel1", "dialogue", [{"orderIndex": 0, "speaker": "Fox", "text": "Hi"}])
    # the rejected write left the document untouched
    assert store.get_panel(comic_id, "panel1").dialogue == []


def test_dialogue_order_must_be_dense(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1"), _panel("panel2")])
    with pytest.raises(ValidationError):
        store.update_panel_field(comic_id, "panel2", "dialogue", [
            {"orderIndex": 0, "text": "a"}, {"orderIndex": 2, "text": "b"},
        ])
    store.update_panel_field(comic_id, "panel2", "dialogue", [
        {"orderIndex": 1, "text": "second"}, {"orderIndex": 0, "text": "first"},
    ])
    assert [d.text for d in store.get_panel(comic_id, "panel2").dialogue] == ["first", "second"]


def test_context_refs_capped_at_four(store):
    comic_id = store.create_comic()
    store.replace_panels(comic_id, [_panel("panel1")])
    with pytest.raises(ValidationError):
        store.update_panel_field(comic_id, "panel1", "contextImageRefs", ["a", "b", "c", "d", "e"])


def test_character_updates_and_lookups(store):
    comic_id = store.create_comic()
    store.replace_characters(comic_id, [Character(char_id="char_1", display_name="Fox", description="red fox")])
    store.update_character_field(comic_id, "char_1", "generatedImageUrl", "http://x/char_1.png")
    assert store.get_character(comic_id, "char_1").generated_image_url == "http://x/char_1.png"
    with pytest.raises(NotFoundError) as e:
        store.update_character_field(comic_id, "char_9", "description", "x")
    assert e.value.details["availableCharacters"] == ["char_1"]


def test_latest_and_delete(store):
    first = store.create_comic()
    second = store.create_comic()
    assert set(store.list_comics()) == {first, second}
    store.update_comic(first, title="Bumped")
    assert store.latest_comic_id() in (first, second)
    store.delete_comic(second)
    assert store.list_comics() == [first]
    with pytest.raises(NotFoundError):
        store.delete_comic(second)


def test_rejects_path_like_ids(store):
    with pytest.raises(ValidationError):
        store.get_comic("../etc/passwd")
