"""
Tests for property slot readers, builders and the empty predicate.
"""
import pytest

from vocabsync import properties as props
from vocabsync.properties import SlotKind


def text_segments(*parts):
    return [{"type": "text", "text": {"content": p}, "plain_text": p} for p in parts]


@pytest.mark.unit
class TestIsEmpty:
    @pytest.mark.parametrize(
        "prop",
        [
            None,
            {},
            {"type": "title", "title": []},
            {"type": "title", "title": text_segments("   ")},
            {"type": "rich_text", "rich_text": []},
            {"type": "rich_text", "rich_text": text_segments(" ", "\n")},
            {"rich_text": [{"text": {"content": ""}}]},
            {"type": "select", "select": None},
            {"select": None},
            {"type": "multi_select", "multi_select": []},
        ],
    )
    def test_empty_slots(self, prop):
        assert props.is_empty(prop)

    @pytest.mark.parametrize(
        "prop",
        [
            {"type": "title", "title": text_segments("casa")},
            {"type": "rich_text", "rich_text": text_segments(" ", "дом")},
            {"rich_text": [{"text": {"content": "work"}}]},
            {"type": "select", "select": {"name": "Verbo"}},
            {"type": "multi_select", "multi_select": [{"name": "Food"}]},
            {"type": "checkbox", "checkbox": False},
            {"type": "checkbox", "checkbox": True},
            {"type": "number", "number": 3},
        ],
    )
    def test_populated_slots(self, prop):
        assert not props.is_empty(prop)

    def test_builders_produce_empty_values_for_blank_input(self):
        assert props.is_empty(props.title(""))
        assert props.is_empty(props.rich_text(""))
        assert props.is_empty(props.select(None))
        assert props.is_empty(props.multi_select([]))
        assert not props.is_empty(props.checkbox(False))


@pytest.mark.unit
class TestReaders:
    def test_slot_kind_from_type_or_shape(self):
        assert props.slot_kind({"type": "select", "select": None}) is SlotKind.SELECT
        assert props.slot_kind({"rich_text": []}) is SlotKind.RICH_TEXT
        assert props.slot_kind({"type": "formula", "formula": {}}) is None
        assert props.slot_kind(None) is None

    def test_plain_text_joins_segments(self):
        assert props.plain_text({"type": "rich_text", "rich_text": text_segments("ele ", "trabalha")}) == "ele trabalha"
        assert props.plain_text(props.title("casa")) == "casa"

    def test_plain_text_of_non_text_slot_is_empty(self):
        assert props.plain_text({"type": "select", "select": {"name": "Verbo"}}) == ""

    def test_select_and_multi_select(self):
        assert props.select_name(props.select("English")) == "English"
        assert props.select_name({"type": "select", "select": None}) is None
        assert props.multi_select_names(props.multi_select(["A1", "Food"])) == ["A1", "Food"]

    def test_checkbox(self):
        assert props.checkbox_value(props.checkbox(True)) is True
        assert props.checkbox_value(None) is False


@pytest.mark.unit
def test_builder_shapes():
    assert props.rich_text("") == {"rich_text": []}
    assert props.title("casa") == {"title": [{"text": {"content": "casa"}}]}
    assert props.select("Verbo") == {"select": {"name": "Verbo"}}
    assert props.select(None) == {"select": None}
