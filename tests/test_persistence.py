from __future__ import annotations

import asyncio
import json

import pytest

from chatanchor.errors import PersistenceError
from chatanchor.toc import LabelStore, PreferenceStore
from chatanchor.toc.persistence import clean_label


def test_labels_are_namespaced_by_conversation(tmp_path) -> None:
    store = LabelStore(tmp_path)

    asyncio.run(store.set("conv-a", "turn-1", "Alpha"))
    asyncio.run(store.set("conv-b", "turn-1", "Beta"))

    assert asyncio.run(store.get("conv-a")) == {"turn-1": "Alpha"}
    assert asyncio.run(store.get("conv-b")) == {"turn-1": "Beta"}
    assert asyncio.run(store.get("conv-c")) == {}


def test_none_or_empty_label_deletes_and_prunes(tmp_path) -> None:
    store = LabelStore(tmp_path)
    asyncio.run(store.set("conv-a", "turn-1", "Alpha"))
    asyncio.run(store.set("conv-a", "turn-3", "Gamma"))

    asyncio.run(store.set("conv-a", "turn-1", None))
    assert asyncio.run(store.get("conv-a")) == {"turn-3": "Gamma"}

    asyncio.run(store.set("conv-a", "turn-3", "   "))
    assert store.load_all() == {}


def test_labels_are_trimmed_and_capped(tmp_path) -> None:
    store = LabelStore(tmp_path, max_length=10)

    asyncio.run(store.set("conv", "turn-1", "  a fairly long label  "))

    assert asyncio.run(store.get("conv")) == {"turn-1": "a fairly l"}


def test_unreadable_file_raises_persistence_error(tmp_path) -> None:
    store = LabelStore(tmp_path)
    store.labels_file.write_text("conversations: [unclosed", encoding="utf-8")

    with pytest.raises(PersistenceError):
        asyncio.run(store.get("conv"))


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "plain text\n", "conversations:\n  - one\n  - two\n"],
)
def test_non_mapping_file_raises_persistence_error(tmp_path, content) -> None:
    store = LabelStore(tmp_path)
    store.labels_file.write_text(content, encoding="utf-8")

    with pytest.raises(PersistenceError, match="mapping"):
        asyncio.run(store.get("conv"))


def test_import_rejects_non_mapping_export(tmp_path) -> None:
    exported = tmp_path / "labels.json"
    exported.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(PersistenceError):
        LabelStore(tmp_path / "store").import_labels(exported)


def test_malformed_entries_are_ignored(tmp_path) -> None:
    store = LabelStore(tmp_path)
    store.labels_file.write_text(
        "conversations:\n  good:\n    turn-1: Fine\n  bad: just a string\n", encoding="utf-8"
    )

    assert store.load_all() == {"good": {"turn-1": "Fine"}}


@pytest.mark.parametrize("suffix", [".json", ".yaml"])
def test_export_and_import_merge(tmp_path, suffix) -> None:
    source = LabelStore(tmp_path / "source")
    asyncio.run(source.set("conv", "turn-1", "Exported"))
    exported = tmp_path / f"labels{suffix}"
    source.export_labels(exported)

    target = LabelStore(tmp_path / "target")
    asyncio.run(target.set("conv", "turn-3", "Existing"))
    merged = target.import_labels(exported)

    assert merged == {"conv": {"turn-3": "Existing", "turn-1": "Exported"}}
    assert target.load_all() == merged


def test_clear_removes_file(tmp_path) -> None:
    store = LabelStore(tmp_path)
    asyncio.run(store.set("conv", "turn-1", "x"))

    store.clear()

    assert not store.labels_file.exists()
    assert store.load_all() == {}


def test_clean_label() -> None:
    assert clean_label(None) is None
    assert clean_label("   ") is None
    assert clean_label(" ok ") == "ok"
    assert clean_label("y" * 60) == "y" * 50


def test_collapsed_preference_round_trip(tmp_path) -> None:
    preferences = PreferenceStore(tmp_path)
    assert preferences.load_collapsed() is False

    preferences.save_collapsed(True)

    assert PreferenceStore(tmp_path).load_collapsed() is True
    assert json.loads(preferences.state_file.read_text())["collapsed"] is True


@pytest.mark.parametrize("content", ["{not json", "[1, 2]", '"collapsed"'])
def test_corrupt_preferences_default_to_expanded(tmp_path, content) -> None:
    preferences = PreferenceStore(tmp_path)
    preferences.state_file.write_text(content, encoding="utf-8")

    assert preferences.load_collapsed() is False

    preferences.save_collapsed(True)
    assert preferences.load_collapsed() is True
