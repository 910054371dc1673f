"""Persistence of custom entry labels and panel preferences."""

import asyncio
import json
from datetime import datetime
from pathlib import Path

import yaml

from chatanchor.errors import PersistenceError
from chatanchor.logging import get_logger

logger = get_logger(__name__)

LABEL_MAX_LENGTH = 50


def clean_label(label: str | None, max_length: int = LABEL_MAX_LENGTH) -> str | None:
    """Trim and cap a label; empty labels collapse to None."""
    if label is None:
        return None
    label = label.strip()[:max_length]
    return label or None


class LabelStore:
    """Custom labels keyed by conversation and entry id, stored as YAML."""

    def __init__(self, config_dir: str | Path = ".chatanchor", max_length: int = LABEL_MAX_LENGTH):
        """Initialize the label store.

        Args:
            config_dir: Directory holding the labels file.
            max_length: Cap applied to every stored label.
        """
        self.config_dir = Path(config_dir)
        self.labels_file = self.config_dir / "labels.yaml"
        self.max_length = max_length

    async def get(self, conversation_id: str) -> dict[str, str]:
        """Load the labels of one conversation.

        Raises:
            PersistenceError: The labels file could not be read.
        """
        conversations = await asyncio.to_thread(self.load_all)
        return dict(conversations.get(conversation_id, {}))

    async def set(self, conversation_id: str, entry_id: str, label: str | None) -> None:
        """Store a label, or delete it when label is None or empty.

        Raises:
            PersistenceError: The labels file could not be written.
        """
        await asyncio.to_thread(self._set_sync, conversation_id, entry_id, label)

    def _set_sync(self, conversation_id: str, entry_id: str, label: str | None) -> None:
        conversations = self.load_all()
        labels = conversations.setdefault(conversation_id, {})

        label = clean_label(label, self.max_length)
        if label is None:
            labels.pop(entry_id, None)
        else:
            labels[entry_id] = label

        if not labels:
            del conversations[conversation_id]

        self.save_all(conversations)

    def load_all(self) -> dict[str, dict[str, str]]:
        """Load every stored conversation's labels."""
        if not self.labels_file.exists():
            return {}

        try:
            with self.labels_file.open(encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read {self.labels_file}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Could not read {self.labels_file}: not a mapping")
        return self._parse(data)

    def save_all(self, conversations: dict[str, dict[str, str]]) -> None:
        """Replace the stored labels."""
        data = {
            "version": "1.0",
            "updated_at": datetime.now().isoformat(),
            "conversations": conversations,
        }

        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
            with self.labels_file.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not write {self.labels_file}: {e}") from e

    def _parse(self, data: dict) -> dict[str, dict[str, str]]:
        stored = data.get("conversations") or {}
        if not isinstance(stored, dict):
            raise PersistenceError("conversations must be a mapping")

        conversations = {}
        for conversation_id, labels in stored.items():
            if not isinstance(labels, dict):
                continue
            cleaned = {}
            for entry_id, label in labels.items():
                label = clean_label(str(label), self.max_length) if label is not None else None
                if label:
                    cleaned[str(entry_id)] = label
            if cleaned:
                conversations[str(conversation_id)] = cleaned
        return conversations

    def export_labels(self, output_path: str | Path) -> None:
        """Export labels to a standalone YAML or JSON file.

        Args:
            output_path: Path to export to; the suffix picks the format.
        """
        output_path = Path(output_path)

        data = {
            "version": "1.0",
            "exported_at": datetime.now().isoformat(),
            "conversations": self.load_all(),
        }

        if output_path.suffix in (".yaml", ".yml"):
            with output_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False, allow_unicode=True)
        else:
            with output_path.open("w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)

    def import_labels(self, input_path: str | Path) -> dict[str, dict[str, str]]:
        """Merge labels from an exported file into the store.

        Returns:
            The merged conversations.

        Raises:
            PersistenceError: The file is unreadable or not a label export.
        """
        input_path = Path(input_path)

        try:
            with input_path.open(encoding="utf-8") as f:
                if input_path.suffix in (".yaml", ".yml"):
                    data = yaml.safe_load(f) or {}
                else:
                    data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read {input_path}: {e}") from e

        if not isinstance(data, dict):
            raise PersistenceError(f"Could not read {input_path}: not a mapping")

        conversations = self.load_all()
        for conversation_id, labels in self._parse(data).items():
            conversations.setdefault(conversation_id, {}).update(labels)

        self.save_all(conversations)
        return conversations

    def clear(self) -> None:
        """Remove every stored label."""
        if self.labels_file.exists():
            self.labels_file.unlink()


class PreferenceStore:
    """Conversation-independent panel preferences, stored as JSON."""

    def __init__(self, config_dir: str | Path = ".chatanchor"):
        self.config_dir = Path(config_dir)
        self.state_file = self.config_dir / "state.json"

    def load_state(self) -> dict:
        if not self.state_file.exists():
            return {}

        with self.state_file.open(encoding="utf-8") as f:
            state = json.load(f)
        if not isinstance(state, dict):
            raise ValueError(f"{self.state_file} does not hold an object")
        return state

    def save_state(self, state: dict) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

        state["updated_at"] = datetime.now().isoformat()

        with self.state_file.open("w", encoding="utf-8") as f:
            json.dump(state, f, indent=2)

    def load_collapsed(self) -> bool:
        """Whether the panel was left collapsed; False when unknown."""
        try:
            return bool(self.load_state().get("collapsed", False))
        except (OSError, ValueError) as e:
            logger.warning("Could not read panel preferences: %s", e)
            return False

    def save_collapsed(self, collapsed: bool) -> None:
        """Remember the collapsed flag.

        Raises:
            PersistenceError: The preferences file could not be written.
        """
        try:
            state = self.load_state()
        except (OSError, ValueError):
            state = {}
        state["collapsed"] = collapsed
        try:
            self.save_state(state)
        except OSError as e:
            raise PersistenceError(f"Could not write {self.state_file}: {e}") from e
