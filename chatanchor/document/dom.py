"""Headless model of the host page: a mutable DOM with block layout and scrolling."""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup, Tag

from chatanchor.config import ScanSelectors

MutationCallback = Callable[[list["MutationRecord"]], None]


@dataclass(frozen=True)
class MutationRecord:
    """A single change applied to the document."""

    kind: str
    target: Any


class Subscription:
    """Handle returned by observe/listen calls; disconnect() detaches it."""

    def __init__(self, registry: list, callback: Callable):
        self._registry = registry
        self._callback = callback
        self.connected = True

    def disconnect(self) -> None:
        if not self.connected:
            return
        self.connected = False
        for i, cb in enumerate(self._registry):
            if cb is self._callback:
                del self._registry[i]
                break


class ScrollContainer:
    """The scrollable viewport the transcript lives in."""

    def __init__(
        self,
        document: "HostDocument",
        node: Tag | None = None,
        top: float = 0.0,
        height: float = 800.0,
        scroll_padding_top: float = 0.0,
    ):
        self.document = document
        self.node = node
        self.top = top
        self.height = height
        self.scroll_padding_top = scroll_padding_top
        self.scroll_top = 0.0
        self._listeners: list[Callable[[], None]] = []

    @property
    def scroll_height(self) -> float:
        return self.document.content_height()

    @property
    def max_scroll(self) -> float:
        return max(0.0, self.scroll_height - self.height)

    def bounding_top(self) -> float:
        return self.top

    def scroll_to(self, offset: float) -> float:
        """Move the viewport, clamped to the scrollable range.

        Scroll listeners fire only when the offset actually changes.
        """
        clamped = min(max(0.0, offset), self.max_scroll)
        if clamped != self.scroll_top:
            self.scroll_top = clamped
            for listener in list(self._listeners):
                listener()
        return self.scroll_top

    def add_scroll_listener(self, listener: Callable[[], None]) -> Subscription:
        self._listeners.append(listener)
        return Subscription(self._listeners, listener)


class HostDocument:
    """A live transcript document whose nodes may be rebuilt at any time.

    Conversation turns are laid out as stacked blocks. A block's height comes
    from its ``data-height`` attribute, falling back to a default height.
    """

    def __init__(
        self,
        markup: str,
        selectors: ScanSelectors | None = None,
        *,
        location: str = "",
        viewport_height: float = 800.0,
        container_top: float = 0.0,
        scroll_padding_top: float = 0.0,
        default_block_height: float = 120.0,
    ):
        self.soup = BeautifulSoup(markup, "html.parser")
        self.selectors = selectors or ScanSelectors()
        self.location = location
        self.default_block_height = default_block_height
        self._observers: list[MutationCallback] = []
        self.scroll_container = ScrollContainer(
            self,
            node=self.soup.select_one(self.selectors.scroll_container),
            top=container_top,
            height=viewport_height,
            scroll_padding_top=scroll_padding_top,
        )

    @classmethod
    def from_file(cls, path: str | Path, **kwargs) -> "HostDocument":
        """Load a saved transcript page."""
        return cls(Path(path).read_text(encoding="utf-8"), **kwargs)

    # Queries

    def select(self, selector: str) -> list[Tag]:
        return self.soup.select(selector)

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def find_by_id(self, element_id: str) -> Tag | None:
        return self.soup.find(id=element_id)

    # Layout

    def blocks(self) -> list[Tag]:
        return self.soup.select(self.selectors.turn)

    def block_height(self, block: Tag) -> float:
        try:
            return float(block.get("data-height", self.default_block_height))
        except (TypeError, ValueError):
            return self.default_block_height

    def content_height(self) -> float:
        return sum(self.block_height(block) for block in self.blocks())

    def content_offset(self, node: Tag | None) -> float | None:
        """Offset of the node's block from the top of the scrollable content."""
        if node is None:
            return None

        blocks = self.blocks()
        candidates = [node, *node.parents]
        offset = 0.0
        for block in blocks:
            # Tags compare structurally, identity is what matters here
            if any(block is candidate for candidate in candidates):
                return offset
            offset += self.block_height(block)
        return None

    def bounding_top(self, node: Tag | None) -> float | None:
        """Viewport-relative top of the node, None when it is not laid out."""
        offset = self.content_offset(node)
        if offset is None:
            return None
        container = self.scroll_container
        return container.top + offset - container.scroll_top

    # Observation

    def observe(self, callback: MutationCallback) -> Subscription:
        """Register a mutation observer for the whole document."""
        self._observers.append(callback)
        return Subscription(self._observers, callback)

    def _notify(self, kind: str, target: Any) -> None:
        records = [MutationRecord(kind=kind, target=target)]
        for callback in list(self._observers):
            callback(records)

    # Mutations

    def _thread(self) -> Tag:
        turns = self.blocks()
        if turns and turns[-1].parent is not None:
            return turns[-1].parent
        return self.soup.find("main") or self.soup.body or self.soup

    def append_turn(self, markup: str) -> Tag | None:
        """Append one or more turns at the end of the transcript."""
        fragment = BeautifulSoup(markup, "html.parser")
        thread = self._thread()
        first = None
        for child in list(fragment.contents):
            thread.append(child.extract())
            if first is None and isinstance(child, Tag):
                first = child
        self._notify("childList", thread)
        return first

    def set_attribute(self, node: Tag, name: str, value: str) -> None:
        node[name] = value
        self._notify("attributes", node)

    def set_text(self, node: Tag, text: str) -> None:
        node.string = text
        self._notify("characterData", node)

    def remove(self, node: Tag) -> None:
        parent = node.parent
        node.extract()
        self._notify("childList", parent)

    def replace_children(self, node: Tag, markup: str) -> None:
        node.clear()
        fragment = BeautifulSoup(markup, "html.parser")
        for child in list(fragment.contents):
            node.append(child.extract())
        self._notify("childList", node)

    def ensure_panel(self, panel_id: str = "chatanchor-panel") -> Tag:
        """Return the panel root, creating it beside ``main`` when missing."""
        panel = self.find_by_id(panel_id)
        if panel is not None:
            return panel

        panel = self.soup.new_tag("aside", id=panel_id)
        main = self.soup.find("main")
        if main is not None and main.parent is not None:
            main.insert_after(panel)
        else:
            (self.soup.body or self.soup).append(panel)
        self._notify("childList", panel.parent)
        return panel

    def write_panel(self, markup: str, panel_id: str = "chatanchor-panel") -> None:
        self.replace_children(self.ensure_panel(panel_id), markup)

    def navigate(self, url: str) -> None:
        """Change the current location, as a single-page app does."""
        self.location = url
        self._notify("navigation", self.soup)

    def __str__(self) -> str:
        return str(self.soup)
