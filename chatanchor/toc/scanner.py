"""Outline scanner for live chat transcripts."""

import hashlib
import itertools
import secrets

from bs4 import Tag

from chatanchor.config import ScanSelectors
from chatanchor.document import HostDocument
from chatanchor.models.outline import Anchor, Entry, Outline

EMPTY_PLACEHOLDER = "(no content)"
ELLIPSIS = "..."

_generations = itertools.count(1)


def generate_id() -> str:
    """Generate a random, non-durable entry identifier."""
    return "ca-" + secrets.token_hex(5)[:9]


def content_id(index: int, text: str) -> str:
    """Derive a fallback identifier from an entry's ordinal and content."""
    content = f"{index}:{text}"
    return "ca-" + hashlib.sha256(content.encode()).hexdigest()[:9]


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, marking the cut with an ellipsis."""
    if len(text) > max_length:
        return text[:max_length] + ELLIPSIS
    return text


def extract_text(element: Tag | None, max_length: int) -> str:
    """Trimmed, truncated text of an element, or a placeholder when empty."""
    text = element.get_text().strip() if element is not None else ""
    if not text:
        return EMPTY_PLACEHOLDER
    return truncate(text, max_length)


class Scanner:
    """Build an outline of question turns from the host document."""

    def __init__(
        self,
        selectors: ScanSelectors | None = None,
        summary_max_length: int = 30,
        preview_max_length: int = 150,
        stable_fallback_ids: bool = True,
    ):
        """Initialize the scanner.

        Args:
            selectors: Structural markers of the host transcript.
            summary_max_length: Display budget of the list label.
            preview_max_length: Display budget of the hover preview.
            stable_fallback_ids: Derive identifiers from content for turns
                without a durable identifier, instead of random tokens.
        """
        self.selectors = selectors or ScanSelectors()
        self.summary_max_length = summary_max_length
        self.preview_max_length = preview_max_length
        self.stable_fallback_ids = stable_fallback_ids

    def scan(self, document: HostDocument) -> Outline:
        """Scan the document from scratch.

        Missing or malformed markup degrades to placeholder text or an empty
        outline; the scan itself never fails.

        Args:
            document: The live host document.

        Returns:
            A fresh outline in document order.
        """
        entries = []
        index = 0

        for turn in document.select(self.selectors.turn):
            if not self.is_question(turn):
                continue

            index += 1
            content = turn.select_one(self.selectors.user_content)
            entries.append(
                Entry(
                    id=self._entry_id(turn, index, content),
                    index=index,
                    summary_text=extract_text(content, self.summary_max_length),
                    preview_text=extract_text(content, self.preview_max_length),
                    anchor=Anchor(turn),
                )
            )

        return Outline(entries, generation=next(_generations))

    def is_question(self, turn: Tag) -> bool:
        """A turn is a question when marked as a user turn or it nests a user message."""
        if turn.get(self.selectors.user_turn_attribute) == "user":
            return True
        return turn.select_one(self.selectors.user_message) is not None

    def _entry_id(self, turn: Tag, index: int, content: Tag | None) -> str:
        durable = turn.get(self.selectors.id_attribute)
        if durable:
            return durable
        if self.stable_fallback_ids:
            text = content.get_text().strip() if content is not None else ""
            return content_id(index, text)
        return generate_id()

    def question_text(self, entry: Entry) -> str:
        """Full, untruncated text of an entry's question."""
        turn = entry.node()
        if turn is None:
            return ""
        content = turn.select_one(self.selectors.user_content)
        return content.get_text().strip() if content is not None else ""

    def answer_text(self, entry: Entry) -> str:
        """Text of the assistant turn that follows an entry's question, if any."""
        turn = entry.node()
        if turn is None:
            return ""
        for sibling in turn.find_next_siblings():
            if self.is_question(sibling):
                break
            answer = sibling.select_one(self.selectors.assistant_message)
            if answer is not None:
                return answer.get_text().strip()
        return ""
