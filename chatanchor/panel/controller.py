"""Top-level panel orchestration: observers, gestures and conversation switches."""

import re
from urllib.parse import urlparse

from chatanchor.agent.bridge import BridgeSummarizer
from chatanchor.config import NavigatorSettings
from chatanchor.document import HostDocument, MutationRecord, Subscription
from chatanchor.errors import PersistenceError, SummarizationError
from chatanchor.html import PanelRenderer
from chatanchor.logging import get_logger
from chatanchor.models.outline import EventType, Outline, PanelControl, PanelEvent, PanelState
from chatanchor.panel.animator import ScrollAnimator
from chatanchor.panel.reconciler import Reconciler
from chatanchor.panel.tracker import ActiveItemTracker
from chatanchor.scheduling import Handle, Scheduler, debounce, throttle
from chatanchor.toc import LabelStore, PreferenceStore, Scanner
from chatanchor.toc.persistence import clean_label

logger = get_logger(__name__)

CONVERSATION_PATTERN = re.compile(r"/c/([0-9A-Za-z_-]+)")
DEFAULT_CONVERSATION = "default"


def conversation_id_from(location: str) -> str:
    """Parse the conversation identifier out of a page URL."""
    match = CONVERSATION_PATTERN.search(urlparse(location or "").path)
    return match.group(1) if match else DEFAULT_CONVERSATION


def format_exchange(question: str, answer: str, max_chars: int = 2000) -> str:
    """Text sent for summarization: the question and, if present, its answer."""
    text = f"User: {question}"
    if answer:
        text += f"\n\nAssistant: {answer}"
    return text[:max_chars]


class PanelController:
    """Wire the document's event streams to the panel subsystems.

    Every change to the panel state is followed by exactly one render.
    """

    def __init__(
        self,
        document: HostDocument,
        scheduler: Scheduler,
        settings: NavigatorSettings | None = None,
        label_store: LabelStore | None = None,
        preferences: PreferenceStore | None = None,
        summarizer: BridgeSummarizer | None = None,
    ):
        """Initialize the controller.

        Args:
            document: The live host document.
            scheduler: Timers and animation frames.
            settings: Navigator settings.
            label_store: Custom label persistence; labels stay in memory when omitted.
            preferences: Collapsed-flag persistence.
            summarizer: Summarization collaborator.
        """
        self.document = document
        self.scheduler = scheduler
        self.settings = settings or NavigatorSettings()
        self.label_store = label_store
        self.preferences = preferences
        self.summarizer = summarizer or BridgeSummarizer(None)

        self.state = PanelState()
        self.scanner = Scanner(
            self.settings.selectors,
            summary_max_length=self.settings.summary_max_length,
            preview_max_length=self.settings.preview_max_length,
            stable_fallback_ids=self.settings.stable_fallback_ids,
        )
        self.tracker = ActiveItemTracker(self.settings.activation_threshold)
        self.renderer = PanelRenderer(rename_max_length=self.settings.rename_max_length)
        self.reconciler = Reconciler(
            document,
            self.scanner,
            self.renderer,
            self.tracker,
            self.state,
            panel_id=self.settings.panel_id,
        )
        self.animator = ScrollAnimator(
            scheduler,
            document,
            duration=self.settings.animation_duration,
            lead_in=self.settings.scroll_lead_in,
        )

        self.mutation_tick = debounce(self._mutation_tick, self.settings.debounce_delay * 2, scheduler)
        self.scroll_tick = throttle(self._scroll_tick, self.settings.throttle_delay, scheduler)
        self.search_input = debounce(self.set_search, self.settings.debounce_delay, scheduler)
        self._tooltip_timer: Handle | None = None
        self._subscriptions: list[Subscription] = []
        self._conversation_token = 0

    @property
    def outline(self) -> Outline:
        return self.reconciler.outline

    @property
    def labels(self) -> dict[str, str]:
        return self.reconciler.labels

    # Lifecycle

    async def start(self) -> None:
        """Create the panel, load persisted state and attach the observers."""
        self.document.ensure_panel(self.settings.panel_id)
        if self.preferences is not None:
            self.state.is_collapsed = self.preferences.load_collapsed()

        await self.sync_conversation()

        self._subscriptions.append(self.document.observe(self._on_mutations))
        self._subscriptions.append(
            self.document.scroll_container.add_scroll_listener(self.scroll_tick)
        )

    def stop(self) -> None:
        """Detach observers and cancel every pending timer and animation."""
        for subscription in self._subscriptions:
            subscription.disconnect()
        self._subscriptions.clear()

        self.mutation_tick.cancel()
        self.search_input.cancel()
        self._cancel_tooltip()
        self.animator.cancel()
        self.state.is_animating = False

    # Event streams

    def _on_mutations(self, records: list[MutationRecord]) -> None:
        self.mutation_tick()

    def _mutation_tick(self) -> None:
        if conversation_id_from(self.document.location) != self.state.conversation_id:
            self.scheduler.spawn(self.sync_conversation())
            return
        self.reconciler.refresh()

    def _scroll_tick(self) -> None:
        if self.tracker.update(self.state, self.outline, self.document.bounding_top):
            self.reconciler.render()

    def _settle(self) -> None:
        """Render once after a busy flag was cleared, catching up on skipped scans."""
        if self.state.busy:
            self.reconciler.render()
        else:
            self.reconciler.refresh()

    async def sync_conversation(self) -> bool:
        """Reload labels when the page now shows a different conversation.

        Returns:
            True when the conversation changed.
        """
        conversation_id = conversation_id_from(self.document.location)
        if conversation_id == self.state.conversation_id:
            return False

        self._conversation_token += 1
        token = self._conversation_token

        labels = {}
        if self.label_store is not None:
            try:
                labels = await self.label_store.get(conversation_id)
            except PersistenceError as e:
                logger.warning("Could not load labels for %s: %s", conversation_id, e)

        if token != self._conversation_token:
            return False

        logger.debug("Switched to conversation %s", conversation_id)
        self.animator.cancel()
        self._cancel_tooltip()
        self.state.conversation_id = conversation_id
        self.state.active_entry_id = None
        self.state.editing_entry_id = None
        self.state.summarizing_entry_id = None
        self.state.jump_target_id = None
        self.state.tooltip_entry_id = None
        self.state.is_animating = False
        self.reconciler.labels = labels
        self.reconciler.refresh()
        return True

    # User actions

    def scroll_to_entry(self, entry_id: str) -> bool:
        """Animate the transcript to an entry; the tracker pauses until it lands."""
        entry = self.outline.find(entry_id)
        if entry is None or entry.node() is None:
            return False

        self.state.jump_target_id = entry_id
        self.state.is_animating = self.animator.animate_to(
            entry_id,
            self.outline,
            self.document.scroll_container,
            on_complete=self._animation_complete,
            on_abort=self._animation_aborted,
        )
        self.reconciler.render()
        return self.state.is_animating

    def _animation_complete(self, entry_id: str) -> None:
        self.state.is_animating = False
        self.state.active_entry_id = entry_id
        self.reconciler.render()
        if self.reconciler.stale:
            self.mutation_tick()

    def _animation_aborted(self, entry_id: str) -> None:
        self.state.is_animating = False
        self._settle()

    def set_search(self, term: str) -> None:
        self.state.search_term = term
        self.reconciler.render()

    def start_rename(self, entry_id: str) -> bool:
        """Switch an entry to inline editing; refused while a label request runs."""
        if self.state.summarizing_entry_id is not None:
            return False
        if self.outline.find(entry_id) is None:
            return False

        self._cancel_tooltip()
        self.state.tooltip_entry_id = None
        self.state.editing_entry_id = entry_id
        self.reconciler.render()
        return True

    async def confirm_rename(self, value: str) -> None:
        """Store the edited label; an empty value restores the summary text."""
        entry_id = self.state.editing_entry_id
        if entry_id is None:
            return

        conversation_id = self.state.conversation_id
        label = clean_label(value, self.settings.rename_max_length)
        self._apply_label(entry_id, label)
        self.state.editing_entry_id = None
        self._settle()

        await self._persist_label(conversation_id, entry_id, label)

    def cancel_rename(self) -> None:
        if self.state.editing_entry_id is None:
            return
        self.state.editing_entry_id = None
        self._settle()

    async def summarize_entry(self, entry_id: str) -> bool:
        """Replace an entry's label with an AI-generated one.

        Returns:
            True when a new label was applied.
        """
        if self.state.editing_entry_id is not None or self.state.summarizing_entry_id is not None:
            return False
        entry = self.outline.find(entry_id)
        if entry is None:
            return False

        conversation_id = self.state.conversation_id
        text = format_exchange(
            self.scanner.question_text(entry),
            self.scanner.answer_text(entry),
            self.settings.summarize_max_chars,
        )

        self.state.summarizing_entry_id = entry_id
        self.reconciler.render()

        label = None
        try:
            label = clean_label(
                await self.summarizer.summarize(text), self.settings.rename_max_length
            )
        except SummarizationError as e:
            logger.warning("Could not summarize entry %s: %s", entry_id, e)
        finally:
            if self.state.summarizing_entry_id == entry_id:
                self.state.summarizing_entry_id = None

        if label is not None and self.state.conversation_id != conversation_id:
            logger.debug("Dropping label for %s after conversation switch", entry_id)
            label = None

        if label is not None:
            self._apply_label(entry_id, label)
        self._settle()

        if label is None:
            return False
        await self._persist_label(conversation_id, entry_id, label)
        return True

    def toggle_collapsed(self) -> None:
        self.state.is_collapsed = not self.state.is_collapsed
        if self.preferences is not None:
            try:
                self.preferences.save_collapsed(self.state.is_collapsed)
            except PersistenceError as e:
                logger.warning("Could not save panel preference: %s", e)
        self._settle()

    def hover_entry(self, entry_id: str) -> None:
        """Show the entry's preview after the tooltip delay."""
        self._cancel_tooltip()
        self._tooltip_timer = self.scheduler.call_later(
            self.settings.tooltip_delay, self._show_tooltip, entry_id
        )

    def leave_entry(self) -> None:
        self._cancel_tooltip()
        if self.state.tooltip_entry_id is not None:
            self.state.tooltip_entry_id = None
            self.reconciler.render()

    def _show_tooltip(self, entry_id: str) -> None:
        self._tooltip_timer = None
        if self.state.editing_entry_id is not None or self.outline.find(entry_id) is None:
            return
        self.state.tooltip_entry_id = entry_id
        self.reconciler.render()

    def _cancel_tooltip(self) -> None:
        if self._tooltip_timer is not None:
            self._tooltip_timer.cancel()
            self._tooltip_timer = None

    def dispatch(self, event: PanelEvent):
        """Translate a user gesture on the panel into an action."""
        control = event.control

        if event.type is EventType.MOUSEDOWN and control is PanelControl.ITEM:
            return self.scroll_to_entry(event.entry_id)

        if event.type is EventType.CLICK:
            if control is PanelControl.RENAME_BUTTON:
                return self.start_rename(event.entry_id)
            if control is PanelControl.SUMMARIZE_BUTTON:
                return self.scheduler.spawn(self.summarize_entry(event.entry_id))
            if control is PanelControl.COLLAPSE_BUTTON:
                return self.toggle_collapsed()

        if event.type is EventType.KEYDOWN and control is PanelControl.RENAME_INPUT:
            if event.key == "Enter":
                return self.scheduler.spawn(self.confirm_rename(event.value or ""))
            if event.key == "Escape":
                return self.cancel_rename()

        if event.type is EventType.INPUT and control is PanelControl.SEARCH_INPUT:
            return self.search_input(event.value or "")

        if control is PanelControl.ITEM:
            if event.type is EventType.MOUSEENTER:
                return self.hover_entry(event.entry_id)
            if event.type is EventType.MOUSELEAVE:
                return self.leave_entry()

        return None

    # Labels

    def _apply_label(self, entry_id: str, label: str | None) -> None:
        if label is None:
            self.labels.pop(entry_id, None)
        else:
            self.labels[entry_id] = label

    async def _persist_label(self, conversation_id: str | None, entry_id: str, label: str | None) -> None:
        if self.label_store is None or conversation_id is None:
            return
        try:
            await self.label_store.set(conversation_id, entry_id, label)
        except PersistenceError as e:
            logger.warning("Could not save label for %s: %s", entry_id, e)
