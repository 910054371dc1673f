"""HTML rendering of the outline panel."""

from dataclasses import dataclass

from jinja2 import Environment

from chatanchor.models.outline import Entry, Outline, PanelState

PANEL_TEMPLATE = """\
<div class="ca-panel{% if state.is_collapsed %} ca-collapsed{% endif %}">
<div class="ca-header">
<div class="ca-title"><span>{{ title }}</span></div>
<div class="ca-header-actions"><button class="ca-btn ca-btn-collapse" data-control="collapse" title="{{ 'Expand panel' if state.is_collapsed else 'Collapse panel' }}">{{ '+' if state.is_collapsed else '×' }}</button></div>
</div>
<div class="ca-search"><input type="text" class="ca-search-input" data-control="search" placeholder="Search messages..." value="{{ state.search_term }}"></div>
<div class="ca-list">
{% for row in rows %}
{% if row.editing %}
<div class="ca-item ca-item-editing" data-id="{{ row.entry.id }}"><input class="ca-rename-input" data-control="rename-input" maxlength="{{ rename_max_length }}" value="{{ row.name }}"></div>
{% else %}
<div class="ca-item{% if row.active %} ca-item-active{% endif %}{% if row.summarizing %} ca-item-summarizing{% endif %}" data-id="{{ row.entry.id }}" data-fulltext="{{ row.entry.preview_text }}"><span class="ca-item-indicator{% if row.jump_target %} ca-indicator-active{% endif %}"></span><span class="ca-item-type ca-type-user">Q{{ row.entry.index }}</span><span class="ca-item-summary">{{ row.name }}</span><button class="ca-item-rename-btn" data-control="rename" title="Rename">✎</button><button class="ca-item-summarize-btn" data-control="summarize" title="Summarize"{% if row.summarizing %} disabled{% endif %}>✦</button></div>
{% endif %}
{% else %}
<div class="ca-empty">No messages</div>
{% endfor %}
</div>
{% if tooltip %}
<div class="ca-tooltip" data-id="{{ tooltip.id }}">{{ tooltip.preview_text }}</div>
{% endif %}
</div>
"""


def display_name(entry: Entry, labels: dict[str, str]) -> str:
    """Custom label of an entry, falling back to its summary text."""
    return labels.get(entry.id) or entry.summary_text


def filter_entries(outline: Outline, labels: dict[str, str], search_term: str) -> list[Entry]:
    """Entries whose display name or summary contains the search term."""
    term = search_term.strip().lower()
    if not term:
        return list(outline)
    return [
        entry
        for entry in outline
        if term in display_name(entry, labels).lower() or term in entry.summary_text.lower()
    ]


@dataclass
class Row:
    entry: Entry
    name: str
    active: bool
    editing: bool
    summarizing: bool
    jump_target: bool


class PanelRenderer:
    """Render the panel markup for an outline and the current panel state.

    The output is a pure function of its inputs, so two renders of the same
    inputs compare equal.
    """

    def __init__(self, title: str = "Conversation outline", rename_max_length: int = 50):
        """Initialize the renderer.

        Args:
            title: Panel heading.
            rename_max_length: maxlength of the inline rename input.
        """
        self.title = title
        self.rename_max_length = rename_max_length
        self.env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self.template = self.env.from_string(PANEL_TEMPLATE)

    def rows(self, outline: Outline, state: PanelState, labels: dict[str, str]) -> list[Row]:
        return [
            Row(
                entry=entry,
                name=display_name(entry, labels),
                active=entry.id == state.active_entry_id,
                editing=entry.id == state.editing_entry_id,
                summarizing=entry.id == state.summarizing_entry_id,
                jump_target=entry.id == state.jump_target_id,
            )
            for entry in filter_entries(outline, labels, state.search_term)
        ]

    def render(self, outline: Outline, state: PanelState, labels: dict[str, str]) -> str:
        """Render the complete panel body."""
        return self.template.render(
            title=self.title,
            state=state,
            rows=self.rows(outline, state, labels),
            tooltip=outline.find(state.tooltip_entry_id),
            rename_max_length=self.rename_max_length,
        )
