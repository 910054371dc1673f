from __future__ import annotations

import pytest

from chatanchor.panel import ScrollAnimator
from chatanchor.panel.animator import ease_out_cubic
from chatanchor.toc import Scanner


@pytest.fixture
def outline(document):
    return Scanner().scan(document)


def test_ease_out_cubic_endpoints() -> None:
    assert ease_out_cubic(0.0) == 0.0
    assert ease_out_cubic(1.0) == 1.0
    assert ease_out_cubic(0.5) > 0.5


def test_animation_lands_on_entry(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document, duration=500, lead_in=20)
    container = document.scroll_container
    completed = []
    target = outline.by_index(5)

    assert animator.animate_to(target.id, outline, container, on_complete=completed.append)
    assert animator.in_flight

    offsets = []
    while scheduler.pending_frames:
        scheduler.run_frame()
        offsets.append(container.scroll_top)

    # Question 5 is the ninth 300px block
    assert container.scroll_top == 2400 + 20
    assert offsets == sorted(offsets)
    assert completed == [target.id]
    assert not animator.in_flight


def test_animation_follows_target_that_moves_mid_flight(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document, duration=500, lead_in=20)
    container = document.scroll_container
    completed = []
    target = outline.by_index(5)

    animator.animate_to(target.id, outline, container, on_complete=completed.append)
    for _ in range(5):
        scheduler.run_frame()

    # Lazy content above the target finishes loading and grows by 300px
    first_answer = document.select("article")[1]
    document.set_attribute(first_answer, "data-height", "600")

    scheduler.run_frames()

    assert completed == [target.id]
    assert container.scroll_top == 2700 + 20
    assert container.scroll_top == animator.target_offset(target.node(), container)


def test_new_animation_preempts_previous(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document)
    container = document.scroll_container
    completed = []

    animator.animate_to(outline.by_index(3).id, outline, container, on_complete=completed.append)
    scheduler.run_frame()
    scheduler.run_frame()
    animator.animate_to(outline.by_index(6).id, outline, container, on_complete=completed.append)
    scheduler.run_frames()

    assert completed == [outline.by_index(6).id]
    assert container.scroll_top == 3000 + 20


def test_cancel_never_runs_callbacks(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document)
    completed = []

    animator.animate_to(outline.by_index(2).id, outline, document.scroll_container, on_complete=completed.append)
    scheduler.run_frame()
    animator.cancel()
    scheduler.run_frames()
    scheduler.advance(1000)

    assert completed == []
    assert not animator.in_flight


def test_vanished_target_aborts(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document)
    completed, aborted = [], []
    target = outline.by_index(4)

    animator.animate_to(
        target.id,
        outline,
        document.scroll_container,
        on_complete=completed.append,
        on_abort=aborted.append,
    )
    scheduler.run_frame()
    document.remove(target.node())
    scheduler.run_frames()

    assert completed == []
    assert aborted == [target.id]


def test_unknown_entry_does_not_start(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document)

    assert animator.animate_to("missing", outline, document.scroll_container) is False
    assert not scheduler.pending_frames


def test_target_is_clamped_to_scroll_range(document, outline, scheduler) -> None:
    animator = ScrollAnimator(scheduler, document)
    container = document.scroll_container
    last = outline.by_index(8)
    # A short final answer leaves too little room below the last question
    document.set_attribute(document.select("article")[-1], "data-height", "50")

    animator.animate_to(last.id, outline, container)
    scheduler.run_frames()

    assert container.scroll_top == container.max_scroll
