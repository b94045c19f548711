"""
Generic event fold.

State is rebuilt by feeding each event, in order, to an apply function
that returns the next state. The same apply function must be used for
rehydration and for live application of new events, so an aggregate
rebuilt from history is indistinguishable from one that applied the
events as they happened.
"""

from typing import Callable, Iterable, TypeVar

S = TypeVar("S")
E = TypeVar("E")


def replay(initial: S, events: Iterable[E], apply_fn: Callable[[S, E], S]) -> S:
    """
    Fold events into state.

    Args:
        initial: Starting state (usually the empty state for an id)
        events: Events in the order they were recorded
        apply_fn: Pure function (state, event) -> next state

    Returns:
        State after every event has been applied
    """
    state = initial
    for event in events:
        state = apply_fn(state, event)
    return state
