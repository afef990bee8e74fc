from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Optional, Tuple

from spar_engine import (
    FIELD_DOMAINS,
    FIELD_ORDER,
    PATHS,
    Field,
    InvalidValueError,
    ResolutionResult,
    SelectionState,
    SparTable,
    availability,
    coerce_field,
    resolve,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WizardSnapshot:
    state: SelectionState
    availability: Mapping[Field, bool]
    result: ResolutionResult


@dataclass(frozen=True)
class StateChange:
    kind: str  # "set" or "reset"
    previous: WizardSnapshot
    current: WizardSnapshot
    field: Optional[Field] = None
    value: Optional[str] = None
    cleared_fields: Tuple[Field, ...] = ()


Listener = Callable[[StateChange], None]


def _snapshot(state: SelectionState, table: SparTable) -> WizardSnapshot:
    return WizardSnapshot(
        state=state,
        availability=MappingProxyType(availability(state)),
        result=resolve(state, table),
    )


class SparWizard:
    """
    One user's pass through the SPAR# wizard.

    `set_field` and `reset` are the only ways to change the selection. Each successful call
    recomputes availability and the resolved SPAR# in one step and then notifies subscribers
    with a `StateChange`. Listeners run after the internal lock is released.
    """

    def __init__(self, table: SparTable) -> None:
        self._table = table
        self._lock = threading.RLock()
        self._current = _snapshot(SelectionState(), table)
        self._listeners: List[Listener] = []

    @property
    def table(self) -> SparTable:
        return self._table

    def snapshot(self) -> WizardSnapshot:
        with self._lock:
            return self._current

    def get_state(self) -> SelectionState:
        return self.snapshot().state

    def get_availability(self) -> Dict[Field, bool]:
        return dict(self.snapshot().availability)

    def get_result(self) -> ResolutionResult:
        return self.snapshot().result

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    def set_field(self, field: object, value: object) -> WizardSnapshot:
        f = coerce_field(field)
        with self._lock:
            previous = self._current
            if not isinstance(value, str) or value not in FIELD_DOMAINS[f]:
                logger.info("Rejected %s=%r: not one of %s", f.value, value, FIELD_DOMAINS[f])
                raise InvalidValueError(f.value, value, f"expected one of {', '.join(FIELD_DOMAINS[f])}")
            if not previous.availability[f]:
                logger.info("Rejected %s=%r: step not available", f.value, value)
                raise InvalidValueError(f.value, value, "step is not available for the current selection")
            if previous.state.get(f) == value:
                return previous

            state = previous.state.with_value(f, value)
            cleared: List[Field] = []
            for downstream in FIELD_ORDER[FIELD_ORDER.index(f) + 1 :]:
                if state.get(downstream) is not None:
                    cleared.append(downstream)
                    state = state.with_value(downstream, None)

            if f is Field.DEVICE:
                for fixed_field, fixed_value in PATHS[value].fixed_values.items():
                    state = state.with_value(fixed_field, fixed_value)

            current = _snapshot(state, self._table)
            self._current = current
            listeners = list(self._listeners)

        logger.debug(
            "Set %s=%s (cleared %s) -> %s",
            f.value,
            value,
            [c.value for c in cleared] or "nothing",
            current.result.code or "no result",
        )
        change = StateChange(
            kind="set",
            previous=previous,
            current=current,
            field=f,
            value=value,
            cleared_fields=tuple(cleared),
        )
        for listener in listeners:
            listener(change)
        return current

    def reset(self) -> WizardSnapshot:
        with self._lock:
            previous = self._current
            current = _snapshot(SelectionState(), self._table)
            self._current = current
            listeners = list(self._listeners)

        cleared = tuple(f for f in FIELD_ORDER if previous.state.get(f) is not None)
        logger.debug("Reset wizard (cleared %s)", [c.value for c in cleared] or "nothing")
        change = StateChange(kind="reset", previous=previous, current=current, cleared_fields=cleared)
        for listener in listeners:
            listener(change)
        return current
