from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


class Field(str, Enum):
    SERIES = "series"
    DEVICE = "device"
    FUNCTION = "function"
    AUX_LATCH = "auxLatch"
    THICKNESS = "thickness"


class SparError(ValueError):
    pass


class InvalidValueError(SparError):
    def __init__(self, field: object, value: object, reason: str) -> None:
        super().__init__(f"Cannot set {field!s} to {value!r}: {reason}")
        self.field = field
        self.value = value
        self.reason = reason


class SparTableError(SparError):
    pass


SERIES_80 = "80"
DEVICE_CVR_EXIT = "8400"
DEVICE_RIM_EXIT = "8500"
FUNCTION_EXIT_ONLY = "exit_only"
FUNCTION_ALL_OTHER = "all_other"

FIELD_ORDER: Tuple[Field, ...] = (
    Field.SERIES,
    Field.DEVICE,
    Field.FUNCTION,
    Field.AUX_LATCH,
    Field.THICKNESS,
)

FIELD_DOMAINS: Mapping[Field, Tuple[str, ...]] = {
    Field.SERIES: (SERIES_80,),
    Field.DEVICE: (DEVICE_CVR_EXIT, DEVICE_RIM_EXIT),
    Field.FUNCTION: (FUNCTION_EXIT_ONLY, FUNCTION_ALL_OTHER),
    Field.AUX_LATCH: ("yes", "no"),
    Field.THICKNESS: ("2", "2-9/16"),
}

# Attribute names on SelectionState, in FIELD_ORDER.
_ATTRS: Mapping[Field, str] = {
    Field.SERIES: "series",
    Field.DEVICE: "device",
    Field.FUNCTION: "function",
    Field.AUX_LATCH: "aux_latch",
    Field.THICKNESS: "thickness",
}


@dataclass(frozen=True)
class SelectionState:
    series: Optional[str] = None
    device: Optional[str] = None
    function: Optional[str] = None
    aux_latch: Optional[str] = None
    thickness: Optional[str] = None

    def get(self, f: Field) -> Optional[str]:
        return getattr(self, _ATTRS[f])

    def with_value(self, f: Field, value: Optional[str]) -> "SelectionState":
        return replace(self, **{_ATTRS[f]: value})

    def as_dict(self) -> Dict[str, Optional[str]]:
        return {f.value: self.get(f) for f in FIELD_ORDER}


@dataclass(frozen=True)
class DevicePath:
    device: str
    # Fields the user must answer, in step order.
    required_fields: Tuple[Field, ...]
    # Fields that make up the table key, in key order.
    key_fields: Tuple[Field, ...]
    fixed_values: Mapping[Field, str] = field(default_factory=dict)


PATHS: Mapping[str, DevicePath] = {
    DEVICE_CVR_EXIT: DevicePath(
        device=DEVICE_CVR_EXIT,
        required_fields=FIELD_ORDER,
        key_fields=FIELD_ORDER,
    ),
    DEVICE_RIM_EXIT: DevicePath(
        device=DEVICE_RIM_EXIT,
        required_fields=(Field.SERIES, Field.DEVICE, Field.THICKNESS),
        key_fields=(Field.SERIES, Field.DEVICE, Field.FUNCTION, Field.THICKNESS),
        fixed_values={Field.FUNCTION: FUNCTION_ALL_OTHER},
    ),
}


@dataclass(frozen=True)
class SparTable:
    revision: str
    # key: path key tuple (see DevicePath.key_fields) -> SPAR#
    codes: Mapping[Tuple[str, ...], str]
    # keys whose code is a placeholder still awaiting sign-off
    unconfirmed_keys: FrozenSet[Tuple[str, ...]] = frozenset()


@dataclass(frozen=True)
class ResolutionResult:
    code: Optional[str] = None
    missing_fields: Tuple[Field, ...] = ()
    key: Optional[Tuple[str, ...]] = None
    confirmed: bool = True

    @property
    def is_resolved(self) -> bool:
        return self.code is not None


def coerce_field(value: object) -> Field:
    if isinstance(value, Field):
        return value
    try:
        return Field(str(value))
    except ValueError:
        raise InvalidValueError(value, None, "unknown field") from None


def path_for(state: SelectionState) -> Optional[DevicePath]:
    if state.device is None:
        return None
    return PATHS.get(state.device)


def availability(state: SelectionState) -> Dict[Field, bool]:
    """
    Which fields may be answered right now.

    Path B (8500) never exposes `function`, even though it carries a fixed value.
    """
    is_cvr = state.device == DEVICE_CVR_EXIT
    is_rim = state.device == DEVICE_RIM_EXIT
    return {
        Field.SERIES: True,
        Field.DEVICE: state.series is not None,
        Field.FUNCTION: is_cvr,
        Field.AUX_LATCH: is_cvr and state.function is not None,
        Field.THICKNESS: (is_cvr and state.aux_latch is not None) or is_rim,
    }


def missing_required_fields(state: SelectionState) -> Tuple[Field, ...]:
    path = path_for(state)
    if path is None:
        # no device yet, or one without a path: device is what is missing
        return tuple(f for f in (Field.SERIES,) if state.series is None) + (Field.DEVICE,)
    return tuple(f for f in path.required_fields if state.get(f) is None)


def lookup_key(state: SelectionState) -> Optional[Tuple[str, ...]]:
    """
    Build the table key for a complete selection, or None when the selection is incomplete.
    """
    path = path_for(state)
    if path is None or missing_required_fields(state):
        return None
    parts: List[str] = []
    for f in path.key_fields:
        value = path.fixed_values.get(f) or state.get(f)
        if value is None:
            return None
        parts.append(value)
    return tuple(parts)


def resolve(state: SelectionState, table: SparTable) -> ResolutionResult:
    missing = missing_required_fields(state)
    if missing:
        return ResolutionResult(missing_fields=missing)

    key = lookup_key(state)
    code = table.codes.get(key)
    if code is None:
        logger.warning("No SPAR# entry in table %r for key %s", table.revision, key)
        return ResolutionResult(key=key)
    return ResolutionResult(code=code, key=key, confirmed=key not in table.unconfirmed_keys)


def iter_complete_selections() -> Iterator[SelectionState]:
    """
    Every complete selection a user can reach by following the availability policy.
    """
    for series in FIELD_DOMAINS[Field.SERIES]:
        for device, path in PATHS.items():
            base = SelectionState(series=series, device=device)
            for f, value in path.fixed_values.items():
                base = base.with_value(f, value)
            open_fields = [f for f in path.required_fields if base.get(f) is None]
            yield from _expand(base, open_fields)


def _expand(state: SelectionState, open_fields: List[Field]) -> Iterator[SelectionState]:
    if not open_fields:
        yield state
        return
    head, rest = open_fields[0], open_fields[1:]
    for value in FIELD_DOMAINS[head]:
        yield from _expand(state.with_value(head, value), rest)


def find_table_gaps(table: SparTable) -> List[Tuple[str, ...]]:
    gaps: List[Tuple[str, ...]] = []
    for state in iter_complete_selections():
        key = lookup_key(state)
        if key is not None and key not in table.codes:
            gaps.append(key)
    return gaps


def validate_table_keys(codes: Mapping[Tuple[str, ...], str]) -> None:
    for key, code in codes.items():
        if len(key) < 2:
            raise SparTableError(f"Table key {key!r} is too short.")
        path = PATHS.get(key[1])
        if path is None:
            raise SparTableError(f"Table key {key!r} names unknown device {key[1]!r}.")
        if len(key) != len(path.key_fields):
            raise SparTableError(
                f"Table key {key!r} has {len(key)} parts; device {path.device} keys have {len(path.key_fields)}."
            )
        for f, part in zip(path.key_fields, key):
            if part not in FIELD_DOMAINS[f]:
                raise SparTableError(f"Table key {key!r}: {part!r} is not a valid {f.value}.")
        if not isinstance(code, str) or not code.strip():
            raise SparTableError(f"Table key {key!r} maps to an empty code.")


def validate_unconfirmed_keys(codes: Mapping[Tuple[str, ...], str], unconfirmed: FrozenSet[Tuple[str, ...]]) -> None:
    stray = sorted(k for k in unconfirmed if k not in codes)
    if stray:
        raise SparTableError(f"Unconfirmed keys {stray!r} have no code in the table.")
