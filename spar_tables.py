from __future__ import annotations

from typing import Callable, Dict, FrozenSet, Mapping, Tuple

from spar_engine import SparTable, SparTableError, validate_table_keys, validate_unconfirmed_keys

CURRENT_REVISION = "current"
LEGACY_REVISION = "legacy"


def load_current_spar_table() -> SparTable:
    """
    Hardcoded order-form table: bare SPAR IDs.

    The 8500 Rim Exit collapses to a single `all_other` row per door thickness.
    """
    codes: Dict[Tuple[str, ...], str] = {
        # 8400 CVR Exit: (series, device, function, aux latch, thickness)
        ("80", "8400", "exit_only", "yes", "2"): "SPAR10091",
        ("80", "8400", "exit_only", "yes", "2-9/16"): "SPAR10068",
        ("80", "8400", "exit_only", "no", "2"): "SPAR10089",
        ("80", "8400", "exit_only", "no", "2-9/16"): "SPAR10066",
        ("80", "8400", "all_other", "yes", "2"): "SPAR10092",
        ("80", "8400", "all_other", "yes", "2-9/16"): "SPAR10069",
        ("80", "8400", "all_other", "no", "2"): "SPAR10087",
        ("80", "8400", "all_other", "no", "2-9/16"): "SPAR10063",
        # 8500 Rim Exit: (series, device, function, thickness)
        ("80", "8500", "all_other", "2"): "SPAR10080",
        ("80", "8500", "all_other", "2-9/16"): "SPAR10081",
    }
    # TODO: confirm these IDs against the published order-form list; only 10091, 10068,
    # 10063 and 10080 have been checked. Results on these keys are shown as unconfirmed.
    unconfirmed: FrozenSet[Tuple[str, ...]] = frozenset(
        {
            ("80", "8400", "exit_only", "no", "2"),
            ("80", "8400", "exit_only", "no", "2-9/16"),
            ("80", "8400", "all_other", "yes", "2"),
            ("80", "8400", "all_other", "yes", "2-9/16"),
            ("80", "8400", "all_other", "no", "2"),
            ("80", "8500", "all_other", "2-9/16"),
        }
    )
    validate_table_keys(codes)
    validate_unconfirmed_keys(codes, unconfirmed)
    return SparTable(revision=CURRENT_REVISION, codes=codes, unconfirmed_keys=unconfirmed)


def load_legacy_spar_table() -> SparTable:
    """
    First-generation descriptive codes (series-device-function-latch-thickness).

    The 8500 exit_only rows predate the single 8500 function and cannot be reached
    from the wizard, which always resolves 8500 as `all_other`.
    """
    codes: Dict[Tuple[str, ...], str] = {
        ("80", "8400", "exit_only", "yes", "2"): "SPAR-80-8400-10-106-T200",
        ("80", "8400", "exit_only", "yes", "2-9/16"): "SPAR-80-8400-10-106-T256",
        ("80", "8400", "exit_only", "no", "2"): "SPAR-80-8400-10-N106-T200",
        ("80", "8400", "exit_only", "no", "2-9/16"): "SPAR-80-8400-10-N106-T256",
        ("80", "8400", "all_other", "yes", "2"): "SPAR-80-8400-AF-106-T200",
        ("80", "8400", "all_other", "yes", "2-9/16"): "SPAR-80-8400-AF-106-T256",
        ("80", "8400", "all_other", "no", "2"): "SPAR-80-8400-AF-N106-T200",
        ("80", "8400", "all_other", "no", "2-9/16"): "SPAR-80-8400-AF-N106-T256",
        ("80", "8500", "exit_only", "2"): "SPAR-80-8500-10-T200",
        ("80", "8500", "exit_only", "2-9/16"): "SPAR-80-8500-10-T256",
        ("80", "8500", "all_other", "2"): "SPAR-80-8500-AF-T200",
        ("80", "8500", "all_other", "2-9/16"): "SPAR-80-8500-AF-T256",
    }
    validate_table_keys(codes)
    return SparTable(revision=LEGACY_REVISION, codes=codes)


TABLE_LOADERS: Mapping[str, Callable[[], SparTable]] = {
    CURRENT_REVISION: load_current_spar_table,
    LEGACY_REVISION: load_legacy_spar_table,
}


def load_spar_table(revision: str = CURRENT_REVISION) -> SparTable:
    name = (revision or CURRENT_REVISION).strip().lower()
    loader = TABLE_LOADERS.get(name)
    if loader is None:
        known = ", ".join(sorted(TABLE_LOADERS))
        raise SparTableError(f"Unknown SPAR table revision {revision!r} (known: {known}).")
    return loader()
