from __future__ import annotations

"""
Smoke test for the SPAR# wizard (local, offline).

This script simulates "card clicks" by feeding one field at a time into a fresh wizard, then:
- replays the known order-form scenarios and checks their SPAR#
- walks every selection reachable through the wizard and checks each one resolves

It exits non-zero if any scenario disagrees or any reachable selection has no SPAR#.

Usage:
  python3 scripts/smoke_test_wizard.py
  python3 scripts/smoke_test_wizard.py --revision legacy --quiet
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

# Allow running as `python3 scripts/smoke_test_wizard.py` (module imports live at repo root).
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from spar_engine import PATHS, Field, SelectionState, SparError, SparTable, iter_complete_selections, lookup_key
from spar_tables import CURRENT_REVISION, TABLE_LOADERS, load_spar_table
from spar_wizard import SparWizard


@dataclass(frozen=True)
class Scenario:
    name: str
    clicks: tuple[tuple[Field, str], ...]
    expected: Optional[str]


SCENARIOS: tuple[Scenario, ...] = (
    Scenario(
        name="8400 exit only, aux latch, 2in",
        clicks=(
            (Field.SERIES, "80"),
            (Field.DEVICE, "8400"),
            (Field.FUNCTION, "exit_only"),
            (Field.AUX_LATCH, "yes"),
            (Field.THICKNESS, "2"),
        ),
        expected="SPAR10091",
    ),
    Scenario(
        name="8400 exit only, aux latch, 2-9/16in",
        clicks=(
            (Field.SERIES, "80"),
            (Field.DEVICE, "8400"),
            (Field.FUNCTION, "exit_only"),
            (Field.AUX_LATCH, "yes"),
            (Field.THICKNESS, "2-9/16"),
        ),
        expected="SPAR10068",
    ),
    Scenario(
        name="8500 rim exit, 2in",
        clicks=((Field.SERIES, "80"), (Field.DEVICE, "8500"), (Field.THICKNESS, "2")),
        expected="SPAR10080",
    ),
    Scenario(
        name="8400 all other, no aux latch, 2-9/16in",
        clicks=(
            (Field.SERIES, "80"),
            (Field.DEVICE, "8400"),
            (Field.FUNCTION, "all_other"),
            (Field.AUX_LATCH, "no"),
            (Field.THICKNESS, "2-9/16"),
        ),
        expected="SPAR10063",
    ),
)


def _clicks_for(state: SelectionState) -> list[tuple[Field, str]]:
    path = PATHS[str(state.device)]
    return [(f, str(state.get(f))) for f in path.required_fields]


def _run_clicks(table: SparTable, clicks: Sequence[tuple[Field, str]], *, verbose: bool) -> Optional[str]:
    wizard = SparWizard(table)
    for i, (field, value) in enumerate(clicks, start=1):
        snapshot = wizard.set_field(field, value)
        if verbose:
            open_steps = [f.value for f, ok in snapshot.availability.items() if ok]
            print(f"  [{i}/{len(clicks)}] {field.value}={value}  open={open_steps}  result={snapshot.result.code or '-'}")
    return wizard.get_result().code


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--revision",
        default=CURRENT_REVISION,
        choices=sorted(TABLE_LOADERS),
        help="SPAR table revision to check (default: current).",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print failures and the summary.")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s:%(name)s:%(message)s")
    table = load_spar_table(args.revision)
    verbose = not args.quiet
    failures: list[str] = []

    # Scenario codes are only defined for the current table.
    if table.revision == CURRENT_REVISION:
        for scenario in SCENARIOS:
            if verbose:
                print("")
                print(f"SCENARIO: {scenario.name}")
            try:
                code = _run_clicks(table, scenario.clicks, verbose=verbose)
            except SparError as exc:
                failures.append(f"{scenario.name}: {exc}")
                continue
            if code != scenario.expected:
                failures.append(f"{scenario.name}: expected {scenario.expected}, got {code}")

    selections = list(iter_complete_selections())
    for state in selections:
        clicks = _clicks_for(state)
        label = " / ".join(f"{f.value}={v}" for f, v in clicks)
        try:
            code = _run_clicks(table, clicks, verbose=False)
        except SparError as exc:
            failures.append(f"{label}: {exc}")
            continue
        if code is None:
            failures.append(f"{label}: no SPAR# in table {table.revision!r}")
        elif verbose:
            note = "  (unconfirmed)" if lookup_key(state) in table.unconfirmed_keys else ""
            print(f"OK  {label} -> {code}{note}")

    print("")
    print("=" * 72)
    print(f"Table {table.revision!r}: {len(selections)} reachable selections, {len(failures)} failure(s)")
    for failure in failures:
        print(f"FAIL {failure}")
    print("=" * 72)
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main())
