from __future__ import annotations

import unittest

from spar_engine import SelectionState, SparTableError, find_table_gaps, resolve
from spar_tables import (
    CURRENT_REVISION,
    LEGACY_REVISION,
    load_current_spar_table,
    load_legacy_spar_table,
    load_spar_table,
)


class TestSparTables(unittest.TestCase):
    def test_current_table_has_no_gaps(self) -> None:
        self.assertEqual(find_table_gaps(load_current_spar_table()), [])

    def test_legacy_table_has_no_gaps(self) -> None:
        self.assertEqual(find_table_gaps(load_legacy_spar_table()), [])

    def test_current_table_codes_are_unique(self) -> None:
        codes = list(load_current_spar_table().codes.values())
        self.assertEqual(len(codes), len(set(codes)))

    def test_current_table_flags_placeholder_codes(self) -> None:
        table = load_current_spar_table()
        unconfirmed = sorted(table.codes[k] for k in table.unconfirmed_keys)
        self.assertEqual(unconfirmed, ["SPAR10066", "SPAR10069", "SPAR10081", "SPAR10087", "SPAR10089", "SPAR10092"])
        confirmed = sorted(c for k, c in table.codes.items() if k not in table.unconfirmed_keys)
        self.assertEqual(confirmed, ["SPAR10063", "SPAR10068", "SPAR10080", "SPAR10091"])

    def test_legacy_table_has_no_placeholders(self) -> None:
        self.assertEqual(load_legacy_spar_table().unconfirmed_keys, frozenset())

    def test_current_table_collapses_rim_exit_to_all_other(self) -> None:
        rim_keys = [k for k in load_current_spar_table().codes if k[1] == "8500"]
        self.assertEqual(sorted(rim_keys), [("80", "8500", "all_other", "2"), ("80", "8500", "all_other", "2-9/16")])

    def test_legacy_codes_are_descriptive(self) -> None:
        table = load_legacy_spar_table()
        state = SelectionState(series="80", device="8400", function="exit_only", aux_latch="yes", thickness="2")
        self.assertEqual(resolve(state, table).code, "SPAR-80-8400-10-106-T200")
        rim = SelectionState(series="80", device="8500", function="all_other", thickness="2-9/16")
        self.assertEqual(resolve(rim, table).code, "SPAR-80-8500-AF-T256")

    def test_load_by_revision_name(self) -> None:
        self.assertEqual(load_spar_table().revision, CURRENT_REVISION)
        self.assertEqual(load_spar_table(" Legacy ").revision, LEGACY_REVISION)
        self.assertEqual(load_spar_table("").revision, CURRENT_REVISION)

    def test_unknown_revision_raises(self) -> None:
        with self.assertRaises(SparTableError):
            load_spar_table("2019")


if __name__ == "__main__":
    unittest.main()
