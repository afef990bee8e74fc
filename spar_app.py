from __future__ import annotations

import base64
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, Optional

import streamlit as st

from spar_engine import (
    DEVICE_CVR_EXIT,
    DEVICE_RIM_EXIT,
    FIELD_ORDER,
    Field,
    InvalidValueError,
    SelectionState,
    SparTable,
    SparTableError,
    find_table_gaps,
    path_for,
)
from spar_tables import CURRENT_REVISION, load_spar_table
from spar_wizard import SparWizard, StateChange, WizardSnapshot

logger = logging.getLogger(__name__)

_LOGO_SVG_PATH = Path(__file__).resolve().parent / "assets" / "logo.svg"
_LOG_HANDLER_NAME = "spar_app"

_WIZARD_KEY = "spar_wizard"
_SCROLL_ANCHOR_KEY = "spar_scroll_anchor"
_ERROR_KEY = "spar_error"
_RESULT_ANCHOR = "spar-result"


def _read_secret_or_env_str(key: str) -> str:
    """
    Read a configuration value from Streamlit Secrets (preferred) or environment variables.

    Returns a stripped string; returns "" when missing.
    """
    val: object = ""
    try:
        # `st.secrets` raises when no secrets.toml exists; env vars are the fallback.
        val = st.secrets.get(key, "")  # type: ignore[attr-defined]
    except Exception:
        val = ""
    if not val:
        val = os.environ.get(key, "")
    if isinstance(val, str):
        return val.strip()
    return str(val).strip() if val is not None else ""


def _configure_logging(level_name: str) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level_name or "INFO").upper(), logging.INFO))
    # Streamlit re-executes the script on every interaction; install the handler once.
    if any(h.get_name() == _LOG_HANDLER_NAME for h in root.handlers):
        return
    handler = logging.StreamHandler()
    handler.set_name(_LOG_HANDLER_NAME)
    handler.setFormatter(logging.Formatter("%(levelname)s:%(name)s:%(message)s"))
    root.addHandler(handler)


@st.cache_resource(show_spinner=False)
def _load_table_cached(revision: str) -> SparTable:
    table = load_spar_table(revision)
    gaps = find_table_gaps(table)
    if gaps:
        logger.warning("SPAR table %r has no code for %d reachable selection(s): %s", table.revision, len(gaps), gaps)
    return table


# region step catalog
@dataclass(frozen=True)
class OptionCard:
    value: str
    label: str
    sublabel: Optional[str] = None
    disabled: bool = False
    image_url: Optional[str] = None


STEP_TITLES: dict[Field, str] = {
    Field.SERIES: "Select Series",
    Field.DEVICE: "Select Device",
    Field.FUNCTION: "Select Function",
    Field.AUX_LATCH: "Auxiliary control (Cylinder + Thumbturn)",
    Field.THICKNESS: "Select Door Thickness",
}


def _option_cards(field: Field, state: SelectionState) -> list[OptionCard]:
    if field is Field.SERIES:
        return [
            OptionCard("80", "80 Series"),
            # Listed for visibility only; not a selectable series yet.
            OptionCard("PE80", "PE80 Series", sublabel="Coming Soon", disabled=True),
        ]
    if field is Field.DEVICE:
        return [
            OptionCard(
                DEVICE_CVR_EXIT,
                "8400 CVR Exit",
                image_url="https://placehold.co/200x150/333333/e0e0e0?text=8400+CVR+Exit",
            ),
            OptionCard(
                DEVICE_RIM_EXIT,
                "8500 Rim Exit",
                image_url="https://placehold.co/200x150/333333/e0e0e0?text=8500+Rim+Exit",
            ),
        ]
    if field is Field.FUNCTION:
        exit_model = "8410" if state.device == DEVICE_CVR_EXIT else "8510"
        return [
            OptionCard("exit_only", f"10- Exit Only ({exit_model})"),
            OptionCard("all_other", "All other functions"),
        ]
    if field is Field.AUX_LATCH:
        return [OptionCard("yes", "Yes"), OptionCard("no", "No")]
    return [OptionCard("2", '2"'), OptionCard("2-9/16", '2-9/16"')]


def _visible_steps(snapshot: WizardSnapshot) -> list[Field]:
    return [f for f in FIELD_ORDER if snapshot.availability.get(f)]


def _step_number(field: Field, state: SelectionState) -> int:
    path = path_for(state)
    order = path.required_fields if path is not None else FIELD_ORDER
    if field in order:
        return order.index(field) + 1
    return FIELD_ORDER.index(field) + 1


def _step_anchor(field: Field) -> str:
    return f"spar-step-{field.value}"


def _show_start_over(snapshot: WizardSnapshot) -> bool:
    return snapshot.state.series is not None or snapshot.result.is_resolved


# endregion step catalog


# region scroll-into-view
def _newly_available_fields(previous: WizardSnapshot, current: WizardSnapshot) -> list[Field]:
    return [
        f for f in FIELD_ORDER if current.availability.get(f) and not previous.availability.get(f)
    ]


def _result_became_available(previous: WizardSnapshot, current: WizardSnapshot) -> bool:
    return current.result.is_resolved and current.result.code != previous.result.code


def _scroll_anchor_for_change(change: StateChange) -> Optional[str]:
    """
    Pick the element to bring into view after a wizard change.

    A freshly resolved SPAR# wins over a newly opened step. Resets never scroll.
    """
    if change.kind == "reset":
        return None
    if _result_became_available(change.previous, change.current):
        return _RESULT_ANCHOR
    opened = _newly_available_fields(change.previous, change.current)
    if opened:
        return _step_anchor(opened[0])
    return None


def _queue_scroll_anchor(change: StateChange) -> None:
    anchor = _scroll_anchor_for_change(change)
    if anchor:
        st.session_state[_SCROLL_ANCHOR_KEY] = anchor


def _maybe_scroll_to_anchor() -> None:
    anchor = st.session_state.pop(_SCROLL_ANCHOR_KEY, None)
    if not anchor:
        return
    st.iframe(
        f"""
<script>
(() => {{
  try {{
    const doc = window.parent.document;
    window.requestAnimationFrame(() => {{
      const el = doc.getElementById("{anchor}");
      if (el) {{
        try {{ el.scrollIntoView({{ behavior: "smooth", block: "start" }}); }} catch (e) {{}}
      }}
    }});
  }} catch (e) {{}}
}})();
</script>
""",
        height=1,
    )


# endregion scroll-into-view


# region session + callbacks
def _get_wizard(table: SparTable) -> SparWizard:
    wizard = st.session_state.get(_WIZARD_KEY)
    if not isinstance(wizard, SparWizard) or wizard.table.revision != table.revision:
        wizard = SparWizard(table)
        wizard.subscribe(_queue_scroll_anchor)
        st.session_state[_WIZARD_KEY] = wizard
    return wizard


def _on_option_click(field_name: str, value: str) -> None:
    wizard = st.session_state.get(_WIZARD_KEY)
    if not isinstance(wizard, SparWizard):
        return
    try:
        wizard.set_field(field_name, value)
    except InvalidValueError as exc:
        st.session_state[_ERROR_KEY] = str(exc)


def _on_start_over() -> None:
    wizard = st.session_state.get(_WIZARD_KEY)
    if isinstance(wizard, SparWizard):
        wizard.reset()
    st.session_state.pop(_ERROR_KEY, None)


# endregion session + callbacks


# region rendering
def _svg_data_uri(path: Path) -> Optional[str]:
    """
    Return a data URI for an SVG file so it can be rendered via <img> in Streamlit.
    """
    try:
        svg = path.read_text(encoding="utf-8")
    except OSError:
        return None
    b64 = base64.b64encode(svg.encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{b64}"


def _render_logo(*, where: Literal["sidebar", "main"]) -> None:
    uri = _svg_data_uri(_LOGO_SVG_PATH)
    if not uri:
        return
    html = (
        '<div style="text-align:center; padding: 0.25rem 0 0.75rem 0;">'
        f'<img src="{uri}" alt="Sargent x McGrory Glass" style="max-width: 100%; height: auto;" />'
        "</div>"
    )
    if where == "sidebar":
        st.sidebar.markdown(html, unsafe_allow_html=True)
    else:
        st.markdown(html, unsafe_allow_html=True)


def _render_step(field: Field, snapshot: WizardSnapshot) -> None:
    number = _step_number(field, snapshot.state)
    selected = snapshot.state.get(field)
    cards = _option_cards(field, snapshot.state)

    st.markdown(f'<div id="{_step_anchor(field)}"></div>', unsafe_allow_html=True)
    with st.container(border=True):
        st.subheader(f"{number}. {STEP_TITLES[field]}")
        cols = st.columns(len(cards))
        for col, card in zip(cols, cards):
            with col:
                if card.image_url:
                    st.image(card.image_url, width="stretch")
                st.button(
                    ("✅ " if selected == card.value else "") + card.label,
                    key=f"spar_{field.value}_{card.value}",
                    type="primary" if selected == card.value else "secondary",
                    disabled=card.disabled,
                    on_click=_on_option_click,
                    args=(field.value, card.value),
                    width="stretch",
                )
                if card.sublabel:
                    st.caption(card.sublabel)


_UNCONFIRMED_NOTE = "This SPAR# has not been confirmed against the published order-form list. Check it before ordering."


def _render_result(snapshot: WizardSnapshot) -> None:
    if not snapshot.result.is_resolved:
        return
    st.markdown(f'<div id="{_RESULT_ANCHOR}"></div>', unsafe_allow_html=True)
    with st.container(border=True):
        st.markdown("### Generated SPAR#")
        st.code(snapshot.result.code, language=None)
        if not snapshot.result.confirmed:
            st.warning(_UNCONFIRMED_NOTE)


def _render_sidebar(table: SparTable, snapshot: WizardSnapshot) -> None:
    _render_logo(where="sidebar")
    st.sidebar.caption("Lookup table")
    st.sidebar.write(f"Revision: **{table.revision}**")
    gaps = find_table_gaps(table)
    if gaps:
        st.sidebar.warning(f"{len(gaps)} selection(s) have no SPAR# in this table.")

    # calls inside the expander go through `st`, not `st.sidebar`, or they land below it
    with st.sidebar.expander("Selections", expanded=True):
        for f in FIELD_ORDER:
            value = snapshot.state.get(f)
            marker = "•" if snapshot.availability.get(f) else "◦"
            st.write(f"{marker} {f.value}: {value or '-'}")
        result = snapshot.result
        if result.is_resolved and result.confirmed:
            st.success(f"SPAR#: {result.code}")
        elif result.is_resolved:
            st.warning(f"SPAR#: {result.code} (unconfirmed)")
        elif result.key is not None:
            st.error("This combination has no SPAR# in the table.")
        else:
            missing = ", ".join(f.value for f in result.missing_fields)
            st.write(f"Waiting on: {missing}")


# endregion rendering


def main() -> None:
    st.set_page_config(page_title="SPAR# Generator", layout="centered")
    _configure_logging(_read_secret_or_env_str("SPAR_LOG_LEVEL") or "INFO")

    revision = _read_secret_or_env_str("SPAR_TABLE_REVISION") or CURRENT_REVISION
    try:
        table = _load_table_cached(revision)
    except SparTableError as exc:
        st.error(str(exc))
        st.stop()

    wizard = _get_wizard(table)
    snapshot = wizard.snapshot()

    _render_logo(where="main")
    st.title("SPAR# Generator")
    st.caption("Follow the steps to generate the correct Special Order Form number.")

    error = st.session_state.pop(_ERROR_KEY, None)
    if error:
        st.error(error)

    for field in _visible_steps(snapshot):
        _render_step(field, snapshot)

    _render_result(snapshot)

    if _show_start_over(snapshot):
        st.button("Start Over", key="spar_start_over", on_click=_on_start_over, width="stretch")

    _render_sidebar(table, snapshot)
    _maybe_scroll_to_anchor()


if __name__ == "__main__":
    main()
