"""Streamlit pages for the Quotation Tracker: dashboard, forms and analytics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import pandas as pd
import streamlit as st

from aggregation import (
    dashboard_stats,
    filter_quotations,
    monthly_trend,
    source_counts,
    status_counts,
    top_clients,
)
from logging_config import setup_logging
from quote_tracker import (
    DEFAULT_SOURCE,
    DEFAULT_STATUS,
    SOURCES,
    STATUS_FILTER_ALL,
    STATUSES,
    Database,
    Quotation,
    QuotationRepository,
    RecordNotFound,
    StoreError,
    load_config,
    source_label,
    status_label,
)
from report_export import ReportFile, export_rows, render_csv, render_pdf

CONFIG = load_config()
DATABASE = Database.from_config(CONFIG)
REPOSITORY = QuotationRepository(DATABASE)

log = logging.getLogger(__name__)

LIST_STATE_KEY = "list_view"
PAGES = {
    "Dashboard": "dashboard",
    "New Quotation": "new_quotation",
    "Analytics": "analytics",
}


# ---------------------------------------------------------------------------
# View state
# ---------------------------------------------------------------------------


@dataclass
class ListViewState:
    """What the quotation list is showing: the fetched rows and the filters."""

    search_term: str = ""
    status_filter: str = STATUS_FILTER_ALL
    quotations: List[Quotation] = field(default_factory=list)
    loaded: bool = False

    def visible(self) -> List[Quotation]:
        return filter_quotations(self.quotations, self.search_term, self.status_filter)

    @property
    def has_filters(self) -> bool:
        return bool(self.search_term) or self.status_filter != STATUS_FILTER_ALL

    def empty_message(self) -> str:
        if self.has_filters:
            return "No quotations found matching your filters"
        return "No quotations yet. Create your first one!"


def refresh_list(
    repository: QuotationRepository, state: ListViewState
) -> Tuple[ListViewState, Optional[str]]:
    """Re-fetch the full table, keeping the previous rows if the store fails."""

    try:
        quotations = repository.list()
    except StoreError:
        log.exception("Error fetching quotations")
        return replace(state, loaded=True), "Failed to load quotations"
    return replace(state, quotations=quotations, loaded=True), None


def delete_quotation(
    repository: QuotationRepository, quotation_id: str, confirmed: bool
) -> bool:
    """Delete ``quotation_id`` once the user has confirmed it.

    Returns True when the store accepted the delete.
    """

    if not confirmed:
        return False
    try:
        repository.delete(quotation_id)
    except StoreError:
        log.exception("Error deleting quotation %s", quotation_id)
        return False
    return True


# ---------------------------------------------------------------------------
# Form helpers
# ---------------------------------------------------------------------------


def form_defaults(quotation: Optional[Quotation], now: datetime) -> Dict[str, Any]:
    if quotation is None:
        return {
            "sl_number": None,
            "date": now.date(),
            "time_in_date": now.date(),
            "time_in_time": now.time().replace(second=0, microsecond=0),
            "client": "",
            "item": "",
            "source": DEFAULT_SOURCE,
            "status": DEFAULT_STATUS,
            "remarks": "",
            "quote_number": "",
            "quoted_date": None,
        }
    return {
        "sl_number": quotation.sl_number,
        "date": quotation.date,
        "time_in_date": quotation.time_in.date(),
        "time_in_time": quotation.time_in.time().replace(second=0, microsecond=0),
        "client": quotation.client,
        "item": quotation.item,
        "source": quotation.source,
        "status": quotation.status,
        "remarks": quotation.remarks or "",
        "quote_number": quotation.quote_number or "",
        "quoted_date": quotation.quoted_date,
    }


def build_quotation_payload(values: Mapping[str, Any]) -> Dict[str, Any]:
    """Turn submitted form values into the fields stored for a quotation."""

    time_in_date: date = values["time_in_date"]
    time_in_time: time = values.get("time_in_time") or time(0, 0)
    payload: Dict[str, Any] = {
        "sl_number": values.get("sl_number"),
        "date": values["date"],
        "time_in": datetime.combine(time_in_date, time_in_time),
        "client": (values.get("client") or "").strip(),
        "item": (values.get("item") or "").strip(),
        "source": values.get("source") or DEFAULT_SOURCE,
        "status": values.get("status") or DEFAULT_STATUS,
        "remarks": (values.get("remarks") or "").strip() or None,
    }
    if "quote_number" in values:
        payload["quote_number"] = (values.get("quote_number") or "").strip() or None
    if "quoted_date" in values:
        payload["quoted_date"] = values.get("quoted_date")
    return payload


def select_options(canonical: Iterable[str], current: Optional[str]) -> Tuple[List[str], int]:
    """Return selectbox options and the index of ``current``.

    A stored value outside the canonical list is appended so that saving the
    form keeps it instead of silently replacing it with the first option.
    """

    options = list(canonical)
    if current and current not in options:
        options.append(current)
    return options, options.index(current) if current in options else 0


# ---------------------------------------------------------------------------
# Display helpers
# ---------------------------------------------------------------------------


def quotations_frame(quotations: List[Quotation]) -> pd.DataFrame:
    columns = ["SL #", "Date", "Client", "Item", "Source", "Status", "Remarks"]
    if not quotations:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(
        [
            {
                "SL #": q.sl_number,
                "Date": q.date.strftime("%d %b %Y"),
                "Client": q.client,
                "Item": q.item,
                "Source": source_label(q.source),
                "Status": status_label(q.status),
                "Remarks": q.remarks or "-",
            }
            for q in quotations
        ],
        columns=columns,
    )


def chart_frame(counts: Mapping[str, int], label: str, value: str = "Quotations") -> pd.DataFrame:
    return pd.DataFrame(list(counts.items()), columns=[label, value])


def share_frame(counts: Mapping[str, int], label: str) -> pd.DataFrame:
    frame = chart_frame(counts, label)
    total = int(frame["Quotations"].sum())
    frame["Share"] = [
        f"{(count / total) * 100:.0f}%" if total else "0%" for count in frame["Quotations"]
    ]
    return frame


def top_client_label(count: int) -> str:
    return f"{count} quotation{'s' if count != 1 else ''}"


def _flash(kind: str, message: str) -> None:
    st.session_state["flash"] = (kind, message)


def _show_flash() -> None:
    flash = st.session_state.pop("flash", None)
    if not flash:
        return
    kind, message = flash
    if kind == "error":
        st.error(message)
    else:
        st.success(message)


def _go_to(page: str, **extra: Any) -> None:
    st.session_state["active_page"] = page
    if page == "dashboard":
        _store_list_state(replace(_list_state(), loaded=False))
    for key, value in extra.items():
        st.session_state[key] = value
    st.rerun()


def _list_state() -> ListViewState:
    state = st.session_state.get(LIST_STATE_KEY)
    if state is None:
        state = ListViewState()
    return state


def _store_list_state(state: ListViewState) -> None:
    st.session_state[LIST_STATE_KEY] = state


def _fetch_list(state: ListViewState) -> ListViewState:
    state, error = refresh_list(REPOSITORY, state)
    st.session_state.pop("export_state", None)
    if error:
        st.toast(error)
    _store_list_state(state)
    return state


# ---------------------------------------------------------------------------
# Pages
# ---------------------------------------------------------------------------


def render_dashboard() -> None:
    header_cols = st.columns([3, 1])
    with header_cols[0]:
        st.header("Quotation Tracker")
        st.caption("Manage and track all your quotations in one place")
    with header_cols[1]:
        if st.button("New Quotation", type="primary"):
            _go_to("new_quotation")

    state = _list_state()
    if not state.loaded:
        state = _fetch_list(state)

    try:
        purchase_orders = REPOSITORY.count_purchase_orders()
    except StoreError:
        log.exception("Error fetching stats")
        st.toast("Failed to load dashboard statistics")
        purchase_orders = 0
    stats = dashboard_stats(state.quotations, purchase_orders)

    metric_cols = st.columns(5)
    metric_cols[0].metric("Total Quotations", stats.total_quotations)
    metric_cols[1].metric("Pending Quotations", stats.pending_quotations)
    metric_cols[2].metric("Confirmed", stats.confirmed_quotations)
    metric_cols[3].metric("Conversion Rate", f"{stats.conversion_rate}%")
    metric_cols[4].metric("Purchase Orders", stats.total_purchase_orders)

    render_quotations_list(state)


def _prepare_exports(visible: List[Quotation]) -> Dict[str, ReportFile]:
    generated_at = datetime.now()
    rows = export_rows(visible)
    return {
        "csv": render_csv(rows, CONFIG.export_basename, generated_at),
        "pdf": render_pdf(rows, CONFIG.export_basename, generated_at),
    }


def _export_downloaded(kind: str, filename: str) -> None:
    log.info("Exported %s report %s", kind, filename)
    st.toast(f"{kind.upper()} exported successfully")


def render_quotations_list(state: ListViewState) -> None:
    st.subheader("Recent Quotations")

    filter_cols = st.columns([3, 1])
    search_term = filter_cols[0].text_input(
        "Search",
        value=state.search_term,
        key="list_search",
        placeholder="Search by client, item, or SL number...",
    )
    status_options, status_index = select_options(
        [STATUS_FILTER_ALL, *STATUSES.keys()], state.status_filter
    )
    status_filter = filter_cols[1].selectbox(
        "Status",
        status_options,
        index=status_index,
        format_func=lambda value: "All Status" if value == STATUS_FILTER_ALL else status_label(value),
        key="list_status",
    )
    if search_term != state.search_term or status_filter != state.status_filter:
        state = replace(state, search_term=search_term, status_filter=status_filter)
        _store_list_state(state)
        st.session_state.pop("export_state", None)

    visible = state.visible()

    action_cols = st.columns(4)
    export_state = st.session_state.setdefault("export_state", {})
    if action_cols[0].button("Prepare exports"):
        try:
            export_state.update(_prepare_exports(visible))
        except Exception:
            log.exception("Error preparing exports")
            st.error("Failed to prepare exports")
    csv_file: Optional[ReportFile] = export_state.get("csv")
    pdf_file: Optional[ReportFile] = export_state.get("pdf")
    with action_cols[1]:
        if csv_file:
            st.download_button(
                "Export CSV",
                data=csv_file.data,
                file_name=csv_file.filename,
                mime=csv_file.mime_type,
                on_click=_export_downloaded,
                args=("csv", csv_file.filename),
            )
        else:
            st.caption("Prepare exports to enable downloads.")
    with action_cols[2]:
        if pdf_file:
            st.download_button(
                "Export PDF",
                data=pdf_file.data,
                file_name=pdf_file.filename,
                mime=pdf_file.mime_type,
                on_click=_export_downloaded,
                args=("pdf", pdf_file.filename),
            )
    if action_cols[3].button("View Analytics"):
        _go_to("analytics")

    _render_delete_confirmation(state)

    if not visible:
        st.info(state.empty_message())
        return

    st.dataframe(quotations_frame(visible), hide_index=True)

    st.markdown("**Actions**")
    for quotation in visible:
        row_cols = st.columns([4, 1, 1])
        row_cols[0].write(f"#{quotation.sl_number} · {quotation.client} · {quotation.item}")
        if row_cols[1].button("Edit", key=f"edit_{quotation.id}"):
            _go_to("edit_quotation", editing_id=quotation.id)
        if row_cols[2].button("Delete", key=f"delete_{quotation.id}"):
            st.session_state["pending_delete"] = quotation.id
            st.rerun()


def _render_delete_confirmation(state: ListViewState) -> None:
    pending = st.session_state.get("pending_delete")
    if not pending:
        return
    st.warning("Are you sure you want to delete this quotation?")
    confirm_cols = st.columns(2)
    confirmed = confirm_cols[0].button("Yes, delete", type="primary")
    declined = confirm_cols[1].button("Cancel")
    if not (confirmed or declined):
        return
    st.session_state.pop("pending_delete", None)
    if confirmed:
        if delete_quotation(REPOSITORY, pending, confirmed=True):
            _flash("success", "Quotation deleted successfully")
        else:
            _flash("error", "Failed to delete quotation")
        # the outcome may be ambiguous, so always re-read the table
        _fetch_list(state)
    st.rerun()


def _quotation_form(form_key: str, defaults: Mapping[str, Any], include_quote_fields: bool):
    """Render the shared create/edit form; returns submitted values or None."""

    source_options, source_index = select_options(SOURCES.keys(), defaults["source"])
    status_options, status_index = select_options(STATUSES.keys(), defaults["status"])
    with st.form(form_key):
        cols = st.columns(2)
        sl_number = cols[0].number_input(
            "SL Number *", value=defaults["sl_number"], step=1, placeholder="e.g., 400"
        )
        quotation_date = cols[1].date_input("Date *", value=defaults["date"])
        time_in_date = cols[0].date_input("Time In (date) *", value=defaults["time_in_date"])
        time_in_time = cols[1].time_input("Time In *", value=defaults["time_in_time"])
        client = cols[0].text_input("Client Name *", value=defaults["client"])
        source = cols[1].selectbox(
            "Source *",
            source_options,
            index=source_index,
            format_func=source_label,
        )
        status = cols[0].selectbox(
            "Status *",
            status_options,
            index=status_index,
            format_func=status_label,
        )
        item = st.text_input("Item/Product *", value=defaults["item"])
        values: Dict[str, Any] = {
            "sl_number": sl_number,
            "date": quotation_date,
            "time_in_date": time_in_date,
            "time_in_time": time_in_time,
            "client": client,
            "item": item,
            "source": source,
            "status": status,
        }
        if include_quote_fields:
            quote_cols = st.columns(2)
            values["quote_number"] = quote_cols[0].text_input(
                "Quote Number", value=defaults["quote_number"]
            )
            values["quoted_date"] = quote_cols[1].date_input(
                "Quoted Date", value=defaults["quoted_date"]
            )
        values["remarks"] = st.text_area(
            "Remarks",
            value=defaults["remarks"],
            placeholder="Add any additional notes or remarks",
        )
        submit_label = "Update Quotation" if include_quote_fields else "Create Quotation"
        submitted = st.form_submit_button(submit_label, type="primary")
    if not submitted:
        return None
    return values


def render_new_quotation() -> None:
    st.header("New Quotation")
    if st.button("Back to Dashboard"):
        _go_to("dashboard")
    values = _quotation_form("new_quotation_form", form_defaults(None, datetime.now()), False)
    if values is None:
        return
    try:
        created = REPOSITORY.insert(build_quotation_payload(values))
    except StoreError as exc:
        log.exception("Error creating quotation")
        st.error(str(exc) or "Failed to create quotation")
        return
    log.info("Quotation %s created from form", created.id)
    _flash("success", "Quotation created successfully!")
    _go_to("dashboard")


def render_edit_quotation() -> None:
    quotation_id = st.session_state.get("editing_id")
    if not quotation_id:
        _go_to("dashboard")
        return
    try:
        quotation = REPOSITORY.get(quotation_id)
    except StoreError:
        log.exception("Error fetching quotation %s", quotation_id)
        _flash("error", "Failed to load quotation")
        st.session_state.pop("editing_id", None)
        _go_to("dashboard")
        return

    st.header("Edit Quotation")
    if st.button("Back to Dashboard"):
        _go_to("dashboard")
    values = _quotation_form(
        f"edit_quotation_form_{quotation.id}", form_defaults(quotation, datetime.now()), True
    )
    if values is None:
        return
    try:
        REPOSITORY.update(quotation.id, build_quotation_payload(values))
    except RecordNotFound:
        log.exception("Quotation %s disappeared before update", quotation.id)
        _flash("error", "Failed to load quotation")
        _go_to("dashboard")
        return
    except StoreError as exc:
        log.exception("Error updating quotation %s", quotation.id)
        st.error(str(exc) or "Failed to update quotation")
        return
    _flash("success", "Quotation updated successfully!")
    st.session_state.pop("editing_id", None)
    _go_to("dashboard")


def render_analytics() -> None:
    if st.button("Back to Dashboard"):
        _go_to("dashboard")
    st.header("Analytics & Insights")
    st.caption("Visual insights into your quotation performance")

    try:
        quotations = REPOSITORY.list()
    except StoreError:
        log.exception("Error fetching analytics")
        st.error("Failed to load analytics")
        return

    if not quotations:
        st.info("No quotations recorded yet.")
        return

    top_cols = st.columns(2)
    with top_cols[0]:
        st.subheader("Status Distribution")
        statuses = share_frame(status_counts(quotations), "Status")
        st.bar_chart(statuses, x="Status", y="Quotations")
        st.dataframe(statuses, hide_index=True)
    with top_cols[1]:
        st.subheader("Source Distribution")
        st.bar_chart(chart_frame(source_counts(quotations), "Source"), x="Source", y="Quotations")

    bottom_cols = st.columns(2)
    with bottom_cols[0]:
        st.subheader("Monthly Trend")
        st.bar_chart(chart_frame(monthly_trend(quotations), "Month"), x="Month", y="Quotations")
    with bottom_cols[1]:
        st.subheader(f"Top {CONFIG.top_clients_limit} Clients")
        for client, count in top_clients(quotations, CONFIG.top_clients_limit):
            client_cols = st.columns([3, 1])
            client_cols[0].markdown(f"**{client}**")
            client_cols[1].caption(top_client_label(count))


def sidebar() -> None:
    labels = list(PAGES.keys())
    st.sidebar.title("Navigation")
    current = st.session_state.get("active_page", "dashboard")
    current_label = next((label for label, slug in PAGES.items() if slug == current), labels[0])
    choice = st.sidebar.radio("Go to", labels, index=labels.index(current_label))
    if PAGES[choice] != current and current != "edit_quotation":
        _go_to(PAGES[choice])
    if current == "edit_quotation" and choice != current_label:
        st.session_state.pop("editing_id", None)
        _go_to(PAGES[choice])


def init_db() -> None:
    DATABASE.init_schema()


def main() -> None:
    st.set_page_config(page_title="Quotation Tracker", layout="wide")
    setup_logging(CONFIG.log_level, CONFIG.data_dir / "logs" if CONFIG.log_to_file else None)
    st.session_state.setdefault("active_page", "dashboard")

    sidebar()
    _show_flash()

    page = st.session_state.get("active_page", "dashboard")
    if page == "new_quotation":
        render_new_quotation()
    elif page == "edit_quotation":
        render_edit_quotation()
    elif page == "analytics":
        render_analytics()
    else:
        render_dashboard()


if __name__ == "__main__":
    init_db()
    main()
