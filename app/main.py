"""
Streamlit Frontend for BillBook

Pages:
1. Bills  - history with search, status and month filters, optional grouping
2. Upload - photograph or upload a bill, see what was extracted
3. Report - spending per period or per biller
4. Settings - connection status

All lists and charts are derived from the flow's AppState, which lives in
the Streamlit session.
"""

import asyncio

import plotly.express as px
import streamlit as st

from billbook.models.bill import (
    BillFilter,
    BillRecord,
    BillStatus,
    ChartType,
    ReportGroupBy,
    ReportQuery,
    StatusFilter,
)
from billbook.orchestrator import (
    SHEET_SETUP_HINT,
    SHEET_UPDATE_HINT,
    BillBookFlow,
    create_app_components,
)
from billbook.periods import period_key
from billbook.queries import chart_title
from billbook.services.extraction import ExtractionError
from billbook.services.storage import StorageError


st.set_page_config(
    page_title="BillBook",
    page_icon="🧾",
    layout="wide",
    initial_sidebar_state="expanded",
)


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def get_flow() -> BillBookFlow:
    """One flow (and AppState) per browser session."""
    if "flow" not in st.session_state:
        flow, _ = create_app_components(use_storage=True)
        run_async(flow.load_bills())
        st.session_state.flow = flow
    return st.session_state.flow


def format_amount(record: BillRecord) -> str:
    return f"{record.currency}{record.amount:,.2f}"


def main():
    """Main application entry point."""
    flow = get_flow()

    st.sidebar.title("🧾 BillBook")
    st.sidebar.markdown("---")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📋 Bills", "📤 Upload", "📊 Report", "⚙️ Settings"],
        index=0,
        key="page",
    )

    render_store_warnings(flow)

    # Set by an action that failed just before a rerun
    flash_error = st.session_state.pop("flash_error", None)
    if flash_error:
        st.error(flash_error)

    if page == "📋 Bills":
        render_bills_page(flow)
    elif page == "📤 Upload":
        render_upload_page(flow)
    elif page == "📊 Report":
        render_report_page(flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def render_store_warnings(flow: BillBookFlow):
    """Missing table / outdated schema banners, shown on every page."""
    state = flow.state
    if state.store_missing:
        st.warning("**Database Setup Required** - the bills table is missing. Data will not persist.")
        st.code(SHEET_SETUP_HINT)
    elif state.schema_outdated:
        st.info("**Database Update Required** - the due_date column is missing.")
        st.code(SHEET_UPDATE_HINT)
    if state.error_message:
        st.error(state.error_message)


def render_bill_card(flow: BillBookFlow, record: BillRecord):
    """Details of one bill with its two actions."""
    with st.container(border=True):
        st.markdown(f"### {record.bill_name or 'Unknown'}")
        st.caption(record.reference)
        if record.summary:
            st.markdown(record.summary)

        col1, col2, col3 = st.columns(3)
        col1.metric("Amount", format_amount(record))
        col2.metric("Period", period_key(record))
        col3.metric("Due Date", record.due_date or "-")

        is_paid = record.status == BillStatus.PAID
        st.markdown("✅ **Paid**" if is_paid else "⏳ **Unpaid**")

        col1, col2 = st.columns(2)
        with col1:
            label = "Mark as Unpaid" if is_paid else "Mark as Paid"
            if st.button(label, key=f"toggle-{record.id}"):
                try:
                    run_async(flow.toggle_status(record.id))
                except StorageError:
                    st.session_state.flash_error = "Failed to update status. Check connection."
                st.rerun()
        with col2:
            if st.button("🗑️ Delete", key=f"delete-{record.id}"):
                try:
                    run_async(flow.delete_bill(record.id))
                except StorageError:
                    st.session_state.flash_error = "Failed to delete bill. Check connection."
                st.rerun()


def render_bills_table(flow: BillBookFlow, records: list[BillRecord], show_biller: bool = True):
    for record in records:
        label_parts = [record.reference]
        if show_biller:
            label_parts.append(record.bill_name or "Unknown")
        label_parts += [
            period_key(record),
            format_amount(record),
            "Paid" if record.status == BillStatus.PAID else "Unpaid",
        ]
        with st.expander(" | ".join(label_parts)):
            render_bill_card(flow, record)


def render_bills_page(flow: BillBookFlow):
    """Render the bills list page."""
    st.title("📋 Your Bills")

    col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
    with col1:
        search = st.text_input("Search bills...", value="")
    with col2:
        months = flow.month_options()
        month = st.selectbox(
            "Month",
            options=[None] + months,
            format_func=lambda m: "All Months" if m is None else m,
        )
    with col3:
        status = st.radio(
            "Status",
            options=list(StatusFilter),
            format_func=lambda s: s.value.title(),
            horizontal=True,
        )
    with col4:
        grouped = st.toggle("Group")

    bill_filter = BillFilter(search=search, status=status, month=month)
    bills = flow.filtered_bills(bill_filter)

    st.markdown("---")
    if not bills:
        st.info("No bills found")
        return

    st.caption(f"{'Grouped by Biller' if grouped else 'Recent Bills'} · {len(bills)} total")

    if grouped:
        for group in flow.biller_groups(bill_filter):
            st.markdown(f"#### {group.name} ({group.count})")
            # Raw sum across currencies
            st.markdown(f"Total: **{group.total:,.2f}**")
            render_bills_table(flow, group.items, show_biller=False)
    else:
        render_bills_table(flow, bills)


def render_upload_page(flow: BillBookFlow):
    """Render the upload page."""
    st.title("📤 Upload New Bill")

    uploaded_file = st.file_uploader(
        "Choose a bill photo or PDF",
        type=["jpg", "jpeg", "png", "webp", "heic", "pdf"],
    )
    camera_photo = st.camera_input("...or take a photo")
    document = uploaded_file or camera_photo

    if document and st.button("🔍 Analyze Bill", type="primary"):
        with st.spinner("Analyzing bill details..."):
            try:
                result = run_async(
                    flow.upload_bill(
                        document_bytes=document.getvalue(),
                        filename=document.name,
                        media_type=document.type,
                    )
                )
            except ExtractionError as e:
                st.error(str(e) or "Failed to process.")
                return
        st.session_state.last_upload = result

    # Kept across reruns so the card's buttons keep working
    last_upload = st.session_state.get("last_upload")
    if last_upload is None:
        return

    record = flow.state.find(last_upload.record.id)
    if record is None:
        st.info("The last uploaded bill was deleted.")
        return

    if last_upload.is_persisted:
        st.success("Bill saved.")
    else:
        st.warning(f"Saved for this session only: {last_upload.error}")
    render_bill_card(flow, record)


def render_report_page(flow: BillBookFlow):
    """Render the spending report page."""
    st.title("📊 Report")

    col1, col2, col3, col4 = st.columns(4)
    with col1:
        biller = st.selectbox(
            "Biller",
            options=[None] + flow.biller_options(),
            format_func=lambda b: "All Billers" if b is None else b,
        )
    with col2:
        year = st.selectbox(
            "Year",
            options=[None] + flow.year_options(),
            format_func=lambda y: "All Years" if y is None else y,
        )
    with col3:
        group_by = ReportGroupBy.PERIOD
        if biller is None:
            group_by = st.radio(
                "Group",
                options=list(ReportGroupBy),
                format_func=lambda g: "By Time" if g == ReportGroupBy.PERIOD else "By Biller",
                horizontal=True,
            )
    with col4:
        chart_type = st.radio(
            "Chart",
            options=list(ChartType),
            format_func=lambda c: c.value.title(),
            horizontal=True,
            key="chart_type",
        )

    query = ReportQuery(biller=biller, year=year, group_by=group_by, chart_type=chart_type)
    points = flow.chart_data(query)

    st.subheader(chart_title(query))
    if not points:
        st.info("No data available for this selection.")
        return

    data = {
        "name": [p.name for p in points],
        "value": [float(p.value) for p in points],
    }
    if chart_type == ChartType.PIE:
        fig = px.pie(data, names="name", values="value")
        st.plotly_chart(fig, use_container_width=True)
    elif chart_type == ChartType.LINE:
        st.line_chart(data, x="name", y="value")
    else:
        st.bar_chart(data, x="name", y="value")
    st.dataframe(data, hide_index=True)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    st.markdown("### Connection Status")

    from billbook.config import validate_all_settings

    status = validate_all_settings()

    services = [
        ("Google Sheets (Record Store)", "google_sheets"),
        ("Gemini (Extraction)", "gemini"),
    ]

    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown("---")
    st.markdown("### Configuration")
    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
