"""
Streamlit Frontend for ZenBudget

Pages:
1. Dashboard - yearly totals, month-by-month chart, spending trend, insight
2. Month - day-by-day ledger with carry-over, budgets, receipt scan
3. Fixed Expenses - rent, bills and other monthly commitments
4. Settings - default budgets, preferences, export, connection status

DESIGN PRINCIPLES:
1. Every number on screen comes from the engine, recomputed from the
   current document
2. Every edit is written before the page re-renders (Streamlit reruns
   the script on each interaction, so nothing is left pending)
3. AI results are shown for review; the user decides what to log
"""

import asyncio
from datetime import date
from decimal import Decimal

import streamlit as st

from zenbudget.config import get_settings, validate_all_settings
from zenbudget.engine import shift_month
from zenbudget.models.budget import FixedExpenseCategory, ThemeColor
from zenbudget.orchestrator import BudgetSession, create_app_components
from zenbudget.services.sync import SyncStatus


MONTH_NAMES = [
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
]

# Page configuration
st.set_page_config(
    page_title="ZenBudget",
    page_icon="🧘",
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


async def _edit_and_flush(session: BudgetSession, coro):
    result = await coro
    await session.close()
    return result


def run_edit(session: BudgetSession, coro):
    """Apply an edit and write it before the event loop goes away."""
    return run_async(_edit_and_flush(session, coro))


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    try:
        return create_app_components(use_storage=True)
    except Exception as e:
        st.error(f"Failed to initialize storage: {e}")
        return create_app_components(use_storage=False)


def money(value: Decimal) -> str:
    symbol = get_settings().app.currency_symbol
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def get_session(user_id: str) -> BudgetSession:
    """Open (or reuse) the session for this browser tab."""
    session = st.session_state.get("session")
    if session is not None and session.user_id == user_id:
        return session

    sync_service, audit_logger, receipt_agent, insight_agent = get_components()
    session = run_async(BudgetSession.open(
        user_id,
        sync_service,
        display_name=user_id,
        audit_logger=audit_logger,
        receipt_agent=receipt_agent,
        insight_agent=insight_agent,
    ))
    st.session_state.session = session
    return session


def main():
    """Main application entry point."""
    st.sidebar.title("🧘 ZenBudget")

    user_id = st.sidebar.text_input(
        "Your name",
        value=st.session_state.get("user_id", ""),
        help="Your budget is stored under this name",
    ).strip()
    if not user_id:
        st.title("🧘 ZenBudget")
        st.info("Enter your name in the sidebar to open your budget.")
        return
    st.session_state.user_id = user_id

    session = get_session(user_id)

    today = date.today()
    if "year" not in st.session_state:
        st.session_state.year = today.year
        st.session_state.month = today.month

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Dashboard", "📅 Month", "🏠 Fixed Expenses", "⚙️ Settings"],
        index=0,
    )

    st.sidebar.markdown("---")
    render_sync_status(session)

    if page == "📊 Dashboard":
        render_dashboard_page(session)
    elif page == "📅 Month":
        render_month_page(session)
    elif page == "🏠 Fixed Expenses":
        render_fixed_page(session)
    elif page == "⚙️ Settings":
        render_settings_page(session)


def render_sync_status(session: BudgetSession):
    sync = session.sync
    labels = {
        SyncStatus.IDLE: "⚪ Not synced yet",
        SyncStatus.SYNCING: "🔄 Saving...",
        SyncStatus.SYNCED: "🟢 Saved",
        SyncStatus.ERROR: "🔴 Save failed - kept on this device",
        SyncStatus.OFFLINE: "🟠 Offline - saved on this device",
    }
    st.sidebar.caption(labels[sync.status])
    if sync.last_error:
        st.sidebar.caption(sync.last_error)
    if st.sidebar.button("🔄 Refresh"):
        if run_async(session.refresh()):
            st.rerun()


def render_month_nav():
    year, month = st.session_state.year, st.session_state.month
    col1, col2, col3 = st.columns([1, 3, 1])
    with col1:
        if st.button("◀ Previous"):
            st.session_state.year, st.session_state.month = shift_month(year, month, -1)
            st.rerun()
    with col2:
        st.markdown(f"## {MONTH_NAMES[month - 1]} {year}")
    with col3:
        if st.button("Next ▶"):
            st.session_state.year, st.session_state.month = shift_month(year, month, 1)
            st.rerun()
    return year, month


def render_dashboard_page(session: BudgetSession):
    """Yearly overview."""
    year = st.number_input("Year", min_value=1970, max_value=2100, value=st.session_state.year, step=1)
    year = int(year)
    overview = session.yearly_overview(year)

    st.title(f"📊 {year} at a glance")
    name = session.state.display_name
    if name:
        st.markdown(f"Hello, **{name}**.")

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Total budget", money(overview.total_budget))
    col2.metric("Daily spent", money(overview.total_daily_spent))
    col3.metric("Fixed spent", money(overview.total_fixed_spent))
    col4.metric("Saved this year", money(overview.total_yearly_savings))

    st.caption(
        f"Grand total spent: {money(overview.total_grand_spent)} · "
        f"Remaining daily budget: {money(overview.remaining_daily_budget)}"
    )

    st.markdown("### Month by month")
    st.bar_chart({
        "Month": [m[:3] for m in MONTH_NAMES],
        "Budget": [float(s.budget) for s in overview.months],
        "Daily": [float(s.total_daily_spent) for s in overview.months],
        "Fixed": [float(s.total_fixed_spent) for s in overview.months],
    }, x="Month", y=["Budget", "Daily", "Fixed"], stack=False)

    trend = session.daily_trend(year)
    st.markdown("### Remaining balance through the year")
    st.area_chart({
        "Date": [row.date for row in trend],
        "Remaining": [float(row.remaining_balance) for row in trend],
    }, x="Date", y="Remaining")

    st.markdown("### ✨ Smart Insights")
    if st.button("Generate tip"):
        with st.spinner("Analyzing..."):
            insight = run_async(session.generate_insight(year))
        if insight.generated:
            st.success(insight.text)
        else:
            st.info(insight.text)


def render_month_page(session: BudgetSession):
    """Day-by-day ledger for one month."""
    year, month = render_month_nav()
    view = session.month_view(year, month)

    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Budget", money(view.monthly_budget))
    col2.metric("Carried over", money(view.start_balance))
    col3.metric("Spent", money(view.total_daily_spent))
    col4.metric("Remaining", money(view.daily_remaining))
    st.progress(min(float(view.daily_percent_used) / 100, 1.0))
    st.caption(f"Daily limit: {money(view.daily_limit)}")
    if view.is_overspent:
        st.warning("You are over budget this month. The difference carries into next month.")

    with st.expander("✏️ Budget for this month"):
        new_budget = st.number_input(
            "Monthly budget",
            min_value=0.0,
            value=float(view.monthly_budget),
            step=100.0,
            key=f"budget-{year}-{month}",
        )
        if st.button("Save budget"):
            run_edit(session, session.update_month_budget(year, month, Decimal(str(new_budget))))
            st.rerun()

    st.markdown("### Log a day")
    with st.form("log-day"):
        day = st.date_input(
            "Day",
            value=date(year, month, 1),
            min_value=date(year, month, 1),
            max_value=date(year, month, len(view.days)),
        )
        key = day.isoformat()
        amount = st.number_input(
            "Spent",
            min_value=0.0,
            value=float(session.state.expenses.get(key, 0)),
            step=10.0,
        )
        note = st.text_input("Note", value=session.state.notes.get(key, ""))
        if st.form_submit_button("Save"):
            run_edit(session, session.update_expense(key, Decimal(str(amount)), note))
            st.rerun()

    render_receipt_scanner(session, year, month)

    st.markdown("### Days")
    st.dataframe(
        [
            {
                "Date": row.date,
                "Spent": float(row.spent),
                "Cumulative": float(row.cumulative_spent),
                "Remaining": float(row.remaining_balance),
                "Note": row.note,
            }
            for row in view.days
        ],
        use_container_width=True,
        hide_index=True,
    )


def render_receipt_scanner(session: BudgetSession, year: int, month: int):
    """Scan a receipt and, after review, add it to a day."""
    with st.expander("📷 Scan a receipt"):
        uploaded_file = st.file_uploader(
            "Receipt photo",
            type=get_settings().app.supported_formats_list,
        )
        if uploaded_file and st.button("Read receipt"):
            with st.spinner("Reading receipt..."):
                extraction, message = run_async(session.scan_receipt(
                    uploaded_file.getvalue(),
                    uploaded_file.name,
                    uploaded_file.type,
                ))
            st.session_state.extraction = extraction
            if extraction is None:
                st.error(message)
            else:
                st.info(message)

        extraction = st.session_state.get("extraction")
        if extraction is None:
            return

        st.markdown(
            f"**Amount:** {money(extraction.amount)} · "
            f"**Category:** {extraction.category.value} · "
            f"**Note:** {extraction.note or '-'}"
        )
        target_day = st.date_input(
            "Add to day",
            value=date(year, month, 1),
            key="receipt-day",
        )
        col1, col2, col3 = st.columns(3)
        with col1:
            if st.button("✅ Add to daily spend"):
                run_edit(session, session.log_receipt(extraction, target_day.isoformat()))
                st.session_state.extraction = None
                st.rerun()
        with col2:
            if st.button("🏠 Add as fixed expense"):
                run_edit(session, session.add_fixed_expense(
                    target_day.year,
                    target_day.month,
                    extraction.category,
                    extraction.amount,
                    extraction.note,
                ))
                st.session_state.extraction = None
                st.rerun()
        with col3:
            if st.button("❌ Discard"):
                st.session_state.extraction = None
                st.rerun()


def render_fixed_page(session: BudgetSession):
    """Monthly fixed commitments, tracked apart from daily spend."""
    year, month = render_month_nav()
    view = session.month_view(year, month)

    col1, col2, col3 = st.columns(3)
    col1.metric("Fixed budget", money(view.fixed_budget))
    col2.metric("Fixed spent", money(view.total_fixed))
    col3.metric("Fixed remaining", money(view.fixed_remaining))
    st.progress(min(float(view.fixed_percent_used) / 100, 1.0))

    with st.expander("✏️ Fixed budget for this month"):
        new_budget = st.number_input(
            "Fixed budget",
            min_value=0.0,
            value=float(view.fixed_budget),
            step=100.0,
            key=f"fixed-budget-{year}-{month}",
        )
        if st.button("Save fixed budget"):
            run_edit(session, session.update_month_fixed_budget(year, month, Decimal(str(new_budget))))
            st.rerun()

    st.markdown("### Add an expense")
    with st.form("add-fixed"):
        category = st.selectbox(
            "Category",
            options=list(FixedExpenseCategory),
            format_func=lambda c: c.value,
        )
        amount = st.number_input("Amount", min_value=0.0, step=100.0)
        note = st.text_input("Note")
        if st.form_submit_button("Add"):
            run_edit(session, session.add_fixed_expense(
                year, month, category, Decimal(str(amount)), note
            ))
            st.rerun()

    st.markdown("### This month")
    if not view.fixed_items:
        st.info("No fixed expenses for this month yet.")
    for item in view.fixed_items:
        col1, col2, col3, col4 = st.columns([2, 2, 4, 1])
        col1.write(item.category.value)
        col2.write(money(item.amount))
        col3.write(item.note or "-")
        if col4.button("🗑️", key=f"delete-{item.id}"):
            run_edit(session, session.delete_fixed_expense(year, month, item.id))
            st.rerun()

    st.caption(f"Grand total this month (daily + fixed): {money(view.grand_total_spent)}")


def render_settings_page(session: BudgetSession):
    """Render the settings page."""
    st.title("⚙️ Settings")
    state = session.state

    st.markdown("### Budgets")
    with st.form("defaults"):
        default_budget = st.number_input(
            "Default monthly budget",
            min_value=0.0,
            value=float(state.default_monthly_budget),
            step=100.0,
        )
        default_fixed = st.number_input(
            "Default fixed-expense budget",
            min_value=0.0,
            value=float(state.default_fixed_budget),
            step=100.0,
        )
        if st.form_submit_button("Save defaults"):
            async def save_defaults():
                await session.update_default_budget(Decimal(str(default_budget)))
                await session.update_default_fixed_budget(Decimal(str(default_fixed)))
            run_edit(session, save_defaults())
            st.rerun()

    st.markdown("### Preferences")
    with st.form("preferences"):
        display_name = st.text_input("Display name", value=state.display_name)
        theme = st.selectbox(
            "Theme color",
            options=list(ThemeColor),
            index=list(ThemeColor).index(state.theme_color),
            format_func=lambda c: c.value.title(),
        )
        dark_mode = st.checkbox("Dark mode", value=state.is_dark_mode)
        if st.form_submit_button("Save preferences"):
            run_edit(session, session.update_preferences(
                theme_color=theme,
                is_dark_mode=dark_mode,
                display_name=display_name,
            ))
            st.rerun()

    st.markdown("### Export")
    export_year = int(st.number_input(
        "Year to export", min_value=1970, max_value=2100, value=st.session_state.year, step=1
    ))
    if st.button("Prepare CSV"):
        st.session_state.export = run_async(session.export_csv(export_year))
    if st.session_state.get("export"):
        filename, content = st.session_state.export
        st.download_button("⬇️ Download CSV", data=content, file_name=filename, mime="text/csv")

    st.markdown("---")
    st.markdown("### Connection Status")

    status = validate_all_settings()
    services = [
        ("Google Sheets (Storage)", "google_sheets"),
        ("Gemini (AI)", "gemini"),
        ("App settings", "app"),
    ]
    for name, key in services:
        if status.get(key, False):
            st.success(f"✅ {name} - Configured")
        else:
            error = status.get(f"{key}_error", "Not configured")
            st.error(f"❌ {name} - {error}")

    st.markdown(
        "To configure the application, create a `.env` file with your API keys. "
        "See `.env.example` for the required variables."
    )


if __name__ == "__main__":
    main()
