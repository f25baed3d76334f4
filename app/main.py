"""
Streamlit Frontend for Household Ledger

One page: pick a day, type what was spent per category, save.

The page only calls LedgerController operations and renders its
state. Every failure arrives as a notice the user can dismiss.
"""

import asyncio

import streamlit as st

from household_ledger.config import validate_all_settings
from household_ledger.ledger import format_amount
from household_ledger.models.ledger import NoticeSeverity
from household_ledger.orchestrator import LedgerController, create_controller


# Page configuration
st.set_page_config(
    page_title="Household Ledger",
    page_icon="💰",
    layout="centered",
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


def get_controller() -> LedgerController:
    """Get or create this session's controller."""
    if "controller" not in st.session_state:
        controller = create_controller(use_storage=True)
        run_async(controller.initialize())
        st.session_state.controller = controller
    return st.session_state.controller


def render_notices(controller: LedgerController):
    """Show undismissed notices, each with its own dismiss button."""
    show = {
        NoticeSeverity.INFO: st.info,
        NoticeSeverity.WARNING: st.warning,
        NoticeSeverity.ERROR: st.error,
    }
    for notice in controller.notices:
        col_msg, col_btn = st.columns([6, 1])
        with col_msg:
            show[notice.severity](notice.message)
        with col_btn:
            if st.button("✕", key=f"dismiss_{notice.id}"):
                controller.dismiss_notice(notice.id)
                st.rerun()


def render_day_navigation(controller: LedgerController):
    col_prev, col_day, col_next, col_today = st.columns([1, 3, 1, 1])
    busy = controller.is_busy

    with col_prev:
        if st.button("◀", disabled=busy):
            run_async(controller.navigate(-1))
            st.rerun()
    with col_day:
        st.markdown(f"### {controller.current_date.strftime('%A, %d %B %Y')}")
    with col_next:
        if st.button("▶", disabled=busy):
            run_async(controller.navigate(1))
            st.rerun()
    with col_today:
        if st.button("Today", disabled=busy):
            run_async(controller.go_to_today())
            st.rerun()


def render_entry_form(controller: LedgerController):
    """One text input per category, keyed by day so values reset on navigation."""
    for category in controller.categories:
        key = f"amount_{controller.date_key}_{category.id}"
        value = st.text_input(
            f"{category.icon} {category.name}",
            value=controller.value_for(category.id),
            key=key,
        )
        if value != controller.value_for(category.id):
            controller.edit(category.id, value)

    col_day, col_month = st.columns(2)
    with col_day:
        st.metric("Today", format_amount(controller.daily_total))
    with col_month:
        st.metric("This month", format_amount(controller.monthly_total))

    if st.button("💾 Save", type="primary", disabled=controller.is_busy):
        run_async(controller.save())
        # Drop widget values so the form shows what was persisted
        for key in [k for k in st.session_state if str(k).startswith("amount_")]:
            del st.session_state[key]
        st.rerun()


def render_sidebar(controller: LedgerController):
    st.sidebar.title("💰 Household Ledger")
    st.sidebar.markdown("---")

    st.sidebar.markdown("### Add category")
    name = st.sidebar.text_input("Name", key="new_category_name")
    if st.sidebar.button("Add"):
        result = run_async(controller.add_category(name))
        if result.success:
            st.session_state.pop("new_category_name", None)
        st.rerun()

    st.sidebar.markdown("---")
    if st.sidebar.button("🔄 Reload day", disabled=controller.is_busy):
        run_async(controller.reload())
        st.rerun()

    with st.sidebar.expander("Connection status"):
        status = validate_all_settings()
        for key in ("google_sheets", "ledger", "app"):
            if status.get(key, False):
                st.success(f"✅ {key}")
            else:
                st.error(f"❌ {key} - {status.get(f'{key}_error', 'Not configured')}")


def main():
    """Main application entry point."""
    controller = get_controller()

    render_sidebar(controller)
    render_notices(controller)
    render_day_navigation(controller)
    st.markdown("---")
    render_entry_form(controller)

    if controller.entries:
        st.markdown("---")
        st.markdown("#### Saved entries")
        names = {c.id: c.name for c in controller.categories}
        for entry in controller.entries:
            st.markdown(
                f"- {names.get(entry.category_id, entry.category_id)}: "
                f"{format_amount(entry.amount)}"
            )


if __name__ == "__main__":
    main()
