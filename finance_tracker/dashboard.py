"""Streamlit app for the finance tracker.

Every script run builds a fresh ``FinanceStore`` for the signed-in user,
loads their records and renders the section picked in the sidebar.  All
numbers shown come from the aggregation modules; this file only lays
them out.

To run the dashboard from the command line::

    streamlit run finance_tracker/dashboard.py
"""

from __future__ import annotations

import io
import os
import sys
from datetime import date
from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st
from pydantic import ValidationError

if __package__:
    from . import config
    from . import visualization as viz
    from .analytics import SORT_FIELDS, filter_transactions
    from .budgets import budget_status, summarize_budget
    from .errors import AuthenticationRequired, FetchError, FinanceTrackerError
    from .export import EXCEL_MIME, build_export_frame, export_filename, export_month_to_excel
    from .formatting import (
        escape_dollars_for_markdown,
        format_currency,
        format_date,
        format_percentage,
        month_display_name,
    )
    from .models import month_bounds, month_key
    from .preferences import (
        CURRENCY_SYMBOLS,
        DATE_FORMATS,
        THEMES,
        currency_symbol,
        load_preferences,
        save_preferences,
    )
    from .recurring import upcoming_payments
    from .store import FinanceStore
else:
    # Allow ``streamlit run finance_tracker/dashboard.py`` to resolve the package
    CURRENT_DIR = os.path.dirname(os.path.abspath(__file__))
    PARENT_DIR = os.path.dirname(CURRENT_DIR)
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from finance_tracker import config  # type: ignore
    from finance_tracker import visualization as viz  # type: ignore
    from finance_tracker.analytics import SORT_FIELDS, filter_transactions  # type: ignore
    from finance_tracker.budgets import budget_status, summarize_budget  # type: ignore
    from finance_tracker.errors import AuthenticationRequired, FetchError, FinanceTrackerError  # type: ignore
    from finance_tracker.export import EXCEL_MIME, build_export_frame, export_filename, export_month_to_excel  # type: ignore
    from finance_tracker.formatting import (  # type: ignore
        escape_dollars_for_markdown,
        format_currency,
        format_date,
        format_percentage,
        month_display_name,
    )
    from finance_tracker.models import month_bounds, month_key  # type: ignore
    from finance_tracker.preferences import (  # type: ignore
        CURRENCY_SYMBOLS,
        DATE_FORMATS,
        THEMES,
        currency_symbol,
        load_preferences,
        save_preferences,
    )
    from finance_tracker.recurring import upcoming_payments  # type: ignore
    from finance_tracker.store import FinanceStore  # type: ignore

SECTIONS = ["Dashboard", "Transactions", "Budgets", "Insights", "Goals", "Recurring", "Categories", "Settings"]
WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def _show_validation_error(exc: ValidationError) -> None:
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        st.error(f"{field}: {error.get('msg')}")


def _category_options(store: FinanceStore) -> Dict[str, Optional[str]]:
    options: Dict[str, Optional[str]] = {"Uncategorized": None}
    options.update({c.name: c.id for c in store.categories})
    return options


def transaction_labels(rows: pd.DataFrame, symbol: str, date_format: str) -> Dict[str, str]:
    """Selection labels keyed by transaction id so identical rows stay distinct."""
    return {
        r["id"]: f"{format_date(r['Date'], date_format)} · {r['Category']} · {format_currency(r['Amount'], symbol)}"
        for _, r in rows.iterrows()
    }


def delete_transactions_and_rerun(store: FinanceStore, transaction_ids: List[str]) -> None:
    store.delete_transactions(transaction_ids)
    st.rerun()


def delete_budget_and_rerun(store: FinanceStore, budget_id: str) -> None:
    store.delete_budget(budget_id)
    st.rerun()


def render_dashboard(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    month = month_key(today)
    analytics = store.analytics()
    totals = analytics.monthly_totals(month)
    budget = store.budget_for_month(month)
    budget_total = budget.total_amount if budget is not None else None

    st.subheader(month_display_name(month))
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_currency(totals.income, symbol))
    col2.metric("Expenses", format_currency(totals.expense, symbol))
    col3.metric("Net balance", format_currency(totals.net_balance, symbol))

    velocity = analytics.spending_velocity(today, budget_total)
    allowance = analytics.daily_allowance(today, budget_total)
    col1, col2, col3 = st.columns(3)
    col1.metric("Daily average", format_currency(velocity.daily_average, symbol))
    col2.metric("Projected month total", format_currency(velocity.projected_total, symbol))
    if allowance is None:
        col3.metric("Daily allowance", "No budget")
    else:
        col3.metric("Daily allowance", format_currency(allowance, symbol))

    left, right = st.columns(2)
    with left:
        st.plotly_chart(viz.create_category_donut(analytics.category_breakdown(month)), use_container_width=True)
    with right:
        st.plotly_chart(viz.create_velocity_gauge(velocity), use_container_width=True)
    st.plotly_chart(viz.create_daily_spending_chart(analytics.daily_spending(month)), use_container_width=True)

    weekly = analytics.weekly_spending(month, int(prefs.get("first_day_of_week", 0)))
    if not weekly.empty:
        st.caption("Weekly spending")
        st.dataframe(weekly, use_container_width=True, hide_index=True)


def render_transactions(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    date_format = prefs.get("date_format", "MM/DD/YYYY")
    categories = _category_options(store)
    names = {v: k for k, v in categories.items() if v}

    with st.form("add_transaction", clear_on_submit=True):
        st.markdown("**Add transaction**")
        col1, col2, col3 = st.columns(3)
        amount = col1.number_input("Amount", min_value=0.0, step=1.0, format="%.2f")
        txn_type = col2.selectbox("Type", ["expense", "income"])
        txn_date = col3.date_input("Date", value=today)
        category_name = st.selectbox("Category", list(categories.keys()))
        notes = st.text_input("Notes")
        if st.form_submit_button("Save"):
            try:
                store.add_transaction(
                    amount=amount,
                    type=txn_type,
                    date=txn_date,
                    category_id=categories[category_name],
                    notes=notes or None,
                )
                st.rerun()
            except ValidationError as exc:
                _show_validation_error(exc)

    with st.expander("Search and filter", expanded=False):
        search = st.text_input("Search notes or category")
        col1, col2, col3 = st.columns(3)
        type_filter = col1.selectbox("Type filter", ["all", "expense", "income"])
        start, end = month_bounds(month_key(today))
        date_range = col2.date_input("Date range", value=(start, end))
        sort_by = col3.selectbox("Sort by", list(SORT_FIELDS))
        ascending = col3.checkbox("Ascending")
        category_filter = st.multiselect("Categories", list(names.keys()), format_func=lambda cid: names[cid])

    start_date, end_date = (date_range if isinstance(date_range, tuple) and len(date_range) == 2 else (None, None))
    rows = filter_transactions(
        store.transactions_frame(),
        store.categories,
        start_date=start_date,
        end_date=end_date,
        txn_type=type_filter,
        category_ids=category_filter,
        search=search,
        sort_by=sort_by,
        ascending=ascending,
    )
    if rows.empty:
        st.info("No transactions match these filters.")
        return

    income = rows.loc[rows["Type"] == "income", "Amount"].sum()
    expense = rows.loc[rows["Type"] == "expense", "Amount"].sum()
    col1, col2, col3 = st.columns(3)
    col1.metric("Income", format_currency(income, symbol))
    col2.metric("Expenses", format_currency(expense, symbol))
    col3.metric("Transactions", len(rows))

    display = pd.DataFrame({
        "Date": rows["Date"].map(lambda d: format_date(d, date_format)),
        "Type": rows["Type"],
        "Category": rows["Category"],
        "Amount": rows["Amount"].map(lambda a: format_currency(a, symbol)),
        "Notes": rows["Notes"].fillna(""),
    })
    st.dataframe(display, use_container_width=True, hide_index=True)

    labels = transaction_labels(rows, symbol, date_format)

    st.markdown("**Edit transaction**")
    editing = store.caches["transactions"].get(
        st.selectbox("Transaction", list(labels.keys()), format_func=lambda tid: labels[tid], key="edit_txn")
    )
    if editing is not None:
        with st.form(f"edit_{editing.id}"):
            col1, col2, col3 = st.columns(3)
            new_amount = col1.number_input("Amount", min_value=0.0, value=float(editing.amount), step=1.0, format="%.2f")
            new_type = col2.selectbox("Type", ["expense", "income"], index=0 if editing.type == "expense" else 1)
            new_date = col3.date_input("Date", value=editing.date)
            choices = list(categories.keys())
            current = names.get(editing.category_id, "Uncategorized")
            new_category = st.selectbox("Category", choices, index=choices.index(current) if current in choices else 0)
            new_notes = st.text_input("Notes", value=editing.notes or "")
            if st.form_submit_button("Update"):
                try:
                    store.update_transaction(
                        editing.id,
                        amount=new_amount,
                        type=new_type,
                        date=new_date,
                        category_id=categories[new_category],
                        notes=new_notes or None,
                    )
                    st.rerun()
                except ValidationError as exc:
                    _show_validation_error(exc)

    selected = st.multiselect(
        "Select transactions to delete",
        list(labels.keys()),
        format_func=lambda tid: labels[tid],
    )
    if selected and st.button(f"Delete {len(selected)} transaction(s)"):
        delete_transactions_and_rerun(store, selected)


def _allocation_inputs(store: FinanceStore, current: Dict[str, float], key_prefix: str) -> List[Dict[str, Any]]:
    allocations: List[Dict[str, Any]] = []
    for category in store.categories:
        amount = st.number_input(
            category.name,
            min_value=0.0,
            value=float(current.get(category.id, 0.0)),
            step=10.0,
            key=f"{key_prefix}_{category.id}",
        )
        if amount > 0:
            allocations.append({"category_id": category.id, "amount": amount})
    return allocations


def render_budgets(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    month = st.text_input("Budget month", value=month_key(today))
    view = store.budget_with_spending(month)

    if view is None:
        st.info(f"No budget for {month}.")
        with st.form("create_budget"):
            total = st.number_input("Total budget", min_value=0.0, step=50.0)
            allocations = _allocation_inputs(store, {}, "alloc")
            if st.form_submit_button("Create budget"):
                try:
                    store.create_budget(month, total, allocations)
                    st.rerun()
                except ValidationError as exc:
                    _show_validation_error(exc)
                except FinanceTrackerError as exc:
                    st.error(str(exc))
        return

    summary = summarize_budget(view)
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Budget", format_currency(summary["total_amount"], symbol))
    col2.metric("Spent", format_currency(summary["total_spent"], symbol))
    col3.metric("Remaining", format_currency(summary["total_remaining"], symbol))
    col4.metric("Status", summary["status"], format_percentage(summary["percentage_used"]))
    st.caption(
        f"{summary['over_budget_count']} over budget, {summary['on_track_count']} on track"
    )
    st.plotly_chart(viz.create_allocation_chart(view), use_container_width=True)

    table = pd.DataFrame([
        {
            "Category": a.category.name if a.category else "Uncategorized",
            "Allocated": format_currency(a.amount, symbol),
            "Spent": format_currency(a.spent, symbol),
            "Remaining": format_currency(a.remaining, symbol),
            "Used": format_percentage(a.percentage_used),
            "Status": budget_status(a.percentage_used),
        }
        for a in view.allocations
    ])
    if not table.empty:
        st.dataframe(table, use_container_width=True, hide_index=True)

    with st.expander("Edit budget"):
        with st.form(f"edit_budget_{view.id}"):
            total = st.number_input("Total budget", min_value=0.0, value=float(view.total_amount), step=50.0)
            allocations = _allocation_inputs(store, {a.category_id: a.amount for a in view.allocations}, f"edit_{view.id}")
            if st.form_submit_button("Save changes"):
                try:
                    store.update_budget(view.id, total_amount=total, allocations=allocations)
                    st.rerun()
                except ValidationError as exc:
                    _show_validation_error(exc)

    if st.button("Delete this budget"):
        delete_budget_and_rerun(store, view.id)


def render_insights(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    month = month_key(today)
    score = store.financial_health(month)

    left, right = st.columns(2)
    with left:
        st.plotly_chart(viz.create_health_gauge(score), use_container_width=True)
    with right:
        st.metric("Savings rate score", score.savings_rate)
        st.metric("Budget adherence score", score.budget_adherence)
        st.metric("Spending trend score", score.spending_trend)
    for recommendation in score.recommendations:
        st.warning(recommendation)

    st.markdown("### Smart insights")
    insights = store.smart_insights(today, symbol)
    if not insights:
        st.info("Nothing to flag this month.")
    for insight in insights:
        details = " · ".join(part for part in (insight.action, insight.impact) if part)
        text = f"**{insight.title}** ({insight.type}): {insight.message}" + (f"  \n{details}" if details else "")
        st.markdown(escape_dollars_for_markdown(text))

    analytics = store.analytics()
    trend = analytics.six_month_trend(month)
    st.plotly_chart(viz.create_trend_chart(trend), use_container_width=True)
    if trend.highest is not None:
        st.caption(escape_dollars_for_markdown(
            f"Average {format_currency(trend.average, symbol)}; highest {trend.highest.label} "
            f"({format_currency(trend.highest.value, symbol)})"
        ))

    breakdown = analytics.category_breakdown(month)
    if breakdown:
        st.dataframe(
            pd.DataFrame([
                {
                    "Category": item.category_name,
                    "Amount": format_currency(item.amount, symbol),
                    "Share": format_percentage(item.percentage, 1),
                    "Change vs last month": format_percentage(item.change, 1),
                    "Transactions": item.count,
                }
                for item in breakdown
            ]),
            use_container_width=True,
            hide_index=True,
        )


def render_goals(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    with st.form("add_goal", clear_on_submit=True):
        st.markdown("**New goal**")
        name = st.text_input("Name")
        target = st.number_input("Target amount", min_value=0.0, step=100.0)
        current = st.number_input("Saved so far", min_value=0.0, step=50.0)
        has_deadline = st.checkbox("Set a deadline")
        deadline = st.date_input("Deadline", value=today)
        if st.form_submit_button("Add goal"):
            try:
                store.add_goal(
                    name=name,
                    target_amount=target,
                    current_amount=current,
                    deadline=deadline if has_deadline else None,
                )
                st.rerun()
            except ValidationError as exc:
                _show_validation_error(exc)

    for progress in store.goal_progress(today):
        goal = store.caches["goals"].get(progress.goal_id)
        st.markdown(escape_dollars_for_markdown(f"**{progress.name}** ({progress.status})"))
        st.progress(min(int(progress.progress_percentage), 100))
        parts = [
            f"{format_currency(progress.current_amount, symbol)} of {format_currency(progress.target_amount, symbol)}",
        ]
        if progress.monthly_needed is not None:
            parts.append(f"{format_currency(progress.monthly_needed, symbol)}/month to hit the deadline")
        if progress.months_to_goal != float("inf"):
            parts.append(f"about {progress.months_to_goal:.1f} months at the current pace")
        st.caption(escape_dollars_for_markdown("; ".join(parts)))

        with st.expander(f"Update {progress.name}"):
            with st.form(f"edit_goal_{goal.id}"):
                saved = st.number_input("Saved so far", min_value=0.0, value=float(goal.current_amount), step=50.0)
                new_target = st.number_input("Target amount", min_value=0.0, value=float(goal.target_amount), step=100.0)
                keep_deadline = st.checkbox("Has a deadline", value=goal.deadline is not None)
                new_deadline = st.date_input("Deadline", value=goal.deadline or today)
                if st.form_submit_button("Save"):
                    try:
                        store.update_goal(
                            goal.id,
                            current_amount=saved,
                            target_amount=new_target,
                            deadline=new_deadline if keep_deadline else None,
                        )
                        st.rerun()
                    except ValidationError as exc:
                        _show_validation_error(exc)
            if st.button("Delete goal", key=f"delete_goal_{goal.id}"):
                store.delete_goal(goal.id)
                st.rerun()


def render_recurring(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    symbol = currency_symbol(prefs)
    categories = _category_options(store)
    st.metric("Monthly commitment", format_currency(store.monthly_commitment(), symbol))

    with st.form("add_recurring", clear_on_submit=True):
        st.markdown("**New recurring transaction**")
        name = st.text_input("Name")
        amount = st.number_input("Amount", min_value=0.0, step=1.0)
        frequency = st.selectbox("Frequency", ["monthly", "weekly", "yearly", "daily"])
        next_date = st.date_input("Next date", value=today)
        category_name = st.selectbox("Category", list(categories.keys()))
        if st.form_submit_button("Add"):
            try:
                store.add_recurring(
                    name=name,
                    amount=amount,
                    frequency=frequency,
                    next_date=next_date,
                    category_id=categories[category_name],
                )
                st.rerun()
            except ValidationError as exc:
                _show_validation_error(exc)

    upcoming = upcoming_payments(store.recurring, today)
    if upcoming.empty:
        st.info("No payments due in the next 30 days.")
    else:
        st.dataframe(upcoming.drop(columns=["id", "category_id"]), use_container_width=True, hide_index=True)

    for template in store.recurring:
        label = "Resume" if template.status == "paused" else "Pause"
        if st.button(f"{label} {template.name}", key=f"toggle_{template.id}"):
            store.update_recurring(template.id, status="active" if template.status == "paused" else "paused")
            st.rerun()


def render_categories(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    with st.form("add_category", clear_on_submit=True):
        st.markdown("**New category**")
        col1, col2, col3 = st.columns(3)
        name = col1.text_input("Name", max_chars=30)
        icon = col2.text_input("Icon", value="more-horizontal")
        color = col3.color_picker("Color", value="#6366f1")
        if st.form_submit_button("Add category"):
            try:
                store.add_category(name=name, icon=icon, color=color)
                st.rerun()
            except ValidationError as exc:
                _show_validation_error(exc)

    categories = store.categories
    for position, category in enumerate(categories):
        col1, col2, col3, col4 = st.columns([6, 1, 1, 1])
        with col1.expander(category.name):
            with st.form(f"edit_category_{category.id}"):
                new_name = st.text_input("Name", value=category.name, max_chars=30)
                new_icon = st.text_input("Icon", value=category.icon)
                new_color = st.color_picker("Color", value=category.color)
                if st.form_submit_button("Save"):
                    try:
                        store.update_category(category.id, name=new_name, icon=new_icon, color=new_color)
                        st.rerun()
                    except ValidationError as exc:
                        _show_validation_error(exc)
        if col2.button("↑", key=f"up_{category.id}", disabled=position == 0):
            store.move_category(category.id, -1)
            st.rerun()
        if col3.button("↓", key=f"down_{category.id}", disabled=position == len(categories) - 1):
            store.move_category(category.id, 1)
            st.rerun()
        if col4.button("🗑", key=f"delete_category_{category.id}"):
            store.delete_category(category.id)
            st.rerun()


def render_settings(store: FinanceStore, today: date, prefs: Dict[str, Any]) -> None:
    currencies = list(CURRENCY_SYMBOLS.keys())
    with st.form("preferences"):
        currency = st.selectbox("Currency", currencies, index=currencies.index(prefs.get("currency", "USD")) if prefs.get("currency") in currencies else 0)
        date_format = st.selectbox("Date format", DATE_FORMATS, index=DATE_FORMATS.index(prefs["date_format"]) if prefs.get("date_format") in DATE_FORMATS else 0)
        theme = st.selectbox("Theme", THEMES, index=THEMES.index(prefs["theme"]) if prefs.get("theme") in THEMES else 2)
        first_day = st.selectbox("First day of week", WEEKDAYS, index=int(prefs.get("first_day_of_week", 0)) % 7)
        if st.form_submit_button("Save preferences"):
            save_preferences({
                "currency": currency,
                "date_format": date_format,
                "theme": theme,
                "first_day_of_week": WEEKDAYS.index(first_day),
            })
            st.rerun()

    st.markdown("### Export")
    month = st.text_input("Export month", value=month_key(today))
    frame = store.transactions_frame()
    if build_export_frame(frame, store.categories, month).empty:
        st.info("No transactions found for this month.")
        return
    buffer = export_month_to_excel(frame, store.categories, month, io.BytesIO())
    st.download_button(
        label="📥 Download Excel",
        data=buffer.getvalue(),
        file_name=export_filename(month),
        mime=EXCEL_MIME,
    )


RENDERERS = {
    "Dashboard": render_dashboard,
    "Transactions": render_transactions,
    "Budgets": render_budgets,
    "Insights": render_insights,
    "Goals": render_goals,
    "Recurring": render_recurring,
    "Categories": render_categories,
    "Settings": render_settings,
}


def main() -> None:
    """Entry point for the Streamlit app."""
    config.configure_logging()
    config.ensure_data_directories()
    st.set_page_config(
        page_title=config.APP_NAME,
        layout="wide",
        initial_sidebar_state="expanded",
    )
    st.title(config.APP_NAME)

    section = st.sidebar.radio("Section", SECTIONS)
    prefs = load_preferences()
    today = date.today()

    try:
        store = FinanceStore(config.DEFAULT_USER_ID).load()
        RENDERERS[section](store, today, prefs)
    except AuthenticationRequired as exc:
        st.warning(str(exc))
        st.stop()
    except FetchError as exc:
        st.error(str(exc))


if __name__ == "__main__":
    main()
