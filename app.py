from contextlib import contextmanager
from typing import Any, Dict, List, Optional

import altair as alt
import pandas as pd
import streamlit as st

from core.config import configure_logging
from core.data import (
    DataLoadError,
    available_entities,
    format_currency_0,
    format_percent,
    load_dashboard_data,
    prepare_context,
    require_datasets,
)
from core.filters import SORTABLE_FIELDS, normalize_filters
from core.metrics_ballots import compute_ballot_returns
from core.metrics_contributions import compute_contributions
from core.metrics_debug import compute_debug
from core.metrics_expenditures import compute_expenditures

alt.data_transformers.disable_max_rows()
configure_logging()


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;margin-bottom: 8px;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card'><div class='card-title'>{title}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(entity: str, candidates: List[str], query: str) -> str:
    chips = [
        f"Organization: {entity}",
        "Candidate: All" if not candidates else f"Candidate: {', '.join(candidates)}",
        f"Search: {query}" if query else "Search: none",
    ]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(f"<div class='app-top-bar'><div class='page-title'>{title}</div></div>", unsafe_allow_html=True)
    with c2:
        if export_df is not None and not export_df.empty:
            st.download_button(
                "Export CSV",
                data=export_df.drop(columns=["amount_valid", "date_valid"], errors="ignore").to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


def render_chart(spec: Optional[Dict[str, Any]]):
    if spec:
        st.vega_lite_chart(spec, use_container_width=True)


def render_ranked(records: List[Dict[str, Any]], label: str):
    if not records:
        st.info("No data for the selected filters.")
        return
    df = pd.DataFrame(records).rename(columns={"name": label, "total_amount": "Amount", "count": "Transactions"})
    df["Amount"] = df["Amount"].apply(format_currency_0)
    st.dataframe(df, hide_index=True, use_container_width=True)


def stop_on_load_error(data_ctx: Dict[str, Any], datasets: List[str]):
    try:
        require_datasets(data_ctx, datasets)
    except DataLoadError as exc:
        st.error(f"Error loading {exc.dataset} data: {exc.message}")
        st.stop()


# ---------- UI setup ----------
st.set_page_config(page_title="SD D1 Runoff Tracker", layout="wide")
inject_base_styles()
st.title("SD D1 Runoff Tracker")
st.caption("Independent expenditures, contributions and ballot returns for the District 1 Supervisor runoff.")

data_ctx = load_dashboard_data()
entities = available_entities(data_ctx)
election = data_ctx["settings"].election

with st.sidebar:
    st.markdown("### Navigate")
    page = st.radio("Navigate", ["Expenditures", "Contributions", "Ballot Returns", "Data Quality"], index=0)

    st.markdown("---")
    st.markdown("### Filters")
    scope = "contributions" if page == "Contributions" else "expenditures"
    entity_label = "Committee" if scope == "contributions" else "Organization"
    selected_entity = st.selectbox(f"Filter by {entity_label}", ["All"] + entities.get(scope, []), index=0)
    selected_candidates: List[str] = []
    if page == "Expenditures":
        selected_candidates = st.multiselect("Candidate", options=list(election.candidate_names), default=[])
    search_query = st.text_input("Search names / descriptions", "")
    with st.expander("Advanced settings", expanded=False):
        sort_field = st.selectbox("Sort itemized rows by", list(SORTABLE_FIELDS), index=0)
        sort_ascending = st.checkbox("Ascending", value=False)
        top_n = st.slider("Top N rows", min_value=5, max_value=50, value=election.top_n, step=5)

filters = normalize_filters(
    {
        "selected_entity": selected_entity,
        "selected_candidates": selected_candidates,
        "search_query": search_query,
        "sort_field": sort_field,
        "sort_ascending": sort_ascending,
        "top_n": top_n,
    },
    available_entities=entities.get(scope, []),
)
summary_html = format_filter_summary(filters.selected_entity, filters.selected_candidates, filters.search_query)


if page == "Expenditures":
    stop_on_load_error(data_ctx, ["expenditures"])
    ctx = prepare_context(filters, data_ctx)
    payload = compute_expenditures(filters, ctx)
    render_page_header("Independent Expenditures", summary_html, ctx["filtered_expenditures"], "expenditures.csv")

    cols = st.columns(1 + len(payload["candidates"]))
    cols[0].metric("Total Independent Expenditures", format_currency_0(payload["kpis"]["total_spending"]))
    for col, cand in zip(cols[1:], payload["candidates"]):
        col.metric(
            cand["name"],
            format_currency_0(cand["total"]),
            help=f"Supporting {format_currency_0(cand['support'])} / Opposing {format_currency_0(cand['oppose'])}",
        )

    with card("Expenditures by Candidate"):
        render_chart(payload["charts"].get("candidate_support_oppose"))
    if payload["top_spenders"]:
        with card("Top Spending Organizations"):
            render_chart(payload["charts"].get("top_spenders"))
    with card("Itemized Expenditures"):
        table = pd.DataFrame(payload["table"])
        if not table.empty:
            table["amount"] = table["amount"].apply(lambda v: f"${v:,.2f}")
        st.dataframe(table, hide_index=True, use_container_width=True)

elif page == "Contributions":
    stop_on_load_error(data_ctx, ["contributions"])
    ctx = prepare_context(filters, data_ctx)
    payload = compute_contributions(filters, ctx)
    render_page_header("Contributions", summary_html, ctx["filtered_contributions"], "contributions.csv")

    kpis = payload["kpis"]
    cols = st.columns(4)
    cols[0].metric("Total Raised", format_currency_0(kpis["total_raised"]))
    cols[1].metric("Contributions", f"{kpis['contributions']:,}")
    cols[2].metric("Contributors", f"{kpis['contributors']:,}")
    cols[3].metric("Duplicates Removed", f"{kpis['duplicates_removed']:,}")

    c1, c2 = st.columns(2)
    with c1:
        with card(f"Top {filters.top_n} Contributors"):
            render_chart(payload["charts"].get("top_contributors"))
            render_ranked(payload["top_contributors"], "Contributor")
    with c2:
        with card(f"Top {filters.top_n} Committees"):
            render_chart(payload["charts"].get("top_committees"))
            render_ranked(payload["top_committees"], "Committee")
    with card("Itemized Contributions"):
        st.dataframe(pd.DataFrame(payload["table"]), hide_index=True, use_container_width=True)

elif page == "Ballot Returns":
    stop_on_load_error(data_ctx, ["ballots_primary", "ballots_runoff"])
    ctx = prepare_context(filters, data_ctx)
    payload = compute_ballot_returns(filters, ctx)
    render_page_header("Ballot Returns", "", ctx["ballots_runoff"], "ballot_returns.csv")

    stats = payload["stats"]["runoff"]
    if not payload["available"] or stats is None:
        st.info("Ballot return data will be available here once it's released by the Registrar of Voters.")
    else:
        cols = st.columns(5)
        cols[0].metric("Registered", f"{stats['registered']:,}")
        cols[1].metric("Returned", f"{stats['returned']:,}", help=f"As of {stats['as_of']}")
        cols[2].metric("Turnout", format_percent(stats["turnout_rate"]))
        cols[3].metric("Dem share", format_percent(stats["party_share"]["dem"]))
        cols[4].metric("Rep share", format_percent(stats["party_share"]["rep"]))

        with card("Ballots by Batch"):
            render_chart(payload["charts"].get("runoff_batches"))
            batches = pd.DataFrame(
                [
                    {
                        "Batch": b["label"],
                        "Ballots": f"{b['total_change']:,}",
                        **{f"{p.capitalize()} %": format_percent(b["party_share_of_change"][p]) for p in ("dem", "rep", "other")},
                    }
                    for b in payload["batches"]["runoff"]
                ]
            )
            st.dataframe(batches, hide_index=True, use_container_width=True)

    with card("Turnout vs. Primary (days before election)"):
        render_chart(payload["charts"].get("turnout_comparison"))
        rows = pd.DataFrame(payload["comparison_rows"])
        if not rows.empty:
            rows["turnout_rate"] = rows["turnout_rate"].apply(lambda v: format_percent(v) if v is not None else "no data")
            st.dataframe(rows.drop(columns=["has_data"]), hide_index=True, use_container_width=True)

else:
    ctx = prepare_context(filters, data_ctx)
    payload = compute_debug(filters, ctx)
    render_page_header("Data Quality", summary_html)
    for name, err in payload["load_errors"].items():
        st.error(f"{name}: {err['kind']} error: {err['message']}")
    st.json({"row_counts": payload["row_counts"], "cleaning_checks": payload["cleaning_checks"]})
    if payload["merge_overrides"]:
        st.caption("Committee merge overrides: " + ", ".join(payload["merge_overrides"]))
    if payload["unparsable_samples"]:
        st.dataframe(pd.DataFrame(payload["unparsable_samples"]), hide_index=True, use_container_width=True)
