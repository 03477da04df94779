from __future__ import annotations

from typing import Any, Dict, List, Sequence

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

SUPPORT_COLOR = "#28a745"
OPPOSE_COLOR = "#dc3545"
BAR_COLOR = "#5BC0DE"
PARTY_COLORS = {"dem": "#2E86C1", "rep": "#C0392B", "other": "#7F8C8D"}


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def support_oppose_chart(rows: Sequence[Dict[str, Any]]) -> Dict[str, Any]:
    long_df = pd.DataFrame(
        [{"candidate": r["name"], "stance": stance.capitalize(), "amount": r[stance]} for r in rows for stance in ("support", "oppose")]
    )
    bar = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("candidate:N", title=None),
            xOffset="stance:N",
            y=alt.Y("amount:Q", title="Amount", axis=alt.Axis(format="$,.0f")),
            color=alt.Color(
                "stance:N",
                scale=alt.Scale(domain=["Support", "Oppose"], range=[SUPPORT_COLOR, OPPOSE_COLOR]),
                title=None,
            ),
            tooltip=["candidate", "stance", alt.Tooltip("amount:Q", format="$,.0f")],
        )
    )
    return to_vega_spec(bar)


def ranked_bar_chart(records: List[Dict[str, Any]], *, title: str) -> Dict[str, Any]:
    df = pd.DataFrame(records, columns=["rank", "name", "total_amount", "count"])
    bar = (
        alt.Chart(df)
        .mark_bar(color=BAR_COLOR)
        .encode(
            x=alt.X("total_amount:Q", title="Amount", axis=alt.Axis(format="$,.0f")),
            y=alt.Y("name:N", title=title, sort="-x"),
            tooltip=["name", alt.Tooltip("total_amount:Q", format="$,.0f"), "count"],
        )
    )
    return to_vega_spec(bar)


def batch_delta_chart(deltas: pd.DataFrame) -> Dict[str, Any]:
    long_df = deltas.melt(
        id_vars=["label"],
        value_vars=[f"{p}_change" for p in PARTY_COLORS],
        var_name="party",
        value_name="ballots",
    )
    long_df["party"] = long_df["party"].str.replace("_change", "", regex=False)
    bar = (
        alt.Chart(long_df)
        .mark_bar()
        .encode(
            x=alt.X("label:N", title="Batch", sort=None),
            y=alt.Y("ballots:Q", title="Ballots", stack="zero", axis=alt.Axis(format=",")),
            color=alt.Color(
                "party:N",
                scale=alt.Scale(domain=list(PARTY_COLORS), range=list(PARTY_COLORS.values())),
            ),
            tooltip=["label", "party", alt.Tooltip("ballots:Q", format=",")],
        )
    )
    return to_vega_spec(bar)


def turnout_comparison_chart(records: List[Dict[str, Any]]) -> Dict[str, Any]:
    df = pd.DataFrame(records)
    hover = alt.selection_point(fields=["series"], on="mouseover", empty="all")
    line = (
        alt.Chart(df)
        .transform_filter(alt.datum.has_data)
        .mark_line(point={"filled": True})
        .encode(
            x=alt.X("days_before:Q", title="Days Before Election", scale=alt.Scale(reverse=True), axis=alt.Axis(format="d")),
            y=alt.Y("turnout_rate:Q", title="Turnout %", axis=alt.Axis(format=".1f")),
            color=alt.Color("series:N", title="Election"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.2)),
            tooltip=[
                alt.Tooltip("series:N", title="Election"),
                alt.Tooltip("days_before:Q", title="Days Before"),
                alt.Tooltip("turnout_rate:Q", title="Turnout %", format=".2f"),
            ],
        )
        .add_params(hover)
    )
    return to_vega_spec(line)
