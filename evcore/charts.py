from __future__ import annotations

from typing import Any, Dict

import altair as alt

from evcore.views import AggregationResult

alt.data_transformers.disable_max_rows()

THEMES = {
    True: {"background": "#111827", "text": "#eeeeee", "grid": "rgba(255,255,255,0.1)", "border": "#6EA8E0"},
    False: {"background": "#ffffff", "text": "#333333", "grid": "rgba(0,0,0,0.1)", "border": "#1E88E5"},
}


def _themed(chart: alt.Chart, dark_mode: bool) -> alt.Chart:
    theme = THEMES[bool(dark_mode)]
    return (
        chart.properties(background=theme["background"])
        .configure_axis(labelColor=theme["text"], titleColor=theme["text"], gridColor=theme["grid"])
        .configure_legend(labelColor=theme["text"], titleColor=theme["text"])
        .configure_title(color=theme["text"])
        .configure_view(stroke=None)
    )


def build_chart(result: AggregationResult, *, dark_mode: bool = True) -> alt.Chart:
    """Render an aggregation result as an Altair chart in the dark or light theme."""
    data = result.to_frame()
    label_sort = list(dict.fromkeys(str(label) for label in result.labels))
    data["label"] = data["label"].astype(str)
    tooltip = [
        alt.Tooltip("label:N", title=result.x_title or "Label"),
        alt.Tooltip("series:N", title="Series"),
        alt.Tooltip("value:Q", title="Value", format=",.2f"),
    ]
    base = alt.Chart(data).properties(title=result.title)
    border = THEMES[bool(dark_mode)]["border"]

    if result.chart in ("pie", "doughnut"):
        inner = 60 if result.chart == "doughnut" else 0
        chart = base.mark_arc(innerRadius=inner, stroke=border).encode(
            theta=alt.Theta("value:Q", stack=True),
            color=alt.Color("label:N", title=result.series[0].name if result.series else None, sort=label_sort),
            order=alt.Order("position:Q"),
            tooltip=tooltip,
        )
    elif result.chart == "line":
        chart = base.mark_line(point={"filled": True}).encode(
            x=alt.X("label:O", title=result.x_title, sort=label_sort),
            y=alt.Y("value:Q", title=result.y_title, axis=alt.Axis(gridDash=[4, 4])),
            color=alt.Color("series:N", title=None),
            tooltip=tooltip,
        )
    elif result.chart == "grouped_bar":
        chart = base.mark_bar().encode(
            x=alt.X("label:N", title=result.x_title, sort=label_sort),
            xOffset=alt.XOffset("series:N", sort=[s.name for s in result.series]),
            y=alt.Y("value:Q", title=result.y_title),
            color=alt.Color("series:N", title="Make", sort=[s.name for s in result.series]),
            tooltip=tooltip,
        )
    else:
        chart = base.mark_bar(stroke=border, strokeWidth=1).encode(
            x=alt.X("label:N", title=result.x_title, sort=label_sort),
            y=alt.Y("value:Q", title=result.y_title),
            color=alt.Color("label:N", legend=None, sort=label_sort),
            tooltip=tooltip,
        )
    return _themed(chart, dark_mode)


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()
