import altair as alt
import pandas as pd
import streamlit as st
from typing import List

from evcore.charts import build_chart
from evcore.data import load_dataset
from evcore.errors import IngestionError
from evcore.logging_utils import configure_logging
from evcore.quality import compute_data_quality
from evcore.views import DEFAULT_VIEW, VIEW_SPECS, VIEWS, AggregationResult, compute_view, normalize_request

alt.data_transformers.disable_max_rows()
configure_logging()


# ---------- UI / layout helpers ----------
def inject_base_styles(dark_mode: bool):
    background = "#111827" if dark_mode else "#ffe4e6"
    text = "#eeeeee" if dark_mode else "#111827"
    st.markdown(
        f"""
        <style>
        .stApp {{background: {background}; color: {text};}}
        .insight-list li {{font-size: 1.05rem; margin-bottom: 6px;}}
        .page-title {{font-size: 1.5rem; font-weight: 700; text-align: center; color: {text};}}
        </style>
        """,
        unsafe_allow_html=True,
    )


def render_insights(lines: List[str]):
    if not lines:
        st.info("No insights for this view.")
        return
    items = "".join(f"<li>{line}</li>" for line in lines)
    st.markdown(f"<ul class='insight-list'>{items}</ul>", unsafe_allow_html=True)


def render_view(result: AggregationResult, dark_mode: bool):
    st.markdown(f"<div class='page-title'>{result.title}</div>", unsafe_allow_html=True)
    if result.is_empty:
        st.warning("No vehicles in the dataset qualify for this view.")
        return
    c1, c2 = st.columns([2, 1])
    with c1:
        st.altair_chart(build_chart(result, dark_mode=dark_mode), use_container_width=True)
    with c2:
        st.markdown("#### Key insights")
        render_insights(list(result.insights))
    export_df = result.to_frame().drop(columns=["position"])
    st.download_button(
        "Export CSV",
        data=export_df.to_csv(index=False).encode("utf-8"),
        file_name=f"{result.view}.csv",
        mime="text/csv",
    )


# ---------- UI setup ----------
st.set_page_config(page_title="EV Population Dashboard", layout="wide")

try:
    dataset = load_dataset()
except IngestionError as exc:
    st.error(f"Could not load the vehicle data: {exc}")
    st.stop()

if dataset.is_empty:
    st.warning("The vehicle data file has no rows.")

# ----- Sidebar: navigation + display -----
titles = {spec.title: spec.name for spec in VIEW_SPECS}
with st.sidebar:
    st.markdown("### Navigate")
    default_index = list(titles.values()).index(DEFAULT_VIEW)
    choice = st.radio("Chart", list(titles), index=default_index)
    view_name = titles[choice]
    spec = VIEWS[view_name]

    st.markdown("---")
    dark_mode = st.toggle("Dark mode", value=True)

    raw = {"view": view_name, "dark_mode": dark_mode}
    if spec.ranked and spec.top_n is not None:
        label = "Top cities" if spec.shape == "nested" else "Top N"
        raw["top_n"] = st.slider(label, min_value=1, max_value=25, value=spec.top_n)
    if spec.top_inner is not None:
        raw["top_inner"] = st.slider("Top makes per city", min_value=1, max_value=10, value=spec.top_inner)

    with st.expander("Data quality", expanded=False):
        quality = compute_data_quality(dataset)
        st.caption(f"{quality['records']:,} records from {quality['source']}")
        st.dataframe(
            pd.DataFrame(sorted(quality["missing"].items()), columns=["field", "missing"]),
            hide_index=True,
            use_container_width=True,
        )

inject_base_styles(dark_mode)
request = normalize_request(raw)
render_view(compute_view(dataset, request), request.dark_mode)
