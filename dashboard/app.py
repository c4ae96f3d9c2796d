"""Streamlit dashboard for Amsterdam waste reports and weighings."""

from __future__ import annotations

import asyncio

import pandas as pd
import pydeck as pdk
import streamlit as st

from api import queries as q
from pipeline.aggregate import FALLBACK_COLOR, FRACTION_COLORS
from pipeline.config import settings
from pipeline.filters import FilterConfig
from pipeline.trends import DAY_LABELS
from pipeline.window import RANGE_LABELS

st.set_page_config(
    page_title="Amsterdam Afval Monitor",
    page_icon="\U0001f5d1\ufe0f",
    layout="wide",
)

AMSTERDAM = pdk.ViewState(latitude=52.3676, longitude=4.9041, zoom=11.5, pitch=0)


def _hex_rgb(color: str) -> list[int]:
    color = color.lstrip("#")
    return [int(color[i:i + 2], 16) for i in (0, 2, 4)]


def format_weight(kg: float) -> str:
    if kg >= 1000:
        return f"{kg / 1000:.1f} ton"
    return f"{kg:.1f} kg"


@st.cache_data(ttl=settings.refresh_interval_s)
def load_snapshot(time_range: str, status: str, show_containers: bool, categories: tuple[str, ...]) -> dict:
    """Fetch and aggregate every panel; cached for one refresh interval."""
    config = FilterConfig.create(time_range, status, show_containers, categories)
    return asyncio.run(q.build_snapshot(config))


# ── Sidebar filters ──
st.sidebar.title("Filters")

time_range = st.sidebar.radio(
    "Periode",
    options=list(RANGE_LABELS),
    index=1,
    format_func=lambda r: RANGE_LABELS[r].replace("laatste ", "").capitalize(),
    horizontal=True,
)
status = st.sidebar.radio(
    "Status",
    options=["all", "open", "closed"],
    format_func={"all": "Alle", "open": "Open", "closed": "Afgesloten"}.get,
    horizontal=True,
)
show_containers = st.sidebar.toggle("Containers tonen", value=False)
categories_text = st.sidebar.text_input("Subcategorieën (komma-gescheiden)", "")
categories = tuple(c.strip() for c in categories_text.split(",") if c.strip())

if st.sidebar.button("Nu verversen"):
    load_snapshot.clear()

snap = load_snapshot(time_range, status, show_containers, categories)

# ── Header ──
st.title("Amsterdam Afval Monitor")
st.markdown(
    "Live overzicht van afvalmeldingen en wegingen van vuilniswagens uit de "
    "[open data van de gemeente Amsterdam](https://api.data.amsterdam.nl). "
    f"Bijgewerkt om {snap['generated_at'][11:16]}, ververst elke "
    f"{settings.refresh_interval_s:.0f} seconden."
)

tab_live, tab_map, tab_pressure, tab_backlog, tab_weight, tab_trends = st.tabs(
    ["Live", "Kaart", "Druk", "Achterstand", "Gewicht", "Trends"]
)

# ── TAB 1: Live feed ──
with tab_live:
    feed = snap["feed"]
    st.subheader(f"{feed['count']} meldingen ({feed['label']})")
    if feed["items"]:
        rows = [
            {
                "Wanneer": item["age"],
                "Subcategorie": item["melding"]["subcategorie"] or item["melding"]["hoofdcategorie"],
                "Buurt": item["melding"]["buurt_naam"],
                "Stadsdeel": item["melding"]["stadsdeel_naam"],
                "Status": item["melding"]["externe_status"],
            }
            for item in feed["items"]
        ]
        st.dataframe(pd.DataFrame(rows), use_container_width=True, hide_index=True)
    else:
        st.info("Geen data beschikbaar voor deze periode")

# ── TAB 2: Map ──
with tab_map:
    points = pd.DataFrame([
        {
            "lon": item["melding"]["longitude"],
            "lat": item["melding"]["latitude"],
            "subcategorie": item["melding"]["subcategorie"],
            "open": item["melding"]["externe_status"] == "Open",
        }
        for item in snap["feed"]["items"]
    ])
    layers = []
    if not points.empty:
        points["color"] = points["open"].map(lambda o: [220, 38, 38] if o else [22, 163, 74])
        layers.append(pdk.Layer(
            "ScatterplotLayer",
            data=points,
            get_position=["lon", "lat"],
            get_fill_color="color",
            get_radius=25,
            pickable=True,
        ))
    if snap["containers"]:
        containers = pd.DataFrame([
            {
                "lon": c["location"][0],
                "lat": c["location"][1],
                "fractie": c["fractie"],
                "color": _hex_rgb(FRACTION_COLORS.get(c["fractie"] or "", FALLBACK_COLOR)),
            }
            for c in snap["containers"]
        ])
        layers.append(pdk.Layer(
            "ScatterplotLayer",
            data=containers,
            get_position=["lon", "lat"],
            get_fill_color="color",
            get_radius=8,
        ))
    st.caption(f"{len(points):,} meldingen op de kaart")
    st.pydeck_chart(pdk.Deck(
        layers=layers,
        initial_view_state=AMSTERDAM,
        map_style="light",
        tooltip={"text": "{subcategorie}"},
    ))

# ── TAB 3: Hotspots ──
with tab_pressure:
    st.subheader("Buurten met de hoogste druk")
    st.caption("Score = open meldingen + 0,25 x afgesloten meldingen")
    hotspots = pd.DataFrame(snap["hotspots"])
    if hotspots.empty:
        st.info("Geen data beschikbaar voor deze periode")
    else:
        st.dataframe(
            hotspots[["name", "score", "open_count", "closed_count", "resolution_rate", "median_duration_days"]],
            hide_index=True,
            use_container_width=True,
            column_config={
                "name": "Buurt",
                "score": st.column_config.NumberColumn("Score", format="%.1f"),
                "open_count": st.column_config.NumberColumn("Open", format="%d"),
                "closed_count": st.column_config.NumberColumn("Gesloten", format="%d"),
                "resolution_rate": st.column_config.NumberColumn("Opgelost", format="%d%%"),
                "median_duration_days": st.column_config.NumberColumn("Mediaan dagen", format="%.0f"),
            },
        )

# ── TAB 4: Backlog ──
with tab_backlog:
    st.subheader("Openstaande meldingen per stadsdeel")
    st.caption(f"Over tijd = langer dan {settings.over_time_days} dagen open")
    backlog = pd.DataFrame(snap["backlog"])
    if backlog.empty:
        st.info("Geen data beschikbaar")
    else:
        st.bar_chart(backlog.set_index("name")[["open_count"]], horizontal=True)
        st.dataframe(
            backlog,
            hide_index=True,
            use_container_width=True,
            column_config={
                "name": "Stadsdeel",
                "open_count": st.column_config.NumberColumn("Open", format="%d"),
                "over_time_count": st.column_config.NumberColumn("Over tijd", format="%d"),
                "over_time_pct": st.column_config.NumberColumn("Over tijd %", format="%d%%"),
                "median_days_open": st.column_config.NumberColumn("Mediaan dagen open", format="%d"),
            },
        )

# ── TAB 5: Weight ──
with tab_weight:
    weight = snap["weight"]
    fractions = snap["fractions"]
    trend = weight["trend"]

    col1, col2, col3 = st.columns(3)
    col1.metric("Opgehaald", format_weight(trend["current_total"]), f"{trend['percentage_change']}%")
    col2.metric("Vorige periode", format_weight(trend["previous_total"]))
    col3.metric("Wegingen laatste uur", len(weight["recent"]))

    left, right = st.columns(2)
    with left:
        st.subheader("Verdeling per fractie")
        if fractions["fractions"]:
            frac = pd.DataFrame(fractions["fractions"]).set_index("fractie")
            st.bar_chart(frac[["total_weight"]], horizontal=True)
            st.dataframe(frac[["total_weight", "count", "percentage"]], use_container_width=True)
        else:
            st.info("Geen data beschikbaar voor deze periode")

    with right:
        st.subheader("Live activiteit (laatste uur)")
        if weight["recent"]:
            st.dataframe(
                pd.DataFrame(weight["recent"])[["time", "kenteken", "location", "fractie", "weight"]],
                hide_index=True,
                use_container_width=True,
            )
        else:
            st.info("Geen recente activiteit (laatste uur)")

    st.subheader("Top buurten op gewicht")
    hoods = pd.DataFrame(weight["neighbourhoods"])
    if not hoods.empty:
        st.bar_chart(hoods.set_index("buurt_naam")[["total_weight"]], horizontal=True)

# ── TAB 6: Trends ──
with tab_trends:
    trends = snap["trends"]
    summary = trends["summary"]
    col1, col2 = st.columns(2)
    col1.metric("Meldingen dit jaar", f"{summary['year_total']:,}", f"{summary['year_change_pct']}% t.o.v. vorig jaar")
    peak = trends["heatmap"]["peak"]
    col2.metric("Piekmoment", f"{peak['day']} {peak['hour']}" if peak else "N/A")

    st.subheader("Meldingen per maand")
    monthly = pd.DataFrame(trends["monthly"])
    if not monthly.empty:
        st.bar_chart(monthly.set_index("month")[["count"]])

    st.subheader("Wanneer wordt er gemeld? (laatste 30 dagen)")
    cells = pd.DataFrame(trends["heatmap"]["cells"])
    if not cells.empty:
        pivot = cells.pivot_table(index="day", columns="hour", values="count", fill_value=0)
        pivot.index = [DAY_LABELS[d] for d in pivot.index]
        st.dataframe(pivot.astype(int), use_container_width=True)
