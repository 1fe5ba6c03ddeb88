"""Map rendering of a replayed navigation session."""

from typing import Optional

import folium
from folium import plugins

from .models import ManeuverType, RouteModel

STATUS_COLORS = {
    "accepted": "blue",
    "no_significant_change": "gray",
    "rejected": "black",
    "paused": "purple",
    "inactive": "lightgray",
}


def _format_elapsed(elapsed: float) -> str:
    minutes = int(elapsed // 60)
    seconds = int(elapsed % 60)
    return f"{minutes}m {seconds}s"


def _fix_color(update: Optional[dict]) -> str:
    if not update:
        return "gray"
    if update.get("deviation_active"):
        return "red"
    return STATUS_COLORS.get(update.get("status"), "gray")


def create_session_map(route: RouteModel, entries: list[dict], output_path: Optional[str] = None) -> folium.Map:
    """Draw the route, its instructions and the recorded fixes.

    entries are TraceRecorder entries: {"elapsed", "location", "update"}.
    """
    fixes = [e for e in entries if e.get("location")]
    center_points = [[p.lat, p.lon] for p in route.polyline]
    center_lat = sum(p[0] for p in center_points) / len(center_points)
    center_lon = sum(p[1] for p in center_points) / len(center_points)

    m = folium.Map(location=[center_lat, center_lon], zoom_start=16)
    folium.TileLayer("CartoDB positron", name="Light").add_to(m)
    folium.TileLayer("CartoDB dark_matter", name="Dark").add_to(m)

    route_group = folium.FeatureGroup(name="Route", show=True)
    folium.PolyLine(
        center_points,
        weight=5,
        color="green",
        opacity=0.6,
        popup=f"Route: {route.total_distance:.0f}m, {len(route)} steps",
    ).add_to(route_group)
    route_group.add_to(m)

    instructions_group = folium.FeatureGroup(name="Instructions", show=True)
    for instruction in route.instructions:
        if instruction.maneuver == ManeuverType.ARRIVE:
            icon = folium.Icon(color="red", icon="flag")
        elif instruction.maneuver == ManeuverType.DEPART:
            icon = folium.Icon(color="green", icon="play")
        else:
            icon = folium.Icon(color="blue", icon="arrow-right")
        popup = f"""
            <b>{instruction.index}. {instruction.text}</b><br>
            Maneuver: {instruction.maneuver.value}<br>
            Next: {instruction.distance_to_next:.0f}m
        """
        folium.Marker(
            [instruction.anchor.lat, instruction.anchor.lon],
            popup=folium.Popup(popup, max_width=250),
            icon=icon,
        ).add_to(instructions_group)
    instructions_group.add_to(m)

    fixes_group = folium.FeatureGroup(name="Fixes", show=True)
    events_group = folium.FeatureGroup(name="Events", show=True)
    deviations = 0
    for i, entry in enumerate(fixes):
        loc = entry["location"]
        update = entry.get("update")
        popup = f"""
            <b>Fix {i + 1}</b><br>
            Time: {_format_elapsed(entry.get("elapsed", 0))}<br>
            Lat: {loc['lat']:.6f}<br>
            Lon: {loc['lon']:.6f}<br>
            Accuracy: {loc.get('accuracy')}m
        """
        if update:
            popup += f"""<br>
            Status: {update.get('status')}<br>
            Step: {update.get('step_index')}<br>
            Progress: {update.get('progress')}%<br>
            Off route: {update.get('distance_from_route')}m
            """
        folium.CircleMarker(
            location=[loc["lat"], loc["lon"]],
            radius=5,
            color=_fix_color(update),
            fill=True,
            popup=folium.Popup(popup, max_width=200),
        ).add_to(fixes_group)

        if update and update.get("deviation_started"):
            deviations += 1
            folium.CircleMarker(
                location=[loc["lat"], loc["lon"]],
                radius=10,
                color="red",
                fill=False,
                weight=2,
                popup=f"Deviation at {_format_elapsed(entry.get('elapsed', 0))}",
            ).add_to(events_group)
        if update and update.get("arrived"):
            folium.Marker(
                [loc["lat"], loc["lon"]],
                popup=f"Arrived at {_format_elapsed(entry.get('elapsed', 0))}",
                icon=folium.Icon(color="darkgreen", icon="ok-sign"),
            ).add_to(events_group)

    fixes_group.add_to(m)
    events_group.add_to(m)
    folium.LayerControl().add_to(m)

    accepted = sum(1 for e in fixes if (e.get("update") or {}).get("status") == "accepted")
    duration = _format_elapsed(fixes[-1].get("elapsed", 0)) if fixes else "unknown"
    legend_html = f"""
    <div style="
        position: fixed;
        bottom: 50px;
        left: 50px;
        z-index: 1000;
        background-color: white;
        padding: 10px;
        border-radius: 5px;
        border: 2px solid grey;
        font-family: Arial;
        font-size: 12px;
    ">
        <b>Navigation Session</b><br>
        <hr style="margin: 5px 0">
        Duration: {duration}<br>
        Fixes: {len(fixes)} ({accepted} accepted)<br>
        Deviations: {deviations}<br>
        <hr style="margin: 5px 0">
        <div style="display: flex; align-items: center; margin: 3px 0;">
            <div style="width: 12px; height: 12px; background: blue; border-radius: 50%; margin-right: 5px;"></div>
            On route
        </div>
        <div style="display: flex; align-items: center; margin: 3px 0;">
            <div style="width: 12px; height: 12px; background: red; border-radius: 50%; margin-right: 5px;"></div>
            Off route
        </div>
        <div style="display: flex; align-items: center; margin: 3px 0;">
            <div style="width: 12px; height: 12px; background: gray; border-radius: 50%; margin-right: 5px;"></div>
            Ignored (small move)
        </div>
    </div>
    """
    m.get_root().html.add_child(folium.Element(legend_html))
    plugins.Fullscreen().add_to(m)

    if output_path:
        m.save(output_path)
    return m
