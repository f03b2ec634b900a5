from dataclasses import replace

from route_console.models.domain import Coordinate, PlanningResult, RouteAlternative
from route_console.services.visualization.surface import OverlaySurface
from route_console.services.visualization.synchronizer import DEFAULT_COLOR, RouteMapSynchronizer, stroke_for

START_LATS = (23.20, 23.21, 23.22)


def _result(vehicle_id: str, selected_index: int = 0) -> PlanningResult:
    alternatives = tuple(
        RouteAlternative(
            route_index=index,
            distance_km=10.0,
            duration_min=40.0,
            waypoints=((START_LATS[index], 77.40), (23.30, 77.50)),
            gemini_score=8.0,
            traffic_score=7.0,
            rank=index + 1,
        )
        for index in range(3)
    )
    return PlanningResult(
        vehicle_id=vehicle_id,
        label=f"Bus {vehicle_id}",
        source_name="DB Mall",
        dest_name="AIIMS",
        source=Coordinate(23.2, 77.4),
        destination=Coordinate(23.3, 77.5),
        peak_hour="morning",
        total_routes=3,
        alternatives=alternatives,
        selected_index=selected_index,
    )


def test_stroke_styles_by_position_and_selection() -> None:
    assert stroke_for(0, True) == (8, 1.0, 1000)
    assert stroke_for(0, False) == (6, 0.8, 100)
    assert stroke_for(1, False) == (5, 0.6, 101)
    assert stroke_for(2, False) == (4, 0.5, 102)
    assert stroke_for(2, True) == (6, 1.0, 1000)
    assert stroke_for(4, False) == (4, 0.5, 104)


def test_drawing_before_initialize_is_a_no_op() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)

    assert sync.draw_all([_result("1")], {"1": "#FF0000"}) == 0
    assert surface.polylines == ()
    assert sync.drawn_count == 0


def test_redraws_never_accumulate_elements() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize((23.2599, 77.4126), 12)
    snapshot = [_result("1"), _result("2")]
    colors = {"1": "#FF0000", "2": "#00FF00"}

    for _ in range(5):
        drawn = sync.draw_all(snapshot, colors)

    assert drawn == 6
    assert sync.drawn_count == 6
    assert len(surface.polylines) == 6


def test_selected_alternative_is_drawn_on_top() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize()

    sync.draw_all([_result("1", selected_index=2)], {"1": "#0000FF"})
    selected = [line for line in surface.polylines if line.z_index == 1000]

    assert len(selected) == 1
    assert selected[0].weight == 6
    assert selected[0].opacity == 1.0
    assert selected[0].coordinates[0] == (23.22, 77.40)
    assert {line.color for line in surface.polylines} == {"#0000FF"}


def test_changing_selection_moves_the_highlight() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize()
    result = _result("1")

    sync.draw_all([result], {"1": "#FF0000"})
    sync.draw_all([replace(result, selected_index=1)], {"1": "#FF0000"})

    z_indices = sorted(line.z_index for line in surface.polylines)
    assert z_indices == [100, 102, 1000]


def test_missing_color_uses_default() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize()

    sync.draw_all([_result("9")], {})

    assert {line.color for line in surface.polylines} == {DEFAULT_COLOR}


def test_initialize_uses_configured_view_and_overlays_sort_by_z_index() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize()
    sync.draw_all([_result("1")], {"1": "#FF0000"})

    overlays = surface.to_overlays()

    assert overlays["view"] == {"center": [23.2599, 77.4126], "zoom": 12}
    assert [route["z_index"] for route in overlays["routes"]] == [101, 102, 1000]
    assert overlays["routes"][0]["coordinates"] == [[23.21, 77.4], [23.3, 77.5]]


def test_dispose_all_clears_surface() -> None:
    surface = OverlaySurface()
    sync = RouteMapSynchronizer(surface)
    sync.initialize()
    sync.draw_all([_result("1")], {"1": "#FF0000"})

    sync.dispose_all()

    assert sync.drawn_count == 0
    assert surface.polylines == ()
