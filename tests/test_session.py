import asyncio
from pathlib import Path

import pytest

from fakes import FakePlannerClient, FakeResolver
from route_console.errors import CommitError, NothingToPlanError, PlanningInProgressError, PlanningServiceError
from route_console.persistence.filesystem import FileStorage
from route_console.services import session as session_module
from route_console.services.planning import BatchRoutePlanner, VehicleRoster
from route_console.services.session import PlanningSession, SessionRegistry

ADDRESSES = [
    ("DB Mall", "Habibganj", 500),
    ("Atlantis", "AIIMS", 0),
    ("MP Nagar", "New Market", 2000),
]


def _session(resolver=None, client=None) -> PlanningSession:
    planner = BatchRoutePlanner(resolver or FakeResolver(), client or FakePlannerClient())
    roster = VehicleRoster()
    first = roster.vehicles[0]
    roster.update(first.vehicle_id, source=ADDRESSES[0][0], destination=ADDRESSES[0][1], expected_passengers=ADDRESSES[0][2])
    for source, destination, passengers in ADDRESSES[1:]:
        roster.add(source=source, destination=destination, expected_passengers=passengers)
    return PlanningSession("session-under-test", planner, roster=roster)


def test_plan_replaces_results_and_redraws() -> None:
    session = _session()
    session.initialize_map()

    outcome = asyncio.run(session.plan())

    assert outcome.summary == "2 of 3 resolved"
    assert [result.label for result in session.store.snapshot()] == ["Bus 1", "Bus 3"]
    assert session.map.drawn_count == 6
    assert session.roster.vehicles[0].is_resolved
    assert not session.roster.vehicles[1].is_resolved
    assert not session.planning


def test_select_updates_one_vehicle_and_recomputes_fleet() -> None:
    session = _session()
    session.initialize_map()
    asyncio.run(session.plan())

    view = session.select(1, 2)

    assert [result.selected_index for result in session.store.snapshot()] == [0, 2]
    assert view.result.selected.duration_min == 55.0
    # 2000/day on a 120 minute round trip
    assert view.recommendation.trips_per_vehicle_per_day == 8
    assert view.recommendation.vehicles_needed == 4
    assert view.recommendation.frequency_min == 30
    assert view.schedule.first_departure == "06:00"
    assert session.map.drawn_count == 6


def test_fleet_view_without_demand_has_no_recommendation() -> None:
    session = _session()
    asyncio.run(session.plan())
    session.roster.update(session.store.snapshot()[0].vehicle_id, expected_passengers=0)

    view = session.fleet_view(0)

    assert view.recommendation is None
    assert view.schedule is None
    assert view.fleet_error is None


def test_fleet_view_reports_round_trip_that_does_not_fit() -> None:
    class SlowPlanner(FakePlannerClient):
        async def plan_batch(self, request):
            response = await super().plan_batch(request)
            for plan in response.routes:
                for option in plan.routes:
                    option.duration_min = 600.0
            return response

    session = _session(client=SlowPlanner())
    asyncio.run(session.plan())

    view = session.fleet_view(0)

    assert view.recommendation is None
    assert "operating window" in view.fleet_error


def test_nothing_to_plan_keeps_previous_run() -> None:
    resolver = FakeResolver()
    client = FakePlannerClient()
    session = _session(resolver=resolver, client=client)
    session.initialize_map()
    asyncio.run(session.plan())
    session.select(0, 1)

    resolver.known = {}
    with pytest.raises(NothingToPlanError):
        asyncio.run(session.plan())

    assert len(client.requests) == 1
    assert [result.selected_index for result in session.store.snapshot()] == [1, 0]
    assert session.map.drawn_count == 6
    assert not session.planning


def test_planner_failure_keeps_previous_run() -> None:
    client = FakePlannerClient()
    session = _session(client=client)
    asyncio.run(session.plan())
    version = session.store.version

    client.error = PlanningServiceError("Gemini API quota exceeded", status_code=429)
    with pytest.raises(PlanningServiceError):
        asyncio.run(session.plan())

    assert session.store.version == version
    assert len(session.store) == 2


def test_second_plan_while_running_is_rejected() -> None:
    async def scenario():
        gate = asyncio.Event()
        session = _session(resolver=FakeResolver(gate=gate))
        first = asyncio.create_task(session.plan())
        await asyncio.sleep(0)
        assert session.planning
        with pytest.raises(PlanningInProgressError):
            await session.plan()
        gate.set()
        return await first, session

    outcome, session = asyncio.run(scenario())

    assert outcome.resolved == 2
    assert not session.planning


def test_new_run_resets_selections_and_commits() -> None:
    session = _session()
    asyncio.run(session.plan())
    session.select(0, 2)
    asyncio.run(session.commit(session.store.snapshot()[0].vehicle_id))

    asyncio.run(session.plan())

    assert [result.selected_index for result in session.store.snapshot()] == [0, 0]
    assert session.commits == {}


def test_commit_sends_current_selection() -> None:
    client = FakePlannerClient()
    session = _session(client=client)
    asyncio.run(session.plan())
    vehicle_id = session.store.snapshot()[1].vehicle_id
    session.select_vehicle(vehicle_id, 1)
    session.roster.update(vehicle_id, source="Lalghati")

    acknowledgment = asyncio.run(session.commit(vehicle_id))

    sent = client.saved[0]
    assert sent.bus_id == vehicle_id
    assert sent.bus_number == "Bus 3"
    assert sent.route_index == 1
    assert sent.source_name == "MP Nagar"
    assert sent.duration_min == 50.0
    assert sent.expected_passengers_daily == 2000
    assert acknowledgment.route_id == "101"
    assert session.commits[vehicle_id] is acknowledgment


def test_failed_commit_does_not_affect_other_vehicles() -> None:
    client = FakePlannerClient()
    session = _session(client=client)
    asyncio.run(session.plan())
    first_id, second_id = (result.vehicle_id for result in session.store.snapshot())
    asyncio.run(session.commit(first_id))

    client.reject_saves_for.add(second_id)
    with pytest.raises(CommitError) as excinfo:
        asyncio.run(session.commit(second_id))

    assert excinfo.value.detail == "Route already exists for this bus"
    assert list(session.commits) == [first_id]


def test_commit_for_unplanned_vehicle_is_rejected() -> None:
    session = _session()
    asyncio.run(session.plan())
    unresolved_id = session.roster.vehicles[1].vehicle_id

    with pytest.raises(ValueError):
        asyncio.run(session.commit(unresolved_id))


def test_plan_can_persist_run_outputs(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setattr(session_module, "FileStorage", lambda: FileStorage(root=tmp_path))
    session = _session()

    asyncio.run(session.plan(persist=True))

    run_dirs = list((tmp_path / "outputs").glob("plan_session-_*"))
    assert run_dirs
    assert session.last_run_dir == run_dirs[0]
    assert (run_dirs[0] / "summary.json").exists()
    csv_lines = (run_dirs[0] / "alternatives.csv").read_text(encoding="utf-8").splitlines()
    assert csv_lines[0].startswith("vehicle_id,label,peak_hour")
    assert len(csv_lines) == 7


def test_registry_creates_and_discards_sessions(monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[PlanningSession] = []

    def fake_build(session_id: str) -> PlanningSession:
        session = PlanningSession(session_id, BatchRoutePlanner(FakeResolver(), FakePlannerClient()))
        created.append(session)
        return session

    monkeypatch.setattr(session_module, "build_session", fake_build)
    registry = SessionRegistry()

    session = registry.create()
    assert registry.get(session.session_id) is session
    asyncio.run(registry.discard(session.session_id))

    assert len(registry) == 0
    assert created[0].planner.client.closed
    with pytest.raises(KeyError):
        registry.get(session.session_id)


def test_commit_finishing_after_a_new_run_is_not_recorded() -> None:
    async def scenario():
        client = FakePlannerClient(save_gate=asyncio.Event())
        session = _session(client=client)
        await session.plan()
        vehicle_id = session.store.snapshot()[0].vehicle_id
        session.select(0, 2)

        pending = asyncio.create_task(session.commit(vehicle_id))
        await asyncio.sleep(0)
        await session.plan()
        client.save_gate.set()
        with pytest.raises(CommitError) as excinfo:
            await pending
        return session, client, vehicle_id, excinfo.value

    session, client, vehicle_id, error = asyncio.run(scenario())

    assert error.status_code == 409
    assert vehicle_id not in session.commits
    assert session.store.snapshot()[0].selected_index == 0
    assert client.saved[0].route_index == 2


def test_commit_within_the_same_run_is_recorded() -> None:
    async def scenario():
        client = FakePlannerClient(save_gate=asyncio.Event())
        session = _session(client=client)
        await session.plan()
        vehicle_id = session.store.snapshot()[0].vehicle_id

        pending = asyncio.create_task(session.commit(vehicle_id))
        await asyncio.sleep(0)
        session.select(1, 1)
        client.save_gate.set()
        await pending
        return session, vehicle_id

    session, vehicle_id = asyncio.run(scenario())

    assert list(session.commits) == [vehicle_id]
