import json
from pathlib import Path

from route_console.models.domain import BatchOutcome, Coordinate, PlanningResult, RouteAlternative
from route_console.persistence.filesystem import FileStorage
from route_console.services.outputs.formatter import alternatives_to_csv, batch_outcome_to_json


def _result() -> PlanningResult:
    return PlanningResult(
        vehicle_id="1",
        label="Bus 1",
        source_name="DB Mall",
        dest_name="AIIMS",
        source=Coordinate(23.2332, 77.4343),
        destination=Coordinate(23.2070, 77.4585),
        peak_hour="morning",
        total_routes=2,
        alternatives=(
            RouteAlternative(0, 5.2, 18.0, ((23.2332, 77.4343), (23.2070, 77.4585)), 8.0, 7.5, 2, "Main road"),
            RouteAlternative(1, 6.1, 16.0, ((23.2332, 77.4343), (23.22, 77.45), (23.2070, 77.4585)), 8.5, 8.0, 1),
        ),
        selected_index=1,
    )


def test_file_storage_creates_run_directory(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="plan_test")

    assert run_dir.exists()
    assert run_dir.is_dir()
    assert run_dir.parent == tmp_path / "outputs"


def test_file_storage_writes_json_and_csv(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    run_dir = storage.make_run_directory(prefix="plan_test")

    summary_path = run_dir / "summary.json"
    alternatives_path = run_dir / "alternatives.csv"

    storage.write_json(summary_path, {"hello": "world"})
    storage.write_csv(alternatives_path, "a,b\n1,2\n")

    assert summary_path.read_text(encoding="utf-8") == '{\n  "hello": "world"\n}'
    assert alternatives_path.read_text(encoding="utf-8") == "a,b\n1,2\n"


def test_write_run_encodes_by_extension(tmp_path: Path) -> None:
    storage = FileStorage(root=tmp_path)
    outcome = BatchOutcome(results=(_result(),), requested=2, resolved=1, unresolved_ids=["2"])

    run_dir = storage.write_run(
        "plan_abc",
        {"summary.json": batch_outcome_to_json(outcome), "alternatives.csv": alternatives_to_csv(outcome.results)},
    )

    assert run_dir.name.startswith("plan_abc_")
    summary = json.loads((run_dir / "summary.json").read_text(encoding="utf-8"))
    assert summary["summary"] == "1 of 2 resolved"
    assert summary["unresolved_ids"] == ["2"]
    assert summary["results"][0]["selected_index"] == 1
    assert summary["results"][0]["alternatives"][1]["waypoints"][1] == [23.22, 77.45]

    rows = (run_dir / "alternatives.csv").read_text(encoding="utf-8").splitlines()
    assert len(rows) == 3
    assert rows[1].split(",")[5] == "False"
    assert rows[2].split(",")[5] == "True"
    assert rows[2].split(",")[-1] == "3"
