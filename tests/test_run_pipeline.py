"""Tests for the run_pipeline command-line script."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_pipeline.py"


@pytest.fixture(scope="module")
def run_pipeline():
    module_spec = importlib.util.spec_from_file_location("run_pipeline", SCRIPT)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


@pytest.fixture
def records_csv(tmp_path):
    """Records for warehouses and stores that are not in the demo network."""
    path = tmp_path / "records.csv"
    path.write_text(
        "item_id,store_id,warehouse_id,demand,order_cost,holding_cost,inventory_level\n"
        "A,S1,W1,1210,25,5,10\n"
        "B,S2,W2,1210,25,5,20\n"
    )
    return path


@pytest.fixture
def costs_csv(tmp_path):
    path = tmp_path / "costs.csv"
    path.write_text("warehouse_id,S1,S2\nW1,4,6\nW2,5,3\n")
    return path


class TestRunPipeline:
    """Tests for main()."""

    def test_sample_data(self, run_pipeline):
        assert run_pipeline.main(["--layout-iterations", "5"]) == 0

    def test_uploaded_network(self, run_pipeline, records_csv, costs_csv, tmp_path):
        capacities = tmp_path / "capacities.json"
        capacities.write_text('{"W1": 200, "W2": 200}')

        code = run_pipeline.main([
            "--csv", str(records_csv),
            "--costs", str(costs_csv),
            "--capacities", str(capacities),
            "--layout-iterations", "5",
        ])
        assert code == 0

    def test_uploaded_network_unconstrained(self, run_pipeline, records_csv, costs_csv):
        code = run_pipeline.main(["--csv", str(records_csv), "--costs", str(costs_csv),
                                  "--layout-iterations", "5"])
        assert code == 0

    def test_infeasible_exit_code(self, run_pipeline, records_csv, costs_csv, tmp_path):
        capacities = tmp_path / "capacities.csv"
        capacities.write_text("warehouse_id,capacity\nW1,10\nW2,10\n")

        code = run_pipeline.main(["--csv", str(records_csv), "--costs", str(costs_csv),
                                  "--capacities", str(capacities)])
        assert code == 2

    def test_csv_requires_costs(self, run_pipeline, records_csv):
        with pytest.raises(SystemExit) as exc_info:
            run_pipeline.main(["--csv", str(records_csv)])
        assert exc_info.value.code == 2

    def test_missing_file(self, run_pipeline, records_csv, tmp_path):
        code = run_pipeline.main(["--csv", str(records_csv), "--costs", str(tmp_path / "none.csv")])
        assert code == 1
