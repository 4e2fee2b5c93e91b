"""Tests for EOQ sensitivity analysis."""

import pytest

from stockflow.eoq import (
    EOQEngine,
    SensitivityAnalyzer,
    SensitivityGridConfig,
    percent_range,
)
from stockflow.exceptions import ConsistencyError, InvalidInput
from stockflow.models import EOQRecord


@pytest.fixture
def analyzer():
    return SensitivityAnalyzer()


class TestPercentRange:
    """Tests for percentage grid construction."""

    def test_default_grid(self):
        assert percent_range(50, 150, 10) == (50, 60, 70, 80, 90, 100, 110, 120, 130, 140, 150)

    def test_fractional_step_has_no_drift(self):
        values = percent_range(90, 110, 2.5)
        assert len(values) == 9
        assert values[-1] == 110

    def test_rejects_non_positive_step(self):
        with pytest.raises(InvalidInput):
            percent_range(50, 150, 0)

    def test_rejects_inverted_range(self):
        with pytest.raises(InvalidInput):
            percent_range(150, 50, 10)


class TestSensitivityGridConfig:
    """Tests for grid configuration validation."""

    def test_defaults_include_baseline(self):
        grid = SensitivityGridConfig()
        assert len(grid.demand_factors) == 11
        assert grid.includes_baseline

    def test_lists_become_tuples(self):
        grid = SensitivityGridConfig(demand_factors=[100, 200], cost_factors=[100])
        assert grid.demand_factors == (100, 200)

    @pytest.mark.parametrize("factors", [(), (-10,), (100, 100), (float("nan"),)])
    def test_rejects_bad_factors(self, factors):
        with pytest.raises(InvalidInput):
            SensitivityGridConfig(demand_factors=factors)


class TestSensitivityAnalyzer:
    """Tests for the EOQ surface."""

    def test_baseline_point(self, analyzer, record):
        surface = analyzer.analyze(record)
        assert surface.baseline_eoq == 110
        assert surface.value(100, 100) == 110

    def test_surface_shape(self, analyzer, record):
        surface = analyzer.analyze(record)
        assert len(surface.points) == 121
        assert surface.pivot().shape == (11, 11)

    def test_doubled_demand(self, analyzer, record):
        grid = SensitivityGridConfig(demand_factors=(100, 200), cost_factors=(100,))
        surface = analyzer.analyze(record, grid)
        assert surface.value(200, 100) == 155

    def test_monotonic_in_demand(self, analyzer, record):
        surface = analyzer.analyze(record)
        column = [surface.value(d, 100) for d in SensitivityGridConfig().demand_factors]
        assert column == sorted(column)

    def test_zero_percent_gives_zero_eoq(self, analyzer, record):
        grid = SensitivityGridConfig(demand_factors=(0, 100), cost_factors=(100,))
        assert analyzer.analyze(record, grid).value(0, 100) == 0

    def test_deterministic(self, analyzer, record):
        assert analyzer.analyze(record) == analyzer.analyze(record)

    def test_missing_point_raises_key_error(self, analyzer, record):
        surface = analyzer.analyze(record)
        with pytest.raises(KeyError):
            surface.value(55, 100)

    def test_stale_stored_eoq_detected(self, analyzer, record):
        """Test that a stored EOQ disagreeing with the engine is reported."""
        stale = EOQRecord.from_record(record, 999)
        with pytest.raises(ConsistencyError) as exc_info:
            analyzer.analyze(stale)
        assert exc_info.value.check == "sensitivity_baseline"
        assert exc_info.value.expected == 110

    def test_analyze_all(self, analyzer, eoq_records):
        surfaces = analyzer.analyze_all(eoq_records[:3])
        assert [s.baseline_eoq for s in surfaces] == [r.eoq for r in eoq_records[:3]]

    def test_to_dataframe(self, analyzer, record):
        df = analyzer.analyze(record).to_dataframe()
        assert list(df.columns) == ["demand_factor", "cost_factor", "eoq", "raw_eoq"]
        assert len(df) == 121


class TestApplyScenario:
    """Tests for scenario recomputation."""

    def test_scenario_record(self, analyzer, record):
        [scenario] = analyzer.apply_scenario([record], demand_factor=200)
        assert scenario.demand == 2400
        assert scenario.eoq == 155
        assert scenario.baseline_eoq == 110
        assert scenario.demand_factor == 200

    def test_inputs_not_modified(self, analyzer, eoq_records):
        before = [r.demand for r in eoq_records]
        analyzer.apply_scenario(eoq_records, demand_factor=150, cost_factor=80)
        assert [r.demand for r in eoq_records] == before

    def test_rejects_zero_cost_factor(self, analyzer, record):
        with pytest.raises(InvalidInput):
            analyzer.apply_scenario([record], cost_factor=0)

    def test_uses_shared_engine(self, record):
        engine = EOQEngine()
        assert SensitivityAnalyzer(engine).engine is engine
