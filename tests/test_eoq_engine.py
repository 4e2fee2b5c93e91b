"""Tests for EOQ calculator."""

import math

import pytest

from stockflow.eoq import EOQEngine, raw_eoq, round_half_even
from stockflow.exceptions import DivisionByZero, InvalidInput
from stockflow.models import EOQRecord, InventoryRecord


@pytest.fixture
def engine():
    return EOQEngine()


class TestRawEOQ:
    """Tests for the EOQ formula and its guards."""

    def test_formula(self):
        assert raw_eoq(1200, 25, 5) == pytest.approx(math.sqrt(12000))

    def test_zero_demand(self):
        assert raw_eoq(0, 25, 5) == 0.0

    def test_zero_holding_cost(self):
        with pytest.raises(DivisionByZero) as exc_info:
            raw_eoq(1200, 25, 0, record_index=4)
        assert exc_info.value.field == "holding_cost"
        assert exc_info.value.record_index == 4

    def test_division_by_zero_is_invalid_input(self):
        with pytest.raises(InvalidInput):
            raw_eoq(1200, 25, -1)

    def test_negative_demand(self):
        with pytest.raises(InvalidInput, match="demand"):
            raw_eoq(-1, 25, 5)

    def test_non_finite_operand(self):
        with pytest.raises(InvalidInput, match="finite"):
            raw_eoq(math.nan, 25, 5)


class TestRoundHalfEven:
    """Tests for EOQ rounding."""

    @pytest.mark.parametrize("value,expected", [
        (103.5, 104),
        (104.5, 104),
        (0.5, 0),
        (1.5, 2),
        (97.47, 97),
    ])
    def test_ties_to_even(self, value, expected):
        assert round_half_even(value) == expected


class TestMonotonicity:
    """EOQ grows with demand and order cost and shrinks with holding cost."""

    BASE = {"demand": 1210.0, "order_cost": 25.0, "holding_cost": 5.0}
    FACTORS = [0.01, 0.5, 0.9, 1.0, 1.1, 2.0, 10.0, 1000.0]

    @pytest.mark.parametrize("operand,direction", [
        ("demand", 1),
        ("order_cost", 1),
        ("holding_cost", -1),
    ])
    def test_raw_eoq(self, operand, direction):
        values = [raw_eoq(**dict(self.BASE, **{operand: self.BASE[operand] * f})) for f in self.FACTORS]

        for lower, higher in zip(values, values[1:]):
            assert direction * (higher - lower) > 0

    @pytest.mark.parametrize("operand,direction", [
        ("demand", 1),
        ("order_cost", 1),
        ("holding_cost", -1),
    ])
    def test_rounded_eoq(self, engine, record, operand, direction):
        value = getattr(record, operand)
        eoqs = [
            engine.compute_one(record.model_copy(update={operand: value * f})).eoq
            for f in self.FACTORS
        ]

        for lower, higher in zip(eoqs, eoqs[1:]):
            assert direction * (higher - lower) >= 0


class TestEOQEngine:
    """Tests for EOQEngine."""

    def test_compute_one(self, engine, record):
        eoq_record = engine.compute_one(record)
        assert isinstance(eoq_record, EOQRecord)
        assert eoq_record.eoq == 110

    def test_compute_preserves_order_and_inputs(self, engine, records):
        before = [r.model_copy() for r in records]
        result = engine.compute(records)

        assert [(r.item_id, r.store_id) for r in result] == [(r.item_id, r.store_id) for r in records]
        assert records == before
        assert result[1].eoq == 97

    def test_compute_fails_whole_batch(self, engine, record):
        """Test that one bad record fails the batch and is identified."""
        bad = InventoryRecord.model_construct(**dict(record.model_dump(), holding_cost=0.0))
        with pytest.raises(DivisionByZero) as exc_info:
            engine.compute([record, bad])
        assert exc_info.value.record_index == 1

    def test_total_cost(self, engine, record):
        point = engine.total_cost(record, 110)
        assert point.ordering_cost == pytest.approx(272.7272727)
        assert point.holding_cost == pytest.approx(275.0)
        assert point.total_cost == pytest.approx(547.7272727)

    def test_total_cost_rejects_zero_quantity(self, engine, record):
        with pytest.raises(InvalidInput):
            engine.total_cost(record, 0)

    def test_cost_curve(self, engine, record):
        curve = engine.cost_curve(record)
        assert len(curve) == 11
        assert curve[0].q == pytest.approx(55.0)
        assert curve[-1].q == pytest.approx(165.0)
        assert [p.q for p in curve] == sorted(p.q for p in curve)

    def test_cost_curve_minimum_near_eoq(self, engine, record):
        curve = engine.cost_curve(record, num_points=21)
        best = min(curve, key=lambda p: p.total_cost)
        assert best.q == pytest.approx(110.0)

    @pytest.mark.parametrize("num_points", [0, 1, 2.5, True])
    def test_cost_curve_rejects_bad_point_count(self, engine, record, num_points):
        with pytest.raises(InvalidInput):
            engine.cost_curve(record, num_points=num_points)

    def test_cost_curve_rejects_zero_eoq(self, engine, record):
        zero_demand = record.model_copy(update={"demand": 0.0})
        with pytest.raises(InvalidInput, match="zero EOQ"):
            engine.cost_curve(zero_demand)

    def test_summarize_by_item(self, engine, eoq_records):
        summaries = engine.summarize_by_item(eoq_records)

        assert [s.item_id for s in summaries][:3] == ["ITM001", "ITM002", "ITM003"]
        first = summaries[0]
        assert first.record_count == 2
        assert first.total_demand == 2150
        assert first.average_eoq == 104

    def test_summarize_empty(self, engine):
        assert engine.summarize_by_item([]) == []
