"""Centralized constants for the planning engine.

This module contains the default values used across the EOQ, optimization and
layout components. Per-run configuration dataclasses take their defaults from
here, so changing a value here changes the default everywhere.
"""

# ============================================================================
# RECORD FIELDS
# ============================================================================

#: Identifier columns of an inventory record (non-empty strings)
ID_FIELDS = ("item_id", "store_id", "warehouse_id")

#: Numeric columns of an inventory record
NUMERIC_FIELDS = ("demand", "order_cost", "holding_cost", "inventory_level")

#: All required columns, in input order
REQUIRED_FIELDS = ID_FIELDS + NUMERIC_FIELDS


# ============================================================================
# EOQ CONSTANTS
# ============================================================================

#: Cost curve is sampled over [LOWER × eoq, UPPER × eoq]
COST_CURVE_LOWER_FACTOR = 0.5
COST_CURVE_UPPER_FACTOR = 1.5

#: Minimum number of cost curve samples (a single point is not a curve)
MIN_COST_CURVE_POINTS = 2

#: Default number of cost curve samples
DEFAULT_COST_CURVE_POINTS = 11


# ============================================================================
# SENSITIVITY CONSTANTS (percent)
# ============================================================================

DEFAULT_SENSITIVITY_MIN_PCT = 50
DEFAULT_SENSITIVITY_MAX_PCT = 150
DEFAULT_SENSITIVITY_STEP_PCT = 10

#: Grid point that must reproduce the baseline EOQ
BASELINE_PCT = 100


# ============================================================================
# OPTIMIZATION CONSTANTS
# ============================================================================

#: Tolerance for treating a quantity or reduced cost as zero
EPSILON = 1e-9

#: Relative tolerance of the aggregator's cost cross-check
COST_CHECK_REL_TOL = 1e-9

#: Absolute tolerance of the aggregator's cost cross-check
COST_CHECK_ABS_TOL = 1e-6

#: Share of the progress bar reserved for the initial (VAM) solution
INITIAL_SOLUTION_PROGRESS = 10.0

#: Progress never reaches 100 before the run has fully completed
MAX_IN_FLIGHT_PROGRESS = 99.0


# ============================================================================
# LAYOUT CONSTANTS (canvas pixels)
# ============================================================================

CANVAS_WIDTH = 800.0
CANVAS_HEIGHT = 500.0

#: Nodes are clamped to [MARGIN, WIDTH - MARGIN] × [MARGIN, HEIGHT - MARGIN]
CANVAS_MARGIN = 50.0

#: Target rows for the bipartite structure
WAREHOUSE_ROW_Y = 100.0
STORE_ROW_Y = 400.0

REPULSION_STRENGTH = 100.0
REPULSION_CUTOFF = 200.0
SPRING_REST_LENGTH = 150.0
SPRING_STIFFNESS = 0.01

#: Fraction of the distance to the target row covered per step
ROW_ATTRACTION = 0.1

#: Layout stops once no node moves further than this in a step
CONVERGENCE_THRESHOLD = 0.01

DEFAULT_LAYOUT_ITERATIONS = 50
