"""Reference linear program for the transportation problem.

Builds the transportation problem as a pyomo ConcreteModel and solves it with
an off-the-shelf LP solver. The DistributionOptimizer does not depend on this
model; it exists as an independent optimality cross-check:

    Variables:   x[w, s] >= 0
    Objective:   minimize Σ cost[w, s] × x[w, s]
    Constraints: Σ_s x[w, s] <= capacity[w]   (warehouses with a capacity)
                 Σ_w x[w, s] >= demand[s]
"""

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from pyomo.environ import (
    ConcreteModel,
    Constraint,
    NonNegativeReals,
    Objective,
    Set,
    Var,
    minimize,
    value,
)
from pyomo.opt import TerminationCondition

from stockflow.constants import EPSILON
from stockflow.models.assignment import Assignment, AssignmentEntry
from stockflow.models.optimization_result import FeasibilityStatus
from .problem import TransportationProblem
from .solver_config import HIGHS_LP_OPTIONS, SolverConfig, SolverType

logger = logging.getLogger(__name__)


@dataclass
class LPSolveResult:
    """
    Outcome of a reference LP solve.

    Attributes:
        success: True if the solver proved optimality
        status: Mapped feasibility state (None if the solver could not decide)
        objective_value: Optimal objective, if found
        termination_condition: Solver termination condition, as text
        solver_name: Solver used
        solve_time_seconds: Wall-clock solve time
        flows: (warehouse_id, store_id) → quantity for lanes with flow
    """
    success: bool
    status: Optional[FeasibilityStatus] = None
    objective_value: Optional[float] = None
    termination_condition: str = ""
    solver_name: Optional[str] = None
    solve_time_seconds: Optional[float] = None
    flows: Dict[Tuple[str, str], float] = field(default_factory=dict)

    def is_optimal(self) -> bool:
        return self.success and self.status == FeasibilityStatus.OPTIMAL

    def to_assignment(self, problem: TransportationProblem) -> Assignment:
        """Flows as an Assignment, lanes sorted by (warehouse_id, store_id)."""
        return Assignment(entries=tuple(
            AssignmentEntry(
                warehouse_id=w,
                store_id=s,
                quantity=qty,
                unit_cost=problem.cost(w, s),
                distance=problem.distance(w, s),
            )
            for (w, s), qty in sorted(self.flows.items())
        ))

    def __str__(self) -> str:
        status = self.status.value.upper() if self.status is not None else self.termination_condition
        result = f"LPSolveResult: {status}"
        if self.objective_value is not None:
            result += f", objective = {self.objective_value:,.2f}"
        if self.solve_time_seconds is not None:
            result += f", time = {self.solve_time_seconds:.2f}s"
        return result


class TransportationLPModel:
    """
    Pyomo formulation of a TransportationProblem.

    Example:
        lp = TransportationLPModel(problem)
        result = lp.solve()
        if result.is_optimal():
            print(result.objective_value)
    """

    def __init__(self, problem: TransportationProblem, solver_config: Optional[SolverConfig] = None):
        self.problem = problem
        self.solver_config = solver_config or SolverConfig()
        self.model: Optional[ConcreteModel] = None

    def build_model(self) -> ConcreteModel:
        problem = self.problem
        bounded = [w for w in problem.warehouse_ids if problem.capacities[w] is not None]

        model = ConcreteModel(name="Transportation")
        model.warehouses = Set(initialize=list(problem.warehouse_ids), ordered=True)
        model.stores = Set(initialize=list(problem.store_ids), ordered=True)
        model.bounded_warehouses = Set(initialize=bounded, ordered=True)

        model.x = Var(model.warehouses, model.stores, domain=NonNegativeReals)

        model.obj = Objective(
            expr=sum(problem.cost(w, s) * model.x[w, s] for w in model.warehouses for s in model.stores),
            sense=minimize,
        )

        def supply_rule(m, w):
            if not problem.store_ids:
                return Constraint.Skip
            return sum(m.x[w, s] for s in m.stores) <= problem.capacities[w]

        def demand_rule(m, s):
            if not problem.warehouse_ids:
                return Constraint.Skip
            return sum(m.x[w, s] for w in m.warehouses) >= problem.demands[s]

        model.supply_con = Constraint(model.bounded_warehouses, rule=supply_rule)
        model.demand_con = Constraint(model.stores, rule=demand_rule)
        return model

    def solve(self, solver_name: Optional[str] = None) -> LPSolveResult:
        """
        Build and solve the LP.

        Args:
            solver_name: Solver to use (default: best available)

        Raises:
            RuntimeError: If no solver is installed
        """
        solver_name = solver_name or self.solver_config.get_best_available_solver()
        self.model = self.build_model()
        logger.info(
            f"Solving reference LP with {solver_name}: "
            f"{self.model.nvariables()} variables, {self.model.nconstraints()} constraints"
        )

        if solver_name == SolverType.APPSI_HIGHS.value:
            result = self._solve_with_appsi_highs()
        else:
            result = self._solve_with_factory(solver_name)

        logger.info(str(result))
        return result

    def _solve_with_appsi_highs(self) -> LPSolveResult:
        from pyomo.contrib.appsi.base import TerminationCondition as AppsiTC
        from pyomo.contrib.appsi.solvers import Highs

        solver = Highs()
        solver.config.load_solution = False
        for key, val in HIGHS_LP_OPTIONS.items():
            solver.highs_options[key] = val

        solve_start = time.time()
        results = solver.solve(self.model)
        solve_time = time.time() - solve_start

        status = {
            AppsiTC.optimal: FeasibilityStatus.OPTIMAL,
            AppsiTC.infeasible: FeasibilityStatus.INFEASIBLE,
            AppsiTC.unbounded: FeasibilityStatus.UNBOUNDED,
        }.get(results.termination_condition)

        success = status == FeasibilityStatus.OPTIMAL
        if success:
            results.solution_loader.load_vars()

        return LPSolveResult(
            success=success,
            status=status,
            objective_value=results.best_feasible_objective if success else None,
            termination_condition=str(results.termination_condition),
            solver_name=SolverType.APPSI_HIGHS.value,
            solve_time_seconds=solve_time,
            flows=self._extract_flows() if success else {},
        )

    def _solve_with_factory(self, solver_name: str) -> LPSolveResult:
        options = HIGHS_LP_OPTIONS if solver_name == SolverType.HIGHS.value else None
        solver = self.solver_config.create_solver(solver_name, options=options)

        solve_start = time.time()
        results = solver.solve(self.model, load_solutions=False)
        solve_time = time.time() - solve_start

        termination = results.solver.termination_condition
        status = {
            TerminationCondition.optimal: FeasibilityStatus.OPTIMAL,
            TerminationCondition.infeasible: FeasibilityStatus.INFEASIBLE,
            TerminationCondition.unbounded: FeasibilityStatus.UNBOUNDED,
        }.get(termination)

        success = status == FeasibilityStatus.OPTIMAL
        if success:
            self.model.solutions.load_from(results)

        return LPSolveResult(
            success=success,
            status=status,
            objective_value=value(self.model.obj) if success else None,
            termination_condition=str(termination),
            solver_name=solver_name,
            solve_time_seconds=solve_time,
            flows=self._extract_flows() if success else {},
        )

    def _extract_flows(self) -> Dict[Tuple[str, str], float]:
        flows = {}
        for (w, s), var in self.model.x.items():
            qty = var.value
            if qty is not None and qty > EPSILON * max(1.0, self.problem.total_demand):
                flows[(w, s)] = float(qty)
        return flows


def costs_agree(lp_result: LPSolveResult, total_cost: float, rel_tol: float = 1e-6) -> bool:
    """True if an LP objective matches another solver's total cost."""
    if lp_result.objective_value is None:
        return False
    return math.isclose(lp_result.objective_value, total_cost, rel_tol=rel_tol, abs_tol=1e-6)
