"""Distribution optimization: transportation problem, exact solver and reference LP."""

from .problem import TransportationProblem
from .transportation import DistributionOptimizer, OptimizerConfig
from .solver_config import SolverConfig, SolverInfo, SolverType
from .lp_model import LPSolveResult, TransportationLPModel, costs_agree

__all__ = [
    "TransportationProblem",
    "DistributionOptimizer",
    "OptimizerConfig",
    "SolverConfig",
    "SolverInfo",
    "SolverType",
    "LPSolveResult",
    "TransportationLPModel",
    "costs_agree",
]
