"""Solver configuration for the reference LP model.

Detects which pyomo solvers are installed and picks the preferred one.
HiGHS (through pyomo's APPSI interface) is preferred; the classic
SolverFactory plugins are fallbacks.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from pyomo.common.errors import ApplicationError
from pyomo.environ import SolverFactory

logger = logging.getLogger(__name__)


class SolverType(str, Enum):
    """Supported LP solvers, in default preference order."""
    APPSI_HIGHS = "appsi_highs"
    HIGHS = "highs"
    CBC = "cbc"
    GLPK = "glpk"


#: Options applied to HiGHS for the transportation LP
HIGHS_LP_OPTIONS = {
    'presolve': 'on',
    'time_limit': 60.0,
}


@dataclass
class SolverInfo:
    """Availability of one solver."""
    name: str
    available: bool

    def __str__(self) -> str:
        mark = "✓ available" if self.available else "✗ unavailable"
        return f"{self.name.upper()}: {mark}"


class SolverConfig:
    """
    Detects installed solvers and selects the best one.

    Example:
        config = SolverConfig()
        name = config.get_best_available_solver()
    """

    def __init__(self, preference: Optional[Sequence[str]] = None):
        self.preference: List[str] = list(preference or [s.value for s in SolverType])
        self._solver_info: Dict[str, SolverInfo] = {
            name: SolverInfo(name=name, available=self._detect(name)) for name in self.preference
        }

    def _detect(self, name: str) -> bool:
        try:
            available = bool(SolverFactory(name).available(exception_flag=False))
        except (ApplicationError, OSError) as e:
            logger.debug(f"Solver {name} could not be probed: {e}")
            available = False
        logger.debug(f"Solver {name}: {'available' if available else 'unavailable'}")
        return available

    def get_solver_info(self, name: str) -> Optional[SolverInfo]:
        return self._solver_info.get(name)

    def get_available_solvers(self) -> List[str]:
        """Available solvers, in preference order."""
        return [name for name in self.preference if self._solver_info[name].available]

    def get_best_available_solver(self) -> str:
        """
        Most preferred available solver.

        Raises:
            RuntimeError: If no solver is installed
        """
        available = self.get_available_solvers()
        if not available:
            summary = ", ".join(str(info) for info in self._solver_info.values())
            raise RuntimeError(f"No optimization solver available ({summary})")
        return available[0]

    def create_solver(self, name: Optional[str] = None, options: Optional[Dict[str, Any]] = None):
        """Create a classic SolverFactory solver with options applied."""
        name = name or self.get_best_available_solver()
        solver = SolverFactory(name)
        for key, val in (options or {}).items():
            solver.options[key] = val
        return solver
