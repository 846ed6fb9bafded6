import logging
import math

from numcrumbs.interp.kernel._kernels import calc_kernel_mat
from numcrumbs.interp.kernel._optimizers import HeuristicGlobalOptimizer
from numcrumbs.interp.kernel._solver import SelfAdjointKernelSolver

logger = logging.getLogger(__name__)

# Multipliers on the largest eigenvalue bounding the regularization search
REG_PARAM_SEARCH_LOWER_COEFF = 1e-10
REG_PARAM_SEARCH_UPPER_COEFF = 1e1


class AutoRegularizer:
    """Selects the regularization parameter minimizing the MLE objective."""

    def __init__(self, solver):
        self._solver = solver
        self._optimizer = HeuristicGlobalOptimizer(self._objective)

    def _objective(self, log_reg_param):
        return self._solver.calc_mle_objective(10.0 ** float(log_reg_param))

    def param_search_region(self):
        max_eigenvalue = float(self._solver.eigenvalues[-1])
        if not max_eigenvalue > 0.0:
            verr = (
                "The largest eigenvalue of the kernel matrix must be positive, "
                f"got {max_eigenvalue}."
            )
            raise ValueError(verr)
        return (
            REG_PARAM_SEARCH_LOWER_COEFF * max_eigenvalue,
            REG_PARAM_SEARCH_UPPER_COEFF * max_eigenvalue,
        )

    def optimize(self):
        min_param, max_param = self.param_search_region()
        self._optimizer.init(math.log10(min_param), math.log10(max_param))
        self._optimizer.solve()
        if not self._optimizer.converged:
            logger.debug(f"Regularization search stopped: {self._optimizer.message}")

    @property
    def optimizer(self):
        return self._optimizer

    def _require_optimized(self):
        if self._optimizer.opt_variable is None:
            rerr = "AutoRegularizer.optimize must be called first."
            raise RuntimeError(rerr)

    @property
    def opt_param(self):
        self._require_optimized()
        return 10.0 ** self._optimizer.opt_variable

    @property
    def opt_value(self):
        self._require_optimized()
        return self._optimizer.opt_value


class AutoRegularizerWrapper:
    """
    Kernel solver with either a fixed or an automatically selected
    regularization parameter.

    The automatic regularizer only exists while automatic mode is enabled.
    """

    def __init__(self):
        self._solver = SelfAdjointKernelSolver()
        self._reg_param = 0.0
        self._regularizer = None

    def regularize_with(self, reg_param):
        reg_param = float(reg_param)
        if not reg_param >= 0.0:
            verr = f"Regularization parameter must be non-negative, got {reg_param}."
            raise ValueError(verr)
        self._reg_param = reg_param
        self._regularizer = None

    def regularize_automatically(self):
        if self._regularizer is None:
            self._regularizer = AutoRegularizer(self._solver)

    @property
    def is_automatic(self):
        return self._regularizer is not None

    @property
    def reg_param(self):
        return self._reg_param

    @property
    def solver(self):
        return self._solver

    def compute(self, kernel, variables, data):
        kernel_mat = calc_kernel_mat(kernel, variables)
        self._solver.compute(kernel_mat, data)
        if self._regularizer is not None:
            self._regularizer.optimize()
            self._reg_param = self._regularizer.opt_param

    def solve(self):
        return self._solver.solve(self._reg_param)

    def mle_objective_function_value(self):
        return self._solver.calc_mle_objective(self._reg_param)

    def common_coeff(self):
        return self._solver.calc_common_coeff(self._reg_param)

    def calc_reg_term(self, data):
        return self._solver.calc_reg_term(self._reg_param, data)
