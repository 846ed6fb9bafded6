import logging

import numpy as np
from scipy.optimize import Bounds, direct, minimize, minimize_scalar

logger = logging.getLogger(__name__)

# Budget of objective evaluations in the kernel parameter search
DEFAULT_MAX_EVALUATIONS = 10

# Uniform samples taken before the 1-D refinement
DEFAULT_NUM_SAMPLES = 21

DEFAULT_TOL = 1e-4


class _OptimizerBase:
    """
    Bounded minimization of an objective function.

    Derived classes implement `_solve`; `init(lower, upper)` must be called
    before `solve()`. Scalar bounds give a scalar optimum, vector bounds a
    vector one.
    """

    def __init__(self, obj_fun):
        self.obj_fun = obj_fun
        self._lower = None
        self._upper = None
        self._reset()

    def _reset(self):
        self._opt_variable = None
        self._opt_value = None
        self._evaluations = 0
        self.converged = False
        self.message = "not run"

    def init(self, lower, upper):
        lower = np.asarray(lower, dtype=np.float64)
        upper = np.asarray(upper, dtype=np.float64)
        if lower.shape != upper.shape or np.any(lower >= upper):
            verr = f"Invalid search region: lower={lower}, upper={upper}."
            raise ValueError(verr)
        self._lower, self._upper = lower, upper
        self._reset()

    @property
    def is_scalar(self):
        return self._lower.ndim == 0

    def _evaluate(self, variable):
        self._evaluations += 1
        return float(self.obj_fun(variable))

    def _record(self, variable, value):
        if self._opt_value is None or value < self._opt_value:
            self._opt_variable = float(variable) if self.is_scalar else np.asarray(variable)
            self._opt_value = float(value)

    def solve(self):
        if self._lower is None:
            rerr = f"{type(self).__name__}.init must be called before solve."
            raise RuntimeError(rerr)
        self._solve()
        logger.debug(
            f"{type(self).__name__}: {self._evaluations} evaluations, "
            f"value {self._opt_value:.6g}, {self.message}"
        )

    def _solve(self):
        raise NotImplementedError

    @property
    def opt_variable(self):
        return self._opt_variable

    @property
    def opt_value(self):
        return self._opt_value

    @property
    def evaluations(self):
        return self._evaluations


class HeuristicGlobalOptimizer(_OptimizerBase):
    """
    Global optimizer combining a coarse search with a local refinement.

    In one dimension, the objective is sampled uniformly and the bracket
    around the best sample is refined with bounded Brent's method. In more
    dimensions, DIRECT is followed by bounded Nelder-Mead.
    """

    def __init__(self, obj_fun, num_samples=DEFAULT_NUM_SAMPLES, tol=DEFAULT_TOL):
        super().__init__(obj_fun)
        self.num_samples = num_samples
        self.tol = tol

    def _solve(self):
        if self.is_scalar:
            self._solve_1dim()
        else:
            self._solve_ndim()

    def _solve_1dim(self):
        samples = np.linspace(float(self._lower), float(self._upper), self.num_samples)
        values = np.array([self._evaluate(s) for s in samples])
        best = int(np.argmin(values))
        self._record(samples[best], values[best])

        bracket = (samples[max(best - 1, 0)], samples[min(best + 1, len(samples) - 1)])
        result = minimize_scalar(
            self._evaluate, bounds=bracket, method="bounded", options={"xatol": self.tol}
        )
        self._record(result.x, result.fun)
        self.converged = bool(result.success)
        self.message = str(result.message)

    def _solve_ndim(self):
        bounds = Bounds(self._lower, self._upper)
        coarse = direct(self._evaluate, bounds, eps=self.tol)
        self._record(coarse.x, coarse.fun)

        result = minimize(
            self._evaluate,
            coarse.x,
            method="Nelder-Mead",
            bounds=bounds,
            options={"xatol": self.tol, "fatol": self.tol},
        )
        self._record(result.x, result.fun)
        self.converged = bool(result.success)
        self.message = str(result.message)


class DividingRectangles(_OptimizerBase):
    """DIRECT global optimizer with a fixed budget of evaluations."""

    def __init__(self, obj_fun, max_evaluations=DEFAULT_MAX_EVALUATIONS):
        super().__init__(obj_fun)
        self.max_evaluations = max_evaluations

    def _solve(self):
        if self.is_scalar:
            bounds = [(float(self._lower), float(self._upper))]

            def fun(x):
                return self._evaluate(float(x[0]))

        else:
            bounds = Bounds(self._lower, self._upper)
            fun = self._evaluate

        result = direct(fun, bounds, maxfun=self.max_evaluations)
        self._record(result.x[0] if self.is_scalar else result.x, result.fun)
        self.converged = bool(result.success)
        self.message = str(result.message)
