import logging

import jax.numpy as jnp
from jax import vmap

from numcrumbs.interp.kernel._kernels import (
    RBFKernel,
    as_variable_array,
    calc_kernel_vec,
)
from numcrumbs.interp.kernel._optimizers import DEFAULT_MAX_EVALUATIONS
from numcrumbs.interp.kernel._parameter import KernelParameterOptimizer
from numcrumbs.interp.kernel._regularizer import AutoRegularizerWrapper

logger = logging.getLogger(__name__)


def _validate_inputs(variables, data):
    x = as_variable_array(variables)
    d = jnp.asarray(data, dtype=jnp.float64)
    if d.ndim == 2 and d.shape[1] == 1:
        d = d[:, 0]
    if d.ndim != 1:
        verr = f"Data must be a single column, got shape {d.shape}."
        raise ValueError(verr)
    if x.shape[0] == 0:
        verr = "At least one variable is required."
        raise ValueError(verr)
    if d.shape[0] != x.shape[0]:
        verr = f"Got {d.shape[0]} data values for {x.shape[0]} variables."
        raise ValueError(verr)
    return x, d


class KernelCoeffSolver:
    """
    Fits kernel interpolation coefficients.

    Combines the kernel parameter search (enabled by default) with fixed or
    automatic regularization (fixed at zero by default).
    """

    def __init__(self, kernel=None, max_evaluations=DEFAULT_MAX_EVALUATIONS):
        self._kernel = kernel if kernel is not None else RBFKernel()
        self._max_evaluations = max_evaluations
        self._regularizer = AutoRegularizerWrapper()
        self._optimizer = None
        self.search_kernel_param_auto()

    def regularize_with(self, reg_param):
        self._regularizer.regularize_with(reg_param)
        return self

    def regularize_automatically(self):
        self._regularizer.regularize_automatically()
        return self

    def disable_regularization(self):
        return self.regularize_with(0.0)

    @property
    def reg_param(self):
        return self._regularizer.reg_param

    def fix_kernel_param(self, kernel_param):
        self._kernel.set_param(kernel_param)
        self._optimizer = None
        return self

    def search_kernel_param_auto(self):
        if self._optimizer is None:
            self._optimizer = KernelParameterOptimizer(
                max_evaluations=self._max_evaluations
            )
        return self

    @property
    def is_kernel_param_searched(self):
        return self._optimizer is not None

    @property
    def is_regularized_automatically(self):
        return self._regularizer.is_automatic

    @property
    def kernel(self):
        return self._kernel

    @property
    def solver(self):
        return self._regularizer.solver

    def compute(self, variables, data):
        x, d = _validate_inputs(variables, data)
        if self._optimizer is not None:
            self._optimizer.compute(self._kernel, self._regularizer, x, d)
            self._kernel.set_param(self._optimizer.opt_param)
            logger.debug(f"Selected kernel parameter {self._kernel.get_param()}")
        self._regularizer.compute(self._kernel, x, d)

    def solve(self):
        return self._regularizer.solve()

    def mle_objective_function_value(self):
        return self._regularizer.mle_objective_function_value()

    def common_coeff(self):
        return self._regularizer.common_coeff()

    def calc_reg_term(self, data):
        return self._regularizer.calc_reg_term(data)


class KernelInterpolator:
    """
    Kernel interpolation with posterior variance.

    Configuration methods return the interpolator so they can be chained:

        interp = KernelInterpolator().fix_kernel_param(-1.0).disable_regularization()
        interp.compute(variables, data)
        mean, variance = interp.evaluate_mean_and_variance_on(0.3)
    """

    def __init__(self, kernel=None, max_evaluations=DEFAULT_MAX_EVALUATIONS):
        """
        Args:
            kernel: Kernel to use. Defaults to a Gaussian RBFKernel.
            max_evaluations: Budget of the kernel parameter search.
        """
        self._solver = KernelCoeffSolver(kernel, max_evaluations=max_evaluations)
        self._variables = None
        self._coeff = None
        self._common_coeff = None

    def regularize_with(self, reg_param):
        self._solver.regularize_with(reg_param)
        return self

    def regularize_automatically(self):
        self._solver.regularize_automatically()
        return self

    def disable_regularization(self):
        self._solver.disable_regularization()
        return self

    def fix_kernel_param(self, kernel_param):
        self._solver.fix_kernel_param(kernel_param)
        return self

    def search_kernel_param_auto(self):
        self._solver.search_kernel_param_auto()
        return self

    @property
    def reg_param(self):
        return self._solver.reg_param

    @property
    def kernel(self):
        return self._solver.kernel

    @property
    def is_fitted(self):
        return self._coeff is not None

    @property
    def variables(self):
        self._require_fitted()
        return self._variables

    @property
    def coeff(self):
        self._require_fitted()
        return self._coeff

    @property
    def common_coeff(self):
        self._require_fitted()
        return self._common_coeff

    def compute(self, variables, data):
        """
        Fit the interpolator.

        Args:
            variables: Training inputs, N scalars or N vectors (N, D).
            data: Training values (N,) or (N, 1).

        Returns:
            KernelInterpolator: self.
        """
        x, d = _validate_inputs(variables, data)
        self._variables = self._coeff = self._common_coeff = None

        self._solver.compute(x, d)
        coeff = self._solver.solve()
        common_coeff = self._solver.common_coeff()

        self._variables, self._coeff, self._common_coeff = x, coeff, common_coeff
        logger.debug(
            f"Fitted {x.shape[0]} points with {self.kernel!r}, "
            f"reg_param {self.reg_param:.3e}"
        )
        return self

    def _require_fitted(self):
        if self._coeff is None:
            rerr = "KernelInterpolator.compute must be called before evaluation."
            raise RuntimeError(rerr)

    def interpolate_on(self, variable):
        """Posterior mean at one variable."""
        self._require_fitted()
        kernel_vec = calc_kernel_vec(self.kernel, variable, self._variables)
        return float(kernel_vec @ self._coeff)

    def __call__(self, variable):
        return self.interpolate_on(variable)

    def evaluate_mean_and_variance_on(self, variable):
        """
        Posterior mean and variance at one variable.

        Returns:
            tuple: (mean, variance) with variance >= 0.
        """
        self._require_fitted()
        variable = jnp.asarray(variable, dtype=jnp.float64)
        kernel_vec = calc_kernel_vec(self.kernel, variable, self._variables)
        mean = float(kernel_vec @ self._coeff)
        prior = float(self.kernel.evaluate(variable, variable))
        variance = self._common_coeff * max(
            prior - self._solver.calc_reg_term(kernel_vec), 0.0
        )
        return mean, variance

    def mle_objective_function_value(self):
        self._require_fitted()
        return self._solver.mle_objective_function_value()

    def calc_reg_term(self, data):
        self._require_fitted()
        return self._solver.calc_reg_term(data)

    def _kernel_rows(self, chunk):
        kernel, variables = self.kernel, self._variables
        return vmap(lambda q: calc_kernel_vec(kernel, q, variables))(chunk)

    def predict(self, x_query, chunk_size=500):
        """
        Posterior means at many query points.

        Args:
            x_query: Query inputs (M,) or (M, D).
            chunk_size: Number of points to process per batch.

        Returns:
            jnp.ndarray: Means (M,).
        """
        self._require_fitted()
        x_query = as_variable_array(x_query)
        preds = []
        for i in range(0, x_query.shape[0], chunk_size):
            chunk = x_query[i : i + chunk_size]
            preds.append(self._kernel_rows(chunk) @ self._coeff)
        return jnp.concatenate(preds, axis=0)

    def predict_var(self, x_query, chunk_size=500):
        """
        Posterior variances at many query points.

        Args:
            x_query: Query inputs (M,) or (M, D).
            chunk_size: Number of points to process per batch.

        Returns:
            jnp.ndarray: Variances (M,).
        """
        self._require_fitted()
        x_query = as_variable_array(x_query)
        vars_list = []
        for i in range(0, x_query.shape[0], chunk_size):
            chunk = x_query[i : i + chunk_size]
            K_q = self._kernel_rows(chunk)
            prior = vmap(lambda q: self.kernel.evaluate(q, q))(chunk)
            reg_terms = self._solver.calc_reg_term(K_q.T)
            vars_list.append(self._common_coeff * jnp.maximum(prior - reg_terms, 0.0))
        return jnp.concatenate(vars_list, axis=0)
