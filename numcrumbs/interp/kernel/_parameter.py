import logging

from numcrumbs.interp.kernel._optimizers import DEFAULT_MAX_EVALUATIONS, DividingRectangles

logger = logging.getLogger(__name__)


class KernelParameterOptimizer:
    """
    Searches the kernel parameter minimizing the MLE objective.

    Each trial parameter is set on the kernel, the kernel matrix is rebuilt
    and the regularization is refitted. The kernel is left at the last trial
    value, so callers must apply `opt_param` themselves.
    """

    def __init__(self, max_evaluations=DEFAULT_MAX_EVALUATIONS):
        self.max_evaluations = max_evaluations
        self._optimizer = None

    def compute(self, kernel, regularizer, variables, data):
        """
        Run the search.

        Args:
            kernel: Kernel whose parameter is searched. Mutated during the search.
            regularizer: AutoRegularizerWrapper refitted at each trial.
            variables: Variables (N,) or (N, D).
            data: Data (N,).
        """
        lower, upper = kernel.kernel_param_search_region(variables)

        def objective(param):
            kernel.set_param(param)
            regularizer.compute(kernel, variables, data)
            value = regularizer.mle_objective_function_value()
            logger.debug(
                f"Kernel parameter {param}: reg_param {regularizer.reg_param:.3e}, "
                f"objective {value:.6g}"
            )
            return value

        optimizer = DividingRectangles(objective, max_evaluations=self.max_evaluations)
        optimizer.init(lower, upper)
        optimizer.solve()
        self._optimizer = optimizer

    def _require_computed(self):
        if self._optimizer is None:
            rerr = "KernelParameterOptimizer.compute must be called first."
            raise RuntimeError(rerr)

    @property
    def optimizer(self):
        return self._optimizer

    @property
    def opt_param(self):
        self._require_computed()
        return self._optimizer.opt_variable

    @property
    def opt_value(self):
        self._require_computed()
        return self._optimizer.opt_value
