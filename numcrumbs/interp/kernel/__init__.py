import jax

# Interpolation tolerances need double precision
jax.config.update("jax_enable_x64", True)

from numcrumbs.interp.kernel._kernels import (  # noqa: E402
    KERNEL_PARAM_SEARCH_LOWER_COEFF,
    KERNEL_PARAM_SEARCH_UPPER_COEFF,
    ARDKernel,
    Kernel,
    RBFKernel,
    as_variable_array,
    calc_kernel_mat,
    calc_kernel_vec,
    euclidean_distance,
    gaussian_rbf,
    get_rbf,
    inverse_multiquadric_rbf,
    matern52_rbf,
)
from numcrumbs.interp.kernel._optimizers import (  # noqa: E402
    DEFAULT_MAX_EVALUATIONS,
    DividingRectangles,
    HeuristicGlobalOptimizer,
)
from numcrumbs.interp.kernel._parameter import KernelParameterOptimizer  # noqa: E402
from numcrumbs.interp.kernel._regularizer import (  # noqa: E402
    REG_PARAM_SEARCH_LOWER_COEFF,
    REG_PARAM_SEARCH_UPPER_COEFF,
    AutoRegularizer,
    AutoRegularizerWrapper,
)
from numcrumbs.interp.kernel._solver import (  # noqa: E402
    MLE_OBJECTIVE_LIMIT,
    SelfAdjointKernelSolver,
)
from numcrumbs.interp.kernel.interpolator import (  # noqa: E402
    KernelCoeffSolver,
    KernelInterpolator,
)

__all__ = [
    "DEFAULT_MAX_EVALUATIONS",
    "KERNEL_PARAM_SEARCH_LOWER_COEFF",
    "KERNEL_PARAM_SEARCH_UPPER_COEFF",
    "MLE_OBJECTIVE_LIMIT",
    "REG_PARAM_SEARCH_LOWER_COEFF",
    "REG_PARAM_SEARCH_UPPER_COEFF",
    "ARDKernel",
    "AutoRegularizer",
    "AutoRegularizerWrapper",
    "DividingRectangles",
    "HeuristicGlobalOptimizer",
    "Kernel",
    "KernelCoeffSolver",
    "KernelInterpolator",
    "KernelParameterOptimizer",
    "RBFKernel",
    "SelfAdjointKernelSolver",
    "as_variable_array",
    "calc_kernel_mat",
    "calc_kernel_vec",
    "euclidean_distance",
    "gaussian_rbf",
    "get_rbf",
    "inverse_multiquadric_rbf",
    "matern52_rbf",
]
