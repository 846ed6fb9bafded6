import math
from typing import Protocol, runtime_checkable

import jax.numpy as jnp
import numpy as np
from jax import vmap

# Multipliers on the largest nearest-neighbour gap bounding the length search
KERNEL_PARAM_SEARCH_LOWER_COEFF = 1e-3
KERNEL_PARAM_SEARCH_UPPER_COEFF = 1e3


# ==============================================================================
# RADIAL FUNCTIONS
# ==============================================================================


def gaussian_rbf(r):
    return jnp.exp(-(r**2))


def matern52_rbf(r):
    # k(r) = (1 + sqrt(5)r + 5r^2/3) * exp(-sqrt(5)r)
    sqrt5_r = jnp.sqrt(5.0) * r
    return (1.0 + sqrt5_r + (5.0 * r**2) / 3.0) * jnp.exp(-sqrt5_r)


def inverse_multiquadric_rbf(r):
    return 1.0 / jnp.sqrt(1.0 + r**2)


def euclidean_distance(var1, var2):
    return jnp.sqrt(jnp.sum((var1 - var2) ** 2))


def get_rbf(name):
    """
    Retrieve a radial function by name.

    Args:
        name: One of 'gaussian', 'matern52' or 'imq'.

    Returns:
        callable: The radial function of a scaled distance.
    """
    rbfs = {
        "gaussian": gaussian_rbf,
        "matern52": matern52_rbf,
        "imq": inverse_multiquadric_rbf,
    }
    if name not in rbfs:
        verr = f"Unknown rbf '{name}'. Available: {sorted(rbfs)}"
        raise ValueError(verr)
    return rbfs[name]


# ==============================================================================
# VARIABLE LISTS
# ==============================================================================


def as_variable_array(variables):
    """
    Convert a list of scalar or vector variables to a float64 array.

    Returns:
        jnp.ndarray: Shape (N,) for scalar variables or (N, D) for vectors.
    """
    x = jnp.asarray(variables, dtype=jnp.float64)
    if x.ndim not in (1, 2):
        verr = f"Variables must be scalars or 1-D vectors, got shape {x.shape}."
        raise ValueError(verr)
    return x


def _max_nearest_neighbor_distance(x, distance):
    dist = np.array(vmap(vmap(distance, (None, 0)), (0, None))(x, x))
    np.fill_diagonal(dist, np.inf)
    return float(np.max(np.min(dist, axis=1)))


def _search_region_from(x, distance):
    if x.shape[0] < 2:
        verr = (
            "At least two variables are needed to estimate a kernel parameter "
            f"search region, got {x.shape[0]}."
        )
        raise ValueError(verr)
    max_min_dist = _max_nearest_neighbor_distance(x, distance)
    if not max_min_dist > 0.0:
        verr = "Variables coincide, so no length scale can be estimated."
        raise ValueError(verr)
    return (
        math.log10(KERNEL_PARAM_SEARCH_LOWER_COEFF * max_min_dist),
        math.log10(KERNEL_PARAM_SEARCH_UPPER_COEFF * max_min_dist),
    )


# ==============================================================================
# KERNELS
# ==============================================================================


@runtime_checkable
class Kernel(Protocol):
    """Protocol for kernels used in kernel interpolation."""

    def evaluate(self, var1, var2):
        """Kernel value between two variables, symmetric in its arguments."""
        ...

    def get_param(self):
        """Current kernel parameter (scalar or vector)."""
        ...

    def set_param(self, param):
        """Replace the kernel parameter."""
        ...

    def kernel_param_search_region(self, variables):
        """Lower and upper bounds of the kernel parameter for a sample."""
        ...


class RBFKernel:
    """
    Kernel of a radial function applied to a scaled distance.

    The kernel parameter is the base-10 logarithm of the length parameter,
    so k(x, y) = rbf(dist(x, y) / 10**kernel_param).
    """

    def __init__(self, rbf=gaussian_rbf, len_param=1.0, distance=euclidean_distance):
        self.rbf = rbf
        self.distance = distance
        self.len_param = len_param

    @property
    def len_param(self):
        return self._len_param

    @len_param.setter
    def len_param(self, value):
        value = float(value)
        if not value > 0.0:
            verr = f"Length parameter must be positive, got {value}."
            raise ValueError(verr)
        self._len_param = value

    @property
    def kernel_param(self):
        return math.log10(self._len_param)

    def get_param(self):
        return self.kernel_param

    def set_param(self, param):
        self.len_param = 10.0 ** float(param)

    def evaluate(self, var1, var2):
        return self.rbf(self.distance(var1, var2) / self._len_param)

    def __call__(self, var1, var2):
        return self.evaluate(var1, var2)

    def kernel_param_search_region(self, variables):
        """
        Search interval of the kernel parameter for a sample of variables.

        The interval spans [1e-3 * d, 1e3 * d] in length, where d is the
        largest distance from a variable to its nearest neighbour.

        Args:
            variables: At least two variables.

        Returns:
            tuple: (lower, upper) in log10 of the length parameter.
        """
        return _search_region_from(as_variable_array(variables), self.distance)

    def __repr__(self):
        return f"RBFKernel(rbf={self.rbf.__name__}, len_param={self._len_param!r})"


class ARDKernel:
    """
    Radial kernel with one length parameter per input dimension.

    The kernel parameter is the vector of log10 length parameters.
    """

    def __init__(self, rbf=gaussian_rbf, len_params=(1.0,)):
        self.rbf = rbf
        self.len_params = len_params

    @property
    def len_params(self):
        return self._len_params

    @len_params.setter
    def len_params(self, values):
        values = np.atleast_1d(np.asarray(values, dtype=np.float64))
        if values.ndim != 1 or not np.all(values > 0.0):
            verr = f"Length parameters must be a vector of positive values, got {values}."
            raise ValueError(verr)
        self._len_params = values

    @property
    def kernel_param(self):
        return np.log10(self._len_params)

    def get_param(self):
        return self.kernel_param

    def set_param(self, param):
        self.len_params = 10.0 ** np.asarray(param, dtype=np.float64)

    def evaluate(self, var1, var2):
        scaled = (var1 - var2) / jnp.asarray(self._len_params)
        return self.rbf(jnp.sqrt(jnp.sum(scaled**2)))

    def __call__(self, var1, var2):
        return self.evaluate(var1, var2)

    def kernel_param_search_region(self, variables):
        x = as_variable_array(variables)
        lower, upper = _search_region_from(x, euclidean_distance)
        dim = 1 if x.ndim == 1 else x.shape[1]
        return np.full(dim, lower), np.full(dim, upper)

    def __repr__(self):
        return f"ARDKernel(rbf={self.rbf.__name__}, len_params={self._len_params!r})"


# ==============================================================================
# KERNEL MATRICES
# ==============================================================================


def calc_kernel_mat(kernel, variables):
    """
    Build the symmetric matrix of pairwise kernel values.

    Args:
        kernel: Kernel with an `evaluate(var1, var2)` method.
        variables: Non-empty list of variables.

    Returns:
        jnp.ndarray: Kernel matrix (N, N).
    """
    x = as_variable_array(variables)
    if x.shape[0] == 0:
        verr = "Cannot build a kernel matrix without variables."
        raise ValueError(verr)
    return vmap(vmap(kernel.evaluate, (None, 0)), (0, None))(x, x)


def calc_kernel_vec(kernel, variable, variables):
    """Kernel values between one variable and each of a list of variables."""
    return vmap(kernel.evaluate, (None, 0))(
        jnp.asarray(variable, dtype=jnp.float64), as_variable_array(variables)
    )
