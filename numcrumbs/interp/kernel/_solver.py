import logging
import math

import jax.numpy as jnp
import numpy as np

logger = logging.getLogger(__name__)

# Bound on the magnitude of MLE objective values
MLE_OBJECTIVE_LIMIT = float(np.finfo(np.float64).max) * 1e-20


class SelfAdjointKernelSolver:
    """
    Solver of regularized kernel systems (K + reg_param * I) c = d.

    The kernel matrix is eigendecomposed once in `compute`; every later call
    with a different regularization parameter reuses the eigenvalues and the
    data projected onto the eigenvectors.
    """

    def __init__(self):
        self._eigenvalues = None
        self._eigenvectors = None
        self._spectre = None

    def compute(self, kernel_mat, data):
        """
        Eigendecompose a kernel matrix and project the data onto its eigenvectors.

        Args:
            kernel_mat: Symmetric matrix (N, N).
            data: Data vector (N,) or a single column (N, 1).
        """
        K = jnp.asarray(kernel_mat, dtype=jnp.float64)
        d = jnp.asarray(data, dtype=jnp.float64)
        if d.ndim == 2 and d.shape[1] == 1:
            d = d[:, 0]
        if K.ndim != 2 or K.shape[0] != K.shape[1]:
            verr = f"Kernel matrix must be square, got shape {K.shape}."
            raise ValueError(verr)
        if d.ndim != 1 or d.shape[0] != K.shape[0]:
            verr = (
                f"Data of shape {d.shape} does not match a kernel matrix "
                f"of shape {K.shape}."
            )
            raise ValueError(verr)
        if not bool(jnp.allclose(K, K.T, rtol=1e-10, atol=1e-12)):
            verr = "Kernel matrix must be symmetric."
            raise ValueError(verr)

        eigenvalues, eigenvectors = jnp.linalg.eigh(K)
        if float(eigenvalues[0]) <= 0.0:
            logger.debug(
                f"Kernel matrix is not positive definite "
                f"(smallest eigenvalue {float(eigenvalues[0]):.3e})."
            )
        self._eigenvalues = eigenvalues
        self._eigenvectors = eigenvectors
        self._spectre = eigenvectors.T @ d

    def _require_computed(self):
        if self._eigenvalues is None:
            rerr = "SelfAdjointKernelSolver.compute must be called first."
            raise RuntimeError(rerr)

    @property
    def eigenvalues(self):
        """Eigenvalues of the kernel matrix in ascending order."""
        self._require_computed()
        return self._eigenvalues

    @property
    def eigenvectors(self):
        self._require_computed()
        return self._eigenvectors

    def solve(self, reg_param):
        """
        Solve for the coefficients at a regularization parameter.

        Returns:
            jnp.ndarray: Coefficients (N,).
        """
        self._require_computed()
        return self._eigenvectors @ (self._spectre / (self._eigenvalues + reg_param))

    def calc_reg_term(self, reg_param, data=None):
        """
        Calculate d^T (K + reg_param * I)^{-1} d.

        Args:
            reg_param: Regularization parameter.
            data: Vector (N,) or columns (N, M). Defaults to the fitted data.

        Returns:
            float for a vector, jnp.ndarray (M,) for columns.
        """
        self._require_computed()
        spectre = (
            self._spectre
            if data is None
            else self._eigenvectors.T @ jnp.asarray(data, dtype=jnp.float64)
        )
        weights = 1.0 / (self._eigenvalues + reg_param)
        if spectre.ndim == 1:
            return float(jnp.sum(spectre**2 * weights))
        return jnp.sum(spectre**2 * weights[:, None], axis=0)

    def calc_common_coeff(self, reg_param):
        """Scale of the posterior variance relative to the raw kernel variance."""
        return self.calc_reg_term(reg_param) / self._spectre.shape[0]

    def calc_mle_objective(self, reg_param):
        """
        Concentrated negative log-likelihood of the data.

        f = log(mean(p_i^2 / (l_i + reg))) + mean(log(l_i + reg)), where l_i
        are the eigenvalues and p the projected data.
        """
        self._require_computed()
        shifted = self._eigenvalues + reg_param
        if float(shifted[0]) <= 0.0:
            return MLE_OBJECTIVE_LIMIT
        common_coeff = self.calc_common_coeff(reg_param)
        if common_coeff <= 0.0:
            # All-zero data
            return -MLE_OBJECTIVE_LIMIT
        value = math.log(common_coeff) + float(jnp.mean(jnp.log(shifted)))
        if not math.isfinite(value) or value > MLE_OBJECTIVE_LIMIT:
            return MLE_OBJECTIVE_LIMIT
        return max(value, -MLE_OBJECTIVE_LIMIT)
