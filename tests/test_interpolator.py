import math

import pytest

from tests.conftest import skip_if_not_env

skip_if_not_env("interp")

import jax.numpy as jnp  # noqa: E402
import numpy as np  # noqa: E402

from numcrumbs.interp.kernel import (  # noqa: E402
    ARDKernel,
    KernelCoeffSolver,
    KernelInterpolator,
    RBFKernel,
)

pytestmark = pytest.mark.interp


@pytest.fixture
def grid_2dim():
    axis = np.array([0.0, 0.5, 1.0])
    x = np.array([[a, b] for a in axis for b in axis])
    y = np.sin(2.0 * x[:, 0]) + x[:, 1] ** 2
    return x, y


def assert_interpolates(interpolator, variables, data, tol):
    for variable, value in zip(variables, data):
        assert interpolator.interpolate_on(variable) == pytest.approx(value, abs=tol)


# ---------------------------------------------------------------------------
# Fitting modes
# ---------------------------------------------------------------------------


def test_defaults(sample_vars, sample_data):
    interpolator = KernelInterpolator()
    interpolator.compute(sample_vars, sample_data)

    assert interpolator.reg_param == 0.0
    assert interpolator.kernel.len_param > 0.0
    assert interpolator.is_fitted
    assert np.isfinite(interpolator.interpolate_on(0.3))
    assert np.isfinite(interpolator.mle_objective_function_value())


def test_fixed_kernel_param_without_regularization(sample_vars, sample_data):
    interpolator = KernelInterpolator().fix_kernel_param(math.log10(0.1))
    interpolator.compute(sample_vars, sample_data)

    assert interpolator.kernel.len_param == pytest.approx(0.1)
    assert_interpolates(interpolator, sample_vars, sample_data, 1e-8)


def test_fixed_kernel_param_with_regularization(sample_vars, sample_data):
    interpolator = (
        KernelInterpolator().fix_kernel_param(math.log10(0.1)).regularize_with(1e-4)
    )
    interpolator.compute(sample_vars, sample_data)

    assert interpolator.reg_param == 1e-4
    assert_interpolates(interpolator, sample_vars, sample_data, 1e-2)


def test_automatic_regularization(sample_vars, sample_data):
    interpolator = (
        KernelInterpolator().fix_kernel_param(math.log10(0.1)).regularize_automatically()
    )
    interpolator.compute(sample_vars, sample_data)
    auto_value = interpolator.mle_objective_function_value()

    heavy = KernelInterpolator().fix_kernel_param(math.log10(0.1)).regularize_with(1e3)
    heavy.compute(sample_vars, sample_data)

    assert interpolator.reg_param > 0.0
    assert auto_value < heavy.mle_objective_function_value()


def test_full_automatic_fit(sample_vars, sample_data):
    interpolator = KernelInterpolator().regularize_automatically()
    interpolator.compute(sample_vars, sample_data)

    assert interpolator.reg_param > 0.0
    assert interpolator.kernel.len_param > 0.0
    mean, variance = interpolator.evaluate_mean_and_variance_on(0.3)
    assert np.isfinite(mean)
    assert np.isfinite(variance)
    assert variance >= 0.0


def test_fit_is_deterministic(sample_vars, sample_data):
    first = KernelInterpolator().regularize_automatically().compute(sample_vars, sample_data)
    second = KernelInterpolator().regularize_automatically().compute(
        sample_vars, sample_data
    )
    assert first.kernel.get_param() == second.kernel.get_param()
    assert first.reg_param == second.reg_param
    assert first(0.35) == second(0.35)


def test_data_as_single_column(sample_vars, sample_data):
    flat = KernelInterpolator().fix_kernel_param(-1.0).compute(sample_vars, sample_data)
    column = KernelInterpolator().fix_kernel_param(-1.0).compute(
        sample_vars, sample_data[:, None]
    )
    assert column(0.45) == pytest.approx(flat(0.45))


def test_vector_variables(grid_2dim):
    x, y = grid_2dim
    interpolator = KernelInterpolator().fix_kernel_param(math.log10(0.5))
    interpolator.compute(x, y)

    assert interpolator.variables.shape == (9, 2)
    assert_interpolates(interpolator, x, y, 1e-8)


def test_ard_kernel(grid_2dim):
    x, y = grid_2dim
    kernel = ARDKernel(len_params=(1.0, 1.0))
    interpolator = KernelInterpolator(kernel).fix_kernel_param(
        [math.log10(0.5), math.log10(0.8)]
    )
    interpolator.compute(x, y)

    np.testing.assert_allclose(interpolator.kernel.len_params, [0.5, 0.8])
    assert_interpolates(interpolator, x, y, 1e-8)

    searched = KernelInterpolator(ARDKernel(len_params=(1.0, 1.0)), max_evaluations=20)
    searched.compute(x, y)
    assert np.all(np.isfinite(searched.predict(x)))


# ---------------------------------------------------------------------------
# Variance
# ---------------------------------------------------------------------------


def test_variance_vanishes_at_samples_without_regularization(sample_vars, sample_data):
    interpolator = KernelInterpolator().fix_kernel_param(math.log10(0.1))
    interpolator.compute(sample_vars, sample_data)

    for variable, value in zip(sample_vars, sample_data):
        mean, variance = interpolator.evaluate_mean_and_variance_on(variable)
        assert mean == pytest.approx(value, abs=1e-8)
        assert variance == pytest.approx(0.0, abs=1e-4)


def test_variance_at_samples_with_regularization(sample_vars, sample_data):
    reg_param = 1e-4
    interpolator = (
        KernelInterpolator().fix_kernel_param(math.log10(0.1)).regularize_with(reg_param)
    )
    interpolator.compute(sample_vars, sample_data)

    expected = interpolator.common_coeff * reg_param
    for variable in sample_vars:
        _, variance = interpolator.evaluate_mean_and_variance_on(variable)
        assert variance > 0.0
        assert variance == pytest.approx(expected, rel=0.05)


def test_variance_grows_away_from_samples(sample_vars, sample_data):
    interpolator = KernelInterpolator().fix_kernel_param(math.log10(0.1))
    interpolator.compute(sample_vars, sample_data)

    _, near = interpolator.evaluate_mean_and_variance_on(0.15)
    _, far = interpolator.evaluate_mean_and_variance_on(3.0)
    assert 0.0 < near < far
    assert far == pytest.approx(interpolator.common_coeff, rel=1e-6)


def test_variance_non_negative(sample_vars, sample_data):
    interpolator = KernelInterpolator().regularize_automatically()
    interpolator.compute(sample_vars, sample_data)

    x = np.linspace(-0.5, 1.5, 41)
    assert np.all(np.asarray(interpolator.predict_var(x)) >= 0.0)
    for variable in x[::5]:
        assert interpolator.evaluate_mean_and_variance_on(variable)[1] >= 0.0


# ---------------------------------------------------------------------------
# Batched prediction
# ---------------------------------------------------------------------------


def test_predict_matches_single_evaluations(sample_vars, sample_data):
    interpolator = KernelInterpolator().fix_kernel_param(-1.0).regularize_with(1e-3)
    interpolator.compute(sample_vars, sample_data)

    x = np.linspace(-0.1, 1.1, 13)
    means = interpolator.predict(x)
    variances = interpolator.predict_var(x)
    assert means.shape == (13,)
    for i, variable in enumerate(x):
        mean, variance = interpolator.evaluate_mean_and_variance_on(variable)
        assert float(means[i]) == pytest.approx(mean, rel=1e-10, abs=1e-12)
        assert float(variances[i]) == pytest.approx(variance, rel=1e-8, abs=1e-12)


def test_predict_chunking(grid_2dim):
    x, y = grid_2dim
    interpolator = KernelInterpolator().fix_kernel_param(math.log10(0.5))
    interpolator.compute(x, y)

    rng = np.random.default_rng(0)
    queries = rng.uniform(0.0, 1.0, size=(17, 2))
    assert jnp.allclose(
        interpolator.predict(queries, chunk_size=4), interpolator.predict(queries)
    )
    assert jnp.allclose(
        interpolator.predict_var(queries, chunk_size=4), interpolator.predict_var(queries)
    )


# ---------------------------------------------------------------------------
# Errors and state
# ---------------------------------------------------------------------------


def test_mismatched_lengths(sample_vars):
    with pytest.raises(ValueError, match="data values"):
        KernelInterpolator().compute(sample_vars, np.ones(5))


def test_data_with_two_columns(sample_vars):
    with pytest.raises(ValueError, match="single column"):
        KernelInterpolator().compute(sample_vars, np.ones((6, 2)))


def test_empty_input():
    with pytest.raises(ValueError, match="At least one variable"):
        KernelInterpolator().compute([], [])


def test_negative_regularization():
    with pytest.raises(ValueError, match="non-negative"):
        KernelInterpolator().regularize_with(-1e-3)


def test_use_before_compute():
    interpolator = KernelInterpolator()
    assert not interpolator.is_fitted
    with pytest.raises(RuntimeError):
        interpolator.interpolate_on(0.5)
    with pytest.raises(RuntimeError):
        interpolator.evaluate_mean_and_variance_on(0.5)
    with pytest.raises(RuntimeError):
        interpolator.predict([0.5])
    with pytest.raises(RuntimeError):
        _ = interpolator.common_coeff


def test_invalid_input_keeps_previous_fit(sample_vars, sample_data):
    interpolator = KernelInterpolator().fix_kernel_param(-1.0)
    interpolator.compute(sample_vars, sample_data)
    before = interpolator(0.3)

    with pytest.raises(ValueError):
        interpolator.compute(sample_vars, sample_data[:4])
    assert interpolator.is_fitted
    assert interpolator(0.3) == before


def test_failed_search_leaves_interpolator_unfitted(sample_vars, sample_data):
    interpolator = KernelInterpolator()
    interpolator.compute(sample_vars, sample_data)

    with pytest.raises(ValueError, match="At least two variables"):
        interpolator.compute([0.5], [1.0])
    assert not interpolator.is_fitted


@pytest.mark.parametrize(
    "configure",
    [
        lambda interp: interp,
        lambda interp: interp.fix_kernel_param(-1.0),
        lambda interp: interp.regularize_automatically(),
    ],
    ids=["default", "fixed_kernel_param", "automatic_regularization"],
)
def test_zero_data(configure, sample_vars):
    interpolator = configure(KernelInterpolator())
    interpolator.compute(sample_vars, np.zeros(6))

    assert np.isfinite(interpolator.mle_objective_function_value())
    assert interpolator.common_coeff == 0.0
    for variable in (0.0, 0.35, 1.2):
        mean, variance = interpolator.evaluate_mean_and_variance_on(variable)
        assert mean == pytest.approx(0.0, abs=1e-12)
        assert variance == 0.0
    np.testing.assert_allclose(interpolator.predict([0.1, 0.5]), 0.0, atol=1e-12)


def test_single_variable_with_fixed_kernel_param():
    interpolator = KernelInterpolator().fix_kernel_param(0.0)
    interpolator.compute([0.5], [2.0])
    assert interpolator(0.5) == pytest.approx(2.0)


# ---------------------------------------------------------------------------
# KernelCoeffSolver
# ---------------------------------------------------------------------------


def test_coeff_solver_defaults():
    solver = KernelCoeffSolver()
    assert isinstance(solver.kernel, RBFKernel)
    assert solver.is_kernel_param_searched
    assert not solver.is_regularized_automatically
    assert solver.reg_param == 0.0


def test_coeff_solver_toggles():
    solver = KernelCoeffSolver()
    assert solver.fix_kernel_param(-1.0) is solver
    assert not solver.is_kernel_param_searched
    assert solver.kernel.len_param == pytest.approx(0.1)

    solver.search_kernel_param_auto().regularize_automatically()
    assert solver.is_kernel_param_searched
    assert solver.is_regularized_automatically

    solver.disable_regularization()
    assert not solver.is_regularized_automatically
    assert solver.reg_param == 0.0


def test_coeff_solver_solves_system(sample_vars, sample_data):
    solver = KernelCoeffSolver(RBFKernel(len_param=0.2)).fix_kernel_param(
        math.log10(0.2)
    )
    solver.regularize_with(0.01)
    solver.compute(sample_vars, sample_data)
    assert solver.common_coeff() == pytest.approx(solver.calc_reg_term(sample_data) / 6)
