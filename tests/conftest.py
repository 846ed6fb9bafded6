import importlib.util

import numpy as np
import pytest

ENV_MODULES = {
    "interp": ("jax", "scipy"),
    "cli": ("jax", "scipy", "click", "rich"),
}


def require_module(module_name):
    """
    Checks if a module exists. If not, skips the test or module.
    """
    spec = importlib.util.find_spec(module_name)
    if spec is None:
        pytest.skip(
            f"Module '{module_name}' not found. Skipping.", allow_module_level=True
        )


def get_missing_modules(*modules):
    """Returns a list of modules not currently installed."""
    return [mod for mod in modules if importlib.util.find_spec(mod) is None]


def skip_if_not_env(env):
    """Skips the calling test module when the modules of an environment are missing."""
    missing = get_missing_modules(*ENV_MODULES[env])
    if missing:
        pytest.skip(
            f"Modules {missing} needed for '{env}' not found. Skipping.",
            allow_module_level=True,
        )


@pytest.fixture
def sample_vars():
    """Six scalar sample points, unevenly spaced."""
    return [0.0, 0.1, 0.2, 0.4, 0.6, 1.0]


@pytest.fixture
def sample_data():
    return np.array([0.0, 0.2, 0.4, 0.7, 1.0, 2.0])
