#!/usr/bin/env python3
# /// script
# requires-python = ">=3.10"
# dependencies = [
#   "click>=8.1",
#   "jax",
#   "numpy",
#   "rich",
#   "scipy",
# ]
# ///

import logging
import sys
from pathlib import Path

import click
import numpy as np

from numcrumbs._aux import setup_logging
from numcrumbs.interp.kernel import KernelInterpolator, RBFKernel, get_rbf


def _parse_floats(_ctx, _param, value):
    try:
        return [float(v) for v in value.split(",") if v.strip()]
    except ValueError as e:
        raise click.BadParameter(f"expected comma separated numbers ({e})") from e


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--vars",
    "variables",
    default="0.0,0.1,0.5,0.4,1.2,1.0",
    show_default=True,
    callback=_parse_floats,
    help="Comma separated sample points.",
)
@click.option(
    "--data",
    default="0.0,0.2,0.5,0.7,1.0,2.0",
    show_default=True,
    callback=_parse_floats,
    help="Comma separated sample values.",
)
@click.option(
    "--rbf",
    type=click.Choice(["gaussian", "matern52", "imq"]),
    default="gaussian",
    show_default=True,
    help="Radial function of the kernel.",
)
@click.option(
    "--len-param",
    type=float,
    default=None,
    help="Fix the length parameter instead of searching it.",
)
@click.option(
    "--reg-param",
    type=float,
    default=None,
    help="Fixed regularization parameter (default: no regularization).",
)
@click.option(
    "--auto-reg",
    is_flag=True,
    help="Select the regularization parameter by maximum likelihood.",
)
@click.option("--x-min", type=float, default=-0.1, show_default=True)
@click.option("--x-max", type=float, default=1.3, show_default=True)
@click.option("--num-samples", type=int, default=201, show_default=True)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("interp_rbf_1dim.csv"),
    show_default=True,
    help="CSV file receiving x, mean and the 3 sigma band.",
)
@click.option("--verbose", "-v", is_flag=True, help="Show debug logs.")
def main(
    variables,
    data,
    rbf,
    len_param,
    reg_param,
    auto_reg,
    x_min,
    x_max,
    num_samples,
    output: Path,
    verbose,
):
    """Interpolate 1-D samples with a kernel and write the 3 sigma band."""
    setup_logging(logging.DEBUG if verbose else logging.INFO)
    try:
        interpolator = KernelInterpolator(RBFKernel(rbf=get_rbf(rbf)))
        if len_param is not None:
            interpolator.fix_kernel_param(np.log10(len_param))
        if auto_reg:
            interpolator.regularize_automatically()
        elif reg_param is not None:
            interpolator.regularize_with(reg_param)

        interpolator.compute(variables, data)
        logging.info(
            f"Length parameter [yellow]{interpolator.kernel.len_param:.4g}[/yellow], "
            f"regularization [yellow]{interpolator.reg_param:.4g}[/yellow]"
        )

        x = np.linspace(x_min, x_max, num_samples)
        mean = np.asarray(interpolator.predict(x))
        err = 3.0 * np.sqrt(np.asarray(interpolator.predict_var(x)))
        np.savetxt(
            output,
            np.column_stack([x, mean, mean - err, mean + err]),
            delimiter=",",
            header="x,mean,lower,upper",
            comments="",
        )
        logging.info(f"[bold green]Success![/bold green] Wrote [cyan]{output}[/cyan]")

    except ValueError as e:
        logging.critical(f"Error interpolating samples: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
