"""Miscellaneous utility functions."""

import time

import numpy as np
import wrapt

from .errors import ConvergenceError, InsufficientDataError


def _check_inputs_shape(param1, param2, param1_name, param2_name):
    """Check whether 'param1' and 'param2' have the same shape.

    Parameters
    ----------
    param1 : array
    param2 : array
    param1_name : str
    param2_name : str
    """
    if (param1 is not None) and (param2 is not None):
        if param1.shape != param2.shape:
            raise ValueError(
                f"{param1_name} and {param2_name} should have the same shape. "
                f"You provided {param1_name} with shape {param1.shape} and {param2_name} "
                f"with shape {param2.shape}."
            )


def _requires_observations(min_obs):
    """Guard an estimator's fit() method against too-small samples.

    Parameters
    ----------
    min_obs : :obj:`int`
        Minimum number of observations (length of the ``y`` argument) the
        decorated fit() method accepts.
    """

    @wrapt.decorator
    def wrapper(wrapped, instance, args, kwargs):
        y = kwargs["y"] if "y" in kwargs else args[0]
        k = np.size(y)
        if k < min_obs:
            name = instance.__class__.__name__ if instance is not None else wrapped.__name__
            raise InsufficientDataError(
                "{} requires at least {} observations; {} provided.".format(name, min_obs, k)
            )
        return wrapped(*args, **kwargs)

    return wrapper


def _time_limited(func, timeout, label="optimizer"):
    """Wrap an objective function so it fails once a wall-clock budget is spent.

    Parameters
    ----------
    func : callable
        The objective function.
    timeout : None or :obj:`float`
        Budget in seconds, measured from the moment of wrapping. If None, func
        is returned unchanged.
    label : :obj:`str`, optional
        Name used in the error message.

    Returns
    -------
    callable
        A function with the same signature as ``func`` that raises
        :obj:`~pybias.errors.ConvergenceError` once the budget is exceeded.
    """
    if timeout is None:
        return func

    start = time.monotonic()

    def _limited(*args, **kwargs):
        if time.monotonic() - start > timeout:
            raise ConvergenceError(
                "{} exceeded its time budget of {:g} s.".format(label, timeout)
            )
        return func(*args, **kwargs)

    return _limited
