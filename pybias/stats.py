"""Miscellaneous statistical functions."""

import numpy as np
import scipy.stats as ss


def weighted_least_squares(y, w, X, return_cov=False):
    """Perform weighted least squares with a multiplicative dispersion term.

    Parameters
    ----------
    y : :obj:`numpy.ndarray` of shape (K,)
        1d array of study-level estimates
    w : :obj:`numpy.ndarray` of shape (K,)
        1d array of (possibly normalized) weights
    X : :obj:`numpy.ndarray` of shape (K, P)
        Design matrix, including the intercept column
    return_cov : :obj:`bool`, optional
        Whether or not to return the covariance matrix of the estimates.
        Default = False.

    Returns
    -------
    params[, cov]
        If return_cov is True, returns both the parameter estimates and their
        covariance matrix; if False, only the parameter estimates.

    Notes
    -----
    The covariance is the "unrestricted" WLS covariance, ``s^2 (X'WX)^-1``,
    where ``s^2`` is the weighted residual mean square. Scaling all weights by a
    constant leaves both the estimates and the covariance unchanged.
    """
    k, p = X.shape
    wX = X.T * w
    precision = np.linalg.pinv(wX.dot(X))
    beta = precision.dot(wX).dot(y)

    if not return_cov:
        return beta

    # With no residual degrees of freedom the dispersion is undefined.
    if k <= p:
        return beta, np.full_like(precision, np.nan)
    resid = y - X.dot(beta)
    s2 = (w * resid**2).sum() / (k - p)
    return beta, s2 * precision


def inverse_variance_weights(se):
    """Normalized inverse-variance weights for the given standard errors."""
    w = 1.0 / np.asarray(se, dtype=float) ** 2
    return w / w.sum()


def critical_value(alpha, one_sided=False):
    """Get the standard normal critical value for a z-test.

    Parameters
    ----------
    alpha : :obj:`float`
        Significance level, in (0, 1).
    one_sided : :obj:`bool`, optional
        If True, return ``z_{1 - alpha}``; otherwise ``z_{1 - alpha / 2}``.
        Default = False.

    Returns
    -------
    :obj:`float`
    """
    if not 0 < alpha < 1:
        raise ValueError("alpha must lie strictly between 0 and 1; got {}.".format(alpha))
    q = 1 - alpha if one_sided else 1 - alpha / 2
    return ss.norm.ppf(q)


def z_test(estimate, se, alpha=0.05, one_sided=False):
    """Test whether a parameter differs from zero.

    One-sided tests reject only for positive z-statistics.

    Returns
    -------
    z : :obj:`float`
        The z-statistic ``estimate / se``.
    rejected : :obj:`bool`
        Whether the null hypothesis of a zero parameter is rejected.
    """
    with np.errstate(divide="ignore", invalid="ignore"):
        z = np.float64(estimate) / np.float64(se)
    crit = critical_value(alpha, one_sided)
    if np.isnan(z):
        return z, False
    rejected = z > crit if one_sided else abs(z) > crit
    return z, bool(rejected)


def two_sided_p(z):
    """Convert z-statistics to two-sided p-values."""
    return 2 * ss.norm.sf(np.abs(z))


def pp_values(theta, y, se, alpha=0.05):
    """Compute p-curve "pp-values" of significant estimates under a candidate effect.

    Each pp-value is the probability, conditional on a result being
    significant and in the positive direction, of an estimate at least as
    large as the observed one when the true effect is ``theta``. If ``theta``
    is the true effect, pp-values are uniformly distributed on [0, 1].

    Parameters
    ----------
    theta : :obj:`float`
        Candidate true effect.
    y : :obj:`numpy.ndarray` of shape (K,)
        Significant, positive effect sizes.
    se : :obj:`numpy.ndarray` of shape (K,)
        Corresponding standard errors.
    alpha : :obj:`float`, optional
        Two-sided significance level of the selection filter. Default = 0.05.

    Returns
    -------
    :obj:`numpy.ndarray` of shape (K,)
    """
    z_crit = critical_value(alpha)
    # Ratio of two normal CDFs; taken in log space so that very negative
    # candidates do not produce 0 / 0.
    log_num = ss.norm.logcdf((theta - y) / se)
    log_den = ss.norm.logcdf(theta / se - z_crit)
    return np.clip(np.exp(log_num - log_den), 0.0, 1.0)


def ks_uniform_distance(values):
    """Kolmogorov-Smirnov distance between a sample and the U(0, 1) distribution."""
    return ss.kstest(np.asarray(values, dtype=float), "uniform").statistic


def bias_metrics(estimates, truth):
    """Summarize the deviation of estimates from their benchmark values.

    Parameters
    ----------
    estimates : array_like
        Point estimates, one per study.
    truth : array_like
        Benchmark values, aligned with ``estimates``.

    Returns
    -------
    :obj:`dict`
        A dictionary with keys 'mean_bias', 'mean_absolute_deviation' and
        'root_mean_square_error'. Values are NaN if no estimates are given.
    """
    bias = np.asarray(estimates, dtype=float) - np.asarray(truth, dtype=float)
    if bias.size == 0:
        return {
            "mean_bias": np.nan,
            "mean_absolute_deviation": np.nan,
            "root_mean_square_error": np.nan,
        }
    return {
        "mean_bias": bias.mean(),
        "mean_absolute_deviation": np.abs(bias).mean(),
        "root_mean_square_error": np.sqrt((bias**2).mean()),
    }
