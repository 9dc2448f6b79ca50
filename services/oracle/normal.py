"""Standard normal CDF approximation."""

import math

# Abramowitz-Stegun 7.1.26
A1 = 0.254829592
A2 = -0.284496736
A3 = 1.421413741
A4 = -1.453152027
A5 = 1.061405429
P = 0.3275911


def normal_cdf(x: float) -> float:
    """
    Polynomial normal CDF used by the probability model.

    Coefficients and arithmetic are fixed; results must match recorded
    values to float precision. Negative inputs mirror positive ones,
    ``normal_cdf(-x) == 1 - normal_cdf(x)``.
    """
    sign = -1.0 if x < 0 else 1.0
    x = abs(x)

    t = 1.0 / (1.0 + P * x)
    y = 1.0 - (((((A5 * t + A4) * t) + A3) * t + A2) * t + A1) * t * math.exp(-x * x / 2)

    return 0.5 * (1.0 + sign * (2 * y - 1))
