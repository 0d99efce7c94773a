# src/hrtpk/models/one_compartment.py
import numpy as np

# Rate constants closer than this are treated as equal.
RATE_EPS = 1e-9


def one_compartment_amount(tau, dose_mg, F, ka, ke):
    """
    Amount in the body (mg) after a first-order absorbed dose.

      A(tau) = dose * F * ka / (ka - ke) * (exp(-ke tau) - exp(-ka tau))

    and, when ka == ke,

      A(tau) = dose * F * ka * tau * exp(-ke tau)

    Parameters:
      tau     : time since the dose (h), scalar or array
      dose_mg : dose entering the absorption site (mg)
      F       : bioavailability multiplier
      ka      : absorption rate constant (1/h)
      ke      : elimination rate constant (1/h)

    Zero before the dose, for a non-positive dose and for non-positive rates.
    """
    tau = np.asarray(tau, dtype=float)
    if dose_mg <= 0 or ka <= 0 or ke <= 0:
        return np.zeros_like(tau)

    t = np.maximum(tau, 0.0)
    if abs(ka - ke) < RATE_EPS:
        A = dose_mg * F * ka * t * np.exp(-ke * t)
    else:
        A = dose_mg * F * ka / (ka - ke) * (np.exp(-ke * t) - np.exp(-ka * t))
    return np.where(tau < 0, 0.0, A)


def one_compartment_rhs(t, y, ka, ke):
    """
    One-compartment model with first-order absorption and elimination.
    Two states:
      y[0] = drug at the absorption site (mg)
      y[1] = drug in the body (mg)
    """
    A_site, A_body = y
    return [-ka * A_site, ka * A_site - ke * A_body]
