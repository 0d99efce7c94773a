# src/hrtpk/models/three_compartment.py
import numpy as np

from .one_compartment import RATE_EPS


def three_compartment_amount(tau, dose_mg, F, k1, k2, k3):
    """
    Amount in the body (mg) for a depot -> ester pool -> central chain.

    k1 releases the ester from the depot, k2 hydrolyses it to E2 and k3
    eliminates E2:

      A(tau) = dose * F * k1 * k2 * sum_i exp(-ki tau) / prod_{j != i} (kj - ki)

    When any two rate constants are within RATE_EPS of each other the result
    is 0. The confluent (polynomial * exponential) form is not used; see
    DESIGN.md.
    """
    tau = np.asarray(tau, dtype=float)
    if dose_mg <= 0 or k1 <= 0 or k2 <= 0 or k3 <= 0:
        return np.zeros_like(tau)

    k1_k2 = k1 - k2
    k1_k3 = k1 - k3
    k2_k3 = k2 - k3
    if abs(k1_k2) < RATE_EPS or abs(k1_k3) < RATE_EPS or abs(k2_k3) < RATE_EPS:
        return np.zeros_like(tau)

    t = np.maximum(tau, 0.0)
    term1 = np.exp(-k1 * t) / (k1_k2 * k1_k3)
    term2 = np.exp(-k2 * t) / (-k1_k2 * k2_k3)
    term3 = np.exp(-k3 * t) / (k1_k3 * k2_k3)
    A = dose_mg * F * k1 * k2 * (term1 + term2 + term3)
    return np.where(tau < 0, 0.0, A)


def three_compartment_rhs(t, y, k1, k2, k3):
    """
    States:
      y[0] = ester remaining in the depot (mg)
      y[1] = ester released, not yet hydrolysed (mg)
      y[2] = E2 in the body (mg)
    """
    A_depot, A_ester, A_body = y
    return [-k1 * A_depot, k1 * A_depot - k2 * A_ester, k2 * A_ester - k3 * A_body]
