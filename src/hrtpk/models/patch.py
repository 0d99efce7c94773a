# src/hrtpk/models/patch.py
import math

import numpy as np

from .one_compartment import one_compartment_amount


def zero_order_patch_amount(tau, rate_mg_h, k3, wear_h=math.inf):
    """
    Constant-release patch: input at rate_mg_h while worn, then washout.

      tau <= wear : rate / k3 * (1 - exp(-k3 tau))
      tau >  wear : A(wear) * exp(-k3 (tau - wear))
    """
    tau = np.asarray(tau, dtype=float)
    if rate_mg_h <= 0 or k3 <= 0:
        return np.zeros_like(tau)

    t = np.maximum(tau, 0.0)
    worn = rate_mg_h / k3 * (1.0 - np.exp(-k3 * np.minimum(t, wear_h)))
    if math.isfinite(wear_h):
        A = np.where(t <= wear_h, worn, worn * np.exp(-k3 * np.maximum(t - wear_h, 0.0)))
    else:
        A = worn
    return np.where(tau < 0, 0.0, A)


def first_order_patch_amount(tau, dose_mg, F, ka, k3, wear_h=math.inf):
    """Legacy patch: the whole dose absorbs first-order until the patch comes off."""
    tau = np.asarray(tau, dtype=float)
    under_patch = one_compartment_amount(tau, dose_mg, F, ka, k3)
    if not math.isfinite(wear_h):
        return under_patch
    at_removal = one_compartment_amount(wear_h, dose_mg, F, ka, k3)
    after = at_removal * np.exp(-k3 * np.maximum(tau - wear_h, 0.0))
    return np.where(tau > wear_h, after, under_patch)
