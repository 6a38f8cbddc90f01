"""
Alpha-function conductance kernel (Meffin, Burkitt & Grayden 2004).

Second-order linear kinetics per receptor channel:
  d(dg)/dt = -dg / tau_syn
  dg/dt    = dg - g / tau_syn

An impulse of weight w added to dg as w * e / tau_syn produces
  g(t) = w * (e / tau_syn) * t * exp(-t / tau_syn)
which peaks at exactly w nS at t = tau_syn.
"""

import numpy as np


def alpha_normalization(tau_syn):
    """Jump in dg per unit weight giving a 1 nS conductance peak."""
    return np.e / np.asarray(tau_syn, dtype=float)


def alpha_conductance(t, tau_syn, weight=1.0):
    """Analytic conductance (nS) t ms after a single event of given weight.

    Parameters
    ----------
    t : float or np.ndarray
        Time since delivery (ms). Negative times give zero.
    tau_syn : float
        Rise time constant (ms).
    weight : float
        Event weight; the peak conductance equals weight.
    """
    t = np.asarray(t, dtype=float)
    g = weight * alpha_normalization(tau_syn) * t * np.exp(-t / tau_syn)
    return np.where(t >= 0.0, g, 0.0)

