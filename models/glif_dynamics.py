"""
Right-hand side and adaptive integration of the GLIF continuous state.

State vector y = [V, dg_1, g_1, ..., dg_n, g_n], V relative to E_L.

  dV/dt    = (-G * V + sum_c g_c * (E_rev_c - E_L - V) + I + I_asc) / C_m
  d(dg)/dt = -dg / tau_syn
  dg/dt    = dg - g / tau_syn

V is held (dV/dt = 0) while the neuron is refractory; conductances keep
evolving.

Integration uses scipy's embedded Dormand-Prince 5(4) pair (RK45) with local
error control, one solver run per grid step. The last accepted step size is
carried over to seed the next grid step.
"""

import logging

import numpy as np
from scipy.integrate import RK45

from models import config
from models.exceptions import IntegrationError
from models.glif_params import V_M, DG_SYN, G_SYN

logger = logging.getLogger(__name__)


def glif_cond_dynamics(t, y, node):
    """Time derivative of the continuous state of `node` (a GLIFCond).

    Free function so the solver can call it with (t, y); bind `node` with
    functools.partial.
    """
    p = node.P
    v = node.V
    f = np.empty_like(y)

    dg = y[DG_SYN::2]
    g = y[G_SYN::2]

    if node.S.refractory_steps > 0:
        f[V_M] = 0.0
    else:
        V = y[V_M]
        I_syn = np.dot(g, v.E_rev_rel - V)
        I_leak = p.G * V
        f[V_M] = (-I_leak + I_syn + node.B.I + node.S.asc_sum) / p.C_m

    f[DG_SYN::2] = -dg / v.tau_syn
    f[G_SYN::2] = dg - g / v.tau_syn
    return f


class AdaptiveIntegrator:
    """Persistent solver workspace: system size and adaptive step size.

    Parameters
    ----------
    rhs : callable
        fun(t, y) returning dy/dt.
    dimension : int
        Length of the state vector.
    step : float
        Grid step h (ms); also the initial adaptive step.
    atol, rtol : float
        Local error tolerances.
    max_substeps : int
        Accepted sub-steps allowed within one grid step.
    """

    def __init__(self, rhs, dimension, step, atol=None, rtol=None,
                 max_substeps=None):
        self.rhs = rhs
        self.dimension = dimension
        self.step = step
        self.integration_step = step
        self.atol = config.SOLVER_ATOL if atol is None else atol
        self.rtol = config.SOLVER_RTOL if rtol is None else rtol
        self.max_substeps = config.MAX_SUBSTEPS if max_substeps is None else max_substeps
        self.n_substeps = 0

    def reinit(self, step):
        """Reset the adaptive step to the grid step (buffer reset)."""
        self.step = step
        self.integration_step = step
        self.n_substeps = 0

    def resize(self, dimension, step):
        """Adopt a new system size and grid step (calibration).

        The adaptive step is kept, only capped at the new grid step.
        """
        self.dimension = dimension
        self.step = step
        self.integration_step = min(self.integration_step, step)

    def advance(self, y, grid_step=None):
        """Integrate y in place over one grid step.

        Raises
        ------
        IntegrationError
            If the solver fails or needs more than max_substeps steps.
        """
        if len(y) != self.dimension:
            raise ValueError(
                f"State has {len(y)} elements, integrator expects {self.dimension}")
        h = self.step
        solver = RK45(self.rhs, 0.0, y, h,
                      first_step=min(self.integration_step, h),
                      rtol=self.rtol, atol=self.atol)
        n = 0
        while solver.status == 'running':
            message = solver.step()
            n += 1
            if solver.status == 'failed':
                raise IntegrationError(grid_step, message)
            if n > self.max_substeps:
                raise IntegrationError(
                    grid_step, f"more than {self.max_substeps} sub-steps needed")
            if not np.all(np.isfinite(solver.y)):
                raise IntegrationError(grid_step, "state is no longer finite")

        y[:] = solver.y
        self.integration_step = solver.h_abs
        self.n_substeps += n
        return y
