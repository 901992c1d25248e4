"""
Grassmann manifold structure of a uniform MPS unit cell, as product of the
single-site manifolds of the left-orthonormal tensors `AL[i]`.

The optimization state is the pair `x = (psi, envs)` of a uniform MPS and its
Hamiltonian environments; tangent vectors are lists of `GrassmannTangent`,
one per site of the unit cell. The functions implement the callback interface
of `pyumps.optimize.optimize`.
"""

import numpy as np
from . import grassmann
from .bond_ops import reginv
from .imps import iMPS
from .environments import ac_prime, expectation_value

__all__ = ['fg', 'retract', 'transport', 'inner', 'scale', 'add', 'precondition', 'reginv']


def fg(x):
    """
    Evaluate the energy per unit cell and its gradient with respect to the `AL` tensors.

    The derivative with respect to `AC[i]` is converted to a derivative with respect
    to `AL[i]` by multiplication with `CR[i]^H` (keeping `CR[i]` fixed),
    followed by the projection onto the tangent space at `AL[i]`.

    Returns:
        tuple: tuple containing
          - f: energy (real part of the sum of the bond energies of the unit cell)
          - g: gradient as list of tangent vectors
    """
    psi, envs = x
    g = []
    for i in range(psi.nsites):
        dAC = ac_prime(psi.AC[i], i, psi, envs)
        g.append(grassmann.project(np.tensordot(dAC, psi.CR[i].conj().T, 1), psi.AL[i]))
    f = np.real(np.sum(expectation_value(psi, envs.ham, envs)))
    return f, g


def retract(x, dx, alpha: float):
    """
    Retract the state along the tangent direction `dx` by step size `alpha`.

    Returns:
        tuple: tuple containing
          - new optimization state `(psi, envs)`
          - the direction `dx` at the new state
    """
    psi, envs = x
    AL = []
    h = []
    for i in range(psi.nsites):
        W, t = grassmann.retract(psi.AL[i], dx[i], alpha)
        AL.append(W)
        h.append(t)
    psi_new = iMPS.from_left_isometries(AL)
    return (psi_new, envs.recalculate(psi_new)), h


def transport(v, x, dx, alpha: float, x_new):
    """
    Parallel transport the tangent vector `v` along the retraction
    in direction `dx` (step size `alpha`) from `x` to `x_new`.
    """
    psi, psi_new = x[0], x_new[0]
    return [grassmann.transport(v[i], psi.AL[i], dx[i], alpha, psi_new.AL[i])
            for i in range(psi.nsites)]


def inner(x, g1, g2) -> float:
    """
    Inner product of two tangent vectors at `x`, as twice the real part
    of the sum of the single-site inner products.
    """
    psi = x[0]
    return 2 * sum(grassmann.inner(psi.AL[i], g1[i], g2[i]) for i in range(psi.nsites))


def scale(g, alpha):
    """
    Multiply a tangent vector by the scalar `alpha`.
    """
    return [alpha * gi for gi in g]


def add(g1, g2, alpha):
    """
    Compute `g1 + alpha*g2` for two tangent vectors at the same state.
    """
    return [a + alpha * b for a, b in zip(g1, g2)]


def precondition(x, g):
    """
    Precondition the tangent vector `g` by the (regularized) inverse of the
    metric induced by the MPS inner product.

    The regularization parameter is the norm of `g`, capped at 1.
    """
    psi = x[0]
    delta = min(1, np.sqrt(inner(x, g, g)))
    g_new = []
    for i in range(psi.nsites):
        crinv = reginv(psi.CR[i], delta)
        g_new.append(grassmann.project(np.tensordot(g[i].Z, crinv.conj().T @ crinv, 1), psi.AL[i]))
    return g_new
