import numpy as np
from .imps import iMPS
from .hamiltonian import BondHamiltonian
from .operation import (contraction_step_left, contraction_step_right,
                        left_bond_block, right_bond_block, bond_energy,
                        apply_effective_hamiltonian)
from .krylov import solve_linear_map

__all__ = ['BondEnvironments', 'environments', 'ac_prime',
           'expectation_value', 'local_expectation_value']


class BondEnvironments:
    """
    Left and right environment blocks of a nearest-neighbor bond Hamiltonian
    with respect to a uniform MPS.

    `LH[i]` is located at the virtual bond to the left of site `i` and contains
    all bond terms acting strictly to the left of site `i`; `RH[i]` is located
    at the bond to the right of site `i` and contains all bond terms acting
    strictly to the right of site `i`. The bond energy is subtracted from each term,
    such that the infinite sums converge.
    """

    def __init__(self, ham: BondHamiltonian, psi: iMPS, energies, LH, RH, tol: float = 1e-12):
        self.ham = ham
        self.psi = psi
        self.energies = np.asarray(energies)
        self.LH = list(LH)
        self.RH = list(RH)
        self.tol = tol

    def recalculate(self, psi: iMPS):
        """
        Compute the environments for a new state `psi`, using the current blocks
        as starting point for the iterative solvers.
        """
        return environments(psi, self.ham, guess=self, tol=self.tol)


def _bond_energies(psi: iMPS, ham: BondHamiltonian):
    nsites = psi.nsites
    return np.array([bond_energy(psi.AC[i], psi.AR[(i + 1) % nsites], ham[i])
                     for i in range(nsites)])


def _left_sweep(psi: iMPS, ham: BondHamiltonian, energies, X, with_terms: bool):
    """
    Propagate the left block `X` (at the bond to the left of site 0)
    once through the unit cell, optionally adding the bond terms.
    """
    AL = psi.AL
    nsites = psi.nsites
    blocks = [X]
    for i in range(nsites):
        X = contraction_step_left(AL[i], AL[i], X)
        if with_terms:
            # bond term acting on sites (i-1, i)
            X = X + left_bond_block(AL[i-1], AL[i], ham[i-1]) - energies[i-1] * np.identity(X.shape[0])
        blocks.append(X)
    return blocks


def _right_sweep(psi: iMPS, ham: BondHamiltonian, energies, X, with_terms: bool):
    """
    Propagate the right block `X` (at the bond to the right of the last site)
    once through the unit cell, optionally adding the bond terms.
    """
    AR = psi.AR
    nsites = psi.nsites
    blocks = [X]
    for i in reversed(range(nsites)):
        X = contraction_step_right(AR[i], AR[i], X)
        if with_terms:
            # bond term acting on sites (i, i+1)
            X = X + right_bond_block(AR[i], AR[(i + 1) % nsites], ham[i]) - energies[i] * np.identity(X.shape[0])
        blocks.append(X)
    # order by site index
    return blocks[::-1]


def _left_environments(psi: iMPS, ham: BondHamiltonian, energies, x0, tol: float):
    D = psi.AL[0].shape[1]
    ident = np.identity(D)
    # right fixed point of the left-orthonormal transfer matrix at the bond to the left of site 0
    r = psi.CR[-1] @ psi.CR[-1].conj().T
    dtype = np.result_type(psi.dtype, ham.dtype, energies.dtype)
    Y = _left_sweep(psi, ham, energies, np.zeros((D, D), dtype=dtype), True)[-1]
    # project out the component along the fixed point
    rhs = Y - np.sum(Y * r) * ident
    def linmap(X):
        return X - _left_sweep(psi, ham, energies, X, False)[-1] + np.sum(X * r) * ident
    if x0 is not None and x0.shape != rhs.shape:
        x0 = None
    X = solve_linear_map(linmap, rhs, x0=x0, tol=tol)
    X = 0.5 * (X + X.conj().T)
    return _left_sweep(psi, ham, energies, X, True)[:-1]


def _right_environments(psi: iMPS, ham: BondHamiltonian, energies, x0, tol: float):
    D = psi.AR[-1].shape[2]
    ident = np.identity(D)
    # left fixed point of the right-orthonormal transfer matrix at the bond to the right of the last site
    l = psi.CR[-1].T @ psi.CR[-1].conj()
    dtype = np.result_type(psi.dtype, ham.dtype, energies.dtype)
    Y = _right_sweep(psi, ham, energies, np.zeros((D, D), dtype=dtype), True)[0]
    rhs = Y - np.sum(Y * l) * ident
    def linmap(X):
        return X - _right_sweep(psi, ham, energies, X, False)[0] + np.sum(X * l) * ident
    if x0 is not None and x0.shape != rhs.shape:
        x0 = None
    X = solve_linear_map(linmap, rhs, x0=x0, tol=tol)
    X = 0.5 * (X + X.conj().T)
    return _right_sweep(psi, ham, energies, X, True)[1:]


def environments(psi: iMPS, ham: BondHamiltonian, guess: BondEnvironments = None, tol: float = 1e-12) -> BondEnvironments:
    """
    Compute the left and right environment blocks of the bond Hamiltonian `ham`
    with respect to the uniform MPS `psi`.

    The blocks at the boundary of the unit cell are the solutions of the fixed-point equations

        LH - T_L(LH) + <LH, r> 1 = Y_L - <Y_L, r> 1,
        RH - T_R(RH) + <l, RH> 1 = Y_R - <l, Y_R> 1,

    with `T_L` (`T_R`) the transfer matrix of the unit cell in terms of the
    left (right) orthonormal tensors, `r` and `l` the corresponding fixed points,
    and `Y_L` (`Y_R`) the bond terms accumulated over one unit cell.
    The remaining blocks follow by recursion.

    Args:
        psi: uniform MPS in mixed canonical form
        ham: bond Hamiltonian, with period dividing the unit cell length
        guess: (optional) environments of a nearby state, as starting point
        tol: tolerance of the iterative linear solver

    Returns:
        BondEnvironments: environment blocks and bond energies

    Reference:
        V. Zauner-Stauber, L. Vanderstraeten, M. T. Fishman, F. Verstraete, J. Haegeman
        Variational optimization algorithms for uniform matrix product states
        Phys. Rev. B 97, 045145 (2018) (arXiv:1701.07035)
    """
    ham.check_unit_cell(psi.nsites)
    energies = _bond_energies(psi, ham)
    LH = _left_environments( psi, ham, energies, None if guess is None else guess.LH[0],  tol)
    RH = _right_environments(psi, ham, energies, None if guess is None else guess.RH[-1], tol)
    return BondEnvironments(ham, psi, energies, LH, RH, tol)


def ac_prime(ac: np.ndarray, site: int, psi: iMPS, envs: BondEnvironments) -> np.ndarray:
    """
    Apply the effective single-site Hamiltonian at `site` to the center tensor `ac`.

    `envs` must have been computed for `psi`.
    """
    nsites = psi.nsites
    i = site % nsites
    ham = envs.ham
    return apply_effective_hamiltonian(psi.AL[i-1], psi.AR[(i + 1) % nsites], ham[i-1], ham[i],
                                       envs.LH[i], envs.RH[i], ac)


def expectation_value(psi: iMPS, ham: BondHamiltonian, envs: BondEnvironments = None) -> np.ndarray:
    """
    Compute the expectation values of the bond terms `h[i]`, `i = 0, ..., nsites-1`.

    The cached values are reused if `envs` has been computed for `psi` and `ham`.
    """
    if envs is not None and envs.psi is psi and envs.ham is ham:
        return envs.energies.copy()
    ham.check_unit_cell(psi.nsites)
    return _bond_energies(psi, ham)


def local_expectation_value(psi: iMPS, op: np.ndarray) -> np.ndarray:
    """
    Compute the expectation value of the single-site operator `op` at each site of the unit cell.
    """
    assert op.ndim == 2
    return np.array([np.vdot(AC, np.tensordot(op, AC, 1)) for AC in psi.AC])
