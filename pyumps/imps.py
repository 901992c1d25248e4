from collections.abc import Sequence
import warnings
import numpy as np
from .bond_ops import qr_positive, polar_isometry
from .operation import contraction_step_right
from .krylov import dominant_eigenpair
from .util import random_isometry

__all__ = ['iMPS', 'left_orthonormalize_uniform']


class iMPS:
    """
    Uniform ("infinite") matrix product state (MPS) class, with a unit cell
    of `nsites` tensors stored in mixed canonical form.

    The tensors `AL[i]`, `AR[i]` and `AC[i]` at site `i` have dimension
    `[d, D[i], D[i+1]]` with `d` the physical dimension and `D` the list of
    virtual bond dimensions. Site indices are understood modulo `nsites`,
    in particular `D[nsites] == D[0]`.

    `AL[i]` is left-orthonormal, `AR[i]` right-orthonormal, and the bond matrix
    `CR[i]` of dimension `[D[i+1], D[i+1]]` (to the right of site `i`) relates them via

        AC[i] = AL[i] CR[i] = CR[i-1] AR[i].

    The state is normalized, i.e., `trace(CR[i] CR[i]^H) == 1`.
    Instances are not modified after construction.
    """

    def __init__(self, AL: Sequence[np.ndarray], AR: Sequence[np.ndarray], AC: Sequence[np.ndarray], CR: Sequence[np.ndarray]):
        """
        Create a uniform matrix product state from its mixed canonical form.
        Use `from_left_isometries` to derive the form from the `AL` tensors alone.
        """
        assert len(AL) > 0
        assert len(AL) == len(AR) == len(AC) == len(CR)
        self.AL = list(AL)
        self.AR = list(AR)
        self.AC = list(AC)
        self.CR = list(CR)

    @classmethod
    def from_left_isometries(cls, AL: Sequence[np.ndarray], tol: float = 0):
        """
        Construct a uniform MPS from its left-orthonormal unit cell tensors
        (the tensors are stored as-is, without copying).

        The bond matrices are the Hermitian square roots of the right fixed points
        of the transfer matrix, and the right-orthonormal tensors are obtained
        from the polar decompositions of `AC[i]` and `CR[i-1]`.

        Args:
            AL: left-orthonormal MPS tensors of the unit cell
            tol: relative accuracy of the iterative eigensolver for large bond dimensions

        Reference:
            V. Zauner-Stauber, L. Vanderstraeten, M. T. Fishman, F. Verstraete, J. Haegeman
            Variational optimization algorithms for uniform matrix product states
            Phys. Rev. B 97, 045145 (2018) (arXiv:1701.07035)
        """
        AL = list(AL)
        nsites = len(AL)
        assert nsites > 0
        for i in range(nsites):
            assert AL[i].ndim == 3
            assert AL[i].shape[2] == AL[(i + 1) % nsites].shape[1], \
                'virtual bond dimensions of neighboring tensors must agree'
        dtype = np.result_type(*[A.dtype for A in AL])

        # right fixed point of the unit cell transfer matrix,
        # located at the bond to the right of the last site
        def transfer(r):
            for i in reversed(range(nsites)):
                r = contraction_step_right(AL[i], AL[i], r)
            return r
        D = AL[-1].shape[2]
        _, r = dominant_eigenpair(transfer, (D, D), dtype=dtype, tol=tol)

        # right fixed points at all bonds
        rho = nsites * [None]
        rho[-1] = _normalize_density(r, dtype)
        for i in reversed(range(1, nsites)):
            rho[i-1] = _normalize_density(contraction_step_right(AL[i], AL[i], rho[i]), dtype)

        CR = [_hermitian_sqrt(rho_i) for rho_i in rho]
        AC = [np.tensordot(AL[i], CR[i], 1) for i in range(nsites)]
        AR = nsites * [None]
        for i in range(nsites):
            s = AC[i].shape
            # right polar decompositions AC[i] = P Qac and CR[i-1] = P' Qc
            Qac = polar_isometry(AC[i].transpose((1, 0, 2)).reshape((s[1], s[0]*s[2])))
            Qc = polar_isometry(CR[i-1])
            AR[i] = (Qc.conj().T @ Qac).reshape((s[1], s[0], s[2])).transpose((1, 0, 2))
        return cls(AL, AR, AC, CR)

    @classmethod
    def from_tensors(cls, A: Sequence[np.ndarray], tol: float = 1e-12, maxiter: int = 1000):
        """
        Construct a uniform MPS from arbitrary (not necessarily orthonormal)
        unit cell tensors, by first left-orthonormalizing them.
        """
        AL, _, _ = left_orthonormalize_uniform(A, tol=tol, maxiter=maxiter)
        return cls.from_left_isometries(AL)

    @classmethod
    def construct_random(cls, nsites: int, d: int, D, dtype='complex', rng: np.random.Generator=None):
        """
        Construct a uniform MPS with random left-orthonormal tensors.

        Args:
            nsites: number of sites in the unit cell
            d: physical dimension
            D: virtual bond dimension (same for all bonds), or
               list of virtual bond dimensions `D[i]` to the left of site `i`
            dtype: 'complex' or 'real'
            rng: (optional) random number generator for drawing entries
        """
        assert nsites > 0
        if isinstance(D, (int, np.integer)):
            D = nsites * [D]
        if len(D) != nsites:
            raise ValueError(f'number of bond dimensions {len(D)} must be equal to the number of sites {nsites}.')
        if rng is None:
            rng = np.random.default_rng()
        AL = [random_isometry((d, D[i], D[(i + 1) % nsites]), dtype=dtype, rng=rng) for i in range(nsites)]
        return cls.from_left_isometries(AL)

    @property
    def nsites(self) -> int:
        """
        Number of lattice sites in the unit cell.
        """
        return len(self.AL)

    @property
    def bond_dims(self) -> list:
        """
        Virtual bond dimensions `D[i]` to the left of each site.
        """
        return [A.shape[1] for A in self.AL]

    @property
    def d(self) -> int:
        """
        Local physical dimension.
        """
        return self.AL[0].shape[0]

    @property
    def dtype(self):
        """
        Data type of the MPS tensors.
        """
        return np.result_type(*[A.dtype for A in self.AL])


def _normalize_density(rho, dtype):
    """
    Fix phase and normalization of a fixed point of the transfer matrix
    such that it becomes a density matrix (Hermitian with unit trace).
    """
    rho = rho / np.trace(rho)
    rho = 0.5 * (rho + rho.conj().T)
    if not np.issubdtype(dtype, np.complexfloating):
        rho = rho.real
    return rho


def _hermitian_sqrt(rho):
    """
    Hermitian square root of a positive semi-definite matrix,
    clipping negative eigenvalues caused by rounding errors.
    """
    w, u = np.linalg.eigh(rho)
    w = np.maximum(w, 0)
    return (u * np.sqrt(w)) @ u.conj().T


def left_orthonormalize_uniform(A: Sequence[np.ndarray], tol: float = 1e-12, maxiter: int = 1000):
    """
    Left-orthonormalize the unit cell tensors of a uniform MPS
    by repeated QR decompositions.

    Args:
        A: input MPS tensors of the unit cell, the i-th of shape (d, D[i], D[i+1])
        tol: tolerance for the convergence of the bond matrices
        maxiter: maximum number of sweeps through the unit cell

    Returns:
        tuple: tuple containing
          - AL: left-orthonormal uniform MPS tensors describing same state as A
          - Lmats: corresponding L matrices (normalized) at the bond to the left of each site,
                   such that Lmats[i] A[i] == nrms[i] AL[i] Lmats[i+1]
          - nrms: normalization factors of the individual tensors; their product is
                  the square root of the dominant eigenvalue of the unit cell transfer matrix

    Reference:
        L. Vanderstraeten, J. Haegeman, F. Verstraete
        Tangent-space methods for uniform matrix product states
        arXiv:1810.07006
    """
    A = list(A)
    nsites = len(A)
    assert nsites > 0
    for i in range(nsites):
        assert A[i].ndim == 3
        assert A[i].shape[2] == A[(i + 1) % nsites].shape[1], \
            'virtual bond dimensions of neighboring tensors must agree'
        s = A[i].shape
        assert s[0]*s[1] >= s[2], 'left-orthonormalization requires d*D[i] >= D[i+1]'

    dtype = np.result_type(*[Ai.dtype for Ai in A])
    D = A[0].shape[1]
    C = np.identity(D, dtype=dtype) / np.sqrt(D)

    AL = nsites * [None]
    Lmats = (nsites + 1) * [None]
    nrms = np.zeros(nsites)
    for n in range(maxiter):
        Lmats[0] = C
        for i in range(nsites):
            s = A[i].shape
            # multiply A[i] with C from the left and decompose
            CA = np.tensordot(C, A[i], axes=(1, 1)).transpose((1, 0, 2))
            Q, R = qr_positive(CA.reshape((s[0]*s[1], s[2])))
            AL[i] = Q.reshape(s)
            nrms[i] = np.linalg.norm(R)
            C = R / nrms[i]
            Lmats[i+1] = C
        if np.linalg.norm(Lmats[-1] - Lmats[0]) <= tol:
            break
    else:
        warnings.warn(
            'left-orthonormalization did not converge to tolerance {} within {} sweeps.'.format(tol, maxiter),
            RuntimeWarning)

    return AL, Lmats[:nsites], nrms
