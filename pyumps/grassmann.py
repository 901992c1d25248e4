"""
Grassmann manifold of left-orthonormal MPS site tensors.

A site tensor `W` of dimension `d x Dl x Dr` is regarded as isometric matrix
of dimension `(d*Dl) x Dr`, modulo unitary transformations of its right virtual bond.
Tangent vectors `Z` at `W` satisfy `W^H Z == 0`.

Reference:
    A. Edelman, T. A. Arias, S. T. Smith
    The geometry of algorithms with orthogonality constraints
    SIAM J. Matrix Anal. Appl. 20, 303 (1998)
"""

import numpy as np
from .bond_ops import polar_isometry

__all__ = ['GrassmannTangent', 'project', 'retract', 'transport', 'inner']


def _as_matrix(A: np.ndarray) -> np.ndarray:
    # combine physical and left virtual dimension
    return A.reshape((-1, A.shape[-1]))


class GrassmannTangent:
    """
    Tangent vector `Z` at the base point `W` of the Grassmann manifold.

    Tangent vectors at the same base point form a vector space; the arithmetic
    operators only verify that the dimensions agree.
    """

    # let numpy scalars defer to the reflected operators, e.g., np.float64(2) * tangent
    __array_ufunc__ = None

    def __init__(self, W: np.ndarray, Z: np.ndarray):
        assert W.ndim == 3
        assert W.shape == Z.shape
        self.W = W
        self.Z = Z
        self._svd = None

    @property
    def svd(self):
        """
        Thin singular value decomposition `(U, S, Vh)` of `Z` as matrix (cached).
        """
        if self._svd is None:
            self._svd = np.linalg.svd(_as_matrix(self.Z), full_matrices=False)
        return self._svd

    def __add__(self, other):
        if not isinstance(other, GrassmannTangent):
            return NotImplemented
        assert self.Z.shape == other.Z.shape
        return GrassmannTangent(self.W, self.Z + other.Z)

    def __sub__(self, other):
        if not isinstance(other, GrassmannTangent):
            return NotImplemented
        assert self.Z.shape == other.Z.shape
        return GrassmannTangent(self.W, self.Z - other.Z)

    def __mul__(self, alpha):
        if not np.isscalar(alpha):
            return NotImplemented
        return GrassmannTangent(self.W, alpha * self.Z)

    __rmul__ = __mul__

    def __neg__(self):
        return GrassmannTangent(self.W, -self.Z)


def project(X: np.ndarray, W: np.ndarray) -> GrassmannTangent:
    """
    Project `X` onto the tangent space at `W`, i.e., compute `X - W (W^H X)`.
    """
    assert X.shape == W.shape
    Wm = _as_matrix(W)
    Xm = _as_matrix(X)
    Z = Xm - Wm @ (Wm.conj().T @ Xm)
    return GrassmannTangent(W, Z.reshape(W.shape))


def retract(W: np.ndarray, tangent: GrassmannTangent, alpha: float):
    """
    Move from `W` along the geodesic in direction `tangent` by step size `alpha`.

    Returns:
        tuple: tuple containing
          - Wnew: new isometric site tensor
          - local tangent vector of the geodesic at `Wnew`
    """
    U, S, Vh = tangent.svd
    Wm = _as_matrix(W)
    WV = Wm @ Vh.conj().T
    cos = np.cos(alpha * S)
    sin = np.sin(alpha * S)
    # re-orthonormalize to avoid accumulation of rounding errors
    Wnew = polar_isometry((WV * cos) @ Vh + (U * sin) @ Vh)
    Znew = (-WV * (sin * S) + U * (cos * S)) @ Vh
    Znew = Znew - Wnew @ (Wnew.conj().T @ Znew)
    Wnew = Wnew.reshape(W.shape)
    return Wnew, GrassmannTangent(Wnew, Znew.reshape(W.shape))


def transport(theta: GrassmannTangent, W: np.ndarray, tangent: GrassmannTangent, alpha: float, Wnew: np.ndarray) -> GrassmannTangent:
    """
    Parallel transport the tangent vector `theta` at `W` along the geodesic
    in direction `tangent` (step size `alpha`) to `Wnew`.

    The transport is isometric, i.e., it preserves inner products.
    """
    U, S, Vh = tangent.svd
    Wm = _as_matrix(W)
    WV = Wm @ Vh.conj().T
    cos = np.cos(alpha * S)
    sin = np.sin(alpha * S)
    Zm = _as_matrix(theta.Z)
    UdZ = U.conj().T @ Zm
    Znew = Zm - WV @ (sin[:, None] * UdZ) + U @ ((cos - 1)[:, None] * UdZ)
    Wnm = _as_matrix(Wnew)
    Znew = Znew - Wnm @ (Wnm.conj().T @ Znew)
    return GrassmannTangent(Wnew, Znew.reshape(Wnew.shape))


def inner(W: np.ndarray, tangent1: GrassmannTangent, tangent2: GrassmannTangent) -> float:
    """
    Euclidean inner product `Re tr(Z1^H Z2)` of two tangent vectors at `W`.
    """
    return np.real(np.vdot(tangent1.Z, tangent2.Z))
