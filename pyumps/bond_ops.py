import numpy as np

__all__ = ['qr_positive', 'polar_isometry', 'reginv']


def qr_positive(A):
    """
    Compute the reduced QR decomposition of a matrix `A` such that
    the diagonal entries of `R` are real and non-negative.

    Fixing the phases in this way makes the decomposition unique
    (for full column rank), which is required for the convergence
    of iterative orthonormalization schemes.
    """
    assert A.ndim == 2
    Q, R = np.linalg.qr(A, mode='reduced')
    # phase factors of diagonal entries
    r = np.diag(R).copy()
    phases = np.ones_like(r)
    nz = np.abs(r) > 0
    phases[nz] = r[nz] / np.abs(r[nz])
    # absorb phases: Q -> Q @ diag(phases), R -> diag(phases)^* @ R
    Q = Q * phases
    R = phases.conj()[:, None] * R
    return (Q, R)


def polar_isometry(A):
    """
    Isometric factor of the polar decomposition of `A`, i.e., `U @ Vh` in terms of the
    thin singular value decomposition `A = U @ diag(s) @ Vh`.

    For a tall matrix the result has orthonormal columns (left polar decomposition
    `A = Q P`), for a wide matrix it has orthonormal rows (right polar decomposition
    `A = P Q`). Among all such isometries it is the closest to `A` in Frobenius norm.
    """
    assert A.ndim == 2
    u, _, vh = np.linalg.svd(A, full_matrices=False)
    return u @ vh


def reginv(m, delta=0.0):
    """
    Take the L2 Tikhonov regularized inverse of a matrix `m`.

    The regularization parameter is the larger of `delta` and the square root
    of machine epsilon. The inverse is computed via a singular value decomposition
    `m = U @ diag(s) @ Vh` as `Vh^H @ diag(1 / sqrt(s^2 + delta^2)) @ U^H`,
    such that its spectral norm is bounded by `1 / delta`.

    Args:
        m: square matrix, typically a bond matrix of an MPS
        delta: (optional) regularization parameter

    Returns:
        numpy.ndarray: regularized inverse of `m`
    """
    m = np.asarray(m)
    assert m.ndim == 2
    # floating-point type corresponding to entries of m
    if np.issubdtype(m.dtype, np.inexact):
        eps = np.finfo(m.dtype).eps
    else:
        eps = np.finfo(float).eps
    delta = max(delta, np.sqrt(eps))
    u, s, vh = np.linalg.svd(m)
    sinv = 1 / np.sqrt(s**2 + delta**2)
    return (vh.conj().T * sinv) @ u.conj().T
