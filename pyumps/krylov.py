import numpy as np
from scipy.sparse.linalg import LinearOperator, eigs, gmres
import warnings

__all__ = ['DENSE_DIM_MAX', 'linear_map_matrix', 'dominant_eigenpair', 'solve_linear_map']


# maximum vector space dimension for which linear maps are handled as dense matrices
DENSE_DIM_MAX = 256


def linear_map_matrix(func, shape, dtype=complex):
    """
    Construct the dense matrix representation of the linear map `func`
    acting on arrays of dimension `shape`.
    """
    n = int(np.prod(shape))
    M = np.zeros((n, n), dtype=dtype)
    for j in range(n):
        e = np.zeros(n, dtype=dtype)
        e[j] = 1
        M[:, j] = func(e.reshape(shape)).reshape(-1)
    return M


def dominant_eigenpair(func, shape, dtype=complex, v0=None, tol: float = 0):
    """
    Compute the eigenvalue of largest magnitude and the corresponding eigenvector
    of the "matrix free" linear map `func` acting on arrays of dimension `shape`.

    Args:
        func:   "matrix free" linear map
        shape:  dimension of the arrays `func` acts on
        dtype:  data type of the linear map
        v0:     (optional) starting vector for the Arnoldi iteration
        tol:    relative accuracy of the Arnoldi iteration (0 means machine precision)

    Returns:
        tuple: tuple containing
          - w: dominant eigenvalue
          - v: corresponding eigenvector, reshaped to `shape`
    """
    n = int(np.prod(shape))
    if n <= DENSE_DIM_MAX:
        M = linear_map_matrix(func, shape, dtype)
        w, v = np.linalg.eig(M)
        i = np.argmax(abs(w))
        return w[i], v[:, i].reshape(shape)
    op = LinearOperator((n, n), matvec=lambda x: func(x.reshape(shape)).reshape(-1), dtype=dtype)
    if v0 is not None:
        v0 = np.asarray(v0, dtype=dtype).reshape(-1)
    w, v = eigs(op, k=1, which='LM', v0=v0, tol=tol)
    return w[0], v[:, 0].reshape(shape)


def solve_linear_map(func, rhs, x0=None, tol: float = 1e-12, maxiter: int = None):
    """
    Solve the linear equation `func(x) == rhs` for `x`, with `func`
    a "matrix free" linear map acting on arrays of the same dimension as `rhs`.

    Small problems are solved directly, larger ones by the GMRES method.
    """
    rhs = np.asarray(rhs)
    shape = rhs.shape
    n = rhs.size
    if n <= DENSE_DIM_MAX:
        M = linear_map_matrix(func, shape, rhs.dtype)
        return np.linalg.solve(M, rhs.reshape(-1)).reshape(shape)
    op = LinearOperator((n, n), matvec=lambda x: func(x.reshape(shape)).reshape(-1), dtype=rhs.dtype)
    if x0 is not None:
        x0 = np.asarray(x0, dtype=rhs.dtype).reshape(-1)
    x, info = gmres(op, rhs.reshape(-1), x0=x0, rtol=tol, atol=0., maxiter=maxiter)
    if info != 0:
        warnings.warn(
            'GMRES did not converge to tolerance {} (info = {}).'.format(tol, info),
            RuntimeWarning)
    return x.reshape(shape)
