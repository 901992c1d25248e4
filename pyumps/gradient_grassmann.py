import logging
from .imps import iMPS
from .hamiltonian import BondHamiltonian
from .environments import BondEnvironments, environments
from . import grassmann_imps
from .optimize import OptimizationAlgorithm, ConjugateGradient, identity_finalize, optimize

__all__ = ['GradientGrassmann', 'find_groundstate', 'DEFAULT_TOL', 'DEFAULT_MAXITER']


logger = logging.getLogger(__name__)

# default convergence threshold for the norm of the gradient
DEFAULT_TOL = 1e-12
# default maximum number of iterations
DEFAULT_MAXITER = 100


class GradientGrassmann:
    """
    Ground state search for uniform MPS by Riemannian optimization of the
    left-orthonormal tensors on a product of Grassmann manifolds.

    Args:
        method: optimization algorithm, either an `OptimizationAlgorithm` instance
                (used as-is, ignoring `tol`, `maxiter` and `verbosity`)
                or an `OptimizationAlgorithm` subclass
        finalize: function `finalize(x, f, g, numiter)` called after each iteration,
                  returning the (possibly modified) `(x, f, g)`
        tol: convergence threshold for the norm of the gradient
        maxiter: maximum number of iterations
        verbosity: 0 silent, 1 warnings only, 2 progress of each iteration, 3 full detail

    Reference:
        M. Hauru, M. Van Damme, J. Haegeman
        Riemannian optimization of isometric tensor networks
        SciPost Phys. 10, 040 (2021)
    """

    def __init__(self, method=ConjugateGradient, finalize=identity_finalize,
                 tol: float = DEFAULT_TOL, maxiter: int = DEFAULT_MAXITER, verbosity: int = 2):
        if isinstance(method, OptimizationAlgorithm):
            self.method = method
        elif isinstance(method, type) and issubclass(method, OptimizationAlgorithm):
            self.method = method(maxiter=maxiter, verbosity=verbosity, gradtol=tol)
        else:
            raise TypeError(
                f'method must be an OptimizationAlgorithm instance or subclass, received {method!r}.')
        if not callable(finalize):
            raise TypeError(f'finalize must be callable, received {finalize!r}.')
        self.finalize = finalize


def find_groundstate(psi: iMPS, ham: BondHamiltonian, alg: GradientGrassmann = None,
                     envs: BondEnvironments = None):
    """
    Approximate the ground state of the bond Hamiltonian `ham`
    within the manifold of uniform MPS of the same bond dimensions as `psi`.

    Args:
        psi: initial state
        ham: bond Hamiltonian
        alg: (optional) optimization settings, by default `GradientGrassmann()`
        envs: (optional) environments of `psi`

    Returns:
        tuple: tuple containing
          - psi: optimized state
          - envs: environments of the optimized state
          - normgrad: norm of the gradient at the optimized state
    """
    if alg is None:
        alg = GradientGrassmann()
    if envs is None:
        envs = environments(psi, ham)
    x, f, _, numfg, normgradhistory = optimize(
        grassmann_imps.fg, (psi, envs), alg.method,
        retract=grassmann_imps.retract,
        transport=grassmann_imps.transport,
        inner=grassmann_imps.inner,
        scale=grassmann_imps.scale,
        add=grassmann_imps.add,
        precondition=grassmann_imps.precondition,
        finalize=alg.finalize,
        isometrictransport=True)
    logger.debug('ground state search: f = %.12e after %d evaluations of the gradient', f, numfg)
    psi, envs = x
    return psi, envs, normgradhistory[-1]
