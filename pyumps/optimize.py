"""
First-order optimization algorithms (gradient descent, nonlinear conjugate gradient, LBFGS)
on Riemannian manifolds, formulated in terms of callback functions.

The state `x` and tangent vectors are opaque to the algorithms; they are only accessed
via the user-supplied functions `retract`, `transport`, `inner`, `scale`, `add`
and `precondition`. The defaults implement the Euclidean case for numpy arrays.

Reference:
    P.-A. Absil, R. Mahony, R. Sepulchre
    Optimization algorithms on matrix manifolds
    Princeton University Press (2008)
"""

import logging
import warnings
from collections import deque
import numpy as np

__all__ = ['WolfeLineSearch', 'OptimizationAlgorithm', 'GradientDescent',
           'HagerZhang', 'FletcherReeves', 'PolakRibiere', 'HestenesStiefel', 'DaiYuan',
           'ConjugateGradient', 'LBFGS', 'optimize', 'identity_finalize']


logger = logging.getLogger(__name__)


def _euclidean_retract(x, d, alpha):
    return x + alpha * d, d

def _euclidean_transport(v, x, d, alpha, x_new):
    return v

def _euclidean_inner(x, v, w):
    return np.real(np.vdot(v, w))

def _euclidean_scale(v, alpha):
    return alpha * v

def _euclidean_add(v, w, alpha):
    return v + alpha * w

def _identity_precondition(x, g):
    return g


def identity_finalize(x, f, g, numiter: int):
    """
    Default per-iteration hook, which returns the current iterate unchanged.
    """
    return x, f, g


class _Manifold:
    """
    Collection of the callback functions describing the manifold structure.
    """
    def __init__(self, retract, transport, inner, scale, add, precondition, finalize, isometrictransport):
        self.retract = retract
        self.transport = transport
        self.inner = inner
        self.scale = scale
        self.add = add
        self.precondition = precondition
        self.finalize = finalize
        self.isometrictransport = isometrictransport


class _LinePoint:
    """
    Evaluation point of a line search.
    """
    def __init__(self, alpha, x, f, g, xi, dphi):
        self.alpha = alpha
        self.x = x
        self.f = f
        self.g = g
        self.xi = xi
        self.dphi = dphi


class WolfeLineSearch:
    """
    Line search for a step size satisfying the (weak) Wolfe conditions

        phi(alpha) <= phi(0) + c1 alpha phi'(0)    and    phi'(alpha) >= c2 phi'(0),

    or alternatively the approximate Wolfe conditions

        phi(alpha) <= phi(0) + epsilon |phi(0)|    and    c2 phi'(0) <= phi'(alpha) <= (2 c1 - 1) phi'(0),

    which remain reliable close to a minimum where function values
    cannot be resolved to machine precision.

    The search expands the step size until the minimum is bracketed,
    and then shrinks the bracket by secant steps on the derivative
    (with bisection as safeguard).

    Reference:
        W. W. Hager, H. Zhang
        A new conjugate gradient method with guaranteed descent and an efficient line search
        SIAM J. Optim. 16, 170 (2005)
    """

    def __init__(self, c1: float = 0.1, c2: float = 0.9, epsilon: float = 1e-6, maxiter: int = 50, expansion: float = 4.):
        if not 0 < c1 < 0.5:
            raise ValueError(f'c1 = {c1} invalid; must satisfy 0 < c1 < 1/2.')
        if not c1 < c2 < 1:
            raise ValueError(f'c2 = {c2} invalid; must satisfy c1 < c2 < 1.')
        if maxiter < 1:
            raise ValueError(f'maxiter = {maxiter} invalid; must be positive.')
        if expansion <= 1:
            raise ValueError(f'expansion = {expansion} invalid; must be larger than 1.')
        self.c1 = c1
        self.c2 = c2
        self.epsilon = epsilon
        self.maxiter = maxiter
        self.expansion = expansion

    def _accept(self, p: _LinePoint, f0, dphi0) -> bool:
        wolfe = (p.f <= f0 + self.c1 * p.alpha * dphi0) and (p.dphi >= self.c2 * dphi0)
        approx_wolfe = ((p.f <= f0 + self.epsilon * abs(f0)) and
                        (self.c2 * dphi0 <= p.dphi <= (2*self.c1 - 1) * dphi0))
        return wolfe or approx_wolfe

    def __call__(self, fg, x0, eta, fg0, alpha: float, retract, inner, verbosity: int = 0):
        """
        Search along the direction `eta` starting from `x0`.

        Args:
            fg: function returning the objective value and gradient at a point
            x0: starting point
            eta: search direction (must be a descent direction)
            fg0: tuple of objective value and gradient at `x0`
            alpha: initial trial step size
            retract: retraction function
            inner: inner product of tangent vectors
            verbosity: log the individual evaluations if at least 3

        Returns:
            tuple: tuple containing
              - x: accepted point
              - f: objective value at `x`
              - g: gradient at `x`
              - xi: search direction transported to `x`
              - alpha: accepted step size (0 if the search failed)
              - numfg: number of function evaluations
        """
        f0, g0 = fg0
        dphi0 = inner(x0, g0, eta)
        if not dphi0 < 0:
            raise ValueError(f'line search requires a descent direction, obtained slope {dphi0}.')
        lo = _LinePoint(0., x0, f0, g0, eta, dphi0)
        hi = None
        numfg = 0
        for k in range(self.maxiter):
            x, xi = retract(x0, eta, alpha)
            f, g = fg(x)
            numfg += 1
            p = _LinePoint(alpha, x, f, g, xi, inner(x, g, xi))
            if verbosity >= 3:
                logger.debug('line search step %d: alpha = %.4e, f - f0 = %.4e, dphi = %.4e',
                             k + 1, alpha, f - f0, p.dphi)
            if self._accept(p, f0, dphi0):
                return p.x, p.f, p.g, p.xi, p.alpha, numfg
            # descending points within the tolerance on function values extend the lower end
            if p.dphi >= 0 or p.f > f0 + self.epsilon * abs(f0):
                hi = p
            else:
                lo = p
            # next trial step size
            if hi is None:
                alpha = self.expansion * alpha
                continue
            width = hi.alpha - lo.alpha
            if width <= 4 * np.finfo(float).eps * hi.alpha:
                break
            alpha = 0.5 * (lo.alpha + hi.alpha)
            if hi.dphi != lo.dphi:
                alpha_secant = lo.alpha - lo.dphi * width / (hi.dphi - lo.dphi)
                if lo.alpha + 0.1*width <= alpha_secant <= hi.alpha - 0.1*width:
                    alpha = alpha_secant
        if verbosity >= 3:
            logger.debug('line search terminated without satisfying the Wolfe conditions, using alpha = %.4e', lo.alpha)
        return lo.x, lo.f, lo.g, lo.xi, lo.alpha, numfg


class OptimizationAlgorithm:
    """
    Base class of the first-order optimization algorithms.

    Args:
        maxiter: maximum number of iterations
        gradtol: convergence threshold for the norm of the gradient
        verbosity: 0 silent, 1 warnings only, 2 progress of each iteration,
                   3 additionally the individual line search evaluations
        linesearch: line search, by default `WolfeLineSearch()`
    """

    name = 'optimization'

    def __init__(self, maxiter: int = 1000, gradtol: float = 1e-8, verbosity: int = 1, linesearch=None):
        if maxiter < 0:
            raise ValueError(f'maxiter = {maxiter} invalid; must be non-negative.')
        if gradtol < 0:
            raise ValueError(f'gradtol = {gradtol} invalid; must be non-negative.')
        self.maxiter = maxiter
        self.gradtol = gradtol
        self.verbosity = verbosity
        self.linesearch = linesearch if linesearch is not None else WolfeLineSearch()

    def _init_state(self):
        return {}

    def _reset_state(self, state):
        state.clear()
        state.update(self._init_state())

    def _direction(self, state, x, g, Pg, m: _Manifold):
        raise NotImplementedError

    def _update(self, state, x, x_new, g, g_new, Pg, eta, xi, alpha, m: _Manifold):
        pass

    def _initial_step(self, alpha, dphi_prev, dphi):
        return alpha * dphi_prev / dphi

    def _run(self, fg, x, m: _Manifold):
        f, g = fg(x)
        numfg = 1
        numiter = 0
        normgrad = np.sqrt(m.inner(x, g, g))
        normgradhistory = [normgrad]
        if self.verbosity >= 2:
            logger.info('%s: initializing with f = %.12e, ‖∇f‖ = %.4e', self.name, f, normgrad)
        state = self._init_state()
        alpha = None
        dphi_prev = None
        while normgrad > self.gradtol and numiter < self.maxiter:
            Pg = m.precondition(x, g)
            eta = self._direction(state, x, g, Pg, m)
            dphi = m.inner(x, g, eta)
            if not dphi < 0:
                # fall back to steepest descent
                if self.verbosity >= 3:
                    logger.debug('%s: search direction is not a descent direction, resetting', self.name)
                self._reset_state(state)
                eta = m.scale(Pg, -1)
                dphi = m.inner(x, g, eta)
            if alpha is None:
                alpha = 1 / np.sqrt(m.inner(x, Pg, Pg))
            else:
                alpha = self._initial_step(alpha, dphi_prev, dphi)
            if not (np.isfinite(alpha) and alpha > 0):
                alpha = 1.
            x_new, f_new, g_new, xi, alpha, nfg = self.linesearch(
                fg, x, eta, (f, g), alpha, m.retract, m.inner, self.verbosity)
            numfg += nfg
            if alpha == 0:
                if self.verbosity >= 1:
                    warnings.warn(
                        f'{self.name}: line search could not make progress after {numiter} iterations, '
                        f'‖∇f‖ = {normgrad:.4e}.', RuntimeWarning)
                break
            numiter += 1
            x_new, f_new, g_new = m.finalize(x_new, f_new, g_new, numiter)
            self._update(state, x, x_new, g, g_new, Pg, eta, xi, alpha, m)
            x, f, g = x_new, f_new, g_new
            dphi_prev = dphi
            normgrad = np.sqrt(m.inner(x, g, g))
            normgradhistory.append(normgrad)
            if self.verbosity >= 2:
                logger.info('%s: iter %4d: f = %.12e, ‖∇f‖ = %.4e, α = %.2e, nfg = %d',
                            self.name, numiter, f, normgrad, alpha, nfg)
        if normgrad <= self.gradtol:
            if self.verbosity >= 2:
                logger.info('%s: converged after %d iterations: f = %.12e, ‖∇f‖ = %.4e',
                            self.name, numiter, f, normgrad)
        elif self.verbosity >= 1:
            warnings.warn(
                f'{self.name}: not converged to requested tolerance after {numiter} iterations: '
                f'f = {f:.12e}, ‖∇f‖ = {normgrad:.4e}.', RuntimeWarning)
        return x, f, g, numfg, normgradhistory


class GradientDescent(OptimizationAlgorithm):
    """
    (Preconditioned) steepest descent.
    """

    name = 'GD'

    def _direction(self, state, x, g, Pg, m: _Manifold):
        return m.scale(Pg, -1)


class HagerZhang:
    """
    Hager-Zhang variant of the conjugate gradient update parameter,
    truncated from below to guarantee convergence.
    """

    def __init__(self, eta: float = 0.01, theta: float = 2.):
        self.eta = eta
        self.theta = theta

    def __call__(self, x, g, Pg, g_prev, Pg_prev, d_prev, m: _Manifold):
        y  = m.add(g,  g_prev,  -1)
        Py = m.add(Pg, Pg_prev, -1)
        dy = m.inner(x, d_prev, y)
        if dy == 0:
            return 0.
        beta = (m.inner(x, y, Pg) - self.theta * m.inner(x, y, Py) * m.inner(x, d_prev, g) / dy) / dy
        norm_d = np.sqrt(m.inner(x, d_prev, d_prev))
        norm_g = np.sqrt(m.inner(x, g_prev, g_prev))
        beta_min = -1 / (norm_d * min(self.eta, norm_g))
        return max(beta, beta_min)


class FletcherReeves:
    """
    Fletcher-Reeves conjugate gradient update parameter.
    """
    def __call__(self, x, g, Pg, g_prev, Pg_prev, d_prev, m: _Manifold):
        return m.inner(x, g, Pg) / m.inner(x, g_prev, Pg_prev)


class PolakRibiere:
    """
    Polak-Ribière conjugate gradient update parameter, clipped at zero.
    """
    def __call__(self, x, g, Pg, g_prev, Pg_prev, d_prev, m: _Manifold):
        y = m.add(g, g_prev, -1)
        return max(m.inner(x, y, Pg) / m.inner(x, g_prev, Pg_prev), 0.)


class HestenesStiefel:
    """
    Hestenes-Stiefel conjugate gradient update parameter, clipped at zero.
    """
    def __call__(self, x, g, Pg, g_prev, Pg_prev, d_prev, m: _Manifold):
        y = m.add(g, g_prev, -1)
        dy = m.inner(x, d_prev, y)
        if dy == 0:
            return 0.
        return max(m.inner(x, y, Pg) / dy, 0.)


class DaiYuan:
    """
    Dai-Yuan conjugate gradient update parameter.
    """
    def __call__(self, x, g, Pg, g_prev, Pg_prev, d_prev, m: _Manifold):
        y = m.add(g, g_prev, -1)
        dy = m.inner(x, d_prev, y)
        if dy == 0:
            return 0.
        return m.inner(x, g, Pg) / dy


class ConjugateGradient(OptimizationAlgorithm):
    """
    Nonlinear (preconditioned) conjugate gradient method.

    The new search direction is `-P g + beta xi`, where `xi` is the previous
    search direction transported by the retraction and `beta` is computed
    by `flavor` from the current and the transported previous gradient.

    Args:
        flavor: conjugate gradient update parameter, by default `HagerZhang()`
        restart: (optional) restart with steepest descent after this many iterations
    """

    name = 'CG'

    def __init__(self, flavor=None, restart: int = None, **kwargs):
        super().__init__(**kwargs)
        if restart is not None and restart < 1:
            raise ValueError(f'restart = {restart} invalid; must be positive.')
        self.flavor = flavor if flavor is not None else HagerZhang()
        self.restart = restart

    def _init_state(self):
        return {'g': None, 'Pg': None, 'xi': None, 'numiter': 0}

    def _direction(self, state, x, g, Pg, m: _Manifold):
        if state['xi'] is None or (self.restart is not None and state['numiter'] >= self.restart):
            self._reset_state(state)
            return m.scale(Pg, -1)
        beta = self.flavor(x, g, Pg, state['g'], state['Pg'], state['xi'], m)
        return m.add(m.scale(Pg, -1), state['xi'], beta)

    def _update(self, state, x, x_new, g, g_new, Pg, eta, xi, alpha, m: _Manifold):
        state['g']  = m.transport(g,  x, eta, alpha, x_new)
        state['Pg'] = m.transport(Pg, x, eta, alpha, x_new)
        state['xi'] = xi
        state['numiter'] += 1


class LBFGS(OptimizationAlgorithm):
    """
    Limited-memory Broyden-Fletcher-Goldfarb-Shanno (LBFGS) method.

    Stores the last `m` steps and gradient differences, transported
    to the current point in each iteration, and uses the preconditioner
    (scaled by `<s, y> / <y, P y>`) as initial inverse Hessian approximation.

    Args:
        m: number of stored vector pairs
    """

    name = 'LBFGS'

    def __init__(self, m: int = 8, **kwargs):
        super().__init__(**kwargs)
        if m < 1:
            raise ValueError(f'm = {m} invalid; must be positive.')
        self.m = m

    def _init_state(self):
        return {'pairs': deque(maxlen=self.m)}

    def _initial_step(self, alpha, dphi_prev, dphi):
        return 1.

    def _direction(self, state, x, g, Pg, m: _Manifold):
        pairs = state['pairs']
        if not pairs:
            return m.scale(Pg, -1)
        # two-loop recursion
        q = g
        a = []
        for s, y, rho in reversed(pairs):
            ai = rho * m.inner(x, s, q)
            a.append(ai)
            q = m.add(q, y, -ai)
        s, y, _ = pairs[-1]
        Py = m.precondition(x, y)
        gamma = m.inner(x, s, y) / m.inner(x, y, Py)
        r = m.scale(m.precondition(x, q), gamma)
        for (s, y, rho), ai in zip(pairs, reversed(a)):
            b = rho * m.inner(x, y, r)
            r = m.add(r, s, ai - b)
        return m.scale(r, -1)

    def _update(self, state, x, x_new, g, g_new, Pg, eta, xi, alpha, m: _Manifold):
        pairs = []
        for s, y, rho in state['pairs']:
            s = m.transport(s, x, eta, alpha, x_new)
            y = m.transport(y, x, eta, alpha, x_new)
            if not m.isometrictransport:
                rho = 1 / m.inner(x_new, s, y)
            pairs.append((s, y, rho))
        s = m.scale(xi, alpha)
        y = m.add(g_new, m.transport(g, x, eta, alpha, x_new), -1)
        sy = m.inner(x_new, s, y)
        if sy > 0:
            pairs.append((s, y, 1 / sy))
        state['pairs'] = deque(pairs, maxlen=self.m)


def optimize(fg, x0, alg: OptimizationAlgorithm,
             retract=_euclidean_retract, transport=_euclidean_transport,
             inner=_euclidean_inner, scale=_euclidean_scale, add=_euclidean_add,
             precondition=_identity_precondition, finalize=identity_finalize,
             isometrictransport: bool = False):
    """
    Minimize the function described by `fg` starting from `x0`.

    Args:
        fg: function returning the tuple `(f, g)` of objective value and gradient at `x`
        x0: initial point
        alg: optimization algorithm
        retract: `retract(x, d, alpha)` returns the point reached from `x` along
                 direction `d` with step size `alpha`, and the direction transported to this point
        transport: `transport(v, x, d, alpha, x_new)` transports the tangent vector `v`
                   along the retraction from `x` to `x_new`
        inner: `inner(x, v, w)` real-valued inner product of tangent vectors at `x`
        scale: `scale(v, alpha)` returns `alpha v`
        add: `add(v, w, alpha)` returns `v + alpha w`
        precondition: `precondition(x, g)` preconditioned gradient
        finalize: `finalize(x, f, g, numiter)` called after each iteration,
                  returns (possibly modified) `(x, f, g)`
        isometrictransport: whether `transport` preserves inner products

    Returns:
        tuple: tuple containing
          - x: final point
          - f: objective value at `x`
          - g: gradient at `x`
          - numfg: number of evaluations of `fg`
          - normgradhistory: norm of the gradient at each iteration
    """
    if not isinstance(alg, OptimizationAlgorithm):
        raise TypeError(f'alg must be an OptimizationAlgorithm instance, received {type(alg).__name__}.')
    m = _Manifold(retract, transport, inner, scale, add, precondition, finalize, isometrictransport)
    return alg._run(fg, x0, m)
