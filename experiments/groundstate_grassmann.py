"""
Ground state search for the transverse-field Ising model by Riemannian
optimization of a uniform MPS, comparing the convergence of
gradient descent, conjugate gradient and LBFGS.

Reference:
    M. Hauru, M. Van Damme, J. Haegeman
    Riemannian optimization of isometric tensor networks
    SciPost Phys. 10, 040 (2021)
"""

import logging
import numpy as np
from scipy import integrate
import matplotlib.pyplot as plt
import pyumps as pu


def exact_ising_energy(g: float):
    """
    Exact ground state energy per site of `-sum Z Z - g sum X`.
    """
    return -integrate.quad(lambda k: np.sqrt(1 + g**2 - 2*g*np.cos(k)), 0, np.pi)[0] / np.pi


def main():

    logging.basicConfig(level=logging.INFO, format='%(message)s')

    # transverse-field strength
    g = 0.8
    ham = pu.ising_bond_hamiltonian(-1., 0., -g)
    e0 = exact_ising_energy(g)
    print('exact energy per site:', e0)

    # virtual bond dimension
    D = 8
    psi_start = pu.iMPS.construct_random(1, 2, D, dtype='real', rng=np.random.default_rng(42))

    for method in [pu.GradientDescent, pu.ConjugateGradient, pu.LBFGS]:
        # record the norm of the gradient in each iteration
        normgrads = []
        def finalize(x, f, grad, numiter):
            normgrads.append(np.sqrt(pu.grassmann_imps.inner(x, grad, grad)))
            return x, f, grad
        alg = pu.GradientGrassmann(method=method, finalize=finalize, tol=1e-10, maxiter=250, verbosity=1)
        psi, envs, normgrad = pu.find_groundstate(psi_start, ham, alg)
        e = pu.expectation_value(psi, ham, envs)[0].real
        print('{}: energy per site {:.14f}, error {:g}, final gradient norm {:g}'.format(
            method.__name__, e, e - e0, normgrad))
        plt.semilogy(np.arange(len(normgrads)) + 1, normgrads, label=method.__name__)

    plt.xlabel('iteration')
    plt.ylabel('$\\Vert \\nabla f \\Vert$')
    plt.legend()
    plt.title('Grassmann gradient optimization for the Ising model (g={:g}, D={})'.format(g, D))
    plt.savefig('groundstate_grassmann.pdf')
    plt.show()


if __name__ == '__main__':
    main()
