import unittest
import numpy as np
import pyumps as pu


class TestEnvironments(unittest.TestCase):

    def test_aklt_exact(self):

        # exact AKLT ground state with bond dimension 2
        sigma_p = np.array([[0., 1.], [0., 0.]])
        sigma_m = np.array([[0., 0.], [1., 0.]])
        sigma_z = np.array([[1., 0.], [0., -1.]])
        A = np.array([np.sqrt(2/3)*sigma_p, -np.sqrt(1/3)*sigma_z, -np.sqrt(2/3)*sigma_m])

        psi = pu.iMPS.from_tensors([A])
        ham = pu.aklt_bond_hamiltonian()
        envs = pu.environments(psi, ham)

        e = pu.expectation_value(psi, ham, envs)
        self.assertAlmostEqual(abs(e[0] - (-2/3)), 0., delta=1e-13,
                               msg='energy of AKLT state must be -2/3 per bond')

        # gradient must vanish for an exact eigenstate
        x = (psi, envs)
        _, g = pu.grassmann_imps.fg(x)
        self.assertAlmostEqual(np.sqrt(pu.grassmann_imps.inner(x, g, g)), 0., delta=1e-12,
                               msg='gradient must vanish for exact ground state')

        # local spin expectation values
        Sz = np.diag([1., 0., -1.])
        self.assertAlmostEqual(abs(pu.local_expectation_value(psi, Sz)[0]), 0., delta=1e-13)
        self.assertAlmostEqual(abs(pu.local_expectation_value(psi, Sz @ Sz)[0] - 2/3), 0., delta=1e-13)


    def test_fixed_point_equation(self):

        rng = np.random.default_rng()

        d = 2
        D = 5
        psi = pu.iMPS.construct_random(1, d, D, rng=rng)
        ham = pu.ising_bond_hamiltonian(1.0, 0.3, -0.8)
        envs = pu.environments(psi, ham)

        AL = psi.AL[0]
        AR = psi.AR[0]
        e = envs.energies[0]
        self.assertAlmostEqual(abs(e.imag), 0., delta=1e-14, msg='energy must be real')

        # left block must be invariant under adding another bond term
        LH = envs.LH[0]
        LHnext = pu.contraction_step_left(AL, AL, LH) + pu.left_bond_block(AL, AL, ham[0]) - e*np.identity(D)
        self.assertTrue(np.allclose(LHnext, LH, atol=1e-11),
                        msg='left environment block must satisfy fixed-point equation')
        # orthogonal to fixed point
        r = psi.CR[0] @ psi.CR[0].conj().T
        self.assertAlmostEqual(abs(np.sum(LH * r)), 0., delta=1e-12)

        # right block
        RH = envs.RH[0]
        RHnext = pu.contraction_step_right(AR, AR, RH) + pu.right_bond_block(AR, AR, ham[0]) - e*np.identity(D)
        self.assertTrue(np.allclose(RHnext, RH, atol=1e-11),
                        msg='right environment block must satisfy fixed-point equation')
        l = psi.CR[0].T @ psi.CR[0].conj()
        self.assertAlmostEqual(abs(np.sum(RH * l)), 0., delta=1e-12)

        # environment blocks are Hermitian
        self.assertTrue(np.allclose(LH, LH.conj().T, atol=1e-13))
        self.assertTrue(np.allclose(RH, RH.conj().T, atol=1e-13))


    def test_ac_prime(self):

        rng = np.random.default_rng()

        d = 2
        psi = pu.iMPS.construct_random(2, d, [3, 4], rng=rng)
        ham = pu.BondHamiltonian([_random_hermitian_bond_term(d, rng) for _ in range(2)])
        envs = pu.environments(psi, ham)

        e = pu.expectation_value(psi, ham, envs)
        self.assertAlmostEqual(np.linalg.norm(e.imag), 0., delta=1e-13, msg='bond energies must be real')

        for i in range(psi.nsites):
            HAC = pu.ac_prime(psi.AC[i], i, psi, envs)
            self.assertEqual(HAC.shape, psi.AC[i].shape)
            # environment blocks do not contribute, since the energy is subtracted from each term
            self.assertAlmostEqual(abs(np.vdot(psi.AC[i], HAC) - (e[i-1] + e[i])), 0., delta=1e-11,
                                   msg='expectation value of effective Hamiltonian')
            # Hermitian effective Hamiltonian
            H = pu.linear_map_matrix(lambda x: pu.ac_prime(x, i, psi, envs), psi.AC[i].shape)
            self.assertTrue(np.allclose(H, H.conj().T, atol=1e-12),
                            msg='effective Hamiltonian must be Hermitian')


    def test_gradient(self):

        rng = np.random.default_rng()

        d = 2
        psi = pu.iMPS.construct_random(2, d, [3, 4], rng=rng)
        ham = pu.BondHamiltonian([_random_hermitian_bond_term(d, rng) for _ in range(2)])
        envs = pu.environments(psi, ham)
        x = (psi, envs)

        f, g = pu.grassmann_imps.fg(x)
        self.assertIsInstance(f, float)
        self.assertAlmostEqual(f, np.sum(envs.energies).real, delta=1e-14)

        # gradient must be a tangent vector
        for i in range(psi.nsites):
            W = psi.AL[i].reshape((-1, psi.AL[i].shape[2]))
            self.assertAlmostEqual(np.linalg.norm(W.conj().T @ g[i].Z.reshape(W.shape)), 0., delta=1e-13)

        # random tangent direction
        eta = [pu.grassmann.project(pu.crandn(A.shape, rng), A) for A in psi.AL]

        # compare with finite difference approximation
        h = 1e-5
        fp, _ = pu.grassmann_imps.fg(pu.grassmann_imps.retract(x, eta,  h)[0])
        fm, _ = pu.grassmann_imps.fg(pu.grassmann_imps.retract(x, eta, -h)[0])
        dphi_num = (fp - fm) / (2*h)
        dphi = pu.grassmann_imps.inner(x, g, eta)
        self.assertAlmostEqual(dphi, dphi_num, delta=1e-7*max(1., abs(dphi)),
                               msg='gradient must match finite difference approximation')


    def test_recalculate(self):

        rng = np.random.default_rng()

        d = 3
        ham = pu.heisenberg_xxz_spin1_bond_hamiltonian(1.0, 0.7, 0.1)
        psi0 = pu.iMPS.construct_random(1, d, 4, rng=rng)
        psi1 = pu.iMPS.construct_random(1, d, 4, rng=rng)

        envs0 = pu.environments(psi0, ham)
        envs1 = envs0.recalculate(psi1)
        self.assertIs(envs1.psi, psi1)
        self.assertIs(envs1.ham, ham)

        envs1_ref = pu.environments(psi1, ham)
        self.assertTrue(np.allclose(envs1.energies, envs1_ref.energies, atol=1e-14))
        self.assertTrue(np.allclose(envs1.LH[0], envs1_ref.LH[0], atol=1e-10))
        self.assertTrue(np.allclose(envs1.RH[0], envs1_ref.RH[0], atol=1e-10))

        # cached energies are reused only for the matching state
        e = pu.expectation_value(psi1, ham, envs1)
        self.assertTrue(np.array_equal(e, envs1.energies))
        self.assertIsNot(e, envs1.energies)
        e = pu.expectation_value(psi0, ham, envs1)
        self.assertTrue(np.allclose(e, envs0.energies, atol=1e-14))


def _random_hermitian_bond_term(d, rng):
    h = pu.crandn((d**2, d**2), rng)
    return 0.5 * (h + h.conj().T)


if __name__ == '__main__':
    unittest.main()
