import unittest
import numpy as np
import pyumps as pu


class TestOperation(unittest.TestCase):

    def test_contraction_steps(self):

        rng = np.random.default_rng()

        # physical and virtual bond dimensions
        d = 3
        D0, D1 = 4, 5

        A = pu.crandn((d, D0, D1), rng)
        B = pu.crandn((d, D0, D1), rng)
        L = pu.crandn((D0, D0), rng)
        R = pu.crandn((D1, D1), rng)

        # reference values
        Lref = np.einsum(A, (0, 1, 2), L, (1, 3), B.conj(), (0, 3, 4), (2, 4))
        Rref = np.einsum(A, (0, 1, 2), R, (2, 3), B.conj(), (0, 4, 3), (1, 4))

        self.assertTrue(np.allclose(pu.contraction_step_left(A, B, L), Lref, rtol=1e-13),
                        msg='contraction step from left to right must match reference')
        self.assertTrue(np.allclose(pu.contraction_step_right(A, B, R), Rref, rtol=1e-13),
                        msg='contraction step from right to left must match reference')


    def test_bond_energy(self):

        rng = np.random.default_rng()

        d = 2
        A0 = pu.crandn((d, 3, 4), rng)
        A1 = pu.crandn((d, 4, 5), rng)
        h = pu.crandn((d**2, d**2), rng)
        # positive definite
        h = h @ h.conj().T + np.identity(d**2)

        theta = pu.merge_mps_tensor_pair(A0, A1)
        self.assertEqual(theta.shape, (d, d, 3, 5))

        # reference two-site tensor as (d^2) x (D0 D2) matrix
        theta_ref = np.einsum(A0, (0, 2, 3), A1, (1, 3, 4), (0, 1, 2, 4)).reshape((d**2, 15))
        self.assertTrue(np.allclose(theta.reshape((d**2, 15)), theta_ref, rtol=1e-13))

        e = pu.bond_energy(A0, A1, h.reshape((d, d, d, d)))
        e_ref = np.trace(theta_ref.conj().T @ h @ theta_ref)
        self.assertAlmostEqual(abs(e - e_ref) / abs(e_ref), 0., delta=1e-13,
                               msg='bond energy must match reference value')

        # Hermitian operator has real expectation value
        self.assertAlmostEqual(abs(e.imag) / abs(e), 0., delta=1e-13)


    def test_bond_blocks(self):

        rng = np.random.default_rng()

        d = 3
        A0 = pu.crandn((d, 2, 4), rng)
        A1 = pu.crandn((d, 4, 3), rng)
        h = pu.crandn((d, d, d, d), rng)

        Lref = np.einsum(A0.conj(), (0, 6, 7), A1.conj(), (1, 7, 8),
                         h, (0, 1, 2, 3),
                         A0, (2, 6, 4), A1, (3, 4, 5), (5, 8))
        Rref = np.einsum(A0.conj(), (0, 8, 7), A1.conj(), (1, 7, 6),
                         h, (0, 1, 2, 3),
                         A0, (2, 5, 4), A1, (3, 4, 6), (5, 8))

        self.assertTrue(np.allclose(pu.left_bond_block(A0, A1, h), Lref, rtol=1e-13),
                        msg='left bond block must match reference')
        self.assertTrue(np.allclose(pu.right_bond_block(A0, A1, h), Rref, rtol=1e-13),
                        msg='right bond block must match reference')


    def test_apply_effective_hamiltonian(self):

        rng = np.random.default_rng()

        d = 2
        Dl, Dc, Dr, Dx = 3, 4, 5, 2
        AL = pu.crandn((d, Dx, Dc), rng)
        AR = pu.crandn((d, Dr, Dx), rng)
        A  = pu.crandn((d, Dc, Dr), rng)
        hl = pu.crandn((d**2, d**2), rng)
        hr = pu.crandn((d**2, d**2), rng)
        hl = 0.5 * (hl + hl.conj().T).reshape((d, d, d, d))
        hr = 0.5 * (hr + hr.conj().T).reshape((d, d, d, d))
        LH = pu.crandn((Dc, Dc), rng)
        RH = pu.crandn((Dr, Dr), rng)
        LH = 0.5 * (LH + LH.conj().T)
        RH = 0.5 * (RH + RH.conj().T)

        HA = pu.apply_effective_hamiltonian(AL, AR, hl, hr, LH, RH, A)
        self.assertEqual(HA.shape, A.shape)

        # reference value, term by term
        HA_ref = (np.einsum(AL.conj(), (0, 6, 5), hl, (0, 1, 2, 3), AL, (2, 6, 4), A, (3, 4, 7), (1, 5, 7))
                + np.einsum(hr, (0, 1, 2, 3), A, (2, 4, 5), AR, (3, 5, 6), AR.conj(), (1, 7, 6), (0, 4, 7))
                + np.einsum(LH, (0, 1), A, (2, 0, 3), (2, 1, 3))
                + np.einsum(A, (0, 1, 2), RH, (2, 3), (0, 1, 3)))
        self.assertTrue(np.allclose(HA, HA_ref, rtol=1e-13),
                        msg='effective Hamiltonian must match reference')

        # effective Hamiltonian is Hermitian for Hermitian input
        H = pu.linear_map_matrix(lambda x: pu.apply_effective_hamiltonian(AL, AR, hl, hr, LH, RH, x), A.shape)
        self.assertTrue(np.allclose(H, H.conj().T, rtol=1e-13),
                        msg='effective Hamiltonian must be Hermitian')


if __name__ == '__main__':
    unittest.main()
