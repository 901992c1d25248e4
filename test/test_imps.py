import unittest
import numpy as np
import pyumps as pu


class TestiMPS(unittest.TestCase):

    def test_left_orthonormalize_uniform(self):

        rng = np.random.default_rng()

        d = 3
        for D in [[7], [5, 6]]:
            nsites = len(D)
            A = [pu.crandn((d, D[i], D[(i + 1) % nsites]), rng) for i in range(nsites)]

            # perform left-orthonormalization
            AL, Lmats, nrms = pu.left_orthonormalize_uniform(A)

            for i in range(nsites):
                L0 = Lmats[i]
                L1 = Lmats[(i + 1) % nsites]
                err_repr = np.linalg.norm(np.tensordot(L0, A[i], axes=(1, 1)).transpose((1, 0, 2)) - nrms[i] * np.tensordot(AL[i], L1, axes=1))
                self.assertAlmostEqual(err_repr, 0., delta=1e-10*nrms[i], msg='AL must be equal to L A L^{-1} / nrm')

                # check left-orthonormalization
                AA = np.einsum(AL[i], (0, 1, 2), AL[i].conj(), (0, 1, 3), (2, 3))
                self.assertAlmostEqual(np.linalg.norm(AA - np.identity(len(AA))), 0., delta=1e-12, msg='left-orthonormalization')


    def test_left_orthonormalize_uniform_warning(self):

        rng = np.random.default_rng()

        A = [pu.crandn((2, 6, 6), rng)]
        with self.assertWarns(RuntimeWarning):
            pu.left_orthonormalize_uniform(A, tol=0., maxiter=2)


    def test_mixed_canonical_form(self):

        rng = np.random.default_rng()

        d = 2
        for dtype in ['complex', 'real']:
            for D in [[5], [3, 4, 2]]:
                nsites = len(D)
                psi = pu.iMPS.construct_random(nsites, d, D, dtype=dtype, rng=rng)

                self.assertEqual(psi.nsites, nsites)
                self.assertEqual(psi.bond_dims, D)
                self.assertEqual(psi.d, d)
                if dtype == 'real':
                    for i in range(nsites):
                        self.assertFalse(np.iscomplexobj(psi.AR[i]))
                        self.assertFalse(np.iscomplexobj(psi.CR[i]))

                for i in range(nsites):
                    # left-orthonormalization
                    AA = np.einsum(psi.AL[i], (0, 1, 2), psi.AL[i].conj(), (0, 1, 3), (2, 3))
                    self.assertAlmostEqual(np.linalg.norm(AA - np.identity(len(AA))), 0., delta=1e-13,
                                           msg='AL tensors must be left-orthonormalized')
                    # right-orthonormalization
                    AA = np.einsum(psi.AR[i], (0, 1, 2), psi.AR[i].conj(), (0, 3, 2), (1, 3))
                    self.assertAlmostEqual(np.linalg.norm(AA - np.identity(len(AA))), 0., delta=1e-12,
                                           msg='AR tensors must be right-orthonormalized')
                    # gauge relations
                    self.assertTrue(np.allclose(np.tensordot(psi.AL[i], psi.CR[i], 1), psi.AC[i], rtol=1e-14),
                                    msg='AC must be equal to AL CR')
                    self.assertAlmostEqual(np.linalg.norm(np.tensordot(psi.CR[i-1], psi.AR[i], axes=(1, 1)).transpose((1, 0, 2)) - psi.AC[i]), 0.,
                                           delta=1e-10, msg='AC must be equal to CR AR')
                    # normalization
                    self.assertAlmostEqual(np.linalg.norm(psi.CR[i]), 1., delta=1e-13,
                                           msg='bond matrices must be normalized')
                    self.assertAlmostEqual(np.linalg.norm(psi.AC[i]), 1., delta=1e-13,
                                           msg='center tensors must be normalized')


    def test_from_left_isometries_no_copy(self):

        rng = np.random.default_rng()

        AL = [pu.random_isometry((3, 4, 4), rng=rng), pu.random_isometry((3, 4, 4), rng=rng)]
        psi = pu.iMPS.from_left_isometries(AL)
        for i in range(2):
            self.assertIs(psi.AL[i], AL[i])


    def test_from_tensors(self):

        rng = np.random.default_rng()

        d = 3
        D = 4
        A = pu.crandn((d, D, D), rng)

        psi = pu.iMPS.from_tensors([A])

        # AL must represent the same state: AL = L A L^{-1} / nrm
        _, Lmats, nrms = pu.left_orthonormalize_uniform([A])
        err = np.linalg.norm(np.tensordot(Lmats[0], A, axes=(1, 1)).transpose((1, 0, 2)) - nrms[0] * np.tensordot(psi.AL[0], Lmats[0], axes=1))
        self.assertAlmostEqual(err, 0., delta=1e-10*nrms[0])

        # transfer matrix of AL has spectral radius 1 with fixed point CR CR^H
        r = psi.CR[0] @ psi.CR[0].conj().T
        self.assertTrue(np.allclose(pu.contraction_step_right(psi.AL[0], psi.AL[0], r), r, atol=1e-12),
                        msg='CR CR^H must be the right fixed point of the transfer matrix')


    def test_construct_random_invalid(self):

        with self.assertRaises(ValueError):
            pu.iMPS.construct_random(2, 2, [3, 3, 3])
        with self.assertRaises(ValueError):
            pu.iMPS.construct_random(1, 2, 3, dtype='half')


if __name__ == '__main__':
    unittest.main()
