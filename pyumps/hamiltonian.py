from collections.abc import Sequence
import numpy as np

__all__ = ['BondHamiltonian', 'ising_bond_hamiltonian',
           'heisenberg_xxz_bond_hamiltonian', 'heisenberg_xxz_spin1_bond_hamiltonian',
           'aklt_bond_hamiltonian']


class BondHamiltonian:
    """
    Translation-invariant nearest-neighbor Hamiltonian `H = sum_i h[i]`
    on an infinite chain.

    The bond term `h[i]` acts on the sites `(i, i+1)` and is stored as tensor
    `h[s, t, s', t']` of dimension `d x d x d x d`, with the output physical
    indices first. The terms repeat with period `period`, i.e.,
    `h[i] == h[i % period]`.
    """

    def __init__(self, terms):
        """
        Create a bond Hamiltonian from a single bond term or a list of terms
        (one per bond in the period). A term can be provided either
        as `d x d x d x d` tensor or as `d^2 x d^2` matrix.
        """
        if isinstance(terms, np.ndarray):
            terms = [terms]
        if len(terms) == 0:
            raise ValueError('bond Hamiltonian requires at least one term.')
        self.terms = []
        for h in terms:
            h = np.asarray(h)
            if h.ndim == 2:
                d = int(round(np.sqrt(h.shape[0])))
                assert h.shape == (d**2, d**2), 'bond term matrix must have dimension d^2 x d^2'
                h = h.reshape((d, d, d, d))
            assert h.ndim == 4
            self.terms.append(h)
        d = self.terms[0].shape[0]
        for h in self.terms:
            if h.shape != (d, d, d, d):
                raise ValueError(f'bond term of dimension {h.shape} incompatible with physical dimension {d}.')

    @property
    def period(self) -> int:
        """
        Number of distinct bond terms before the Hamiltonian repeats.
        """
        return len(self.terms)

    @property
    def d(self) -> int:
        """
        Local physical dimension.
        """
        return self.terms[0].shape[0]

    @property
    def dtype(self):
        """
        Data type of the bond terms.
        """
        return np.result_type(*[h.dtype for h in self.terms])

    def __getitem__(self, i: int) -> np.ndarray:
        return self.terms[i % self.period]

    def as_matrix(self, i: int = 0) -> np.ndarray:
        """
        Matrix representation of the bond term `h[i]`.
        """
        d = self.d
        return self[i].reshape((d**2, d**2))

    def check_unit_cell(self, nsites: int):
        """
        Verify that a unit cell of `nsites` sites is compatible with the Hamiltonian.
        """
        if nsites % self.period != 0:
            raise ValueError(
                f'unit cell length {nsites} must be a multiple of the Hamiltonian period {self.period}.')


def _bond_term(pairs: Sequence[tuple], d: int) -> np.ndarray:
    """
    Assemble the bond term `sum_k c_k a_k ⊗ b_k` from a list of
    `(c_k, a_k, b_k)` tuples as `d x d x d x d` tensor.
    """
    h = sum(c * np.kron(a, b) for c, a, b in pairs)
    # row index of Kronecker product is s*d + t
    return h.reshape((d, d, d, d))


def ising_bond_hamiltonian(J: float, h: float, g: float) -> BondHamiltonian:
    """
    Construct the bond term of the Ising Hamiltonian `sum J Z Z + h Z + g X`
    on an infinite chain; the single-site terms are attributed to the left site of each bond.

    Args:
        J:  interaction parameter
        h:  longitudinal-field strength
        g:  transverse-field strength

    Returns:
        BondHamiltonian: Ising Hamiltonian
    """
    # Pauli matrices
    sigma_x = np.array([[0., 1.], [1.,  0.]])
    sigma_z = np.array([[1., 0.], [0., -1.]])
    return BondHamiltonian(_bond_term([
        (J, sigma_z, sigma_z),
        (h, sigma_z, np.identity(2)),
        (g, sigma_x, np.identity(2))], 2))


def heisenberg_xxz_bond_hamiltonian(J: float, D: float, h: float) -> BondHamiltonian:
    """
    Construct the bond term of the XXZ Heisenberg Hamiltonian
    `sum J X X + J Y Y + D Z Z - h Z` (in terms of spin operators)
    on an infinite chain.

    Args:
        J:  J parameter
        D:  Delta parameter
        h:  field strength

    Returns:
        BondHamiltonian: XXZ Heisenberg Hamiltonian
    """
    # spin operators
    Sup = np.array([[0.,  1.], [0.,  0. ]])
    Sdn = np.array([[0.,  0.], [1.,  0. ]])
    Sz  = np.array([[0.5, 0.], [0., -0.5]])
    return BondHamiltonian(_bond_term([
        (0.5*J, Sup, Sdn),
        (0.5*J, Sdn, Sup),
        (D,     Sz,  Sz ),
        (-h,    Sz,  np.identity(2))], 2))


def _spin1_operators():
    sq2 = np.sqrt(2.)
    Sup = np.array([[0.,  sq2, 0.], [0.,  0.,  sq2], [0.,  0.,  0.]])
    Sdn = np.array([[0.,  0.,  0.], [sq2, 0.,  0. ], [0.,  sq2, 0.]])
    Sz  = np.array([[1.,  0.,  0.], [0.,  0.,  0. ], [0.,  0., -1.]])
    return Sup, Sdn, Sz


def heisenberg_xxz_spin1_bond_hamiltonian(J: float, D: float, h: float) -> BondHamiltonian:
    """
    Construct the bond term of the spin-1 XXZ Heisenberg Hamiltonian
    `sum J X X + J Y Y + D Z Z - h Z` on an infinite chain.
    """
    Sup, Sdn, Sz = _spin1_operators()
    return BondHamiltonian(_bond_term([
        (0.5*J, Sup, Sdn),
        (0.5*J, Sdn, Sup),
        (D,     Sz,  Sz ),
        (-h,    Sz,  np.identity(3))], 3))


def aklt_bond_hamiltonian() -> BondHamiltonian:
    """
    Construct the bond term `S.S + 1/3 (S.S)^2` of the spin-1 AKLT Hamiltonian.

    The ground state is an exact matrix product state with bond dimension 2
    and energy -2/3 per bond.

    Reference:
        I. Affleck, T. Kennedy, E. H. Lieb, H. Tasaki
        Rigorous results on valence-bond ground states in antiferromagnets
        Phys. Rev. Lett. 59, 799 (1987)
    """
    Sup, Sdn, Sz = _spin1_operators()
    SS = 0.5*np.kron(Sup, Sdn) + 0.5*np.kron(Sdn, Sup) + np.kron(Sz, Sz)
    return BondHamiltonian(SS + (SS @ SS) / 3)
