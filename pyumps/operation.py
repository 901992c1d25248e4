import numpy as np

__all__ = ['contraction_step_left', 'contraction_step_right', 'merge_mps_tensor_pair',
           'apply_bond_operator', 'left_bond_block', 'right_bond_block', 'bond_energy',
           'apply_effective_hamiltonian']


def contraction_step_right(A: np.ndarray, B: np.ndarray, R: np.ndarray):
    r"""
    Contraction step from right to left, for example to apply the
    transfer matrix of a uniform MPS to a right environment.

    To-be contracted tensor network::

       ╭───────╮       ╭─────────╮
       │       │       │         │
     ──1   B*  2──   ──1         │
       │       │       │         │
       ╰───0───╯       │         │
           │           │         │
                       │    R    │
           │           │         │
       ╭───0───╮       │         │
       │       │       │         │
     ──1   A   2──   ──0         │
       │       │       │         │
       ╰───────╯       ╰─────────╯
    """
    assert A.ndim == 3
    assert B.ndim == 3
    assert R.ndim == 2
    # multiply with A tensor
    T = np.tensordot(A, R, 1)
    # multiply with conjugated B tensor
    Rnext = np.tensordot(T, B.conj(), axes=((0, 2), (0, 2)))
    return Rnext


def contraction_step_left(A: np.ndarray, B: np.ndarray, L: np.ndarray):
    r"""
    Contraction step from left to right, for example to apply the
    transfer matrix of a uniform MPS to a left environment.

    To-be contracted tensor network::

     ╭─────────╮       ╭───────╮
     │         │       │       │
     │         1──   ──1   B*  2──
     │         │       │       │
     │         │       ╰───0───╯
     │         │           │
     │    L    │
     │         │           │
     │         │       ╭───0───╮
     │         │       │       │
     │         0──   ──1   A   2──
     │         │       │       │
     ╰─────────╯       ╰───────╯
    """
    assert A.ndim == 3
    assert B.ndim == 3
    assert L.ndim == 2
    # multiply with conjugated B tensor
    T = np.tensordot(L, B.conj(), axes=(1, 1))
    # multiply with A tensor
    Lnext = np.tensordot(A, T, axes=((0, 1), (1, 0)))
    return Lnext


def merge_mps_tensor_pair(A0: np.ndarray, A1: np.ndarray) -> np.ndarray:
    """
    Merge two neighboring MPS tensors into a two-site tensor
    of dimension `d0 x d1 x D0 x D2`, keeping the physical dimensions separate.
    """
    return np.einsum(A0, (0, 2, 3), A1, (1, 3, 4), (0, 1, 2, 4), optimize=True)


def apply_bond_operator(h: np.ndarray, theta: np.ndarray) -> np.ndarray:
    """
    Apply a two-site operator `h` of dimension `d x d x d x d`
    (output physical dimensions first) to a two-site tensor `theta`.
    """
    assert h.ndim == 4
    assert theta.ndim == 4
    return np.tensordot(h, theta, axes=((2, 3), (0, 1)))


def left_bond_block(A0: np.ndarray, A1: np.ndarray, h: np.ndarray):
    r"""
    Contract a two-site operator sandwiched between two left-orthonormal
    MPS tensors, leaving the right virtual bonds open.

    To-be contracted tensor network (the indices at the open legs
    show the ordering for the output tensor)::

      ╭──────╮     ╭──────╮
     ╭┤  A0* ├─────┤  A1* ├── 1
     │╰──┬───╯     ╰──┬───╯
     │ ╭─┴────────────┴─╮
     │ │        h       │
     │ ╰─┬────────────┬─╯
     │╭──┴───╮     ╭──┴───╮
     ╰┤  A0  ├─────┤  A1  ├── 0
      ╰──────╯     ╰──────╯
    """
    theta = merge_mps_tensor_pair(A0, A1)
    htheta = apply_bond_operator(h, theta)
    return np.tensordot(htheta, theta.conj(), axes=((0, 1, 2), (0, 1, 2)))


def right_bond_block(A0: np.ndarray, A1: np.ndarray, h: np.ndarray):
    r"""
    Contract a two-site operator sandwiched between two right-orthonormal
    MPS tensors, leaving the left virtual bonds open.

    To-be contracted tensor network (the indices at the open legs
    show the ordering for the output tensor)::

          ╭──────╮     ╭──────╮
     1 ───┤  A0* ├─────┤  A1* ├╮
          ╰──┬───╯     ╰──┬───╯│
           ╭─┴────────────┴─╮  │
           │        h       │  │
           ╰─┬────────────┬─╯  │
          ╭──┴───╮     ╭──┴───╮│
     0 ───┤  A0  ├─────┤  A1  ├╯
          ╰──────╯     ╰──────╯
    """
    theta = merge_mps_tensor_pair(A0, A1)
    htheta = apply_bond_operator(h, theta)
    return np.tensordot(htheta, theta.conj(), axes=((0, 1, 3), (0, 1, 3)))


def bond_energy(AC: np.ndarray, AR: np.ndarray, h: np.ndarray):
    """
    Compute the expectation value of a two-site operator `h`
    with respect to the two-site mixed canonical tensor `AC AR`.
    """
    theta = merge_mps_tensor_pair(AC, AR)
    htheta = apply_bond_operator(h, theta)
    return np.vdot(theta, htheta)


def apply_effective_hamiltonian(AL: np.ndarray, AR: np.ndarray, hl: np.ndarray, hr: np.ndarray,
                                LH: np.ndarray, RH: np.ndarray, A: np.ndarray):
    """
    Apply the effective single-site Hamiltonian of a nearest-neighbor
    bond Hamiltonian to the center site tensor `A`.

    The result is the sum of four contributions:
      - the bond term `hl` acting on `AL A`, contracted with `AL^*` (left neighbor)
      - the bond term `hr` acting on `A AR`, contracted with `AR^*` (right neighbor)
      - the left environment block `LH` (ket index first) applied to the left virtual bond
      - the right environment block `RH` (ket index first) applied to the right virtual bond

    The output tensor has the same dimension `d x Dl x Dr` as `A`.
    """
    assert A.ndim == 3
    assert LH.ndim == 2
    assert RH.ndim == 2
    # bond term to the left
    htheta = apply_bond_operator(hl, merge_mps_tensor_pair(AL, A))
    T = np.tensordot(AL.conj(), htheta, axes=((0, 1), (0, 2)))
    # interchange levels 0 <-> 1 in T
    Anew = T.transpose((1, 0, 2))
    # bond term to the right
    htheta = apply_bond_operator(hr, merge_mps_tensor_pair(A, AR))
    Anew = Anew + np.tensordot(htheta, AR.conj(), axes=((1, 3), (0, 2)))
    # left environment block
    Anew = Anew + np.tensordot(A, LH, axes=(1, 0)).transpose((0, 2, 1))
    # right environment block
    Anew = Anew + np.tensordot(A, RH, 1)
    return Anew
