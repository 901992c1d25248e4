import numpy as np

__all__ = ['crandn', 'random_isometry']


def crandn(size=None, rng: np.random.Generator=None):
    """
    Draw random samples from the standard complex normal (Gaussian) distribution.
    """
    if rng is None:
        rng = np.random.default_rng()
    # 1/sqrt(2) is a normalization factor
    return (rng.normal(size=size) + 1j*rng.normal(size=size)) / np.sqrt(2)


def random_isometry(shape, dtype='complex', rng: np.random.Generator=None):
    """
    Draw a random MPS site tensor of dimension `[d, Dl, Dr]` which is
    left-isometric, i.e., its reshaped `d*Dl x Dr` matrix has orthonormal columns.
    """
    if rng is None:
        rng = np.random.default_rng()
    d, Dl, Dr = shape
    assert d*Dl >= Dr, 'left-isometric tensor requires d*Dl >= Dr'
    if dtype in (complex, 'complex'):
        a = crandn((d*Dl, Dr), rng)
    elif dtype in (float, 'float', 'real'):
        a = rng.normal(size=(d*Dl, Dr))
    else:
        raise ValueError(f'dtype = {dtype} invalid; must be "complex" or "real".')
    q, _ = np.linalg.qr(a, mode='reduced')
    return q.reshape((d, Dl, Dr))
