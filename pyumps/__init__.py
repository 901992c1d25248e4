"""
PyUMPS
======

Python implementation of uniform (infinite) matrix product states
and their ground state search by Riemannian optimization on Grassmann manifolds.

"""

from .bond_ops           import *
from .util               import *
from .operation          import *
from .krylov             import *
from .imps               import *
from .hamiltonian        import *
from .environments       import *
from .optimize           import *
from .gradient_grassmann import *

# manifold structure, to be accessed via the module name
from . import grassmann
from . import grassmann_imps
