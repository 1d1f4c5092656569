"""
tnanalysis: continuous functions as tensor networks over digit-encoded coordinates.

This package builds tensor-network representations of elementary functions
and finite-difference operators on arbitrary graphs, and combines them by
sums, pointwise products and operator application with SVD truncation.
"""

from tnanalysis.config import (
    DEFAULT_PARAMS,
    DEFAULT_TRUNCATION,
    FunctionParams,
    TruncationConfig,
)
from tnanalysis.exceptions import ConfigurationError, IndexMismatchError, TNAnalysisError
from tnanalysis.indexmap import AbstractIndexMap, ComplexIndexMap, RealIndexMap
from tnanalysis.indsnetworkmap import (
    IndsNetworkMap,
    complex_continuous_siteinds,
    continuous_siteinds,
    indsnetworkmap_from_siteinds,
)
from tnanalysis.function_network import FunctionNetwork
from tnanalysis.elementary_functions import (
    ELEMENTARY_FUNCTIONS,
    const_itn,
    const_network,
    cos_itn,
    cos_network,
    cosh_itn,
    cosh_network,
    delta_x,
    delta_xyz,
    exp_itn,
    exp_network,
    poly_itn,
    poly_network,
    rand_itn,
    random_network,
    sin_itn,
    sin_network,
    sinh_itn,
    sinh_network,
    tanh_itn,
    tanh_network,
)
from tnanalysis.opsum import OpSum, OpTerm, opsum_to_dense, shift_opsum
from tnanalysis.elementary_operators import (
    derivative_operator,
    function_operator,
    laplacian_operator,
    minus_shift_ttn,
    multiply,
    no_shift_ttn,
    operate,
    plus_shift_ttn,
    stencil,
    ttn_from_opsum,
)

__version__ = "0.1.0"
__all__ = [
    "DEFAULT_PARAMS",
    "DEFAULT_TRUNCATION",
    "FunctionParams",
    "TruncationConfig",
    "ConfigurationError",
    "IndexMismatchError",
    "TNAnalysisError",
    "AbstractIndexMap",
    "ComplexIndexMap",
    "RealIndexMap",
    "IndsNetworkMap",
    "complex_continuous_siteinds",
    "continuous_siteinds",
    "indsnetworkmap_from_siteinds",
    "FunctionNetwork",
    "ELEMENTARY_FUNCTIONS",
    "const_itn",
    "const_network",
    "cos_itn",
    "cos_network",
    "cosh_itn",
    "cosh_network",
    "delta_x",
    "delta_xyz",
    "exp_itn",
    "exp_network",
    "poly_itn",
    "poly_network",
    "rand_itn",
    "random_network",
    "sin_itn",
    "sin_network",
    "sinh_itn",
    "sinh_network",
    "tanh_itn",
    "tanh_network",
    "OpSum",
    "OpTerm",
    "opsum_to_dense",
    "shift_opsum",
    "derivative_operator",
    "function_operator",
    "laplacian_operator",
    "minus_shift_ttn",
    "multiply",
    "no_shift_ttn",
    "operate",
    "plus_shift_ttn",
    "stencil",
    "ttn_from_opsum",
]
