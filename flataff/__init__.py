__copyright__ = "Copyright (C) 2024 Andreas Kloeckner"

__license__ = """
Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in
all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL THE
AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER
LIABILITY, WHETHER IN AN ACTION OF CONTRACT, TORT OR OTHERWISE, ARISING FROM,
OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER DEALINGS IN
THE SOFTWARE.
"""


from flataff.affine_map import (
    AffineMap,
    IntegerSet,
    MutableAffineMap,
    MutableIntegerSet,
)
from flataff.constraints import (
    EmptinessResult,
    FlatAffineConstraints,
    IdKind,
    ProjectionExactness,
)
from flataff.diagnostic import (
    ExpressionNotAffineError,
    ExpressionToAffineConversionError,
    FlatAffError,
    FlatAffWarning,
    InconsistentStateError,
)
from flataff.host import (
    AffineApplyOp,
    AffineBound,
    AffineCondition,
    ForLoop,
    HyperRectangularSet,
    Value,
)
from flataff.options import Options, make_options
from flataff.symbolic import CeilDiv, DimExpr, SymbolExpr, dims, symbols
from flataff.value_map import AffineValueMap
from flataff.value_set import IntegerValueSet
from flataff.version import VERSION


__all__ = [
    "VERSION",
    "AffineApplyOp",
    "AffineBound",
    "AffineCondition",
    "AffineMap",
    "AffineValueMap",
    "CeilDiv",
    "DimExpr",
    "EmptinessResult",
    "ExpressionNotAffineError",
    "ExpressionToAffineConversionError",
    "FlatAffError",
    "FlatAffWarning",
    "FlatAffineConstraints",
    "ForLoop",
    "HyperRectangularSet",
    "IdKind",
    "InconsistentStateError",
    "IntegerSet",
    "IntegerValueSet",
    "MutableAffineMap",
    "MutableIntegerSet",
    "Options",
    "ProjectionExactness",
    "SymbolExpr",
    "Value",
    "dims",
    "make_options",
    "symbols",
]

# vim: foldmethod=marker
