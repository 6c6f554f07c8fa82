from __future__ import annotations

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

from typing import TYPE_CHECKING

from flataff.affine_map import IntegerSet
from flataff.symbolic import DimExpr, substitute_dims_and_symbols


if TYPE_CHECKING:
    from collections.abc import Sequence

    from flataff.constraints import FlatAffineConstraints
    from flataff.host import AffineCondition, Value
    from flataff.value_map import AffineValueMap


__doc__ = """
.. currentmodule:: flataff

.. autoclass:: IntegerValueSet
"""


class IntegerValueSet:
    """An :class:`IntegerSet` whose dimensions and symbols are bound to
    :attr:`operands`, dimensions first. The only question it answers is
    whether it contains an integer point.

    .. attribute:: integer_set
    .. attribute:: operands

    .. automethod:: from_condition
    .. automethod:: from_value_map
    .. automethod:: is_empty
    .. automethod:: to_flat_affine_constraints
    """

    def __init__(self, integer_set: IntegerSet,
            operands: Sequence[Value | None]) -> None:
        assert len(operands) == integer_set.num_inputs, \
                "set takes %d operands, %d given" % (
                        integer_set.num_inputs, len(operands))

        self.integer_set = integer_set
        self.operands = tuple(operands)

    @classmethod
    def from_condition(cls, cond: AffineCondition) -> IntegerValueSet:
        return cls(cond.integer_set, cond.operands)

    @classmethod
    def from_value_map(cls, vmap: AffineValueMap) -> IntegerValueSet:
        """The graph of *vmap*: one leading dimension per result, bound to
        the result value (if any), followed by the operands of *vmap*.
        """
        num_results = vmap.num_results
        shifted_dims = {i: DimExpr(num_results + i) for i in range(vmap.num_dims)}

        constraints = [
                DimExpr(r) - substitute_dims_and_symbols(
                    vmap.get_result(r), shifted_dims, {})
                for r in range(num_results)]

        iset = IntegerSet.get(num_results + vmap.num_dims, vmap.num_symbols,
                constraints, [True]*num_results)

        if vmap.results:
            result_values = list(vmap.results)
        else:
            result_values = [None]*num_results

        return cls(iset, result_values + list(vmap.operands))

    @property
    def num_dims(self) -> int:
        return self.integer_set.num_dims

    @property
    def num_symbols(self) -> int:
        return self.integer_set.num_symbols

    def to_flat_affine_constraints(self, options=None) -> FlatAffineConstraints:
        from flataff.constraints import FlatAffineConstraints
        return FlatAffineConstraints.from_integer_value_set(self, options=options)

    def is_empty(self, options=None) -> bool:
        return self.to_flat_affine_constraints(options).is_empty()

# vim: foldmethod=marker
