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

from flataff.affine_map import AffineMap, IntegerSet
from flataff.tools import is_integer


if TYPE_CHECKING:
    from collections.abc import Sequence


__doc__ = """
.. currentmodule:: flataff

Minimal stand-ins for the host intermediate representation that supplies
identifier values and loop metadata to the analysis.

.. autoclass:: Value
.. autoclass:: AffineApplyOp
.. autoclass:: AffineBound
.. autoclass:: ForLoop
.. autoclass:: AffineCondition
.. autoclass:: HyperRectangularSet
"""


class Value:
    """An opaque handle for a value of the host program, such as a loop
    induction variable or a function argument. Values are compared by
    identity only.

    .. attribute:: name

        For debugging output only.

    .. attribute:: is_valid_symbol

        *True* if the value is invariant throughout the analyzed region
        (e.g. a function argument). Such values become symbols when they
        are added to a constraint system.

    .. attribute:: constant_value

        An :class:`int` if the value is known to be a compile-time
        constant, else *None*.

    .. attribute:: defining_op

        The :class:`AffineApplyOp` producing this value, or *None*.

    .. attribute:: result_index
    """

    def __init__(self, name=None, is_valid_symbol=False, constant_value=None):
        if constant_value is not None:
            if not is_integer(constant_value):
                raise TypeError("constant_value must be an integer")
            constant_value = int(constant_value)
            is_valid_symbol = True

        self.name = name
        self.is_valid_symbol = is_valid_symbol
        self.constant_value = constant_value
        self.defining_op = None
        self.result_index = None

    def __repr__(self):
        if self.name is not None:
            return "Value(%s)" % self.name
        return "Value@%x" % id(self)


class AffineApplyOp:
    """The application of an :class:`~flataff.AffineMap` to operand
    :class:`Value`\\ s, producing one result :class:`Value` per map result.
    """

    def __init__(self, map: AffineMap, operands: Sequence[Value],
            result_names: Sequence[str] | None = None) -> None:
        if len(operands) != map.num_inputs:
            raise ValueError("map takes %d operands, %d given"
                    % (map.num_inputs, len(operands)))

        if result_names is None:
            result_names = [None] * map.num_results

        self.map = map
        self.operands = tuple(operands)

        is_symbolic = all(op.is_valid_symbol for op in operands)
        results = []
        for i, name in enumerate(result_names):
            result = Value(name, is_valid_symbol=is_symbolic)
            result.defining_op = self
            result.result_index = i
            results.append(result)

        self.results = tuple(results)

    def __repr__(self):
        return "AffineApplyOp(%s, %r)" % (self.map, list(self.operands))


class AffineBound:
    """A loop bound given as :attr:`map` applied to :attr:`operands`. For a
    lower bound, the bound is the maximum of the map's results, for an
    upper bound the minimum.
    """

    def __init__(self, map: AffineMap, operands: Sequence[Value] = ()) -> None:
        if len(operands) != map.num_inputs:
            raise ValueError("bound map takes %d operands, %d given"
                    % (map.num_inputs, len(operands)))

        self.map = map
        self.operands = tuple(operands)

    def get_constant_value(self) -> int | None:
        if self.map.num_inputs or self.map.num_results != 1:
            return None

        result, = self.map.results
        if is_integer(result):
            return int(result)
        return None


def _as_bound(bound):
    if is_integer(bound):
        return AffineBound(AffineMap.get_constant(int(bound)))
    return bound


class ForLoop:
    """A loop ``for iv in range(lower_bound, upper_bound, step)``. The
    upper bound is exclusive.

    .. attribute:: induction_variable

        A :class:`Value`.

    .. attribute:: lower_bound
    .. attribute:: upper_bound

        :class:`AffineBound` instances. Integers passed to the constructor
        are wrapped into constant bounds.
    """

    def __init__(self, lower_bound, upper_bound, step=1,
            induction_variable=None, name=None):
        if induction_variable is None:
            induction_variable = Value(name)

        self.induction_variable = induction_variable
        self.lower_bound = _as_bound(lower_bound)
        self.upper_bound = _as_bound(upper_bound)
        self.step = step

    def has_constant_lower_bound(self):
        return self.lower_bound.get_constant_value() is not None

    def has_constant_upper_bound(self):
        return self.upper_bound.get_constant_value() is not None

    def get_constant_lower_bound(self):
        result = self.lower_bound.get_constant_value()
        assert result is not None
        return result

    def get_constant_upper_bound(self):
        result = self.upper_bound.get_constant_value()
        assert result is not None
        return result


class AffineCondition:
    """An :class:`~flataff.IntegerSet` applied to operand :class:`Value`\\ s,
    as found in a conditional of the host program.
    """

    def __init__(self, integer_set: IntegerSet, operands: Sequence[Value]) -> None:
        if len(operands) != integer_set.num_inputs:
            raise ValueError("set takes %d operands, %d given"
                    % (integer_set.num_inputs, len(operands)))

        self.integer_set = integer_set
        self.operands = tuple(operands)


class HyperRectangularSet:
    """A box ``lower_bounds[i] <= x_i <= upper_bounds[i]`` (both bounds
    inclusive), optionally binding each dimension to a :class:`Value`.
    """

    def __init__(self, lower_bounds, upper_bounds, values=None):
        if len(lower_bounds) != len(upper_bounds):
            raise ValueError("lower_bounds and upper_bounds differ in length")
        if values is not None and len(values) != len(lower_bounds):
            raise ValueError("values and bounds differ in length")

        self.lower_bounds = tuple(int(lb) for lb in lower_bounds)
        self.upper_bounds = tuple(int(ub) for ub in upper_bounds)
        self.values = None if values is None else tuple(values)

    @property
    def num_dims(self):
        return len(self.lower_bounds)

# vim: foldmethod=marker
