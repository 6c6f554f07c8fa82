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

import logging
from typing import TYPE_CHECKING

from flataff.affine_map import AffineMap, MutableAffineMap
from flataff.diagnostic import ExpressionNotAffineError
from flataff.host import AffineApplyOp
from flataff.symbolic import (
    DimExpr,
    SymbolExpr,
    flatten_affine_exprs,
    get_dim_and_symbol_positions,
    substitute_dims_and_symbols,
)


if TYPE_CHECKING:
    from collections.abc import Sequence

    from pymbolic.typing import Expression

    from flataff.host import AffineBound, Value


logger = logging.getLogger(__name__)


__doc__ = """
.. currentmodule:: flataff

.. autoclass:: AffineValueMap
"""


def _index_by_identity(values, value):
    for i, v in enumerate(values):
        if v is value:
            return i
    return None


class AffineValueMap:
    """A :class:`MutableAffineMap` together with the :class:`~flataff.Value`
    bound to each of its dimensions and symbols (:attr:`operands`, dims
    first) and to each of its results (:attr:`results`).

    .. attribute:: map

        A :class:`MutableAffineMap`.

    .. attribute:: operands
    .. attribute:: results

    .. automethod:: from_apply_op
    .. automethod:: from_bound
    .. automethod:: reset
    .. automethod:: forward_substitute
    .. automethod:: is_multiple_of
    .. automethod:: is_function_of
    .. automethod:: is_constant
    .. automethod:: get_constant_result
    .. automethod:: is_identity
    .. automethod:: get_affine_map
    """

    def __init__(self,
            map: AffineMap | None = None,
            operands: Sequence[Value] = (),
            results: Sequence[Value] = ()) -> None:
        self.map = MutableAffineMap()
        self.operands: list[Value] = []
        self.results: list[Value] = []

        if map is not None:
            self.reset(map, operands, results)
        else:
            assert not operands and not results

    @classmethod
    def from_apply_op(cls, op: AffineApplyOp) -> AffineValueMap:
        return cls(op.map, op.operands, op.results)

    @classmethod
    def from_bound(cls, bound: AffineBound) -> AffineValueMap:
        return cls(bound.map, bound.operands)

    def reset(self,
            map: AffineMap,
            operands: Sequence[Value],
            results: Sequence[Value] | None = None) -> None:
        """Replace map, operands and results wholesale."""
        assert len(operands) == map.num_inputs, \
                "map takes %d operands, %d given" % (map.num_inputs, len(operands))
        if results is None:
            results = ()
        assert not results or len(results) == map.num_results

        self.map.reset(map)
        self.operands = list(operands)
        self.results = list(results)

    # {{{ accessors

    @property
    def num_operands(self) -> int:
        return len(self.operands)

    @property
    def num_dims(self) -> int:
        return self.map.num_dims

    @property
    def num_symbols(self) -> int:
        return self.map.num_symbols

    @property
    def num_results(self) -> int:
        return self.map.num_results

    def get_operand(self, i: int) -> Value:
        return self.operands[i]

    def get_result(self, idx: int) -> Expression:
        return self.map.get_result(idx)

    def get_affine_map(self) -> AffineMap:
        return self.map.get_affine_map()

    # }}}

    # {{{ forward substitution

    def forward_substitute(self,
            input: AffineValueMap | AffineApplyOp,
            result_index: int | None = None) -> None:
        """Replace each operand of *self* that is a result of *input* by the
        expression *input* computes for it, and take over the operands of
        *input* that the substituted expressions refer to.

        If *result_index* is given, only operands bound to that result of
        *input* are substituted.

        Dimension operands are always substituted. Symbol operands are
        substituted only if the corresponding result of *input* does not
        depend on any of the dimensions of *input*, so that symbols stay
        symbols.

        Afterwards, the operands are laid out as the retained dimension
        operands of *self*, followed by the newly referenced dimension
        operands of *input*, followed likewise by the symbols.
        """
        if isinstance(input, AffineApplyOp):
            input = AffineValueMap.from_apply_op(input)

        num_dims = self.num_dims
        in_num_dims = input.num_dims
        in_results = input.map.results

        def find_input_result(value):
            idx = _index_by_identity(input.results, value)
            if idx is None:
                return None
            if result_index is not None and idx != result_index:
                return None
            return idx

        # {{{ decide which operands get substituted

        substitutions = {}
        for i, operand in enumerate(self.operands):
            idx = find_input_result(operand)
            if idx is None:
                continue

            if i >= num_dims:
                in_dim_positions, _ = get_dim_and_symbol_positions(
                        in_results[idx])
                if in_dim_positions:
                    continue

            substitutions[i] = idx

        if not substitutions:
            return

        # }}}

        # {{{ lay out new operands

        new_dims: list[Value] = []
        new_symbols: list[Value] = []
        for i, operand in enumerate(self.operands):
            if i in substitutions:
                continue
            if i < num_dims:
                new_dims.append(operand)
            else:
                new_symbols.append(operand)

        used_in_dims = set()
        used_in_symbols = set()
        for idx in substitutions.values():
            dim_positions, symbol_positions = \
                    get_dim_and_symbol_positions(in_results[idx])
            used_in_dims.update(dim_positions)
            used_in_symbols.update(symbol_positions)

        in_dim_repl = {}
        for pos in sorted(used_in_dims):
            value = input.operands[pos]
            new_pos = _index_by_identity(new_dims, value)
            if new_pos is None:
                new_pos = len(new_dims)
                new_dims.append(value)
            in_dim_repl[pos] = DimExpr(new_pos)

        in_symbol_repl = {}
        for pos in sorted(used_in_symbols):
            value = input.operands[in_num_dims + pos]
            new_pos = _index_by_identity(new_symbols, value)
            if new_pos is None:
                new_pos = len(new_symbols)
                new_symbols.append(value)
            in_symbol_repl[pos] = SymbolExpr(new_pos)

        # }}}

        # {{{ rebuild expressions

        dim_repl: dict[int, Expression] = {}
        symbol_repl: dict[int, Expression] = {}
        num_retained_dims = 0
        num_retained_symbols = 0
        for i in range(self.num_operands):
            if i in substitutions:
                repl = substitute_dims_and_symbols(
                        in_results[substitutions[i]],
                        in_dim_repl, in_symbol_repl)
            elif i < num_dims:
                repl = DimExpr(num_retained_dims)
                num_retained_dims += 1
            else:
                repl = SymbolExpr(num_retained_symbols)
                num_retained_symbols += 1

            if i < num_dims:
                dim_repl[i] = repl
            else:
                symbol_repl[i - num_dims] = repl

        new_results = [
                substitute_dims_and_symbols(result, dim_repl, symbol_repl)
                for result in self.map.results]

        # }}}

        logger.debug("forward-substituted %d operand(s) of %s",
                len(substitutions), self.map)

        self.map.results = new_results
        self.map.num_dims = len(new_dims)
        self.map.num_symbols = len(new_symbols)
        self.operands = new_dims + new_symbols

        assert self.num_operands == self.num_dims + self.num_symbols

    # }}}

    # {{{ queries

    def is_multiple_of(self, idx: int, factor: int) -> bool:
        return self.map.is_multiple_of(idx, factor)

    def is_function_of(self, idx: int, value: Value) -> bool:
        """Return *True* if result *idx* refers to the dimension or symbol
        bound to *value*.
        """
        pos = _index_by_identity(self.operands, value)
        if pos is None:
            return False

        dim_positions, symbol_positions = get_dim_and_symbol_positions(
                self.map.get_result(idx))
        if pos < self.num_dims:
            return pos in dim_positions
        return pos - self.num_dims in symbol_positions

    def get_constant_result(self, idx: int) -> int | None:
        """Return the value of result *idx* if it is a constant, else
        *None*.
        """
        try:
            flat = flatten_affine_exprs(
                    [self.map.get_result(idx)], self.num_dims, self.num_symbols)
        except ExpressionNotAffineError:
            return None

        row, = flat.rows
        if any(row[:-1]):
            return None
        return row[-1]

    def is_constant(self, idx: int) -> bool:
        return self.get_constant_result(idx) is not None

    def is_identity(self) -> bool:
        if self.num_symbols or self.num_operands != self.num_results:
            return False
        return self.map.get_affine_map().is_identity()

    # }}}

    def __str__(self) -> str:
        return "{} on ({})".format(self.map,
                ", ".join(str(operand) for operand in self.operands))

# vim: foldmethod=marker
