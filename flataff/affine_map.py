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

from dataclasses import dataclass
from typing import TYPE_CHECKING

from pytools import memoize

from flataff.diagnostic import FlatAffError
from flataff.symbolic import (
    DimExpr,
    dim_name,
    get_dim_and_symbol_positions,
    is_multiple_of,
    simplify_affine_expr,
    symbol_name,
)


if TYPE_CHECKING:
    from collections.abc import Iterable

    from pymbolic.typing import Expression


__doc__ = """
.. currentmodule:: flataff

.. autoclass:: AffineMap
.. autoclass:: IntegerSet
.. autoclass:: MutableAffineMap
.. autoclass:: MutableIntegerSet
"""


def _check_exprs(exprs, num_dims, num_symbols):
    for expr in exprs:
        dim_positions, symbol_positions = get_dim_and_symbol_positions(expr)
        if any(pos >= num_dims for pos in dim_positions):
            raise FlatAffError("expression '%s' refers to a dimension beyond "
                    "the %d available" % (expr, num_dims))
        if any(pos >= num_symbols for pos in symbol_positions):
            raise FlatAffError("expression '%s' refers to a symbol beyond "
                    "the %d available" % (expr, num_symbols))


def _format_inputs(num_dims, num_symbols):
    result = "(%s)" % ", ".join(dim_name(i) for i in range(num_dims))
    if num_symbols:
        result += "[%s]" % ", ".join(symbol_name(i) for i in range(num_symbols))
    return result


# {{{ immutable maps and sets

@dataclass(frozen=True)
class AffineMap:
    """An immutable list of affine expressions (:attr:`results`) over
    :attr:`num_dims` dimensions and :attr:`num_symbols` symbols.

    Instances are uniqued: obtain them through :meth:`get`, which returns
    the identical object for equal arguments.

    .. attribute:: num_dims
    .. attribute:: num_symbols
    .. attribute:: results

    .. automethod:: get
    .. automethod:: get_identity
    .. automethod:: get_constant
    .. automethod:: is_identity
    """

    num_dims: int
    num_symbols: int
    results: tuple[Expression, ...]

    @staticmethod
    def get(num_dims: int, num_symbols: int,
            results: Iterable[Expression]) -> AffineMap:
        results = tuple(results)
        _check_exprs(results, num_dims, num_symbols)
        return _get_uniqued_affine_map(num_dims, num_symbols, results)

    @staticmethod
    def get_identity(num_dims: int) -> AffineMap:
        return AffineMap.get(num_dims, 0,
                tuple(DimExpr(i) for i in range(num_dims)))

    @staticmethod
    def get_constant(value: int) -> AffineMap:
        return AffineMap.get(0, 0, (value,))

    @property
    def num_inputs(self) -> int:
        return self.num_dims + self.num_symbols

    @property
    def num_results(self) -> int:
        return len(self.results)

    def get_result(self, idx: int) -> Expression:
        return self.results[idx]

    def is_identity(self) -> bool:
        if self.num_symbols or self.num_dims != self.num_results:
            return False
        return all(result == DimExpr(i) for i, result in enumerate(self.results))

    def __str__(self) -> str:
        return "{} -> ({})".format(
                _format_inputs(self.num_dims, self.num_symbols),
                ", ".join(str(result) for result in self.results))


@memoize
def _get_uniqued_affine_map(num_dims, num_symbols, results):
    return AffineMap(num_dims, num_symbols, results)


@dataclass(frozen=True)
class IntegerSet:
    """An immutable conjunction of affine constraints over
    :attr:`num_dims` dimensions and :attr:`num_symbols` symbols.
    Constraint *i* reads ``constraints[i] == 0`` if ``eq_flags[i]`` is
    *True* and ``constraints[i] >= 0`` otherwise.

    Instances are uniqued, see :meth:`get`.
    """

    num_dims: int
    num_symbols: int
    constraints: tuple[Expression, ...]
    eq_flags: tuple[bool, ...]

    @staticmethod
    def get(num_dims: int, num_symbols: int,
            constraints: Iterable[Expression],
            eq_flags: Iterable[bool]) -> IntegerSet:
        constraints = tuple(constraints)
        eq_flags = tuple(bool(flag) for flag in eq_flags)
        if len(constraints) != len(eq_flags):
            raise FlatAffError("got %d constraints but %d equality flags"
                    % (len(constraints), len(eq_flags)))
        _check_exprs(constraints, num_dims, num_symbols)
        return _get_uniqued_integer_set(
                num_dims, num_symbols, constraints, eq_flags)

    @staticmethod
    def get_universe(num_dims: int, num_symbols: int) -> IntegerSet:
        return IntegerSet.get(num_dims, num_symbols, (), ())

    @property
    def num_inputs(self) -> int:
        return self.num_dims + self.num_symbols

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_equalities(self) -> int:
        return sum(self.eq_flags)

    @property
    def num_inequalities(self) -> int:
        return self.num_constraints - self.num_equalities

    def __str__(self) -> str:
        return "{} : ({})".format(
                _format_inputs(self.num_dims, self.num_symbols),
                ", ".join(
                    "{} {} 0".format(constraint, "==" if is_eq else ">=")
                    for constraint, is_eq in zip(self.constraints, self.eq_flags)))


@memoize
def _get_uniqued_integer_set(num_dims, num_symbols, constraints, eq_flags):
    return IntegerSet(num_dims, num_symbols, constraints, eq_flags)

# }}}


# {{{ mutable affine map

class MutableAffineMap:
    """A mutable counterpart of :class:`AffineMap`. The result list may be
    edited freely. The expressions themselves are immutable and are shared
    with the maps they came from.
    """

    def __init__(self, map: AffineMap | None = None) -> None:
        self.results: list[Expression] = []
        self.num_dims = 0
        self.num_symbols = 0

        if map is not None:
            self.reset(map)

    def reset(self, map: AffineMap) -> None:
        """Replace the contents of *self* by those of *map*."""
        self.results = list(map.results)
        self.num_dims = map.num_dims
        self.num_symbols = map.num_symbols

    @property
    def num_results(self) -> int:
        return len(self.results)

    def get_result(self, idx: int) -> Expression:
        return self.results[idx]

    def set_result(self, idx: int, result: Expression) -> None:
        self.results[idx] = result

    def is_multiple_of(self, idx: int, factor: int) -> bool:
        """Return *True* if result *idx* is known to be a multiple of
        *factor*. The check is structural and does not evaluate the
        expression.
        """
        return is_multiple_of(self.results[idx], factor)

    def simplify(self) -> None:
        """Simplify each result in place."""
        self.results = [
                simplify_affine_expr(result, self.num_dims, self.num_symbols)
                for result in self.results]

    def get_affine_map(self) -> AffineMap:
        return AffineMap.get(self.num_dims, self.num_symbols, self.results)

    def __str__(self) -> str:
        return str(self.get_affine_map())

# }}}


# {{{ mutable integer set

class MutableIntegerSet:
    """A mutable counterpart of :class:`IntegerSet`. Constructed empty, it
    represents the universe over *num_dims* dimensions and *num_symbols*
    symbols.
    """

    def __init__(self, num_dims: int = 0, num_symbols: int = 0) -> None:
        self.num_dims = num_dims
        self.num_symbols = num_symbols
        self.constraints: list[Expression] = []
        self.eq_flags: list[bool] = []

    @classmethod
    def from_integer_set(cls, iset: IntegerSet) -> MutableIntegerSet:
        result = cls(iset.num_dims, iset.num_symbols)
        result.constraints = list(iset.constraints)
        result.eq_flags = list(iset.eq_flags)
        return result

    @property
    def num_constraints(self) -> int:
        return len(self.constraints)

    @property
    def num_equalities(self) -> int:
        return sum(self.eq_flags)

    @property
    def num_inequalities(self) -> int:
        return self.num_constraints - self.num_equalities

    def add_constraint(self, expr: Expression, is_equality: bool) -> None:
        self.constraints.append(expr)
        self.eq_flags.append(bool(is_equality))

    def clear(self) -> None:
        """Remove all constraints, leaving the universe."""
        self.constraints = []
        self.eq_flags = []

    def get_integer_set(self) -> IntegerSet:
        return IntegerSet.get(self.num_dims, self.num_symbols,
                self.constraints, self.eq_flags)

# }}}

# vim: foldmethod=marker
