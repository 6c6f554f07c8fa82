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
import sys
from dataclasses import dataclass
from enum import IntEnum
from typing import TYPE_CHECKING

from flataff.affine_map import AffineMap, MutableAffineMap
from flataff.diagnostic import ExpressionNotAffineError, InconsistentStateError
from flataff.matrix import CoefficientMatrix
from flataff.options import make_options
from flataff.symbolic import flatten_affine_exprs, linear_expr_from_coefficients
from flataff.tools import Optional, gcd_of, is_integer, lcm


if TYPE_CHECKING:
    from collections.abc import Sequence

    from flataff.affine_map import IntegerSet
    from flataff.host import ForLoop, HyperRectangularSet, Value
    from flataff.options import Options
    from flataff.value_map import AffineValueMap
    from flataff.value_set import IntegerValueSet


logger = logging.getLogger(__name__)


__doc__ = """
.. currentmodule:: flataff

.. autoclass:: IdKind
.. autoclass:: ProjectionExactness
.. autoclass:: EmptinessResult
.. autoclass:: FlatAffineConstraints
"""


class IdKind(IntEnum):
    DIMENSION = 0
    SYMBOL = 1
    LOCAL = 2


class ProjectionExactness(IntEnum):
    """Describes how the result of an elimination relates to the exact
    projection of the integer points of a system.

    .. attribute:: EXACT
    .. attribute:: OVER_APPROXIMATE

        The result is the rational shadow, which may contain integer points
        without an integer preimage.

    .. attribute:: UNDER_APPROXIMATE

        The result is a dark shadow, which may be missing integer points of
        the exact projection.

    .. attribute:: INEXACT

        Both kinds of approximation occurred.
    """

    EXACT = 0
    OVER_APPROXIMATE = 1
    UNDER_APPROXIMATE = 2
    INEXACT = 3

    def combine(self, other: ProjectionExactness) -> ProjectionExactness:
        """Return the exactness of two eliminations performed in sequence."""
        if self == ProjectionExactness.EXACT:
            return other
        if other == ProjectionExactness.EXACT or other == self:
            return self
        return ProjectionExactness.INEXACT


@dataclass(frozen=True)
class EmptinessResult:
    """
    .. attribute:: is_empty
    .. attribute:: is_exact

        If *False*, the system could not be shown to be empty, but its
        non-emptiness could not be proven either.
    """

    is_empty: bool
    is_exact: bool


# {{{ row helpers

def _normalize_row(row):
    g = gcd_of(row)
    if g > 1:
        return [v // g for v in row]
    return row


def _eliminate_from_row(pivot, row, col):
    """Return a multiple of *row* plus a multiple of *pivot* whose entry at
    *col* is zero. The multiplier of *row* is positive.
    """
    lead = row[col]
    if lead == 0:
        return row

    piv = pivot[col]
    sign = -1 if lead*piv > 0 else 1
    mult = lcm(lead, piv)
    pivot_mult = sign * (mult // abs(piv))
    row_mult = mult // abs(lead)

    result = [row_mult*r + pivot_mult*p for r, p in zip(row, pivot)]
    assert result[col] == 0
    return _normalize_row(result)


def _drop_entry(row, col):
    return row[:col] + row[col+1:]


def _overlap(start_a, end_a, start_b, end_b):
    return max(0, min(end_a, end_b) - max(start_a, start_b))

# }}}


class FlatAffineConstraints:
    """A conjunction of affine equalities and inequalities with integer
    coefficients over an ordered list of identifiers: first
    :attr:`num_dims` dimensions, then :attr:`num_symbols` symbols, then
    :attr:`num_locals` locals.

    Each constraint is stored as a row of :attr:`num_cols` integers, the
    coefficients of the identifiers followed by the constant term. An
    equality row *r* means ``r[:-1] . ids + r[-1] == 0``, an inequality row
    ``r[:-1] . ids + r[-1] >= 0``.

    Each identifier may be bound to a :class:`~flataff.Value`. Bindings are
    compared by identity.

    .. attribute:: options

        A :class:`flataff.Options` instance, inherited by copies.

    .. rubric:: Construction

    .. automethod:: from_hyper_rectangular_set
    .. automethod:: from_value_map
    .. automethod:: from_value_maps
    .. automethod:: from_integer_set
    .. automethod:: from_integer_value_set
    .. automethod:: from_affine_map
    .. automethod:: copy
    .. automethod:: reset
    .. automethod:: clear_and_copy_from

    .. rubric:: Mutation

    .. automethod:: add_equality
    .. automethod:: add_inequality
    .. automethod:: add_constant_lower_bound
    .. automethod:: add_constant_upper_bound
    .. automethod:: add_lower_bound
    .. automethod:: add_upper_bound
    .. automethod:: add_id
    .. automethod:: remove_id
    .. automethod:: remove_id_range
    .. automethod:: set_id_to_constant
    .. automethod:: set_and_eliminate
    .. automethod:: set_dim_symbol_separation
    .. automethod:: append
    .. automethod:: add_loop_domain
    .. automethod:: compose_map

    .. rubric:: Elimination

    .. automethod:: project_out
    .. automethod:: gaussian_eliminate_ids
    .. automethod:: fourier_motzkin_eliminate
    .. automethod:: constant_fold_id
    .. automethod:: constant_fold_id_range

    .. rubric:: Queries

    .. automethod:: is_empty
    .. automethod:: check_emptiness
    .. automethod:: is_empty_by_gcd_test
    .. automethod:: has_invalid_constraint
    .. automethod:: is_hyper_rectangular
    .. automethod:: get_constant_bound_on_dim_size
    .. automethod:: to_affine_map_from_eq
    """

    def __init__(self,
            num_dims: int = 0,
            num_symbols: int = 0,
            num_locals: int = 0,
            id_values: Sequence[Value | None] | None = None,
            num_reserved_inequalities: int = 0,
            num_reserved_equalities: int = 0,
            num_reserved_cols: int | None = None,
            options: Options | dict | str | None = None) -> None:
        self.options = make_options(options)
        self.reset(num_dims, num_symbols, num_locals, id_values,
                num_reserved_inequalities, num_reserved_equalities,
                num_reserved_cols)

    def reset(self,
            num_dims: int = 0,
            num_symbols: int = 0,
            num_locals: int = 0,
            id_values: Sequence[Value | None] | None = None,
            num_reserved_inequalities: int = 0,
            num_reserved_equalities: int = 0,
            num_reserved_cols: int | None = None) -> None:
        """Drop all constraints and re-initialize the identifier list.
        *id_values* binds the dimensions and symbols (and, optionally, the
        locals), with *None* marking an unbound identifier.
        """
        num_ids = num_dims + num_symbols + num_locals
        num_cols = num_ids + 1
        if num_reserved_cols is None:
            num_reserved_cols = num_cols
        num_reserved_cols = max(num_reserved_cols, num_cols)

        self.num_dims = num_dims
        self.num_symbols = num_symbols

        self._equalities = CoefficientMatrix(
                num_cols, num_reserved_cols, num_reserved_equalities)
        self._inequalities = CoefficientMatrix(
                num_cols, num_reserved_cols, num_reserved_inequalities)

        if id_values is None:
            id_values = ()
        assert len(id_values) in (0, num_dims + num_symbols, num_ids), \
                "id_values has unexpected length %d" % len(id_values)

        self._ids: list[Optional] = [
                Optional() if value is None else Optional(value)
                for value in id_values]
        self._ids.extend(Optional() for _ in range(num_ids - len(self._ids)))

        self._check_state()

    # {{{ construction

    @classmethod
    def from_hyper_rectangular_set(cls,
            hset: HyperRectangularSet,
            options=None) -> FlatAffineConstraints:
        """One lower and one upper bound inequality per dimension of
        *hset*.
        """
        result = cls(hset.num_dims, id_values=hset.values,
                num_reserved_inequalities=2*hset.num_dims, options=options)
        for i, (lb, ub) in enumerate(zip(hset.lower_bounds, hset.upper_bounds)):
            result.add_constant_lower_bound(i, lb)
            result.add_constant_upper_bound(i, ub)
        return result

    @classmethod
    def from_value_map(cls, vmap: AffineValueMap,
            options=None) -> FlatAffineConstraints:
        """The graph of *vmap*: one leading dimension per result of *vmap*,
        followed by its operands, with one equality per result.

        :raises ExpressionNotAffineError: if a result of *vmap* is not
            (quasi-)affine.
        """
        return cls.from_value_maps([vmap], options=options)

    @classmethod
    def from_value_maps(cls, vmaps: Sequence[AffineValueMap],
            options=None) -> FlatAffineConstraints:
        """Like :meth:`from_value_map`, but for several maps. The result
        dimensions of all maps come first, in the order of *vmaps*.
        Operands shared between maps become a single identifier.
        """
        result = cls(options=options)
        result_pos = 0
        for vmap in vmaps:
            result._compose_map(vmap.get_affine_map(), vmap.operands,
                    vmap.results, result_pos)
            result_pos += vmap.num_results
        return result

    @classmethod
    def from_integer_set(cls, iset: IntegerSet,
            id_values: Sequence[Value | None] | None = None,
            options=None) -> FlatAffineConstraints:
        """
        :raises ExpressionNotAffineError: if a constraint of *iset* is not
            (quasi-)affine.
        """
        flat = flatten_affine_exprs(
                iset.constraints, iset.num_dims, iset.num_symbols)

        result = cls(iset.num_dims, iset.num_symbols, flat.num_locals,
                id_values=id_values,
                num_reserved_inequalities=(
                    iset.num_inequalities + len(flat.local_inequalities)),
                num_reserved_equalities=iset.num_equalities,
                options=options)

        for row in flat.local_inequalities:
            result.add_inequality(row)
        for row, is_eq in zip(flat.rows, iset.eq_flags):
            if is_eq:
                result.add_equality(row)
            else:
                result.add_inequality(row)

        return result

    @classmethod
    def from_integer_value_set(cls, vset: IntegerValueSet,
            options=None) -> FlatAffineConstraints:
        return cls.from_integer_set(vset.integer_set, vset.operands,
                options=options)

    @classmethod
    def from_affine_map(cls, map: AffineMap | MutableAffineMap,
            options=None) -> FlatAffineConstraints:
        """The graph of *map*, with one leading dimension per result,
        followed by the dimensions and symbols of *map*. No identifier is
        bound.
        """
        if isinstance(map, MutableAffineMap):
            map = map.get_affine_map()

        result = cls(options=options)
        result._compose_map(map, [None]*map.num_inputs, (), 0)
        return result

    def copy(self) -> FlatAffineConstraints:
        result = FlatAffineConstraints.__new__(FlatAffineConstraints)
        result.options = self.options
        result.clear_and_copy_from(self)
        return result

    def clear_and_copy_from(self, other: FlatAffineConstraints) -> None:
        self.num_dims = other.num_dims
        self.num_symbols = other.num_symbols
        self._equalities = other._equalities.copy()
        self._inequalities = other._inequalities.copy()
        self._ids = [
                Optional() if not id_.has_value else Optional(id_.value)
                for id_ in other._ids]

    # }}}

    # {{{ accessors

    @property
    def num_ids(self) -> int:
        return len(self._ids)

    @property
    def num_locals(self) -> int:
        return self.num_ids - self.num_dims - self.num_symbols

    @property
    def num_dim_and_symbol_ids(self) -> int:
        return self.num_dims + self.num_symbols

    @property
    def num_cols(self) -> int:
        return self.num_ids + 1

    @property
    def num_equalities(self) -> int:
        return self._equalities.num_rows

    @property
    def num_inequalities(self) -> int:
        return self._inequalities.num_rows

    @property
    def num_constraints(self) -> int:
        return self.num_equalities + self.num_inequalities

    @property
    def num_reserved_equalities(self) -> int:
        return self._equalities.num_reserved_rows

    @property
    def num_reserved_inequalities(self) -> int:
        return self._inequalities.num_reserved_rows

    @property
    def num_reserved_cols(self) -> int:
        return self._inequalities.num_reserved_cols

    @property
    def ids(self) -> tuple[Optional, ...]:
        return tuple(self._ids)

    def at_eq(self, i: int, j: int) -> int:
        return self._equalities[i, j]

    def at_ineq(self, i: int, j: int) -> int:
        return self._inequalities[i, j]

    def set_at_eq(self, i: int, j: int, value: int) -> None:
        self._equalities[i, j] = value

    def set_at_ineq(self, i: int, j: int, value: int) -> None:
        self._inequalities[i, j] = value

    def get_equality(self, i: int) -> list[int]:
        return self._equalities.get_row(i)

    def get_inequality(self, i: int) -> list[int]:
        return self._inequalities.get_row(i)

    @property
    def equalities(self) -> list[list[int]]:
        return list(self._equalities.rows())

    @property
    def inequalities(self) -> list[list[int]]:
        return list(self._inequalities.rows())

    def _kind_offset(self, kind: IdKind) -> int:
        if kind == IdKind.DIMENSION:
            return 0
        elif kind == IdKind.SYMBOL:
            return self.num_dims
        else:
            return self.num_dims + self.num_symbols

    def _num_ids_of_kind(self, kind: IdKind) -> int:
        if kind == IdKind.DIMENSION:
            return self.num_dims
        elif kind == IdKind.SYMBOL:
            return self.num_symbols
        else:
            return self.num_locals

    def get_id_kind(self, pos: int) -> IdKind:
        assert 0 <= pos < self.num_ids
        if pos < self.num_dims:
            return IdKind.DIMENSION
        elif pos < self.num_dims + self.num_symbols:
            return IdKind.SYMBOL
        else:
            return IdKind.LOCAL

    def get_id_value(self, pos: int) -> Value:
        """Return the value bound to identifier *pos*, which must be
        bound.
        """
        return self._ids[pos].value

    def get_id_values(self, start: int = 0,
            end: int | None = None) -> list[Value | None]:
        """Return the values bound to identifiers *start* through *end*
        (exclusive), with *None* for unbound identifiers.
        """
        if end is None:
            end = self.num_ids
        assert 0 <= start <= end <= self.num_ids
        return [id_.value_or_none() for id_ in self._ids[start:end]]

    def set_id_value(self, pos: int, value: Value | None) -> None:
        self._ids[pos] = Optional() if value is None else Optional(value)

    def set_id_values(self, start: int, end: int,
            values: Sequence[Value | None]) -> None:
        assert 0 <= start <= end <= self.num_ids
        assert len(values) == end - start
        for pos, value in zip(range(start, end), values):
            self.set_id_value(pos, value)

    def find_id(self, value: Value) -> int | None:
        """Return the position of the identifier bound to *value*, or
        *None*.
        """
        for pos, id_ in enumerate(self._ids):
            if id_.is_bound_to(value):
                return pos
        return None

    def _find_id_object(self, id_: Optional) -> int:
        for pos, other in enumerate(self._ids):
            if other is id_:
                return pos
        raise AssertionError("identifier not found")

    # }}}

    # {{{ state checking and debug output

    def has_consistent_state(self) -> bool:
        num_cols = self.num_cols
        return (
                self.num_dims >= 0
                and self.num_symbols >= 0
                and self.num_locals >= 0
                and self._equalities.num_cols == num_cols
                and self._inequalities.num_cols == num_cols
                and self._equalities.num_reserved_cols >= num_cols
                and self._inequalities.num_reserved_cols >= num_cols)

    def _check_state(self):
        if self.options.check_consistency and not self.has_consistent_state():
            raise InconsistentStateError(
                    "identifier list and coefficient buffers disagree: "
                    "%d ids, %d/%d columns"
                    % (self.num_ids, self._equalities.num_cols,
                        self._inequalities.num_cols))

    def _trace(self, what):
        if self.options.trace_elimination:
            logger.debug("%s:\n%s", what, self)

    def __str__(self) -> str:
        fore = self.options._fore
        style = self.options._style

        lines = [
                style.BRIGHT
                + "Constraints (%d dims, %d symbols, %d locals), (%d constraints)"
                % (self.num_dims, self.num_symbols, self.num_locals,
                    self.num_constraints)
                + style.RESET_ALL,
                "(%s)" % " ".join(
                    ["Value" if id_.has_value else "None" for id_ in self._ids]
                    + ["const"]),
                ]

        for row in self._equalities.rows():
            lines.append("".join("%d " % v for v in row)
                    + fore.GREEN + "= 0" + style.RESET_ALL)
        for row in self._inequalities.rows():
            lines.append("".join("%d " % v for v in row)
                    + fore.CYAN + ">= 0" + style.RESET_ALL)

        return "\n".join(lines)

    def dump(self) -> None:
        print(self, file=sys.stderr)

    # }}}

    # {{{ adding constraints

    def add_equality(self, row: Sequence[int]) -> None:
        assert len(row) == self.num_cols, \
                "row has %d entries, expected %d" % (len(row), self.num_cols)
        self._equalities.append_row(row)

    def add_inequality(self, row: Sequence[int]) -> None:
        assert len(row) == self.num_cols, \
                "row has %d entries, expected %d" % (len(row), self.num_cols)
        self._inequalities.append_row(row)

    def _unit_row(self, pos, coeff):
        assert 0 <= pos < self.num_ids
        row = [0]*self.num_cols
        row[pos] = coeff
        return row

    def add_constant_lower_bound(self, pos_or_expr: int | Sequence[int],
            lb: int) -> None:
        """Add ``x >= lb`` where *x* is either identifier *pos_or_expr* or
        the linear combination given by the row *pos_or_expr* (constant
        term included).
        """
        if is_integer(pos_or_expr):
            row = self._unit_row(pos_or_expr, 1)
        else:
            row = list(pos_or_expr)
            assert len(row) == self.num_cols
        row[-1] -= lb
        self.add_inequality(row)

    def add_constant_upper_bound(self, pos_or_expr: int | Sequence[int],
            ub: int) -> None:
        """Add ``x <= ub``, see :meth:`add_constant_lower_bound`."""
        if is_integer(pos_or_expr):
            row = self._unit_row(pos_or_expr, -1)
        else:
            row = [-v for v in pos_or_expr]
            assert len(row) == self.num_cols
        row[-1] += ub
        self.add_inequality(row)

    def add_lower_bound(self, expr: Sequence[int], lb: Sequence[int]) -> None:
        """Add ``expr >= lb`` for rows *expr* and *lb*."""
        assert len(expr) == len(lb) == self.num_cols
        self.add_inequality([e - b for e, b in zip(expr, lb)])

    def add_upper_bound(self, expr: Sequence[int], ub: Sequence[int]) -> None:
        """Add ``expr <= ub`` for rows *expr* and *ub*."""
        assert len(expr) == len(ub) == self.num_cols
        self.add_inequality([b - e for e, b in zip(expr, ub)])

    def set_id_to_constant(self, pos_or_value: int | Value, val: int) -> None:
        """Add an equality fixing an identifier, given by position or by
        the value bound to it, at *val*. The identifier is kept.
        """
        if is_integer(pos_or_value):
            pos = pos_or_value
        else:
            pos = self.find_id(pos_or_value)
            assert pos is not None, "value '%s' not found" % pos_or_value

        row = self._unit_row(pos, 1)
        row[-1] = -val
        self.add_equality(row)

    def append(self, other: FlatAffineConstraints) -> None:
        """Add all rows of *other*, which must have the same number of
        identifiers. No simplification is performed.
        """
        assert other.num_ids == self.num_ids
        for row in other._equalities.rows():
            self.add_equality(row)
        for row in other._inequalities.rows():
            self.add_inequality(row)

    # }}}

    # {{{ adding and removing identifiers

    def add_id(self, kind: IdKind, pos: int, value: Value | None = None) -> None:
        """Insert an identifier of *kind* at position *pos* among the
        identifiers of that kind. All existing rows get a zero coefficient
        for it.
        """
        assert 0 <= pos <= self._num_ids_of_kind(kind)
        abs_pos = self._kind_offset(kind) + pos

        self._equalities.insert_columns(abs_pos, 1)
        self._inequalities.insert_columns(abs_pos, 1)
        self._ids.insert(abs_pos, Optional() if value is None else Optional(value))

        if kind == IdKind.DIMENSION:
            self.num_dims += 1
        elif kind == IdKind.SYMBOL:
            self.num_symbols += 1

        self._check_state()

    def add_dim_id(self, pos: int, value: Value | None = None) -> None:
        self.add_id(IdKind.DIMENSION, pos, value)

    def add_symbol_id(self, pos: int, value: Value | None = None) -> None:
        self.add_id(IdKind.SYMBOL, pos, value)

    def add_local_id(self, pos: int) -> None:
        self.add_id(IdKind.LOCAL, pos)

    def remove_id_range(self, start: int, end: int) -> None:
        """Remove identifiers *start* through *end* (exclusive) along with
        their columns.
        """
        assert 0 <= start <= end <= self.num_ids
        if start == end:
            return

        num_dims_removed = _overlap(start, end, 0, self.num_dims)
        num_symbols_removed = _overlap(start, end,
                self.num_dims, self.num_dims + self.num_symbols)

        self._equalities.remove_columns(start, end)
        self._inequalities.remove_columns(start, end)
        del self._ids[start:end]

        self.num_dims -= num_dims_removed
        self.num_symbols -= num_symbols_removed

        self._check_state()

    def remove_id(self, pos: int, kind: IdKind | None = None) -> None:
        """Remove an identifier and its column. If *kind* is given, *pos*
        counts among the identifiers of that kind.
        """
        if kind is not None:
            assert 0 <= pos < self._num_ids_of_kind(kind)
            pos += self._kind_offset(kind)
        self.remove_id_range(pos, pos + 1)

    def remove_dim(self, pos: int) -> None:
        self.remove_id(pos, IdKind.DIMENSION)

    def remove_equality(self, pos: int) -> None:
        self._equalities.remove_row(pos)

    def remove_inequality(self, pos: int) -> None:
        self._inequalities.remove_row(pos)

    def set_and_eliminate(self, pos: int, val: int) -> None:
        """Substitute *val* for identifier *pos* in every row and remove
        the identifier.
        """
        assert 0 <= pos < self.num_ids
        const_col = self.num_cols - 1
        for matrix in [self._equalities, self._inequalities]:
            for i in range(matrix.num_rows):
                coeff = matrix[i, pos]
                if coeff:
                    matrix[i, const_col] += coeff*val
        self.remove_id(pos)

    def set_dim_symbol_separation(self, new_num_symbols: int) -> None:
        """Move the boundary between dimensions and symbols so that the
        last *new_num_symbols* non-local identifiers are symbols.
        """
        num_dims_and_symbols = self.num_dims + self.num_symbols
        assert 0 <= new_num_symbols <= num_dims_and_symbols
        self.num_dims = num_dims_and_symbols - new_num_symbols
        self.num_symbols = new_num_symbols

    def _set_rows(self, equalities, inequalities):
        self._equalities.clear()
        self._inequalities.clear()
        for row in equalities:
            self._equalities.append_row(row)
        for row in inequalities:
            self._inequalities.append_row(row)

    # }}}

    # {{{ tightening and cleanup

    def gcd_tighten_inequalities(self) -> None:
        """Round the constant term of each inequality down to a multiple of
        the GCD of its coefficients, e.g. ``64*i - 100 >= 0`` becomes
        ``64*i - 128 >= 0``. Integer solutions are unaffected.
        """
        ineqs = self._inequalities
        const_col = self.num_cols - 1
        for i in range(ineqs.num_rows):
            g = gcd_of(ineqs.get_row(i)[:-1])
            if g <= 1:
                continue
            ineqs[i, const_col] = (ineqs[i, const_col] // g) * g

    def normalize_constraints_by_gcd(self) -> None:
        """Divide each row by the GCD of all its entries."""
        for matrix in [self._equalities, self._inequalities]:
            for i in range(matrix.num_rows):
                row = matrix.get_row(i)
                normalized = _normalize_row(row)
                if normalized is not row:
                    matrix.set_row(i, normalized)

    def remove_trivial_redundancy(self) -> None:
        """Remove duplicate rows, inequalities of the form ``c >= 0`` with
        ``c >= 0`` and equalities ``0 == 0``.
        """
        def filter_rows(rows, is_trivial):
            seen = set()
            result = []
            for row in rows:
                key = tuple(row)
                if key in seen or is_trivial(row):
                    continue
                seen.add(key)
                result.append(row)
            return result

        eqs = filter_rows(self._equalities.rows(),
                lambda row: not any(row))
        ineqs = filter_rows(self._inequalities.rows(),
                lambda row: not any(row[:-1]) and row[-1] >= 0)

        if (len(eqs) != self.num_equalities
                or len(ineqs) != self.num_inequalities):
            self._set_rows(eqs, ineqs)

    # }}}

    # {{{ simple emptiness tests

    def is_empty_by_gcd_test(self) -> bool:
        """Return *True* if some equality has no integer solution because
        the GCD of its coefficients does not divide its constant term.
        *False* is inconclusive.
        """
        for row in self._equalities.rows():
            g = gcd_of(row[:-1])
            if g and row[-1] % g:
                return True
        return False

    def has_invalid_constraint(self) -> bool:
        """Return *True* if some row has no nonzero coefficient and is
        violated by its constant term.
        """
        for row in self._equalities.rows():
            if not any(row[:-1]) and row[-1] != 0:
                return True
        for row in self._inequalities.rows():
            if not any(row[:-1]) and row[-1] < 0:
                return True
        return False

    # }}}

    # {{{ gaussian elimination

    def _gaussian_eliminate_ids(self, start, limit):
        assert 0 <= start <= limit <= self.num_ids
        if start == limit:
            return 0, ProjectionExactness.EXACT

        self.gcd_tighten_inequalities()

        eqs = list(self._equalities.rows())
        ineqs = list(self._inequalities.rows())
        exactness = ProjectionExactness.EXACT

        pivot_col = start
        while pivot_col < limit:
            pivot_row = None
            for i, row in enumerate(eqs):
                if row[pivot_col] and (pivot_row is None
                        or abs(row[pivot_col]) < abs(eqs[pivot_row][pivot_col])):
                    pivot_row = i

            if pivot_row is None:
                if any(row[pivot_col] for row in ineqs):
                    break
                pivot_col += 1
                continue

            pivot = eqs.pop(pivot_row)
            if abs(pivot[pivot_col]) != 1:
                exactness = exactness.combine(
                        ProjectionExactness.OVER_APPROXIMATE)

            eqs = [_eliminate_from_row(pivot, row, pivot_col) for row in eqs]
            ineqs = [_eliminate_from_row(pivot, row, pivot_col) for row in ineqs]
            pivot_col += 1

        self._set_rows(eqs, ineqs)
        self.remove_id_range(start, pivot_col)

        self._trace("after gaussian elimination of ids %d..%d"
                % (start, pivot_col))
        return pivot_col - start, exactness

    def _get_gaussian_pivot_col(self, start, end):
        """Return a column in ``[start, end)`` that some equality can
        eliminate, preferring one with a unit coefficient, or *None*.
        """
        eqs = list(self._equalities.rows())
        fallback = None
        for col in range(start, end):
            coeffs = [abs(row[col]) for row in eqs if row[col]]
            if not coeffs:
                continue
            if min(coeffs) == 1:
                return col
            if fallback is None:
                fallback = col
        return fallback

    def gaussian_eliminate_ids(self, start: int, limit: int) -> int:
        """Eliminate identifiers *start*, *start* + 1, ... up to *limit*
        (exclusive) using equalities, stopping at the first identifier that
        has no equality to eliminate it with but appears in an inequality.
        Identifiers occurring in no row are removed as well.

        :returns: the number of identifiers eliminated.
        """
        num_eliminated, _ = self._gaussian_eliminate_ids(start, limit)
        return num_eliminated

    def gaussian_eliminate_id(self, pos: int) -> bool:
        return self.gaussian_eliminate_ids(pos, pos + 1) == 1

    # }}}

    # {{{ fourier-motzkin elimination

    def fourier_motzkin_eliminate(self, pos: int,
            dark_shadow: bool = False) -> ProjectionExactness:
        """Eliminate identifier *pos* by combining each of its lower
        bounds with each of its upper bounds. If an equality involves the
        identifier, it is eliminated by Gaussian elimination instead.

        With *dark_shadow*, the combinations are tightened so that every
        integer point of the result has an integer preimage, at the cost of
        possibly losing some points.
        """
        assert 0 <= pos < self.num_ids

        if any(row[pos] for row in self._equalities.rows()):
            num_eliminated, exactness = self._gaussian_eliminate_ids(pos, pos + 1)
            assert num_eliminated == 1
            return exactness

        self.gcd_tighten_inequalities()

        lower_bounds = []
        upper_bounds = []
        new_ineqs = []
        for row in self._inequalities.rows():
            if row[pos] > 0:
                lower_bounds.append(row)
            elif row[pos] < 0:
                upper_bounds.append(row)
            else:
                new_ineqs.append(_drop_entry(row, pos))

        is_exact = True
        for lb in lower_bounds:
            a = lb[pos]
            for ub in upper_bounds:
                b = -ub[pos]
                if a != 1 and b != 1:
                    is_exact = False

                if dark_shadow:
                    row = [b*lv + a*uv for lv, uv in zip(lb, ub)]
                    row[-1] -= (a - 1)*(b - 1)
                else:
                    mult = lcm(a, b)
                    row = [(mult // a)*lv + (mult // b)*uv
                            for lv, uv in zip(lb, ub)]

                assert row[pos] == 0
                new_ineqs.append(_normalize_row(_drop_entry(row, pos)))

        new_eqs = [_drop_entry(row, pos) for row in self._equalities.rows()]

        self.remove_id(pos)
        self._set_rows(new_eqs, new_ineqs)
        self.remove_trivial_redundancy()

        self._trace("after fourier-motzkin elimination of id %d "
                "(%d lower, %d upper bounds)"
                % (pos, len(lower_bounds), len(upper_bounds)))

        if is_exact:
            return ProjectionExactness.EXACT

        logger.debug("fourier-motzkin elimination of id %d is not integer-exact",
                pos)
        if dark_shadow:
            return ProjectionExactness.UNDER_APPROXIMATE
        else:
            return ProjectionExactness.OVER_APPROXIMATE

    def _get_best_id_to_eliminate(self, start, end):
        best_pos = None
        best_cost = None
        for pos in range(start, end):
            num_lb = 0
            num_ub = 0
            for row in self._inequalities.rows():
                if row[pos] > 0:
                    num_lb += 1
                elif row[pos] < 0:
                    num_ub += 1
            cost = num_lb*num_ub
            if best_cost is None or cost < best_cost:
                best_pos = pos
                best_cost = cost
        return best_pos

    # }}}

    # {{{ projection

    def project_out(self, pos_or_value: int | Value, num: int = 1,
            dark_shadow: bool = False) -> ProjectionExactness:
        """Eliminate *num* consecutive identifiers starting at
        *pos_or_value*, which is either a position or a value bound to an
        identifier. Gaussian elimination is used as far as possible, taking
        identifiers with a unit coefficient in some equality first, then
        Fourier-Motzkin elimination in the order that creates the fewest
        new rows.
        """
        if is_integer(pos_or_value):
            pos = pos_or_value
        else:
            pos = self.find_id(pos_or_value)
            assert pos is not None, "value '%s' not found" % pos_or_value

        assert num >= 0 and pos + num <= self.num_ids
        if num == 0:
            return ProjectionExactness.EXACT

        exactness = ProjectionExactness.EXACT

        end = pos + num
        while True:
            col = self._get_gaussian_pivot_col(pos, end)
            if col is None:
                break

            _, step_exactness = self._gaussian_eliminate_ids(col, col + 1)
            exactness = exactness.combine(step_exactness)
            end -= 1

        num_remaining = end - pos
        for i in range(num_remaining):
            best_pos = self._get_best_id_to_eliminate(pos, end - i)
            exactness = exactness.combine(
                    self.fourier_motzkin_eliminate(best_pos, dark_shadow))

        self.gcd_tighten_inequalities()
        self.normalize_constraints_by_gcd()

        return exactness

    # }}}

    # {{{ constant folding

    def constant_fold_id(self, pos: int) -> bool:
        """If some equality pins identifier *pos* to an integer, substitute
        that integer everywhere and remove the identifier.
        """
        assert 0 <= pos < self.num_ids
        for i, row in enumerate(self._equalities.rows()):
            coeff = row[pos]
            if not coeff:
                continue
            if any(v for j, v in enumerate(row[:-1]) if j != pos):
                continue
            if row[-1] % coeff:
                continue

            self.remove_equality(i)
            self.set_and_eliminate(pos, -row[-1] // coeff)
            return True

        return False

    def constant_fold_id_range(self, pos: int, num: int) -> None:
        assert pos + num <= self.num_ids
        current = pos
        for _ in range(num):
            if not self.constant_fold_id(current):
                current += 1

    # }}}

    # {{{ emptiness

    def _find_contradiction(self, dark_shadow):
        tmp = self.copy()
        exactness = ProjectionExactness.EXACT

        while True:
            col = tmp._get_gaussian_pivot_col(0, tmp.num_ids)
            if col is None:
                break

            _, step_exactness = tmp._gaussian_eliminate_ids(col, col + 1)
            exactness = exactness.combine(step_exactness)
            if tmp.is_empty_by_gcd_test() or tmp.has_invalid_constraint():
                return True, exactness

        while tmp.num_ids:
            best_pos = tmp._get_best_id_to_eliminate(0, tmp.num_ids)
            exactness = exactness.combine(
                    tmp.fourier_motzkin_eliminate(best_pos, dark_shadow))
            if tmp.has_invalid_constraint():
                return True, exactness

        return tmp.has_invalid_constraint(), exactness

    def check_emptiness(self) -> EmptinessResult:
        """Decide whether the system has an integer solution.

        A contradiction found while eliminating all identifiers (real
        shadow) proves emptiness. If none is found and all eliminations
        were exact, the system is non-empty. Otherwise, if
        :attr:`flataff.Options.no_dark_shadow` is not set, the eliminations
        are repeated with dark shadows, whose non-emptiness implies that of
        the system.
        """
        from pytools import ProcessLogger

        with ProcessLogger(logger, "check emptiness of system with %d ids, "
                "%d constraints" % (self.num_ids, self.num_constraints)):
            if self.is_empty_by_gcd_test() or self.has_invalid_constraint():
                return EmptinessResult(is_empty=True, is_exact=True)

            found, exactness = self._find_contradiction(dark_shadow=False)
            if found:
                return EmptinessResult(is_empty=True, is_exact=True)
            if exactness == ProjectionExactness.EXACT:
                return EmptinessResult(is_empty=False, is_exact=True)

            if not self.options.no_dark_shadow:
                found, exactness = self._find_contradiction(dark_shadow=True)
                if not found and exactness in [
                        ProjectionExactness.EXACT,
                        ProjectionExactness.UNDER_APPROXIMATE]:
                    return EmptinessResult(is_empty=False, is_exact=True)

            logger.debug("emptiness of system with %d ids undecided, "
                    "assuming non-empty", self.num_ids)
            return EmptinessResult(is_empty=False, is_exact=False)

    def is_empty(self) -> bool:
        """Return *True* if the system is proven to have no integer
        solution. See :meth:`check_emptiness` for whether *False* is
        conclusive.
        """
        return self.check_emptiness().is_empty

    # }}}

    # {{{ structural queries

    def is_hyper_rectangular(self, pos: int, num: int) -> bool:
        """Return *True* if no row involves more than one of the
        identifiers *pos* through *pos* + *num* (exclusive).
        """
        assert 0 <= pos and pos + num <= self.num_ids
        for matrix in [self._equalities, self._inequalities]:
            for row in matrix.rows():
                if sum(1 for v in row[pos:pos+num] if v) > 1:
                    return False
        return True

    def _non_symbol_cols(self):
        return [*range(self.num_dims),
                *range(self.num_dims + self.num_symbols, self.num_ids)]

    def get_constant_bound_on_dim_size(self, pos: int,
            with_lower_bound: bool = False):
        """Find a constant bound on the number of integer values identifier
        *pos* can take, by inspecting rows that bound it in terms of
        symbols and constants only.

        :returns: *None* if no bound is found. Otherwise, the bound, or, if
            *with_lower_bound* is set, a tuple of the bound and the
            corresponding lower bound of the identifier, as a list of symbol
            coefficients followed by a constant.
        """
        assert 0 <= pos < self.num_ids

        other_cols = [j for j in self._non_symbol_cols() if j != pos]
        symbol_cols = range(self.num_dims, self.num_dims + self.num_symbols)

        def is_symbolic_bound(row):
            return all(row[j] == 0 for j in other_cols)

        def finish(size, lb):
            if with_lower_bound:
                return size, lb
            return size

        for row in self._equalities.rows():
            coeff = row[pos]
            if abs(coeff) == 1 and is_symbolic_bound(row):
                # x = -(row . syms + const) / coeff
                return finish(1,
                        [0 if j == pos else -row[j]*coeff for j in symbol_cols]
                        + [-row[-1]*coeff])

        lower_bounds = []
        upper_bounds = []
        for row in self._inequalities.rows():
            if not is_symbolic_bound(row):
                continue
            if row[pos] == 1:
                lower_bounds.append(row)
            elif row[pos] == -1:
                upper_bounds.append(row)

        min_size = None
        min_lb = None
        for lb in lower_bounds:
            for ub in upper_bounds:
                if any(lb[j] != -ub[j]
                        for j in range(self.num_ids) if j != pos):
                    continue

                size = max(0, ub[-1] + lb[-1] + 1)
                if min_size is None or size < min_size:
                    min_size = size
                    min_lb = lb

        if min_size is None:
            return None

        return finish(min_size,
                [0 if j == pos else -min_lb[j] for j in symbol_cols]
                + [-min_lb[-1]])

    # }}}

    # {{{ conversion

    def to_affine_map_from_eq(self, idx: int, pos: int):
        """Express identifier *pos* as an affine function of the other
        dimensions and symbols by solving equality *idx* for it.

        :returns: *None* if the coefficient of *pos* in the equality is
            zero or does not divide all other entries, or if a local is
            involved. Otherwise, a tuple ``(map, dim_ids, symbol_ids)``
            where *map* has one dimension per entry of *dim_ids* and one
            symbol per entry of *symbol_ids*, the positions of the
            identifiers the expression refers to.
        """
        row = self.get_equality(idx)
        coeff = row[pos]
        if not coeff:
            return None
        if any(v % coeff for v in row):
            return None

        num_dims_and_symbols = self.num_dims + self.num_symbols
        if any(row[j] for j in range(num_dims_and_symbols, self.num_ids)
                if j != pos):
            return None

        dim_ids = []
        symbol_ids = []
        dim_coeffs = {}
        symbol_coeffs = {}
        for j in range(num_dims_and_symbols):
            if j == pos or not row[j]:
                continue
            if j < self.num_dims:
                dim_coeffs[len(dim_ids)] = -row[j] // coeff
                dim_ids.append(j)
            else:
                symbol_coeffs[len(symbol_ids)] = -row[j] // coeff
                symbol_ids.append(j)

        expr = linear_expr_from_coefficients(
                dim_coeffs, symbol_coeffs, -row[-1] // coeff)
        return (AffineMap.get(len(dim_ids), len(symbol_ids), [expr]),
                dim_ids, symbol_ids)

    # }}}

    # {{{ composition

    def _ensure_operand(self, value, as_symbol):
        """Return the identifier bound to *value*, adding one if there is
        none.
        """
        if value is not None:
            pos = self.find_id(value)
            if pos is not None:
                return self._ids[pos]

        if as_symbol:
            self.add_symbol_id(self.num_symbols, value)
            return self._ids[self.num_dims + self.num_symbols - 1]
        else:
            self.add_dim_id(self.num_dims, value)
            return self._ids[self.num_dims - 1]

    def _compose_map(self, map, operands, results, result_pos):
        flat = flatten_affine_exprs(map.results, map.num_dims, map.num_symbols)

        operand_ids = [
                self._ensure_operand(operand, as_symbol=k >= map.num_dims)
                for k, operand in enumerate(operands)]

        local_ids = []
        for _ in range(flat.num_locals):
            self.add_local_id(self.num_locals)
            local_ids.append(self._ids[-1])

        result_ids = []
        for r in range(map.num_results):
            self.add_dim_id(result_pos + r, results[r] if results else None)
            result_ids.append(self._ids[result_pos + r])

        operand_pos = [self._find_id_object(id_) for id_ in operand_ids]
        local_pos = [self._find_id_object(id_) for id_ in local_ids]

        def embed(flat_row):
            row = [0]*self.num_cols
            for k, pos in enumerate(operand_pos):
                row[pos] += flat_row[k]
            for k, pos in enumerate(local_pos):
                row[pos] += flat_row[map.num_inputs + k]
            row[-1] += flat_row[-1]
            return row

        for flat_row in flat.local_inequalities:
            self.add_inequality(embed(flat_row))

        for id_, flat_row in zip(result_ids, flat.rows):
            # d_r - f_r == 0
            row = [-v for v in embed(flat_row)]
            row[self._find_id_object(id_)] += 1
            self.add_equality(row)

    def compose_map(self, vmap: AffineValueMap) -> bool:
        """Add one leading dimension per result of *vmap*, bound to that
        result, and an equality setting it to the result expression.
        Operands of *vmap* not yet bound to an identifier are added as
        dimensions or symbols, according to their role in *vmap*.

        :returns: *False*, leaving the system unchanged, if a result of
            *vmap* is not (quasi-)affine.
        """
        try:
            self._compose_map(vmap.get_affine_map(), vmap.operands,
                    vmap.results, 0)
        except ExpressionNotAffineError as e:
            logger.debug("cannot compose with non-affine map %s: %s", vmap, e)
            return False

        return True

    # }}}

    # {{{ loop domains

    def add_loop_domain(self, loop: ForLoop) -> bool:
        """Add the bounds of *loop* on its induction variable, which must
        already be bound to an identifier. Operands of the bounds not yet
        bound to an identifier are added, as symbols if they are valid
        symbols and as dimensions otherwise.

        :returns: *False*, leaving the system unchanged, for a non-unit
            step and for bounds that cannot be expressed without locals.
        """
        iv = loop.induction_variable
        assert self.find_id(iv) is not None, \
                "induction variable '%s' not found" % iv

        if loop.step != 1:
            logger.debug("loop domain with step %s not supported", loop.step)
            return False

        bounds = []
        for bound, is_lower in [
                (loop.lower_bound, True),
                (loop.upper_bound, False)]:
            constant = bound.get_constant_value()
            if constant is not None:
                bounds.append((is_lower, constant, bound, None))
                continue

            bmap = bound.map
            try:
                flat = flatten_affine_exprs(
                        bmap.results, bmap.num_dims, bmap.num_symbols)
            except ExpressionNotAffineError as e:
                logger.debug("loop bound %s is not affine: %s", bmap, e)
                return False

            if flat.num_locals:
                logger.debug("loop bound %s requires local ids", bmap)
                return False

            bounds.append((is_lower, None, bound, flat))

        for is_lower, constant, bound, flat in bounds:
            if constant is None:
                continue
            pos = self.find_id(iv)
            if is_lower:
                self.add_constant_lower_bound(pos, constant)
            else:
                self.add_constant_upper_bound(pos, constant - 1)

        for is_lower, constant, bound, flat in bounds:
            if constant is not None:
                continue

            operand_ids = []
            for operand in bound.operands:
                pos = self.find_id(operand)
                if pos is not None:
                    operand_ids.append(self._ids[pos])
                    continue

                id_ = self._ensure_operand(operand,
                        as_symbol=operand.is_valid_symbol)
                operand_ids.append(id_)
                if operand.constant_value is not None:
                    self.set_id_to_constant(operand, operand.constant_value)

            iv_pos = self.find_id(iv)
            operand_pos = [self._find_id_object(id_) for id_ in operand_ids]

            for flat_row in flat.rows:
                bound_row = [0]*self.num_cols
                for k, pos in enumerate(operand_pos):
                    bound_row[pos] += flat_row[k]
                bound_row[-1] += flat_row[-1]

                if is_lower:
                    # iv - f >= 0
                    row = [-v for v in bound_row]
                    row[iv_pos] += 1
                else:
                    # f - iv - 1 >= 0
                    row = bound_row
                    row[iv_pos] -= 1
                    row[-1] -= 1

                self.add_inequality(row)

        return True

    # }}}

# vim: foldmethod=marker
