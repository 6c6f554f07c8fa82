"""Affine expression primitives and mappers."""

from __future__ import annotations

__copyright__ = "Copyright (C) 2012 Andreas Kloeckner"

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
from math import gcd
from typing import TYPE_CHECKING, cast

from typing_extensions import override

import islpy as isl
import pymbolic.primitives as p
from pymbolic.mapper import (
    Collector as CollectorBase,
    IdentityMapper as IdentityMapperBase,
    Mapper,
)
from pymbolic.mapper.coefficient import (
    CoefficientCollector as CoefficientCollectorBase,
    CoeffsT,
)
from pymbolic.mapper.evaluator import CachedEvaluationMapper as EvaluationMapperBase
from pymbolic.mapper.flattener import FlattenMapper as FlattenMapperBase
from pymbolic.mapper.stringifier import StringifyMapper as StringifyMapperBase

from flataff.diagnostic import (
    ExpressionNotAffineError,
    ExpressionToAffineConversionError,
    FlatAffError,
)
from flataff.tools import is_integer


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from pymbolic.typing import ArithmeticExpression, Expression


__doc__ = """
.. currentmodule:: flataff.symbolic

Affine expressions are :mod:`pymbolic` expression trees whose leaves are
integer constants, :class:`DimExpr` and :class:`SymbolExpr`. Interior nodes
are sums, products with a constant factor,
:class:`pymbolic.primitives.FloorDiv`, :class:`CeilDiv` and
:class:`pymbolic.primitives.Remainder` by a constant.

.. autoclass:: DimExpr
.. autoclass:: SymbolExpr
.. autoclass:: LocalExpr
.. autoclass:: CeilDiv

.. autofunction:: get_dim_and_symbol_positions
.. autofunction:: substitute_dims_and_symbols
.. autofunction:: get_largest_known_divisor
.. autofunction:: flatten_affine_exprs
.. autoclass:: FlattenedAffineExprs
.. autofunction:: simplify_affine_expr
"""


def dim_name(position: int) -> str:
    return "d%d" % position


def symbol_name(position: int) -> str:
    return "s%d" % position


def local_name(position: int) -> str:
    return "q%d" % position


# {{{ mappers with support for affine primitives

class IdentityMapperMixin:
    def map_dim_expr(self, expr, *args, **kwargs):
        return expr

    def map_symbol_expr(self, expr, *args, **kwargs):
        return expr

    def map_local_expr(self, expr, *args, **kwargs):
        return expr

    def map_ceil_div(self, expr, *args, **kwargs):
        numerator = self.rec(expr.numerator, *args, **kwargs)
        denominator = self.rec(expr.denominator, *args, **kwargs)
        if numerator is expr.numerator and denominator is expr.denominator:
            return expr
        return type(expr)(numerator, denominator)


class IdentityMapper(IdentityMapperMixin, IdentityMapperBase[[]]):
    pass


class FlattenMapper(IdentityMapperMixin, FlattenMapperBase):
    @override
    def is_expr_integer_valued(self, expr: Expression) -> bool:
        return True

    def map_ceil_div(self, expr: CeilDiv) -> Expression:
        r_num = self.rec_arith(expr.numerator)
        r_den = self.rec_arith(expr.denominator)
        if p.is_zero(r_num):
            return 0
        if p.is_zero(r_den - 1):
            return r_num
        return type(expr)(r_num, r_den)


def flatten(expr: Expression) -> Expression:
    return FlattenMapper()(expr)


class StringifyMapper(StringifyMapperBase[[]]):
    def map_dim_expr(self, expr: DimExpr, enclosing_prec: int) -> str:
        return dim_name(expr.position)

    def map_symbol_expr(self, expr: SymbolExpr, enclosing_prec: int) -> str:
        return symbol_name(expr.position)

    def map_local_expr(self, expr: LocalExpr, enclosing_prec: int) -> str:
        return local_name(expr.position)

    def map_ceil_div(self, expr: CeilDiv, enclosing_prec: int) -> str:
        from pymbolic.mapper.stringifier import PREC_NONE
        return self.format("ceildiv(%s, %s)",
                self.rec(expr.numerator, PREC_NONE),
                self.rec(expr.denominator, PREC_NONE))


class DimSymbolCollector(CollectorBase[p.ExpressionNode, []]):
    def map_dim_expr(self, expr: DimExpr) -> set[p.ExpressionNode]:
        return {expr}

    def map_symbol_expr(self, expr: SymbolExpr) -> set[p.ExpressionNode]:
        return {expr}

    def map_local_expr(self, expr: LocalExpr) -> set[p.ExpressionNode]:
        return set()

    map_ceil_div = CollectorBase.map_floor_div

# }}}


# {{{ affine primitives

class AffineExpressionBase(p.ExpressionNode):
    def make_stringifier(self, originating_stringifier=None):
        return StringifyMapper()


@p.expr_dataclass()
class DimExpr(AffineExpressionBase):
    """Dimensional identifier *position* of the map or set the expression
    belongs to.

    .. autoattribute:: position
    """

    position: int


@p.expr_dataclass()
class SymbolExpr(AffineExpressionBase):
    """Symbolic identifier *position* of the map or set the expression
    belongs to.

    .. autoattribute:: position
    """

    position: int


@p.expr_dataclass()
class LocalExpr(AffineExpressionBase):
    """A floor-division quotient introduced while flattening. Not for use
    in user-facing expressions.

    .. autoattribute:: position
    """

    position: int


@p.expr_dataclass()
class CeilDiv(AffineExpressionBase, p.QuotientBase):
    """Ceiling division of :attr:`numerator` by :attr:`denominator`.

    .. autoattribute:: numerator
    .. autoattribute:: denominator
    """


def dims(n: int) -> tuple[DimExpr, ...]:
    return tuple(DimExpr(i) for i in range(n))


def symbols(n: int) -> tuple[SymbolExpr, ...]:
    return tuple(SymbolExpr(i) for i in range(n))

# }}}


# {{{ structural queries and substitution

def get_dim_and_symbol_positions(
            expr: Expression) -> tuple[frozenset[int], frozenset[int]]:
    """Return a tuple of the positions of the dimensions and the positions
    of the symbols occurring in *expr*.
    """
    leaves = DimSymbolCollector()(expr)
    return (
            frozenset(leaf.position for leaf in leaves
                if isinstance(leaf, DimExpr)),
            frozenset(leaf.position for leaf in leaves
                if isinstance(leaf, SymbolExpr)))


class DimSymbolReplacementMapper(IdentityMapper):
    def __init__(self,
                 dim_replacements: Mapping[int, Expression],
                 symbol_replacements: Mapping[int, Expression]) -> None:
        super().__init__()
        self.dim_replacements = dim_replacements
        self.symbol_replacements = symbol_replacements

    @override
    def map_dim_expr(self, expr: DimExpr) -> Expression:
        return self.dim_replacements.get(expr.position, expr)

    @override
    def map_symbol_expr(self, expr: SymbolExpr) -> Expression:
        return self.symbol_replacements.get(expr.position, expr)


def substitute_dims_and_symbols(
            expr: Expression,
            dim_replacements: Mapping[int, Expression] | Sequence[Expression],
            symbol_replacements: Mapping[int, Expression] | Sequence[Expression]
        ) -> Expression:
    """Return a new expression in which ``DimExpr(i)`` is replaced by
    ``dim_replacements[i]`` and ``SymbolExpr(j)`` by
    ``symbol_replacements[j]``. Positions missing from the replacement
    mappings are left unchanged. *expr* itself is not modified.
    """
    if not isinstance(dim_replacements, dict):
        dim_replacements = dict(enumerate(dim_replacements))
    if not isinstance(symbol_replacements, dict):
        symbol_replacements = dict(enumerate(symbol_replacements))

    return DimSymbolReplacementMapper(dim_replacements, symbol_replacements)(expr)


class LargestKnownDivisorMapper(Mapper[int, []]):
    """Maps an affine expression to the largest integer known to divide
    it for all values of its dimensions and symbols. The result 0 means
    that the expression is known to be zero.
    """

    @override
    def map_constant(self, expr: object) -> int:
        if is_integer(expr):
            return abs(int(expr))
        return 1

    def map_dim_expr(self, expr: DimExpr) -> int:
        return 1

    map_symbol_expr = map_dim_expr
    map_local_expr = map_dim_expr

    @override
    def map_algebraic_leaf(self, expr: p.AlgebraicLeaf) -> int:
        return 1

    @override
    def map_sum(self, expr: p.Sum) -> int:
        result = 0
        for child in expr.children:
            result = gcd(result, self.rec(child))
        return result

    @override
    def map_product(self, expr: p.Product) -> int:
        result = 1
        for child in expr.children:
            result *= self.rec(child)
        return result

    def _constant_divisor(self, expr: p.QuotientBase) -> int | None:
        den = expr.denominator
        if is_integer(den) and den != 0:
            return abs(int(den))
        return None

    @override
    def map_floor_div(self, expr: p.FloorDiv) -> int:
        den = self._constant_divisor(expr)
        if den is None:
            return 1
        num_divisor = self.rec(expr.numerator)
        if num_divisor % den == 0:
            return num_divisor // den
        return 1

    def map_ceil_div(self, expr: CeilDiv) -> int:
        return self.map_floor_div(expr)

    @override
    def map_remainder(self, expr: p.Remainder) -> int:
        den = self._constant_divisor(expr)
        if den is None:
            return 1
        return gcd(self.rec(expr.numerator), den)

    @override
    def map_quotient(self, expr: p.Quotient) -> int:
        return 1

    @override
    def map_power(self, expr: p.Power) -> int:
        return 1


def get_largest_known_divisor(expr: Expression) -> int:
    return LargestKnownDivisorMapper()(expr)


def is_multiple_of(expr: Expression, factor: int) -> bool:
    """Return *True* if *expr* is structurally known to be a multiple of
    *factor*. Only the structure of *expr* is inspected, so *False*
    does not imply that *expr* takes a value not divisible by *factor*.
    """
    if factor == 0:
        raise ValueError("factor must be nonzero")
    return get_largest_known_divisor(expr) % abs(factor) == 0


def linear_expr_from_coefficients(
            dim_coeffs: Mapping[int, int],
            symbol_coeffs: Mapping[int, int],
            constant: int) -> Expression:
    terms: list[ArithmeticExpression] = []
    for leaf_type, coeffs in [(DimExpr, dim_coeffs), (SymbolExpr, symbol_coeffs)]:
        for pos in sorted(coeffs):
            coeff = coeffs[pos]
            if coeff == 1:
                terms.append(leaf_type(pos))
            elif coeff:
                terms.append(p.Product((coeff, leaf_type(pos))))
    terms.append(constant)
    return p.flattened_sum(terms)

# }}}


# {{{ flattening to linear rows

@dataclass(frozen=True)
class FlattenedAffineExprs:
    """The result of :func:`flatten_affine_exprs`.

    .. attribute:: rows

        One row per expression, each of length :attr:`num_cols`, laid out as
        ``[dims..., symbols..., locals..., constant]``.

    .. attribute:: local_inequalities

        Rows (same layout, each meaning ``row >= 0``) that define the
        locals as floor-division quotients.
    """

    num_dims: int
    num_symbols: int
    num_locals: int
    rows: tuple[tuple[int, ...], ...]
    local_inequalities: tuple[tuple[int, ...], ...]

    @property
    def num_cols(self) -> int:
        return self.num_dims + self.num_symbols + self.num_locals + 1


def _is_constant_coeffs(coeffs: CoeffsT) -> bool:
    return all(not isinstance(k, p.ExpressionNode) for k in coeffs)


def _scale(coeffs: CoeffsT, factor: int) -> dict:
    if factor == 0:
        return {}
    return {k: v*factor for k, v in coeffs.items()}


def _add(*coeff_dicts: CoeffsT) -> dict:
    result: dict = {}
    for coeffs in coeff_dicts:
        for k, v in coeffs.items():
            result[k] = result.get(k, 0) + v
    return {k: v for k, v in result.items() if v != 0}


class AffineExprFlattener(CoefficientCollectorBase):
    """Collects the coefficients of an affine expression with respect to
    :class:`DimExpr`, :class:`SymbolExpr` and newly introduced
    :class:`LocalExpr` quotients. The constant term is stored under the
    key ``1``, as with :class:`pymbolic.mapper.coefficient.CoefficientCollector`.

    Each floor division ``e // c`` whose numerator is not known to be
    divisible by *c* introduces a local ``q`` along with the inequalities
    ``e - c*q >= 0`` and ``-e + c*q + c - 1 >= 0``. Quotients with
    identical numerator and divisor share a local.
    """

    def __init__(self, num_dims: int, num_symbols: int) -> None:
        super().__init__()
        self.num_dims = num_dims
        self.num_symbols = num_symbols

        self.locals: dict[tuple[frozenset, int], LocalExpr] = {}
        self.local_inequalities: list[dict] = []

    @override
    def map_constant(self, expr: object) -> CoeffsT:
        if not is_integer(expr):
            raise ExpressionNotAffineError(
                    "non-integer constant '%s' in affine expression" % expr)
        return {} if expr == 0 else {1: int(expr)}

    def map_dim_expr(self, expr: DimExpr) -> CoeffsT:
        if not 0 <= expr.position < self.num_dims:
            raise FlatAffError("dimension '%s' out of range (%d dimensions)"
                    % (expr, self.num_dims))
        return {expr: 1}

    def map_symbol_expr(self, expr: SymbolExpr) -> CoeffsT:
        if not 0 <= expr.position < self.num_symbols:
            raise FlatAffError("symbol '%s' out of range (%d symbols)"
                    % (expr, self.num_symbols))
        return {expr: 1}

    def map_local_expr(self, expr: LocalExpr) -> CoeffsT:
        raise FlatAffError("local '%s' may not occur in input expressions"
                % expr)

    @override
    def map_variable(self, expr: p.Variable) -> CoeffsT:
        raise ExpressionNotAffineError(
                "free variable '%s' is neither a dimension nor a symbol"
                % expr.name)

    @override
    def map_algebraic_leaf(self, expr: p.AlgebraicLeaf) -> CoeffsT:
        raise ExpressionNotAffineError(
                "'%s' is not an affine expression" % expr)

    @override
    def map_sum(self, expr: p.Sum) -> CoeffsT:
        return _add(*(self.rec(child) for child in expr.children))

    @override
    def map_product(self, expr: p.Product) -> CoeffsT:
        result: CoeffsT = {1: 1}
        for child in expr.children:
            child_coeffs = self.rec(child)
            if _is_constant_coeffs(result):
                result = _scale(child_coeffs, result.get(1, 0))
            elif _is_constant_coeffs(child_coeffs):
                result = _scale(result, child_coeffs.get(1, 0))
            else:
                raise ExpressionNotAffineError(
                        "product of non-constant terms in '%s'" % expr)
        return result

    @override
    def map_quotient(self, expr: p.Quotient) -> CoeffsT:
        raise ExpressionNotAffineError(
                "true division in '%s' is not affine" % expr)

    @override
    def map_power(self, expr: p.Power) -> CoeffsT:
        raise ExpressionNotAffineError(
                "power in '%s' is not affine" % expr)

    def _get_divisor(self, expr: p.QuotientBase) -> int:
        den_coeffs = self.rec(expr.denominator)
        if not _is_constant_coeffs(den_coeffs):
            raise ExpressionNotAffineError(
                    "division by non-constant in '%s'" % expr)
        den = den_coeffs.get(1, 0)
        if den == 0:
            raise ExpressionNotAffineError("division by zero in '%s'" % expr)
        return den

    def _floor_div(self, num: CoeffsT, den: int) -> CoeffsT:
        if den < 0:
            num = _scale(num, -1)
            den = -den

        if _is_constant_coeffs(num):
            quotient = num.get(1, 0) // den
            return {1: quotient} if quotient else {}

        if all(v % den == 0 for v in num.values()):
            return {k: v // den for k, v in num.items()}

        key = (frozenset(num.items()), den)
        try:
            local = self.locals[key]
        except KeyError:
            local = LocalExpr(len(self.locals))
            self.locals[key] = local

            # num - den*q >= 0
            self.local_inequalities.append(_add(num, {local: -den}))
            # -num + den*q + den - 1 >= 0
            self.local_inequalities.append(
                    _add(_scale(num, -1), {local: den, 1: den - 1}))

        return {local: 1}

    @override
    def map_floor_div(self, expr: p.FloorDiv) -> CoeffsT:
        den = self._get_divisor(expr)
        return self._floor_div(self.rec(expr.numerator), den)

    def map_ceil_div(self, expr: CeilDiv) -> CoeffsT:
        den = self._get_divisor(expr)
        num = self.rec(expr.numerator)
        if den < 0:
            num = _scale(num, -1)
            den = -den

        return self._floor_div(_add(num, {1: den - 1}), den)

    @override
    def map_remainder(self, expr: p.Remainder) -> CoeffsT:
        den = self._get_divisor(expr)
        num = self.rec(expr.numerator)
        return _add(num, _scale(self._floor_div(num, den), -den))

    def to_row(self, coeffs: CoeffsT) -> tuple[int, ...]:
        num_locals = len(self.locals)
        row = [0]*(self.num_dims + self.num_symbols + num_locals + 1)
        for key, coeff in coeffs.items():
            if isinstance(key, DimExpr):
                row[key.position] = coeff
            elif isinstance(key, SymbolExpr):
                row[self.num_dims + key.position] = coeff
            elif isinstance(key, LocalExpr):
                row[self.num_dims + self.num_symbols + key.position] = coeff
            else:
                assert key == 1
                row[-1] = coeff
        return tuple(row)


def flatten_affine_exprs(
            exprs: Iterable[Expression],
            num_dims: int,
            num_symbols: int) -> FlattenedAffineExprs:
    """Flatten each of *exprs* (affine expressions over *num_dims*
    dimensions and *num_symbols* symbols) into an integer row.

    :raises ExpressionNotAffineError: if any of *exprs* is not
        (quasi-)affine.
    """
    flattener = AffineExprFlattener(num_dims, num_symbols)
    coeff_dicts = [flattener(expr) for expr in exprs]

    return FlattenedAffineExprs(
            num_dims=num_dims,
            num_symbols=num_symbols,
            num_locals=len(flattener.locals),
            rows=tuple(flattener.to_row(coeffs) for coeffs in coeff_dicts),
            local_inequalities=tuple(
                flattener.to_row(coeffs)
                for coeffs in flattener.local_inequalities))

# }}}


# {{{ isl conversion

def aff_to_expr(aff: isl.Aff) -> Expression:
    denom = aff.get_denominator_val().to_python()

    terms: list[ArithmeticExpression] = []
    for dt, leaf_type in [
            (isl.dim_type.in_, DimExpr),
            (isl.dim_type.param, SymbolExpr)]:
        for i in range(aff.dim(dt)):
            coeff = (aff.get_coefficient_val(dt, i)*denom).to_python()
            if coeff:
                terms.append(coeff*leaf_type(i))

    for i in range(aff.dim(isl.dim_type.div)):
        coeff = (aff.get_coefficient_val(isl.dim_type.div, i)*denom).to_python()
        if coeff:
            terms.append(coeff*aff_to_expr(aff.get_div(i)))

    terms.append((aff.get_constant_val()*denom).to_python())

    return flatten(p.flattened_sum(terms) // denom)


class PwAffEvaluationMapper(EvaluationMapperBase[isl.PwAff]):
    def __init__(self, space: isl.Space) -> None:
        self.zero = isl.Aff.zero_on_domain(isl.LocalSpace.from_space(space))
        self.pw_zero = isl.PwAff.from_aff(self.zero)

        context: dict[str, isl.PwAff] = {}
        for name, (dt, pos) in space.get_var_dict().items():
            if dt == isl.dim_type.set:
                dt = isl.dim_type.in_

            context[name] = isl.PwAff.from_aff(
                    self.zero.set_coefficient_val(dt, pos, 1))

        super().__init__(context)

    @override
    def map_constant(self, expr: object) -> isl.PwAff:
        if not is_integer(expr):
            raise TypeError("non-integer constant '%s' not supported "
                    "for as-pwaff evaluation" % expr)

        return self.pw_zero + int(cast("int", expr))

    def map_dim_expr(self, expr: DimExpr) -> isl.PwAff:
        return self.context[dim_name(expr.position)]

    def map_symbol_expr(self, expr: SymbolExpr) -> isl.PwAff:
        return self.context[symbol_name(expr.position)]

    @override
    def map_quotient(self, expr: p.Quotient) -> isl.PwAff:
        raise TypeError("true division in '%s' not supported "
                "for as-pwaff evaluation" % expr)

    @override
    def map_floor_div(self, expr: p.FloorDiv) -> isl.PwAff:
        num = self.rec(expr.numerator)
        denom = self.rec(expr.denominator)
        return num.div(denom).floor()

    def map_ceil_div(self, expr: CeilDiv) -> isl.PwAff:
        num = self.rec(expr.numerator)
        denom = self.rec(expr.denominator)
        return num.div(denom).ceil()

    @override
    def map_remainder(self, expr: p.Remainder) -> isl.PwAff:
        num = self.rec(expr.numerator)
        denom = self.rec(expr.denominator)
        if not denom.is_cst():
            raise TypeError("modulo non-constant in '%s' not supported "
                    "for as-pwaff evaluation" % expr)

        (_s, denom_aff), = denom.get_pieces()
        denom = denom_aff.get_constant_val()

        return num.mod_val(denom)


def aff_from_expr(space: isl.Space, expr: Expression) -> isl.Aff:
    pwaff = PwAffEvaluationMapper(space)(expr).coalesce()

    pieces = pwaff.get_pieces()
    if len(pieces) == 1:
        (_s, aff), = pieces
        return aff
    else:
        raise ExpressionNotAffineError("expression '%s' could not be converted "
                "to a non-piecewise quasi-affine expression" % expr)


def with_aff_conversion_guard(
            f: Callable[[isl.Space, Expression], isl.Aff],
            space: isl.Space,
            expr: Expression) -> isl.Aff:
    from pymbolic.mapper.evaluator import UnknownVariableError

    err = None

    try:
        return f(space, expr)
    except TypeError as e:
        err = e
    except isl.Error as e:
        err = e
    except UnknownVariableError as e:
        err = e
    except ExpressionNotAffineError as e:
        err = e

    assert err is not None
    raise ExpressionToAffineConversionError(
            "could not convert expression '%s' to affine representation: "
            "%s: %s" % (expr, type(err).__name__, str(err)))


def guarded_aff_from_expr(space: isl.Space, expr: Expression) -> isl.Aff:
    """Performs the same operation as :func:`aff_from_expr` but only raises
    :exc:`flataff.diagnostic.ExpressionToAffineConversionError`
    """
    return with_aff_conversion_guard(aff_from_expr, space, expr)


def make_isl_space(num_dims: int, num_symbols: int) -> isl.Space:
    return isl.Space.create_from_names(
            isl.DEFAULT_CONTEXT,
            set=[dim_name(i) for i in range(num_dims)],
            params=[symbol_name(i) for i in range(num_symbols)])


def simplify_affine_expr(
            expr: Expression, num_dims: int, num_symbols: int) -> Expression:
    """Return a canonical form of *expr* obtained by a round trip through
    :class:`islpy.Aff`. If *expr* cannot be represented as a single
    quasi-affine piece, it is returned unchanged.
    """
    try:
        return aff_to_expr(guarded_aff_from_expr(
            make_isl_space(num_dims, num_symbols), expr))
    except ExpressionToAffineConversionError:
        return expr

# }}}

# vim: foldmethod=marker
