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

import pytest

from flataff import (
    AffineBound,
    AffineMap,
    AffineValueMap,
    EmptinessResult,
    FlatAffineConstraints,
    ForLoop,
    HyperRectangularSet,
    IdKind,
    InconsistentStateError,
    IntegerSet,
    ProjectionExactness,
    Value,
)
from flataff.symbolic import DimExpr, SymbolExpr, flatten_affine_exprs


logger = logging.getLogger(__name__)


def make_constraints(*args, **kwargs):
    kwargs.setdefault("options", {"allow_terminal_colors": False})
    return FlatAffineConstraints(*args, **kwargs)


# {{{ basic properties

def test_gcd_test():
    cst = make_constraints(1)
    # 2*x - 3 == 0
    cst.add_equality([2, -3])

    assert cst.is_empty_by_gcd_test()
    assert cst.is_empty()


def test_gcd_test_inconclusive():
    cst = make_constraints(2)
    # 2*x + 4*y - 6 == 0
    cst.add_equality([2, 4, -6])
    assert not cst.is_empty_by_gcd_test()


def test_gcd_tighten():
    cst = make_constraints(1)
    cst.add_inequality([64, -100])

    cst.gcd_tighten_inequalities()
    assert cst.get_inequality(0) == [64, -128]

    cst.gcd_tighten_inequalities()
    assert cst.get_inequality(0) == [64, -128]


def test_hyper_rectangular_bound():
    cst = make_constraints(1)
    cst.add_constant_lower_bound(0, 0)
    cst.add_constant_upper_bound(0, 10)

    assert cst.is_hyper_rectangular(0, 1)
    assert cst.get_constant_bound_on_dim_size(0) == 11
    assert cst.get_constant_bound_on_dim_size(0, with_lower_bound=True) \
            == (11, [0])


def test_loop_domain_and_projection():
    i = Value("i")
    j = Value("j")

    cst = make_constraints(1, id_values=[i])
    assert cst.add_loop_domain(ForLoop(0, 10, induction_variable=i))
    assert cst.inequalities == [[1, 0], [-1, 9]]

    cst.add_dim_id(1, j)
    # j - i - 2 == 0
    cst.add_equality([-1, 1, -2])

    exactness = cst.project_out(0)
    assert exactness == ProjectionExactness.EXACT

    assert cst.num_ids == 1
    assert cst.num_dims == 1
    assert cst.find_id(j) == 0
    assert cst.find_id(i) is None
    assert cst.num_equalities == 0
    assert cst.inequalities == [[1, -2], [-1, 11]]

    assert cst.get_constant_bound_on_dim_size(0) == 10
    assert cst.get_constant_bound_on_dim_size(0, with_lower_bound=True) \
            == (10, [2])


def test_invalid_constraint():
    cst = make_constraints(2)
    cst.add_equality([0, 0, 5])

    assert cst.has_invalid_constraint()
    assert cst.is_empty()


def test_identity_composition():
    i = Value("i")
    n = Value("n", is_valid_symbol=True)

    cst = make_constraints(1, 1, id_values=[i, n])
    # 0 <= i <= n - 1
    cst.add_inequality([1, 0, 0])
    cst.add_inequality([-1, 1, -1])
    orig_inequalities = cst.inequalities

    r = Value("r")
    vmap = AffineValueMap(AffineMap.get_identity(1), [i], [r])
    assert cst.compose_map(vmap)

    assert cst.num_dims == 2
    assert cst.get_id_values() == [r, i, n]
    assert cst.equalities == [[1, -1, 0, 0]]

    assert cst.project_out(r) == ProjectionExactness.EXACT
    assert cst.num_equalities == 0
    assert cst.inequalities == orig_inequalities
    assert cst.get_id_values() == [i, n]

# }}}


# {{{ identifiers

def test_add_remove_ids():
    cst = make_constraints(1, 1)
    cst.add_inequality([1, 2, 3])

    cst.add_dim_id(1)
    assert cst.num_dims == 2
    assert cst.inequalities == [[1, 0, 2, 3]]

    cst.add_local_id(0)
    assert cst.num_locals == 1
    assert cst.inequalities == [[1, 0, 2, 0, 3]]
    assert cst.get_id_kind(3) == IdKind.LOCAL
    assert cst.get_id_kind(2) == IdKind.SYMBOL

    cst.remove_id(0, IdKind.SYMBOL)
    assert cst.num_symbols == 0
    assert cst.inequalities == [[1, 0, 0, 3]]

    cst.remove_dim(0)
    assert (cst.num_dims, cst.num_symbols, cst.num_locals) == (1, 0, 1)
    assert cst.inequalities == [[0, 0, 3]]
    assert cst.has_consistent_state()


def test_remove_id_range_across_kinds():
    cst = make_constraints(2, 2, 1)
    cst.add_equality([1, 2, 3, 4, 5, 6])

    cst.remove_id_range(1, 3)
    assert (cst.num_dims, cst.num_symbols, cst.num_locals) == (1, 1, 1)
    assert cst.equalities == [[1, 4, 5, 6]]


def test_id_values():
    x = Value("x")
    y = Value("y")
    cst = make_constraints(2, id_values=[x, None])

    assert cst.find_id(x) == 0
    assert cst.find_id(y) is None
    assert cst.get_id_value(0) is x
    assert cst.get_id_values() == [x, None]

    cst.set_id_values(0, 2, [y, x])
    assert cst.find_id(x) == 1
    assert cst.find_id(y) == 0

    cst.add_symbol_id(0, Value("n"))
    assert cst.get_id_values(0, 2) == [y, x]
    assert cst.ids[2].has_value


def test_reserved_capacity():
    cst = make_constraints(2, num_reserved_cols=10,
            num_reserved_inequalities=4, num_reserved_equalities=2)
    assert cst.num_reserved_cols == 10
    assert cst.num_reserved_inequalities == 4
    assert cst.num_reserved_equalities == 2

    cst.add_inequality([1, 2, 3])
    cst.add_dim_id(0)
    cst.add_symbol_id(0)
    assert cst.num_reserved_cols == 10
    assert cst.inequalities == [[0, 1, 2, 0, 3]]

    for _ in range(8):
        cst.add_local_id(0)
    assert cst.num_cols == 13
    assert cst.num_reserved_cols >= 13
    assert cst.get_inequality(0) == [0, 1, 2, 0] + [0]*8 + [3]


def test_dim_symbol_separation():
    cst = make_constraints(3)
    cst.set_dim_symbol_separation(1)
    assert cst.num_dims == 2
    assert cst.num_symbols == 1
    assert cst.get_id_kind(2) == IdKind.SYMBOL

    cst.set_dim_symbol_separation(3)
    assert cst.num_dims == 0
    assert cst.num_symbols == 3

# }}}


# {{{ constraint manipulation

def test_bounds():
    cst = make_constraints(2)
    cst.add_constant_lower_bound([1, 1, 0], 3)
    cst.add_constant_upper_bound([1, -1, 2], 7)
    cst.add_lower_bound([1, 0, 0], [0, 2, 1])
    cst.add_upper_bound([0, 1, 0], [2, 0, 0])

    assert cst.inequalities == [
            # x + y >= 3
            [1, 1, -3],
            # x - y + 2 <= 7
            [-1, 1, 5],
            # x >= 2*y + 1
            [1, -2, -1],
            # y <= 2*x
            [2, -1, 0],
            ]


def test_set_id_to_constant_and_eliminate():
    x = Value("x")
    cst = make_constraints(2, id_values=[x, None])
    cst.add_inequality([1, 1, -5])

    cst.set_id_to_constant(x, 4)
    assert cst.equalities == [[1, 0, -4]]

    cst.set_and_eliminate(0, 4)
    assert cst.num_ids == 1
    assert cst.equalities == [[0, 0]]
    assert cst.inequalities == [[1, -1]]


def test_constant_fold():
    cst = make_constraints(2)
    # 2*y == 6
    cst.add_equality([0, 2, -6])
    # x + y >= 5
    cst.add_inequality([1, 1, -5])

    assert not cst.constant_fold_id(0)
    assert cst.constant_fold_id(1)
    assert cst.num_ids == 1
    assert cst.num_equalities == 0
    assert cst.inequalities == [[1, -2]]


def test_constant_fold_range():
    cst = make_constraints(3)
    cst.add_equality([1, 0, 0, -4])
    cst.add_equality([0, 1, 0, 2])
    cst.add_inequality([1, 1, 1, 0])

    cst.constant_fold_id_range(0, 3)
    assert cst.num_ids == 1
    assert cst.inequalities == [[1, 2]]


def test_append():
    a = make_constraints(1)
    a.add_inequality([1, 0])
    b = make_constraints(1)
    b.add_equality([1, -3])
    b.add_inequality([-1, 5])

    a.append(b)
    assert a.equalities == [[1, -3]]
    assert a.inequalities == [[1, 0], [-1, 5]]
    assert b.num_constraints == 2


def test_normalize_and_redundancy():
    cst = make_constraints(2)
    cst.add_equality([2, 4, 6])
    cst.add_equality([0, 0, 0])
    cst.add_inequality([3, 6, 3])
    cst.add_inequality([0, 0, 5])
    cst.add_inequality([0, 0, -1])
    cst.add_inequality([3, 6, 3])

    cst.normalize_constraints_by_gcd()
    assert cst.equalities == [[1, 2, 3], [0, 0, 0]]

    cst.remove_trivial_redundancy()
    assert cst.equalities == [[1, 2, 3]]
    assert cst.inequalities == [[1, 2, 1], [0, 0, -1]]
    assert cst.has_invalid_constraint()


def test_copy_is_independent():
    x = Value("x")
    cst = make_constraints(1, id_values=[x], options="check_consistency")
    cst.add_inequality([1, 0])

    cst2 = cst.copy()
    cst2.add_inequality([-1, 4])
    cst2.add_dim_id(1)

    assert cst.num_inequalities == 1
    assert cst.num_ids == 1
    assert cst2.find_id(x) == 0
    assert cst2.options is cst.options

    cst.clear_and_copy_from(cst2)
    assert cst.inequalities == [[1, 0, 0], [-1, 0, 4]]

# }}}


# {{{ elimination

def test_gaussian_stops_at_inequality():
    cst = make_constraints(2)
    cst.add_inequality([1, 0, 0])
    cst.add_equality([0, 1, -3])

    assert cst.gaussian_eliminate_ids(0, 2) == 0
    assert cst.num_ids == 2

    assert cst.gaussian_eliminate_id(1)
    assert cst.num_ids == 1
    assert cst.inequalities == [[1, 0]]


def test_gaussian_trivial_column():
    cst = make_constraints(2)
    cst.add_equality([0, 1, -3])

    assert cst.gaussian_eliminate_ids(0, 2) == 2
    assert cst.num_ids == 0
    assert cst.num_equalities == 0


def test_gaussian_non_unit_pivot():
    cst = make_constraints(2)
    # 2*x - y == 0, 0 <= x <= 3
    cst.add_equality([2, -1, 0])
    cst.add_inequality([1, 0, 0])
    cst.add_inequality([-1, 0, 3])

    exactness = cst.project_out(0)
    assert exactness == ProjectionExactness.OVER_APPROXIMATE
    assert cst.inequalities == [[1, 0], [-1, 6]]


def test_project_out_prefers_unit_pivot():
    cst = make_constraints(3)
    # 2*x == y, y <= z
    cst.add_equality([2, -1, 0, 0])
    cst.add_inequality([0, -1, 1, 0])

    # y = 2*x is substituted exactly, x is then unbounded below
    assert cst.project_out(0, 2) == ProjectionExactness.EXACT
    assert cst.num_ids == 1
    assert cst.num_equalities == 0
    assert cst.inequalities == []


def test_fourier_motzkin():
    cst = make_constraints(2)
    # 0 <= x <= 10, x <= y <= x + 5
    cst.add_inequality([1, 0, 0])
    cst.add_inequality([-1, 0, 10])
    cst.add_inequality([-1, 1, 0])
    cst.add_inequality([1, -1, 5])

    assert cst.fourier_motzkin_eliminate(0) == ProjectionExactness.EXACT
    assert cst.num_ids == 1
    assert cst.inequalities == [[1, 0], [-1, 15]]
    assert cst.get_constant_bound_on_dim_size(0) == 16


def test_fourier_motzkin_dark_shadow():
    def make():
        cst = make_constraints(2)
        # y <= 3*x <= y + 1
        cst.add_inequality([3, -1, 0])
        cst.add_inequality([-3, 1, 1])
        return cst

    real = make()
    assert real.fourier_motzkin_eliminate(0) \
            == ProjectionExactness.OVER_APPROXIMATE
    assert real.num_inequalities == 0

    dark = make()
    assert dark.fourier_motzkin_eliminate(0, dark_shadow=True) \
            == ProjectionExactness.UNDER_APPROXIMATE
    assert dark.has_invalid_constraint()


def test_fourier_motzkin_unbounded():
    cst = make_constraints(2)
    cst.add_inequality([1, -1, 0])
    cst.add_inequality([0, 1, 0])

    assert cst.fourier_motzkin_eliminate(0) == ProjectionExactness.EXACT
    assert cst.inequalities == [[1, 0]]


def test_fourier_motzkin_delegates_to_gaussian():
    cst = make_constraints(2)
    cst.add_equality([1, -1, 0])
    cst.add_inequality([1, 0, -5])

    assert cst.fourier_motzkin_eliminate(0) == ProjectionExactness.EXACT
    assert cst.num_equalities == 0
    assert cst.inequalities == [[1, -5]]


@pytest.mark.parametrize(("pos", "num"), [(0, 1), (1, 2), (0, 3), (2, 1)])
def test_project_out_reduces_ids(pos, num):
    cst = make_constraints(2, 1)
    cst.add_inequality([1, 0, 0, 0])
    cst.add_inequality([-1, 1, 0, 4])
    cst.add_inequality([0, -1, 1, 0])
    cst.add_equality([1, 1, -1, 2])

    num_ids = cst.num_ids
    cst.project_out(pos, num)
    assert cst.num_ids == num_ids - num
    for row in cst.equalities + cst.inequalities:
        assert len(row) == cst.num_cols


def test_exactness_combine():
    exact = ProjectionExactness.EXACT
    over = ProjectionExactness.OVER_APPROXIMATE
    under = ProjectionExactness.UNDER_APPROXIMATE
    inexact = ProjectionExactness.INEXACT

    assert exact.combine(over) == over
    assert under.combine(exact) == under
    assert under.combine(under) == under
    assert over.combine(under) == inexact
    assert inexact.combine(exact) == inexact

# }}}


# {{{ emptiness

def test_emptiness_exact_nonempty():
    cst = FlatAffineConstraints.from_hyper_rectangular_set(
            HyperRectangularSet([0, -2], [3, 2]))
    assert cst.check_emptiness() == EmptinessResult(is_empty=False, is_exact=True)
    assert not cst.is_empty()


def test_emptiness_by_tightening():
    cst = make_constraints(1)
    # 1 <= 3*x <= 2
    cst.add_inequality([3, -1])
    cst.add_inequality([-3, 2])

    assert not cst.is_empty_by_gcd_test()
    assert not cst.has_invalid_constraint()
    assert cst.check_emptiness() == EmptinessResult(is_empty=True, is_exact=True)

    # the system itself is left unchanged
    assert cst.inequalities == [[3, -1], [-3, 2]]


def test_emptiness_through_equality():
    cst = make_constraints(2)
    # x == y, x >= 5, y <= 3
    cst.add_equality([1, -1, 0])
    cst.add_inequality([1, 0, -5])
    cst.add_inequality([0, -1, 3])
    assert cst.is_empty()


def test_emptiness_dark_shadow():
    def make(**options):
        options["allow_terminal_colors"] = False
        cst = FlatAffineConstraints(2, options=options)
        # y <= 2*x <= y + 5, 0 <= y <= 10
        cst.add_inequality([2, -1, 0])
        cst.add_inequality([-2, 1, 5])
        cst.add_inequality([0, 1, 0])
        cst.add_inequality([0, -1, 10])
        return cst

    assert make().check_emptiness() \
            == EmptinessResult(is_empty=False, is_exact=True)
    assert make(no_dark_shadow=True).check_emptiness() \
            == EmptinessResult(is_empty=False, is_exact=False)


def test_emptiness_undecided():
    cst = make_constraints(2)
    # y <= 3*x <= y + 1, y == 1
    cst.add_inequality([3, -1, 0])
    cst.add_inequality([-3, 1, 1])
    cst.add_inequality([0, 1, -1])
    cst.add_inequality([0, -1, 1])

    result = cst.check_emptiness()
    assert not result.is_empty
    assert not result.is_exact


def test_emptiness_prefers_unit_pivot():
    cst = make_constraints(2)
    # 2*x == y, y == 1
    cst.add_equality([2, -1, 0])
    cst.add_equality([0, 1, -1])

    assert not cst.is_empty_by_gcd_test()
    assert cst.check_emptiness() == EmptinessResult(is_empty=True, is_exact=True)


def test_emptiness_of_universe():
    assert not make_constraints().is_empty()
    assert not make_constraints(2, 1).is_empty()

# }}}


# {{{ bounds and conversion

def test_symbolic_dim_size():
    cst = make_constraints(1, 1)
    # s <= x <= s + 7
    cst.add_inequality([1, -1, 0])
    cst.add_inequality([-1, 1, 7])

    assert cst.is_hyper_rectangular(0, 1)
    assert not cst.is_hyper_rectangular(0, 2)
    assert cst.get_constant_bound_on_dim_size(0, with_lower_bound=True) \
            == (8, [1, 0])


def test_symbolic_dim_size_mismatch():
    cst = make_constraints(1, 1)
    cst.add_inequality([1, -1, 0])
    cst.add_inequality([-1, 2, 7])

    assert cst.get_constant_bound_on_dim_size(0) is None


def test_dim_size_from_equality():
    cst = make_constraints(1, 1)
    # x == s + 3
    cst.add_equality([1, -1, -3])
    assert cst.get_constant_bound_on_dim_size(0, with_lower_bound=True) \
            == (1, [1, 3])


def test_dim_size_of_symbol():
    cst = make_constraints(1, 1)
    # s == 5
    cst.add_equality([0, 1, -5])
    assert cst.get_constant_bound_on_dim_size(1, with_lower_bound=True) \
            == (1, [0, 5])

    cst = make_constraints(1, 1)
    # 0 <= s <= 3
    cst.add_inequality([0, 1, 0])
    cst.add_inequality([0, -1, 3])
    assert cst.get_constant_bound_on_dim_size(1, with_lower_bound=True) \
            == (4, [0, 0])


def test_dim_size_empty_range():
    cst = make_constraints(1)
    cst.add_constant_lower_bound(0, 5)
    cst.add_constant_upper_bound(0, 2)
    assert cst.get_constant_bound_on_dim_size(0) == 0


def test_to_affine_map_from_eq():
    cst = make_constraints(2, 1)
    # 2*x - 4*y + 2*s + 6 == 0
    cst.add_equality([2, -4, 2, 6])

    amap, dim_ids, symbol_ids = cst.to_affine_map_from_eq(0, 0)
    assert dim_ids == [1]
    assert symbol_ids == [2]
    assert (amap.num_dims, amap.num_symbols, amap.num_results) == (1, 1, 1)

    # x == 2*y - s - 3
    flat = flatten_affine_exprs(amap.results, 1, 1)
    assert flat.rows == ((2, -1, -3),)

    assert cst.to_affine_map_from_eq(0, 1) is None


def test_to_affine_map_from_eq_rejects_locals():
    cst = make_constraints(1, 0, 1)
    cst.add_equality([1, 0, 0])
    cst.add_equality([1, 1, 0])

    assert cst.to_affine_map_from_eq(0, 0) is not None
    assert cst.to_affine_map_from_eq(1, 0) is None

# }}}


# {{{ construction

def test_from_integer_set():
    n = Value("n", is_valid_symbol=True)
    i = Value("i")
    iset = IntegerSet.get(1, 1,
            [DimExpr(0), SymbolExpr(0) - DimExpr(0) - 1],
            [False, False])

    cst = FlatAffineConstraints.from_integer_set(iset, [i, n])
    assert cst.inequalities == [[1, 0, 0], [-1, 1, -1]]
    assert cst.find_id(n) == 1


def test_from_integer_set_with_div():
    iset = IntegerSet.get(1, 0, [DimExpr(0) // 2 - 3], [True])
    cst = FlatAffineConstraints.from_integer_set(iset)

    assert cst.num_locals == 1
    assert cst.equalities == [[0, 1, -3]]
    assert cst.inequalities == [[1, -2, 0], [-1, 2, 1]]
    assert not cst.is_empty()


def test_from_affine_map():
    d0 = DimExpr(0)
    s0 = SymbolExpr(0)
    cst = FlatAffineConstraints.from_affine_map(AffineMap.get(1, 1, [d0 + s0]))

    assert (cst.num_dims, cst.num_symbols, cst.num_locals) == (2, 1, 0)
    assert cst.equalities == [[1, -1, -1, 0]]
    assert cst.get_id_values() == [None, None, None]


def test_from_hyper_rectangular_set():
    x = Value("x")
    y = Value("y")
    cst = FlatAffineConstraints.from_hyper_rectangular_set(
            HyperRectangularSet([0, -2], [3, 2], [x, y]))

    assert cst.inequalities == [[1, 0, 0], [-1, 0, 3], [0, 1, 2], [0, -1, 2]]
    assert cst.is_hyper_rectangular(0, 2)
    assert cst.get_constant_bound_on_dim_size(0) == 4
    assert cst.get_constant_bound_on_dim_size(1) == 5
    assert cst.find_id(y) == 1


def test_from_value_maps():
    i = Value("i")
    r1 = Value("r1")
    r2 = Value("r2")
    d0 = DimExpr(0)

    vmap1 = AffineValueMap(AffineMap.get(1, 0, [d0 + 1]), [i], [r1])
    vmap2 = AffineValueMap(AffineMap.get(1, 0, [2*d0]), [i], [r2])

    cst = FlatAffineConstraints.from_value_maps([vmap1, vmap2])
    assert cst.get_id_values() == [r1, r2, i]
    assert cst.equalities == [[1, 0, -1, -1], [0, 1, -2, 0]]


def test_compose_with_floor_div():
    i = Value("i")
    r = Value("r")
    vmap = AffineValueMap(AffineMap.get(1, 0, [DimExpr(0) // 4]), [i], [r])

    cst = make_constraints()
    assert cst.compose_map(vmap)
    assert (cst.num_dims, cst.num_symbols, cst.num_locals) == (2, 0, 1)
    assert cst.get_id_values() == [r, i, None]

    assert cst.equalities == [[1, 0, -1, 0]]
    assert cst.inequalities == [[0, 1, -4, 0], [0, -1, 4, 3]]


def test_compose_non_affine():
    i = Value("i")
    cst = make_constraints(1, id_values=[i])
    cst.add_inequality([1, 0])

    d0 = DimExpr(0)
    vmap = AffineValueMap(AffineMap.get(1, 0, [d0*d0]), [i], [Value("r")])
    assert not cst.compose_map(vmap)
    assert cst.num_ids == 1
    assert cst.inequalities == [[1, 0]]


def test_compose_adds_symbols():
    i = Value("i")
    n = Value("n", is_valid_symbol=True)
    cst = make_constraints(1, id_values=[i])

    vmap = AffineValueMap(
            AffineMap.get(1, 1, [DimExpr(0) + SymbolExpr(0)]), [i, n])
    assert cst.compose_map(vmap)
    assert (cst.num_dims, cst.num_symbols) == (2, 1)
    assert cst.get_id_values() == [None, i, n]
    assert cst.equalities == [[1, -1, -1, 0]]

# }}}


# {{{ loop domains

def test_loop_domain_symbolic_upper_bound():
    i = Value("i")
    n = Value("n", is_valid_symbol=True)
    cst = make_constraints(1, id_values=[i])

    ub = AffineBound(AffineMap.get(0, 1, [SymbolExpr(0)]), [n])
    assert cst.add_loop_domain(ForLoop(0, ub, induction_variable=i))

    assert cst.num_symbols == 1
    assert cst.find_id(n) == 1
    assert cst.inequalities == [[1, 0, 0], [-1, 1, -1]]


def test_loop_domain_dim_operand():
    i = Value("i")
    j = Value("j")
    cst = make_constraints(1, id_values=[i])

    lb = AffineBound(AffineMap.get(1, 0, [DimExpr(0)]), [j])
    assert cst.add_loop_domain(ForLoop(lb, 10, induction_variable=i))

    assert cst.num_dims == 2
    assert cst.find_id(j) == 1
    assert cst.inequalities == [[-1, 0, 9], [1, -1, 0]]


def test_loop_domain_constant_operand():
    i = Value("i")
    c = Value("c", constant_value=4)
    cst = make_constraints(1, id_values=[i])

    ub = AffineBound(AffineMap.get(0, 1, [2*SymbolExpr(0)]), [c])
    assert cst.add_loop_domain(ForLoop(0, ub, induction_variable=i))

    assert cst.num_symbols == 1
    assert cst.equalities == [[0, 1, -4]]
    assert cst.inequalities == [[1, 0, 0], [-1, 2, -1]]
    assert cst.get_constant_bound_on_dim_size(0) is None

    cst.constant_fold_id(1)
    assert cst.get_constant_bound_on_dim_size(0) == 8


def test_loop_domain_multi_result_bound():
    i = Value("i")
    cst = make_constraints(1, id_values=[i])

    lb = AffineBound(AffineMap.get(0, 0, [2, 5]))
    assert cst.add_loop_domain(ForLoop(lb, 20, induction_variable=i))
    assert cst.inequalities == [[-1, 19], [1, -2], [1, -5]]


@pytest.mark.parametrize("make_loop", [
    lambda i: ForLoop(0, 10, step=2, induction_variable=i),
    lambda i: ForLoop(0,
        AffineBound(AffineMap.get(1, 0, [DimExpr(0) // 2]), [Value("m")]),
        induction_variable=i),
    lambda i: ForLoop(
        AffineBound(AffineMap.get(1, 0, [DimExpr(0)*DimExpr(0)]), [Value("m")]),
        10, induction_variable=i),
    ])
def test_loop_domain_unsupported(make_loop):
    i = Value("i")
    cst = make_constraints(1, id_values=[i])

    assert not cst.add_loop_domain(make_loop(i))
    assert cst.num_ids == 1
    assert cst.num_constraints == 0


def test_loop_domain_unknown_induction_variable():
    cst = make_constraints(1)
    with pytest.raises(AssertionError):
        cst.add_loop_domain(ForLoop(0, 10))

# }}}


# {{{ options and debug output

def test_consistency_check():
    cst = make_constraints(1, options="check_consistency")
    assert cst.has_consistent_state()

    cst._inequalities.insert_columns(0, 1)
    assert not cst.has_consistent_state()
    with pytest.raises(InconsistentStateError):
        cst.add_dim_id(0)


def test_str_and_dump(capsys):
    x = Value("x")
    cst = make_constraints(2, id_values=[x, None])
    cst.add_equality([1, 0, -3])
    cst.add_inequality([0, 1, 0])

    assert str(cst) == "\n".join([
        "Constraints (2 dims, 0 symbols, 0 locals), (2 constraints)",
        "(Value None const)",
        "1 0 -3 = 0",
        "0 1 0 >= 0",
        ])

    cst.dump()
    assert "1 0 -3 = 0" in capsys.readouterr().err


def test_trace_elimination(caplog):
    cst = make_constraints(2, options={
        "trace_elimination": True, "allow_terminal_colors": False})
    cst.add_equality([1, -1, 0])
    cst.add_inequality([0, 1, 0])

    with caplog.at_level(logging.DEBUG, logger="flataff.constraints"):
        cst.project_out(0)

    assert any("gaussian elimination" in rec.getMessage()
            for rec in caplog.records)

# }}}


if __name__ == "__main__":
    if len(sys.argv) > 1:
        exec(sys.argv[1])
    else:
        from pytest import main
        main([__file__])

# vim: foldmethod=marker
