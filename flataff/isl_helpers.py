"""isl helpers"""

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


import islpy as isl
from islpy import dim_type

from flataff.symbolic import dim_name, local_name, symbol_name


__doc__ = """
.. currentmodule:: flataff.isl_helpers

Conversion of :class:`flataff.FlatAffineConstraints` to :mod:`islpy`, used
to cross-check the results of the elimination routines.

.. autofunction:: get_id_names
.. autofunction:: to_isl_basic_set
.. autofunction:: is_empty_via_isl
.. autofunction:: project_out
"""


def get_id_names(cst):
    """Return the names used for the identifiers of *cst* in
    :mod:`islpy` objects: ``d*`` for dimensions, ``s*`` for symbols and
    ``q*`` for locals.
    """
    num_dims = cst.num_dims
    num_symbols = cst.num_symbols
    return (
            [dim_name(i) for i in range(num_dims)]
            + [symbol_name(i) for i in range(num_symbols)]
            + [local_name(i) for i in range(cst.num_locals)])


def _constraint_from_row(space, names, row, is_eq):
    coeffs = {1: row[-1]}
    for name, coeff in zip(names, row[:-1]):
        if coeff:
            coeffs[name] = coeff

    if is_eq:
        return isl.Constraint.eq_from_names(space, coeffs)
    else:
        return isl.Constraint.ineq_from_names(space, coeffs)


# {{{ to_isl_basic_set

def to_isl_basic_set(cst, keep_locals=False):
    """
    Returns an instance of :class:`islpy.BasicSet` containing the integer
    points satisfying *cst*. Dimensions become set dimensions, symbols
    become parameters.

    :arg keep_locals: If *False*, the locals of *cst* are existentially
        quantified (projected out). Otherwise they are kept as trailing set
        dimensions.
    """
    names = get_id_names(cst)
    num_dims = cst.num_dims
    num_symbols = cst.num_symbols

    space = isl.Space.create_from_names(isl.DEFAULT_CONTEXT,
            set=names[:num_dims] + names[num_dims+num_symbols:],
            params=names[num_dims:num_dims+num_symbols])

    result = isl.BasicSet.universe(space)
    for row in cst.equalities:
        result = result.add_constraint(
                _constraint_from_row(space, names, row, is_eq=True))
    for row in cst.inequalities:
        result = result.add_constraint(
                _constraint_from_row(space, names, row, is_eq=False))

    if not keep_locals and cst.num_locals:
        result = result.project_out(dim_type.set, num_dims, cst.num_locals)

    return result

# }}}


def is_empty_via_isl(cst):
    return to_isl_basic_set(cst).is_empty()


def project_out(bset, names):
    """Project the identifiers named *names* out of *bset*."""
    for name in names:
        dt, dim_idx = bset.get_var_dict()[name]
        bset = bset.project_out(dt, dim_idx, 1)

    return bset

# vim: foldmethod=marker
