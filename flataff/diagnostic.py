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


# {{{ warnings

class FlatAffWarning(UserWarning):
    pass

# }}}


# {{{ errors

class FlatAffError(RuntimeError):
    pass


class InconsistentStateError(FlatAffError):
    """Raised when :attr:`flataff.Options.check_consistency` is enabled and
    a mutation leaves a :class:`flataff.FlatAffineConstraints` whose
    identifier list and coefficient buffers disagree in size.
    """
    pass


class ExpressionNotAffineError(FlatAffError):
    """
    Raised when an expression is not quasi-affine, i.e. when it cannot
    be flattened into a linear combination of dimensions, symbols and
    floor-division locals. Products of two non-constant terms, divisions by
    non-constants and free variables all fall into this category.
    """
    pass


class ExpressionToAffineConversionError(FlatAffError):
    pass

# }}}


# vim: foldmethod=marker
