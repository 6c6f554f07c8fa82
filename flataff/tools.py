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

from math import gcd

import numpy as np


def is_integer(obj):
    return isinstance(obj, (int, np.integer)) and not isinstance(obj, bool)


# {{{ integer arithmetic

def gcd_of(values):
    """Return the greatest common divisor of the absolute values in
    *values*, or 0 if all of them are zero (or there are none).
    """
    result = 0
    for v in values:
        result = gcd(result, int(v))
        if result == 1:
            break
    return result


def lcm(a, b):
    a = abs(a)
    b = abs(b)
    if a == 0 or b == 0:
        return 0
    return a // gcd(a, b) * b


def ceil_div(num, den):
    return -((-num) // den)

# }}}


# {{{ optional identifier binding

class _no_value:  # noqa
    pass


class Optional:
    """A wrapper for an optionally present object. Used to record which
    external value (if any) an identifier of a constraint system is bound
    to.

    .. attribute:: has_value

        *True* if and only if this object contains a value.

    .. attribute:: value

        The value, if present.

    Two bound instances compare equal only if they refer to the *same*
    value object. Values are opaque handles and are never compared by
    contents.
    """

    __slots__ = ("_value", "has_value")

    def __init__(self, value=_no_value):
        self.has_value = value is not _no_value
        if self.has_value:
            self._value = value

    def __str__(self):
        if not self.has_value:
            return "Optional()"
        return "Optional(%s)" % self._value

    def __repr__(self):
        if not self.has_value:
            return "Optional()"
        return "Optional(%r)" % self._value

    def __eq__(self, other):
        if not isinstance(other, Optional):
            return NotImplemented

        if not self.has_value:
            return not other.has_value

        return other.has_value and self._value is other._value

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self):
        if not self.has_value:
            return hash(_no_value)
        return id(self._value)

    def is_bound_to(self, value):
        return self.has_value and self._value is value

    @property
    def value(self):
        if not self.has_value:
            raise AttributeError("optional value not present")
        return self._value

    def value_or_none(self):
        return self._value if self.has_value else None

# }}}

# vim: foldmethod=marker
