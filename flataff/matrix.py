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

import numpy as np


__doc__ = """
.. currentmodule:: flataff.matrix

.. autoclass:: CoefficientMatrix
"""


class CoefficientMatrix:
    """A growable row-major matrix of exact integers, used to store the
    equality and inequality rows of a constraint system.

    Storage is a two-dimensional :mod:`numpy` array of ``dtype=object``
    holding Python :class:`int`\\ s, so that arithmetic never overflows.
    Each row occupies :attr:`num_reserved_cols` slots, of which only the
    first :attr:`num_cols` are meaningful; the tail is kept zero and is
    never read. The spare width lets columns be inserted without
    reallocating, and spare rows let rows be appended in amortized
    constant time.

    .. attribute:: num_rows
    .. attribute:: num_cols
    .. attribute:: num_reserved_cols

    .. automethod:: append_row
    .. automethod:: get_row
    .. automethod:: remove_row
    .. automethod:: keep_rows
    .. automethod:: insert_columns
    .. automethod:: remove_columns
    .. automethod:: copy
    """

    def __init__(self, num_cols, num_reserved_cols=None, num_reserved_rows=0):
        if num_reserved_cols is None:
            num_reserved_cols = num_cols
        assert num_reserved_cols >= num_cols

        self.num_rows = 0
        self.num_cols = num_cols
        self.num_reserved_cols = num_reserved_cols
        self._data = np.zeros(
                (max(num_reserved_rows, 1), num_reserved_cols), dtype=object)

    @property
    def num_reserved_rows(self):
        return self._data.shape[0]

    def __len__(self):
        return self.num_rows

    def __getitem__(self, idx):
        i, j = idx
        assert i < self.num_rows and j < self.num_cols
        return self._data[i, j]

    def __setitem__(self, idx, value):
        i, j = idx
        assert i < self.num_rows and j < self.num_cols
        self._data[i, j] = int(value)

    def _reserve_rows(self, num_rows):
        if num_rows <= self.num_reserved_rows:
            return

        new_data = np.zeros(
                (max(num_rows, 2*self.num_reserved_rows), self.num_reserved_cols),
                dtype=object)
        new_data[:self.num_rows] = self._data[:self.num_rows]
        self._data = new_data

    def append_row(self, row):
        assert len(row) == self.num_cols, \
                "row has %d entries, expected %d" % (len(row), self.num_cols)

        self._reserve_rows(self.num_rows + 1)
        self._data[self.num_rows, :self.num_cols] = [int(v) for v in row]
        self.num_rows += 1

    def get_row(self, i):
        """Return a copy of row *i* as a :class:`list` of :class:`int`."""
        assert i < self.num_rows
        return self._data[i, :self.num_cols].tolist()

    def rows(self):
        for i in range(self.num_rows):
            yield self.get_row(i)

    def set_row(self, i, row):
        assert i < self.num_rows
        assert len(row) == self.num_cols
        self._data[i, :self.num_cols] = [int(v) for v in row]

    def remove_row(self, i):
        assert i < self.num_rows
        n = self.num_rows
        self._data[i:n-1] = self._data[i+1:n]
        self._data[n-1] = 0
        self.num_rows = n - 1

    def keep_rows(self, indices):
        """Retain only the rows in *indices* (in that order)."""
        indices = list(indices)
        kept = self._data[indices] if indices else None
        self._data[:self.num_rows] = 0
        if indices:
            self._data[:len(indices)] = kept
        self.num_rows = len(indices)

    def clear(self):
        self._data[:self.num_rows] = 0
        self.num_rows = 0

    def insert_columns(self, pos, num):
        """Insert *num* zero columns before column *pos*, shifting later
        columns to the right.
        """
        assert pos <= self.num_cols
        if num == 0:
            return

        n = self.num_rows
        new_num_cols = self.num_cols + num
        if new_num_cols > self.num_reserved_cols:
            new_data = np.zeros(
                    (self.num_reserved_rows, new_num_cols), dtype=object)
            new_data[:n, :pos] = self._data[:n, :pos]
            new_data[:n, pos+num:new_num_cols] = self._data[:n, pos:self.num_cols]
            self._data = new_data
            self.num_reserved_cols = new_num_cols
        else:
            self._data[:n, pos+num:new_num_cols] = \
                    self._data[:n, pos:self.num_cols].copy()
            self._data[:n, pos:pos+num] = 0

        self.num_cols = new_num_cols

    def remove_columns(self, start, end):
        """Remove columns in the half-open range ``[start, end)``."""
        assert start <= end <= self.num_cols
        if start == end:
            return

        n = self.num_rows
        num_removed = end - start
        self._data[:n, start:self.num_cols-num_removed] = \
                self._data[:n, end:self.num_cols].copy()
        self._data[:n, self.num_cols-num_removed:self.num_cols] = 0
        self.num_cols -= num_removed

    def resize(self, num_cols, num_reserved_cols=None, num_reserved_rows=0):
        """Drop all rows and change the column layout."""
        if num_reserved_cols is None:
            num_reserved_cols = num_cols
        num_reserved_cols = max(num_reserved_cols, num_cols)

        self.num_rows = 0
        self.num_cols = num_cols
        self.num_reserved_cols = num_reserved_cols
        self._data = np.zeros(
                (max(num_reserved_rows, 1), num_reserved_cols), dtype=object)

    def copy(self):
        result = CoefficientMatrix.__new__(CoefficientMatrix)
        result.num_rows = self.num_rows
        result.num_cols = self.num_cols
        result.num_reserved_cols = self.num_reserved_cols
        result._data = self._data.copy()
        return result

    def __eq__(self, other):
        if not isinstance(other, CoefficientMatrix):
            return NotImplemented

        return (self.num_cols == other.num_cols
                and list(self.rows()) == list(other.rows()))

    def __ne__(self, other):
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def __repr__(self):
        return "CoefficientMatrix(%r)" % list(self.rows())

# vim: foldmethod=marker
