__copyright__ = "Copyright (C) 2013 Andreas Kloeckner"

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


import os
import re
from warnings import warn

from pytools import ImmutableRecord


ALLOW_TERMINAL_COLORS = True


class _ColoramaStub:
    def __getattribute__(self, name):
        return ""


class Options(ImmutableRecord):
    """
    Unless otherwise specified, these options are Boolean-valued
    (i.e. on/off). Options are attached to each
    :class:`flataff.FlatAffineConstraints` and are inherited by copies
    and by systems derived from it.

    .. rubric:: Checking options

    .. attribute:: check_consistency

        After every mutation, verify that the identifier list and the
        coefficient buffers agree in size, raising
        :exc:`flataff.diagnostic.InconsistentStateError` if not.

        Defaults to *True* if the environment variable
        ``FLATAFF_CHECK_CONSISTENCY`` is set to a non-empty value.

    .. rubric:: Elimination options

    .. attribute:: no_dark_shadow

        If the rational (real) shadow computed by
        :meth:`flataff.FlatAffineConstraints.check_emptiness` is not
        integer-exact, do not attempt to prove non-emptiness using the dark
        shadow, and report the result as inexact instead.

    .. attribute:: trace_elimination

        Log the constraint system at debug level after every elimination
        step.

    .. rubric:: Output options

    .. attribute:: allow_terminal_colors

        A :class:`bool`. Whether to allow colors in debug dumps.
    """

    def __init__(
            # All Boolean flags in here should default to False for the
            # string-based interface of make_options (below) to make sense.
            self, **kwargs):

        try:
            import colorama  # noqa
        except ImportError:
            allow_terminal_colors_def = False
        else:
            allow_terminal_colors_def = True

        allow_terminal_colors_def = (
                ALLOW_TERMINAL_COLORS
                and allow_terminal_colors_def
                # https://no-color.org/
                and "NO_COLOR" not in os.environ)

        known_options = {
                "check_consistency", "no_dark_shadow", "trace_elimination",
                "allow_terminal_colors"}
        for name in kwargs:
            if name not in known_options:
                from flataff.diagnostic import FlatAffWarning
                warn("unknown option '%s' was ignored" % name,
                        FlatAffWarning, stacklevel=2)

        ImmutableRecord.__init__(
                self,

                check_consistency=kwargs.get("check_consistency",
                    bool(os.environ.get("FLATAFF_CHECK_CONSISTENCY"))),
                no_dark_shadow=kwargs.get("no_dark_shadow", False),
                trace_elimination=kwargs.get("trace_elimination", False),
                allow_terminal_colors=kwargs.get("allow_terminal_colors",
                    allow_terminal_colors_def),
                )

    @property
    def _fore(self):
        if self.allow_terminal_colors:
            import colorama
            return colorama.Fore
        else:
            return _ColoramaStub()

    @property
    def _style(self):
        if self.allow_terminal_colors:
            import colorama
            return colorama.Style
        else:
            return _ColoramaStub()


KEY_VAL_RE = re.compile("^([a-zA-Z0-9_]+)=(.*)$")


def make_options(options_arg):
    if options_arg is None:
        return Options()
    elif isinstance(options_arg, str):
        ioptions_args = {}
        for key_val in options_arg.split(","):
            if not key_val:
                continue

            kv_match = KEY_VAL_RE.match(key_val)
            if kv_match is not None:
                key = kv_match.group(1)
                val = kv_match.group(2)
                try:
                    val = int(val)
                except ValueError:
                    pass

                ioptions_args[key] = val
            else:
                ioptions_args[key_val] = True

        return Options(**ioptions_args)
    elif isinstance(options_arg, Options):
        return options_arg
    elif isinstance(options_arg, dict):
        return Options(**options_arg)
    else:
        raise TypeError("invalid argument to make_options")

# vim: foldmethod=marker
