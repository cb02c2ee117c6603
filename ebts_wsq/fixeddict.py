r"""
The :py:mod:`ebts_wsq.fixeddict` module provides the :py:func:`fixeddict`
function for creating :py:class:`dict` subclasses which only permit a preset
list of keys. The WSQ codec uses these in place of struct-like objects for its
tables, tree nodes and frame headers so that:

* Misspelt key names fail loudly with a :py:exc:`FixedDictKeyError`.
* Values print in a readable, indented form.

For example::

    >>> from ebts_wsq.fixeddict import fixeddict, Entry

    >>> FrameHeader = fixeddict(
    ...     "FrameHeader",
    ...     "width",
    ...     "height",
    ...     Entry("m_shift", formatter="{:.4f}".format),
    ... )

    >>> f = FrameHeader(width=500, height=500, m_shift=127.25)
    >>> print(f)
    FrameHeader:
      width: 500
      height: 500
      m_shift: 127.2500

    >>> f["depth"] = 8
    Traceback (most recent call last):
      ...
    FixedDictKeyError: 'depth' not allowed in FrameHeader

.. autofunction:: fixeddict

.. autoclass:: Entry

.. autoexception:: FixedDictKeyError
"""

import sys

from collections import OrderedDict

from textwrap import dedent

from ebts_wsq.string_utils import indent

__all__ = [
    "fixeddict",
    "Entry",
    "FixedDictKeyError",
]


class Entry(object):
    """
    Describes one permitted entry of a :py:func:`fixeddict`.

    Parameters
    ==========
    name : str
    formatter : function(value) -> str
        Used when printing the value. Defaults to :py:class:`str`.
    help : str
        Optional documentation for the entry.
    help_type : str
        Optional description of the value's type.
    """

    def __init__(self, name, formatter=str, help=None, help_type=None):
        self.name = name
        self.formatter = formatter
        self.help = dedent(help).strip() if help is not None else None
        self.help_type = help_type


class FixedDictKeyError(KeyError):
    """
    A :py:exc:`KeyError` naming the :py:func:`fixeddict` type which rejected
    the key.
    """

    def __init__(self, key, fixeddict_class):
        super(FixedDictKeyError, self).__init__(key)
        self.key = key
        self.fixeddict_class = fixeddict_class

    def __str__(self):
        return "{!r} not allowed in {}".format(self.key, self.fixeddict_class.__name__)


def fixeddict(name, *entries, **kwargs):
    """
    Create a fixed-entry dictionary type called 'name'.

    The remaining positional arguments are key names (strings) or
    :py:class:`Entry` instances. The keyword-only argument 'help' sets the
    docstring of the new type; 'module' overrides its ``__module__`` (by
    default the caller's module).

    Entries whose names begin with an underscore are omitted when the
    dictionary is printed.
    """
    module = kwargs.pop("module", None)
    help = kwargs.pop("help", None)
    assert not kwargs, "Got unexpected keyword arguments: {}".format(", ".join(kwargs))

    entry_objs = OrderedDict(
        (entry.name, entry)
        for entry in (arg if isinstance(arg, Entry) else Entry(arg) for arg in entries)
    )

    def check_key(self, key):
        if key not in entry_objs:
            raise FixedDictKeyError(key, self.__class__)

    def __init__(self, *args, **kwargs):
        dict.__init__(self, *args, **kwargs)
        for key in self.keys():
            check_key(self, key)

    def __setitem__(self, key, value):
        check_key(self, key)
        dict.__setitem__(self, key, value)

    def setdefault(self, key, value=None):
        check_key(self, key)
        return dict.setdefault(self, key, value)

    def update(self, other=(), **more):
        for key, value in dict(other, **more).items():
            self[key] = value

    def copy(self):
        return self.__class__(self)

    def __repr__(self):
        return "{}({{{}}})".format(
            self.__class__.__name__,
            ", ".join(
                "{!r}: {!r}".format(key, self[key]) for key in entry_objs if key in self
            ),
        )

    def __str__(self):
        lines = [
            indent("{}: {}".format(key, entry.formatter(self[key])))
            for key, entry in entry_objs.items()
            if key in self and not key.startswith("_")
        ]
        if not lines:
            return self.__class__.__name__
        return "{}:\n{}".format(self.__class__.__name__, "\n".join(lines))

    def __reduce__(self):
        return (type(self), (dict(self),))

    doc = "{}\n\nParameters\n==========\n{}\n".format(
        dedent(help).strip() if help is not None else "A fixed-entry dictionary.",
        "\n".join(
            "{}{}{}".format(
                entry.name,
                " : " + entry.help_type if entry.help_type is not None else "",
                "\n" + indent(entry.help, "    ") if entry.help is not None else "",
            )
            for entry in entry_objs.values()
        ),
    )

    cls = type(
        name,
        (dict,),
        {
            "__init__": __init__,
            "__setitem__": __setitem__,
            "setdefault": setdefault,
            "update": update,
            "copy": copy,
            "__repr__": __repr__,
            "__str__": __str__,
            "__reduce__": __reduce__,
            "__doc__": doc,
            "entry_objs": entry_objs,
        },
    )

    if module is None:
        # Same trick as enum.Enum uses to make the type picklable
        try:
            module = sys._getframe(1).f_globals["__name__"]
        except (AttributeError, ValueError, KeyError):
            pass
    if module is not None:
        cls.__module__ = module

    return cls
