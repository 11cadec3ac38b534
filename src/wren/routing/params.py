"""Parameter conversion for route segments and handler arguments.

Two steps, applied by the invoker in order:

1. The route's declared type (``/{id:int}``) converts the captured
   string with ``convert_param``.
2. The handler's annotation (``def show(self, id: int)``) converts any
   value still a string with ``coerce``. Only scalar annotations are
   coerced; everything else is passed through untouched.
"""

from typing import Any

# Converter name -> (regex for the route table, callable for the invoker)
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "float": (r"\d+(?:\.\d+)?", float),
    "path": (r".+", str),
}

COERCIBLE: tuple[type, ...] = (int, float)


def convert_param(value: str, param_type: str) -> str | int | float:
    """Convert a captured segment with the route's declared converter.

    Raises ``KeyError`` for an unknown converter name and ``ValueError``
    when the segment does not convert.
    """
    _, target = CONVERTERS[param_type]
    return target(value)


def coerce(value: Any, annotation: Any) -> Any:
    """Convert string *value* to *annotation* when it is ``int`` or ``float``.

    Raises ``ValueError`` when the string does not parse.
    """
    if annotation not in COERCIBLE or not isinstance(value, str):
        return value
    return annotation(value)
