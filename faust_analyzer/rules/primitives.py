"""Registry of built-in Faust primitive boxes."""

from enum import Enum
from pydantic import BaseModel
from ..core.types import Dimension


class PrimitiveCategory(str, Enum):
    WIRE = "wire"
    ARITHMETIC = "arithmetic"
    COMPARISON = "comparison"
    MATH = "math"
    DELAY = "delay"
    SELECT = "select"
    TABLE = "table"
    UI = "ui"
    GROUP = "group"
    CAST = "cast"


class Primitive(BaseModel):
    """A built-in box.

    ``ui_args`` is the argument count a UI constructor or group expects;
    such primitives only have a dimension once called.
    """
    name: str
    category: PrimitiveCategory
    arity: Dimension | None = None
    delay: bool = False
    ui_args: int | None = None


def _dim(inputs: int, outputs: int) -> Dimension:
    return Dimension(inputs=inputs, outputs=outputs)


def _table() -> dict[str, Primitive]:
    entries = [
        Primitive(name="_", category=PrimitiveCategory.WIRE, arity=_dim(1, 1)),
        Primitive(name="!", category=PrimitiveCategory.WIRE, arity=_dim(1, 0)),
        Primitive(name="mem", category=PrimitiveCategory.DELAY, arity=_dim(1, 1), delay=True),
        Primitive(name="@", category=PrimitiveCategory.DELAY, arity=_dim(2, 1), delay=True),
        Primitive(name="prefix", category=PrimitiveCategory.DELAY, arity=_dim(2, 1), delay=True),
        Primitive(name="select2", category=PrimitiveCategory.SELECT, arity=_dim(3, 1)),
        Primitive(name="select3", category=PrimitiveCategory.SELECT, arity=_dim(4, 1)),
        Primitive(name="rdtable", category=PrimitiveCategory.TABLE, arity=_dim(3, 1)),
        Primitive(name="rwtable", category=PrimitiveCategory.TABLE, arity=_dim(5, 1)),
        Primitive(name="attach", category=PrimitiveCategory.WIRE, arity=_dim(2, 1)),
        Primitive(name="int", category=PrimitiveCategory.CAST, arity=_dim(1, 1)),
        Primitive(name="float", category=PrimitiveCategory.CAST, arity=_dim(1, 1)),
    ]
    for op in ("+", "-", "*", "/", "%", "^"):
        entries.append(Primitive(name=op, category=PrimitiveCategory.ARITHMETIC, arity=_dim(2, 1)))
    for op in ("<", ">", "<=", ">=", "==", "!=", "&", "|", "xor", "<<", ">>"):
        entries.append(Primitive(name=op, category=PrimitiveCategory.COMPARISON, arity=_dim(2, 1)))
    for fn in ("sin", "cos", "tan", "asin", "acos", "atan", "exp", "log", "log10",
               "sqrt", "abs", "floor", "ceil", "rint"):
        entries.append(Primitive(name=fn, category=PrimitiveCategory.MATH, arity=_dim(1, 1)))
    for fn in ("pow", "min", "max", "fmod", "remainder", "atan2"):
        entries.append(Primitive(name=fn, category=PrimitiveCategory.MATH, arity=_dim(2, 1)))
    for control in ("button", "checkbox"):
        entries.append(Primitive(name=control, category=PrimitiveCategory.UI, ui_args=1))
    for control in ("hslider", "vslider", "nentry"):
        entries.append(Primitive(name=control, category=PrimitiveCategory.UI, ui_args=5))
    for bargraph in ("hbargraph", "vbargraph"):
        entries.append(Primitive(name=bargraph, category=PrimitiveCategory.UI, ui_args=3))
    for group in ("hgroup", "vgroup", "tgroup"):
        entries.append(Primitive(name=group, category=PrimitiveCategory.GROUP, ui_args=2))
    return {entry.name: entry for entry in entries}


PRIMITIVE_REGISTRY: dict[str, Primitive] = _table()

UI_CONTROLS = frozenset({"button", "checkbox", "hslider", "vslider", "nentry"})
BARGRAPHS = frozenset({"hbargraph", "vbargraph"})
GROUPS = frozenset({"hgroup", "vgroup", "tgroup"})
ITERATIONS = frozenset({"par", "seq", "sum", "prod"})


def get_primitive(name: str) -> Primitive | None:
    """Get a primitive by name."""
    return PRIMITIVE_REGISTRY.get(name)


def register_primitive(primitive: Primitive) -> None:
    """Register a new primitive box."""
    PRIMITIVE_REGISTRY[primitive.name] = primitive


def list_primitives() -> list[str]:
    """List all registered primitive names."""
    return list(PRIMITIVE_REGISTRY.keys())
