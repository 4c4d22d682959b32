"""Input schema and the base class for every constructible model object.

Each concrete class declares its inputs once, as a tuple of :class:`Input`
specs in ``INPUTS``. :func:`schema_for` merges the declarations along the
class MRO and caches the result, so the expected type of any input slot is
known without inspecting live values.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, List, Optional, Tuple

from .exceptions import CastTypeError, InputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Input:
    name: str
    expected_type: Any
    required: bool = False
    is_collection: bool = False
    default: Any = None
    tip: str = ""

    def accepts(self, value: Any) -> bool:
        """True when ``value`` (or each element, for collections) fits."""
        if value is None:
            return True
        if self.is_collection and isinstance(value, (list, tuple)):
            return all(_fits(self.expected_type, v) for v in value)
        return _fits(self.expected_type, value)


def _fits(expected: Any, value: Any) -> bool:
    if expected is Any or expected is object:
        return True
    if expected is float:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if isinstance(expected, tuple):
        return any(_fits(e, value) for e in expected)
    return isinstance(value, expected)


@lru_cache(maxsize=None)
def schema_for(cls: type) -> Dict[str, Input]:
    schema: Dict[str, Input] = {}
    for klass in reversed(cls.__mro__):
        for spec in klass.__dict__.get("INPUTS", ()):
            schema[spec.name] = spec
    return schema


class ModelObject:
    """Base of the host object framework.

    Inputs are stored by name; ``set_input_value`` type-checks against the
    class schema, appending for collection inputs. ``init_and_validate``
    checks required inputs and then runs the subclass hook ``_validate``.
    """

    INPUTS: Tuple[Input, ...] = ()

    def __init__(self, object_id: Optional[str] = None, **inputs: Any):
        self.id = object_id
        self._values: Dict[str, Any] = {}
        for name, spec in self.schema().items():
            if spec.is_collection:
                self._values[name] = []
            else:
                self._values[name] = spec.default
        if inputs:
            self.init_by_name(**inputs)

    @classmethod
    def schema(cls) -> Dict[str, Input]:
        return schema_for(cls)

    def get_input(self, name: str) -> Optional[Input]:
        return self.schema().get(name)

    def has_input(self, name: str) -> bool:
        return name in self.schema()

    def get_input_value(self, name: str) -> Any:
        if name not in self._values:
            raise InputError(f"No input named '{name}' in {type(self).__name__}")
        return self._values[name]

    def set_input_value(self, name: str, value: Any) -> None:
        spec = self.get_input(name)
        if spec is None:
            raise InputError(f"No input named '{name}' in {type(self).__name__}")
        if not spec.accepts(value):
            raise CastTypeError(
                f"Input '{name}' of {type(self).__name__} expects "
                f"{_type_label(spec.expected_type)}, got {type(value).__name__}"
            )
        if spec.expected_type is float and isinstance(value, int):
            value = float(value)
        if spec.is_collection:
            if isinstance(value, (list, tuple)):
                self._values[name].extend(value)
            elif value is not None:
                self._values[name].append(value)
        else:
            self._values[name] = value

    def init_by_name(self, **inputs: Any) -> "ModelObject":
        for name, value in inputs.items():
            self.set_input_value(name, value)
        self.init_and_validate()
        return self

    def init_and_validate(self) -> None:
        for name, spec in self.schema().items():
            if not spec.required:
                continue
            value = self._values.get(name)
            if value is None or (spec.is_collection and not value):
                raise InputError(
                    f"Input '{name}' must be specified for {self.describe()}"
                )
        self._validate()

    def _validate(self) -> None:
        pass

    def input_values(self) -> List[Any]:
        values: List[Any] = []
        for name in self.schema():
            value = self._values.get(name)
            if isinstance(value, list):
                values.extend(value)
            elif value is not None:
                values.append(value)
        return values

    def describe(self) -> str:
        if self.id:
            return f"{type(self).__name__} '{self.id}'"
        return type(self).__name__

    def __repr__(self) -> str:
        return f"<{self.describe()}>"


def _type_label(expected: Any) -> str:
    if isinstance(expected, tuple):
        return " or ".join(_type_label(e) for e in expected)
    return getattr(expected, "__name__", str(expected))
