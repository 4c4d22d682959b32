"""Bridge between the assembly engine and the host object framework.

The builder never touches framework classes directly: it asks the adapter
to load types by qualified name, create and configure objects, classify
them by capability and draw starting values.
"""

import logging
import math
from typing import Any, Iterable, List, Optional

from .catalog import TypeCatalog
from .distributions import Distribution, ParametricDistribution, Prior
from .exceptions import ResolutionError
from .inputs import Input, ModelObject
from .objects import (
    Alignment,
    BooleanParameter,
    IntegerParameter,
    Parameter,
    RealParameter,
    StateNode,
    Tree,
)
from .types import TypeCanon

logger = logging.getLogger(__name__)

PARAMETER_INPUTS = ("x", "parameter")
TREE_INPUTS = ("tree", "treeModel")
DATA_INPUTS = ("data", "patterns", "alignment", "x")
COMMON_INPUTS = ("data", "taxonset", "network", "trait", "patterns")

FALLBACK_DRAW = 0.5


class ArrayType:
    """Loaded form of an ``X[]`` type name."""

    def __init__(self, component: type):
        self.component = component

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, ArrayType) and other.component is self.component

    def __hash__(self) -> int:
        return hash(("array", self.component))

    def __repr__(self) -> str:
        return f"{getattr(self.component, '__name__', self.component)}[]"


class FrameworkAdapter:
    def __init__(self, catalog: Optional[TypeCatalog] = None):
        self.catalog = catalog if catalog is not None else TypeCatalog.default()

    # --- Types ---

    def load_type(self, name: str) -> Any:
        if TypeCanon.is_array(name):
            return ArrayType(self.load_type(TypeCanon.component_of(name)))
        builtin = TypeCanon.builtin_type(name)
        if builtin is not None:
            return builtin
        return self.catalog.load(name)

    def can_load(self, name: str) -> bool:
        try:
            self.load_type(name)
        except ResolutionError:
            return False
        return True

    def is_assignable(self, target: Any, source: Any) -> bool:
        """True when instances of ``source`` may stand where ``target`` is expected."""
        if target is None or target is source:
            return True
        if isinstance(target, ArrayType):
            return isinstance(source, ArrayType) and self.is_assignable(
                target.component, source.component
            )
        if isinstance(source, ArrayType):
            return False
        if target is float and source is int:
            return True
        return isinstance(source, type) and isinstance(target, type) and issubclass(
            source, target
        )

    def is_instance(self, value: Any, target: Any) -> bool:
        if target is None:
            return True
        if isinstance(target, ArrayType):
            return isinstance(value, list) and all(
                self.is_instance(v, target.component) for v in value
            )
        if target is float:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if target is int:
            return isinstance(value, int) and not isinstance(value, bool)
        return isinstance(value, target)

    # --- Objects ---

    def create_object(self, name: str, object_id: Optional[str] = None) -> ModelObject:
        klass = self.load_type(name)
        if not isinstance(klass, type) or not issubclass(klass, ModelObject):
            raise ResolutionError(f"Type '{name}' cannot be instantiated")
        return self.instantiate(klass, object_id)

    def instantiate(self, klass: type, object_id: Optional[str] = None) -> ModelObject:
        obj = klass(object_id)
        logger.debug("Created %s", obj.describe())
        return obj

    def set_id(self, obj: Any, object_id: str) -> None:
        if isinstance(obj, ModelObject):
            obj.id = object_id

    def get_input(self, obj: ModelObject, name: str) -> Optional[Input]:
        return obj.get_input(name)

    def has_input(self, obj: Any, name: str) -> bool:
        return isinstance(obj, ModelObject) and obj.has_input(name)

    def set_input_value(self, obj: ModelObject, name: str, value: Any) -> None:
        obj.set_input_value(name, value)

    def init_and_validate(self, obj: Any) -> None:
        if isinstance(obj, ModelObject):
            obj.init_and_validate()

    # --- Classification ---

    def is_state_node(self, obj: Any) -> bool:
        return isinstance(obj, StateNode)

    def is_distribution(self, obj: Any) -> bool:
        return isinstance(obj, Distribution)

    def is_parametric_distribution(self, obj: Any) -> bool:
        return isinstance(obj, ParametricDistribution)

    def is_parameter(self, obj: Any) -> bool:
        return isinstance(obj, Parameter)

    def is_tree(self, obj: Any) -> bool:
        return isinstance(obj, Tree)

    def is_alignment(self, obj: Any) -> bool:
        return isinstance(obj, Alignment)

    def is_parameter_type(self, klass: Any) -> bool:
        return isinstance(klass, type) and issubclass(klass, Parameter)

    def is_parametric_distribution_type(self, klass: Any) -> bool:
        return isinstance(klass, type) and issubclass(klass, ParametricDistribution)

    # --- Primary inputs ---

    def primary_input_name(self, dist: Any, value: Any = None) -> Optional[str]:
        """Input of ``dist`` that receives the variable it is a density over.

        The most specific ``primary_input`` declared along the MRO wins.
        Otherwise the first kind-specific candidate whose expected type
        accepts ``value`` is used.
        """
        for klass in type(dist).__mro__:
            declared = klass.__dict__.get("primary_input")
            if declared:
                return declared
        if self.is_parameter(value):
            candidates: Iterable[str] = PARAMETER_INPUTS
        elif self.is_tree(value):
            candidates = TREE_INPUTS
        elif self.is_alignment(value):
            candidates = DATA_INPUTS
        else:
            candidates = COMMON_INPUTS
        for name in candidates:
            spec = self.get_input(dist, name) if isinstance(dist, ModelObject) else None
            if spec is not None and (value is None or spec.accepts(value)):
                return name
        return None

    # --- Parameters ---

    def create_real_parameter(
        self, values: List[Any], object_id: Optional[str] = None
    ) -> RealParameter:
        return RealParameter(object_id, value=list(values))

    def create_integer_parameter(
        self, values: List[Any], object_id: Optional[str] = None
    ) -> IntegerParameter:
        return IntegerParameter(object_id, value=list(values))

    def create_boolean_parameter(
        self, values: List[Any], object_id: Optional[str] = None
    ) -> BooleanParameter:
        return BooleanParameter(object_id, value=list(values))

    def create_parameter(
        self, klass: Any, values: List[Any], object_id: Optional[str] = None
    ) -> Parameter:
        if klass is IntegerParameter:
            return self.create_integer_parameter(values, object_id)
        if klass is BooleanParameter:
            return self.create_boolean_parameter(values, object_id)
        if isinstance(klass, type) and issubclass(klass, Parameter) and klass not in (
            Parameter,
            RealParameter,
        ):
            return klass(object_id, value=list(values))
        return self.create_real_parameter(values, object_id)

    def create_prior(
        self, parameter: Parameter, dist: ParametricDistribution, object_id: str
    ) -> Prior:
        return Prior(object_id, x=parameter, distr=dist)

    # --- Sampling ---

    def sample_from_distribution(self, dist: ParametricDistribution, rng) -> List[float]:
        """One draw, with non-finite components replaced."""
        try:
            draw = dist.sample(1, rng)[0]
        except (ValueError, ArithmeticError) as e:
            logger.warning("Sampling %s failed: %s", dist.describe(), e)
            return [FALLBACK_DRAW]
        values = [v if math.isfinite(v) else FALLBACK_DRAW for v in draw]
        return values or [FALLBACK_DRAW]
