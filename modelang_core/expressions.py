import logging
from typing import Any, Optional

from .adapter import FrameworkAdapter
from .autobox import AutoboxingRegistry, parameter_class_for
from .exceptions import InputError
from .inputs import ModelObject
from .models import (
    ArrayLiteral,
    Expression,
    FunctionCall,
    Identifier,
    Literal,
    NexusFunction,
)
from .nexus import NexusLoader
from .objects import Alignment, Parameter
from .registry import ObjectRegistry
from .resolver import NameResolver
from .types import TypeCanon

logger = logging.getLogger(__name__)

DEFAULT_ALIGNMENT_ID = "alignment"

_PRIMITIVES = (float, int, bool, str)


def is_parameter_target(expected: Any) -> bool:
    return isinstance(expected, type) and (
        issubclass(expected, Parameter) or issubclass(Parameter, expected)
    )


class ExpressionResolver:
    """Turns AST expressions into runtime values against the registry."""

    def __init__(
        self,
        registry: ObjectRegistry,
        resolver: NameResolver,
        adapter: Optional[FrameworkAdapter] = None,
        autoboxer: Optional[AutoboxingRegistry] = None,
        loader: Optional[NexusLoader] = None,
    ):
        self.registry = registry
        self.resolver = resolver
        self.adapter = adapter or registry.adapter
        self.autoboxer = autoboxer if autoboxer is not None else AutoboxingRegistry(self.adapter)
        self.loader = loader if loader is not None else NexusLoader()

    def resolve(self, expr: Expression) -> Any:
        match expr:
            case Identifier(name=name):
                if not self.registry.contains(name):
                    logger.warning("Object not found: %s", name)
                    return None
                return self.registry.get(name)
            case Literal(value=value):
                return value
            case FunctionCall():
                return self.create_from_call(expr)
            case NexusFunction():
                return self.load_nexus(expr)
            case ArrayLiteral(elements=elements):
                return [self.resolve(e) for e in elements]
            case None:
                return None
        raise TypeError(f"Unsupported expression: {expr!r}")

    def resolve_with_coercion(self, expr: Expression, expected: Any) -> Any:
        """Resolve ``expr`` for a slot of type ``expected``."""
        if expected is None:
            return self.resolve(expr)
        match expr:
            case Literal(value=value):
                return self.coerce_literal(value, expected)
            case ArrayLiteral(elements=elements):
                if is_parameter_target(expected) and all(
                    isinstance(e, Literal) for e in elements
                ):
                    return self.autoboxer.autobox([e.value for e in elements], expected)
                return [self.resolve_with_coercion(e, expected) for e in elements]
        return self.coerce_value(self.resolve(expr), expected)

    def coerce_value(self, value: Any, expected: Any) -> Any:
        """Fit an already resolved value to a slot of type ``expected``."""
        if value is None or expected is None:
            return value
        if isinstance(value, list):
            if is_parameter_target(expected) and all(
                isinstance(v, _PRIMITIVES) for v in value
            ):
                return self.autoboxer.autobox(value, expected)
            return [self.autoboxer.autobox(v, expected) for v in value]
        if isinstance(value, _PRIMITIVES):
            return self.coerce_literal(value, expected)
        return self.autoboxer.autobox(value, expected)

    def coerce_literal(self, value: Any, expected: Any) -> Any:
        if is_parameter_target(expected):
            klass = parameter_class_for(value, expected)
            logger.debug("Wrapping literal %r in %s", value, klass.__name__)
            return self.adapter.create_parameter(klass, [value])
        if expected in _PRIMITIVES:
            return TypeCanon.convert(value, expected)
        return self.autoboxer.autobox(value, expected)

    # --- Nested objects ---

    def create_from_call(self, call: FunctionCall, object_id: Optional[str] = None) -> ModelObject:
        qualified = self.resolver.resolve_class_name(call.class_name)
        obj = self.adapter.create_object(qualified, object_id)
        self.configure_from_call(obj, call)
        self.adapter.init_and_validate(obj)
        return obj

    def configure_from_call(
        self, obj: ModelObject, call: FunctionCall, strict: bool = False, skip=()
    ) -> None:
        """Set every argument of ``call`` on ``obj`` through its schema.

        Unknown input names raise :class:`InputError` when ``strict`` and
        are logged and dropped otherwise.
        """
        for arg in call.arguments:
            if arg.name in skip:
                continue
            spec = self.adapter.get_input(obj, arg.name)
            if spec is None:
                if strict:
                    raise InputError(
                        f"No input named '{arg.name}' in {type(obj).__name__}"
                    )
                logger.warning(
                    "Input '%s' not found on %s, dropping it", arg.name, obj.describe()
                )
                continue
            value = self.resolve_with_coercion(arg.value, spec.expected_type)
            if value is None:
                logger.warning("No value for input '%s' of %s", arg.name, obj.describe())
                continue
            self.adapter.set_input_value(obj, arg.name, value)

    # --- Data loading ---

    def load_nexus(self, call: NexusFunction) -> Alignment:
        file_arg = call.get_argument("file")
        if file_arg is None:
            raise InputError("nexus() needs a 'file' argument")
        file_path = str(self.resolve(file_arg.value))
        id_arg = call.get_argument("id")
        alignment_id = str(self.resolve(id_arg.value)) if id_arg else DEFAULT_ALIGNMENT_ID
        return self.loader.load(file_path, alignment_id)
