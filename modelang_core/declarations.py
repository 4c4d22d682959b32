import logging
from typing import Any, List

from .adapter import ArrayType, FrameworkAdapter
from .exceptions import CastTypeError, ResolutionError
from .expressions import ExpressionResolver, is_parameter_target
from .models import (
    ArrayLiteral,
    FunctionCall,
    Identifier,
    Literal,
    NexusFunction,
    VariableDeclaration,
)
from .registry import ObjectRegistry
from .resolver import NameResolver
from .types import TypeCanon

logger = logging.getLogger(__name__)


class VariableDeclarationHandler:
    """Builds the object of a plain ``Type name = value;`` declaration."""

    def __init__(
        self,
        registry: ObjectRegistry,
        resolver: NameResolver,
        expressions: ExpressionResolver,
        adapter: FrameworkAdapter,
    ):
        self.registry = registry
        self.resolver = resolver
        self.expressions = expressions
        self.adapter = adapter

    def create_object(self, declaration: VariableDeclaration) -> Any:
        declared = self.resolver.resolve_class_name(declaration.class_name)
        name = declaration.variable_name
        match declaration.value:
            case ArrayLiteral() as array:
                value = self._create_array(declared, name, array)
            case Literal(value=literal):
                value = self._create_from_literal(declared, name, literal)
            case NexusFunction() as call:
                value = self.expressions.load_nexus(call)
            case FunctionCall() as call:
                value = self._create_from_call(declared, name, call)
            case Identifier() as ref:
                value = self._create_from_reference(declared, ref)
            case other:
                raise TypeError(f"Unsupported value for '{name}': {other!r}")
        if value is None:
            logger.warning("Declaration of '%s' produced no value", name)
            return None
        self.registry.register(name, value)
        return value

    def _create_array(self, declared: str, name: str, array: ArrayLiteral) -> List[Any]:
        if not TypeCanon.is_array(declared):
            raise CastTypeError(
                f"Array literal for '{name}' needs an array type, got {declared}"
            )
        component = self.adapter.load_type(TypeCanon.component_of(declared))
        values: List[Any] = []
        for element in array.elements:
            if component in (float, int, bool, str):
                value = self.expressions.resolve_with_coercion(element, component)
            else:
                value = self.expressions.resolve(element)
                if value is not None and not self.adapter.is_instance(value, component):
                    value = self.expressions.autoboxer.autobox(value, component)
            values.append(value)
        logger.info("Created array '%s' of %d %s", name, len(values), declared)
        return values

    def _create_from_literal(self, declared: str, name: str, literal: Any) -> Any:
        try:
            target = self.adapter.load_type(declared)
        except ResolutionError:
            logger.debug("Type %s not loadable, keeping literal for '%s'", declared, name)
            return literal
        if isinstance(target, ArrayType):
            raise CastTypeError(f"Cannot assign a single literal to array '{name}'")
        if is_parameter_target(target):
            value = self.expressions.coerce_literal(literal, target)
            self.adapter.set_id(value, name)
            return value
        if target in (float, int, bool, str):
            return TypeCanon.convert(literal, target)
        return self.expressions.autoboxer.autobox(literal, target)

    def _create_from_call(self, declared: str, name: str, call: FunctionCall) -> Any:
        declared_type = self.adapter.load_type(declared)
        implementation = self.resolver.resolve_class_name(call.class_name)
        impl_type = self.adapter.load_type(implementation)
        if not self.adapter.is_assignable(declared_type, impl_type):
            raise CastTypeError(
                f"{call.class_name} is not assignable to {declaration_label(declared)} "
                f"for variable '{name}'"
            )
        obj = self.adapter.create_object(implementation, name)
        self.expressions.configure_from_call(obj, call, strict=True)
        self.adapter.init_and_validate(obj)
        logger.info("Created %s", obj.describe())
        return obj

    def _create_from_reference(self, declared: str, ref: Identifier) -> Any:
        value = self.expressions.resolve(ref)
        if value is None or not self.adapter.can_load(declared):
            return value
        return self.expressions.autoboxer.autobox(value, self.adapter.load_type(declared))


def declaration_label(qualified: str) -> str:
    return qualified.rpartition(".")[2]
