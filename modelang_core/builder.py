import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np

from .adapter import FrameworkAdapter
from .assignments import DistributionAssignmentHandler
from .catalog import TypeCatalog
from .declarations import VariableDeclarationHandler
from .exceptions import CastTypeError, ConfigurationError, ModelError, ResolutionError
from .expressions import ExpressionResolver
from .models import (
    AnnotatedStatement,
    Annotation,
    Calibration,
    DistributionAssignment,
    FunctionCall,
    Identifier,
    ImportStatement,
    Literal,
    Program,
    RequiresStatement,
    Statement,
    VariableDeclaration,
)
from .nexus import NexusLoader
from .parser import parse_model
from .registry import ObjectRegistry
from .resolver import NameResolver

logger = logging.getLogger(__name__)


class ModelBuilder:
    """Builds the object graph of a parsed model in one textual-order pass.

    Statements are processed best effort: a statement that fails with a
    recoverable :class:`ModelError` is logged and skipped.
    :class:`ConfigurationError` and :class:`CastTypeError` abort the build.
    """

    def __init__(
        self,
        adapter: Optional[FrameworkAdapter] = None,
        catalog: Optional[TypeCatalog] = None,
        loader: Optional[NexusLoader] = None,
        rng: Optional[np.random.Generator] = None,
    ):
        if catalog is None:
            catalog = adapter.catalog if adapter is not None else TypeCatalog.default()
        self.catalog = catalog
        self.adapter = adapter if adapter is not None else FrameworkAdapter(self.catalog)
        self.loader = loader if loader is not None else NexusLoader()
        self.rng = rng
        self.registry = ObjectRegistry(self.adapter)
        self.built = False
        self._reset()

    def _reset(self) -> None:
        self.resolver = NameResolver(self.catalog)
        self.expressions = ExpressionResolver(
            self.registry, self.resolver, self.adapter, loader=self.loader
        )
        self.declarations = VariableDeclarationHandler(
            self.registry, self.resolver, self.expressions, self.adapter
        )
        rng = self.rng if self.rng is not None else np.random.default_rng()
        self.assignments = DistributionAssignmentHandler(
            self.registry, self.resolver, self.expressions, self.adapter, rng
        )

    # --- Entry points ---

    def build_model(self, program: Program) -> Dict[str, Any]:
        self.registry.clear()
        self.loader.clear()
        self.built = False
        self._reset()
        for imp in program.imports:
            self.resolver.add_import(imp.package_name, imp.wildcard)
        for req in program.requires:
            self.resolver.add_requires(req.plugin_name)

        for statement in program.statements:
            try:
                self.process_statement(statement)
            except (ConfigurationError, CastTypeError):
                raise
            except ModelError as e:
                logger.error("Skipping statement for '%s': %s", _statement_name(statement), e)

        self.built = True
        logger.info("%s", self.registry.get_statistics())
        return self.registry.all_objects()

    def build_from_source(self, source: str) -> Dict[str, Any]:
        return self.build_model(parse_model(source))

    def build_from_file(self, path: str) -> Dict[str, Any]:
        with open(path, "r", encoding="utf-8") as f:
            source = f.read()
        self.loader.base_path = os.path.dirname(os.path.abspath(path))
        return self.build_from_source(source)

    # --- Statements ---

    def process_statement(self, statement: Statement) -> None:
        match statement:
            case ImportStatement(package_name=package, wildcard=wildcard):
                self.resolver.add_import(package, wildcard)
            case RequiresStatement(plugin_name=plugin):
                self.resolver.add_requires(plugin)
            case VariableDeclaration():
                self.declarations.create_object(statement)
            case DistributionAssignment():
                self._process_assignment(statement)
            case AnnotatedStatement():
                self._process_annotated(statement)
            case _:
                raise TypeError(f"Unsupported statement: {statement!r}")

    def _process_assignment(self, assignment: DistributionAssignment) -> None:
        name = assignment.variable_name
        self.registry.mark_as_random_variable(name)
        data_ref = None
        if self.registry.is_observed_variable(name):
            data_ref = self.registry.get_data_reference(name)
        if data_ref is not None:
            self.assignments.create_observed_objects(assignment, data_ref)
        else:
            self.assignments.create_objects(assignment)

    def _process_annotated(self, statement: AnnotatedStatement) -> None:
        inner = statement.statement
        for annotation in statement.annotations:
            match annotation.name:
                case "data":
                    self._apply_data(annotation, inner)
                case "observed":
                    self._apply_observed(annotation, inner)
                case "calibration":
                    self._apply_calibration(annotation, inner)
                case other:
                    logger.warning(
                        "Ignoring unknown annotation @%s on '%s'", other, _statement_name(inner)
                    )
        self.process_statement(inner)

    def _apply_data(self, annotation: Annotation, inner: Statement) -> None:
        if not isinstance(inner, VariableDeclaration):
            raise ConfigurationError(
                f"@data can only annotate a declaration, not '{_statement_name(inner)}'"
            )
        self.registry.mark_as_data_annotated(inner.variable_name)

    def _apply_observed(self, annotation: Annotation, inner: Statement) -> None:
        if not isinstance(inner, DistributionAssignment):
            raise ConfigurationError(
                f"@observed can only annotate a ~ assignment, not '{_statement_name(inner)}'"
            )
        data_expr = annotation.get("data")
        if data_expr is None:
            raise ConfigurationError(
                f"@observed on '{inner.variable_name}' needs a 'data' parameter"
            )
        data_ref = _reference_name(data_expr)
        if data_ref is None:
            raise ConfigurationError(
                f"@observed on '{inner.variable_name}' has an invalid data reference"
            )
        if not self.registry.is_data_annotated(data_ref):
            raise ConfigurationError(
                f"Observed variable '{inner.variable_name}' references '{data_ref}', "
                f"which is not a @data variable"
            )
        self.registry.mark_as_observed_variable(inner.variable_name, data_ref)

    def _apply_calibration(self, annotation: Annotation, inner: Statement) -> None:
        if not isinstance(inner, DistributionAssignment) or not self._is_tree_type(
            inner.class_name
        ):
            logger.warning(
                "@calibration only applies to tree assignments, ignoring it on '%s'",
                _statement_name(inner),
            )
            return
        taxonset = _reference_name(annotation.get("taxonset"))
        if taxonset is None:
            logger.warning("@calibration on '%s' has no taxonset", inner.variable_name)
            return
        distribution = annotation.get("distribution")
        calibration = Calibration(
            taxonset=taxonset,
            distribution=distribution if isinstance(distribution, FunctionCall) else None,
            monophyletic=_flag(annotation.get("monophyletic"), True),
            leaf=_flag(annotation.get("leaf"), False),
        )
        self.registry.add_calibration(inner.variable_name, calibration)

    def _is_tree_type(self, class_name: str) -> bool:
        try:
            klass = self.adapter.load_type(self.resolver.resolve_class_name(class_name))
        except ResolutionError:
            return False
        return self.adapter.is_assignable(self.adapter.load_type(_TREE), klass)

    # --- Accessors ---

    def get_random_variables(self) -> List[str]:
        return self.registry.get_random_variables()

    def get_observed_variables(self) -> List[str]:
        return self.registry.get_observed_variables()

    def get_data_annotated_variables(self) -> List[str]:
        return self.registry.get_data_annotated_variables()

    def get_all_objects(self) -> Dict[str, Any]:
        return self.registry.all_objects()

    def get_state_nodes(self) -> Dict[str, Any]:
        return self.registry.state_nodes()

    def get_distributions(self) -> List[Any]:
        return self.registry.distributions()

    def get_object(self, name: str) -> Any:
        return self.registry.get(name)


_TREE = "beast.base.evolution.tree.Tree"


def _statement_name(statement: Any) -> str:
    if isinstance(statement, AnnotatedStatement):
        return _statement_name(statement.statement)
    return getattr(statement, "variable_name", None) or type(statement).__name__


def _reference_name(expr: Any) -> Optional[str]:
    match expr:
        case Identifier(name=name):
            return name
        case Literal(value=str() as name):
            return name
    return None


def _flag(expr: Any, default: bool) -> bool:
    if isinstance(expr, Literal) and isinstance(expr.value, bool):
        return expr.value
    return default
