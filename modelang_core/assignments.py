"""Construction of stochastic ``Type name ~ Distribution(...);`` statements.

A numeric parameter drawn from a parametric distribution becomes three
objects: the distribution ``<name>Dist``, the seeded parameter ``<name>``
and the wrapping prior ``<name>Prior``. Any other assignment reuses or
creates the variable and binds it to the primary input of a new density
object. Observed assignments alias the variable to its data object and
build a likelihood over it.
"""

import logging
from typing import Any, Iterable, Optional

import numpy as np

from .adapter import DATA_INPUTS, FrameworkAdapter
from .exceptions import CastTypeError, ConfigurationError, InputError, ResolutionError
from .expressions import ExpressionResolver
from .inputs import ModelObject
from .models import Argument, DistributionAssignment, FunctionCall
from .objects import Alignment, TaxonSet
from .registry import ObjectRegistry
from .resolver import NameResolver

logger = logging.getLogger(__name__)

DEFAULT_PARAMETER_VALUE = 0.5


class DistributionAssignmentHandler:
    def __init__(
        self,
        registry: ObjectRegistry,
        resolver: NameResolver,
        expressions: ExpressionResolver,
        adapter: FrameworkAdapter,
        rng: Optional[np.random.Generator] = None,
    ):
        self.registry = registry
        self.resolver = resolver
        self.expressions = expressions
        self.adapter = adapter
        self.rng = rng if rng is not None else np.random.default_rng()

    def create_objects(self, assignment: DistributionAssignment) -> Any:
        declared = self.resolver.resolve_class_name(assignment.class_name)
        declared_type = self.adapter.load_type(declared)
        name = assignment.variable_name
        expr = assignment.distribution
        logger.info("Creating random variable: %s", name)

        if isinstance(expr, FunctionCall) and self.adapter.is_parameter_type(declared_type):
            dist_type = self._probe_type(expr.class_name)
            if self.adapter.is_parametric_distribution_type(dist_type):
                return self._create_parametric(declared_type, name, expr)
        return self._create_generic(declared_type, name, expr)

    # --- Parametric case ---

    def _create_parametric(self, declared_type: type, name: str, call: FunctionCall) -> Any:
        dist = self.expressions.create_from_call(call, object_id=f"{name}Dist")

        existing = self.registry.get(name)
        if existing is not None and self.adapter.is_instance(existing, declared_type):
            logger.info("Reusing %s for a further distribution", existing.describe())
            parameter = existing
        else:
            draw = self.adapter.sample_from_distribution(dist, self.rng)
            parameter = self.adapter.create_parameter(declared_type, draw, name)
            logger.info("Seeded %s from %s with %s", name, dist.describe(), parameter.values)

        prior_id = self.unique_id(f"{name}Prior")
        prior = self.adapter.create_prior(parameter, dist, prior_id)

        self.registry.register(dist.id, dist)
        self.registry.register(name, parameter)
        self.registry.register(prior_id, prior)
        self.registry.add_distribution_association(name, prior_id)
        return parameter

    # --- Generic case ---

    def _create_generic(self, declared_type: Any, name: str, expr: Any) -> Any:
        variable = self.registry.get(name)
        if variable is not None and self.adapter.is_instance(variable, declared_type):
            logger.info("Reusing %s for a further distribution", variable.describe())
        else:
            variable = self._create_variable(declared_type, name)
            self.registry.register(name, variable)

        if not isinstance(expr, FunctionCall):
            logger.info("No distribution specified for %s", name)
            return variable

        dist_id = self.unique_id(f"{name}Prior")
        qualified = self.resolver.resolve_class_name(expr.class_name)
        dist = self.adapter.create_object(qualified, dist_id)

        primary = self.adapter.primary_input_name(dist, variable)
        connected = self._connect(dist, primary, variable)
        skip = {primary} if connected else set()
        for arg in expr.arguments:
            if arg.name not in skip:
                self.route_argument(arg, dist, variable)

        self.adapter.init_and_validate(dist)
        self.adapter.init_and_validate(variable)
        self.registry.register(dist_id, dist)
        self.registry.add_distribution_association(name, dist_id)
        return variable

    def _create_variable(self, declared_type: Any, name: str) -> Any:
        if not isinstance(declared_type, type) or not issubclass(declared_type, ModelObject):
            raise ResolutionError(f"Cannot create a random variable of type {declared_type}")
        variable = self.adapter.instantiate(declared_type, name)
        if self.adapter.is_parameter(variable):
            dimension = variable.get_input_value("dimension") or 1
            if dimension > 1:
                values = [1.0 / dimension] * dimension
            else:
                values = [DEFAULT_PARAMETER_VALUE]
            variable.set_input_value("value", values)
        return variable

    # --- Observed case ---

    def create_observed_objects(self, assignment: DistributionAssignment, data_ref: str) -> Any:
        name = assignment.variable_name
        logger.info("Creating observed variable %s with data %s", name, data_ref)
        data = self.registry.get(data_ref)
        if data is None:
            raise ConfigurationError(
                f"Data reference '{data_ref}' for observed variable '{name}' not found"
            )
        declared = self.resolver.resolve_class_name(assignment.class_name)
        declared_type = self.adapter.load_type(declared)
        if not self.adapter.is_instance(data, declared_type):
            raise ConfigurationError(
                f"Data reference '{data_ref}' of type {type(data).__name__} is not "
                f"compatible with {assignment.class_name} for '{name}'"
            )
        self.registry.register(name, data)

        expr = assignment.distribution
        if not isinstance(expr, FunctionCall):
            logger.info("No distribution specified for observed variable %s", name)
            return data

        likelihood_id = self.unique_id(f"{name}Likelihood")
        qualified = self.resolver.resolve_class_name(expr.class_name)
        likelihood = self.adapter.create_object(qualified, likelihood_id)

        primary = self.adapter.primary_input_name(likelihood, data)
        connected = self._connect(likelihood, primary, data)
        for arg in expr.arguments:
            if connected and (arg.name == primary or arg.name in DATA_INPUTS):
                continue
            self.route_argument(arg, likelihood, data)

        self.adapter.init_and_validate(likelihood)
        self.adapter.init_and_validate(data)
        self.registry.register(likelihood_id, likelihood)
        self.registry.add_distribution_association(name, likelihood_id)
        return data

    # --- Helpers ---

    def unique_id(self, base: str) -> str:
        if not self.registry.contains(base):
            return base
        suffix = 1
        while self.registry.contains(f"{base}{suffix}"):
            suffix += 1
        return f"{base}{suffix}"

    def _probe_type(self, class_name: str) -> Any:
        try:
            return self.adapter.load_type(self.resolver.resolve_class_name(class_name))
        except ResolutionError:
            return None

    def _connect(self, dist: ModelObject, primary: Optional[str], value: Any) -> bool:
        if primary is None:
            logger.warning("%s has no input to bind %r to", dist.describe(), value)
            return False
        try:
            self.adapter.set_input_value(dist, primary, value)
        except (InputError, CastTypeError) as e:
            logger.warning("Could not connect %r to %s.%s: %s", value, dist.describe(), primary, e)
            return False
        logger.debug("Connected %r to %s.%s", value, dist.describe(), primary)
        return True

    def route_argument(self, arg: Argument, dist: ModelObject, variable: Any) -> None:
        """Set ``arg`` on the distribution, or on the variable when only it
        has the input.

        Taxon sets and alignments go to the variable when its slot is still
        empty and the distribution does not require them.
        """
        dist_spec = self.adapter.get_input(dist, arg.name)
        var_spec = (
            self.adapter.get_input(variable, arg.name)
            if self.adapter.has_input(variable, arg.name)
            else None
        )
        if dist_spec is None and var_spec is None:
            logger.warning(
                "Input '%s' not found on %s or its variable, dropping it",
                arg.name,
                dist.describe(),
            )
            return

        value = self.expressions.resolve(arg.value)
        targets = []
        if var_spec is not None and self._prefers_variable(value, variable, arg.name, dist_spec):
            targets.append((variable, var_spec))
        if dist_spec is not None:
            targets.append((dist, dist_spec))
        if var_spec is not None and (variable, var_spec) not in targets:
            targets.append((variable, var_spec))
        self._set_first(arg, value, targets)

    def _prefers_variable(self, value, variable, input_name, dist_spec) -> bool:
        if not isinstance(value, (TaxonSet, Alignment)):
            return False
        if dist_spec is not None and dist_spec.required:
            return False
        return variable.get_input_value(input_name) in (None, [])

    def _set_first(self, arg: Argument, resolved: Any, targets: Iterable) -> None:
        if resolved is None:
            logger.warning("No value for input '%s'", arg.name)
            return
        error: Optional[Exception] = None
        for target, spec in targets:
            value = self.expressions.coerce_value(resolved, spec.expected_type)
            try:
                self.adapter.set_input_value(target, arg.name, value)
            except (InputError, CastTypeError) as e:
                logger.warning("Failed to set '%s' on %s: %s", arg.name, target.describe(), e)
                error = error or e
                continue
            logger.debug("Set '%s' on %s", arg.name, target.describe())
            return
        if error is not None:
            raise error
