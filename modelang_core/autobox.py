"""Rule-based conversion of resolved values into the wrapper objects an input
expects: literals into parameters, parametric distributions into priors,
substitution models into site models and alignments into taxon sets."""

import logging
from typing import Any, List, Optional

from .adapter import FrameworkAdapter
from .distributions import ParametricDistribution, Prior
from .evolution import SiteModel, SubstitutionModel
from .exceptions import ModelError
from .objects import (
    Alignment,
    BooleanParameter,
    IntegerParameter,
    Parameter,
    RealParameter,
    TaxonSet,
)

logger = logging.getLogger(__name__)

_LITERAL = (bool, int, float, str)


def _targets(target: Any, klass: type) -> bool:
    """True when ``klass`` instances are usable for ``target`` or ``target``
    is a specialisation of ``klass``."""
    if isinstance(target, tuple):
        return any(_targets(t, klass) for t in target)
    if not isinstance(target, type):
        return False
    return issubclass(klass, target) or issubclass(target, klass)


def parameter_class_for(value: Any, target: Any) -> type:
    """Concrete parameter kind for ``value`` under ``target``.

    An explicit concrete target wins; a generic target follows the
    literal: booleans become boolean parameters, all numbers real ones.
    """
    for klass in (IntegerParameter, BooleanParameter, RealParameter):
        if isinstance(target, type) and issubclass(target, klass):
            return klass
    if isinstance(value, bool):
        return BooleanParameter
    return RealParameter


class AutoboxingRule:
    name = "rule"

    def can_autobox(self, value: Any, target: Any) -> bool:
        raise NotImplementedError

    def autobox(self, value: Any, target: Any, adapter: FrameworkAdapter) -> Any:
        raise NotImplementedError


class LiteralToParameterRule(AutoboxingRule):
    name = "literal to parameter"

    def can_autobox(self, value, target):
        return isinstance(value, _LITERAL) and _targets(target, Parameter)

    def autobox(self, value, target, adapter):
        klass = parameter_class_for(value, target)
        return adapter.create_parameter(klass, [value])


class ListToParameterRule(AutoboxingRule):
    name = "list to parameter"

    def can_autobox(self, value, target):
        return (
            isinstance(value, list)
            and bool(value)
            and all(isinstance(v, _LITERAL) for v in value)
            and _targets(target, Parameter)
        )

    def autobox(self, value, target, adapter):
        klass = parameter_class_for(value[0], target)
        return adapter.create_parameter(klass, value)


class ParametricDistributionToPriorRule(AutoboxingRule):
    name = "parametric distribution to prior"

    def can_autobox(self, value, target):
        return isinstance(value, ParametricDistribution) and _targets(target, Prior)

    def autobox(self, value, target, adapter):
        # ``x`` is bound by whoever receives the prior, so no validation here
        prior = Prior()
        prior.set_input_value("distr", value)
        return prior


class SubstitutionModelToSiteModelRule(AutoboxingRule):
    name = "substitution model to site model"

    def can_autobox(self, value, target):
        return isinstance(value, SubstitutionModel) and _targets(target, SiteModel)

    def autobox(self, value, target, adapter):
        return SiteModel(substModel=value)


class AlignmentToTaxonSetRule(AutoboxingRule):
    name = "alignment to taxon set"

    def can_autobox(self, value, target):
        return isinstance(value, Alignment) and _targets(target, TaxonSet)

    def autobox(self, value, target, adapter):
        return TaxonSet(alignment=value)


class AutoboxingRegistry:
    def __init__(self, adapter: Optional[FrameworkAdapter] = None, rules=None):
        self.adapter = adapter if adapter is not None else FrameworkAdapter()
        self.rules: List[AutoboxingRule] = list(rules) if rules is not None else [
            LiteralToParameterRule(),
            ListToParameterRule(),
            ParametricDistributionToPriorRule(),
            SubstitutionModelToSiteModelRule(),
            AlignmentToTaxonSetRule(),
        ]

    def add_rule(self, rule: AutoboxingRule) -> None:
        self.rules.append(rule)

    def autobox(self, value: Any, target: Any) -> Any:
        """Convert ``value`` for ``target``; unchanged when no rule applies."""
        if value is None or target is None or self.adapter.is_instance(value, target):
            return value
        for rule in self.rules:
            if not rule.can_autobox(value, target):
                continue
            try:
                result = rule.autobox(value, target, self.adapter)
            except (ModelError, ValueError, TypeError) as e:
                logger.warning("Autoboxing with %s failed: %s", rule.name, e)
                continue
            if result is not None:
                logger.info(
                    "Autoboxed %s to %s using %s",
                    type(value).__name__,
                    type(result).__name__,
                    rule.name,
                )
                return result
        return value
