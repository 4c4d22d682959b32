"""Default proposal operators per state-node kind."""

import logging
from typing import Dict, Optional

from .inference import (
    BitFlipOperator,
    DeltaExchangeOperator,
    EpochFlexOperator,
    Exchange,
    IntRandomWalkOperator,
    Operator,
    RandomWalkOperator,
    ScaleOperator,
    SubtreeSlide,
    TreeStretchOperator,
    UniformOperator,
    WilsonBalding,
)
from .objects import BooleanParameter, IntegerParameter, Parameter, Tree

logger = logging.getLogger(__name__)


def operator_weight(size: float, power: float = 0.7) -> float:
    return float(size) ** power


class OperatorCache:
    """Operators keyed by node, so a node never gets a second set."""

    def __init__(self):
        self._operators: Dict[str, Operator] = {}

    def has_operators(self, key: str) -> bool:
        return key in self._operators

    def add_operator(self, key: str, operator: Operator) -> None:
        self._operators[key] = operator

    def operators(self):
        return list(self._operators.values())

    def clear(self) -> None:
        self._operators.clear()

    def __len__(self) -> int:
        return len(self._operators)


class ParameterOperatorFactory:
    def __init__(self, cache: OperatorCache):
        self.cache = cache

    def add_operators(self, param: Parameter) -> None:
        key = f"{param.id}Operator"
        if self.cache.has_operators(key):
            return
        operator = self.create_operator(param)
        if operator is None:
            logger.warning("Could not create an operator for %s", param.id)
            return
        self.cache.add_operator(key, operator)
        logger.debug("Added %s for %s", type(operator).__name__, param.id)

    def create_operator(self, param: Parameter) -> Optional[Operator]:
        dimension = param.get_dimension()
        weight = operator_weight(dimension)
        if dimension > 1:
            return DeltaExchangeOperator(
                f"{param.id}.deltaExchange",
                parameter=param,
                weight=operator_weight(dimension - 1),
                delta=1.0 / dimension,
            )
        if isinstance(param, BooleanParameter):
            return BitFlipOperator(f"{param.id}.bitFlip", parameter=param, weight=weight)
        if isinstance(param, IntegerParameter):
            return IntRandomWalkOperator(
                f"{param.id}.randomWalk", parameter=param, weight=weight, windowSize=1
            )
        lower = param.get_lower()
        if lower is None or lower < 0:
            return RandomWalkOperator(
                f"{param.id}.randomWalk", parameter=param, weight=weight, windowSize=0.75
            )
        return ScaleOperator(
            f"{param.id}.scale", parameter=param, weight=weight, scaleFactor=0.75
        )


class TreeOperatorFactory:
    def __init__(self, cache: OperatorCache):
        self.cache = cache

    def add_operators(self, tree: Tree) -> None:
        tree_id = tree.id
        if self.cache.has_operators(f"{tree_id}RootHeightScaler"):
            return
        internal = tree.get_internal_node_count()
        operators = [
            ("RootHeightScaler", ScaleOperator(
                f"{tree_id}.rootAgeScale",
                tree=tree,
                rootOnly=True,
                scaleFactor=0.75,
                upper=0.975,
                weight=operator_weight(1),
            )),
            ("Uniform", UniformOperator(
                f"{tree_id}.uniform", tree=tree, weight=operator_weight(internal)
            )),
            ("EpochTop", EpochFlexOperator(
                f"{tree_id}.BICEPSEpochTop",
                tree=tree,
                scaleFactor=0.1,
                weight=operator_weight(1),
            )),
            ("EpochAll", EpochFlexOperator(
                f"{tree_id}.BICEPSEpochAll",
                tree=tree,
                scaleFactor=0.1,
                weight=operator_weight(2),
                fromOldestTipOnly=False,
            )),
            ("TreeFlex", TreeStretchOperator(
                f"{tree_id}.BICEPSTreeFlex",
                tree=tree,
                scaleFactor=0.01,
                weight=operator_weight(internal),
            )),
            ("SubtreeSlide", SubtreeSlide(
                f"{tree_id}.subtreeSlide",
                tree=tree,
                size=tree.get_root_height() / 10.0,
                weight=operator_weight(internal),
            )),
            ("NarrowExchange", Exchange(
                f"{tree_id}.narrowExchange",
                tree=tree,
                isNarrow=True,
                weight=operator_weight(internal),
            )),
            ("WideExchange", Exchange(
                f"{tree_id}.wideExchange",
                tree=tree,
                isNarrow=False,
                weight=operator_weight(internal, 0.2),
            )),
            ("WilsonBalding", WilsonBalding(
                f"{tree_id}.wilsonBalding", tree=tree, weight=operator_weight(internal, 0.2)
            )),
        ]
        for suffix, operator in operators:
            self.cache.add_operator(f"{tree_id}{suffix}", operator)
        logger.debug("Added %d operators for tree %s", len(operators), tree_id)
