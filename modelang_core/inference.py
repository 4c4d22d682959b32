"""Run-level objects: operators, state, loggers and the MCMC run."""

import logging
from typing import List

from .distributions import Distribution
from .exceptions import InputError
from .inputs import Input, ModelObject
from .objects import (
    BooleanParameter,
    IntegerParameter,
    Parameter,
    StateNode,
    StateNodeInitialiser,
    Tree,
)

logger = logging.getLogger(__name__)


class Operator(ModelObject):
    INPUTS = (Input("weight", float, required=True, default=1.0),)

    def get_weight(self) -> float:
        return self.get_input_value("weight")

    def list_state_nodes(self) -> List[StateNode]:
        return [v for v in self.input_values() if isinstance(v, StateNode)]


# --- Parameter operators ---


class ScaleOperator(Operator):
    INPUTS = (
        Input("parameter", Parameter),
        Input("tree", Tree),
        Input("scaleFactor", float, default=0.75),
        Input("rootOnly", bool, default=False),
        Input("upper", float, default=1.0),
        Input("lower", float, default=0.0),
    )

    def _validate(self) -> None:
        if self.get_input_value("parameter") is None and self.get_input_value("tree") is None:
            raise InputError(f"{self.describe()} needs a parameter or a tree")


class RandomWalkOperator(Operator):
    INPUTS = (
        Input("parameter", Parameter, required=True),
        Input("windowSize", float, default=1.0),
    )


class IntRandomWalkOperator(Operator):
    INPUTS = (
        Input("parameter", IntegerParameter, required=True),
        Input("windowSize", int, default=1),
    )


class BitFlipOperator(Operator):
    INPUTS = (Input("parameter", BooleanParameter, required=True),)


class DeltaExchangeOperator(Operator):
    INPUTS = (
        Input("parameter", Parameter, is_collection=True, required=True),
        Input("delta", float, default=1.0),
        Input("integer", bool, default=False),
    )


# --- Tree operators ---


class TreeOperator(Operator):
    INPUTS = (Input("tree", Tree, required=True),)


class UniformOperator(TreeOperator):
    pass


class SubtreeSlide(TreeOperator):
    INPUTS = (Input("size", float, default=1.0),)


class Exchange(TreeOperator):
    INPUTS = (Input("isNarrow", bool, default=True),)


class WilsonBalding(TreeOperator):
    pass


class EpochFlexOperator(TreeOperator):
    INPUTS = (
        Input("scaleFactor", float, default=0.1),
        Input("fromOldestTipOnly", bool, default=True),
    )


class TreeStretchOperator(TreeOperator):
    INPUTS = (Input("scaleFactor", float, default=0.01),)


# --- Run composition ---


class State(ModelObject):
    INPUTS = (
        Input("stateNode", StateNode, is_collection=True),
        Input("storeEvery", int, default=-1),
    )

    def get_state_nodes(self) -> List[StateNode]:
        return list(self.get_input_value("stateNode"))

    def contains(self, node: StateNode) -> bool:
        return any(n is node for n in self.get_input_value("stateNode"))


class Logger(ModelObject):
    INPUTS = (
        Input("fileName", str),
        Input("logEvery", int, default=1000),
        Input("mode", str, default="autodetect"),
        Input("log", ModelObject, is_collection=True, required=True),
    )

    def get_logged(self) -> List[ModelObject]:
        return list(self.get_input_value("log"))


class MCMC(ModelObject):
    INPUTS = (
        Input("chainLength", int, required=True),
        Input("state", State, required=True),
        Input("distribution", Distribution, required=True),
        Input("operator", Operator, is_collection=True),
        Input("logger", Logger, is_collection=True),
        Input("init", StateNodeInitialiser, is_collection=True),
        Input("preBurnin", int, default=0),
    )

    def _validate(self) -> None:
        if self.get_input_value("chainLength") <= 0:
            raise InputError("chainLength must be positive")
        for op in self.get_input_value("operator"):
            for node in op.list_state_nodes():
                if not self.get_input_value("state").contains(node):
                    logger.warning(
                        "%s works on %s which is not in the state",
                        op.describe(),
                        node.describe(),
                    )
