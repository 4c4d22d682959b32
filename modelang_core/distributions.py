"""Density-capable objects and parametric distributions.

``Distribution`` subclasses compute a log-density over state nodes and are
what the registry indexes as density-capable. ``ParametricDistribution``
subclasses are plain calculation nodes: they describe a family and can be
sampled, but they are only evaluated through a wrapping ``Prior``.
"""

import logging
import math
from typing import Any, List, Optional

from .inputs import Input
from .objects import CalculationNode, Parameter

logger = logging.getLogger(__name__)


def scalar(value: Any, default: float) -> float:
    """First component of a parameter, or a plain number."""
    if value is None:
        return default
    if isinstance(value, Parameter):
        return float(value.get_value(0)) if value.get_dimension() else default
    return float(value)


def vector(value: Any) -> List[float]:
    if value is None:
        return []
    if isinstance(value, Parameter):
        return [float(v) for v in value.values]
    if isinstance(value, (list, tuple)):
        return [float(v) for v in value]
    return [float(value)]


class Distribution(CalculationNode):
    """Base class for density-capable objects."""

    primary_input: Optional[str] = None

    def sample(self, state, rng) -> None:
        """Draw starting values for the state nodes this density covers."""
        logger.debug("%s does not sample", self.describe())


class ParametricDistribution(CalculationNode):
    INPUTS = (Input("offset", float, default=0.0),)

    def sample(self, size: int, rng) -> List[List[float]]:
        offset = self.get_input_value("offset") or 0.0
        return [[v + offset for v in self._draw(rng)] for _ in range(size)]

    def _draw(self, rng) -> List[float]:
        raise NotImplementedError

    def get_lower(self) -> float:
        return float("-inf")


class Normal(ParametricDistribution):
    INPUTS = (
        Input("mean", Parameter),
        Input("sigma", Parameter),
        Input("tau", Parameter),
    )

    def _draw(self, rng) -> List[float]:
        sigma = scalar(self.get_input_value("sigma"), 1.0)
        tau = self.get_input_value("tau")
        if tau is not None:
            sigma = 1.0 / scalar(tau, 1.0) ** 0.5
        return [float(rng.normal(scalar(self.get_input_value("mean"), 0.0), sigma))]


class LogNormal(ParametricDistribution):
    INPUTS = (
        Input("M", Parameter),
        Input("S", Parameter),
        Input("meanInRealSpace", bool, default=False),
    )

    def _draw(self, rng) -> List[float]:
        m = scalar(self.get_input_value("M"), 0.0)
        s = scalar(self.get_input_value("S"), 1.0)
        if self.get_input_value("meanInRealSpace"):
            m = math.log(m) - 0.5 * s * s if m > 0 else 0.0
        return [float(rng.lognormal(m, s))]

    def get_lower(self) -> float:
        return 0.0


class Exponential(ParametricDistribution):
    INPUTS = (Input("mean", Parameter),)

    def _draw(self, rng) -> List[float]:
        return [float(rng.exponential(scalar(self.get_input_value("mean"), 1.0)))]

    def get_lower(self) -> float:
        return 0.0


class Uniform(ParametricDistribution):
    INPUTS = (
        Input("lower", float, default=0.0),
        Input("upper", float, default=1.0),
    )

    def _draw(self, rng) -> List[float]:
        lower = self.get_input_value("lower")
        upper = self.get_input_value("upper")
        return [float(rng.uniform(lower, upper))]

    def get_lower(self) -> float:
        return float(self.get_input_value("lower"))


class Gamma(ParametricDistribution):
    INPUTS = (
        Input("alpha", Parameter),
        Input("beta", Parameter),
    )

    def _draw(self, rng) -> List[float]:
        shape = scalar(self.get_input_value("alpha"), 2.0)
        scale = scalar(self.get_input_value("beta"), 2.0)
        return [float(rng.gamma(shape, scale))]

    def get_lower(self) -> float:
        return 0.0


class Beta(ParametricDistribution):
    INPUTS = (
        Input("alpha", Parameter),
        Input("beta", Parameter),
    )

    def _draw(self, rng) -> List[float]:
        a = scalar(self.get_input_value("alpha"), 1.0)
        b = scalar(self.get_input_value("beta"), 1.0)
        return [float(rng.beta(a, b))]

    def get_lower(self) -> float:
        return 0.0


class Poisson(ParametricDistribution):
    INPUTS = (Input("lambda", Parameter),)

    def _draw(self, rng) -> List[float]:
        return [float(rng.poisson(scalar(self.get_input_value("lambda"), 1.0)))]

    def get_lower(self) -> float:
        return 0.0


class Dirichlet(ParametricDistribution):
    INPUTS = (Input("alpha", Parameter, required=True),)

    def _draw(self, rng) -> List[float]:
        alpha = vector(self.get_input_value("alpha")) or [1.0]
        return [float(v) for v in rng.dirichlet(alpha)]

    def get_lower(self) -> float:
        return 0.0


class Prior(Distribution):
    """Density of a parameter under a parametric distribution."""

    primary_input = "x"

    INPUTS = (
        Input("x", Parameter, required=True),
        Input("distr", ParametricDistribution, required=True),
    )

    def sample(self, state, rng) -> None:
        x = self.get_input_value("x")
        if not isinstance(x, Parameter) or not state.contains(x):
            return
        draw = self.get_input_value("distr").sample(1, rng)[0]
        dimension = max(x.get_dimension(), 1)
        values = [draw[i % len(draw)] for i in range(dimension)]
        x.set_values(values)
        logger.info("Sampled %s from %s", x.describe(), self.describe())


class CompoundDistribution(Distribution):
    INPUTS = (
        Input("distribution", Distribution, is_collection=True),
        Input("useThreads", bool, default=False),
    )

    def get_distributions(self) -> List[Distribution]:
        return list(self.get_input_value("distribution"))
