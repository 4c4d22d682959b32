"""Versioned catalog of constructible type names.

Every type a model may name is registered here under its fully qualified
name at startup. Lookups never import or construct anything, so probing a
candidate name is free of side effects.
"""

import logging
from typing import Dict, Iterable, List, Optional

from . import distributions, evolution, inference, objects
from .exceptions import ResolutionError

logger = logging.getLogger(__name__)

CATALOG_VERSION = "2.7"

BASE = "beast.base"

_DEFAULT_TYPES = {
    f"{BASE}.inference.parameter": {
        "Parameter": objects.Parameter,
        "RealParameter": objects.RealParameter,
        "IntegerParameter": objects.IntegerParameter,
        "BooleanParameter": objects.BooleanParameter,
    },
    f"{BASE}.inference": {
        "StateNode": objects.StateNode,
        "CalculationNode": objects.CalculationNode,
        "Distribution": distributions.Distribution,
        "CompoundDistribution": distributions.CompoundDistribution,
        "Operator": inference.Operator,
        "State": inference.State,
        "Logger": inference.Logger,
        "MCMC": inference.MCMC,
    },
    f"{BASE}.inference.distribution": {
        "ParametricDistribution": distributions.ParametricDistribution,
        "Normal": distributions.Normal,
        "LogNormal": distributions.LogNormal,
        "LogNormalDistributionModel": distributions.LogNormal,
        "Exponential": distributions.Exponential,
        "Uniform": distributions.Uniform,
        "Gamma": distributions.Gamma,
        "Beta": distributions.Beta,
        "Poisson": distributions.Poisson,
        "Dirichlet": distributions.Dirichlet,
        "Prior": distributions.Prior,
    },
    f"{BASE}.inference.operator": {
        "ScaleOperator": inference.ScaleOperator,
        "RandomWalkOperator": inference.RandomWalkOperator,
        "IntRandomWalkOperator": inference.IntRandomWalkOperator,
        "BitFlipOperator": inference.BitFlipOperator,
        "DeltaExchangeOperator": inference.DeltaExchangeOperator,
    },
    f"{BASE}.evolution.alignment": {
        "Alignment": objects.Alignment,
        "FilteredAlignment": objects.FilteredAlignment,
        "Sequence": objects.Sequence,
        "Taxon": objects.Taxon,
        "TaxonSet": objects.TaxonSet,
    },
    f"{BASE}.evolution.tree": {
        "Tree": objects.Tree,
        "MRCAPrior": evolution.MRCAPrior,
    },
    f"{BASE}.evolution.tree.coalescent": {
        "PopulationFunction": evolution.PopulationFunction,
        "ConstantPopulation": evolution.ConstantPopulation,
        "RandomTree": evolution.RandomTree,
    },
    f"{BASE}.evolution.speciation": {
        "YuleModel": evolution.YuleModel,
        "BirthDeathGernhard08Model": evolution.BirthDeathGernhard08,
    },
    f"{BASE}.evolution.substitutionmodel": {
        "SubstitutionModel": evolution.SubstitutionModel,
        "Frequencies": evolution.Frequencies,
        "JukesCantor": evolution.JukesCantor,
        "HKY": evolution.HKY,
        "GTR": evolution.GTR,
    },
    f"{BASE}.evolution.sitemodel": {
        "SiteModel": evolution.SiteModel,
    },
    f"{BASE}.evolution.branchratemodel": {
        "BranchRateModel": evolution.BranchRateModel,
        "StrictClockModel": evolution.StrictClockModel,
    },
    f"{BASE}.evolution.likelihood": {
        "TreeLikelihood": evolution.TreeLikelihood,
    },
    f"{BASE}.evolution.operator": {
        "Uniform": inference.UniformOperator,
        "SubtreeSlide": inference.SubtreeSlide,
        "Exchange": inference.Exchange,
        "WilsonBalding": inference.WilsonBalding,
        "EpochFlexOperator": inference.EpochFlexOperator,
        "TreeStretchOperator": inference.TreeStretchOperator,
    },
}

# Plugin name -> packages it contributes, for ``requires`` statements.
_DEFAULT_PLUGINS = {
    "BEAST.base": [
        f"{BASE}.inference.parameter",
        f"{BASE}.inference.distribution",
        f"{BASE}.evolution.tree",
    ],
    "BEAST.app": [f"{BASE}.inference"],
    "BICEPS": [f"{BASE}.evolution.operator"],
}


class TypeCatalog:
    def __init__(self, version: str = CATALOG_VERSION):
        self.version = version
        self._types: Dict[str, type] = {}
        self._packages: Dict[str, List[str]] = {}
        self._plugins: Dict[str, List[str]] = {}

    @classmethod
    def default(cls) -> "TypeCatalog":
        catalog = cls()
        for package, members in _DEFAULT_TYPES.items():
            for short_name, klass in members.items():
                catalog.register(f"{package}.{short_name}", klass)
        for plugin, packages in _DEFAULT_PLUGINS.items():
            catalog.register_plugin(plugin, packages)
        logger.debug("Type catalog %s holds %d types", catalog.version, len(catalog))
        return catalog

    def register(self, qualified_name: str, klass: type) -> None:
        package, _, short_name = qualified_name.rpartition(".")
        self._types[qualified_name] = klass
        members = self._packages.setdefault(package, [])
        if short_name not in members:
            members.append(short_name)

    def register_plugin(self, plugin_name: str, packages: Iterable[str]) -> None:
        self._plugins[plugin_name] = list(packages)

    def exists(self, qualified_name: str) -> bool:
        return qualified_name in self._types

    def load(self, qualified_name: str) -> type:
        klass = self._types.get(qualified_name)
        if klass is None:
            raise ResolutionError(f"Class not found: {qualified_name}")
        return klass

    def package_members(self, package: str) -> List[str]:
        return list(self._packages.get(package, []))

    def plugin_packages(self, plugin_name: str) -> Optional[List[str]]:
        packages = self._plugins.get(plugin_name)
        return list(packages) if packages is not None else None

    def qualified_name_of(self, klass: type) -> Optional[str]:
        for name, registered in self._types.items():
            if registered is klass:
                return name
        return None

    def __len__(self) -> int:
        return len(self._types)

    def __contains__(self, qualified_name: str) -> bool:
        return self.exists(qualified_name)
