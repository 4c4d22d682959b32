"""Phylogenetic model objects: substitution, site and clock models, tree
densities, calibrations and the random starting-tree initialiser."""

import logging
from typing import List, Optional

from .distributions import Distribution, ParametricDistribution, scalar
from .exceptions import InputError
from .inputs import Input
from .objects import (
    Alignment,
    CalculationNode,
    Node,
    Parameter,
    StateNode,
    StateNodeInitialiser,
    TaxonSet,
    Tree,
)

logger = logging.getLogger(__name__)


# --- Substitution, site and clock models ---


class Frequencies(CalculationNode):
    INPUTS = (
        Input("frequencies", Parameter),
        Input("data", Alignment),
        Input("estimate", bool, default=False),
    )

    def _validate(self) -> None:
        freqs = self.get_input_value("frequencies")
        if freqs is not None and freqs.get_dimension() > 0:
            total = sum(freqs.values)
            if abs(total - 1.0) > 1e-6:
                raise InputError(
                    f"Frequencies of {self.describe()} sum to {total}, not 1"
                )


class SubstitutionModel(CalculationNode):
    pass


class JukesCantor(SubstitutionModel):
    pass


class HKY(SubstitutionModel):
    INPUTS = (
        Input("kappa", Parameter, required=True),
        Input("frequencies", Frequencies, required=True),
    )


class GTR(SubstitutionModel):
    INPUTS = (
        Input("rates", Parameter, required=True),
        Input("frequencies", Frequencies, required=True),
    )

    def _validate(self) -> None:
        if self.get_input_value("rates").get_dimension() not in (1, 6):
            raise InputError(f"{self.describe()} needs 6 relative rates")


class SiteModel(CalculationNode):
    INPUTS = (
        Input("substModel", SubstitutionModel, required=True),
        Input("mutationRate", Parameter),
        Input("gammaCategoryCount", int, default=0),
        Input("shape", Parameter),
        Input("proportionInvariant", Parameter),
    )


class BranchRateModel(CalculationNode):
    pass


class StrictClockModel(BranchRateModel):
    INPUTS = (Input("clock.rate", Parameter),)


# --- Tree densities ---


class TreeLikelihood(Distribution):
    primary_input = "data"

    INPUTS = (
        Input("data", Alignment, required=True),
        Input("tree", Tree, required=True),
        Input("siteModel", SiteModel),
        Input("branchRateModel", BranchRateModel),
        Input("useAmbiguities", bool, default=False),
    )

    def _validate(self) -> None:
        tree = self.get_input_value("tree")
        data = self.get_input_value("data")
        taxonset = tree.get_taxonset()
        if taxonset is not None and taxonset.get_taxon_count() != data.get_taxon_count():
            raise InputError(
                f"{tree.describe()} has {taxonset.get_taxon_count()} taxa but "
                f"{data.describe()} has {data.get_taxon_count()}"
            )


class YuleModel(Distribution):
    primary_input = "tree"

    INPUTS = (
        Input("tree", Tree, required=True),
        Input("birthDiffRate", Parameter),
        Input("originHeight", Parameter),
        Input("conditionalOnRoot", bool, default=False),
    )


class BirthDeathGernhard08(Distribution):
    primary_input = "tree"

    INPUTS = (
        Input("tree", Tree, required=True),
        Input("birthDiffRate", Parameter, required=True),
        Input("relativeDeathRate", Parameter, required=True),
        Input("type", str, default="unscaled"),
    )


class MRCAPrior(Distribution):
    """Monophyly and age constraint on the MRCA of a taxon set."""

    primary_input = "tree"

    INPUTS = (
        Input("tree", Tree, required=True),
        Input("taxonset", TaxonSet, required=True),
        Input("monophyletic", bool, default=False),
        Input("distr", ParametricDistribution),
        Input("tipsonly", bool, default=False),
    )

    def has_distribution(self) -> bool:
        return self.get_input_value("distr") is not None

    def _validate(self) -> None:
        tree_taxa = self.get_input_value("tree").get_taxonset()
        if tree_taxa is None:
            return
        unknown = set(self.get_input_value("taxonset").get_taxa_names()) - set(
            tree_taxa.get_taxa_names()
        )
        if unknown:
            raise InputError(
                f"{self.describe()} names taxa not in the tree: {sorted(unknown)}"
            )


# --- Population models and the random starting tree ---


class PopulationFunction(CalculationNode):
    def get_pop_size(self, height: float) -> float:
        raise NotImplementedError


class ConstantPopulation(PopulationFunction):
    INPUTS = (Input("popSize", Parameter, required=True),)

    def get_pop_size(self, height: float) -> float:
        return scalar(self.get_input_value("popSize"), 1.0)


class RandomTree(CalculationNode, StateNodeInitialiser):
    """Coalescent starting tree for ``initial`` over ``taxa``."""

    INPUTS = (
        Input("taxa", TaxonSet),
        Input("populationModel", PopulationFunction, required=True),
        Input("initial", Tree, required=True),
        Input("constraint", MRCAPrior, is_collection=True),
        Input("estimate", bool, default=False),
        Input("rootHeight", float),
    )

    def _taxa_names(self) -> List[str]:
        taxa: Optional[TaxonSet] = self.get_input_value("taxa")
        if taxa is None:
            taxa = self.get_input_value("initial").get_taxonset()
        return taxa.get_taxa_names() if taxa is not None else []

    def _validate(self) -> None:
        if not self._taxa_names():
            raise InputError(f"{self.describe()} has no taxa to build a tree from")

    def init_state_nodes(self, rng) -> None:
        pop_size = self.get_input_value("populationModel").get_pop_size(0.0)
        lineages = [Node(0.0, taxon=name) for name in self._taxa_names()]
        height = 0.0
        while len(lineages) > 1:
            k = len(lineages)
            rate = k * (k - 1) / 2.0 / pop_size
            height += float(rng.exponential(1.0 / rate))
            i, j = sorted(rng.choice(k, size=2, replace=False).tolist())
            right = lineages.pop(j)
            left = lineages.pop(i)
            lineages.append(Node(height, children=[left, right]))
        root = lineages[0]
        target = self.get_input_value("rootHeight")
        if target and root.height > 0:
            _rescale(root, target / root.height)
        self.get_input_value("initial").assign_root(root)
        logger.info(
            "Initialised %s with root height %.4g",
            self.get_input_value("initial").describe(),
            root.height,
        )

    def get_initialised_state_nodes(self) -> List[StateNode]:
        return [self.get_input_value("initial")]


def _rescale(node: Node, factor: float) -> None:
    node.height *= factor
    for child in node.children:
        _rescale(child, factor)
