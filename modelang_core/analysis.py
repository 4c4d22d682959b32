"""Assembly of a complete MCMC run from a built model.

``AnalysisBuilder.build_run`` works in fixed phases: tree initialisation,
state assembly, seeding of starting values, prior/likelihood/posterior
composition, operators, loggers and finally the ``MCMC`` object itself.
"""

import logging
import os
from typing import Any, Dict, List, Optional

import numpy as np

from .builder import ModelBuilder
from .distributions import CompoundDistribution, Distribution
from .evolution import ConstantPopulation, MRCAPrior, RandomTree, TreeLikelihood
from .exceptions import ConfigurationError, ModelError
from .inference import MCMC, Logger, Operator, State
from .models import AnalysisConfig
from .objects import (
    Alignment,
    Parameter,
    RealParameter,
    StateNode,
    StateNodeInitialiser,
    TaxonSet,
    Tree,
)
from .operators import OperatorCache, ParameterOperatorFactory, TreeOperatorFactory

logger = logging.getLogger(__name__)

ID_STATE = "state"
ID_PRIOR = "prior"
ID_LIKELIHOOD = "likelihood"
ID_POSTERIOR = "posterior"
ID_MCMC = "mcmc"
ID_CONSOLE_LOGGER = "consoleLogger"
ID_FILE_LOGGER = "fileLogger"
ID_TREE_LOGGER = "treeLogger"

DEFAULT_TRACE = "model.log"
DEFAULT_TREES = "model.trees"


class AnalysisBuilder:
    def __init__(self, model_builder: ModelBuilder, rng: Optional[np.random.Generator] = None):
        self.model_builder = model_builder
        self.rng = rng
        self.operator_cache = OperatorCache()
        self.state: Optional[State] = None
        self.prior: Optional[CompoundDistribution] = None
        self.likelihood: Optional[CompoundDistribution] = None
        self.posterior: Optional[CompoundDistribution] = None
        self.loggers: List[Logger] = []

    @property
    def registry(self):
        return self.model_builder.registry

    def build_run(self, config: AnalysisConfig) -> MCMC:
        if not self.model_builder.built:
            if config.program is None:
                raise ConfigurationError("No model has been built and no program was given")
            self.model_builder.build_model(config.program)

        rng = self.rng if self.rng is not None else np.random.default_rng()
        self.initialize_trees(rng)
        self.state = self.setup_state()
        self.initialize_state_nodes(self.state, rng)

        likelihoods = self.find_likelihoods()
        self.prior = self.setup_prior(likelihoods)
        self.likelihood = self.setup_likelihood(likelihoods)
        self.posterior = self.setup_posterior(self.prior, self.likelihood)

        operators = self.setup_operators()
        self.loggers = self.setup_loggers(config, self.posterior)
        return self.setup_mcmc(config, operators)

    # --- Tree initialisation ---

    def initialize_trees(self, rng) -> None:
        for node in self.registry.get_eligible_state_nodes():
            if not isinstance(node, Tree):
                continue
            constraints = [
                d for d in self.registry.distributions()
                if isinstance(d, MRCAPrior) and d.get_input_value("tree") is node
            ]
            if not any(c.has_distribution() for c in constraints):
                continue
            try:
                self.create_random_tree(node, constraints, rng)
            except ModelError as e:
                logger.warning("Could not create an initialiser for %s: %s", node.id, e)

    def create_random_tree(self, tree: Tree, constraints: List[MRCAPrior], rng) -> Optional[RandomTree]:
        tree_id = tree.id
        taxonset = tree.get_taxonset()
        if taxonset is None:
            alignment = self._alignment_for(tree)
            if alignment is None:
                logger.warning("No alignment found for tree %s, skipping initialisation", tree_id)
                return None
            taxonset = TaxonSet(f"{tree_id}.taxa", alignment=alignment)
            tree.set_input_value("taxonset", taxonset)
            self.registry.register(taxonset.id, taxonset)

        pop_size = RealParameter(f"randomPopSize.t:{tree_id}", value=[1.0])
        population = ConstantPopulation(f"ConstantPopulation.t:{tree_id}", popSize=pop_size)
        random_tree = RandomTree(
            f"RandomTree.t:{tree_id}",
            taxa=taxonset,
            populationModel=population,
            initial=tree,
            estimate=False,
            constraint=constraints,
        )
        for obj in (pop_size, population, random_tree):
            self.registry.register(obj.id, obj)
        random_tree.init_state_nodes(rng)
        logger.info("Created initialiser %s", random_tree.id)
        return random_tree

    def _alignment_for(self, tree: Tree) -> Optional[Alignment]:
        for dist in self.registry.distributions():
            if isinstance(dist, TreeLikelihood) and dist.get_input_value("tree") is tree:
                return dist.get_input_value("data")
        return None

    # --- State and seeding ---

    def setup_state(self) -> State:
        unique: Dict[str, StateNode] = {}
        for node in self.registry.get_eligible_state_nodes():
            if node.id is not None and node.id not in unique:
                unique[node.id] = node
        if not unique:
            logger.warning("No state nodes found, the analysis may not run correctly")
        else:
            logger.info("Setting up state with %d state nodes", len(unique))
        state = State(ID_STATE)
        state.init_by_name(stateNode=list(unique.values()))
        return state

    def initialize_state_nodes(self, state: State, rng) -> None:
        distributions = self.registry.distributions()
        used = set()
        for dist in distributions:
            for value in dist.input_values():
                if isinstance(value, Distribution):
                    used.add(id(value))
        leaves = [
            d for d in distributions
            if id(d) not in used and not isinstance(d, CompoundDistribution)
        ]
        if not leaves:
            leaves = distributions
        logger.info("Found %d leaf distributions for sampling", len(leaves))
        for dist in leaves:
            try:
                dist.sample(state, rng)
            except (ModelError, ValueError, ArithmeticError) as e:
                logger.warning("Could not sample from %s: %s", dist.id, e)

    # --- Composition ---

    def find_likelihoods(self) -> List[Distribution]:
        """Distributions bound to an observed or data object."""
        bound = [
            self.registry.get(name)
            for name in self.registry.get_observed_variables()
            + self.registry.get_data_annotated_variables()
        ]
        bound = [obj for obj in bound if obj is not None]
        return [
            d for d in self.registry.distributions()
            if any(v is obj for v in d.input_values() for obj in bound)
        ]

    def setup_prior(self, likelihoods: List[Distribution]) -> CompoundDistribution:
        priors = [
            d for d in self.registry.distributions()
            if not any(d is lik for lik in likelihoods)
            and d.id not in (ID_PRIOR, ID_LIKELIHOOD, ID_POSTERIOR)
        ]
        logger.info("Set up prior with %d distributions", len(priors))
        return CompoundDistribution(ID_PRIOR, distribution=priors)

    def setup_likelihood(self, likelihoods: List[Distribution]) -> CompoundDistribution:
        logger.info("Set up likelihood with %d distributions", len(likelihoods))
        return CompoundDistribution(ID_LIKELIHOOD, distribution=list(likelihoods))

    def setup_posterior(
        self, prior: CompoundDistribution, likelihood: CompoundDistribution
    ) -> CompoundDistribution:
        return CompoundDistribution(ID_POSTERIOR, distribution=[prior, likelihood])

    # --- Operators ---

    def setup_operators(self) -> List[Operator]:
        self.operator_cache.clear()
        parameter_ops = ParameterOperatorFactory(self.operator_cache)
        tree_ops = TreeOperatorFactory(self.operator_cache)
        for node in self.state.get_state_nodes():
            try:
                if isinstance(node, Tree):
                    tree_ops.add_operators(node)
                elif isinstance(node, Parameter):
                    parameter_ops.add_operators(node)
                else:
                    logger.warning("No operators for state node %s", node.id)
            except ModelError as e:
                logger.warning("Could not create operators for %s: %s", node.id, e)
        return self.operator_cache.operators()

    # --- Loggers ---

    def setup_loggers(self, config: AnalysisConfig, posterior: CompoundDistribution) -> List[Logger]:
        trace = config.trace_file_name or DEFAULT_TRACE
        every = config.log_every
        objects = _unique(self.registry.all_objects().values())

        loggers = [Logger(ID_CONSOLE_LOGGER, logEvery=every, log=[posterior])]
        parameters = [o for o in objects if isinstance(o, Parameter)]
        loggers.append(
            Logger(ID_FILE_LOGGER, fileName=trace, logEvery=every, log=[posterior] + parameters)
        )

        trees = [o for o in objects if isinstance(o, Tree)]
        if trees:
            stem, ext = os.path.splitext(trace)
            tree_file = stem + ".trees" if ext == ".log" else DEFAULT_TREES
            loggers.append(
                Logger(ID_TREE_LOGGER, fileName=tree_file, logEvery=every, mode="tree", log=trees)
            )
        return loggers

    # --- Run ---

    def setup_mcmc(self, config: AnalysisConfig, operators: List[Operator]) -> MCMC:
        initialisers = [
            o for o in _unique(self.registry.all_objects().values())
            if isinstance(o, StateNodeInitialiser)
        ]
        if initialisers:
            logger.info("Adding %d initialisers to the run", len(initialisers))
        return MCMC(
            ID_MCMC,
            chainLength=config.chain_length,
            state=self.state,
            distribution=self.posterior,
            operator=operators,
            logger=self.loggers,
            init=initialisers,
        )


def _unique(values) -> List[Any]:
    seen = set()
    result = []
    for value in values:
        if id(value) not in seen:
            seen.add(id(value))
            result.append(value)
    return result
