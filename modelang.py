"""modelang entrypoint module exposing the public API and CLI."""

import argparse
import logging
import os
import sys

import numpy as np

from modelang_core import (
    MODEL_GRAMMAR,
    AnalysisBuilder,
    AnalysisConfig,
    ModelBuilder,
    ModelError,
    NexusLoader,
    parse_model,
)

__all__ = [
    "MODEL_GRAMMAR",
    "AnalysisBuilder",
    "AnalysisConfig",
    "ModelBuilder",
    "ModelError",
    "NexusLoader",
    "parse_model",
    "configure_logging",
    "print_summary",
    "main",
]

LOG_LEVEL_ENV = "MODELANG_LOG_LEVEL"


def configure_logging(verbose: bool = False, quiet: bool = False) -> int:
    if verbose:
        level = logging.INFO
    elif quiet:
        level = logging.ERROR
    else:
        name = os.environ.get(LOG_LEVEL_ENV, "WARNING").upper()
        level = getattr(logging, name, None)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(
        level=level, format="%(levelname)s %(name)s: %(message)s", force=True
    )
    return level


def print_summary(builder: ModelBuilder, mcmc=None) -> None:
    print(builder.registry.get_statistics())
    print(f"Random variables: {', '.join(builder.get_random_variables()) or '-'}")
    print(f"Observed variables: {', '.join(builder.get_observed_variables()) or '-'}")
    print(f"Data variables: {', '.join(builder.get_data_annotated_variables()) or '-'}")
    if mcmc is None:
        return
    state = mcmc.get_input_value("state")
    print(f"MCMC '{mcmc.id}': chain length {mcmc.get_input_value('chainLength')}")
    print(f"  state: {', '.join(n.id for n in state.get_state_nodes()) or '-'}")
    operators = mcmc.get_input_value("operator")
    print(f"  operators ({len(operators)}):")
    for op in operators:
        print(f"    {op.id} weight={op.get_weight():.4g}")
    print(f"  loggers: {', '.join(lg.id for lg in mcmc.get_input_value('logger'))}")


def main():
    parser = argparse.ArgumentParser(description="modelang model assembler")
    parser.add_argument("model", help="Path to the model file")
    parser.add_argument(
        "--analysis", action="store_true", help="Assemble the full MCMC run"
    )
    parser.add_argument("--chain-length", type=int, default=10_000_000)
    parser.add_argument("--log-every", type=int, default=1000)
    parser.add_argument("--trace", default="output.log", help="Trace log file name")
    parser.add_argument("--seed", type=int, help="Seed for starting values")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("-v", "--verbose", action="store_true")
    group.add_argument("-q", "--quiet", action="store_true")
    args = parser.parse_args()

    configure_logging(args.verbose, args.quiet)

    entry_path = os.path.abspath(args.model)
    rng = np.random.default_rng(args.seed) if args.seed is not None else None
    builder = ModelBuilder(
        loader=NexusLoader(base_path=os.path.dirname(entry_path)), rng=rng
    )

    try:
        builder.build_from_file(entry_path)
        mcmc = None
        if args.analysis:
            config = AnalysisConfig(
                chain_length=args.chain_length,
                log_every=args.log_every,
                trace_file_name=args.trace,
            )
            mcmc = AnalysisBuilder(builder, rng=rng).build_run(config)
        print_summary(builder, mcmc)
    except Exception as e:
        print(f"FATAL ERROR\n{e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
