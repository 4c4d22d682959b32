from .grammar import MODEL_GRAMMAR
from .exceptions import (
    ModelError,
    ConfigurationError,
    CastTypeError,
    ResolutionError,
    InputError,
    DataLoadError,
)
from .models import (
    AnalysisConfig,
    Annotation,
    AnnotatedStatement,
    Argument,
    ArrayLiteral,
    Calibration,
    DistributionAssignment,
    FunctionCall,
    Identifier,
    ImportStatement,
    Literal,
    NexusFunction,
    Program,
    RequiresStatement,
    VariableDeclaration,
)
from .parser import parse_model
from .types import TypeCanon
from .catalog import TypeCatalog
from .adapter import FrameworkAdapter
from .resolver import NameResolver
from .registry import ObjectRegistry
from .autobox import AutoboxingRegistry
from .nexus import NexusLoader
from .expressions import ExpressionResolver
from .declarations import VariableDeclarationHandler
from .assignments import DistributionAssignmentHandler
from .builder import ModelBuilder
from .operators import ParameterOperatorFactory, TreeOperatorFactory
from .analysis import AnalysisBuilder

__all__ = [
    "MODEL_GRAMMAR",
    "ModelError",
    "ConfigurationError",
    "CastTypeError",
    "ResolutionError",
    "InputError",
    "DataLoadError",
    "AnalysisConfig",
    "Annotation",
    "AnnotatedStatement",
    "Argument",
    "ArrayLiteral",
    "Calibration",
    "DistributionAssignment",
    "FunctionCall",
    "Identifier",
    "ImportStatement",
    "Literal",
    "NexusFunction",
    "Program",
    "RequiresStatement",
    "VariableDeclaration",
    "parse_model",
    "TypeCanon",
    "TypeCatalog",
    "FrameworkAdapter",
    "NameResolver",
    "ObjectRegistry",
    "AutoboxingRegistry",
    "NexusLoader",
    "ExpressionResolver",
    "VariableDeclarationHandler",
    "DistributionAssignmentHandler",
    "ModelBuilder",
    "ParameterOperatorFactory",
    "TreeOperatorFactory",
    "AnalysisBuilder",
]
