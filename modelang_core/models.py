from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union


class LiteralKind:
    FLOAT = "float"
    INTEGER = "integer"
    STRING = "string"
    BOOLEAN = "boolean"

    @classmethod
    def of(cls, value: Any) -> str:
        if isinstance(value, bool):
            return cls.BOOLEAN
        if isinstance(value, int):
            return cls.INTEGER
        if isinstance(value, float):
            return cls.FLOAT
        return cls.STRING


# --- Expressions ---


@dataclass(frozen=True)
class Identifier:
    name: str


@dataclass(frozen=True)
class Literal:
    value: Any
    kind: str = ""

    def __post_init__(self):
        if not self.kind:
            object.__setattr__(self, "kind", LiteralKind.of(self.value))


@dataclass(frozen=True)
class Argument:
    name: str
    value: "Expression"


@dataclass(frozen=True)
class FunctionCall:
    class_name: str
    arguments: Tuple[Argument, ...] = ()

    def get_argument(self, name: str) -> Optional[Argument]:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None


@dataclass(frozen=True)
class NexusFunction:
    """Builtin data-loading call, ``nexus(file="...", id="...")``."""

    arguments: Tuple[Argument, ...] = ()

    def get_argument(self, name: str) -> Optional[Argument]:
        for arg in self.arguments:
            if arg.name == name:
                return arg
        return None


@dataclass(frozen=True)
class ArrayLiteral:
    elements: Tuple["Expression", ...] = ()


Expression = Union[Identifier, Literal, FunctionCall, NexusFunction, ArrayLiteral]


# --- Statements ---


@dataclass(frozen=True)
class Annotation:
    name: str
    parameters: Dict[str, Expression] = field(default_factory=dict)

    def get(self, key: str) -> Optional[Expression]:
        return self.parameters.get(key)


@dataclass(frozen=True)
class VariableDeclaration:
    class_name: str
    variable_name: str
    value: Expression


@dataclass(frozen=True)
class DistributionAssignment:
    class_name: str
    variable_name: str
    distribution: Optional[Expression]


@dataclass(frozen=True)
class AnnotatedStatement:
    annotations: Tuple[Annotation, ...]
    statement: Union[VariableDeclaration, DistributionAssignment]

    def get_annotation(self, name: str) -> Optional[Annotation]:
        for annotation in self.annotations:
            if annotation.name == name:
                return annotation
        return None

    def has_annotation(self, name: str) -> bool:
        return self.get_annotation(name) is not None


@dataclass(frozen=True)
class ImportStatement:
    package_name: str
    wildcard: bool = False


@dataclass(frozen=True)
class RequiresStatement:
    plugin_name: str


Statement = Union[
    VariableDeclaration,
    DistributionAssignment,
    AnnotatedStatement,
    ImportStatement,
    RequiresStatement,
]


@dataclass
class Program:
    imports: List[ImportStatement] = field(default_factory=list)
    requires: List[RequiresStatement] = field(default_factory=list)
    statements: List[Statement] = field(default_factory=list)


# --- Build records ---


@dataclass(frozen=True)
class Calibration:
    """A calibration recorded against a tree variable."""

    taxonset: str
    distribution: Optional[FunctionCall] = None
    monophyletic: bool = True
    leaf: bool = False

    def has_distribution(self) -> bool:
        return self.distribution is not None


@dataclass
class AnalysisConfig:
    program: Optional[Program] = None
    chain_length: int = 10_000_000
    log_every: int = 1000
    trace_file_name: str = "output.log"
