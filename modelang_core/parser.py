import logging
from typing import List

from lark import Lark, Token, Transformer

from .grammar import MODEL_GRAMMAR
from .models import (
    Annotation,
    AnnotatedStatement,
    Argument,
    ArrayLiteral,
    DistributionAssignment,
    FunctionCall,
    Identifier,
    ImportStatement,
    Literal,
    LiteralKind,
    NexusFunction,
    Program,
    RequiresStatement,
    VariableDeclaration,
)

logger = logging.getLogger(__name__)


def _present(items) -> List:
    return [item for item in items if item is not None]


class ModelTransformer(Transformer):
    """Turns the lark parse tree into the dataclass AST."""

    def start(self, items):
        program = Program()
        for item in items:
            if isinstance(item, ImportStatement):
                program.imports.append(item)
            elif isinstance(item, RequiresStatement):
                program.requires.append(item)
            else:
                program.statements.append(item)
        return program

    # --- Directives ---

    def import_stmt(self, items):
        wildcard = any(
            isinstance(i, Token) and i.type == "WILDCARD" for i in _present(items)
        )
        return ImportStatement(package_name=items[0], wildcard=wildcard)

    def requires_stmt(self, items):
        logger.info("Added requires statement for plugin: %s", items[0])
        return RequiresStatement(plugin_name=items[0])

    # --- Statements ---

    def statement(self, items):
        *annotations, inner = items
        if annotations:
            return AnnotatedStatement(annotations=tuple(annotations), statement=inner)
        return inner

    def annotation(self, items):
        name, *params = items
        return Annotation(name=str(name), parameters=dict(_present(params)))

    def annotation_param(self, items):
        return (str(items[0]), items[1])

    def var_decl(self, items):
        class_name, name, value = items
        return VariableDeclaration(class_name, str(name), value)

    def dist_assign(self, items):
        class_name, name, distribution = items
        return DistributionAssignment(class_name, str(name), distribution)

    def class_name(self, items):
        name = items[0]
        if len(items) > 1 and items[1] is not None:
            name += "[]"
        return name

    def dotted(self, items):
        return ".".join(str(i) for i in items)

    # --- Expressions ---

    def call(self, items):
        class_name, *arguments = items
        return FunctionCall(class_name, tuple(_present(arguments)))

    def nexus_call(self, items):
        arguments = tuple(_present(items))
        logger.info("Created nexus function with %d arguments", len(arguments))
        return NexusFunction(arguments)

    def argument(self, items):
        return Argument(str(items[0]), items[1])

    def array(self, items):
        return ArrayLiteral(tuple(_present(items)))

    def identifier(self, items):
        return Identifier(str(items[0]))

    def float_lit(self, items):
        return Literal(float(items[0]), LiteralKind.FLOAT)

    def int_lit(self, items):
        return Literal(int(items[0]), LiteralKind.INTEGER)

    def string_lit(self, items):
        return Literal(str(items[0])[1:-1], LiteralKind.STRING)

    def true_lit(self, items):
        return Literal(True, LiteralKind.BOOLEAN)

    def false_lit(self, items):
        return Literal(False, LiteralKind.BOOLEAN)


_PARSER = None


def get_parser() -> Lark:
    global _PARSER
    if _PARSER is None:
        _PARSER = Lark(MODEL_GRAMMAR, parser="lalr")
    return _PARSER


def parse_model(source: str) -> Program:
    """Parse model source text into a :class:`Program`.

    Syntax errors propagate as lark's ``UnexpectedInput`` subclasses.
    """
    tree = get_parser().parse(source)
    return ModelTransformer().transform(tree)
