"""Formula language: parsing and evaluation over bar series."""

from .bindings import SeriesBindings
from .evaluator import Evaluator, SeriesView, arithmetic, is_nan, truthy
from .functions import FunctionRegistry, FunctionSpec, ParamKind, create_default_registry
from .nodes import Node, Number, Symbol, Call, Unary, Binary, Compare, node_from_dict
from .parser import Parser, tokenize
from .symbols import SymbolTable, DEFAULT_ALIASES

__all__ = [
    "SeriesBindings",
    "Evaluator",
    "SeriesView",
    "arithmetic",
    "is_nan",
    "truthy",
    "FunctionRegistry",
    "FunctionSpec",
    "ParamKind",
    "create_default_registry",
    "Node",
    "Number",
    "Symbol",
    "Call",
    "Unary",
    "Binary",
    "Compare",
    "node_from_dict",
    "Parser",
    "tokenize",
    "SymbolTable",
    "DEFAULT_ALIASES",
]
