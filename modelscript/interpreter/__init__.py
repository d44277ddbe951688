from .evaluator import ExpressionEvaluator, parse_literal
from .interpreter import Interpreter
