"""
Static configuration data for the ModelScript interpreter.
This includes scope names, operator mappings, reserved keywords and token names.
Generator signatures are registered from the 'modelscript.functions' package.
"""

DATA_SCOPE = "data"
MODEL_SCOPE = "model"
SCOPES = (DATA_SCOPE, MODEL_SCOPE)

# Scope used for top-level statements that are not inside a data { } or model { } block.
DEFAULT_SCOPE = MODEL_SCOPE

# The model scope may read values declared in the data scope, never the reverse.
VISIBLE_SCOPES = {
    DATA_SCOPE: (DATA_SCOPE,),
    MODEL_SCOPE: (MODEL_SCOPE, DATA_SCOPE),
}

BINARY_OPERATOR_MAP = {
    "+": "add",
    "-": "subtract",
    "*": "multiply",
    "/": "divide",
    "**": "power",
    "%": "mod",
    "==": "__eq__",
    "!=": "__neq__",
    ">": "__gt__",
    "<": "__lt__",
    ">=": "__gte__",
    "<=": "__lte__",
    "&&": "__and__",
    "||": "__or__",
    "&": "bitwise_and",
    "|": "bitwise_or",
    "^": "bitwise_xor",
    "<<": "left_shift",
    ">>": "right_shift",
    ">>>": "zero_fill_right_shift",
}
UNARY_OPERATOR_MAP = {"!": "__not__", "-": "negate"}
RANGE_OPERATOR = ":"

RESERVED_KEYWORDS = {"data", "model", "true", "false"}

# Literal tokens are tried in this order; the first successful parse wins.
LITERAL_PARSE_ORDER = ("int", "float", "boolean", "string")

# Maximum number of redraws for conditioned distributions (e.g. bounded Poisson).
MAX_CONDITIONAL_TRIES = 10000

TOKEN_FRIENDLY_NAMES = {
    "NAME": "a variable or generator name",
    "NUMBER": "a number",
    "STRING": "a string in double quotes",
    "TRUE": "the 'true' keyword",
    "FALSE": "the 'false' keyword",
    "EQUAL": "an equals sign '='",
    "TILDE": "a tilde '~'",
    "SEMICOLON": "a semicolon ';'",
    "COLON": "a colon ':'",
    "COMMA": "a comma ','",
    "LPAR": "an opening parenthesis '('",
    "RPAR": "a closing parenthesis ')'",
    "LSQB": "an opening bracket '['",
    "RSQB": "a closing bracket ']'",
    "LBRACE": "an opening brace '{'",
    "RBRACE": "a closing brace '}'",
    "$END": "the end of the file",
}
