from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedToken

from modelscript.config import TOKEN_FRIENDLY_NAMES
from modelscript.exceptions import ErrorCode, ModelScriptError

from .classes import Span

BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
OPENING_BRACKETS = set(BRACKET_PAIRS.keys())
CLOSING_BRACKETS = set(BRACKET_PAIRS.values())


def _point_span(line: int, column: int, file_path: str) -> Span:
    return Span(s_line=line, s_col=column, e_line=line, e_col=column + 1, file_path=file_path)


def pre_parsing_checks(script_content: str, file_path: str = "<stdin>"):
    """
    Performs simple pre-parsing checks for common errors to provide better error messages.
    This function checks for:
    1. Mismatched or unclosed brackets across the entire script.
    2. String literals that are not closed before the end of their line.
    Comments (// and /* */) and the content of strings are ignored.
    """
    bracket_stack = []  # A stack of (char, line_num, col_num)
    in_block_comment = False

    for i, line in enumerate(script_content.splitlines()):
        line_num = i + 1
        in_string = False
        string_start = 0
        col = 0
        while col < len(line):
            char = line[col]
            pair = line[col : col + 2]

            if in_block_comment:
                if pair == "*/":
                    in_block_comment = False
                    col += 1
            elif in_string:
                if char == "\\":
                    col += 1
                elif char == '"':
                    in_string = False
            elif pair == "//":
                break
            elif pair == "/*":
                in_block_comment = True
                col += 1
            elif char == '"':
                in_string = True
                string_start = col
            elif char in OPENING_BRACKETS:
                bracket_stack.append((char, line_num, col + 1))
            elif char in CLOSING_BRACKETS:
                if not bracket_stack:
                    raise ModelScriptError(ErrorCode.SYNTAX_UNMATCHED_BRACKET, span=_point_span(line_num, col + 1, file_path), char=char)

                opening_char, _, _ = bracket_stack.pop()
                if BRACKET_PAIRS[opening_char] != char:
                    # A mismatch like `( ]` is reported at the closing character.
                    raise ModelScriptError(ErrorCode.SYNTAX_UNMATCHED_BRACKET, span=_point_span(line_num, col + 1, file_path), char=char)
            col += 1

        if in_string:
            raise ModelScriptError(ErrorCode.SYNTAX_UNCLOSED_STRING, span=_point_span(line_num, string_start + 1, file_path))

    if bracket_stack:
        # If the stack is not empty after checking the whole script, there's an unclosed bracket.
        opening_char, line_num, col_num = bracket_stack[-1]
        raise ModelScriptError(ErrorCode.SYNTAX_UNMATCHED_BRACKET, span=_point_span(line_num, col_num, file_path), char=opening_char)


def _translate_lark_error(err: LarkError, file_path: str = "<stdin>") -> ModelScriptError:
    """Translates a generic LarkError into a user-friendly ModelScriptError."""

    if isinstance(err, UnexpectedToken):
        # Build a helpful message about what was expected.
        expected_str = ""
        if err.expected:
            friendly_expected = [TOKEN_FRIENDLY_NAMES.get(e, e) for e in sorted(err.expected)]
            if len(friendly_expected) > 1:
                expected_str = f"Expected one of: {', '.join(friendly_expected[:-1])} or {friendly_expected[-1]}"
            else:
                expected_str = f"Expected {friendly_expected[0]}"

        found_token = err.token
        found_str = f"but found '{found_token.value}' instead."
        if found_token.type == "$END":
            found_str = "but reached the end of the file instead."

        details = f"{expected_str}, {found_str}" if expected_str else f"Found unexpected token '{found_token.value}'."
        return ModelScriptError(ErrorCode.SYNTAX_UNEXPECTED_TOKEN, span=_point_span(err.line, err.column, file_path), details=details)

    if isinstance(err, UnexpectedCharacters):
        return ModelScriptError(ErrorCode.SYNTAX_INVALID_CHARACTER, span=_point_span(err.line, err.column, file_path), char=err.char)

    if isinstance(err, UnexpectedEOF):
        return ModelScriptError(ErrorCode.SYNTAX_UNEXPECTED_TOKEN, file_path=file_path, details="Unexpected end of the file.")

    # Fallback for any other Lark error
    return ModelScriptError(ErrorCode.SYNTAX_PARSING_ERROR, file_path=file_path, details=str(err))
