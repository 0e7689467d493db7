"""
Reader for PHP configuration files
==================================

LimeSurvey keeps its settings in application/config/config.php, a PHP script
ending with ``return array(...);``. The file can't be ``include``d from Python
so the returned array literal is parsed instead:

    <?php if (!defined('BASEPATH')) exit('No direct script access allowed');
    return array(
        'components' => array(
            'db' => array(
                'connectionString' => 'mysql:host=localhost;port=3306;dbname=limesurvey;',
                'username' => 'root',
                'password' => '',
                'tablePrefix' => 'lime_',
            ),
        ),
    );

PHP arrays become dicts (positional entries get integer keys, as in PHP).
Strings, numbers, true/false/null, string concatenation and nested arrays are
understood. Anything more dynamic (function calls, constants, variables) is
returned as a PhpExpression holding its source text and line, so callers can
refuse it where a literal value is required.
"""

import logging
import re

from exceptions import ConfigInvalid

# Configure logging
logger = logging.getLogger(__name__)

TOKEN_SPEC = [
    ('OPEN_TAG', r'<\?php|<\?='),
    ('CLOSE_TAG', r'\?>'),
    ('COMMENT', r'//[^\n]*|\#[^\n]*|/\*.*?\*/'),
    ('WS', r'\s+'),
    ('SQ_STRING', r"'(?:[^'\\]|\\.)*'"),
    ('DQ_STRING', r'"(?:[^"\\]|\\.)*"'),
    ('NUMBER', r'0[xX][0-9a-fA-F]+|\d+(?:\.\d+)?(?:[eE][+-]?\d+)?'),
    ('ARROW', r'=>'),
    ('NAME', r'[A-Za-z_\\][A-Za-z0-9_\\]*'),
    ('OP', r'\S'),
]
TOKEN_RE = re.compile('|'.join(f'(?P<{name}>{pattern})' for name, pattern in TOKEN_SPEC), re.DOTALL)
SKIPPED = {'OPEN_TAG', 'CLOSE_TAG', 'COMMENT', 'WS'}

DQ_ESCAPES = {
    'n': '\n', 't': '\t', 'r': '\r', 'v': '\v', 'e': '\x1b', 'f': '\f',
    '0': '\0', '\\': '\\', '$': '$', '"': '"',
}
DQ_ESCAPE_RE = re.compile(r'\\(x[0-9a-fA-F]{1,2}|.)', re.DOTALL)
SQ_ESCAPE_RE = re.compile(r"\\([\\'])")
INT_KEY_RE = re.compile(r'-?[1-9]\d*|0')


def tokenize(source: str) -> list:
    """Split PHP source into (kind, value, position) tuples, comments and whitespace removed"""
    return [(m.lastgroup, m.group(), m.start())
            for m in TOKEN_RE.finditer(source) if m.lastgroup not in SKIPPED]


def _unquote(kind: str, text: str) -> str:
    body = text[1:-1]
    if kind == 'SQ_STRING':
        return SQ_ESCAPE_RE.sub(r'\1', body)

    def replace(match):
        escape = match.group(1)
        if escape[0] == 'x' and len(escape) > 1:
            return chr(int(escape[1:], 16))
        return DQ_ESCAPES.get(escape, match.group(0))

    return DQ_ESCAPE_RE.sub(replace, body)


def _array_key(key):
    """PHP casts "5" and 5.7 to the integer key 5, true to 1 and null to ''"""
    if isinstance(key, bool):
        return int(key)
    if isinstance(key, float):
        return int(key)
    if key is None:
        return ''
    if isinstance(key, str) and INT_KEY_RE.fullmatch(key):
        return int(key)
    return key


class PhpExpression(str):
    """Source text of a value only known when PHP runs the file, i.e. getenv('DB_PASSWORD')"""

    def __new__(cls, text: str, line: int):
        expression = super().__new__(cls, text)
        expression.line = line
        return expression


class PhpArrayParser:
    """Recursive descent parser for the value of a PHP return statement"""

    TERMINATORS = {',', ')', ']', ';'}

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.index = 0

    # Token helpers
    def peek(self, offset=0):
        position = self.index + offset
        if position < len(self.tokens):
            return self.tokens[position]
        return ('EOF', '', len(self.source))

    def advance(self):
        token = self.peek()
        self.index += 1
        return token

    def line_of(self, position: int) -> int:
        return self.source.count('\n', 0, position) + 1

    def error(self, message: str, position: int) -> ConfigInvalid:
        return ConfigInvalid(f"Unable to parse PHP configuration, line {self.line_of(position)}: {message}")

    def expression(self, start: int) -> PhpExpression:
        """Source text from start up to the current token"""
        return PhpExpression(self.source[start:self.peek()[2]].strip(), self.line_of(start))

    # Grammar
    def parse_return_value(self):
        """Locate the first top-level return statement and parse what it returns"""
        depth = 0
        while self.peek()[0] != 'EOF':
            kind, text, _ = self.advance()
            if text in ('(', '[', '{'):
                depth += 1
            elif text in (')', ']', '}'):
                depth -= 1
            elif kind == 'NAME' and text.lower() == 'return' and depth == 0:
                value = self.parse_expression()
                if self.peek()[1] not in (';', ''):
                    raise self.error(f"unexpected '{self.peek()[1]}' after return value", self.peek()[2])
                return value
        raise ConfigInvalid("No 'return array(...)' statement found in the PHP configuration")

    def parse_expression(self):
        start = self.peek()[2]
        parts = [self.parse_operand()]
        while self.peek()[1] == '.':
            self.advance()
            parts.append(self.parse_operand())

        if self.peek()[1] in self.TERMINATORS or self.peek()[1] in ('=>', ''):
            if len(parts) == 1:
                return parts[0]
            if all(isinstance(part, (str, int, float)) and not isinstance(part, (bool, PhpExpression))
                   for part in parts):
                return ''.join(str(part) for part in parts)

        # Not a plain literal, keep the source text
        self.skip_expression()
        return self.expression(start)

    def parse_operand(self):
        kind, text, position = self.peek()

        if kind in ('SQ_STRING', 'DQ_STRING'):
            self.advance()
            return _unquote(kind, text)

        if kind == 'NUMBER':
            self.advance()
            return self._number(text)

        if text == '-' and self.peek(1)[0] == 'NUMBER':
            self.advance()
            return -self._number(self.advance()[1])

        if text == '[':
            self.advance()
            return self.parse_array(']')

        if kind == 'NAME':
            lowered = text.lower()
            if lowered == 'array' and self.peek(1)[1] == '(':
                self.advance()
                self.advance()
                return self.parse_array(')')
            if lowered in ('true', 'false', 'null'):
                self.advance()
                return {'true': True, 'false': False, 'null': None}[lowered]
            self.advance()
            if self.peek()[1] == '(':
                # Function call, e.g. dirname(__FILE__)
                self.skip_balanced()
            return self.expression(position)

        if text in ("'", '"'):
            raise self.error("unterminated string", position)

        if kind == 'EOF':
            raise self.error("unexpected end of file", position)

        self.skip_expression()
        return self.expression(position)

    def parse_array(self, closing: str) -> dict:
        result = {}
        next_index = 0
        while True:
            if self.peek()[1] == closing:
                self.advance()
                return result

            value = self.parse_expression()
            if self.peek()[0] == 'ARROW':
                self.advance()
                key = _array_key(value)
                value = self.parse_expression()
                if isinstance(key, int):
                    next_index = max(next_index, key + 1)
            else:
                key = next_index
                next_index += 1
            result[key] = value

            kind, text, position = self.peek()
            if text == ',':
                self.advance()
            elif text != closing:
                raise self.error(f"expected ',' or '{closing}' but found '{text or 'end of file'}'", position)

    def skip_balanced(self):
        """Skip from an opening bracket up to and including its matching closing bracket"""
        depth = 0
        while True:
            kind, text, position = self.advance()
            if kind == 'EOF':
                raise self.error("unbalanced brackets", position)
            if text in ('(', '['):
                depth += 1
            elif text in (')', ']'):
                depth -= 1
                if depth == 0:
                    return

    def skip_expression(self):
        while True:
            kind, text, _ = self.peek()
            if kind == 'EOF' or kind == 'ARROW' or text in self.TERMINATORS:
                return
            if text in ('(', '['):
                self.skip_balanced()
            else:
                self.advance()

    @staticmethod
    def _number(text: str):
        if text[:2].lower() == '0x':
            return int(text, 16)
        if any(char in text for char in '.eE'):
            return float(text)
        return int(text)


def parse_php_config(source: str):
    """
    Parse the value returned by a PHP configuration script.

    Args:
        source (str): Content of the PHP file

    Returns:
        The returned value; PHP arrays are converted to dicts

    Raises:
        ConfigInvalid: If the file has no return statement or can't be parsed
    """
    return PhpArrayParser(source).parse_return_value()


def load_php_config(file_path: str):
    """
    Read a PHP configuration file from disk and parse its return value.

    Raises:
        ConfigInvalid: If the file can't be read, isn't UTF-8 or can't be parsed
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            source = f.read()
    except UnicodeDecodeError as e:
        raise ConfigInvalid(f"File {file_path} is not UTF-8 encoded: {e}") from e
    except OSError as e:
        raise ConfigInvalid(f"Unable to read {file_path}: {e}") from e
    logger.debug(f"Parsing PHP configuration {file_path} ({len(source)} bytes)")
    return parse_php_config(source)
