# Types.py

import math
import re
import struct
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Optional, Union

INT    = 'int'
REAL   = 'real'
BOOL   = 'bool'
STRING = 'string'

# Set of valid CMM type names (the declaration keywords)
cmm_typenames = (INT, REAL, BOOL, STRING)

NUMERIC = (INT, REAL)

INTEGER_TEXT = re.compile(r'-?[0-9]+')
LEADING_ZEROS_TEXT = re.compile(r'-?0+[0-9]+')
REAL_TEXT = re.compile(r'-?[0-9]+\.[0-9]+')
LEADING_ZEROS_REAL_TEXT = re.compile(r'-?0{2,}\.[0-9]+')

def is_integer_text(text: str) -> bool:
    return INTEGER_TEXT.fullmatch(text) is not None and LEADING_ZEROS_TEXT.fullmatch(text) is None

def is_real_text(text: str) -> bool:
    return REAL_TEXT.fullmatch(text) is not None and LEADING_ZEROS_REAL_TEXT.fullmatch(text) is None

@dataclass(frozen=True)
class Value:
    """A runtime value: exactly one payload, tagged with its CMM type."""
    type: str
    payload: Union[int, float, bool, str]

    def as_real(self) -> float:
        return float(self.payload)

    def __str__(self) -> str:
        return format_value(self)

def int_value(payload: int) -> Value:
    return Value(INT, payload)

def real_value(payload: float) -> Value:
    return Value(REAL, float(payload))

def bool_value(payload: bool) -> Value:
    return Value(BOOL, bool(payload))

def string_value(payload: str) -> Value:
    return Value(STRING, payload)

# --- Rendering ---

def _scientific(x: float) -> str:
    sign, digits, exponent = Decimal(repr(x)).normalize().as_tuple()
    text = ''.join(str(d) for d in digits)
    power = len(text) - 1 + exponent
    mantissa = text[0] + '.' + (text[1:] or '0')
    return f"{'-' if sign else ''}{mantissa}E{power}"

def format_real(x: float) -> str:
    """Plain decimal in [1e-3, 1e7), scientific outside it: 1.0, 2.5, 1.0E7, 1.0E-4."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == 0:
        return "-0.0" if math.copysign(1.0, x) < 0 else "0.0"
    if 1e-3 <= abs(x) < 1e7:
        return repr(x)
    return _scientific(x)

def format_value(value: Value) -> str:
    if value.type == REAL:
        return format_real(value.payload)
    if value.type == BOOL:
        return 'true' if value.payload else 'false'
    return str(value.payload)

# --- Single precision rounding of arithmetic results ---

def to_single(x: float) -> float:
    try:
        return struct.unpack('<f', struct.pack('<f', x))[0]
    except OverflowError:
        return math.copysign(math.inf, x)

def shortest_single(x: float) -> float:
    """Rounds to single precision, then returns the shortest decimal naming that single."""
    single = to_single(x)
    if math.isinf(single) or math.isnan(single) or single == 0:
        return single
    for digits in range(1, 10):
        candidate = float(f"{single:.{digits}g}")
        if to_single(candidate) == single:
            return candidate
    return single

# --- Operator typing ---

# Binary operations: (left_operand_type, operator_symbol, right_operand_type) -> result_type
bin_ops_type_rules = {}
for _op in ('+', '-', '*', '/'):
    bin_ops_type_rules[(INT, _op, INT)] = INT
    bin_ops_type_rules[(INT, _op, REAL)] = REAL
    bin_ops_type_rules[(REAL, _op, INT)] = REAL
    bin_ops_type_rules[(REAL, _op, REAL)] = REAL
for _op in ('==', '<>', '<', '>'):
    for _left in NUMERIC:
        for _right in NUMERIC:
            bin_ops_type_rules[(_left, _op, _right)] = BOOL
for _op in ('==', '<>'):
    bin_ops_type_rules[(BOOL, _op, BOOL)] = BOOL
    bin_ops_type_rules[(STRING, _op, STRING)] = BOOL

def check_binop_type(op_symbol: str, left_type: Optional[str], right_type: Optional[str]) -> Optional[str]:
    """
    Checks the validity and result type of a binary operation.
    Returns the result type string if valid, None otherwise.
    """
    if left_type is None or right_type is None:
        return None
    return bin_ops_type_rules.get((left_type, op_symbol, right_type))

def _truncating_division(a: int, b: int) -> int:
    quotient = abs(a) // abs(b)
    return quotient if (a < 0) == (b < 0) else -quotient

def arithmetic(op: str, left: Value, right: Value) -> Value:
    """
    Applies + - * / to two numeric values. Integer division truncates toward zero.
    Real results are computed exactly, division rounded half-up to three places,
    and then narrowed to single precision. Raises ZeroDivisionError for a zero divisor
    and OverflowError when an int operand is too large to widen to real.
    """
    if left.type == INT and right.type == INT:
        a, b = left.payload, right.payload
        if op == '+':
            return int_value(a + b)
        if op == '-':
            return int_value(a - b)
        if op == '*':
            return int_value(a * b)
        if b == 0:
            raise ZeroDivisionError("division by zero")
        return int_value(_truncating_division(a, b))

    a, b = Decimal(left.as_real()), Decimal(right.as_real())
    with localcontext() as ctx:
        ctx.prec = 800
        if op == '+':
            result = a + b
        elif op == '-':
            result = a - b
        elif op == '*':
            result = a * b
        else:
            if b == 0:
                raise ZeroDivisionError("division by zero")
            result = (a / b).quantize(Decimal('0.001'), rounding=ROUND_HALF_UP)
    return real_value(shortest_single(float(result)))

def compare(op: str, left: Value, right: Value) -> Value:
    # int and float compare exactly in Python, so no widening is needed
    a, b = left.payload, right.payload
    if op == '==':
        return bool_value(a == b)
    if op == '<>':
        return bool_value(a != b)
    if op == '<':
        return bool_value(a < b)
    return bool_value(a > b)

# --- Implicit coercion on assignment ---

class CoercionError(Exception):
    pass

def coerce(target_type: str, value: Value, source: str) -> Value:
    """
    Converts `value` for storage in a variable of `target_type`, or raises
    CoercionError naming `source` (how the value was written, e.g. 'float').

    int <- int; real <- int | real; bool <- bool | int (<= 0 is false);
    string <- string. Every other pairing is rejected.
    """
    if target_type == value.type:
        return value
    if target_type == REAL and value.type == INT:
        try:
            return real_value(value.as_real())
        except OverflowError:
            raise CoercionError("value out of range for real")
    if target_type == BOOL and value.type == INT:
        return bool_value(value.payload > 0)
    raise CoercionError(f"cannot assign {source} to {target_type} variable")

LITERAL_DESCRIPTIONS = {INT: 'integer', REAL: 'float', BOOL: 'bool', STRING: 'string'}

def describe_literal(value: Value) -> str:
    return LITERAL_DESCRIPTIONS[value.type]

def describe_variable(type_name: str) -> str:
    return f"{type_name} variable"

def parse_input(target_type: str, text: str) -> Optional[Value]:
    """Coerces one line of user input for `read`. Returns None when it does not fit the type."""
    if target_type == INT:
        return int_value(int(text)) if is_integer_text(text) else None
    if target_type == REAL:
        if is_real_text(text):
            return real_value(float(text))
        if not is_integer_text(text):
            return None
        try:
            return real_value(float(int(text)))
        except OverflowError:
            return None
    if target_type == BOOL:
        if text in ('true', 'false'):
            return bool_value(text == 'true')
        return None
    return string_value(text)
