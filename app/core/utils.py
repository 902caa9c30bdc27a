import uuid
from decimal import Decimal, ROUND_DOWN, ROUND_HALF_UP, InvalidOperation, getcontext
from app.core.errors import InvalidInput

getcontext().prec = 28
CENTS = Decimal("0.01")
ZERO = Decimal("0")

# absolute tolerance for every sum comparison on money
TOLERANCE = Decimal("0.01")

# a counterparty balance at or below this is settled
SETTLED_EPSILON = Decimal("0.001")

def gen_id() -> str:
    return str(uuid.uuid4())

def to_decimal(x, field: str = "amount") -> Decimal:
    if isinstance(x, Decimal):
        return x
    try:
        return Decimal(str(x))
    except InvalidOperation:
        raise InvalidInput(f"{field} must be a number", field=field)

def qround(d : Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_HALF_UP)

def qfloor(d: Decimal) -> Decimal:
    return d.quantize(CENTS, rounding=ROUND_DOWN)

def has_cent_precision(d: Decimal) -> bool:
    return d == d.quantize(CENTS)

def within_tolerance(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) <= TOLERANCE
