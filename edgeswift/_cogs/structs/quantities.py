"""
Kubernetes resource quantities: ``10Gi``, ``500m``, ``1.5``, ``2e3``, etc.

Quantities are compared by their numeric values, not by their notation:
``10Gi`` and ``10240Mi`` are the same size, so changing one into another
must not be considered as a change of the declared state.

.. seealso::
    https://kubernetes.io/docs/reference/kubernetes-api/common-definitions/quantity/
"""
import decimal
import re
from typing import Union

BINARY_SUFFIXES = {
    'Ki': 2 ** 10,
    'Mi': 2 ** 20,
    'Gi': 2 ** 30,
    'Ti': 2 ** 40,
    'Pi': 2 ** 50,
    'Ei': 2 ** 60,
}

DECIMAL_SUFFIXES = {
    'n': decimal.Decimal('1e-9'),
    'u': decimal.Decimal('1e-6'),
    'm': decimal.Decimal('1e-3'),
    '': decimal.Decimal(1),
    'k': decimal.Decimal('1e3'),
    'M': decimal.Decimal('1e6'),
    'G': decimal.Decimal('1e9'),
    'T': decimal.Decimal('1e12'),
    'P': decimal.Decimal('1e15'),
    'E': decimal.Decimal('1e18'),
}

# Enough digits for any realistic quantity in its smallest units (e.g. 1Ei in nano-units).
PRECISION = 50

QUANTITY_PATTERN = re.compile(
    r'^(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+))'
    r'(?:(?P<exponent>[eE][+-]?\d+)|(?P<suffix>[a-zA-Z]*))$'
)


class QuantityError(ValueError):
    """ Raised when a value cannot be interpreted as a quantity. """


def parse_quantity(value: Union[str, int, float, decimal.Decimal]) -> decimal.Decimal:
    """
    Parse a quantity into its exact numeric value (e.g. bytes, or cpu cores).

    Integers and floats are accepted as is, as they can come from YAML/JSON
    for plain numbers (e.g. ``cpu: 2``). Everything else must be a string.
    """
    if isinstance(value, bool):
        raise QuantityError(f"Not a quantity: {value!r}")
    if isinstance(value, (int, decimal.Decimal)):
        return decimal.Decimal(value)
    if isinstance(value, float):
        return decimal.Decimal(str(value))
    if not isinstance(value, str):
        raise QuantityError(f"Not a quantity: {value!r}")

    match = QUANTITY_PATTERN.match(value.strip())
    if match is None:
        raise QuantityError(f"Not a quantity: {value!r}")

    number = decimal.Decimal(match.group('number'))
    exponent = match.group('exponent')
    suffix = match.group('suffix') or ''
    if exponent is None and suffix not in BINARY_SUFFIXES and suffix not in DECIMAL_SUFFIXES:
        raise QuantityError(f"Unknown quantity suffix {suffix!r} in {value!r}")

    # Rounded values of different quantities can be equal, so only exact values are accepted.
    try:
        with decimal.localcontext() as context:
            context.prec = PRECISION
            context.traps[decimal.Inexact] = True
            if exponent is not None:
                return number.scaleb(int(exponent[1:]))
            elif suffix in BINARY_SUFFIXES:
                return number * BINARY_SUFFIXES[suffix]
            else:
                return number * DECIMAL_SUFFIXES[suffix]
    except (decimal.DecimalException, ValueError) as e:
        raise QuantityError(f"Not an exactly representable quantity: {value!r}") from e


def canonical(value: object) -> object:
    """
    A comparable form of a quantity: its numeric value, or itself if unparsable.

    Unparsable values are kept as they are, so that any change in them
    is noticed when compared (as strings) -- to stay on the safe side.
    """
    try:
        return parse_quantity(value)  # type: ignore[arg-type]
    except QuantityError:
        return value
