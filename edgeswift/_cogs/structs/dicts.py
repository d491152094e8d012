"""
Some basic dicts and field-in-a-dict manipulation helpers.

Besides the field resolution, this module makes the owned immutable copies
of the payloads: the watch transport can reuse or modify its own dicts after
the event is delivered, so nothing of them is retained by reference.
"""
import collections.abc
import copy
import enum
import types
from typing import Any, List, Mapping, Optional, Tuple, TypeVar, Union

FieldPath = Tuple[str, ...]
FieldSpec = Union[None, str, FieldPath, List[str]]

_T = TypeVar('_T')


class _UNSET(enum.Enum):
    token = enum.auto()


def parse_field(
        field: FieldSpec,
) -> FieldPath:
    """
    Convert any field into a tuple of nested sub-fields.

    Supported notations:

    * ``None`` (for root of a dict).
    * ``"field.subfield"``
    * ``("field", "subfield")``
    * ``["field", "subfield"]``
    """
    if field is None:
        return tuple()
    elif isinstance(field, str):
        return tuple(field.split('.'))
    elif isinstance(field, (list, tuple)):
        return tuple(field)
    else:
        raise ValueError(f"Field must be either a str, or a list/tuple. Got {field!r}")


def resolve(
        d: Optional[Mapping[Any, Any]],
        field: FieldSpec,
        default: Union[_T, _UNSET] = _UNSET.token,
) -> Union[Any, _T]:
    """
    Retrieve a nested sub-field from a dict.

    If ``default`` is provided, then all non-existent and non-mapping values
    are assumed to be empty dictionaries, and ``default`` is returned.

    Otherwise (with no default), attempts to get the inexistent keys will
    raise either a ``TypeError`` or ``KeyError``:

    * ``KeyError`` for actual absence of keys while the structures are correct.
    * ``TypeError`` for attempting to get a key for a non-dictionary:
      e.g. ``None['key']``, ``"string"['key']``, ``123['key']``, etc.
    """
    path = parse_field(field)
    try:
        result = d
        for key in path:
            if isinstance(result, collections.abc.Mapping):
                result = result[key]
            elif not isinstance(default, _UNSET):
                return default
            else:
                raise TypeError(f"The structure is not a dict with field {key!r}: {result!r}")
        return result
    except KeyError:
        if not isinstance(default, _UNSET):
            return default
        raise


def freeze(value: Any) -> Any:
    """
    Make a deep, independently owned, read-only copy of a JSON-like value.

    Mappings become read-only mapping proxies over new dicts, lists and tuples
    become tuples. Scalars are immutable as they are. Anything else is unknown
    to JSON and is deep-copied as a last resort (it stays mutable, though).
    """
    if isinstance(value, collections.abc.Mapping):
        return types.MappingProxyType({key: freeze(val) for key, val in value.items()})
    elif isinstance(value, (list, tuple)):
        return tuple(freeze(item) for item in value)
    elif value is None or isinstance(value, (str, bytes, int, float, bool)):
        return value
    else:
        return copy.deepcopy(value)


def thaw(value: Any) -> Any:
    """
    Convert a frozen value back to plain JSON-serialisable dicts & lists.

    The result is a new structure: modifying it does not affect the source.
    """
    if isinstance(value, collections.abc.Mapping):
        return {key: thaw(val) for key, val in value.items()}
    elif isinstance(value, (list, tuple)):
        return [thaw(item) for item in value]
    else:
        return copy.deepcopy(value)
