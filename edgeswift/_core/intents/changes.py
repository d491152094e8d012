"""
Detection of the meaningful changes between two specs.

The specs are not compared as they are. First, they are reduced to their
"essences": the unset fields are resolved to their effective values (so that
an omitted field and the same value set explicitly are the same), and the
quantities are converted to numbers (so that ``10Gi`` and ``10240Mi`` are
the same). Then, the essences are compared structurally.

Whatever is not understood (unknown fields, unparsable quantities) is compared
verbatim: a change there is a change, even if it may be irrelevant.
"""
import collections.abc
from typing import Any, Optional

from edgeswift._cogs.structs import diffs, quantities, swifts

# The resource requirements' sections, where the values are quantities.
QUANTITY_SECTIONS = ('requests', 'limits')


def essence(
        spec: swifts.SwiftSpec,
        *,
        defaults: Optional[swifts.SwiftSpec] = None,
) -> dict[str, Any]:
    """
    Reduce the spec to a comparable structure of its effective values.
    """
    resolved = swifts.resolve_spec(spec, defaults)
    result: dict[str, Any] = resolved.as_dict()
    result['dataVolumeSize'] = quantities.canonical(resolved.data_volume_size)

    resources = dict(result.get('resources') or {})
    for section in QUANTITY_SECTIONS:
        values = resources.get(section)
        if isinstance(values, collections.abc.Mapping):
            resources[section] = {key: quantities.canonical(val) for key, val in values.items()}
    result['resources'] = resources
    return result


def spec_diff(
        old: swifts.SwiftSpec,
        new: swifts.SwiftSpec,
        *,
        defaults: Optional[swifts.SwiftSpec] = None,
) -> diffs.Diff:
    """
    Calculate the diff of the essences of two specs (see :func:`essence`).
    """
    return diffs.diff(essence(old, defaults=defaults), essence(new, defaults=defaults))


def changed(
        old: swifts.SwiftSpec,
        new: swifts.SwiftSpec,
        *,
        defaults: Optional[swifts.SwiftSpec] = None,
) -> bool:
    """
    Check if the specs differ in any field that affects the backing objects.
    """
    return bool(spec_diff(old, new, defaults=defaults))
