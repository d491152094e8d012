"""
Typed snapshots of the SWIFT resources and their owners.

The snapshots are frozen dataclasses with frozen nested structures
(see :func:`edgeswift._cogs.structs.dicts.freeze`), so they can be shared
by all the parties with no risk of modification or races.

The raw dicts from the API are converted into these snapshots only by the
object normalizer; all the other code works with the snapshots only.
"""
import collections.abc
import dataclasses
import types
from typing import Any, Mapping, Optional, Tuple

from edgeswift._cogs.structs import bodies, dicts

EMPTY_MAPPING: Mapping[str, Any] = types.MappingProxyType({})


@dataclasses.dataclass(frozen=True)
class OwnerReference:
    """
    A garbage-collection link from a backing object to its parent object.

    See https://kubernetes.io/docs/concepts/overview/working-with-objects/owners-dependents/
    """
    api_version: str
    kind: str
    name: str
    uid: str
    controller: bool = True
    block_owner_deletion: bool = True

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OwnerReference":
        return cls(
            api_version=str(raw.get('apiVersion', '')),
            kind=str(raw.get('kind', '')),
            name=str(raw.get('name', '')),
            uid=str(raw.get('uid', '')),
            controller=bool(raw.get('controller', False)),
            block_owner_deletion=bool(raw.get('blockOwnerDeletion', False)),
        )

    def as_dict(self) -> bodies.RawOwnerReference:
        return bodies.RawOwnerReference(
            apiVersion=self.api_version,
            kind=self.kind,
            name=self.name,
            uid=self.uid,
            controller=self.controller,
            blockOwnerDeletion=self.block_owner_deletion,
        )


@dataclasses.dataclass(frozen=True)
class SpecField:
    """ A known field of the spec: its names in Python & JSON, and its JSON types. """
    attr: str
    key: str
    types: Tuple[type, ...]


# The order defines the order of fields in the dataclass below. Keep them in sync.
SPEC_FIELDS: Tuple[SpecField, ...] = (
    SpecField('instances', 'instances', (int,)),
    SpecField('host_network', 'hostNetwork', (bool,)),
    SpecField('data_dir_host_path', 'dataDirHostPath', (str,)),
    SpecField('data_volume_size', 'dataVolumeSize', (str, int)),
    SpecField('placement', 'placement', (collections.abc.Mapping,)),
    SpecField('resources', 'resources', (collections.abc.Mapping,)),
    SpecField('resource_profile', 'resourceProfile', (str,)),
    SpecField('port', 'port', (int,)),
    SpecField('secure_port', 'securePort', (int,)),
    SpecField('service_type', 'serviceType', (str,)),
)


@dataclasses.dataclass(frozen=True)
class SwiftSpec:
    """
    The desired state of the SWIFT gateway, as declared by the user.

    All fields are optional: ``None`` means "not set", in which case
    the controller-level defaults, and then the schema defaults apply.
    See :func:`resolve_spec`.
    """
    instances: Optional[int] = None
    host_network: Optional[bool] = None
    data_dir_host_path: Optional[str] = None
    data_volume_size: Optional[str] = None
    placement: Optional[Mapping[str, Any]] = None
    resources: Optional[Mapping[str, Any]] = None
    resource_profile: Optional[str] = None
    port: Optional[int] = None
    secure_port: Optional[int] = None
    service_type: Optional[str] = None
    extras: Mapping[str, Any] = dataclasses.field(default_factory=lambda: EMPTY_MAPPING)

    @classmethod
    def from_dict(cls, raw: Optional[Mapping[str, Any]]) -> "SwiftSpec":
        """
        Parse the raw spec into a frozen spec; raise `TypeError` on wrong types.

        JSON nulls are treated as absent fields. The unknown fields are kept
        in `extras` as they are (frozen), without interpretation.
        """
        raw = raw if raw is not None else {}
        kwargs: dict[str, Any] = {}
        for field in SPEC_FIELDS:
            value = raw.get(field.key)
            if value is None:
                continue
            if isinstance(value, bool) and bool not in field.types:
                raise TypeError(f"Field {field.key!r} must not be a boolean: {value!r}")
            if not isinstance(value, field.types):
                names = ' or '.join(t.__name__ for t in field.types)
                raise TypeError(f"Field {field.key!r} must be {names}: {value!r}")
            kwargs[field.attr] = str(value) if field.attr == 'data_volume_size' else dicts.freeze(value)
        known_keys = {field.key for field in SPEC_FIELDS}
        extras = {key: val for key, val in raw.items() if key not in known_keys}
        return cls(**kwargs, extras=dicts.freeze(extras))

    def as_dict(self) -> dict[str, Any]:
        """ Render the spec back to the JSON form, with only the set fields. """
        result: dict[str, Any] = dicts.thaw(self.extras)
        for field in SPEC_FIELDS:
            value = getattr(self, field.attr)
            if value is not None:
                result[field.key] = dicts.thaw(value)
        return result


# The defaults of the resource schema, applied after the controller-level defaults.
SCHEMA_DEFAULTS = SwiftSpec(
    instances=1,
    host_network=False,
    data_dir_host_path='',
    data_volume_size='',
    placement=EMPTY_MAPPING,
    resources=EMPTY_MAPPING,
    resource_profile='',
    port=9981,
    secure_port=443,
    service_type='ClusterIP',
)


def resolve_spec(spec: SwiftSpec, *defaults: Optional[SwiftSpec]) -> SwiftSpec:
    """
    Fill the unset fields of the spec from the defaults, first-found wins.

    The schema defaults are always implied as the last resort,
    so the resolved spec has all the known fields set.
    """
    layers = [layer for layer in defaults if layer is not None] + [SCHEMA_DEFAULTS]
    values: dict[str, Any] = {}
    for field in SPEC_FIELDS:
        value = getattr(spec, field.attr)
        for layer in layers:
            if value is not None:
                break
            value = getattr(layer, field.attr)
        values[field.attr] = value
    return dataclasses.replace(spec, **values)


@dataclasses.dataclass(frozen=True)
class SwiftInstance:
    """
    An owned immutable snapshot of one SWIFT resource, as seen in one event.
    """
    name: str
    namespace: Optional[str]
    spec: SwiftSpec = dataclasses.field(default_factory=SwiftSpec)
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    owner_references: Tuple[OwnerReference, ...] = ()
    api_version: Optional[str] = None
    kind: Optional[str] = None

    def as_ref(self) -> dict[str, Optional[str]]:
        """ A short object reference, as used in the logs. """
        return dict(
            apiVersion=self.api_version,
            kind=self.kind,
            name=self.name,
            uid=self.uid,
            namespace=self.namespace,
        )
