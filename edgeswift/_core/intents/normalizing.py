"""
Conversion of the untyped payloads into the typed immutable snapshots.

Everything that comes from the event sources is untrusted: it can be
of any type and any shape. The payloads are checked here once, and then
only the typed snapshots (:class:`swifts.SwiftInstance`) travel further.
"""
import collections.abc
from typing import Any, Mapping, Union

from edgeswift._cogs.structs import references, swifts


class TypeMismatch(TypeError):
    """
    Raised when a payload is not a resource instance of the expected kind.

    The observed shape of the payload is kept for diagnostics: it is safe
    to be logged, as it contains no values, only the types and the keys.
    """

    def __init__(self, message: str, *, shape: str) -> None:
        super().__init__(f"{message} Observed: {shape}")
        self.shape = shape


def describe_shape(payload: Any) -> str:
    """ A short description of the payload's type & top-level keys. """
    if isinstance(payload, collections.abc.Mapping):
        keys = ', '.join(sorted(repr(key) for key in payload.keys()))
        return f"{type(payload).__name__} with keys [{keys}]"
    else:
        return type(payload).__name__


def normalize(
        raw: Union[swifts.SwiftInstance, Mapping[str, Any], Any],
        *,
        resource: references.Resource = references.SWIFTS,
) -> swifts.SwiftInstance:
    """
    Convert an untyped payload into an owned immutable snapshot of the resource.

    The already normalized snapshots are returned as is, since they are frozen.
    The payload itself is never modified, and is not referenced afterwards.
    """
    if isinstance(raw, swifts.SwiftInstance):
        return raw

    shape = describe_shape(raw)
    if not isinstance(raw, collections.abc.Mapping):
        raise TypeMismatch("The payload is not a mapping.", shape=shape)

    api_version = raw.get('apiVersion')
    kind = raw.get('kind')
    if api_version != resource.api_version:
        raise TypeMismatch(f"The apiVersion {api_version!r} is not {resource.api_version!r}.",
                           shape=shape)
    if resource.kind is not None and kind != resource.kind:
        raise TypeMismatch(f"The kind {kind!r} is not {resource.kind!r}.", shape=shape)

    meta = raw.get('metadata')
    if not isinstance(meta, collections.abc.Mapping):
        raise TypeMismatch("The metadata is not a mapping.", shape=shape)
    name = meta.get('name')
    if not isinstance(name, str) or not name:
        raise TypeMismatch("The metadata has no name.", shape=shape)
    namespace = meta.get('namespace')
    if namespace is not None and not isinstance(namespace, str):
        raise TypeMismatch("The namespace is not a string.", shape=shape)

    raw_spec = raw.get('spec')
    if raw_spec is not None and not isinstance(raw_spec, collections.abc.Mapping):
        raise TypeMismatch("The spec is not a mapping.", shape=shape)
    try:
        spec = swifts.SwiftSpec.from_dict(raw_spec)
    except TypeError as e:
        raise TypeMismatch(f"The spec is malformed: {e}", shape=shape) from e

    raw_owners = meta.get('ownerReferences') or []
    if not isinstance(raw_owners, collections.abc.Sequence) or isinstance(raw_owners, str) or \
            not all(isinstance(owner, collections.abc.Mapping) for owner in raw_owners):
        raise TypeMismatch("The owner references are malformed.", shape=shape)
    owners = tuple(swifts.OwnerReference.from_dict(owner) for owner in raw_owners)

    uid = meta.get('uid')
    resource_version = meta.get('resourceVersion')
    return swifts.SwiftInstance(
        api_version=str(api_version),
        kind=str(kind) if kind is not None else None,
        name=name,
        namespace=namespace or None,
        uid=str(uid) if uid is not None else None,
        resource_version=str(resource_version) if resource_version is not None else None,
        owner_references=owners,
        spec=spec,
    )

