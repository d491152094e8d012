"""
Rendering of the backing objects for the SWIFT gateways.

Every SWIFT resource is served by one Deployment (the gateway pods)
and one Service (the stable endpoint for the clients), both named
after the resource. The bodies are rendered from the resolved spec:
the instance's own fields first, then the controller-level defaults,
then the schema defaults.
"""
import collections.abc
import copy
from typing import Any, Dict, List, Sequence

from edgeswift._cogs.configs import configuration
from edgeswift._cogs.structs import bodies, dicts, references, swifts

APP_NAME = 'rook-edgefs-swift'
SERVICE_TYPE = 'swift'
CONTAINER_NAME = 'swift'
DATA_VOLUME_NAME = 'edgefs-datadir'
DATA_VOLUME_MOUNT_PATH = '/opt/nedge/var/run'
EMBEDDED_PROFILE = 'embedded'

# Placement fields that go into the pod's affinity as they are.
AFFINITY_FIELDS = ('nodeAffinity', 'podAffinity', 'podAntiAffinity')

# Pod fields rendered only when set; absent in a rendering means absent in the object.
OPTIONAL_POD_FIELDS = ('hostNetwork', 'dnsPolicy', 'affinity', 'tolerations')


def backing_name(instance: swifts.SwiftInstance) -> str:
    """ The name of both the Deployment and the Service of the instance. """
    return f'{APP_NAME}-{instance.name}'


def labels_for(instance: swifts.SwiftInstance) -> Dict[str, str]:
    labels = {
        'app': APP_NAME,
        'edgefs_svcname': instance.name,
        'edgefs_svctype': SERVICE_TYPE,
    }
    if instance.namespace:
        labels['rook_cluster'] = instance.namespace
    return labels


def render_meta(
        instance: swifts.SwiftInstance,
        owners: Sequence[swifts.OwnerReference],
) -> bodies.RawMeta:
    meta = bodies.RawMeta(
        name=backing_name(instance),
        labels=labels_for(instance),
        ownerReferences=[owner.as_dict() for owner in owners],
    )
    if instance.namespace:
        meta['namespace'] = instance.namespace
    return meta


def render_ports(spec: swifts.SwiftSpec) -> List[Dict[str, Any]]:
    return [
        {'name': 'port', 'containerPort': spec.port, 'protocol': 'TCP'},
        {'name': 'secure-port', 'containerPort': spec.secure_port, 'protocol': 'TCP'},
    ]


def render_deployment(
        instance: swifts.SwiftInstance,
        owners: Sequence[swifts.OwnerReference],
        *,
        config: configuration.ControllerConfig,
) -> bodies.RawBody:
    """
    Render the gateway's Deployment as a JSON-serialisable body.
    """
    spec = swifts.resolve_spec(instance.spec, config.spec_defaults())
    labels = labels_for(instance)

    env: List[Dict[str, Any]] = [
        {'name': 'CCOW_LOG_LEVEL', 'value': '5'},
        {'name': 'K8S_NAMESPACE', 'valueFrom': {'fieldRef': {'fieldPath': 'metadata.namespace'}}},
        {'name': 'EFSSWIFT_HTTP_PORT', 'value': str(spec.port)},
        {'name': 'EFSSWIFT_HTTPS_PORT', 'value': str(spec.secure_port)},
    ]
    if spec.resource_profile == EMBEDDED_PROFILE:
        env.append({'name': 'CCOW_EMBEDDED', 'value': '1'})

    volume: Dict[str, Any]
    if spec.data_dir_host_path:
        volume = {'name': DATA_VOLUME_NAME, 'hostPath': {'path': spec.data_dir_host_path}}
    elif spec.data_volume_size:
        volume = {'name': DATA_VOLUME_NAME, 'emptyDir': {'sizeLimit': spec.data_volume_size}}
    else:
        volume = {'name': DATA_VOLUME_NAME, 'emptyDir': {}}

    container: Dict[str, Any] = {
        'name': CONTAINER_NAME,
        'image': config.image,
        'imagePullPolicy': 'IfNotPresent',
        'args': ['swift'],
        'env': env,
        'ports': render_ports(spec),
        'volumeMounts': [{'name': DATA_VOLUME_NAME, 'mountPath': DATA_VOLUME_MOUNT_PATH}],
    }
    if spec.resources:
        container['resources'] = dicts.thaw(spec.resources)

    pod_spec: Dict[str, Any] = {
        'containers': [container],
        'volumes': [volume],
        'restartPolicy': 'Always',
    }
    if spec.host_network:
        pod_spec['hostNetwork'] = True
        pod_spec['dnsPolicy'] = 'ClusterFirstWithHostNet'

    placement = spec.placement or {}
    affinity = {key: dicts.thaw(placement[key]) for key in AFFINITY_FIELDS if placement.get(key)}
    if affinity:
        pod_spec['affinity'] = affinity
    tolerations = placement.get('tolerations')
    if isinstance(tolerations, collections.abc.Sequence) and tolerations:
        pod_spec['tolerations'] = dicts.thaw(tolerations)

    return bodies.RawBody(
        apiVersion=references.DEPLOYMENTS.api_version,
        kind=references.DEPLOYMENTS.kind or 'Deployment',
        metadata=render_meta(instance, owners),
        spec={
            'replicas': spec.instances,
            'selector': {'matchLabels': labels},
            'strategy': {'type': 'RollingUpdate'},
            'template': {
                'metadata': {'name': backing_name(instance), 'labels': labels},
                'spec': pod_spec,
            },
        },
    )


def render_service(
        instance: swifts.SwiftInstance,
        owners: Sequence[swifts.OwnerReference],
        *,
        config: configuration.ControllerConfig,
) -> bodies.RawBody:
    """
    Render the gateway's Service as a JSON-serialisable body.
    """
    spec = swifts.resolve_spec(instance.spec, config.spec_defaults())
    return bodies.RawBody(
        apiVersion=references.SERVICES.api_version,
        kind=references.SERVICES.kind or 'Service',
        metadata=render_meta(instance, owners),
        spec={
            'type': spec.service_type,
            'selector': labels_for(instance),
            'ports': [
                {'name': 'port', 'port': spec.port, 'targetPort': spec.port, 'protocol': 'TCP'},
                {'name': 'secure-port', 'port': spec.secure_port,
                 'targetPort': spec.secure_port, 'protocol': 'TCP'},
            ],
        },
    )


def render_patch(body: bodies.RawBody) -> bodies.RawBody:
    """
    Turn a rendered body into a merge-patch that converges the object to it.

    A merge-patch keeps the fields it does not mention, so the optional
    pod fields that are not rendered are explicitly nulled to be removed.
    """
    patch = copy.deepcopy(body)
    pod_spec = dicts.resolve(patch, 'spec.template.spec', None)
    if isinstance(pod_spec, dict):
        for field in OPTIONAL_POD_FIELDS:
            pod_spec.setdefault(field, None)
    return patch
