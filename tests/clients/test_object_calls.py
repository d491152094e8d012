import logging

import aiohttp.web
import pytest

from edgeswift._cogs.clients.creating import create_obj
from edgeswift._cogs.clients.deleting import delete_obj
from edgeswift._cogs.clients.discovery import discover
from edgeswift._cogs.clients.errors import APIConflictError, APIError
from edgeswift._cogs.clients.fetching import list_objs
from edgeswift._cogs.clients.patching import patch_obj
from edgeswift._cogs.structs.references import DEPLOYMENTS, SWIFTS, Resource

logger = logging.getLogger(__name__)


async def test_creation_with_a_full_body(
        resp_mocker, aresponses, hostname, context, settings):

    post_mock = resp_mocker(return_value=aiohttp.web.json_response({'x': 'created'}))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments', 'post', post_mock)

    body = {'x': 'y', 'metadata': {'name': 'name1', 'namespace': 'ns1'}}
    result = await create_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                              body=body, logger=logger)

    assert result == {'x': 'created'}
    assert post_mock.call_count == 1
    assert post_mock.payloads == [{'x': 'y', 'metadata': {'name': 'name1', 'namespace': 'ns1'}}]


async def test_creation_with_identifiers_as_arguments(
        resp_mocker, aresponses, hostname, context, settings):

    post_mock = resp_mocker(return_value=aiohttp.web.json_response({}))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments', 'post', post_mock)

    await create_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                     namespace='ns1', name='name1', body={'x': 'y'}, logger=logger)

    assert post_mock.payloads == [{'x': 'y', 'metadata': {'name': 'name1', 'namespace': 'ns1'}}]


async def test_creation_conflicts_are_raised(
        resp_mocker, aresponses, hostname, context, settings):

    post_mock = resp_mocker(return_value=aresponses.Response(status=409))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments', 'post', post_mock)

    with pytest.raises(APIConflictError):
        await create_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                         namespace='ns1', name='name1', logger=logger)


async def test_patching_with_a_merge_patch(
        resp_mocker, aresponses, hostname, context, settings):

    patch_mock = resp_mocker(return_value=aiohttp.web.json_response({'x': 'patched'}))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments/name1', 'patch', patch_mock)

    result = await patch_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                             namespace='ns1', name='name1', patch={'x': 'y'}, logger=logger)

    assert result == {'x': 'patched'}
    assert patch_mock.payloads == [{'x': 'y'}]
    request = patch_mock.call_args[0][0]
    assert request.headers['Content-Type'] == 'application/merge-patch+json'


async def test_patching_of_absent_objects(
        resp_mocker, aresponses, hostname, context, settings):

    patch_mock = resp_mocker(return_value=aresponses.Response(status=404))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments/name1', 'patch', patch_mock)

    result = await patch_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                             namespace='ns1', name='name1', patch={'x': 'y'}, logger=logger)

    assert result is None


@pytest.mark.parametrize('status', [400, 403, 409, 500])
async def test_patching_errors_are_raised(
        resp_mocker, aresponses, hostname, context, settings, status):

    patch_mock = resp_mocker(return_value=aresponses.Response(status=status))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments/name1', 'patch', patch_mock)

    with pytest.raises(APIError) as e:
        await patch_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                        namespace='ns1', name='name1', patch={'x': 'y'}, logger=logger)
    assert e.value.status == status


async def test_deletion_with_background_propagation(
        resp_mocker, aresponses, hostname, context, settings):

    delete_mock = resp_mocker(return_value=aiohttp.web.json_response({}))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments/name1', 'delete', delete_mock)

    deleted = await delete_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                               namespace='ns1', name='name1', logger=logger)

    assert deleted is True
    assert delete_mock.payloads == [{'propagationPolicy': 'Background'}]


async def test_deletion_of_absent_objects(
        resp_mocker, aresponses, hostname, context, settings):

    delete_mock = resp_mocker(return_value=aresponses.Response(status=404))
    aresponses.add(hostname, '/apis/apps/v1/namespaces/ns1/deployments/name1', 'delete', delete_mock)

    deleted = await delete_obj(context=context, settings=settings, resource=DEPLOYMENTS,
                               namespace='ns1', name='name1', logger=logger)

    assert deleted is False


@pytest.mark.parametrize('namespace, url', [
    ('ns1', '/apis/edgefs.rook.io/v1alpha1/namespaces/ns1/swifts'),
    (None, '/apis/edgefs.rook.io/v1alpha1/swifts'),
])
async def test_listing_fills_the_kinds_and_versions(
        resp_mocker, aresponses, hostname, context, settings, namespace, url):

    result = {
        'apiVersion': 'edgefs.rook.io/v1alpha1',
        'kind': 'SWIFTList',
        'metadata': {'resourceVersion': '123'},
        'items': [{'metadata': {'name': 's1'}}, {'metadata': {'name': 's2'}}],
    }
    get_mock = resp_mocker(return_value=aiohttp.web.json_response(result))
    aresponses.add(hostname, url, 'get', get_mock)

    items, resource_version = await list_objs(context=context, settings=settings,
                                              resource=SWIFTS, namespace=namespace,
                                              logger=logger)

    assert resource_version == '123'
    assert [item['metadata']['name'] for item in items] == ['s1', 's2']
    assert all(item['kind'] == 'SWIFT' for item in items)
    assert all(item['apiVersion'] == 'edgefs.rook.io/v1alpha1' for item in items)


async def test_discovery_of_served_resources(
        resp_mocker, aresponses, hostname, context, settings):

    result = {'resources': [
        {'name': 'swifts/status', 'kind': 'SWIFT', 'namespaced': True},
        {'name': 'swifts', 'kind': 'SWIFT', 'namespaced': True},
    ]}
    get_mock = resp_mocker(return_value=aiohttp.web.json_response(result))
    aresponses.add(hostname, '/apis/edgefs.rook.io/v1alpha1', 'get', get_mock)

    resource = Resource('edgefs.rook.io', 'v1alpha1', 'swifts')
    served = await discover(context=context, settings=settings, resource=resource, logger=logger)

    assert served == resource
    assert served.kind == 'SWIFT'
    assert served.namespaced is True


async def test_discovery_of_unserved_resources(
        resp_mocker, aresponses, hostname, context, settings):

    result = {'resources': [{'name': 'nfss', 'kind': 'NFS', 'namespaced': True}]}
    get_mock = resp_mocker(return_value=aiohttp.web.json_response(result))
    aresponses.add(hostname, '/apis/edgefs.rook.io/v1alpha1', 'get', get_mock)

    served = await discover(context=context, settings=settings, resource=SWIFTS, logger=logger)
    assert served is None


async def test_discovery_of_unserved_groups(
        resp_mocker, aresponses, hostname, context, settings):

    get_mock = resp_mocker(return_value=aresponses.Response(status=404))
    aresponses.add(hostname, '/apis/edgefs.rook.io/v1alpha1', 'get', get_mock)

    served = await discover(context=context, settings=settings, resource=SWIFTS, logger=logger)
    assert served is None


async def test_discovery_of_forbidden_groups(
        resp_mocker, aresponses, hostname, context, settings):

    get_mock = resp_mocker(return_value=aresponses.Response(status=403))
    aresponses.add(hostname, '/apis/edgefs.rook.io/v1alpha1', 'get', get_mock)

    with pytest.raises(APIError) as e:
        await discover(context=context, settings=settings, resource=SWIFTS, logger=logger)
    assert e.value.status == 403
