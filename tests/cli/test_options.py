import pytest

from edgeswift._cogs.structs.swifts import OwnerReference


@pytest.mark.parametrize('value, options, envvars', [
    ('ns1', ['-n', 'ns1'], {}),
    ('ns1', ['--namespace=ns1'], {}),
    ('ns1', [], {'EDGESWIFT_RUN_NAMESPACE': 'ns1'}),
    (None, ['-A'], {}),
    (None, ['--all-namespaces'], {}),
], ids=['opt-short-n', 'opt-long-namespace', 'env-namespace', 'opt-short-A', 'opt-long-all'])
def test_namespaces_passed_to_realrun(invoke, real_run, required, value, options, envvars):
    result = invoke(['run'] + required + options, env=envvars)
    assert result.exit_code == 0, result.output
    assert real_run.called
    assert real_run.call_args[1]['namespace'] == value


def test_both_namespace_options_are_prohibited(invoke, real_run, required):
    result = invoke(['run'] + required + ['-n', 'ns1', '-A'])
    assert result.exit_code == 2
    assert 'not both' in result.output
    assert not real_run.called


def test_namespace_options_are_required(invoke, real_run, required):
    result = invoke(['run'] + required)
    assert result.exit_code == 2
    assert 'must be specified' in result.output
    assert not real_run.called


@pytest.mark.parametrize('missing', ['--image', '--owner-name', '--owner-uid'])
def test_required_options(invoke, real_run, required, missing):
    options = [option for option in required if not option.startswith(missing + '=')]
    result = invoke(['run', '-A'] + options)
    assert result.exit_code == 2
    assert missing in result.output
    assert not real_run.called


def test_defaults_in_the_config(invoke, real_run, required):
    result = invoke(['run', '-A'] + required)
    assert result.exit_code == 0, result.output

    config = real_run.call_args[1]['config']
    assert config.image == 'edgefs/edgefs:latest'
    assert config.host_network is False
    assert config.data_dir_host_path == ''
    assert config.data_volume_size == ''
    assert config.placement == {}
    assert config.resources == {}
    assert config.resource_profile == ''
    assert config.context is None
    assert config.owner_ref == OwnerReference(
        api_version='edgefs.rook.io/v1alpha1',
        kind='Cluster',
        name='rook-edgefs',
        uid='uid1',
    )


def test_options_in_the_config(invoke, real_run, required):
    result = invoke(['run', '-A'] + required + [
        '--host-network',
        '--data-dir-host-path=/var/lib/edgefs',
        '--data-volume-size=10Gi',
        '--resource-profile=embedded',
        '--owner-api-version=edgefs.rook.io/v1beta1',
        '--owner-kind=EdgefsCluster',
    ])
    assert result.exit_code == 0, result.output

    config = real_run.call_args[1]['config']
    assert config.host_network is True
    assert config.data_dir_host_path == '/var/lib/edgefs'
    assert config.data_volume_size == '10Gi'
    assert config.resource_profile == 'embedded'
    assert config.owner_ref.api_version == 'edgefs.rook.io/v1beta1'
    assert config.owner_ref.kind == 'EdgefsCluster'


def test_image_from_envvars(invoke, real_run, required):
    options = [option for option in required if not option.startswith('--image=')]
    result = invoke(['run', '-A'] + options, env={'EDGESWIFT_RUN_IMAGE': 'edgefs/edgefs:env'})
    assert result.exit_code == 0, result.output
    assert real_run.call_args[1]['config'].image == 'edgefs/edgefs:env'


def test_mapping_files(invoke, real_run, required, tmp_path):
    placement = tmp_path / 'placement.yaml'
    placement.write_text('tolerations:\n- key: storage\n  operator: Exists\n')
    resources = tmp_path / 'resources.json'
    resources.write_text('{"limits": {"memory": "1Gi"}}')

    result = invoke(['run', '-A'] + required + [
        f'--placement={placement}',
        f'--resources={resources}',
    ])
    assert result.exit_code == 0, result.output

    config = real_run.call_args[1]['config']
    assert config.placement == {'tolerations': ({'key': 'storage', 'operator': 'Exists'},)}
    assert config.resources == {'limits': {'memory': '1Gi'}}


@pytest.mark.parametrize('content', ['- a list\n- of items\n', 'key: [unclosed\n'])
def test_invalid_mapping_files(invoke, real_run, required, tmp_path, content):
    placement = tmp_path / 'placement.yaml'
    placement.write_text(content)

    result = invoke(['run', '-A'] + required + [f'--placement={placement}'])
    assert result.exit_code == 2
    assert not real_run.called


def test_absent_mapping_files(invoke, real_run, required, tmp_path):
    result = invoke(['run', '-A'] + required + [f'--placement={tmp_path / "absent.yaml"}'])
    assert result.exit_code == 2
    assert not real_run.called
