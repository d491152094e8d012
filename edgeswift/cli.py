import functools
from typing import Any, Callable, Mapping, Optional

import click
import yaml

from edgeswift._cogs.configs import configuration
from edgeswift._cogs.structs import swifts
from edgeswift._core.actions import loggers
from edgeswift._core.reactor import running


class LogFormatParamType(click.Choice):

    def __init__(self) -> None:
        super().__init__(choices=[v.name.lower() for v in loggers.LogFormat])

    def convert(self, value: Any, param: Any, ctx: Any) -> loggers.LogFormat:
        if isinstance(value, loggers.LogFormat):
            return value
        name: str = super().convert(value, param, ctx)
        return loggers.LogFormat[name.upper()]


class MappingFileParamType(click.File):
    """ A YAML or JSON file with a mapping inside (JSON is a subset of YAML). """
    name = 'mapping-file'

    def __init__(self) -> None:
        super().__init__(mode='r', encoding='utf-8')

    def convert(self, value: Any, param: Any, ctx: Any) -> Mapping[str, Any]:
        if isinstance(value, Mapping):
            return value
        f = super().convert(value, param, ctx)
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            self.fail(f"{value!r} is not a valid YAML/JSON file: {e}", param, ctx)
        finally:
            f.close()
        if not isinstance(data, Mapping):
            self.fail(f"{value!r} does not contain a mapping.", param, ctx)
        return data


def logging_options(fn: Callable[..., Any]) -> Callable[..., Any]:
    """ A decorator to configure logging in all commands the same way."""
    @click.option('-v', '--verbose', is_flag=True)
    @click.option('-d', '--debug', is_flag=True)
    @click.option('-q', '--quiet', is_flag=True)
    @click.option('--log-format', type=LogFormatParamType(), default='full')
    @click.option('--log-refkey', type=str)
    @click.option('--log-prefix/--no-log-prefix', default=None)
    @functools.wraps(fn)  # to preserve other opts/args
    def wrapper(verbose: bool, quiet: bool, debug: bool,
                log_format: loggers.LogFormat = loggers.LogFormat.FULL,
                log_prefix: Optional[bool] = False,
                log_refkey: Optional[str] = None,
                *args: Any, **kwargs: Any) -> Any:
        loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                          log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)
        return fn(*args, **kwargs)

    return wrapper


@click.version_option(prog_name='edgeswift')
@click.group(name='edgeswift', context_settings=dict(
    auto_envvar_prefix='EDGESWIFT',
))
def main() -> None:
    pass


@main.command()
@logging_options
@click.option('-n', '--namespace', type=str, default=None)
@click.option('-A', '--all-namespaces', 'clusterwide', is_flag=True)
@click.option('--image', type=str, required=True)
@click.option('--host-network/--no-host-network', default=False)
@click.option('--data-dir-host-path', type=str, default='')
@click.option('--data-volume-size', type=str, default='')
@click.option('--placement', type=MappingFileParamType(), default=None)
@click.option('--resources', type=MappingFileParamType(), default=None)
@click.option('--resource-profile', type=str, default='')
@click.option('--owner-api-version', type=str, default='edgefs.rook.io/v1alpha1')
@click.option('--owner-kind', type=str, default='Cluster')
@click.option('--owner-name', type=str, required=True)
@click.option('--owner-uid', type=str, required=True)
def run(
        namespace: Optional[str],
        clusterwide: bool,
        image: str,
        host_network: bool,
        data_dir_host_path: str,
        data_volume_size: str,
        placement: Optional[Mapping[str, Any]],
        resources: Optional[Mapping[str, Any]],
        resource_profile: str,
        owner_api_version: str,
        owner_kind: str,
        owner_name: str,
        owner_uid: str,
) -> None:
    """ Start the controller process and handle the SWIFT resources. """
    if namespace and clusterwide:
        raise click.UsageError("Either --namespace or --all-namespaces can be used, not both.")
    if not namespace and not clusterwide:
        raise click.UsageError("Either --namespace or --all-namespaces must be specified.")
    config = configuration.ControllerConfig(
        image=image,
        host_network=host_network,
        data_dir_host_path=data_dir_host_path,
        data_volume_size=data_volume_size,
        placement=placement or {},
        resources=resources or {},
        resource_profile=resource_profile,
        owner_ref=swifts.OwnerReference(
            api_version=owner_api_version,
            kind=owner_kind,
            name=owner_name,
            uid=owner_uid,
        ),
    )
    return running.run(
        config=config,
        namespace=None if clusterwide else namespace,
    )
