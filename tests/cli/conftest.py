import functools

import click.testing
import pytest

from edgeswift.cli import main


@pytest.fixture()
def required():
    return ['--image=edgefs/edgefs:latest', '--owner-name=rook-edgefs', '--owner-uid=uid1']


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    return functools.partial(runner.invoke, main)


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('edgeswift._core.reactor.running.run')


@pytest.fixture(autouse=True)
def restored_logging():
    """ The CLI commands configure the root logger; restore it for other tests. """
    import logging
    root = logging.getLogger()
    old_level, old_handlers = root.level, list(root.handlers)
    try:
        yield
    finally:
        root.handlers[:] = old_handlers
        root.setLevel(old_level)
