import sys

import click.testing
import pytest

SCRIPT = """
class Controller:
    async def init(self, operator):
        pass

def make_controller():
    return Controller()

controller = Controller()

class Nested:
    controller = Controller()

not_a_controller = object()
"""


@pytest.fixture(autouse=True)
def srcdir(tmpdir):
    tmpdir.join('handler1.py').write(SCRIPT)
    pkgdir = tmpdir.mkdir('package')
    pkgdir.join('__init__.py').write('')
    pkgdir.join('module_1.py').write(SCRIPT)

    sys.path.insert(0, str(tmpdir))
    try:
        with tmpdir.as_cwd():
            yield tmpdir
    finally:
        sys.path.remove(str(tmpdir))


@pytest.fixture(autouse=True)
def clean_modules_cache():
    # Otherwise, the first loaded test-modules remain there forever,
    # preventing 2nd and further tests from passing.
    for key in list(sys.modules.keys()):
        if key.startswith('package') or key.startswith('__k8soperator_script__'):
            del sys.modules[key]


@pytest.fixture()
def runner():
    runner = click.testing.CliRunner()
    return runner


@pytest.fixture()
def invoke(runner):
    from k8soperator.cli import main
    return lambda *args, **kwargs: runner.invoke(main, *args, **kwargs)


@pytest.fixture(autouse=True)
def configure(mocker):
    return mocker.patch('k8soperator.engines.loggers.configure')


@pytest.fixture()
def real_run(mocker):
    return mocker.patch('k8soperator.reactor.running.run')
