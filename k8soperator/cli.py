import asyncio
import dataclasses
import inspect
from typing import List, Optional

import click

from k8soperator.engines import loggers
from k8soperator.helpers import loaders, versions
from k8soperator.reactor import running
from k8soperator.structs import configuration, credentials


@dataclasses.dataclass()
class CLIControls:
    """ The controls of embedded runs, which are impossible to pass via CLI. """
    stop_flag: Optional[asyncio.Event] = None
    settings: Optional[configuration.OperatorSettings] = None
    connection_info: Optional[credentials.ConnectionInfo] = None


pass_controls = click.make_pass_decorator(CLIControls, ensure=True)


def parse_log_format(ctx: click.Context, param: click.Parameter, value: str) -> loggers.LogFormat:
    return loggers.LogFormat[value.upper()]


def resolve_controller(target: str) -> running.Controller:
    """
    Load the target and make a controller of it.

    The target is either a ready-to-use controller (anything with ``init``),
    or a class/factory that makes one when called with no arguments.
    """
    obj = loaders.load_target(target)
    if inspect.isclass(obj) or (callable(obj) and not hasattr(obj, 'init')):
        obj = obj()
    if not inspect.iscoroutinefunction(getattr(obj, 'init', None)):
        raise click.UsageError(f"The target {target!r} is not a controller: no async init().")
    return obj


@click.group(name='k8s-operator', context_settings=dict(auto_envvar_prefix='K8S_OPERATOR'))
@click.version_option(version=versions.version or 'unknown', prog_name='k8s-operator')
@click.option('-v', '--verbose', is_flag=True, help="Log the debug messages of the operator.")
@click.option('-d', '--debug', is_flag=True, help="Log the debug messages of asyncio too.")
@click.option('-q', '--quiet', is_flag=True, help="Log only the warnings and errors.")
@click.option('--log-format', type=click.Choice([f.name.lower() for f in loggers.LogFormat]),
              default='full', callback=parse_log_format)
@click.option('--log-refkey', type=str, help="The key of the object references in JSON logs.")
@click.option('--log-prefix/--no-log-prefix', default=None,
              help="Prefix the messages with the objects' names (default: unless JSON).")
def main(
        verbose: bool,
        debug: bool,
        quiet: bool,
        log_format: loggers.LogFormat,
        log_refkey: Optional[str],
        log_prefix: Optional[bool],
) -> None:
    """ Run the operators and manage their resources. """
    loggers.configure(debug=debug, verbose=verbose, quiet=quiet,
                      log_format=log_format, log_refkey=log_refkey, log_prefix=log_prefix)


@main.command()
@click.argument('target')
@pass_controls
def run(controls: CLIControls, target: str) -> None:
    """ Start an operator with the controller (``module:attr`` or ``file.py:attr``). """
    try:
        controller = resolve_controller(target)
    except (ImportError, AttributeError, ValueError) as e:
        raise click.UsageError(str(e))
    running.run(
        controller,
        settings=controls.settings,
        connection_info=controls.connection_info,
        stop_flag=controls.stop_flag,
    )


@main.command('register-crd')
@click.argument('paths', nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@pass_controls
def register_crd(controls: CLIControls, paths: List[str]) -> None:
    """ Register the custom resource definitions from the YAML files. """
    try:
        infos = asyncio.run(running.register_crds(
            list(paths),
            settings=controls.settings,
            connection_info=controls.connection_info,
        ))
    except ValueError as e:
        raise click.ClickException(str(e))
    for info in infos:
        click.echo(f'{info.group}/{info.plural}')
