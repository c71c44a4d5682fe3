import asyncio
import os

import click
from rich.console import Console
from rich.table import Table

from base_classes import PreviewError
from config_manager import ConfigManager, parse_size
from core.loader import discover_configs, find_config, load_module, load_object
from core.preview_manager import PreviewManager
from utils.logging_utils import LoggingHandler


@click.group(invoke_without_command=True)
@click.option('-c', '--conf', default=None, help='Path to a custom configuration file')
@click.option('-l', '--log', 'log_enabled', default=False, is_flag=True, help='Write a structured log for this run')
@click.option('-v', '--verbose', default=False, is_flag=True, help='Mirror log events to the console')
@click.pass_context
def cli(ctx, conf, log_enabled, verbose):
    """
    the main entry point for the preview CLI
    """
    ctx.ensure_object(dict)

    overrides = {}
    if log_enabled or verbose:
        overrides['active'] = True
    if verbose:
        overrides['mirror_to_console'] = True

    try:
        config_manager = ConfigManager(conf)
    except FileNotFoundError as e:
        raise click.ClickException(str(e))
    config = config_manager.create_harness_config(overrides)
    logger = LoggingHandler(config)
    logger.settings({
        'conf': conf,
        'preview': config.get_section('PREVIEW'),
    })
    ctx.obj['CONFIG_MANAGER'] = config_manager
    ctx.obj['CONFIG'] = config
    ctx.obj['LOGGER'] = logger

    # if no subcommand was invoked, show the help (since we're using invoke_without_command=True)
    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command(name='list')
@click.argument('module')
@click.pass_context
def list_configs(ctx, module):
    """
    list the preview configs in MODULE and their param sets
    """
    mod = _load(module)
    configs = discover_configs(mod)
    if not configs:
        click.echo(f"No preview configs found in {module}")
        return
    table = Table(title=f"Preview configs in {module} ({len(configs)} found)")
    table.add_column("Config", style="bold blue")
    table.add_column("Page", style="green")
    table.add_column("Params", style="magenta")
    table.add_column("Param sets", style="cyan")
    for name in sorted(configs):
        cls = configs[name]
        try:
            page = cls.page_key()
            page_name = getattr(page, '__name__', None) or str(page)
        except TypeError:
            page_name = '?'
        # one row per param set
        param_sets = cls.param_names() or ['']
        table.add_row(name, page_name, cls.params_type().__name__, param_sets[0])
        for param_name in param_sets[1:]:
            table.add_row('', '', '', param_name)
    Console().print(table)


@cli.command()
@click.argument('module')
@click.option('--app', 'app_target', default=None, help='module:factory for the Textual app (default MODULE:create_app)')
@click.option('--manager', 'manager_target', default=None, help='module:factory for the preview manager (default MODULE:create_manager)')
@click.pass_context
def users(ctx, module, app_target, manager_target):
    """
    list the test users known to the preview manager
    """
    mod = _load(module)
    try:
        app = _factory(mod, app_target, 'create_app')()
        manager = _factory(mod, manager_target, 'create_manager')(app, config=ctx.obj['CONFIG'], logger=ctx.obj['LOGGER'])
        found = manager.test_users
    except (ImportError, AttributeError, ValueError) as e:
        raise click.ClickException(str(e))
    finally:
        PreviewManager.teardown()
    if not found:
        click.echo("No test users defined")
        return
    for key in sorted(found):
        click.echo(f'{key}: {found[key]!r}')


@cli.command()
@click.argument('module')
@click.option('--config', 'config_name', required=True, help='Preview config class (or its short name)')
@click.option('--params', 'params_name', required=True, help='Param set offered by the config')
@click.option('--app', 'app_target', default=None, help='module:factory for the Textual app (default MODULE:create_app)')
@click.option('--manager', 'manager_target', default=None, help='module:factory for the preview manager (default MODULE:create_manager)')
@click.option('--headless', default=False, is_flag=True, help='Run without a terminal UI and report the result')
@click.option('--screenshot', default=None, help='SVG screenshot path for headless runs')
@click.option('--size', default=None, help='Terminal size for headless runs, e.g. 120x40')
@click.option('--timeout', type=float, default=None, help='Seconds before the preview is reported as unresolved (0 = no limit)')
@click.pass_context
def run(ctx, module, config_name, params_name, app_target, manager_target, headless, screenshot, size, timeout):
    """
    drive the app in MODULE into a preview state and show the page
    """
    from tui.driver import PreviewDriver

    config = ctx.obj['CONFIG']
    logger = ctx.obj['LOGGER']
    mod = _load(module)
    try:
        config_cls = find_config(mod, config_name)
        preview = config_cls()
        params = preview.params_for(params_name)
        app = _factory(mod, app_target, 'create_app')()
        manager = _factory(mod, manager_target, 'create_manager')(app, config=config, logger=logger)
    except KeyError as e:
        raise click.ClickException(e.args[0] if e.args else str(e))
    except (ImportError, AttributeError, ValueError) as e:
        raise click.ClickException(str(e))

    if timeout is None:
        timeout = config.get_float('PREVIEW', 'await_timeout')
    elif timeout <= 0:
        timeout = None
    driver = PreviewDriver(manager, app, timeout=timeout, logger=logger)

    try:
        if headless:
            try:
                term_size = parse_size(size) if size else config.get_size('PREVIEW', 'headless_size')
            except ValueError as e:
                raise click.BadParameter(str(e), param_hint='--size')
            if screenshot and not os.path.dirname(screenshot):
                shot_dir = config.get_option('PREVIEW', 'screenshot_dir', fallback='')
                if shot_dir:
                    screenshot = os.path.join(str(shot_dir), screenshot)
            result = asyncio.run(driver.run_headless(
                preview, params, params_name=params_name, size=term_size, screenshot=screenshot,
            ))
            click.echo(f'{result.config}/{result.params}: {result.screen} ready in {result.duration_ms} ms')
            if result.screenshot:
                click.echo(f'Screenshot: {result.screenshot}')
        else:
            driver.run_interactive(preview, params)
    except PreviewError as e:
        raise click.ClickException(str(e))
    finally:
        PreviewManager.teardown()


def _load(module: str):
    try:
        return load_module(module)
    except (ImportError, OSError) as e:
        raise click.ClickException(f"Could not import {module}: {e}")


def _factory(mod, target, default_name: str):
    """Explicit module:attr target, else the default factory defined in mod"""
    if target:
        return load_object(target)
    factory = getattr(mod, default_name, None)
    if factory is None:
        raise AttributeError(f"{mod.__name__} does not define {default_name}(); pass it explicitly")
    return factory


# take care of business
if __name__ == "__main__":
    cli(obj={})
