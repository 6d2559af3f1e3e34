"""
Command-line interface for fractal iteration.

This module provides a CLI for sampling escape-time fractals with any
supported recurrence and writing the raw iteration counts.
"""

import click
import sys
from pathlib import Path
from typing import Optional, Tuple
import logging
import time

from .. import __version__
from ..api import FractalRenderer, benchmark as run_benchmark
from ..core.config import (EngineConfig, RenderConfig, PRESETS, get_preset,
                           load_config, save_config)
from ..core.functions import FunctionRegistry
from ..core.iteration import IterationEngine
from ..core.precision import detect_precision_need
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _parse_precision(value: Optional[str]):
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return value


def _load_configs(config_file: Optional[str], preset: Optional[str]) -> Tuple[EngineConfig, RenderConfig]:
    """Defaults, overridden by a config file; a preset replaces the engine section."""
    if config_file:
        engine_config, render_config = load_config(config_file)
    else:
        engine_config, render_config = EngineConfig(), RenderConfig()
    if preset:
        engine_config = get_preset(preset)
    return engine_config, render_config


def _apply_engine_overrides(engine_config: EngineConfig, max_iter, precision,
                            escape_radius, hardware) -> EngineConfig:
    overrides = {}
    if max_iter is not None:
        overrides['max_iterations'] = max_iter
    if precision is not None:
        overrides['precision'] = precision
    if escape_radius is not None:
        overrides['escape_radius'] = escape_radius
    if hardware:
        overrides['hardware'] = True
    return engine_config.replace(**overrides) if overrides else engine_config


def _fail(ctx, e: Exception):
    click.echo(f"Error: {e}", err=True)
    if ctx.obj.get('verbose'):
        import traceback
        traceback.print_exc()
    sys.exit(1)


@click.group(invoke_without_command=True)
@click.option('--version', is_flag=True, help='Show version information')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress most output')
@click.pass_context
def main(ctx, version, verbose, quiet):
    """
    Fractal Voyager - escape-time fractal iteration engine.

    Iterates configurable recurrences over a grid of complex sample points
    in hardware or arbitrary precision and writes the iteration counts.
    """
    # Setup logging
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format='%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s')
    else:
        logging.basicConfig(level=logging.INFO,
                            format='%(levelname)s: %(message)s')

    if version:
        click.echo(f"Fractal Voyager v{__version__}")
        click.echo(f"Python: {sys.version}")
        if ctx.invoked_subcommand is None:
            sys.exit(0)

    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose


@main.command()
@click.argument('output', type=click.Path())
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON configuration file')
@click.option('--preset', type=click.Choice(sorted(PRESETS)), help='Recurrence preset')
@click.option('--width', '-w', type=int, help='Grid width in samples')
@click.option('--height', '-h', type=int, help='Grid height in samples')
@click.option('--bounds', type=str, help='Complex plane bounds: "xmin,xmax,ymin,ymax"')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--precision', type=str, help="Significant digits, 'hardware', 'quad' or 'auto'")
@click.option('--escape-radius', type=str, help='Escape radius')
@click.option('--hardware', is_flag=True, help='Use hardware doubles for the Mandelbrot recurrence')
@click.option('--threads', type=int, help='Number of worker threads')
@click.option('--tile-size', type=int, help='Tile size for parallel rendering')
@click.option('--error-value', type=int,
              help='Record samples that divide by zero with this value instead of aborting')
@click.pass_context
def render(ctx, output, config_file, preset, width, height, bounds, max_iter, precision,
           escape_radius, hardware, threads, tile_size, error_value):
    """
    Sample a grid and save the iteration counts.

    OUTPUT: Output path for the .npy array (a .json sidecar is written next to it)
    """
    try:
        engine_config, render_config = _load_configs(config_file, preset)

        if bounds:
            parts = [x.strip() for x in bounds.split(',')]
            if len(parts) != 4:
                raise ConfigurationError("Invalid bounds format. Use 'xmin,xmax,ymin,ymax'")
            render_config.bounds = tuple(parts)
        for key, value in (('width', width), ('height', height), ('threads', threads),
                           ('tile_size', tile_size), ('error_value', error_value)):
            if value is not None:
                setattr(render_config, key, value)
        render_config.validate()

        precision = _parse_precision(precision)
        if precision == 'auto':
            xmin, xmax = render_config.bounds[:2]
            precision = detect_precision_need(float(xmax) - float(xmin))
            click.echo(f"Auto precision: {precision}")
        engine_config = _apply_engine_overrides(engine_config, max_iter, precision,
                                                escape_radius, hardware)

        renderer = FractalRenderer(engine_config, render_config)

        def progress_callback(completed, total):
            if ctx.obj.get('verbose'):
                click.echo(f"Progress: {completed}/{total} tiles")

        click.echo(f"Rendering {render_config.width}x{render_config.height} samples "
                   f"({renderer.engine.kind.value})...")
        start_time = time.time()
        result = renderer.render(progress_callback=progress_callback)
        path = result.save(output)

        click.echo(f"Render complete: {time.time() - start_time:.2f}s")
        click.echo(f"Saved: {path}")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.argument('real', type=str)
@click.argument('imag', type=str)
@click.option('--config', 'config_file', type=click.Path(exists=True), help='JSON configuration file')
@click.option('--preset', type=click.Choice(sorted(PRESETS)), help='Recurrence preset')
@click.option('--max-iter', type=int, help='Maximum iterations')
@click.option('--precision', type=str, help="Significant digits, 'hardware' or 'quad'")
@click.option('--escape-radius', type=str, help='Escape radius')
@click.option('--hardware', is_flag=True, help='Use hardware doubles for the Mandelbrot recurrence')
@click.pass_context
def point(ctx, real, imag, config_file, preset, max_iter, precision, escape_radius, hardware):
    """
    Iterate a single sample point REAL + IMAG*i.

    Use "--" before negative coordinates, e.g. ``point -- -0.75 0.1``.
    """
    try:
        engine_config, _ = _load_configs(config_file, preset)
        engine_config = _apply_engine_overrides(engine_config, max_iter, _parse_precision(precision),
                                                escape_radius, hardware)
        engine = IterationEngine(engine_config)
        count = engine.iterate(engine.point(real, imag))

        click.echo(f"Recurrence: {engine.describe()}")
        click.echo(f"Strategy: {engine.kind.value}")
        if count >= engine.max_iter:
            click.echo(f"Iterations: {count} (did not escape)")
        else:
            click.echo(f"Iterations: {count} (escaped)")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.option('--iterations', type=int, default=1000, show_default=True, help='Steps per timed run')
@click.option('--precision', type=str, default='30', show_default=True,
              help="Significant digits, 'hardware' or 'quad'")
@click.option('--threads', type=int, help='Number of worker threads')
@click.option('--repeats', type=int, default=1, show_default=True, help='Timed runs per thread')
@click.pass_context
def benchmark(ctx, iterations, precision, threads, repeats):
    """Time raw z*z + c steps on every worker thread."""
    try:
        records = run_benchmark(iterations, _parse_precision(precision), threads, repeats)
        total = sum(r['seconds'] for r in records)
        click.echo(f"Runs: {len(records)}")
        click.echo(f"Mean time per run: {total / len(records):.4f}s")
        click.echo(f"Mean time per iteration: {total / (len(records) * iterations) * 1e6:.2f}us")

    except Exception as e:
        _fail(ctx, e)


@main.command()
@click.pass_context
def list_functions(ctx):
    """List the functions a recurrence term may apply."""
    click.echo("Available functions:")
    for name, description in FunctionRegistry.list_functions().items():
        arity = FunctionRegistry.arity(name)
        extras = f" ({arity} extra parameter{'s' if arity != 1 else ''})" if arity else ""
        click.echo(f"  {name}: {description}{extras}")


@main.command()
@click.pass_context
def list_presets(ctx):
    """List available recurrence presets."""
    click.echo("Available presets:")
    for name in PRESETS:
        click.echo(f"  {name}")
        if ctx.obj.get('verbose'):
            click.echo(f"    {IterationEngine(get_preset(name)).describe()}")


@main.command()
@click.argument('output', type=click.Path())
@click.option('--preset', type=click.Choice(sorted(PRESETS)), help='Recurrence preset to start from')
@click.pass_context
def init_config(ctx, output, preset):
    """
    Create a JSON configuration file.
    """
    try:
        output_path = Path(output)
        if not output_path.suffix:
            output_path = output_path.with_suffix('.json')
        engine_config = get_preset(preset) if preset else EngineConfig()
        save_config(output_path, engine_config, RenderConfig())
        click.echo(f"Configuration template created: {output_path}")

    except Exception as e:
        _fail(ctx, e)


if __name__ == '__main__':
    main()
