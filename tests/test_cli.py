import json

import numpy as np
import pytest
from click.testing import CliRunner

from fractal_voyager.cli.main import main
from fractal_voyager.core.config import load_config


@pytest.fixture
def runner():
    return CliRunner()


def test_version(runner):
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert 'Fractal Voyager v' in result.output


def test_point(runner):
    result = runner.invoke(main, ['point', '--', '-0.8130614', '0.3311725'])
    assert result.exit_code == 0, result.output
    assert 'Iterations: 8 (escaped)' in result.output
    assert 'pure_mandelbrot_arbitrary' in result.output


def test_point_hardware(runner):
    result = runner.invoke(main, ['point', '--hardware', '--', '-1.5301676', '0.2678571'])
    assert result.exit_code == 0, result.output
    assert 'Iterations: 4 (escaped)' in result.output
    assert 'pure_mandelbrot_hardware' in result.output


def test_point_inside(runner):
    result = runner.invoke(main, ['point', '--max-iter', '25', '0', '0'])
    assert result.exit_code == 0, result.output
    assert 'Iterations: 25 (did not escape)' in result.output


def test_point_with_preset(runner):
    result = runner.invoke(main, ['point', '--preset', 'multibrot3', '1', '0'])
    assert result.exit_code == 0, result.output
    assert 'Iterations: 1 (escaped)' in result.output
    assert 'general_1_term' in result.output


def test_unknown_preset(runner):
    result = runner.invoke(main, ['point', '--preset', 'julia', '0', '0'])
    assert result.exit_code == 2


def test_render(runner, tmp_path):
    output = tmp_path / 'grid'
    result = runner.invoke(main, ['render', str(output), '-w', '6', '-h', '4', '--max-iter', '20',
                                  '--threads', '2', '--tile-size', '3'])
    assert result.exit_code == 0, result.output
    iterations = np.load(tmp_path / 'grid.npy')
    assert iterations.shape == (4, 6)
    metadata = json.loads((tmp_path / 'grid.json').read_text())
    assert metadata['max_iterations'] == 20


def test_render_auto_precision(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / 'auto.npy'), '-w', '3', '-h', '3',
                                  '--max-iter', '10', '--precision', 'auto'])
    assert result.exit_code == 0, result.output
    assert 'Auto precision: hardware' in result.output
    assert 'pure_mandelbrot_hardware' in result.output


def test_render_bad_bounds(runner, tmp_path):
    result = runner.invoke(main, ['render', str(tmp_path / 'out'), '--bounds', '1,2,3'])
    assert result.exit_code == 1
    assert 'Invalid bounds' in result.output


def test_render_config_errors_reported_before_sampling(runner, tmp_path):
    config_path = tmp_path / 'bad.json'
    config_path.write_text(json.dumps({'engine': {'terms': [{'function': 'tan', 't': 1}]}}))
    result = runner.invoke(main, ['render', str(tmp_path / 'out'), '--config', str(config_path)])
    assert result.exit_code == 1
    assert "Unknown function 'tan'" in result.output
    assert not (tmp_path / 'out.npy').exists()


def test_render_division_by_zero(runner, tmp_path):
    config_path = tmp_path / 'zero.json'
    config_path.write_text(json.dumps({'engine': {'denominator': 0, 'max_iterations': 5}}))
    args = ['render', str(tmp_path / 'out'), '--config', str(config_path), '-w', '2', '-h', '2']

    result = runner.invoke(main, args)
    assert result.exit_code == 1

    result = runner.invoke(main, args + ['--error-value=-1'])
    assert result.exit_code == 0, result.output
    assert (np.load(tmp_path / 'out.npy') == -1).all()


def test_init_config(runner, tmp_path):
    result = runner.invoke(main, ['init-config', str(tmp_path / 'settings'), '--preset', 'sine'])
    assert result.exit_code == 0, result.output
    engine_config, render_config = load_config(tmp_path / 'settings.json')
    assert engine_config.terms[0].function == 'sin'
    assert render_config.width == 64


def test_list_functions(runner):
    result = runner.invoke(main, ['list-functions'])
    assert result.exit_code == 0
    for name in ('identity', 'sin', 'gamma', 'pow', 'hyp2f1'):
        assert name in result.output


def test_list_presets(runner):
    result = runner.invoke(main, ['-v', 'list-presets'])
    assert result.exit_code == 0
    assert 'multibrot3' in result.output
    assert 'sin' in result.output


def test_benchmark(runner):
    result = runner.invoke(main, ['benchmark', '--iterations', '10', '--threads', '2', '--precision', 'hardware'])
    assert result.exit_code == 0, result.output
    assert 'Runs: 2' in result.output
