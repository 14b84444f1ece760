"""Test the motion interpreter.

Tests for sm2lbpp.gcode.interpreter:
    - Positioning modes (G90/G91)
    - Laser power from M3 P / M3 S, M5 off
    - Powered runs → paths, unpowered moves finalize them
    - Bounds only cover powered geometry
    - Unset axes stay unset under relative moves

Test cases:
    - test_end_to_end_example()
    - test_power_from_s_and_p()
    - test_m3_without_power_keeps_previous()
    - test_zero_power_draws_nothing()
    - test_unpowered_move_finalizes_path()
    - test_relative_moves()
    - test_relative_move_from_unset_axis()
    - test_anchor_uses_current_position()
    - test_travel_moves_not_in_bounds()
    - test_other_commands_ignored()
    - test_move_with_unset_axis_not_in_bounds()

Run:
    pytest tests/test_interpreter.py -v
"""

import numpy as np
import pytest

from sm2lbpp.gcode.interpreter import MotionInterpreter
from sm2lbpp.gcode.tokenizer import Command, Tokenizer
from sm2lbpp.preview.shape import GeometryBuilder


def run(gcode: bytes):
    builder = GeometryBuilder()
    interpreter = MotionInterpreter(builder)
    for command in Tokenizer(gcode).commands():
        interpreter.execute(command)
    shape = builder.finish()
    return interpreter, shape


def vertices(interpreter, path):
    return path.vertices(interpreter.builder.store)


def test_end_to_end_example():
    """G90, M3 S255, two powered moves, M5 → one path (0,0)→(10,0)→(10,10)."""
    gcode = b"G90\nM3 S255\nG1 X10 Y0\nG1 X10 Y10\nM5\n;file_total_lines: 5\n"
    interpreter, shape = run(gcode)

    assert interpreter.absolute_mode is True
    assert len(shape.paths) == 1
    np.testing.assert_allclose(
        vertices(interpreter, shape.paths[0]),
        [[0.0, 0.0], [10.0, 0.0], [10.0, 10.0]],
    )
    b = interpreter.bounds
    assert (b.min_x, b.max_x, b.min_y, b.max_y) == (0.0, 10.0, 0.0, 10.0)
    assert interpreter.power == 0.0
    assert interpreter.laser_on is False


def test_power_from_s_and_p():
    builder = GeometryBuilder()
    interpreter = MotionInterpreter(builder)

    interpreter.execute(Command('M', 3, {'S': 255.0}))
    assert interpreter.power == pytest.approx(100.0)
    assert interpreter.is_powered

    interpreter.execute(Command('M', 3, {'S': 51.0}))
    assert interpreter.power == pytest.approx(20.0)

    # P wins over S
    interpreter.execute(Command('M', 3, {'P': 42.0, 'S': 255.0}))
    assert interpreter.power == pytest.approx(42.0)

    interpreter.execute(Command('M', 5))
    assert interpreter.power == 0.0
    assert not interpreter.is_powered


def test_m3_without_power_keeps_previous():
    interpreter = MotionInterpreter(GeometryBuilder())
    interpreter.execute(Command('M', 3, {'P': 30.0}))
    interpreter.execute(Command('M', 3))

    assert interpreter.power == pytest.approx(30.0)
    assert interpreter.laser_on


def test_zero_power_draws_nothing():
    interpreter, shape = run(b"M3 S0\nG1 X10 Y10\nG1 X20 Y0\n")

    assert not shape
    assert interpreter.bounds.is_empty
    assert interpreter.builder.store is None


def test_unpowered_move_finalizes_path():
    gcode = (
        b"G0 X0 Y0\n"
        b"M3 P50\n"
        b"G1 X5 Y0\n"
        b"M5\n"
        b"G0 X20 Y20\n"
        b"M3 P50\n"
        b"G1 X25 Y20\n"
        b"G1 X25 Y25\n"
    )
    interpreter, shape = run(gcode)

    assert len(shape.paths) == 2
    np.testing.assert_allclose(vertices(interpreter, shape.paths[0]), [[0, 0], [5, 0]])
    np.testing.assert_allclose(
        vertices(interpreter, shape.paths[1]), [[20, 20], [25, 20], [25, 25]]
    )


def test_relative_moves():
    gcode = b"G0 X1 Y1\nG91\nM3 P100\nG1 X2\nG1 Y3\nG1 X-1 Y-1\n"
    interpreter, shape = run(gcode)

    assert interpreter.absolute_mode is False
    np.testing.assert_allclose(
        vertices(interpreter, shape.paths[0]),
        [[1, 1], [3, 1], [3, 4], [2, 3]],
    )
    assert (interpreter.x, interpreter.y) == (2.0, 3.0)


def test_relative_move_from_unset_axis():
    """A relative increment on a never-assigned axis leaves it unset."""
    interpreter = MotionInterpreter(GeometryBuilder())
    interpreter.execute(Command('G', 91))
    interpreter.execute(Command('G', 0, {'X': 5.0}))

    assert interpreter.x is None
    assert interpreter.y is None


def test_anchor_uses_current_position():
    """A powered run starts where the previous travel move ended."""
    gcode = b"G0 X3 Y4\nM3 S255\nG1 X6\nG1 Y8\n"
    interpreter, shape = run(gcode)

    np.testing.assert_allclose(
        vertices(interpreter, shape.paths[0]), [[3, 4], [6, 4], [6, 8]]
    )


def test_travel_moves_not_in_bounds():
    gcode = b"G0 X-100 Y-100\nG0 X2 Y2\nM3 S255\nG1 X4 Y2\nM5\nG0 X200 Y200\n"
    interpreter, _ = run(gcode)

    b = interpreter.bounds
    assert (b.min_x, b.min_y, b.max_x, b.max_y) == (2.0, 2.0, 4.0, 2.0)
    assert interpreter.move_count == 4


def test_other_commands_ignored():
    gcode = b"G21\nG28\nM106 S255\nG4 P1\nM3 P100\nG1 X1 Y1\n"
    interpreter, shape = run(gcode)

    summary = interpreter.summary()
    assert summary['path_count'] == 1
    assert summary['position'] == (1.0, 1.0)
    assert summary['point_count'] == 4
    assert summary['power'] == pytest.approx(100.0)


def test_move_with_unset_axis_not_in_bounds():
    """A powered move that records no point leaves the bounds alone."""
    gcode = b"G90\nM3 S255\nG1 X-100\nG1 X10 Y0\nG1 X10 Y10\nM5\nG0 X0\n"
    interpreter, shape = run(gcode)

    assert len(shape.paths) == 1
    np.testing.assert_allclose(
        vertices(interpreter, shape.paths[0]), [[0, 0], [10, 0], [10, 10]]
    )
    b = interpreter.bounds
    assert (b.min_x, b.min_y, b.max_x, b.max_y) == (0.0, 0.0, 10.0, 10.0)
