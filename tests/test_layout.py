"""Test layout normalization onto the thumbnail canvas.

Tests for sm2lbpp.preview.layout:
    - Drawing's lower bound moves to the border offset
    - Bounds recomputed from segment vertices
    - Uniform scale = min(px/logical) per axis, centered

Test cases:
    - test_translate_to_border()
    - test_update_bounds()
    - test_fit_wide_canvas()
    - test_fit_flat_drawing()
    - test_normalize_empty_shape()
    - test_fit_with_wider_motion_bounds()
    - test_layout_apply()

Run:
    pytest tests/test_layout.py -v
"""

import numpy as np
import pytest

from sm2lbpp.gcode.interpreter import MotionInterpreter
from sm2lbpp.gcode.tokenizer import Tokenizer
from sm2lbpp.preview.layout import Layout, normalize, translate_to_border, update_bounds
from sm2lbpp.preview.shape import GeometryBuilder, MotionBounds, Shape


@pytest.fixture
def l_shape():
    """Path (0,0)→(10,0)→(10,10) offset by (-5, 20)."""
    builder = GeometryBuilder()
    interpreter = MotionInterpreter(builder)
    gcode = b"G0 X-5 Y20\nM3 S255\nG1 X5 Y20\nG1 X5 Y30\nM5\n"
    for command in Tokenizer(gcode).commands():
        interpreter.execute(command)
    shape = builder.finish()
    return shape, builder.store, interpreter.bounds


def test_translate_to_border(l_shape):
    shape, store, bounds = l_shape
    translate_to_border(store, bounds, (1.0, 2.0))

    verts = shape.paths[0].vertices(store)
    np.testing.assert_allclose(verts, [[1, 2], [11, 2], [11, 12]])


def test_update_bounds(l_shape):
    shape, store, bounds = l_shape
    update_bounds(shape, store)

    assert shape.paths[0].bounds == (-5.0, 20.0, 5.0, 30.0)
    assert shape.bounds == (-5.0, 20.0, 5.0, 30.0)


def test_fit_wide_canvas(l_shape):
    """10x10 drawing + 1 mm border → 12x12 logical, height-limited on 300x150."""
    shape, store, bounds = l_shape
    layout = normalize(shape, store, bounds, (1.0, 1.0), (300, 150))

    assert layout.logical_width == pytest.approx(12.0)
    assert layout.logical_height == pytest.approx(12.0)
    assert layout.scale == pytest.approx(12.5)
    assert layout.tx == pytest.approx(75.0)
    assert layout.ty == pytest.approx(0.0)
    assert shape.bounds == pytest.approx((1.0, 1.0, 11.0, 11.0))

    # Drawing plus border spans the full canvas height, centered horizontally
    px = layout.apply(shape.paths[0].vertices(store))
    np.testing.assert_allclose(px, [[87.5, 12.5], [212.5, 12.5], [212.5, 137.5]])


def test_fit_flat_drawing():
    """A horizontal line has zero height; the border keeps the scale finite."""
    builder = GeometryBuilder()
    builder.append(0.0, 0.0)
    builder.append_line_as_curve(10.0, 0.0)
    shape = builder.finish()
    bounds = MotionBounds(0.0, 0.0, 10.0, 0.0)

    layout = normalize(shape, builder.store, bounds, (1.0, 1.0), (300, 150))

    assert layout.scale == pytest.approx(25.0)
    assert layout.tx == pytest.approx(0.0)
    assert layout.ty == pytest.approx(50.0)


def test_normalize_empty_shape():
    assert normalize(Shape(), None, MotionBounds(), (1.0, 1.0), (300, 150)) is None


def test_layout_apply():
    layout = Layout(scale=2.0, tx=3.0, ty=-1.0, logical_width=1.0, logical_height=1.0)
    np.testing.assert_allclose(layout.apply(np.array([[1.0, 1.0], [0.0, 2.0]])), [[5, 1], [3, 3]])


def test_fit_with_wider_motion_bounds():
    """Motion bounds wider than the drawing still center the drawing."""
    builder = GeometryBuilder()
    builder.append(0.0, 0.0)
    builder.append_line_as_curve(10.0, 0.0)
    builder.append_line_as_curve(10.0, 10.0)
    shape = builder.finish()
    bounds = MotionBounds(-100.0, 0.0, 10.0, 10.0)

    layout = normalize(shape, builder.store, bounds, (1.0, 1.0), (300, 150))

    assert layout.scale == pytest.approx(12.5)
    px = layout.apply(shape.paths[0].vertices(builder.store))
    np.testing.assert_allclose(px, [[87.5, 12.5], [212.5, 12.5], [212.5, 137.5]])
