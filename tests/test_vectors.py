import math

import pytest

from possibility_cones.geometry.vectors import (
    add_vectors,
    angle_between,
    cross_product,
    distance,
    dot_product,
    magnitude,
    normalize,
    point_to_vector,
    scale_vector,
    subtract_vectors,
    translate_point,
    unit_vector,
    vector_to_point,
    zero_vector,
)
from possibility_cones.types import SpacePoint, SpaceVector, StructuralMisuseError


def test_basic_algebra():
    a = SpaceVector((1.0, 2.0, 3.0))
    b = SpaceVector((4.0, -1.0, 0.5))

    assert add_vectors(a, b).components == (5.0, 1.0, 3.5)
    assert subtract_vectors(a, b).components == (-3.0, 3.0, 2.5)
    assert scale_vector(a, 2).components == (2.0, 4.0, 6.0)
    assert dot_product(a, b) == pytest.approx(4.0 - 2.0 + 1.5)
    assert magnitude(SpaceVector((3.0, 4.0))) == pytest.approx(5.0)


def test_operations_return_new_vectors():
    a = SpaceVector((1.0, 1.0))
    result = add_vectors(a, a)
    assert result is not a
    assert a.components == (1.0, 1.0)


def test_normalize_unit_length_and_zero_vector():
    v = normalize(SpaceVector((0.0, 3.0, 4.0)))
    assert magnitude(v) == pytest.approx(1.0)
    assert v.components == pytest.approx((0.0, 0.6, 0.8))

    zero = zero_vector(3)
    assert normalize(zero).components == (0.0, 0.0, 0.0)


def test_unit_vector_axis_range():
    assert unit_vector(4, 2).components == (0.0, 0.0, 1.0, 0.0)
    with pytest.raises(StructuralMisuseError):
        unit_vector(2, 2)


def test_cross_product_only_in_three_dimensions():
    x = SpaceVector((1.0, 0.0, 0.0))
    y = SpaceVector((0.0, 1.0, 0.0))
    assert cross_product(x, y).components == pytest.approx((0.0, 0.0, 1.0))

    with pytest.raises(StructuralMisuseError):
        cross_product(SpaceVector((1.0, 0.0)), SpaceVector((0.0, 1.0)))
    with pytest.raises(StructuralMisuseError):
        cross_product(SpaceVector((1.0, 0.0, 0.0, 0.0)), SpaceVector((0.0, 1.0, 0.0, 0.0)))


@pytest.mark.parametrize(
    "op",
    [
        lambda a, b: add_vectors(a, b),
        lambda a, b: subtract_vectors(a, b),
        lambda a, b: dot_product(a, b),
    ],
)
def test_mismatched_dimensions_raise(op):
    with pytest.raises(StructuralMisuseError):
        op(SpaceVector((1.0, 2.0)), SpaceVector((1.0, 2.0, 3.0)))


def test_points_and_vectors_convert():
    p = SpacePoint((1.0, 2.0))
    v = point_to_vector(p)
    assert v.components == (1.0, 2.0)
    assert vector_to_point(v) == p
    assert translate_point(p, SpaceVector((1.0, -2.0))).coordinates == (2.0, 0.0)
    assert distance(SpacePoint((0.0, 0.0)), SpacePoint((3.0, 4.0))) == pytest.approx(5.0)

    with pytest.raises(StructuralMisuseError):
        distance(SpacePoint((0.0,)), SpacePoint((0.0, 1.0)))


def test_angle_between():
    assert angle_between(SpaceVector((1.0, 0.0)), SpaceVector((0.0, 2.0))) == pytest.approx(math.pi / 2)
    assert angle_between(SpaceVector((1.0, 1.0)), SpaceVector((2.0, 2.0))) == pytest.approx(0.0, abs=1e-7)
    with pytest.raises(StructuralMisuseError):
        angle_between(zero_vector(2), SpaceVector((1.0, 0.0)))
