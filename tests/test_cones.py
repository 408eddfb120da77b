import math

import numpy as np
import pytest

from possibility_cones.geometry.cones import (
    MAX_APERTURE,
    angular_offset,
    create_cone,
    is_point_in_cone,
    is_point_in_intersection,
    narrow_cone,
    points_in_cone,
    shift_cone_apex,
    signed_distance_to_cone,
)
from possibility_cones.types import SpacePoint, SpaceVector, StructuralMisuseError


def _cone(aperture=math.pi / 4, direction="forward", extent=None, dim=2):
    axis = np.zeros(dim)
    axis[0] = 1.0
    return create_cone(SpacePoint(np.zeros(dim)), SpaceVector(axis), aperture, direction=direction, extent=extent)


def test_create_cone_normalizes_axis_and_clamps_aperture():
    cone = create_cone(SpacePoint((0.0, 0.0)), SpaceVector((3.0, 4.0)), 2.5)
    assert cone.axis.components == pytest.approx((0.6, 0.8))
    assert cone.aperture == pytest.approx(MAX_APERTURE)

    closed = create_cone(SpacePoint((0.0, 0.0)), SpaceVector((1.0, 0.0)), -0.3)
    assert closed.aperture == 0.0


def test_create_cone_rejects_zero_axis():
    with pytest.raises(StructuralMisuseError):
        create_cone(SpacePoint((0.0, 0.0)), SpaceVector((0.0, 0.0)), 0.5)


def test_create_cone_ids_are_unique():
    assert _cone().id != _cone().id


@pytest.mark.parametrize("aperture", [0.01, math.pi / 8, math.pi / 4, math.pi / 2])
def test_apex_is_inside(aperture):
    cone = _cone(aperture)
    assert is_point_in_cone(cone.apex, cone)


def test_forward_membership_and_boundary():
    cone = _cone(math.pi / 4)
    assert is_point_in_cone(SpacePoint((10.0, 0.0)), cone)
    assert is_point_in_cone(SpacePoint((10.0, 10.0)), cone)
    assert not is_point_in_cone(SpacePoint((10.0, 10.5)), cone)
    assert not is_point_in_cone(SpacePoint((-1.0, 0.0)), cone)


def test_forward_extent():
    cone = _cone(math.pi / 4, extent=10.0)
    eps = 1e-6
    assert is_point_in_cone(SpacePoint((10.0, 0.0)), cone)
    assert is_point_in_cone(SpacePoint((10.0 - eps, 0.0)), cone)
    assert not is_point_in_cone(SpacePoint((10.0 + eps, 0.0)), cone)


def test_backward_and_bidirectional():
    backward = _cone(math.pi / 4, direction="backward", extent=5.0)
    assert is_point_in_cone(SpacePoint((-3.0, 1.0)), backward)
    assert not is_point_in_cone(SpacePoint((3.0, 1.0)), backward)
    assert not is_point_in_cone(SpacePoint((-6.0, 0.0)), backward)

    both = _cone(math.pi / 6, direction="bidirectional")
    assert is_point_in_cone(SpacePoint((5.0, 1.0)), both)
    assert is_point_in_cone(SpacePoint((-5.0, 1.0)), both)
    assert not is_point_in_cone(SpacePoint((0.5, 5.0)), both)


def test_points_in_cone_matches_scalar_test():
    cone = _cone(math.pi / 5, dim=3)
    rng = np.random.default_rng(7)
    points = rng.uniform(-10.0, 10.0, size=(200, 3))
    mask = points_in_cone(points, cone)
    expected = [is_point_in_cone(SpacePoint(p), cone) for p in points]
    assert mask.tolist() == expected


def test_points_in_cone_rejects_wrong_dimension():
    with pytest.raises(StructuralMisuseError):
        points_in_cone(np.zeros((3, 3)), _cone(dim=2))


def test_intersection_membership():
    a = _cone(math.pi / 4)
    b = create_cone(SpacePoint((10.0, 0.0)), SpaceVector((-1.0, 0.0)), math.pi / 4)
    assert is_point_in_intersection(SpacePoint((5.0, 0.0)), [a, b])
    assert not is_point_in_intersection(SpacePoint((5.0, 5.5)), [a, b])
    assert is_point_in_intersection(SpacePoint((5.0, 99.0)), [])


def test_narrow_cone_scales_aperture_and_extends_lineage():
    cone = _cone(math.pi / 4)
    narrowed = narrow_cone(cone, 0.5, "c-1")
    assert narrowed.aperture == pytest.approx(math.pi / 8)
    assert narrowed.id != cone.id
    assert narrowed.constraints == ("c-1",)
    assert cone.constraints == ()

    same = narrow_cone(cone, 1.0, "c-2")
    assert same.aperture == pytest.approx(cone.aperture)
    assert same.id != cone.id


@pytest.mark.parametrize("factor, expected", [(-1.0, 0.0), (2.0, 1.0), (0.25, 0.25)])
def test_narrow_cone_clamps_factor(factor, expected):
    cone = _cone(1.0)
    assert narrow_cone(cone, factor, "c").aperture == pytest.approx(expected)


def test_shift_cone_apex_moves_along_axis():
    cone = _cone()
    shifted = shift_cone_apex(cone, 3.0)
    assert shifted.apex.coordinates == pytest.approx((3.0, 0.0))
    assert shifted.id != cone.id
    assert shifted.aperture == cone.aperture


def test_signed_distance_sign():
    cone = _cone(math.pi / 4)
    assert signed_distance_to_cone(SpacePoint((10.0, 0.0)), cone) < 0
    assert signed_distance_to_cone(SpacePoint((1.0, 5.0)), cone) > 0
    assert signed_distance_to_cone(SpacePoint((-3.0, 4.0)), cone) == pytest.approx(5.0)
    assert signed_distance_to_cone(cone.apex, cone) == 0.0


def test_angular_offset():
    cone = _cone(math.pi / 4)
    assert angular_offset(SpacePoint((5.0, 0.0)), cone) == pytest.approx(0.0)
    assert angular_offset(SpacePoint((5.0, 5.0)), cone) == pytest.approx(math.pi / 4)

    both = _cone(math.pi / 4, direction="bidirectional")
    assert angular_offset(SpacePoint((-5.0, 0.0)), both) == pytest.approx(0.0)
