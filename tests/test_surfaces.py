import math

import pytest

from possibility_cones.geometry.cones import create_cone
from possibility_cones.geometry.surfaces import satisfies_constraint, signed_distance_to_surface
from possibility_cones.types import (
    ConeSurface,
    CustomSurface,
    HyperplaneSurface,
    SpacePoint,
    SpaceVector,
    SphereSurface,
    StructuralMisuseError,
)


def test_hyperplane_sides():
    negative = HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=50.0, valid_side="negative")
    positive = HyperplaneSurface(normal=SpaceVector((1.0, 0.0)), offset=50.0, valid_side="positive")
    point = SpacePoint((20.0, 0.0))

    assert signed_distance_to_surface(point, negative) == pytest.approx(-30.0)
    assert signed_distance_to_surface(point, positive) == pytest.approx(30.0)
    assert satisfies_constraint(point, negative)
    assert not satisfies_constraint(point, positive)
    assert satisfies_constraint(SpacePoint((50.0, 7.0)), positive)


def test_sphere_regions():
    inside = SphereSurface(center=SpacePoint((0.0, 0.0)), radius=5.0)
    outside = SphereSurface(center=SpacePoint((0.0, 0.0)), radius=5.0, valid_region="outside")

    assert signed_distance_to_surface(SpacePoint((3.0, 0.0)), inside) == pytest.approx(-2.0)
    assert signed_distance_to_surface(SpacePoint((3.0, 0.0)), outside) == pytest.approx(2.0)
    assert satisfies_constraint(SpacePoint((0.0, 8.0)), outside)


def test_cone_surface_delegates_to_cone_distance():
    cone = create_cone(SpacePoint((0.0, 0.0)), SpaceVector((1.0, 0.0)), math.pi / 4)
    inside = ConeSurface(cone=cone)
    outside = ConeSurface(cone=cone, valid_region="outside")
    point = SpacePoint((10.0, 1.0))

    assert signed_distance_to_surface(point, inside) < 0
    assert signed_distance_to_surface(point, outside) == pytest.approx(-signed_distance_to_surface(point, inside))


def test_custom_surface_uses_registered_evaluator():
    calls = []

    def band(point, params):
        calls.append(params)
        return abs(point.coordinates[1]) - params["half_width"]

    surface = CustomSurface(name="band", params={"half_width": 2.0})
    assert signed_distance_to_surface(SpacePoint((0.0, 1.0)), surface, {"band": band}) == pytest.approx(-1.0)
    assert not satisfies_constraint(SpacePoint((0.0, 3.0)), surface, {"band": band})
    assert calls == [{"half_width": 2.0}, {"half_width": 2.0}]


def test_custom_surface_without_evaluator_raises():
    surface = CustomSurface(name="missing")
    with pytest.raises(StructuralMisuseError):
        signed_distance_to_surface(SpacePoint((0.0, 0.0)), surface)
    with pytest.raises(StructuralMisuseError):
        signed_distance_to_surface(SpacePoint((0.0, 0.0)), surface, {"other": lambda p, params: 0.0})


def test_dimension_mismatch_raises():
    plane = HyperplaneSurface(normal=SpaceVector((1.0, 0.0, 0.0)), offset=0.0)
    with pytest.raises(StructuralMisuseError):
        signed_distance_to_surface(SpacePoint((1.0, 2.0)), plane)
