from wifisweep.sweep.grid import (
    ADMISSIBILITY_POLICIES,
    Configuration,
    ConfigurationGrid,
    register_policy,
)

import pytest

DISTANCE2_m = list(range(1000, 2001, 10))

# Each test case is a tuple: (parameters, policy, expected_count)
TEST_CASES = [
    ({"distance1": [120], "distance2": DISTANCE2_m}, "pair-ordered", 101),
    ({"distance1": [1200], "distance2": DISTANCE2_m}, "pair-ordered", 81),
    ({"distance1": [100, 200, 300], "distance2": [100, 200, 300]}, "mirrored", 3),
    ({"distance1": [100, 200, 300], "distance2": [100, 200, 300]}, "pair-ordered", 6),
    ({"data_rate_mbps": [54, 48, 36, 24, 18, 12, 9, 6]}, "all", 8),
    ({"distance1": [120], "distance2": [100]}, "pair-ordered", 0),
]


@pytest.mark.parametrize("parameters, policy, expected_count", TEST_CASES)
def test_count(parameters, policy, expected_count):
    grid = ConfigurationGrid(parameters, policy)

    assert grid.count() == expected_count
    assert len(list(grid)) == expected_count


@pytest.mark.parametrize("parameters, policy, expected_count", TEST_CASES)
def test_predicate_holds_for_every_configuration(parameters, policy, expected_count):
    grid = ConfigurationGrid(parameters, policy)
    predicate = ADMISSIBILITY_POLICIES[policy]

    for configuration in grid:
        assert predicate(configuration)
        assert configuration.names == tuple(parameters)


def test_iteration_is_restartable():
    grid = ConfigurationGrid(
        {"distance1": [120], "distance2": DISTANCE2_m}, "pair-ordered"
    )

    first_pass = list(grid)
    second_pass = list(grid)

    assert first_pass == second_pass
    assert first_pass[0].as_dict() == {"distance1": 120, "distance2": 1000}
    assert first_pass[-1].as_dict() == {"distance1": 120, "distance2": 2000}


def test_declaration_order_is_kept():
    grid = ConfigurationGrid({"b": [1, 2], "a": ["x", "y"]})

    assert [configuration.values for configuration in grid] == [
        (1, "x"),
        (1, "y"),
        (2, "x"),
        (2, "y"),
    ]


def test_callable_policy():
    grid = ConfigurationGrid(
        {"distance1": [100, 200], "distance2": [150, 250]},
        lambda configuration: configuration["distance2"] - configuration["distance1"] == 50,
    )

    assert [configuration.as_dict() for configuration in grid] == [
        {"distance1": 100, "distance2": 150},
        {"distance1": 200, "distance2": 250},
    ]


def test_registered_policy_with_custom_pair():
    @register_policy("strictly-ordered")
    def strictly_ordered(configuration, pair):
        first, second = pair
        return configuration[first] < configuration[second]

    grid = ConfigurationGrid(
        {"gap": [1, 2, 3], "span": [2, 3]},
        "strictly-ordered",
        pair=("gap", "span"),
    )

    assert "strictly-ordered" in ADMISSIBILITY_POLICIES
    assert grid.count() == 3
    assert grid.policy_name == "strictly-ordered"


def test_unknown_policy():
    with pytest.raises(ValueError):
        ConfigurationGrid({"distance1": [1], "distance2": [2]}, "diagonal")


def test_pair_must_be_swept():
    with pytest.raises(ValueError):
        ConfigurationGrid({"distance1": [1]}, "pair-ordered")

    # "all" does not compare anything
    assert ConfigurationGrid({"distance1": [1]}, "all").count() == 1


def test_configuration_access():
    configuration = Configuration(("distance1", "distance2"), (120, 1000))

    assert configuration["distance2"] == 1000
    assert "distance1" in configuration
    assert "data_rate_mbps" not in configuration
    assert configuration.get("data_rate_mbps", 54) == 54
    assert str(configuration) == "distance1=120, distance2=1000"

    with pytest.raises(KeyError):
        configuration["distance3"]


def test_configuration_names_and_values_must_match():
    with pytest.raises(ValueError):
        Configuration(("distance1", "distance2"), (120,))
