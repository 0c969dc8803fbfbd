from wifisweep.sweep.builder import SCENARIOS
from wifisweep.sweep.errors import SweepSpecError
from wifisweep.sweep.grid import DEFAULT_PAIR, ConfigurationGrid

from dataclasses import dataclass, field

import numpy as np
import math
import json

VALID_KEYS = {"scenario", "parameters", "policy", "pair", "fixed"}


@dataclass(frozen=True)
class SweepSpec:
    scenario: str
    parameters: dict
    policy: str = "all"
    pair: tuple = DEFAULT_PAIR
    fixed: dict = field(default_factory=dict)

    def make_grid(self) -> ConfigurationGrid:
        try:
            return ConfigurationGrid(self.parameters, self.policy, pair=self.pair)
        except ValueError as e:
            raise SweepSpecError(str(e)) from e


def expand_range(name: str, spec: dict) -> list:
    """
    Expand a {"start", "stop", "step"} range, stop inclusive.

    Integer bounds give integers, anything else gives floats.
    """
    missing = {"start", "stop", "step"} - set(spec)
    if missing:
        raise SweepSpecError(f"Range of '{name}' is missing {sorted(missing)}")

    start, stop, step = spec["start"], spec["stop"], spec["step"]
    for key, value in (("start", start), ("stop", stop), ("step", step)):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SweepSpecError(f"Range of '{name}': {key} must be a number, got {value}")
    if step == 0:
        raise SweepSpecError(f"Range of '{name}': step must not be 0")

    count = math.floor((stop - start) / step + 1e-9) + 1
    if count < 1:
        raise SweepSpecError(f"Range of '{name}' is empty: {spec}")

    values = start + step * np.arange(count)
    if all(isinstance(value, int) for value in (start, stop, step)):
        return values.astype(int).tolist()
    return [round(value, 12) for value in values.astype(float).tolist()]


def expand_values(name: str, values) -> list:
    if isinstance(values, dict):
        return expand_range(name, values)
    if isinstance(values, list):
        if not values:
            raise SweepSpecError(f"Parameter '{name}' has no values")
        return list(values)
    raise SweepSpecError(
        f"Parameter '{name}' must be a list of values or a range, got {values!r}"
    )


def parse_sweep_spec(data: dict) -> SweepSpec:
    """
    Validate a sweep specification and expand its ranges.

    Raises:
        SweepSpecError: If the specification is malformed.
    """
    if not isinstance(data, dict):
        raise SweepSpecError("A sweep specification must be a JSON object")

    unknown = set(data) - VALID_KEYS
    if unknown:
        raise SweepSpecError(f"Unknown keys in sweep specification: {sorted(unknown)}")

    scenario = data.get("scenario", "hidden-terminal")
    if scenario not in SCENARIOS:
        raise SweepSpecError(
            f"Unknown scenario: '{scenario}'. Available scenarios: {sorted(SCENARIOS)}"
        )

    parameters = data.get("parameters")
    if not isinstance(parameters, dict) or not parameters:
        raise SweepSpecError("'parameters' must be a non-empty object")

    fixed = data.get("fixed", {})
    if not isinstance(fixed, dict):
        raise SweepSpecError("'fixed' must be an object")
    overlap = set(fixed) & set(parameters)
    if overlap:
        raise SweepSpecError(f"Parameters both swept and fixed: {sorted(overlap)}")

    pair = data.get("pair", list(DEFAULT_PAIR))
    if not isinstance(pair, (list, tuple)) or len(pair) != 2:
        raise SweepSpecError(f"'pair' must name two parameters, got {pair}")

    spec = SweepSpec(
        scenario=scenario,
        parameters={
            name: expand_values(name, values) for name, values in parameters.items()
        },
        policy=data.get("policy", "all"),
        pair=tuple(pair),
        fixed=dict(fixed),
    )
    spec.make_grid()
    return spec


def load_sweep_spec(path: str) -> SweepSpec:
    """
    Load a JSON sweep specification.

    Args:
        path (str): The JSON file.

    Returns:
        SweepSpec: The validated specification.

    Raises:
        SweepSpecError: If the file cannot be read or the specification is malformed.
    """
    try:
        with open(path, "r") as file:
            data = json.load(file)
    except OSError as e:
        raise SweepSpecError(f"Could not read sweep specification '{path}': {e}") from e
    except json.JSONDecodeError as e:
        raise SweepSpecError(f"Invalid JSON in '{path}': {e}") from e

    return parse_sweep_spec(data)
