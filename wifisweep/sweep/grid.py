from dataclasses import dataclass
from typing import Callable, Iterator

import functools
import itertools

DEFAULT_PAIR = ("distance1", "distance2")

ADMISSIBILITY_POLICIES: dict[str, Callable] = {}


@dataclass(frozen=True)
class Configuration:
    """One point of the sweep: the swept parameter names and their values, in declaration order."""

    names: tuple
    values: tuple

    def __post_init__(self):
        if len(self.names) != len(self.values):
            raise ValueError(
                f"Configuration has {len(self.names)} names but {len(self.values)} values"
            )

    def __getitem__(self, name: str):
        try:
            return self.values[self.names.index(name)]
        except ValueError:
            raise KeyError(name) from None

    def __contains__(self, name: str) -> bool:
        return name in self.names

    def get(self, name: str, default=None):
        return self[name] if name in self.names else default

    def as_dict(self) -> dict:
        return dict(zip(self.names, self.values))

    def __str__(self):
        return ", ".join(f"{name}={value}" for name, value in zip(self.names, self.values))


def register_policy(name: str, uses_pair: bool = True):
    """
    Register an admissibility policy under a name usable from sweep specifications.

    The decorated function receives the configuration and the pair of parameter names
    it compares, and returns whether the configuration is admissible.

    Args:
        name (str): The policy name.
        uses_pair (bool, optional): Whether both pair names must be swept parameters. Defaults to True.
    """

    def decorator(policy: Callable) -> Callable:
        policy.uses_pair = uses_pair
        ADMISSIBILITY_POLICIES[name] = policy
        return policy

    return decorator


@register_policy("pair-ordered")
def pair_ordered(configuration: Configuration, pair: tuple = DEFAULT_PAIR) -> bool:
    first, second = pair
    return configuration[first] <= configuration[second]


@register_policy("mirrored")
def mirrored(configuration: Configuration, pair: tuple = DEFAULT_PAIR) -> bool:
    first, second = pair
    return configuration[first] == configuration[second]


@register_policy("all", uses_pair=False)
def admit_all(configuration: Configuration, pair: tuple = DEFAULT_PAIR) -> bool:
    return True


class ConfigurationGrid:
    def __init__(
        self,
        parameters: dict,
        policy: str | Callable = "all",
        pair: tuple = DEFAULT_PAIR,
    ):
        """
        Lazy Cartesian product of parameter sequences filtered by an admissibility policy.

        Iterating twice yields the same configurations in the same order.

        Args:
            parameters (dict): Ordered mapping of parameter name to its sequence of values.
            policy (str | Callable, optional): A registered policy name, or a predicate taking a Configuration. Defaults to "all".
            pair (tuple, optional): The parameter names compared by a registered policy. Defaults to ("distance1", "distance2").

        Raises:
            ValueError: If the policy is unknown, or a pair name is not a swept parameter.
        """
        self.parameters = {name: tuple(values) for name, values in parameters.items()}
        self.names = tuple(self.parameters)
        self.pair = tuple(pair)

        if isinstance(policy, str):
            if policy not in ADMISSIBILITY_POLICIES:
                raise ValueError(
                    f"Unknown admissibility policy: '{policy}'. Registered policies: {sorted(ADMISSIBILITY_POLICIES)}"
                )
            policy_fn = ADMISSIBILITY_POLICIES[policy]
            if policy_fn.uses_pair:
                if len(self.pair) != 2:
                    raise ValueError(f"Policy pair must have two names, got {self.pair}")
                missing = [name for name in self.pair if name not in self.parameters]
                if missing:
                    raise ValueError(
                        f"Policy '{policy}' compares {self.pair} but {missing} is not swept"
                    )
            self.policy_name = policy
            self.predicate = functools.partial(policy_fn, pair=self.pair)
        elif callable(policy):
            self.policy_name = getattr(policy, "__name__", "custom")
            self.predicate = policy
        else:
            raise ValueError(f"Invalid admissibility policy: {policy}")

    def __iter__(self) -> Iterator[Configuration]:
        for values in itertools.product(*self.parameters.values()):
            configuration = Configuration(self.names, values)
            if self.predicate(configuration):
                yield configuration

    def count(self) -> int:
        """Number of admissible configurations."""
        return sum(1 for _ in self)

    def __repr__(self):
        sizes = ", ".join(f"{name}[{len(values)}]" for name, values in self.parameters.items())
        return f"{self.__class__.__name__}({sizes}, policy={self.policy_name})"
