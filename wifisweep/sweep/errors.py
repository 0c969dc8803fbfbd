class SweepError(Exception):
    """Base class for errors raised while running a sweep."""


class ConfigurationError(SweepError):
    """The builder rejected a configuration. Only that configuration is skipped."""


class ConfigurationFailed(SweepError):
    """
    The engine rejected or could not execute a configuration.

    Attributes:
        configuration (Configuration): The configuration that failed.
        reason (str): What the engine reported.
    """

    def __init__(self, configuration, reason: str):
        super().__init__(configuration, reason)
        self.configuration = configuration
        self.reason = reason

    def __str__(self):
        return f"{self.configuration}: {self.reason}"


class FlowMappingError(SweepError):
    """The engine reported a flow id that was never installed."""

    def __init__(self, flow_id: int, installed_ids):
        super().__init__(flow_id, installed_ids)
        self.flow_id = flow_id
        self.installed_ids = tuple(installed_ids)

    def __str__(self):
        return f"Flow id {self.flow_id} was never installed (installed ids: {list(self.installed_ids)})"


class SinkWriteError(SweepError):
    """The results file could not be written. Fatal for the whole sweep."""


class SweepSpecError(SweepError):
    """The sweep specification is malformed."""
