from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.sweep.aggregator import AggregateResult
from wifisweep.sweep.errors import SinkWriteError
from wifisweep.utils.event_logger import get_logger

from dataclasses import asdict
from datetime import datetime

import pandas as pd
import json
import os

RESULT_COLUMNS = ("throughput_mbps", "delay_us")


def format_value(value) -> str:
    """Floats are written with repr so they read back exactly."""
    if isinstance(value, float):
        return repr(value)
    return str(value)


class ResultSink:
    def __init__(
        self,
        path: str,
        columns: tuple,
        cfg: cfg_module = cfg_module,
        sparams: sparams_module = sparams_module,
    ):
        """
        Append-only results file, one space-separated line per completed configuration.

        Column order: the swept parameters in declaration order, then throughput_mbps and delay_us.
        The file is opened for each append and closed right after.

        Args:
            path (str): The results file.
            columns (tuple): The swept parameter names, in declaration order.
            cfg (cfg_module, optional): The UserConfig object. Defaults to UserConfig.
            sparams (sparams_module, optional): The SimParams object. Defaults to SimParams.
        """
        self.path = path
        self.columns = tuple(columns)

        self.name = "SINK"
        self.logger = get_logger(self.name, cfg, sparams)

    @property
    def header(self) -> tuple:
        return self.columns + RESULT_COLUMNS

    def _write(self, line: str):
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "a") as file:
                file.write(line + "\n")
                file.flush()
        except OSError as e:
            raise SinkWriteError(f"Could not write to '{self.path}': {e}") from e

    def write_header(self):
        """Write a "#"-prefixed column header, unless the file already has content."""
        if os.path.exists(self.path) and os.path.getsize(self.path) > 0:
            return
        self._write("# " + " ".join(self.header))

    def append(self, result: AggregateResult):
        values = [result.configuration[name] for name in self.columns]
        values += [result.total_throughput_mbps, result.avg_delay_us]
        line = " ".join(format_value(value) for value in values)
        self._write(line)
        self.logger.debug(f"'{self.path}' <- {line}")


class DiagnosticsSink:
    """
    JSON-lines companion of the results file.

    One "completed" line per completed configuration with its per-flow metrics, and one
    "skipped" line per skipped configuration with the reason.
    """

    def __init__(
        self,
        path: str | None,
        cfg: cfg_module = cfg_module,
        sparams: sparams_module = sparams_module,
    ):
        self.path = path

        self.name = "SINK"
        self.logger = get_logger(self.name, cfg, sparams)

    def record(self, configuration, error: Exception):
        self._write(
            {
                "status": "skipped",
                "configuration": configuration.as_dict(),
                "error": error.__class__.__name__,
                "reason": str(error),
            }
        )

    def record_result(self, result: AggregateResult):
        self._write(
            {
                "status": "completed",
                "configuration": result.configuration.as_dict(),
                "total_throughput_mbps": result.total_throughput_mbps,
                "avg_delay_us": result.avg_delay_us,
                "per_flow": [asdict(metrics) for metrics in result.per_flow],
            }
        )

    def _write(self, entry: dict):
        if self.path is None:
            return

        entry = {"time": datetime.now().strftime("%Y-%m-%dT%H:%M:%S"), **entry}
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "a") as file:
                file.write(json.dumps(entry) + "\n")
        except OSError as e:
            # Diagnostics never stop the sweep
            self.logger.warning(f"Could not record diagnostics in '{self.path}': {e}")


def read_results(path: str, columns: list | None = None) -> pd.DataFrame:
    """
    Read a results file into a DataFrame.

    Column names come from the "#" header when there is one, otherwise from columns.

    Args:
        path (str): The results file.
        columns (list | None, optional): The column names, for files without a header. Defaults to None.

    Returns:
        pd.DataFrame: One row per completed configuration.
    """
    with open(path, "r") as file:
        first_line = file.readline()

    if first_line.startswith("#"):
        names = first_line.lstrip("#").split()
    elif columns is not None:
        names = list(columns)
    else:
        names = None

    return pd.read_csv(
        path,
        sep=" ",
        comment="#",
        header=None,
        names=names,
        float_precision="round_trip",
    )
