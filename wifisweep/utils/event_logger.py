from wifisweep.sim_params import SimParams as sparams
from wifisweep.user_config import UserConfig as cfg

from wifisweep.utils.messages import EXECUTION_TERMINATED_MSG

from datetime import datetime
import logging
import simpy
import json
import os

# HEADER: section titles, DEFAULT: plain progress, SUCCESS: completed steps
CUSTOM_LEVELS = {"HEADER": 5, "DEFAULT": 15, "SUCCESS": 25}
HEADER_LEVEL = CUSTOM_LEVELS["HEADER"]

LEVEL_COLORS = {
    "HEADER": "\033[95m",
    "DEBUG": "\033[94m",
    "INFO": "\033[96m",
    "SUCCESS": "\033[92m",
    "WARNING": "\033[38;5;214m",
    "ERROR": "\033[91m",
    "CRITICAL": "\033[1;38;5;1m",
}
RESET_COLOR = "\033[0m"

LOGGER_CACHE: dict[str, logging.Logger] = {}
ALWAYS_INCLUDED_MODULES = ["MAIN", "TEST"]
LOGS_RECORDING_FILENAME = "sweep_logs.jsonl"

# Configuration the current process is running, attached to every record
LOG_CONTEXT = {"configuration": None}


def _level_method(level: int):
    def log(self, message: str, *args, **kwargs):
        if self.isEnabledFor(level):
            self._log(level, message, args, **kwargs)

    return log


for _name, _level in CUSTOM_LEVELS.items():
    logging.addLevelName(_level, _name)
    setattr(logging.Logger, _name.lower(), _level_method(_level))


def set_log_context(configuration=None):
    """Tag the following records with a configuration label, or clear the tag with None."""
    LOG_CONTEXT["configuration"] = (
        None if configuration is None else str(configuration)
    )


class ExclusionFilter(logging.Filter):
    """Drops the levels listed for a module in UserConfig.EXCLUDED_LOGS."""

    def __init__(self, cfg: cfg):
        super().__init__()
        self.excluded = cfg.EXCLUDED_LOGS

    def filter(self, record: logging.LogRecord) -> bool:
        levels = self.excluded.get(record.name, ())
        return "ALL" not in levels and record.levelname not in levels


class ConsoleFormatter(logging.Formatter):
    def __init__(self, cfg: cfg, env: simpy.Environment = None):
        """
        Console formatter.

        Records are prefixed with the simulated time while an engine environment is
        attached, and with the level name otherwise. Formatting a CRITICAL record
        raises SystemExit, which ends the execution.

        Args:
            cfg (cfg): The UserConfig object.
            env (simpy.Environment, optional): The engine environment. Defaults to None.
        """
        super().__init__()
        self.use_colors = cfg.USE_COLORS_IN_LOGS
        self.env = env

    def paint(self, levelname: str, text: str) -> str:
        if not self.use_colors or levelname not in LEVEL_COLORS:
            return text
        return f"{LEVEL_COLORS[levelname]}{text}{RESET_COLOR}"

    def format(self, record: logging.LogRecord) -> str:
        message = self.paint(record.levelname, record.getMessage())

        if record.levelno >= logging.CRITICAL:
            raise SystemExit(
                f"{record.levelname}: {message}\n{EXECUTION_TERMINATED_MSG}"
            )

        if self.env is None:
            return f"{self.paint(record.levelname, record.levelname)}: {message}"

        context = LOG_CONTEXT["configuration"]
        prefix = f"[{context}] " if context else ""
        return f"{prefix}[t = {self.env.now / 1e6:>12.6f} s] {record.name:^8} {message}"


class JSONLinesHandler(logging.FileHandler):
    """Appends one JSON object per record to the recording file."""

    def __init__(self, filename: str, env: simpy.Environment = None):
        super().__init__(filename, mode="a", encoding="utf-8", delay=True)
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        return json.dumps(
            {
                "time": datetime.fromtimestamp(record.created).strftime(
                    "%Y-%m-%dT%H:%M:%S"
                ),
                "pid": record.process,
                "module": record.name,
                "level": record.levelname,
                "sim_time_us": self.env.now if self.env is not None else None,
                "configuration": LOG_CONTEXT["configuration"],
                "message": record.getMessage(),
            }
        )


def get_logger(
    module_name: str, cfg: cfg, sparams: sparams, env: simpy.Environment = None
) -> logging.Logger:
    """
    Logger for one module, created on first use and cached afterwards.

    MAIN and TEST always write to the console. Other modules write to the console if
    ENABLE_CONSOLE_LOGGING is set, and every module appends to the JSON-lines recording
    if ENABLE_LOGS_RECORDING is set.

    Args:
        module_name (str): Module name, also the key in UserConfig.EXCLUDED_LOGS.
        cfg (cfg): The UserConfig object.
        sparams (sparams): The SimParams object.
        env (simpy.Environment, optional): The engine environment. Defaults to None.

    Returns:
        logging.Logger: The logger.
    """
    if module_name in LOGGER_CACHE:
        return LOGGER_CACHE[module_name]

    logger = logging.getLogger(module_name)
    logger.setLevel(HEADER_LEVEL)
    logger.propagate = False
    logger.handlers.clear()

    if cfg.ENABLE_CONSOLE_LOGGING or module_name in ALWAYS_INCLUDED_MODULES:
        console = logging.StreamHandler()
        console.setFormatter(ConsoleFormatter(cfg, env))
        console.addFilter(ExclusionFilter(cfg))
        logger.addHandler(console)

    if cfg.ENABLE_LOGS_RECORDING:
        os.makedirs(cfg.LOGS_RECORDING_PATH, exist_ok=True)
        recording = JSONLinesHandler(
            os.path.join(cfg.LOGS_RECORDING_PATH, LOGS_RECORDING_FILENAME), env
        )
        recording.addFilter(ExclusionFilter(cfg))
        logger.addHandler(recording)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    LOGGER_CACHE[module_name] = logger
    return logger


def update_loggers_environment(env: simpy.Environment = None):
    """Point every cached logger at a new engine environment, or detach it with None."""
    for logger in LOGGER_CACHE.values():
        for handler in logger.handlers:
            if isinstance(handler, JSONLinesHandler):
                handler.env = env
            elif isinstance(handler.formatter, ConsoleFormatter):
                handler.formatter.env = env
