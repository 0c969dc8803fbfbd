from wifisweep.sim_params import SimParams as sparams_module
from wifisweep.user_config import UserConfig as cfg_module

from wifisweep.sweep.sink import RESULT_COLUMNS
from wifisweep.utils.event_logger import get_logger

from matplotlib import rcParams

import os
import logging
import pandas as pd
import matplotlib.pyplot as plt


rcParams["font.family"] = "serif"
rcParams["font.serif"] = ["DejaVu Serif"]
rcParams["mathtext.fontset"] = "dejavuserif"

AXIS_LABELS = {
    "distance1": "Distance 1 (m)",
    "distance2": "Distance 2 (m)",
    "data_rate_mbps": "PHY data rate (Mbps)",
    "packet_size_bytes": "Packet size (bytes)",
    "throughput_mbps": "Throughput (Mbps)",
    "delay_us": "Delay (μs)",
}


class BasePlotter:
    """Base class for all plotters, handling saving and displaying plots."""

    def __init__(self, cfg: cfg_module, sparams: sparams_module):
        """
        Initialize a BasePlotter object.

        Args:
            cfg (cfg): The UserConfig object.
            sparams (sparams): The SimParams object.
        """
        self.cfg = cfg
        self.sparams = sparams

        self.name: str = "PLOTTER"
        self.logger: logging.Logger = get_logger(self.name, cfg, sparams)

    def save_plot(self, figure: plt.Figure, save_name: str, save_format: str) -> str | None:
        """
        Saves the plot in the configured figures folder.

        Args:
            figure (plt.Figure): The figure to save.
            save_name (str): The base name of the saved file.
            save_format (str): The format of the saved file (e.g. pdf, png).

        Returns:
            str | None: The path of the saved file, or None if nothing was saved.
        """
        if not save_name or not save_format:
            return None

        os.makedirs(self.cfg.FIGS_SAVE_PATH, exist_ok=True)

        file_path = os.path.join(self.cfg.FIGS_SAVE_PATH, f"{save_name}.{save_format}")
        figure.savefig(file_path)
        self.logger.info(f"Figure saved to '{file_path}'")
        return file_path


class SweepPlotter(BasePlotter):
    """Plotter for throughput and delay against a swept parameter."""

    def __init__(self, cfg: cfg_module, sparams: sparams_module):
        super().__init__(cfg, sparams)

    def plot_results(
        self,
        results: pd.DataFrame,
        x: str,
        save_name: str | None = None,
        save_format: str = "pdf",
    ) -> plt.Figure | None:
        """
        Plot throughput and delay against one swept parameter.

        The remaining swept parameters, if any, give one line per combination of values.

        Args:
            results (pd.DataFrame): The results, as returned by read_results.
            x (str): The swept parameter on the x axis.
            save_name (str | None, optional): Base name of the saved figure. Defaults to "<x>_sweep".
            save_format (str, optional): The format of the saved file. Defaults to "pdf".

        Returns:
            plt.Figure | None: The figure, or None when figures are neither saved nor displayed.
        """
        if not self.cfg.ENABLE_FIGS_SAVING and not self.cfg.ENABLE_FIGS_DISPLAY:
            return None

        missing = [column for column in (x,) + RESULT_COLUMNS if column not in results]
        if missing:
            self.logger.error(f"Cannot plot results, missing columns: {missing}")
            return None

        plt.ion()

        fig, (ax_tp, ax_delay) = plt.subplots(2, 1, sharex=True, figsize=(6.4, 6.4))
        ax_tp.set_ylabel(AXIS_LABELS["throughput_mbps"])
        ax_delay.set_ylabel(AXIS_LABELS["delay_us"])
        ax_delay.set_xlabel(AXIS_LABELS.get(x, x))

        group_columns = [
            column
            for column in results.columns
            if column not in RESULT_COLUMNS and column != x
        ]
        groups = (
            results.groupby(group_columns) if group_columns else [((), results)]
        )

        for key, group in groups:
            group = group.sort_values(x)
            key = key if isinstance(key, tuple) else (key,)
            label = ", ".join(
                f"{column}={value}" for column, value in zip(group_columns, key)
            )
            ax_tp.plot(
                group[x],
                group["throughput_mbps"],
                "o-",
                label=label or None,
                markerfacecolor="none",
                markersize=3,
            )
            ax_delay.plot(
                group[x],
                group["delay_us"],
                "s--",
                markerfacecolor="none",
                markersize=3,
            )

        if group_columns:
            ax_tp.legend(fontsize=8, frameon=False)

        plt.tight_layout()

        if self.cfg.ENABLE_FIGS_SAVING:
            self.save_plot(fig, save_name or f"{x}_sweep", save_format)

        if self.cfg.ENABLE_FIGS_DISPLAY:
            plt.show()
        else:
            plt.close(fig)

        return fig
