import matplotlib

matplotlib.use("Agg")

from tests._user_config_tests import UserConfig as cfg_module
from tests._sim_params_tests import SimParams as sparams_module

from wifisweep.utils.plotters import SweepPlotter

import matplotlib.pyplot as plt
import pandas as pd
import os

RESULTS = pd.DataFrame(
    {
        "distance1": [120] * 4,
        "distance2": [1000, 1500, 1000, 1500],
        "rts_cts_enabled": [False, False, True, True],
        "throughput_mbps": [5.1, 40.2, 30.3, 31.0],
        "delay_us": [9000.0, 700.0, 1200.0, 1100.0],
    }
)


def make_config(tmp_path, saving=True):
    class PlotConfig(cfg_module):
        ENABLE_FIGS_SAVING = saving
        FIGS_SAVE_PATH = str(tmp_path / "figs")

    return PlotConfig


def test_plot_is_saved(tmp_path):
    plotter = SweepPlotter(make_config(tmp_path), sparams_module)

    fig = plotter.plot_results(RESULTS, "distance2")

    assert os.path.exists(tmp_path / "figs" / "distance2_sweep.pdf")
    throughput_axis, delay_axis = fig.axes
    assert len(throughput_axis.lines) == 2  # One line per (distance1, rts_cts_enabled) value
    assert len(delay_axis.lines) == 2
    assert throughput_axis.get_legend() is not None
    plt.close(fig)


def test_single_parameter_sweep(tmp_path):
    results = RESULTS[RESULTS["rts_cts_enabled"]].drop(columns=["distance1", "rts_cts_enabled"])
    plotter = SweepPlotter(make_config(tmp_path), sparams_module)

    fig = plotter.plot_results(results, "distance2", save_name="single", save_format="png")

    assert os.path.exists(tmp_path / "figs" / "single.png")
    assert len(fig.axes[0].lines) == 1
    assert fig.axes[0].get_legend() is None
    plt.close(fig)


def test_nothing_to_do(tmp_path):
    plotter = SweepPlotter(make_config(tmp_path, saving=False), sparams_module)

    assert plotter.plot_results(RESULTS, "distance2") is None
    assert not os.path.exists(tmp_path / "figs")


def test_missing_columns(tmp_path):
    plotter = SweepPlotter(make_config(tmp_path), sparams_module)

    assert plotter.plot_results(RESULTS.drop(columns=["delay_us"]), "distance2") is None
    assert plotter.plot_results(RESULTS, "data_rate_mbps") is None
