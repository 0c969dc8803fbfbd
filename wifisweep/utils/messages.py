BANNER_WIDTH = 64


def _banner(text: str = "") -> str:
    title = f"  {text}  " if text else ""
    return "\033[93m" + title.center(BANNER_WIDTH, "=") + "\033[0m"


STARTING_EXECUTION_MSG = _banner("STARTING EXECUTION")
STARTING_SWEEP_MSG = _banner("STARTING SWEEP")
SWEEP_COMPLETED_MSG = _banner("SWEEP COMPLETED")
SWEEP_ABORTED_MSG = _banner("SWEEP ABORTED")
RESULTS_MSG = _banner("RESULTS")
EXECUTION_TERMINATED_MSG = _banner("EXECUTION TERMINATED")
PRESS_TO_EXIT_MSG = _banner("Press Enter to exit and close all plots")
SECTION_DIVIDER_MSG = _banner()
