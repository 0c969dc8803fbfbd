class UserConfig:
    # --- Run Settings --- #
    SEED = 1  # Set to None for random behavior

    ENGINE = "simpy"  # Engine used to run each experiment. Currently only "simpy"

    # What to do when the engine rejects or cannot execute a configuration:
    # - "skip": record it in the diagnostics stream and continue with the next configuration
    # - "abort": stop the sweep and exit with a non-zero status
    FAILURE_POLICY = "skip"

    # Number of worker processes. 1 runs the sweep sequentially in this process.
    # With more than one worker each process builds its own engine and only the main
    # process writes to the results file.
    WORKERS = 1

    # --- Output --- #
    # Append-only results file. One line per completed configuration:
    # <swept parameters in declaration order> <throughput_mbps> <delay_us>
    OUTPUT_PATH = "data/results/hidden_terminal_tp.txt"
    WRITE_HEADER = False  # Write a "#"-prefixed column header when the file is created

    # JSON-lines file with the per-flow metrics of completed configurations and the reason
    # configurations were skipped. None to only log them
    DIAGNOSTICS_PATH = "data/results/diagnostics.jsonl"

    # --- Logging Configuration --- #
    ENABLE_CONSOLE_LOGGING = True  # Enable/disable displaying logs in the console
    USE_COLORS_IN_LOGS = True  # Enable/disable colored logs

    ENABLE_LOGS_RECORDING = False  # Enable/disable recording logs (may affect performance)
    LOGS_RECORDING_PATH = "data/events"

    # Logging exclusions (if ENABLE_CONSOLE_LOGGING or ENABLE_LOGS_RECORDING is enabled)
    # Format: { "<module_name>": ["<excluded_log_level_1>", "<excluded_log_level_2>", ...] }
    # <module_name>: "SWEEP", "BUILDER", "INVOKER", "AGG", "SINK", "ENGINE", "MEDIUM", "GEN", "MONITOR", "PLOTTER"
    # <excluded_log_level>: "HEADER", "DEBUG", "DEFAULT", "INFO", "SUCCESS", "WARNING", "ALL"
    EXCLUDED_LOGS = {
        "BUILDER": ["DEBUG"],
        "INVOKER": ["DEBUG"],
        "AGG": ["DEBUG"],
        "SINK": ["DEBUG"],
        "ENGINE": ["ALL"],
        "MEDIUM": ["ALL"],
        "GEN": ["ALL"],
        "MONITOR": ["ALL"],
    }

    # --- Visualization --- #
    ENABLE_FIGS_DISPLAY = False  # Enable/disable displaying figures
    ENABLE_FIGS_SAVING = False  # Enable/disable saving figures
    FIGS_SAVE_PATH = "figs/sweeps"

    # --- Default Sweep --- #
    # Used when no sweep specification file is given on the command line.
    # Keys:
    # - "scenario": "hidden-terminal" (4 nodes, two CBR flows 0->1 and 2->3) or "adhoc-link" (2 nodes, one UDP client stream)
    # - "parameters": ordered mapping of parameter name to a list of values, or to a range
    #   {"start": ..., "stop": ..., "step": ...} (stop inclusive). Swept parameters are echoed in the results file.
    #   Known names: "distance1", "distance2" (meters), "data_rate_mbps", "rts_cts_enabled"
    # - "policy": admissibility policy name: "pair-ordered" (first <= second), "mirrored" (first == second) or "all"
    # - "pair" (optional): the two parameter names compared by the policy. Defaults to ["distance1", "distance2"]
    # - "fixed" (optional): parameters held constant for every configuration (not written to the results file)
    SWEEP = {
        "scenario": "hidden-terminal",
        "parameters": {
            "distance1": [120],
            "distance2": {"start": 1000, "stop": 2000, "step": 10},
        },
        "policy": "pair-ordered",
        "fixed": {"rts_cts_enabled": False, "data_rate_mbps": 54},
    }
