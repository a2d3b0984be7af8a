# main.py
import io
import os
import logging
import cProfile
import pstats
import argparse
from datetime import datetime, timezone
from typing import Optional

import psutil  # For memory monitoring

from config import config, ConfigurationError
from ephemeris import EphemerisRangeError, create_ephemeris
from simulation_clock import SimulationClock
from simulation_controller import SimulationController
from visualization import Visualization, shutdown_display


class OrreryApp:
    """Runs the orrery: one controller tick and one rendered frame per loop.

    Without a viewer the loop runs headless with a fixed real-time step of
    `1 / config.Visualization.FPS` seconds per frame.

    Attributes:
        controller (SimulationController): Simulation state and update logic.
        visualization (Visualization | None): pygame viewer, None when headless.
        running (bool): Cleared by a quit request or a fatal error.
        frame_count (int): Frames run so far.
        process (psutil.Process): Current process, used for memory monitoring.
    """

    def __init__(self, controller: SimulationController, visualization=None):
        self.controller = controller
        self.visualization = visualization
        self.running = True
        self.frame_count = 0
        self.process = psutil.Process(os.getpid())

    def run(self, max_frames: Optional[int] = None):
        """
        Runs until quit, `max_frames` frames, or an error.

        Raises:
            EphemerisRangeError: If the clock leaves the ephemeris' valid span.
        """
        headless_dt = 1.0 / config.Visualization.FPS
        if self.visualization is not None:
            self.visualization.tick()  # Reset the frame timer

        logging.info(f"Starting orrery loop ({'headless' if self.visualization is None else 'windowed'}).")
        while self.running and (max_frames is None or self.frame_count < max_frames):
            try:
                if self.visualization is not None:
                    control_input = self.visualization.handle_events()
                    if control_input.quit:
                        self.running = False
                        break
                    self.controller.apply_input(control_input)
                    elapsed = self.visualization.tick()
                else:
                    elapsed = headless_dt

                self.controller.tick(elapsed)

                if self.visualization is not None:
                    self.visualization.render(self.controller.snapshot())
            except EphemerisRangeError as e_range:
                logging.critical(f"Simulation clock left the ephemeris range at frame {self.frame_count}: {e_range}")
                self.running = False
                raise

            self.frame_count += 1
            if self.frame_count % config.Monitoring.MEMORY_CHECK_INTERVAL_TICKS == 0:
                self._check_memory()

        logging.info(f"Orrery loop finished after {self.frame_count} frames at "
                     f"{self.controller.current_instant().isoformat()}.")

    def _check_memory(self):
        try:
            memory_mb = self.process.memory_info().rss / (1024 * 1024)
            if memory_mb > config.Monitoring.MEMORY_USAGE_WARN_MB:
                logging.warning(f"High memory usage: {memory_mb:.2f} MB at frame {self.frame_count}")
            elif config.Debug.DEBUG_MODE:
                logging.debug(f"Memory usage: {memory_mb:.2f} MB at frame {self.frame_count}")
        except psutil.Error as e_psutil:
            logging.error(f"Could not retrieve memory usage: {e_psutil}", exc_info=True)

    def close(self):
        if self.visualization is not None:
            self.visualization.close()


def parse_start(value: str) -> datetime:
    """Parses an ISO-8601 date or date-time; naive values are taken as UTC."""
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        instant = datetime.fromisoformat(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid start instant '{value}', expected ISO-8601 like 2000-01-01T00:00:00Z.") from None
    if instant.tzinfo is None:
        instant = instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the interactive solar system orrery.")
    parser.add_argument("--start", type=parse_start, default=None,
                        help="Start instant (ISO-8601, UTC). Defaults to now.")
    parser.add_argument("--time-scale", type=float, default=None,
                        help="Initial time scale in simulated days per real second.")
    parser.add_argument("--ephemeris", choices=("astropy", "kepler"), default=None,
                        help="Ephemeris provider (default from config).")
    parser.add_argument("--headless", action="store_true",
                        help="Run without a window (requires --frames to stop).")
    parser.add_argument("--frames", type=int, default=None,
                        help="Stop after this many frames.")
    parser.add_argument(
        "--profile",
        action="store_true",
        help="Enable profiling for the simulation. Statistics will be saved to 'simulation_profile.prof'."
    )
    return parser


def main(argv=None) -> int:
    """
    Entry point of the orrery.

    Builds the controller from the command line options, opens the pygame
    viewer unless `--headless` is given, and runs the loop. Configuration and
    range errors are logged as critical and turn into a non-zero exit code.
    """
    args = build_parser().parse_args(argv)
    if args.headless and args.frames is None:
        build_parser().error("--headless needs --frames.")

    profiler = None
    if args.profile:
        profiler = cProfile.Profile()
        profiler.enable()
        logging.info("cProfile profiling enabled. Output will be saved to simulation_profile.prof upon completion.")

    app = None
    visualization = None
    exit_code = 0
    try:
        clock = SimulationClock(start=args.start, rate=args.time_scale)
        controller = SimulationController(ephemeris=create_ephemeris(args.ephemeris), clock=clock)

        if not args.headless:
            try:
                visualization = Visualization()
            except Exception:
                shutdown_display()
                raise

        app = OrreryApp(controller, visualization)
        app.run(max_frames=args.frames)

    except ConfigurationError as e_config_main:
        logging.critical(f"Orrery could not be initialized or run due to a ConfigurationError: {e_config_main}", exc_info=True)
        print(f"FATAL CONFIGURATION ERROR: {e_config_main}. Check logs for details.")
        exit_code = 2
    except EphemerisRangeError as e_range_main:
        print(f"FATAL RANGE ERROR: {e_range_main}")
        exit_code = 3
    finally:
        if app is not None:
            app.close()
        elif visualization is not None:
            visualization.close()
        if profiler:
            profiler.disable()
            stats_file = "simulation_profile.prof"
            try:
                profiler.dump_stats(stats_file)
                logging.info(f"Profiling data successfully saved to {stats_file}")

                s = io.StringIO()
                ps = pstats.Stats(profiler, stream=s).sort_stats('cumulative')
                ps.print_stats(20)
                logging.info(f"\n--- Top 20 Profiled Functions (Cumulative Time) ---\n{s.getvalue()}")
            except OSError as e_profile_dump:
                logging.error(f"Failed to save profiling data to {stats_file}: {e_profile_dump}", exc_info=True)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
