"""timerdeck - Countdown timer in the terminal, or as a local web API.

Entry point for the timerdeck command.
"""

import argparse
import logging
import sys
import threading
from pathlib import Path
from typing import TextIO

from timerdeck.core.finish_scheduler import TimerFactory
from timerdeck.core.formatter import format_time_to_clock
from timerdeck.core.parser import ParseError, parse_input
from timerdeck.core.relative_time import format_relative_time, parse_end_time
from timerdeck.core.settings import TimerSettings, load_settings, set_settings
from timerdeck.core.timer_controller import Clock, TimerController

logger = logging.getLogger("timerdeck")

EXIT_OK = 0
EXIT_BAD_INPUT = 2
EXIT_INTERRUPTED = 130


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if debug else logging.INFO
    format_str = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt="%H:%M:%S",
    )
    # Reduce noise from libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class CountdownApp:
    """Runs one countdown in the terminal, redrawing a single line."""

    def __init__(
        self,
        text: str,
        settings: TimerSettings,
        until: bool = False,
        stream: TextIO | None = None,
        clock: Clock | None = None,
        timer_factory: TimerFactory = threading.Timer,
    ):
        """Initialize the app.

        Args:
            text: Duration text, or a time of day if ``until`` is set.
            settings: Display and input settings.
            until: Treat ``text`` as a time of day like "5:30pm".
            stream: Where the clock is drawn, defaults to stdout.
            clock: Controller clock, for tests.
            timer_factory: Controller wake timer factory, for tests.
        """
        self._text = text
        self._settings = settings
        self._until = until
        self._stream = stream or sys.stdout
        self._clock = clock
        self._timer_factory = timer_factory
        self._done = threading.Event()
        self.controller: TimerController | None = None

    def parse(self) -> int:
        """Parse the input into a duration in ms.

        Raises:
            ParseError: If the input is invalid.
        """
        if self._until:
            return parse_end_time(self._text)
        return parse_input(self._text, self._settings.separator)

    def render_line(self) -> str:
        """The clock line for the current time remaining."""
        remaining = self.controller.get_time_remaining()
        clock = format_time_to_clock(
            remaining,
            self._settings.unit_range,
            self._settings.auto_trim,
            separator=self._settings.separator,
        )
        if remaining <= 0:
            return f"{clock}  done"
        end = format_relative_time(remaining, self._settings.time_format)
        return f"{clock}  (ends {end})"

    def _draw(self, end: str = "") -> None:
        # pad to clear leftovers from a longer previous line
        self._stream.write("\r" + self.render_line().ljust(32) + end)
        self._stream.flush()

    def _on_finish(self) -> None:
        logger.info("Timer '%s' finished", self._text)
        self._done.set()

    def run(self) -> int:
        """Run the countdown until it finishes or is interrupted.

        Returns:
            Exit code (0 on finish, 2 on invalid input, 130 on Ctrl+C).
        """
        try:
            duration = self.parse()
        except ParseError as e:
            print(f"timerdeck: {e}", file=sys.stderr)
            return EXIT_BAD_INPUT

        self.controller = TimerController(
            duration, clock=self._clock, timer_factory=self._timer_factory
        )
        self.controller.on_finish(self._on_finish)
        interval = self._settings.update_interval_ms / 1000.0

        try:
            self.controller.start()
            while not self._done.wait(interval):
                self._draw()
            self._draw("\a\n")
            return EXIT_OK
        except KeyboardInterrupt:
            self.controller.stop()
            self._draw("\n")
            logger.info("Timer stopped with %dms left", self.controller.get_time_remaining())
            return EXIT_INTERRUPTED
        finally:
            self.controller.close()


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="timerdeck - Countdown timer")
    parser.add_argument(
        "duration",
        nargs="?",
        help='Duration like "90", "1:30", "1h 30m" (a bare number is minutes)',
    )
    parser.add_argument(
        "--until",
        "-u",
        action="store_true",
        help='Treat DURATION as a time of day, like "5:30pm"',
    )
    parser.add_argument(
        "--settings",
        "-s",
        type=Path,
        default=None,
        help="Path to settings JSON file",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--serve",
        action="store_true",
        help="Run the web API instead of a terminal countdown",
    )
    parser.add_argument(
        "--port",
        "-p",
        type=int,
        default=None,
        help="Web API port (default: 8425)",
    )

    args = parser.parse_args(argv)

    setup_logging(args.debug)
    settings = load_settings(args.settings)
    set_settings(settings)

    if args.serve:
        from timerdeck.core.timer_manager import get_timer_manager
        from timerdeck.web.server import DEFAULT_PORT, run_server

        get_timer_manager().configure(settings.separator)
        run_server(port=args.port or DEFAULT_PORT)
        return

    if not args.duration:
        parser.error("a duration is required unless --serve is given")

    app = CountdownApp(args.duration, settings, until=args.until)
    sys.exit(app.run())


if __name__ == "__main__":
    main()
