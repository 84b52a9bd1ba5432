#!/usr/bin/env python3
"""
Stepwise - interactive terminal tutor CLI

Usage:
    stepwise                         # work through the exercises in the current directory
    stepwise path/to/exercises       # ... or in another directory
    stepwise --list                  # show exercises and progress
    stepwise --set toolchain "mytool --color never"
"""

import os
import sys
import argparse

from loguru import logger
from rich.console import Console
from rich.table import Table

from .config import Settings, get_log_path, load_config, set_config_value
from .errors import CatalogError
from .session import EventLoop, FileChanged, SessionController, WatchFailed
from .tutoring import ExerciseCatalog, ExerciseRunner, FileWatcher, ProgressTracker
from .ui import theme
from .ui.render import FrameRenderer
from .ui.terminal import Terminal


def setup_logging(level: str):
    """Log to a file only; the terminal belongs to the frame"""
    logger.remove()
    logger.add(
        str(get_log_path()),
        level=level.upper(),
        format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{line} | {message}",
        rotation="1 MB",
        retention=3,
    )


def build_settings(args) -> Settings:
    """Config file, then STEPWISE_* env vars, then command line flags"""
    return Settings.resolve(
        load_config(),
        toolchain=args.toolchain,
        success_marker=args.success_marker,
        run_timeout=args.timeout,
        auto_advance=False if args.no_auto else None,
        watch=False if args.no_watch else None,
        log_level=args.log_level,
    )


def list_exercises(console: Console, catalog: ExerciseCatalog, tracker: ProgressTracker):
    """Print the curriculum with per-exercise status"""
    record = tracker.load()
    table = Table(title="Exercises", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Exercise")
    table.add_column("Mode")
    table.add_column("Status")

    for exercise in catalog:
        done = record.is_done(exercise.id)
        marker = " ◀" if exercise.id == record.current else ""
        table.add_row(
            str(exercise.ordinal + 1),
            exercise.display_name + marker,
            exercise.mode.value,
            f"[green]{theme.ICON_DONE} done[/green]" if done else "[dim]pending[/dim]",
        )

    console.print(table)
    console.print(f"\n{record.done_count()}/{len(catalog)} complete")


def run_session(catalog: ExerciseCatalog, tracker: ProgressTracker, settings: Settings,
                language: str = None) -> int:
    """Wire up the components and run the interactive session"""
    runner = ExerciseRunner(
        settings.toolchain_argv(),
        success_marker=settings.success_marker,
        timeout=settings.run_timeout,
        env=settings.extra_env,
    )

    loop = None

    def post(event):
        loop.post(event)

    watcher = FileWatcher(
        on_change=lambda path: post(FileChanged(path)),
        on_error=lambda message: post(WatchFailed(message)),
        debounce_seconds=settings.debounce_seconds,
    )
    controller = SessionController(catalog, tracker, runner, watcher, settings, post)
    renderer = FrameRenderer(language)

    with Terminal() as terminal:
        loop = EventLoop(
            controller,
            draw=lambda: terminal.draw(renderer.render(controller.state, *terminal.size)),
            size=lambda: terminal.size,
            tick_seconds=settings.tick_seconds,
        )
        controller.start()
        reader = terminal.key_reader(loop.post_key)
        reader.start()
        try:
            loop.run()
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            reader.stop()
            controller.shutdown()

    state = controller.state
    if state is not None and state.all_done:
        Console().print(f"[green]{catalog.final_message}[/green]")
    return 0


def main():
    """Main CLI entry point"""

    parser = argparse.ArgumentParser(
        description='Stepwise - work through programming exercises in your terminal',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stepwise                                    # Start in the current directory
  stepwise exercises/                         # Start in another exercise directory
  stepwise --list                             # Show progress
  stepwise --toolchain "cargo-runner"         # Use a different toolchain command
  stepwise --set debounce_seconds 0.5         # Save a setting to ~/.stepwise/config.json

Inside the session press :help for commands and keys.
        """
    )

    parser.add_argument('directory', nargs='?', default='.',
                        help='Directory containing info.json (default: current directory)')
    parser.add_argument('--list', action='store_true', help='List exercises and progress')
    parser.add_argument('--toolchain', help='Toolchain command (invoked as <toolchain> <mode> <path>)')
    parser.add_argument('--success-marker', help='Text the toolchain prints on success')
    parser.add_argument('--timeout', type=float, help='Seconds before a run is abandoned')
    parser.add_argument('--language', choices=['rust', 'python', 'plain'],
                        help='Highlighting language (default: from file extension)')
    parser.add_argument('--no-auto', action='store_true', help='Do not auto-advance after a pass')
    parser.add_argument('--no-watch', action='store_true', help='Do not watch the exercise file')
    parser.add_argument('--log-level', help='Log level for ~/.stepwise/stepwise.log')
    parser.add_argument('--set', nargs=2, metavar=('KEY', 'VALUE'),
                        help='Save a setting to the config file and exit')

    args = parser.parse_args()

    if args.set:
        key, value = args.set
        set_config_value(key, value)
        print(f"Saved {key} = {value}")
        return

    settings = build_settings(args)
    setup_logging(settings.log_level)

    console = Console()
    try:
        catalog = ExerciseCatalog.from_directory(args.directory)
    except CatalogError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)

    tracker = ProgressTracker(
        os.path.join(catalog.root, settings.progress_file),
        [exercise.id for exercise in catalog],
    )

    if args.list:
        list_exercises(console, catalog, tracker)
        return

    sys.exit(run_session(catalog, tracker, settings, args.language))


if __name__ == "__main__":
    main()
