#!/usr/bin/env python3
"""
protosync — command-line host.

Drives the compiler the way the Unity editor would, without the editor:

    1. Snapshot preferences from the project's preference store.
    2. Resolve the bundled protoc for this host.
    3. Run one of the compile triggers, or keep watching the project.

Usage
─────
    # Compile every .proto in the project
    python -m protosync.cli --project /path/to/UnityProject compile-all

    # Only protos without a generated .cs next to them
    python -m protosync.cli compile-uncompiled

    # Compile specific changed files
    python -m protosync.cli changed Assets/Proto/player.proto

    # Watch the project and compile on save
    python -m protosync.cli watch

    # Inspect or change preferences
    python -m protosync.cli prefs show
    python -m protosync.cli prefs set log_standard true

    # Show where protoc was found
    python -m protosync.cli tools

    # Serve the HTTP API
    python -m protosync.cli serve --port 8000
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import threading
from pathlib import Path
from typing import List, Optional

from protosync.compiler import ProtoCompiler
from protosync.config import WATCH_DEBOUNCE_SECONDS, CompilationResult, ProjectLayout
from protosync.dispatch import main_thread_queue, run_tick_loop
from protosync.preferences import (
    PREFERENCE_NAMES,
    PreferenceStore,
    load_settings,
)
from protosync.scheduler import get_result_summary
from protosync.tools import ConfigurationError

logger = logging.getLogger("protosync")


# ── Wiring ───────────────────────────────────────────────────────────


def _layout_from_args(args: argparse.Namespace) -> ProjectLayout:
    layout = ProjectLayout.from_env(args.project)
    if args.package_dir:
        layout = ProjectLayout(
            project_root=layout.project_root,
            package_directory=Path(args.package_dir).resolve(),
        )
    return layout


def build_compiler(
    layout: ProjectLayout,
    run_on_designated_thread: bool = False,
) -> ProtoCompiler:
    store = PreferenceStore(layout.preferences_database_url)
    return ProtoCompiler(
        layout=layout,
        settings_loader=lambda: load_settings(store),
        run_on_designated_thread=run_on_designated_thread,
    )


def _report(results: List[CompilationResult]) -> None:
    print(f"protosync: {get_result_summary(results)}")
    for r in results:
        if not r.success:
            print(f"  FAILED ({r.exit_code})  {r.proto_file}")


# ── Commands ─────────────────────────────────────────────────────────


def cmd_compile_all(args: argparse.Namespace) -> None:
    _report(build_compiler(_layout_from_args(args)).compile_all())


def cmd_compile_uncompiled(args: argparse.Namespace) -> None:
    _report(build_compiler(_layout_from_args(args)).compile_uncompiled_only())


def cmd_changed(args: argparse.Namespace) -> None:
    _report(build_compiler(_layout_from_args(args)).on_files_changed(args.files))


def cmd_watch(args: argparse.Namespace) -> None:
    from protosync.watcher import ProtoWatcher

    layout = _layout_from_args(args)
    compiler = build_compiler(layout, run_on_designated_thread=True)
    compiler.tool_paths()  # fail fast on a broken install

    stop = threading.Event()
    watcher = ProtoWatcher(compiler, debounce=args.debounce)

    # Startup pass, like the editor does after a script reload.
    threading.Thread(
        target=watcher.compile_uncompiled, name="protosync-startup", daemon=True,
    ).start()
    watcher.start()
    try:
        run_tick_loop(stop, main_thread_queue)
    except KeyboardInterrupt:
        print("\nBye.")
    finally:
        stop.set()
        watcher.stop()


def cmd_prefs(args: argparse.Namespace) -> None:
    layout = _layout_from_args(args)
    store = PreferenceStore(layout.preferences_database_url)

    if args.prefs_command == "set":
        store.set_named(args.name, args.value)
    elif args.prefs_command == "reset":
        store.reset()

    print(json.dumps(load_settings(store).to_dict(), indent=2))


def cmd_tools(args: argparse.Namespace) -> None:
    compiler = build_compiler(_layout_from_args(args))
    print(json.dumps(compiler.tool_paths().to_dict(), indent=2))


def cmd_serve(args: argparse.Namespace) -> None:
    import uvicorn

    os.environ["PROTOSYNC_PROJECT_ROOT"] = str(_layout_from_args(args).project_root)
    if args.package_dir:
        os.environ["PROTOSYNC_PACKAGE_DIR"] = str(Path(args.package_dir).resolve())
    uvicorn.run("protosync.api.main:app", host=args.host, port=args.port)


# ── CLI ──────────────────────────────────────────────────────────────


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="protosync.cli",
        description="Keep generated C# in sync with the .proto files of a Unity project.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  python -m protosync.cli --project ./Game compile-all\n"
            "  python -m protosync.cli changed Assets/Proto/player.proto\n"
            "  python -m protosync.cli watch\n"
            "  python -m protosync.cli prefs set grpc_plugin_path /tools/grpc_csharp_plugin"
        ),
    )
    p.add_argument(
        "--project", "-p",
        type=str,
        default=None,
        help="Unity project root (default: $PROTOSYNC_PROJECT_ROOT or the working directory).",
    )
    p.add_argument(
        "--package-dir",
        type=str,
        default=None,
        help="Tool package directory (default: looked up in Library/PackageCache).",
    )
    p.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=False,
        help="Enable debug logging.",
    )

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("compile-all", help="Compile every .proto in the project.").set_defaults(
        func=cmd_compile_all,
    )
    sub.add_parser(
        "compile-uncompiled", help="Compile .proto files without generated sources.",
    ).set_defaults(func=cmd_compile_uncompiled)

    changed = sub.add_parser("changed", help="Compile the given changed files.")
    changed.add_argument("files", nargs="+", help="Changed file paths.")
    changed.set_defaults(func=cmd_changed)

    watch = sub.add_parser("watch", help="Watch the project and compile on change.")
    watch.add_argument(
        "--debounce",
        type=float,
        default=WATCH_DEBOUNCE_SECONDS,
        help="Seconds of quiet before a batch of changes is compiled (default: %(default)s).",
    )
    watch.set_defaults(func=cmd_watch)

    prefs = sub.add_parser("prefs", help="Show or change preferences.")
    prefs_sub = prefs.add_subparsers(dest="prefs_command", required=True)
    prefs_sub.add_parser("show", help="Print the current preferences.")
    prefs_set = prefs_sub.add_parser("set", help="Set one preference.")
    prefs_set.add_argument("name", choices=sorted(PREFERENCE_NAMES), help="Preference name.")
    prefs_set.add_argument("value", help="New value (empty string clears a path).")
    prefs_sub.add_parser("reset", help="Restore every default.")
    prefs.set_defaults(func=cmd_prefs)

    sub.add_parser("tools", help="Print the resolved protoc toolchain.").set_defaults(
        func=cmd_tools,
    )

    serve = sub.add_parser("serve", help="Run the HTTP API.")
    serve.add_argument("--host", default=os.environ.get("API_HOST", "127.0.0.1"))
    serve.add_argument("--port", type=int, default=int(os.environ.get("API_PORT", "8000")))
    serve.set_defaults(func=cmd_serve)

    return p


def main(argv: Optional[list[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    # ── Logging ──────────────────────────────────────────────────
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(name)-20s  %(levelname)-8s  %(message)s",
        datefmt="%H:%M:%S",
    )

    if args.project and not Path(args.project).is_dir():
        logger.error("Project path does not exist: %s", args.project)
        sys.exit(1)

    try:
        args.func(args)
    except (ConfigurationError, ValueError) as exc:
        logger.error("%s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()
