from __future__ import annotations

import argparse
import shlex
import sys
from pathlib import Path

from monorun import __version__
from monorun.output import (
    format_failures,
    format_scripts,
    format_workspace,
    format_workspaces,
    json_lines,
    result_to_dict,
    script_to_dict,
    workspace_to_dict,
)
from monorun_core import (
    MonorunError,
    Project,
    RunRequest,
    describe_script,
    describe_workspace,
    list_scripts,
    list_workspaces,
    load_project,
    load_project_config,
    run_script,
)


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _load(args: argparse.Namespace) -> Project:
    root = Path(args.cwd)
    config = load_project_config(Path(args.config)) if args.config else None
    return load_project(root, config=config)


def cmd_list_workspaces(args: argparse.Namespace) -> int:
    project = _load(args)
    workspaces = list_workspaces(project, args.pattern)
    if not workspaces:
        print("No workspaces found")
        return 0
    if args.json:
        print(json_lines(workspace_to_dict(ws) for ws in workspaces))
    else:
        print(format_workspaces(workspaces, name_only=args.name_only))
    return 0


def cmd_list_scripts(args: argparse.Namespace) -> int:
    project = _load(args)
    scripts = list_scripts(project)
    if not scripts:
        print("No scripts found")
        return 0
    if args.json:
        print(json_lines(script_to_dict(script) for script in scripts))
    else:
        print(format_scripts(scripts, name_only=args.name_only))
    return 0


def cmd_workspace_info(args: argparse.Namespace) -> int:
    project = _load(args)
    workspace = describe_workspace(project, args.name)
    if workspace is None:
        print(f'Workspace not found: "{args.name}"')
        return 1
    if args.json:
        print(json_lines([workspace_to_dict(workspace)]))
    else:
        print(format_workspace(workspace))
    return 0


def cmd_script_info(args: argparse.Namespace) -> int:
    project = _load(args)
    script = describe_script(project, args.name)
    if script is None:
        print(f'Script not found: "{args.name}"')
        return 1
    if args.json:
        print(json_lines([script_to_dict(script)]))
    elif args.workspaces_only:
        print("\n".join(script.workspace_names))
    else:
        print(format_scripts([script], name_only=False))
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    project = _load(args)
    run_config = project.config.run

    parallel = run_config.parallel if args.parallel is None else args.parallel
    request = RunRequest(
        script_name=args.script,
        workspace_filter=tuple(args.workspaces) or None,
        extra_args=tuple(shlex.split(args.args)) if args.args else (),
        mode="parallel" if parallel else "sequential",
        fail_fast=bool(args.fail_fast or run_config.fail_fast),
    )
    if args.json:
        # stdout carries only the JSON lines; child output is captured into each result.
        outcome = run_script(project, request, echo=not args.quiet, capture=True, out=sys.stderr)
    else:
        outcome = run_script(project, request, echo=not args.quiet)

    if args.json:
        print(json_lines(result_to_dict(result) for result in outcome.results))
    if not outcome.success:
        _eprint(f"ERROR: {format_failures(outcome)}")
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="monorun",
        description="List the workspaces of a package.json monorepo and run their scripts.",
    )
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--cwd", default=".", help="Project root containing package.json (default: .).")
    parser.add_argument(
        "--config",
        help="Path to a monorun.yaml config file (default: monorun.yaml or .monorun.yaml in the project root).",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_ls = sub.add_parser("list-workspaces", aliases=["ls"], help="List workspaces, optionally matching a pattern.")
    p_ls.add_argument("pattern", nargs="?", help="Workspace name or wildcard pattern, e.g. '*-a'.")
    p_ls.add_argument("--name-only", action="store_true", help="Print only workspace names.")
    p_ls.add_argument("--json", action="store_true", help="Print one JSON object per workspace.")
    p_ls.set_defaults(func=cmd_list_workspaces)

    p_scripts = sub.add_parser("list-scripts", help="List scripts defined across workspaces.")
    p_scripts.add_argument("--name-only", action="store_true", help="Print only script names.")
    p_scripts.add_argument("--json", action="store_true", help="Print one JSON object per script.")
    p_scripts.set_defaults(func=cmd_list_scripts)

    p_winfo = sub.add_parser("workspace-info", aliases=["info"], help="Show details for one workspace.")
    p_winfo.add_argument("name", help="Workspace name or alias.")
    p_winfo.add_argument("--json", action="store_true")
    p_winfo.set_defaults(func=cmd_workspace_info)

    p_sinfo = sub.add_parser("script-info", help="Show which workspaces define a script.")
    p_sinfo.add_argument("name")
    p_sinfo.add_argument("--workspaces-only", action="store_true", help="Print only workspace names.")
    p_sinfo.add_argument("--json", action="store_true")
    p_sinfo.set_defaults(func=cmd_script_info)

    p_run = sub.add_parser("run", help="Run a script across workspaces.")
    p_run.add_argument("script")
    p_run.add_argument(
        "workspaces",
        nargs="*",
        help="Workspace names, aliases or wildcard patterns (default: every workspace defining the script).",
    )
    mode = p_run.add_mutually_exclusive_group()
    mode.add_argument("--parallel", dest="parallel", action="store_true", default=None)
    mode.add_argument("--sequential", dest="parallel", action="store_false", default=None)
    p_run.add_argument(
        "--args",
        default="",
        help='Extra arguments appended to every invocation, e.g. --args="--watch --verbose".',
    )
    p_run.add_argument("--fail-fast", action="store_true", help="Stop after the first failing workspace (sequential).")
    p_run.add_argument("--quiet", action="store_true", help="Do not echo each command before running it.")
    p_run.add_argument("--json", action="store_true", help="Print one JSON object per workspace result.")
    p_run.set_defaults(func=cmd_run)
    return parser


def main(argv: list[str]) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return int(args.func(args))
    except MonorunError as exc:
        _eprint(f"ERROR: {exc}")
        return 2


def entrypoint() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    entrypoint()
