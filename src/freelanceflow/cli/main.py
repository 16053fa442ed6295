# freelanceflow/cli/main.py
import argparse
import sys

from freelanceflow.cli import api, db, env, projects, logging as logging_cli


def main(argv=None):
    env_files, argv = env.extract_env_files(sys.argv[1:] if argv is None else argv)
    if env_files:
        env.load_env_files(env_files)

    parser = argparse.ArgumentParser(prog="freelanceflow", description="FreelanceFlow CLI toolkit")
    parser.add_argument("--env-file", action="append", help="Load KEY=value pairs before running")
    subparsers = parser.add_subparsers(dest="command", required=True)

    modules = {
        "db": (db, "Database operations"),
        "api": (api, "API control"),
        "logging": (logging_cli, "Logging utilities"),
        "env": (env, "Environment checks"),
        "projects": (projects, "Browse projects"),
    }
    for name, (module, help_text) in modules.items():
        sub = subparsers.add_parser(name, help=help_text)
        module.register_subcommands(sub.add_subparsers(dest="subcommand", required=True))

    args = parser.parse_args(argv)

    module, _ = modules[args.command]
    result = module.dispatch(args)
    if isinstance(result, int) and result:
        sys.exit(result)


if __name__ == "__main__":
    main()
