"""
gpm CLI - Graft Plugin Manager.

Pacman-style interface for installing plugins into platform projects.

Usage:
    gpm -S <plugin>...  --platform P     Install plugin(s) and dependencies
    gpm -R <plugin>     --platform P     Remove plugin
    gpm -Q              --platform P     List installed plugins
    gpm --init                           Write a default graft.toml
"""

import argparse
import sys

from gpm.session import GPMError


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser with pacman-style flags."""
    parser = argparse.ArgumentParser(
        prog="gpm",
        description="Graft Plugin Manager - Pacman-style plugin installer",
        add_help=False,
    )

    # Operation flags (mutually exclusive)
    ops = parser.add_mutually_exclusive_group()
    ops.add_argument("-S", "--sync", action="store_true", help="Install plugin")
    ops.add_argument("-R", "--remove", action="store_true", help="Remove plugin")
    ops.add_argument("-Q", "--query", action="store_true", help="Query installed")
    ops.add_argument("--init", action="store_true", help="Write default graft.toml")
    ops.add_argument("-h", "--help", action="store_true", help="Show help")

    # Project selection
    parser.add_argument("--platform", help="Target platform (android, ios, browser)")
    parser.add_argument("--project", default=".", help="Project directory")
    parser.add_argument("--search-path", help="Directory of available plugins")

    # Common options
    parser.add_argument(
        "--nohooks", action="append", default=[], metavar="PATTERN", help="Skip matching hooks"
    )
    parser.add_argument("--force", action="store_true", help="Force install/remove")
    parser.add_argument("--link", action="store_true", help="Symlink instead of copy")
    parser.add_argument(
        "--noconfirm", action="store_true", help="Skip confirmation prompts"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    # Positional arguments
    parser.add_argument("targets", nargs="*", help="Plugin ids")

    return parser


def print_help():
    """Print help message."""
    help_text = """
gpm - Graft Plugin Manager

Usage:
    gpm -S <plugin>...  --platform P     Install plugin(s) and dependencies
    gpm -R <plugin>     --platform P     Remove plugin
    gpm -Q              --platform P     List installed plugins
    gpm --init                           Write a default graft.toml

Options:
    --project DIR                Project directory (default: .)
    --search-path DIR            Directory of available plugins
    --nohooks PATTERN            Skip hook events matching PATTERN (repeatable)
    --force                      Reinstall, or remove despite dependents
    --link                       Symlink plugin files instead of copying
    --noconfirm                  Skip confirmation prompts
    -v, --verbose                Verbose output
    -h, --help                   Show this help
"""
    print(help_text.strip())


def main(argv: list[str] | None = None) -> int:
    """Main entry point for gpm CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        # Show help
        if args.help or not (args.sync or args.remove or args.query or args.init):
            print_help()
            return 0

        if args.init:
            from gpm.commands.init import init_command

            return init_command(args)

        elif args.sync:
            # -S: Install
            from gpm.commands.install import install_command

            return install_command(args)

        elif args.remove:
            # -R: Remove
            from gpm.commands.remove import remove_command

            return remove_command(args)

        elif args.query:
            # -Q: Query
            from gpm.commands.query import query_command

            return query_command(args)

    except GPMError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            import traceback

            traceback.print_exc()
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
