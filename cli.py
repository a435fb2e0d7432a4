#!/usr/bin/env python3
"""
Command-line interface for member management.

Usage:
    python cli.py [command] [options]

Commands:
    demo        Run demo scenarios
    test        Run the test suite
    serve       Start the API server

Examples:
    python cli.py demo lifecycle
    python cli.py demo all
    python cli.py serve --reload
"""

import argparse
import subprocess
import sys

from members.config import Settings, configure_logging


def run_demo(scenario: str) -> None:
    """Run a demo scenario."""
    from members.demo import (
        run_concurrent_update_demo,
        run_lifecycle_demo,
        run_mail_failure_demo,
    )

    scenarios = {
        "lifecycle": [run_lifecycle_demo],
        "mail-failure": [run_mail_failure_demo],
        "concurrent-update": [run_concurrent_update_demo],
        "all": [run_lifecycle_demo, run_mail_failure_demo, run_concurrent_update_demo],
    }
    if scenario not in scenarios:
        print(f"Unknown scenario: {scenario}")
        sys.exit(1)

    configure_logging(Settings.from_env())
    for demo in scenarios[scenario]:
        demo()


def run_tests(args: list[str]) -> None:
    """Run the test suite."""
    cmd = [sys.executable, "-m", "pytest"] + args
    sys.exit(subprocess.run(cmd).returncode)


def run_server(host: str, port: int, reload: bool) -> None:
    """Start the API server."""
    cmd = [sys.executable, "-m", "uvicorn", "api.main:app", f"--host={host}", f"--port={port}"]
    if reload:
        cmd.append("--reload")

    print(f"Starting server at http://{host}:{port}")
    print(f"API docs available at http://{host}:{port}/docs")
    subprocess.run(cmd)


def main() -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Member Management CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo lifecycle
  %(prog)s demo mail-failure
  %(prog)s demo all
  %(prog)s test -v
  %(prog)s serve --reload
        """,
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    demo_parser = subparsers.add_parser("demo", help="Run demo scenarios")
    demo_parser.add_argument(
        "scenario",
        choices=["lifecycle", "mail-failure", "concurrent-update", "all"],
        help="Which scenario to run",
    )

    test_parser = subparsers.add_parser("test", help="Run the test suite")
    test_parser.add_argument(
        "pytest_args",
        nargs="*",
        default=[],
        help="Arguments to pass to pytest",
    )

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")

    args = parser.parse_args()

    if args.command == "demo":
        run_demo(args.scenario)
    elif args.command == "test":
        run_tests(args.pytest_args)
    elif args.command == "serve":
        run_server(args.host, args.port, args.reload)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
