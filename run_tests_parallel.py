#!/usr/bin/env python3
"""
Run the fast tests in parallel.

Uses pytest-xdist to spread the tests across CPU cores. The e2e tests start a real
server per test, so they are left for a plain ``pytest`` run.
"""
import subprocess
import sys


def main() -> int:
    """Run tests in parallel with nice output."""
    print("Running tests in parallel...")
    print("=" * 60)

    # Run the fast tests (excluding resource-intensive and e2e tests)
    cmd = [
        sys.executable, "-m", "pytest",
        "-n", "auto",
        "-m", "not (resource_intensive or e2e)",
        "--tb=short",
        "-v",
    ]

    result = subprocess.run(cmd, capture_output=False)
    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
