#!/usr/bin/env python3
"""
Simple test runner for the scanlink project.
Run this to execute all tests, or pass a test file / -k expression through.
"""

import subprocess
import sys
import os


def run_tests(extra_args=None):
    """Run the test suite"""
    print("Running scanlink tests")
    print("=" * 40)

    # Change to project directory
    os.chdir(os.path.dirname(os.path.abspath(__file__)))

    # Never touch a real Redis from the test suite
    env = dict(os.environ, RATE_LIMIT_BACKEND="memory")

    try:
        subprocess.run([
            sys.executable, "-m", "pytest",
            "tests/",
            "-v",
            "--tb=short",
            *(extra_args or [])
        ], check=True, env=env)

        print("\nAll tests passed!")
        return 0

    except subprocess.CalledProcessError as e:
        print(f"\nTests failed with exit code {e.returncode}")
        return e.returncode
    except FileNotFoundError:
        print("pytest not found. Install with: pip install -e '.[test]'")
        return 1


if __name__ == "__main__":
    sys.exit(run_tests(sys.argv[1:]))
