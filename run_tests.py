"""
Test runner for the wager bot.
Run with: python run_tests.py [extra pytest args]

Uses pytest discovery over the tests/ directory.
"""

import subprocess
import sys

if __name__ == "__main__":
    result = subprocess.run(
        [sys.executable, "-m", "pytest", "-v", "--tb=short", "tests/", *sys.argv[1:]],
        cwd=".",
    )
    sys.exit(result.returncode)
