#!/usr/bin/env python3
"""
castcompat Test Runner

Usage:
    python test.py              # Everything
    python test.py quick        # Skip slow and ffmpeg-backed tests
    python test.py integration  # Only tests against a real ffmpeg
    python test.py failed       # Re-run last failures
    python test.py streamer     # tests/test_streamer.py, or a -k filter
"""

import os
import subprocess
import sys

PRESETS = {
    "quick": (["-m", "not slow and not integration"], "[QUICK] Skipping slow and integration tests..."),
    "integration": (["-m", "integration", "-s"], "[INTEGRATION] Running ffmpeg-backed tests..."),
    "failed": (["--lf"], "[RETRY] Re-running failed tests..."),
}


def build_command(args):
    cmd = [sys.executable, "-m", "pytest", "-v", "--tb=short"]

    if not args:
        print("[TEST] Running all tests...\n")
        return cmd + ["tests/"]

    name = args[0]
    if name in PRESETS:
        extra, banner = PRESETS[name]
        print(banner + "\n")
        return cmd + ["tests/"] + extra

    test_file = os.path.join("tests", f"test_{name}.py")
    if os.path.exists(test_file):
        print(f"[MODULE] Running {test_file}...\n")
        return cmd + [test_file]

    print(f"[FILTER] Running tests matching '{name}'...\n")
    return cmd + ["tests/", "-k", name]


def main():
    os.chdir(os.path.dirname(os.path.abspath(__file__)))
    cmd = build_command(sys.argv[1:])

    try:
        result = subprocess.run(cmd)
    except KeyboardInterrupt:
        print("\n[ABORT] Tests interrupted by user")
        return 1

    print("\n" + "=" * 60)
    if result.returncode == 0:
        print("[PASS] All tests passed!")
    else:
        print(f"[FAIL] Tests failed (exit code: {result.returncode})")
    print("=" * 60)
    return result.returncode


if __name__ == "__main__":
    sys.exit(main())
