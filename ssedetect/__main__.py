"""Convenience entrypoint for SSEDETECT.

This allows running the detection driver via:

  python -m ssedetect --input positions.csv --window 15 --prop-thresh 0.1

It simply delegates to the top-level driver `sse_driver.py`.
"""
import os
import sys


def main():
    # Ensure repository root is on sys.path so the driver module can be
    # imported when running from a source checkout.
    repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)

    from sse_driver import main as driver_main
    return driver_main()


if __name__ == '__main__':
    sys.exit(main())
