from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke probe."""
    parser = argparse.ArgumentParser(description="webmount smoke probe")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:4100"))
    parser.add_argument("--token", default=os.getenv("API_TOKEN"))
    parser.add_argument("--read-token", default=os.getenv("API_READ_TOKEN"))
    parser.add_argument("--user", default=None)
    parser.add_argument("--password", default=None)
    parser.add_argument("--timeout", type=float, default=20.0)
    return parser.parse_args(argv)
