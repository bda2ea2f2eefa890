from __future__ import annotations

import argparse
import os


def parse_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments for the smoke runner."""
    parser = argparse.ArgumentParser(description="Order relay smoke runner")
    parser.add_argument("--base-url", default=os.getenv("BASE_URL", "http://127.0.0.1:3000"))
    parser.add_argument(
        "--order",
        default=None,
        help="Path to a JSON object to upload; a small sample order is used if omitted",
    )
    parser.add_argument("--timeout", type=float, default=30.0)
    return parser.parse_args(argv)
