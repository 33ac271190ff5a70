"""
Runs the CMS API with uvicorn.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import uvicorn

from cms.config import get_settings


def main() -> int:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="UniUnity CMS API server")
    parser.add_argument("--host", type=str, default=settings.host)
    parser.add_argument("--port", type=int, default=settings.port)
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )
    args = parser.parse_args()

    uvicorn.run(
        "cms.app:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
