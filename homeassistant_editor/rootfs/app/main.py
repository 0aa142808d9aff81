from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

APP_DIR = Path(__file__).resolve().parent
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from editor_bridge import settings
from editor_bridge.api import app
from editor_bridge.automations import extract_automations
from editor_bridge.scripts import extract_scripts


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser()
    parser.add_argument("--port", type=int, default=settings.PORT)
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=args.port)


if __name__ == "__main__":
    main()
