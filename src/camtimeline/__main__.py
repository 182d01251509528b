from __future__ import annotations

import argparse
import logging
import time
from dataclasses import replace
from pathlib import Path

from .core.settings import EngineSettings
from .runtime.server import run


def main() -> None:
    p = argparse.ArgumentParser(prog="camtimeline", description="camtimeline: headless camera timeline engine")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.add_argument("--data-dir", type=Path, default=None, help="base directory for timeline import/export")
    p.add_argument("--tick-rate", type=float, default=None, help="engine updates per second")
    p.add_argument("--log-level", default="info", choices=["debug", "info", "warning", "error"])
    args = p.parse_args()

    logging.basicConfig(level=args.log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    settings = EngineSettings.from_env()
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)
    if args.tick_rate is not None:
        settings = replace(settings, tick_rate_hz=args.tick_rate)

    srv = run(host=args.host, port=args.port, settings=settings, log_level=args.log_level)
    print(srv.url)

    # Block until interrupted (so it behaves like a normal CLI server)
    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        srv.stop()


if __name__ == "__main__":
    main()
