from __future__ import annotations

import contextlib
import logging
import socket
import threading
import time
from dataclasses import dataclass, field

import uvicorn

from ..core.camera import CameraSink
from ..core.registry import TimelineRegistry
from ..core.settings import EngineSettings
from .app import create_app, create_registry
from .driver import TickDriver

logger = logging.getLogger(__name__)


def _find_free_port(host: str) -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind((host, 0))
        return int(s.getsockname()[1])


@dataclass(frozen=True)
class TimelineServer:
    host: str
    port: int
    url: str
    registry: TimelineRegistry = field(repr=False)
    driver: TickDriver = field(repr=False)
    _server: uvicorn.Server = field(repr=False)
    _thread: threading.Thread = field(repr=False)

    def stop(self, timeout: float = 5.0) -> None:
        self.driver.stop()
        self._server.should_exit = True
        self._thread.join(timeout=timeout)
        self.registry.shutdown()
        logger.info("camtimeline server at %s stopped", self.url)


def run(
    *,
    host: str = "127.0.0.1",
    port: int = 0,
    camera: CameraSink | None = None,
    settings: EngineSettings | None = None,
    log_level: str = "info",
    access_log: bool = False,
) -> TimelineServer:
    """Host a registry over HTTP and start ticking it.

    `port=0` picks a free port. Without a camera the engine drives an in-memory
    one, which is enough for headless authoring and tests.
    """

    if port == 0:
        port = _find_free_port(host)

    registry = create_registry(camera, settings)
    app = create_app(registry)

    config = uvicorn.Config(app, host=host, port=port, log_level=log_level, access_log=access_log)
    server = uvicorn.Server(config)

    thread = threading.Thread(target=server.run, daemon=True)
    thread.start()

    driver = TickDriver(registry)
    driver.start()

    # Give uvicorn a moment so an immediate client call doesn't race startup.
    time.sleep(0.05)

    url = f"http://{host}:{port}/"
    logger.info("camtimeline serving at %s", url)
    return TimelineServer(host=host, port=port, url=url, registry=registry, driver=driver, _server=server, _thread=thread)
