import asyncio
import logging
import setproctitle
from hypercorn.asyncio import serve as hypercorn_serve
from hypercorn.config import Config as HypercornConfig

from radar_panel import settings
from radar_panel.web.setup import create_app

log = logging.getLogger(__name__)


def build_hypercorn_config(host: str, port: int) -> HypercornConfig:
    """Returns the Hypercorn configuration for the panel."""
    config = HypercornConfig()
    config.bind = [f"{host}:{port}"]
    # Hypercorn's own logs go to stdout/stderr next to the application's.
    config.accesslog = "-"
    config.errorlog = "-"
    config.loglevel = "info"
    return config


def serve(host: str = settings.PANEL_HOST, port: int = settings.PANEL_PORT) -> None:
    """Runs the control panel in the foreground until interrupted."""
    setproctitle.setproctitle(settings.PANEL_PROCESS_TITLE)
    app = create_app()
    log.info(f"RAY Radar control panel listening on http://{host}:{port}")
    asyncio.run(hypercorn_serve(app, build_hypercorn_config(host, port)))
