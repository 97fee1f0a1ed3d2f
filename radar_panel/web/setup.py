import logging
from typing import Optional

from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.routing import Route

from radar_panel.local.errors import PanelError
from radar_panel.local.panel import ControlPanel
from radar_panel.web import handlers
from radar_panel.web.middleware import ErrorGuardMiddleware, SecurityHeadersMiddleware

log = logging.getLogger(__name__)


def create_app(panel: Optional[ControlPanel] = None) -> Starlette:
    """
    Builds the panel's ASGI application.

    :param panel: The control components to serve. Built from settings if omitted.
    """
    routes = [
        Route("/health", endpoint=handlers.health, methods=["GET"]),
        Route("/radar/log", endpoint=handlers.radar_log, methods=["GET"]),
        Route("/radar/artifact", endpoint=handlers.artifact_info, methods=["GET"]),
        Route("/radar/artifact", endpoint=handlers.artifact_upload, methods=["POST"]),
        Route("/radar/artifact", endpoint=handlers.artifact_delete, methods=["DELETE"]),
        Route("/radar/{action}", endpoint=handlers.radar_action, methods=["POST"]),
        Route("/panel/restart", endpoint=handlers.panel_restart, methods=["POST"]),
        Route("/config", endpoint=handlers.config_get, methods=["GET"]),
        Route("/config", endpoint=handlers.config_save, methods=["POST"]),
    ]

    # The security headers wrap the error guard so 500s carry them too.
    middleware = [
        Middleware(SecurityHeadersMiddleware),
        Middleware(ErrorGuardMiddleware),
    ]

    app = Starlette(
        debug=False,
        routes=routes,
        middleware=middleware,
        exception_handlers={PanelError: handlers.handle_panel_error},
    )
    app.state.panel = panel or ControlPanel()
    log.info("Starlette control panel application configured and ready.")
    return app
