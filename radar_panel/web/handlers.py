import json
import asyncio
import logging
import functools
from typing import Any, Callable, Dict

from starlette.background import BackgroundTask
from starlette.datastructures import UploadFile
from starlette.requests import Request
from starlette.responses import JSONResponse, PlainTextResponse, Response

from radar_panel.local.errors import (ArtifactNotFound, ConfigValidationError, LogUnavailable,
                                      PanelError)
from radar_panel.local.logbuffer import ScriptVariant
from radar_panel.local.panel import ControlPanel
from radar_panel.local.workload import WorkloadState

log = logging.getLogger(__name__)

# Everything not listed is a server-side failure.
ERROR_STATUS = {
    ArtifactNotFound: 404,
    ConfigValidationError: 400,
}


async def _run(func: Callable, *args: Any) -> Any:
    """Runs a blocking core call in the default executor."""
    return await asyncio.get_running_loop().run_in_executor(None, functools.partial(func, *args))


def _panel(request: Request) -> ControlPanel:
    return request.app.state.panel


async def handle_panel_error(request: Request, exc: PanelError) -> Response:
    """Maps core errors onto HTTP responses, keeping their message verbatim."""
    status = ERROR_STATUS.get(type(exc), 500)
    if status >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        log.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse({"error": type(exc).__name__, "detail": exc.message}, status_code=status)


async def health(request: Request) -> Response:
    return JSONResponse({"status": "ok"})


#* --- Workload ---
async def radar_action(request: Request) -> Response:
    """Dispatches start, stop and status."""
    action = request.path_params["action"]
    panel = _panel(request)

    if action == "start":
        await _run(panel.workload.start)
        return JSONResponse({"action": action, "message": "Radar started. The background process was launched."})

    if action == "stop":
        result = await _run(panel.workload.stop)
        message = "Radar stopped. Process terminated." if result.terminated else "Radar stopped. Stop command completed."
        return JSONResponse({"action": action, "terminated": result.terminated, "message": message})

    if action == "status":
        state = await _run(panel.workload.status)
        running = state is WorkloadState.RUNNING
        message = "Radar status: running" if running else "Radar status: not running"
        return JSONResponse({"action": action, "state": state.value, "running": running, "message": message})

    return JSONResponse({"error": "Bad Request", "detail": f"Unknown action: {action}"}, status_code=400)


async def radar_log(request: Request) -> Response:
    """Returns the workload log rendered in the requested script variant."""
    try:
        variant = ScriptVariant.parse(request.query_params.get("lang"))
    except ValueError as e:
        return PlainTextResponse(str(e), status_code=400)

    try:
        text = await _run(_panel(request).transcoder.read, variant)
    except LogUnavailable as e:
        return PlainTextResponse(e.message)
    except OSError as e:
        log.error(f"Failed to read workload log: {e}")
        return PlainTextResponse(f"Failed to read log: {e}", status_code=500)
    return PlainTextResponse(text)


#* --- Artifact ---
async def artifact_info(request: Request) -> Response:
    info = _panel(request).artifacts.info()
    return JSONResponse({"name": info.path.name, "exists": info.exists, "mtime": info.mtime, "size": info.size})


async def artifact_upload(request: Request) -> Response:
    """Installs the uploaded executable. Expects a multipart form with a 'file' field."""
    form = await request.form()
    try:
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            return JSONResponse({"error": "Bad Request", "detail": "Multipart field 'file' is required."}, status_code=400)
        mtime = await _run(_panel(request).artifacts.upload, upload.file)
    finally:
        await form.close()
    return JSONResponse({"message": "Upload complete. Restart the panel to apply.", "mtime": mtime})


async def artifact_delete(request: Request) -> Response:
    await _run(_panel(request).artifacts.delete)
    return JSONResponse({"message": "Artifact deleted. The workload was stopped and the log cleared."})


#* --- Restart & Config ---
async def panel_restart(request: Request) -> Response:
    """Responds first, then restarts the hosting service once the response is sent."""
    orchestrator = _panel(request).orchestrator
    return JSONResponse(
        {"message": "Restarting the panel service."},
        background=BackgroundTask(orchestrator.restart_after_response),
    )


async def config_get(request: Request) -> Response:
    return JSONResponse(_panel(request).config_store.get())


async def _read_payload(request: Request) -> Dict[str, Any]:
    if request.headers.get("content-type", "").startswith("application/json"):
        payload = await request.json()
        if not isinstance(payload, dict):
            raise ConfigValidationError("Configuration must be a JSON object.")
        return payload
    form = await request.form()
    return {key: value for key, value in form.items() if isinstance(value, str)}


async def config_save(request: Request) -> Response:
    """Saves the config and restarts the service only if the workload is running."""
    try:
        payload = await _read_payload(request)
    except json.JSONDecodeError:
        return JSONResponse({"error": "Bad Request", "detail": "Invalid JSON"}, status_code=400)

    panel = _panel(request)
    result = await _run(panel.orchestrator.save_config, payload)
    if result.restart_required:
        return JSONResponse(
            {"config": result.config, "restart": True, "message": "Configuration saved. Restarting to apply."},
            background=BackgroundTask(panel.orchestrator.restart_after_response),
        )
    return JSONResponse(
        {"config": result.config, "restart": False, "message": "Configuration saved. It will apply on the next launch."}
    )
