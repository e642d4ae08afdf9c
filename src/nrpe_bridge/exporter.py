"""FastAPI application exposing NRPE scrapes in Prometheus text format."""

from __future__ import annotations

import asyncio
import html
import platform
import uuid
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest
from pydantic import ValidationError

from nrpe_bridge.collector import NrpeCollector
from nrpe_bridge.const import (
    NRPE_BRIDGE_EXPORT_PATH,
    NRPE_BRIDGE_LISTEN_HOST,
    NRPE_BRIDGE_LISTEN_PORT,
    NRPE_BRIDGE_METRICS_PATH,
    NRPE_BRIDGE_NAME,
    NRPE_BRIDGE_PROFILES_PATH,
    NRPE_BRIDGE_VERSION,
    SRC_REPO_URL,
)
from nrpe_bridge.correlation import correlation_context
from nrpe_bridge.logging_abstraction import get_logger
from nrpe_bridge.metrics.exposition import render_samples
from nrpe_bridge.profiles import CommandSpec, ProfileError, Profiles
from nrpe_bridge.transport.tls import build_client_context

logger = get_logger(__name__)

app = FastAPI(title="NRPE Bridge", version=NRPE_BRIDGE_VERSION)
app.state.profiles = None

_PAGE_TEMPLATE = """<html>
  <head>
    <title>Prometheus {name}</title>
  </head>
  <body>
    <div class="navbar">
      <a href="/">Prometheus {name}</a> |
      <a href="/healthz">Health</a> |
      <a href="{export_path}?command=check_load&target=127.0.0.1:5666&metric_name=nrpe_load">Export</a> |
      <a href="{profiles_path}">Profiles</a> |
      <a href="/status">Status</a> |
      <a href="{metrics_path}">Exporter Metrics</a> |
      <a href="{docs_url}">Help</a>
    </div>
    {content}
  </body>
</html>
"""


def _render_page(content: str) -> str:
    return _PAGE_TEMPLATE.format(
        name=NRPE_BRIDGE_NAME,
        export_path=NRPE_BRIDGE_EXPORT_PATH,
        profiles_path=NRPE_BRIDGE_PROFILES_PATH,
        metrics_path=NRPE_BRIDGE_METRICS_PATH,
        docs_url=SRC_REPO_URL,
        content=content,
    )


def _masked_http_exception(operation: str, exc: Exception, user_message: str) -> HTTPException:
    """500 response carrying only an error ID; the details go to the log."""
    error_id = uuid.uuid4().hex[:8]
    logger.exception("%s (error_id=%s): %s", operation, error_id, exc, extra={"error_id": error_id})
    return HTTPException(
        status_code=500,
        detail={
            "error_id": error_id,
            "message": user_message,
        },
    )


def _loaded_profiles(request: Request) -> Profiles | None:
    return request.app.state.profiles


def _resolve_commands(
    profiles: Profiles | None,
    profile: str,
    spec_fields: dict[str, Any],
) -> list[CommandSpec]:
    """Commands of the named profile, or the single ad-hoc command from the query."""
    if profile:
        if profiles is None:
            raise ProfileError("no profile defined!")
        return list(profiles.find(profile).commands)

    if not spec_fields.get("command"):
        raise ProfileError("Command parameter is missing")
    try:
        return [CommandSpec.model_validate(spec_fields)]
    except ValidationError as e:
        raise ProfileError(str(e)) from e


@app.get("/", response_class=HTMLResponse)
async def get_index() -> str:
    """Serve the landing page."""
    return _render_page(
        f"""<h1>This is a <a href="{SRC_REPO_URL}">Prometheus {NRPE_BRIDGE_NAME}</a> instance.</h1>
    <p>You are probably looking for its metrics:</p>
    <ul>
      <li><a href="{NRPE_BRIDGE_EXPORT_PATH}?command=check_load&target=127.0.0.1:5666&metric_name=nrpe_load">check_load against localhost:5666 NO SSL</a></li>
      <li><a href="{NRPE_BRIDGE_EXPORT_PATH}?ssl=true&command=check_load&target=127.0.0.1:5666&metric_name=nrpe_load">check_load against localhost:5666 SSL</a></li>
    </ul>"""
    )


@app.get(NRPE_BRIDGE_EXPORT_PATH)
async def export(
    request: Request,
    target: str = "",
    command: str = "",
    params: str = "",
    metric_name: str = "",
    label_name: str = "",
    metricname: str = "",
    labelname: str = "",
    metric_prefix: str = "",
    metric_type: str = Query("", alias="type"),
    help_text: str = Query("", alias="help"),
    ssl: bool = False,
    performance: bool = True,
    profile: str = "",
) -> Response:
    """Run one scrape against ``target`` and return its samples.

    ``metricname`` and ``labelname`` are accepted as older spellings of
    ``metric_name`` and ``label_name``; the underscored form wins when both are set.
    """
    with correlation_context():
        if not target:
            raise HTTPException(status_code=400, detail="Target parameter is missing")

        spec_fields: dict[str, Any] = {
            "command": command,
            "params": params,
            "metric_name": metric_name or metricname,
            "label_name": label_name or labelname,
            "metric_prefix": metric_prefix,
            "type": metric_type,
            "help": help_text,
            "performance": performance,
        }
        try:
            commands = _resolve_commands(_loaded_profiles(request), profile, spec_fields)
            collector = NrpeCollector(
                target,
                commands,
                ssl_context=build_client_context() if ssl else None,
            )
        except (ProfileError, ValueError) as e:
            logger.warning("Rejected export request: %s", e, extra={"target": target, "profile": profile})
            raise HTTPException(status_code=400, detail=str(e)) from e

        try:
            samples = await collector.scrape()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise _masked_http_exception(
                "Scrape failed",
                e,
                "Scrape failed unexpectedly. Check server logs with the provided error ID.",
            ) from e

        return Response(content=render_samples(samples), media_type=CONTENT_TYPE_LATEST)


@app.get(NRPE_BRIDGE_PROFILES_PATH, response_class=HTMLResponse)
async def get_profiles(request: Request) -> str:
    """Show the loaded profiles as YAML."""
    profiles = _loaded_profiles(request)
    dump = profiles.dump() if profiles is not None else "no profile defined"
    return _render_page(f"<h2>Profiles</h2>\n    <pre>{html.escape(dump)}</pre>")


@app.get("/healthz")
async def health_check() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok", "message": "NRPE bridge is running"}


@app.get("/status")
async def status() -> dict[str, Any]:
    """Build and runtime information."""
    return {
        "name": NRPE_BRIDGE_NAME,
        "version": NRPE_BRIDGE_VERSION,
        "python_version": platform.python_version(),
        "export_path": NRPE_BRIDGE_EXPORT_PATH,
        "profiles_path": NRPE_BRIDGE_PROFILES_PATH,
        "metrics_path": NRPE_BRIDGE_METRICS_PATH,
    }


@app.get(NRPE_BRIDGE_METRICS_PATH)
async def bridge_metrics() -> Response:
    """The bridge's own instrumentation."""
    return Response(content=generate_latest(REGISTRY), media_type=CONTENT_TYPE_LATEST)


class ExportServer:
    """Process-wide uvicorn server serving ``app``."""

    lp = "ExportServer:"
    running: bool = False
    _instance: ExportServer | None = None

    def __new__(cls, *_args, **_kwargs):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(
        self,
        profiles: Profiles | None = None,
        host: str = NRPE_BRIDGE_LISTEN_HOST,
        port: int = NRPE_BRIDGE_LISTEN_PORT,
    ):
        app.state.profiles = profiles
        self.host = host
        self.port = port
        # Logging for uvicorn is set up by main; keep its loggers untouched here
        config = uvicorn.Config(
            app,
            host=host,
            port=port,
            log_config={"version": 1, "disable_existing_loggers": False},
        )
        self.uvi_server = uvicorn.Server(config=config)

    async def start(self):
        """Serve until uvicorn exits or the task is cancelled."""
        lp = f"{self.lp}start:"
        logger.info("%s listening on %s:%s", lp, self.host, self.port)
        self.running = True
        try:
            await self.uvi_server.serve()
        except asyncio.CancelledError:
            logger.info("%s cancelled", lp)
            raise
        finally:
            self.running = False
        logger.info("%s server exited", lp)

    async def stop(self):
        """Ask uvicorn to shut down."""
        lp = f"{self.lp}stop:"
        logger.info("%s shutting down", lp)
        await self.uvi_server.shutdown()
        self.running = False
