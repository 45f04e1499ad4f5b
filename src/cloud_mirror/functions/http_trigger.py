"""HTTP trigger blueprint — health check, manual sync and node lookup endpoints."""

import json
import logging
from typing import Any

import azure.functions as func

from cloud_mirror import __version__
from cloud_mirror.config import load_config
from cloud_mirror.errors import AuthExpiredError, BrokenChainError, NetworkFailureError
from cloud_mirror.orchestration.engine import cache_engine_from_config

logger = logging.getLogger(__name__)

bp = func.Blueprint()


def _json_response(payload: dict[str, Any], status_code: int = 200) -> func.HttpResponse:
    return func.HttpResponse(
        json.dumps(payload), status_code=status_code, mimetype="application/json"
    )


def _error_response(message: str, status_code: int = 500) -> func.HttpResponse:
    return _json_response({"status": "error", "message": message}, status_code=status_code)


@bp.route(route="health", methods=["GET"], auth_level=func.AuthLevel.ANONYMOUS)
def health_check(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint. Returns service status and version."""
    logger.info("[health_check] health check requested")

    try:
        return _json_response({"status": "ok", "version": __version__})

    except Exception:
        logger.error("[health_check] health check failed", exc_info=True)
        return _error_response("Internal server error")


@bp.route(route="sync", methods=["POST"], auth_level=func.AuthLevel.FUNCTION)
def manual_sync(req: func.HttpRequest) -> func.HttpResponse:
    """Manual sync endpoint — runs an incremental sync on demand.

    Pass ``?reset=true`` to clear the cache first and re-sync from the beginning.
    Requires a function key for authentication.
    """
    logger.info("[manual_sync] manual sync requested")

    try:
        engine = cache_engine_from_config(load_config())
        if req.params.get("reset", "").lower() == "true":
            engine.clear_cache()
        report = engine.sync()
        logger.info(
            "[manual_sync] sync complete; requests:%d;upserted:%d;purged:%d",
            report.requests,
            report.upserted,
            report.purged,
        )
        return _json_response(
            {
                "status": "ok",
                "requests": report.requests,
                "upserted": report.upserted,
                "purged": report.purged,
                "resets": report.resets,
            }
        )

    except AuthExpiredError:
        logger.error("[manual_sync] credential rejected", exc_info=True)
        return _error_response("Account authorization expired", status_code=401)
    except NetworkFailureError:
        logger.error("[manual_sync] remote service unavailable", exc_info=True)
        return _error_response("Remote service unavailable", status_code=502)
    except Exception:
        logger.error("[manual_sync] manual sync failed", exc_info=True)
        return _error_response("Internal server error")


@bp.route(route="resolve", methods=["GET"], auth_level=func.AuthLevel.FUNCTION)
def resolve_node(req: func.HttpRequest) -> func.HttpResponse:
    """Look up a cached node by ``?id=``, ``?path=`` or ``?md5=``.

    Returns the matching node records with their remote paths.
    """
    logger.info("[resolve_node] lookup requested")

    try:
        engine = cache_engine_from_config(load_config())
        if "id" in req.params:
            node = engine.resolve_by_id(req.params["id"])
            nodes = [node] if node is not None else []
        elif "path" in req.params:
            node = engine.resolve_by_path(req.params["path"])
            nodes = [node] if node is not None else []
        elif "md5" in req.params:
            nodes = engine.resolve_by_checksum(req.params["md5"])
        else:
            return _error_response("One of id, path or md5 is required", status_code=400)

        if not nodes:
            return _error_response("No matching node", status_code=404)

        results = [{"path": engine.path_of(n), "node": n.to_record()} for n in nodes]
        return _json_response({"status": "ok", "results": results})

    except BrokenChainError as exc:
        logger.warning("[resolve_node] cache has a gap; node_id:%s", exc.node_id)
        return _error_response("Cache incomplete; sync required", status_code=409)
    except Exception:
        logger.error("[resolve_node] lookup failed", exc_info=True)
        return _error_response("Internal server error")
