"""
FastAPI Server for the CAL Engine.

Provides REST API endpoints for triggering lifecycle passes, reading the
latest pass result and browsing the audit trail.
"""

import logging
import os
import threading
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from ..audit import AuditLogger
from ..config import LifecycleConfig, load_config
from ..connectors import create_connector
from ..exceptions import ConfigurationError, DirectoryError
from ..models import DryRunFlags, PassResult
from ..workflows import LifecycleOrchestrator, create_pass_summary

logger = logging.getLogger(__name__)

CONFIG_ENV = "CAL_CONFIG"


class PassRequest(BaseModel):
    """Pass trigger request. Omitted switches fall back to the configuration."""
    dry_run_move: Optional[bool] = Field(None, description="Report moves only")
    dry_run_disable: Optional[bool] = Field(None, description="Report disables only")
    dry_run_delete: Optional[bool] = Field(None, description="Report deletions only")


class PassResponse(BaseModel):
    """Pass execution response."""
    pass_id: str
    started_at: str
    completed_at: Optional[str]
    success: bool
    holding_location: str
    dry_run: Dict[str, bool]
    counts: Dict[str, Dict[str, int]]
    executed: Dict[str, int]
    error_count: int
    errors: List[str]
    diagnostics: List[str]
    warnings: List[str]


class AuditResponse(BaseModel):
    """Audit record response."""
    id: str
    timestamp: str
    pass_id: str
    account_name: str
    action: str
    target: Optional[str]
    success: bool
    error_message: Optional[str]


# Global components (initialized on startup)
lifecycle_config: Optional[LifecycleConfig] = None
audit_logger: Optional[AuditLogger] = None
latest_result: Optional[PassResult] = None

# Passes must never overlap against the same directory
pass_lock = threading.Lock()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    global lifecycle_config, audit_logger

    logger.info("Initializing CAL Engine API server components")

    lifecycle_config = None
    audit_logger = None
    config_path = os.environ.get(CONFIG_ENV, "cal_config.yaml")
    try:
        lifecycle_config = load_config(config_path)
        audit_logger = AuditLogger(lifecycle_config.audit_dir)
    except ConfigurationError as e:
        logger.error(f"API started without a usable configuration: {e}")

    yield

    logger.info("Shutting down CAL Engine API server")


app = FastAPI(
    title="CAL Engine API",
    description="Computer Account Lifecycle Engine - REST API for stale machine-account passes",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": "CAL Engine API", "version": "1.0.0", "status": "running"}


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy" if lifecycle_config is not None else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": {
            "config": lifecycle_config is not None,
            "audit_logger": audit_logger is not None,
        },
        "pass_running": pass_lock.locked(),
    }


@app.post("/passes", response_model=PassResponse)
def run_pass(request: Optional[PassRequest] = None):
    """
    Run one lifecycle pass.

    Requests are serialized; a second request waits for the running pass.
    """
    global latest_result

    if lifecycle_config is None:
        raise HTTPException(status_code=503, detail="Configuration not loaded")

    request = request or PassRequest()
    configured = lifecycle_config.dry_run
    dry_run = DryRunFlags(
        move=configured.move if request.dry_run_move is None else request.dry_run_move,
        disable=configured.disable if request.dry_run_disable is None else request.dry_run_disable,
        delete=configured.delete if request.dry_run_delete is None else request.dry_run_delete,
    )
    config = lifecycle_config.model_copy(update={"dry_run": dry_run})

    with pass_lock:
        try:
            connector = create_connector(config.connector_settings(), mock=config.directory.mock_mode)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e

        try:
            result = LifecycleOrchestrator(connector, config, audit_logger=audit_logger).run_pass()
        except ConfigurationError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        except DirectoryError as e:
            raise HTTPException(status_code=502, detail=str(e)) from e
        finally:
            connector.close()

        latest_result = result

    return PassResponse(**create_pass_summary(result))


@app.get("/passes/latest")
async def get_latest_pass() -> Dict[str, Any]:
    """Return the full result of the most recent pass."""
    if latest_result is None:
        raise HTTPException(status_code=404, detail="No pass has run yet")
    return latest_result.model_dump(mode="json")


@app.get("/audit", response_model=List[AuditResponse])
async def get_audit_records(
    account: Optional[str] = Query(None, description="Filter by account name"),
    limit: int = Query(100, ge=1, le=1000),
):
    """Return recent audit records, most recent first."""
    if not audit_logger:
        raise HTTPException(status_code=503, detail="Audit logger not available")

    records = audit_logger.get_events(account_name=account, limit=limit)
    return [
        AuditResponse(
            id=record.id,
            timestamp=record.timestamp.isoformat(),
            pass_id=record.pass_id,
            account_name=record.account_name,
            action=record.action,
            target=record.target,
            success=record.success,
            error_message=record.error_message,
        )
        for record in records
    ]


def start_server(host: str = "127.0.0.1", port: int = 8000, reload: bool = False):
    """Start the FastAPI server."""
    uvicorn.run(
        "cal_engine.api.server:app",
        host=host,
        port=port,
        reload=reload,
        log_level="info"
    )


if __name__ == "__main__":
    start_server()
