#!/usr/bin/env python3
"""
HTTP trigger endpoints.

The batch endpoint is called on a fixed interval by external scheduler
infrastructure; every monitoring endpoint requires the shared secret in an
"Authorization: Bearer <secret>" header.
"""

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from core.container import Container, get_container
from core.exceptions import (
    MonitorError, ErrorRecovery, ScanEngineError,
    ScheduleNotFoundError, AlertNotFoundError
)
from core.analysis.trends import since_for_range

logger = logging.getLogger(__name__)

router = APIRouter()


class ResolveAlertRequest(BaseModel):
    """Body of an alert resolution."""
    resolved_by: Optional[str] = Field(None, description="Who resolved the alert")


def get_services(request: Request) -> Container:
    return request.app.state.container


def require_cron_secret(request: Request, authorization: Optional[str] = Header(None)) -> None:
    """Reject requests without the shared secret."""
    secret = request.app.state.cron_secret
    if not secret:
        logger.error("CRON_SECRET is not configured; rejecting trigger request")
        raise HTTPException(status_code=401, detail="Unauthorized")

    expected = f"Bearer {secret}"
    if not authorization or not hmac.compare_digest(authorization, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.get("/health", tags=["Health"])
def health(services: Container = Depends(get_services)):
    """Liveness plus database connectivity."""
    database = services.get('database')
    db_health = database.health_check()
    connected = db_health.get('connected', False)
    return JSONResponse(
        status_code=200 if connected else 503,
        content={
            'status': 'healthy' if connected else 'degraded',
            'database': 'connected' if connected else 'unavailable',
        }
    )


@router.post("/api/cron/monitoring", tags=["Monitoring"], dependencies=[Depends(require_cron_secret)])
def run_monitoring_batch(services: Container = Depends(get_services)):
    """Process one batch of due schedules."""
    runner = services.get('runner')
    summary = runner.run_batch()
    return summary.to_dict()


@router.post("/api/schedules/{schedule_id}/scan", tags=["Monitoring"],
             dependencies=[Depends(require_cron_secret)])
def trigger_scan(schedule_id: str, services: Container = Depends(get_services)):
    """Run an immediate scan for one schedule."""
    runner = services.get('runner')
    outcome = runner.trigger_manual(schedule_id)
    return outcome.to_dict()


@router.get("/api/schedules/{schedule_id}/trends", tags=["Trends"],
            dependencies=[Depends(require_cron_secret)])
def schedule_trends(schedule_id: str,
                    time_range: str = Query('30d', description="7d, 30d or 90d"),
                    services: Container = Depends(get_services)):
    """Trend insights and forecast for one schedule."""
    database = services.get('database')
    if database.get_schedule(schedule_id) is None:
        raise ScheduleNotFoundError(schedule_id)

    analyzer = services.get('trend_analyzer')
    results = database.get_scan_results(schedule_id, since=since_for_range(time_range))
    report = analyzer.analyze(results).to_dict()
    report['statistics'] = analyzer.schedule_statistics(results)
    return report


@router.get("/api/alerts", tags=["Alerts"], dependencies=[Depends(require_cron_secret)])
def list_alerts(entity_id: Optional[str] = None,
                unresolved_only: bool = False,
                limit: int = Query(100, ge=1, le=1000),
                services: Container = Depends(get_services)):
    alerts = services.get('alert_engine').list_alerts(entity_id, unresolved_only, limit)
    return {'alerts': [alert.to_dict() for alert in alerts], 'count': len(alerts)}


@router.get("/api/alerts/summary", tags=["Alerts"], dependencies=[Depends(require_cron_secret)])
def alert_summary(entity_id: Optional[str] = None, services: Container = Depends(get_services)):
    return services.get('alert_engine').summary(entity_id)


@router.post("/api/alerts/{alert_id}/resolve", tags=["Alerts"],
             dependencies=[Depends(require_cron_secret)])
def resolve_alert(alert_id: str, body: Optional[ResolveAlertRequest] = None,
                  services: Container = Depends(get_services)):
    resolved_by = body.resolved_by if body else None
    alert = services.get('alert_engine').resolve(alert_id, resolved_by)
    return alert.to_dict()


def _status_for(error: MonitorError) -> int:
    if isinstance(error, (ScheduleNotFoundError, AlertNotFoundError)):
        return 404
    if ErrorRecovery.is_client_error(error):
        return 400
    if isinstance(error, ScanEngineError):
        return 502
    return 500


def create_app(container: Optional[Container] = None, cron_secret: Optional[str] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        container: Service container (defaults to the global one)
        cron_secret: Shared secret (defaults to CRON_SECRET from config)
    """
    container = container or get_container()
    if cron_secret is None and container.has('config'):
        cron_secret = container.get('config').monitoring.cron_secret

    app = FastAPI(
        title="Accessibility Monitor",
        description="Scheduled accessibility scans, regression alerts and trends",
        version="1.0.0",
    )
    app.state.container = container
    app.state.cron_secret = cron_secret

    @app.exception_handler(MonitorError)
    async def monitor_error_handler(request: Request, exc: MonitorError):
        status_code = _status_for(exc)
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(status_code=status_code, content={'error': exc.to_dict()})

    app.include_router(router)
    return app
