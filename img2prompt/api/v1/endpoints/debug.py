import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter

from img2prompt.core.config import settings
from img2prompt.services.workflow_client import WorkflowClient

router = APIRouter()
logger = logging.getLogger(__name__)


def environment_summary() -> Dict[str, Any]:
    """Describe the upstream configuration without exposing secrets."""
    workflow_id = settings.COZE_WORKFLOW_ID
    return {
        "hasCozeToken": settings.has_api_token,
        "cozeTokenLength": len(settings.COZE_API_TOKEN or ""),
        "hasWorkflowId": bool(workflow_id),
        "workflowId": f"{workflow_id[:10]}..." if workflow_id else "not set",
        "hasAppUrl": bool(settings.APP_URL),
        "appUrl": settings.APP_URL or "not set",
        "taskStoreBackend": settings.TASK_STORE_BACKEND,
        "taskExecutionMode": settings.TASK_EXECUTION_MODE,
    }


@router.get("")
def debug_info() -> Dict[str, Any]:
    """
    Report configuration status and whether the upstream is reachable.
    """
    env = environment_summary()
    logger.info("Environment check: %s", env)

    if settings.has_api_token:
        client = WorkflowClient(
            api_token=settings.COZE_API_TOKEN,
            workflow_id=settings.COZE_WORKFLOW_ID or "",
            base_url=settings.COZE_API_BASE,
            timeout=settings.UPSTREAM_TIMEOUT_SECONDS,
        )
        with client:
            upstream = client.check_connectivity()
    else:
        upstream = {"available": False, "error": "COZE_API_TOKEN not configured"}

    return {
        "success": True,
        "environment": env,
        "cozeApi": upstream,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
