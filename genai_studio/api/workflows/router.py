"""Workflow trigger endpoints and run status polling."""

from typing import Any, Dict
from uuid import uuid4

import inngest
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.api.workflows.schemas import (
    NewsAnalysisRequest,
    NewsAnalysisResponse,
    TriggerRequest,
    TriggerResponse,
)
from genai_studio.config.logger import app_logger
from genai_studio.db.db import get_session
from genai_studio.services import workflow_runs
from genai_studio.utils.responses import SuccessResponse, success_response
from genai_studio.workflows.client import inngest_client
from genai_studio.workflows.news import NEWS_EVENT, NEWS_WORKFLOW

router = APIRouter(prefix="/v1/workflows", tags=["workflows"])


@router.post(
    "/trigger",
    response_model=SuccessResponse[TriggerResponse],
    summary="Send an event to the workflow platform",
)
async def trigger_workflow(request: TriggerRequest) -> SuccessResponse[TriggerResponse]:
    if not request.event:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event name is required")

    try:
        event_ids = await inngest_client.send(inngest.Event(name=request.event, data=request.data))
    except Exception as exc:
        app_logger.error(f"Failed to send event {request.event}: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to send event {request.event}",
        )

    return success_response(
        data=TriggerResponse(event=request.event, event_ids=list(event_ids or [])),
        message=f"Event {request.event} sent to Inngest",
    )


@router.post(
    "/news",
    response_model=SuccessResponse[NewsAnalysisResponse],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a news analysis run",
)
async def start_news_analysis(
    request: NewsAnalysisRequest,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[NewsAnalysisResponse]:
    """Create a run record and hand the work to the durable workflow.

    Poll ``GET /v1/workflows/runs/{run_id}`` for progress.
    """
    run_id = str(uuid4())
    await workflow_runs.create_run(session, run_id, NEWS_WORKFLOW, request.query)

    try:
        await inngest_client.send(
            inngest.Event(
                name=NEWS_EVENT,
                data={"runId": run_id, "query": request.query, "limit": request.limit},
            )
        )
    except Exception as exc:
        app_logger.error(f"Failed to start news analysis {run_id}: {exc}")
        await workflow_runs.update_run(session, run_id, status="failed", error=str(exc))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to start news analysis",
        )

    return success_response(
        data=NewsAnalysisResponse(run_id=run_id, status="running"),
        message="News analysis started",
    )


@router.get(
    "/runs/{run_id}",
    response_model=SuccessResponse[Dict[str, Any]],
    summary="Get a workflow run's status, state and progress",
)
async def get_workflow_run(
    run_id: str,
    session: AsyncSession = Depends(get_session),
) -> SuccessResponse[Dict[str, Any]]:
    run = await workflow_runs.get_run(session, run_id)
    if run is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Workflow run not found")
    return success_response(data=workflow_runs.serialize_run(run), message="Workflow run retrieved successfully")
