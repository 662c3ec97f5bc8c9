"""Persistence for workflow run progress, polled by clients."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from genai_studio.config.logger import app_logger
from genai_studio.models.workflow_run import WorkflowRun


async def create_run(session: AsyncSession, run_id: str, workflow: str, query: str = "") -> WorkflowRun:
    run = WorkflowRun(run_id=run_id, workflow=workflow, query=query)
    session.add(run)
    await session.commit()
    await session.refresh(run)
    app_logger.info(f"Created {workflow} run {run_id}")
    return run


async def get_run(session: AsyncSession, run_id: str) -> Optional[WorkflowRun]:
    return await session.get(WorkflowRun, run_id)


async def update_run(
    session: AsyncSession,
    run_id: str,
    *,
    state: Optional[Dict[str, Any]] = None,
    progress: Optional[Dict[str, str]] = None,
    status: Optional[str] = None,
    error: Optional[str] = None,
) -> Optional[WorkflowRun]:
    """Replace the run's state, merge ``progress`` and set status/error.

    Runs that already finished are left untouched.
    """
    run = await session.get(WorkflowRun, run_id)
    if run is None:
        app_logger.error(f"No workflow run found for {run_id}")
        return None
    if run.status != "running":
        app_logger.warning(f"Ignoring update for {run.status} run {run_id}")
        return run

    if state is not None:
        run.state = json.dumps(state)
    if progress:
        merged = json.loads(run.progress or "{}")
        merged.update(progress)
        run.progress = json.dumps(merged)
    if status is not None:
        run.status = status
    if error is not None:
        run.error = error
    run.updated_at = datetime.now(timezone.utc)

    session.add(run)
    await session.commit()
    await session.refresh(run)
    return run


def serialize_run(run: WorkflowRun) -> Dict[str, Any]:
    return {
        "runId": run.run_id,
        "workflow": run.workflow,
        "status": run.status,
        "query": run.query,
        "state": json.loads(run.state or "{}"),
        "progress": json.loads(run.progress or "{}"),
        "error": run.error,
        "createdAt": run.created_at.isoformat() if run.created_at else None,
        "updatedAt": run.updated_at.isoformat() if run.updated_at else None,
    }
