"""Model storing progress of long-running workflow runs."""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Text
from sqlmodel import Field, SQLModel


class WorkflowRun(SQLModel, table=True):
    """Result document for a durable workflow run, polled by clients."""

    __tablename__ = "workflow_runs"

    run_id: str = Field(primary_key=True, max_length=64)
    workflow: str = Field(max_length=100, index=True)
    status: str = Field(default="running", max_length=20, index=True)
    query: str = Field(default="", sa_column=Column(Text))
    state: str = Field(default="{}", sa_column=Column(Text), description="JSON workflow state")
    progress: str = Field(default="{}", sa_column=Column(Text), description="JSON per-stage progress")
    error: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True)),
    )
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        sa_column=Column(DateTime(timezone=True)),
    )
