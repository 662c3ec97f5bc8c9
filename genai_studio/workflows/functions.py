"""Durable workflow functions served at ``/api/inngest``.

Step bodies are plain functions so they can be exercised without the Inngest
executor; the registered handlers only wire them into ``ctx.step``.
"""

from __future__ import annotations

import asyncio
import functools
import random
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import inngest

from genai_studio.config.logger import workflow_logger
from genai_studio.workflows.client import inngest_client


class WorkflowError(ValueError):
    """Raised when an event is missing data a workflow needs."""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _require(data: Dict[str, Any], key: str) -> Any:
    value = data.get(key)
    if value in (None, "", []):
        raise WorkflowError(f"Event data is missing '{key}'")
    return value


# Step bodies

def say_hello(name: str) -> Dict[str, str]:
    workflow_logger.info(f"Hello, {name}!")
    return {"message": f"Hello, {name}!", "timestamp": _now()}


async def fetch_data() -> Dict[str, List[str]]:
    workflow_logger.info("Fetching data...")
    await asyncio.sleep(1)
    return {"users": ["Alice", "Bob", "Charlie"]}


def transform_data(raw: Dict[str, List[str]]) -> List[Dict[str, str]]:
    return [{"name": user, "email": f"{user.lower()}@example.com"} for user in raw["users"]]


async def save_data(rows: List[Dict[str, str]]) -> Dict[str, Any]:
    workflow_logger.info("Saving data...")
    await asyncio.sleep(0.5)
    return {"saved": len(rows), "data": rows}


def fetch_api(url: str, failure_rate: float = 0.7) -> Dict[str, str]:
    """Simulated flaky upstream; failures are retried by the platform."""
    workflow_logger.info(f"Fetching from {url}...")
    if random.random() < failure_rate:
        raise RuntimeError("API temporarily unavailable")
    return {"url": url, "data": "Success!"}


def process_request(request_id: str, action: str) -> Dict[str, str]:
    workflow_logger.info(f"Processing request: {action}")
    return {"requestId": request_id, "action": action, "status": "pending_approval"}


def resolve_approval(request_id: str, action: str, approval: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Outcome of an approval wait; ``approval`` is the approval event's data or None."""
    if approval is None:
        return {
            "requestId": request_id,
            "status": "timeout",
            "message": "Approval not received within 1 hour",
        }
    if approval.get("approved"):
        workflow_logger.info(f"Executing approved action: {action}")
        return {"requestId": request_id, "status": "completed", "action": action}
    return {"requestId": request_id, "status": "rejected", "reason": approval.get("reason")}


def send_reminder(message: str, delay_minutes: float) -> Dict[str, Any]:
    workflow_logger.info(f"Reminder: {message}")
    return {"message": message, "sentAt": _now(), "originalDelay": delay_minutes}


async def send_email(email: str) -> Dict[str, str]:
    workflow_logger.info(f"Sending email to {email}...")
    await asyncio.sleep(0.2)
    return {"email": email, "status": "sent", "timestamp": _now()}


def generate_report(rng: Optional[random.Random] = None) -> Dict[str, Any]:
    rng = rng or random.Random()
    now = datetime.now(timezone.utc)
    workflow_logger.info(f"Generating daily report at {now.isoformat()}")
    return {
        "date": now.date().isoformat(),
        "metrics": {"users": rng.randrange(1000), "revenue": rng.randrange(10000)},
        "generatedAt": now.isoformat(),
    }


# Registered functions

@inngest_client.create_function(
    fn_id="simple-greeter",
    trigger=inngest.TriggerEvent(event="greet/user"),
)
async def simple_greeter(ctx: inngest.Context) -> Dict[str, str]:
    name = _require(ctx.event.data, "name")
    return await ctx.step.run("say-hello", functools.partial(say_hello, name))


@inngest_client.create_function(
    fn_id="data-processor",
    trigger=inngest.TriggerEvent(event="data/process"),
)
async def data_processor(ctx: inngest.Context) -> Dict[str, Any]:
    raw = await ctx.step.run("fetch-data", fetch_data)
    rows = await ctx.step.run("transform-data", functools.partial(transform_data, raw))
    return await ctx.step.run("save-data", functools.partial(save_data, rows))


@inngest_client.create_function(
    fn_id="api-fetcher",
    trigger=inngest.TriggerEvent(event="api/fetch"),
    retries=4,
)
async def api_fetcher(ctx: inngest.Context) -> Dict[str, str]:
    url = _require(ctx.event.data, "url")
    return await ctx.step.run("fetch-api", functools.partial(fetch_api, url))


@inngest_client.create_function(
    fn_id="approval-workflow",
    trigger=inngest.TriggerEvent(event="workflow/start"),
)
async def approval_workflow(ctx: inngest.Context) -> Dict[str, Any]:
    request_id = _require(ctx.event.data, "requestId")
    action = ctx.event.data.get("action", "")

    await ctx.step.run("process-request", functools.partial(process_request, request_id, action))

    approval = await ctx.step.wait_for_event(
        "wait-for-approval",
        event="workflow/approval",
        if_exp="async.data.requestId == event.data.requestId",
        timeout=timedelta(hours=1),
    )
    approval_data = dict(approval.data) if approval is not None else None
    return await ctx.step.run(
        "execute-action",
        functools.partial(resolve_approval, request_id, action, approval_data),
    )


@inngest_client.create_function(
    fn_id="reminder",
    trigger=inngest.TriggerEvent(event="reminder/schedule"),
)
async def reminder(ctx: inngest.Context) -> Dict[str, Any]:
    message = _require(ctx.event.data, "message")
    delay_minutes = float(ctx.event.data.get("delayMinutes", 1))

    await ctx.step.sleep("wait-for-reminder", timedelta(minutes=delay_minutes))
    return await ctx.step.run("send-reminder", functools.partial(send_reminder, message, delay_minutes))


@inngest_client.create_function(
    fn_id="email-sender",
    trigger=inngest.TriggerEvent(event="email/send"),
)
async def email_sender(ctx: inngest.Context) -> Dict[str, Any]:
    emails = _require(ctx.event.data, "emails")
    results = []
    for i, email in enumerate(emails):
        results.append(await ctx.step.run(f"send-email-{email}", functools.partial(send_email, email)))
        if i < len(emails) - 1:
            await ctx.step.sleep(f"rate-limit-delay-{i}", timedelta(seconds=2))
    return {"sent": len(results), "results": results}


@inngest_client.create_function(
    fn_id="daily-report",
    trigger=inngest.TriggerCron(cron="0 9 * * *"),
)
async def daily_report(ctx: inngest.Context) -> Dict[str, Any]:
    return await ctx.step.run("generate-report", generate_report)
