"""News analysis workflow.

A supervisor picks the next stage from the run state until content is
approved: news scout, sentiment analyzer, content creator, poster generator,
moderator. Every stage is one durable step and writes its artefacts to the
run's ``WorkflowRun`` row so clients can poll progress.
"""

from __future__ import annotations

import functools
import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
import inngest

from genai_studio.config.logger import workflow_logger
from genai_studio.config.settings import settings
from genai_studio.db.db import db_session
from genai_studio.services import workflow_runs
from genai_studio.services.embeddings import get_openai_client
from genai_studio.services.image_generation import request_image
from genai_studio.utils.retry import is_rate_limit_error, retry_async, retrying
from genai_studio.workflows.client import inngest_client

NEWS_WORKFLOW = "news-analysis"
NEWS_EVENT = "news/analyze"
DEFAULT_ARTICLE_LIMIT = 5

NEWS_SCOUT = "news-scout"
SENTIMENT_ANALYZER = "sentiment-analyzer"
CONTENT_CREATOR = "content-creator"
POSTER_GENERATOR = "poster-generator"
MODERATOR = "moderator"


def initial_state(run_id: str, query: str, limit: int = DEFAULT_ARTICLE_LIMIT) -> Dict[str, Any]:
    return {
        "runId": run_id,
        "query": query,
        "limit": limit,
        "articles": [],
        "sentiments": [],
        "posts": [],
        "posters": [],
        "posterCount": 0,
        "approved": None,
        "feedback": None,
    }


def next_stage(state: Dict[str, Any]) -> Optional[str]:
    """Supervisor: the first missing artefact decides; approval ends the run."""
    if state.get("approved") is True:
        return None
    if not state.get("articles"):
        return NEWS_SCOUT
    if not state.get("sentiments"):
        return SENTIMENT_ANALYZER
    if not state.get("posts"):
        return CONTENT_CREATOR
    if not state.get("posters"):
        return POSTER_GENERATOR
    return MODERATOR


def extract_articles(response: Dict[str, Any], limit: int = DEFAULT_ARTICLE_LIMIT) -> List[Dict[str, Any]]:
    """Normalise a Serper search response into article dicts."""
    articles: List[Dict[str, Any]] = []

    graph = response.get("knowledgeGraph")
    if graph:
        articles.append(
            {
                "title": graph.get("title"),
                "link": graph.get("descriptionLink", ""),
                "summary": graph.get("description"),
                "source": graph.get("descriptionSource", "Knowledge Graph"),
                "imageUrl": graph.get("imageUrl"),
            }
        )

    for item in response.get("topStories") or []:
        articles.append(
            {
                "title": item.get("title"),
                "link": item.get("link"),
                "summary": item.get("snippet") or f"Latest news from {item.get('source')}",
                "source": item.get("source"),
                "imageUrl": item.get("imageUrl"),
            }
        )

    organic_and_news = list(response.get("organic") or [])
    if not articles and not organic_and_news:
        organic_and_news = list(response.get("news") or [])
    for item in organic_and_news:
        articles.append(
            {
                "title": item.get("title"),
                "link": item.get("link"),
                "summary": item.get("snippet"),
                "source": item.get("source"),
                "imageUrl": item.get("imageUrl"),
            }
        )

    return articles[:limit]


@retrying(max_attempts=3, retry_on=is_rate_limit_error, label="Serper search")
async def search_news(query: str, client: Optional[httpx.AsyncClient] = None) -> Dict[str, Any]:
    """POST the query to Serper and return the raw JSON body."""
    if not settings.SERPER_API_KEY:
        raise ValueError("SERPER_API_KEY must be configured")

    headers = {"X-API-KEY": settings.SERPER_API_KEY, "Content-Type": "application/json"}
    payload = {"q": query, "page": 1}

    async def call(http: httpx.AsyncClient) -> Dict[str, Any]:
        response = await http.post(settings.SERPER_URL, json=payload, headers=headers)
        response.raise_for_status()
        return response.json()

    if client is not None:
        return await call(client)
    async with httpx.AsyncClient(timeout=30.0) as owned:
        return await call(owned)


async def complete_json(system: str, user: str) -> Dict[str, Any]:
    """One JSON-mode chat completion, retried on rate limits."""
    client = get_openai_client()
    response = await retry_async(
        lambda: client.chat.completions.create(
            model=settings.OPENAI_MODEL,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            response_format={"type": "json_object"},
        ),
        max_attempts=settings.STUDIO_MAX_ATTEMPTS,
        retry_on=is_rate_limit_error,
        label="News workflow completion",
    )
    return json.loads(response.choices[0].message.content or "{}")


# Stages take the run state and return an updated copy.

async def run_news_scout(state: Dict[str, Any]) -> Dict[str, Any]:
    workflow_logger.info(f"[News Scout] Searching for: {state['query']}")
    response = await search_news(state["query"])
    articles = extract_articles(response, state.get("limit", DEFAULT_ARTICLE_LIMIT))
    if not articles:
        raise RuntimeError(f"No news found for '{state['query']}'")
    return {**state, "articles": articles}


async def run_sentiment_analyzer(state: Dict[str, Any]) -> Dict[str, Any]:
    result = await complete_json(
        "You are a sentiment analysis expert. For each article determine the sentiment "
        "(positive, negative, neutral), a score between 0 and 1 and brief reasoning. "
        'Respond as JSON: {"sentiments": [{"sentiment": "...", "score": 0.0, "reasoning": "..."}]}',
        json.dumps(state["articles"], indent=2),
    )
    sentiments = [
        s for s in result.get("sentiments", [])
        if isinstance(s, dict) and s.get("sentiment") in ("positive", "negative", "neutral")
    ]
    return {**state, "sentiments": sentiments}


async def run_content_creator(state: Dict[str, Any]) -> Dict[str, Any]:
    feedback = f"\nModerator feedback to address: {state['feedback']}" if state.get("feedback") else ""
    result = await complete_json(
        "You are a social media expert. Create engaging posts from the articles: one Twitter "
        "post (max 280 chars) and one LinkedIn post (professional, ~200 chars) per article, "
        'with relevant hashtags. Respond as JSON: {"posts": [{"type": "twitter|linkedin", '
        '"content": "...", "hashtags": ["..."]}]}',
        f"Articles: {json.dumps(state['articles'], indent=2)}\n"
        f"Sentiments: {json.dumps(state['sentiments'], indent=2)}{feedback}",
    )
    posts = [
        p for p in result.get("posts", [])
        if isinstance(p, dict) and p.get("type") in ("twitter", "linkedin") and p.get("content")
    ]
    return {**state, "posts": posts}


def poster_prompt(articles: List[Dict[str, Any]]) -> str:
    titles = "; ".join(a["title"] for a in articles[:3] if a.get("title"))
    return f"A single eye-catching, modern social media poster about: {titles}. Professional design, few words."


async def run_poster_generator(state: Dict[str, Any]) -> Dict[str, Any]:
    prompt = poster_prompt(state["articles"])
    client = get_openai_client()
    data, revised = await retry_async(
        lambda: request_image(client, prompt, "1024x1024", settings.OPENAI_IMAGE_MODEL),
        max_attempts=settings.IMAGE_MAX_ATTEMPTS,
        retry_on=is_rate_limit_error,
        label="Poster generation",
    )
    posters_dir = Path(settings.GENERATED_IMAGES_DIR) / "posters"
    posters_dir.mkdir(parents=True, exist_ok=True)
    poster_number = state.get("posterCount", 0)
    path = posters_dir / f"{state['runId']}-{poster_number}.png"
    path.write_bytes(data)
    return {
        **state,
        "posters": [{"prompt": revised or prompt, "path": str(path)}],
        "posterCount": poster_number + 1,
    }


async def run_moderator(state: Dict[str, Any]) -> Dict[str, Any]:
    result = await complete_json(
        "You are a content moderator. Check that the content is accurate, the posts are "
        'appropriate and everything is ready to publish. Respond as JSON: '
        '{"approved": true|false, "feedback": "..."}',
        f"Articles ({len(state['articles'])}): {json.dumps(state['articles'][:1], indent=2)}...\n"
        f"Posts ({len(state['posts'])}): {json.dumps(state['posts'], indent=2)}\n"
        f"Posters ({len(state['posters'])}): Generated",
    )
    approved = bool(result.get("approved"))
    feedback = result.get("feedback")
    if approved:
        return {**state, "approved": True, "feedback": feedback}
    # Rejected content is recreated on the next iterations.
    return {**state, "approved": False, "feedback": feedback, "posts": [], "posters": []}


STAGES = {
    NEWS_SCOUT: run_news_scout,
    SENTIMENT_ANALYZER: run_sentiment_analyzer,
    CONTENT_CREATOR: run_content_creator,
    POSTER_GENERATOR: run_poster_generator,
    MODERATOR: run_moderator,
}


async def record_progress(run_id: str, state: Dict[str, Any], stage: str) -> None:
    async with db_session() as session:
        await workflow_runs.update_run(session, run_id, state=state, progress={stage: "completed"})


async def execute_stage(stage: str, state: Dict[str, Any]) -> Dict[str, Any]:
    """Run one stage and persist its output."""
    updated = await STAGES[stage](state)
    await record_progress(state["runId"], updated, stage)
    workflow_logger.info(f"[{stage}] completed for run {state['runId']}")
    return updated


async def finish_run(run_id: str, state: Dict[str, Any]) -> Dict[str, Any]:
    status = "completed" if state.get("approved") else "failed"
    error = None if state.get("approved") else "Content was not approved within the iteration limit"
    async with db_session() as session:
        await workflow_runs.update_run(session, run_id, state=state, status=status, error=error)
    return {"status": status, "result": state}


async def fail_run(run_id: str, error: str) -> None:
    async with db_session() as session:
        await workflow_runs.update_run(session, run_id, status="failed", error=error)


async def run_news_pipeline(
    state: Dict[str, Any],
    max_iterations: int = settings.NEWS_MAX_ITERATIONS,
) -> Dict[str, Any]:
    """Drive the stages directly, without the durable executor."""
    for _ in range(max_iterations):
        stage = next_stage(state)
        if stage is None:
            break
        state = await execute_stage(stage, state)
    return state


@inngest_client.create_function(
    fn_id=NEWS_WORKFLOW,
    trigger=inngest.TriggerEvent(event=NEWS_EVENT),
    retries=2,
)
async def news_analysis(ctx: inngest.Context) -> Dict[str, Any]:
    data = ctx.event.data
    run_id = data["runId"]
    state = initial_state(run_id, data.get("query", ""), int(data.get("limit") or DEFAULT_ARTICLE_LIMIT))
    workflow_logger.info(f"Starting news analysis run {run_id} for: {state['query']}")

    try:
        for iteration in range(settings.NEWS_MAX_ITERATIONS):
            stage = next_stage(state)
            if stage is None:
                break
            state = await ctx.step.run(
                f"{stage}-{iteration}",
                functools.partial(execute_stage, stage, state),
            )
        return await ctx.step.run("finish", functools.partial(finish_run, run_id, state))
    except inngest.StepError as exc:
        workflow_logger.error(f"News analysis run {run_id} failed: {exc}")
        await ctx.step.run("mark-failed", functools.partial(fail_run, run_id, str(exc)))
        raise
