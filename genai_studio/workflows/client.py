"""Inngest client shared by workflow functions and trigger endpoints."""

import inngest

from genai_studio.config.settings import settings

inngest_client = inngest.Inngest(
    app_id=settings.INNGEST_APP_ID,
    is_production=not settings.INNGEST_DEV,
)
