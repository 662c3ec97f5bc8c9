"""Models module - imports all models for SQLModel registration."""

# Import all models so SQLModel can register them
from genai_studio.models.document import Document
from genai_studio.models.conversation import Conversation, Message
from genai_studio.models.workflow_run import WorkflowRun

__all__ = [
    "Document",
    "Conversation",
    "Message",
    "WorkflowRun",
]
