"""Shared fixtures: isolated settings, a local SQLite database and fake providers."""

import base64
import math
import os
import re
import tempfile
import zlib
from collections import defaultdict
from types import SimpleNamespace
from unittest.mock import patch

# Point settings at throwaway locations before the application is imported.
_TMP_DIR = tempfile.mkdtemp(prefix="genai-studio-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TMP_DIR}/test.db"
os.environ["OPENAI_API_KEY"] = ""
os.environ["PINECONE_API_KEY"] = ""
os.environ["COHERE_API_KEY"] = ""
os.environ["SERPER_API_KEY"] = ""
os.environ["INNGEST_DEV"] = "true"
os.environ["GENERATED_IMAGES_DIR"] = os.path.join(_TMP_DIR, "generated_images")
os.environ["LOGS_DIR"] = os.path.join(_TMP_DIR, "logs")

import httpx
import openai
import pytest
from fastapi.testclient import TestClient

from genai_studio.db.db import close_db, db_session, init_db
from genai_studio.main import app


def hashed_embedding(text, dim=1024):
    """Bag-of-words vector; texts sharing words point the same way."""
    vector = [0.0] * dim
    for word in re.findall(r"[a-z]+", text.lower()):
        vector[zlib.crc32(word.encode()) % dim] += 1.0
    return vector


async def fake_embed_texts(texts):
    return [hashed_embedding(text) for text in texts]


def _cosine(a, b):
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class FakeIndex:
    """In-memory stand-in for a Pinecone index handle."""

    def __init__(self):
        self.vectors = {}
        self.upsert_batches = 0

    def upsert(self, vectors):
        self.upsert_batches += 1
        for vector in vectors:
            self.vectors[vector["id"]] = vector

    def query(self, vector, top_k, include_metadata=True, filter=None):
        document_id = ((filter or {}).get("documentId") or {}).get("$eq")
        matches = [
            {"id": v["id"], "score": _cosine(vector, v["values"]), "metadata": v["metadata"]}
            for v in self.vectors.values()
            if not document_id or v["metadata"]["documentId"] == document_id
        ]
        matches.sort(key=lambda m: m["score"], reverse=True)
        return {"matches": matches[:top_k]}

    def delete(self, filter):
        document_id = filter["documentId"]["$eq"]
        self.vectors = {
            key: v for key, v in self.vectors.items()
            if v["metadata"]["documentId"] != document_id
        }

    def describe_index_stats(self):
        dimension = len(next(iter(self.vectors.values()))["values"]) if self.vectors else 0
        return {"dimension": dimension, "total_vector_count": len(self.vectors), "namespaces": {}}

    def ids_for(self, document_id):
        return sorted(k for k, v in self.vectors.items() if v["metadata"]["documentId"] == document_id)


class FakeStream:
    def __init__(self, tokens):
        self._tokens = list(tokens)

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for token in self._tokens:
            yield SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=token))])


class FakeOpenAI:
    """Records calls and replays canned chat, image and speech responses."""

    def __init__(
        self,
        tokens=("Hello", " world"),
        content="{}",
        image_bytes=b"\x89PNG fake",
        audio_bytes=b"ID3 fake",
        chat_error=None,
        chat_errors=None,
        image_errors=None,
        speech_fail_on=None,
    ):
        self.tokens = tokens
        self.content = content
        self.image_bytes = image_bytes
        self.audio_bytes = audio_bytes
        self.chat_error = chat_error
        self.chat_errors = list(chat_errors or [])
        self.image_errors = list(image_errors or [])
        self.speech_fail_on = speech_fail_on
        self.calls = defaultdict(list)
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat))
        self.images = SimpleNamespace(generate=self._image)
        self.audio = SimpleNamespace(speech=SimpleNamespace(create=self._speech))

    async def _chat(self, **kwargs):
        self.calls["chat"].append(kwargs)
        if self.chat_errors:
            raise self.chat_errors.pop(0)
        if self.chat_error is not None:
            raise self.chat_error
        if kwargs.get("stream"):
            return FakeStream(self.tokens)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    async def _image(self, **kwargs):
        self.calls["images"].append(kwargs)
        if self.image_errors:
            raise self.image_errors.pop(0)
        image = SimpleNamespace(
            b64_json=base64.b64encode(self.image_bytes).decode(),
            revised_prompt=f"revised: {kwargs['prompt']}",
        )
        return SimpleNamespace(data=[image])

    async def _speech(self, **kwargs):
        self.calls["speech"].append(kwargs)
        if self.speech_fail_on and self.speech_fail_on in kwargs["input"]:
            raise RuntimeError("speech service unavailable")
        return SimpleNamespace(content=self.audio_bytes)


def make_rate_limit_error(retry_after=None):
    headers = {"retry-after": str(retry_after)} if retry_after is not None else {}
    response = httpx.Response(
        429,
        headers=headers,
        request=httpx.Request("POST", "https://api.openai.com/v1/images/generations"),
    )
    return openai.RateLimitError("Rate limit reached", response=response, body=None)


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def rate_limit_error():
    return make_rate_limit_error


@pytest.fixture
def vector_index():
    """Route Pinecone and embedding calls to in-memory fakes."""
    index = FakeIndex()
    with patch("genai_studio.services.vector_store.get_pinecone_index", return_value=index), \
            patch("genai_studio.services.embeddings.embed_texts", new=fake_embed_texts):
        yield index


@pytest.fixture
async def session():
    await init_db()
    async with db_session() as db:
        yield db
    await close_db()


@pytest.fixture
def client(vector_index):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def captured_warnings():
    """Collect loguru WARNING+ messages emitted during a test."""
    from genai_studio.config.logger import app_logger

    messages = []
    handler_id = app_logger.add(lambda message: messages.append(message.record["message"]), level="WARNING")
    yield messages
    app_logger.remove(handler_id)
