# tests/conftest.py
import json
from typing import Callable, List

import httpx
import pytest

from zhenghe.services.chat import DeepSeekService

API_KEY = "sk-test"
BASE_URL = "https://api.test"


class Recorder:
    """Collects every request the mock transport receives."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []

    def body(self, i: int = -1) -> dict:
        return json.loads(self.requests[i].content)


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_service(recorder) -> Callable[..., DeepSeekService]:
    """Build a service whose HTTP calls are answered by `handler`."""
    services = []

    def _make(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> DeepSeekService:
        def _record(request: httpx.Request) -> httpx.Response:
            recorder.requests.append(request)
            return handler(request)

        svc = DeepSeekService(API_KEY, BASE_URL, transport=httpx.MockTransport(_record), **kwargs)
        services.append(svc)
        return svc

    yield _make
    for svc in services:
        svc.close()


def chat_reply(content, role="assistant", **extra) -> dict:
    payload = {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "deepseek-chat",
        "choices": [
            {"finish_reason": "stop", "index": 0, "message": {"role": role, "content": content}}
        ],
        "usage": {"completion_tokens": 3, "prompt_tokens": 9, "total_tokens": 12},
    }
    payload.update(extra)
    return payload
