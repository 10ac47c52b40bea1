"""Shared fixtures for Intent Router tests."""

import json
import os

import pytest
from fastapi.testclient import TestClient

# Ensure we use test/mock settings
os.environ.setdefault("LLM_PROVIDER", "openai")
os.environ.setdefault("OPENAI_API_KEY", "test-key")
os.environ.setdefault("RETRY_JITTER_ENABLED", "false")

from privacy import extract_masked_tokens  # noqa: E402


class FakeProvider:
    """Synchronous LLM provider stub with scripted outputs."""

    def __init__(self, outputs=None, responder=None):
        self.outputs = list(outputs or [])
        self.responder = responder
        self.calls = []

    def generate(self, prompt, system=None, max_tokens=None, temperature=None):
        self.calls.append({"prompt": prompt, "system": system})
        if self.responder is not None:
            return self.responder(prompt)
        out = self.outputs.pop(0) if len(self.outputs) > 1 else self.outputs[0]
        if isinstance(out, Exception):
            raise out
        return out


class RecordingDispatcher:
    """Handler dispatcher that records what it receives."""

    def __init__(self, error=None):
        self.requests = []
        self.error = error

    async def dispatch(self, request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return f"{request.handler_name.value} handled it"


async def no_sleep(seconds):
    return None


def echo_tokens(prompt):
    """Classifier stub that routes to phishing and echoes the masked tokens it saw."""
    tokens = extract_masked_tokens(prompt)
    user = next((t for t in tokens if t.startswith("[USER-")), "")
    email = next((t for t in tokens if t.startswith("[EMAIL-")), "")
    return json.dumps({
        "agent": "phishingEmailAssistant",
        "taskContext": f"Send a phishing simulation to {user} at {email}",
        "reasoning": "User asked for a phishing email",
    })


POLICY_DECISION = '{"agent": "policySummaryAssistant", "taskContext": "", "reasoning": "policy question"}'


@pytest.fixture
def make_provider():
    return FakeProvider


@pytest.fixture
def fake_provider():
    return FakeProvider(outputs=[POLICY_DECISION])


@pytest.fixture
def echo_provider():
    return FakeProvider(responder=echo_tokens)


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def make_orchestrator():
    """Build an orchestrator around a classifier provider and dispatcher."""
    from llm.classifier import IntentClassifierAdapter
    from llm.orchestrator import ChatOrchestrator
    from llm.router import IntentRouter

    def _make(provider, dispatcher, **kwargs):
        classifier = IntentClassifierAdapter(provider, sleep=no_sleep, timeout_seconds=5.0)
        return ChatOrchestrator(router=IntentRouter(classifier), dispatcher=dispatcher, **kwargs)

    return _make


@pytest.fixture
def services(monkeypatch, echo_provider, dispatcher):
    """Initialized services wired to fakes, installed as the global instance."""
    from api import services as services_module
    from config.settings import Settings

    svc = services_module.Services()
    svc.initialize(settings=Settings(), classifier_provider=echo_provider, dispatcher=dispatcher)
    monkeypatch.setattr(services_module, "_services", svc)
    return svc


@pytest.fixture
def client(services):
    """Create a FastAPI test client."""
    from api.main import app
    return TestClient(app)
