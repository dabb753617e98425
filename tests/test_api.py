"""Test suite for the API endpoints."""

import pytest

from sanyai_chat.api.app import app, get_llm_service, get_repository
from sanyai_chat.repositories.base import RepositoryError
from sanyai_chat.repositories.memory import InMemoryRepository
from sanyai_chat.repositories.sql import SQLRepository

from conftest import FakeCompletions, make_llm_service


class BrokenRepository(InMemoryRepository):
    """Repository whose every call fails."""

    async def create_chat(self):
        raise RepositoryError("database unavailable")

    async def add_message(self, message):
        raise RepositoryError("database unavailable")

    async def get_messages(self, chat_id):
        raise RepositoryError("database unavailable")

    async def list_chats(self, limit=20):
        raise RepositoryError("database unavailable")


@pytest.mark.asyncio
async def test_health_check(client):
    """Test the root banner."""
    async with client:
        response = await client.get("/")
        assert response.status_code == 200
        assert response.text == "Sanyai API is running. Use POST /chat to interact."


@pytest.mark.asyncio
async def test_new_message_allocates_chat(client, repository):
    """Test posting without chat_id creates and persists a chat."""
    async with client:
        response = await client.post("/chat", json={"message": "Hi there"})
        assert response.status_code == 200
        data = response.json()
        assert data["response"] == "Hello there!"
        assert data["usage"]["input_tokens"] > 0
        assert data["usage"]["output_tokens"] > 0

        chats = (await client.get("/chats")).json()["chats"]
        assert [c["id"] for c in chats] == [data["chat_id"]]

        messages = (await client.get(f"/chat/{data['chat_id']}")).json()["messages"]
        assert [(m["role"], m["content"]) for m in messages] == [
            ("user", "Hi there"),
            ("assistant", "Hello there!"),
        ]
        assert all(m["chat_id"] == data["chat_id"] for m in messages)


@pytest.mark.asyncio
async def test_existing_chat_appends_and_replays_history(client, completions):
    """Test posting with an existing chat_id sends the whole history to the model."""
    async with client:
        first = (await client.post("/chat", json={"message": "My name is Ada"})).json()
        second = await client.post(
            "/chat", json={"chat_id": first["chat_id"], "message": "What is my name?"}
        )
        assert second.status_code == 200
        assert second.json()["chat_id"] == first["chat_id"]

        sent = completions.calls[-1]["messages"]
        assert sent[0]["role"] == "system"
        assert sent[1:] == [
            {"role": "user", "content": "My name is Ada"},
            {"role": "assistant", "content": "Hello there!"},
            {"role": "user", "content": "What is my name?"},
        ]

        messages = (await client.get(f"/chat/{first['chat_id']}")).json()["messages"]
        assert len(messages) == 4


@pytest.mark.asyncio
async def test_depth_selects_instruction_and_ceiling(client, completions):
    """Test the depth label controls the system prompt and max_tokens."""
    async with client:
        await client.post("/chat", json={"message": "Explain TCP", "depth": "Large"})
        call = completions.calls[-1]
        assert call["max_tokens"] == 2048
        assert "approximately 800-1000 words" in call["messages"][0]["content"]

        await client.post("/chat", json={"message": "Explain UDP", "depth": "Concise"})
        call = completions.calls[-1]
        assert call["max_tokens"] == 2048
        assert "approximately 100-150 words" in call["messages"][0]["content"]

        await client.post("/chat", json={"message": "Explain UDP", "depth": "Enormous"})
        call = completions.calls[-1]
        assert call["max_tokens"] == 2048
        assert "approximately 200-300 words" in call["messages"][0]["content"]


@pytest.mark.asyncio
async def test_web_search_appends_sources(client, completions):
    """Test webSearch routes to the search branch and lists sources."""
    async with client:
        response = await client.post(
            "/chat", json={"message": "Who won the Super Bowl 2024?", "webSearch": True}
        )
        assert response.status_code == 200
        data = response.json()

        assert data["response"] == (
            "Synthesized answer."
            "\n\n---\n### 🌐 Sources\n"
            "1. [NFL recap](https://nfl.com/recap)\n"
            "2. [ESPN](https://espn.com/story)\n"
            "3. [Source](https://nfl.com/lviii)\n"
        )
        assert data["usage"] == {"input_tokens": 120, "output_tokens": 45}

        call = completions.calls[-1]
        assert call["model"] == "moonshotai/Kimi-K2-Instruct-0905:groq"
        assert "stream" not in call
        prompt = call["messages"][1]["content"]
        assert "Who won the Super Bowl 2024?" in prompt
        assert "The Kansas City Chiefs won Super Bowl LVIII." in prompt


@pytest.mark.asyncio
async def test_missing_message_is_rejected(client):
    """Test the message field is required."""
    async with client:
        response = await client.post("/chat", json={"depth": "Short"})
        assert response.status_code == 400
        assert response.json() == {"error": "Message is required"}


@pytest.mark.asyncio
async def test_model_error_becomes_response_text(client, repository):
    """Test provider failures are reported inside the chat response."""
    failing = FakeCompletions(error=RuntimeError("connection reset"))
    app.dependency_overrides[get_llm_service] = lambda: make_llm_service(failing)
    async with client:
        response = await client.post("/chat", json={"message": "Hello"})
        assert response.status_code == 200
        assert response.json()["response"] == (
            "Error calling AI Model: connection reset. Please check your API key and connection."
        )


@pytest.mark.asyncio
async def test_without_database_uses_local_chat_id(client, completions):
    """Test running without persistence falls back to local ids and empty reads."""
    app.dependency_overrides[get_repository] = lambda: None
    async with client:
        data = (await client.post("/chat", json={"message": "Hello"})).json()
        assert data["chat_id"].startswith("local-")
        assert completions.calls[-1]["messages"][1:] == [{"role": "user", "content": "Hello"}]

        assert (await client.get(f"/chat/{data['chat_id']}")).json() == {"messages": []}
        assert (await client.get("/chats")).json() == {"chats": []}


@pytest.mark.asyncio
async def test_database_errors_degrade(client, completions):
    """Test repository failures never fail the request."""
    app.dependency_overrides[get_repository] = lambda: BrokenRepository()
    async with client:
        response = await client.post("/chat", json={"message": "Hello"})
        assert response.status_code == 200
        assert response.json()["chat_id"].startswith("local-")
        assert completions.calls[-1]["messages"][1:] == [{"role": "user", "content": "Hello"}]

        assert (await client.get("/chat/whatever")).json() == {"messages": []}
        assert (await client.get("/chats")).json() == {"chats": []}


@pytest.mark.asyncio
async def test_smart_prompt(client, completions):
    """Test prompt optimization returns issues, rewrite and token counts."""
    completions.content = '{"issues": ["Redundant phrasing"], "optimized_prompt": "Sum two numbers."}'
    async with client:
        response = await client.post(
            "/smart-prompt",
            json={"prompt": "Can you please write a function that will help me to sum two numbers?"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["issues"] == ["Redundant phrasing"]
        assert data["optimizedPrompt"] == "Sum two numbers."
        assert data["originalTokens"] > data["optimizedTokens"] > 0

        call = completions.calls[-1]
        assert call["response_format"] == {"type": "json_object"}
        assert call["max_tokens"] == 500


@pytest.mark.asyncio
async def test_smart_prompt_malformed_json_keeps_original(client, completions):
    """Test unparseable model output returns the original prompt unchanged."""
    completions.content = "Sure! Here is a better prompt: write less."
    async with client:
        response = await client.post("/smart-prompt", json={"prompt": "Write a poem"})
        assert response.status_code == 200
        data = response.json()
        assert data["optimizedPrompt"] == "Write a poem"
        assert data["issues"] == ["Could not analyze prompt structure (JSON Parse Error)"]
        assert data["originalTokens"] == data["optimizedTokens"]


@pytest.mark.asyncio
async def test_smart_prompt_errors(client):
    """Test smart prompt validation and provider failure responses."""
    failing = FakeCompletions(error=RuntimeError("rate limited"))
    async with client:
        response = await client.post("/smart-prompt", json={})
        assert response.status_code == 400
        assert response.json() == {"error": "Prompt is required"}

        app.dependency_overrides[get_llm_service] = lambda: make_llm_service(failing)
        response = await client.post("/smart-prompt", json={"prompt": "Write a poem"})
        assert response.status_code == 500
        assert response.json() == {"error": "Failed to analyze prompt"}


@pytest.mark.asyncio
async def test_metrics_endpoint(client):
    """Test Prometheus metrics are exposed."""
    async with client:
        await client.get("/chats")
        response = await client.get("/metrics")
        assert response.status_code == 200
        assert 'requests_total{endpoint="list_chats"}' in response.text


@pytest.mark.asyncio
async def test_unreachable_database_degrades(client, completions, tmp_path):
    """Test a SQL store that cannot be opened behaves like no persistence."""
    unreachable = SQLRepository(f"sqlite:///{tmp_path / 'missing' / 'chat.db'}")
    app.dependency_overrides[get_repository] = lambda: unreachable
    async with client:
        response = await client.post("/chat", json={"message": "Hello"})
        assert response.status_code == 200
        assert response.json()["chat_id"].startswith("local-")
        assert completions.calls[-1]["messages"][1:] == [{"role": "user", "content": "Hello"}]

        response = await client.get("/chats")
        assert response.status_code == 200
        assert response.json() == {"chats": []}

        response = await client.get("/chat/anything")
        assert response.status_code == 200
        assert response.json() == {"messages": []}


@pytest.mark.asyncio
async def test_malformed_bodies_are_rejected(client):
    """Test wrongly typed fields and non-object bodies get a 400 error object."""
    async with client:
        response = await client.post("/chat", json={"message": 123})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

        response = await client.post("/chat", json=["Hello"])
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}

        response = await client.post("/smart-prompt", json={"prompt": {"text": "Write a poem"}})
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid request body"}
