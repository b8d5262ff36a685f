"""Tests for the chat assistant and its endpoint."""
from unittest.mock import AsyncMock

import httpx
import pytest

from coincoach.api.deps import get_chat_limiter
from coincoach.core.exceptions import ConfigurationError, InvalidRequest
from coincoach.core.rate_limiting import FixedWindowRateLimiter
from coincoach.models.chat import ChatMessage, ChatRequest, SimulatorSession
from coincoach.services.chat import (
    ACKNOWLEDGEMENT,
    EDUCATOR_PROMPT,
    ChatAssistant,
    build_contents,
    get_chat_assistant,
    sanitize_message,
)
from tests.conftest import GeminiStub


class TestSanitize:
    def test_strips_script_and_javascript_scheme(self):
        cleaned = sanitize_message("Hi <script>alert(1)</script> javascript:void(0) there", 2000)
        assert cleaned == "Hi  void(0) there"

    def test_trims_whitespace(self):
        assert sanitize_message("  what is a wallet?  ", 2000) == "what is a wallet?"

    @pytest.mark.parametrize("message", [None, "", 42, ["hi"]])
    def test_missing_or_not_string(self, message):
        with pytest.raises(InvalidRequest) as exc_info:
            sanitize_message(message, 2000)
        assert exc_info.value.message == "Message is required and must be a string"

    def test_too_long(self):
        with pytest.raises(InvalidRequest) as exc_info:
            sanitize_message("x" * 2001, 2000)
        assert exc_info.value.message == "Message too long. Maximum 2000 characters allowed."

    def test_exactly_max_length_is_allowed(self):
        assert sanitize_message("x" * 2000, 2000) == "x" * 2000

    def test_empty_after_cleaning(self):
        with pytest.raises(InvalidRequest) as exc_info:
            sanitize_message("<script>x</script>   ", 2000)
        assert exc_info.value.message == "Message cannot be empty"


class TestBuildContents:
    def test_first_turn_gets_educator_prompt(self):
        contents = build_contents("What is DeFi?", None, [])

        assert [c["role"] for c in contents] == ["user", "model", "user"]
        assert contents[0]["parts"][0]["text"] == EDUCATOR_PROMPT
        assert contents[1]["parts"][0]["text"] == ACKNOWLEDGEMENT
        assert contents[2]["parts"][0]["text"] == "What is DeFi?"

    def test_first_turn_in_simulator_gets_session_prompt(self):
        session = SimulatorSession(is_playing=True, current_price=67000, balance=1234.5, holdings=0.25, roi=3.14159)

        contents = build_contents("Should I sell?", session, [])

        prompt = contents[0]["parts"][0]["text"]
        assert "Current BTC Price: $67,000" in prompt
        assert "Cash Balance: $1234.50" in prompt
        assert "BTC Holdings: 0.2500 BTC" in prompt
        assert "ROI: 3.14%" in prompt
        assert "Trading Status: Active" in prompt

    def test_history_replaces_system_prompt_and_is_capped(self):
        history = [
            ChatMessage(type="user" if i % 2 == 0 else "assistant", content=f"message {i}")
            for i in range(14)
        ]

        contents = build_contents("next", None, history)

        assert len(contents) == 11
        assert contents[0]["parts"][0]["text"] == "message 4"
        assert contents[0]["role"] == "user"
        assert contents[1]["role"] == "model"
        assert contents[-1] == {"role": "user", "parts": [{"text": "next"}]}

    def test_blank_history_entries_are_dropped(self):
        history = [ChatMessage(type="user", content="hi"), ChatMessage(type="assistant", content="")]

        contents = build_contents("again", None, history)

        assert [c["parts"][0]["text"] for c in contents] == ["hi", "again"]


class TestChatAssistant:
    @pytest.mark.asyncio
    async def test_reply(self):
        stub = GeminiStub(["Blockchains are shared ledgers."])
        assistant = ChatAssistant(stub.client())

        reply = await assistant.reply(ChatRequest(message="What is a blockchain?"))

        assert reply == "Blockchains are shared ledgers."
        assert stub.last_payload()["generationConfig"]["maxOutputTokens"] == 8000

    @pytest.mark.asyncio
    async def test_no_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            await ChatAssistant(GeminiStub().client(api_key="")).reply(ChatRequest(message="hi"))
        assert exc_info.value.message == "API key not configured"


def chat_with(app, stub: GeminiStub, limit: int = 20) -> FixedWindowRateLimiter:
    limiter = FixedWindowRateLimiter(max_requests=limit, window_seconds=60)
    app.dependency_overrides[get_chat_assistant] = lambda: ChatAssistant(stub.client())
    app.dependency_overrides[get_chat_limiter] = lambda: limiter
    return limiter


class TestChatRoute:
    def test_reply(self, app, client):
        chat_with(app, GeminiStub(["Hello!"]))

        response = client.post("/api/v1/chat", json={"message": "hi", "conversationHistory": []})

        assert response.status_code == 200
        assert response.json() == {"response": "Hello!"}

    def test_session_data_reaches_assistant(self, app, client):
        assistant = AsyncMock(spec=ChatAssistant)
        assistant.reply.return_value = "Consider taking some profit."
        app.dependency_overrides[get_chat_assistant] = lambda: assistant
        app.dependency_overrides[get_chat_limiter] = lambda: FixedWindowRateLimiter(max_requests=20)

        response = client.post("/api/v1/chat", json={
            "message": "How am I doing?",
            "sessionData": {"isPlaying": True, "currentPrice": 67000, "roi": 12.5, "trades": []},
        })

        assert response.json() == {"response": "Consider taking some profit."}
        request = assistant.reply.await_args.args[0]
        assert request.session_data.is_playing is True
        assert request.session_data.roi == 12.5

    def test_missing_message_is_400(self, app, client):
        stub = GeminiStub()
        chat_with(app, stub)

        response = client.post("/api/v1/chat", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Message is required and must be a string"}
        assert stub.calls == 0

    def test_too_long_is_400(self, app, client):
        chat_with(app, GeminiStub())

        response = client.post("/api/v1/chat", json={"message": "x" * 2001})

        assert response.status_code == 400
        assert response.json() == {"error": "Message too long. Maximum 2000 characters allowed."}

    def test_upstream_status_passes_through(self, app, client):
        chat_with(app, GeminiStub([httpx.Response(429, json={"error": {"message": "Resource exhausted"}})]))

        response = client.post("/api/v1/chat", json={"message": "hi"})

        assert response.status_code == 429
        assert response.json() == {"error": "Gemini API error: Resource exhausted"}

    def test_missing_key_is_500(self, app, client):
        app.dependency_overrides[get_chat_assistant] = lambda: ChatAssistant(GeminiStub().client(api_key=""))
        app.dependency_overrides[get_chat_limiter] = lambda: FixedWindowRateLimiter(max_requests=20)

        response = client.post("/api/v1/chat", json={"message": "hi"})

        assert response.status_code == 500
        assert response.json() == {"error": "API key not configured"}

    def test_twenty_first_request_is_rate_limited(self, app, client):
        chat_with(app, GeminiStub(["ok"] * 20))

        statuses = [client.post("/api/v1/chat", json={"message": "hi"}).status_code for _ in range(20)]
        response = client.post("/api/v1/chat", json={"message": "hi"})

        assert statuses == [200] * 20
        assert response.status_code == 429
        assert response.json() == {"error": "Too many requests. Please wait a moment before trying again."}
        assert response.headers["Retry-After"] == "60"
        assert response.headers["X-RateLimit-Remaining"] == "0"

    def test_rejected_requests_count_against_the_window(self, app, client):
        chat_with(app, GeminiStub(), limit=2)

        client.post("/api/v1/chat", json={"message": ""})
        client.post("/api/v1/chat", json={"message": ""})

        assert client.post("/api/v1/chat", json={"message": "hi"}).status_code == 429
