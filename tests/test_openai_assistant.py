import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
from openai import APIError

from mini_assistant.core.config import DEFAULT_TEXT_MODEL, TTS_SAMPLE_RATE
from mini_assistant.core.settings import Settings
from mini_assistant.services.assistants import (
    OpenAIAssistant,
    has_image_content,
    normalize_base_url,
    should_retry_without_token_limit,
)


class Recorder:
    def __init__(self):
        self.values = []

    def render(self, text):
        self.values.append(text)


class AsyncRecorder(Recorder):
    async def render(self, text):
        self.values.append(text)


class FakePlayer:
    def __init__(self):
        self.played = []

    def play(self, pcm, sample_rate):
        self.played.append((pcm, sample_rate))


def _chunk(content):
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def _assistant(model="gpt-4o-mini", max_tokens=0, client=None, player=None):
    notices = []
    assistant = OpenAIAssistant(
        "sk",
        "https://api.openai.com/v1",
        model,
        max_tokens,
        "whisper-1",
        notices.append,
        client=client or MagicMock(),
        audio_player=player or FakePlayer(),
    )
    return assistant, notices


def test_retry_without_token_limit_succeeds_on_second_attempt():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(
        side_effect=[Exception("Unsupported parameter: 'max_tokens' is not supported"), _completion("ok")]
    )
    assistant, notices = _assistant(max_tokens=500, client=client)

    result = asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}]))

    assert result == "ok"
    assert client.chat.completions.create.await_count == 2
    first, second = client.chat.completions.create.await_args_list
    assert first.kwargs["max_tokens"] == 500
    assert "max_tokens" not in second.kwargs
    assert "max_completion_tokens" not in second.kwargs
    assert notices == []


def test_retry_happens_only_once():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(side_effect=Exception("max_tokens too large"))
    assistant, notices = _assistant(max_tokens=500, client=client)

    result = asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}]))

    assert result is None
    assert client.chat.completions.create.await_count == 2
    assert notices == ["max_tokens too large"]


def test_other_errors_are_terminal_and_reported():
    client = MagicMock()
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    client.chat.completions.create = AsyncMock(side_effect=APIError("rate limited", request, body=None))
    assistant, notices = _assistant(max_tokens=500, client=client)

    result = asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}]))

    assert result is None
    assert client.chat.completions.create.await_count == 1
    assert notices == ["OpenAI API Error: rate limited"]


def test_streaming_publishes_accumulated_text():
    async def _stream():
        yield _chunk("Hel")
        yield _chunk(None)
        yield _chunk("lo")

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_stream())
    assistant, _ = _assistant(client=client)
    target = Recorder()

    result = asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}], target))

    assert result == "Hello"
    assert target.values == ["", "Hel", "Hello"]
    assert client.chat.completions.create.await_args.kwargs["stream"] is True


def test_streaming_supports_async_render_targets():
    async def _stream():
        yield _chunk("Hi")

    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_stream())
    assistant, _ = _assistant(client=client)
    target = AsyncRecorder()

    asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}], target))

    assert target.values == ["", "Hi"]


def test_zero_max_tokens_omits_parameter():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("ok"))
    assistant, _ = _assistant(max_tokens=0, client=client)

    asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}]))

    kwargs = client.chat.completions.create.await_args.kwargs
    assert "max_tokens" not in kwargs
    assert "max_completion_tokens" not in kwargs
    assert kwargs["stream"] is False


def test_reasoning_models_use_max_completion_tokens():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("ok"))
    assistant, _ = _assistant(model="o1-mini", max_tokens=200, client=client)

    asyncio.run(assistant.text_call([{"role": "user", "content": "hi"}]))

    kwargs = client.chat.completions.create.await_args.kwargs
    assert kwargs["max_completion_tokens"] == 200
    assert "max_tokens" not in kwargs


def test_image_content_downgrades_model_for_this_call_only():
    settings = Settings(modelName="gpt-3.5-turbo")
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("ok"))
    assistant, _ = _assistant(model=settings.modelName, client=client)
    messages = [
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "What is this?"},
                {"type": "image_url", "image_url": {"url": "data:image/png;base64,AAAA"}},
            ],
        }
    ]

    asyncio.run(assistant.text_call(messages))

    assert client.chat.completions.create.await_args.kwargs["model"] == DEFAULT_TEXT_MODEL
    assert assistant.model_name == "gpt-3.5-turbo"
    assert settings.modelName == "gpt-3.5-turbo"


def test_image_capable_model_is_kept():
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=_completion("ok"))
    assistant, _ = _assistant(model="gpt-4o", client=client)

    asyncio.run(assistant.text_call([{"role": "user", "content": [{"type": "text", "text": "x"}]}]))

    assert client.chat.completions.create.await_args.kwargs["model"] == "gpt-4o"


def test_image_call_builds_parameters():
    client = MagicMock()
    client.images.generate = AsyncMock(
        return_value=SimpleNamespace(data=[SimpleNamespace(url="https://img/1"), SimpleNamespace(url="https://img/2")])
    )
    assistant, _ = _assistant(client=client)

    urls = asyncio.run(assistant.image_call("dall-e-3", "a cat", "1024x1024", 2, True))

    assert urls == ["https://img/1", "https://img/2"]
    assert client.images.generate.await_args.kwargs == {
        "model": "dall-e-3",
        "prompt": "a cat",
        "size": "1024x1024",
        "n": 2,
        "quality": "hd",
    }


def test_image_call_defaults_and_skips_hd_for_other_models():
    client = MagicMock()
    client.images.generate = AsyncMock(return_value=SimpleNamespace(data=[]))
    assistant, _ = _assistant(client=client)

    asyncio.run(assistant.image_call("", "a dog", hd=True))

    assert client.images.generate.await_args.kwargs == {"model": "gpt-image-1", "prompt": "a dog"}


def test_transcribe_passes_language_when_set():
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(return_value=SimpleNamespace(text="hello there"))
    assistant, _ = _assistant(client=client)
    upload = ("clip.webm", b"audio", "audio/webm")

    assert asyncio.run(assistant.transcribe_call(upload, " en ")) == "hello there"
    assert client.audio.transcriptions.create.await_args.kwargs == {
        "file": upload,
        "model": "whisper-1",
        "language": "en",
    }

    asyncio.run(assistant.transcribe_call(upload, ""))
    assert "language" not in client.audio.transcriptions.create.await_args.kwargs


def test_transcribe_failure_is_reported():
    client = MagicMock()
    client.audio.transcriptions.create = AsyncMock(side_effect=RuntimeError("boom"))
    assistant, notices = _assistant(client=client)

    assert asyncio.run(assistant.transcribe_call(b"x")) is None
    assert notices == ["boom"]


def test_speak_plays_pcm():
    client = MagicMock()
    client.audio.speech.create = AsyncMock(return_value=SimpleNamespace(content=b"\x00\x01\x02\x03"))
    player = FakePlayer()
    assistant, notices = _assistant(client=client, player=player)

    asyncio.run(assistant.speak_call("read me"))

    assert player.played == [(b"\x00\x01\x02\x03", TTS_SAMPLE_RATE)]
    kwargs = client.audio.speech.create.await_args.kwargs
    assert kwargs["input"] == "read me"
    assert kwargs["response_format"] == "pcm"
    assert notices == []


def test_error_classifier_reads_api_error_body():
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    error = APIError("Bad request", request, body={"param": "max_completion_tokens"})

    assert should_retry_without_token_limit(error)
    assert should_retry_without_token_limit(ValueError("MAX-TOKENS exceeded"))
    assert not should_retry_without_token_limit(ValueError("context length exceeded"))


def test_helpers():
    assert normalize_base_url(" https://x/v1/ ") == "https://x/v1"
    assert normalize_base_url("") == "https://api.openai.com/v1"
    assert has_image_content([{"role": "user", "content": ["x"]}])
    assert not has_image_content([{"role": "user", "content": "x"}])
