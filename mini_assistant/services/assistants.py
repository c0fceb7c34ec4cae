# File: mini_assistant/services/assistants.py
# Project: Mini Assistant Sidecar
# Description: OpenAI-compatible and Anthropic assistants sharing one capability surface
# (chat completion, image generation, transcription, text-to-speech).

# Copyright (C) 2025 Tencent. All rights reserved.
# License: Licensed under the License Terms of Youtu-Tip (see license at repository root).
# Warranty: Provided on an "AS IS" basis, without warranties or conditions of any kind.
# Modifications must retain this notice.

from __future__ import annotations

import asyncio
import inspect
import json
import math
import re
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Literal, Optional, Protocol, Sequence

import httpx
import structlog
from openai import APIError, AsyncOpenAI

from ..core.config import (
    ANTHROPIC_VERSION,
    DEFAULT_ANTHROPIC_BASE_URL,
    DEFAULT_ANTHROPIC_MAX_TOKENS,
    DEFAULT_ANTHROPIC_MODEL,
    DEFAULT_API_BASE_URL,
    DEFAULT_IMAGE_MODEL,
    DEFAULT_SPEECH_MODEL,
    DEFAULT_TEXT_MODEL,
    HD_IMAGE_MODEL,
    HTTP_TIMEOUT_SECONDS,
    OAI_IMAGE_CAPABLE_MODELS,
    TTS_MODEL,
    TTS_SAMPLE_RATE,
    TTS_VOICE,
)
from .audio import AudioPlayer, SoundDevicePlayer
from .notices import NotifyFunc

logger = structlog.get_logger(__name__)

ProviderFamily = Literal['openai_compatible', 'anthropic']
Message = Dict[str, Any]

# 推理模型需要 max_completion_tokens，命名上以 o1/o2/o4 区分。
REASONING_MODEL_PATTERN = re.compile(r'o[124]')
TOKEN_LIMIT_ERROR_PATTERN = re.compile(r'max[_-]?tokens|max_completion_tokens', re.IGNORECASE)

ANTHROPIC_IMAGE_UNSUPPORTED = (
    "Image generation is unavailable for Anthropic's Messages API. "
    'Switch to an OpenAI-compatible gateway if you need this feature.'
)
ANTHROPIC_TRANSCRIBE_UNSUPPORTED = 'Speech-to-text requires an OpenAI-compatible endpoint.'
ANTHROPIC_SPEAK_UNSUPPORTED = "Text-to-speech is not supported for Anthropic's Messages API."


class RenderTarget(Protocol):
    """Anything the host streams text into; ``render`` may be sync or async."""

    def render(self, text: str) -> Any:
        ...


def normalize_base_url(base_url: Optional[str], default: str = DEFAULT_API_BASE_URL) -> str:
    # trim 后为空则回退默认地址，再去掉末尾的单个斜杠。
    trimmed = (base_url or '').strip()
    normalized = trimmed or default
    return normalized[:-1] if normalized.endswith('/') else normalized


def should_retry_without_token_limit(exc: BaseException) -> bool:
    """Tell whether a provider error complains about the token-limit parameter.

    Depends on upstream error wording: message, code and JSON body are searched
    for ``max_tokens``/``max_completion_tokens``.
    """
    parts: List[str] = []
    if isinstance(exc, APIError):
        if exc.message:
            parts.append(exc.message)
        code = getattr(exc, 'code', None)
        if code:
            parts.append(str(code))
        if exc.body is not None and not isinstance(exc.body, str):
            try:
                parts.append(json.dumps(exc.body))
            except (TypeError, ValueError):
                parts.append(str(exc.body))
        elif exc.body:
            parts.append(exc.body)
    else:
        parts.append(str(exc))
    return bool(TOKEN_LIMIT_ERROR_PATTERN.search(' '.join(parts)))


def has_image_content(messages: Sequence[Message]) -> bool:
    # content 为列表即视为多模态（含图片）消息。
    return any(isinstance(message.get('content'), (list, tuple)) for message in messages)


async def _publish(target: RenderTarget, text: str) -> None:
    result = target.render(text)
    if inspect.isawaitable(result):
        await result


class BaseAssistant(ABC):
    provider: ClassVar[ProviderFamily]

    def __init__(self, api_key: str, base_url: str, model_name: str, max_tokens: int, notify: NotifyFunc) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.model_name = model_name
        self.max_tokens = max_tokens
        self._notify = notify

    @abstractmethod
    async def text_call(
        self,
        messages: Sequence[Message],
        render_target: Optional[RenderTarget] = None,
    ) -> Optional[str]:
        """Run a chat completion; streams into ``render_target`` when one is given."""

    @abstractmethod
    async def image_call(
        self,
        model: str,
        prompt: str,
        size: str = '',
        count: int = 1,
        hd: bool = False,
    ) -> Optional[List[str]]:
        ...

    @abstractmethod
    async def transcribe_call(self, audio: Any, language: str = '') -> Optional[str]:
        ...

    @abstractmethod
    async def speak_call(self, text: str) -> None:
        ...

    async def aclose(self) -> None:
        """Release pooled connections; assistants without a long-lived client hold none."""

    def __repr__(self) -> str:
        return f'{type(self).__name__}(base_url={self.base_url!r}, model={self.model_name!r})'


class OpenAIAssistant(BaseAssistant):
    provider = 'openai_compatible'

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model_name: str,
        max_tokens: int,
        speech_model_name: str,
        notify: NotifyFunc,
        *,
        client: Optional[AsyncOpenAI] = None,
        audio_player: Optional[AudioPlayer] = None,
    ) -> None:
        super().__init__(
            api_key,
            normalize_base_url(base_url),
            model_name or DEFAULT_TEXT_MODEL,
            max_tokens,
            notify,
        )
        self.speech_model_name = speech_model_name or DEFAULT_SPEECH_MODEL
        # 只关闭自己创建的客户端，外部注入的由调用方管理。
        self._owns_client = client is None
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=self.base_url, timeout=HTTP_TIMEOUT_SECONDS)
        self._audio_player = audio_player or SoundDevicePlayer()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.close()

    def _display_error(self, exc: BaseException) -> None:
        if isinstance(exc, APIError):
            self._notify(f'OpenAI API Error: {exc}')
        else:
            self._notify(str(exc))

    def _includes_token_limit(self) -> bool:
        value = self.max_tokens
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return False
        return math.isfinite(value) and value > 0

    def _select_model(self, messages: Sequence[Message]) -> str:
        model = self.model_name
        if has_image_content(messages) and model not in OAI_IMAGE_CAPABLE_MODELS:
            # 仅本次调用降级，不改动保存的设置。
            logger.info('assistant.model_downgraded', requested=model, model=DEFAULT_TEXT_MODEL)
            return DEFAULT_TEXT_MODEL
        return model

    def _build_request(self, messages: Sequence[Message], model: str, stream: bool, omit_token_limit: bool) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            'messages': list(messages),
            'model': model,
            'stream': stream,
        }
        if self._includes_token_limit() and not omit_token_limit:
            if REASONING_MODEL_PATTERN.search(model):
                params['max_completion_tokens'] = self.max_tokens
            else:
                params['max_tokens'] = self.max_tokens
        return params

    async def _send(
        self,
        messages: Sequence[Message],
        model: str,
        render_target: Optional[RenderTarget],
        omit_token_limit: bool,
    ) -> Optional[str]:
        stream = render_target is not None
        if render_target is not None:
            await _publish(render_target, '')
        params = self._build_request(messages, model, stream, omit_token_limit)
        response = await self._client.chat.completions.create(**params)
        if render_target is None:
            choices = getattr(response, 'choices', None) or []
            if not choices:
                return None
            return choices[0].message.content
        # 每个分片都追加到累积文本，再整体写回渲染目标。
        accumulated = ''
        async for chunk in response:
            choices = getattr(chunk, 'choices', None) or []
            if not choices:
                continue
            fragment = getattr(choices[0].delta, 'content', None)
            if fragment:
                accumulated += fragment
                await _publish(render_target, accumulated)
        return accumulated

    async def text_call(
        self,
        messages: Sequence[Message],
        render_target: Optional[RenderTarget] = None,
    ) -> Optional[str]:
        model = self._select_model(messages)
        omit_token_limit = not self._includes_token_limit()
        while True:
            try:
                return await self._send(messages, model, render_target, omit_token_limit)
            except Exception as exc:
                if not omit_token_limit and should_retry_without_token_limit(exc):
                    # 服务端不认 token 上限参数时去掉该参数重试一次。
                    logger.info('assistant.retry_without_token_limit', model=model, error=str(exc))
                    omit_token_limit = True
                    continue
                logger.warning('assistant.text_call_failed', provider=self.provider, model=model, error=str(exc))
                self._display_error(exc)
                return None

    async def image_call(
        self,
        model: str,
        prompt: str,
        size: str = '',
        count: int = 1,
        hd: bool = False,
    ) -> Optional[List[str]]:
        selected_model = model or DEFAULT_IMAGE_MODEL
        params: Dict[str, Any] = {'model': selected_model, 'prompt': prompt}
        if size:
            params['size'] = size
        if isinstance(count, int) and count > 1:
            params['n'] = count
        if selected_model == HD_IMAGE_MODEL and hd:
            params['quality'] = 'hd'
        try:
            response = await self._client.images.generate(**params)
        except Exception as exc:
            logger.warning('assistant.image_call_failed', provider=self.provider, model=selected_model, error=str(exc))
            self._display_error(exc)
            return None
        data = getattr(response, 'data', None) or []
        return [item.url for item in data]

    async def transcribe_call(self, audio: Any, language: str = '') -> Optional[str]:
        params: Dict[str, Any] = {'file': audio, 'model': self.speech_model_name}
        if language and language.strip():
            params['language'] = language.strip()
        try:
            completion = await self._client.audio.transcriptions.create(**params)
        except Exception as exc:
            logger.warning('assistant.transcribe_failed', model=self.speech_model_name, error=str(exc))
            self._display_error(exc)
            return None
        return completion.text

    async def speak_call(self, text: str) -> None:
        try:
            response = await self._client.audio.speech.create(
                model=TTS_MODEL,
                voice=TTS_VOICE,
                input=text,
                response_format='pcm',
            )
            # 播放是阻塞调用，放到线程里避免卡住事件循环。
            await asyncio.to_thread(self._audio_player.play, response.content, TTS_SAMPLE_RATE)
        except Exception as exc:
            logger.warning('assistant.speak_failed', error=str(exc))
            self._display_error(exc)


class AnthropicAssistant(BaseAssistant):
    provider = 'anthropic'

    def __init__(
        self,
        api_key: str,
        base_url: str,
        model_name: str,
        max_tokens: int,
        notify: NotifyFunc,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(
            api_key,
            normalize_base_url(base_url, default=DEFAULT_ANTHROPIC_BASE_URL),
            model_name or DEFAULT_ANTHROPIC_MODEL,
            max_tokens,
            notify,
        )
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        return {
            'x-api-key': self.api_key,
            'anthropic-version': ANTHROPIC_VERSION,
            'content-type': 'application/json',
        }

    def _format_http_error(self, exc: httpx.HTTPStatusError) -> str:
        # 优先解析 JSON error.message，其次返回纯文本。
        response = exc.response
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error = data.get('error')
            if isinstance(error, dict) and error.get('message'):
                return str(error['message'])
            if isinstance(error, str) and error:
                return error
        text = response.text.strip()
        return text or str(exc)

    async def text_call(
        self,
        messages: Sequence[Message],
        render_target: Optional[RenderTarget] = None,
    ) -> Optional[str]:
        body = {
            'model': self.model_name,
            'max_tokens': self.max_tokens if self.max_tokens > 0 else DEFAULT_ANTHROPIC_MAX_TOKENS,
            'messages': list(messages),
            'stream': False,
        }
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT_SECONDS, transport=self._transport) as client:
                response = await client.post(f'{self.base_url}/messages', headers=self._headers(), json=body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as exc:
            detail = self._format_http_error(exc)
            logger.warning(
                'assistant.text_call_failed',
                provider=self.provider,
                status_code=exc.response.status_code,
                error=detail,
            )
            self._notify(f'Anthropic API Error: {detail}')
            return None
        except Exception as exc:
            logger.warning('assistant.text_call_failed', provider=self.provider, error=str(exc))
            self._notify(str(exc))
            return None
        text = self._extract_text(payload)
        if render_target is not None:
            # 非流式：一次性写入最终文本。
            await _publish(render_target, text)
        return text

    def _extract_text(self, payload: Any) -> str:
        if not isinstance(payload, dict):
            return ''
        content = payload.get('content')
        if not isinstance(content, list) or not content:
            return ''
        first = content[0]
        if isinstance(first, dict) and isinstance(first.get('text'), str):
            return first['text']
        return ''

    async def image_call(
        self,
        model: str = '',
        prompt: str = '',
        size: str = '',
        count: int = 1,
        hd: bool = False,
    ) -> Optional[List[str]]:
        self._notify(ANTHROPIC_IMAGE_UNSUPPORTED)
        return None

    async def transcribe_call(self, audio: Any = None, language: str = '') -> Optional[str]:
        self._notify(ANTHROPIC_TRANSCRIBE_UNSUPPORTED)
        return None

    async def speak_call(self, text: str = '') -> None:
        self._notify(ANTHROPIC_SPEAK_UNSUPPORTED)
