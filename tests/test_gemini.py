import httpx
import pytest
from unittest.mock import MagicMock, patch

from llmrelay.errors import ErrorKind, LLMError
from llmrelay.providers.gemini import GeminiProvider, GeneratedImage
from llmrelay.types import CallKind, ImagePart, Message, Role, TextPart
from llmrelay.utils import image_from_source


def candidate(*parts):
    return {"candidates": [{"content": {"role": "model", "parts": list(parts)}}], "responseId": "r-1"}


class TestGeminiConvert:

    def test_convert_messages_roles(self, gemini_config):
        provider = GeminiProvider(gemini_config)

        converted = provider._convert_messages([
            Message.create("system", "rules"),
            Message.create("assistant", "im helper"),
            Message.create("user", "hi"),
        ])

        # System stays inline, assistant maps to model
        assert converted == [
            {"role": "system", "parts": [{"text": "rules"}]},
            {"role": "model", "parts": [{"text": "im helper"}]},
            {"role": "user", "parts": [{"text": "hi"}]},
        ]

    def test_inline_image_parts(self, gemini_config):
        provider = GeminiProvider(gemini_config)
        converted = provider._convert_messages([
            Message.create("user", [ImagePart("AAAA", source_path="ref.png"), ImagePart("BBBB"), "go"]),
        ])
        assert converted[0]["parts"] == [
            {"inlineData": {"mimeType": "image/png", "data": "AAAA"}},
            {"inlineData": {"mimeType": "image/jpeg", "data": "BBBB"}},
            {"text": "go"},
        ]

    @pytest.mark.asyncio
    async def test_sourced_image_mime_reaches_inline_data(self, gemini_config):
        image = await image_from_source("data:image/gif;base64,R0lG")
        converted = GeminiProvider(gemini_config)._convert_messages([Message.create("user", [image])])
        assert converted[0]["parts"] == [{"inlineData": {"mimeType": "image/gif", "data": "R0lG"}}]

    def test_empty_content_becomes_single_empty_text(self, gemini_config):
        converted = GeminiProvider(gemini_config)._convert_messages([Message.create("user", [])])
        assert converted[0]["parts"] == [{"text": ""}]

    def test_model_prefix_normalized_once(self, gemini_config):
        plain = GeminiProvider(gemini_config)
        prefixed = GeminiProvider(gemini_config.replace(default_model="models/gemini-2.5-flash"))
        for provider in (plain, prefixed):
            assert provider.path_model == "gemini-2.5-flash"
            assert provider.request_model == "models/gemini-2.5-flash"


class TestGeminiChat:

    @pytest.mark.asyncio
    async def test_chat_call(self, gemini_config, mock_http):
        mock_http.queue(candidate({"text": "Hello "}, {"text": "there"}))
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        reply = await provider.chat([Message.create("user", "hi")])

        assert reply.id == "r-1"
        assert reply.role is Role.AI
        assert reply.content == (TextPart("Hello there"),)

        request = mock_http.last
        assert str(request.url) == "https://gemini.test/v1beta/models/gemini-2.5-flash:generateContent"
        assert request.headers["x-goog-api-key"] == "AIza-test-google"
        assert mock_http.last_json == {"contents": [{"role": "user", "parts": [{"text": "hi"}]}]}

    @pytest.mark.asyncio
    async def test_images_come_before_text(self, gemini_config, mock_http):
        mock_http.queue(candidate(
            {"text": "Here you go"},
            {"inlineData": {"mimeType": "image/png", "data": "SU1H"}},
            {"text": "!"},
            {"inlineData": {"mimeType": "image/png", "data": "TU9S"}},
        ))
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        reply = await provider.chat([Message.create("user", "draw")])

        assert reply.content == (ImagePart("SU1H"), ImagePart("TU9S"), TextPart("Here you go!"))

    @pytest.mark.asyncio
    async def test_only_first_candidate_is_used(self, gemini_config, mock_http):
        body = candidate({"text": "first"})
        body["candidates"].append({"content": {"parts": [{"text": "second"}]}})
        mock_http.queue(body)
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        reply = await provider.chat([Message.create("user", "hi")])
        assert reply.text == "first"

    @pytest.mark.asyncio
    async def test_no_candidates_is_semantic_error(self, gemini_config, mock_http):
        mock_http.queue({"usageMetadata": {"promptTokenCount": 3}})
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        with pytest.raises(LLMError) as exc_info:
            await provider.chat([Message.create("user", "hi")])
        assert exc_info.value.kind is ErrorKind.SEMANTIC

    @pytest.mark.asyncio
    async def test_candidate_without_content(self, gemini_config, mock_http):
        mock_http.queue({"candidates": [{"finishReason": "SAFETY"}]})
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        reply = await provider.chat([Message.create("user", "hi")])
        assert reply.content == (TextPart(""),)

    @pytest.mark.asyncio
    async def test_generate_images(self, gemini_config, mock_http):
        mock_http.queue(candidate({"inlineData": {"mimeType": "image/webp", "data": "R0lG"}}))
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        images = await provider.generate_images([Message.create("user", "a cat")])

        assert images == [GeneratedImage(mime_type="image/webp", data="R0lG")]
        assert images[0].to_bytes() == b"GIF"

    @pytest.mark.asyncio
    async def test_generate_images_without_image(self, gemini_config, mock_http):
        mock_http.queue(candidate({"text": "I cannot draw"}))
        provider = GeminiProvider(gemini_config, transport=mock_http.transport)

        with pytest.raises(LLMError) as exc_info:
            await provider.generate_images([Message.create("user", "a cat")])
        assert exc_info.value.kind is ErrorKind.SEMANTIC


class TestGeminiEmbeddings:

    @pytest.mark.asyncio
    async def test_single_input_uses_embed_content(self, gemini_embedding_config, mock_http):
        mock_http.queue({"embedding": {"values": [0.1, 0.2, 0.3]}})
        provider = GeminiProvider(gemini_embedding_config, transport=mock_http.transport)

        vectors = await provider.embed(["hello"])

        assert vectors == [[0.1, 0.2, 0.3]]
        assert str(mock_http.last.url) == (
            "https://gemini.test/v1beta/models/gemini-embedding-001:embedContent"
        )
        assert mock_http.last_json == {
            "model": "models/gemini-embedding-001",
            "content": {"parts": [{"text": "hello"}]},
        }

    @pytest.mark.asyncio
    async def test_multiple_inputs_use_batch(self, gemini_embedding_config, mock_http):
        mock_http.queue({"embeddings": [{"values": [1.0]}, {"values": [2.0]}]})
        provider = GeminiProvider(gemini_embedding_config, transport=mock_http.transport)

        vectors = await provider.embed(["a", "b"])

        assert vectors == [[1.0], [2.0]]
        assert str(mock_http.last.url).endswith("/gemini-embedding-001:batchEmbedContents")
        assert mock_http.last_json == {
            "requests": [
                {"model": "models/gemini-embedding-001", "content": {"parts": [{"text": "a"}]}},
                {"model": "models/gemini-embedding-001", "content": {"parts": [{"text": "b"}]}},
            ]
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize("texts", [["one"], ["one", "two"]])
    async def test_usage_only_response_is_failure(self, gemini_embedding_config, mock_http, texts):
        mock_http.queue({"usageMetadata": {"promptTokenCount": 2}})
        provider = GeminiProvider(gemini_embedding_config, transport=mock_http.transport)

        with pytest.raises(LLMError) as exc_info:
            await provider.embed(texts)
        assert exc_info.value.kind is ErrorKind.SEMANTIC
        assert "usage metadata only" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_status_error_keeps_raw_body(self, gemini_embedding_config, mock_http):
        mock_http.queue(httpx.Response(400, text='{"error": {"message": "bad model"}}'))
        provider = GeminiProvider(gemini_embedding_config, transport=mock_http.transport)

        with pytest.raises(LLMError) as exc_info:
            await provider.embed(["hello"])
        assert exc_info.value.kind is ErrorKind.PROTOCOL
        assert "bad model" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_empty_input(self, gemini_embedding_config, mock_http):
        provider = GeminiProvider(gemini_embedding_config, transport=mock_http.transport)
        assert await provider.embed([]) == []
        assert mock_http.requests == []


class TestGeminiModels:

    @pytest.mark.asyncio
    @patch("llmrelay.providers.gemini.genai")
    async def test_get_models_filters_by_action(self, mock_genai, gemini_embedding_config):
        chat_model = MagicMock(supported_actions=["generateContent"])
        chat_model.name = "models/gemini-2.5-flash"
        embed_model = MagicMock(supported_actions=["embedContent"])
        embed_model.name = "models/gemini-embedding-001"
        mock_genai.Client.return_value.models.list.return_value = [chat_model, embed_model]

        embedding_models = await GeminiProvider(gemini_embedding_config).get_models()
        chat_models = await GeminiProvider(
            gemini_embedding_config.replace(call_kind=CallKind.CHAT)
        ).get_models()

        assert embedding_models == ["models/gemini-embedding-001"]
        assert chat_models == ["models/gemini-2.5-flash"]
        mock_genai.Client.assert_called_with(
            api_key="AIza-test-google",
            http_options={"base_url": "https://gemini.test/", "api_version": "v1beta"},
        )

    def test_discovery_options_without_version(self, gemini_config):
        provider = GeminiProvider(gemini_config.replace(endpoint="https://proxy.test/gemini/"))
        assert provider._discovery_http_options() == {"base_url": "https://proxy.test/gemini/"}
