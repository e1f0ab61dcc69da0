import pytest

from llmrelay.config import DEFAULT_ENDPOINTS, get_setting, load_config
from llmrelay.types import CallKind, Provider


class TestLoadConfig:

    def test_defaults_from_env(self, mock_env):
        config = load_config("openai")

        assert config.provider is Provider.OPENAI
        assert config.api_key == "sk-test-openai"
        assert config.endpoint == DEFAULT_ENDPOINTS[Provider.OPENAI]
        assert config.default_model == "gpt-4o-mini"
        assert config.call_kind is CallKind.CHAT
        assert config.timeout == 120.0

    def test_embedding_defaults(self, mock_env):
        config = load_config("google", "embedding")

        assert config.provider is Provider.GEMINI
        assert config.call_kind is CallKind.EMBEDDING
        assert config.default_model == "gemini-embedding-001"

    def test_explicit_arguments_win(self, mock_env, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_BASE_URL", "https://proxy.test/v1")

        config = load_config(
            "claude",
            api_key="explicit",
            endpoint="https://other.test/v1",
            model="claude-sonnet-4-5",
            timeout=30,
        )

        assert config.api_key == "explicit"
        assert config.endpoint == "https://other.test/v1"
        assert config.default_model == "claude-sonnet-4-5"
        assert config.timeout == 30

    def test_endpoint_from_env(self, mock_env, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_BASE_URL", "https://proxy.test/v1")
        assert load_config("anthropic").endpoint == "https://proxy.test/v1"

    def test_dotenv_file_wins_over_environment(self, mock_env, tmp_path):
        (tmp_path / ".env").write_text("OPENAI_API_KEY=from-dotenv\n")

        assert load_config("openai").api_key == "from-dotenv"

    def test_blank_dotenv_value_falls_back(self, mock_env, tmp_path):
        (tmp_path / ".env").write_text("OPENAI_API_KEY=\n")

        assert get_setting("OPENAI_API_KEY") == "sk-test-openai"

    def test_missing_key(self, mock_env, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY")

        with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
            load_config("anthropic")

    def test_anthropic_has_no_embedding_model(self, mock_env):
        with pytest.raises(ValueError, match="no default embedding model"):
            load_config("anthropic", CallKind.EMBEDDING)

    def test_anthropic_embedding_with_model(self, mock_env):
        config = load_config("anthropic", CallKind.EMBEDDING, model="anything")
        assert config.call_kind is CallKind.EMBEDDING

    def test_unknown_provider(self, mock_env):
        with pytest.raises(ValueError, match="Unknown provider"):
            load_config("mistral")
