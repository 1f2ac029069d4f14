"""
Unit Tests for ServiceConfig
"""

from unittest.mock import patch

import pytest

from semantic_search.config import (
    ServiceConfig,
    get_config,
    reset_config,
    set_config,
)


@pytest.fixture(autouse=True)
def clean_config():
    reset_config()
    yield
    reset_config()


class TestServiceConfig:
    """Test loading from environment variables."""

    def test_defaults(self):
        with patch.dict("os.environ", {}, clear=True):
            config = ServiceConfig.from_env()

        assert config.document_store == "postgres"
        assert config.port == 3000
        assert config.provider.name == "workers-ai"
        assert config.provider.model == "@cf/baai/bge-base-en-v1.5"
        assert config.provider.dimensions == 768
        assert config.search.metric == "cosine"
        assert config.search.default_k == 10
        assert config.search.max_k == 100
        assert config.database.table_name == "documents"
        assert config.database.create_schema is True

    def test_from_env(self):
        env = {
            "DOCUMENT_STORE": "FILE",
            "DOCUMENT_STORE_PATH": "/tmp/docs.json",
            "PORT": "8080",
            "POSTGRES_HOST": "db",
            "DOCUMENTS_TABLE": "articles",
            "CREATE_SCHEMA": "false",
            "EMBEDDING_PROVIDER": "openai",
            "EMBEDDING_DIM": "1536",
            "CLOUDFLARE_ACCOUNT_ID": "acct",
            "PROVIDER_MAX_RETRIES": "5",
            "SIMILARITY_METRIC": "dot",
            "SCORE_SCALE": "raw",
            "SEARCH_MAX_K": "25",
        }
        with patch.dict("os.environ", env, clear=True):
            config = ServiceConfig.from_env()

        assert config.document_store == "file"
        assert config.document_store_path == "/tmp/docs.json"
        assert config.port == 8080
        assert config.database.host == "db"
        assert config.database.table_name == "articles"
        assert config.database.create_schema is False
        assert config.provider.name == "openai"
        assert config.provider.dimensions == 1536
        assert config.provider.account_id == "acct"
        assert config.provider.max_retries == 5
        assert config.search.metric == "dot"
        assert config.search.score_scale == "raw"
        assert config.search.max_k == 25

    def test_database_url_overrides_parts(self):
        env = {"DATABASE_URL": "postgresql://u:p@h/db", "POSTGRES_HOST": "ignored"}
        with patch.dict("os.environ", env, clear=True):
            config = ServiceConfig.from_env()

        assert config.database.connection_string == "postgresql://u:p@h/db"

    def test_empty_credentials_are_none(self):
        with patch.dict("os.environ", {"CLOUDFLARE_API_TOKEN": ""}, clear=True):
            config = ServiceConfig.from_env()

        assert config.provider.api_token is None


class TestGlobalConfig:
    """Test the lazily loaded singleton."""

    def test_cached(self):
        with patch.dict("os.environ", {}, clear=True):
            assert get_config() is get_config()

    def test_set_config(self):
        config = ServiceConfig(document_store="memory")

        set_config(config)

        assert get_config() is config

    def test_reset(self):
        set_config(ServiceConfig(document_store="memory"))

        reset_config()
        with patch.dict("os.environ", {}, clear=True):
            assert get_config().document_store == "postgres"
