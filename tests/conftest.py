"""
Pytest configuration and shared fixtures for FamTasks testing.

Provides parser instances pinned to a fixed reference date, configuration
directories, and mock HTTP responses for the LLM client.
"""

from typing import Any, Dict
from unittest.mock import Mock

import pytest
import yaml

from famtasks.core.config_manager import AppConfig, LLMConfig
from famtasks.processors.pattern_library import PatternLibrary
from famtasks.processors.task_parser import TaskParser
from famtasks.processors.task_types import Language
from famtasks.processors.written_time_parser import WrittenTimeParser

from .fixtures.sample_data import (
    OLLAMA_TAGS_RESPONSE,
    REFERENCE_DATE,
    SAMPLE_CONFIGURATIONS,
    SAMPLE_LLM_REPLIES,
    SAMPLE_SENTENCES,
)


# Configuration Fixtures
@pytest.fixture
def app_config():
    """Default application configuration with the shipped rosters"""
    return AppConfig()


@pytest.fixture
def reference_date():
    """Fixed 'today' so time buckets are deterministic"""
    return REFERENCE_DATE


@pytest.fixture
def temp_config_dir(tmp_path):
    """Temporary directory holding default and testing config files"""
    config_dir = tmp_path / "config"
    config_dir.mkdir()

    with open(config_dir / "default_config.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump(SAMPLE_CONFIGURATIONS["default"], f, allow_unicode=True)
    with open(config_dir / "testing.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump(SAMPLE_CONFIGURATIONS["testing"], f, allow_unicode=True)

    return config_dir


# Parser Fixtures
@pytest.fixture
def task_parser(app_config, reference_date):
    """Rule-based parser pinned to the reference date"""
    return TaskParser(app_config, reference_date=reference_date)


@pytest.fixture
def hebrew_library(app_config):
    return PatternLibrary(Language.HEBREW, app_config.family_members, app_config.known_places)


@pytest.fixture
def english_library(app_config):
    return PatternLibrary(Language.ENGLISH, app_config.family_members, app_config.known_places)


@pytest.fixture
def hebrew_time_parser():
    return WrittenTimeParser(Language.HEBREW)


@pytest.fixture
def english_time_parser():
    return WrittenTimeParser(Language.ENGLISH)


# LLM Fixtures
@pytest.fixture
def llm_config():
    """Enabled LLM configuration pointing at a local server"""
    return LLMConfig(enabled=True, base_url="http://localhost:11434", timeout=2)


def make_response(payload: Dict[str, Any], status_code: int = 200) -> Mock:
    """Build a mock ``requests`` response returning ``payload`` as JSON"""
    response = Mock()
    response.status_code = status_code
    response.json.return_value = payload
    response.raise_for_status = Mock()
    return response


@pytest.fixture
def tags_response():
    """Mock GET /api/tags response"""
    return make_response(OLLAMA_TAGS_RESPONSE)


@pytest.fixture
def chat_response_factory():
    """Factory for mock POST /api/chat responses keyed by sample reply name"""
    def factory(reply_name: str) -> Mock:
        return make_response({
            "model": "llama3.1:8b",
            "message": {"role": "assistant", "content": SAMPLE_LLM_REPLIES[reply_name]},
            "done": True,
        })
    return factory


@pytest.fixture
def sample_sentences():
    """Sample sentences with expected parse fields"""
    return SAMPLE_SENTENCES


# Test Environment Setup
@pytest.fixture(autouse=True)
def setup_test_environment(monkeypatch):
    """Keep host FAMTASKS_* variables from leaking into configuration tests"""
    import os
    for key in list(os.environ):
        if key.startswith("FAMTASKS_"):
            monkeypatch.delenv(key, raising=False)


def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line(
        "markers", "unit: mark test as unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as integration test"
    )
