"""
Unit tests for the AITaskEnhancer.

The Ollama HTTP API is mocked at the ``requests`` level; every failure mode
must fall back to the rule-based parse.
"""

import time
from unittest.mock import Mock, patch

import pytest
import requests

from famtasks.core.config_manager import LLMConfig
from famtasks.core.error_handler import LLMError
from famtasks.intelligence.ai_enhancer import AIParseResult, AITaskEnhancer, split_category_marker
from famtasks.processors.task_types import ClockTime
from tests.fixtures.sample_data import SAMPLE_LLM_REPLIES


PICKUP_TEXT = "לאסוף את אלון"


@pytest.fixture
def error_handler():
    return Mock()


@pytest.fixture
def enhancer(task_parser, llm_config, error_handler):
    return AITaskEnhancer(task_parser, llm_config, error_handler=error_handler)


class TestModelSelection:
    """Test suite for listing and choosing models"""

    @pytest.mark.unit
    def test_available_models(self, enhancer, tags_response):
        with patch("famtasks.intelligence.ai_enhancer.requests.get", return_value=tags_response) as mock_get:
            assert enhancer.get_available_models() == ["mistral:7b", "llama3.1:8b"]
        mock_get.assert_called_once_with("http://localhost:11434/api/tags", timeout=2)

    @pytest.mark.unit
    def test_server_unreachable(self, enhancer):
        with patch("famtasks.intelligence.ai_enhancer.requests.get",
                   side_effect=requests.ConnectionError("refused")):
            with pytest.raises(LLMError):
                enhancer.get_available_models()

    @pytest.mark.unit
    def test_preferred_model_wins(self, enhancer):
        assert enhancer.select_model(["mistral:7b", "llama3.1:8b"]) == "llama3.1:8b"

    @pytest.mark.unit
    def test_first_installed_when_no_preferred(self, enhancer):
        assert enhancer.select_model(["phi3:mini", "gemma:2b"]) == "phi3:mini"

    @pytest.mark.unit
    def test_no_models(self, enhancer):
        with pytest.raises(LLMError):
            enhancer.select_model([])


class TestPrompts:
    """Test suite for prompt construction"""

    @pytest.mark.unit
    def test_system_prompt_lists_rosters(self, enhancer):
        prompt = enhancer.build_system_prompt()
        assert "Alon (אלון): child, needs supervision" in prompt
        assert "Ella (אלה): adult" in prompt
        assert "גן (kindergarten): 15 min drive, requires driving" in prompt
        assert '"involvedMembers"' in prompt

    @pytest.mark.unit
    def test_recent_tasks_truncated(self, enhancer):
        recent = [f"task-{i}" for i in range(8)]
        prompt = enhancer.build_user_prompt("Buy milk", recent_tasks=recent, categories=["shopping"])

        assert prompt.startswith('Parse this task: "Buy milk"')
        assert "task-4" in prompt
        assert "task-5" not in prompt
        assert "Existing categories:\nshopping" in prompt

    @pytest.mark.unit
    def test_recent_tasks_disabled(self, task_parser):
        enhancer = AITaskEnhancer(task_parser, LLMConfig(enabled=True, recent_task_limit=0))
        prompt = enhancer.build_user_prompt("Buy milk", recent_tasks=["task-0"])
        assert "Recent tasks" not in prompt


class TestResultExtraction:
    """Test suite for reading the model reply"""

    @pytest.mark.unit
    def test_json_inside_prose(self, enhancer):
        result = enhancer.extract_result(SAMPLE_LLM_REPLIES["kindergarten_pickup"])
        assert result.location == "kindergarten"
        assert result.specific_time == {"hour": 16, "minute": 0}
        assert result.requires_driving is True
        assert result.category_icon == "👶"

    @pytest.mark.unit
    @pytest.mark.parametrize("reply_name", ["no_json", "broken_json", "bad_schema"])
    def test_unusable_replies(self, enhancer, reply_name):
        with pytest.raises(LLMError):
            enhancer.extract_result(SAMPLE_LLM_REPLIES[reply_name])

    @pytest.mark.unit
    def test_error_envelope(self, enhancer):
        with patch("famtasks.intelligence.ai_enhancer.requests.post",
                   return_value=Mock(**{"json.return_value": {"error": "model not found"}})):
            with pytest.raises(LLMError):
                enhancer.request_completion("x", "system", "user")


    @pytest.mark.unit
    @pytest.mark.parametrize("payload", [["oops"], {"message": "plain string"}, {"done": True}])
    def test_malformed_chat_envelope(self, enhancer, payload):
        with patch("famtasks.intelligence.ai_enhancer.requests.post",
                   return_value=Mock(**{"json.return_value": payload})):
            with pytest.raises(LLMError):
                enhancer.request_completion("x", "system", "user")

    @pytest.mark.unit
    @pytest.mark.parametrize("payload", [[], {"models": ["qwen2.5:14b"]}, {"models": None}])
    def test_malformed_model_list(self, enhancer, payload):
        with patch("famtasks.intelligence.ai_enhancer.requests.get",
                   return_value=Mock(**{"json.return_value": payload})):
            with pytest.raises(LLMError):
                enhancer.get_available_models()


class TestEnhancedText:
    """Test suite for appending inferred clauses"""

    @pytest.mark.unit
    def test_english_clauses(self, enhancer, task_parser):
        base = task_parser.parse("Pick up Alon")
        result = AIParseResult.model_validate({
            "involvedMembers": ["Alon", "Hilly"],
            "location": "school",
            "specificTime": {"hour": 8, "minute": 0},
            "specificDate": "2025-10-22",
        })
        assert enhancer.build_enhanced_text("Pick up Alon", base, result) == \
            "Pick up Alon (school, with Hilly, at 08:00, 2025-10-22)"

    @pytest.mark.unit
    def test_known_facts_not_repeated(self, enhancer, task_parser):
        text = "לקחת את אלון לגן מחר בשעה 16:00"
        base = task_parser.parse(text)
        result = AIParseResult.model_validate({
            "involvedMembers": ["Alon"],
            "location": "kindergarten",
            "specificTime": {"hour": 16, "minute": 0},
            "requiresDriving": True,
            "drivingDuration": 15,
        })
        assert enhancer.build_enhanced_text(text, base, result) == text

    @pytest.mark.unit
    def test_category_marker_prepended(self, enhancer, task_parser):
        base = task_parser.parse("Dentist")
        result = AIParseResult(category="health", category_icon="🦷")
        assert enhancer.build_enhanced_text("Dentist", base, result) == "@category:health:🦷 Dentist"

    @pytest.mark.unit
    def test_split_category_marker(self):
        assert split_category_marker("@category:health:💊 Doctor") == ("health", "💊", "Doctor")
        assert split_category_marker("Doctor") == (None, None, "Doctor")


class TestEnhance:
    """Test suite for the full enhancement flow"""

    @pytest.mark.unit
    def test_success(self, enhancer, tags_response, chat_response_factory):
        with patch("famtasks.intelligence.ai_enhancer.requests.get", return_value=tags_response), \
                patch("famtasks.intelligence.ai_enhancer.requests.post",
                      return_value=chat_response_factory("kindergarten_pickup")) as mock_post:
            task = enhancer.enhance(PICKUP_TEXT)

        payload = mock_post.call_args.kwargs["json"]
        assert payload["model"] == "llama3.1:8b"
        assert payload["stream"] is False
        assert payload["messages"][1]["content"].startswith(f'Parse this task: "{PICKUP_TEXT}"')

        assert task.raw_text.startswith("@category:childcare:👶 ")
        assert "(גן, בשעה 16:00" in task.raw_text
        assert task.location == "kindergarten"
        assert task.specific_time == ClockTime(16, 0)
        assert task.requires_driving is True
        assert task.driving_duration == 15
        assert task.metadata["used_ai"] is True
        assert task.metadata["ai_model"] == "llama3.1:8b"
        assert task.metadata["ai_confidence"] == 0.9
        assert task.metadata["category"] == "childcare"

    @pytest.mark.unit
    def test_disabled_uses_rules_only(self, task_parser):
        enhancer = AITaskEnhancer(task_parser, LLMConfig(enabled=False))
        with patch("famtasks.intelligence.ai_enhancer.requests.get") as mock_get:
            task = enhancer.enhance(PICKUP_TEXT)

        mock_get.assert_not_called()
        assert task.raw_text == PICKUP_TEXT
        assert task.metadata == {}

    @pytest.mark.unit
    def test_server_down_falls_back(self, enhancer, error_handler):
        with patch("famtasks.intelligence.ai_enhancer.requests.get",
                   side_effect=requests.ConnectionError("refused")):
            task = enhancer.enhance(PICKUP_TEXT)

        assert task.raw_text == PICKUP_TEXT
        assert task.involved_members == ["Alon"]
        error = error_handler.handle_error.call_args.args[0]
        assert isinstance(error, LLMError)

    @pytest.mark.unit
    @pytest.mark.parametrize("reply_name", ["no_json", "bad_schema"])
    def test_bad_reply_falls_back(self, enhancer, error_handler, tags_response,
                                  chat_response_factory, reply_name):
        with patch("famtasks.intelligence.ai_enhancer.requests.get", return_value=tags_response), \
                patch("famtasks.intelligence.ai_enhancer.requests.post",
                      return_value=chat_response_factory(reply_name)):
            task = enhancer.enhance(PICKUP_TEXT)

        assert task.raw_text == PICKUP_TEXT
        assert "used_ai" not in task.metadata
        error_handler.handle_error.assert_called_once()

    @pytest.mark.unit
    @pytest.mark.parametrize("tags_payload,chat_payload", [
        ([], None),
        ({"models": ["qwen2.5:14b"]}, None),
        ({"models": [{"name": "llama3.1:8b"}]}, ["oops"]),
        ({"models": [{"name": "llama3.1:8b"}]}, {"message": "plain string"}),
    ])
    def test_malformed_envelope_falls_back(self, enhancer, error_handler, tags_payload, chat_payload):
        with patch("famtasks.intelligence.ai_enhancer.requests.get",
                   return_value=Mock(**{"json.return_value": tags_payload})), \
                patch("famtasks.intelligence.ai_enhancer.requests.post",
                      return_value=Mock(**{"json.return_value": chat_payload})):
            task = enhancer.enhance("Buy milk today P1")

        assert task.raw_text == "Buy milk today P1"
        assert task.metadata == {}
        assert isinstance(error_handler.handle_error.call_args.args[0], LLMError)

    @pytest.mark.unit
    def test_request_timeout_falls_back(self, enhancer, tags_response):
        with patch("famtasks.intelligence.ai_enhancer.requests.get", return_value=tags_response), \
                patch("famtasks.intelligence.ai_enhancer.requests.post", side_effect=requests.Timeout()):
            task = enhancer.enhance(PICKUP_TEXT)
        assert task.raw_text == PICKUP_TEXT


class TestEnhanceAsync:
    """Test suite for the asynchronous wrapper"""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_success(self, enhancer, tags_response, chat_response_factory):
        with patch("famtasks.intelligence.ai_enhancer.requests.get", return_value=tags_response), \
                patch("famtasks.intelligence.ai_enhancer.requests.post",
                      return_value=chat_response_factory("kindergarten_pickup")):
            task = await enhancer.enhance_async(PICKUP_TEXT)

        assert task.metadata["used_ai"] is True

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_async_timeout_falls_back(self, task_parser, error_handler):
        enhancer = AITaskEnhancer(task_parser, LLMConfig(enabled=True, timeout=1),
                                  error_handler=error_handler)

        def slow_enhance(*args):
            time.sleep(1.5)
            return task_parser.parse("never used")

        with patch.object(enhancer, "enhance", side_effect=slow_enhance):
            task = await enhancer.enhance_async(PICKUP_TEXT)

        assert task.raw_text == PICKUP_TEXT
        error = error_handler.handle_error.call_args.args[0]
        assert "timed out" in error.message
