"""
Unit tests for language detection.
"""

import pytest

from famtasks.processors.language_detector import detect_language, hebrew_ratio
from famtasks.processors.task_types import Language


class TestLanguageDetector:
    """Test suite for Hebrew/English classification"""

    @pytest.mark.unit
    def test_hebrew_sentence(self):
        """Test that a Hebrew sentence is detected as Hebrew"""
        assert detect_language("לקחת את אלון לגן מחר") == Language.HEBREW

    @pytest.mark.unit
    def test_english_sentence(self):
        """Test that an English sentence is detected as English"""
        assert detect_language("Buy milk today P1") == Language.ENGLISH

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_empty_defaults_to_english(self, text):
        """Test that empty or whitespace text defaults to English"""
        assert detect_language(text) == Language.ENGLISH

    @pytest.mark.unit
    def test_ratio_ignores_whitespace(self):
        """Test that only non-whitespace characters are counted"""
        assert hebrew_ratio("אבג abc") == pytest.approx(0.5)
        assert hebrew_ratio("   ") == 0.0

    @pytest.mark.unit
    def test_mostly_english_with_hebrew_name(self):
        """Test that a short Hebrew name does not flip an English sentence"""
        # 4 Hebrew letters out of 16 non-whitespace characters
        assert detect_language("Take אלון to school") == Language.ENGLISH

    @pytest.mark.unit
    def test_threshold_is_exclusive(self):
        """Test that a ratio equal to the threshold stays English"""
        assert detect_language("אב cd", threshold=0.5) == Language.ENGLISH
        assert detect_language("אבג cd", threshold=0.5) == Language.HEBREW
