"""
Sample test data for FamTasks testing.

Realistic Hebrew and English task sentences with their expected parse
results, canned LLM replies and configuration snippets.
"""

from datetime import date
from typing import Any, Dict, List

# Fixed "today" used by parser fixtures (a Wednesday; its week runs Sun 12 - Sat 18)
REFERENCE_DATE = date(2025, 10, 15)

# Sentences with the fields they must produce
SAMPLE_SENTENCES: List[Dict[str, Any]] = [
    {
        "id": "he_kindergarten_pickup",
        "text": "לקחת את אלון לגן מחר בשעה 16:00",
        "language": "he",
        "expected": {
            "involved_members": ["Alon"],
            "owner": None,
            "location": "kindergarten",
            "time_bucket": "tomorrow",
            "specific_time": (16, 0),
            "requires_driving": True,
            "driving_duration": 15,
        },
    },
    {
        "id": "en_buy_milk",
        "text": "Buy milk today P1",
        "language": "en",
        "expected": {
            "involved_members": [],
            "owner": None,
            "location": None,
            "time_bucket": "today",
            "specific_time": None,
            "requires_driving": False,
            "driving_duration": None,
        },
    },
    {
        "id": "en_kindergarten_dropoff",
        "text": "Take Alon to kindergarten tomorrow at 8:00",
        "language": "en",
        "expected": {
            "involved_members": ["Alon"],
            "owner": None,
            "location": "kindergarten",
            "time_bucket": "tomorrow",
            "specific_time": (8, 0),
            "requires_driving": True,
            "driving_duration": 15,
        },
    },
    {
        "id": "en_park_outing",
        "text": "Ella and Eyal take Hilly to the park",
        "language": "en",
        "expected": {
            "involved_members": ["Eyal", "Hilly"],
            "owner": "Ella",
            "location": "park",
            "time_bucket": "unlabeled",
            "specific_time": None,
            "requires_driving": False,
            "driving_duration": None,
        },
    },
    {
        "id": "he_spoken_evening",
        "text": "בשמונה וחצי בערב",
        "language": "he",
        "expected": {
            "involved_members": [],
            "owner": None,
            "location": None,
            "time_bucket": "unlabeled",
            "specific_time": (20, 30),
            "requires_driving": False,
            "driving_duration": None,
        },
    },
    {
        "id": "he_school_run",
        "text": "להסיע את יעל ואלון לבית ספר היום ב-7:30",
        "language": "he",
        "expected": {
            "involved_members": ["Yael", "Alon"],
            "owner": None,
            "location": "school",
            "time_bucket": "today",
            "specific_time": (7, 30),
            "requires_driving": True,
            "driving_duration": 10,
        },
    },
]

# Sentences used only for structural properties (coverage, idempotence)
COVERAGE_SENTENCES: List[str] = [
    "",
    "   ",
    "Buy milk today P1",
    "לקחת את אלון לגן מחר בשעה 16:00",
    "כל יום שני וחמישי",
    "Yoga every day at 7:30 P2",
    "P1 P2 P3 today tomorrow next week",
    "Meeting at 25:00 and 12:75",
    "Dentist appointment 22/10/2025",
    "להזכיר לאייל לשלם חשבונות כל חודש",
    "ואלון ולהילי ושלאלה 🚗 15 דקות נסיעה",
    "@category:health:💊 Doctor for Yael next week at 9:15am",
]

# Model list returned by GET /api/tags
OLLAMA_TAGS_RESPONSE: Dict[str, Any] = {
    "models": [
        {"name": "mistral:7b", "size": 4100000000},
        {"name": "llama3.1:8b", "size": 4700000000},
    ]
}

# Message contents returned by POST /api/chat
SAMPLE_LLM_REPLIES: Dict[str, str] = {
    "kindergarten_pickup": (
        "Sure, here is the parse:\n"
        '{"involvedMembers": ["Alon"], "location": "kindergarten", '
        '"specificTime": {"hour": 16, "minute": 0}, "category": "childcare", '
        '"categoryIcon": "👶", "requiresDriving": true, "drivingDuration": 15, '
        '"reasoning": "Kindergarten pickup is at 16:00", "confidence": 0.9}'
    ),
    "no_json": "I could not understand the task.",
    "broken_json": '{"location": "kindergarten",',
    "bad_schema": '{"confidence": 7}',
}

SAMPLE_CONFIGURATIONS: Dict[str, Dict[str, Any]] = {
    "default": {
        "app_name": "FamTasks-Test",
        "parser": {"hebrew_threshold": 0.3, "driving_from": "home"},
        "llm": {"enabled": False, "base_url": "http://localhost:11434", "timeout": 5},
        "logging": {"level": "DEBUG", "log_to_console": False},
    },
    "testing": {
        "llm": {"enabled": True, "preferred_models": ["llama3.1:8b"]},
    },
    "invalid": {
        "parser": {"hebrew_threshold": 2.5},
    },
}
