"""
Mock Interview Configuration
============================

This file contains ALL configuration for the mock interview system.
- User settings at the top (things users might want to change)
- Internal constants at the bottom (technical defaults)
"""
import os
from dataclasses import dataclass
from typing import Optional


# =============================================================================
# USER SETTINGS - Edit these to customize the interview behavior
# =============================================================================

# REQUIRED: Set your Google Cloud project
GOOGLE_CLOUD_PROJECT = "your-project-id"  # Change this!
GOOGLE_APPLICATION_CREDENTIALS = None  # Optional: path to credentials JSON

# Interview settings
MAX_INTERVIEW_MINUTES = 25
AUTO_TRIGGER_ENABLED = False
MAX_QUESTIONS_PER_SECTION = 6  # None disables the safety net
DEFAULT_DIFFICULTY = "medium"

# Speech settings
LANGUAGE_CODE = "en-US"
CHUNK_INTERVAL_SECONDS = 3.0
MAX_ANSWER_SECONDS = 120.0

# Logging
LOG_FILE = "./_interviews/interview.log"
LOG_LEVEL = "INFO"


# =============================================================================
# INTERNAL CONSTANTS - Don't change these unless you know what you're doing
# =============================================================================

# Audio capture
SAMPLE_RATE_CAPTURE = 48000
SAMPLE_RATE_TARGET = 16000
CHANNELS = 1
FRAME_MS = 30
TARGET_RMS = 0.06
VAD_WINDOW_SECONDS = 0.5

# Voice Activity Detection
VAD_SILENCE_THRESHOLD = 0.1
VAD_SILENCE_DURATION = 5.0
VAD_POLL_INTERVAL = 0.05

# Transcription
MIN_CHUNK_BYTES = 200
MAX_IN_FLIGHT_CHUNKS = 4
TRANSCRIPTION_PROMPT = "This is an interview conversation. Please transcribe accurately."

# Interview flow
SUBSTANTIVE_REPLY_MIN_CHARS = 10
AUTO_ADVANCE_MIN_MESSAGES = 3
CONTEXT_EXCERPT_CHARS = 1000

# LLM
VERTEX_LOCATION = "us-central1"
MODEL_NAME = "gemini-2.5-flash-lite"
LLM_TIMEOUT = 60
MAX_OUTPUT_TOKENS = 2048
FLOW_TEMPERATURE = 0.7
CHAT_TEMPERATURE = 0.7


# =============================================================================
# MAIN CONFIG OBJECT
# =============================================================================

@dataclass
class Config:
    """Main configuration object."""
    google_cloud_project: str
    google_application_credentials: Optional[str] = None
    vertex_location: str = VERTEX_LOCATION
    model_name: str = MODEL_NAME
    language_code: str = LANGUAGE_CODE
    max_interview_minutes: float = MAX_INTERVIEW_MINUTES
    auto_trigger_enabled: bool = AUTO_TRIGGER_ENABLED
    max_questions_per_section: Optional[int] = MAX_QUESTIONS_PER_SECTION
    chunk_interval_seconds: float = CHUNK_INTERVAL_SECONDS
    max_answer_seconds: float = MAX_ANSWER_SECONDS
    silence_threshold: float = VAD_SILENCE_THRESHOLD
    silence_duration: float = VAD_SILENCE_DURATION
    poll_interval: float = VAD_POLL_INTERVAL
    min_chunk_bytes: int = MIN_CHUNK_BYTES
    max_in_flight_chunks: int = MAX_IN_FLIGHT_CHUNKS
    log_file: str = LOG_FILE
    log_level: str = LOG_LEVEL


def get_config() -> Config:
    """Load configuration."""
    project = os.getenv("GOOGLE_CLOUD_PROJECT") or GOOGLE_CLOUD_PROJECT
    credentials = os.getenv("GOOGLE_APPLICATION_CREDENTIALS") or GOOGLE_APPLICATION_CREDENTIALS

    if project == "your-project-id":
        raise ValueError("Please set GOOGLE_CLOUD_PROJECT in config.py or as environment variable")

    return Config(
        google_cloud_project=project,
        google_application_credentials=credentials,
        language_code=os.getenv("MOCK_INTERVIEW_LANGUAGE") or LANGUAGE_CODE,
        log_file=os.getenv("MOCK_INTERVIEW_LOG_FILE") or LOG_FILE,
        log_level=os.getenv("MOCK_INTERVIEW_LOG_LEVEL") or LOG_LEVEL,
    )
