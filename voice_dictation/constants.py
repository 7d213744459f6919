"""Constants for the voice dictation service."""

import os
import shlex
import signal

# App identification
APP_ID = os.getenv("APP_ID", "voice_dictation")
APP_VERSION = os.getenv("APP_VERSION", "1.0.0")
APP_PORT = int(os.getenv("APP_PORT", "23100"))

# Recorder configuration (SoX `rec` writes 16kHz mono 16-bit WAV)
DEFAULT_RECORDER_COMMAND = (
    "rec",
    "-q",
    "-c", "1",
    "-r", "16000",
    "-b", "16",
    "{output}",
    "trim", "0", "{duration}",
)
RECORDER_COMMAND = tuple(
    shlex.split(os.environ["DICTATION_RECORDER_COMMAND"])
    if os.getenv("DICTATION_RECORDER_COMMAND")
    else DEFAULT_RECORDER_COMMAND
)
MAX_DURATION_SECONDS = int(os.getenv("DICTATION_MAX_DURATION", "300"))

# Exit codes that mean the recorder finished its file: clean exit, killed by
# SIGINT as reported by asyncio, or the shell's 128+SIGINT convention
RECORDER_SUCCESS_CODES = frozenset({0, -signal.SIGINT, 128 + signal.SIGINT})

# Uploader / transcription endpoint
UPLOADER = os.getenv("DICTATION_UPLOADER", "curl")
DEFAULT_ENDPOINT = "https://api.openai.com/v1/audio/transcriptions"
ENDPOINT = os.getenv("DICTATION_ENDPOINT", DEFAULT_ENDPOINT)
MODEL = os.getenv("DICTATION_MODEL", "whisper-1")
LANGUAGE = os.getenv("DICTATION_LANGUAGE", "")
API_KEY = os.getenv("DICTATION_API_KEY", "")

# Login used for the netrc credential fallback
NETRC_LOGIN = "apikey"

# Artifact naming
ARTIFACT_PREFIX = "dictation-"
ARTIFACT_SUFFIX = ".wav"

# Timeouts (seconds)
REAP_TIMEOUT = float(os.getenv("DICTATION_REAP_TIMEOUT", "5"))
SHUTDOWN_TIMEOUT = 10

# Host-side status line history
MESSAGE_HISTORY = int(os.getenv("DICTATION_MESSAGE_HISTORY", "50"))

# Truncate raw responses in log records
RAW_LOG_LIMIT = 500
