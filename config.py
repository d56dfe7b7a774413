"""Global configuration for the WhatsApp reminder worker."""

import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# Claude API - used to pull the task out of a reminder request
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY")
CRUX_MODEL = os.getenv("CRUX_MODEL", "claude-3-5-haiku-20241022")

# Twilio WhatsApp
TWILIO_ACCOUNT_SID = os.getenv("TWILIO_ACCOUNT_SID")
TWILIO_AUTH_TOKEN = os.getenv("TWILIO_AUTH_TOKEN")
TWILIO_WHATSAPP_FROM = os.getenv("TWILIO_WHATSAPP_FROM")

# Data and logging
DATA_DIR = Path(os.getenv("REMINDER_DATA_DIR", Path(os.getenv("LOCALAPPDATA", ".")) / "whatsapp-reminders"))
LOG_DIR = Path(os.getenv("REMINDER_LOG_DIR", DATA_DIR / "logs"))
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOG_LEVEL = os.getenv("REMINDER_LOG_LEVEL", "INFO").upper()
