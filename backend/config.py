"""Configuration management for ShopAssist support chatbot."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# API Keys
GROQ_API_KEY = os.getenv("GROQ_API_KEY")
SUPABASE_URL = os.getenv("SUPABASE_URL")
SUPABASE_KEY = os.getenv("SUPABASE_KEY")

# Auth Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change_me_long_secret")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

# Server Configuration
PORT = int(os.getenv("PORT", "8000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "text")  # "text" or "json"

# CORS Configuration
CORS_ORIGINS = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:3001"
).split(",")

# Model Configuration
FALLBACK_MODEL = os.getenv("FALLBACK_MODEL", "llama-3.1-8b-instant")
FALLBACK_MAX_TOKENS = 1000
HISTORY_MAX_TURNS = int(os.getenv("HISTORY_MAX_TURNS", "10"))

# Rate Limiting Configuration (process-wide, shared by all callers)
RATE_LIMIT_WINDOW_SECONDS = float(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "30"))
MAX_REQUESTS_PER_WINDOW = int(os.getenv("MAX_REQUESTS_PER_WINDOW", "3"))

# Retry Configuration
RETRY_ATTEMPTS = int(os.getenv("RETRY_ATTEMPTS", "3"))
RETRY_BASE_DELAY_SECONDS = float(os.getenv("RETRY_BASE_DELAY_SECONDS", "2.0"))
RETRY_MAX_JITTER_SECONDS = float(os.getenv("RETRY_MAX_JITTER_SECONDS", "0.5"))

# Response Formatting
CURRENCY_SYMBOL = os.getenv("CURRENCY_SYMBOL", "₹")
DATE_FORMAT = os.getenv("DATE_FORMAT", "%d/%m/%Y")

# Routing decision log (JSON Lines)
ROUTING_LOG_PATH = os.getenv("ROUTING_LOG_PATH", "logs/routing_decisions.jsonl")

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
