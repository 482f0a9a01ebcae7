import os
from pathlib import Path

from dotenv import load_dotenv, dotenv_values

BACKEND_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from Backend/.env and override any existing shell vars
env_path = BACKEND_DIR / ".env"
load_dotenv(env_path, override=True)
for k, v in dotenv_values(env_path).items():
    if v is not None:
        os.environ[k] = v


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name) or default)
    except ValueError:
        return default


# ----- OpenAI -----
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL") or None
OPENAI_MODEL = os.getenv("OPENAI_MODEL") or "gpt-3.5-turbo"
WEEKLY_REPORT_MODEL = os.getenv("WEEKLY_REPORT_MODEL") or os.getenv("OPENAI_MODEL") or "gpt-4o"
OPENAI_TIMEOUT_SECONDS = float(_int_env("OPENAI_TIMEOUT_SECONDS", 60))
OPENAI_MAX_RETRIES = _int_env("OPENAI_MAX_RETRIES", 3)

ANALYSIS_MAX_TOKENS = 800
REPORT_MAX_TOKENS = 2000

# ----- Rate limiting (analysis endpoint) -----
RATE_LIMIT_MAX_REQUESTS = _int_env("RATE_LIMIT_MAX_REQUESTS", 10)
RATE_LIMIT_WINDOW_MS = _int_env("RATE_LIMIT_WINDOW_MS", 60000)

# --- JWT (only used to key the rate limiter on the token subject)
JWT_SECRET = os.getenv("JWT_SECRET") or "dev_jwt_secret"
JWT_ALGO = "HS256"

# ----- Storage -----
DATA_DIR = Path(os.getenv("DATA_DIR") or (BACKEND_DIR / "data"))

# ----- App -----
ALLOWED_ORIGINS = [
    o.strip() for o in (os.getenv("ALLOWED_ORIGINS") or "http://localhost:3000").split(",") if o.strip()
]
ENVIRONMENT = os.getenv("ENV", os.getenv("APP_ENV", "development")).lower()
LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").upper()
