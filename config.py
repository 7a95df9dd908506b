import os
import yaml

ROOT_PATH = os.path.dirname(__file__)
CONFIG_FILE_PATH = os.path.join(ROOT_PATH, "env.yaml")

if os.path.exists(CONFIG_FILE_PATH):
    with open(CONFIG_FILE_PATH, "r") as r_file:
        data = yaml.safe_load(r_file) or dict()
else:
    data = dict()


class ApplicationConfig:
    DB_URI = data.get("DB_URI", "sqlite+aiosqlite:///./password_reset.db")
    API_PORT = data.get("API_PORT", 8000)
    API_HOST = data.get("API_HOST", "0.0.0.0")
    CORS_ORIGINS = data.get("CORS_ORIGINS", [])
    CORS_ALLOW_CREDENTIALS = data.get("CORS_ALLOW_CREDENTIALS", True)
    LOG_LEVEL = data.get("LOG_LEVEL", "INFO")

    # Only for development: puts the plaintext reset token in the HTTP response
    EXPOSE_RESET_TOKEN = bool(data.get("EXPOSE_RESET_TOKEN", False))

    BCRYPT_ROUNDS = int(data.get("BCRYPT_ROUNDS", 12))
    PASSWORD_MIN_LENGTH = int(data.get("PASSWORD_MIN_LENGTH", 6))
    PASSWORD_RESET_TOKEN_BYTES = int(data.get("PASSWORD_RESET_TOKEN_BYTES", 32))
    PASSWORD_RESET_TOKEN_EXPIRY_HOURS = int(data.get("PASSWORD_RESET_TOKEN_EXPIRY_HOURS", 1))
    PASSWORD_RESET_MAX_ATTEMPTS = int(data.get("PASSWORD_RESET_MAX_ATTEMPTS", 5))
    PASSWORD_RESET_RATE_LIMIT_REQUESTS = int(data.get("PASSWORD_RESET_RATE_LIMIT_REQUESTS", 3))
    PASSWORD_RESET_RATE_LIMIT_HOURS = int(data.get("PASSWORD_RESET_RATE_LIMIT_HOURS", 24))
