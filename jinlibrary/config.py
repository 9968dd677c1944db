import os
from dataclasses import dataclass
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


def _default_credential_file() -> str:
    return str(Path.home() / ".jinlibrary" / "credentials.json")


@dataclass
class Settings:
    # Backend API
    api_base_url: str = os.getenv("LIBRARY_API_BASE_URL", "http://localhost:8080")
    request_timeout: float = float(os.getenv("LIBRARY_REQUEST_TIMEOUT", "10"))
    connect_timeout: float = float(os.getenv("LIBRARY_CONNECT_TIMEOUT", "5"))

    # Every date on the wire is "yyyy-MM-dd HH:mm:ss" in this zone
    library_timezone: str = os.getenv("LIBRARY_TIMEZONE", "Asia/Taipei")

    # Credential store
    credential_file: str = os.getenv("LIBRARY_CREDENTIAL_FILE", _default_credential_file())
    credential_key: str = os.getenv("LIBRARY_CREDENTIAL_KEY", "jwtToken")

    # Application
    app_name: str = os.getenv("APP_NAME", "JinLibrary")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING")
    debug: bool = os.getenv("DEBUG", "False").lower() in ("true", "1", "yes")

    # Registration form
    min_password_length: int = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))


settings = Settings()
