"""
Configuration module for the application.
All configuration values are read from environment variables,
normally populated from the .env file.
"""
import os
import secrets
import warnings


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name, "")
    return int(value) if value else default


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        # Flask Configuration
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.FLASK_ENV: str = os.getenv("FLASK_ENV", "")
        self.FLASK_DEBUG: bool = os.getenv("FLASK_DEBUG", "").lower() == "true"

        # Generate a development SECRET_KEY if not set and in development mode
        if not self.SECRET_KEY and self.FLASK_ENV != "production":
            self.SECRET_KEY = secrets.token_urlsafe(32)
            warnings.warn(
                "SECRET_KEY not set. Generated a temporary key for development. "
                "Set SECRET_KEY in your .env file for production!",
                UserWarning
            )

        # Database Configuration
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")
        self.DB_USER: str = os.getenv("DB_USER", "")
        self.DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
        self.DB_HOST: str = os.getenv("DB_HOST", "")
        self.DB_PORT: str = os.getenv("DB_PORT", "")
        self.DB_NAME: str = os.getenv("DB_NAME", "")

        # Blueprint URL Prefixes
        self.QUIZ_API_PREFIX: str = os.getenv("QUIZ_API_PREFIX", "/quiz")

        # Session Configuration
        session_secure = os.getenv("SESSION_COOKIE_SECURE", "")
        self.SESSION_COOKIE_SECURE: bool = session_secure.lower() == "true" if session_secure else False
        session_httponly = os.getenv("SESSION_COOKIE_HTTPONLY", "")
        self.SESSION_COOKIE_HTTPONLY: bool = session_httponly.lower() == "true" if session_httponly else True
        self.SESSION_COOKIE_SAMESITE: str = os.getenv("SESSION_COOKIE_SAMESITE", "")

        # SQLAlchemy Configuration
        self.SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
        sqlalchemy_echo = os.getenv("SQLALCHEMY_ECHO", "")
        self.SQLALCHEMY_ECHO: bool = sqlalchemy_echo.lower() == "true" if sqlalchemy_echo else False

        # Quiz engine
        self.QUIZ_DEFAULT_MAX_ATTEMPTS: int = _int_env("QUIZ_DEFAULT_MAX_ATTEMPTS", 1)
        self.QUIZ_DEFAULT_PASSING_GRADE: int = _int_env("QUIZ_DEFAULT_PASSING_GRADE", 70)
        self.QUIZ_DEADLINE_GRACE_SECONDS: int = _int_env("QUIZ_DEADLINE_GRACE_SECONDS", 30)
        self.QUIZ_SUBMIT_RATE_LIMIT: int = _int_env("QUIZ_SUBMIT_RATE_LIMIT", 10)

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct database URI from environment variables."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4"
        )

    def validate(self) -> None:
        """
        Validate required configuration values.
        Only enforces SECRET_KEY in production environment.
        """
        if not self.SECRET_KEY and self.FLASK_ENV == "production":
            raise ValueError(
                "SECRET_KEY environment variable is required in production. "
                "Set it in your .env file or environment variables."
            )
        if self.QUIZ_DEFAULT_MAX_ATTEMPTS < 1:
            raise ValueError("QUIZ_DEFAULT_MAX_ATTEMPTS must be at least 1")
        if not 0 <= self.QUIZ_DEFAULT_PASSING_GRADE <= 100:
            raise ValueError("QUIZ_DEFAULT_PASSING_GRADE must be between 0 and 100")


# Global config instance - will be re-initialized after load_dotenv()
config = Config()
