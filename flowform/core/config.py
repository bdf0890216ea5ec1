"""Application configuration with environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    ENV: str = "dev"

    # App Version (format: a.bc.de - major.feature.patch)
    VERSION: str = "0.01.00"

    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./flowform.db"

    # Natural-language date parsing
    DATE_PARSER_LANGUAGES: str = "en"  # comma-separated
    DATE_PARSER_TIMEZONE: str = "UTC"  # timezone assumed for answers without one

    # Uploads are stored by an external blob service; reported sizes are checked at submission
    MAX_UPLOAD_SIZE_BYTES: int = 10 * 1024 * 1024

    # Submission export
    EXPORT_SUBMISSION_LIMIT: int = 100

    @property
    def date_parser_languages_list(self) -> list[str]:
        """Parse DATE_PARSER_LANGUAGES into a list."""
        return [lang.strip() for lang in self.DATE_PARSER_LANGUAGES.split(",") if lang.strip()]


settings = Settings()
