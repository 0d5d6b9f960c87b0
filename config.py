from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings
from typing import Optional, Tuple


class ProviderConfig(BaseModel):
    """Read-only provider configuration handed to the gateway and adapters."""

    model_config = ConfigDict(frozen=True)

    mode: str
    api_key: str = ""
    auth_header: str = "tokenKey"
    auth_scheme: str = ""
    base_url: str = ""
    submit_url: str = ""
    status_url: str = ""
    image_fields: Tuple[str, str] = ("document1", "document2")
    flow: str = "springscan_ocr"
    default_doc_type: Optional[str] = None
    model: str = ""
    max_tokens: int = 300
    request_timeout: float = 30
    upload_timeout: float = 60
    poll_interval: float = 1.0
    poll_max_attempts: int = 30
    compress_target_kb: int = 30
    verify_deadline: float = 120


class Settings(BaseSettings):
    # API Configuration
    API_TITLE: str = "Face Match Verification API"
    API_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_DIR: str = "logs"
    LOG_LEVEL: str = "INFO"

    # Gateway
    PROVIDER_MODE: str = "multi_step"  # sync, async_poll, multi_step, vision
    COMPRESS_TARGET_KB: int = 30
    MAX_FILE_SIZE: int = 20 * 1024 * 1024  # 20MB
    REQUEST_TIMEOUT: int = 30
    UPLOAD_TIMEOUT: int = 60
    VERIFY_DEADLINE_SECONDS: int = 120

    # Sync face match
    SYNC_API_URL: str = "https://api.springscan.springverify.com/v4/faceMatch"
    SYNC_API_KEY: str = ""
    SYNC_AUTH_HEADER: str = "tokenKey"
    SYNC_IMAGE_FIELDS: str = "document1,document2"

    # Async task + polling
    ASYNC_SUBMIT_URL: str = ""
    ASYNC_STATUS_URL: str = ""
    ASYNC_API_KEY: str = ""
    ASYNC_AUTH_HEADER: str = "x-api-key"
    POLL_INTERVAL_SECONDS: float = 1.0
    POLL_MAX_ATTEMPTS: int = 30

    # Multi-step (SpringScan person + selfie + OCR)
    SVD_TOKEN_KEY: str = ""
    SPRINGSCAN_BASE_URL: str = "https://api.springscan.springverify.com"
    MULTISTEP_FLOW: str = "springscan_ocr"  # springscan_ocr, subject_documents
    MULTISTEP_DEFAULT_DOC_TYPE: Optional[str] = "ind_aadhaar"

    # Vision model (OpenAI-compatible chat completions)
    VISION_API_URL: str = "https://api.openai.com/v1/chat/completions"
    VISION_API_KEY: str = ""
    VISION_MODEL: str = "gpt-4o"
    VISION_MAX_TOKENS: int = 300

    class Config:
        env_file = ".env"
        case_sensitive = True

    def provider_config(self) -> ProviderConfig:
        """Snapshot the settings relevant to the configured provider mode."""
        mode = self.PROVIDER_MODE.strip().lower()
        common = dict(
            mode=mode,
            request_timeout=self.REQUEST_TIMEOUT,
            upload_timeout=self.UPLOAD_TIMEOUT,
            compress_target_kb=self.COMPRESS_TARGET_KB,
            verify_deadline=self.VERIFY_DEADLINE_SECONDS,
        )

        if mode == "sync":
            fields = [f.strip() for f in self.SYNC_IMAGE_FIELDS.split(",") if f.strip()]
            return ProviderConfig(
                api_key=self.SYNC_API_KEY,
                auth_header=self.SYNC_AUTH_HEADER,
                submit_url=self.SYNC_API_URL,
                image_fields=tuple(fields[:2]) if len(fields) >= 2 else ("document1", "document2"),
                **common,
            )
        if mode == "async_poll":
            return ProviderConfig(
                api_key=self.ASYNC_API_KEY,
                auth_header=self.ASYNC_AUTH_HEADER,
                submit_url=self.ASYNC_SUBMIT_URL,
                status_url=self.ASYNC_STATUS_URL,
                poll_interval=self.POLL_INTERVAL_SECONDS,
                poll_max_attempts=self.POLL_MAX_ATTEMPTS,
                **common,
            )
        if mode == "multi_step":
            return ProviderConfig(
                api_key=self.SVD_TOKEN_KEY,
                auth_header="tokenKey",
                base_url=self.SPRINGSCAN_BASE_URL.rstrip('/'),
                flow=self.MULTISTEP_FLOW,
                default_doc_type=self.MULTISTEP_DEFAULT_DOC_TYPE or None,
                **common,
            )
        if mode == "vision":
            return ProviderConfig(
                api_key=self.VISION_API_KEY,
                auth_header="Authorization",
                auth_scheme="Bearer",
                submit_url=self.VISION_API_URL,
                model=self.VISION_MODEL,
                max_tokens=self.VISION_MAX_TOKENS,
                **common,
            )
        return ProviderConfig(**common)


settings = Settings()
