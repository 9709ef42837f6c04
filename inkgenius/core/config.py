from functools import lru_cache
from typing import Any, List

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_CORS = ["http://localhost:5173", "http://localhost:3000"]

_DEFAULT_PROVIDERS = "imagen,pollinations,openrouter,huggingface,craiyon,replicate"


def _parse_list(v: Any, default: List[str]) -> List[str]:
    try:
        if v is None or v == "":
            return default.copy()
        if isinstance(v, list):
            return [x.strip() for x in v if isinstance(x, str) and x.strip()]
        s = str(v).strip()
        if not s:
            return default.copy()
        if s.startswith("["):
            import json
            out = json.loads(s)
            return [x.strip() for x in out if isinstance(x, str) and x.strip()] or default.copy()
        return [x.strip() for x in s.split(",") if x.strip()] or default.copy()
    except Exception:
        return default.copy()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    env: str = Field(default="development", description="ENV")
    debug: bool = Field(default=False, description="DEBUG")
    secret_key: str = Field(default="change-me-in-production-min-32-chars")
    site_url: str = Field(default="http://localhost:5173", alias="SITE_URL")

    # MongoDB
    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db_name: str = Field(default="inkgenius", alias="MONGODB_DB_NAME")

    # Redis (rate limiting)
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    rate_limit_requests: int = Field(default=100, alias="RATE_LIMIT_REQUESTS")
    rate_limit_window_seconds: int = Field(default=15 * 60, alias="RATE_LIMIT_WINDOW_SECONDS")

    # Google sign-in
    google_client_id: str = Field(default="", alias="GOOGLE_CLIENT_ID")

    # Comma-separated emails treated as admins for credit management
    admin_emails_raw: str = Field(default="", alias="ADMIN_EMAILS")

    # Whop
    whop_webhook_secret: str = Field(default="", alias="WHOP_WEBHOOK_SECRET")
    whop_company_id: str = Field(default="", alias="WHOP_COMPANY_ID")
    whop_checkout_base_url: str = Field(default="https://whop.com/checkout", alias="WHOP_CHECKOUT_BASE_URL")

    # Image generation
    google_cloud_project_id: str = Field(default="", alias="GOOGLE_CLOUD_PROJECT_ID")
    google_cloud_location: str = Field(default="us-central1", alias="GOOGLE_CLOUD_LOCATION")
    google_application_credentials: str | None = Field(default=None, alias="GOOGLE_APPLICATION_CREDENTIALS")
    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    imagen_model: str = Field(default="imagen-3.0-generate-001", alias="IMAGEN_MODEL")
    openrouter_api_key: str = Field(default="", alias="OPENROUTER_API_KEY")
    replicate_api_token: str = Field(default="", alias="REPLICATE_API_TOKEN")
    huggingface_api_token: str = Field(default="", alias="HUGGINGFACE_API_TOKEN")
    image_providers_raw: str = Field(default=_DEFAULT_PROVIDERS, alias="IMAGE_PROVIDERS")
    image_request_timeout: float = Field(default=60.0, alias="IMAGE_REQUEST_TIMEOUT")

    # Sentry
    sentry_dsn: str | None = Field(default=None, alias="SENTRY_DSN")

    # CORS: env as string, exposed as list
    cors_origins_raw: str = Field(
        default="http://localhost:5173,http://localhost:3000",
        alias="CORS_ORIGIN",
        description="Comma-separated or JSON list",
    )

    @property
    def cors_origins(self) -> List[str]:
        return _parse_list(getattr(self, "cors_origins_raw", None), _DEFAULT_CORS)

    @property
    def admin_email_list(self) -> List[str]:
        return [e.lower() for e in _parse_list(self.admin_emails_raw, [])]

    @property
    def image_providers(self) -> List[str]:
        return [p.lower() for p in _parse_list(self.image_providers_raw, _DEFAULT_PROVIDERS.split(","))]

    @property
    def is_production(self) -> bool:
        return self.env.lower() == "production"

    # Pricing (credits)
    new_user_bonus_credits: int = 100
    credits_per_text_to_image: int = 10
    credits_per_image_to_image: int = 15

    # Image limits
    image_default_width: int = 512
    image_default_height: int = 512
    image_max_width: int = 1024
    image_max_height: int = 1024
    image_max_file_size: int = 10 * 1024 * 1024  # 10MB
    image_supported_formats: List[str] = ["image/jpeg", "image/png", "image/webp"]


@lru_cache
def get_settings() -> Settings:
    return Settings()


class CreditPackage(BaseModel):
    id: str
    name: str
    credits: int
    price: float
    currency: str = "USD"
    description: str
    popular: bool = False
    bonus: int = 0  # already included in credits


CREDIT_PACKAGES: list[CreditPackage] = [
    CreditPackage(
        id="credits_100",
        name="100 Credits",
        credits=100,
        price=1.00,
        description="Starter pack - 100 credits",
    ),
    CreditPackage(
        id="credits_1000",
        name="1000 Credits",
        credits=1000,
        price=10.00,
        description="Standard pack - 1000 credits",
        popular=True,
    ),
    CreditPackage(
        id="credits_15000",
        name="15000 Credits",
        credits=15000,
        price=100.00,
        description="Value pack - 15000 credits (50% bonus)",
        bonus=5000,
    ),
]


def get_credit_package(package_id: str) -> CreditPackage | None:
    return next((p for p in CREDIT_PACKAGES if p.id == package_id), None)
