import logging
import warnings

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Environment
    environment: str = "development"  # development | test | production

    # Server
    marketplace_host: str = "0.0.0.0"
    marketplace_port: int = 8000

    # Database (sqlite for local dev, postgresql+asyncpg for production)
    database_url: str = "sqlite+aiosqlite:///./data/rwa_marketplace.db"

    # Auth
    jwt_secret_key: str = "dev-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 24 * 7  # 7 days

    # Token contract defaults (used when a deploy request omits them)
    default_token_name: str = "Real World Asset Token"
    default_token_symbol: str = "RWA"
    default_base_uri: str = "ipfs://QmSampleMetadataURI"

    # Marketplace
    relist_policy: str = "overwrite"  # overwrite | reject
    faucet_enabled: bool = True  # POST /wallet/deposit credits native funds

    # IPFS (Kubo RPC)
    ipfs_api_url: str = "http://localhost:5001"
    ipfs_gateway_url: str = "http://localhost:8080"
    ipfs_timeout_seconds: float = 30.0

    # Metrics
    metrics_enabled: bool = True
    metrics_refresh_seconds: float = 60.0  # business gauge refresh interval

    # CORS
    cors_origins: str = "http://localhost:3000"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()

_logger = logging.getLogger("rwa_marketplace.config")
_INSECURE_SECRETS = {
    "dev-secret-change-in-production",
    "change-me-to-a-random-string",
}
_RELIST_POLICIES = {"overwrite", "reject"}


def validate_security_posture(cfg: Settings) -> None:
    is_prod = cfg.environment.lower() in {"production", "prod"}

    if cfg.jwt_secret_key in _INSECURE_SECRETS:
        if is_prod:
            raise RuntimeError(
                "FATAL: JWT_SECRET_KEY is set to an insecure default. "
                "Set a strong random secret via the JWT_SECRET_KEY environment variable before deploying to production."
            )
        warnings.warn(
            "JWT_SECRET_KEY is set to the default insecure value. "
            "Set a strong random secret via the JWT_SECRET_KEY environment variable for production.",
            stacklevel=1,
        )

    if cfg.relist_policy not in _RELIST_POLICIES:
        raise RuntimeError(
            f"FATAL: RELIST_POLICY must be one of {sorted(_RELIST_POLICIES)}, got {cfg.relist_policy!r}"
        )

    if is_prod and cfg.faucet_enabled:
        _logger.warning(
            "FAUCET_ENABLED is true in production; any authenticated caller can credit native funds."
        )

    if cfg.cors_origins == "*":
        if is_prod:
            raise RuntimeError(
                "FATAL: CORS_ORIGINS cannot be '*' in production. "
                "Set explicit trusted origins via the CORS_ORIGINS environment variable."
            )
        _logger.warning(
            "CORS_ORIGINS is set to '*' (allow all). "
            "Configure specific origins for production via the CORS_ORIGINS environment variable."
        )


validate_security_posture(settings)
