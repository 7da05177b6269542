from os import environ


class Config:
    # Set application configuration vars from k8s/deployment.yaml file.
    # General Config
    APP_NAME = environ.get("APP_NAME", "vendor-earnings-console-api")
    LOG_LEVEL = environ.get("LOG_LEVEL", "DEBUG")
    FRONTEND_URL = environ.get("FRONTEND_URL", "http://localhost:8080")

    # Marketplace API Config
    MARKETPLACE_API_BASE_URL = environ.get(
        "MARKETPLACE_API_BASE_URL", "http://localhost:3002/api/v1"
    )
    MARKETPLACE_API_TIMEOUT = int(environ.get("MARKETPLACE_API_TIMEOUT", "30"))

    # Earnings Config
    CURRENCY_CODE = environ.get("CURRENCY_CODE", "GBP")
    EARNINGS_POLL_INTERVAL = int(environ.get("EARNINGS_POLL_INTERVAL", "120"))

    # Withdrawal Config
    ONBOARDING_REDIRECT_PATH = environ.get("ONBOARDING_REDIRECT_PATH", "/vendor/profile")
    ONBOARDING_REDIRECT_DELAY_MS = int(environ.get("ONBOARDING_REDIRECT_DELAY_MS", "2000"))
    WITHDRAWAL_LOCK_TTL = int(environ.get("WITHDRAWAL_LOCK_TTL", "60"))
    DIALOG_TTL = int(environ.get("DIALOG_TTL", "1800"))

    # MongoDB Config
    MONGO_DB_CONNECTION_STRING = environ.get("MONGO_DB_CONNECTION_STRING")
    MONGO_DB_NAME = environ.get("MONGO_DB_NAME", "vendor_earnings_console")

    # Authentication
    HOST_NAME = environ.get("HOST_NAME")
    SECURITY_HOST = environ.get("SECURITY_HOST")
    PUBLIC_KEY = environ.get("PUBLIC_KEY")

    # Redis
    REDIS_URI = environ.get("REDIS_URI", "localhost")
    REDIS_PORT = environ.get("REDIS_PORT", "6379")
    REDIS_PASSWORD = environ.get("REDIS_PASSWORD")
