"""
Django settings for the GCH Healthcare backend.

Everything deployment specific comes from environment variables; a
``.env`` file next to ``manage.py`` is loaded first for local work.
Without any configuration the project runs on SQLite with in-process
cache and channel layer, which is also what the test suite uses.
"""
from __future__ import annotations

import os
from pathlib import Path

import dj_database_url  # type: ignore
from dotenv import load_dotenv  # type: ignore

BASE_DIR = Path(__file__).resolve().parent.parent
if (BASE_DIR / ".env").exists():
    load_dotenv(dotenv_path=BASE_DIR / ".env")


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: str = "") -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# -----------------------------------------------------------------------------
# Deployment mode
# -----------------------------------------------------------------------------
ENV = os.getenv("ENV", "dev")
DEBUG = env_flag("DEBUG")
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver")

INSECURE_KEY = "gch-dev-only-secret-key"
SECRET_KEY = os.getenv("SECRET_KEY") or INSECURE_KEY

if ENV == "prod":
    problems = []
    if DEBUG:
        problems.append("DEBUG must be off")
    if "*" in ALLOWED_HOSTS:
        problems.append("ALLOWED_HOSTS may not contain '*'")
    if SECRET_KEY == INSECURE_KEY:
        problems.append("SECRET_KEY is not set")
    if problems:
        raise RuntimeError("refusing to start in prod: " + "; ".join(problems))

# -----------------------------------------------------------------------------
# Apps and middleware
# -----------------------------------------------------------------------------
INSTALLED_APPS = [
    "django_prometheus",
    "corsheaders",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "rest_framework.authtoken",
    "rest_framework_simplejwt.token_blacklist",
    "drf_yasg",
    "channels",
    "care",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django_prometheus.middleware.PrometheusBeforeMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django_prometheus.middleware.PrometheusAfterMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "care.middleware.RequestLogMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "gch.urls"
WSGI_APPLICATION = "gch.wsgi.application"
ASGI_APPLICATION = "gch.asgi.application"

TEMPLATES = [{
    "BACKEND": "django.template.backends.django.DjangoTemplates",
    "DIRS": [],
    "APP_DIRS": True,
    "OPTIONS": {
        "context_processors": [
            "django.template.context_processors.request",
            "django.contrib.auth.context_processors.auth",
            "django.contrib.messages.context_processors.messages",
        ],
    },
}]

# -----------------------------------------------------------------------------
# Database: DATABASE_URL (postgres://...) or the local SQLite file
# -----------------------------------------------------------------------------
if os.getenv("DATABASE_URL", "").strip():
    DATABASES = {
        "default": dj_database_url.config(conn_max_age=env_int("DB_CONN_MAX_AGE", 60)),
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": (BASE_DIR / "db.sqlite3").as_posix(),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------
AUTH_USER_MODEL = "care.User"

# Registration accepts passwords of six characters or more
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
        "OPTIONS": {"min_length": 6},
    },
]

# -----------------------------------------------------------------------------
# REST API
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "care.authentication.TokenAuthentication",
        "rest_framework_simplejwt.authentication.JWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.IsAuthenticated"],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
        "rest_framework.parsers.MultiPartParser",
    ],
    "DEFAULT_THROTTLE_CLASSES": [
        "rest_framework.throttling.AnonRateThrottle",
        "rest_framework.throttling.UserRateThrottle",
    ],
    "DEFAULT_THROTTLE_RATES": {
        "anon": os.getenv("THROTTLE_ANON", "120/min"),
        "user": os.getenv("THROTTLE_USER", "600/min"),
        "login": os.getenv("THROTTLE_LOGIN", "20/min"),
        "register": os.getenv("THROTTLE_REGISTER", "30/hour"),
        "qr": os.getenv("THROTTLE_QR", "120/min"),
    },
    "DATETIME_FORMAT": "iso-8601",
    "EXCEPTION_HANDLER": "care.exceptions.api_exception_handler",
}

# The portals call every endpoint without a trailing slash
APPEND_SLASH = False

SWAGGER_SETTINGS = {"DEFAULT_INFO": "gch.urls.api_info"}

CORS_ALLOWED_ORIGINS = env_list("CORS_ALLOWED_ORIGINS")
CORS_ALLOW_CREDENTIALS = True

# -----------------------------------------------------------------------------
# Locale, time and static files
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
# Queue numbers and "today" follow the clinic's local day
TIME_ZONE = os.getenv("TIME_ZONE", "Africa/Nairobi")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# -----------------------------------------------------------------------------
# Cache and channel layer: in-process unless REDIS_URL is set
# -----------------------------------------------------------------------------
REDIS_URL = os.getenv("REDIS_URL", "").strip()

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "CONNECTION_POOL_KWARGS": {"max_connections": env_int("REDIS_MAX_CONN", 50)},
                "SOCKET_CONNECT_TIMEOUT": 3,
                "SOCKET_TIMEOUT": 3,
            },
        }
    }
    SESSION_ENGINE = "django.contrib.sessions.backends.cached_db"
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {"hosts": [REDIS_URL]},
        }
    }
else:
    CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache", "LOCATION": "gch"}}
    CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}

# -----------------------------------------------------------------------------
# TLS and proxy
# -----------------------------------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True
if ENV == "prod":
    SECURE_HSTS_SECONDS = env_int("SECURE_HSTS_SECONDS", 3600)
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_SSL_REDIRECT = env_flag("SECURE_SSL_REDIRECT", "1")

# -----------------------------------------------------------------------------
# Logging
# -----------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "care": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "django.request": {"handlers": ["console"], "level": "ERROR", "propagate": False},
    },
}

# -----------------------------------------------------------------------------
# Clinic workflow
# -----------------------------------------------------------------------------
CHECKIN_CODE_ATTEMPTS = env_int("CHECKIN_CODE_ATTEMPTS", 10)
LOW_STOCK_THRESHOLD = env_int("LOW_STOCK_THRESHOLD", 20)
RECENT_ACTIVITY_LIMIT = env_int("RECENT_ACTIVITY_LIMIT", 5)
