"""
Django settings for the lab management backend.

Every deployment knob is an environment variable. A `.env` file next to
`manage.py` is loaded first for local work; real deployments export the
variables directly.
"""
from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from dotenv import load_dotenv  # type: ignore

from .logging import build_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent
if (BASE_DIR / ".env").exists():
    load_dotenv(dotenv_path=BASE_DIR / ".env")


def env_flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def env_list(name: str, default: str = "") -> list[str]:
    return [part.strip() for part in os.getenv(name, default).split(",") if part.strip()]


# -----------------------------------------------------------------------------
# Runtime mode and secrets
# -----------------------------------------------------------------------------
ENV = os.getenv("ENV", "dev")
DEBUG = env_flag("DEBUG")
ALLOWED_HOSTS = env_list("ALLOWED_HOSTS", "127.0.0.1,localhost,testserver")

_DEV_SECRET_KEY = "dev-only-lab-secret-key"
_DEV_JWT_SECRET = "dev-only-lab-jwt-secret"
SECRET_KEY = os.getenv("SECRET_KEY") or _DEV_SECRET_KEY
# Bearer tokens are signed separately so rotating one does not log out the other
JWT_SECRET = os.getenv("JWT_SECRET") or _DEV_JWT_SECRET
JWT_LIFETIME_DAYS = int(os.getenv("JWT_LIFETIME_DAYS", "7"))

# `manage.py runserver` with no address binds 0.0.0.0:$PORT
PORT = os.getenv("PORT", "5000")

if ENV == "prod":
    problems = []
    if DEBUG:
        problems.append("DEBUG must be off")
    if "*" in ALLOWED_HOSTS:
        problems.append("ALLOWED_HOSTS cannot contain *")
    if SECRET_KEY == _DEV_SECRET_KEY:
        problems.append("SECRET_KEY is not set")
    if JWT_SECRET == _DEV_JWT_SECRET:
        problems.append("JWT_SECRET is not set")
    if problems:
        raise RuntimeError("Refusing to start in prod: " + "; ".join(problems))

# -----------------------------------------------------------------------------
# Django wiring
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
    "drf_yasg",
    "lab",
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
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "lab.middleware.RequestLogMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "labtech.urls"
WSGI_APPLICATION = "labtech.wsgi.application"

# Report and slip layouts live in lab/templates/lab/report/
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

# -----------------------------------------------------------------------------
# Storage: DATABASE_URL when present, otherwise a local SQLite file
# -----------------------------------------------------------------------------
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if DATABASE_URL:
    import dj_database_url  # type: ignore

    DATABASES = {
        "default": dj_database_url.parse(
            DATABASE_URL,
            conn_max_age=int(os.getenv("DB_CONN_MAX_AGE", "120")),
        )
    }
else:
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": os.getenv("SQLITE_PATH") or (BASE_DIR / "lab.sqlite3").as_posix(),
        }
    }

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# -----------------------------------------------------------------------------
# Accounts
# -----------------------------------------------------------------------------
AUTH_USER_MODEL = "lab.User"
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
]

# Seed account for `manage.py create_admin`
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@gmail.com")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "Admin#123@")

# -----------------------------------------------------------------------------
# Locale, static files, request size
# -----------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
# Day keys (attendance, appointment slots, sample numbers) follow the lab's clock
TIME_ZONE = os.getenv("TIME_ZONE", "Asia/Karachi")
USE_I18N = False
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# Report templates may embed data-URI logos
DATA_UPLOAD_MAX_MEMORY_SIZE = int(os.getenv("MAX_BODY_MB", "10")) * 1024 * 1024

# -----------------------------------------------------------------------------
# API
# -----------------------------------------------------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "lab.authentication.BearerJWTAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_PARSER_CLASSES": [
        "rest_framework.parsers.JSONParser",
        "rest_framework.parsers.FormParser",
        "rest_framework.parsers.MultiPartParser",
    ],
    "DEFAULT_THROTTLE_CLASSES": (
        "rest_framework.throttling.ScopedRateThrottle",
    ),
    "DEFAULT_THROTTLE_RATES": {
        "login": os.getenv("LOGIN_RATE", "20/min"),
    },
    "UNAUTHENTICATED_USER": None,
    "DATETIME_FORMAT": "iso-8601",
    "EXCEPTION_HANDLER": "lab.exceptions.api_exception_handler",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(days=JWT_LIFETIME_DAYS),
    "SIGNING_KEY": JWT_SECRET,
    "ALGORITHM": "HS256",
    "AUTH_HEADER_TYPES": ("Bearer",),
    "USER_ID_CLAIM": "sub",
    "USER_ID_FIELD": "id",
    "UPDATE_LAST_LOGIN": False,
}

# Routes are declared without trailing slashes
APPEND_SLASH = False

SWAGGER_SETTINGS = {
    "DEFAULT_INFO": "labtech.urls.api_info",
    "SECURITY_DEFINITIONS": {
        "Bearer": {"type": "apiKey", "name": "Authorization", "in": "header"},
    },
}

# The web console and the patient app are served from other origins
CORS_ALLOW_ALL_ORIGINS = True

# -----------------------------------------------------------------------------
# Patient push notifications (Expo)
# -----------------------------------------------------------------------------
EXPO_PUSH_URL = os.getenv("EXPO_PUSH_URL", "https://exp.host/--/api/v2/push/send")
EXPO_PUSH_TIMEOUT = int(os.getenv("EXPO_PUSH_TIMEOUT", "5"))

# -----------------------------------------------------------------------------
# TLS termination at the proxy
# -----------------------------------------------------------------------------
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
USE_X_FORWARDED_HOST = True
if ENV == "prod":
    SECURE_HSTS_SECONDS = int(os.getenv("SECURE_HSTS_SECONDS", "3600"))
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_SSL_REDIRECT = env_flag("SECURE_SSL_REDIRECT", "1")

# -----------------------------------------------------------------------------
# Logging: console always, rotating files when LOG_DIR is set
# -----------------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_DIR = os.getenv("LOG_DIR", "").strip()
if LOG_DIR:
    Path(LOG_DIR).mkdir(parents=True, exist_ok=True)
LOGGING = build_logging_config(Path(LOG_DIR) if LOG_DIR else None, LOG_LEVEL)
