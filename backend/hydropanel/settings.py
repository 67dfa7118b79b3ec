"""Django settings for the hydropanel project."""
from pathlib import Path

import environ

from common.logging import build_logging_config

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DEBUG=(bool, True),
    SECRET_KEY=(str, "dev-secret-key-change-me"),
    ALLOWED_HOSTS=(list, []),
)

def _load_env_file() -> None:
    env_file = Path(env.str("DJANGO_ENV_FILE", default=str(BASE_DIR / ".env")))
    if env_file.exists():
        environ.Env.read_env(env_file, overwrite=False)


_load_env_file()

DEBUG = env("DEBUG")
_default_allowed_hosts = ["localhost", "127.0.0.1", "testserver", "0.0.0.0"]
ALLOWED_HOSTS = env.list("ALLOWED_HOSTS") or _default_allowed_hosts
SECRET_KEY = env("SECRET_KEY")

INSTALLED_APPS = [
    "daphne",  # Must be first for ASGI support
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "channels",
    "rest_framework",
    "drf_spectacular",
    "accounts.apps.AccountsConfig",
    "metering.apps.MeteringConfig",
    "alerts.apps.AlertsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "hydropanel.urls"

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
    }
]

WSGI_APPLICATION = "hydropanel.wsgi.application"
ASGI_APPLICATION = "hydropanel.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": env.str("DJANGO_DB_NAME", default=str(BASE_DIR / "db.sqlite3")),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = env.str("TIME_ZONE", default="America/Recife")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    "EXCEPTION_HANDLER": "common.api.panel_exception_handler",
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
    "DEFAULT_RENDERER_CLASSES": [
        "rest_framework.renderers.JSONRenderer",
        "rest_framework.renderers.BrowsableAPIRenderer",
    ],
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Hydropanel API",
    "DESCRIPTION": "Water consumption monitoring, alerts and account operations",
    "VERSION": "0.1.0",
    "SERVE_INCLUDE_SCHEMA": False,
}

# ========================================
# Account registry
# ========================================

# "database" uses the Django models, "memory" keeps accounts in process
ACCOUNT_REGISTRY = env.str("ACCOUNT_REGISTRY", default="database")
ALERT_STORE = env.str("ALERT_STORE", default="database")

# ========================================
# Monitoring Configuration
# ========================================

# Seconds between two reads of the same account
MONITOR_DEFAULT_INTERVAL = env.float("MONITOR_DEFAULT_INTERVAL", default=5.0)

# Consecutive read failures before a session enters the error state
MONITOR_MAX_CONSECUTIVE_FAILURES = env.int("MONITOR_MAX_CONSECUTIVE_FAILURES", default=3)

# Worker threads shared by every account ticker
MONITOR_WORKER_POOL_SIZE = env.int("MONITOR_WORKER_POOL_SIZE", default=4)

# Read as soon as a session starts instead of waiting one interval
MONITOR_FIRST_TICK_IMMEDIATE = env.bool("MONITOR_FIRST_TICK_IMMEDIATE", default=True)

METER_READER = env.str("METER_READER", default="simulated")
METER_READER_OPTIONS = env.json("METER_READER_OPTIONS", default={})

# ========================================
# Alerts and notifications
# ========================================

EMAIL_BACKEND = env.str("EMAIL_BACKEND", default="django.core.mail.backends.console.EmailBackend")
ALERT_EMAIL_FROM = env.str("ALERT_EMAIL_FROM", default="alerts@hydropanel.local")

SMS_GATEWAY_URL = env.str("SMS_GATEWAY_URL", default="")
SMS_GATEWAY_TOKEN = env.str("SMS_GATEWAY_TOKEN", default="")
SMS_GATEWAY_TIMEOUT = env.float("SMS_GATEWAY_TIMEOUT", default=5.0)

MQTT_BROKER_HOST = env.str("MQTT_BROKER_HOST", default="localhost")
MQTT_BROKER_PORT = env.int("MQTT_BROKER_PORT", default=1883)
MQTT_TOPIC_PREFIX = env.str("MQTT_TOPIC_PREFIX", default="hydropanel/alerts")

ALERT_PANEL_GROUP = env.str("ALERT_PANEL_GROUP", default="alerts_panel")

# InfluxDB Settings
READING_HISTORY_ENABLED = env.bool("READING_HISTORY_ENABLED", default=False)
INFLUXDB_URL = env.str("INFLUXDB_URL", default="") or None
INFLUXDB_HOST = env.str("INFLUXDB_HOST", default="localhost")
INFLUXDB_PORT = env.int("INFLUXDB_PORT", default=8086)
INFLUXDB_TOKEN = env.str("INFLUXDB_TOKEN", default="")
INFLUXDB_ORG = env.str("INFLUXDB_ORG", default="default")
INFLUXDB_BUCKET = env.str("INFLUXDB_BUCKET", default="default")

# Logging Configuration
LOG_DIR = Path(env.str("LOG_DIR", default=str(BASE_DIR / "logs")))
LOG_DIR.mkdir(parents=True, exist_ok=True)
LOGGING = build_logging_config(LOG_DIR, console_level=env.str("LOG_LEVEL", default="INFO"))


# ========================================
# Django Channels Configuration
# ========================================

if env.str("CHANNEL_LAYER", default="redis") == "memory":
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels.layers.InMemoryChannelLayer",
        },
    }
else:
    CHANNEL_LAYERS = {
        "default": {
            "BACKEND": "channels_redis.core.RedisChannelLayer",
            "CONFIG": {
                "hosts": [(
                    env.str("REDIS_HOST", default="127.0.0.1"),
                    env.int("REDIS_PORT", default=6379),
                )],
                "capacity": 1500,  # Maximum number of messages in a channel
                "expiry": 10,  # Message expiry in seconds
            },
        },
    }
