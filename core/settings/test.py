from .base import REST_FRAMEWORK
from .base import *  # noqa: F403

# Keep tests self-contained without external services.
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_TASK_STORE_EAGER_RESULT = False
CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"

DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}}
CACHES = {"default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache", "LOCATION": "frilpp-test"}}
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# A valid Fernet key so stored integration tokens round-trip.
TOKEN_ENCRYPTION_KEY = "Xx5Cj4yWVOMXaMyZhTzm6bZeYQ4OyBKvzm9KAzGmk4A="
SHOPIFY_API_SECRET = "shpss_test_secret"
STRIPE_WEBHOOK_SECRET = "whsec_test"
APP_URL = "https://frilpp.test"
RATE_LIMITS_ENABLED = False
CRON_SECRET = ""
TWILIO_FROM_NUMBER = ""
TWILIO_WHATSAPP_FROM = ""

REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = ()
