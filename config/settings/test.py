from .base import *  # noqa
from .base import BASE_DIR
from .base import REST_FRAMEWORK as BASE_REST_FRAMEWORK

DEBUG = False

# Use a local SQLite database for reliability and speed in tests
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "test_db.sqlite3",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

# Relax throttling for tests to reduce flakiness
REST_FRAMEWORK = {**BASE_REST_FRAMEWORK}
REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {
    **BASE_REST_FRAMEWORK.get("DEFAULT_THROTTLE_RATES", {}),
    "user": "10000/min",
    "anon": "10000/min",
    "cart": "10000/min",
    "cart_write": "10000/min",
    "orders": "10000/min",
    "orders_write": "10000/min",
}

# Store rules pinned so pricing tests do not depend on the environment
STORE_TAX_RATE_PERCENT = "19"
STORE_FREE_SHIPPING_THRESHOLD = "100.00"
STORE_BASE_SHIPPING_COST = "5.00"
STORE_SHIPPING_SUBTOTAL_PERCENT = "2"
STORE_ORDER_NUMBER_PREFIX = "ORD-"
STORE_ORDER_NUMBER_MAX_ATTEMPTS = 5
STORE_DEFAULT_CURRENCY = "USD"
