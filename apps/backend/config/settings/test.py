import os

from .base import *  # noqa: F401,F403

DEBUG = False

_test_db_engine = os.getenv("TEST_DB_ENGINE", "sqlite").lower()

if _test_db_engine == "mysql":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.mysql",
            "NAME": os.getenv("DB_NAME", "auditworkbench"),
            "USER": os.getenv("DB_USER", "auditworkbench"),
            "PASSWORD": os.getenv("DB_PASSWORD", "auditworkbench"),
            "HOST": os.getenv("DB_HOST", "mariadb"),
            "PORT": os.getenv("DB_PORT", "3306"),
            "OPTIONS": {
                "charset": "utf8mb4",
            },
        }
    }
elif _test_db_engine == "sqlite":
    DATABASES = {
        "default": {
            "ENGINE": "django.db.backends.sqlite3",
            "NAME": ":memory:",
        }
    }
else:
    raise RuntimeError(f"Unsupported TEST_DB_ENGINE: {_test_db_engine}")

# Keep test execution predictable and faster in CI
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
CELERY_TASK_ALWAYS_EAGER = True
