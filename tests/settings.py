"""Django settings for django-inbox tests."""

SECRET_KEY = "test-secret-key-not-for-production"

DEBUG = True

INSTALLED_APPS = [
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "tests.testapp",
    "django_inbox",
]

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

USE_TZ = True

ROOT_URLCONF = "tests.urls"

AUTH_USER_MODEL = "testapp.User"

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

INBOX_BROADCAST_BACKEND = "django_inbox.broadcasting.locmem.LocmemBroadcaster"
