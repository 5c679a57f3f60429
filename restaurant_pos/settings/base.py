"""
Base settings for restaurant_pos project.
Shared between local (POS) and cloud deployments.
"""

from pathlib import Path
import os

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-rpos-inventory-k2#m9v!x0q7w$t4z@e8r1y6u3i5o')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
# The inventory engine is consumed in-process by the admin layer, so only
# the apps it depends on are installed here.
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'inventory',
]


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'Asia/Karachi')
USE_I18N = True
USE_TZ = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# DATABASE
# =============================================================================
# SQLite has no row locks: IMMEDIATE transactions take the write lock at
# BEGIN, so concurrent allocations queue instead of reading the same batch.
SQLITE_TIMEOUT = int(os.getenv('SQLITE_TIMEOUT', '20'))

SQLITE_OPTIONS = {
    'timeout': SQLITE_TIMEOUT,
    'transaction_mode': 'IMMEDIATE',
}


LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
