"""
Base settings for retail_erp project.
Shared between local (single store) and cloud deployments.
"""

from pathlib import Path
from decimal import Decimal
import os


# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY', 'django-insecure-3k$w!r0x7z1e@n9q2m5v8b4c6d0f#h=j-l_p+s^t&u*y(a)g')

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'True').lower() == 'true'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', '*').split(',')


# Application definition
INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'main',
    'stock',
    'corsheaders',
    'rest_framework',
    'drf_spectacular',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'retail_erp.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

WSGI_APPLICATION = 'retail_erp.wsgi.application'


# Internationalization
LANGUAGE_CODE = 'en-us'
TIME_ZONE = os.getenv('TIME_ZONE', 'America/Sao_Paulo')
USE_I18N = True
USE_TZ = True


# Static files
STATIC_URL = 'static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'


# CORS
CORS_ALLOW_ALL_ORIGINS = True


# Default primary key field type
DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# TENANCY
# =============================================================================
# Header the HTTP layer reads the tenant from. Services never read it:
# every stock operation receives tenant_id explicitly.
TENANT_HEADER = 'HTTP_X_TENANT_ID'
STOCK_DEFAULT_TENANT = os.getenv('STOCK_DEFAULT_TENANT', 'restaurant')


# =============================================================================
# STOCK ENGINE
# =============================================================================
# Name given to the per-tenant fallback sector created by ensure_central().
STOCK_CENTRAL_SECTOR_NAME = os.getenv('STOCK_CENTRAL_SECTOR_NAME', 'Central Warehouse')

# Re-check availability under row locks inside the deduction transaction.
# When disabled, a stale pre-flight check lets a sale drive the central
# sector negative instead of failing.
STOCK_REVALIDATE_IN_TRANSACTION = os.getenv('STOCK_REVALIDATE_IN_TRANSACTION', 'True').lower() == 'true'

# Remainders below this are treated as fully deducted.
STOCK_DEDUCTION_EPSILON = Decimal(os.getenv('STOCK_DEDUCTION_EPSILON', '0.0001'))


REST_FRAMEWORK = {
    'DEFAULT_SCHEMA_CLASS': 'drf_spectacular.openapi.AutoSchema',

    # Authentication lives in the gateway in front of this service
    'DEFAULT_AUTHENTICATION_CLASSES': [],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,

    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
}


SPECTACULAR_SETTINGS = {
    'TITLE': 'Retail ERP',
    'DESCRIPTION': 'Retail ERP stock and order API',
    'VERSION': '1.0.0',
}
