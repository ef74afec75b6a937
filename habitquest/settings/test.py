from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

RAZORPAY = {
    'KEY_ID': 'rzp_test_key',
    'KEY_SECRET': 'test_key_secret',
    'WEBHOOK_SECRET': 'test_webhook_secret',
    'BASE_URL': 'https://api.razorpay.test',
    'TIMEOUT': 5.0,
}

PAYMENTS_MAX_ENTITLEMENT_ATTEMPTS = 3

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
