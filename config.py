import os

from dotenv import load_dotenv

load_dotenv()

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
PORT = int(os.getenv("PORT", 8000))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Database
DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key-change-me")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 30 * 24 * 60))
COOKIE_EXPIRE_DAYS = int(os.getenv("COOKIE_EXPIRE_DAYS", 30))
RESET_TOKEN_EXPIRE_MINUTES = 10

# Rate limiting, per client IP
RATE_LIMIT = os.getenv("RATE_LIMIT", "100 per 15 minutes")
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# Pagination
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 25

# Uploads
FILE_SIZE_LIMIT = int(os.getenv("FILE_SIZE_LIMIT", 1_000_000))

# Geocoder
GEOCODER_URL = os.getenv("GEOCODER_URL", "https://maps.googleapis.com/maps/api/geocode/json")
GEOCODER_API_KEY = os.getenv("GEOCODER_API_KEY", "")

# Object storage
AWS_ID = os.getenv("AWS_ID")
AWS_SECRET = os.getenv("AWS_SECRET")
AWS_REGION = os.getenv("AWS_REGION", "us-east-1")
AWS_BUCKET_NAME = os.getenv("AWS_BUCKET_NAME", "")

# Mail
SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL", "noreply@devcamper.io")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "DevCamper")
