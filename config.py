import os
from dotenv import load_dotenv

# Load variables from .env
load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "defaultsecret")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///school_rides.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Fare and travel-time assumptions
    RATE_PER_KM = float(os.getenv("RATE_PER_KM", "1.5"))
    AVERAGE_SPEED_KMH = float(os.getenv("AVERAGE_SPEED_KMH", "40"))

    # Ride generation sweep
    GENERATION_HORIZON_DAYS = int(os.getenv("GENERATION_HORIZON_DAYS", "0"))
    GENERATION_INTERVAL_MINUTES = int(os.getenv("GENERATION_INTERVAL_MINUTES", "60"))
    GENERATION_MAX_RETRIES = int(os.getenv("GENERATION_MAX_RETRIES", "3"))
    SCHEDULER_ENABLED = os.getenv("SCHEDULER_ENABLED", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SCHEDULER_ENABLED = False
